"""Tests for incidence capture and review."""

from datetime import date
from decimal import Decimal

import pytest
from sqlalchemy import select

from nomina_engine.errors import AuthorizationError, InvalidTransitionError, ValidationError
from nomina_engine.models import IncidenceType, Notification
from nomina_engine.services.calendar_service import CalendarService
from nomina_engine.services.incidence_service import (
    IncidenceService,
    normalize_incidence_type,
    parse_incidence_date,
)


def rows_for(period=None):
    rows = [
        {"employeeId": "1", "incidenceType": "FALTAS", "quantity": 2, "date": "03/01/2025"},
        {"employeeName": "maría", "incidenceType": "bono", "amount": "1500"},
        {"employeeId": "99", "employeeName": "Nadie", "incidenceType": "FALTAS", "quantity": 1},
    ]
    if period is not None:
        for row in rows:
            row["periodId"] = str(period.period_id)
    return rows


async def _notifications(session):
    await session.flush()
    return list(await session.scalars(select(Notification)))


class TestHelpers:
    def test_type_aliases(self):
        assert normalize_incidence_type("incapacidades") is IncidenceType.PERMISOS
        assert normalize_incidence_type("T.EXTRA") is IncidenceType.TIEMPO_EXTRA
        assert normalize_incidence_type(None) is IncidenceType.BONOS
        assert normalize_incidence_type("vacaciones") is IncidenceType.VACACIONES

    def test_unknown_type(self):
        with pytest.raises(ValidationError):
            normalize_incidence_type("GUARDIA")

    def test_dates(self):
        today = date(2025, 6, 1)
        assert parse_incidence_date("03/01/2025", today) == date(2025, 1, 3)
        assert parse_incidence_date("2025-01-03T10:00:00Z", today) == date(2025, 1, 3)
        assert parse_incidence_date("mañana", today) == today
        assert parse_incidence_date(None, today) == today


class TestBulkCreate:
    async def test_client_rows_start_approved(self, session, client_user, company, employees, periods):
        result = await IncidenceService(session).bulk_create(
            client_user, company.company_id, rows_for(periods[0])
        )

        assert result.total == 3
        assert len(result.created) == 2
        assert result.skipped == 1
        assert result.not_found[0]["employeeName"] == "Nadie"
        assert all(i.status == "APPROVED" for i in result.created)

        absence, bonus = result.created
        assert absence.employee_id == employees[0].employee_id
        assert absence.quantity == Decimal("2")
        assert absence.incidence_date == date(2025, 1, 3)
        assert absence.period_id == periods[0].period_id
        assert absence.calendar_id == periods[0].calendar_id
        assert bonus.employee_id == employees[1].employee_id
        assert bonus.incidence_type == "BONOS"
        assert bonus.amount == Decimal("1500")

        data = result.to_dict()
        assert data == {
            "created": 2,
            "total": 3,
            "skipped": 1,
            "employeesNotFound": 1,
            "notFoundDetails": result.not_found,
        }
        # Clients approve their own capture; nobody is asked to review it
        assert await _notifications(session) == []

    async def test_department_head_rows_pending_and_client_notified(
        self, session, department_head, company, employees
    ):
        result = await IncidenceService(session).bulk_create(
            department_head, company.company_id, rows_for()
        )

        assert all(i.status == "PENDING" for i in result.created)
        assert all(i.created_by_role == "DEPARTMENT_HEAD" for i in result.created)

        notifications = await _notifications(session)
        assert len(notifications) == 1
        assert notifications[0].target_role == "CLIENT"
        assert notifications[0].notification_type == "INCIDENCES_PENDING"
        assert "Ventas" in notifications[0].message
        assert notifications[0].payload["count"] == 2

    async def test_operator_rows_pending(self, session, operator_user, company, employees):
        result = await IncidenceService(session).bulk_create(
            operator_user, company.company_id, rows_for()[:1]
        )

        assert result.created[0].status == "PENDING"

    async def test_blank_employee_id_falls_back_to_number(
        self, session, client_user, company, employees
    ):
        rows = [
            {"employeeId": "", "employeeNumber": "2", "incidenceType": "FALTAS", "quantity": 1},
            {"employeeId": None, "employeeNumber": "01", "incidenceType": "FALTAS", "quantity": 1},
        ]

        result = await IncidenceService(session).bulk_create(client_user, company.company_id, rows)

        assert result.skipped == 0
        assert [i.employee_id for i in result.created] == [
            employees[1].employee_id,
            employees[0].employee_id,
        ]

    async def test_unknown_type_fails_batch(self, session, client_user, company, employees):
        rows = [{"employeeId": "1", "incidenceType": "GUARDIA"}]

        with pytest.raises(ValidationError) as exc_info:
            await IncidenceService(session).bulk_create(client_user, company.company_id, rows)

        assert exc_info.value.message.startswith("Fila 1:")

    async def test_closed_period_refused(self, session, client_user, company, employees, periods):
        await CalendarService(session).change_period_status(
            client_user, periods[0].period_id, "EN_REVISION"
        )

        with pytest.raises(ValidationError) as exc_info:
            await IncidenceService(session).bulk_create(
                client_user, company.company_id, rows_for(periods[0])
            )

        assert "no acepta incidencias" in exc_info.value.message

    async def test_period_of_other_company_refused(
        self, session, operator_user, client_user, company, other_company, employees
    ):
        _, foreign_periods = await CalendarService(session).create_calendar(
            operator_user,
            company_id=other_company.company_id,
            name="Mensual Sur",
            pay_frequency="mensual",
            start_date=date(2025, 1, 1),
        )
        row = {"employeeId": "1", "incidenceType": "FALTAS", "periodId": str(foreign_periods[0].period_id)}

        with pytest.raises(ValidationError) as exc_info:
            await IncidenceService(session).bulk_create(client_user, company.company_id, [row])

        assert exc_info.value.message.startswith("Período no encontrado")

    async def test_rows_must_be_a_list(self, session, client_user, company):
        with pytest.raises(ValidationError) as exc_info:
            await IncidenceService(session).bulk_create(client_user, company.company_id, {"a": 1})

        assert exc_info.value.message == "Debes proporcionar un array de incidencias"

    async def test_employee_role_denied(self, session, employee_user, company):
        with pytest.raises(AuthorizationError):
            await IncidenceService(session).bulk_create(employee_user, company.company_id, [])


class TestReview:
    @pytest.fixture
    async def pending(self, session, department_head, company, employees):
        result = await IncidenceService(session).bulk_create(
            department_head, company.company_id, rows_for()[:2]
        )
        await session.commit()
        return result.created

    async def test_approve_notifies_department_head(self, session, client_user, department_head, pending):
        incidence = await IncidenceService(session).approve(client_user, pending[0].incidence_id)

        assert incidence.status == "APPROVED"
        assert incidence.reviewed_by_user_id == client_user.user_id
        assert incidence.reviewed_at is not None

        notifications = [
            n for n in await _notifications(session) if n.notification_type == "INCIDENCE_APPROVED"
        ]
        assert len(notifications) == 1
        assert notifications[0].user_id == department_head.user_id
        assert "1 - Juan" in notifications[0].message

    async def test_reject_appends_reason(self, session, client_user, department_head, pending):
        incidence = await IncidenceService(session).reject(
            client_user, pending[1].incidence_id, "Monto incorrecto"
        )

        assert incidence.status == "REJECTED"
        assert incidence.description.endswith("| RECHAZADA: Monto incorrecto")

        rejected = [
            n for n in await _notifications(session) if n.notification_type == "INCIDENCE_REJECTED"
        ]
        assert rejected[0].payload["reason"] == "Monto incorrecto"
        assert rejected[0].priority == "HIGH"

    async def test_reject_requires_reason(self, session, client_user, pending):
        with pytest.raises(ValidationError):
            await IncidenceService(session).reject(client_user, pending[0].incidence_id, " ")

        assert pending[0].status == "PENDING"

    async def test_reviewed_incidence_is_final(self, session, client_user, pending):
        service = IncidenceService(session)
        await service.approve(client_user, pending[0].incidence_id)

        with pytest.raises(InvalidTransitionError):
            await service.reject(client_user, pending[0].incidence_id, "Tarde")

    async def test_only_client_reviews(self, session, operator_user, department_head, pending):
        service = IncidenceService(session)
        for user in (operator_user, department_head):
            with pytest.raises(AuthorizationError):
                await service.approve(user, pending[0].incidence_id)

    async def test_pending_and_history(self, session, client_user, pending):
        service = IncidenceService(session)
        assert len(await service.list_pending(client_user, client_user.company_id)) == 2

        await service.approve(client_user, pending[0].incidence_id)
        await session.flush()

        pending_now = await service.list_pending(client_user, client_user.company_id)
        history = await service.approval_history(client_user, client_user.company_id)
        assert [i.incidence_id for i in pending_now] == [pending[1].incidence_id]
        assert [i.incidence_id for i in history] == [pending[0].incidence_id]


class TestListAndMaintenance:
    @pytest.fixture
    async def mixed(self, session, department_head, client_user, company, employees):
        service = IncidenceService(session)
        pending = await service.bulk_create(department_head, company.company_id, rows_for()[:1])
        approved = await service.bulk_create(client_user, company.company_id, rows_for()[1:2])
        await session.commit()
        return pending.created[0], approved.created[0]

    async def test_operator_sees_only_approved(self, session, operator_user, company, mixed):
        service = IncidenceService(session)
        listed = await service.list_incidences(operator_user, company.company_id)

        assert [i.incidence_id for i in listed] == [mixed[1].incidence_id]
        assert await service.list_incidences(operator_user, company.company_id, status="PENDING") == []

    async def test_client_filters_by_status(self, session, client_user, company, mixed):
        listed = await IncidenceService(session).list_incidences(
            client_user, company.company_id, status="pending"
        )

        assert [i.incidence_id for i in listed] == [mixed[0].incidence_id]

    async def test_update_pending(self, session, department_head, mixed):
        incidence = await IncidenceService(session).update_incidence(
            department_head,
            mixed[0].incidence_id,
            {"incidenceType": "VACACIONES", "quantity": "3", "description": "Vacaciones de enero"},
        )

        assert incidence.incidence_type == "VACACIONES"
        assert incidence.quantity == Decimal("3")
        assert incidence.description == "Vacaciones de enero"

    async def test_update_reviewed_refused(self, session, client_user, mixed):
        with pytest.raises(ValidationError) as exc_info:
            await IncidenceService(session).update_incidence(
                client_user, mixed[1].incidence_id, {"quantity": 5}
            )

        assert "pendientes" in exc_info.value.message

    async def test_delete(self, session, client_user, company, mixed):
        service = IncidenceService(session)
        await service.delete_incidence(client_user, mixed[0].incidence_id)

        remaining = await service.list_incidences(client_user, company.company_id)
        assert [i.incidence_id for i in remaining] == [mixed[1].incidence_id]
