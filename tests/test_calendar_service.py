"""Tests for payroll calendars and period status changes."""

from datetime import date
from uuid import uuid4

import pytest
from sqlalchemy import select

from nomina_engine.errors import (
    AuthorizationError,
    DuplicateError,
    InvalidFrequencyError,
    InvalidTransitionError,
    NotFoundError,
    ValidationError,
)
from nomina_engine.models import Incidence, Notification, PayrollCalendar
from nomina_engine.services.calendar_service import CalendarService


async def _advance(service, user, period, *statuses, reason=None):
    for status in statuses:
        period = await service.change_period_status(user, period.period_id, status, reason)
    return period


class TestCreateCalendar:
    async def test_generates_periods(self, session, calendar, periods):
        assert calendar.pay_frequency == "quincenal"
        assert len(periods) == 24
        assert [p.number for p in periods[:3]] == [1, 2, 3]
        assert periods[0].start_date == date(2025, 1, 1)
        assert periods[-1].end_date == date(2025, 12, 31)
        assert all(p.status == "EN_INCIDENCIA" for p in periods)

    async def test_client_creates_for_own_company(self, session, client_user, company):
        calendar, periods = await CalendarService(session).create_calendar(
            client_user,
            company_id=company.company_id,
            name="Semanal",
            pay_frequency="SEMANAL",
            start_date=date(2025, 12, 20),
        )

        assert calendar.pay_frequency == "semanal"
        assert len(periods) == 2

    async def test_client_of_other_company_denied(self, session, other_client_user, company):
        with pytest.raises(AuthorizationError):
            await CalendarService(session).create_calendar(
                other_client_user,
                company_id=company.company_id,
                name="Mensual",
                pay_frequency="mensual",
                start_date=date(2025, 1, 1),
            )

    async def test_invalid_frequency(self, session, operator_user, company):
        with pytest.raises(InvalidFrequencyError):
            await CalendarService(session).create_calendar(
                operator_user,
                company_id=company.company_id,
                name="Diario",
                pay_frequency="diario",
                start_date=date(2025, 1, 1),
            )

    async def test_duplicate_name(self, session, operator_user, company, calendar):
        with pytest.raises(DuplicateError):
            await CalendarService(session).create_calendar(
                operator_user,
                company_id=company.company_id,
                name="Quincenal 2025",
                pay_frequency="mensual",
                start_date=date(2025, 1, 1),
            )

    async def test_blank_name(self, session, operator_user, company):
        with pytest.raises(ValidationError):
            await CalendarService(session).create_calendar(
                operator_user,
                company_id=company.company_id,
                name="  ",
                pay_frequency="mensual",
                start_date=date(2025, 1, 1),
            )


class TestUpdateCalendar:
    async def test_rename_keeps_periods(self, session, operator_user, calendar, periods):
        service = CalendarService(session)
        updated = await service.update_calendar(
            operator_user, calendar.calendar_id, name="Quincenal Norte", pay_frequency=None
        )

        assert updated.name == "Quincenal Norte"
        remaining = await service.list_periods(calendar.calendar_id)
        assert [p.period_id for p in remaining] == [p.period_id for p in periods]

    async def test_frequency_change_regenerates(self, session, operator_user, calendar):
        service = CalendarService(session)
        await service.update_calendar(operator_user, calendar.calendar_id, pay_frequency="mensual")

        regenerated = await service.list_periods(calendar.calendar_id)
        assert len(regenerated) == 12
        assert calendar.pay_frequency == "mensual"

    async def test_regeneration_blocked_after_progress(self, session, operator_user, calendar, periods):
        service = CalendarService(session)
        await service.change_period_status(operator_user, periods[0].period_id, "EN_REVISION")

        with pytest.raises(ValidationError):
            await service.update_calendar(
                operator_user, calendar.calendar_id, start_date=date(2025, 2, 1)
            )


class TestDeleteCalendar:
    async def test_delete_unused(self, session, operator_user, calendar):
        service = CalendarService(session)
        await service.delete_calendar(operator_user, calendar.calendar_id)

        assert await session.scalar(select(PayrollCalendar)) is None
        assert await service.list_periods(calendar.calendar_id, include_finalized=True) == []

    async def test_delete_with_incidences_refused(
        self, session, operator_user, company, employees, calendar, periods
    ):
        session.add(
            Incidence(
                company_id=company.company_id,
                employee_id=employees[0].employee_id,
                calendar_id=calendar.calendar_id,
                period_id=periods[0].period_id,
                incidence_type="FALTAS",
                incidence_date=date(2025, 1, 3),
                status="APPROVED",
            )
        )
        await session.commit()

        with pytest.raises(ValidationError) as exc_info:
            await CalendarService(session).delete_calendar(operator_user, calendar.calendar_id)

        assert exc_info.value.details == {"incidences": 1, "payrolls": 0}

    async def test_missing_calendar(self, session, operator_user):
        with pytest.raises(NotFoundError):
            await CalendarService(session).delete_calendar(operator_user, uuid4())


class TestPeriods:
    async def test_current_period(self, session, calendar):
        current = await CalendarService(session).get_current_period(
            calendar.calendar_id, today=date(2025, 5, 20)
        )

        assert current.number == 10

    async def test_finalized_hidden_by_default(self, session, operator_user, calendar, periods):
        service = CalendarService(session)
        await _advance(
            service, operator_user, periods[0], "EN_REVISION", "CERRADO", "FINALIZADO"
        )

        assert len(await service.list_periods(calendar.calendar_id)) == 23
        assert len(await service.list_periods(calendar.calendar_id, include_finalized=True)) == 24


class TestChangePeriodStatus:
    async def test_close_capture_stamps_and_notifies(self, session, client_user, periods):
        period = await CalendarService(session).change_period_status(
            client_user, periods[0].period_id, "en_revision"
        )
        await session.flush()

        assert period.status == "EN_REVISION"
        assert period.closed_at is not None

        notifications = list(await session.scalars(select(Notification)))
        assert [n.target_role for n in notifications] == ["OPERATOR"]
        assert "Comercializadora del Norte" in notifications[0].message
        assert notifications[0].payload["newStatus"] == "EN_REVISION"

    async def test_rejection_needs_reason(self, session, operator_user, periods):
        service = CalendarService(session)
        await service.change_period_status(operator_user, periods[0].period_id, "EN_REVISION")

        with pytest.raises(ValidationError) as exc_info:
            await service.change_period_status(operator_user, periods[0].period_id, "RECHAZADA", "  ")
        assert exc_info.value.message == "El motivo de rechazo es requerido"

        period = await service.change_period_status(
            operator_user, periods[0].period_id, "RECHAZADA", "Faltan incapacidades"
        )
        assert period.rejection_reason == "Faltan incapacidades"

        reopened = await service.change_period_status(
            operator_user, periods[0].period_id, "EN_INCIDENCIA"
        )
        assert reopened.closed_at is None

    async def test_invalid_jump(self, session, operator_user, periods):
        with pytest.raises(InvalidTransitionError):
            await CalendarService(session).change_period_status(
                operator_user, periods[0].period_id, "FINALIZADO"
            )

    async def test_unknown_status(self, session, operator_user, periods):
        with pytest.raises(ValidationError) as exc_info:
            await CalendarService(session).change_period_status(
                operator_user, periods[0].period_id, "ARCHIVADO"
            )

        assert exc_info.value.message == "Estado de período inválido: ARCHIVADO"

    async def test_full_review_cycle_and_reopen(self, session, operator_user, periods):
        service = CalendarService(session)
        period = await _advance(
            service,
            operator_user,
            periods[1],
            "EN_REVISION",
            "CERRADO",
            "EN_REVISION_PRENOMINA",
            "PRENOMINA_APROBADA",
            "EN_REVISION_LAYOUTS",
            "LAYOUTS_APROBADOS",
            "FINALIZADO",
        )
        assert period.status == "FINALIZADO"

        reopened = await service.change_period_status(operator_user, period.period_id, "EN_INCIDENCIA")
        assert reopened.status == "EN_INCIDENCIA"

    async def test_employee_cannot_change_status(self, session, employee_user, periods):
        with pytest.raises(AuthorizationError):
            await CalendarService(session).change_period_status(
                employee_user, periods[0].period_id, "EN_REVISION"
            )
