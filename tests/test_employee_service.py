"""Tests for worker registration, import and termination."""

from decimal import Decimal
from uuid import uuid4

import pytest
from sqlalchemy import func, select

from nomina_engine.errors import AuthorizationError, NotFoundError, ValidationError
from nomina_engine.models import Company, Employee, User
from nomina_engine.services.employee_service import EmployeeService
from tests.factories import worker_row


async def _employee_count(session, company_id) -> int:
    result = await session.execute(
        select(func.count()).select_from(Employee).where(Employee.company_id == company_id)
    )
    return result.scalar_one()


class TestBulkCreate:
    async def test_imports_valid_batch(self, session, client_user, company, employees, position, calendar):
        rows = [
            worker_row(),
            worker_row(
                numeroEmpleado="11",
                nombres="Ana",
                rfc="ROHA910420CD3",
                curp="ROHA910420MJCDRN08",
                email="ana@cnorte.mx",
                fechaAntiguedad="2019-05-01",
                tipoContrato="tiempo_indeterminado",
                zonaGeografica="ZONA_FRONTERA_NORTE",
            ),
        ]

        result = await EmployeeService(session).bulk_create_employees(
            client_user, company.company_id, rows
        )

        assert result.report.valid is True
        assert len(result.created) == 2
        assert company.employees_count == 4
        assert await _employee_count(session, company.company_id) == 4

        luis, ana = result.created
        assert luis.employee_number == 10
        assert luis.nss == "12345678901"
        assert luis.salary == Decimal("450.00")
        assert luis.seniority_date == luis.hire_date
        assert luis.contract.position_id == position.position_id
        assert luis.contract.calendar_id == calendar.calendar_id
        assert luis.contract.geographic_zone == "RESTO_PAIS"

        assert ana.seniority_date.year == 2019
        assert ana.contract.contract_type == "TIEMPO_INDETERMINADO"
        assert ana.contract.geographic_zone == "ZONA_FRONTERA_NORTE"

        data = result.to_dict()
        assert data["created"] == 2
        assert data["employeeIds"] == [str(luis.employee_id), str(ana.employee_id)]

    async def test_any_error_imports_nothing(self, session, client_user, company, employees, position, calendar):
        """One bad row rejects the whole batch."""
        rows = [worker_row(), worker_row(numeroEmpleado="11", rfc="MALO")]

        result = await EmployeeService(session).bulk_create_employees(
            client_user, company.company_id, rows
        )

        assert result.report.valid is False
        assert result.created == []
        assert [e["row"] for e in result.report.errors] == [2]
        assert company.employees_count == 2
        assert await _employee_count(session, company.company_id) == 2

    async def test_duplicate_number_in_batch_imports_nothing(
        self, session, client_user, company, employees, position, calendar
    ):
        rows = [
            worker_row(numeroEmpleado="20"),
            worker_row(
                numeroEmpleado="020",
                nombres="Ana",
                rfc="ROHA910420CD3",
                curp="ROHA910420MJCDRN08",
                email="ana@cnorte.mx",
            ),
        ]

        result = await EmployeeService(session).bulk_create_employees(
            client_user, company.company_id, rows
        )

        assert result.report.valid is False
        assert result.created == []
        assert [(e["row"], e["field"]) for e in result.report.errors] == [
            (1, "numeroEmpleado"),
            (2, "numeroEmpleado"),
        ]
        assert company.employees_count == 2
        assert await _employee_count(session, company.company_id) == 2
        stored = await session.scalars(
            select(Employee.employee_number).where(Employee.company_id == company.company_id)
        )
        assert 20 not in set(stored)

    async def test_unknown_company(self, session, admin_user):
        with pytest.raises(NotFoundError):
            await EmployeeService(session).bulk_create_employees(admin_user, uuid4(), [worker_row()])

    async def test_department_head_cannot_import(self, session, department_head, company):
        with pytest.raises(AuthorizationError):
            await EmployeeService(session).bulk_create_employees(
                department_head, company.company_id, [worker_row()]
            )


class TestCreateEmployee:
    async def test_single_worker(self, session, operator_user, company, position, calendar):
        employee = await EmployeeService(session).create_employee(
            operator_user, company.company_id, worker_row()
        )

        assert employee.full_name == "Luis Rodríguez Hernández"
        assert employee.rfc == "ROHL900315AB1"

    async def test_invalid_worker_raises_with_details(self, session, operator_user, company, position, calendar):
        with pytest.raises(ValidationError) as exc_info:
            await EmployeeService(session).create_employee(
                operator_user, company.company_id, worker_row(email="no-es-correo")
            )

        assert exc_info.value.message == "Formato de correo electrónico inválido"
        assert exc_info.value.details[0]["field"] == "email"


class TestDeleteEmployee:
    async def test_soft_delete(self, session, client_user, company, employees):
        linked = User(
            email="juan@cnorte.mx",
            name="Juan Pérez",
            role="EMPLOYEE",
            company_id=company.company_id,
            employee_id=employees[0].employee_id,
        )
        session.add(linked)
        await session.commit()

        service = EmployeeService(session)
        employee = await service.delete_employee(client_user, employees[0].employee_id)

        assert employee.status == "TERMINATED"
        assert company.employees_count == 1
        # The record stays for payroll history
        assert await _employee_count(session, company.company_id) == 2

        refreshed = await session.get(User, linked.user_id, populate_existing=True)
        assert refreshed.is_active is False

        active = await service.list_employees(client_user, company.company_id, "ACTIVE")
        assert [e.employee_number for e in active] == [2]

    async def test_delete_twice(self, session, client_user, employees):
        service = EmployeeService(session)
        await service.delete_employee(client_user, employees[1].employee_id)

        with pytest.raises(ValidationError) as exc_info:
            await service.delete_employee(client_user, employees[1].employee_id)

        assert exc_info.value.message == "El empleado ya fue dado de baja"

    async def test_count_never_negative(self, session, client_user, company, employees):
        company.employees_count = 0
        await session.commit()

        await EmployeeService(session).delete_employee(client_user, employees[0].employee_id)

        refreshed = await session.get(Company, company.company_id)
        assert refreshed.employees_count == 0

    async def test_other_company_denied(self, session, other_client_user, employees):
        with pytest.raises(AuthorizationError):
            await EmployeeService(session).delete_employee(other_client_user, employees[0].employee_id)


class TestListEmployees:
    async def test_ordered_by_number(self, session, client_user, company, employees):
        listed = await EmployeeService(session).list_employees(client_user, company.company_id)

        assert [e.employee_number for e in listed] == [1, 2]

    async def test_invalid_status(self, session, client_user, company):
        with pytest.raises(ValidationError):
            await EmployeeService(session).list_employees(client_user, company.company_id, "FIRED")
