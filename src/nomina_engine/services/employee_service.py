"""Employee service - worker registration, bulk import and soft deletion."""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from typing import Any, Mapping, Sequence
from uuid import UUID

from sqlalchemy import select, update
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy.orm import selectinload

from nomina_engine.errors import NotFoundError, ValidationError
from nomina_engine.models import (
    Area,
    Company,
    ContractCondition,
    Department,
    Employee,
    EmployeeStatus,
    PayrollCalendar,
    Position,
    User,
)
from nomina_engine.services.authorization import Action, authorize
from nomina_engine.services.bulk_validation import (
    ValidationReport,
    WorkerValidationService,
    employee_number_of,
    field_value,
    parse_employee_number,
    parse_positive,
    parse_row_date,
)

logger = logging.getLogger(__name__)


@dataclass
class BulkImportResult:
    """Outcome of a bulk employee import. Nothing is created when invalid."""

    report: ValidationReport
    created: list[Employee] = field(default_factory=list)

    def to_dict(self) -> dict[str, Any]:
        return {
            **self.report.to_dict(),
            "created": len(self.created),
            "employeeIds": [str(e.employee_id) for e in self.created],
        }


def _text(row: Mapping[str, Any], key: str, alternate: str | None = None) -> str | None:
    value = field_value(row, key, alternate)
    if value is None:
        return None
    text = str(value).strip()
    return text or None


def _upper(row: Mapping[str, Any], key: str, alternate: str | None = None) -> str | None:
    value = _text(row, key, alternate)
    return value.upper() if value else None


class _Catalog:
    """Company catalogs keyed by lower-cased name."""

    def __init__(
        self,
        positions: dict[str, UUID],
        departments: dict[str, UUID],
        areas: dict[str, UUID],
        calendars: dict[str, UUID],
    ):
        self.positions = positions
        self.departments = departments
        self.areas = areas
        self.calendars = calendars

    @staticmethod
    def lookup(table: dict[str, UUID], name: str | None) -> UUID | None:
        return table.get(name.lower()) if name else None


class EmployeeService:
    """Service for the worker registry.

    Operations:
    - create_employee: Validate and register a single worker
    - bulk_create_employees: All-or-nothing import of validated rows
    - delete_employee: Soft delete (TERMINATED) and deactivate linked users
    - list_employees: Company workers, optionally by status
    """

    def __init__(self, session: AsyncSession):
        self.session = session
        self.validator = WorkerValidationService(session)

    async def get_employee(self, employee_id: UUID) -> Employee:
        result = await self.session.execute(
            select(Employee)
            .where(Employee.employee_id == employee_id)
            .options(selectinload(Employee.contract))
        )
        employee = result.scalar_one_or_none()
        if employee is None:
            raise NotFoundError("Empleado no encontrado")
        return employee

    async def create_employee(
        self,
        user: User,
        company_id: UUID,
        data: Mapping[str, Any],
    ) -> Employee:
        """Register one worker; validation failures raise with the row errors."""
        result = await self.bulk_create_employees(user, company_id, [data])
        if not result.report.valid:
            first = result.report.errors[0]
            raise ValidationError(first["error"], details=result.report.errors)
        return result.created[0]

    async def bulk_create_employees(
        self,
        user: User,
        company_id: UUID,
        rows: Sequence[Mapping[str, Any]],
    ) -> BulkImportResult:
        """Validate the whole batch, then insert every row or none."""
        if not rows:
            raise ValidationError("No se proporcionaron empleados para validar")

        company = await self.session.get(Company, company_id)
        if company is None:
            raise NotFoundError("Empresa no encontrada")

        report = await self.validator.validate(user, company_id, rows)
        if not report.valid:
            logger.info(
                "Bulk import for company %s rejected: %d errors in %d rows",
                company_id,
                len(report.errors),
                len(rows),
            )
            return BulkImportResult(report=report)

        catalog = await self._load_catalog(company_id)
        created: list[Employee] = []
        for row in rows:
            employee = self._build_employee(company_id, row)
            employee.contract = self._build_contract(row, catalog)
            self.session.add(employee)
            created.append(employee)

        company.employees_count += len(created)
        await self.session.flush()

        logger.info(
            "Imported %d employees into company %s by %s",
            len(created),
            company_id,
            user.user_id,
        )
        return BulkImportResult(report=report, created=created)

    async def delete_employee(self, user: User, employee_id: UUID) -> Employee:
        """Terminate a worker. The record is kept for payroll history."""
        employee = await self.get_employee(employee_id)
        authorize(user, Action.EMPLOYEE_MANAGE, employee.company_id)
        if employee.status == EmployeeStatus.TERMINATED.value:
            raise ValidationError("El empleado ya fue dado de baja")

        employee.status = EmployeeStatus.TERMINATED.value
        company = await self.session.get(Company, employee.company_id)
        if company is not None:
            company.employees_count = max(0, company.employees_count - 1)

        await self.session.execute(
            update(User).where(User.employee_id == employee_id).values(is_active=False)
        )
        await self.session.flush()
        logger.info("Employee %s terminated by %s", employee_id, user.user_id)
        return employee

    async def list_employees(
        self,
        user: User,
        company_id: UUID,
        status: EmployeeStatus | str | None = None,
    ) -> list[Employee]:
        authorize(user, Action.EMPLOYEE_MANAGE, company_id)
        stmt = select(Employee).where(Employee.company_id == company_id)
        if status is not None:
            try:
                status = EmployeeStatus(status)
            except ValueError as exc:
                raise ValidationError(f"Estado de empleado inválido: {status}") from exc
            stmt = stmt.where(Employee.status == status.value)
        result = await self.session.execute(
            stmt.options(selectinload(Employee.contract)).order_by(Employee.employee_number)
        )
        return list(result.scalars())

    # =========================================================================
    # Row mapping
    # =========================================================================

    @staticmethod
    def _build_employee(company_id: UUID, row: Mapping[str, Any]) -> Employee:
        birth = row.get("fechaNacimiento")
        seniority = row.get("fechaAntiguedad")
        hire_date = parse_row_date(row["fechaIngreso"])
        return Employee(
            company_id=company_id,
            employee_number=parse_employee_number(employee_number_of(row)),
            first_name=_text(row, "nombres"),
            last_name=_text(row, "primerApellido", "apellidoPaterno"),
            second_last_name=_text(row, "segundoApellido", "apellidoMaterno"),
            rfc=_upper(row, "rfc"),
            curp=_upper(row, "curp"),
            nss="".join(ch for ch in str(row.get("nss") or "") if ch.isdigit()) or None,
            email=(_text(row, "email") or "").lower() or None,
            phone=_text(row, "telefono"),
            postal_code=_text(row, "codigoPostal"),
            gender=_upper(row, "genero"),
            marital_status=_upper(row, "estadocivil", "estadoCivil"),
            salary=parse_positive(row["salarioDiario"]),
            salary_type=_upper(row, "tipoSalario"),
            hire_date=hire_date,
            birth_date=parse_row_date(birth) if birth else None,
            seniority_date=parse_row_date(seniority) if seniority else hire_date,
            status=EmployeeStatus.ACTIVE.value,
        )

    @staticmethod
    def _build_contract(row: Mapping[str, Any], catalog: _Catalog) -> ContractCondition:
        return ContractCondition(
            position_id=catalog.lookup(catalog.positions, _text(row, "puesto")),
            department_id=catalog.lookup(catalog.departments, _text(row, "departamento")),
            area_id=catalog.lookup(catalog.areas, _text(row, "area")),
            calendar_id=catalog.lookup(catalog.calendars, _text(row, "calendario")),
            contract_type=_upper(row, "tipoContrato"),
            geographic_zone=_upper(row, "zonaGeografica") or "RESTO_PAIS",
            work_schedule=_text(row, "jornada"),
        )

    async def _load_catalog(self, company_id: UUID) -> _Catalog:
        async def names(id_col: Any, name_col: Any, model: Any, *criteria: Any) -> dict[str, UUID]:
            result = await self.session.execute(
                select(name_col, id_col).where(model.company_id == company_id, *criteria)
            )
            return {name.lower(): ident for name, ident in result.all()}

        return _Catalog(
            positions=await names(
                Position.position_id, Position.name, Position, Position.is_active.is_(True)
            ),
            departments=await names(Department.department_id, Department.name, Department),
            areas=await names(Area.area_id, Area.name, Area),
            calendars=await names(
                PayrollCalendar.calendar_id, PayrollCalendar.name, PayrollCalendar
            ),
        )
