"""Incidence service - capture, review and listing of incidences."""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from datetime import date, datetime
from decimal import Decimal, InvalidOperation
from typing import Any, Mapping, Sequence
from uuid import UUID

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy.orm import selectinload

from nomina_engine.errors import NotFoundError, ValidationError
from nomina_engine.events import (
    EventEmitter,
    EventMetadata,
    IncidenceApproved,
    IncidenceRejected,
    IncidencesSubmitted,
)
from nomina_engine.models import (
    Department,
    Employee,
    Incidence,
    IncidenceStatus,
    IncidenceType,
    PayrollCalendar,
    PayrollCalendarPeriod,
    User,
    UserRole,
    utcnow,
)
from nomina_engine.services.authorization import Action, authorize
from nomina_engine.services.bulk_validation import parse_employee_number
from nomina_engine.services.notification_service import build_emitter
from nomina_engine.services.state_machine import IncidenceStateMachine, PeriodStateMachine

logger = logging.getLogger(__name__)

# Legacy spreadsheet type names
TYPE_ALIASES: dict[str, IncidenceType] = {
    "INCAPACIDADES": IncidenceType.PERMISOS,
    "INCENTIVOS": IncidenceType.BONOS,
    "PRIMA_DOMINICAL": IncidenceType.BONOS,
    "OTROS": IncidenceType.BONOS,
    "BONO": IncidenceType.BONOS,
    "T.EXTRA": IncidenceType.TIEMPO_EXTRA,
}


def normalize_incidence_type(value: str | None) -> IncidenceType:
    """Map a submitted type name (including legacy aliases) to IncidenceType."""
    if not value:
        return IncidenceType.BONOS
    key = str(value).strip().upper()
    if key in TYPE_ALIASES:
        logger.debug("Incidence type %s mapped to %s", key, TYPE_ALIASES[key].value)
        return TYPE_ALIASES[key]
    try:
        return IncidenceType(key)
    except ValueError:
        raise ValidationError(f"Tipo de incidencia inválido: {value}") from None


def parse_incidence_date(value: Any, today: date | None = None) -> date:
    """Parse DD/MM/YYYY or ISO dates; anything unparseable becomes today."""
    today = today or date.today()
    if isinstance(value, datetime):
        return value.date()
    if isinstance(value, date):
        return value
    if not value:
        return today
    text = str(value).strip()
    try:
        if "/" in text:
            day, month, year = (int(part) for part in text.split("/"))
            return date(year, month, day)
        return datetime.fromisoformat(text.replace("Z", "+00:00")).date()
    except ValueError:
        logger.warning("Invalid incidence date %r, using %s", value, today)
        return today


def _decimal(value: Any, default: Decimal) -> Decimal:
    if value is None or value == "":
        return default
    try:
        return Decimal(str(value))
    except InvalidOperation:
        return default


@dataclass
class BulkIncidenceResult:
    """Outcome of a bulk submission."""

    created: list[Incidence] = field(default_factory=list)
    total: int = 0
    not_found: list[dict[str, Any]] = field(default_factory=list)

    @property
    def skipped(self) -> int:
        return self.total - len(self.created)

    def to_dict(self) -> dict[str, Any]:
        data: dict[str, Any] = {
            "created": len(self.created),
            "total": self.total,
            "skipped": self.skipped,
            "employeesNotFound": len(self.not_found),
        }
        if self.not_found:
            data["notFoundDetails"] = self.not_found
        return data


class _EmployeeMatcher:
    """Match rows to employees by number first, then by partial name."""

    def __init__(self, employees: Sequence[Employee]):
        self._by_number = {e.employee_number: e for e in employees}
        self._ordered = sorted(employees, key=lambda e: e.employee_number)

    def match(self, row: Mapping[str, Any]) -> Employee | None:
        number = parse_employee_number(row.get("employeeId") or row.get("employeeNumber"))
        if number is not None and number in self._by_number:
            return self._by_number[number]

        name = str(row.get("employeeName") or "").strip().lower()
        if name:
            for employee in self._ordered:
                if name in employee.first_name.lower() or name in employee.full_name.lower():
                    return employee
        return None


class IncidenceService:
    """Service for the incidence lifecycle.

    Operations:
    - bulk_create: Match rows to employees and insert them in one flush
    - approve / reject: Client review of pending incidences
    - list_incidences: Role-filtered listing
    - update_incidence / delete_incidence: Maintenance of captured rows
    """

    def __init__(self, session: AsyncSession, emitter: EventEmitter | None = None):
        self.session = session
        self.emitter = emitter or build_emitter(session)

    async def get_incidence(self, incidence_id: UUID) -> Incidence:
        result = await self.session.execute(
            select(Incidence)
            .where(Incidence.incidence_id == incidence_id)
            .options(selectinload(Incidence.employee))
        )
        incidence = result.scalar_one_or_none()
        if incidence is None:
            raise NotFoundError("Incidencia no encontrada")
        return incidence

    # =========================================================================
    # Capture
    # =========================================================================

    async def bulk_create(
        self,
        user: User,
        company_id: UUID,
        rows: Sequence[Mapping[str, Any]],
    ) -> BulkIncidenceResult:
        """Create incidences from spreadsheet-like rows.

        Rows whose employee cannot be found are reported and skipped; every
        matched row is inserted in the same transaction. The initial status
        depends on the creator's role.
        """
        if not isinstance(rows, (list, tuple)):
            raise ValidationError("Debes proporcionar un array de incidencias")
        authorize(user, Action.INCIDENCE_CREATE, company_id)

        employees = await self.session.execute(
            select(Employee).where(Employee.company_id == company_id)
        )
        matcher = _EmployeeMatcher(list(employees.scalars()))
        status = IncidenceStateMachine.initial_status_for(user.role)
        periods: dict[str, PayrollCalendarPeriod] = {}
        today = date.today()

        result = BulkIncidenceResult(total=len(rows))
        for index, row in enumerate(rows, start=1):
            employee = matcher.match(row)
            if employee is None:
                result.not_found.append(
                    {
                        "employeeId": row.get("employeeId") or "N/A",
                        "employeeName": row.get("employeeName") or "Sin nombre",
                        "incidenceType": row.get("incidenceType"),
                        "amount": row.get("amount"),
                        "quantity": row.get("quantity"),
                    }
                )
                continue

            try:
                incidence_type = normalize_incidence_type(row.get("incidenceType"))
            except ValidationError as e:
                raise ValidationError(f"Fila {index}: {e.message}") from None

            period = await self._resolve_period(row.get("periodId"), company_id, periods)
            quantity = _decimal(row.get("quantity"), Decimal("1"))
            description = row.get("comments") or row.get("description") or (
                f"{row.get('incidenceType') or 'Incidencia'} - Cantidad: "
                f"{row.get('quantity') or row.get('amount')}"
            )
            incidence = Incidence(
                company_id=company_id,
                employee_id=employee.employee_id,
                calendar_id=period.calendar_id if period else _uuid_or_none(row.get("payrollCalendarId")),
                period_id=period.period_id if period else None,
                incidence_type=incidence_type.value,
                quantity=quantity,
                amount=_decimal(row.get("amount"), Decimal("0")),
                incidence_date=parse_incidence_date(row.get("date"), today),
                description=str(description),
                status=status.value,
                created_by_user_id=user.user_id,
                created_by_role=user.role,
            )
            self.session.add(incidence)
            result.created.append(incidence)

        await self.session.flush()
        logger.info(
            "Bulk incidences for company %s by %s (%s): %d created, %d not found",
            company_id,
            user.user_id,
            user.role,
            len(result.created),
            len(result.not_found),
        )

        if user.role == UserRole.DEPARTMENT_HEAD.value and result.created:
            await self.emitter.emit(
                IncidencesSubmitted(
                    metadata=self._metadata(user, company_id),
                    submitted_by_user_id=user.user_id,
                    submitted_by_name=user.name,
                    department_name=await self._department_name(user),
                    incidence_ids=tuple(i.incidence_id for i in result.created),
                )
            )
        return result

    # =========================================================================
    # Review
    # =========================================================================

    async def approve(self, user: User, incidence_id: UUID) -> Incidence:
        """Approve a pending incidence (client of the owning company only)."""
        incidence = await self.get_incidence(incidence_id)
        authorize(user, Action.INCIDENCE_REVIEW, incidence.company_id)
        IncidenceStateMachine.validate_transition(incidence.status, IncidenceStatus.APPROVED)

        self._mark_reviewed(incidence, user, IncidenceStatus.APPROVED)
        await self.session.flush()
        logger.info("Incidence %s approved by %s", incidence_id, user.user_id)

        await self.emitter.emit(
            IncidenceApproved(
                metadata=self._metadata(user, incidence.company_id),
                incidence_id=incidence.incidence_id,
                incidence_type=incidence.incidence_type,
                employee_number=incidence.employee.employee_number,
                employee_name=incidence.employee.first_name,
                created_by_user_id=incidence.created_by_user_id,
                created_by_role=incidence.created_by_role,
            )
        )
        return incidence

    async def reject(self, user: User, incidence_id: UUID, reason: str | None) -> Incidence:
        """Reject a pending incidence, recording the reason in its description."""
        reason = (reason or "").strip()
        if not reason:
            raise ValidationError("El motivo del rechazo es requerido")

        incidence = await self.get_incidence(incidence_id)
        authorize(user, Action.INCIDENCE_REVIEW, incidence.company_id)
        IncidenceStateMachine.validate_transition(incidence.status, IncidenceStatus.REJECTED)

        self._mark_reviewed(incidence, user, IncidenceStatus.REJECTED)
        incidence.description = (
            f"{incidence.description} | RECHAZADA: {reason}"
            if incidence.description
            else f"RECHAZADA: {reason}"
        )
        await self.session.flush()
        logger.info("Incidence %s rejected by %s", incidence_id, user.user_id)

        await self.emitter.emit(
            IncidenceRejected(
                metadata=self._metadata(user, incidence.company_id),
                incidence_id=incidence.incidence_id,
                incidence_type=incidence.incidence_type,
                employee_number=incidence.employee.employee_number,
                employee_name=incidence.employee.first_name,
                created_by_user_id=incidence.created_by_user_id,
                created_by_role=incidence.created_by_role,
                reason=reason,
            )
        )
        return incidence

    # =========================================================================
    # Listing
    # =========================================================================

    async def list_incidences(
        self,
        user: User,
        company_id: UUID,
        *,
        calendar_id: UUID | None = None,
        period_id: UUID | None = None,
        status: str | None = None,
    ) -> list[Incidence]:
        """List a company's incidences as the user is allowed to see them.

        Operators only see approved incidences, the payroll-ready view.
        """
        authorize(user, Action.INCIDENCE_READ, company_id)
        stmt = self._company_query(company_id)

        if user.role == UserRole.OPERATOR.value:
            if status and status.upper() != IncidenceStatus.APPROVED.value:
                return []
            stmt = stmt.where(Incidence.status == IncidenceStatus.APPROVED.value)
        elif status:
            stmt = stmt.where(Incidence.status == status.upper())
        if calendar_id:
            stmt = stmt.where(Incidence.calendar_id == calendar_id)
        if period_id:
            stmt = stmt.where(Incidence.period_id == period_id)

        result = await self.session.execute(stmt.order_by(Incidence.created_at.desc()))
        return list(result.scalars())

    async def list_pending(self, user: User, company_id: UUID) -> list[Incidence]:
        authorize(user, Action.INCIDENCE_REVIEW, company_id)
        result = await self.session.execute(
            self._company_query(company_id)
            .where(Incidence.status == IncidenceStatus.PENDING.value)
            .order_by(Incidence.created_at.desc())
        )
        return list(result.scalars())

    async def approval_history(self, user: User, company_id: UUID) -> list[Incidence]:
        """Reviewed incidences, most recently changed first."""
        authorize(user, Action.INCIDENCE_REVIEW, company_id)
        result = await self.session.execute(
            self._company_query(company_id)
            .where(
                Incidence.status.in_(
                    [IncidenceStatus.APPROVED.value, IncidenceStatus.REJECTED.value]
                )
            )
            .order_by(Incidence.updated_at.desc())
        )
        return list(result.scalars())

    # =========================================================================
    # Maintenance
    # =========================================================================

    async def update_incidence(
        self,
        user: User,
        incidence_id: UUID,
        changes: Mapping[str, Any],
    ) -> Incidence:
        """Edit a pending incidence."""
        incidence = await self.get_incidence(incidence_id)
        authorize(user, Action.INCIDENCE_MODIFY, incidence.company_id)
        if not IncidenceStateMachine.can_modify(incidence.status):
            raise ValidationError(
                f"Solo se pueden modificar incidencias pendientes (estado actual: {incidence.status})"
            )

        if changes.get("incidenceType") is not None:
            incidence.incidence_type = normalize_incidence_type(changes["incidenceType"]).value
        if changes.get("quantity") is not None:
            incidence.quantity = _decimal(changes["quantity"], incidence.quantity)
        if changes.get("amount") is not None:
            incidence.amount = _decimal(changes["amount"], incidence.amount or Decimal("0"))
        if changes.get("date") is not None:
            incidence.incidence_date = parse_incidence_date(changes["date"])
        if changes.get("description") is not None:
            incidence.description = str(changes["description"])

        await self.session.flush()
        logger.info("Incidence %s updated by %s", incidence_id, user.user_id)
        return incidence

    async def delete_incidence(self, user: User, incidence_id: UUID) -> None:
        incidence = await self.get_incidence(incidence_id)
        authorize(user, Action.INCIDENCE_MODIFY, incidence.company_id)
        await self.session.delete(incidence)
        await self.session.flush()
        logger.info("Incidence %s deleted by %s", incidence_id, user.user_id)

    # =========================================================================
    # Helpers
    # =========================================================================

    @staticmethod
    def _company_query(company_id: UUID):
        return (
            select(Incidence)
            .where(Incidence.company_id == company_id)
            .options(selectinload(Incidence.employee))
        )

    @staticmethod
    def _mark_reviewed(incidence: Incidence, user: User, status: IncidenceStatus) -> None:
        incidence.status = status.value
        incidence.reviewed_by_user_id = user.user_id
        incidence.reviewed_at = utcnow()

    @staticmethod
    def _metadata(user: User, company_id: UUID) -> EventMetadata:
        return EventMetadata.create(
            company_id=company_id,
            actor_id=user.user_id,
            actor_role=user.role,
            source_service="incidence_service",
        )

    async def _resolve_period(
        self,
        raw_period_id: Any,
        company_id: UUID,
        cache: dict[str, PayrollCalendarPeriod],
    ) -> PayrollCalendarPeriod | None:
        """Load the row's period and check it belongs to the company."""
        if not raw_period_id:
            return None
        key = str(raw_period_id)
        if key in cache:
            return cache[key]

        period_id = _uuid_or_none(raw_period_id)
        period = await self.session.get(PayrollCalendarPeriod, period_id) if period_id else None
        calendar = (
            await self.session.get(PayrollCalendar, period.calendar_id) if period else None
        )
        if period is None or calendar is None or calendar.company_id != company_id:
            raise ValidationError(f"Período no encontrado para la empresa: {raw_period_id}")
        if not PeriodStateMachine.accepts_incidences(period.status):
            raise ValidationError(
                f"El período {period.number} no acepta incidencias (estado: {period.status})"
            )
        cache[key] = period
        return period

    async def _department_name(self, user: User) -> str | None:
        if user.department_id is None:
            return None
        department = await self.session.get(Department, user.department_id)
        return department.name if department else None


def _uuid_or_none(value: Any) -> UUID | None:
    if not value:
        return None
    if isinstance(value, UUID):
        return value
    try:
        return UUID(str(value))
    except ValueError:
        raise ValidationError(f"Identificador inválido: {value}") from None
