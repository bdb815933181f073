"""Payroll approval service - drafting payroll runs and client authorization."""

from __future__ import annotations

import logging
from decimal import Decimal
from uuid import UUID

from sqlalchemy import and_, or_, select
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy.orm import selectinload

from nomina_engine.calculators import calculate_item, working_days
from nomina_engine.calculators.payroll_calculator import DEFAULT_WORKING_DAYS
from nomina_engine.errors import NotFoundError, ValidationError
from nomina_engine.events import (
    EventEmitter,
    EventMetadata,
    PayrollAuthorized,
    PayrollRejected,
    PayrollSubmitted,
)
from nomina_engine.models import (
    Company,
    Employee,
    EmployeeStatus,
    Incidence,
    IncidenceStatus,
    Payroll,
    PayrollCalendar,
    PayrollCalendarPeriod,
    PayrollItem,
    PayrollStatus,
    User,
    utcnow,
)
from nomina_engine.services.authorization import Action, authorize
from nomina_engine.services.notification_service import build_emitter
from nomina_engine.services.state_machine import PayrollStateMachine

logger = logging.getLogger(__name__)


class PayrollApprovalService:
    """Service for the payroll authorization flow.

    Operations:
    - create_payroll: Operator drafts a payroll with one item per active employee
    - submit_for_authorization: DRAFT → PENDING_AUTHORIZATION
    - approve: PENDING_AUTHORIZATION → AUTHORIZED (client)
    - reject: PENDING_AUTHORIZATION → DRAFT with a reason (client)
    """

    def __init__(self, session: AsyncSession, emitter: EventEmitter | None = None):
        self.session = session
        self.emitter = emitter or build_emitter(session)

    async def get_payroll(self, payroll_id: UUID) -> Payroll:
        result = await self.session.execute(
            select(Payroll)
            .where(Payroll.payroll_id == payroll_id)
            .options(selectinload(Payroll.items))
        )
        payroll = result.scalar_one_or_none()
        if payroll is None:
            raise NotFoundError("Nómina no encontrada")
        return payroll

    # =========================================================================
    # Operator side
    # =========================================================================

    async def create_payroll(
        self,
        user: User,
        company_id: UUID,
        *,
        period_id: UUID | None = None,
        period_label: str | None = None,
    ) -> Payroll:
        """Draft a payroll for the company's active employees.

        With a calendar period, base pay covers the period's working days and
        approved incidences captured for that period are applied.
        """
        authorize(user, Action.PAYROLL_PREPARE, company_id)
        if await self.session.get(Company, company_id) is None:
            raise NotFoundError("Empresa no encontrada")

        period: PayrollCalendarPeriod | None = None
        calendar: PayrollCalendar | None = None
        days = DEFAULT_WORKING_DAYS
        if period_id is not None:
            period = await self.session.get(PayrollCalendarPeriod, period_id)
            calendar = await self.session.get(PayrollCalendar, period.calendar_id) if period else None
            if period is None or calendar is None or calendar.company_id != company_id:
                raise NotFoundError("Período no encontrado")
            days = working_days(period.start_date, period.end_date)
            period_label = period_label or f"{calendar.name} - Período {period.number}"
        if not period_label or not period_label.strip():
            raise ValidationError("El período de la nómina es requerido")

        employees = list(
            (
                await self.session.execute(
                    select(Employee)
                    .where(
                        Employee.company_id == company_id,
                        Employee.status == EmployeeStatus.ACTIVE.value,
                    )
                    .order_by(Employee.employee_number)
                )
            ).scalars()
        )
        incidences_by_employee: dict[UUID, list[Incidence]] = {}
        if period is not None:
            approved = await self.session.execute(
                select(Incidence).where(
                    Incidence.company_id == company_id,
                    Incidence.period_id == period.period_id,
                    Incidence.status == IncidenceStatus.APPROVED.value,
                )
            )
            for incidence in approved.scalars():
                incidences_by_employee.setdefault(incidence.employee_id, []).append(incidence)

        payroll = Payroll(
            company_id=company_id,
            calendar_id=calendar.calendar_id if calendar else None,
            period_id=period.period_id if period else None,
            period=period_label.strip(),
            status=PayrollStatus.DRAFT.value,
            created_by_user_id=user.user_id,
        )
        total_gross = Decimal("0")
        total_net = Decimal("0")
        for employee in employees:
            calc = calculate_item(
                employee.employee_id,
                employee.salary,
                days,
                incidences_by_employee.get(employee.employee_id, []),
            )
            payroll.items.append(
                PayrollItem(
                    employee_id=employee.employee_id,
                    gross=calc.perceptions,
                    deductions=calc.deductions,
                    net=calc.net,
                )
            )
            total_gross += calc.perceptions
            total_net += calc.net
        payroll.total_gross = total_gross
        payroll.total_net = total_net

        self.session.add(payroll)
        await self.session.flush()
        logger.info(
            "Payroll %s drafted for company %s (%s): %d items, net %s",
            payroll.payroll_id,
            company_id,
            payroll.period,
            len(employees),
            total_net,
        )
        return payroll

    async def submit_for_authorization(self, user: User, payroll_id: UUID) -> Payroll:
        """Send a draft payroll to the client."""
        payroll = await self.get_payroll(payroll_id)
        authorize(user, Action.PAYROLL_PREPARE, payroll.company_id)
        PayrollStateMachine.validate_transition(payroll.status, PayrollStatus.PENDING_AUTHORIZATION)

        payroll.status = PayrollStatus.PENDING_AUTHORIZATION.value
        payroll.rejection_reason = None
        await self.session.flush()
        logger.info("Payroll %s submitted for authorization by %s", payroll_id, user.user_id)

        await self.emitter.emit(
            PayrollSubmitted(
                metadata=self._metadata(user, payroll.company_id),
                payroll_id=payroll.payroll_id,
                period=payroll.period,
                total_net=payroll.total_net,
            )
        )
        return payroll

    # =========================================================================
    # Client side
    # =========================================================================

    async def approve(self, user: User, payroll_id: UUID) -> Payroll:
        """Authorize a payroll awaiting the client's decision."""
        payroll = await self.get_payroll(payroll_id)
        authorize(user, Action.PAYROLL_REVIEW, payroll.company_id)
        PayrollStateMachine.validate_transition(payroll.status, PayrollStatus.AUTHORIZED)

        payroll.status = PayrollStatus.AUTHORIZED.value
        payroll.authorized_by_user_id = user.user_id
        payroll.authorized_at = utcnow()
        await self.session.flush()
        logger.info("Payroll %s authorized by %s", payroll_id, user.user_id)

        await self.emitter.emit(
            PayrollAuthorized(
                metadata=self._metadata(user, payroll.company_id),
                payroll_id=payroll.payroll_id,
                period=payroll.period,
                approved_by_name=user.name,
            )
        )
        return payroll

    async def reject(self, user: User, payroll_id: UUID, reason: str | None) -> Payroll:
        """Return a payroll to draft with the client's reason."""
        reason = (reason or "").strip()
        if not reason:
            raise ValidationError("El motivo del rechazo es requerido")

        payroll = await self.get_payroll(payroll_id)
        authorize(user, Action.PAYROLL_REVIEW, payroll.company_id)
        PayrollStateMachine.validate_transition(payroll.status, PayrollStatus.DRAFT)

        payroll.status = PayrollStatus.DRAFT.value
        payroll.rejection_reason = reason
        await self.session.flush()
        logger.info("Payroll %s rejected by %s: %s", payroll_id, user.user_id, reason)

        await self.emitter.emit(
            PayrollRejected(
                metadata=self._metadata(user, payroll.company_id),
                payroll_id=payroll.payroll_id,
                period=payroll.period,
                rejected_by_name=user.name,
                reason=reason,
            )
        )
        return payroll

    async def list_pending(self, user: User, company_id: UUID) -> list[Payroll]:
        authorize(user, Action.PAYROLL_REVIEW, company_id)
        result = await self.session.execute(
            select(Payroll)
            .where(
                Payroll.company_id == company_id,
                Payroll.status == PayrollStatus.PENDING_AUTHORIZATION.value,
            )
            .options(selectinload(Payroll.items))
            .order_by(Payroll.created_at.desc())
        )
        return list(result.scalars())

    async def approval_history(self, user: User, company_id: UUID) -> list[Payroll]:
        """Payrolls the client has authorized or sent back."""
        authorize(user, Action.PAYROLL_REVIEW, company_id)
        result = await self.session.execute(
            select(Payroll)
            .where(
                Payroll.company_id == company_id,
                or_(
                    Payroll.status == PayrollStatus.AUTHORIZED.value,
                    and_(
                        Payroll.status == PayrollStatus.DRAFT.value,
                        Payroll.rejection_reason.is_not(None),
                    ),
                ),
            )
            .options(selectinload(Payroll.items))
            .order_by(Payroll.updated_at.desc())
        )
        return list(result.scalars())

    @staticmethod
    def _metadata(user: User, company_id: UUID) -> EventMetadata:
        return EventMetadata.create(
            company_id=company_id,
            actor_id=user.user_id,
            actor_role=user.role,
            source_service="payroll_approval_service",
        )
