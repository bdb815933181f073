"""Payroll calendar service - calendars, their periods and period status."""

from __future__ import annotations

import logging
from datetime import date
from uuid import UUID

from sqlalchemy import delete, func, select
from sqlalchemy.ext.asyncio import AsyncSession

from nomina_engine.calculators import generate_periods, parse_frequency
from nomina_engine.errors import DuplicateError, NotFoundError, ValidationError
from nomina_engine.events import EventEmitter, EventMetadata, PeriodStatusChanged
from nomina_engine.models import (
    Company,
    Incidence,
    Payroll,
    PayrollCalendar,
    PayrollCalendarPeriod,
    PeriodStatus,
    User,
    utcnow,
)
from nomina_engine.services.authorization import Action, authorize
from nomina_engine.services.notification_service import build_emitter
from nomina_engine.services.state_machine import PeriodStateMachine

logger = logging.getLogger(__name__)

_REGENERATING_FIELDS = ("pay_frequency", "start_date", "period_number")


class CalendarService:
    """Service for payroll calendars.

    Operations:
    - create_calendar: Persist a calendar and one year of generated periods
    - update_calendar: Edit settings, regenerating periods while still untouched
    - delete_calendar: Remove an unreferenced calendar with its periods
    - change_period_status: Move a period through its review workflow
    """

    def __init__(self, session: AsyncSession, emitter: EventEmitter | None = None):
        self.session = session
        self.emitter = emitter or build_emitter(session)

    # =========================================================================
    # Calendars
    # =========================================================================

    async def create_calendar(
        self,
        user: User,
        *,
        company_id: UUID,
        name: str,
        pay_frequency: str,
        start_date: date,
        period_number: int = 1,
        days_before_close: int = 0,
        pay_natural_days: bool = False,
        truncate_first: bool = False,
    ) -> tuple[PayrollCalendar, list[PayrollCalendarPeriod]]:
        """Create a calendar and eagerly generate its periods.

        Returns:
            The calendar and its periods ordered by number
        """
        name = (name or "").strip()
        if not name:
            raise ValidationError("El nombre del calendario es requerido")
        if days_before_close < 0:
            raise ValidationError("Los días antes del cierre no pueden ser negativos")
        if period_number < 1:
            raise ValidationError("El número de periodo inicial debe ser mayor o igual a 1")
        frequency = parse_frequency(pay_frequency)

        authorize(user, Action.CALENDAR_MANAGE, company_id)
        if await self.session.get(Company, company_id) is None:
            raise NotFoundError("Empresa no encontrada")
        await self._ensure_unique_name(company_id, name)

        calendar = PayrollCalendar(
            company_id=company_id,
            name=name,
            pay_frequency=frequency.value,
            start_date=start_date,
            period_number=period_number,
            days_before_close=days_before_close,
            pay_natural_days=pay_natural_days,
        )
        self.session.add(calendar)
        await self.session.flush()

        periods = self._build_periods(calendar, truncate_first)
        await self.session.flush()

        logger.info(
            "Calendar %s created for company %s: %s, %d periods",
            calendar.calendar_id,
            company_id,
            frequency.value,
            len(periods),
        )
        return calendar, periods

    async def get_calendar(self, calendar_id: UUID) -> PayrollCalendar:
        calendar = await self.session.get(PayrollCalendar, calendar_id)
        if calendar is None:
            raise NotFoundError("Calendario no encontrado")
        return calendar

    async def get_calendar_for(
        self, user: User, calendar_id: UUID, action: Action = Action.CALENDAR_READ
    ) -> PayrollCalendar:
        """Load a calendar and check the user may act on its company."""
        calendar = await self.get_calendar(calendar_id)
        authorize(user, action, calendar.company_id)
        return calendar

    async def list_calendars(self, user: User, company_id: UUID) -> list[PayrollCalendar]:
        authorize(user, Action.CALENDAR_READ, company_id)
        result = await self.session.execute(
            select(PayrollCalendar)
            .where(PayrollCalendar.company_id == company_id)
            .order_by(PayrollCalendar.name)
        )
        return list(result.scalars())

    async def update_calendar(
        self,
        user: User,
        calendar_id: UUID,
        **changes: object,
    ) -> PayrollCalendar:
        """Update calendar settings.

        Frequency, start date and starting period number rebuild the period
        list, which is only allowed while every period is still capturing
        incidences and none is referenced.
        """
        calendar = await self.get_calendar_for(user, calendar_id, Action.CALENDAR_MANAGE)
        changes = {k: v for k, v in changes.items() if v is not None}

        if "name" in changes:
            name = str(changes["name"]).strip()
            if not name:
                raise ValidationError("El nombre del calendario es requerido")
            if name != calendar.name:
                await self._ensure_unique_name(calendar.company_id, name)
            calendar.name = name
        if "days_before_close" in changes:
            days = int(changes["days_before_close"])  # type: ignore[call-overload]
            if days < 0:
                raise ValidationError("Los días antes del cierre no pueden ser negativos")
            calendar.days_before_close = days
        if "pay_natural_days" in changes:
            calendar.pay_natural_days = bool(changes["pay_natural_days"])

        regenerate = False
        if "pay_frequency" in changes:
            frequency = parse_frequency(str(changes["pay_frequency"])).value
            regenerate |= frequency != calendar.pay_frequency
            calendar.pay_frequency = frequency
        if "start_date" in changes and changes["start_date"] != calendar.start_date:
            regenerate = True
            calendar.start_date = changes["start_date"]  # type: ignore[assignment]
        if "period_number" in changes and changes["period_number"] != calendar.period_number:
            number = int(changes["period_number"])  # type: ignore[call-overload]
            if number < 1:
                raise ValidationError("El número de periodo inicial debe ser mayor o igual a 1")
            regenerate = True
            calendar.period_number = number

        if regenerate:
            await self._ensure_regenerable(calendar)
            await self.session.execute(
                delete(PayrollCalendarPeriod).where(
                    PayrollCalendarPeriod.calendar_id == calendar.calendar_id
                )
            )
            periods = self._build_periods(calendar, truncate_first=False)
            logger.info(
                "Calendar %s periods regenerated (%d periods)",
                calendar.calendar_id,
                len(periods),
            )

        await self.session.flush()
        return calendar

    async def delete_calendar(self, user: User, calendar_id: UUID) -> None:
        """Delete a calendar and its periods unless incidences or payrolls use it."""
        calendar = await self.get_calendar_for(user, calendar_id, Action.CALENDAR_MANAGE)

        incidences = await self._count(Incidence, Incidence.calendar_id == calendar_id)
        payrolls = await self._count(Payroll, Payroll.calendar_id == calendar_id)
        if incidences or payrolls:
            raise ValidationError(
                "No se puede eliminar el calendario porque tiene incidencias o nóminas asociadas",
                details={"incidences": incidences, "payrolls": payrolls},
            )

        await self.session.execute(
            delete(PayrollCalendarPeriod).where(PayrollCalendarPeriod.calendar_id == calendar_id)
        )
        await self.session.execute(
            delete(PayrollCalendar).where(PayrollCalendar.calendar_id == calendar_id)
        )
        logger.info("Calendar %s deleted from company %s", calendar_id, calendar.company_id)

    # =========================================================================
    # Periods
    # =========================================================================

    async def list_periods(
        self,
        calendar_id: UUID,
        include_finalized: bool = False,
    ) -> list[PayrollCalendarPeriod]:
        """Periods ordered by number; finalized ones are hidden by default."""
        stmt = select(PayrollCalendarPeriod).where(
            PayrollCalendarPeriod.calendar_id == calendar_id
        )
        if not include_finalized:
            stmt = stmt.where(PayrollCalendarPeriod.status != PeriodStatus.FINALIZADO.value)
        result = await self.session.execute(stmt.order_by(PayrollCalendarPeriod.number))
        return list(result.scalars())

    async def get_current_period(
        self,
        calendar_id: UUID,
        today: date | None = None,
    ) -> PayrollCalendarPeriod | None:
        """Period whose date range contains ``today``."""
        today = today or date.today()
        result = await self.session.execute(
            select(PayrollCalendarPeriod).where(
                PayrollCalendarPeriod.calendar_id == calendar_id,
                PayrollCalendarPeriod.start_date <= today,
                PayrollCalendarPeriod.end_date >= today,
            )
        )
        return result.scalars().first()

    async def change_period_status(
        self,
        user: User,
        period_id: UUID,
        status: str,
        reason: str | None = None,
    ) -> PayrollCalendarPeriod:
        """Move a period to ``status``.

        Raises:
            ValidationError: Unknown status or missing rejection reason
            NotFoundError: Period does not exist
            InvalidTransitionError: Move not in the transition table
        """
        try:
            to_status = PeriodStatus(str(status).strip().upper())
        except ValueError:
            raise ValidationError(f"Estado de período inválido: {status}") from None
        reason = (reason or "").strip() or None
        if PeriodStateMachine.requires_reason(to_status) and not reason:
            raise ValidationError("El motivo de rechazo es requerido")

        period = await self.session.get(PayrollCalendarPeriod, period_id)
        if period is None:
            raise NotFoundError("Período no encontrado")
        calendar = await self.get_calendar(period.calendar_id)
        authorize(user, Action.PERIOD_CHANGE_STATUS, calendar.company_id)

        from_status = period.status
        PeriodStateMachine.validate_transition(from_status, to_status)

        if PeriodStateMachine.closes_capture(to_status):
            period.closed_at = utcnow()
        elif PeriodStateMachine.accepts_incidences(to_status):
            period.closed_at = None
        if PeriodStateMachine.requires_reason(to_status):
            period.rejection_reason = reason
        if PeriodStateMachine.is_reopen(from_status, to_status):
            logger.warning("Finalized period %s reopened by %s", period.period_id, user.user_id)
        period.status = to_status.value
        await self.session.flush()

        logger.info(
            "Period %s (calendar %s #%d) %s -> %s",
            period.period_id,
            calendar.calendar_id,
            period.number,
            from_status,
            to_status.value,
        )
        await self.emitter.emit(
            PeriodStatusChanged(
                metadata=EventMetadata.create(
                    company_id=calendar.company_id,
                    actor_id=user.user_id,
                    actor_role=user.role,
                    source_service="calendar_service",
                ),
                period_id=period.period_id,
                calendar_id=calendar.calendar_id,
                number=period.number,
                from_status=from_status,
                to_status=to_status.value,
                reason=reason,
            )
        )
        return period

    # =========================================================================
    # Helpers
    # =========================================================================

    def _build_periods(
        self, calendar: PayrollCalendar, truncate_first: bool
    ) -> list[PayrollCalendarPeriod]:
        generated = generate_periods(
            calendar.calendar_id,
            calendar.start_date,
            calendar.pay_frequency,
            calendar.period_number,
            truncate_first=truncate_first,
        )
        periods = [PayrollCalendarPeriod(**p.to_dict()) for p in generated]
        self.session.add_all(periods)
        return periods

    async def _ensure_unique_name(self, company_id: UUID, name: str) -> None:
        exists = await self._count(
            PayrollCalendar,
            PayrollCalendar.company_id == company_id,
            PayrollCalendar.name == name,
        )
        if exists:
            raise DuplicateError("Ya existe un calendario con ese nombre en la empresa")

    async def _ensure_regenerable(self, calendar: PayrollCalendar) -> None:
        moved = await self._count(
            PayrollCalendarPeriod,
            PayrollCalendarPeriod.calendar_id == calendar.calendar_id,
            PayrollCalendarPeriod.status != PeriodStatus.EN_INCIDENCIA.value,
        )
        referenced = await self._count(Incidence, Incidence.calendar_id == calendar.calendar_id)
        if moved or referenced:
            raise ValidationError(
                "No se puede cambiar la frecuencia o fecha de inicio: "
                "el calendario ya tiene períodos en proceso o incidencias registradas"
            )

    async def _count(self, model: type, *criteria: object) -> int:
        result = await self.session.execute(
            select(func.count()).select_from(model).where(*criteria)  # type: ignore[arg-type]
        )
        return result.scalar_one()
