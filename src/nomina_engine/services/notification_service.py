"""Notification creation from domain events, and the notification inbox."""

from __future__ import annotations

import logging
from typing import Any
from uuid import UUID

from sqlalchemy import and_, func, or_, select, update
from sqlalchemy.ext.asyncio import AsyncSession

from nomina_engine.errors import NotFoundError
from nomina_engine.events import (
    EventEmitter,
    IncidenceApproved,
    IncidenceRejected,
    IncidencesSubmitted,
    PayrollAuthorized,
    PayrollRejected,
    PayrollSubmitted,
    PeriodStatusChanged,
)
from nomina_engine.models import (
    Company,
    Notification,
    NotificationPriority,
    PeriodStatus,
    User,
    UserRole,
    utcnow,
)

logger = logging.getLogger(__name__)

INBOX_LIMIT = 50

_PERIOD_STATUS_TEXT = {
    PeriodStatus.EN_REVISION.value: "cerrado para revisión",
    PeriodStatus.CERRADO.value: "aprobado y cerrado",
    PeriodStatus.RECHAZADA.value: "rechazado",
    PeriodStatus.EN_INCIDENCIA.value: "reabierto para incidencias",
    PeriodStatus.EN_REVISION_PRENOMINA.value: "enviado a revisión de prenómina",
    PeriodStatus.PRENOMINA_APROBADA.value: "aprobado en prenómina",
    PeriodStatus.PRENOMINA_RECHAZADA.value: "rechazado en prenómina",
    PeriodStatus.EN_REVISION_LAYOUTS.value: "enviado a revisión de layouts",
    PeriodStatus.LAYOUTS_APROBADOS.value: "aprobado en layouts",
    PeriodStatus.LAYOUTS_RECHAZADOS.value: "rechazado en layouts",
    PeriodStatus.FINALIZADO.value: "finalizado",
}


class NotificationDispatcher:
    """Turns workflow events into Notification rows.

    Rows are added to the caller's session inside the emitter's savepoint
    and committed with the request.
    Every handler is isolated by the emitter: a failure is logged and the
    workflow that emitted the event still succeeds.
    """

    def __init__(self, session: AsyncSession):
        self.session = session

    def register(self, emitter: EventEmitter) -> None:
        """Subscribe handlers to the emitter."""
        emitter.on(IncidencesSubmitted, self.on_incidences_submitted)
        emitter.on(IncidenceApproved, self.on_incidence_approved)
        emitter.on(IncidenceRejected, self.on_incidence_rejected)
        emitter.on(PayrollSubmitted, self.on_payroll_submitted)
        emitter.on(PayrollAuthorized, self.on_payroll_authorized)
        emitter.on(PayrollRejected, self.on_payroll_rejected)
        emitter.on(PeriodStatusChanged, self.on_period_status_changed)

    # =========================================================================
    # Incidences
    # =========================================================================

    async def on_incidences_submitted(self, event: IncidencesSubmitted) -> None:
        department = event.department_name or "tu departamento"
        self._add(
            company_id=event.company_id,
            target_role=UserRole.CLIENT,
            notification_type="INCIDENCES_PENDING",
            title="Incidencias pendientes de aprobación",
            message=(
                f"El jefe de {department} ha registrado {event.count} incidencias "
                "que requieren tu aprobación"
            ),
            priority=NotificationPriority.HIGH,
            payload={
                "submittedBy": str(event.submitted_by_user_id),
                "submittedByName": event.submitted_by_name,
                "count": event.count,
            },
        )

    async def on_incidence_approved(self, event: IncidenceApproved) -> None:
        # Only department heads hear back about approvals
        if event.created_by_role != UserRole.DEPARTMENT_HEAD.value or not event.created_by_user_id:
            return
        self._add(
            company_id=event.company_id,
            user_id=event.created_by_user_id,
            target_role=UserRole.DEPARTMENT_HEAD,
            notification_type="INCIDENCE_APPROVED",
            title="Incidencia Aprobada",
            message=(
                f"Tu incidencia del empleado {event.employee_number} - "
                f"{event.employee_name} ha sido aprobada"
            ),
            payload={"incidenceId": str(event.incidence_id), "type": event.incidence_type},
        )

    async def on_incidence_rejected(self, event: IncidenceRejected) -> None:
        if not event.created_by_user_id:
            return
        self._add(
            company_id=event.company_id,
            user_id=event.created_by_user_id,
            target_role=event.created_by_role or UserRole.DEPARTMENT_HEAD.value,
            notification_type="INCIDENCE_REJECTED",
            title="Incidencia Rechazada",
            message=(
                f"Tu incidencia del empleado {event.employee_number} - "
                f"{event.employee_name} ha sido rechazada. Motivo: {event.reason}"
            ),
            priority=NotificationPriority.HIGH,
            payload={
                "incidenceId": str(event.incidence_id),
                "type": event.incidence_type,
                "reason": event.reason,
            },
        )

    # =========================================================================
    # Payroll
    # =========================================================================

    async def on_payroll_submitted(self, event: PayrollSubmitted) -> None:
        self._add(
            company_id=event.company_id,
            target_role=UserRole.CLIENT,
            notification_type="PAYROLL_PENDING",
            title="Nómina pendiente de autorización",
            message=f"La nómina del período {event.period} está lista para tu autorización",
            priority=NotificationPriority.HIGH,
            payload={"payrollId": str(event.payroll_id), "totalNet": str(event.total_net)},
        )

    async def on_payroll_authorized(self, event: PayrollAuthorized) -> None:
        await self._broadcast_to_operators(
            company_id=event.company_id,
            notification_type="PAYROLL_APPROVED",
            priority=NotificationPriority.HIGH,
            title="Nómina Aprobada",
            message=(
                f"La nómina del período {event.period} ha sido aprobada por "
                f"{event.approved_by_name}"
            ),
            payload={"payrollId": str(event.payroll_id), "period": event.period},
        )

    async def on_payroll_rejected(self, event: PayrollRejected) -> None:
        await self._broadcast_to_operators(
            company_id=event.company_id,
            notification_type="PAYROLL_REJECTED",
            priority=NotificationPriority.HIGH,
            title="Nómina Rechazada",
            message=(
                f"La nómina del período {event.period} ha sido rechazada por "
                f"{event.rejected_by_name}. Motivo: {event.reason}"
            ),
            payload={
                "payrollId": str(event.payroll_id),
                "period": event.period,
                "reason": event.reason,
            },
        )

    # =========================================================================
    # Calendar periods
    # =========================================================================

    async def on_period_status_changed(self, event: PeriodStatusChanged) -> None:
        company = await self.session.get(Company, event.company_id)
        company_name = company.name if company else "la empresa"
        old, new, number = event.from_status, event.to_status, event.number

        notify_client = True
        if old == PeriodStatus.EN_INCIDENCIA.value and new == PeriodStatus.EN_REVISION.value:
            message = (
                f"La empresa {company_name} cerró el período de incidencias del calendario - "
                f"Período {number}. Ya puedes realizar el proceso de cierre del período."
            )
            notify_client = False
        elif new == PeriodStatus.RECHAZADA.value:
            message = f"La empresa {company_name} ha rechazado las incidencias del período {number}."
            notify_client = False
        elif new == PeriodStatus.CERRADO.value:
            message = f"El período {number} de {company_name} ha sido cerrado definitivamente."
        else:
            message = f"El período {number} de {company_name} ha sido {_PERIOD_STATUS_TEXT[new]}"

        rejected = new in (PeriodStatus.RECHAZADA.value, PeriodStatus.EN_INCIDENCIA.value)
        common: dict[str, Any] = {
            "company_id": event.company_id,
            "notification_type": "PERIOD_STATUS_CHANGED",
            "title": "Incidencias Rechazadas" if rejected else "Estado de Período Actualizado",
            "message": message if not event.reason else f"{message} Motivo: {event.reason}",
            "priority": (
                NotificationPriority.HIGH
                if new == PeriodStatus.RECHAZADA.value
                else NotificationPriority.NORMAL
            ),
            "payload": {
                "periodId": str(event.period_id),
                "calendarId": str(event.calendar_id),
                "periodNumber": number,
                "oldStatus": old,
                "newStatus": new,
            },
        }
        self._add(target_role=UserRole.OPERATOR, **common)
        if notify_client:
            self._add(target_role=UserRole.CLIENT, **common)

    # =========================================================================
    # Helpers
    # =========================================================================

    async def _broadcast_to_operators(self, company_id: UUID, **fields: Any) -> None:
        """One row per active operator."""
        result = await self.session.execute(
            select(User.user_id).where(
                User.role == UserRole.OPERATOR.value,
                User.is_active.is_(True),
            )
        )
        operator_ids = list(result.scalars())
        for user_id in operator_ids:
            self._add(
                company_id=company_id,
                user_id=user_id,
                target_role=UserRole.OPERATOR,
                **fields,
            )
        logger.info(
            "Notified %d operator(s): %s for company %s",
            len(operator_ids),
            fields.get("notification_type"),
            company_id,
        )

    def _add(
        self,
        *,
        company_id: UUID | None,
        notification_type: str,
        title: str,
        message: str,
        user_id: UUID | None = None,
        target_role: UserRole | str | None = None,
        priority: NotificationPriority = NotificationPriority.NORMAL,
        payload: dict[str, Any] | None = None,
    ) -> Notification:
        role = target_role.value if isinstance(target_role, UserRole) else target_role
        notification = Notification(
            company_id=company_id,
            user_id=user_id,
            target_role=role,
            notification_type=notification_type,
            title=title,
            message=message,
            priority=priority.value,
            payload=payload or {},
        )
        self.session.add(notification)
        return notification


def build_emitter(session: AsyncSession) -> EventEmitter:
    """Emitter wired to write notifications into ``session``."""
    emitter = EventEmitter(session)
    NotificationDispatcher(session).register(emitter)
    return emitter


class NotificationService:
    """Read side: a user's inbox."""

    def __init__(self, session: AsyncSession):
        self.session = session

    @staticmethod
    def _visible_to(user: User):
        """Rows addressed to the user, or to the user's role within their company."""
        role_target = and_(
            Notification.user_id.is_(None),
            Notification.target_role == user.role,
        )
        if user.company_id is not None:
            role_target = and_(role_target, Notification.company_id == user.company_id)
        return or_(Notification.user_id == user.user_id, role_target)

    async def list_for_user(self, user: User, unread_only: bool = False) -> list[Notification]:
        """Newest first, capped at INBOX_LIMIT."""
        stmt = select(Notification).where(self._visible_to(user))
        if unread_only:
            stmt = stmt.where(Notification.is_read.is_(False))
        stmt = stmt.order_by(Notification.created_at.desc()).limit(INBOX_LIMIT)
        result = await self.session.execute(stmt)
        return list(result.scalars())

    async def count_unread(self, user: User) -> int:
        result = await self.session.execute(
            select(func.count())
            .select_from(Notification)
            .where(self._visible_to(user), Notification.is_read.is_(False))
        )
        return result.scalar_one()

    async def mark_read(self, user: User, notification_id: UUID) -> Notification:
        """Mark one notification read."""
        result = await self.session.execute(
            select(Notification).where(
                Notification.notification_id == notification_id,
                self._visible_to(user),
            )
        )
        notification = result.scalar_one_or_none()
        if notification is None:
            raise NotFoundError("Notificación no encontrada")
        if not notification.is_read:
            notification.is_read = True
            notification.read_at = utcnow()
            await self.session.flush()
        return notification

    async def mark_all_read(self, user: User) -> int:
        """Mark every unread notification visible to the user. Returns the count."""
        result = await self.session.execute(
            update(Notification)
            .where(self._visible_to(user), Notification.is_read.is_(False))
            .values(is_read=True, read_at=utcnow())
            .execution_options(synchronize_session=False)
        )
        return result.rowcount or 0
