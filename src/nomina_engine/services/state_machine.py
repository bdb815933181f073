"""State machines for incidences, payroll runs and calendar periods."""

from __future__ import annotations

from enum import Enum
from typing import ClassVar

from nomina_engine.errors import InvalidTransitionError
from nomina_engine.models.enums import (
    IncidenceStatus,
    PayrollStatus,
    PeriodStatus,
    UserRole,
)


class StateMachine:
    """Transition table shared by the concrete machines below.

    Subclasses set ``STATUS`` (the enum) and ``VALID_TRANSITIONS``
    ({from_status: [allowed_to_statuses]}). Statuses may be passed as enum
    members or as their stored string values.
    """

    STATUS: ClassVar[type[Enum]]
    VALID_TRANSITIONS: ClassVar[dict]

    @classmethod
    def _coerce(cls, status: str | Enum) -> Enum | None:
        try:
            return cls.STATUS(status)
        except ValueError:
            return None

    @classmethod
    def can_transition(cls, from_status: str | Enum, to_status: str | Enum) -> bool:
        """Check if a transition is valid."""
        src, dst = cls._coerce(from_status), cls._coerce(to_status)
        if src is None or dst is None:
            return False
        return dst in cls.VALID_TRANSITIONS.get(src, [])

    @classmethod
    def validate_transition(
        cls, from_status: str | Enum, to_status: str | Enum, reason: str | None = None
    ) -> None:
        """Validate a transition, raising InvalidTransitionError if invalid."""
        if not cls.can_transition(from_status, to_status):
            raise InvalidTransitionError(
                _value(from_status), _value(to_status), reason or cls._why(from_status)
            )

    @classmethod
    def get_next_statuses(cls, current_status: str | Enum) -> list[str]:
        """Get list of valid next statuses from current status."""
        status = cls._coerce(current_status)
        if status is None:
            return []
        return [s.value for s in cls.VALID_TRANSITIONS.get(status, [])]

    @classmethod
    def is_terminal(cls, status: str | Enum) -> bool:
        """Check if no transition leaves this status."""
        return not cls.get_next_statuses(status)

    @classmethod
    def _why(cls, from_status: str | Enum) -> str | None:
        if cls.is_terminal(from_status):
            return "el estado es final"
        return None


def _value(status: str | Enum) -> str:
    return status.value if isinstance(status, Enum) else str(status)


class IncidenceStateMachine(StateMachine):
    """State machine for incidence status transitions.

    Allowed transitions:
    - PENDING → APPROVED
    - PENDING → REJECTED

    APPROVED and REJECTED are terminal; a rejected incidence is resubmitted
    as a new record.
    """

    STATUS = IncidenceStatus
    VALID_TRANSITIONS = {
        IncidenceStatus.PENDING: [IncidenceStatus.APPROVED, IncidenceStatus.REJECTED],
        IncidenceStatus.APPROVED: [],  # Terminal state
        IncidenceStatus.REJECTED: [],  # Terminal state
    }

    # Creator role -> status the incidence starts in
    INITIAL_STATUS_BY_ROLE: ClassVar[dict[UserRole, IncidenceStatus]] = {
        UserRole.CLIENT: IncidenceStatus.APPROVED,
        UserRole.DEPARTMENT_HEAD: IncidenceStatus.PENDING,
        UserRole.OPERATOR: IncidenceStatus.PENDING,
        UserRole.ADMIN: IncidenceStatus.PENDING,
    }

    @classmethod
    def initial_status_for(cls, role: str | UserRole) -> IncidenceStatus:
        """Status a new incidence gets when created by ``role``."""
        return cls.INITIAL_STATUS_BY_ROLE.get(UserRole(role), IncidenceStatus.PENDING)

    @classmethod
    def can_modify(cls, status: str | IncidenceStatus) -> bool:
        """Only pending incidences may be edited."""
        return cls._coerce(status) is IncidenceStatus.PENDING


class PayrollStateMachine(StateMachine):
    """State machine for payroll run authorization.

    Allowed transitions:
    - DRAFT → PENDING_AUTHORIZATION (operator submits)
    - PENDING_AUTHORIZATION → AUTHORIZED (client approves)
    - PENDING_AUTHORIZATION → DRAFT (client rejects)
    """

    STATUS = PayrollStatus
    VALID_TRANSITIONS = {
        PayrollStatus.DRAFT: [PayrollStatus.PENDING_AUTHORIZATION],
        PayrollStatus.PENDING_AUTHORIZATION: [PayrollStatus.AUTHORIZED, PayrollStatus.DRAFT],
        PayrollStatus.AUTHORIZED: [],  # Terminal state
    }

    @classmethod
    def is_rejection(cls, from_status: str | PayrollStatus, to_status: str | PayrollStatus) -> bool:
        """Check if this transition sends the payroll back to the operator."""
        return (
            cls._coerce(from_status) is PayrollStatus.PENDING_AUTHORIZATION
            and cls._coerce(to_status) is PayrollStatus.DRAFT
        )


class PeriodStateMachine(StateMachine):
    """State machine for payroll calendar period status.

    The period moves through incidence capture, review, pre-payroll review
    and layout review before it is finalized. FINALIZADO can be reopened.
    """

    STATUS = PeriodStatus
    VALID_TRANSITIONS = {
        PeriodStatus.EN_INCIDENCIA: [PeriodStatus.EN_REVISION],
        PeriodStatus.EN_REVISION: [PeriodStatus.CERRADO, PeriodStatus.RECHAZADA],
        PeriodStatus.CERRADO: [
            PeriodStatus.EN_INCIDENCIA,
            PeriodStatus.EN_REVISION_PRENOMINA,
            PeriodStatus.FINALIZADO,
        ],
        PeriodStatus.RECHAZADA: [PeriodStatus.EN_INCIDENCIA],
        PeriodStatus.EN_REVISION_PRENOMINA: [
            PeriodStatus.PRENOMINA_APROBADA,
            PeriodStatus.PRENOMINA_RECHAZADA,
        ],
        PeriodStatus.PRENOMINA_APROBADA: [
            PeriodStatus.EN_REVISION_LAYOUTS,
            PeriodStatus.FINALIZADO,
        ],
        PeriodStatus.PRENOMINA_RECHAZADA: [PeriodStatus.CERRADO],
        PeriodStatus.EN_REVISION_LAYOUTS: [
            PeriodStatus.LAYOUTS_APROBADOS,
            PeriodStatus.LAYOUTS_RECHAZADOS,
        ],
        PeriodStatus.LAYOUTS_APROBADOS: [PeriodStatus.FINALIZADO],
        PeriodStatus.LAYOUTS_RECHAZADOS: [PeriodStatus.PRENOMINA_APROBADA],
        PeriodStatus.FINALIZADO: [PeriodStatus.EN_INCIDENCIA],  # Reopen
    }

    # Entering these statuses requires a reason
    REASON_REQUIRED = {
        PeriodStatus.RECHAZADA,
        PeriodStatus.PRENOMINA_RECHAZADA,
        PeriodStatus.LAYOUTS_RECHAZADOS,
    }

    @classmethod
    def requires_reason(cls, to_status: str | PeriodStatus) -> bool:
        """Check if moving into this status needs a rejection reason."""
        return cls._coerce(to_status) in cls.REASON_REQUIRED

    @classmethod
    def closes_capture(cls, to_status: str | PeriodStatus) -> bool:
        """Check if this status ends incidence capture (stamps closed_at)."""
        return cls._coerce(to_status) is PeriodStatus.EN_REVISION

    @classmethod
    def is_reopen(cls, from_status: str | PeriodStatus, to_status: str | PeriodStatus) -> bool:
        """Check if this transition reopens a finished period."""
        return (
            cls._coerce(from_status) is PeriodStatus.FINALIZADO
            and cls._coerce(to_status) is PeriodStatus.EN_INCIDENCIA
        )

    @classmethod
    def accepts_incidences(cls, status: str | PeriodStatus) -> bool:
        """Check if incidences may still be captured in this status."""
        return cls._coerce(status) is PeriodStatus.EN_INCIDENCIA
