"""Workflow events.

Each event is a frozen dataclass carrying the identifiers and display
values its subscribers need, so a subscriber never has to reload the
record that changed. Notifications are derived from these events; services
never write notifications themselves.
"""

from __future__ import annotations

import json
from dataclasses import asdict, dataclass
from datetime import date, datetime, timezone
from decimal import Decimal
from enum import Enum
from functools import singledispatch
from typing import Any, ClassVar
from uuid import UUID, uuid4


class EventCategory(str, Enum):
    INCIDENCE = "incidence"
    PAYROLL = "payroll"
    CALENDAR = "calendar"


@dataclass(frozen=True)
class EventMetadata:
    """Who did what, where and when."""

    event_id: UUID
    timestamp: datetime
    company_id: UUID
    actor_id: UUID | None
    actor_role: str | None
    source_service: str
    version: int = 1

    @classmethod
    def create(
        cls,
        company_id: UUID,
        actor_id: UUID | None = None,
        actor_role: str | None = None,
        source_service: str = "nomina",
    ) -> EventMetadata:
        return cls(
            event_id=uuid4(),
            timestamp=datetime.now(timezone.utc),
            company_id=company_id,
            actor_id=actor_id,
            actor_role=actor_role,
            source_service=source_service,
        )


@singledispatch
def _plain(value: Any) -> Any:
    return value


@_plain.register(dict)
def _(value: dict) -> dict:
    return {key: _plain(item) for key, item in value.items()}


@_plain.register(list)
@_plain.register(tuple)
def _(value) -> list:
    return [_plain(item) for item in value]


@_plain.register(UUID)
@_plain.register(Decimal)
def _(value) -> str:
    return str(value)


@_plain.register(date)
def _(value: date) -> str:
    # datetime is a date subclass and lands here too
    return value.isoformat()


@_plain.register(Enum)
def _(value: Enum) -> Any:
    return value.value


@dataclass(frozen=True)
class DomainEvent:
    metadata: EventMetadata

    category: ClassVar[EventCategory]

    @property
    def event_type(self) -> str:
        return type(self).__name__

    @property
    def company_id(self) -> UUID:
        return self.metadata.company_id

    def to_dict(self) -> dict[str, Any]:
        """JSON-ready dict: ids, amounts and dates become strings."""
        return _plain(asdict(self))

    def to_json(self) -> str:
        return json.dumps(self.to_dict())


# =============================================================================
# Incidence Events
# =============================================================================


@dataclass(frozen=True)
class IncidenceEvent(DomainEvent):
    category: ClassVar[EventCategory] = EventCategory.INCIDENCE


@dataclass(frozen=True)
class IncidencesSubmitted(IncidenceEvent):
    """A department head captured incidences that wait for the client."""

    submitted_by_user_id: UUID
    submitted_by_name: str
    department_name: str | None
    incidence_ids: tuple[UUID, ...]

    @property
    def count(self) -> int:
        return len(self.incidence_ids)


@dataclass(frozen=True)
class IncidenceReviewed(IncidenceEvent):
    """Fields shared by both review outcomes; addressed to the capturer."""

    incidence_id: UUID
    incidence_type: str
    employee_number: int
    employee_name: str
    created_by_user_id: UUID | None
    created_by_role: str | None


@dataclass(frozen=True)
class IncidenceApproved(IncidenceReviewed):
    pass


@dataclass(frozen=True)
class IncidenceRejected(IncidenceReviewed):
    reason: str


# =============================================================================
# Payroll Events
# =============================================================================


@dataclass(frozen=True)
class PayrollEvent(DomainEvent):
    category: ClassVar[EventCategory] = EventCategory.PAYROLL


@dataclass(frozen=True)
class PayrollSubmitted(PayrollEvent):
    """An operator sent a draft payroll to the client."""

    payroll_id: UUID
    period: str
    total_net: Decimal


@dataclass(frozen=True)
class PayrollAuthorized(PayrollEvent):
    payroll_id: UUID
    period: str
    approved_by_name: str


@dataclass(frozen=True)
class PayrollRejected(PayrollEvent):
    """The client sent a payroll back to draft."""

    payroll_id: UUID
    period: str
    rejected_by_name: str
    reason: str


# =============================================================================
# Calendar Events
# =============================================================================


@dataclass(frozen=True)
class PeriodStatusChanged(DomainEvent):
    category: ClassVar[EventCategory] = EventCategory.CALENDAR

    period_id: UUID
    calendar_id: UUID
    number: int
    from_status: str
    to_status: str
    reason: str | None = None
