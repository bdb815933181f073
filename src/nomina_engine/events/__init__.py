"""Workflow events and the emitter that delivers them."""

from nomina_engine.events.emitter import EventEmitter, EventHandler, HandlerRegistration
from nomina_engine.events.types import (
    DomainEvent,
    EventCategory,
    EventMetadata,
    IncidenceApproved,
    IncidenceEvent,
    IncidenceRejected,
    IncidenceReviewed,
    IncidencesSubmitted,
    PayrollAuthorized,
    PayrollEvent,
    PayrollRejected,
    PayrollSubmitted,
    PeriodStatusChanged,
)

__all__ = [
    "DomainEvent",
    "EventCategory",
    "EventMetadata",
    "EventEmitter",
    "EventHandler",
    "HandlerRegistration",
    # Incidences
    "IncidenceEvent",
    "IncidencesSubmitted",
    "IncidenceReviewed",
    "IncidenceApproved",
    "IncidenceRejected",
    # Payroll
    "PayrollEvent",
    "PayrollSubmitted",
    "PayrollAuthorized",
    "PayrollRejected",
    # Calendar
    "PeriodStatusChanged",
]
