"""Type definitions for the period and payroll calculation pipeline."""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import date
from decimal import Decimal
from typing import Any
from uuid import UUID

from nomina_engine.models.enums import PayFrequency, PeriodStatus


@dataclass(frozen=True)
class FrequencyRule:
    """How a pay frequency slices a year."""

    frequency: PayFrequency
    max_periods: int
    days: int | None = None  # Fixed window length; None for month-based frequencies


FREQUENCY_RULES: dict[PayFrequency, FrequencyRule] = {
    PayFrequency.SEMANAL: FrequencyRule(PayFrequency.SEMANAL, max_periods=52, days=7),
    PayFrequency.CATORCENAL: FrequencyRule(PayFrequency.CATORCENAL, max_periods=27, days=14),
    PayFrequency.QUINCENAL: FrequencyRule(PayFrequency.QUINCENAL, max_periods=24),
    PayFrequency.MENSUAL: FrequencyRule(PayFrequency.MENSUAL, max_periods=12),
}


@dataclass(frozen=True)
class GeneratedPeriod:
    """A period candidate before persistence."""

    calendar_id: UUID | None
    number: int
    start_date: date
    end_date: date
    payment_date: date
    status: PeriodStatus = PeriodStatus.EN_INCIDENCIA

    def to_dict(self) -> dict[str, Any]:
        """Return a dict ready to build a PayrollCalendarPeriod."""
        return {
            "calendar_id": self.calendar_id,
            "number": self.number,
            "start_date": self.start_date,
            "end_date": self.end_date,
            "payment_date": self.payment_date,
            "status": self.status.value,
        }


@dataclass
class PayrollItemCalculation:
    """Computed totals for one employee in a payroll run."""

    employee_id: UUID
    working_days: int
    base_salary: Decimal
    perceptions: Decimal
    deductions: Decimal
    net: Decimal
    incidence_adjustments: list[dict[str, Any]] = field(default_factory=list)
