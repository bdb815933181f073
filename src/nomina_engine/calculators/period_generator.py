"""Payroll calendar period generation.

Produces one year of pay periods for a calendar. Pure: nothing here touches
the database; callers persist the result.
"""

from __future__ import annotations

import calendar
from collections.abc import Sequence
from datetime import date, timedelta
from typing import TypeVar
from uuid import UUID

from nomina_engine.calculators.types import FREQUENCY_RULES, FrequencyRule, GeneratedPeriod
from nomina_engine.errors import InvalidFrequencyError, ValidationError
from nomina_engine.models.enums import PayFrequency

PAYMENT_OFFSET = timedelta(days=1)

# Anything with start_date/end_date: GeneratedPeriod or a persisted period
_P = TypeVar("_P")


def parse_frequency(value: str | PayFrequency) -> PayFrequency:
    """Resolve a frequency name case-insensitively."""
    if isinstance(value, PayFrequency):
        return value
    try:
        return PayFrequency(str(value).strip().lower())
    except ValueError:
        raise InvalidFrequencyError(str(value)) from None


def month_end(day: date) -> date:
    """Last day of the month containing ``day``."""
    return day.replace(day=calendar.monthrange(day.year, day.month)[1])


def _window(rule: FrequencyRule, start: date, first: bool, truncate_first: bool) -> tuple[date, date]:
    """Return (start, end) of the period that begins at or contains ``start``."""
    if rule.days is not None:
        return start, start + timedelta(days=rule.days - 1)

    if rule.frequency is PayFrequency.QUINCENAL:
        if start.day <= 15:
            period_start = start if (first and truncate_first) else start.replace(day=1)
            return period_start, start.replace(day=15)
        period_start = start if (first and truncate_first) else start.replace(day=16)
        return period_start, month_end(start)

    # Mensual
    period_start = start if (first and truncate_first) else start.replace(day=1)
    return period_start, month_end(start)


def generate_periods(
    calendar_id: UUID | None,
    start_date: date,
    pay_frequency: str | PayFrequency,
    start_period_number: int = 1,
    truncate_first: bool = False,
) -> list[GeneratedPeriod]:
    """Generate the periods of one calendar year.

    Iteration stops when the frequency's period count is reached or when the
    next period would start in the following year.

    Args:
        calendar_id: Calendar the periods belong to (may be None for previews)
        start_date: First day covered by the calendar
        pay_frequency: semanal, catorcenal, quincenal or mensual
        start_period_number: Number given to the first period
        truncate_first: For quincenal/mensual, start the first period on
            ``start_date`` itself instead of the enclosing half-month/month

    Returns:
        Ordered list of GeneratedPeriod, numbered consecutively
    """
    frequency = parse_frequency(pay_frequency)
    if start_period_number < 1:
        raise ValidationError("El número de periodo inicial debe ser mayor o igual a 1")

    rule = FREQUENCY_RULES[frequency]
    year = start_date.year
    periods: list[GeneratedPeriod] = []
    cursor = start_date

    while len(periods) < rule.max_periods and cursor.year == year:
        period_start, period_end = _window(rule, cursor, not periods, truncate_first)
        periods.append(
            GeneratedPeriod(
                calendar_id=calendar_id,
                number=start_period_number + len(periods),
                start_date=period_start,
                end_date=period_end,
                payment_date=period_end + PAYMENT_OFFSET,
            )
        )
        cursor = period_end + timedelta(days=1)

    return periods


def find_current_period(periods: Sequence[_P], today: date) -> _P | None:
    """Return the period whose range contains ``today``, if any."""
    for period in periods:
        if period.start_date <= today <= period.end_date:
            return period
    return None
