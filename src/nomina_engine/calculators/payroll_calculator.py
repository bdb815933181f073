"""Per-employee payroll totals for a draft payroll run.

A small model: base pay for the working days of the period,
adjusted by approved incidences, minus flat-rate withholdings. It produces
the figures a client reviews before authorizing; it is not a tax engine.
"""

from __future__ import annotations

from datetime import date, timedelta
from decimal import ROUND_HALF_UP, Decimal
from typing import Any, Iterable, Protocol
from uuid import UUID

from nomina_engine.calculators.types import PayrollItemCalculation
from nomina_engine.models.enums import IncidenceType

CENT = Decimal("0.01")
DEFAULT_WORKING_DAYS = 15
HOURS_PER_DAY = Decimal("8")
OVERTIME_MULTIPLIER = Decimal("2")

ISR_RATE = Decimal("0.12")
IMSS_EMPLOYEE_RATE = Decimal("0.0275")


class IncidenceLike(Protocol):
    incidence_type: str
    quantity: Decimal
    amount: Decimal | None


def _money(value: Decimal) -> Decimal:
    return value.quantize(CENT, rounding=ROUND_HALF_UP)


def working_days(start: date, end: date) -> int:
    """Weekdays between start and end inclusive; DEFAULT_WORKING_DAYS if none."""
    days = 0
    current = start
    while current <= end:
        if current.weekday() < 5:
            days += 1
        current += timedelta(days=1)
    return days or DEFAULT_WORKING_DAYS


def incidence_adjustment(incidence: IncidenceLike, daily_salary: Decimal) -> Decimal:
    """Signed amount an incidence adds to (or removes from) the employee's pay."""
    quantity = Decimal(incidence.quantity or 0)
    amount = Decimal(incidence.amount or 0)
    kind = incidence.incidence_type

    if kind == IncidenceType.FALTAS.value:
        return -(daily_salary * quantity)
    if kind == IncidenceType.VACACIONES.value:
        return daily_salary * quantity
    if kind == IncidenceType.TIEMPO_EXTRA.value:
        return daily_salary / HOURS_PER_DAY * quantity * OVERTIME_MULTIPLIER
    if kind == IncidenceType.BONOS.value:
        return amount or quantity
    if kind == IncidenceType.DESCUENTOS.value:
        return -(amount or quantity)
    # PERMISOS
    return Decimal("0")


def calculate_item(
    employee_id: UUID,
    daily_salary: Decimal,
    days: int,
    incidences: Iterable[IncidenceLike] = (),
) -> PayrollItemCalculation:
    """Compute gross, deductions and net for one employee."""
    daily_salary = Decimal(daily_salary)
    base = _money(daily_salary * days)

    adjustments: list[dict[str, Any]] = []
    positive = Decimal("0")
    negative = Decimal("0")
    for incidence in incidences:
        value = _money(incidence_adjustment(incidence, daily_salary))
        adjustments.append(
            {"type": incidence.incidence_type, "quantity": str(incidence.quantity), "amount": str(value)}
        )
        if value >= 0:
            positive += value
        else:
            negative += -value

    perceptions = base + positive
    deductions = _money(perceptions * ISR_RATE) + _money(base * IMSS_EMPLOYEE_RATE) + negative

    return PayrollItemCalculation(
        employee_id=employee_id,
        working_days=days,
        base_salary=base,
        perceptions=perceptions,
        deductions=deductions,
        net=perceptions - deductions,
        incidence_adjustments=adjustments,
    )
