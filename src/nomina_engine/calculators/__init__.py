"""Payroll period and payroll item calculation."""

from nomina_engine.calculators.payroll_calculator import calculate_item, working_days
from nomina_engine.calculators.period_generator import (
    find_current_period,
    generate_periods,
    parse_frequency,
)
from nomina_engine.calculators.types import (
    FREQUENCY_RULES,
    FrequencyRule,
    GeneratedPeriod,
    PayrollItemCalculation,
)

__all__ = [
    "generate_periods",
    "find_current_period",
    "parse_frequency",
    "calculate_item",
    "working_days",
    "GeneratedPeriod",
    "FrequencyRule",
    "FREQUENCY_RULES",
    "PayrollItemCalculation",
]
