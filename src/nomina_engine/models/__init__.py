"""ORM models. Importing this package registers every table on ``Base.metadata``."""

from nomina_engine.models.base import Base, TimestampMixin, UpdatedAtMixin, utcnow
from nomina_engine.models.calendar import PayrollCalendar, PayrollCalendarPeriod
from nomina_engine.models.company import Area, Company, Department, Position
from nomina_engine.models.employee import ContractCondition, Employee
from nomina_engine.models.enums import (
    CompanyStatus,
    EmployeeStatus,
    IncidenceStatus,
    IncidenceType,
    NotificationPriority,
    PayFrequency,
    PayrollStatus,
    PeriodStatus,
    UserRole,
)
from nomina_engine.models.incidence import Incidence
from nomina_engine.models.notification import Notification
from nomina_engine.models.payroll import Payroll, PayrollItem
from nomina_engine.models.user import InvitationToken, User

__all__ = [
    # Base
    "Base",
    "TimestampMixin",
    "UpdatedAtMixin",
    "utcnow",
    # Enums
    "CompanyStatus",
    "EmployeeStatus",
    "IncidenceStatus",
    "IncidenceType",
    "NotificationPriority",
    "PayFrequency",
    "PayrollStatus",
    "PeriodStatus",
    "UserRole",
    # Organization
    "Company",
    "Area",
    "Department",
    "Position",
    # People
    "Employee",
    "ContractCondition",
    "User",
    "InvitationToken",
    # Payroll
    "PayrollCalendar",
    "PayrollCalendarPeriod",
    "Incidence",
    "Payroll",
    "PayrollItem",
    "Notification",
]
