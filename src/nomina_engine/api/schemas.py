"""Pydantic schemas for API request/response models."""

from __future__ import annotations

from datetime import date, datetime
from decimal import Decimal
from typing import Any, Generic, TypeVar
from uuid import UUID

from pydantic import BaseModel, ConfigDict, Field
from pydantic.alias_generators import to_camel

T = TypeVar("T")


class ApiModel(BaseModel):
    """camelCase on the wire, snake_case in Python."""

    model_config = ConfigDict(
        alias_generator=to_camel,
        populate_by_name=True,
        from_attributes=True,
    )


class Envelope(BaseModel, Generic[T]):
    """Every response is wrapped in ``{success, data, message}``."""

    success: bool = True
    data: T | None = None
    message: str | None = None


class ErrorResponse(BaseModel):
    success: bool = False
    error: str
    message: str
    details: Any | None = None


# ============================================================================
# Auth & invitations
# ============================================================================


class LoginRequest(ApiModel):
    email: str
    password: str


class UserResponse(ApiModel):
    user_id: UUID
    email: str
    name: str
    role: str
    company_id: UUID | None = None
    department_id: UUID | None = None
    is_active: bool


class TokenResponse(ApiModel):
    access_token: str
    token_type: str = "bearer"
    user: UserResponse


class InvitationCreate(ApiModel):
    email: str
    role: str = "CLIENT"
    department_id: UUID | None = None


class InvitationResponse(ApiModel):
    invitation_id: UUID
    email: str
    company_id: UUID
    role: str
    expires_at: datetime


class InvitationStatus(ApiModel):
    valid: bool
    email: str | None = None
    company_id: UUID | None = None


class InvitationAccept(ApiModel):
    name: str
    password: str
    confirm_password: str | None = None


# ============================================================================
# Companies
# ============================================================================


class CompanyCreate(ApiModel):
    name: str
    rfc: str
    email: str | None = None
    invite_client: bool = False


class CompanyResponse(ApiModel):
    company_id: UUID
    name: str
    rfc: str
    email: str | None = None
    status: str
    employees_count: int
    is_active: bool
    created_at: datetime


class AdvanceStatusRequest(ApiModel):
    status: str | None = None


# ============================================================================
# Calendars & periods
# ============================================================================


class CalendarCreate(ApiModel):
    company_id: UUID
    name: str
    pay_frequency: str
    start_date: date
    period_number: int = 1
    days_before_close: int = 0
    pay_natural_days: bool = False
    truncate_first: bool = False


class CalendarUpdate(ApiModel):
    name: str | None = None
    pay_frequency: str | None = None
    start_date: date | None = None
    period_number: int | None = None
    days_before_close: int | None = None
    pay_natural_days: bool | None = None


class CalendarResponse(ApiModel):
    calendar_id: UUID
    company_id: UUID
    name: str
    pay_frequency: str
    start_date: date
    period_number: int
    days_before_close: int
    pay_natural_days: bool
    created_at: datetime


class PeriodResponse(ApiModel):
    period_id: UUID
    calendar_id: UUID
    number: int
    start_date: date
    end_date: date
    payment_date: date
    status: str
    closed_at: datetime | None = None
    rejection_reason: str | None = None


class CalendarWithPeriods(ApiModel):
    calendar: CalendarResponse
    periods: list[PeriodResponse]
    total_periods: int


class PeriodStatusUpdate(ApiModel):
    status: str
    reason: str | None = None


# ============================================================================
# Incidences
# ============================================================================


class IncidenceBulkRequest(ApiModel):
    """Rows arrive under ``incidencias`` (``incidences`` also accepted)."""

    incidencias: list[dict[str, Any]] | None = None
    incidences: list[dict[str, Any]] | None = None

    @property
    def rows(self) -> list[dict[str, Any]] | None:
        return self.incidencias if self.incidencias is not None else self.incidences


class IncidenceResponse(ApiModel):
    incidence_id: UUID
    company_id: UUID
    employee_id: UUID
    calendar_id: UUID | None = None
    period_id: UUID | None = None
    incidence_type: str
    quantity: Decimal
    amount: Decimal | None = None
    incidence_date: date
    description: str | None = None
    status: str
    created_by_user_id: UUID | None = None
    created_by_role: str | None = None
    reviewed_by_user_id: UUID | None = None
    reviewed_at: datetime | None = None
    created_at: datetime


class RejectRequest(ApiModel):
    reason: str | None = None


# ============================================================================
# Payroll
# ============================================================================


class PayrollCreate(ApiModel):
    company_id: UUID
    period_id: UUID | None = None
    period: str | None = None


class PayrollItemResponse(ApiModel):
    payroll_item_id: UUID
    employee_id: UUID
    gross: Decimal
    deductions: Decimal
    net: Decimal


class PayrollResponse(ApiModel):
    payroll_id: UUID
    company_id: UUID
    calendar_id: UUID | None = None
    period_id: UUID | None = None
    period: str
    status: str
    total_gross: Decimal
    total_net: Decimal
    created_by_user_id: UUID | None = None
    authorized_by_user_id: UUID | None = None
    authorized_at: datetime | None = None
    rejection_reason: str | None = None
    items: list[PayrollItemResponse] = Field(default_factory=list)
    created_at: datetime


# ============================================================================
# Employees
# ============================================================================


class WorkerRowsRequest(ApiModel):
    """Bulk rows arrive under ``workers`` or ``employees``."""

    workers: list[dict[str, Any]] | None = None
    employees: list[dict[str, Any]] | None = None

    @property
    def rows(self) -> list[dict[str, Any]]:
        return self.workers or self.employees or []


class RowError(BaseModel):
    row: int
    field: str
    error: str


class RowWarning(BaseModel):
    row: int
    field: str
    warning: str


class ValidationReportResponse(BaseModel):
    valid: bool
    errors: list[RowError]
    warnings: list[RowWarning]


class BulkImportResponse(ValidationReportResponse):
    created: int
    employee_ids: list[UUID] = Field(default_factory=list, alias="employeeIds")


class EmployeeResponse(ApiModel):
    employee_id: UUID
    company_id: UUID
    employee_number: int
    first_name: str
    last_name: str
    second_last_name: str | None = None
    full_name: str
    rfc: str
    curp: str
    nss: str | None = None
    email: str | None = None
    salary: Decimal
    hire_date: date
    status: str


# ============================================================================
# Notifications
# ============================================================================


class NotificationResponse(ApiModel):
    notification_id: UUID
    company_id: UUID | None = None
    notification_type: str
    title: str
    message: str
    priority: str
    payload: dict[str, Any]
    is_read: bool
    read_at: datetime | None = None
    created_at: datetime


class NotificationList(ApiModel):
    items: list[NotificationResponse]
    unread_count: int
