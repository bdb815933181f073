"""Nomina engine services."""

from nomina_engine.services.auth_service import AuthService
from nomina_engine.services.authorization import Action, Scope, authorize, is_allowed
from nomina_engine.services.bulk_validation import (
    ExistingRecords,
    ValidationReport,
    WorkerValidationService,
    validate_worker_rows,
)
from nomina_engine.services.calendar_service import CalendarService
from nomina_engine.services.company_service import CompanyService
from nomina_engine.services.employee_service import BulkImportResult, EmployeeService
from nomina_engine.services.incidence_service import BulkIncidenceResult, IncidenceService
from nomina_engine.services.invitation_service import InvitationService
from nomina_engine.services.notification_service import (
    NotificationDispatcher,
    NotificationService,
    build_emitter,
)
from nomina_engine.services.payroll_approval_service import PayrollApprovalService
from nomina_engine.services.state_machine import (
    IncidenceStateMachine,
    PayrollStateMachine,
    PeriodStateMachine,
)

__all__ = [
    "Action",
    "Scope",
    "authorize",
    "is_allowed",
    "AuthService",
    "InvitationService",
    "CompanyService",
    "CalendarService",
    "EmployeeService",
    "BulkImportResult",
    "WorkerValidationService",
    "ValidationReport",
    "ExistingRecords",
    "validate_worker_rows",
    "IncidenceService",
    "BulkIncidenceResult",
    "PayrollApprovalService",
    "NotificationDispatcher",
    "NotificationService",
    "build_emitter",
    "IncidenceStateMachine",
    "PayrollStateMachine",
    "PeriodStateMachine",
]
