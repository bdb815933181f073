"""Role-based authorization policy.

One table answers "may this role perform this action, and on which
companies?". Routes and services call ``authorize`` instead of repeating
role checks.
"""

from __future__ import annotations

from enum import Enum
from typing import Protocol
from uuid import UUID

from nomina_engine.errors import AuthorizationError
from nomina_engine.models.enums import UserRole


class Scope(str, Enum):
    """Which companies a grant covers."""

    ANY = "any"
    OWN_COMPANY = "own_company"


class Action(str, Enum):
    """Guarded operations."""

    COMPANY_MANAGE = "company.manage"
    CALENDAR_MANAGE = "calendar.manage"
    CALENDAR_READ = "calendar.read"
    PERIOD_CHANGE_STATUS = "period.change_status"
    INCIDENCE_CREATE = "incidence.create"
    INCIDENCE_READ = "incidence.read"
    INCIDENCE_MODIFY = "incidence.modify"
    INCIDENCE_REVIEW = "incidence.review"
    PAYROLL_PREPARE = "payroll.prepare"
    PAYROLL_REVIEW = "payroll.review"
    EMPLOYEE_MANAGE = "employee.manage"


class Principal(Protocol):
    role: str
    company_id: UUID | None


_STAFF = {UserRole.ADMIN: Scope.ANY, UserRole.OPERATOR: Scope.ANY}

POLICY: dict[Action, dict[UserRole, Scope]] = {
    Action.COMPANY_MANAGE: dict(_STAFF),
    Action.CALENDAR_MANAGE: {**_STAFF, UserRole.CLIENT: Scope.OWN_COMPANY},
    Action.CALENDAR_READ: {
        **_STAFF,
        UserRole.CLIENT: Scope.OWN_COMPANY,
        UserRole.DEPARTMENT_HEAD: Scope.OWN_COMPANY,
        UserRole.EMPLOYEE: Scope.OWN_COMPANY,
    },
    Action.PERIOD_CHANGE_STATUS: {**_STAFF, UserRole.CLIENT: Scope.OWN_COMPANY},
    Action.INCIDENCE_CREATE: {
        **_STAFF,
        UserRole.CLIENT: Scope.OWN_COMPANY,
        UserRole.DEPARTMENT_HEAD: Scope.OWN_COMPANY,
    },
    Action.INCIDENCE_READ: {
        **_STAFF,
        UserRole.CLIENT: Scope.OWN_COMPANY,
        UserRole.DEPARTMENT_HEAD: Scope.OWN_COMPANY,
    },
    Action.INCIDENCE_MODIFY: {
        **_STAFF,
        UserRole.CLIENT: Scope.OWN_COMPANY,
        UserRole.DEPARTMENT_HEAD: Scope.OWN_COMPANY,
    },
    Action.INCIDENCE_REVIEW: {UserRole.CLIENT: Scope.OWN_COMPANY},
    Action.PAYROLL_PREPARE: dict(_STAFF),
    Action.PAYROLL_REVIEW: {UserRole.CLIENT: Scope.OWN_COMPANY},
    Action.EMPLOYEE_MANAGE: {**_STAFF, UserRole.CLIENT: Scope.OWN_COMPANY},
}

_DENIED_MESSAGES: dict[Action, str] = {
    Action.INCIDENCE_REVIEW: "Solo el cliente puede aprobar o rechazar incidencias",
    Action.PAYROLL_REVIEW: "Solo el cliente puede autorizar o rechazar nóminas",
    Action.PAYROLL_PREPARE: "Solo el operador puede preparar nóminas",
}


def is_allowed(user: Principal, action: Action, company_id: UUID | None = None) -> bool:
    """Check a grant without raising."""
    try:
        role = UserRole(user.role)
    except ValueError:
        return False
    scope = POLICY.get(action, {}).get(role)
    if scope is None:
        return False
    if scope is Scope.OWN_COMPANY:
        return company_id is not None and user.company_id == company_id
    return True


def authorize(user: Principal, action: Action, company_id: UUID | None = None) -> None:
    """Raise AuthorizationError unless ``user`` may perform ``action`` on ``company_id``."""
    try:
        role = UserRole(user.role)
    except ValueError:
        role = None
    scope = POLICY.get(action, {}).get(role) if role is not None else None

    if scope is None:
        raise AuthorizationError(
            _DENIED_MESSAGES.get(action, "No tienes permisos para realizar esta acción"),
            details={"action": action.value, "role": user.role},
        )
    if scope is Scope.OWN_COMPANY and (company_id is None or user.company_id != company_id):
        raise AuthorizationError("No tienes acceso a esta empresa")
