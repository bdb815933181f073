"""Enumerations shared by models, services and schemas."""

from __future__ import annotations

from enum import Enum


class UserRole(str, Enum):
    ADMIN = "ADMIN"
    OPERATOR = "OPERATOR"
    CLIENT = "CLIENT"
    DEPARTMENT_HEAD = "DEPARTMENT_HEAD"
    EMPLOYEE = "EMPLOYEE"


class CompanyStatus(str, Enum):
    IN_SETUP = "IN_SETUP"
    CONFIGURED = "CONFIGURED"
    ACTIVE = "ACTIVE"


class EmployeeStatus(str, Enum):
    ACTIVE = "ACTIVE"
    INACTIVE = "INACTIVE"
    TERMINATED = "TERMINATED"
    ON_LEAVE = "ON_LEAVE"


class PayFrequency(str, Enum):
    """Pay frequencies, stored lower-case."""

    SEMANAL = "semanal"
    CATORCENAL = "catorcenal"
    QUINCENAL = "quincenal"
    MENSUAL = "mensual"


class PeriodStatus(str, Enum):
    """Payroll calendar period status values."""

    EN_INCIDENCIA = "EN_INCIDENCIA"
    EN_REVISION = "EN_REVISION"
    CERRADO = "CERRADO"
    RECHAZADA = "RECHAZADA"
    EN_REVISION_PRENOMINA = "EN_REVISION_PRENOMINA"
    PRENOMINA_APROBADA = "PRENOMINA_APROBADA"
    PRENOMINA_RECHAZADA = "PRENOMINA_RECHAZADA"
    EN_REVISION_LAYOUTS = "EN_REVISION_LAYOUTS"
    LAYOUTS_APROBADOS = "LAYOUTS_APROBADOS"
    LAYOUTS_RECHAZADOS = "LAYOUTS_RECHAZADOS"
    FINALIZADO = "FINALIZADO"


class IncidenceStatus(str, Enum):
    PENDING = "PENDING"
    APPROVED = "APPROVED"
    REJECTED = "REJECTED"


class IncidenceType(str, Enum):
    FALTAS = "FALTAS"
    PERMISOS = "PERMISOS"
    VACACIONES = "VACACIONES"
    TIEMPO_EXTRA = "TIEMPO_EXTRA"
    BONOS = "BONOS"
    DESCUENTOS = "DESCUENTOS"


class PayrollStatus(str, Enum):
    DRAFT = "DRAFT"
    PENDING_AUTHORIZATION = "PENDING_AUTHORIZATION"
    AUTHORIZED = "AUTHORIZED"


class NotificationPriority(str, Enum):
    LOW = "LOW"
    NORMAL = "NORMAL"
    HIGH = "HIGH"


def check_values(enum_cls: type[Enum]) -> str:
    """Render enum values for a CHECK constraint ``IN (...)`` list."""
    return ", ".join(f"'{member.value}'" for member in enum_cls)
