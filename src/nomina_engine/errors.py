"""Domain error taxonomy and database error translation."""

from __future__ import annotations

from typing import Any

from sqlalchemy.exc import IntegrityError


class NominaError(Exception):
    """Base class for errors that map onto an HTTP response."""

    status_code = 500
    code = "INTERNAL_ERROR"

    def __init__(self, message: str, details: Any = None):
        self.message = message
        self.details = details
        super().__init__(message)


class ValidationError(NominaError):
    """Malformed or missing input."""

    status_code = 400
    code = "VALIDATION_ERROR"


class InvalidFrequencyError(ValidationError):
    """Raised when a pay frequency string is not recognized."""

    code = "INVALID_FREQUENCY"

    def __init__(self, frequency: str):
        self.frequency = frequency
        super().__init__(
            f"Frecuencia inválida: '{frequency}'. "
            "Valores permitidos: semanal, catorcenal, quincenal, mensual"
        )


class InvalidTransitionError(ValidationError):
    """Raised when an invalid state transition is attempted."""

    code = "INVALID_TRANSITION"

    def __init__(self, from_status: str, to_status: str, reason: str | None = None):
        self.from_status = str(from_status)
        self.to_status = str(to_status)
        self.reason = reason
        msg = f"No se puede cambiar de {self.from_status} a {self.to_status}"
        if reason:
            msg += f": {reason}"
        super().__init__(msg)


class AuthenticationError(NominaError):
    status_code = 401
    code = "UNAUTHENTICATED"


class AuthorizationError(NominaError):
    """Role or company ownership mismatch."""

    status_code = 403
    code = "FORBIDDEN"


class NotFoundError(NominaError):
    status_code = 404
    code = "NOT_FOUND"


class DuplicateError(NominaError):
    """Unique constraint violation."""

    status_code = 409
    code = "DUPLICATE"


# Column fragment -> message, checked in order
_UNIQUE_MESSAGES: list[tuple[str, str]] = [
    ("rfc", "El RFC ya está registrado en el sistema"),
    ("curp", "El CURP ya está registrado en el sistema"),
    ("employee_number", "El número de empleado ya existe en el sistema"),
    ("email", "El correo electrónico ya está registrado"),
    ("nss", "El NSS (Número de Seguro Social) ya está registrado"),
    ("token", "La invitación ya existe"),
]

_REQUIRED_MESSAGES: list[tuple[str, str]] = [
    ("name", "El nombre es requerido"),
    ("rfc", "El RFC es requerido"),
    ("curp", "El CURP es requerido"),
    ("email", "El correo electrónico es requerido"),
    ("employee_number", "El número de empleado es requerido"),
    ("hire_date", "La fecha de ingreso es requerida"),
]


def translate_integrity_error(exc: IntegrityError) -> NominaError:
    """Turn a driver-level integrity error into a domain error.

    The storage engine vocabulary (constraint names, SQLSTATE codes) never
    reaches the client; only the translated message does.
    """
    raw = str(exc.orig if exc.orig is not None else exc).lower()

    if "unique" in raw or "duplicate key" in raw:
        for fragment, message in _UNIQUE_MESSAGES:
            if fragment in raw:
                return DuplicateError(message)
        return DuplicateError("Este registro ya existe en el sistema")

    if "foreign key" in raw:
        return ValidationError("Error de referencia: algunos datos relacionados no existen")

    if "not null" in raw or "null value" in raw:
        for fragment, message in _REQUIRED_MESSAGES:
            if fragment in raw:
                return ValidationError(message)
        return ValidationError("Faltan campos requeridos para completar el registro")

    return ValidationError("No se pudo guardar el registro")
