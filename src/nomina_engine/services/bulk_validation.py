"""Bulk worker import validation.

``validate_worker_rows`` is pure: it checks the rows against each other
and against a snapshot of existing records, and always returns a full
report. ``WorkerValidationService`` builds that snapshot from the
database.
"""

from __future__ import annotations

import re
from dataclasses import dataclass, field
from datetime import date, datetime
from decimal import Decimal, InvalidOperation
from typing import Any, Mapping, Sequence
from uuid import UUID

from sqlalchemy import func, select
from sqlalchemy.ext.asyncio import AsyncSession

from nomina_engine.errors import ValidationError
from nomina_engine.models import Employee, PayrollCalendar, Position, User
from nomina_engine.services.authorization import Action, authorize

RFC_PATTERN = re.compile(r"^[A-ZÑ&]{3,4}\d{6}[A-Z\d]{3}$")
CURP_PATTERN = re.compile(
    r"^([A-Z][AEIOUX][A-Z]{2}\d{2}(?:0[1-9]|1[0-2])(?:0[1-9]|[12]\d|3[01])[HM]"
    r"(?:AS|B[CS]|C[CLMSH]|D[FG]|G[TR]|HG|JC|M[CNS]|N[ETL]|OC|PL|Q[TR]|S[PLR]|T[CSL]|VZ|YN|ZS)"
    r"[B-DF-HJ-NP-TV-Z]{3}[A-Z\d])(\d)$"
)
EMAIL_PATTERN = re.compile(r"^[^\s@]+@[^\s@]+\.[^\s@]+$")

# (field, label, alternate key)
REQUIRED_FIELDS: list[tuple[str, str, str | None]] = [
    ("numeroEmpleado", "Número de empleado", "numeroTrabajador"),
    ("nombres", "Nombre(s)", None),
    ("primerApellido", "Primer apellido", "apellidoPaterno"),
    ("rfc", "RFC", None),
    ("curp", "CURP", None),
    ("nss", "NSS", None),
    ("fechaNacimiento", "Fecha de nacimiento", None),
    ("genero", "Género", None),
    ("estadocivil", "Estado civil", "estadoCivil"),
    ("email", "Correo electrónico", None),
    ("codigoPostal", "Código postal", None),
    ("puesto", "Puesto", None),
    ("fechaIngreso", "Fecha de ingreso", None),
    ("salarioDiario", "Salario diario", None),
    ("calendario", "Calendario de nómina", None),
]

DATE_FIELDS = [
    ("fechaNacimiento", "Fecha de nacimiento"),
    ("fechaIngreso", "Fecha de ingreso"),
    ("fechaAntiguedad", "Fecha de antigüedad"),
]

POSITIVE_FIELDS = [
    ("salarioDiario", "Salario diario"),
    ("sueldoBaseCotizacion", "Sueldo base cotización"),
]

# (field, alternate key, allowed values, message)
ENUM_FIELDS: list[tuple[str, str | None, frozenset[str], str]] = [
    (
        "genero",
        None,
        frozenset({"M", "F", "O"}),
        "Género debe ser M (Masculino), F (Femenino) u O (Otro)",
    ),
    (
        "estadocivil",
        "estadoCivil",
        frozenset({"S", "C"}),
        "Estado civil debe ser S (Soltero) o C (Casado)",
    ),
    (
        "tipoContrato",
        None,
        frozenset(
            {
                "PERIODO_PRUEBA",
                "CAPACITACION_INICIAL",
                "OBRA_TIEMPO_DETERMINADO",
                "TEMPORADA",
                "TIEMPO_INDETERMINADO",
                "PRACTICAS_PROFESIONALES",
                "TELETRABAJO",
            }
        ),
        "Tipo de contrato erroneo.",
    ),
    (
        "zonaGeografica",
        None,
        frozenset({"RESTO_PAIS", "ZONA_FRONTERA_NORTE"}),
        "Zona geográfica debe ser RESTO_PAIS o ZONA_FRONTERA_NORTE",
    ),
    (
        "tipoSalario",
        None,
        frozenset({"FIJO", "MIXTO", "VARIABLE"}),
        "Tipo de salario debe ser FIJO, MIXTO o VARIABLE",
    ),
]

# Daily minimum wage (2025) by geographic zone
MINIMUM_DAILY_WAGE: dict[str, Decimal] = {
    "RESTO_PAIS": Decimal("278.80"),
    "ZONA_FRONTERA_NORTE": Decimal("419.88"),
}

# Upper bound of the employee_number column
MAX_EMPLOYEE_NUMBER = 2_147_483_647


def field_value(row: Mapping[str, Any], key: str, alternate: str | None = None) -> Any:
    """Value under ``key``, falling back to the alternate spelling."""
    value = row.get(key)
    if (value is None or value == "") and alternate:
        value = row.get(alternate)
    return value


def employee_number_of(row: Mapping[str, Any]) -> Any:
    return field_value(row, "numeroEmpleado", "numeroTrabajador")


def parse_employee_number(value: Any) -> int | None:
    """Employee number as an int, so "010" and "10" compare equal.

    None for anything that is not a plain run of decimal digits in range.
    """
    text = str(value).strip() if value is not None else ""
    if not text.isdecimal():
        return None
    try:
        number = int(text)
    except ValueError:
        return None
    return number if number <= MAX_EMPLOYEE_NUMBER else None


def parse_row_date(value: Any) -> date | None:
    """Parse ISO (AAAA-MM-DD) or DD/MM/YYYY. Returns None when invalid."""
    if isinstance(value, datetime):
        return value.date()
    if isinstance(value, date):
        return value
    text = str(value).strip()
    try:
        if "/" in text:
            day, month, year = (int(part) for part in text.split("/"))
            return date(year, month, day)
        return datetime.fromisoformat(text.replace("Z", "+00:00")).date()
    except (ValueError, OverflowError):
        return None


def parse_positive(value: Any) -> Decimal | None:
    try:
        number = Decimal(str(value).strip())
    except InvalidOperation:
        return None
    if not number.is_finite() or number <= 0:
        return None
    return number


@dataclass
class ExistingRecords:
    """Snapshot of values already taken in the company (emails: globally)."""

    rfcs: set[str] = field(default_factory=set)
    curps: set[str] = field(default_factory=set)
    employee_numbers: set[int] = field(default_factory=set)
    emails: set[str] = field(default_factory=set)
    positions: set[str] = field(default_factory=set)
    calendars: set[str] = field(default_factory=set)


@dataclass
class ValidationReport:
    """Full validation outcome for a batch."""

    errors: list[dict[str, Any]] = field(default_factory=list)
    warnings: list[dict[str, Any]] = field(default_factory=list)

    @property
    def valid(self) -> bool:
        return not self.errors

    def error(self, row: int, field_name: str, message: str) -> None:
        self.errors.append({"row": row, "field": field_name, "error": message})

    def warning(self, row: int, field_name: str, message: str) -> None:
        self.warnings.append({"row": row, "field": field_name, "warning": message})

    def to_dict(self) -> dict[str, Any]:
        return {"valid": self.valid, "errors": self.errors, "warnings": self.warnings}


def validate_worker_rows(
    rows: Sequence[Mapping[str, Any]],
    existing: ExistingRecords | None = None,
) -> ValidationReport:
    """Validate a batch of worker rows. Rows are numbered from 1.

    Without ``existing`` only the format and in-batch checks run.
    """
    report = ValidationReport()
    _check_batch_duplicates(rows, report)

    for index, row in enumerate(rows, start=1):
        if not isinstance(row, Mapping):
            report.error(index, "row", "Fila inválida")
            continue
        _check_required(row, index, report)
        _check_formats(row, index, report)
        _check_enums(row, index, report)
        _check_warnings(row, index, report)
        if existing is not None:
            _check_existing(row, index, existing, report)

    return report


def _check_batch_duplicates(rows: Sequence[Mapping[str, Any]], report: ValidationReport) -> None:
    seen: dict[int, list[int]] = {}
    for index, row in enumerate(rows, start=1):
        if not isinstance(row, Mapping):
            continue
        number = parse_employee_number(employee_number_of(row))
        if number is not None:
            seen.setdefault(number, []).append(index)

    for number, positions in seen.items():
        if len(positions) > 1:
            listed = ", ".join(str(p) for p in positions)
            for position in positions:
                report.error(
                    position,
                    "numeroEmpleado",
                    f"Número de empleado {number} duplicado en las filas {listed}",
                )


def _check_required(row: Mapping[str, Any], index: int, report: ValidationReport) -> None:
    for key, label, alternate in REQUIRED_FIELDS:
        value = field_value(row, key, alternate)
        if value is None or (isinstance(value, str) and not value.strip()):
            report.error(index, key, f"{label} es requerido")


def _check_formats(row: Mapping[str, Any], index: int, report: ValidationReport) -> None:
    number = employee_number_of(row)
    if number not in (None, "") and parse_employee_number(number) is None:
        report.error(index, "numeroEmpleado", "Número de empleado debe ser numérico")

    rfc = row.get("rfc")
    if rfc and not RFC_PATTERN.match(str(rfc).strip()):
        report.error(index, "rfc", "RFC inválido. Formato esperado: 3-4 letras, 6 dígitos, 3 caracteres")

    curp = row.get("curp")
    if curp and not CURP_PATTERN.match(str(curp).strip().upper()):
        report.error(index, "curp", "CURP inválido. Verifique el formato")

    nss = row.get("nss")
    if nss and len(re.sub(r"\D", "", str(nss))) != 11:
        report.error(index, "nss", "NSS debe tener exactamente 11 dígitos")

    email = row.get("email")
    if email and not EMAIL_PATTERN.match(str(email).strip()):
        report.error(index, "email", "Formato de correo electrónico inválido")

    for key, label in DATE_FIELDS:
        value = row.get(key)
        if value and parse_row_date(value) is None:
            report.error(index, key, f"{label} tiene formato inválido. Use AAAA-MM-DD")

    for key, label in POSITIVE_FIELDS:
        value = row.get(key)
        if value not in (None, "") and parse_positive(value) is None:
            report.error(index, key, f"{label} debe ser un número mayor a 0")


def _check_enums(row: Mapping[str, Any], index: int, report: ValidationReport) -> None:
    for key, alternate, allowed, message in ENUM_FIELDS:
        value = field_value(row, key, alternate)
        if value and str(value).strip().upper() not in allowed:
            report.error(index, key, message)


def _check_warnings(row: Mapping[str, Any], index: int, report: ValidationReport) -> None:
    if not row.get("telefono"):
        report.warning(index, "telefono", "Teléfono no proporcionado")

    salary = parse_positive(row.get("salarioDiario")) if row.get("salarioDiario") else None
    zone = str(row.get("zonaGeografica") or "RESTO_PAIS").strip().upper()
    minimum = MINIMUM_DAILY_WAGE.get(zone)
    if salary is not None and minimum is not None and salary < minimum:
        report.warning(
            index,
            "salarioDiario",
            f"Salario diario menor al salario mínimo vigente ({minimum})",
        )


def _check_existing(
    row: Mapping[str, Any],
    index: int,
    existing: ExistingRecords,
    report: ValidationReport,
) -> None:
    rfc = str(row.get("rfc") or "").strip().upper()
    if rfc and rfc in existing.rfcs:
        report.error(index, "rfc", "El RFC ya está registrado en el sistema")

    curp = str(row.get("curp") or "").strip().upper()
    if curp and curp in existing.curps:
        report.error(index, "curp", "El CURP ya está registrado en el sistema")

    number = parse_employee_number(employee_number_of(row))
    if number is not None and number in existing.employee_numbers:
        report.error(index, "numeroEmpleado", "El número de empleado ya existe en esta empresa")

    position = str(row.get("puesto") or "").strip()
    if position and position.lower() not in existing.positions:
        report.error(
            index,
            "puesto",
            f'El puesto "{position}" no existe en el catálogo de la empresa',
        )

    calendar = str(row.get("calendario") or "").strip()
    if calendar and calendar.lower() not in existing.calendars:
        report.error(
            index,
            "calendario",
            f'El calendario "{calendar}" no existe en el catálogo de la empresa',
        )

    email = str(row.get("email") or "").strip().lower()
    if email and email in existing.emails:
        report.error(index, "email", "El correo electrónico ya está registrado en el sistema")


class WorkerValidationService:
    """Gathers existing company records and runs the batch validator."""

    def __init__(self, session: AsyncSession):
        self.session = session

    async def load_existing(
        self,
        company_id: UUID,
        rows: Sequence[Mapping[str, Any]],
    ) -> ExistingRecords:
        """Fetch only the values the batch could collide with."""
        mappings = [r for r in rows if isinstance(r, Mapping)]
        rfcs = {str(r["rfc"]).strip().upper() for r in mappings if r.get("rfc")}
        curps = {str(r["curp"]).strip().upper() for r in mappings if r.get("curp")}
        emails = {str(r["email"]).strip().lower() for r in mappings if r.get("email")}
        numbers = {
            n
            for n in (parse_employee_number(employee_number_of(r)) for r in mappings)
            if n is not None
        }

        existing = ExistingRecords()
        if rfcs:
            existing.rfcs = set(
                await self._scalars(
                    select(Employee.rfc).where(Employee.company_id == company_id, Employee.rfc.in_(rfcs))
                )
            )
        if curps:
            existing.curps = set(
                await self._scalars(
                    select(Employee.curp).where(
                        Employee.company_id == company_id, Employee.curp.in_(curps)
                    )
                )
            )
        if numbers:
            existing.employee_numbers = set(
                await self._scalars(
                    select(Employee.employee_number).where(
                        Employee.company_id == company_id,
                        Employee.employee_number.in_(numbers),
                    )
                )
            )
        if emails:
            existing.emails = set(
                await self._scalars(
                    select(func.lower(User.email)).where(func.lower(User.email).in_(emails))
                )
            )
        existing.positions = {
            name.lower()
            for name in await self._scalars(
                select(Position.name).where(
                    Position.company_id == company_id, Position.is_active.is_(True)
                )
            )
        }
        existing.calendars = {
            name.lower()
            for name in await self._scalars(
                select(PayrollCalendar.name).where(PayrollCalendar.company_id == company_id)
            )
        }
        return existing

    async def validate(
        self,
        user: User,
        company_id: UUID,
        rows: Sequence[Mapping[str, Any]],
    ) -> ValidationReport:
        if not rows:
            raise ValidationError("No se proporcionaron empleados para validar")
        authorize(user, Action.EMPLOYEE_MANAGE, company_id)
        existing = await self.load_existing(company_id, rows)
        return validate_worker_rows(rows, existing)

    async def _scalars(self, stmt: Any) -> list[Any]:
        result = await self.session.execute(stmt)
        return list(result.scalars())
