"""Worker registry and bulk import endpoints."""

from __future__ import annotations

from typing import Annotated, Any
from uuid import UUID

from fastapi import APIRouter, Body, Path, Query, status

from nomina_engine.api.dependencies import CurrentUser, DbSession
from nomina_engine.api.schemas import (
    BulkImportResponse,
    EmployeeResponse,
    Envelope,
    ErrorResponse,
    ValidationReportResponse,
    WorkerRowsRequest,
)
from nomina_engine.errors import ValidationError
from nomina_engine.services.bulk_validation import WorkerValidationService
from nomina_engine.services.employee_service import EmployeeService

router = APIRouter(prefix="/employees", tags=["employees"])

_ERRORS = {
    400: {"model": ErrorResponse},
    403: {"model": ErrorResponse},
    404: {"model": ErrorResponse},
}


@router.post(
    "/companies/{company_id}/validate-bulk",
    response_model=Envelope[ValidationReportResponse],
    responses=_ERRORS,
)
async def validate_bulk(
    db: DbSession,
    user: CurrentUser,
    company_id: Annotated[UUID, Path()],
    payload: WorkerRowsRequest,
) -> Envelope[ValidationReportResponse]:
    """Dry run: report every problem in the batch without writing."""
    report = await WorkerValidationService(db).validate(user, company_id, payload.rows)
    message = (
        "Todos los registros son válidos"
        if report.valid
        else f"Se encontraron {len(report.errors)} errores"
    )
    return Envelope[ValidationReportResponse](
        data=ValidationReportResponse.model_validate(report.to_dict()),
        message=message,
    )


@router.post(
    "/companies/{company_id}/bulk",
    response_model=Envelope[BulkImportResponse],
    status_code=status.HTTP_201_CREATED,
    responses=_ERRORS,
)
async def bulk_create_employees(
    db: DbSession,
    user: CurrentUser,
    company_id: Annotated[UUID, Path()],
    payload: WorkerRowsRequest,
) -> Envelope[BulkImportResponse]:
    """Import the batch only when every row is valid."""
    result = await EmployeeService(db).bulk_create_employees(user, company_id, payload.rows)
    if not result.report.valid:
        raise ValidationError(
            f"Se encontraron {len(result.report.errors)} errores de validación",
            details=result.to_dict(),
        )
    await db.commit()
    return Envelope[BulkImportResponse](
        data=BulkImportResponse.model_validate(result.to_dict()),
        message=f"{len(result.created)} empleados registrados",
    )


@router.post(
    "/companies/{company_id}/employees",
    response_model=Envelope[EmployeeResponse],
    status_code=status.HTTP_201_CREATED,
    responses=_ERRORS,
)
async def create_employee(
    db: DbSession,
    user: CurrentUser,
    company_id: Annotated[UUID, Path()],
    data: Annotated[dict[str, Any], Body()],
) -> Envelope[EmployeeResponse]:
    employee = await EmployeeService(db).create_employee(user, company_id, data)
    await db.commit()
    return Envelope[EmployeeResponse](
        data=EmployeeResponse.model_validate(employee),
        message="Empleado registrado",
    )


@router.get(
    "/companies/{company_id}/employees",
    response_model=Envelope[list[EmployeeResponse]],
    responses=_ERRORS,
)
async def list_employees(
    db: DbSession,
    user: CurrentUser,
    company_id: Annotated[UUID, Path()],
    status_filter: Annotated[str | None, Query(alias="status")] = None,
) -> Envelope[list[EmployeeResponse]]:
    employees = await EmployeeService(db).list_employees(user, company_id, status_filter)
    return Envelope[list[EmployeeResponse]](
        data=[EmployeeResponse.model_validate(e) for e in employees]
    )


@router.delete(
    "/{employee_id}",
    response_model=Envelope[EmployeeResponse],
    responses=_ERRORS,
)
async def delete_employee(
    db: DbSession,
    user: CurrentUser,
    employee_id: Annotated[UUID, Path()],
) -> Envelope[EmployeeResponse]:
    """Soft delete: the worker is marked TERMINATED."""
    employee = await EmployeeService(db).delete_employee(user, employee_id)
    await db.commit()
    return Envelope[EmployeeResponse](
        data=EmployeeResponse.model_validate(employee),
        message="Empleado dado de baja",
    )
