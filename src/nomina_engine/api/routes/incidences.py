"""Incidence capture and approval endpoints."""

from __future__ import annotations

from typing import Annotated, Any
from uuid import UUID

from fastapi import APIRouter, Body, Path, Query, status

from nomina_engine.api.dependencies import CurrentUser, DbSession
from nomina_engine.api.schemas import (
    Envelope,
    ErrorResponse,
    IncidenceBulkRequest,
    IncidenceResponse,
    RejectRequest,
)
from nomina_engine.services.incidence_service import IncidenceService

router = APIRouter(prefix="/incidencias", tags=["incidencias"])

_ERRORS = {
    400: {"model": ErrorResponse},
    403: {"model": ErrorResponse},
    404: {"model": ErrorResponse},
}


def _many(incidences: list[Any]) -> Envelope[list[IncidenceResponse]]:
    return Envelope[list[IncidenceResponse]](
        data=[IncidenceResponse.model_validate(i) for i in incidences]
    )


@router.post(
    "/companies/{company_id}/incidencias/bulk",
    response_model=Envelope[dict[str, Any]],
    status_code=status.HTTP_201_CREATED,
    responses=_ERRORS,
)
async def bulk_create_incidences(
    db: DbSession,
    user: CurrentUser,
    company_id: Annotated[UUID, Path()],
    payload: IncidenceBulkRequest,
) -> Envelope[dict[str, Any]]:
    """Create incidences from uploaded rows; unmatched employees are reported."""
    result = await IncidenceService(db).bulk_create(user, company_id, payload.rows)
    await db.commit()
    return Envelope[dict[str, Any]](
        data=result.to_dict(),
        message=f"{len(result.created)} incidencias registradas",
    )


@router.get(
    "/companies/{company_id}/incidencias",
    response_model=Envelope[list[IncidenceResponse]],
    responses=_ERRORS,
)
async def list_incidences(
    db: DbSession,
    user: CurrentUser,
    company_id: Annotated[UUID, Path()],
    calendar_id: Annotated[UUID | None, Query(alias="calendarId")] = None,
    period_id: Annotated[UUID | None, Query(alias="periodId")] = None,
    status_filter: Annotated[str | None, Query(alias="status")] = None,
) -> Envelope[list[IncidenceResponse]]:
    incidences = await IncidenceService(db).list_incidences(
        user,
        company_id,
        calendar_id=calendar_id,
        period_id=period_id,
        status=status_filter,
    )
    return _many(incidences)


@router.get(
    "/companies/{company_id}/incidencias/pending",
    response_model=Envelope[list[IncidenceResponse]],
    responses=_ERRORS,
)
async def list_pending_incidences(
    db: DbSession,
    user: CurrentUser,
    company_id: Annotated[UUID, Path()],
) -> Envelope[list[IncidenceResponse]]:
    return _many(await IncidenceService(db).list_pending(user, company_id))


@router.get(
    "/companies/{company_id}/incidencias/history",
    response_model=Envelope[list[IncidenceResponse]],
    responses=_ERRORS,
)
async def incidence_history(
    db: DbSession,
    user: CurrentUser,
    company_id: Annotated[UUID, Path()],
) -> Envelope[list[IncidenceResponse]]:
    return _many(await IncidenceService(db).approval_history(user, company_id))


@router.put(
    "/{incidence_id}",
    response_model=Envelope[IncidenceResponse],
    responses=_ERRORS,
)
async def update_incidence(
    db: DbSession,
    user: CurrentUser,
    incidence_id: Annotated[UUID, Path()],
    changes: Annotated[dict[str, Any], Body()],
) -> Envelope[IncidenceResponse]:
    incidence = await IncidenceService(db).update_incidence(user, incidence_id, changes)
    await db.commit()
    return Envelope[IncidenceResponse](
        data=IncidenceResponse.model_validate(incidence),
        message="Incidencia actualizada",
    )


@router.delete(
    "/{incidence_id}",
    response_model=Envelope[None],
    responses=_ERRORS,
)
async def delete_incidence(
    db: DbSession,
    user: CurrentUser,
    incidence_id: Annotated[UUID, Path()],
) -> Envelope[None]:
    await IncidenceService(db).delete_incidence(user, incidence_id)
    await db.commit()
    return Envelope[None](message="Incidencia eliminada")


@router.post(
    "/{incidence_id}/approve",
    response_model=Envelope[IncidenceResponse],
    responses=_ERRORS,
)
async def approve_incidence(
    db: DbSession,
    user: CurrentUser,
    incidence_id: Annotated[UUID, Path()],
) -> Envelope[IncidenceResponse]:
    incidence = await IncidenceService(db).approve(user, incidence_id)
    await db.commit()
    return Envelope[IncidenceResponse](
        data=IncidenceResponse.model_validate(incidence),
        message="Incidencia aprobada",
    )


@router.post(
    "/{incidence_id}/reject",
    response_model=Envelope[IncidenceResponse],
    responses=_ERRORS,
)
async def reject_incidence(
    db: DbSession,
    user: CurrentUser,
    incidence_id: Annotated[UUID, Path()],
    payload: RejectRequest,
) -> Envelope[IncidenceResponse]:
    incidence = await IncidenceService(db).reject(user, incidence_id, payload.reason)
    await db.commit()
    return Envelope[IncidenceResponse](
        data=IncidenceResponse.model_validate(incidence),
        message="Incidencia rechazada",
    )
