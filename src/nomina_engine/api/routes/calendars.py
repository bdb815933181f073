"""Payroll calendar and period endpoints."""

from __future__ import annotations

from typing import Annotated
from uuid import UUID

from fastapi import APIRouter, Path, Query, status

from nomina_engine.api.dependencies import CurrentUser, DbSession
from nomina_engine.api.schemas import (
    CalendarCreate,
    CalendarResponse,
    CalendarUpdate,
    CalendarWithPeriods,
    Envelope,
    ErrorResponse,
    PeriodResponse,
    PeriodStatusUpdate,
)
from nomina_engine.services.calendar_service import CalendarService

router = APIRouter(prefix="/payroll-calendars", tags=["payroll-calendars"])
periods_router = APIRouter(prefix="/payroll-periods", tags=["payroll-periods"])

# Periods returned inline when a calendar is created
PREVIEW_PERIODS = 5


# ============================================================================
# Calendars
# ============================================================================


@router.post(
    "",
    response_model=Envelope[CalendarWithPeriods],
    status_code=status.HTTP_201_CREATED,
    responses={400: {"model": ErrorResponse}, 403: {"model": ErrorResponse}},
)
async def create_calendar(
    db: DbSession,
    user: CurrentUser,
    payload: CalendarCreate,
) -> Envelope[CalendarWithPeriods]:
    """Create a calendar and generate its periods for the start year."""
    calendar, periods = await CalendarService(db).create_calendar(
        user,
        company_id=payload.company_id,
        name=payload.name,
        pay_frequency=payload.pay_frequency,
        start_date=payload.start_date,
        period_number=payload.period_number,
        days_before_close=payload.days_before_close,
        pay_natural_days=payload.pay_natural_days,
        truncate_first=payload.truncate_first,
    )
    await db.commit()
    return Envelope[CalendarWithPeriods](
        data=CalendarWithPeriods(
            calendar=CalendarResponse.model_validate(calendar),
            periods=[PeriodResponse.model_validate(p) for p in periods[:PREVIEW_PERIODS]],
            total_periods=len(periods),
        ),
        message=f"Calendario creado con {len(periods)} períodos",
    )


@router.get("", response_model=Envelope[list[CalendarResponse]])
async def list_calendars(
    db: DbSession,
    user: CurrentUser,
    company_id: Annotated[UUID, Query(alias="companyId")],
) -> Envelope[list[CalendarResponse]]:
    calendars = await CalendarService(db).list_calendars(user, company_id)
    return Envelope[list[CalendarResponse]](
        data=[CalendarResponse.model_validate(c) for c in calendars]
    )


@router.get(
    "/{calendar_id}",
    response_model=Envelope[CalendarResponse],
    responses={404: {"model": ErrorResponse}},
)
async def get_calendar(
    db: DbSession,
    user: CurrentUser,
    calendar_id: Annotated[UUID, Path()],
) -> Envelope[CalendarResponse]:
    calendar = await CalendarService(db).get_calendar_for(user, calendar_id)
    return Envelope[CalendarResponse](data=CalendarResponse.model_validate(calendar))


@router.put(
    "/{calendar_id}",
    response_model=Envelope[CalendarResponse],
    responses={400: {"model": ErrorResponse}, 404: {"model": ErrorResponse}},
)
async def update_calendar(
    db: DbSession,
    user: CurrentUser,
    calendar_id: Annotated[UUID, Path()],
    payload: CalendarUpdate,
) -> Envelope[CalendarResponse]:
    calendar = await CalendarService(db).update_calendar(
        user, calendar_id, **payload.model_dump(exclude_unset=True)
    )
    await db.commit()
    return Envelope[CalendarResponse](
        data=CalendarResponse.model_validate(calendar),
        message="Calendario actualizado",
    )


@router.delete(
    "/{calendar_id}",
    response_model=Envelope[None],
    responses={400: {"model": ErrorResponse}, 404: {"model": ErrorResponse}},
)
async def delete_calendar(
    db: DbSession,
    user: CurrentUser,
    calendar_id: Annotated[UUID, Path()],
) -> Envelope[None]:
    await CalendarService(db).delete_calendar(user, calendar_id)
    await db.commit()
    return Envelope[None](message="Calendario eliminado")


# ============================================================================
# Periods
# ============================================================================


@router.get("/{calendar_id}/periods", response_model=Envelope[list[PeriodResponse]])
async def list_periods(
    db: DbSession,
    user: CurrentUser,
    calendar_id: Annotated[UUID, Path()],
    include_finalized: Annotated[bool, Query(alias="includeFinalized")] = False,
) -> Envelope[list[PeriodResponse]]:
    service = CalendarService(db)
    await service.get_calendar_for(user, calendar_id)
    periods = await service.list_periods(calendar_id, include_finalized=include_finalized)
    return Envelope[list[PeriodResponse]](
        data=[PeriodResponse.model_validate(p) for p in periods]
    )


@router.get("/{calendar_id}/periods/current", response_model=Envelope[PeriodResponse])
async def get_current_period(
    db: DbSession,
    user: CurrentUser,
    calendar_id: Annotated[UUID, Path()],
) -> Envelope[PeriodResponse]:
    service = CalendarService(db)
    await service.get_calendar_for(user, calendar_id)
    period = await service.get_current_period(calendar_id)
    if period is None:
        return Envelope[PeriodResponse](message="No hay un período activo para la fecha actual")
    return Envelope[PeriodResponse](data=PeriodResponse.model_validate(period))


@periods_router.patch(
    "/{period_id}/status",
    response_model=Envelope[PeriodResponse],
    responses={
        400: {"model": ErrorResponse},
        403: {"model": ErrorResponse},
        404: {"model": ErrorResponse},
    },
)
async def change_period_status(
    db: DbSession,
    user: CurrentUser,
    period_id: Annotated[UUID, Path()],
    payload: PeriodStatusUpdate,
) -> Envelope[PeriodResponse]:
    period = await CalendarService(db).change_period_status(
        user, period_id, payload.status, payload.reason
    )
    await db.commit()
    return Envelope[PeriodResponse](
        data=PeriodResponse.model_validate(period),
        message=f"Estado del período actualizado a {period.status}",
    )
