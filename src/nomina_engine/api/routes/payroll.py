"""Payroll drafting and client authorization endpoints."""

from __future__ import annotations

from typing import Annotated
from uuid import UUID

from fastapi import APIRouter, Path, status

from nomina_engine.api.dependencies import CurrentUser, DbSession
from nomina_engine.api.schemas import (
    Envelope,
    ErrorResponse,
    PayrollCreate,
    PayrollResponse,
    RejectRequest,
)
from nomina_engine.services.payroll_approval_service import PayrollApprovalService

router = APIRouter(prefix="/payroll", tags=["payroll"])

_ERRORS = {
    400: {"model": ErrorResponse},
    403: {"model": ErrorResponse},
    404: {"model": ErrorResponse},
}


# ============================================================================
# Operator
# ============================================================================


@router.post(
    "",
    response_model=Envelope[PayrollResponse],
    status_code=status.HTTP_201_CREATED,
    responses=_ERRORS,
)
async def create_payroll(
    db: DbSession,
    user: CurrentUser,
    payload: PayrollCreate,
) -> Envelope[PayrollResponse]:
    payroll = await PayrollApprovalService(db).create_payroll(
        user,
        payload.company_id,
        period_id=payload.period_id,
        period_label=payload.period,
    )
    await db.commit()
    return Envelope[PayrollResponse](
        data=PayrollResponse.model_validate(payroll),
        message="Nómina creada en borrador",
    )


@router.post("/{payroll_id}/submit", response_model=Envelope[PayrollResponse], responses=_ERRORS)
async def submit_payroll(
    db: DbSession,
    user: CurrentUser,
    payroll_id: Annotated[UUID, Path()],
) -> Envelope[PayrollResponse]:
    payroll = await PayrollApprovalService(db).submit_for_authorization(user, payroll_id)
    await db.commit()
    return Envelope[PayrollResponse](
        data=PayrollResponse.model_validate(payroll),
        message="Nómina enviada a autorización",
    )


# ============================================================================
# Client
# ============================================================================


@router.post("/{payroll_id}/approve", response_model=Envelope[PayrollResponse], responses=_ERRORS)
async def approve_payroll(
    db: DbSession,
    user: CurrentUser,
    payroll_id: Annotated[UUID, Path()],
) -> Envelope[PayrollResponse]:
    payroll = await PayrollApprovalService(db).approve(user, payroll_id)
    await db.commit()
    return Envelope[PayrollResponse](
        data=PayrollResponse.model_validate(payroll),
        message="Nómina autorizada",
    )


@router.post("/{payroll_id}/reject", response_model=Envelope[PayrollResponse], responses=_ERRORS)
async def reject_payroll(
    db: DbSession,
    user: CurrentUser,
    payroll_id: Annotated[UUID, Path()],
    payload: RejectRequest,
) -> Envelope[PayrollResponse]:
    payroll = await PayrollApprovalService(db).reject(user, payroll_id, payload.reason)
    await db.commit()
    return Envelope[PayrollResponse](
        data=PayrollResponse.model_validate(payroll),
        message="Nómina rechazada",
    )


@router.get(
    "/companies/{company_id}/pending",
    response_model=Envelope[list[PayrollResponse]],
    responses=_ERRORS,
)
async def list_pending_payrolls(
    db: DbSession,
    user: CurrentUser,
    company_id: Annotated[UUID, Path()],
) -> Envelope[list[PayrollResponse]]:
    payrolls = await PayrollApprovalService(db).list_pending(user, company_id)
    return Envelope[list[PayrollResponse]](
        data=[PayrollResponse.model_validate(p) for p in payrolls]
    )


@router.get(
    "/companies/{company_id}/history",
    response_model=Envelope[list[PayrollResponse]],
    responses=_ERRORS,
)
async def payroll_history(
    db: DbSession,
    user: CurrentUser,
    company_id: Annotated[UUID, Path()],
) -> Envelope[list[PayrollResponse]]:
    payrolls = await PayrollApprovalService(db).approval_history(user, company_id)
    return Envelope[list[PayrollResponse]](
        data=[PayrollResponse.model_validate(p) for p in payrolls]
    )
