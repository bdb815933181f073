"""Company onboarding endpoints."""

from __future__ import annotations

from typing import Annotated
from uuid import UUID

from fastapi import APIRouter, Path, status

from nomina_engine.api.dependencies import CurrentUser, DbSession
from nomina_engine.api.schemas import (
    AdvanceStatusRequest,
    CompanyCreate,
    CompanyResponse,
    Envelope,
    ErrorResponse,
    InvitationCreate,
    InvitationResponse,
)
from nomina_engine.services.company_service import CompanyService
from nomina_engine.services.invitation_service import InvitationService

router = APIRouter(prefix="/companies", tags=["companies"])


@router.post(
    "",
    response_model=Envelope[CompanyResponse],
    status_code=status.HTTP_201_CREATED,
    responses={400: {"model": ErrorResponse}, 409: {"model": ErrorResponse}},
)
async def create_company(
    db: DbSession,
    user: CurrentUser,
    payload: CompanyCreate,
) -> Envelope[CompanyResponse]:
    company, invitation = await CompanyService(db).create_company(
        user,
        name=payload.name,
        rfc=payload.rfc,
        email=payload.email,
        invite_client=payload.invite_client,
    )
    await db.commit()
    message = "Empresa creada exitosamente"
    if invitation is not None:
        message += f". Invitación enviada a {invitation.email}"
    return Envelope[CompanyResponse](data=CompanyResponse.model_validate(company), message=message)


@router.post(
    "/{company_id}/advance-status",
    response_model=Envelope[CompanyResponse],
    responses={400: {"model": ErrorResponse}, 404: {"model": ErrorResponse}},
)
async def advance_status(
    db: DbSession,
    user: CurrentUser,
    company_id: Annotated[UUID, Path()],
    payload: AdvanceStatusRequest | None = None,
) -> Envelope[CompanyResponse]:
    company = await CompanyService(db).advance_status(
        user, company_id, payload.status if payload else None
    )
    await db.commit()
    return Envelope[CompanyResponse](data=CompanyResponse.model_validate(company))


@router.post(
    "/{company_id}/invitations",
    response_model=Envelope[InvitationResponse],
    status_code=status.HTTP_201_CREATED,
    responses={400: {"model": ErrorResponse}, 404: {"model": ErrorResponse}},
)
async def create_invitation(
    db: DbSession,
    user: CurrentUser,
    company_id: Annotated[UUID, Path()],
    payload: InvitationCreate,
) -> Envelope[InvitationResponse]:
    invitation = await InvitationService(db).create_invitation(
        user,
        company_id,
        payload.email,
        role=payload.role,
        department_id=payload.department_id,
    )
    await db.commit()
    return Envelope[InvitationResponse](
        data=InvitationResponse.model_validate(invitation),
        message=f"Invitación enviada a {invitation.email}",
    )
