"""Public invitation endpoints used by the account setup page."""

from __future__ import annotations

from typing import Annotated

from fastapi import APIRouter, Path, status

from nomina_engine.api.dependencies import DbSession
from nomina_engine.api.schemas import (
    Envelope,
    ErrorResponse,
    InvitationAccept,
    InvitationStatus,
    UserResponse,
)
from nomina_engine.errors import ValidationError
from nomina_engine.services.invitation_service import InvitationService

router = APIRouter(prefix="/invitations", tags=["invitations"])


@router.get("/{token}", response_model=Envelope[InvitationStatus])
async def validate_invitation(
    db: DbSession,
    token: Annotated[str, Path()],
) -> Envelope[InvitationStatus]:
    result = await InvitationService(db).validate_invitation(token)
    return Envelope[InvitationStatus](
        data=InvitationStatus.model_validate(result),
        message="Token válido" if result["valid"] else "Token inválido o expirado",
    )


@router.post(
    "/{token}/accept",
    response_model=Envelope[UserResponse],
    status_code=status.HTTP_201_CREATED,
    responses={400: {"model": ErrorResponse}, 409: {"model": ErrorResponse}},
)
async def accept_invitation(
    db: DbSession,
    token: Annotated[str, Path()],
    payload: InvitationAccept,
) -> Envelope[UserResponse]:
    """Create the invited account and consume the token."""
    if payload.confirm_password is not None and payload.confirm_password != payload.password:
        raise ValidationError("Las contraseñas no coinciden")

    user = await InvitationService(db).accept_invitation(token, payload.name, payload.password)
    await db.commit()
    return Envelope[UserResponse](
        data=UserResponse.model_validate(user),
        message="Cuenta configurada exitosamente",
    )
