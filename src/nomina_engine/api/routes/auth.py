"""Login and current-user endpoints."""

from __future__ import annotations

from fastapi import APIRouter

from nomina_engine.api.dependencies import CurrentUser, DbSession
from nomina_engine.api.schemas import Envelope, ErrorResponse, LoginRequest, TokenResponse, UserResponse
from nomina_engine.services.auth_service import AuthService

router = APIRouter(prefix="/auth", tags=["auth"])


@router.post(
    "/login",
    response_model=Envelope[TokenResponse],
    responses={401: {"model": ErrorResponse}},
)
async def login(db: DbSession, payload: LoginRequest) -> Envelope[TokenResponse]:
    """Exchange email and password for a bearer token."""
    result = await AuthService(db).login(payload.email, payload.password)
    return Envelope[TokenResponse](
        data=TokenResponse(
            access_token=result["accessToken"],
            token_type=result["tokenType"],
            user=UserResponse.model_validate(result["user"]),
        ),
        message="Inicio de sesión exitoso",
    )


@router.get("/me", response_model=Envelope[UserResponse])
async def me(user: CurrentUser) -> Envelope[UserResponse]:
    return Envelope[UserResponse](data=UserResponse.model_validate(user))
