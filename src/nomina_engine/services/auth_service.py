"""Login and token-to-user resolution."""

from __future__ import annotations

import logging
from typing import Any
from uuid import UUID

from sqlalchemy import func, select
from sqlalchemy.ext.asyncio import AsyncSession

from nomina_engine.config import Settings, get_settings
from nomina_engine.errors import AuthenticationError, ValidationError
from nomina_engine.models import User
from nomina_engine.security import create_access_token, decode_access_token, verify_password

logger = logging.getLogger(__name__)


def token_claims(user: User) -> dict[str, Any]:
    return {
        "sub": str(user.user_id),
        "role": user.role,
        "companyId": str(user.company_id) if user.company_id else None,
    }


class AuthService:
    def __init__(self, session: AsyncSession, settings: Settings | None = None):
        self.session = session
        self.settings = settings or get_settings()

    async def login(self, email: str, password: str) -> dict[str, Any]:
        """Check credentials and issue an access token."""
        if not email or not password:
            raise ValidationError("Correo electrónico y contraseña son requeridos")

        result = await self.session.execute(
            select(User).where(func.lower(User.email) == email.strip().lower())
        )
        user = result.scalar_one_or_none()
        if user is None or not user.is_active or not verify_password(password, user.hashed_password):
            logger.info("Failed login for %s", email)
            raise AuthenticationError("Credenciales inválidas")

        token = create_access_token(token_claims(user), settings=self.settings)
        logger.info("User %s logged in", user.user_id)
        return {"accessToken": token, "tokenType": "bearer", "user": user}

    async def user_from_token(self, token: str) -> User:
        """Resolve a bearer token to an active user."""
        payload = decode_access_token(token, settings=self.settings)
        try:
            user_id = UUID(str(payload["sub"]))
        except ValueError as exc:
            raise AuthenticationError("Token inválido o expirado") from exc

        user = await self.session.get(User, user_id)
        if user is None or not user.is_active:
            raise AuthenticationError("Usuario inactivo o inexistente")
        return user
