"""Invitation tokens for account setup."""

from __future__ import annotations

import logging
import secrets
from datetime import datetime, timedelta, timezone
from typing import Any
from uuid import UUID

from sqlalchemy import func, select
from sqlalchemy.ext.asyncio import AsyncSession

from nomina_engine.config import Settings, get_settings
from nomina_engine.errors import DuplicateError, NotFoundError, ValidationError
from nomina_engine.models import Company, InvitationToken, User, UserRole, utcnow
from nomina_engine.security import hash_password
from nomina_engine.services.authorization import Action, authorize

logger = logging.getLogger(__name__)

MIN_PASSWORD_LENGTH = 8


def _aware(value: datetime) -> datetime:
    # SQLite hands back naive datetimes
    return value if value.tzinfo else value.replace(tzinfo=timezone.utc)


class InvitationService:
    """Service for invitation-based onboarding.

    Operations:
    - create_invitation: Issue a single-use token for an email and company
    - validate_invitation: Check a token without consuming it
    - accept_invitation: Create the user and consume the token
    """

    def __init__(self, session: AsyncSession, settings: Settings | None = None):
        self.session = session
        self.settings = settings or get_settings()

    def invitation_link(self, token: str) -> str:
        return f"{self.settings.frontend_url}/setup-account?token={token}"

    async def create_invitation(
        self,
        user: User | None,
        company_id: UUID,
        email: str,
        role: UserRole | str = UserRole.CLIENT,
        department_id: UUID | None = None,
    ) -> InvitationToken:
        """Issue an invitation. ``user`` is None for system-initiated invites."""
        email = (email or "").strip().lower()
        if not email or "@" not in email:
            raise ValidationError("Formato de correo electrónico inválido")
        try:
            role = UserRole(role)
        except ValueError as exc:
            raise ValidationError(f"Rol inválido: {role}") from exc

        if user is not None:
            authorize(user, Action.COMPANY_MANAGE, company_id)
        company = await self.session.get(Company, company_id)
        if company is None:
            raise NotFoundError("Empresa no encontrada")

        invitation = InvitationToken(
            token=secrets.token_hex(32),
            email=email,
            company_id=company_id,
            role=role.value,
            department_id=department_id,
            expires_at=utcnow() + timedelta(hours=self.settings.invitation_expires_hours),
        )
        self.session.add(invitation)
        await self.session.flush()

        # Delivery is external; the link is logged for whoever sends it
        logger.info(
            "Invitation for %s to company %s (%s) expires in %dh: %s",
            email,
            company.name,
            role.value,
            self.settings.invitation_expires_hours,
            self.invitation_link(invitation.token),
        )
        return invitation

    async def _find_usable(self, token: str) -> InvitationToken | None:
        if not token:
            return None
        result = await self.session.execute(
            select(InvitationToken).where(InvitationToken.token == token)
        )
        invitation = result.scalar_one_or_none()
        if invitation is None or invitation.used:
            return None
        if utcnow() > _aware(invitation.expires_at):
            return None
        return invitation

    async def validate_invitation(self, token: str) -> dict[str, Any]:
        invitation = await self._find_usable(token)
        if invitation is None:
            return {"valid": False}
        return {
            "valid": True,
            "email": invitation.email,
            "companyId": str(invitation.company_id),
        }

    async def accept_invitation(self, token: str, name: str, password: str) -> User:
        """Create the invited user. The token cannot be used again."""
        name = (name or "").strip()
        if not name or not password:
            raise ValidationError("Todos los campos son requeridos")
        if len(password) < MIN_PASSWORD_LENGTH:
            raise ValidationError("La contraseña debe tener al menos 8 caracteres")

        invitation = await self._find_usable(token)
        if invitation is None:
            raise ValidationError("Token inválido o expirado")

        taken = await self.session.execute(
            select(User.user_id).where(func.lower(User.email) == invitation.email)
        )
        if taken.first() is not None:
            raise DuplicateError("El correo electrónico ya está registrado")

        user = User(
            email=invitation.email,
            name=name,
            hashed_password=hash_password(password),
            role=invitation.role,
            company_id=invitation.company_id,
            department_id=invitation.department_id,
        )
        self.session.add(user)
        invitation.used = True
        invitation.used_at = utcnow()
        await self.session.flush()

        logger.info("Invitation %s accepted by %s", invitation.invitation_id, user.email)
        return user
