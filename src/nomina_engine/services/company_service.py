"""Company onboarding."""

from __future__ import annotations

import logging
import re
from uuid import UUID

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from nomina_engine.errors import DuplicateError, InvalidTransitionError, NotFoundError, ValidationError
from nomina_engine.models import Company, CompanyStatus, InvitationToken, User
from nomina_engine.services.authorization import Action, authorize
from nomina_engine.services.bulk_validation import RFC_PATTERN
from nomina_engine.services.invitation_service import InvitationService

logger = logging.getLogger(__name__)

# Companies only move forward through onboarding
STATUS_ORDER = [CompanyStatus.IN_SETUP, CompanyStatus.CONFIGURED, CompanyStatus.ACTIVE]


class CompanyService:
    """Service for tenant companies.

    Operations:
    - create_company: Register a company in IN_SETUP, optionally inviting its client
    - advance_status: IN_SETUP → CONFIGURED → ACTIVE
    """

    def __init__(self, session: AsyncSession, invitations: InvitationService | None = None):
        self.session = session
        self.invitations = invitations or InvitationService(session)

    async def get_company(self, company_id: UUID) -> Company:
        company = await self.session.get(Company, company_id)
        if company is None:
            raise NotFoundError("Empresa no encontrada")
        return company

    async def create_company(
        self,
        user: User,
        *,
        name: str,
        rfc: str,
        email: str | None = None,
        invite_client: bool = False,
    ) -> tuple[Company, InvitationToken | None]:
        authorize(user, Action.COMPANY_MANAGE)

        name = (name or "").strip()
        rfc = re.sub(r"\s", "", rfc or "").upper()
        if not name:
            raise ValidationError("El nombre es requerido")
        if not RFC_PATTERN.match(rfc):
            raise ValidationError("RFC inválido. Formato esperado: 3-4 letras, 6 dígitos, 3 caracteres")
        if invite_client and not email:
            raise ValidationError("El correo electrónico es requerido para enviar la invitación")

        existing = await self.session.execute(select(Company.company_id).where(Company.rfc == rfc))
        if existing.first() is not None:
            raise DuplicateError("El RFC ya está registrado en el sistema")

        company = Company(
            name=name,
            rfc=rfc,
            email=email.strip().lower() if email else None,
            status=CompanyStatus.IN_SETUP.value,
        )
        self.session.add(company)
        await self.session.flush()
        logger.info("Company %s (%s) created by %s", company.company_id, rfc, user.user_id)

        invitation = None
        if invite_client:
            invitation = await self.invitations.create_invitation(user, company.company_id, email)
        return company, invitation

    async def advance_status(
        self,
        user: User,
        company_id: UUID,
        status: CompanyStatus | str | None = None,
    ) -> Company:
        """Move the company one onboarding step forward, or to ``status`` if ahead."""
        company = await self.get_company(company_id)
        authorize(user, Action.COMPANY_MANAGE, company_id)

        current = CompanyStatus(company.status)
        position = STATUS_ORDER.index(current)
        if status is None:
            if position == len(STATUS_ORDER) - 1:
                raise InvalidTransitionError(current.value, current.value, "el estado es final")
            target = STATUS_ORDER[position + 1]
        else:
            try:
                target = CompanyStatus(status)
            except ValueError as exc:
                raise ValidationError(f"Estado de empresa inválido: {status}") from exc
            if STATUS_ORDER.index(target) <= position:
                raise InvalidTransitionError(current.value, target.value)

        company.status = target.value
        await self.session.flush()
        logger.info("Company %s moved %s -> %s", company_id, current.value, target.value)
        return company
