"""Tests for company onboarding, invitations and login."""

from dataclasses import replace
from datetime import timedelta

import pytest

from nomina_engine.config import get_settings
from nomina_engine.errors import (
    AuthenticationError,
    AuthorizationError,
    DuplicateError,
    InvalidTransitionError,
    ValidationError,
)
from nomina_engine.models import utcnow
from nomina_engine.security import create_access_token, decode_access_token
from nomina_engine.services.auth_service import AuthService, token_claims
from nomina_engine.services.company_service import CompanyService
from nomina_engine.services.invitation_service import InvitationService
from tests.factories import TEST_PASSWORD


class TestCompanyService:
    async def test_create_with_invitation(self, session, operator_user):
        company, invitation = await CompanyService(session).create_company(
            operator_user,
            name="Textiles del Bajío",
            rfc="tba 030303 ef4",
            email="Direccion@TBajio.mx",
            invite_client=True,
        )

        assert company.rfc == "TBA030303EF4"
        assert company.status == "IN_SETUP"
        assert company.email == "direccion@tbajio.mx"
        assert invitation.email == "direccion@tbajio.mx"
        assert invitation.role == "CLIENT"
        assert invitation.company_id == company.company_id
        assert len(invitation.token) == 64

    async def test_duplicate_rfc(self, session, admin_user, company):
        with pytest.raises(DuplicateError):
            await CompanyService(session).create_company(
                admin_user, name="Otra", rfc=company.rfc
            )

    async def test_invalid_rfc(self, session, admin_user):
        with pytest.raises(ValidationError):
            await CompanyService(session).create_company(admin_user, name="Otra", rfc="123")

    async def test_invite_requires_email(self, session, admin_user):
        with pytest.raises(ValidationError):
            await CompanyService(session).create_company(
                admin_user, name="Otra", rfc="OTR040404GH5", invite_client=True
            )

    async def test_client_cannot_create(self, session, client_user):
        with pytest.raises(AuthorizationError):
            await CompanyService(session).create_company(
                client_user, name="Otra", rfc="OTR040404GH5"
            )

    async def test_status_moves_forward_only(self, session, operator_user):
        service = CompanyService(session)
        company, _ = await service.create_company(operator_user, name="Nueva", rfc="NUE050505IJ6")

        assert (await service.advance_status(operator_user, company.company_id)).status == "CONFIGURED"
        assert (await service.advance_status(operator_user, company.company_id)).status == "ACTIVE"

        with pytest.raises(InvalidTransitionError) as exc_info:
            await service.advance_status(operator_user, company.company_id)
        assert "el estado es final" in exc_info.value.message

    async def test_status_cannot_go_back(self, session, operator_user, company):
        with pytest.raises(InvalidTransitionError):
            await CompanyService(session).advance_status(operator_user, company.company_id, "IN_SETUP")


class TestInvitations:
    @pytest.fixture
    async def invitation(self, session, operator_user, company):
        invitation = await InvitationService(session).create_invitation(
            operator_user, company.company_id, "nuevo@cnorte.mx"
        )
        await session.commit()
        return invitation

    async def test_validate(self, session, invitation, company):
        status = await InvitationService(session).validate_invitation(invitation.token)

        assert status == {
            "valid": True,
            "email": "nuevo@cnorte.mx",
            "companyId": str(company.company_id),
        }
        assert await InvitationService(session).validate_invitation("no-existe") == {"valid": False}

    async def test_accept_creates_user_once(self, session, invitation, company):
        service = InvitationService(session)
        user = await service.accept_invitation(invitation.token, "Nuevo Cliente", "contraseña1")

        assert user.email == "nuevo@cnorte.mx"
        assert user.role == "CLIENT"
        assert user.company_id == company.company_id
        assert user.hashed_password != "contraseña1"
        assert invitation.used is True
        assert invitation.used_at is not None

        # Single use
        assert await service.validate_invitation(invitation.token) == {"valid": False}
        with pytest.raises(ValidationError) as exc_info:
            await service.accept_invitation(invitation.token, "Otra Persona", "contraseña2")
        assert exc_info.value.message == "Token inválido o expirado"

    async def test_expired(self, session, invitation):
        invitation.expires_at = utcnow() - timedelta(minutes=1)
        await session.commit()

        service = InvitationService(session)
        assert await service.validate_invitation(invitation.token) == {"valid": False}
        with pytest.raises(ValidationError):
            await service.accept_invitation(invitation.token, "Tarde", "contraseña1")

    async def test_expiry_window_from_settings(self, session, operator_user, company):
        settings = replace(get_settings(), invitation_expires_hours=1)
        invitation = await InvitationService(session, settings).create_invitation(
            operator_user, company.company_id, "breve@cnorte.mx"
        )

        assert invitation.expires_at - utcnow() <= timedelta(hours=1)

    @pytest.mark.parametrize(
        "name, password, message",
        [
            ("", "contraseña1", "Todos los campos son requeridos"),
            ("Nombre", "corta", "La contraseña debe tener al menos 8 caracteres"),
        ],
    )
    async def test_accept_input_checks(self, session, invitation, name, password, message):
        with pytest.raises(ValidationError) as exc_info:
            await InvitationService(session).accept_invitation(invitation.token, name, password)

        assert exc_info.value.message == message
        assert invitation.used is False

    async def test_email_already_registered(self, session, operator_user, company, client_user):
        service = InvitationService(session)
        invitation = await service.create_invitation(operator_user, company.company_id, client_user.email)

        with pytest.raises(DuplicateError):
            await service.accept_invitation(invitation.token, "Duplicado", "contraseña1")

    async def test_invalid_role(self, session, operator_user, company):
        with pytest.raises(ValidationError):
            await InvitationService(session).create_invitation(
                operator_user, company.company_id, "x@cnorte.mx", role="SUPERUSER"
            )


class TestAuth:
    async def test_login(self, session, client_user):
        result = await AuthService(session).login("CLIENTE@cnorte.mx ", TEST_PASSWORD)

        assert result["tokenType"] == "bearer"
        assert result["user"] is client_user
        claims = decode_access_token(result["accessToken"])
        assert claims["sub"] == str(client_user.user_id)
        assert claims["role"] == "CLIENT"
        assert claims["companyId"] == str(client_user.company_id)

    async def test_wrong_password(self, session, client_user):
        with pytest.raises(AuthenticationError) as exc_info:
            await AuthService(session).login(client_user.email, "incorrecta")

        assert exc_info.value.message == "Credenciales inválidas"

    async def test_inactive_user(self, session, client_user):
        client_user.is_active = False
        await session.commit()

        with pytest.raises(AuthenticationError):
            await AuthService(session).login(client_user.email, TEST_PASSWORD)

    async def test_missing_fields(self, session):
        with pytest.raises(ValidationError):
            await AuthService(session).login("", "")

    async def test_user_from_token(self, session, operator_user):
        token = create_access_token(token_claims(operator_user))

        assert await AuthService(session).user_from_token(token) is operator_user

    async def test_expired_token(self, session, operator_user):
        token = create_access_token(token_claims(operator_user), expires_delta=timedelta(seconds=-5))

        with pytest.raises(AuthenticationError):
            await AuthService(session).user_from_token(token)

    async def test_token_with_other_secret(self, session, operator_user):
        settings = replace(get_settings(), jwt_secret_key="otra-clave")
        token = create_access_token(token_claims(operator_user), settings=settings)

        with pytest.raises(AuthenticationError):
            await AuthService(session).user_from_token(token)
