"""Tests for the role/company authorization policy."""

from dataclasses import dataclass
from uuid import UUID, uuid4

import pytest

from nomina_engine.errors import AuthorizationError
from nomina_engine.services.authorization import Action, authorize, is_allowed

COMPANY = uuid4()
OTHER_COMPANY = uuid4()


@dataclass
class FakeUser:
    role: str
    company_id: UUID | None = None


ADMIN = FakeUser("ADMIN")
OPERATOR = FakeUser("OPERATOR")
CLIENT = FakeUser("CLIENT", COMPANY)
HEAD = FakeUser("DEPARTMENT_HEAD", COMPANY)
EMPLOYEE = FakeUser("EMPLOYEE", COMPANY)


class TestStaffRoles:
    @pytest.mark.parametrize("user", [ADMIN, OPERATOR])
    def test_staff_act_on_any_company(self, user):
        authorize(user, Action.CALENDAR_MANAGE, COMPANY)
        authorize(user, Action.CALENDAR_MANAGE, OTHER_COMPANY)
        authorize(user, Action.PAYROLL_PREPARE, OTHER_COMPANY)
        authorize(user, Action.COMPANY_MANAGE)

    def test_staff_cannot_review(self):
        with pytest.raises(AuthorizationError) as exc_info:
            authorize(OPERATOR, Action.PAYROLL_REVIEW, COMPANY)

        assert exc_info.value.message == "Solo el cliente puede autorizar o rechazar nóminas"
        assert exc_info.value.status_code == 403
        assert is_allowed(ADMIN, Action.INCIDENCE_REVIEW, COMPANY) is False


class TestCompanyScopedRoles:
    def test_client_own_company_only(self):
        authorize(CLIENT, Action.PAYROLL_REVIEW, COMPANY)
        authorize(CLIENT, Action.INCIDENCE_REVIEW, COMPANY)

        with pytest.raises(AuthorizationError) as exc_info:
            authorize(CLIENT, Action.PAYROLL_REVIEW, OTHER_COMPANY)

        assert exc_info.value.message == "No tienes acceso a esta empresa"

    def test_missing_company_is_denied(self):
        assert is_allowed(CLIENT, Action.CALENDAR_READ, None) is False

    def test_client_cannot_prepare_payroll(self):
        with pytest.raises(AuthorizationError) as exc_info:
            authorize(CLIENT, Action.PAYROLL_PREPARE, COMPANY)

        assert exc_info.value.message == "Solo el operador puede preparar nóminas"

    def test_department_head(self):
        assert is_allowed(HEAD, Action.INCIDENCE_CREATE, COMPANY) is True
        assert is_allowed(HEAD, Action.INCIDENCE_REVIEW, COMPANY) is False
        assert is_allowed(HEAD, Action.CALENDAR_MANAGE, COMPANY) is False

    def test_employee_reads_calendars_only(self):
        assert is_allowed(EMPLOYEE, Action.CALENDAR_READ, COMPANY) is True
        assert is_allowed(EMPLOYEE, Action.INCIDENCE_CREATE, COMPANY) is False

    def test_unknown_role_is_denied(self):
        stranger = FakeUser("AUDITOR", COMPANY)

        assert is_allowed(stranger, Action.CALENDAR_READ, COMPANY) is False
        with pytest.raises(AuthorizationError) as exc_info:
            authorize(stranger, Action.CALENDAR_READ, COMPANY)

        assert exc_info.value.details == {"action": "calendar.read", "role": "AUDITOR"}
