"""API routes."""

from nomina_engine.api.routes.auth import router as auth_router
from nomina_engine.api.routes.calendars import periods_router
from nomina_engine.api.routes.calendars import router as calendars_router
from nomina_engine.api.routes.companies import router as companies_router
from nomina_engine.api.routes.employees import router as employees_router
from nomina_engine.api.routes.health import router as health_router
from nomina_engine.api.routes.incidences import router as incidences_router
from nomina_engine.api.routes.invitations import router as invitations_router
from nomina_engine.api.routes.notifications import router as notifications_router
from nomina_engine.api.routes.payroll import router as payroll_router

__all__ = [
    "auth_router",
    "calendars_router",
    "periods_router",
    "companies_router",
    "employees_router",
    "health_router",
    "incidences_router",
    "invitations_router",
    "notifications_router",
    "payroll_router",
]
