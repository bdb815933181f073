"""Incidence model: absences, bonuses, overtime and deductions."""

from __future__ import annotations

from datetime import date, datetime
from decimal import Decimal
from typing import TYPE_CHECKING
from uuid import UUID, uuid4

from sqlalchemy import CheckConstraint, Date, DateTime, ForeignKey, Numeric, String, Text
from sqlalchemy.orm import Mapped, mapped_column, relationship

from nomina_engine.models.base import Base, TimestampMixin, UpdatedAtMixin
from nomina_engine.models.enums import IncidenceStatus, IncidenceType, check_values

if TYPE_CHECKING:
    from nomina_engine.models.employee import Employee


class Incidence(Base, TimestampMixin, UpdatedAtMixin):
    """Event affecting one employee's pay in a period."""

    __tablename__ = "incidence"

    incidence_id: Mapped[UUID] = mapped_column(primary_key=True, default=uuid4)
    company_id: Mapped[UUID] = mapped_column(
        ForeignKey("company.company_id", ondelete="CASCADE"),
        nullable=False,
    )
    employee_id: Mapped[UUID] = mapped_column(
        ForeignKey("employee.employee_id", ondelete="CASCADE"),
        nullable=False,
    )
    calendar_id: Mapped[UUID | None] = mapped_column(
        ForeignKey("payroll_calendar.calendar_id", ondelete="SET NULL"),
        nullable=True,
    )
    period_id: Mapped[UUID | None] = mapped_column(
        ForeignKey("payroll_calendar_period.period_id", ondelete="SET NULL"),
        nullable=True,
    )
    incidence_type: Mapped[str] = mapped_column(String, nullable=False)
    quantity: Mapped[Decimal] = mapped_column(Numeric(10, 2), nullable=False, default=Decimal("0"))
    amount: Mapped[Decimal | None] = mapped_column(Numeric(14, 2), nullable=True)
    incidence_date: Mapped[date] = mapped_column(Date, nullable=False)
    description: Mapped[str | None] = mapped_column(Text, nullable=True)
    status: Mapped[str] = mapped_column(
        String,
        nullable=False,
        default=IncidenceStatus.PENDING.value,
    )
    created_by_user_id: Mapped[UUID | None] = mapped_column(
        ForeignKey("app_user.user_id", ondelete="SET NULL"),
        nullable=True,
    )
    created_by_role: Mapped[str | None] = mapped_column(String, nullable=True)
    reviewed_by_user_id: Mapped[UUID | None] = mapped_column(
        ForeignKey("app_user.user_id", ondelete="SET NULL"),
        nullable=True,
    )
    reviewed_at: Mapped[datetime | None] = mapped_column(DateTime(timezone=True), nullable=True)

    __table_args__ = (
        CheckConstraint(
            f"incidence_type IN ({check_values(IncidenceType)})",
            name="incidence_type_check",
        ),
        CheckConstraint(
            f"status IN ({check_values(IncidenceStatus)})",
            name="incidence_status_check",
        ),
        CheckConstraint("quantity >= 0", name="incidence_quantity_check"),
    )

    employee: Mapped[Employee] = relationship()
