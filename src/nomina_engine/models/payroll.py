"""Payroll run and payroll item models."""

from __future__ import annotations

from datetime import datetime
from decimal import Decimal
from uuid import UUID, uuid4

from sqlalchemy import (
    CheckConstraint,
    DateTime,
    ForeignKey,
    Numeric,
    String,
    Text,
    UniqueConstraint,
)
from sqlalchemy.orm import Mapped, mapped_column, relationship

from nomina_engine.models.base import Base, TimestampMixin, UpdatedAtMixin
from nomina_engine.models.enums import PayrollStatus, check_values


class Payroll(Base, TimestampMixin, UpdatedAtMixin):
    """Payroll run prepared by an operator and authorized by the client."""

    __tablename__ = "payroll"

    payroll_id: Mapped[UUID] = mapped_column(primary_key=True, default=uuid4)
    company_id: Mapped[UUID] = mapped_column(
        ForeignKey("company.company_id", ondelete="CASCADE"),
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
    period: Mapped[str] = mapped_column(String, nullable=False)
    status: Mapped[str] = mapped_column(
        String,
        nullable=False,
        default=PayrollStatus.DRAFT.value,
    )
    total_gross: Mapped[Decimal] = mapped_column(Numeric(14, 2), nullable=False, default=Decimal("0"))
    total_net: Mapped[Decimal] = mapped_column(Numeric(14, 2), nullable=False, default=Decimal("0"))
    created_by_user_id: Mapped[UUID | None] = mapped_column(
        ForeignKey("app_user.user_id", ondelete="SET NULL"),
        nullable=True,
    )
    authorized_by_user_id: Mapped[UUID | None] = mapped_column(
        ForeignKey("app_user.user_id", ondelete="SET NULL"),
        nullable=True,
    )
    authorized_at: Mapped[datetime | None] = mapped_column(DateTime(timezone=True), nullable=True)
    rejection_reason: Mapped[str | None] = mapped_column(Text, nullable=True)

    __table_args__ = (
        CheckConstraint(
            f"status IN ({check_values(PayrollStatus)})",
            name="payroll_status_check",
        ),
    )

    items: Mapped[list[PayrollItem]] = relationship(
        back_populates="payroll",
        cascade="all, delete-orphan",
    )


class PayrollItem(Base):
    """Per-employee totals inside a payroll run."""

    __tablename__ = "payroll_item"

    payroll_item_id: Mapped[UUID] = mapped_column(primary_key=True, default=uuid4)
    payroll_id: Mapped[UUID] = mapped_column(
        ForeignKey("payroll.payroll_id", ondelete="CASCADE"),
        nullable=False,
    )
    employee_id: Mapped[UUID] = mapped_column(
        ForeignKey("employee.employee_id", ondelete="CASCADE"),
        nullable=False,
    )
    gross: Mapped[Decimal] = mapped_column(Numeric(14, 2), nullable=False, default=Decimal("0"))
    deductions: Mapped[Decimal] = mapped_column(Numeric(14, 2), nullable=False, default=Decimal("0"))
    net: Mapped[Decimal] = mapped_column(Numeric(14, 2), nullable=False, default=Decimal("0"))

    __table_args__ = (
        UniqueConstraint("payroll_id", "employee_id", name="payroll_item_employee_unique"),
    )

    payroll: Mapped[Payroll] = relationship(back_populates="items")
