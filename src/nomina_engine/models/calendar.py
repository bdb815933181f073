"""Payroll calendar and period models."""

from __future__ import annotations

from datetime import date, datetime
from typing import TYPE_CHECKING
from uuid import UUID, uuid4

from sqlalchemy import (
    Boolean,
    CheckConstraint,
    Date,
    DateTime,
    ForeignKey,
    Integer,
    String,
    Text,
    UniqueConstraint,
)
from sqlalchemy.orm import Mapped, mapped_column, relationship

from nomina_engine.models.base import Base, TimestampMixin
from nomina_engine.models.enums import PayFrequency, PeriodStatus, check_values

if TYPE_CHECKING:
    from nomina_engine.models.company import Company


class PayrollCalendar(Base, TimestampMixin):
    """Pay schedule for a group of employees of one company."""

    __tablename__ = "payroll_calendar"

    calendar_id: Mapped[UUID] = mapped_column(primary_key=True, default=uuid4)
    company_id: Mapped[UUID] = mapped_column(
        ForeignKey("company.company_id", ondelete="CASCADE"),
        nullable=False,
    )
    name: Mapped[str] = mapped_column(String, nullable=False)
    pay_frequency: Mapped[str] = mapped_column(String, nullable=False)
    start_date: Mapped[date] = mapped_column(Date, nullable=False)
    period_number: Mapped[int] = mapped_column(Integer, nullable=False, default=1)
    days_before_close: Mapped[int] = mapped_column(Integer, nullable=False, default=0)
    pay_natural_days: Mapped[bool] = mapped_column(Boolean, nullable=False, default=False)

    __table_args__ = (
        UniqueConstraint("company_id", "name", name="payroll_calendar_company_name_unique"),
        CheckConstraint(
            f"pay_frequency IN ({check_values(PayFrequency)})",
            name="payroll_calendar_frequency_check",
        ),
        CheckConstraint("period_number >= 1", name="payroll_calendar_period_number_check"),
    )

    # Relationships
    company: Mapped[Company] = relationship(back_populates="calendars")
    periods: Mapped[list[PayrollCalendarPeriod]] = relationship(
        back_populates="calendar",
        cascade="all, delete-orphan",
        order_by="PayrollCalendarPeriod.number",
    )


class PayrollCalendarPeriod(Base, TimestampMixin):
    """One numbered pay period of a calendar."""

    __tablename__ = "payroll_calendar_period"

    period_id: Mapped[UUID] = mapped_column(primary_key=True, default=uuid4)
    calendar_id: Mapped[UUID] = mapped_column(
        ForeignKey("payroll_calendar.calendar_id", ondelete="CASCADE"),
        nullable=False,
    )
    number: Mapped[int] = mapped_column(Integer, nullable=False)
    start_date: Mapped[date] = mapped_column(Date, nullable=False)
    end_date: Mapped[date] = mapped_column(Date, nullable=False)
    payment_date: Mapped[date] = mapped_column(Date, nullable=False)
    status: Mapped[str] = mapped_column(
        String,
        nullable=False,
        default=PeriodStatus.EN_INCIDENCIA.value,
    )
    closed_at: Mapped[datetime | None] = mapped_column(DateTime(timezone=True), nullable=True)
    rejection_reason: Mapped[str | None] = mapped_column(Text, nullable=True)

    __table_args__ = (
        UniqueConstraint("calendar_id", "number", name="payroll_calendar_period_number_unique"),
        CheckConstraint("end_date >= start_date", name="payroll_calendar_period_dates_check"),
        CheckConstraint(
            f"status IN ({check_values(PeriodStatus)})",
            name="payroll_calendar_period_status_check",
        ),
    )

    calendar: Mapped[PayrollCalendar] = relationship(back_populates="periods")
