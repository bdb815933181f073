"""Company (tenant) and organizational catalog models."""

from __future__ import annotations

from typing import TYPE_CHECKING
from uuid import UUID, uuid4

from sqlalchemy import Boolean, CheckConstraint, ForeignKey, Integer, String, UniqueConstraint
from sqlalchemy.orm import Mapped, mapped_column, relationship

from nomina_engine.models.base import Base, TimestampMixin
from nomina_engine.models.enums import CompanyStatus, check_values

if TYPE_CHECKING:
    from nomina_engine.models.calendar import PayrollCalendar
    from nomina_engine.models.employee import Employee


class Company(Base, TimestampMixin):
    """Tenant root. Never hard-deleted."""

    __tablename__ = "company"

    company_id: Mapped[UUID] = mapped_column(primary_key=True, default=uuid4)
    name: Mapped[str] = mapped_column(String, nullable=False)
    rfc: Mapped[str] = mapped_column(String(13), nullable=False, unique=True)
    email: Mapped[str | None] = mapped_column(String, nullable=True)
    status: Mapped[str] = mapped_column(
        String,
        nullable=False,
        default=CompanyStatus.IN_SETUP.value,
    )
    employees_count: Mapped[int] = mapped_column(Integer, nullable=False, default=0)
    is_active: Mapped[bool] = mapped_column(Boolean, nullable=False, default=True)

    __table_args__ = (
        CheckConstraint(
            f"status IN ({check_values(CompanyStatus)})",
            name="company_status_check",
        ),
        CheckConstraint("employees_count >= 0", name="company_employees_count_check"),
    )

    # Relationships
    employees: Mapped[list[Employee]] = relationship(back_populates="company")
    calendars: Mapped[list[PayrollCalendar]] = relationship(back_populates="company")
    areas: Mapped[list[Area]] = relationship(back_populates="company")
    departments: Mapped[list[Department]] = relationship(back_populates="company")
    positions: Mapped[list[Position]] = relationship(back_populates="company")


class Area(Base):
    """Area within a company."""

    __tablename__ = "area"

    area_id: Mapped[UUID] = mapped_column(primary_key=True, default=uuid4)
    company_id: Mapped[UUID] = mapped_column(
        ForeignKey("company.company_id", ondelete="CASCADE"),
        nullable=False,
    )
    name: Mapped[str] = mapped_column(String, nullable=False)
    is_active: Mapped[bool] = mapped_column(Boolean, nullable=False, default=True)

    __table_args__ = (UniqueConstraint("company_id", "name", name="area_company_name_unique"),)

    company: Mapped[Company] = relationship(back_populates="areas")


class Department(Base):
    """Department within a company."""

    __tablename__ = "department"

    department_id: Mapped[UUID] = mapped_column(primary_key=True, default=uuid4)
    company_id: Mapped[UUID] = mapped_column(
        ForeignKey("company.company_id", ondelete="CASCADE"),
        nullable=False,
    )
    area_id: Mapped[UUID | None] = mapped_column(
        ForeignKey("area.area_id", ondelete="SET NULL"),
        nullable=True,
    )
    name: Mapped[str] = mapped_column(String, nullable=False)
    is_active: Mapped[bool] = mapped_column(Boolean, nullable=False, default=True)

    __table_args__ = (
        UniqueConstraint("company_id", "name", name="department_company_name_unique"),
    )

    company: Mapped[Company] = relationship(back_populates="departments")


class Position(Base):
    """Job position (puesto) in the company catalog."""

    __tablename__ = "position"

    position_id: Mapped[UUID] = mapped_column(primary_key=True, default=uuid4)
    company_id: Mapped[UUID] = mapped_column(
        ForeignKey("company.company_id", ondelete="CASCADE"),
        nullable=False,
    )
    name: Mapped[str] = mapped_column(String, nullable=False)
    is_active: Mapped[bool] = mapped_column(Boolean, nullable=False, default=True)

    __table_args__ = (
        UniqueConstraint("company_id", "name", name="position_company_name_unique"),
    )

    company: Mapped[Company] = relationship(back_populates="positions")
