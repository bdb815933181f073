"""Employee (worker) and contract condition models."""

from __future__ import annotations

from datetime import date
from decimal import Decimal
from typing import TYPE_CHECKING
from uuid import UUID, uuid4

from sqlalchemy import (
    CheckConstraint,
    Date,
    ForeignKey,
    Integer,
    Numeric,
    String,
    UniqueConstraint,
)
from sqlalchemy.orm import Mapped, mapped_column, relationship

from nomina_engine.models.base import Base, TimestampMixin
from nomina_engine.models.enums import EmployeeStatus, check_values

if TYPE_CHECKING:
    from nomina_engine.models.company import Company


class Employee(Base, TimestampMixin):
    """Worker details record."""

    __tablename__ = "employee"

    employee_id: Mapped[UUID] = mapped_column(primary_key=True, default=uuid4)
    company_id: Mapped[UUID] = mapped_column(
        ForeignKey("company.company_id", ondelete="CASCADE"),
        nullable=False,
    )
    employee_number: Mapped[int] = mapped_column(Integer, nullable=False)
    first_name: Mapped[str] = mapped_column(String, nullable=False)
    last_name: Mapped[str] = mapped_column(String, nullable=False)
    second_last_name: Mapped[str | None] = mapped_column(String, nullable=True)
    rfc: Mapped[str] = mapped_column(String(13), nullable=False)
    curp: Mapped[str] = mapped_column(String(18), nullable=False)
    nss: Mapped[str | None] = mapped_column(String(11), nullable=True)
    email: Mapped[str | None] = mapped_column(String, nullable=True)
    phone: Mapped[str | None] = mapped_column(String, nullable=True)
    postal_code: Mapped[str | None] = mapped_column(String(5), nullable=True)
    gender: Mapped[str | None] = mapped_column(String(1), nullable=True)
    marital_status: Mapped[str | None] = mapped_column(String(1), nullable=True)
    salary: Mapped[Decimal] = mapped_column(Numeric(14, 2), nullable=False, default=Decimal("0"))
    salary_type: Mapped[str | None] = mapped_column(String, nullable=True)
    hire_date: Mapped[date] = mapped_column(Date, nullable=False)
    birth_date: Mapped[date | None] = mapped_column(Date, nullable=True)
    seniority_date: Mapped[date | None] = mapped_column(Date, nullable=True)
    status: Mapped[str] = mapped_column(
        String,
        nullable=False,
        default=EmployeeStatus.ACTIVE.value,
    )

    __table_args__ = (
        UniqueConstraint("company_id", "employee_number", name="employee_company_employee_number_unique"),
        UniqueConstraint("company_id", "rfc", name="employee_company_rfc_unique"),
        UniqueConstraint("company_id", "curp", name="employee_company_curp_unique"),
        CheckConstraint(
            f"status IN ({check_values(EmployeeStatus)})",
            name="employee_status_check",
        ),
        CheckConstraint("salary >= 0", name="employee_salary_check"),
    )

    # Relationships
    company: Mapped[Company] = relationship(back_populates="employees")
    contract: Mapped[ContractCondition | None] = relationship(
        back_populates="employee",
        uselist=False,
    )

    @property
    def full_name(self) -> str:
        """Get full name."""
        parts = [self.first_name, self.last_name, self.second_last_name]
        return " ".join(p for p in parts if p)


class ContractCondition(Base, TimestampMixin):
    """Employment terms: position, org placement and payroll calendar."""

    __tablename__ = "contract_condition"

    contract_condition_id: Mapped[UUID] = mapped_column(primary_key=True, default=uuid4)
    employee_id: Mapped[UUID] = mapped_column(
        ForeignKey("employee.employee_id", ondelete="CASCADE"),
        nullable=False,
        unique=True,
    )
    position_id: Mapped[UUID | None] = mapped_column(
        ForeignKey("position.position_id", ondelete="SET NULL"),
        nullable=True,
    )
    department_id: Mapped[UUID | None] = mapped_column(
        ForeignKey("department.department_id", ondelete="SET NULL"),
        nullable=True,
    )
    area_id: Mapped[UUID | None] = mapped_column(
        ForeignKey("area.area_id", ondelete="SET NULL"),
        nullable=True,
    )
    calendar_id: Mapped[UUID | None] = mapped_column(
        ForeignKey("payroll_calendar.calendar_id", ondelete="SET NULL"),
        nullable=True,
    )
    contract_type: Mapped[str | None] = mapped_column(String, nullable=True)
    geographic_zone: Mapped[str | None] = mapped_column(String, nullable=True)
    work_schedule: Mapped[str | None] = mapped_column(String, nullable=True)

    employee: Mapped[Employee] = relationship(back_populates="contract")
