"""Notification model."""

from __future__ import annotations

from datetime import datetime
from typing import Any
from uuid import UUID, uuid4

from sqlalchemy import JSON, Boolean, CheckConstraint, DateTime, ForeignKey, String, Text
from sqlalchemy.orm import Mapped, mapped_column

from nomina_engine.models.base import Base, TimestampMixin
from nomina_engine.models.enums import NotificationPriority, check_values


class Notification(Base, TimestampMixin):
    """In-app message addressed to one user or to every user of a role."""

    __tablename__ = "notification"

    notification_id: Mapped[UUID] = mapped_column(primary_key=True, default=uuid4)
    company_id: Mapped[UUID | None] = mapped_column(
        ForeignKey("company.company_id", ondelete="CASCADE"),
        nullable=True,
    )
    user_id: Mapped[UUID | None] = mapped_column(
        ForeignKey("app_user.user_id", ondelete="CASCADE"),
        nullable=True,
    )
    target_role: Mapped[str | None] = mapped_column(String, nullable=True)
    notification_type: Mapped[str] = mapped_column(String, nullable=False)
    title: Mapped[str] = mapped_column(String, nullable=False)
    message: Mapped[str] = mapped_column(Text, nullable=False)
    priority: Mapped[str] = mapped_column(
        String,
        nullable=False,
        default=NotificationPriority.NORMAL.value,
    )
    payload: Mapped[dict[str, Any]] = mapped_column(JSON, nullable=False, default=dict)
    is_read: Mapped[bool] = mapped_column(Boolean, nullable=False, default=False)
    read_at: Mapped[datetime | None] = mapped_column(DateTime(timezone=True), nullable=True)

    __table_args__ = (
        CheckConstraint(
            f"priority IN ({check_values(NotificationPriority)})",
            name="notification_priority_check",
        ),
        CheckConstraint(
            "user_id IS NOT NULL OR target_role IS NOT NULL",
            name="notification_recipient_check",
        ),
    )
