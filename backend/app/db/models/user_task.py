"""UserTask ORM model (one persisted time slot of a confirmed schedule)."""
from __future__ import annotations

from uuid import uuid4

from sqlalchemy import Boolean, Column, DateTime, ForeignKey, Index, Integer, String, Text, Time, func, text as sa_text
from sqlalchemy.dialects.postgresql import UUID

from app.db.base import Base


class UserTask(Base):
    __tablename__ = "user_tasks"
    __table_args__ = (
        Index("ix_user_tasks_user_schedule_id", "user_schedule_id"),
        Index("ix_user_tasks_schedule_order", "user_schedule_id", "display_order"),
    )

    id = Column(UUID(as_uuid=True), primary_key=True, default=uuid4)
    user_schedule_id = Column(
        UUID(as_uuid=True),
        ForeignKey("user_schedules.id", ondelete="CASCADE"),
        nullable=False,
    )
    start_time = Column(Time, nullable=False)
    end_time = Column(Time, nullable=False)
    activity_name = Column(Text, nullable=False)
    category = Column(String(length=50), nullable=False)
    is_completed = Column(Boolean, nullable=False, server_default=sa_text("false"))
    display_order = Column(Integer, nullable=False)
    started_at = Column(DateTime(timezone=True), nullable=True)
    completed_at = Column(DateTime(timezone=True), nullable=True)
    completed_duration = Column(Integer, nullable=True)
    created_at = Column(DateTime(timezone=True), nullable=False, server_default=func.now())
