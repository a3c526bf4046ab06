"""UserSchedule ORM model (one attempt at following a role model's day)."""
from __future__ import annotations

from uuid import uuid4

from sqlalchemy import Column, Date, DateTime, ForeignKey, Index, Integer, String, func, text as sa_text
from sqlalchemy.dialects.postgresql import UUID

from app.db.base import Base

SCHEDULE_STATUS_ACTIVE = "active"
SCHEDULE_STATUS_COMPLETED = "completed"


class UserSchedule(Base):
    __tablename__ = "user_schedules"
    __table_args__ = (
        Index("ix_user_schedules_user_id", "user_id"),
        Index("ix_user_schedules_status", "status"),
    )

    id = Column(UUID(as_uuid=True), primary_key=True, default=uuid4)
    user_id = Column(UUID(as_uuid=True), ForeignKey("users.id", ondelete="CASCADE"), nullable=False)
    role_model_id = Column(
        UUID(as_uuid=True),
        ForeignKey("role_models.id", ondelete="SET NULL"),
        nullable=True,
    )
    status = Column(String(length=20), nullable=False, server_default=sa_text("'active'"))
    total_score = Column(Integer, nullable=False, server_default=sa_text("0"))
    start_date = Column(Date, nullable=False)
    end_date = Column(Date, nullable=False)
    created_at = Column(DateTime(timezone=True), nullable=False, server_default=func.now())
    updated_at = Column(
        DateTime(timezone=True),
        nullable=False,
        server_default=func.now(),
        onupdate=func.now(),
    )
