"""User ORM model."""
from __future__ import annotations

from uuid import uuid4

from sqlalchemy import Column, DateTime, ForeignKey, Text, func
from sqlalchemy.dialects.postgresql import UUID

from app.db.base import Base


class User(Base):
    __tablename__ = "users"

    id = Column(UUID(as_uuid=True), primary_key=True, default=uuid4)
    email = Column(Text, nullable=True, unique=True)
    name = Column(Text, nullable=True)
    # Back-reference to the one schedule the user is following. Not unique;
    # the single-active-schedule rule is enforced by the confirm flow.
    active_schedule_id = Column(
        UUID(as_uuid=True),
        ForeignKey(
            "user_schedules.id",
            ondelete="SET NULL",
            use_alter=True,
            name="fk_users_active_schedule_id",
        ),
        nullable=True,
    )
    created_at = Column(DateTime(timezone=True), nullable=False, server_default=func.now())
