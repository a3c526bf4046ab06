"""Data-store access for users, role models, schedules, and their tasks.

Every write commits immediately. The confirm flow relies on this: each step
is durable on its own and undone with a compensating delete, never with a
session rollback.
"""
from __future__ import annotations

import logging
from contextlib import contextmanager
from datetime import date
from typing import Any, Dict, Iterator, List, Optional, Sequence
from uuid import UUID

from sqlalchemy import update
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from app.core.errors import PersistenceError
from app.db.models.role_model import RoleModel
from app.db.models.user import User
from app.db.models.user_schedule import SCHEDULE_STATUS_ACTIVE, SCHEDULE_STATUS_COMPLETED, UserSchedule
from app.db.models.user_task import UserTask

logger = logging.getLogger(__name__)


class ScheduleStore:
    def __init__(self, db: Session):
        self.db = db

    @contextmanager
    def _write(self, action: str) -> Iterator[None]:
        try:
            yield
            self.db.commit()
        except SQLAlchemyError as exc:
            self.db.rollback()
            logger.error("Data store failed to %s: %s", action, exc)
            raise PersistenceError(f"Failed to {action}: {exc.__class__.__name__}") from exc

    @contextmanager
    def _read(self, what: str) -> Iterator[None]:
        try:
            yield
        except SQLAlchemyError as exc:
            self.db.rollback()
            logger.error("Data store failed to load %s: %s", what, exc)
            raise PersistenceError(f"Failed to load {what}: {exc.__class__.__name__}") from exc

    def get_user(self, user_id: UUID) -> Optional[User]:
        with self._read("user"):
            user = self.db.get(User, user_id)
            if user is not None:
                # Re-read so a pointer written by another session is visible.
                self.db.refresh(user)
        return user

    def get_role_model(self, role_model_id: UUID) -> Optional[RoleModel]:
        with self._read("role model"):
            return self.db.get(RoleModel, role_model_id)

    def get_schedule(self, schedule_id: UUID) -> Optional[UserSchedule]:
        with self._read("schedule"):
            return self.db.get(UserSchedule, schedule_id)

    def list_tasks(self, schedule_id: UUID) -> List[UserTask]:
        with self._read("tasks"):
            return (
                self.db.query(UserTask)
                .filter(UserTask.user_schedule_id == schedule_id)
                .order_by(UserTask.display_order)
                .all()
            )

    def create_schedule_header(
        self,
        user_id: UUID,
        role_model_id: UUID,
        start_date: date,
        end_date: date,
    ) -> UserSchedule:
        header = UserSchedule(
            user_id=user_id,
            role_model_id=role_model_id,
            status=SCHEDULE_STATUS_ACTIVE,
            total_score=0,
            start_date=start_date,
            end_date=end_date,
        )
        with self._write("create schedule"):
            self.db.add(header)
        self.db.refresh(header)
        return header

    def create_tasks(self, schedule_id: UUID, rows: Sequence[Dict[str, Any]]) -> List[UserTask]:
        tasks = [UserTask(user_schedule_id=schedule_id, **row) for row in rows]
        with self._write("create tasks"):
            self.db.add_all(tasks)
        return tasks

    def link_active_schedule(self, user_id: UUID, schedule_id: UUID) -> bool:
        """Point the user at ``schedule_id`` unless another schedule got there first."""
        stmt = (
            update(User)
            .where(User.id == user_id, User.active_schedule_id.is_(None))
            .values(active_schedule_id=schedule_id)
            .execution_options(synchronize_session=False)
        )
        with self._write("link active schedule"):
            linked = self.db.execute(stmt).rowcount == 1
        return linked

    def clear_active_schedule(self, user_id: UUID, schedule_id: UUID) -> None:
        stmt = (
            update(User)
            .where(User.id == user_id, User.active_schedule_id == schedule_id)
            .values(active_schedule_id=None)
            .execution_options(synchronize_session=False)
        )
        with self._write("clear active schedule"):
            self.db.execute(stmt)

    def complete_schedule(self, schedule: UserSchedule) -> UserSchedule:
        with self._write("complete schedule"):
            schedule.status = SCHEDULE_STATUS_COMPLETED
            self.db.add(schedule)
        self.db.refresh(schedule)
        return schedule

    def delete_tasks(self, schedule_id: UUID) -> int:
        with self._write("delete tasks"):
            deleted = (
                self.db.query(UserTask)
                .filter(UserTask.user_schedule_id == schedule_id)
                .delete(synchronize_session=False)
            )
        return deleted

    def delete_schedule_header(self, schedule_id: UUID) -> None:
        with self._write("delete schedule"):
            self.db.query(UserSchedule).filter(UserSchedule.id == schedule_id).delete(synchronize_session=False)
