"""Confirm a customized schedule as the user's single active schedule.

The header row, its task rows, and the user's ``active_schedule_id`` pointer
are written in separate commits. Each forward step registers a compensating
delete, and a failure part-way through replays them in reverse:

    START -> CHECKED_NO_ACTIVE -> HEADER_CREATED -> TASKS_CREATED -> USER_LINKED
                                        \\________________\\______-> ROLLED_BACK

The pointer is set with a compare-and-swap (``WHERE active_schedule_id IS
NULL``), so two concurrent confirms cannot both win: the loser rolls back and
reports a conflict.
"""
from __future__ import annotations

import enum
import logging
from dataclasses import dataclass, field
from datetime import date, timedelta
from typing import Callable, List, Optional, Sequence, Tuple
from uuid import UUID

from app.api.schemas.schedule import TimeSlot
from app.core.errors import ConflictError, PersistenceError, ValidationError
from app.services.schedule_store import ScheduleStore
from app.services.schedule_time import build_task_rows

logger = logging.getLogger(__name__)

ACTIVE_SCHEDULE_EXISTS = "You already have an active schedule. Stop it before starting a new one."


class ConfirmState(str, enum.Enum):
    START = "start"
    CHECKED_NO_ACTIVE = "checked_no_active"
    HEADER_CREATED = "header_created"
    TASKS_CREATED = "tasks_created"
    USER_LINKED = "user_linked"
    ROLLED_BACK = "rolled_back"


@dataclass
class ConfirmationResult:
    user_schedule_id: UUID
    tasks_created: int


@dataclass
class ScheduleConfirmation:
    """One run of the confirm saga for a single user."""

    store: ScheduleStore
    user_id: UUID
    role_model_id: UUID
    schedule: Sequence[TimeSlot]
    duration_days: int = 1
    today: Callable[[], date] = date.today
    state: ConfirmState = ConfirmState.START
    user_schedule_id: Optional[UUID] = None
    _compensations: List[Tuple[str, Callable[[], None]]] = field(default_factory=list)

    def run(self) -> ConfirmationResult:
        self.check_preconditions()
        try:
            self.create_header()
            tasks_created = self.create_tasks()
            self.link_user()
        except Exception:
            self.rollback()
            raise
        return ConfirmationResult(user_schedule_id=self.user_schedule_id, tasks_created=tasks_created)

    def check_preconditions(self) -> None:
        user = self.store.get_user(self.user_id)
        if user is None:
            raise ValidationError("User not found")
        if user.active_schedule_id is not None:
            raise ConflictError(ACTIVE_SCHEDULE_EXISTS)
        if self.store.get_role_model(self.role_model_id) is None:
            raise ValidationError("Role model not found")
        self._advance(ConfirmState.CHECKED_NO_ACTIVE)

    def create_header(self) -> None:
        start_date = self.today()
        header = self.store.create_schedule_header(
            user_id=self.user_id,
            role_model_id=self.role_model_id,
            start_date=start_date,
            end_date=start_date + timedelta(days=self.duration_days),
        )
        schedule_id = header.id
        self.user_schedule_id = schedule_id
        self._compensations.append(("delete schedule", lambda: self.store.delete_schedule_header(schedule_id)))
        self._advance(ConfirmState.HEADER_CREATED)

    def create_tasks(self) -> int:
        try:
            rows = build_task_rows(self.schedule)
        except ValueError as exc:
            raise PersistenceError(f"Invalid time slot: {exc}") from exc
        tasks = self.store.create_tasks(self.user_schedule_id, rows)
        schedule_id = self.user_schedule_id
        self._compensations.append(("delete tasks", lambda: self.store.delete_tasks(schedule_id)))
        self._advance(ConfirmState.TASKS_CREATED)
        return len(tasks)

    def link_user(self) -> None:
        if not self.store.link_active_schedule(self.user_id, self.user_schedule_id):
            raise ConflictError(ACTIVE_SCHEDULE_EXISTS)
        self._advance(ConfirmState.USER_LINKED)

    def rollback(self) -> None:
        """Run compensating deletes newest-first; failures are logged, not raised."""
        while self._compensations:
            name, action = self._compensations.pop()
            try:
                action()
                logger.info("Rolled back confirm step: %s (schedule=%s)", name, self.user_schedule_id)
            except Exception:
                logger.exception("Compensating action %r failed for schedule %s", name, self.user_schedule_id)
        self._advance(ConfirmState.ROLLED_BACK)

    def _advance(self, state: ConfirmState) -> None:
        logger.debug("Confirm saga %s -> %s (user=%s)", self.state.value, state.value, self.user_id)
        self.state = state


def confirm_schedule(
    store: ScheduleStore,
    user_id: UUID,
    role_model_id: UUID,
    schedule: Sequence[TimeSlot],
    duration_days: int = 1,
) -> ConfirmationResult:
    """Persist ``schedule`` and make it the user's active schedule."""
    if not schedule:
        raise ValidationError("Schedule must contain at least one time slot")
    saga = ScheduleConfirmation(
        store=store,
        user_id=user_id,
        role_model_id=role_model_id,
        schedule=schedule,
        duration_days=duration_days,
    )
    result = saga.run()
    logger.info("Confirmed schedule %s with %s tasks", result.user_schedule_id, result.tasks_created)
    return result
