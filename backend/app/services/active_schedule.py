"""Read and stop a user's active schedule."""
from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import List, Optional
from uuid import UUID

from app.core.errors import ValidationError
from app.db.models.user_schedule import SCHEDULE_STATUS_ACTIVE, UserSchedule
from app.db.models.user_task import UserTask
from app.services.schedule_store import ScheduleStore

logger = logging.getLogger(__name__)

NO_ACTIVE_SCHEDULE = "No active schedule to stop"


@dataclass
class ActiveSchedule:
    schedule: UserSchedule
    tasks: List[UserTask]


def find_active_header(store: ScheduleStore, user_id: UUID) -> Optional[UserSchedule]:
    """Return the header the user points at, provided it is still active."""
    user = store.get_user(user_id)
    if user is None or user.active_schedule_id is None:
        return None
    schedule = store.get_schedule(user.active_schedule_id)
    if schedule is None or schedule.status != SCHEDULE_STATUS_ACTIVE:
        return None
    return schedule


def get_active_schedule(store: ScheduleStore, user_id: UUID) -> Optional[ActiveSchedule]:
    schedule = find_active_header(store, user_id)
    if schedule is None:
        return None
    return ActiveSchedule(schedule=schedule, tasks=store.list_tasks(schedule.id))


def stop_schedule(store: ScheduleStore, user_id: UUID) -> UserSchedule:
    """Release the user's pointer, then mark the schedule it named completed.

    The pointer goes first so a failure part-way never leaves the user
    pointing at a completed schedule. A pointer left at a schedule that is
    no longer active is cleared as well.
    """
    user = store.get_user(user_id)
    if user is None or user.active_schedule_id is None:
        raise ValidationError(NO_ACTIVE_SCHEDULE)

    schedule_id = user.active_schedule_id
    schedule = store.get_schedule(schedule_id)
    store.clear_active_schedule(user_id, schedule_id)
    if schedule is None:
        raise ValidationError(NO_ACTIVE_SCHEDULE)

    if schedule.status == SCHEDULE_STATUS_ACTIVE:
        schedule = store.complete_schedule(schedule)
        logger.info("Stopped schedule %s", schedule.id)
    else:
        logger.warning("Cleared stale pointer to %s schedule %s", schedule.status, schedule.id)
    return schedule
