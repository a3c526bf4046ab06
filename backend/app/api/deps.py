"""FastAPI dependencies for the schedule service collaborators."""
from __future__ import annotations

from fastapi import Depends
from sqlalchemy.orm import Session

from app.core.config import settings
from app.db.deps import get_db
from app.services.ai_client import GeminiClient, build_ai_client
from app.services.schedule_store import ScheduleStore


def get_schedule_store(db: Session = Depends(get_db)) -> ScheduleStore:
    return ScheduleStore(db)


def get_ai_client() -> GeminiClient:
    return build_ai_client(settings)
