"""Pydantic schemas for the schedule customization API."""
from __future__ import annotations

from datetime import date, time
from typing import Any, List, Optional
from uuid import UUID

from pydantic import BaseModel, ConfigDict, Field, field_validator
from pydantic.alias_generators import to_camel


class CamelModel(BaseModel):
    """Accept and emit camelCase keys while keeping snake_case attributes."""

    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)


class TimeSlot(CamelModel):
    id: str
    time: str
    activity: str
    category: str = "personal"
    color: Optional[str] = None

    @field_validator("id", "time", mode="before")
    @classmethod
    def _coerce_to_str(cls, value: Any) -> Any:
        if isinstance(value, (int, float)):
            return str(value)
        return value


class CustomizeScheduleRequest(CamelModel):
    user_id: UUID
    role_model_id: UUID
    current_schedule: List[TimeSlot] = Field(..., min_length=1)
    user_query: str = Field(..., min_length=1)

    @field_validator("user_query")
    @classmethod
    def _query_not_blank(cls, value: str) -> str:
        if not value.strip():
            raise ValueError("userQuery must not be empty")
        return value


class CustomizeScheduleData(CamelModel):
    message: str
    modified_schedule: List[TimeSlot]
    original_schedule: List[TimeSlot]


class CustomizeScheduleResponse(CamelModel):
    success: bool = True
    data: CustomizeScheduleData


class ConfirmScheduleRequest(CamelModel):
    user_id: UUID
    role_model_id: UUID
    role_model_name: str = Field(..., min_length=1)
    schedule: List[TimeSlot] = Field(..., min_length=1)


class ConfirmScheduleData(CamelModel):
    user_schedule_id: UUID
    tasks_created: int
    message: str


class ConfirmScheduleResponse(CamelModel):
    success: bool = True
    data: ConfirmScheduleData


class ScheduledTask(CamelModel):
    id: UUID
    start_time: time
    end_time: time
    activity_name: str
    category: str
    is_completed: bool
    display_order: int


class ActiveScheduleData(CamelModel):
    user_schedule_id: UUID
    role_model_id: Optional[UUID]
    status: str
    total_score: int
    start_date: date
    end_date: date
    tasks: List[ScheduledTask]


class ActiveScheduleResponse(CamelModel):
    success: bool = True
    data: Optional[ActiveScheduleData] = None


class StopScheduleRequest(CamelModel):
    user_id: UUID


class StopScheduleData(CamelModel):
    user_schedule_id: UUID
    status: str


class StopScheduleResponse(CamelModel):
    success: bool = True
    data: StopScheduleData
    message: str
