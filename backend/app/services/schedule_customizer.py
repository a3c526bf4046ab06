"""Rewrite a day's schedule around a role model's philosophy."""
from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import List, Protocol, Sequence
from uuid import UUID

from app.api.schemas.schedule import TimeSlot
from app.services.prompt_builder import build_customization_prompt
from app.services.response_parser import parse_ai_response
from app.services.schedule_store import ScheduleStore

logger = logging.getLogger(__name__)


class CompletionClient(Protocol):
    def generate(self, prompt: str) -> str: ...


@dataclass
class CustomizationResult:
    message: str
    modified_schedule: List[TimeSlot]
    original_schedule: List[TimeSlot]


def customize_schedule(
    store: ScheduleStore,
    ai_client: CompletionClient,
    role_model_id: UUID,
    current_schedule: Sequence[TimeSlot],
    user_query: str,
) -> CustomizationResult:
    """Ask the model for a modified schedule and parse it into time slots."""
    role_model = store.get_role_model(role_model_id)
    if role_model is None:
        logger.warning("Role model %s not found; using the default philosophy", role_model_id)
    philosophy = role_model.philosophy if role_model is not None else None

    prompt = build_customization_prompt(current_schedule, user_query, philosophy)
    logger.info("Customizing %s slots (prompt %s chars)", len(current_schedule), len(prompt))
    completion = ai_client.generate(prompt)
    parsed = parse_ai_response(completion)

    return CustomizationResult(
        message=parsed.explanation,
        modified_schedule=parsed.schedule,
        original_schedule=list(current_schedule),
    )
