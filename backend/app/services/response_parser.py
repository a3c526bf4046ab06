"""Recover a structured schedule from a free-form model completion.

The model is asked for an ``EXPLANATION:`` section followed by a
``SCHEDULE:`` JSON array, but it does not always comply. The schedule array
is located by trying each strategy in ``SCHEDULE_STRATEGIES`` in order:

1. the array that follows the ``SCHEDULE:`` label,
2. any bracketed array of JSON objects anywhere in the text,
3. a fenced code block holding a JSON array.

Markdown fences are stripped before strategies 1 and 2 run, so a fenced array
of objects is already caught by strategy 2. Strategy 3 is the last resort for
fenced arrays that hold no objects.
"""
from __future__ import annotations

import json
import logging
import re
import time
from dataclasses import dataclass
from typing import Any, Callable, List, Optional, Tuple

from pydantic import ValidationError as PydanticValidationError

from app.api.schemas.schedule import TimeSlot
from app.core.errors import ParseError

logger = logging.getLogger(__name__)

DEFAULT_EXPLANATION = "Schedule customized!"
DEFAULT_CATEGORY = "personal"
NOT_FOUND_MESSAGE = "Could not find schedule in AI response"

DEFAULT_COLOR = "#6B7280"
ACTIVITY_COLORS: List[Tuple[Tuple[str, ...], str]] = [
    (("work", "meeting"), "#3B82F6"),
    (("exercise",), "#10B981"),
    (("reading", "learning"), "#8B5CF6"),
    (("family", "meal"), "#F59E0B"),
    (("sleep",), "#1E3A8A"),
]

_FENCE_PATTERN = re.compile(r"```(?:json)?[ \t]*\n?", re.IGNORECASE)
_EXPLANATION_PATTERN = re.compile(r"EXPLANATION:\s*([\s\S]*?)\s*SCHEDULE:", re.IGNORECASE)
_LABELLED_ARRAY_PATTERN = re.compile(r"SCHEDULE:\s*(\[[\s\S]*\])", re.IGNORECASE)
_OBJECT_ARRAY_PATTERN = re.compile(r"\[\s*\{[\s\S]*\}\s*\]")
_FENCED_ARRAY_PATTERN = re.compile(r"```(?:json)?\s*(\[[\s\S]*?\])\s*```", re.IGNORECASE)


@dataclass
class ParsedSchedule:
    schedule: List[TimeSlot]
    explanation: str


def strip_code_fences(text: str) -> str:
    return _FENCE_PATTERN.sub("", text)


def _after_schedule_label(text: str) -> Optional[str]:
    match = _LABELLED_ARRAY_PATTERN.search(strip_code_fences(text))
    return match.group(1) if match else None


def _any_object_array(text: str) -> Optional[str]:
    match = _OBJECT_ARRAY_PATTERN.search(strip_code_fences(text))
    return match.group(0) if match else None


def _fenced_code_block(text: str) -> Optional[str]:
    match = _FENCED_ARRAY_PATTERN.search(text)
    return match.group(1) if match else None


SCHEDULE_STRATEGIES: List[Tuple[str, Callable[[str], Optional[str]]]] = [
    ("schedule_label", _after_schedule_label),
    ("object_array", _any_object_array),
    ("fenced_block", _fenced_code_block),
]


def extract_schedule_json(text: str) -> Tuple[str, str]:
    """Return (strategy name, candidate JSON text) from the first strategy that matches."""
    for name, strategy in SCHEDULE_STRATEGIES:
        candidate = strategy(text)
        if candidate:
            return name, candidate
    raise ParseError(NOT_FOUND_MESSAGE)


def extract_explanation(text: str) -> str:
    match = _EXPLANATION_PATTERN.search(strip_code_fences(text))
    if match and match.group(1).strip():
        return match.group(1).strip()
    return DEFAULT_EXPLANATION


def color_for_activity(activity: str) -> str:
    lowered = activity.lower()
    for keywords, color in ACTIVITY_COLORS:
        if any(keyword in lowered for keyword in keywords):
            return color
    return DEFAULT_COLOR


def normalize_slot(raw: Any, index: int, stamp: int) -> TimeSlot:
    if not isinstance(raw, dict):
        raise ParseError(NOT_FOUND_MESSAGE)
    activity = str(raw.get("activity") or "")
    color = raw.get("color")
    if not isinstance(color, str) or not color.strip():
        color = color_for_activity(activity)
    try:
        return TimeSlot(
            id=str(raw.get("id") or f"{stamp}-{index}"),
            time=str(raw.get("time") or ""),
            activity=activity,
            category=str(raw.get("category") or DEFAULT_CATEGORY),
            color=color,
        )
    except PydanticValidationError as exc:
        logger.warning("Slot %s from the model is malformed: %s", index, exc)
        raise ParseError(NOT_FOUND_MESSAGE) from exc


def parse_ai_response(text: str) -> ParsedSchedule:
    """Parse a completion into time slots plus the model's explanation."""
    strategy, candidate = extract_schedule_json(text)
    logger.debug("Schedule located with strategy %s", strategy)

    try:
        payload = json.loads(candidate)
    except json.JSONDecodeError as exc:
        logger.warning("Schedule candidate from %s is not valid JSON: %s", strategy, exc)
        raise ParseError(NOT_FOUND_MESSAGE) from exc

    if not isinstance(payload, list) or not payload:
        raise ParseError(NOT_FOUND_MESSAGE)

    stamp = int(time.time() * 1000)
    schedule = [normalize_slot(raw, index, stamp) for index, raw in enumerate(payload)]
    return ParsedSchedule(schedule=schedule, explanation=extract_explanation(text))
