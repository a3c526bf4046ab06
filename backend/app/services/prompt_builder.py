"""Prompt construction for role-model schedule customization."""
from __future__ import annotations

from typing import Optional, Sequence

from app.api.schemas.schedule import TimeSlot

DEFAULT_PHILOSOPHY = "Focus on balance, productivity, and well-being."

INSTRUCTIONS = """### HOW TO APPLY THE PHILOSOPHY
- Translate abstract principles into concrete, specifically named activities.
  "Prioritize deep thinking" becomes "Deep Work: Product Strategy", not "Think".
- Never use vague placeholders such as "Free time" or "Other".

### NON-NEGOTIABLES
- Keep 7-8 hours of sleep.
- Keep meal times consistent (breakfast, lunch, and dinner at regular hours).
- Change only what the user's request and the philosophy call for.

### RESPONSE FORMAT (follow exactly)
EXPLANATION:
<2-4 sentences explaining what changed and why it fits the role model>

SCHEDULE:
[
  {"id": "1", "time": "6:00 AM", "activity": "Morning Run", "category": "health", "color": "#10B981"}
]

Every object in the SCHEDULE array must have the fields id, time, activity, category, color.
Use "H:MM AM/PM" for time and one of work, personal, health, family, sleep for category.
Return the SCHEDULE array as valid JSON with no trailing commentary."""


def format_schedule_lines(slots: Sequence[TimeSlot]) -> str:
    return "\n".join(
        f"{position}. {slot.time}: {slot.activity} ({slot.category})"
        for position, slot in enumerate(slots, start=1)
    )


def build_customization_prompt(
    current_schedule: Sequence[TimeSlot],
    user_query: str,
    philosophy: Optional[str] = None,
) -> str:
    """Render the full instruction prompt sent to the generative model."""
    philosophy_text = philosophy.strip() if philosophy and philosophy.strip() else DEFAULT_PHILOSOPHY
    return (
        "You are a lifestyle coach who adapts daily schedules to a role model's philosophy.\n\n"
        "### CURRENT SCHEDULE\n"
        f"{format_schedule_lines(current_schedule)}\n\n"
        "### USER REQUEST\n"
        f"{user_query}\n\n"
        "### ROLE MODEL PHILOSOPHY\n"
        f"{philosophy_text}\n\n"
        f"{INSTRUCTIONS}\n"
    )
