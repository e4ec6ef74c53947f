"""
Event-specific prompt builders.

One builder per ``LiveEvent`` type, dispatched on the event's ``type`` tag.
The table is checked against the event union at import time, so adding an
event model without a builder fails at startup rather than mid-stream.
"""
from __future__ import annotations

from typing import Optional

from pydantic import BaseModel

from storycast.errors import UnknownEventError
from storycast.handlers import HandlerConfig, StoryContext
from storycast.handlers.live.event_builders.bullet_chat import build_bullet_chat_prompt
from storycast.handlers.live.event_builders.emotion_event import build_emotion_event_prompt
from storycast.handlers.live.event_builders.gift_event import build_gift_event_prompt
from storycast.handlers.live.event_builders.program_event import build_program_event_prompt, format_duration
from storycast.handlers.live.event_builders.simple_text import build_simple_text_prompt
from storycast.handlers.live.event_builders.system_event import build_system_event_prompt
from storycast.handlers.live.event_builders.types import EventPromptBuilder, EventPromptResult
from storycast.handlers.live.event_builders.user_chat import build_user_chat_prompt
from storycast.handlers.live.event_builders.user_interaction import build_user_interaction_prompt
from storycast.handlers.live.events import LIVE_EVENT_TYPES

EVENT_BUILDERS: dict[str, EventPromptBuilder] = {
    "user_chat": build_user_chat_prompt,
    "bullet_chat": build_bullet_chat_prompt,
    "gift_event": build_gift_event_prompt,
    "program_event": build_program_event_prompt,
    "user_interaction": build_user_interaction_prompt,
    "simple_text": build_simple_text_prompt,
    "system_event": build_system_event_prompt,
    "emotion_event": build_emotion_event_prompt,
}


def check_exhaustive(builders: dict[str, EventPromptBuilder], event_types: frozenset[str]) -> None:
    missing = event_types - builders.keys()
    extra = builders.keys() - event_types
    if missing or extra:
        raise RuntimeError(
            f"Live event builders out of sync: missing={sorted(missing)} unknown={sorted(extra)}"
        )


check_exhaustive(EVENT_BUILDERS, LIVE_EVENT_TYPES)


def build_event_prompt(
    event: BaseModel,
    ctx: StoryContext,
    config: Optional[HandlerConfig] = None,
) -> EventPromptResult:
    """Route *event* to its builder.

    Raises:
        UnknownEventError: no builder is registered for ``event.type``.
    """
    event_type = getattr(event, "type", None)
    builder = EVENT_BUILDERS.get(event_type)
    if builder is None:
        raise UnknownEventError(f"Unknown live event type: {event_type!r}")
    return builder(event, ctx, config)


__all__ = [
    "EVENT_BUILDERS",
    "EventPromptBuilder",
    "EventPromptResult",
    "build_event_prompt",
    "check_exhaustive",
    "format_duration",
]
