from __future__ import annotations

from typing import Optional

from storycast.handlers import HandlerConfig, StoryContext
from storycast.handlers.live.event_builders.types import EventPromptResult
from storycast.handlers.live.events import SimpleTextEvent


def build_simple_text_prompt(
    event: SimpleTextEvent,
    ctx: StoryContext,
    config: Optional[HandlerConfig] = None,
) -> EventPromptResult:
    return EventPromptResult(
        sections=["## 当前请求", event.data.text],
        search_text=event.data.text,
        requires_memory=False,
    )
