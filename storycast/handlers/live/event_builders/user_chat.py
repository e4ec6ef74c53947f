from __future__ import annotations

from typing import Optional

from storycast.handlers import HandlerConfig, StoryContext
from storycast.handlers.live.event_builders.types import EventPromptResult
from storycast.handlers.live.events import UserChatEvent


def build_user_chat_prompt(
    event: UserChatEvent,
    ctx: StoryContext,
    config: Optional[HandlerConfig] = None,
) -> EventPromptResult:
    """Regular conversation turn; gets the full memory context."""
    username = event.data.username or "用户"
    return EventPromptResult(
        sections=["## 当前对话", f"{username}: {event.data.message}"],
        search_text=event.data.message,
        requires_memory=True,
    )
