from __future__ import annotations

from typing import Optional

from storycast.handlers import HandlerConfig, StoryContext
from storycast.handlers.live.event_builders.types import EventPromptResult
from storycast.handlers.live.events import BulletChatEvent

POSITION_LABELS = {"top": "顶部", "bottom": "底部", "scroll": "滚动"}


def build_bullet_chat_prompt(
    event: BulletChatEvent,
    ctx: StoryContext,
    config: Optional[HandlerConfig] = None,
) -> EventPromptResult:
    """Danmaku: short reactions, no memory search."""
    sender = event.data.username or "观众"
    sections = ["## 弹幕互动", f"{sender} 发送弹幕: {event.data.message}"]

    if event.data.position:
        sections.append(f"位置: {POSITION_LABELS[event.data.position]}")

    sections.append("")
    sections.append("提示: 弹幕通常需要简短、活泼的回应。可以选择性回复，不必每条都详细回应。")

    return EventPromptResult(sections, search_text=event.data.message, requires_memory=False)
