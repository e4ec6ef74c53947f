from __future__ import annotations

from typing import Optional

from storycast.handlers import HandlerConfig, StoryContext
from storycast.handlers.live.event_builders.types import EventPromptResult
from storycast.handlers.live.events import GiftEvent


def _number(value: float) -> str:
    return str(int(value)) if float(value).is_integer() else str(value)


def build_gift_event_prompt(
    event: GiftEvent,
    ctx: StoryContext,
    config: Optional[HandlerConfig] = None,
) -> EventPromptResult:
    data = event.data
    sections = [
        "## 收到礼物",
        f"送礼者: {data.username}",
        f"礼物名称: {data.gift_name}",
        f"数量: {data.gift_count}个",
    ]
    if data.gift_value:
        sections.append(f"价值: {_number(data.gift_value)}")
    if data.message:
        sections.append(f"附言: {data.message}")

    sections.append("")
    sections.append("提示: 表达真诚的感谢和惊喜。礼物价值越高，反应应该更激动。如果有附言，记得回应附言内容。")

    # Memory is wanted (has this viewer sent gifts before?) but only the
    # attached message is searchable.
    return EventPromptResult(sections, search_text=data.message or None, requires_memory=True)
