from __future__ import annotations

from typing import Optional

from storycast.handlers import HandlerConfig, StoryContext
from storycast.handlers.live.event_builders.types import EventPromptResult
from storycast.handlers.live.events import EmotionEvent


def build_emotion_event_prompt(
    event: EmotionEvent,
    ctx: StoryContext,
    config: Optional[HandlerConfig] = None,
) -> EventPromptResult:
    data = event.data
    sections = ["## 情绪状态变化", f"情绪: {data.emotion}"]
    if data.intensity is not None:
        sections.append(f"强度: {round(data.intensity * 100)}%")
    if data.trigger:
        sections.append(f"触发原因: {data.trigger}")
    if data.duration:
        sections.append(f"预期持续: {data.duration:g}秒")

    sections.append("")
    sections.append(f"提示: 自然地表达这种情绪状态。通过语言、动作和表情展现{data.emotion}的感觉。")
    if data.trigger:
        sections.append("确保回应中提到或暗示触发原因。")

    return EventPromptResult(sections, search_text=data.trigger or None, requires_memory=False)
