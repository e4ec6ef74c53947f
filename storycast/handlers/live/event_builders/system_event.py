from __future__ import annotations

from typing import Optional

from storycast.handlers import HandlerConfig, StoryContext
from storycast.handlers.live.event_builders.types import EventPromptResult
from storycast.handlers.live.events import SystemEvent

SEVERITY_LABELS = {"info": "信息", "warning": "警告", "error": "错误"}
SEVERITY_HINTS = {
    "error": "提示: 这是一个错误事件。应该向观众说明情况，表示会尽快解决，保持冷静和专业。",
    "warning": "提示: 这是一个警告。简要说明情况，告知观众正在注意这个问题。",
    "info": "提示: 这是一个普通通知。可以简单提及或不做特别反应。",
}


def build_system_event_prompt(
    event: SystemEvent,
    ctx: StoryContext,
    config: Optional[HandlerConfig] = None,
) -> EventPromptResult:
    data = event.data
    sections = ["## 系统事件", f"事件类型: {data.event_type}"]
    if data.message:
        sections.append(f"消息: {data.message}")
    sections.append(f"严重程度: {SEVERITY_LABELS[data.severity]}")
    sections.append("")
    sections.append(SEVERITY_HINTS[data.severity])

    return EventPromptResult(sections, search_text=None, requires_memory=False)
