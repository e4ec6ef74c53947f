from __future__ import annotations

from typing import Optional

from storycast.handlers import HandlerConfig, StoryContext
from storycast.handlers.live.event_builders.types import EventPromptResult
from storycast.handlers.live.events import ProgramEvent

ACTION_LABELS = {"start": "开始", "finish": "结束", "pause": "暂停", "resume": "恢复"}
TYPE_LABELS = {"singing": "唱歌", "chatting": "聊天", "gaming": "游戏", "drawing": "绘画", "other": "其他"}

ACTION_HINTS = {
    "start": "提示: 这是节目开始。应该表现出兴奋和期待，向观众介绍接下来要做什么。",
    "finish": "提示: 这是节目结束。应该感谢观众的陪伴，总结一下刚才的内容，表达对这段时间的感受。",
    "pause": "提示: 节目暂停。告知观众稍作休息，很快回来。",
    "resume": "提示: 节目恢复。欢迎观众回来，继续之前的内容。",
}


def format_duration(seconds: int) -> str:
    """``3725`` -> ``1小时2分5秒``; zero components are dropped, ``0`` -> ``0秒``."""
    hours, rest = divmod(int(seconds), 3600)
    minutes, secs = divmod(rest, 60)
    parts = []
    if hours:
        parts.append(f"{hours}小时")
    if minutes:
        parts.append(f"{minutes}分")
    if secs:
        parts.append(f"{secs}秒")
    return "".join(parts) or "0秒"


def build_program_event_prompt(
    event: ProgramEvent,
    ctx: StoryContext,
    config: Optional[HandlerConfig] = None,
) -> EventPromptResult:
    data = event.data
    sections = [
        "## 节目状态变化",
        f"动作: {ACTION_LABELS[data.action]}",
        f"节目名称: {data.program_name}",
    ]
    if data.program_type:
        sections.append(f"节目类型: {TYPE_LABELS[data.program_type]}")
    if data.action == "finish" and data.duration is not None:
        sections.append(f"持续时长: {format_duration(data.duration)}")

    sections.append("")
    sections.append(ACTION_HINTS[data.action])

    return EventPromptResult(sections, search_text=None, requires_memory=False)
