from __future__ import annotations

from typing import Optional

from storycast.handlers import HandlerConfig, StoryContext
from storycast.handlers.live.event_builders.types import EventPromptResult
from storycast.handlers.live.events import UserInteractionEvent

ACTION_LABELS = {"follow": "关注了你", "subscribe": "订阅了你", "like": "点赞了", "share": "分享了直播"}


def build_user_interaction_prompt(
    event: UserInteractionEvent,
    ctx: StoryContext,
    config: Optional[HandlerConfig] = None,
) -> EventPromptResult:
    """Follow / subscribe / like / share; long-time subscribers get their own hint."""
    data = event.data
    sections = ["## 用户互动", f"{data.username} {ACTION_LABELS[data.action]}"]

    if data.action == "subscribe":
        if data.tier:
            sections.append(f"订阅等级: {data.tier}")
        if data.months:
            sections.append(f"已连续订阅: {data.months}个月")

    sections.append("")
    if data.action == "follow":
        sections.append("提示: 欢迎新的关注者，表达感谢和期待未来的互动。")
    elif data.action == "subscribe":
        if data.months and data.months > 1:
            sections.append("提示: 这是一位忠实粉丝！特别感谢他们的长期支持，表达对老粉的感激。")
        else:
            sections.append("提示: 欢迎新订阅者，表达感谢并让他们感到受欢迎。")
    elif data.action == "like":
        sections.append("提示: 简短感谢点赞，表达开心。")
    elif data.action == "share":
        sections.append("提示: 特别感谢分享，这帮助更多人发现直播。")

    return EventPromptResult(sections, search_text=None, requires_memory=True)
