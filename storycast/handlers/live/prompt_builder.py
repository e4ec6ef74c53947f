"""
Prompt assembly for the live handler.

Section order is fixed so the same input always yields the same prompt:

    system prompt
    ## 当前时间信息
    ## 聊天历史
    ## 记忆上下文        (only when memories were found)
    event sections
    JSON instructions

History and memory are fetched concurrently.
"""
from __future__ import annotations

import asyncio
import logging
from typing import Optional

from pydantic import BaseModel

from storycast.config import get_settings
from storycast.handlers import HandlerConfig, StoryContext
from storycast.handlers.live.context import (
    build_chat_history,
    build_time_context,
    lookup_memories,
)
from storycast.handlers.live.event_builders import build_event_prompt
from storycast.handlers.live.settings import get_default_system_prompt
from storycast.utils.logging_config import StoryAdapter

_logger = logging.getLogger("storycast.handlers.live.prompt")

FINAL_INSTRUCTIONS = (
    "请使用与提供的架构匹配的有效JSON进行响应。",
    "生成1-3个包含body、face和speech字段的片段，以实现富有表现力的VTuber回复。",
)


async def build_prompt(
    event: BaseModel,
    ctx: StoryContext,
    config: Optional[HandlerConfig] = None,
) -> str:
    config = config or {}
    logger = StoryAdapter(_logger, ctx.story_id)

    message_limit = int(config.get("messageLimit", get_settings().default_message_limit))
    system_prompt = config.get("systemPrompt") or get_default_system_prompt()

    event_prompt = build_event_prompt(event, ctx, config)

    history, memory = await asyncio.gather(
        build_chat_history(ctx, message_limit),
        lookup_memories(event_prompt.memory_query, ctx, config),
    )

    logger.debug(
        "prompt context built | memory=%s | search_text=%r",
        memory.status.value, event_prompt.search_text,
        extra={"event_type": event.type, "memory_status": memory.status.value},
    )

    prompt = [system_prompt, "", build_time_context(), history, ""]
    if memory.text:
        prompt.append(memory.text)
    prompt.extend(event_prompt.sections)
    prompt.append("")
    prompt.extend(FINAL_INSTRUCTIONS)

    return "\n".join(prompt)
