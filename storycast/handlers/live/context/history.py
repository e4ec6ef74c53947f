from __future__ import annotations

import logging
from datetime import datetime
from typing import Optional

from storycast.handlers import StoryContext
from storycast.handlers.live.context.time import relative_time
from storycast.utils.json_extractor import extract_clip_speech

logger = logging.getLogger("storycast.handlers.live.history")

HISTORY_HEADER = "## 聊天历史"
NO_HISTORY = "（没有之前的对话）"


async def build_chat_history(
    ctx: StoryContext,
    message_limit: int,
    now: Optional[datetime] = None,
) -> str:
    """Render the last *message_limit* user/assistant messages of the story.

    Assistant rows are stored as clip envelopes; only their speech is shown.
    Rows that do not parse are skipped.
    """
    rows = []
    if ctx.services is not None:
        rows = await ctx.services.messages.get_messages_by_story(ctx.story_id, last_n=message_limit)

    lines = [HISTORY_HEADER]
    skipped = 0
    for row in rows:
        if row.role not in ("user", "assistant"):
            continue

        time_info = f" [{relative_time(row.created_at, now)}]" if row.created_at else ""
        if row.role == "user":
            lines.append(f"用户{time_info}: {row.content}")
            continue

        speech = extract_clip_speech(row.content)
        if speech is None:
            skipped += 1
            continue
        lines.append(f"VTuber{time_info}: {speech}")

    if skipped:
        logger.debug("history_rows_skipped | story=%s | count=%d", ctx.story_id, skipped)

    if len(lines) == 1:
        lines.append(NO_HISTORY)
    return "\n".join(lines)
