"""Memory context: semantically retrieved facts about the user.

Lookup is best-effort.  :func:`lookup_memories` never raises; its
:class:`MemoryLookup` result says whether memories were found, none matched,
the lookup was skipped, or it degraded after a failure.  Callers that only
need prompt text use :func:`build_memory_context`, which is ``""`` for every
outcome but ``FOUND``.
"""

from __future__ import annotations

import dataclasses
import enum
import logging
from datetime import datetime
from typing import Optional

from storycast.handlers import HandlerConfig, StoryContext
from storycast.handlers.live.context.time import relative_time
from storycast.services import MemoryMatch
from storycast.utils.logging_config import StoryAdapter

_logger = logging.getLogger("storycast.handlers.live.memory")

DEFAULT_TOP_K = 5
DEFAULT_MIN_SIMILARITY = 0.5


class LookupStatus(enum.Enum):
    FOUND = "found"
    EMPTY = "empty"
    SKIPPED = "skipped"
    DEGRADED = "degraded"


@dataclasses.dataclass(frozen=True)
class MemoryLookup:
    status: LookupStatus
    text: str = ""
    matches: tuple[MemoryMatch, ...] = ()
    error: Optional[str] = None


def format_memories(matches: list[MemoryMatch], now: Optional[datetime] = None) -> str:
    lines = ["## 记忆上下文", "以下信息是从之前的对话中提取的：", ""]
    for match in matches:
        memory = match.memory
        category = (memory.category or "other").replace("_", " ").lower()
        when = f" ({relative_time(memory.created_at, now)})" if memory.created_at else ""
        lines.append(f"- [{category}]{when} {memory.content}")
    lines.append("")
    return "\n".join(lines)


async def lookup_memories(
    query: Optional[str],
    ctx: StoryContext,
    config: Optional[HandlerConfig] = None,
    now: Optional[datetime] = None,
) -> MemoryLookup:
    logger = StoryAdapter(_logger, ctx.story_id)

    if not query or not query.strip():
        return MemoryLookup(LookupStatus.SKIPPED)
    if not ctx.embedding_provider or ctx.services is None:
        logger.debug("memory lookup skipped: no embedding provider configured")
        return MemoryLookup(LookupStatus.SKIPPED)

    config = config or {}
    top_k = int(config.get("memoryTopK", DEFAULT_TOP_K))
    min_similarity = float(config.get("memoryMinSimilarity", DEFAULT_MIN_SIMILARITY))

    try:
        vectors = await ctx.services.embedder.embed_texts(ctx.embedding_provider, [query])
        if not vectors or not vectors[0]:
            logger.warning("empty embedding returned", extra={"provider": ctx.embedding_provider})
            return MemoryLookup(LookupStatus.DEGRADED, error="empty embedding")

        matches = await ctx.services.memories.search_similar_memories(
            vectors[0],
            user_id=ctx.user_id,
            top_k=top_k,
            min_similarity=min_similarity,
        )
    except Exception as exc:
        logger.error(
            "memory lookup failed: %s", exc,
            extra={"user_id": ctx.user_id, "provider": ctx.embedding_provider},
        )
        return MemoryLookup(LookupStatus.DEGRADED, error=str(exc))

    if not matches:
        return MemoryLookup(LookupStatus.EMPTY)

    logger.debug("retrieved %d memories", len(matches))
    return MemoryLookup(LookupStatus.FOUND, text=format_memories(matches, now), matches=tuple(matches))


async def build_memory_context(
    query: Optional[str],
    ctx: StoryContext,
    config: Optional[HandlerConfig] = None,
) -> str:
    return (await lookup_memories(query, ctx, config)).text
