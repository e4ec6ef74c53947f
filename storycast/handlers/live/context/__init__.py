"""Context builders for the live handler prompt."""

from storycast.handlers.live.context.history import build_chat_history
from storycast.handlers.live.context.memory import (
    LookupStatus,
    MemoryLookup,
    build_memory_context,
    lookup_memories,
)
from storycast.handlers.live.context.time import build_time_context, relative_time

__all__ = [
    "LookupStatus",
    "MemoryLookup",
    "build_chat_history",
    "build_memory_context",
    "build_time_context",
    "lookup_memories",
    "relative_time",
]
