"""External collaborators the handler runtime consumes."""

from __future__ import annotations

import dataclasses
from typing import Protocol, Sequence

from storycast.services.memory_store import MemoryStore, MemoryMatch, MemoryRecord
from storycast.services.message_store import MessageStore, MessageRecord


class TextEmbedder(Protocol):
    async def embed_texts(self, provider: str, texts: Sequence[str]) -> list[list[float]]: ...


@dataclasses.dataclass(frozen=True)
class StoryServices:
    """Bundles the stores a handler reads from and writes to.

    Built once at startup in ``app.py`` and attached to every
    :class:`~storycast.handlers.StoryContext`.
    """
    messages: MessageStore
    memories: MemoryStore
    embedder: TextEmbedder


__all__ = [
    "MemoryMatch",
    "MemoryRecord",
    "MemoryStore",
    "MessageRecord",
    "MessageStore",
    "StoryServices",
    "TextEmbedder",
]
