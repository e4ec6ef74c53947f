"""Long-term memory lookup boundary.

The runtime only ever *reads* memories; writing them belongs to the
extraction pipeline.  Similarity is reported on a 0-1 scale derived from
cosine distance (``1 - distance / 2``), matching what a pgvector
``cosine_distance`` ordering would produce.
"""
from __future__ import annotations

import dataclasses
import logging
import math
from datetime import datetime
from typing import Optional, Protocol, Sequence

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

from storycast.models import Memory

logger = logging.getLogger("storycast.services.memory_store")


@dataclasses.dataclass(frozen=True)
class MemoryRecord:
    content: str
    category: Optional[str] = None
    importance: Optional[float] = None
    confidence: Optional[float] = None
    action: Optional[str] = None
    created_at: Optional[datetime] = None


@dataclasses.dataclass(frozen=True)
class MemoryMatch:
    memory: MemoryRecord
    similarity: float


class MemoryStore(Protocol):
    async def search_similar_memories(
        self,
        embedding: Sequence[float],
        *,
        user_id: Optional[str] = None,
        top_k: int = 5,
        min_similarity: float = 0.0,
    ) -> list[MemoryMatch]: ...


def cosine_distance(a: Sequence[float], b: Sequence[float]) -> float:
    """Cosine distance in [0, 2]; zero vectors are treated as orthogonal."""
    if len(a) != len(b):
        raise ValueError(f"Embedding dimension mismatch: {len(a)} != {len(b)}")
    dot = sum(x * y for x, y in zip(a, b))
    norm = math.sqrt(sum(x * x for x in a)) * math.sqrt(sum(y * y for y in b))
    if norm == 0:
        return 1.0
    return 1.0 - dot / norm


def rank_by_similarity(
    query: Sequence[float],
    candidates: Sequence[tuple[MemoryRecord, Sequence[float]]],
    top_k: int,
    min_similarity: float,
) -> list[MemoryMatch]:
    """Order by distance, keep the top K, then drop those under the threshold."""
    scored = sorted(
        ((record, cosine_distance(vector, query)) for record, vector in candidates),
        key=lambda pair: pair[1],
    )[:top_k]
    matches = [MemoryMatch(memory=record, similarity=1 - distance / 2) for record, distance in scored]
    return [m for m in matches if m.similarity >= min_similarity]


class SqlMemoryStore:
    """Async implementation of :class:`MemoryStore` using SQLAlchemy models."""

    def __init__(self, session_factory: async_sessionmaker[AsyncSession]):
        self._session_factory = session_factory

    async def search_similar_memories(
        self,
        embedding: Sequence[float],
        *,
        user_id: Optional[str] = None,
        top_k: int = 5,
        min_similarity: float = 0.0,
    ) -> list[MemoryMatch]:
        stmt = select(Memory).where(Memory.embedding.is_not(None))
        if user_id:
            stmt = stmt.where(Memory.user_id == user_id)

        async with self._session_factory() as db:
            result = await db.execute(stmt)
            rows = result.scalars().all()

        candidates = [
            (
                MemoryRecord(
                    content=row.content or "",
                    category=row.category,
                    importance=row.importance,
                    confidence=row.confidence,
                    action=row.action,
                    created_at=row.created_at,
                ),
                row.embedding,
            )
            for row in rows
            if row.embedding
        ]
        matches = rank_by_similarity(embedding, candidates, top_k, min_similarity)
        logger.debug("memory_search | user=%s | candidates=%d | matches=%d",
                     user_id, len(candidates), len(matches))
        return matches
