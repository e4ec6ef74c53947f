"""Shared fixtures: in-memory stand-ins for the stores and the embedder."""

from __future__ import annotations

from datetime import datetime, timedelta, timezone
from typing import Optional, Sequence

import pytest

from storycast.handlers import StoryContext
from storycast.services import MemoryMatch, MemoryRecord, MessageRecord, StoryServices
from storycast.services.message_store import prepare_messages

NOW = datetime(2026, 10, 19, 12, 0, 0, tzinfo=timezone.utc)


class FakeMessageStore:
    def __init__(self, messages: Optional[list[MessageRecord]] = None):
        self.messages: list[MessageRecord] = list(messages or [])
        self.insert_calls: list[list[MessageRecord]] = []
        self.fail_with: Optional[Exception] = None

    async def get_messages_by_story(self, story_id: int, last_n: Optional[int] = None) -> list[MessageRecord]:
        rows = [m for m in self.messages if m.story_id == story_id]
        return rows[-last_n:] if last_n else rows

    async def bulk_insert_messages(self, messages: Sequence[MessageRecord]) -> None:
        if self.fail_with is not None:
            raise self.fail_with
        valid = prepare_messages(messages)
        self.insert_calls.append(valid)
        self.messages.extend(valid)


class FakeMemoryStore:
    def __init__(self, matches: Optional[list[MemoryMatch]] = None):
        self.matches = list(matches or [])
        self.calls: list[dict] = []
        self.fail_with: Optional[Exception] = None

    async def search_similar_memories(self, embedding, *, user_id=None, top_k=5, min_similarity=0.0):
        self.calls.append({"embedding": embedding, "user_id": user_id, "top_k": top_k,
                           "min_similarity": min_similarity})
        if self.fail_with is not None:
            raise self.fail_with
        return self.matches[:top_k]


class FakeEmbedder:
    def __init__(self):
        self.calls: list[tuple[str, list[str]]] = []
        self.fail_with: Optional[Exception] = None

    async def embed_texts(self, provider: str, texts: Sequence[str]) -> list[list[float]]:
        self.calls.append((provider, list(texts)))
        if self.fail_with is not None:
            raise self.fail_with
        return [[1.0, 0.0, 0.0] for _ in texts]


def user_row(content: str, story_id: int = 1, minutes_ago: int = 5) -> MessageRecord:
    return MessageRecord(story_id, "user", content, NOW - timedelta(minutes=minutes_ago))


def assistant_row(content: str, story_id: int = 1, minutes_ago: int = 4) -> MessageRecord:
    return MessageRecord(story_id, "assistant", content, NOW - timedelta(minutes=minutes_ago))


def memory(content: str, category: str = "USER_PREFERENCE", similarity: float = 0.9) -> MemoryMatch:
    return MemoryMatch(MemoryRecord(content=content, category=category,
                                    created_at=NOW - timedelta(days=2)), similarity)


@pytest.fixture
def message_store() -> FakeMessageStore:
    return FakeMessageStore()


@pytest.fixture
def memory_store() -> FakeMemoryStore:
    return FakeMemoryStore()


@pytest.fixture
def embedder() -> FakeEmbedder:
    return FakeEmbedder()


@pytest.fixture
def services(message_store, memory_store, embedder) -> StoryServices:
    return StoryServices(messages=message_store, memories=memory_store, embedder=embedder)


@pytest.fixture
def ctx(services) -> StoryContext:
    return StoryContext(story_id=1, user_id="alice", embedding_provider="dashscope", services=services)
