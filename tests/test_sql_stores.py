"""Tests for the SQLAlchemy message and memory stores on aiosqlite."""

import pytest
from sqlalchemy.exc import OperationalError
from sqlalchemy.orm import Session

from storycast.database import create_tables, make_engine, make_session_factory
from storycast.errors import PersistenceError
from storycast.models import Memory, Story
from storycast.services import MemoryRecord, MessageRecord
from storycast.services.memory_store import SqlMemoryStore, cosine_distance, rank_by_similarity
from storycast.services.message_store import SqlMessageStore, prepare_messages


@pytest.fixture
async def session_factory(tmp_path):
    engine = make_engine(f"sqlite+aiosqlite:///{tmp_path / 'test.db'}")
    await create_tables(engine)
    factory = make_session_factory(engine)
    async with factory() as db:
        db.add(Story(id=1, user_id="alice", name="s", handler="live"))
        await db.commit()
    yield factory
    await engine.dispose()


# ── messages ─────────────────────────────────────────────────


def test_prepare_messages_trims_and_drops_blank():
    prepared = prepare_messages([
        MessageRecord(1, "user", "  hi "),
        MessageRecord(1, "assistant", "   "),
    ])
    assert [(m.role, m.content) for m in prepared] == [("user", "hi")]


async def test_bulk_insert_and_read_back(session_factory):
    store = SqlMessageStore(session_factory)
    await store.bulk_insert_messages([
        MessageRecord(1, "user", "first"),
        MessageRecord(1, "assistant", "second"),
    ])
    await store.bulk_insert_messages([MessageRecord(1, "user", "third")])

    rows = await store.get_messages_by_story(1)
    assert [r.content for r in rows] == ["first", "second", "third"]
    assert all(r.created_at is not None for r in rows)

    last_two = await store.get_messages_by_story(1, last_n=2)
    assert [r.content for r in last_two] == ["second", "third"]


async def test_bulk_insert_is_atomic(session_factory, monkeypatch):
    store = SqlMessageStore(session_factory)

    def failing_flush(self, objects=None):
        raise OperationalError("INSERT", {}, Exception("disk I/O error"))

    monkeypatch.setattr(Session, "flush", failing_flush)
    with pytest.raises(PersistenceError):
        await store.bulk_insert_messages([
            MessageRecord(1, "user", "a"),
            MessageRecord(1, "assistant", "b"),
        ])
    monkeypatch.undo()

    assert await store.get_messages_by_story(1) == []


async def test_other_story_messages_excluded(session_factory):
    store = SqlMessageStore(session_factory)
    async with session_factory() as db:
        db.add(Story(id=2, user_id="bob", name="other"))
        await db.commit()
    await store.bulk_insert_messages([MessageRecord(2, "user", "not mine")])
    assert await store.get_messages_by_story(1) == []


# ── memories ─────────────────────────────────────────────────


def test_cosine_distance():
    assert cosine_distance([1, 0], [1, 0]) == pytest.approx(0.0)
    assert cosine_distance([1, 0], [0, 1]) == pytest.approx(1.0)
    assert cosine_distance([1, 0], [-1, 0]) == pytest.approx(2.0)
    with pytest.raises(ValueError):
        cosine_distance([1, 0], [1, 0, 0])


def test_rank_filters_after_top_k():
    candidates = [
        (MemoryRecord(content="same"), [1.0, 0.0]),
        (MemoryRecord(content="orthogonal"), [0.0, 1.0]),
        (MemoryRecord(content="opposite"), [-1.0, 0.0]),
    ]
    matches = rank_by_similarity([1.0, 0.0], candidates, top_k=2, min_similarity=0.6)
    assert [m.memory.content for m in matches] == ["same"]
    assert matches[0].similarity == pytest.approx(1.0)


async def test_search_similar_memories(session_factory):
    async with session_factory() as db:
        db.add_all([
            Memory(user_id="alice", content="likes cats", category="USER_PREFERENCE", embedding=[1.0, 0.0]),
            Memory(user_id="alice", content="lives far", category="USER_INFO", embedding=[0.6, 0.8]),
            Memory(user_id="bob", content="not alice", embedding=[1.0, 0.0]),
            Memory(user_id="alice", content="no vector"),
        ])
        await db.commit()

    store = SqlMemoryStore(session_factory)
    matches = await store.search_similar_memories([1.0, 0.0], user_id="alice", top_k=5, min_similarity=0.5)
    assert [m.memory.content for m in matches] == ["likes cats", "lives far"]
    assert matches[0].similarity > matches[1].similarity
    assert matches[1].similarity == pytest.approx(0.8)
