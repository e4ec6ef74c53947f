"""Message persistence boundary.

Handlers depend on the :class:`MessageStore` protocol only; the SQLAlchemy
implementation below is what the application wires in.
"""
from __future__ import annotations

import dataclasses
import logging
from datetime import datetime
from typing import Optional, Protocol, Sequence

from sqlalchemy import select, desc, asc
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

from storycast.errors import PersistenceError
from storycast.models import Message

logger = logging.getLogger("storycast.services.message_store")


@dataclasses.dataclass(frozen=True)
class MessageRecord:
    story_id: int
    role: str
    content: str
    created_at: Optional[datetime] = None


class MessageStore(Protocol):
    async def get_messages_by_story(
        self, story_id: int, last_n: Optional[int] = None
    ) -> list[MessageRecord]: ...

    async def bulk_insert_messages(self, messages: Sequence[MessageRecord]) -> None: ...


def prepare_messages(messages: Sequence[MessageRecord]) -> list[MessageRecord]:
    """Drop blank messages and trim the rest."""
    return [
        dataclasses.replace(m, content=m.content.strip())
        for m in messages
        if m.content and m.content.strip()
    ]


class SqlMessageStore:
    """Async implementation of :class:`MessageStore` using SQLAlchemy models."""

    def __init__(self, session_factory: async_sessionmaker[AsyncSession]):
        self._session_factory = session_factory

    async def get_messages_by_story(
        self, story_id: int, last_n: Optional[int] = None
    ) -> list[MessageRecord]:
        """Return messages for *story_id* in chronological order.

        With *last_n*, only the most recent N messages are returned (still
        oldest first).
        """
        async with self._session_factory() as db:
            if last_n is not None:
                result = await db.execute(
                    select(Message)
                    .where(Message.story_id == story_id)
                    .order_by(desc(Message.created_at), desc(Message.id))
                    .limit(last_n)
                )
                rows = list(reversed(result.scalars().all()))
            else:
                result = await db.execute(
                    select(Message)
                    .where(Message.story_id == story_id)
                    .order_by(asc(Message.created_at), asc(Message.id))
                )
                rows = list(result.scalars().all())

        return [
            MessageRecord(story_id=r.story_id, role=r.role, content=r.content, created_at=r.created_at)
            for r in rows
        ]

    async def bulk_insert_messages(self, messages: Sequence[MessageRecord]) -> None:
        """Insert all messages in one transaction, or none of them."""
        valid = prepare_messages(messages)
        if not valid:
            return

        try:
            async with self._session_factory() as db:
                async with db.begin():
                    db.add_all([
                        Message(story_id=m.story_id, role=m.role, content=m.content)
                        for m in valid
                    ])
        except SQLAlchemyError as exc:
            logger.error("bulk_insert_failed | count=%d | error=%s", len(valid), exc)
            raise PersistenceError(f"Failed to save messages: {exc}") from exc
