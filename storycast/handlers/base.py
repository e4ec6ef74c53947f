"""Shared turn lifecycle for story handlers.

A handler instance serves exactly one turn::

    CREATED --init--> INITIALIZED --on_start--> STREAMING --on_finish--> FINISHED

``init`` may return a :class:`Bypass`, in which case ``on_finish`` is called
straight from INITIALIZED.  Any other out-of-order call raises
:class:`HandlerStateError`.

Subclasses implement ``render`` (prompt construction) and
``get_metadata``; they may override ``transform_content`` /
``transform_thinking`` to rewrite deltas before they are forwarded.
"""

from __future__ import annotations

import json
import logging
from typing import Any, Optional

from pydantic import BaseModel

from storycast.config import get_settings
from storycast.errors import HandlerStateError, PersistenceError
from storycast.handlers import (
    Bypass,
    FinishResult,
    HandlerConfig,
    HandlerMetadata,
    InitResult,
    StoryContext,
    StoryEvent,
    TurnState,
)
from storycast.services import MessageRecord
from storycast.utils.logging_config import StoryAdapter

_REQUEST_TEXT_FIELDS = ("prompt", "question", "message", "input")


def extract_request_text(payload: Any) -> Optional[str]:
    """Return the user-facing text of a turn payload.

    Strings are trimmed; objects yield the first non-blank of ``prompt``,
    ``question``, ``message`` or ``input``, falling back to their JSON form.
    Pydantic models are read through their wire (alias) dump.
    """
    if isinstance(payload, BaseModel):
        payload = payload.model_dump(mode="json", by_alias=True, exclude_none=True)
    if isinstance(payload, str):
        trimmed = payload.strip()
        return trimmed or None
    if isinstance(payload, dict):
        for field in _REQUEST_TEXT_FIELDS:
            candidate = payload.get(field)
            if isinstance(candidate, str) and candidate.strip():
                return candidate.strip()
        try:
            return json.dumps(payload, ensure_ascii=False)
        except (TypeError, ValueError):
            return None
    return None


class BaseStoryHandler:
    name = "base"

    def __init__(self, ctx: StoryContext, config: Optional[HandlerConfig] = None):
        self.ctx = ctx
        self.config: HandlerConfig = config or {}
        self.state = TurnState.CREATED
        self.payload: Any = None
        self.response = ""
        self.bypassed = False
        self.logger = StoryAdapter(logging.getLogger(f"storycast.handlers.{self.name}"), ctx.story_id)

    # ------------------------------------------------------------------
    # Lifecycle
    # ------------------------------------------------------------------

    async def init(self, payload: Any) -> InitResult:
        self._expect(TurnState.CREATED, "init")
        self.payload = payload
        result = await self.render(payload)
        self.state = TurnState.INITIALIZED
        if isinstance(result, Bypass):
            self.bypassed = True
            self.response = result.response
            self.logger.info("turn bypassed: %s", result.reason or "no model call needed",
                             extra={"handler": self.name})
        return result

    def on_start(self) -> StoryEvent:
        self._expect(TurnState.INITIALIZED, "on_start")
        if self.bypassed:
            raise HandlerStateError(f"{self.name}: on_start called on a bypassed turn")
        self.state = TurnState.STREAMING
        return StoryEvent("start", "stream-started")

    def on_content(self, delta: str) -> StoryEvent:
        self._expect(TurnState.STREAMING, "on_content")
        self.response += delta
        return StoryEvent("delta", self.transform_content(delta))

    def on_thinking(self, delta: str) -> StoryEvent:
        self._expect(TurnState.STREAMING, "on_thinking")
        return StoryEvent("thinking", self.transform_thinking(delta))

    async def on_finish(self) -> FinishResult:
        if not (self.state is TurnState.STREAMING
                or (self.state is TurnState.INITIALIZED and self.bypassed)):
            raise HandlerStateError(f"{self.name}: on_finish called in state {self.state.value}")
        self.state = TurnState.FINISHED

        user_message = extract_request_text(self.payload)
        assistant_message = self.response.strip() or None

        messages = []
        if user_message:
            messages.append(MessageRecord(self.ctx.story_id, "user", user_message))
        if assistant_message:
            messages.append(MessageRecord(self.ctx.story_id, "assistant", assistant_message))

        if messages:
            await self._persist(messages)

        return FinishResult(
            event=StoryEvent("finish", "stream-finished"),
            user_message=user_message,
            assistant_message=assistant_message,
            metadata=self.finish_metadata(),
        )

    # ------------------------------------------------------------------
    # Hooks for subclasses
    # ------------------------------------------------------------------

    async def render(self, payload: Any) -> InitResult:
        raise NotImplementedError

    def get_metadata(self) -> HandlerMetadata:
        raise NotImplementedError

    def transform_content(self, delta: str) -> str:
        return delta

    def transform_thinking(self, delta: str) -> str:
        return delta

    def finish_metadata(self) -> dict[str, Any]:
        return {"handler": self.name, "bypassed": self.bypassed}

    # ------------------------------------------------------------------
    # Helpers
    # ------------------------------------------------------------------

    @property
    def message_limit(self) -> int:
        return int(self.config.get("messageLimit", get_settings().default_message_limit))

    async def _persist(self, messages: list[MessageRecord]) -> None:
        services = self.ctx.services
        if services is None:
            raise PersistenceError(f"{self.name}: no message store configured for story {self.ctx.story_id}")
        try:
            await services.messages.bulk_insert_messages(messages)
        except PersistenceError:
            raise
        except Exception as exc:
            self.logger.exception("failed to persist turn", extra={"handler": self.name})
            raise PersistenceError(f"Failed to save messages: {exc}") from exc

    def _expect(self, state: TurnState, method: str) -> None:
        if self.state is not state:
            raise HandlerStateError(
                f"{self.name}: {method} called in state {self.state.value}, expected {state.value}"
            )
