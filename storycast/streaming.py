"""Turn driver: runs one initialised handler against a model stream.

Yields :class:`StoryEvent` values in the order the router forwards them::

    start, (delta | thinking)*, finish      normal turn
    start, (delta | thinking)*, error       provider failure, nothing persisted
    start, (delta | thinking)*, error, finish
                                            persistence failure
    [delta], finish                         bypassed turn
"""

from __future__ import annotations

import asyncio
import time
from typing import AsyncIterator, Callable, Optional, Type

from pydantic import BaseModel

from storycast.config import get_settings
from storycast.errors import PersistenceError
from storycast.handlers import Bypass, InitResult, StoryEvent, StoryHandler
from storycast.services.llm import ProviderEvent, stream_structured
from storycast.utils.logging_config import StoryAdapter, get_logger

_logger = get_logger("storycast.streaming")

StreamFactory = Callable[[str, str, Type[BaseModel]], AsyncIterator[ProviderEvent]]


async def run_turn(
    handler: StoryHandler,
    plan: InitResult,
    *,
    story_id: int,
    llm_provider: str,
    stream: StreamFactory = stream_structured,
    timeout_seconds: Optional[float] = None,
) -> AsyncIterator[StoryEvent]:
    """Drive *handler* (already past ``init``) to completion.

    *stream* is called as ``stream(provider, prompt, schema)`` and must
    return an async iterator of :class:`ProviderEvent`.
    """
    logger = StoryAdapter(_logger, story_id)
    started = time.monotonic()

    if isinstance(plan, Bypass):
        if plan.response:
            yield StoryEvent("delta", plan.response)
        async for event in _finish(handler, logger):
            yield event
        return

    timeout = timeout_seconds if timeout_seconds is not None else get_settings().llm_timeout_seconds

    yield handler.on_start()

    loop = asyncio.get_running_loop()
    deadline = loop.time() + timeout
    events = stream(llm_provider, plan.prompt, plan.output_schema)
    failure: Optional[str] = None
    try:
        while True:
            # The deadline covers the provider only, not time spent downstream
            try:
                async with asyncio.timeout_at(deadline):
                    provider_event = await anext(events)
            except StopAsyncIteration:
                break

            if provider_event.type == "delta":
                yield handler.on_content(provider_event.data)
            elif provider_event.type == "thinking":
                yield handler.on_thinking(provider_event.data)
            elif provider_event.type == "error":
                failure = provider_event.data or "LLM provider error"
                break
            elif provider_event.type == "done":
                break
    except TimeoutError:
        failure = f"Generation timed out after {timeout:.0f}s"
        logger.warning(failure, extra={"provider": llm_provider})
    except Exception as exc:
        logger.exception("provider stream failed", extra={"provider": llm_provider})
        failure = str(exc) or type(exc).__name__
    finally:
        aclose = getattr(events, "aclose", None)
        if aclose is not None:
            await aclose()

    if failure is not None:
        logger.error(
            "turn failed, nothing persisted: %s", failure,
            extra={"provider": llm_provider, "duration_ms": _elapsed_ms(started)},
        )
        yield StoryEvent("error", failure)
        return

    async for event in _finish(handler, logger):
        yield event

    logger.info(
        "turn finished",
        extra={"provider": llm_provider, "duration_ms": _elapsed_ms(started)},
    )


async def _finish(handler: StoryHandler, logger: StoryAdapter) -> AsyncIterator[StoryEvent]:
    try:
        result = await handler.on_finish()
    except PersistenceError as exc:
        logger.error("turn output not saved: %s", exc)
        yield StoryEvent("error", str(exc))
        yield StoryEvent("finish", "stream-finished")
        return
    yield result.event


def _elapsed_ms(started: float) -> int:
    return int((time.monotonic() - started) * 1000)
