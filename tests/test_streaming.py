"""Tests for the turn driver: event ordering, failures and bypass."""

import asyncio

from storycast.handlers.live import create_live_handler
from storycast.handlers.simple import create_simple_handler
from storycast.services.llm import ProviderEvent
from storycast.streaming import run_turn


def scripted(*events, raise_after=None):
    """Stream factory replaying *events*, optionally raising afterwards."""
    calls = []

    async def stream(provider, prompt, schema):
        calls.append((provider, prompt, schema))
        for event in events:
            yield event
        if raise_after is not None:
            raise raise_after

    stream.calls = calls
    return stream


async def collect(handler, payload, stream, **kwargs):
    plan = await handler.init(payload)
    return [e async for e in run_turn(handler, plan, story_id=1, llm_provider="gemini", stream=stream, **kwargs)]


async def test_normal_turn(ctx, message_store):
    stream = scripted(
        ProviderEvent("thinking", "hmm"),
        ProviderEvent("delta", '{"answer": "'),
        ProviderEvent("delta", 'hi"}'),
        ProviderEvent("done"),
    )
    events = await collect(create_simple_handler(ctx, {}), "hello", stream)
    assert [(e.event, e.data) for e in events] == [
        ("start", "stream-started"),
        ("thinking", "hmm"),
        ("delta", '{"answer": "'),
        ("delta", 'hi"}'),
        ("finish", "stream-finished"),
    ]
    assert stream.calls[0][0] == "gemini"
    assert [m.content for m in message_store.insert_calls[0]] == ["hello", '{"answer": "hi"}']


async def test_provider_error_skips_persistence(ctx, message_store):
    stream = scripted(ProviderEvent("delta", "partial"), ProviderEvent("error", "quota exceeded"))
    events = await collect(create_simple_handler(ctx, {}), "hello", stream)
    assert [e.event for e in events] == ["start", "delta", "error"]
    assert events[-1].data == "quota exceeded"
    assert message_store.insert_calls == []


async def test_provider_exception_becomes_error_event(ctx, message_store):
    stream = scripted(ProviderEvent("delta", "x"), raise_after=ConnectionError("reset by peer"))
    events = await collect(create_simple_handler(ctx, {}), "hello", stream)
    assert events[-1].event == "error"
    assert "reset by peer" in events[-1].data
    assert message_store.insert_calls == []


async def test_persistence_error_reported_then_finish(ctx, message_store):
    message_store.fail_with = RuntimeError("db down")
    stream = scripted(ProviderEvent("delta", "ok"), ProviderEvent("done"))
    events = await collect(create_simple_handler(ctx, {}), "hello", stream)
    assert [e.event for e in events] == ["start", "delta", "error", "finish"]
    assert "db down" in events[2].data


async def test_stream_end_without_done_still_finishes(ctx):
    stream = scripted(ProviderEvent("delta", "ok"))
    events = await collect(create_simple_handler(ctx, {}), "hello", stream)
    assert events[-1].event == "finish"


async def test_timeout(ctx, message_store):
    async def slow(provider, prompt, schema):
        yield ProviderEvent("delta", "a")
        await asyncio.sleep(5)
        yield ProviderEvent("delta", "b")

    events = await collect(create_simple_handler(ctx, {}), "hello", slow, timeout_seconds=0.05)
    assert [e.event for e in events] == ["start", "delta", "error"]
    assert "timed out" in events[-1].data
    assert message_store.insert_calls == []


async def test_bypass_skips_model(ctx, message_store):
    stream = scripted(ProviderEvent("delta", "never"))
    events = await collect(
        create_live_handler(ctx, {}),
        {"type": "system_event", "data": {"eventType": "heartbeat"}},
        stream,
    )
    assert [e.event for e in events] == ["finish"]
    assert stream.calls == []
    assert len(message_store.insert_calls) == 1
