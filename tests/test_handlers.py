"""Tests for the handler turn lifecycle and the simple/live handlers."""

import json

import pytest

from storycast.errors import HandlerStateError, InputValidationError, PersistenceError
from storycast.handlers import Bypass, PromptPlan, StoryContext, StoryEvent, TurnState
from storycast.handlers.base import extract_request_text
from storycast.handlers.live import LiveOutput, create_live_handler
from storycast.handlers.live.events import UserChatData, UserChatEvent
from storycast.handlers.simple import SimpleAnswer, SimpleRequest, create_simple_handler

from conftest import user_row

CLIPS = json.dumps({"clips": [{"body": "挥手", "face": "笑", "speech": "大家好"}]}, ensure_ascii=False)


# ── extract_request_text ─────────────────────────────────────


@pytest.mark.parametrize("payload, expected", [
    ("  hi  ", "hi"),
    ("   ", None),
    ({"prompt": "a", "message": "b"}, "a"),
    ({"prompt": "  ", "question": "q"}, "q"),
    ({"input": " x "}, "x"),
    ({"other": 1}, '{"other": 1}'),
    (None, None),
    (SimpleRequest(question=" why? "), "why?"),
])
def test_extract_request_text(payload, expected):
    assert extract_request_text(payload) == expected


# ── lifecycle ────────────────────────────────────────────────


async def test_full_turn_persists_both_messages_in_one_write(ctx, message_store):
    handler = create_simple_handler(ctx, {})
    plan = await handler.init({"prompt": "hi"})
    assert isinstance(plan, PromptPlan)
    assert plan.output_schema is SimpleAnswer

    assert handler.on_start() == StoryEvent("start", "stream-started")
    assert handler.on_content('{"answer": ').data == '{"answer": '
    assert handler.on_thinking("pondering").event == "thinking"
    handler.on_content('"yo"}  ')

    result = await handler.on_finish()
    assert result.event == StoryEvent("finish", "stream-finished")
    assert result.user_message == "hi"
    assert result.assistant_message == '{"answer": "yo"}'
    assert len(message_store.insert_calls) == 1
    assert [(m.role, m.content) for m in message_store.insert_calls[0]] == [
        ("user", "hi"),
        ("assistant", '{"answer": "yo"}'),
    ]
    assert handler.state is TurnState.FINISHED


async def test_blank_response_persists_only_user_message(ctx, message_store):
    handler = create_simple_handler(ctx, {})
    await handler.init({"prompt": "hi"})
    handler.on_start()
    handler.on_content("   ")
    result = await handler.on_finish()
    assert result.assistant_message is None
    assert [m.role for m in message_store.insert_calls[0]] == ["user"]


async def test_on_start_before_init_raises(ctx):
    handler = create_simple_handler(ctx, {})
    with pytest.raises(HandlerStateError):
        handler.on_start()


async def test_content_before_start_raises(ctx):
    handler = create_simple_handler(ctx, {})
    await handler.init("hi")
    with pytest.raises(HandlerStateError):
        handler.on_content("x")


async def test_double_finish_raises(ctx):
    handler = create_simple_handler(ctx, {})
    await handler.init("hi")
    handler.on_start()
    await handler.on_finish()
    with pytest.raises(HandlerStateError):
        await handler.on_finish()


async def test_double_init_raises(ctx):
    handler = create_simple_handler(ctx, {})
    await handler.init("hi")
    with pytest.raises(HandlerStateError):
        await handler.init("again")


async def test_persistence_failure_propagates(ctx, message_store):
    message_store.fail_with = RuntimeError("disk full")
    handler = create_simple_handler(ctx, {})
    await handler.init("hi")
    handler.on_start()
    handler.on_content("ok")
    with pytest.raises(PersistenceError, match="disk full"):
        await handler.on_finish()


async def test_missing_store_is_a_persistence_error():
    handler = create_simple_handler(StoryContext(story_id=1, user_id="u"), {})
    await handler.init("hi")
    handler.on_start()
    with pytest.raises(PersistenceError):
        await handler.on_finish()


# ── simple handler ───────────────────────────────────────────


async def test_simple_prompt_with_history(ctx, message_store):
    message_store.messages = [user_row("earlier question")]
    handler = create_simple_handler(ctx, {"systemPrompt": "Be brief."})
    plan = await handler.init("now")
    lines = plan.prompt.splitlines()
    assert lines[0] == "Be brief."
    assert "User: earlier question" in lines
    assert lines[-4:] == ["## Current request:", "now", "", "Respond with valid JSON matching the provided schema."]


async def test_simple_prompt_without_history(ctx):
    handler = create_simple_handler(ctx, {})
    plan = await handler.init("hello")
    assert "(no previous conversation)" in plan.prompt


# ── live handler ─────────────────────────────────────────────


async def test_live_turn(ctx, message_store):
    handler = create_live_handler(ctx, {})
    plan = await handler.init({"type": "user_chat", "data": {"username": "Alice", "message": "hello"}})
    assert plan.output_schema is LiveOutput
    assert "Alice: hello" in plan.prompt

    handler.on_start()
    handler.on_content(CLIPS)
    result = await handler.on_finish()
    assert result.metadata["event_type"] == "user_chat"
    assert result.metadata["clips"] == [{"body": "挥手", "face": "笑", "speech": "大家好"}]
    assert message_store.insert_calls[0][1].content == CLIPS


async def test_live_turn_from_event_instance_saves_both_roles(ctx, message_store):
    handler = create_live_handler(ctx, {})
    await handler.init(UserChatEvent(data=UserChatData(username="Alice", message="hello")))
    handler.on_start()
    handler.on_content(CLIPS)
    result = await handler.on_finish()

    assert result.user_message is not None
    assert json.loads(result.user_message) == {
        "type": "user_chat",
        "data": {"username": "Alice", "message": "hello"},
    }
    [written] = message_store.insert_calls
    assert [m.role for m in written] == ["user", "assistant"]


async def test_live_invalid_input(ctx):
    handler = create_live_handler(ctx, {})
    with pytest.raises(InputValidationError):
        await handler.init({"type": "gift_event", "data": {"giftName": "no sender"}})
    assert handler.state is TurnState.CREATED


async def test_live_bypasses_quiet_system_event(ctx, message_store):
    handler = create_live_handler(ctx, {})
    payload = {"type": "system_event", "data": {"eventType": "heartbeat"}}
    result = await handler.init(payload)
    assert isinstance(result, Bypass)
    assert result.response == ""

    with pytest.raises(HandlerStateError):
        handler.on_start()

    finish = await handler.on_finish()
    assert finish.metadata["bypassed"] is True
    assert finish.assistant_message is None
    assert [m.role for m in message_store.insert_calls[0]] == ["user"]


async def test_live_does_not_bypass_system_event_with_message(ctx):
    handler = create_live_handler(ctx, {})
    result = await handler.init({"type": "system_event", "data": {"eventType": "stream_end", "message": "下播啦"}})
    assert isinstance(result, PromptPlan)
    assert "消息: 下播啦" in result.prompt
