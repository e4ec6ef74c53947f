import json
from types import SimpleNamespace
from unittest.mock import AsyncMock, MagicMock

import httpx

from storycast.handlers.simple import SimpleAnswer
from storycast.services.llm import ProviderEvent, stream_structured


async def collect(stream):
    return [event async for event in stream]


def ndjson(*chunks):
    return "\n".join(json.dumps(c) for c in chunks) + "\n"


async def test_ollama_streams_thinking_and_content():
    seen = {}

    def handler(request: httpx.Request) -> httpx.Response:
        seen["body"] = json.loads(request.content)
        return httpx.Response(200, text=ndjson(
            {"message": {"thinking": "hmm"}, "done": False},
            {"message": {"content": '{"answer": '}, "done": False},
            {"message": {"content": '"hi"}'}, "done": False},
            {"message": {}, "done": True},
        ))

    http = httpx.AsyncClient(transport=httpx.MockTransport(handler))
    events = await collect(stream_structured("ollama", "prompt", SimpleAnswer, http_client=http))

    assert events == [
        ProviderEvent("thinking", "hmm"),
        ProviderEvent("delta", '{"answer": '),
        ProviderEvent("delta", '"hi"}'),
        ProviderEvent("done"),
    ]
    assert seen["body"]["stream"] is True
    assert seen["body"]["format"]["properties"]["answer"]["type"] == "string"
    assert seen["body"]["messages"] == [{"role": "user", "content": "prompt"}]


async def test_ollama_http_error_becomes_error_event():
    http = httpx.AsyncClient(transport=httpx.MockTransport(lambda r: httpx.Response(500, text="model not loaded")))
    events = await collect(stream_structured("ollama", "p", SimpleAnswer, http_client=http))
    assert len(events) == 1
    assert events[0].type == "error"
    assert "500" in events[0].data and "model not loaded" in events[0].data


async def test_ollama_inline_error():
    http = httpx.AsyncClient(transport=httpx.MockTransport(
        lambda r: httpx.Response(200, text=ndjson({"error": "out of memory"}))
    ))
    events = await collect(stream_structured("ollama", "p", SimpleAnswer, http_client=http))
    assert events == [ProviderEvent("error", "out of memory")]


async def test_gemini_splits_thoughts_from_text():
    def chunk(*parts):
        return SimpleNamespace(candidates=[SimpleNamespace(content=SimpleNamespace(parts=list(parts)))])

    async def fake_stream():
        yield chunk(SimpleNamespace(text="planning", thought=True))
        yield chunk(SimpleNamespace(text='{"answer": "ok"}', thought=None))
        yield SimpleNamespace(candidates=None)

    client = MagicMock()
    client.aio.models.generate_content_stream = AsyncMock(return_value=fake_stream())

    events = await collect(stream_structured("gemini", "p", SimpleAnswer, genai_client=client))
    assert events == [
        ProviderEvent("thinking", "planning"),
        ProviderEvent("delta", '{"answer": "ok"}'),
        ProviderEvent("done"),
    ]
    config = client.aio.models.generate_content_stream.await_args.kwargs["config"]
    assert config.response_mime_type == "application/json"


async def test_unknown_provider():
    events = await collect(stream_structured("openai", "p", SimpleAnswer))
    assert events[0].type == "error"
    assert "openai" in events[0].data
