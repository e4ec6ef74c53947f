"""End-to-end tests for the HTTP surface with a scripted model stream."""

import json

import httpx
import pytest

from storycast.app import create_app
from storycast.client import parse_sse
from storycast.database import create_tables, get_db, make_engine, make_session_factory
from storycast.handlers.registry import HandlerRegistry, register_builtin_handlers
from storycast.services import StoryServices
from storycast.services.llm import ProviderEvent
from storycast.services.message_store import SqlMessageStore

from conftest import FakeEmbedder, FakeMemoryStore

REPLY = json.dumps({"clips": [{"body": "挥手", "face": "笑", "speech": "欢迎！"}]}, ensure_ascii=False)


async def scripted_stream(provider, prompt, schema):
    yield ProviderEvent("delta", REPLY[:10])
    yield ProviderEvent("delta", REPLY[10:])
    yield ProviderEvent("done")


@pytest.fixture(autouse=True)
def reset_sse_app_status():
    # older sse-starlette releases keep a process-wide exit event bound to the first loop
    import sse_starlette.sse as sse
    status = getattr(sse, "AppStatus", None)
    if status is not None and hasattr(status, "should_exit_event"):
        status.should_exit_event = None


@pytest.fixture
async def client(tmp_path):
    engine = make_engine(f"sqlite+aiosqlite:///{tmp_path / 'api.db'}")
    await create_tables(engine)
    factory = make_session_factory(engine)

    app = create_app(
        registry=register_builtin_handlers(HandlerRegistry()),
        services=StoryServices(
            messages=SqlMessageStore(factory),
            memories=FakeMemoryStore(),
            embedder=FakeEmbedder(),
        ),
        stream=scripted_stream,
    )

    async def override_get_db():
        async with factory() as session:
            yield session

    app.dependency_overrides[get_db] = override_get_db

    transport = httpx.ASGITransport(app=app)
    async with httpx.AsyncClient(transport=transport, base_url="http://test") as http:
        yield http
    await engine.dispose()


async def read_events(response: httpx.Response):
    async def lines():
        for line in response.text.splitlines():
            yield line
    return [item async for item in parse_sse(lines())]


async def create_story(client, handler="live"):
    response = await client.post("/stories", json={"user_id": "alice", "handler": handler})
    assert response.status_code == 200
    return response.json()["id"]


async def test_list_handlers(client):
    response = await client.get("/handlers")
    assert response.status_code == 200
    handlers = {h["name"]: h for h in response.json()["handlers"]}
    assert set(handlers) == {"live", "simple"}
    assert "answer" in handlers["simple"]["outputSchema"]["properties"]


async def test_turn_streams_and_persists(client):
    story_id = await create_story(client)

    response = await client.post(
        f"/stories/{story_id}/messages",
        json={"type": "user_chat", "data": {"username": "Alice", "message": "hello"}},
    )
    assert response.status_code == 200
    events = await read_events(response)
    assert [e for e, _ in events] == ["start", "delta", "delta", "finish"]
    assert "".join(d for e, d in events if e == "delta") == REPLY

    messages = (await client.get(f"/stories/{story_id}/messages")).json()
    assert [m["role"] for m in messages] == ["user", "assistant"]
    assert messages[1]["content"] == REPLY


async def test_input_envelope_is_unwrapped(client):
    story_id = await create_story(client, handler="simple")
    response = await client.post(f"/stories/{story_id}/messages", json={"input": "just text"})
    assert response.status_code == 200

    messages = (await client.get(f"/stories/{story_id}/messages")).json()
    assert messages[0]["content"] == "just text"


async def test_unknown_story_is_404(client):
    response = await client.post("/stories/999/messages", json="hi")
    assert response.status_code == 404


async def test_invalid_live_input_is_400(client):
    story_id = await create_story(client)
    response = await client.post(
        f"/stories/{story_id}/messages",
        json={"type": "gift_event", "data": {}},
    )
    assert response.status_code == 400
    assert "Invalid live event" in response.json()["error"]


async def test_unknown_handler_is_400(client):
    response = await client.post("/stories", json={"user_id": "alice", "handler": "nope"})
    assert response.status_code == 400


async def test_extracted_filter(client):
    story_id = await create_story(client, handler="simple")
    await client.post(f"/stories/{story_id}/messages", json="hi")
    response = await client.get(f"/stories/{story_id}/messages", params={"extracted": "true"})
    assert response.json() == []
