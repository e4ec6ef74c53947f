"""
Command-line client that plays a short live session against a running server.

Usage::

    python -m storycast.client --user alice
    python -m storycast.client --url http://localhost:8000 --story 3
"""
from __future__ import annotations

import argparse
import asyncio
import json
from typing import Any, AsyncIterator, Optional

import httpx
from tenacity import retry, retry_if_exception_type, stop_after_attempt, wait_exponential

from storycast.client_state import LiveClientState
from storycast.handlers.live import Clip, LiveOutput
from storycast.utils.json_extractor import parse_llm_response

DEFAULT_URL = "http://localhost:8000"

SAMPLE_EVENTS: list[Any] = [
    {"type": "program_event", "data": {"action": "start", "programName": "杂谈时间", "programType": "chatting"}},
    {"type": "user_chat", "data": {"username": "Alice", "message": "晚上好！今天播什么？"}},
    {"type": "bullet_chat", "data": {"username": "Bob", "message": "来了来了", "position": "scroll"}},
    {"type": "gift_event", "data": {"username": "Carol", "giftName": "小星星", "giftCount": 5, "message": "加油"}},
    {"type": "program_event", "data": {"action": "finish", "programName": "杂谈时间", "duration": 3725}},
]


async def parse_sse(lines: AsyncIterator[str]) -> AsyncIterator[tuple[str, str]]:
    """Yield ``(event, data)`` pairs from a text/event-stream body."""
    event, data = "message", []
    async for line in lines:
        line = line.rstrip("\r")
        if not line:
            if data:
                yield event, "\n".join(data)
            event, data = "message", []
            continue
        if line.startswith(":"):
            continue
        field, _, value = line.partition(":")
        value = value[1:] if value.startswith(" ") else value
        if field == "event":
            event = value
        elif field == "data":
            data.append(value)
    if data:
        yield event, "\n".join(data)


def clip_search_queries(clips: list[Clip]) -> list[str]:
    """One stock-footage search phrase per clip, built from its body and face cues."""
    return [" ".join(part for part in (clip.body.strip(), clip.face.strip()) if part) for clip in clips]


class StorycastClient:
    def __init__(self, base_url: str = DEFAULT_URL, http: Optional[httpx.AsyncClient] = None):
        self.base_url = base_url.rstrip("/")
        self.http = http or httpx.AsyncClient(base_url=self.base_url, timeout=None)
        self.state = LiveClientState()

    @retry(
        retry=retry_if_exception_type(httpx.TransportError),
        stop=stop_after_attempt(3),
        wait=wait_exponential(multiplier=1, min=1, max=8),
        reraise=True,
    )
    async def create_story(self, user_id: str, handler: str = "live") -> int:
        response = await self.http.post("/stories", json={"user_id": user_id, "handler": handler})
        response.raise_for_status()
        return response.json()["id"]

    async def send_turn(self, story_id: int, payload: Any) -> AsyncIterator[tuple[str, str]]:
        async with self.http.stream("POST", f"/stories/{story_id}/messages", json=payload) as response:
            if response.status_code >= 400:
                body = (await response.aread()).decode("utf-8", errors="replace")
                yield "error", f"HTTP {response.status_code}: {body}"
                return
            async for item in parse_sse(response.aiter_lines()):
                yield item

    async def live_turn(self, story_id: int, payload: Any) -> Optional[LiveOutput]:
        """Run one turn and remember its clips; returns the parsed reply."""
        buffer = ""
        async for event, data in self.send_turn(story_id, payload):
            if event == "delta":
                buffer += data
            elif event == "thinking":
                print(f"  [thinking] {data}", end="", flush=True)
            elif event == "error":
                print(f"\n[Server Error] {data}")
                return None

        if not buffer:
            return None
        parsed = parse_llm_response(buffer, LiveOutput)
        if not parsed.success:
            print(f"\n[Client] Unparseable reply ({parsed.stage}): {parsed.error}")
            return None
        self.state.set_last_live_clips(parsed.data.clips)
        return parsed.data

    async def aclose(self) -> None:
        await self.http.aclose()


async def simulate_session(
    base_url: str,
    user_id: str,
    story_id: Optional[int] = None,
    http: Optional[httpx.AsyncClient] = None,
) -> None:
    client = StorycastClient(base_url, http=http)

    async def speak() -> None:
        print("\n[Hotkey] " + "".join(client.state.last_speech_clips))

    async def search_clips() -> None:
        for query in clip_search_queries(client.state.last_live_clips):
            print(f"[Clip search] {query}")

    client.state.set_speech_action(speak)
    client.state.set_clip_search_action(search_clips)
    try:
        if story_id is None:
            story_id = await client.create_story(user_id)
            print(f"[Client] Created story {story_id}")

        for payload in SAMPLE_EVENTS:
            print(f"\n[Client] Sending {json.dumps(payload, ensure_ascii=False)}")
            reply = await client.live_turn(story_id, payload)
            if reply is None:
                continue
            for clip in reply.clips:
                print(f"  ({clip.body} / {clip.face}) {clip.speech}")
            await client.state.trigger_speech()
            await client.state.trigger_clip_search()
    except httpx.HTTPError as exc:
        print(f"Simulation failed: {exc}")
    finally:
        await client.aclose()


def main() -> None:
    parser = argparse.ArgumentParser(description="Play a sample live session against a Storycast server.")
    parser.add_argument("--url", default=DEFAULT_URL)
    parser.add_argument("--user", default="demo")
    parser.add_argument("--story", type=int, default=None)
    args = parser.parse_args()
    asyncio.run(simulate_session(args.url, args.user, args.story))


if __name__ == "__main__":
    main()
