"""Structured-output streaming from chat model providers.

``stream_structured`` is a provider-agnostic async generator of
:class:`ProviderEvent` values.  The turn driver feeds ``delta`` events into
``handler.on_content`` and ``thinking`` events into ``handler.on_thinking``.

Providers:

    "gemini": google-genai ``generate_content_stream`` with a JSON response
        schema; parts flagged as thoughts become ``thinking`` events.
    "ollama": POST /api/chat with ``stream: true`` over httpx; the response
        is newline-delimited JSON chunks.
"""
from __future__ import annotations

import dataclasses
import json
import logging
from typing import AsyncIterator, Literal, Optional, Type

import httpx
from google import genai
from google.genai import types
from pydantic import BaseModel

from storycast.config import get_settings

logger = logging.getLogger("storycast.services.llm")

ProviderEventType = Literal["delta", "thinking", "error", "done"]


@dataclasses.dataclass(frozen=True)
class ProviderEvent:
    type: ProviderEventType
    data: str = ""


async def stream_structured(
    provider: str,
    prompt: str,
    schema: Type[BaseModel],
    *,
    genai_client: Optional[genai.Client] = None,
    http_client: Optional[httpx.AsyncClient] = None,
) -> AsyncIterator[ProviderEvent]:
    if provider == "gemini":
        async for event in _stream_gemini(prompt, schema, genai_client):
            yield event
    elif provider == "ollama":
        async for event in _stream_ollama(prompt, schema, http_client):
            yield event
    else:
        yield ProviderEvent("error", f"Unsupported LLM provider: {provider}")


async def _stream_gemini(
    prompt: str,
    schema: Type[BaseModel],
    client: Optional[genai.Client],
) -> AsyncIterator[ProviderEvent]:
    settings = get_settings()
    client = client or genai.Client(api_key=settings.google_api_key or None)

    config = types.GenerateContentConfig(
        response_mime_type="application/json",
        response_schema=schema,
        thinking_config=types.ThinkingConfig(include_thoughts=True),
    )
    stream = await client.aio.models.generate_content_stream(
        model=settings.gemini_model,
        contents=prompt,
        config=config,
    )
    async for chunk in stream:
        for candidate in chunk.candidates or []:
            content = candidate.content
            if not content or not content.parts:
                continue
            for part in content.parts:
                if not part.text:
                    continue
                yield ProviderEvent("thinking" if part.thought else "delta", part.text)
    yield ProviderEvent("done")


async def _stream_ollama(
    prompt: str,
    schema: Type[BaseModel],
    client: Optional[httpx.AsyncClient],
) -> AsyncIterator[ProviderEvent]:
    settings = get_settings()
    body = {
        "model": settings.ollama_model,
        "messages": [{"role": "user", "content": prompt}],
        "stream": True,
        "format": schema.model_json_schema(),
        "keep_alive": settings.ollama_keep_alive,
        "options": {"temperature": 0.7, "top_p": 0.8, "top_k": 20},
    }
    url = f"{settings.ollama_base_url.rstrip('/')}/api/chat"

    owns_client = client is None
    client = client or httpx.AsyncClient(timeout=settings.llm_timeout_seconds)
    try:
        async with client.stream("POST", url, json=body) as response:
            if response.status_code >= 400:
                text = (await response.aread()).decode("utf-8", errors="replace")
                yield ProviderEvent("error", f"Ollama error ({response.status_code}): {text[:500]}")
                return
            async for line in response.aiter_lines():
                if not line.strip():
                    continue
                chunk = json.loads(line)
                if "error" in chunk:
                    yield ProviderEvent("error", str(chunk["error"]))
                    return
                message = chunk.get("message") or {}
                if message.get("thinking"):
                    yield ProviderEvent("thinking", message["thinking"])
                if message.get("content"):
                    yield ProviderEvent("delta", message["content"])
                if chunk.get("done"):
                    yield ProviderEvent("done")
                    return
    finally:
        if owns_client:
            await client.aclose()
