"""Text embedding providers.

Two providers are supported, selected per story by name:

    "gemini": google-genai ``embed_content``.
    "dashscope": Aliyun DashScope text-embedding REST API over httpx,
        batched 10 texts per request and retried on transient failures.

Both return one vector per input text, in input order.
"""
from __future__ import annotations

import logging
from typing import Optional, Sequence

import httpx
from google import genai
from google.genai import types
from tenacity import AsyncRetrying, retry_if_exception, stop_after_attempt, wait_exponential

from storycast.config import get_settings

logger = logging.getLogger("storycast.services.embeddings")

DASHSCOPE_BATCH_SIZE = 10


def _is_transient(exc: BaseException) -> bool:
    if isinstance(exc, httpx.TransportError):
        return True
    if isinstance(exc, httpx.HTTPStatusError):
        status = exc.response.status_code
        return status == 429 or status >= 500
    return False


class Embedder:
    """Dispatches ``embed_texts`` calls to the named provider."""

    retry_wait = wait_exponential(multiplier=1, min=1, max=8)

    def __init__(
        self,
        http_client: Optional[httpx.AsyncClient] = None,
        genai_client: Optional[genai.Client] = None,
    ):
        self._settings = get_settings()
        self._http = http_client
        self._genai = genai_client

    async def embed_texts(self, provider: str, texts: Sequence[str]) -> list[list[float]]:
        if not texts:
            return []
        if provider == "dashscope":
            return await self._embed_dashscope(texts)
        if provider == "gemini":
            return await self._embed_gemini(texts)
        raise ValueError(f"Unsupported embedding provider: {provider}")

    # ------------------------------------------------------------------
    # DashScope
    # ------------------------------------------------------------------

    async def _embed_dashscope(self, texts: Sequence[str]) -> list[list[float]]:
        if not self._settings.dashscope_api_key:
            raise RuntimeError("DASHSCOPE_API_KEY is not set. Please add it to your .env file.")

        embeddings: list[list[float]] = []
        for start in range(0, len(texts), DASHSCOPE_BATCH_SIZE):
            batch = list(texts[start:start + DASHSCOPE_BATCH_SIZE])
            async for attempt in self._dashscope_retrying():
                with attempt:
                    vectors = await self._call_dashscope(batch)
            embeddings.extend(vectors)
        return embeddings

    def _dashscope_retrying(self) -> AsyncRetrying:
        return AsyncRetrying(
            retry=retry_if_exception(_is_transient),
            stop=stop_after_attempt(self._settings.embedding_max_retries),
            wait=self.retry_wait,
            reraise=True,
        )

    async def _call_dashscope(self, batch: list[str]) -> list[list[float]]:
        settings = self._settings
        body = {
            "model": settings.dashscope_embedding_model,
            "input": {"texts": batch},
            "parameters": {"dimension": settings.embedding_dims},
        }
        headers = {
            "Authorization": f"Bearer {settings.dashscope_api_key}",
            "Content-Type": "application/json",
        }

        if self._http is not None:
            response = await self._http.post(settings.dashscope_embedding_url, json=body, headers=headers)
        else:
            async with httpx.AsyncClient(timeout=30.0) as client:
                response = await client.post(settings.dashscope_embedding_url, json=body, headers=headers)
        response.raise_for_status()

        data = response.json()
        items = (data.get("output") or {}).get("embeddings")
        if not isinstance(items, list):
            raise ValueError(f"Invalid DashScope response format: {str(data)[:200]}")

        # Restore input order from text_index
        items = sorted(items, key=lambda item: item.get("text_index") or 0)
        return [item["embedding"] for item in items]

    # ------------------------------------------------------------------
    # Gemini
    # ------------------------------------------------------------------

    async def _embed_gemini(self, texts: Sequence[str]) -> list[list[float]]:
        if self._genai is None:
            self._genai = genai.Client(api_key=self._settings.google_api_key or None)

        response = await self._genai.aio.models.embed_content(
            model=self._settings.gemini_embedding_model,
            contents=list(texts),
            config=types.EmbedContentConfig(output_dimensionality=self._settings.embedding_dims),
        )
        vectors = [list(e.values or []) for e in (response.embeddings or [])]
        if len(vectors) != len(texts):
            raise ValueError(f"Gemini returned {len(vectors)} embeddings for {len(texts)} texts")
        return vectors
