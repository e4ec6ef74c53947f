"""
HTTP request/response schemas.

Turn payloads are deliberately loose here (a string or any JSON object);
each handler validates its own input shape during ``init``.
"""
from __future__ import annotations

import json
import logging
from datetime import datetime
from typing import Any, Dict, Optional

from pydantic import BaseModel, Field

from storycast.errors import InputValidationError

logger = logging.getLogger(__name__)

# ---------------------------------------------------------------------------
# Hard limits
# ---------------------------------------------------------------------------
MAX_INPUT_BYTES = 65_536  # 64 KB of serialised turn input


# ---------------------------------------------------------------------------
# Stories
# ---------------------------------------------------------------------------

class CreateStoryRequest(BaseModel):
    user_id: str = Field(..., min_length=1, max_length=200)
    name: str = Field(default="Untitled Story", max_length=200)
    handler: str = Field(default="simple", max_length=100)
    handler_config: Optional[Dict[str, Any]] = None
    llm_provider: str = Field(default="gemini", max_length=50)
    embedding_provider: Optional[str] = Field(default=None, max_length=50)


class StoryResponse(BaseModel):
    id: int
    user_id: str
    name: str
    handler: str
    llm_provider: str
    embedding_provider: Optional[str] = None
    created_at: Optional[datetime] = None


class MessageResponse(BaseModel):
    id: int
    story_id: int
    role: str
    content: str
    extracted: bool = False
    created_at: Optional[datetime] = None


# ---------------------------------------------------------------------------
# Turn input
# ---------------------------------------------------------------------------

def unwrap_turn_input(body: Any) -> Any:
    """
    Return the handler payload carried by a request body.

    ``{"input": X}`` envelopes are unwrapped to ``X`` when ``input`` is the
    only key; bare strings and other objects pass through unchanged.

    Raises:
        InputValidationError: empty, non-JSON-object/string, or oversized body.
    """
    if isinstance(body, dict) and set(body) == {"input"}:
        body = body["input"]

    if body is None:
        raise InputValidationError("Request body must contain an input")
    if not isinstance(body, (str, dict)):
        raise InputValidationError(
            f"Input must be a string or an object, got {type(body).__name__}"
        )

    size = len(json.dumps(body, ensure_ascii=False).encode("utf-8"))
    if size > MAX_INPUT_BYTES:
        logger.info("turn_input_rejected | bytes=%d", size)
        raise InputValidationError(f"Input exceeds {MAX_INPUT_BYTES} bytes")

    return body
