"""
JSON extraction for structured model output.

Model responses are requested as JSON but sometimes arrive wrapped in
markdown code fences.  ``parse_llm_response`` strips those, parses, and
validates against a pydantic model; ``extract_clip_speech`` pulls the spoken
text out of a stored clip envelope for chat-history rendering.
"""
import dataclasses
import json
import logging
from typing import Any, Generic, Optional, Type, TypeVar

from pydantic import BaseModel, ValidationError

logger = logging.getLogger(__name__)

T = TypeVar("T", bound=BaseModel)

# Keys that may hold the clip list, and per-clip keys that may hold speech,
# each in priority order.
CLIP_LIST_KEYS = ("clips", "responses", "messages")
SPEECH_KEYS = ("speech", "text", "content", "message")


def remove_markdown_code_fences(text: str) -> str:
    """Strip leading ```lang and trailing ``` fences (repeated ones too)."""
    trimmed = text.strip()

    while trimmed.startswith("```"):
        newline = trimmed.find("\n")
        if trimmed.startswith("```json"):
            trimmed = trimmed[len("```json"):].strip()
        elif newline != -1 and trimmed[3:newline].strip().isalpha():
            # Other language markers: drop the whole fence line
            trimmed = trimmed[newline + 1:].strip()
        else:
            trimmed = trimmed[3:].strip()

    while trimmed.endswith("```"):
        trimmed = trimmed[:-3].strip()

    return trimmed


@dataclasses.dataclass
class ParseResult(Generic[T]):
    success: bool
    cleaned_text: str
    data: Optional[T] = None
    error: Optional[str] = None
    stage: Optional[str] = None  # cleaning / json_parse / schema_validation


def parse_llm_response(raw: str, schema: Type[T]) -> ParseResult[T]:
    """Clean, parse and validate *raw* against *schema*."""
    cleaned = remove_markdown_code_fences(raw)
    if not cleaned:
        return ParseResult(False, "", error="Empty response after cleaning markdown fences", stage="cleaning")

    try:
        parsed = json.loads(cleaned)
    except json.JSONDecodeError as exc:
        return ParseResult(False, cleaned, error=f"JSON parse error: {exc}", stage="json_parse")

    try:
        data = schema.model_validate(parsed)
    except ValidationError as exc:
        logger.info(
            "llm_response_invalid | schema=%s | issues=%d",
            schema.__name__, exc.error_count(),
        )
        return ParseResult(False, cleaned, error=f"Schema validation error: {exc}", stage="schema_validation")

    return ParseResult(True, cleaned, data=data)


def extract_clip_speech(content: str) -> Optional[str]:
    """
    Concatenate the spoken text of every clip in a stored assistant message.

    Returns ``None`` when *content* is not a clip envelope or carries no
    speech at all.
    """
    try:
        parsed: Any = json.loads(remove_markdown_code_fences(content))
    except (json.JSONDecodeError, TypeError):
        return None
    if not isinstance(parsed, dict):
        return None

    clips = next((parsed[k] for k in CLIP_LIST_KEYS if parsed.get(k)), None)
    if not isinstance(clips, list):
        return None

    speeches = []
    for clip in clips:
        if not isinstance(clip, dict):
            continue
        speech = next((clip[k] for k in SPEECH_KEYS if clip.get(k)), None)
        if isinstance(speech, str) and speech.strip():
            speeches.append(speech)

    joined = "".join(speeches)
    return joined or None
