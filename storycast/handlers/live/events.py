"""
Live event schemas.

Every payload the live handler accepts is normalised into one ``LiveEvent``:
a ``{"type": ..., "data": {...}}`` envelope discriminated on ``type``.  Wire
field names are camelCase (``giftName``, ``programType``); attributes are
snake_case.

Legacy payloads are still accepted:
    "hello"                          -> user_chat
    {"prompt": "hello"}              -> user_chat (prompt/question/message/input)
"""
from __future__ import annotations

import logging
from typing import Annotated, Any, Dict, Literal, Optional, Union, get_args

from pydantic import BaseModel, ConfigDict, Field, TypeAdapter, ValidationError
from pydantic.alias_generators import to_camel

from storycast.errors import InputValidationError, UnknownEventError

logger = logging.getLogger(__name__)


class EventData(BaseModel):
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)


# ---------------------------------------------------------------------------
# Per-event payloads
# ---------------------------------------------------------------------------

class UserChatData(EventData):
    message: str = Field(..., description="The user's message content")
    username: Optional[str] = Field(default=None, description="Username of the sender")
    timestamp: Optional[float] = None


class BulletChatData(EventData):
    message: str = Field(..., description="The bullet chat message content")
    username: Optional[str] = None
    timestamp: Optional[float] = None
    position: Optional[Literal["top", "bottom", "scroll"]] = None


class ProgramEventData(EventData):
    action: Literal["start", "finish", "pause", "resume"]
    program_id: Optional[str] = None
    program_name: str
    program_type: Optional[Literal["singing", "chatting", "gaming", "drawing", "other"]] = None
    duration: Optional[int] = Field(default=None, ge=0, description="Duration in seconds (finish events)")
    metadata: Optional[Dict[str, Any]] = None


class GiftEventData(EventData):
    username: str
    gift_name: str
    gift_count: int = 1
    gift_value: Optional[float] = None
    message: Optional[str] = None


class UserInteractionData(EventData):
    action: Literal["follow", "subscribe", "like", "share"]
    username: str
    tier: Optional[str] = None
    months: Optional[int] = None


class SystemEventData(EventData):
    event_type: str = Field(..., description="e.g. stream_start, stream_end, technical_issue")
    message: Optional[str] = None
    severity: Literal["info", "warning", "error"] = "info"
    metadata: Optional[Dict[str, Any]] = None


class EmotionEventData(EventData):
    emotion: str = Field(..., description="e.g. happy, excited, tired, surprised")
    intensity: Optional[float] = Field(default=None, ge=0, le=1)
    trigger: Optional[str] = None
    duration: Optional[float] = Field(default=None, description="Expected duration in seconds")


class SimpleTextData(EventData):
    text: str


# ---------------------------------------------------------------------------
# Envelopes
# ---------------------------------------------------------------------------

class UserChatEvent(BaseModel):
    type: Literal["user_chat"] = "user_chat"
    data: UserChatData


class BulletChatEvent(BaseModel):
    type: Literal["bullet_chat"] = "bullet_chat"
    data: BulletChatData


class ProgramEvent(BaseModel):
    type: Literal["program_event"] = "program_event"
    data: ProgramEventData


class GiftEvent(BaseModel):
    type: Literal["gift_event"] = "gift_event"
    data: GiftEventData


class UserInteractionEvent(BaseModel):
    type: Literal["user_interaction"] = "user_interaction"
    data: UserInteractionData


class SystemEvent(BaseModel):
    type: Literal["system_event"] = "system_event"
    data: SystemEventData


class EmotionEvent(BaseModel):
    type: Literal["emotion_event"] = "emotion_event"
    data: EmotionEventData


class SimpleTextEvent(BaseModel):
    type: Literal["simple_text"] = "simple_text"
    data: SimpleTextData


LiveEvent = Annotated[
    Union[
        UserChatEvent,
        BulletChatEvent,
        ProgramEvent,
        GiftEvent,
        UserInteractionEvent,
        SystemEvent,
        EmotionEvent,
        SimpleTextEvent,
    ],
    Field(discriminator="type"),
]

LIVE_EVENT_MODELS: tuple[type[BaseModel], ...] = get_args(get_args(LiveEvent)[0])
LIVE_EVENT_TYPES = frozenset(
    get_args(model.model_fields["type"].annotation)[0] for model in LIVE_EVENT_MODELS
)

live_event_adapter: TypeAdapter = TypeAdapter(LiveEvent)


class LegacyInput(BaseModel):
    """Pre-event object payloads: the first text field present wins."""
    prompt: Optional[str] = None
    question: Optional[str] = None
    message: Optional[str] = None
    input: Optional[str] = None
    username: Optional[str] = None


# Accepted request shapes, rendered as JSON Schema in handler metadata
LiveInput = Union[LiveEvent, str, LegacyInput]


# ---------------------------------------------------------------------------
# Normalisation
# ---------------------------------------------------------------------------

def normalize_to_event(payload: Any) -> BaseModel:
    """Coerce any accepted payload into a ``LiveEvent`` instance.

    Raises:
        InputValidationError: the payload matches none of the accepted shapes.
    """
    if isinstance(payload, LIVE_EVENT_MODELS):
        return payload

    if isinstance(payload, str):
        return UserChatEvent(data=UserChatData(message=payload))

    if not isinstance(payload, dict):
        raise InputValidationError(
            f"Unsupported live input of type {type(payload).__name__}"
        )

    if "type" in payload:
        try:
            return live_event_adapter.validate_python(payload)
        except ValidationError as exc:
            logger.info("live_event_invalid | type=%s | issues=%d", payload.get("type"), exc.error_count())
            raise InputValidationError(f"Invalid live event: {exc}") from exc

    try:
        legacy = LegacyInput.model_validate(payload)
    except ValidationError as exc:
        raise InputValidationError(f"Invalid live input: {exc}") from exc

    text = next(
        (v for v in (legacy.prompt, legacy.question, legacy.message, legacy.input) if v is not None),
        "",
    )
    return UserChatEvent(data=UserChatData(message=text, username=legacy.username))


_INTERACTION_LABELS = {"follow": "关注", "subscribe": "订阅", "like": "点赞", "share": "分享"}
_PROGRAM_ACTION_LABELS = {"start": "开始", "finish": "结束", "pause": "暂停", "resume": "恢复"}


def extract_event_text(event: BaseModel) -> str:
    """One-line human-readable summary of an event, for logs and the client."""
    data = event.data
    if event.type == "user_chat":
        return data.message
    if event.type == "bullet_chat":
        return f"[弹幕] {data.message}"
    if event.type == "program_event":
        return f"[节目{_PROGRAM_ACTION_LABELS[data.action]}] {data.program_name}"
    if event.type == "gift_event":
        text = f"[礼物] {data.username} 送出了 {data.gift_count}x {data.gift_name}"
        return f"{text}: {data.message}" if data.message else text
    if event.type == "user_interaction":
        return f"[{_INTERACTION_LABELS[data.action]}] {data.username}"
    if event.type == "system_event":
        return f"[系统] {data.message or data.event_type}"
    if event.type == "emotion_event":
        trigger = f" (触发: {data.trigger})" if data.trigger else ""
        return f"[情绪变化] {data.emotion}{trigger}"
    if event.type == "simple_text":
        return data.text
    raise UnknownEventError(f"Unknown live event type: {event.type}")
