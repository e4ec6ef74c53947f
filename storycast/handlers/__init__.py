"""Story handler types shared by the registry, the handlers and the turn driver."""

from __future__ import annotations

import dataclasses
import enum
from typing import Any, Callable, Literal, Mapping, Optional, Protocol, Union

from pydantic import BaseModel, TypeAdapter

from storycast.services import StoryServices

StoryEventName = Literal["start", "delta", "thinking", "finish", "error"]

# Per-story handler tunables, e.g. {"messageLimit": 20, "memoryTopK": 3}
HandlerConfig = Mapping[str, Any]


@dataclasses.dataclass(frozen=True)
class StoryEvent:
    event: StoryEventName
    data: str


@dataclasses.dataclass(frozen=True)
class StoryContext:
    """Per-request context handed to a handler factory.

    Created once per turn by the router and owned by the handler instance
    for that turn.
    """
    story_id: int
    user_id: str
    llm_provider: str = "gemini"
    embedding_provider: Optional[str] = None
    services: Optional[StoryServices] = None


@dataclasses.dataclass(frozen=True)
class PromptPlan:
    """What the model must be asked, and the shape it must answer in."""
    prompt: str
    output_schema: type[BaseModel]


@dataclasses.dataclass(frozen=True)
class Bypass:
    """Returned by ``init`` when no model call is needed for this turn."""
    response: str = ""
    reason: str = ""


InitResult = Union[PromptPlan, Bypass]


@dataclasses.dataclass(frozen=True)
class FinishResult:
    event: StoryEvent
    user_message: Optional[str] = None
    assistant_message: Optional[str] = None
    metadata: dict[str, Any] = dataclasses.field(default_factory=dict)


@dataclasses.dataclass(frozen=True)
class HandlerCapabilities:
    supports_thinking: bool = True
    requires_history: bool = True
    supports_caching: bool = False


@dataclasses.dataclass(frozen=True)
class HandlerMetadata:
    name: str
    description: str
    version: str
    input_schema: Any
    output_schema: type[BaseModel]
    capabilities: HandlerCapabilities = dataclasses.field(default_factory=HandlerCapabilities)

    def to_dict(self) -> dict[str, Any]:
        """JSON-ready description, with both schemas rendered as JSON Schema."""
        return {
            "name": self.name,
            "description": self.description,
            "version": self.version,
            "capabilities": dataclasses.asdict(self.capabilities),
            "inputSchema": TypeAdapter(self.input_schema).json_schema(),
            "outputSchema": self.output_schema.model_json_schema(),
        }


class TurnState(enum.Enum):
    CREATED = "created"
    INITIALIZED = "initialized"
    STREAMING = "streaming"
    FINISHED = "finished"


class StoryHandler(Protocol):
    async def init(self, payload: Any) -> InitResult: ...

    def on_start(self) -> StoryEvent: ...

    def on_content(self, delta: str) -> StoryEvent: ...

    def on_thinking(self, delta: str) -> StoryEvent: ...

    async def on_finish(self) -> FinishResult: ...

    def get_metadata(self) -> HandlerMetadata: ...


StoryHandlerFactory = Callable[[StoryContext, Optional[HandlerConfig]], StoryHandler]

LIFECYCLE_METHODS = ("init", "on_start", "on_content", "on_thinking", "on_finish")
