"""
Live handler: a Chinese-speaking VTuber reacting to live-stream events.

Input is any payload ``normalize_to_event`` accepts; output is 1-3 clips,
each pairing a body action and facial expression with a line of speech.
"""
from __future__ import annotations

from typing import Any, Optional

from pydantic import BaseModel, Field

from storycast.handlers import (
    Bypass,
    HandlerCapabilities,
    HandlerConfig,
    HandlerMetadata,
    InitResult,
    PromptPlan,
    StoryContext,
)
from storycast.handlers.base import BaseStoryHandler
from storycast.handlers.live.events import LiveInput, extract_event_text, normalize_to_event
from storycast.handlers.live.prompt_builder import build_prompt
from storycast.utils.json_extractor import parse_llm_response


class Clip(BaseModel):
    body: str = Field(..., description="身体动作/姿势描述")
    face: str = Field(..., description="面部表情描述")
    speech: str = Field(..., description="VTuber要说的文本内容")


class LiveOutput(BaseModel):
    clips: list[Clip] = Field(..., min_length=1, max_length=3, description="VTuber回复的1-3个片段")


LIVE_METADATA = HandlerMetadata(
    name="live",
    description="AI VTuber处理器，使用中文回复，输出包含身体动作、面部表情和语音的1-3个片段",
    version="1.0.0",
    input_schema=LiveInput,
    output_schema=LiveOutput,
    capabilities=HandlerCapabilities(supports_thinking=True, requires_history=True, supports_caching=False),
)


class LiveStoryHandler(BaseStoryHandler):
    name = "live"

    def __init__(self, ctx: StoryContext, config: Optional[HandlerConfig] = None):
        super().__init__(ctx, config)
        self.event: Optional[BaseModel] = None

    async def render(self, payload: Any) -> InitResult:
        event = normalize_to_event(payload)
        self.event = event
        self.logger.info(
            "live event: %s", extract_event_text(event),
            extra={"handler": self.name, "event_type": event.type},
        )

        # A routine notification with nothing to say needs no model call
        if event.type == "system_event" and event.data.severity == "info" and not event.data.message:
            return Bypass(response="", reason=f"info system event {event.data.event_type}")

        prompt = await build_prompt(event, self.ctx, self.config)
        return PromptPlan(prompt=prompt, output_schema=LiveOutput)

    def get_metadata(self) -> HandlerMetadata:
        return LIVE_METADATA

    def finish_metadata(self) -> dict[str, Any]:
        metadata = super().finish_metadata()
        if self.event is not None:
            metadata["event_type"] = self.event.type
        if self.response.strip():
            parsed = parse_llm_response(self.response, LiveOutput)
            if parsed.success:
                metadata["clips"] = [clip.model_dump() for clip in parsed.data.clips]
            else:
                self.logger.warning(
                    "assistant output did not match clip schema (%s): %s", parsed.stage, parsed.error,
                    extra={"handler": self.name},
                )
        return metadata


def create_live_handler(ctx: StoryContext, config: Optional[HandlerConfig] = None) -> LiveStoryHandler:
    return LiveStoryHandler(ctx, config)
