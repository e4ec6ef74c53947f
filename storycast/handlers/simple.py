"""Simple handler: a plain assistant over the story's chat history."""

from __future__ import annotations

from typing import Any, Optional, Union

from pydantic import BaseModel, Field

from storycast.handlers import (
    HandlerCapabilities,
    HandlerConfig,
    HandlerMetadata,
    InitResult,
    PromptPlan,
    StoryContext,
)
from storycast.handlers.base import BaseStoryHandler, extract_request_text

DEFAULT_SYSTEM_PROMPT = "You are a helpful assistant, response user's question in JSON format"


class SimpleAnswer(BaseModel):
    answer: str = Field(..., description="Assistant's response.")


class SimpleRequest(BaseModel):
    prompt: Optional[str] = None
    question: Optional[str] = None
    message: Optional[str] = None
    input: Optional[str] = None


SIMPLE_METADATA = HandlerMetadata(
    name="simple",
    description="Simple conversational handler with chat history and configurable system prompt",
    version="1.0.0",
    input_schema=Union[str, SimpleRequest],
    output_schema=SimpleAnswer,
    capabilities=HandlerCapabilities(supports_thinking=True, requires_history=True, supports_caching=False),
)


class SimpleStoryHandler(BaseStoryHandler):
    name = "simple"

    async def render(self, payload: Any) -> InitResult:
        system_prompt = self.config.get("systemPrompt") or DEFAULT_SYSTEM_PROMPT

        rows = []
        if self.ctx.services is not None:
            rows = await self.ctx.services.messages.get_messages_by_story(
                self.ctx.story_id, last_n=self.message_limit
            )
        history = [row for row in rows if row.role in ("user", "assistant")]

        prompt = [system_prompt, "", "## Chat history:"]
        if not history:
            prompt.append("(no previous conversation)")
        for row in history:
            speaker = "User" if row.role == "user" else "Assistant"
            prompt.append(f"{speaker}: {row.content}")

        request = extract_request_text(payload)
        if request:
            prompt.extend(["", "## Current request:", request])

        prompt.extend(["", "Respond with valid JSON matching the provided schema."])
        return PromptPlan(prompt="\n".join(prompt), output_schema=SimpleAnswer)

    def get_metadata(self) -> HandlerMetadata:
        return SIMPLE_METADATA


def create_simple_handler(ctx: StoryContext, config: Optional[HandlerConfig] = None) -> SimpleStoryHandler:
    return SimpleStoryHandler(ctx, config)
