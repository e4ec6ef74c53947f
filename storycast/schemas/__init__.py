from storycast.schemas.requests import (
    CreateStoryRequest,
    MessageResponse,
    StoryResponse,
    unwrap_turn_input,
)

__all__ = ["CreateStoryRequest", "MessageResponse", "StoryResponse", "unwrap_turn_input"]
