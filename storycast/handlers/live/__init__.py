"""Live-stream VTuber handler."""

from storycast.handlers.live.handler import (
    LIVE_METADATA,
    Clip,
    LiveOutput,
    LiveStoryHandler,
    create_live_handler,
)

__all__ = ["LIVE_METADATA", "Clip", "LiveOutput", "LiveStoryHandler", "create_live_handler"]
