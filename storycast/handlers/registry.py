"""Handler registry: name -> validated factory.

A single :class:`HandlerRegistry` is built at process start (see
``storycast.app``) and passed to whatever needs to resolve handlers.  Tests
construct their own instance.
"""

from __future__ import annotations

import builtins
import dataclasses
import logging
from typing import Optional

from storycast.errors import HandlerValidationError
from storycast.handlers import (
    LIFECYCLE_METHODS,
    HandlerConfig,
    HandlerMetadata,
    StoryContext,
    StoryHandler,
    StoryHandlerFactory,
)

logger = logging.getLogger("storycast.handlers.registry")

# Synthetic context used to instantiate a throwaway handler for validation
# and metadata lookups.  Factories must not perform I/O on construction.
PROBE_CONTEXT = StoryContext(story_id=0, user_id="__probe__")


@dataclasses.dataclass(frozen=True)
class RegistryEntry:
    factory: StoryHandlerFactory
    metadata: Optional[HandlerMetadata] = None


class HandlerRegistry:
    def __init__(self) -> None:
        self._entries: dict[str, RegistryEntry] = {}

    def register(
        self,
        name: str,
        factory: StoryHandlerFactory,
        metadata: Optional[HandlerMetadata] = None,
    ) -> None:
        """Validate *factory* and register it under *name*, replacing any previous entry."""
        if not callable(factory):
            raise HandlerValidationError(f"Handler factory for '{name}' is not callable")

        try:
            probe = factory(PROBE_CONTEXT, {})
        except Exception as exc:
            raise HandlerValidationError(
                f"Handler factory for '{name}' failed on probe context: {exc}"
            ) from exc

        missing = [m for m in LIFECYCLE_METHODS if not callable(getattr(probe, m, None))]
        if missing:
            raise HandlerValidationError(
                f"Handler '{name}' is missing lifecycle methods: {', '.join(missing)}"
            )

        if name in self._entries:
            logger.info("handler_replaced | name=%s", name)
        self._entries[name] = RegistryEntry(factory=factory, metadata=metadata)

    def resolve(
        self,
        name: str,
        context: StoryContext,
        config: Optional[HandlerConfig] = None,
    ) -> Optional[StoryHandler]:
        """Instantiate the handler registered as *name*, or ``None`` if unknown."""
        entry = self._entries.get(name)
        if entry is None:
            return None
        return entry.factory(context, config or {})

    def list(self) -> set[str]:
        return set(self._entries)

    def describe(self, name: str) -> Optional[HandlerMetadata]:
        entry = self._entries.get(name)
        if entry is None:
            return None
        if entry.metadata is not None:
            return entry.metadata

        probe = entry.factory(PROBE_CONTEXT, {})
        get_metadata = getattr(probe, "get_metadata", None)
        return get_metadata() if callable(get_metadata) else None

    def list_with_metadata(self) -> builtins.list[tuple[str, Optional[HandlerMetadata]]]:
        return [(name, self.describe(name)) for name in sorted(self._entries)]

    def clear(self) -> None:
        self._entries.clear()

    def __contains__(self, name: object) -> bool:
        return name in self._entries

    def __len__(self) -> int:
        return len(self._entries)


def register_builtin_handlers(registry: HandlerRegistry) -> HandlerRegistry:
    """Register the handlers that ship with Storycast.

    Imports are deferred to avoid circular-import issues and to keep this
    module lightweight at import time.
    """
    from storycast.handlers.simple import SIMPLE_METADATA, create_simple_handler
    from storycast.handlers.live.handler import LIVE_METADATA, create_live_handler

    registry.register("simple", create_simple_handler, SIMPLE_METADATA)
    registry.register("live", create_live_handler, LIVE_METADATA)
    return registry
