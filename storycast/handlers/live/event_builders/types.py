from __future__ import annotations

import dataclasses
from typing import Any, Callable, Optional


@dataclasses.dataclass
class EventPromptResult:
    """Event-specific prompt sections plus what the memory lookup should use.

    ``search_text`` may be set while ``requires_memory`` is False; it is then
    only recorded for logging.
    """
    sections: list[str]
    search_text: Optional[str] = None
    requires_memory: bool = False

    @property
    def memory_query(self) -> Optional[str]:
        return self.search_text if self.requires_memory else None


# (event, ctx, config) -> EventPromptResult
EventPromptBuilder = Callable[[Any, Any, Any], EventPromptResult]
