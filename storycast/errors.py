"""Error taxonomy for the story-handler runtime.

Each error carries the HTTP status class the router reports it as:
configuration and input problems are 4xx, broken invariants and lost turns
are 5xx.
"""

from __future__ import annotations


class StorycastError(Exception):
    status_code: int = 500


class HandlerValidationError(StorycastError):
    """A handler factory failed registration-time validation."""
    status_code = 400


class InputValidationError(StorycastError):
    """A turn payload did not match the handler's input schema."""
    status_code = 400


class HandlerStateError(StorycastError):
    """A lifecycle method was called out of order."""


class UnknownEventError(StorycastError):
    """A live event reached the dispatcher with no builder for its type."""


class PersistenceError(StorycastError):
    """The turn's messages could not be written."""
