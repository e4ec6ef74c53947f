"""Storycast: streaming story-handler runtime."""

__version__ = "0.1.0"
