"""Request-scoped access to the objects built once in the app lifespan."""

from __future__ import annotations

from fastapi import Request

from storycast.handlers.registry import HandlerRegistry
from storycast.services import StoryServices
from storycast.streaming import StreamFactory


def get_registry(request: Request) -> HandlerRegistry:
    return request.app.state.registry


def get_services(request: Request) -> StoryServices:
    return request.app.state.services


def get_stream(request: Request) -> StreamFactory:
    return request.app.state.stream
