"""FastAPI application factory, CORS, and the process-wide turn runtime."""

from __future__ import annotations

import functools
from contextlib import asynccontextmanager
from typing import Optional

import httpx
from dotenv import load_dotenv
from fastapi import FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from google import genai

from storycast.config import get_settings
from storycast.database import AsyncSessionLocal, create_tables
from storycast.errors import StorycastError
from storycast.handlers.registry import HandlerRegistry, register_builtin_handlers
from storycast.routers import handlers, stories
from storycast.services import StoryServices
from storycast.services.embeddings import Embedder
from storycast.services.llm import stream_structured
from storycast.services.memory_store import SqlMemoryStore
from storycast.services.message_store import SqlMessageStore
from storycast.streaming import StreamFactory
from storycast.utils.logging_config import get_logger, setup_logging

load_dotenv()

logger = get_logger("storycast.app")


def create_app(
    *,
    registry: Optional[HandlerRegistry] = None,
    services: Optional[StoryServices] = None,
    stream: Optional[StreamFactory] = None,
) -> FastAPI:
    """Build the application.

    Anything passed in is used as-is; the rest is built in the lifespan
    from settings.
    """

    @asynccontextmanager
    async def lifespan(app: FastAPI):
        settings = get_settings()
        setup_logging(settings.log_file)

        await create_tables()

        http_client = httpx.AsyncClient(timeout=settings.llm_timeout_seconds)
        genai_client = genai.Client(api_key=settings.google_api_key) if settings.google_api_key else None

        if registry is None:
            app.state.registry = register_builtin_handlers(HandlerRegistry())
        if services is None:
            app.state.services = StoryServices(
                messages=SqlMessageStore(AsyncSessionLocal),
                memories=SqlMemoryStore(AsyncSessionLocal),
                embedder=Embedder(http_client=http_client, genai_client=genai_client),
            )
        if stream is None:
            app.state.stream = functools.partial(
                stream_structured, genai_client=genai_client, http_client=http_client
            )

        logger.info("storycast started with handlers: %s", sorted(app.state.registry.list()))
        yield
        # Shutdown logic
        await http_client.aclose()

    app = FastAPI(title=get_settings().app_name, version="0.1.0", lifespan=lifespan)

    if registry is not None:
        app.state.registry = registry
    if services is not None:
        app.state.services = services
    if stream is not None:
        app.state.stream = stream

    app.add_middleware(
        CORSMiddleware,
        allow_origins=["http://localhost:5173", "http://localhost:3000"],
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )

    @app.exception_handler(StorycastError)
    async def storycast_error_handler(request: Request, exc: StorycastError):
        if exc.status_code >= 500:
            logger.error("request failed: %s", exc, exc_info=exc)
        return JSONResponse(status_code=exc.status_code, content={"error": str(exc)})

    app.include_router(handlers.router)
    app.include_router(stories.router)
    return app


app = create_app()
