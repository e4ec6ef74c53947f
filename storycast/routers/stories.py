"""Story and turn endpoints.

``POST /stories/{story_id}/messages`` runs one turn of the story's handler
and streams its events as server-sent events::

    event: start   data: stream-started
    event: delta   data: {"clips": [{"body": ...
    event: finish  data: stream-finished
"""

from __future__ import annotations

from typing import Any, List, Optional, Union

from fastapi import APIRouter, Body, Depends, HTTPException, Query
from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession
from sse_starlette.sse import EventSourceResponse

from storycast.database import get_db
from storycast.handlers import StoryContext
from storycast.handlers.registry import HandlerRegistry
from storycast.models import Message, Story
from storycast.routers.deps import get_registry, get_services, get_stream
from storycast.schemas import CreateStoryRequest, MessageResponse, StoryResponse, unwrap_turn_input
from storycast.services import StoryServices
from storycast.streaming import StreamFactory, run_turn
from storycast.utils.logging_config import StoryAdapter, get_logger

router = APIRouter()

_logger = get_logger("storycast.routers.stories")


async def _get_story(db: AsyncSession, story_id: int) -> Story:
    story = await db.get(Story, story_id)
    if not story:
        raise HTTPException(status_code=404, detail="Story not found")
    return story


def _story_response(story: Story) -> StoryResponse:
    return StoryResponse(
        id=story.id,
        user_id=story.user_id,
        name=story.name,
        handler=story.handler,
        llm_provider=story.llm_provider,
        embedding_provider=story.embedding_provider,
        created_at=story.created_at,
    )


@router.post("/stories", response_model=StoryResponse)
async def create_story(
    request: CreateStoryRequest,
    db: AsyncSession = Depends(get_db),
    registry: HandlerRegistry = Depends(get_registry),
):
    if request.handler not in registry:
        raise HTTPException(status_code=400, detail=f"Invalid handler: {request.handler}")

    story = Story(
        user_id=request.user_id,
        name=request.name,
        handler=request.handler,
        handler_config=request.handler_config,
        llm_provider=request.llm_provider,
        embedding_provider=request.embedding_provider,
    )
    db.add(story)
    await db.commit()
    await db.refresh(story)
    return _story_response(story)


@router.get("/stories/{story_id}", response_model=StoryResponse)
async def get_story(story_id: int, db: AsyncSession = Depends(get_db)):
    return _story_response(await _get_story(db, story_id))


@router.get("/stories/{story_id}/messages", response_model=List[MessageResponse])
async def list_messages(
    story_id: int,
    extracted: Optional[bool] = Query(default=None),
    db: AsyncSession = Depends(get_db),
):
    await _get_story(db, story_id)

    query = select(Message).where(Message.story_id == story_id)
    if extracted is not None:
        query = query.where(Message.extracted == extracted)
    result = await db.execute(query.order_by(Message.id))
    return [
        MessageResponse(
            id=m.id,
            story_id=m.story_id,
            role=m.role,
            content=m.content,
            extracted=m.extracted,
            created_at=m.created_at,
        )
        for m in result.scalars().all()
    ]


@router.post("/stories/{story_id}/messages")
async def post_message(
    story_id: int,
    body: Union[str, dict[str, Any]] = Body(...),
    db: AsyncSession = Depends(get_db),
    registry: HandlerRegistry = Depends(get_registry),
    services: StoryServices = Depends(get_services),
    stream: StreamFactory = Depends(get_stream),
):
    story = await _get_story(db, story_id)
    logger = StoryAdapter(_logger, story.id)

    payload = unwrap_turn_input(body)

    ctx = StoryContext(
        story_id=story.id,
        user_id=story.user_id,
        llm_provider=story.llm_provider,
        embedding_provider=story.embedding_provider,
        services=services,
    )
    handler = registry.resolve(story.handler, ctx, story.handler_config)
    if handler is None:
        logger.warning("unknown handler %r", story.handler, extra={"handler": story.handler})
        raise HTTPException(status_code=400, detail=f"Invalid handler: {story.handler}")

    # Input errors surface here as 400s, before the stream opens
    plan = await handler.init(payload)
    logger.info("turn started", extra={"handler": story.handler, "provider": story.llm_provider})

    async def event_source():
        async for event in run_turn(
            handler,
            plan,
            story_id=story.id,
            llm_provider=story.llm_provider,
            stream=stream,
        ):
            yield {"event": event.event, "data": event.data}

    return EventSourceResponse(event_source())
