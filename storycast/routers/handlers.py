"""Handler discovery endpoint."""

from __future__ import annotations

from fastapi import APIRouter, Depends

from storycast.handlers.registry import HandlerRegistry
from storycast.routers.deps import get_registry

router = APIRouter()


@router.get("/handlers")
async def list_handlers(registry: HandlerRegistry = Depends(get_registry)):
    handlers = []
    for name, metadata in registry.list_with_metadata():
        entry = {"name": name}
        if metadata is not None:
            entry.update(metadata.to_dict())
        handlers.append(entry)
    return {"handlers": handlers}
