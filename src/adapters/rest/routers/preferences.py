"""Read-only endpoints over a user's stored preferences and memories."""

from __future__ import annotations

from fastapi import APIRouter, Depends, Query

from adapters.rest.dependencies import get_factory
from factory import ServiceFactory

router = APIRouter(prefix="/users", tags=["memory"])


@router.get("/{user_id}/preferences")
async def get_preferences(
    user_id: str,
    factory: ServiceFactory = Depends(get_factory),
):
    """Return the user's category → preference map ({} when none)."""
    preferences = await factory.create_memory_service().get_preferences(user_id)
    return {"user_id": user_id, "preferences": preferences}


@router.get("/{user_id}/memories")
async def get_memories(
    user_id: str,
    limit: int = Query(default=10, ge=1, le=100),
    factory: ServiceFactory = Depends(get_factory),
):
    """Return the user's most recent conversation memories, newest first."""
    records = await factory.create_memory_service().get_recent(user_id, limit)
    return {
        "user_id": user_id,
        "memories": [
            {"id": r.id, "content": r.content, "metadata": r.metadata, "created_at": r.created_at}
            for r in records
        ],
    }
