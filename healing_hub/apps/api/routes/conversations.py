from __future__ import annotations

from datetime import datetime

from fastapi import APIRouter, Depends, Query

from healing_hub.apps.api.core.errors import ServiceError, to_http
from healing_hub.apps.api.core.responses import ok
from healing_hub.apps.api.deps.auth import get_current_user_id
from healing_hub.apps.api.services import conversations as service
from healing_hub.libs.schemas.payloads import (
    ConversationCreatePayload,
    ConversationMessagePayload,
    ConversationUpdatePayload,
)

router = APIRouter(prefix="/api/conversations", tags=["conversations"])


@router.post("", status_code=201)
async def create_conversation(payload: ConversationCreatePayload, user_id: str = Depends(get_current_user_id)):
    conversation = await service.create_conversation(
        user_id=user_id,
        healing_name=payload.healing_name,
        title=payload.title,
        tags=payload.tags,
        metadata=payload.metadata,
    )
    return ok({"conversation": conversation}, status=201)


@router.get("")
async def list_conversations(
    user_id: str = Depends(get_current_user_id),
    search: str | None = Query(default=None),
    date_from: datetime | None = Query(default=None, alias="dateFrom"),
    date_to: datetime | None = Query(default=None, alias="dateTo"),
    tags: list[str] | None = Query(default=None),
    archived: bool | None = Query(default=False),
    limit: int = Query(default=50, ge=1, le=200),
):
    conversations = await service.get_user_conversations(
        user_id,
        search_query=search,
        date_from=date_from,
        date_to=date_to,
        tags=tags,
        archived=archived,
        limit=limit,
    )
    return ok({"conversations": conversations})


@router.get("/search")
async def search_conversations(
    q: str = Query(min_length=1),
    include_messages: bool = Query(default=False, alias="includeMessages"),
    limit: int = Query(default=20, ge=1, le=100),
    user_id: str = Depends(get_current_user_id),
):
    results = await service.search_conversations(user_id, q, include_messages=include_messages, limit=limit)
    return ok({"results": results})


@router.get("/analytics")
async def conversation_analytics(
    days: int = Query(default=30, ge=1, le=365),
    user_id: str = Depends(get_current_user_id),
):
    return ok({"analytics": await service.get_conversation_analytics(user_id, days=days)})


@router.get("/{conversation_id}")
async def get_thread(
    conversation_id: str,
    limit: int = Query(default=100, ge=1, le=500),
    user_id: str = Depends(get_current_user_id),
):
    try:
        await service.get_owned_conversation(conversation_id, user_id)
        thread = await service.get_conversation_thread(conversation_id, limit)
    except ServiceError as exc:
        raise to_http(exc) from exc
    return ok(thread)


@router.post("/{conversation_id}/messages", status_code=201)
async def add_message(
    conversation_id: str,
    payload: ConversationMessagePayload,
    user_id: str = Depends(get_current_user_id),
):
    try:
        await service.get_owned_conversation(conversation_id, user_id)
    except ServiceError as exc:
        raise to_http(exc) from exc
    message = await service.add_message_to_conversation(
        conversation_id, content=payload.content, sender=payload.sender, metadata=payload.metadata
    )
    return ok({"message": message}, status=201)


@router.patch("/{conversation_id}")
async def update_conversation(
    conversation_id: str,
    payload: ConversationUpdatePayload,
    user_id: str = Depends(get_current_user_id),
):
    try:
        await service.get_owned_conversation(conversation_id, user_id)
        conversation = await service.update_conversation(
            conversation_id,
            title=payload.title,
            tags=payload.tags,
            archived=payload.archived,
            shared=payload.shared,
            metadata=payload.metadata,
        )
    except ServiceError as exc:
        raise to_http(exc) from exc
    return ok({"conversation": conversation})


@router.post("/{conversation_id}/archive")
async def archive(conversation_id: str, archived: bool = Query(default=True), user_id: str = Depends(get_current_user_id)):
    try:
        await service.get_owned_conversation(conversation_id, user_id)
        conversation = await service.archive_conversation(conversation_id, archived)
    except ServiceError as exc:
        raise to_http(exc) from exc
    return ok({"conversation": conversation})


@router.post("/{conversation_id}/share")
async def share(conversation_id: str, shared: bool = Query(default=True), user_id: str = Depends(get_current_user_id)):
    try:
        await service.get_owned_conversation(conversation_id, user_id)
        conversation = await service.share_conversation(conversation_id, shared)
    except ServiceError as exc:
        raise to_http(exc) from exc
    return ok({"conversation": conversation})


__all__ = ["router"]
