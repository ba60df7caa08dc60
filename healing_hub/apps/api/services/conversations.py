"""Conversation threads and their messages."""

from __future__ import annotations

import json
import logging
from collections import Counter
from datetime import datetime, timedelta, timezone
from typing import Any, Mapping, Sequence

from healing_hub.apps.api.core.errors import NotFound, PermissionDenied
from healing_hub.libs.storage import (
    CONVERSATION_MESSAGES,
    CONVERSATIONS,
    Record,
    StorageError,
    get_table,
    parse_timestamp,
    utc_now_iso,
)

LOGGER = logging.getLogger(__name__)

LAST_MESSAGE_PREVIEW = 100


def _tags(value: Any) -> list[str]:
    if isinstance(value, list):
        return [str(tag) for tag in value if tag]
    if isinstance(value, str) and value:
        return [tag for tag in value.split(",") if tag]
    return []


def _metadata(value: Any) -> dict[str, Any]:
    if isinstance(value, dict):
        return value
    if isinstance(value, str) and value:
        try:
            parsed = json.loads(value)
        except json.JSONDecodeError:
            return {}
        return parsed if isinstance(parsed, dict) else {}
    return {}


def _conversation(record: Record) -> dict[str, Any]:
    return {
        "id": record.id,
        "userId": record.get("User ID"),
        "healingName": record.get("Healing Name"),
        "title": record.get("Title") or "",
        "createdAt": record.get("Created At"),
        "updatedAt": record.get("Updated At"),
        "messageCount": int(record.get("Message Count") or 0),
        "lastMessage": record.get("Last Message"),
        "tags": _tags(record.get("Tags")),
        "archived": bool(record.get("Archived")),
        "shared": bool(record.get("Shared")),
        "metadata": _metadata(record.get("Metadata")),
    }


def _message(record: Record) -> dict[str, Any]:
    return {
        "id": record.id,
        "conversationId": record.get("Conversation ID"),
        "content": record.get("Content") or "",
        "sender": record.get("Sender"),
        "timestamp": record.get("Timestamp"),
        "status": record.get("Status"),
        "metadata": _metadata(record.get("Metadata")),
    }


async def create_conversation(
    *,
    user_id: str | None,
    healing_name: str | None,
    title: str = "New Conversation",
    tags: Sequence[str] = (),
    metadata: Mapping[str, Any] | None = None,
) -> dict[str, Any]:
    now = utc_now_iso()
    record = await get_table(CONVERSATIONS).create(
        {
            "User ID": user_id or "",
            "Healing Name": healing_name or "",
            "Title": title,
            "Created At": now,
            "Updated At": now,
            "Message Count": 0,
            "Tags": ",".join(tags),
            "Archived": False,
            "Shared": False,
            "Metadata": json.dumps(dict(metadata or {})),
        }
    )
    return _conversation(record)


async def add_message_to_conversation(
    conversation_id: str,
    *,
    content: str,
    sender: str,
    metadata: Mapping[str, Any] | None = None,
) -> dict[str, Any]:
    record = await get_table(CONVERSATION_MESSAGES).create(
        {
            "Conversation ID": conversation_id,
            "Content": content,
            "Sender": sender,
            "Timestamp": utc_now_iso(),
            "Status": "sent",
            "Metadata": json.dumps(dict(metadata or {})),
        }
    )
    await _update_conversation_stats(conversation_id, content)
    return _message(record)


async def _update_conversation_stats(conversation_id: str, last_message: str) -> None:
    """Refresh the denormalised counters; failures only cost freshness."""

    try:
        messages = await get_table(CONVERSATION_MESSAGES).all(match={"Conversation ID": conversation_id})
        await get_table(CONVERSATIONS).update(
            conversation_id,
            {
                "Message Count": len(messages),
                "Last Message": last_message[:LAST_MESSAGE_PREVIEW],
                "Updated At": utc_now_iso(),
            },
        )
    except StorageError as exc:
        LOGGER.warning("conversation_stats_failed conversation_id=%s: %s", conversation_id, exc)


async def get_conversation(conversation_id: str) -> dict[str, Any]:
    record = await get_table(CONVERSATIONS).get(conversation_id)
    if record is None:
        raise NotFound("Conversation not found")
    return _conversation(record)


async def get_owned_conversation(conversation_id: str, user_id: str) -> dict[str, Any]:
    conversation = await get_conversation(conversation_id)
    if conversation["userId"] != user_id:
        raise PermissionDenied("Unauthorized access to conversation")
    return conversation


async def get_conversation_messages(conversation_id: str, limit: int = 100) -> list[dict[str, Any]]:
    records = await get_table(CONVERSATION_MESSAGES).all(
        match={"Conversation ID": conversation_id},
        sort="Timestamp",
        max_records=limit,
    )
    return [_message(record) for record in records]


async def get_user_conversations(
    user_key: str,
    *,
    search_query: str | None = None,
    date_from: datetime | None = None,
    date_to: datetime | None = None,
    tags: Sequence[str] | None = None,
    archived: bool | None = False,
    limit: int = 50,
) -> list[dict[str, Any]]:
    """Conversations owned by a user id or healing name, newest activity first."""

    if date_from and date_from.tzinfo is None:
        date_from = date_from.replace(tzinfo=timezone.utc)
    if date_to and date_to.tzinfo is None:
        date_to = date_to.replace(tzinfo=timezone.utc)

    table = get_table(CONVERSATIONS)
    by_id = await table.all(match={"User ID": user_key}, sort="-Updated At")
    by_name = await table.all(match={"Healing Name": user_key}, sort="-Updated At")
    seen: set[str] = set()
    conversations: list[dict[str, Any]] = []
    for record in [*by_id, *by_name]:
        if record.id in seen:
            continue
        seen.add(record.id)
        conversations.append(_conversation(record))

    def keep(conversation: dict[str, Any]) -> bool:
        if archived is not None and conversation["archived"] != archived:
            return False
        created = parse_timestamp(conversation["createdAt"])
        if date_from and (created is None or created <= date_from):
            return False
        if date_to and (created is None or created >= date_to):
            return False
        if tags and not any(
            wanted.lower() in tag.lower() for wanted in tags for tag in conversation["tags"]
        ):
            return False
        if search_query:
            query = search_query.lower()
            haystacks = [conversation["title"], conversation["lastMessage"] or "", *conversation["tags"]]
            if not any(query in text.lower() for text in haystacks):
                return False
        return True

    filtered = [conversation for conversation in conversations if keep(conversation)]
    filtered.sort(key=lambda conversation: conversation["updatedAt"] or "", reverse=True)
    return filtered[:limit]


async def get_conversation_thread(conversation_id: str, message_limit: int = 100) -> dict[str, Any]:
    conversation = await get_conversation(conversation_id)
    messages = await get_conversation_messages(conversation_id, message_limit)
    return {"conversation": conversation, "messages": messages}


async def update_conversation(
    conversation_id: str,
    *,
    title: str | None = None,
    tags: Sequence[str] | None = None,
    archived: bool | None = None,
    shared: bool | None = None,
    metadata: Mapping[str, Any] | None = None,
) -> dict[str, Any]:
    changes: dict[str, Any] = {"Updated At": utc_now_iso()}
    if title:
        changes["Title"] = title
    if tags is not None:
        changes["Tags"] = ",".join(tags)
    if archived is not None:
        changes["Archived"] = archived
    if shared is not None:
        changes["Shared"] = shared
    if metadata is not None:
        changes["Metadata"] = json.dumps(dict(metadata))

    table = get_table(CONVERSATIONS)
    if await table.get(conversation_id) is None:
        raise NotFound("Conversation not found")
    record = await table.update(conversation_id, changes)
    return _conversation(record)


async def archive_conversation(conversation_id: str, archived: bool = True) -> dict[str, Any]:
    return await update_conversation(conversation_id, archived=archived)


async def share_conversation(conversation_id: str, shared: bool = True) -> dict[str, Any]:
    return await update_conversation(conversation_id, shared=shared)


async def search_conversations(
    user_key: str,
    query: str,
    *,
    include_messages: bool = False,
    limit: int = 20,
) -> list[dict[str, Any]]:
    conversations = await get_user_conversations(user_key, search_query=query, archived=None, limit=limit)
    if not include_messages:
        return conversations

    needle = query.lower()
    results = []
    for conversation in conversations:
        messages = await get_conversation_messages(conversation["id"])
        matching = [message for message in messages if needle in message["content"].lower()]
        results.append({"conversation": conversation, "matchingMessages": matching[:5]})
    return results


async def get_conversation_analytics(user_key: str, *, days: int = 30) -> dict[str, Any]:
    now = datetime.now(timezone.utc)
    conversations = await get_user_conversations(
        user_key, date_from=now - timedelta(days=days), archived=None, limit=1000
    )

    total_messages = sum(conversation["messageCount"] for conversation in conversations)
    average = total_messages / len(conversations) if conversations else 0

    topic_counts: Counter[str] = Counter()
    mood_counts: Counter[str] = Counter()
    stage_counts: Counter[str] = Counter()
    for conversation in conversations:
        metadata = conversation["metadata"]
        topic_counts.update(str(topic) for topic in metadata.get("topics") or [])
        if metadata.get("mood"):
            mood_counts[str(metadata["mood"])] += 1
        if metadata.get("journeyStage"):
            stage_counts[str(metadata["journeyStage"])] += 1

    def active_since(delta: timedelta) -> int:
        cutoff = now - delta
        return sum(
            1
            for conversation in conversations
            if (updated := parse_timestamp(conversation["updatedAt"])) is not None and updated > cutoff
        )

    return {
        "totalConversations": len(conversations),
        "totalMessages": total_messages,
        "averageMessagesPerConversation": round(average, 2),
        "mostCommonTopics": [
            {"topic": topic, "count": count} for topic, count in topic_counts.most_common(10)
        ],
        "userEngagement": {
            "dailyActive": active_since(timedelta(days=1)),
            "weeklyActive": active_since(timedelta(days=7)),
            "monthlyActive": len(conversations),
        },
        "moodDistribution": dict(mood_counts),
        "journeyStageDistribution": dict(stage_counts),
    }


__all__ = [
    "add_message_to_conversation",
    "archive_conversation",
    "create_conversation",
    "get_conversation",
    "get_conversation_analytics",
    "get_conversation_messages",
    "get_conversation_thread",
    "get_owned_conversation",
    "get_user_conversations",
    "search_conversations",
    "share_conversation",
    "update_conversation",
]
