"""Spiritual guidance chat on top of the shared LLM router."""

from __future__ import annotations

import logging
from typing import Any, Mapping, Sequence

from healing_hub.apps.api.core.errors import AuthError, UpstreamError
from healing_hub.apps.api.core.llm import call_llm
from healing_hub.apps.api.services import conversations
from healing_hub.apps.api.services.guidance import (
    GuidanceContext,
    extract_context_from_history,
    generate_contextual_prompt,
    generate_healing_recommendations,
    get_personalized_exercises,
)
from healing_hub.libs.storage import utc_now_iso

LOGGER = logging.getLogger(__name__)

HISTORY_WINDOW = 10


def build_messages(
    message: str,
    *,
    healing_name: str | None,
    history: Sequence[Mapping[str, Any]],
    context: GuidanceContext,
) -> list[dict[str, str]]:
    messages = [{"role": "system", "content": generate_contextual_prompt(context)}]
    for turn in list(history)[-HISTORY_WINDOW:]:
        role = turn.get("role")
        if role not in {"user", "assistant"}:
            continue
        messages.append({"role": role, "content": str(turn.get("content") or "")})
    messages.append({"role": "user", "content": f"{healing_name or 'Seeker'}: {message}"})
    return messages


async def process_chat(
    message: str,
    *,
    healing_name: str | None = None,
    store_conversation: bool = False,
    history: Sequence[Mapping[str, Any]] = (),
    context: Mapping[str, Any] | None = None,
    user_id: str | None = None,
    conversation_id: str | None = None,
) -> dict[str, Any]:
    """Answer one chat turn and optionally persist the exchange.

    Explicit ``context`` wins over what can be inferred from ``history``.
    Nothing is written to storage unless ``store_conversation`` is set, and an
    existing conversation is only appended to by its owner.
    """

    if store_conversation and conversation_id is not None:
        if user_id is None:
            raise AuthError("Authentication required")
        await conversations.get_owned_conversation(conversation_id, user_id)

    guidance = GuidanceContext.from_mapping(context).merged_over(extract_context_from_history(history))
    messages = build_messages(message, healing_name=healing_name, history=history, context=guidance)

    try:
        reply = await call_llm(messages=messages)
    except RuntimeError as exc:
        LOGGER.error("chat_completion_failed: %s", exc)
        raise UpstreamError("Error processing chat message") from exc

    result: dict[str, Any] = {
        "message": reply,
        "timestamp": utc_now_iso(),
        "context": guidance.to_dict(),
        "exercises": [exercise.to_dict() for exercise in get_personalized_exercises(guidance)],
        "recommendations": generate_healing_recommendations(guidance),
    }

    if not store_conversation:
        LOGGER.info("chat_not_stored healing_name_present=%s", bool(healing_name))
        return result

    if conversation_id is None:
        created = await conversations.create_conversation(
            user_id=user_id,
            healing_name=healing_name,
            title=message[:50],
            metadata={
                "mood": guidance.current_mood,
                "journeyStage": guidance.journey_stage,
                "topics": guidance.previous_topics,
            },
        )
        conversation_id = created["id"]

    await conversations.add_message_to_conversation(conversation_id, content=message, sender="user")
    await conversations.add_message_to_conversation(conversation_id, content=reply, sender="assistant")
    result["conversationId"] = conversation_id
    return result


__all__ = ["HISTORY_WINDOW", "build_messages", "process_chat"]
