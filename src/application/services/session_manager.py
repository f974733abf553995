"""
application.services.session_manager - Conversation session management.

Resolves a (user, session token) pair to a durable conversation id, reads
the bounded recent-message window the model sees, and appends messages.
"""

from __future__ import annotations

import logging
import re
from typing import Any, Optional

from domain.entities import AgentConversation, AgentMessage
from domain.ports import ConversationRepository, MessageRepository

logger = logging.getLogger(__name__)

_UUID_RE = re.compile(
    r"^[0-9a-f]{8}-[0-9a-f]{4}-[0-9a-f]{4}-[0-9a-f]{4}-[0-9a-f]{12}$",
    re.IGNORECASE,
)

_ROLES = ("user", "assistant")


def validate_trip_id(trip_id: Optional[str]) -> Optional[str]:
    """Return *trip_id* if it is a well-formed UUID, otherwise None."""
    if trip_id and _UUID_RE.match(trip_id):
        return trip_id
    return None


class ConversationSessionManager:
    """Maps client sessions to persisted conversations."""

    def __init__(
        self,
        conversation_repo: ConversationRepository,
        message_repo: MessageRepository,
        history_limit: int = 10,
    ):
        self._conversation_repo = conversation_repo
        self._message_repo = message_repo
        self._history_limit = history_limit

    async def resolve(
        self,
        user_id: Optional[str],
        session_token: str,
        trip_id: Optional[str] = None,
    ) -> str:
        """Return the conversation id for (user_id, session_token).

        Reuses the most recent matching conversation (user_id compared
        null-safely, so anonymous sessions are found again). Creates one
        otherwise; a malformed trip_id is dropped to None rather than
        failing the turn.
        """
        existing = await self._conversation_repo.find_latest(user_id, session_token)
        if existing is not None:
            logger.debug("Reusing conversation %s for session %s", existing.id, session_token)
            return existing.id

        valid_trip_id = validate_trip_id(trip_id)
        if trip_id and valid_trip_id is None:
            logger.warning("Ignoring malformed trip id %r for session %s", trip_id, session_token)

        conversation_id = await self._conversation_repo.save(AgentConversation(
            user_id=user_id,
            session_token=session_token,
            trip_id=valid_trip_id,
        ))
        logger.info("Created conversation %s for session %s", conversation_id, session_token)
        return conversation_id

    async def recent_history(
        self, session_token: str, limit: Optional[int] = None,
    ) -> list[AgentMessage]:
        """Last *limit* messages of the newest conversation for the token,
        oldest first, ready to prepend to the new user turn.
        """
        limit = self._history_limit if limit is None else limit
        conversation = await self._conversation_repo.find_latest_by_token(session_token)
        if conversation is None:
            logger.debug("No conversation found for session %s", session_token)
            return []
        messages = await self._message_repo.get_recent(conversation.id, limit)
        logger.debug("Loaded %d history message(s) for session %s", len(messages), session_token)
        return messages

    async def append(
        self,
        conversation_id: str,
        role: str,
        content: str,
        tool_calls: Optional[list[dict[str, Any]]] = None,
        tool_results: Optional[list[dict[str, Any]]] = None,
        context_snapshot: Optional[dict[str, Any]] = None,
    ) -> int:
        """Persist one message and return its id.

        Raises:
            ValueError: If role is not "user" or "assistant".
            RepositoryError: If the write fails.
        """
        if role not in _ROLES:
            raise ValueError(f"Unsupported message role: {role!r}")
        return await self._message_repo.save(AgentMessage(
            conversation_id=conversation_id,
            role=role,
            content=content,
            tool_calls=tool_calls,
            tool_results=tool_results,
            context_snapshot=context_snapshot or {},
        ))
