"""
infrastructure.persistence.conversation_repo - SQLite conversation repository.

Stores the durable identity of each chat session: who it belongs to
(possibly nobody), the client session token, and the trip it is about.
"""

from __future__ import annotations

import logging
from datetime import datetime, timezone
from typing import Optional
from uuid import uuid4

from domain.entities import AgentConversation
from infrastructure.persistence.connection import AsyncSQLiteConnection

logger = logging.getLogger(__name__)


class SQLiteConversationRepository:
    """Async SQLite implementation of ConversationRepository."""

    def __init__(self, connection: AsyncSQLiteConnection):
        self._conn = connection

    async def save(self, conversation: AgentConversation) -> str:
        conversation_id = conversation.id or str(uuid4())
        now = datetime.now(timezone.utc).isoformat()
        async with self._conn.acquire() as conn:
            await conn.execute(
                """INSERT INTO agent_conversations
                   (id, user_id, trip_id, session_id, created_at)
                   VALUES (?, ?, ?, ?, ?)""",
                (conversation_id, conversation.user_id, conversation.trip_id,
                 conversation.session_token, now),
            )
        return conversation_id

    async def find_latest(
        self, user_id: Optional[str], session_token: str,
    ) -> Optional[AgentConversation]:
        # "user_id IS ?" is SQLite's null-safe equality: NULL IS NULL is true
        async with self._conn.acquire() as conn:
            rows = await conn.execute_fetchall(
                """SELECT * FROM agent_conversations
                   WHERE user_id IS ? AND session_id = ?
                   ORDER BY created_at DESC, rowid DESC
                   LIMIT 1""",
                (user_id, session_token),
            )
            return self._row_to_entity(rows[0]) if rows else None

    async def find_latest_by_token(
        self, session_token: str,
    ) -> Optional[AgentConversation]:
        async with self._conn.acquire() as conn:
            rows = await conn.execute_fetchall(
                """SELECT * FROM agent_conversations
                   WHERE session_id = ?
                   ORDER BY created_at DESC, rowid DESC
                   LIMIT 1""",
                (session_token,),
            )
            return self._row_to_entity(rows[0]) if rows else None

    @staticmethod
    def _row_to_entity(row) -> AgentConversation:
        return AgentConversation(
            id=row["id"],
            user_id=row["user_id"],
            trip_id=row["trip_id"],
            session_token=row["session_id"] or "",
            created_at=row["created_at"] or "",
        )
