"""
infrastructure.persistence.message_repo - SQLite agent message repository.

Stores individual conversation messages (user and assistant turns) with
their tool-call trace and the context snapshot taken when they were sent.
Messages are never updated once written.
"""

from __future__ import annotations

import json
import logging
from datetime import datetime, timezone

from domain.entities import AgentMessage
from infrastructure.persistence.connection import AsyncSQLiteConnection

logger = logging.getLogger(__name__)


class SQLiteMessageRepository:
    """Async SQLite implementation of MessageRepository."""

    def __init__(self, connection: AsyncSQLiteConnection):
        self._conn = connection

    async def save(self, message: AgentMessage) -> int:
        now = datetime.now(timezone.utc).isoformat()
        async with self._conn.acquire() as conn:
            cursor = await conn.execute(
                """INSERT INTO agent_messages
                   (conversation_id, role, content, tool_calls,
                    tool_results, context_snapshot, created_at)
                   VALUES (?, ?, ?, ?, ?, ?, ?)""",
                (
                    message.conversation_id,
                    message.role,
                    message.content,
                    _dump_optional(message.tool_calls),
                    _dump_optional(message.tool_results),
                    json.dumps(message.context_snapshot or {}, default=str),
                    now,
                ),
            )
            return cursor.lastrowid

    async def get_recent(
        self, conversation_id: str, limit: int,
    ) -> list[AgentMessage]:
        """Return the newest *limit* messages, ordered oldest to newest."""
        async with self._conn.acquire() as conn:
            rows = await conn.execute_fetchall(
                """SELECT * FROM (
                       SELECT * FROM agent_messages
                       WHERE conversation_id = ?
                       ORDER BY created_at DESC, id DESC
                       LIMIT ?
                   )
                   ORDER BY created_at ASC, id ASC""",
                (conversation_id, limit),
            )
            return [self._row_to_entity(r) for r in rows]

    @staticmethod
    def _row_to_entity(row) -> AgentMessage:
        return AgentMessage(
            id=row["id"],
            conversation_id=row["conversation_id"],
            role=row["role"] or "",
            content=row["content"] or "",
            tool_calls=_load_optional(row["tool_calls"]),
            tool_results=_load_optional(row["tool_results"]),
            context_snapshot=_load_optional(row["context_snapshot"]) or {},
            created_at=row["created_at"] or "",
        )


def _dump_optional(value):
    return json.dumps(value, default=str) if value is not None else None


def _load_optional(raw):
    return json.loads(raw) if raw else None
