"""
infrastructure.persistence.migrations - Database schema creation.

Called once at startup by the factory or the CLI's init-db command.
"""

from __future__ import annotations

import logging

from infrastructure.persistence.connection import AsyncSQLiteConnection

logger = logging.getLogger(__name__)

_TABLES = [
    """CREATE TABLE IF NOT EXISTS agent_conversations (
        id TEXT PRIMARY KEY,
        user_id TEXT,
        trip_id TEXT,
        session_id TEXT NOT NULL,
        created_at TEXT
    )""",
    """CREATE INDEX IF NOT EXISTS idx_agent_conversations_session
        ON agent_conversations (session_id, created_at)""",
    """CREATE TABLE IF NOT EXISTS agent_messages (
        id INTEGER PRIMARY KEY AUTOINCREMENT,
        conversation_id TEXT NOT NULL,
        role TEXT NOT NULL,
        content TEXT,
        tool_calls TEXT,
        tool_results TEXT,
        context_snapshot TEXT,
        created_at TEXT,
        FOREIGN KEY (conversation_id) REFERENCES agent_conversations(id)
    )""",
    """CREATE INDEX IF NOT EXISTS idx_agent_messages_conversation
        ON agent_messages (conversation_id, created_at)""",
    """CREATE TABLE IF NOT EXISTS agent_memory (
        id TEXT PRIMARY KEY,
        user_id TEXT NOT NULL,
        message_id INTEGER,
        content TEXT,
        embedding TEXT,
        metadata TEXT,
        created_at TEXT
    )""",
    """CREATE INDEX IF NOT EXISTS idx_agent_memory_user
        ON agent_memory (user_id, created_at)""",
    """CREATE TABLE IF NOT EXISTS agent_user_preferences (
        user_id TEXT PRIMARY KEY,
        preferences TEXT,
        updated_at TEXT
    )""",
]


async def run_migrations(connection: AsyncSQLiteConnection) -> None:
    """Create all tables if they don't exist.

    Safe to call multiple times (uses IF NOT EXISTS).
    """
    async with connection.acquire() as conn:
        for ddl in _TABLES:
            await conn.execute(ddl)
    logger.info("All tables created (or already exist).")
