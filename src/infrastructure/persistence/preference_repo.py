"""
infrastructure.persistence.preference_repo - SQLite user preference repository.

One JSON document per user, replaced as a whole on every write
(insert-or-update-on-conflict).
"""

from __future__ import annotations

import json
import logging
from datetime import datetime, timezone
from typing import Any, Optional

from infrastructure.persistence.connection import AsyncSQLiteConnection

logger = logging.getLogger(__name__)


class SQLitePreferenceRepository:
    """Async SQLite implementation of PreferenceRepository."""

    def __init__(self, connection: AsyncSQLiteConnection):
        self._conn = connection

    async def get(self, user_id: str) -> Optional[dict[str, Any]]:
        async with self._conn.acquire() as conn:
            rows = await conn.execute_fetchall(
                "SELECT preferences FROM agent_user_preferences WHERE user_id = ?",
                (user_id,),
            )
        if not rows:
            return None
        return json.loads(rows[0]["preferences"] or "{}")

    async def upsert(self, user_id: str, preferences: dict[str, Any]) -> None:
        now = datetime.now(timezone.utc).isoformat()
        async with self._conn.acquire() as conn:
            await conn.execute(
                """INSERT INTO agent_user_preferences (user_id, preferences, updated_at)
                   VALUES (?, ?, ?)
                   ON CONFLICT (user_id) DO UPDATE SET
                       preferences = excluded.preferences,
                       updated_at = excluded.updated_at""",
                (user_id, json.dumps(preferences, default=str), now),
            )
