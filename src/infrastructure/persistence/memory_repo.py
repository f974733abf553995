"""
infrastructure.persistence.memory_repo - SQLite semantic memory repository.

Embeddings are stored as JSON arrays. SQLite has no vector operator, so
nearest-neighbour search loads the user's vectors (equality filter on
user_id) and ranks them by cosine similarity with numpy:

    similarity = 1 - cosine_distance = (a . b) / (|a| |b|)
"""

from __future__ import annotations

import json
import logging
from datetime import datetime, timezone
from uuid import uuid4

import numpy as np

from domain.entities import MemoryRecord, ScoredMemory
from infrastructure.persistence.connection import AsyncSQLiteConnection

logger = logging.getLogger(__name__)


class SQLiteMemoryRepository:
    """Async SQLite implementation of MemoryRepository."""

    def __init__(self, connection: AsyncSQLiteConnection):
        self._conn = connection

    async def save(self, record: MemoryRecord) -> str:
        memory_id = record.id or str(uuid4())
        created_at = record.created_at or datetime.now(timezone.utc).isoformat()
        async with self._conn.acquire() as conn:
            await conn.execute(
                """INSERT INTO agent_memory
                   (id, user_id, message_id, content, embedding, metadata, created_at)
                   VALUES (?, ?, ?, ?, ?, ?, ?)""",
                (
                    memory_id,
                    record.user_id,
                    record.message_id,
                    record.content,
                    json.dumps([float(x) for x in record.embedding]),
                    json.dumps(record.metadata or {}, default=str),
                    created_at,
                ),
            )
        return memory_id

    async def nearest(
        self,
        user_id: str,
        embedding: list[float],
        limit: int,
        min_similarity: float,
    ) -> list[ScoredMemory]:
        """Return up to *limit* memories with similarity >= *min_similarity*,
        most similar first.
        """
        if limit <= 0:
            return []

        async with self._conn.acquire() as conn:
            rows = await conn.execute_fetchall(
                """SELECT id, content, embedding, metadata, created_at
                   FROM agent_memory
                   WHERE user_id = ?""",
                (user_id,),
            )
        if not rows:
            return []

        query = np.asarray(embedding, dtype=float)
        query_norm = np.linalg.norm(query)
        if query_norm == 0:
            return []

        scored: list[ScoredMemory] = []
        for row in rows:
            vector = np.asarray(json.loads(row["embedding"] or "[]"), dtype=float)
            if vector.shape != query.shape:
                logger.warning(
                    "Skipping memory %s: embedding dimension %s != query %s",
                    row["id"], vector.shape, query.shape,
                )
                continue
            norm = np.linalg.norm(vector)
            if norm == 0:
                continue
            similarity = float(np.dot(query, vector) / (query_norm * norm))
            if similarity < min_similarity:
                continue
            scored.append(ScoredMemory(
                id=row["id"],
                content=row["content"] or "",
                metadata=json.loads(row["metadata"] or "{}"),
                created_at=row["created_at"] or "",
                similarity=similarity,
            ))

        scored.sort(key=lambda m: m.similarity, reverse=True)
        return scored[:limit]

    async def get_recent(self, user_id: str, limit: int) -> list[MemoryRecord]:
        async with self._conn.acquire() as conn:
            rows = await conn.execute_fetchall(
                """SELECT * FROM agent_memory
                   WHERE user_id = ?
                   ORDER BY created_at DESC
                   LIMIT ?""",
                (user_id, limit),
            )
            return [self._row_to_entity(r) for r in rows]

    async def delete_older_than(self, cutoff_iso: str) -> int:
        """Hard-delete memories created before *cutoff_iso*.

        Returns the number of rows removed.
        """
        async with self._conn.acquire() as conn:
            cursor = await conn.execute(
                "DELETE FROM agent_memory WHERE created_at < ?",
                (cutoff_iso,),
            )
            return cursor.rowcount

    @staticmethod
    def _row_to_entity(row) -> MemoryRecord:
        return MemoryRecord(
            id=row["id"],
            user_id=row["user_id"],
            message_id=row["message_id"],
            content=row["content"] or "",
            embedding=json.loads(row["embedding"] or "[]"),
            metadata=json.loads(row["metadata"] or "{}"),
            created_at=row["created_at"] or "",
        )
