"""
application.services.memory - Long-term semantic memory and preferences.

Two capabilities sharing one store:

    - conversation memory: exchange summaries stored with an embedding and
      retrieved by similarity to the current message;
    - preference store: one category -> data map per user, merged on
      every update.

Memory is an enhancement, never a requirement: when the embedding
capability is missing or failing, writes become no-ops and reads return
nothing. Callers treat an empty result as "no personalization available".
"""

from __future__ import annotations

import logging
from datetime import datetime, timedelta, timezone
from typing import Any, Optional

from domain.entities import MemoryRecord, ScoredMemory
from domain.exceptions import MemoryUnavailableError
from domain.ports import EmbeddingPort, MemoryRepository, PreferenceRepository
from application.services.preference_extractor import extract_preferences

logger = logging.getLogger(__name__)

_SUMMARY_SNIPPET = 100


class MemoryService:
    """Stores and retrieves conversation memories and user preferences."""

    def __init__(
        self,
        memory_repo: MemoryRepository,
        preference_repo: PreferenceRepository,
        embeddings: Optional[EmbeddingPort] = None,
    ):
        self._memory_repo = memory_repo
        self._preference_repo = preference_repo
        self._embeddings = embeddings

    # ------------------------------------------------------------------
    # Conversation memory
    # ------------------------------------------------------------------

    async def store_conversation(
        self,
        user_id: str,
        message_id: Optional[int],
        summary: str,
        metadata: Optional[dict[str, Any]] = None,
    ) -> Optional[str]:
        """Embed *summary* and persist it. Returns the memory id.

        Returns None without raising when no embedding capability is
        available. Repository failures propagate.
        """
        if self._embeddings is None:
            logger.warning("Cannot store conversation: no embedding provider configured")
            return None

        try:
            embedding = await self._embeddings.embed_document(summary)
        except MemoryUnavailableError as exc:
            logger.warning("Cannot store conversation for user %s: %s", user_id, exc)
            return None

        memory_id = await self._memory_repo.save(MemoryRecord(
            user_id=user_id,
            message_id=message_id,
            content=summary,
            embedding=embedding,
            metadata=metadata or {},
        ))
        logger.info("Memory stored: %s", memory_id)
        return memory_id

    async def retrieve_relevant(
        self,
        user_id: Optional[str],
        query: str,
        limit: int = 5,
        min_similarity: float = 0.7,
    ) -> list[ScoredMemory]:
        """Memories most similar to *query*, best first.

        Never raises: any failure yields an empty list.
        """
        if user_id is None or self._embeddings is None or limit <= 0:
            return []
        try:
            embedding = await self._embeddings.embed_query(query)
            memories = await self._memory_repo.nearest(
                user_id, embedding, limit, min_similarity,
            )
        except Exception as exc:
            logger.warning("Memory retrieval failed for user %s: %s", user_id, exc)
            return []

        logger.info("Found %d relevant memories", len(memories))
        return memories

    async def get_recent(self, user_id: str, limit: int = 10) -> list[MemoryRecord]:
        """Newest stored memories for a user. Failures yield []."""
        try:
            return await self._memory_repo.get_recent(user_id, limit)
        except Exception as exc:
            logger.warning("Could not load recent memories for user %s: %s", user_id, exc)
            return []

    async def purge_older_than(self, days: int) -> int:
        """Delete memories older than *days*. Maintenance only.

        Returns the number of removed records (0 if the purge failed).
        """
        cutoff = (datetime.now(timezone.utc) - timedelta(days=days)).isoformat()
        try:
            removed = await self._memory_repo.delete_older_than(cutoff)
        except Exception:
            logger.exception("Failed to purge memories older than %d days", days)
            return 0
        logger.info("Purged %d memories older than %d days", removed, days)
        return removed

    # ------------------------------------------------------------------
    # Preferences
    # ------------------------------------------------------------------

    async def update_preference(
        self, user_id: str, category: str, data: dict[str, Any],
    ) -> dict[str, Any]:
        """Shallow-merge *data* into preferences[category] and upsert.

        Returns the full, updated preferences map. Repository failures
        propagate.
        """
        preferences = await self._preference_repo.get(user_id) or {}
        current = preferences.get(category)
        merged = dict(current) if isinstance(current, dict) else {}
        merged.update(data)
        merged["lastUpdated"] = datetime.now(timezone.utc).isoformat()
        preferences[category] = merged

        await self._preference_repo.upsert(user_id, preferences)
        logger.info("Preference updated: %s for user %s", category, user_id)
        return preferences

    async def get_preferences(self, user_id: Optional[str]) -> dict[str, Any]:
        """Full category map, or {} when the user has none or on failure."""
        if user_id is None:
            return {}
        try:
            return await self._preference_repo.get(user_id) or {}
        except Exception as exc:
            logger.warning("Could not load preferences for user %s: %s", user_id, exc)
            return {}

    # ------------------------------------------------------------------
    # Post-turn write
    # ------------------------------------------------------------------

    async def remember_exchange(
        self,
        user_id: str,
        message_id: Optional[int],
        user_message: str,
        assistant_response: str,
        metadata: Optional[dict[str, Any]] = None,
    ) -> Optional[str]:
        """Store a summary of one exchange and learn preferences from it.

        Runs detached from the turn; its caller only logs failures.
        """
        summary = summarize_exchange(user_message, assistant_response)
        memory_id = await self.store_conversation(user_id, message_id, summary, metadata)

        for category, data in extract_preferences(user_message, assistant_response):
            try:
                await self.update_preference(user_id, category, data)
            except Exception:
                logger.exception("Failed to store %s preference for user %s", category, user_id)

        return memory_id


def extract_topics(response: str) -> str:
    """First 100 characters of the response on one line."""
    cleaned = response.replace("\n", " ").strip()
    return _truncate(cleaned)


def summarize_exchange(user_message: str, assistant_response: str) -> str:
    return (
        f'User asked: "{_truncate(user_message)}". '
        f"Agent responded about: {extract_topics(assistant_response)}"
    )


def _truncate(text: str) -> str:
    if len(text) > _SUMMARY_SNIPPET:
        return text[:_SUMMARY_SNIPPET] + "..."
    return text
