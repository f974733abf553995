"""
domain.ports - Abstract interfaces (Protocols) for all system boundaries.

These define WHAT the runtime needs without specifying HOW. Infrastructure
modules provide concrete implementations. Application services and the
agent depend only on these protocols, never on concrete classes.

Using typing.Protocol (structural typing) instead of ABC — any class that
implements the methods satisfies the port without explicit inheritance,
which keeps test fakes trivial.
"""

from __future__ import annotations

from typing import Any, AsyncIterator, Optional, Protocol, runtime_checkable

from domain.entities import (
    AgentConversation,
    AgentMessage,
    MemoryRecord,
    ScoredMemory,
)
from domain.models import StreamEvent, ToolSpec, TranscriptMessage


# ---------------------------------------------------------------------------
# AI Component Ports
# ---------------------------------------------------------------------------

@runtime_checkable
class ChatModelPort(Protocol):
    """Stream one assistant response as provider-neutral events."""

    def stream(
        self,
        system_prompt: str,
        messages: list[TranscriptMessage],
        tools: list[ToolSpec],
    ) -> AsyncIterator[StreamEvent]: ...


@runtime_checkable
class EmbeddingPort(Protocol):
    """Turn text into a fixed-dimension vector.

    Implementations raise MemoryUnavailableError when the capability
    cannot be reached.
    """

    async def embed_document(self, text: str) -> list[float]: ...
    async def embed_query(self, text: str) -> list[float]: ...


# ---------------------------------------------------------------------------
# Repository Ports
# ---------------------------------------------------------------------------

@runtime_checkable
class ConversationRepository(Protocol):
    """Lookup/creation of conversation sessions."""

    async def find_latest(
        self, user_id: Optional[str], session_token: str,
    ) -> AgentConversation | None: ...
    async def find_latest_by_token(self, session_token: str) -> AgentConversation | None: ...
    async def save(self, conversation: AgentConversation) -> str: ...


@runtime_checkable
class MessageRepository(Protocol):
    """Append-only storage of conversation messages."""

    async def save(self, message: AgentMessage) -> int: ...
    async def get_recent(self, conversation_id: str, limit: int) -> list[AgentMessage]: ...


@runtime_checkable
class MemoryRepository(Protocol):
    """Embedding-indexed conversation summaries."""

    async def save(self, record: MemoryRecord) -> str: ...
    async def nearest(
        self,
        user_id: str,
        embedding: list[float],
        limit: int,
        min_similarity: float,
    ) -> list[ScoredMemory]: ...
    async def get_recent(self, user_id: str, limit: int) -> list[MemoryRecord]: ...
    async def delete_older_than(self, cutoff_iso: str) -> int: ...


@runtime_checkable
class PreferenceRepository(Protocol):
    """One preferences document per user, upserted whole."""

    async def get(self, user_id: str) -> dict[str, Any] | None: ...
    async def upsert(self, user_id: str, preferences: dict[str, Any]) -> None: ...
