"""
domain.entities - Persistence-aware types (have IDs, timestamps).

Decoupled from any persistence strategy — no SQL concerns, no DB imports.
Timestamps are set by the repository implementations, not by the entities
themselves.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any, Optional


@dataclass
class AgentConversation:
    """Durable identity of one conversation thread (a "session").

    user_id is None for anonymous visitors; session_token is the
    client-side token that groups their turns.
    """
    id: str = ""
    user_id: Optional[str] = None
    session_token: str = ""
    trip_id: Optional[str] = None
    created_at: str = ""


@dataclass
class AgentMessage:
    """A single persisted message in a conversation."""
    id: Optional[int] = None
    conversation_id: str = ""
    role: str = ""  # "user" or "assistant"
    content: str = ""
    tool_calls: Optional[list[dict[str, Any]]] = None
    tool_results: Optional[list[dict[str, Any]]] = None
    context_snapshot: dict[str, Any] = field(default_factory=dict)
    created_at: str = ""


@dataclass
class MemoryRecord:
    """An embedding-indexed summary of a past exchange. Append-only."""
    id: str = ""
    user_id: str = ""
    message_id: Optional[int] = None
    content: str = ""
    embedding: list[float] = field(default_factory=list)
    metadata: dict[str, Any] = field(default_factory=dict)
    created_at: str = ""


@dataclass
class ScoredMemory:
    """A MemoryRecord returned from a similarity search."""
    id: str
    content: str
    metadata: dict[str, Any]
    created_at: str
    similarity: float

