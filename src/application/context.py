"""
application.context - Request-scoped turn context.

Every tool, the coordinator, and the loop receive their context explicitly.
Two concurrent turns get two different TurnContext instances — no shared
mutable state between them.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any, Optional
from uuid import uuid4


@dataclass
class TurnContext:
    """Per-turn context passed to every tool execution.

    Attributes:
        user_id:          Authenticated user ID, None for anonymous visitors.
        session_token:    Client session token the turn belongs to.
        conversation_id:  Durable conversation id resolved for the session.
        trip_id:          Trip/plan the user is working on, if any.
        page_context:     What the caller's UI was showing (page, day, ...).
        request_id:       Unique per turn, for tracing/logging.
    """
    user_id: Optional[str]
    session_token: str
    conversation_id: str = ""
    trip_id: Optional[str] = None
    page_context: dict[str, Any] = field(default_factory=dict)
    request_id: str = field(default_factory=lambda: uuid4().hex)
