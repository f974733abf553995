"""
agent.orchestrator - The single entry point for one conversational turn.

handle_turn() resolves the session, gathers history, memories and
preferences, persists the user message, runs the agent loop, persists the
final answer with its tool trace, and schedules the memory write in the
background. Only the model transport failure (and a failed message write)
reaches the caller; memory problems degrade to "no personalization".
"""

from __future__ import annotations

import asyncio
import logging
from datetime import datetime, timezone
from typing import Any, Optional

from application.context import TurnContext
from application.services.memory import MemoryService
from application.services.session_manager import (
    ConversationSessionManager,
    validate_trip_id,
)
from domain.models import TranscriptMessage, TurnResult
from agent.decoder import EventSink
from agent.loop import AgentLoop
from agent.prompt import build_system_prompt
from agent.tools.registry import ToolCatalog

logger = logging.getLogger(__name__)


class AgentOrchestrator:
    """Runs turns end to end. Constructed by factory.py."""

    def __init__(
        self,
        sessions: ConversationSessionManager,
        memory: MemoryService,
        catalog: ToolCatalog,
        loop: AgentLoop,
        memory_limit: int = 5,
        memory_min_similarity: float = 0.7,
    ):
        self._sessions = sessions
        self._memory = memory
        self._catalog = catalog
        self._loop = loop
        self._memory_limit = memory_limit
        self._memory_min_similarity = memory_min_similarity
        self._background: set[asyncio.Task] = set()

    async def handle_turn(
        self,
        user_id: Optional[str],
        session_token: str,
        trip_id: Optional[str],
        message: str,
        on_event: Optional[EventSink] = None,
        page_context: Optional[dict[str, Any]] = None,
    ) -> TurnResult:
        """Process one user message and return the final answer.

        Args:
            user_id:       Authenticated user, or None for anonymous visitors.
            session_token: Client session token.
            trip_id:       Trip the user is working on (dropped if malformed).
            message:       The user's message text.
            on_event:      Receives live text and tool progress events.
            page_context:  What the caller's UI is showing.

        Raises:
            TransportError: If the language model cannot be reached.
            RepositoryError: If a message cannot be persisted.
        """
        page_context = page_context or {}

        conversation_id = await self._sessions.resolve(user_id, session_token, trip_id)
        ctx = TurnContext(
            user_id=user_id,
            session_token=session_token,
            conversation_id=conversation_id,
            trip_id=validate_trip_id(trip_id),
            page_context=page_context,
        )
        logger.info(
            "Turn started (user=%s, conversation=%s, request=%s): %s",
            user_id, conversation_id, ctx.request_id, message[:80],
        )

        history = await self._sessions.recent_history(session_token)
        memories, preferences = await asyncio.gather(
            self._memory.retrieve_relevant(
                user_id, message, self._memory_limit, self._memory_min_similarity,
            ),
            self._memory.get_preferences(user_id),
        )

        system_prompt = build_system_prompt(
            self._catalog,
            trip_id=ctx.trip_id,
            page_context=page_context,
            memories=memories,
            preferences=preferences,
        )
        messages = [TranscriptMessage(role=m.role, content=m.content) for m in history]
        messages.append(TranscriptMessage(role="user", content=message))

        snapshot = {"page": page_context}
        await self._sessions.append(
            conversation_id, "user", message, context_snapshot=snapshot,
        )

        outcome = await self._loop.run(system_prompt, messages, ctx, on_event)

        tool_calls = [call.to_record() for call in outcome.tool_calls]
        tool_results = [result.to_record() for result in outcome.tool_results]
        message_id = await self._sessions.append(
            conversation_id,
            "assistant",
            outcome.content,
            tool_calls=tool_calls or None,
            tool_results=tool_results or None,
            context_snapshot=snapshot,
        )

        if user_id is not None:
            self._schedule_memory_write(user_id, message_id, message, outcome.content, ctx)

        return TurnResult(
            content=outcome.content,
            state=outcome.state,
            conversation_id=conversation_id,
            message_id=message_id,
            tool_calls=tool_calls,
            tool_results=tool_results,
            iterations=outcome.iterations,
        )

    async def wait_for_background(self) -> None:
        """Wait for every pending memory write (shutdown and tests)."""
        while self._background:
            await asyncio.gather(*list(self._background), return_exceptions=True)

    # ------------------------------------------------------------------
    # Background memory write
    # ------------------------------------------------------------------

    def _schedule_memory_write(
        self,
        user_id: str,
        message_id: int,
        user_message: str,
        response: str,
        ctx: TurnContext,
    ) -> None:
        metadata = {
            "tripId": ctx.trip_id,
            "page": ctx.page_context.get("page"),
            "timestamp": datetime.now(timezone.utc).isoformat(),
        }
        task = asyncio.create_task(
            self._memory.remember_exchange(
                user_id, message_id, user_message, response, metadata,
            ),
            name=f"memory-write-{ctx.request_id}",
        )
        self._background.add(task)
        task.add_done_callback(self._on_memory_write_done)

    def _on_memory_write_done(self, task: asyncio.Task) -> None:
        self._background.discard(task)
        if task.cancelled():
            logger.warning("Memory write cancelled: %s", task.get_name())
            return
        exc = task.exception()
        if exc is not None:
            logger.error(
                "Failed to store memory (%s)", task.get_name(), exc_info=exc,
            )
