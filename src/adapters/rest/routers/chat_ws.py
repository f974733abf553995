"""WebSocket endpoint for the streaming travel agent."""

from __future__ import annotations

import asyncio
import logging
from typing import Optional
from uuid import uuid4

from fastapi import APIRouter, Query, WebSocket, WebSocketDisconnect

from adapters.rest.dependencies import get_orchestrator
from domain.exceptions import DomainError
from domain.models import AgentEvent

router = APIRouter()
logger = logging.getLogger(__name__)


@router.websocket("/ws/chat")
async def websocket_chat(
    ws: WebSocket,
    session: Optional[str] = Query(default=None),
    user: Optional[str] = Query(default=None),
    trip: Optional[str] = Query(default=None),
):
    """
    WebSocket chat endpoint: /ws/chat?session=<token>&user=<id>&trip=<uuid>

    Omitting user starts an anonymous session; omitting session starts a
    fresh one (its token is sent back in the "session" event).

    Protocol:
      - Client sends: plain text message
      - Server sends: JSON events as the turn runs (text, tool_start,
        tool_complete, tool_error, tool_execution), then one "final" event
        with the answer and its tool trace
      - On a failed turn: an "error" event; the connection stays open
      - Client disconnect cancels the turn in flight
    """
    orchestrator = get_orchestrator()
    session_token = session or uuid4().hex

    await ws.accept()
    await ws.send_json({"type": "session", "session": session_token})

    inbox: asyncio.Queue[str] = asyncio.Queue()
    reader = asyncio.create_task(_read_messages(ws, inbox))

    async def send_event(event: AgentEvent) -> None:
        await ws.send_json(event.to_dict())

    try:
        while True:
            next_message = asyncio.create_task(inbox.get())
            await asyncio.wait({next_message, reader}, return_when=asyncio.FIRST_COMPLETED)
            if not next_message.done():
                next_message.cancel()
                break
            message = next_message.result()
            logger.info("WS user=%s session=%s | %s", user, session_token, message[:200])

            turn = asyncio.create_task(orchestrator.handle_turn(
                user, session_token, trip, message, on_event=send_event,
            ))
            await asyncio.wait({turn, reader}, return_when=asyncio.FIRST_COMPLETED)
            if not turn.done():
                logger.info("Client disconnected, cancelling turn (session=%s)", session_token)
                turn.cancel()
                await asyncio.gather(turn, return_exceptions=True)
                break

            try:
                result = turn.result()
            except DomainError as exc:
                logger.error("Turn failed (session=%s): %s", session_token, exc)
                await ws.send_json({"type": "error", "message": str(exc)})
                continue

            await ws.send_json({
                "type": "final",
                "content": result.content,
                "state": result.state.value,
                "conversation_id": result.conversation_id,
                "message_id": result.message_id,
                "tool_calls": result.tool_calls,
                "tool_results": result.tool_results,
            })
    except WebSocketDisconnect:
        pass
    finally:
        reader.cancel()
        await asyncio.gather(reader, return_exceptions=True)


async def _read_messages(ws: WebSocket, inbox: asyncio.Queue[str]) -> None:
    """Queue incoming messages until the client disconnects."""
    try:
        while True:
            await inbox.put(await ws.receive_text())
    except WebSocketDisconnect:
        logger.debug("WebSocket closed by client")
