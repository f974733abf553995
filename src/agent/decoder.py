"""
agent.decoder - Streaming response decoder.

Turns the provider's ordered event stream into:

    - the assistant text, emitted to the display sink as it arrives;
    - zero or more ToolInvocations, each with its own argument buffer that
      grows fragment by fragment and is parsed only when the stream ends.

The decoder knows nothing about what the tools do. It only routes events
into invocation slots in arrival order. A slot whose buffer does not parse
carries its ArgumentDecodeError instead of arguments; its siblings are
unaffected.
"""

from __future__ import annotations

import asyncio
import inspect
import json
import logging
from dataclasses import dataclass, field
from typing import Any, AsyncIterable, Awaitable, Callable, Optional, Union

from domain.exceptions import ArgumentDecodeError
from domain.models import (
    AgentEvent,
    StreamEnd,
    StreamEvent,
    TextDelta,
    ToolArgumentDelta,
    ToolCallStart,
    ToolInvocation,
)

logger = logging.getLogger(__name__)

EventSink = Callable[[AgentEvent], Union[None, Awaitable[None]]]


class ToolArgumentAccumulator:
    """Argument buffer for one in-flight tool invocation."""

    def __init__(self, id: str, name: str):
        self.id = id
        self.name = name
        self._fragments: list[str] = []

    def append(self, fragment: str) -> None:
        self._fragments.append(fragment)

    @property
    def raw(self) -> str:
        return "".join(self._fragments)

    def finalize(self) -> dict[str, Any]:
        """Parse the buffer as a JSON object.

        An empty buffer means the tool takes no arguments.

        Raises:
            ArgumentDecodeError: If the buffer is not valid JSON or is not
                an object.
        """
        raw = self.raw
        if not raw.strip():
            return {}
        try:
            value = json.loads(raw)
        except json.JSONDecodeError as exc:
            raise ArgumentDecodeError(self.name, raw, str(exc)) from exc
        if not isinstance(value, dict):
            raise ArgumentDecodeError(
                self.name, raw, f"expected an object, got {type(value).__name__}",
            )
        return value

    def to_invocation(self) -> ToolInvocation:
        try:
            return ToolInvocation(id=self.id, name=self.name, arguments=self.finalize())
        except ArgumentDecodeError as exc:
            logger.warning("%s (raw=%r)", exc, exc.raw_arguments[:200])
            return ToolInvocation(id=self.id, name=self.name, decode_error=exc)


@dataclass
class DecodedResponse:
    """Everything one model call produced."""
    text: str = ""
    invocations: list[ToolInvocation] = field(default_factory=list)
    stop_reason: str = ""


class StreamDecoder:
    """Demultiplex StreamEvents into text and invocation slots.

    Drive it with feed() for each event, then call finish(). Text deltas
    are forwarded to *sink* as ``text`` AgentEvents; an async sink's
    awaitable is returned from feed() so the caller can await it.
    """

    def __init__(self, sink: Optional[EventSink] = None):
        self._sink = sink
        self._text: list[str] = []
        self._slots: list[ToolArgumentAccumulator] = []
        self._by_index: dict[int, ToolArgumentAccumulator] = {}
        self._stop_reason = ""
        self._finished = False

    @property
    def text(self) -> str:
        return "".join(self._text)

    def feed(self, event: StreamEvent) -> Optional[Awaitable[None]]:
        if self._finished:
            raise RuntimeError("Decoder already finished")

        if isinstance(event, TextDelta):
            if not event.text:
                return None
            self._text.append(event.text)
            return _dispatch(self._sink, AgentEvent("text", {"content": event.text}))
        elif isinstance(event, ToolCallStart):
            slot = ToolArgumentAccumulator(event.id, event.name)
            self._slots.append(slot)
            if event.index is not None:
                self._by_index[event.index] = slot
        elif isinstance(event, ToolArgumentDelta):
            slot = self._slot_for(event.index)
            if slot is None:
                logger.warning("Dropping argument fragment with no open tool call")
            else:
                slot.append(event.fragment)
        elif isinstance(event, StreamEnd):
            self._stop_reason = event.stop_reason
        else:
            logger.debug("Ignoring unknown stream event: %r", event)
        return None

    def finish(self) -> DecodedResponse:
        """Close the stream and parse every invocation's arguments."""
        self._finished = True
        return DecodedResponse(
            text=self.text,
            invocations=[slot.to_invocation() for slot in self._slots],
            stop_reason=self._stop_reason,
        )

    def _slot_for(self, index: Optional[int]) -> Optional[ToolArgumentAccumulator]:
        if index is not None and index in self._by_index:
            return self._by_index[index]
        return self._slots[-1] if self._slots else None


async def emit_event(sink: Optional[EventSink], event: AgentEvent) -> None:
    """Deliver *event* to *sink*, logging and dropping any sink failure."""
    pending = _dispatch(sink, event)
    if pending is not None:
        await pending


async def decode_stream(
    events: AsyncIterable[StreamEvent],
    sink: Optional[EventSink] = None,
) -> DecodedResponse:
    """Consume an async event stream to completion and decode it."""
    decoder = StreamDecoder(sink)
    async for event in events:
        pending = decoder.feed(event)
        if inspect.isawaitable(pending):
            await pending
    return decoder.finish()


def _dispatch(sink: Optional[EventSink], event: AgentEvent) -> Optional[Awaitable[None]]:
    if sink is None:
        return None
    try:
        pending = sink(event)
    except Exception:
        logger.exception("Event sink failed on %s", event.type)
        return None
    if inspect.isawaitable(pending):
        return _await_guarded(pending, event.type)
    return None


async def _await_guarded(pending: Awaitable[None], event_type: str) -> None:
    try:
        await pending
    except asyncio.CancelledError:
        raise
    except Exception:
        # A broken display must not abort the turn
        logger.exception("Event sink failed on %s", event_type)
