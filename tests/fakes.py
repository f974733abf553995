"""Test doubles: scripted model provider, fake embeddings, event sink."""

from __future__ import annotations

import json
from typing import Any, Optional

from domain.exceptions import MemoryUnavailableError
from domain.models import (
    StreamEnd,
    TextDelta,
    ToolArgumentDelta,
    ToolCallStart,
    TranscriptMessage,
)


# ---------------------------------------------------------------------------
# Scripted model provider
# ---------------------------------------------------------------------------

def text_turn(text: str, chunk: int = 8) -> list:
    """Events for a plain text answer, streamed in small deltas."""
    events = [TextDelta(text[i:i + chunk]) for i in range(0, len(text), chunk)]
    return events + [StreamEnd("end_turn")]


def tool_turn(*calls: tuple[str, str, Any], text: str = "") -> list:
    """Events for a response that requests one or more tools.

    Each call is (id, name, arguments); arguments may be a dict (serialized
    and split into fragments) or a raw string used verbatim.
    """
    events: list = [TextDelta(text)] if text else []
    for index, (call_id, name, arguments) in enumerate(calls):
        raw = arguments if isinstance(arguments, str) else json.dumps(arguments)
        events.append(ToolCallStart(id=call_id, name=name, index=index))
        for i in range(0, len(raw), 5):
            events.append(ToolArgumentDelta(raw[i:i + 5], index=index))
    return events + [StreamEnd("tool_use")]


class ScriptedProvider:
    """ChatModelPort fake that replays one scripted response per call.

    A script entry that is an exception is raised instead of streamed.
    When the script runs out the last entry is repeated.
    """

    def __init__(self, *responses):
        self._responses = list(responses)
        self.calls: list[dict[str, Any]] = []

    async def stream(self, system_prompt: str, messages: list[TranscriptMessage], tools):
        self.calls.append({
            "system_prompt": system_prompt,
            "messages": list(messages),
            "tools": [t.name for t in tools],
        })
        index = min(len(self.calls), len(self._responses)) - 1
        response = self._responses[index]
        if isinstance(response, Exception):
            raise response
        for event in response:
            yield event


# ---------------------------------------------------------------------------
# Fake embeddings
# ---------------------------------------------------------------------------

_VOCAB = ("weather", "lyon", "hotel", "budget", "museum", "italian", "rain", "paris")


class FakeEmbeddings:
    """EmbeddingPort fake: fixed vectors per text, else a keyword vector."""

    def __init__(self, vectors: Optional[dict[str, list[float]]] = None):
        self._vectors = vectors or {}
        self.documents: list[str] = []

    async def embed_document(self, text: str) -> list[float]:
        self.documents.append(text)
        return self._vector(text)

    async def embed_query(self, text: str) -> list[float]:
        return self._vector(text)

    def _vector(self, text: str) -> list[float]:
        if text in self._vectors:
            return list(self._vectors[text])
        lowered = text.lower()
        return [1.0 if word in lowered else 0.0 for word in _VOCAB] + [0.1]


class UnavailableEmbeddings:
    """EmbeddingPort fake whose backend is down."""

    async def embed_document(self, text: str) -> list[float]:
        raise MemoryUnavailableError("embedding service unreachable")

    async def embed_query(self, text: str) -> list[float]:
        raise MemoryUnavailableError("embedding service unreachable")


class RecordingSink:
    """Collects AgentEvents emitted during a run."""

    def __init__(self):
        self.events = []

    def __call__(self, event) -> None:
        self.events.append(event)

    def of_type(self, event_type: str) -> list:
        return [e for e in self.events if e.type == event_type]
