"""
domain.models - Value objects for the agent runtime.

These are data containers with no dependencies on infrastructure (no
LangChain, no SQLite). They cover three areas:

    - provider stream events   → TextDelta, ToolCallStart, ToolArgumentDelta, StreamEnd
    - tool invocation/results  → ToolInvocation, ToolResult, ToolSpec
    - loop state and output    → AgentState, TranscriptMessage, AgentEvent,
                                 LoopOutcome, TurnResult
"""

from __future__ import annotations

import json
from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Optional, Union


# ---------------------------------------------------------------------------
# Provider stream events
# ---------------------------------------------------------------------------

@dataclass(frozen=True)
class TextDelta:
    """content-delta:text — a fragment of assistant text."""
    text: str


@dataclass(frozen=True)
class ToolCallStart:
    """content-block-start:tool — the model opened a new tool invocation.

    index is the provider's block index when it reports one; argument
    fragments carrying the same index are routed to this invocation.
    """
    id: str
    name: str
    index: Optional[int] = None


@dataclass(frozen=True)
class ToolArgumentDelta:
    """content-delta:tool-argument-fragment — a slice of serialized JSON.

    When index is None the fragment belongs to the most recently started
    invocation.
    """
    fragment: str
    index: Optional[int] = None


@dataclass(frozen=True)
class StreamEnd:
    """stream-end — no more events will follow."""
    stop_reason: str = ""


StreamEvent = Union[TextDelta, ToolCallStart, ToolArgumentDelta, StreamEnd]


# ---------------------------------------------------------------------------
# Tools
# ---------------------------------------------------------------------------

@dataclass(frozen=True)
class ToolSpec:
    """What the model is told about a tool: name, description, JSON schema."""
    name: str
    description: str
    input_schema: dict[str, Any]

    def to_openai_tool(self) -> dict[str, Any]:
        return {
            "type": "function",
            "function": {
                "name": self.name,
                "description": self.description,
                "parameters": self.input_schema,
            },
        }


@dataclass
class ToolInvocation:
    """A fully assembled, argument-bound request to run a tool.

    decode_error is set instead of a usable arguments dict when the
    streamed payload could not be parsed; the coordinator turns it into an
    error-typed result without calling the tool.
    """
    id: str
    name: str
    arguments: dict[str, Any] = field(default_factory=dict)
    decode_error: Optional[Exception] = None

    def to_record(self) -> dict[str, Any]:
        return {"id": self.id, "name": self.name, "input": self.arguments}


@dataclass(frozen=True)
class ToolResult:
    """Settled outcome of one ToolInvocation, keyed by its id."""
    tool_call_id: str
    name: str
    content: Any
    is_error: bool = False

    @classmethod
    def success(cls, invocation: ToolInvocation, payload: Any) -> ToolResult:
        return cls(tool_call_id=invocation.id, name=invocation.name, content=payload)

    @classmethod
    def failure(cls, invocation: ToolInvocation, message: str) -> ToolResult:
        return cls(
            tool_call_id=invocation.id,
            name=invocation.name,
            content={"error": True, "message": message},
            is_error=True,
        )

    def content_as_text(self) -> str:
        """Serialized form handed back to the model."""
        if isinstance(self.content, str):
            return self.content
        return json.dumps(self.content, default=str)

    def to_record(self) -> dict[str, Any]:
        return {
            "tool_use_id": self.tool_call_id,
            "name": self.name,
            "is_error": self.is_error,
            "content": self.content_as_text(),
        }


# ---------------------------------------------------------------------------
# Working transcript
# ---------------------------------------------------------------------------

@dataclass
class TranscriptMessage:
    """One entry of the loop-local transcript sent to the model.

    A plain turn carries only text. An assistant tool turn also carries
    tool_calls; the matching user turn carries tool_results.
    """
    role: str  # "user" or "assistant"
    content: str = ""
    tool_calls: list[ToolInvocation] = field(default_factory=list)
    tool_results: list[ToolResult] = field(default_factory=list)


# ---------------------------------------------------------------------------
# Loop state and outputs
# ---------------------------------------------------------------------------

class AgentState(str, Enum):
    THINKING = "thinking"
    EXECUTING_TOOLS = "executing_tools"
    DONE = "done"
    BUDGET_EXHAUSTED = "budget_exhausted"


@dataclass(frozen=True)
class AgentEvent:
    """Live event for the caller's display sink.

    type is one of: text, tool_start, tool_complete, tool_error,
    tool_execution.
    """
    type: str
    payload: dict[str, Any] = field(default_factory=dict)

    def to_dict(self) -> dict[str, Any]:
        return {"type": self.type, **self.payload}


@dataclass
class LoopOutcome:
    """What the agent loop hands back to its caller."""
    state: AgentState
    content: str
    tool_calls: list[ToolInvocation] = field(default_factory=list)
    tool_results: list[ToolResult] = field(default_factory=list)
    iterations: int = 0


@dataclass
class TurnResult:
    """Final answer of handle_turn plus its tool trace."""
    content: str
    state: AgentState
    conversation_id: str
    message_id: Optional[int] = None
    tool_calls: list[dict[str, Any]] = field(default_factory=list)
    tool_results: list[dict[str, Any]] = field(default_factory=list)
    iterations: int = 0
