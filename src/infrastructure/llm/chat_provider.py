"""
infrastructure.llm.chat_provider - LangChain adapter for ChatModelPort.

Converts the loop's working transcript into LangChain messages, binds the
advertised tools, and maps each streamed AIMessageChunk onto the
provider-neutral event vocabulary the decoder understands:

    chunk.content text          → TextDelta
    tool_call_chunk with name   → ToolCallStart
    tool_call_chunk args        → ToolArgumentDelta
    end of astream()            → StreamEnd

Any provider failure surfaces as TransportError; the loop never retries.
"""

from __future__ import annotations

import logging
from typing import Any, AsyncIterator, Iterator, Optional
from uuid import uuid4

from langchain_core.language_models import BaseChatModel
from langchain_core.messages import (
    AIMessage,
    AIMessageChunk,
    BaseMessage,
    HumanMessage,
    SystemMessage,
    ToolMessage,
)

from domain.exceptions import TransportError
from domain.models import (
    StreamEnd,
    StreamEvent,
    TextDelta,
    ToolArgumentDelta,
    ToolCallStart,
    ToolSpec,
    TranscriptMessage,
)

logger = logging.getLogger(__name__)


class LangChainChatProvider:
    """Stream a tool-calling LangChain chat model as StreamEvents.

    Implements ChatModelPort (structural typing — no explicit inheritance).
    """

    def __init__(self, llm: BaseChatModel):
        self._llm = llm

    async def stream(
        self,
        system_prompt: str,
        messages: list[TranscriptMessage],
        tools: list[ToolSpec],
    ) -> AsyncIterator[StreamEvent]:
        lc_messages = to_langchain_messages(system_prompt, messages)
        model = self._llm.bind_tools([t.to_openai_tool() for t in tools]) if tools else self._llm

        started: set[int] = set()
        try:
            async for chunk in model.astream(lc_messages):
                for event in chunk_to_events(chunk, started):
                    yield event
        except TransportError:
            raise
        except Exception as exc:
            logger.error("Model stream failed: %s", exc)
            raise TransportError(f"Language model call failed: {exc}") from exc

        yield StreamEnd()


def to_langchain_messages(
    system_prompt: str, messages: list[TranscriptMessage],
) -> list[BaseMessage]:
    """Translate the working transcript into LangChain message objects."""
    lc_messages: list[BaseMessage] = [SystemMessage(content=system_prompt)]

    for msg in messages:
        if msg.role == "assistant":
            if msg.tool_calls:
                lc_messages.append(AIMessage(
                    content=msg.content,
                    tool_calls=[
                        {
                            "id": call.id,
                            "name": call.name,
                            "args": call.arguments if call.decode_error is None else {},
                            "type": "tool_call",
                        }
                        for call in msg.tool_calls
                    ],
                ))
            else:
                lc_messages.append(AIMessage(content=msg.content))
        elif msg.tool_results:
            for result in msg.tool_results:
                lc_messages.append(ToolMessage(
                    content=result.content_as_text(),
                    tool_call_id=result.tool_call_id,
                    name=result.name,
                    status="error" if result.is_error else "success",
                ))
            if msg.content:
                lc_messages.append(HumanMessage(content=msg.content))
        else:
            lc_messages.append(HumanMessage(content=msg.content))

    return lc_messages


def chunk_to_events(chunk: AIMessageChunk, started: set[int]) -> Iterator[StreamEvent]:
    """Yield the StreamEvents carried by one AIMessageChunk.

    *started* remembers which tool-call indices have already been opened
    so repeated name fields do not open duplicate invocations.
    """
    text = _chunk_text(chunk.content)
    if text:
        yield TextDelta(text=text)

    for tc in getattr(chunk, "tool_call_chunks", None) or []:
        index: Optional[int] = tc.get("index")
        name = tc.get("name")
        if name and (index is None or index not in started):
            if index is not None:
                started.add(index)
            call_id = tc.get("id") or f"call_{uuid4().hex}"
            yield ToolCallStart(id=call_id, name=name, index=index)
        args = tc.get("args")
        if args:
            yield ToolArgumentDelta(fragment=args, index=index)


def _chunk_text(content: Any) -> str:
    # Anthropic-style providers stream a list of typed content blocks
    if isinstance(content, str):
        return content
    if isinstance(content, list):
        parts = []
        for block in content:
            if isinstance(block, str):
                parts.append(block)
            elif isinstance(block, dict) and block.get("type") == "text":
                parts.append(block.get("text", ""))
        return "".join(parts)
    return ""
