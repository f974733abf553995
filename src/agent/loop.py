"""
agent.loop - The bounded think / act / observe state machine.

    THINKING → (EXECUTING_TOOLS → THINKING)* → DONE | BUDGET_EXHAUSTED

Each THINKING step streams one model response through the decoder. No
tool invocations means the streamed text is the answer. Otherwise the
tools run through the coordinator, the assistant tool turn and the
matching tool-result turn are appended to the working transcript, and the
loop thinks again. The working transcript is local to one run; only the
orchestrator persists anything.

A model transport failure aborts the run with TransportError. Tool
failures and malformed tool arguments never do: they come back to the
model as error results.
"""

from __future__ import annotations

import asyncio
import logging
from typing import Optional

from application.context import TurnContext
from domain.exceptions import DomainError, TransportError
from domain.models import (
    AgentEvent,
    AgentState,
    LoopOutcome,
    ToolInvocation,
    ToolResult,
    TranscriptMessage,
)
from domain.ports import ChatModelPort
from agent.coordinator import ToolExecutionCoordinator
from agent.decoder import EventSink, decode_stream, emit_event
from agent.tools.registry import ToolCatalog

logger = logging.getLogger(__name__)

BUDGET_EXHAUSTED_MESSAGE = (
    "I've tried multiple approaches but couldn't complete your request. "
    "Could you rephrase or break it into smaller steps?"
)


class AgentLoop:
    """Runs one turn's model/tool iterations under an iteration budget."""

    def __init__(
        self,
        provider: ChatModelPort,
        catalog: ToolCatalog,
        coordinator: Optional[ToolExecutionCoordinator] = None,
        max_iterations: int = 10,
    ):
        self._provider = provider
        self._catalog = catalog
        self._coordinator = coordinator or ToolExecutionCoordinator(catalog)
        self._max_iterations = max_iterations

    async def run(
        self,
        system_prompt: str,
        messages: list[TranscriptMessage],
        ctx: TurnContext,
        on_event: Optional[EventSink] = None,
    ) -> LoopOutcome:
        """Drive the state machine to a terminal state.

        Args:
            system_prompt: Full instruction context for the model.
            messages:      History plus the new user message. Not mutated.
            ctx:           Turn context handed to every tool.
            on_event:      Sink for live text and tool progress events.

        Raises:
            TransportError: If the model call fails.
        """
        transcript = list(messages)
        tools = self._catalog.list()
        all_calls: list[ToolInvocation] = []
        all_results: list[ToolResult] = []
        iteration = 0
        state = AgentState.THINKING

        while True:
            iteration += 1
            if iteration > self._max_iterations:
                state = AgentState.BUDGET_EXHAUSTED
                logger.warning(
                    "Iteration budget exhausted after %d iterations (request=%s)",
                    self._max_iterations, ctx.request_id,
                )
                return LoopOutcome(
                    state=state,
                    content=BUDGET_EXHAUSTED_MESSAGE,
                    tool_calls=all_calls,
                    tool_results=all_results,
                    iterations=self._max_iterations,
                )

            logger.debug("Iteration %d: %s", iteration, state.value)
            decoded = await self._think(system_prompt, transcript, tools, on_event)

            if not decoded.invocations:
                state = AgentState.DONE
                logger.info(
                    "Turn done after %d iteration(s), %d tool call(s) (request=%s)",
                    iteration, len(all_calls), ctx.request_id,
                )
                return LoopOutcome(
                    state=state,
                    content=decoded.text,
                    tool_calls=all_calls,
                    tool_results=all_results,
                    iterations=iteration,
                )

            state = AgentState.EXECUTING_TOOLS
            logger.info(
                "Iteration %d: executing %s",
                iteration, ", ".join(inv.name for inv in decoded.invocations),
            )
            results = await self._coordinator.execute(decoded.invocations, ctx, on_event)

            all_calls.extend(decoded.invocations)
            all_results.extend(results)
            transcript.append(TranscriptMessage(
                role="assistant", content=decoded.text, tool_calls=decoded.invocations,
            ))
            transcript.append(TranscriptMessage(role="user", tool_results=results))

            await emit_event(on_event, AgentEvent("tool_execution", {
                "iteration": iteration,
                "tools": [
                    {
                        "name": inv.name,
                        "input": inv.arguments,
                        "result": res.content,
                        "is_error": res.is_error,
                    }
                    for inv, res in zip(decoded.invocations, results)
                ],
            }))
            state = AgentState.THINKING

    async def _think(self, system_prompt, transcript, tools, on_event):
        try:
            return await decode_stream(
                self._provider.stream(system_prompt, transcript, tools), on_event,
            )
        except (asyncio.CancelledError, DomainError):
            raise
        except Exception as exc:
            logger.error("Model call failed: %s", exc)
            raise TransportError(f"Language model call failed: {exc}") from exc

