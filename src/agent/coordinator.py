"""
agent.coordinator - Concurrent tool execution.

Every invocation of one loop iteration runs at the same time. Each one
settles into exactly one ToolResult (success or error) and the coordinator
returns only once all of them have settled. A failing tool never affects
its siblings and never fails the coordinator itself.
"""

from __future__ import annotations

import asyncio
import logging
from typing import Optional

from pydantic import ValidationError

from application.context import TurnContext
from domain.models import AgentEvent, ToolInvocation, ToolResult
from agent.decoder import EventSink, emit_event
from agent.tools.registry import ToolCatalog

logger = logging.getLogger(__name__)


class ToolExecutionCoordinator:
    """Fan out tool invocations against a catalog and join the results."""

    def __init__(self, catalog: ToolCatalog):
        self._catalog = catalog

    async def execute(
        self,
        invocations: list[ToolInvocation],
        ctx: TurnContext,
        on_event: Optional[EventSink] = None,
    ) -> list[ToolResult]:
        """Run all invocations concurrently.

        Returns one result per invocation, in invocation order. Cancelling
        the caller cancels every tool still running.
        """
        if not invocations:
            return []
        return list(await asyncio.gather(
            *(self._run_one(invocation, ctx, on_event) for invocation in invocations)
        ))

    async def _run_one(
        self,
        invocation: ToolInvocation,
        ctx: TurnContext,
        on_event: Optional[EventSink],
    ) -> ToolResult:
        await emit_event(on_event, AgentEvent("tool_start", {
            "tool": invocation.name,
            "tool_use_id": invocation.id,
            "input": invocation.arguments,
        }))

        try:
            payload = await self._invoke(invocation, ctx)
        except asyncio.CancelledError:
            raise
        except Exception as exc:
            message = _describe_failure(exc)
            logger.warning("Tool %s failed: %s", invocation.name, message)
            await emit_event(on_event, AgentEvent("tool_error", {
                "tool": invocation.name,
                "tool_use_id": invocation.id,
                "error": message,
            }))
            return ToolResult.failure(invocation, message)

        logger.info("Tool %s completed", invocation.name)
        await emit_event(on_event, AgentEvent("tool_complete", {
            "tool": invocation.name,
            "tool_use_id": invocation.id,
            "result": payload,
        }))
        return ToolResult.success(invocation, payload)

    async def _invoke(self, invocation: ToolInvocation, ctx: TurnContext):
        if invocation.decode_error is not None:
            raise invocation.decode_error

        tool = self._catalog.resolve(invocation.name)
        args = tool.get_schema().model_validate(invocation.arguments)
        logger.debug("Executing tool %s with %s", invocation.name, invocation.arguments)
        return await tool.execute(ctx, **args.model_dump())


def _describe_failure(exc: Exception) -> str:
    if isinstance(exc, ValidationError):
        problems = "; ".join(
            f"{'.'.join(str(p) for p in err['loc']) or 'input'}: {err['msg']}"
            for err in exc.errors()
        )
        return f"Invalid arguments: {problems}"
    return str(exc) or type(exc).__name__
