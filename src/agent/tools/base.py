"""
agent.tools.base - Base tool interface.

All agent tools inherit from BaseTool. A tool declares its input with a
Pydantic model and returns a JSON-serialisable payload; raising any
exception is how a tool reports failure.
"""

from __future__ import annotations

import asyncio
import inspect
from abc import ABC, abstractmethod
from typing import Any, Awaitable, Callable, Union

from pydantic import BaseModel

from application.context import TurnContext


class BaseTool(ABC):
    """Abstract base for all agent tools."""

    name: str
    description: str

    @abstractmethod
    async def execute(self, ctx: TurnContext, **kwargs) -> Any:
        """Execute the tool with the given turn context and arguments."""
        ...

    @abstractmethod
    def get_schema(self) -> type[BaseModel]:
        """Return the Pydantic schema for this tool's input arguments."""
        ...


ToolFunction = Callable[..., Union[Any, Awaitable[Any]]]


class FunctionTool(BaseTool):
    """Wrap a plain function as a tool.

    The function is called as ``fn(args, ctx)`` with the validated
    arguments as a dict. Both sync and async functions are accepted; sync
    functions run in the default executor so they cannot stall the loop.
    """

    def __init__(
        self,
        name: str,
        description: str,
        input_schema: type[BaseModel],
        executable: ToolFunction,
    ):
        self.name = name
        self.description = description
        self._schema = input_schema
        self._fn = executable

    def get_schema(self) -> type[BaseModel]:
        return self._schema

    async def execute(self, ctx: TurnContext, **kwargs) -> Any:
        if inspect.iscoroutinefunction(self._fn):
            return await self._fn(kwargs, ctx)

        loop = asyncio.get_running_loop()
        result = await loop.run_in_executor(None, self._fn, kwargs, ctx)
        if inspect.isawaitable(result):
            result = await result
        return result
