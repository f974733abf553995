"""
agent.tools.registry - Tool catalog: registration, discovery, resolution.

The catalog is constructed and passed into the agent explicitly (no
process-wide registry), so each test or session can use its own set of
tools. Tool names are unique: registering a second tool under an existing
name raises ToolAlreadyRegisteredError instead of silently replacing it.
"""

from __future__ import annotations

import logging

from pydantic import BaseModel

from domain.exceptions import ToolAlreadyRegisteredError, ToolNotFoundError
from domain.models import ToolSpec
from agent.tools.base import BaseTool, FunctionTool, ToolFunction

logger = logging.getLogger(__name__)


class ToolCatalog:
    """Maps tool names to their schema and executable."""

    def __init__(self, tools: list[BaseTool] | None = None):
        self._tools: dict[str, BaseTool] = {}
        for tool in tools or []:
            self.register(tool)

    def register(self, tool: BaseTool) -> None:
        """Register a tool by its name.

        Raises:
            ToolAlreadyRegisteredError: If the name is already taken.
        """
        if tool.name in self._tools:
            raise ToolAlreadyRegisteredError(tool.name)
        self._tools[tool.name] = tool
        logger.debug("Registered tool: %s", tool.name)

    def register_function(
        self,
        name: str,
        description: str,
        input_schema: type[BaseModel],
        executable: ToolFunction,
    ) -> None:
        """Register a plain ``fn(args, ctx)`` callable as a tool."""
        self.register(FunctionTool(name, description, input_schema, executable))

    def resolve(self, name: str) -> BaseTool:
        """Get a tool by name.

        Raises:
            ToolNotFoundError: If no tool has that name.
        """
        try:
            return self._tools[name]
        except KeyError:
            raise ToolNotFoundError(name) from None

    def list(self) -> list[ToolSpec]:
        """Schemas of every registered tool, in registration order."""
        return [
            ToolSpec(
                name=tool.name,
                description=tool.description,
                input_schema=tool.get_schema().model_json_schema(),
            )
            for tool in self._tools.values()
        ]

    def names(self) -> list[str]:
        """Return all registered tool names."""
        return list(self._tools.keys())

    def __contains__(self, name: object) -> bool:
        return name in self._tools

    def __len__(self) -> int:
        return len(self._tools)
