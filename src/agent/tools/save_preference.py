"""
agent.tools.save_preference - Remember an explicit user preference.

Lets the model record what the user said they like ("we prefer boutique
hotels", "no seafood") so future turns are personalized.
"""

from __future__ import annotations

from typing import Any, Optional

from pydantic import BaseModel, Field

from application.context import TurnContext
from application.services.memory import MemoryService
from domain.exceptions import ToolExecutionError
from agent.tools.base import BaseTool


class SavePreferenceInput(BaseModel):
    """Input schema for the save_preference tool."""
    category: str = Field(
        description=(
            "Preference category, e.g. 'accommodation', 'cuisine', "
            "'activities', 'pace', 'budget', 'dietary'"
        ),
    )
    preference: str = Field(description="The preference itself, in a few words")
    details: Optional[str] = Field(
        default=None, description="Optional extra context from the user",
    )


class SavePreferenceTool(BaseTool):
    """Merge a stated preference into the user's preference record."""

    name = "save_preference"
    description = (
        "Save a travel preference the user explicitly stated so it can be "
        "used in future conversations. Only for signed-in users."
    )

    def __init__(self, memory_service: MemoryService):
        self._memory = memory_service

    def get_schema(self) -> type[BaseModel]:
        return SavePreferenceInput

    async def execute(
        self,
        ctx: TurnContext,
        category: str = "",
        preference: str = "",
        details: Optional[str] = None,
        **kwargs,
    ) -> dict[str, Any]:
        if ctx.user_id is None:
            raise ToolExecutionError("Preferences can only be saved for signed-in users")

        data: dict[str, Any] = {"preference": preference}
        if details:
            data["details"] = details

        category = category.strip().lower()
        preferences = await self._memory.update_preference(ctx.user_id, category, data)
        return {"saved": True, "category": category, "value": preferences[category]}
