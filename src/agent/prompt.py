"""
agent.prompt - System prompt for the travel assistant.

Built per turn from the registered tools, the trip and page the user is
on, relevant past conversations, and stored preferences. Sections are
only included when there is something to say.
"""

from __future__ import annotations

import json
from datetime import datetime
from typing import Any, Optional

from domain.entities import ScoredMemory
from agent.tools.registry import ToolCatalog

_BASE_PROMPT = """You are an expert travel assistant for Waycraft, a road trip planning platform that crafts personalized journeys.

**Your Personality**:
- Helpful and enthusiastic about travel
- Concise and to the point (2-3 paragraphs max)
- Actionable - always suggest next steps
- Honest - if you don't know something, use your tools to find out

Before answering, check the conversation history. If your previous message
offered the user a list of options, their current message is most likely
their choice from that list."""


def build_system_prompt(
    catalog: ToolCatalog,
    trip_id: Optional[str] = None,
    page_context: Optional[dict[str, Any]] = None,
    memories: Optional[list[ScoredMemory]] = None,
    preferences: Optional[dict[str, Any]] = None,
) -> str:
    """Assemble the system prompt for one turn.

    Args:
        catalog:      Registered tools (their names drive the tool rules).
        trip_id:      Trip the user is working on, if any.
        page_context: What the caller's UI is showing.
        memories:     Relevant past-conversation summaries, best first.
        preferences:  The user's category → data preference map.

    Returns:
        The system prompt string.
    """
    page_context = page_context or {}
    sections = [_BASE_PROMPT, _context_section(trip_id, page_context)]

    if memories:
        lines = [
            f"- [{_format_date(memory.created_at)}] {memory.content}" for memory in memories
        ]
        sections.append(
            "**Past Conversations**:\n" + "\n".join(lines)
            + "\n\nUse this context to personalize your responses and remember "
            "the user's preferences."
        )

    if preferences:
        lines = [
            f"- {category}: {json.dumps(value, default=str)}"
            for category, value in preferences.items()
        ]
        sections.append(
            "**User Preferences**:\n" + "\n".join(lines)
            + "\n\nConsider these preferences when making recommendations."
        )

    rules = _tool_rules(catalog.names())
    if rules:
        sections.append(rules)

    return "\n\n".join(sections)


def _context_section(trip_id: Optional[str], page_context: dict[str, Any]) -> str:
    page = page_context.get("page") or page_context.get("name") or "unknown"
    lines = ["**Current Context**:", f"- Page: {page}"]
    if trip_id:
        lines.append(f"- Trip: {trip_id}")
    if page_context.get("currentDay"):
        lines.append(f"- Currently viewing day {page_context['currentDay']}")

    route = page_context.get("route")
    if isinstance(route, dict):
        cities = route.get("cities") or []
        lines.append(
            f"- Route: {route.get('origin', 'Unknown')} → {route.get('destination', 'Unknown')}"
        )
        if cities:
            lines.append(f"- Cities on route: {' → '.join(cities)}")
        if route.get("duration"):
            lines.append(f"- Duration: {route['duration']} days")
        lines.append(
            "\nYou have the route context above - use it. If the user asks about "
            "\"the trip\", you already know the cities involved."
        )
    return "\n".join(lines)


def _tool_rules(tool_names: list[str]) -> str:
    rules = []
    if "check_weather" in tool_names:
        rules.append(
            '- Weather ("weather", "forecast", "temperature", "rain") → ALWAYS use '
            'check_weather, e.g. check_weather(location="Berlin, Germany").'
        )
    if "save_preference" in tool_names:
        rules.append(
            "- When the user states a lasting preference (hotel style, food, pace) "
            "→ call save_preference so future trips remember it."
        )
    if not rules:
        return ""
    return (
        "**Tool Usage Rules**:\n" + "\n".join(rules)
        + "\n\nIf a tool returns an error, explain it briefly or retry with "
        "corrected arguments."
    )


def _format_date(value: str) -> str:
    try:
        return datetime.fromisoformat(value).date().isoformat()
    except (TypeError, ValueError):
        return value or "unknown date"
