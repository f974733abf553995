"""
application.services.preference_extractor - Keyword preference classifier.

Scans one exchange (user message + assistant reply) for mentions of
accommodation style, cuisine, and activity type. Each category is
detected independently; within a category the first match wins.
"""

from __future__ import annotations

from datetime import datetime, timezone
from typing import Any

_ACCOMMODATION_WORDS = ("hotel", "hostel", "airbnb")
_LUXURY_WORDS = ("luxury", "upscale")
_CUISINES = (
    "italian", "french", "japanese", "chinese",
    "indian", "mexican", "thai", "mediterranean",
)
_CULTURAL_WORDS = ("museum", "art", "culture")
_OUTDOOR_WORDS = ("hiking", "outdoor", "nature")


def extract_preferences(
    user_message: str, assistant_response: str = "",
) -> list[tuple[str, dict[str, Any]]]:
    """Return (category, data) pairs to merge into the user's preferences."""
    text = f"{user_message} {assistant_response}".lower()
    now = datetime.now(timezone.utc).isoformat()
    found: list[tuple[str, dict[str, Any]]] = []

    if any(word in text for word in _ACCOMMODATION_WORDS):
        accommodation: dict[str, Any] = {
            "mentioned": now,
            "context": user_message[:200],
        }
        if "budget" in text:
            accommodation["type"] = "budget"
        elif any(word in text for word in _LUXURY_WORDS):
            accommodation["type"] = "luxury"
        found.append(("accommodation", accommodation))

    for cuisine in _CUISINES:
        if cuisine in text:
            found.append(("cuisine", {"preference": cuisine, "mentioned": now}))
            break

    if any(word in text for word in _CULTURAL_WORDS):
        found.append(("activities", {"type": "cultural", "mentioned": now}))
    elif any(word in text for word in _OUTDOOR_WORDS):
        found.append(("activities", {"type": "outdoor", "mentioned": now}))

    return found
