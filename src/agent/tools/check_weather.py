"""
agent.tools.check_weather - Weather forecast tool.

Geocodes the location and reads the daily forecast from Open-Meteo (no API
key needed). Uses requests via run_in_executor for async compat, the same
way the other HTTP-backed components do.
"""

from __future__ import annotations

import asyncio
import logging
from typing import Any, Optional

import requests
from pydantic import BaseModel, Field

from application.context import TurnContext
from domain.exceptions import ToolExecutionError
from agent.tools.base import BaseTool

logger = logging.getLogger(__name__)

# WMO weather interpretation codes (subset)
_WEATHER_CODES = {
    0: "clear sky",
    1: "mainly clear",
    2: "partly cloudy",
    3: "overcast",
    45: "fog",
    48: "depositing rime fog",
    51: "light drizzle",
    53: "drizzle",
    55: "dense drizzle",
    61: "light rain",
    63: "rain",
    65: "heavy rain",
    71: "light snow",
    73: "snow",
    75: "heavy snow",
    80: "rain showers",
    81: "heavy rain showers",
    95: "thunderstorm",
}


class CheckWeatherInput(BaseModel):
    """Input schema for the check_weather tool."""
    location: str = Field(description='City name (e.g., "Paris, France")')
    date: Optional[str] = Field(
        default=None,
        description="Date to check (YYYY-MM-DD), defaults to today",
    )


class CheckWeatherTool(BaseTool):
    """Current conditions and daily forecast for a location."""

    name = "check_weather"
    description = (
        "Get weather forecast for a location. Returns current weather and "
        "forecast with temperature, conditions, rain probability."
    )

    def __init__(
        self,
        geocoding_url: str = "https://geocoding-api.open-meteo.com/v1/search",
        forecast_url: str = "https://api.open-meteo.com/v1/forecast",
        timeout: float = 10.0,
    ):
        self._geocoding_url = geocoding_url
        self._forecast_url = forecast_url
        self._timeout = timeout

    def get_schema(self) -> type[BaseModel]:
        return CheckWeatherInput

    async def execute(
        self,
        ctx: TurnContext,
        location: str = "",
        date: Optional[str] = None,
        **kwargs,
    ) -> dict[str, Any]:
        if not location.strip():
            raise ToolExecutionError("Location is required")

        loop = asyncio.get_running_loop()
        try:
            place = await loop.run_in_executor(None, self._geocode, location)
            forecast = await loop.run_in_executor(None, self._forecast, place, date)
        except requests.RequestException as exc:
            raise ToolExecutionError(f"Weather service unavailable: {exc}") from exc

        logger.info("Weather fetched for %s (request=%s)", place["name"], ctx.request_id)
        return forecast

    # ------------------------------------------------------------------
    # Blocking helpers (run in the default executor)
    # ------------------------------------------------------------------

    def _geocode(self, location: str) -> dict[str, Any]:
        name, _, country = (part.strip() for part in location.partition(","))
        response = requests.get(
            self._geocoding_url,
            params={"name": name, "count": 5, "language": "en", "format": "json"},
            timeout=self._timeout,
        )
        response.raise_for_status()
        results = response.json().get("results") or []
        if country:
            matching = [
                r for r in results
                if country.lower() in (r.get("country", "") or "").lower()
                or country.lower() == (r.get("country_code", "") or "").lower()
            ]
            results = matching or results
        if not results:
            raise ToolExecutionError(f"Could not find location: {location}")

        best = results[0]
        return {
            "name": best.get("name", name),
            "country": best.get("country", ""),
            "latitude": best["latitude"],
            "longitude": best["longitude"],
        }

    def _forecast(self, place: dict[str, Any], date: Optional[str]) -> dict[str, Any]:
        params: dict[str, Any] = {
            "latitude": place["latitude"],
            "longitude": place["longitude"],
            "current_weather": "true",
            "daily": (
                "weathercode,temperature_2m_max,temperature_2m_min,"
                "precipitation_probability_max"
            ),
            "timezone": "auto",
        }
        if date:
            params["start_date"] = date
            params["end_date"] = date

        response = requests.get(self._forecast_url, params=params, timeout=self._timeout)
        response.raise_for_status()
        data = response.json()

        current = data.get("current_weather") or {}
        daily = data.get("daily") or {}
        days = [
            {
                "date": day,
                "conditions": _WEATHER_CODES.get(code, "unknown"),
                "temp_max_c": t_max,
                "temp_min_c": t_min,
                "rain_probability": rain,
            }
            for day, code, t_max, t_min, rain in zip(
                daily.get("time", []),
                daily.get("weathercode", []),
                daily.get("temperature_2m_max", []),
                daily.get("temperature_2m_min", []),
                daily.get("precipitation_probability_max", []),
            )
        ]

        return {
            "location": f"{place['name']}, {place['country']}".strip(", "),
            "current": {
                "temperature_c": current.get("temperature"),
                "wind_kmh": current.get("windspeed"),
                "conditions": _WEATHER_CODES.get(current.get("weathercode"), "unknown"),
            },
            "forecast": days,
        }
