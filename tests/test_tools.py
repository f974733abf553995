import pytest
import requests

from agent.tools.check_weather import CheckWeatherTool
from agent.tools.save_preference import SavePreferenceTool
from application.context import TurnContext
from application.services.memory import MemoryService
from domain.exceptions import ToolExecutionError
from infrastructure.persistence.memory_repo import SQLiteMemoryRepository
from infrastructure.persistence.preference_repo import SQLitePreferenceRepository

GEOCODE = {
    "results": [
        {"name": "Lyon", "country": "United States", "country_code": "US",
         "latitude": 43.0, "longitude": -75.0},
        {"name": "Lyon", "country": "France", "country_code": "FR",
         "latitude": 45.75, "longitude": 4.85},
    ]
}

FORECAST = {
    "current_weather": {"temperature": 12.3, "windspeed": 9.0, "weathercode": 61},
    "daily": {
        "time": ["2026-10-18"],
        "weathercode": [63],
        "temperature_2m_max": [14.1],
        "temperature_2m_min": [7.9],
        "precipitation_probability_max": [80],
    },
}


@pytest.fixture
def ctx():
    return TurnContext(user_id="alice", session_token="s-1")


def _response(mocker, payload):
    response = mocker.MagicMock()
    response.json.return_value = payload
    response.raise_for_status.return_value = None
    return response


async def test_weather_prefers_matching_country(mocker, ctx):
    get = mocker.patch(
        "agent.tools.check_weather.requests.get",
        side_effect=[_response(mocker, GEOCODE), _response(mocker, FORECAST)],
    )

    result = await CheckWeatherTool().execute(ctx, location="Lyon, France", date="2026-10-18")

    assert result["location"] == "Lyon, France"
    assert result["current"]["conditions"] == "light rain"
    assert result["forecast"] == [{
        "date": "2026-10-18",
        "conditions": "rain",
        "temp_max_c": 14.1,
        "temp_min_c": 7.9,
        "rain_probability": 80,
    }]
    forecast_params = get.call_args_list[1].kwargs["params"]
    assert forecast_params["latitude"] == 45.75
    assert forecast_params["start_date"] == forecast_params["end_date"] == "2026-10-18"


async def test_weather_unknown_location(mocker, ctx):
    mocker.patch(
        "agent.tools.check_weather.requests.get",
        return_value=_response(mocker, {"results": []}),
    )

    with pytest.raises(ToolExecutionError, match="Could not find location"):
        await CheckWeatherTool().execute(ctx, location="Atlantis")


async def test_weather_http_failure_is_a_tool_error(mocker, ctx):
    mocker.patch(
        "agent.tools.check_weather.requests.get",
        side_effect=requests.ConnectionError("offline"),
    )

    with pytest.raises(ToolExecutionError, match="Weather service unavailable"):
        await CheckWeatherTool().execute(ctx, location="Lyon")


async def test_save_preference_merges_into_store(connection, ctx):
    memory = MemoryService(SQLiteMemoryRepository(connection), SQLitePreferenceRepository(connection))
    tool = SavePreferenceTool(memory)

    await tool.execute(ctx, category="Accommodation", preference="boutique hotels")
    result = await tool.execute(ctx, category="accommodation", preference="boutique hotels",
                                details="quiet neighbourhood")

    assert result["saved"] is True
    assert result["category"] == "accommodation"
    prefs = await memory.get_preferences("alice")
    assert prefs["accommodation"]["preference"] == "boutique hotels"
    assert prefs["accommodation"]["details"] == "quiet neighbourhood"


async def test_save_preference_requires_signed_in_user(connection):
    memory = MemoryService(SQLiteMemoryRepository(connection), SQLitePreferenceRepository(connection))

    with pytest.raises(ToolExecutionError):
        await SavePreferenceTool(memory).execute(
            TurnContext(user_id=None, session_token="s-2"), category="cuisine", preference="thai",
        )
