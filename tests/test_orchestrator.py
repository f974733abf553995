import asyncio

import pytest
from pydantic import BaseModel

from agent.loop import BUDGET_EXHAUSTED_MESSAGE, AgentLoop
from agent.orchestrator import AgentOrchestrator
from agent.tools.registry import ToolCatalog
from application.services.memory import MemoryService
from application.services.session_manager import ConversationSessionManager
from domain.exceptions import TransportError
from domain.models import AgentState
from infrastructure.persistence.conversation_repo import SQLiteConversationRepository
from infrastructure.persistence.memory_repo import SQLiteMemoryRepository
from infrastructure.persistence.message_repo import SQLiteMessageRepository
from infrastructure.persistence.preference_repo import SQLitePreferenceRepository

from fakes import FakeEmbeddings, RecordingSink, ScriptedProvider, UnavailableEmbeddings, text_turn, tool_turn

TRIP_ID = "0b6f2c1e-8d3a-4e5f-9a7b-1c2d3e4f5a6b"


class WeatherInput(BaseModel):
    location: str


def _catalog():
    catalog = ToolCatalog()

    async def check_weather(args, ctx):
        return {"location": args["location"], "conditions": "light rain"}

    catalog.register_function("check_weather", "Weather forecast.", WeatherInput, check_weather)
    return catalog


def _build(connection, provider, embeddings=None, max_iterations=10):
    catalog = _catalog()
    sessions = ConversationSessionManager(
        SQLiteConversationRepository(connection), SQLiteMessageRepository(connection),
    )
    memory = MemoryService(
        SQLiteMemoryRepository(connection), SQLitePreferenceRepository(connection), embeddings,
    )
    loop = AgentLoop(provider, catalog, max_iterations=max_iterations)
    return AgentOrchestrator(sessions, memory, catalog, loop), sessions, memory


async def test_plain_turn_persists_both_messages(connection):
    provider = ScriptedProvider(text_turn("Happy to help you plan!"))
    orchestrator, sessions, _ = _build(connection, provider)

    result = await orchestrator.handle_turn(
        None, "tok-1", None, "Hello", page_context={"page": "home"},
    )
    await orchestrator.wait_for_background()

    assert result.state is AgentState.DONE
    assert result.iterations == 1
    history = await sessions.recent_history("tok-1")
    assert [(m.role, m.content) for m in history] == [
        ("user", "Hello"),
        ("assistant", "Happy to help you plan!"),
    ]
    assert history[1].id == result.message_id
    assert history[1].tool_calls is None
    assert history[1].context_snapshot == {"page": {"page": "home"}}


async def test_weather_turn_records_tool_trace_and_memory(connection):
    provider = ScriptedProvider(
        tool_turn(("call_1", "check_weather", {"location": "Lyon, France"})),
        text_turn("It will rain in Lyon tomorrow, pack an umbrella."),
    )
    embeddings = FakeEmbeddings()
    orchestrator, sessions, memory = _build(connection, provider, embeddings)
    sink = RecordingSink()

    result = await orchestrator.handle_turn(
        "alice", "tok-2", TRIP_ID, "What's the weather in Lyon?", on_event=sink,
    )
    await orchestrator.wait_for_background()

    assert result.iterations == 2
    assert result.tool_calls == [
        {"id": "call_1", "name": "check_weather", "input": {"location": "Lyon, France"}},
    ]
    assert result.tool_results[0]["tool_use_id"] == "call_1"
    assert result.tool_results[0]["is_error"] is False
    assert sink.of_type("tool_start") and sink.of_type("tool_complete")

    stored = (await sessions.recent_history("tok-2"))[-1]
    assert stored.tool_calls == result.tool_calls
    assert stored.tool_results == result.tool_results

    memories = await memory.get_recent("alice")
    assert len(memories) == 1
    assert memories[0].message_id == result.message_id
    assert memories[0].metadata["tripId"] == TRIP_ID
    assert "weather in Lyon" in memories[0].content


async def test_memories_and_preferences_reach_the_prompt(connection):
    provider = ScriptedProvider(text_turn("Noted."))
    embeddings = FakeEmbeddings()
    orchestrator, _, memory = _build(connection, provider, embeddings)
    await memory.store_conversation("alice", None, "User asked about weather in Lyon", {})
    await memory.update_preference("alice", "cuisine", {"preference": "italian"})

    await orchestrator.handle_turn("alice", "tok-3", TRIP_ID, "Weather in Lyon next week?")
    await orchestrator.wait_for_background()

    prompt = provider.calls[0]["system_prompt"]
    assert "User asked about weather in Lyon" in prompt
    assert "italian" in prompt
    assert TRIP_ID in prompt


async def test_history_precedes_the_new_message(connection):
    provider = ScriptedProvider(text_turn("First answer."), text_turn("Second answer."))
    orchestrator, _, _ = _build(connection, provider)

    await orchestrator.handle_turn(None, "tok-4", None, "First question")
    await orchestrator.handle_turn(None, "tok-4", None, "Second question")

    second = provider.calls[1]["messages"]
    assert [(m.role, m.content) for m in second] == [
        ("user", "First question"),
        ("assistant", "First answer."),
        ("user", "Second question"),
    ]


async def test_unavailable_embeddings_still_answer(connection):
    provider = ScriptedProvider(text_turn("Lyon is lovely in spring."))
    orchestrator, _, memory = _build(connection, provider, UnavailableEmbeddings())

    result = await orchestrator.handle_turn("alice", "tok-5", None, "When to visit Lyon?")
    await orchestrator.wait_for_background()

    assert result.content == "Lyon is lovely in spring."
    assert result.state is AgentState.DONE
    assert await memory.get_recent("alice") == []
    assert await memory.store_conversation("alice", None, "summary", {}) is None


async def test_anonymous_turns_skip_memory(connection):
    embeddings = FakeEmbeddings()
    orchestrator, _, _ = _build(connection, ScriptedProvider(text_turn("Hi!")), embeddings)

    await orchestrator.handle_turn(None, "tok-6", None, "Hi")
    await orchestrator.wait_for_background()

    assert embeddings.documents == []


async def test_budget_exhaustion_is_persisted_as_answer(connection):
    provider = ScriptedProvider(tool_turn(("call_x", "check_weather", {"location": "Lyon"})))
    orchestrator, sessions, _ = _build(connection, provider, max_iterations=3)

    result = await orchestrator.handle_turn(None, "tok-7", None, "Loop forever")

    assert result.state is AgentState.BUDGET_EXHAUSTED
    assert result.content == BUDGET_EXHAUSTED_MESSAGE
    assert len(result.tool_calls) == 3
    assert (await sessions.recent_history("tok-7"))[-1].content == BUDGET_EXHAUSTED_MESSAGE


async def test_transport_failure_leaves_no_assistant_message(connection):
    provider = ScriptedProvider(ConnectionError("unreachable"))
    orchestrator, sessions, _ = _build(connection, provider)

    with pytest.raises(TransportError):
        await orchestrator.handle_turn(None, "tok-8", None, "Hello?")

    history = await sessions.recent_history("tok-8")
    assert [m.role for m in history] == ["user"]


async def test_cancelled_turn_writes_no_assistant_message(connection):
    catalog = ToolCatalog()
    started = asyncio.Event()

    async def hang(args, ctx):
        started.set()
        await asyncio.sleep(10)

    catalog.register_function("check_weather", "Weather forecast.", WeatherInput, hang)
    provider = ScriptedProvider(tool_turn(("call_1", "check_weather", {"location": "Lyon"})))
    sessions = ConversationSessionManager(
        SQLiteConversationRepository(connection), SQLiteMessageRepository(connection),
    )
    memory = MemoryService(SQLiteMemoryRepository(connection), SQLitePreferenceRepository(connection))
    orchestrator = AgentOrchestrator(sessions, memory, catalog, AgentLoop(provider, catalog))

    task = asyncio.create_task(orchestrator.handle_turn(None, "tok-9", None, "Weather?"))
    await started.wait()
    task.cancel()

    with pytest.raises(asyncio.CancelledError):
        await task
    assert [m.role for m in await sessions.recent_history("tok-9")] == ["user"]
