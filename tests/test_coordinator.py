import asyncio

import pytest
from pydantic import BaseModel

from agent.coordinator import ToolExecutionCoordinator
from agent.tools.registry import ToolCatalog
from application.context import TurnContext
from domain.exceptions import ArgumentDecodeError, ToolExecutionError
from domain.models import ToolInvocation

from fakes import RecordingSink


class CityInput(BaseModel):
    city: str


@pytest.fixture
def ctx():
    return TurnContext(user_id="u-1", session_token="s-1")


@pytest.fixture
def catalog():
    catalog = ToolCatalog()

    async def lookup(args, ctx):
        await asyncio.sleep(0.01)
        return {"city": args["city"], "population": 500_000}

    async def broken(args, ctx):
        raise ToolExecutionError(f"No data for {args['city']}")

    catalog.register_function("lookup", "Look up a city.", CityInput, lookup)
    catalog.register_function("broken", "Always fails.", CityInput, broken)
    return catalog


async def test_every_invocation_settles_with_its_own_result(catalog, ctx):
    invocations = [
        ToolInvocation(id="1", name="lookup", arguments={"city": "Lyon"}),
        ToolInvocation(id="2", name="broken", arguments={"city": "Nice"}),
        ToolInvocation(id="3", name="lookup", arguments={"city": "Paris"}),
        ToolInvocation(id="4", name="unknown_tool", arguments={}),
        ToolInvocation(id="5", name="lookup", arguments={"town": "Lyon"}),
        ToolInvocation(
            id="6", name="lookup",
            decode_error=ArgumentDecodeError("lookup", '{"city": ', "truncated"),
        ),
    ]

    results = await ToolExecutionCoordinator(catalog).execute(invocations, ctx)

    assert len(results) == len(invocations)
    by_id = {r.tool_call_id: r for r in results}
    assert set(by_id) == {"1", "2", "3", "4", "5", "6"}
    assert by_id["1"].content == {"city": "Lyon", "population": 500_000}
    assert by_id["3"].content["city"] == "Paris"
    failed = {tid for tid, r in by_id.items() if r.is_error}
    assert failed == {"2", "4", "5", "6"}
    assert by_id["2"].content == {"error": True, "message": "No data for Nice"}
    assert "Tool not found" in by_id["4"].content["message"]
    assert by_id["5"].content["message"].startswith("Invalid arguments")
    assert "Could not decode arguments" in by_id["6"].content["message"]


async def test_tools_run_concurrently(ctx):
    catalog = ToolCatalog()
    running = 0
    peak = 0

    async def slow(args, ctx):
        nonlocal running, peak
        running += 1
        peak = max(peak, running)
        await asyncio.sleep(0.05)
        running -= 1
        return args["city"]

    catalog.register_function("slow", "Slow lookup.", CityInput, slow)
    invocations = [
        ToolInvocation(id=str(i), name="slow", arguments={"city": f"c{i}"}) for i in range(4)
    ]

    results = await ToolExecutionCoordinator(catalog).execute(invocations, ctx)

    assert peak == 4
    assert [r.content for r in results] == ["c0", "c1", "c2", "c3"]


async def test_progress_events_bracket_each_invocation(catalog, ctx):
    sink = RecordingSink()
    invocations = [
        ToolInvocation(id="1", name="lookup", arguments={"city": "Lyon"}),
        ToolInvocation(id="2", name="broken", arguments={"city": "Nice"}),
    ]

    await ToolExecutionCoordinator(catalog).execute(invocations, ctx, sink)

    assert {e.payload["tool_use_id"] for e in sink.of_type("tool_start")} == {"1", "2"}
    assert [e.payload["tool_use_id"] for e in sink.of_type("tool_complete")] == ["1"]
    error = sink.of_type("tool_error")[0]
    assert error.payload["tool_use_id"] == "2"
    assert error.payload["error"] == "No data for Nice"
    for call_id in ("1", "2"):
        ids = [e.payload["tool_use_id"] for e in sink.events]
        start = next(i for i, e in enumerate(sink.events)
                     if e.type == "tool_start" and ids[i] == call_id)
        end = next(i for i, e in enumerate(sink.events)
                   if e.type in ("tool_complete", "tool_error") and ids[i] == call_id)
        assert start < end


async def test_failing_sink_does_not_fail_the_tool(catalog, ctx):
    def sink(event):
        raise RuntimeError("display went away")

    results = await ToolExecutionCoordinator(catalog).execute(
        [ToolInvocation(id="1", name="lookup", arguments={"city": "Lyon"})], ctx, sink,
    )

    assert not results[0].is_error


async def test_cancellation_reaches_running_tools(ctx):
    catalog = ToolCatalog()
    started = asyncio.Event()
    cancelled = asyncio.Event()

    async def hang(args, ctx):
        started.set()
        try:
            await asyncio.sleep(10)
        except asyncio.CancelledError:
            cancelled.set()
            raise

    catalog.register_function("hang", "Never returns.", CityInput, hang)
    task = asyncio.create_task(ToolExecutionCoordinator(catalog).execute(
        [ToolInvocation(id="1", name="hang", arguments={"city": "Lyon"})], ctx,
    ))
    await started.wait()

    task.cancel()
    with pytest.raises(asyncio.CancelledError):
        await task
    assert cancelled.is_set()


async def test_no_invocations_returns_empty(catalog, ctx):
    assert await ToolExecutionCoordinator(catalog).execute([], ctx) == []
