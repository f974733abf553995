import pytest
from pydantic import BaseModel

from application.context import TurnContext
from agent.tools.base import BaseTool
from agent.tools.registry import ToolCatalog
from domain.exceptions import ToolAlreadyRegisteredError, ToolNotFoundError


class EchoInput(BaseModel):
    text: str


class EchoTool(BaseTool):
    name = "echo"
    description = "Echo the text back."

    def get_schema(self):
        return EchoInput

    async def execute(self, ctx, text="", **kwargs):
        return {"echo": text}


def test_register_and_resolve():
    catalog = ToolCatalog([EchoTool()])

    tool = catalog.resolve("echo")

    assert isinstance(tool, EchoTool)
    assert "echo" in catalog
    assert len(catalog) == 1
    assert catalog.names() == ["echo"]


def test_resolve_unknown_tool_raises_not_found():
    catalog = ToolCatalog()

    with pytest.raises(ToolNotFoundError) as exc_info:
        catalog.resolve("teleport")

    assert exc_info.value.name == "teleport"


def test_duplicate_names_are_rejected():
    catalog = ToolCatalog([EchoTool()])

    with pytest.raises(ToolAlreadyRegisteredError):
        catalog.register(EchoTool())

    # The original registration is untouched
    assert len(catalog) == 1


def test_list_advertises_json_schema():
    catalog = ToolCatalog([EchoTool()])

    specs = catalog.list()

    assert len(specs) == 1
    spec = specs[0]
    assert spec.name == "echo"
    assert spec.description == "Echo the text back."
    assert spec.input_schema["type"] == "object"
    assert "text" in spec.input_schema["properties"]
    assert spec.input_schema["required"] == ["text"]
    assert spec.to_openai_tool()["function"]["parameters"] == spec.input_schema


async def test_register_function_wraps_sync_and_async_callables():
    catalog = ToolCatalog()

    def shout(args, ctx):
        return args["text"].upper()

    async def whisper(args, ctx):
        return f"{args['text'].lower()} ({ctx.session_token})"

    catalog.register_function("shout", "Upper-case text.", EchoInput, shout)
    catalog.register_function("whisper", "Lower-case text.", EchoInput, whisper)
    ctx = TurnContext(user_id=None, session_token="s-1")

    assert await catalog.resolve("shout").execute(ctx, text="hi") == "HI"
    assert await catalog.resolve("whisper").execute(ctx, text="HI") == "hi (s-1)"
    assert [spec.name for spec in catalog.list()] == ["shout", "whisper"]


def test_catalogs_are_independent():
    first = ToolCatalog([EchoTool()])
    second = ToolCatalog()

    assert "echo" in first
    assert "echo" not in second
