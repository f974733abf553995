"""
adapters.cli.main - CLI adapter for the Waycraft travel assistant.

Mirrors src/adapters/rest/ but for terminal use. Uses the same
ServiceFactory and AgentOrchestrator as the WebSocket API so all
behaviour (sessions, memory, tools) is identical.

Commands
--------
  init-db          Create or upgrade the SQLite schema
  ask              One-shot question, answer streamed to the terminal
  chat             Interactive chat session with live streaming
  preferences      Show the stored preferences of a user
  memories         Show the most recent conversation memories of a user
  purge-memories   Delete memories older than the retention window

Usage
-----
  python run_cli.py ask "What's the weather in Lyon?"
  python run_cli.py chat --user alice --trip 3f0c...
"""

from __future__ import annotations

import asyncio
import json
import sys
from pathlib import Path
from typing import Optional
from uuid import uuid4

# ── Ensure src/ is on the path ──
_SRC = Path(__file__).resolve().parent.parent.parent
sys.path.insert(0, str(_SRC))

import typer
from rich import box
from rich.console import Console
from rich.markdown import Markdown
from rich.panel import Panel
from rich.prompt import Prompt
from rich.table import Table

from agent.orchestrator import AgentOrchestrator
from domain.exceptions import DomainError
from domain.models import AgentEvent, AgentState, TurnResult
from factory import ServiceFactory
from infrastructure.config import Settings
from infrastructure.logging_setup import configure_logging

__version__ = "0.1.0"

console = Console()
app = typer.Typer(
    help="Waycraft travel assistant CLI",
    add_completion=False,
    no_args_is_help=True,
)


# ---------------------------------------------------------------------------
# Shared helpers
# ---------------------------------------------------------------------------

async def _make_factory() -> ServiceFactory:
    """Create and initialize a ServiceFactory from the environment."""
    config = Settings.from_env()
    configure_logging(config.log_level)
    factory = ServiceFactory(config)
    await factory.initialize()
    return factory


class _StreamPrinter:
    """Event sink that prints text as it streams and tool progress lines."""

    def __init__(self, show_tools: bool = True):
        self._show_tools = show_tools
        self.streamed = False

    def __call__(self, event: AgentEvent) -> None:
        if event.type == "text":
            console.print(event.payload.get("content", ""), end="", markup=False, highlight=False)
            self.streamed = True
        elif not self._show_tools:
            return
        elif event.type == "tool_start":
            console.print(f"\n[dim]→ {event.payload['tool']}({json.dumps(event.payload.get('input', {}))})[/dim]")
        elif event.type == "tool_complete":
            console.print(f"[dim green]✓ {event.payload['tool']}[/dim green]")
        elif event.type == "tool_error":
            console.print(f"[dim red]✗ {event.payload['tool']}: {event.payload.get('error')}[/dim red]")


async def _run_turn(
    orchestrator: AgentOrchestrator,
    user: Optional[str],
    session: str,
    trip: Optional[str],
    message: str,
    show_tools: bool,
) -> Optional[TurnResult]:
    """Run one turn; print and return None if it fails."""
    printer = _StreamPrinter(show_tools)
    try:
        result = await orchestrator.handle_turn(
            user, session, trip, message, on_event=printer,
        )
    except DomainError as exc:
        console.print(f"\n[bold red]Assistant unavailable:[/bold red] {exc}")
        return None

    if result.state == AgentState.BUDGET_EXHAUSTED or not printer.streamed:
        console.print(Panel(Markdown(result.content), title="Waycraft", border_style="yellow"))
    else:
        console.print()
    return result


def _version_callback(value: bool) -> None:
    if value:
        console.print(f"waycraft-assistant v{__version__}")
        raise typer.Exit()


# ---------------------------------------------------------------------------
# Commands: Conversation
# ---------------------------------------------------------------------------

@app.command()
def ask(
    message: str = typer.Argument(..., help="Your travel question."),
    user: Optional[str] = typer.Option(None, "--user", "-u", help="User id (omit for anonymous)."),
    session: str = typer.Option("cli", "--session", "-s", help="Session token."),
    trip: Optional[str] = typer.Option(None, "--trip", "-t", help="Trip id (UUID)."),
    show_tools: bool = typer.Option(True, "--tools/--no-tools", help="Show tool progress."),
) -> None:
    """Ask a one-shot question."""

    async def _run() -> None:
        factory = await _make_factory()
        orchestrator = factory.create_orchestrator()
        result = await _run_turn(orchestrator, user, session, trip, message, show_tools)
        await orchestrator.wait_for_background()
        if result is None:
            raise typer.Exit(code=1)

    asyncio.run(_run())


@app.command()
def chat(
    user: Optional[str] = typer.Option(None, "--user", "-u", help="User id (omit for anonymous)."),
    session: Optional[str] = typer.Option(None, "--session", "-s", help="Resume a session token."),
    trip: Optional[str] = typer.Option(None, "--trip", "-t", help="Trip id (UUID)."),
    show_tools: bool = typer.Option(True, "--tools/--no-tools", help="Show tool progress."),
) -> None:
    """Start an interactive chat session."""
    session_token = session or uuid4().hex

    async def _run() -> None:
        factory = await _make_factory()
        orchestrator = factory.create_orchestrator()

        label = user or "anonymous"
        console.print(Panel(
            f"[bold]Waycraft Travel Assistant[/bold]\n"
            f"User [bold]{label}[/bold], session [dim]{session_token}[/dim]\n"
            "Type your question, or [bold]exit[/bold] / [bold]quit[/bold] to stop.",
            border_style="cyan",
        ))

        try:
            while True:
                try:
                    user_input = Prompt.ask("\n[bold cyan]You[/bold cyan]")
                except (KeyboardInterrupt, EOFError):
                    console.print("\n[dim]Goodbye![/dim]")
                    break

                if user_input.strip().lower() in ("exit", "quit", "q", "bye"):
                    console.print("[dim]Goodbye![/dim]")
                    break

                if not user_input.strip():
                    continue

                console.print("[bold green]Waycraft[/bold green] ", end="")
                await _run_turn(
                    orchestrator, user, session_token, trip, user_input, show_tools,
                )
        finally:
            await orchestrator.wait_for_background()

    asyncio.run(_run())


# ---------------------------------------------------------------------------
# Commands: Memory inspection and maintenance
# ---------------------------------------------------------------------------

@app.command()
def preferences(
    user: str = typer.Argument(..., help="User id."),
) -> None:
    """Show the stored travel preferences of a user."""

    async def _run() -> None:
        factory = await _make_factory()
        prefs = await factory.create_memory_service().get_preferences(user)
        if not prefs:
            console.print(f"[dim]No preferences stored for {user}.[/dim]")
            return

        t = Table(box=box.SIMPLE, padding=(0, 2))
        t.add_column("Category", style="bold")
        t.add_column("Value")
        t.add_column("Updated", style="dim")
        for category, value in prefs.items():
            data = dict(value) if isinstance(value, dict) else {"value": value}
            updated = data.pop("lastUpdated", "")
            t.add_row(category, json.dumps(data), updated)
        console.print(Panel(t, title=f"Preferences of {user}", border_style="blue"))

    asyncio.run(_run())


@app.command()
def memories(
    user: str = typer.Argument(..., help="User id."),
    limit: int = typer.Option(10, "--limit", "-n", min=1, help="How many to show."),
) -> None:
    """Show the most recent conversation memories of a user."""

    async def _run() -> None:
        factory = await _make_factory()
        records = await factory.create_memory_service().get_recent(user, limit)
        if not records:
            console.print(f"[dim]No memories stored for {user}.[/dim]")
            return

        t = Table(box=box.SIMPLE, padding=(0, 2))
        t.add_column("Created", style="dim")
        t.add_column("Summary")
        for record in records:
            t.add_row(record.created_at, record.content)
        console.print(Panel(t, title=f"Memories of {user}", border_style="magenta"))

    asyncio.run(_run())


@app.command("purge-memories")
def purge_memories(
    days: Optional[int] = typer.Option(
        None, "--days", "-d", min=1,
        help="Retention window in days (default: MEMORY_RETENTION_DAYS).",
    ),
) -> None:
    """Delete conversation memories older than the retention window."""

    async def _run() -> None:
        factory = await _make_factory()
        window = days or factory.config.memory_retention_days
        removed = await factory.create_memory_service().purge_older_than(window)
        console.print(
            f"[green]Purged {removed} memor{'y' if removed == 1 else 'ies'} "
            f"older than {window} days.[/green]"
        )

    asyncio.run(_run())


# ---------------------------------------------------------------------------
# Commands: Init (first-time setup)
# ---------------------------------------------------------------------------

@app.command("init-db")
def init_db() -> None:
    """Create or upgrade the database schema."""

    async def _run() -> None:
        factory = await _make_factory()
        console.print(Panel(
            f"[bold green]Database ready![/bold green]\n"
            f"Schema is up to date in [bold]{factory.config.db_path}[/bold].",
            border_style="green",
        ))

    asyncio.run(_run())


# ---------------------------------------------------------------------------
# Global version option
# ---------------------------------------------------------------------------

@app.callback()
def _callback(
    version: bool = typer.Option(
        False, "--version", "-v",
        help="Show version and exit.",
        callback=_version_callback,
        is_eager=True,
    ),
) -> None:
    """Waycraft travel assistant CLI"""


# ---------------------------------------------------------------------------
# Entry point
# ---------------------------------------------------------------------------

if __name__ == "__main__":
    app()
