"""Shared fixtures for the agent runtime tests."""

from __future__ import annotations

import pytest

from infrastructure.persistence.connection import AsyncSQLiteConnection
from infrastructure.persistence.migrations import run_migrations


@pytest.fixture
async def connection(tmp_path):
    """A migrated SQLite database in a temp directory."""
    conn = AsyncSQLiteConnection(str(tmp_path / "waycraft-test.db"))
    await run_migrations(conn)
    return conn
