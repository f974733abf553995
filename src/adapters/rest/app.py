"""
FastAPI application — WebSocket adapter for the Waycraft travel assistant.

Usage:
    python run_api.py

Or directly:
    uvicorn adapters.rest.app:app --host 0.0.0.0 --port 8000 --reload
"""

from __future__ import annotations

import sys
from contextlib import asynccontextmanager
from pathlib import Path

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

# Ensure src/ is on sys.path when invoked via uvicorn directly
_src_dir = Path(__file__).resolve().parent.parent.parent
if str(_src_dir) not in sys.path:
    sys.path.insert(0, str(_src_dir))

from infrastructure.config import Settings
from infrastructure.logging_setup import configure_logging
from factory import ServiceFactory
from adapters.rest.dependencies import get_orchestrator, set_factory
from adapters.rest.routers import chat_ws, preferences


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Initialize ServiceFactory on startup, drain memory writes on shutdown."""
    project_root = _src_dir.parent
    config = Settings.from_env(project_root=project_root)
    configure_logging(config.log_level)
    factory = ServiceFactory(config)
    await factory.initialize()
    set_factory(factory)
    yield
    await get_orchestrator().wait_for_background()
    set_factory(None)


app = FastAPI(
    title="Waycraft Travel Assistant",
    version="0.1.0",
    description="Conversational travel planning agent with tools and long-term memory.",
    lifespan=lifespan,
)

# CORS — permissive for development; tighten allowed_origins in production
app.add_middleware(
    CORSMiddleware,
    allow_origins=["*"],
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

app.include_router(chat_ws.router)
app.include_router(preferences.router)


@app.get("/health", tags=["health"])
async def health():
    return {"status": "ok", "version": "0.1.0"}
