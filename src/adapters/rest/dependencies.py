"""
Shared FastAPI dependencies.

- get_factory(): returns the initialized ServiceFactory (set at startup).
- get_orchestrator(): the AgentOrchestrator shared by all connections, so
  pending memory writes can be drained on shutdown.
"""

from __future__ import annotations

from agent.orchestrator import AgentOrchestrator
from factory import ServiceFactory

# Module-level references set by app lifespan
_factory: ServiceFactory | None = None
_orchestrator: AgentOrchestrator | None = None


def set_factory(factory: ServiceFactory | None) -> None:
    global _factory, _orchestrator
    _factory = factory
    _orchestrator = factory.create_orchestrator() if factory is not None else None


def get_factory() -> ServiceFactory:
    if _factory is None:
        raise RuntimeError("ServiceFactory not initialized.")
    return _factory


def get_orchestrator() -> AgentOrchestrator:
    if _orchestrator is None:
        raise RuntimeError("ServiceFactory not initialized.")
    return _orchestrator
