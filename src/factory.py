"""
factory - Composition root for the Waycraft travel assistant.

ALL dependency wiring happens here. No other module constructs its own
dependencies. Adapters (CLI, WebSocket) call this factory to get fully
configured services and the orchestrator.

Usage:
    from factory import ServiceFactory
    from infrastructure.config import Settings

    config = Settings.from_env()
    factory = ServiceFactory(config)
    await factory.initialize()  # one-time startup

    orchestrator = factory.create_orchestrator()
    result = await orchestrator.handle_turn(user_id, token, trip_id, text)
"""

from __future__ import annotations

import logging
from typing import Optional

from langchain_core.language_models import BaseChatModel

from infrastructure.config import Settings
from infrastructure.llm.chat_provider import LangChainChatProvider
from infrastructure.llm.embeddings import LangChainEmbeddingProvider
from infrastructure.llm.llm_builder import build_embeddings, build_llm
from infrastructure.persistence.connection import AsyncSQLiteConnection
from infrastructure.persistence.migrations import run_migrations
from infrastructure.persistence.conversation_repo import SQLiteConversationRepository
from infrastructure.persistence.message_repo import SQLiteMessageRepository
from infrastructure.persistence.memory_repo import SQLiteMemoryRepository
from infrastructure.persistence.preference_repo import SQLitePreferenceRepository
from application.services.memory import MemoryService
from application.services.session_manager import ConversationSessionManager
from agent.coordinator import ToolExecutionCoordinator
from agent.loop import AgentLoop
from agent.orchestrator import AgentOrchestrator
from agent.tools.registry import ToolCatalog
from agent.tools.check_weather import CheckWeatherTool
from agent.tools.save_preference import SavePreferenceTool

logger = logging.getLogger(__name__)


class ServiceFactory:
    """Composition root — wires all dependencies together.

    Call initialize() once at startup, then create services as needed.
    The chat model, the embedding model and the memory service are built
    once and shared.
    """

    def __init__(self, config: Settings, llm: Optional[BaseChatModel] = None):
        self._config = config
        self._connection = AsyncSQLiteConnection(config.db_path)
        self._llm = llm
        self._memory_service: Optional[MemoryService] = None
        self._initialized = False

    @property
    def config(self) -> Settings:
        return self._config

    async def initialize(self) -> None:
        """One-time startup: run migrations.

        Must be called before creating services.
        """
        logger.info("Initializing ServiceFactory (db=%s)...", self._config.db_path)
        await run_migrations(self._connection)
        logger.info("Database migrations complete")
        self._initialized = True
        logger.info("ServiceFactory ready")

    # ------------------------------------------------------------------
    # Service creation
    # ------------------------------------------------------------------

    def create_memory_service(self) -> MemoryService:
        """Return the shared MemoryService (embeddings built on first use)."""
        self._ensure_initialized()
        if self._memory_service is None:
            embeddings = build_embeddings(
                provider=self._config.embedding_provider,
                model=self._config.embedding_model,
                ollama_base_url=self._config.ollama_base_url,
                openai_api_key=self._config.openai_api_key,
            )
            self._memory_service = MemoryService(
                memory_repo=SQLiteMemoryRepository(self._connection),
                preference_repo=SQLitePreferenceRepository(self._connection),
                embeddings=LangChainEmbeddingProvider(embeddings) if embeddings else None,
            )
        return self._memory_service

    def create_session_manager(self) -> ConversationSessionManager:
        """Create a ConversationSessionManager."""
        self._ensure_initialized()
        return ConversationSessionManager(
            conversation_repo=SQLiteConversationRepository(self._connection),
            message_repo=SQLiteMessageRepository(self._connection),
            history_limit=self._config.history_limit,
        )

    def create_tool_catalog(self) -> ToolCatalog:
        """Create a catalog with the bundled travel tools registered."""
        catalog = ToolCatalog()
        catalog.register(CheckWeatherTool(
            geocoding_url=self._config.geocoding_api_url,
            forecast_url=self._config.weather_api_url,
            timeout=self._config.tool_http_timeout,
        ))
        catalog.register(SavePreferenceTool(self.create_memory_service()))
        return catalog

    # ------------------------------------------------------------------
    # Agent creation
    # ------------------------------------------------------------------

    def create_orchestrator(self, catalog: Optional[ToolCatalog] = None) -> AgentOrchestrator:
        """Create a fully configured AgentOrchestrator.

        Args:
            catalog: Tools to advertise; defaults to the bundled catalog.
        """
        self._ensure_initialized()
        catalog = catalog or self.create_tool_catalog()
        provider = LangChainChatProvider(self._get_llm())
        loop = AgentLoop(
            provider=provider,
            catalog=catalog,
            coordinator=ToolExecutionCoordinator(catalog),
            max_iterations=self._config.agent_max_iterations,
        )
        return AgentOrchestrator(
            sessions=self.create_session_manager(),
            memory=self.create_memory_service(),
            catalog=catalog,
            loop=loop,
            memory_limit=self._config.memory_limit,
            memory_min_similarity=self._config.memory_min_similarity,
        )

    # ------------------------------------------------------------------
    # Private helpers
    # ------------------------------------------------------------------

    def _get_llm(self) -> BaseChatModel:
        if self._llm is None:
            self._llm = build_llm(
                provider=self._config.llm_provider,
                model=self._config.active_llm_model,
                temperature=0,
                ollama_base_url=self._config.ollama_base_url,
                openai_api_key=self._config.openai_api_key,
                groq_api_key=self._config.groq_api_key,
                max_tokens=self._config.llm_max_tokens,
            )
        return self._llm

    def _ensure_initialized(self) -> None:
        if not self._initialized:
            raise RuntimeError(
                "ServiceFactory not initialized. Call await factory.initialize() first."
            )
