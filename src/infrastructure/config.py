"""
infrastructure.config - Typed, injectable configuration.

A frozen dataclass that can be constructed from the environment or passed
explicitly in tests.
"""

from __future__ import annotations

import os
from dataclasses import dataclass
from pathlib import Path
from typing import Optional


@dataclass(frozen=True)
class Settings:
    """Centralized configuration for the travel assistant runtime.

    No module-level globals — construct via from_env() or pass explicitly
    in tests.
    """
    project_root: Path

    # ── Centralized LLM Provider ────────────────────────────────
    # Allowed: "openai", "groq", "ollama"
    llm_provider: str = "ollama"

    # Model names — only the one matching llm_provider is used.
    llm_model_ollama: str = "llama3.2"
    llm_model_openai: str = "gpt-4.1-mini"
    llm_model_groq: str = "llama-3.3-70b-versatile"
    llm_max_tokens: int = 4096

    # ── Embeddings ──────────────────────────────────────────────
    # Allowed: "huggingface", "ollama", "openai", "none"
    # "none" disables semantic memory (stores become no-ops).
    embedding_provider: str = "huggingface"
    embedding_model: str = "sentence-transformers/all-mpnet-base-v2"

    # Connection details
    ollama_base_url: str = "http://localhost:11434/"
    groq_api_key: str = ""
    openai_api_key: str = ""

    # Agent
    agent_max_iterations: int = 10
    history_limit: int = 10

    # Memory
    memory_limit: int = 5
    memory_min_similarity: float = 0.7
    memory_retention_days: int = 90

    # Database
    db_path: str = "waycraft.db"

    # Tools
    geocoding_api_url: str = "https://geocoding-api.open-meteo.com/v1/search"
    weather_api_url: str = "https://api.open-meteo.com/v1/forecast"
    tool_http_timeout: float = 10.0

    # Logging
    log_level: str = "INFO"

    @property
    def active_llm_model(self) -> str:
        """Return the model name for the currently active LLM provider."""
        if self.llm_provider == "openai":
            return self.llm_model_openai
        elif self.llm_provider == "groq":
            return self.llm_model_groq
        return self.llm_model_ollama

    @classmethod
    def from_env(cls, project_root: Optional[Path] = None) -> Settings:
        """Build Settings from environment variables (and a .env file)."""
        from dotenv import load_dotenv
        load_dotenv()

        root = project_root or Path(__file__).resolve().parent.parent.parent

        return cls(
            project_root=root,
            llm_provider=os.getenv("LLM_PROVIDER", "ollama"),
            llm_model_ollama=os.getenv("LLM_MODEL_OLLAMA", "llama3.2"),
            llm_model_openai=os.getenv("LLM_MODEL_OPENAI", "gpt-4.1-mini"),
            llm_model_groq=os.getenv("LLM_MODEL_GROQ", "llama-3.3-70b-versatile"),
            llm_max_tokens=int(os.getenv("LLM_MAX_TOKENS", "4096")),
            embedding_provider=os.getenv("EMBEDDING_PROVIDER", "huggingface"),
            embedding_model=os.getenv(
                "EMBEDDING_MODEL", "sentence-transformers/all-mpnet-base-v2",
            ),
            ollama_base_url=os.getenv("OLLAMA_BASE_URL", "http://localhost:11434/"),
            groq_api_key=os.getenv("GROQ_API_KEY", ""),
            openai_api_key=os.getenv("OPENAI_API_KEY", ""),
            agent_max_iterations=int(os.getenv("AGENT_MAX_ITERATIONS", "10")),
            history_limit=int(os.getenv("HISTORY_LIMIT", "10")),
            memory_limit=int(os.getenv("MEMORY_LIMIT", "5")),
            memory_min_similarity=float(os.getenv("MEMORY_MIN_SIMILARITY", "0.7")),
            memory_retention_days=int(os.getenv("MEMORY_RETENTION_DAYS", "90")),
            db_path=os.getenv("DB_PATH", "waycraft.db"),
            geocoding_api_url=os.getenv(
                "GEOCODING_API_URL", "https://geocoding-api.open-meteo.com/v1/search",
            ),
            weather_api_url=os.getenv(
                "WEATHER_API_URL", "https://api.open-meteo.com/v1/forecast",
            ),
            tool_http_timeout=float(os.getenv("TOOL_HTTP_TIMEOUT", "10")),
            log_level=os.getenv("LOG_LEVEL", "INFO"),
        )
