"""
infrastructure.llm.llm_builder - Centralized LLM and embedding construction.

Single source of truth for building the tool-calling chat model and the
embedding model. Providers are imported lazily so only the selected
integration package needs to be installed.

Supported chat providers:
    - "openai"  → langchain_openai.ChatOpenAI
    - "groq"    → langchain_groq.ChatGroq
    - "ollama"  → langchain_ollama.ChatOllama

Supported embedding providers:
    - "huggingface" → langchain_huggingface.HuggingFaceEmbeddings
    - "ollama"      → langchain_ollama.OllamaEmbeddings
    - "openai"      → langchain_openai.OpenAIEmbeddings
    - "none"        → no embeddings (semantic memory disabled)
"""

from __future__ import annotations

import logging
from typing import Any, Dict, Optional

from langchain_core.embeddings import Embeddings
from langchain_core.language_models import BaseChatModel

logger = logging.getLogger(__name__)


def build_llm(
    *,
    provider: str,
    model: str,
    temperature: float = 0,
    ollama_base_url: str = "http://localhost:11434/",
    openai_api_key: str = "",
    groq_api_key: str = "",
    max_tokens: Optional[int] = None,
) -> BaseChatModel:
    """Build a tool-calling chat model for the given provider.

    Args:
        provider: One of "openai", "groq", "ollama".
        model: Model name for the selected provider.
        temperature: Sampling temperature.
        ollama_base_url: Ollama server URL (only used when provider="ollama").
        openai_api_key: API key for OpenAI.
        groq_api_key: API key for Groq.
        max_tokens: Maximum tokens per response.

    Returns:
        A configured LangChain chat model.

    Raises:
        ValueError: If the provider is unknown or required credentials are missing.
    """
    provider = provider.lower().strip()

    if provider == "openai":
        from langchain_openai import ChatOpenAI

        if not openai_api_key:
            raise ValueError("OPENAI_API_KEY is required when LLM_PROVIDER='openai'")

        kwargs: Dict[str, Any] = {
            "model": model,
            "temperature": temperature,
            "openai_api_key": openai_api_key,
        }
        if max_tokens is not None:
            kwargs["max_tokens"] = max_tokens

        logger.info("Building OpenAI chat model (model=%s)", model)
        return ChatOpenAI(**kwargs)

    elif provider == "groq":
        from langchain_groq import ChatGroq

        if not groq_api_key:
            raise ValueError("GROQ_API_KEY is required when LLM_PROVIDER='groq'")

        kwargs = {
            "model": model,
            "temperature": temperature,
            "groq_api_key": groq_api_key,
        }
        if max_tokens is not None:
            kwargs["max_tokens"] = max_tokens

        logger.info("Building Groq chat model (model=%s)", model)
        return ChatGroq(**kwargs)

    elif provider == "ollama":
        from langchain_ollama import ChatOllama

        kwargs = {
            "model": model,
            "temperature": temperature,
            "base_url": ollama_base_url,
        }
        if max_tokens is not None:
            kwargs["num_predict"] = max_tokens

        logger.info("Building ChatOllama (model=%s)", model)
        return ChatOllama(**kwargs)

    else:
        raise ValueError(
            f"Unsupported LLM_PROVIDER: '{provider}'. "
            "Must be 'openai', 'groq', or 'ollama'."
        )


def build_embeddings(
    *,
    provider: str,
    model: str,
    ollama_base_url: str = "http://localhost:11434/",
    openai_api_key: str = "",
) -> Optional[Embeddings]:
    """Build an embedding model, or return None when memory is disabled.

    A provider whose credentials are missing is treated like "none": the
    runtime still works, it just cannot remember past conversations.
    """
    provider = provider.lower().strip()

    if provider in ("", "none"):
        logger.warning("Embeddings disabled — semantic memory will be unavailable")
        return None

    if provider == "huggingface":
        from langchain_huggingface import HuggingFaceEmbeddings

        logger.info("Building HuggingFace embeddings (model=%s)", model)
        return HuggingFaceEmbeddings(model_name=model)

    elif provider == "ollama":
        from langchain_ollama import OllamaEmbeddings

        logger.info("Building Ollama embeddings (model=%s)", model)
        return OllamaEmbeddings(model=model, base_url=ollama_base_url)

    elif provider == "openai":
        if not openai_api_key:
            logger.warning(
                "OPENAI_API_KEY not configured — semantic memory will be unavailable"
            )
            return None
        from langchain_openai import OpenAIEmbeddings

        logger.info("Building OpenAI embeddings (model=%s)", model)
        return OpenAIEmbeddings(model=model, openai_api_key=openai_api_key)

    else:
        raise ValueError(
            f"Unsupported EMBEDDING_PROVIDER: '{provider}'. "
            "Must be 'huggingface', 'ollama', 'openai', or 'none'."
        )
