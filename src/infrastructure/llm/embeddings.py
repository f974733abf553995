"""
infrastructure.llm.embeddings - LangChain adapter for EmbeddingPort.

Wraps a langchain_core Embeddings instance. Every failure, including a
missing model, is reported as MemoryUnavailableError so the memory
service can degrade instead of failing the turn.
"""

from __future__ import annotations

import logging
from typing import Optional

from langchain_core.embeddings import Embeddings

from domain.exceptions import MemoryUnavailableError

logger = logging.getLogger(__name__)


class LangChainEmbeddingProvider:
    """Implements EmbeddingPort on top of LangChain embeddings."""

    def __init__(self, embeddings: Optional[Embeddings]):
        self._embeddings = embeddings

    @property
    def available(self) -> bool:
        return self._embeddings is not None

    async def embed_document(self, text: str) -> list[float]:
        embeddings = self._require()
        try:
            vectors = await embeddings.aembed_documents([text])
        except Exception as exc:
            raise MemoryUnavailableError(f"Embedding request failed: {exc}") from exc
        if not vectors:
            raise MemoryUnavailableError("Embedding provider returned no vector")
        return list(vectors[0])

    async def embed_query(self, text: str) -> list[float]:
        embeddings = self._require()
        try:
            return list(await embeddings.aembed_query(text))
        except Exception as exc:
            raise MemoryUnavailableError(f"Embedding request failed: {exc}") from exc

    def _require(self) -> Embeddings:
        if self._embeddings is None:
            raise MemoryUnavailableError("No embedding provider configured")
        return self._embeddings
