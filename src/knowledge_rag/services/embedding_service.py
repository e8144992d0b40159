"""Dense embedding service with a lazily loaded, shared model handle."""

from __future__ import annotations

import asyncio
import math
import time
from collections.abc import Callable, Sequence

from llama_index.core.base.embeddings.base import BaseEmbedding

from knowledge_rag.config import Settings
from knowledge_rag.core.exceptions import ModelUnavailable
from knowledge_rag.core.logging import get_logger

logger = get_logger(__name__)

EmbeddingModelFactory = Callable[[], BaseEmbedding]


def huggingface_embedding_factory(model_name: str) -> EmbeddingModelFactory:
    """Factory for a local sentence-transformers model via LlamaIndex."""

    def _build() -> BaseEmbedding:
        from llama_index.embeddings.huggingface import HuggingFaceEmbedding  # type: ignore

        return HuggingFaceEmbedding(model_name=model_name, normalize=True)

    return _build


def l2_normalize(vector: Sequence[float]) -> list[float]:
    """Scale ``vector`` to unit length; zero vectors are returned unchanged."""
    norm = math.sqrt(sum(v * v for v in vector))
    if norm == 0.0:
        return [float(v) for v in vector]
    return [float(v) / norm for v in vector]


def is_zero_vector(vector: Sequence[float]) -> bool:
    return not any(vector)


class EmbeddingService:
    """Maps text to L2-normalized dense vectors.

    The model is loaded on first use (or by :meth:`preload`) and shared by all
    callers. If loading fails, every call returns zero vectors of the
    configured dimension; callers treat an all-zero vector as a signal that
    relevance is degraded.
    """

    def __init__(
        self,
        *,
        dimension: int,
        model_factory: EmbeddingModelFactory,
        model_name: str = "custom",
    ):
        self.dimension = dimension
        self.model_name = model_name
        self._model_factory = model_factory
        self._model: BaseEmbedding | None = None
        self._checked = False
        self._lock = asyncio.Lock()

    @classmethod
    def from_settings(cls, settings: Settings) -> EmbeddingService:
        return cls(
            dimension=settings.embedding_dimension,
            model_factory=huggingface_embedding_factory(settings.embedding_model_name),
            model_name=settings.embedding_model_name,
        )

    @property
    def is_available(self) -> bool:
        return self._model is not None

    async def preload(self) -> bool:
        """Load the model now instead of on the first request."""
        try:
            await self._get_model()
        except ModelUnavailable:
            return False
        return True

    async def _get_model(self) -> BaseEmbedding:
        if self._model is not None:
            return self._model
        if self._checked:
            raise ModelUnavailable(f"Embedding model '{self.model_name}' failed to load")

        async with self._lock:
            if self._model is None and not self._checked:
                start = time.perf_counter()
                logger.info("Loading embedding model '%s'...", self.model_name)
                try:
                    self._model = await asyncio.to_thread(self._model_factory)
                    logger.info(
                        "Embedding model '%s' loaded in %.0fms (dimension=%d)",
                        self.model_name,
                        (time.perf_counter() - start) * 1000,
                        self.dimension,
                    )
                except (ImportError, OSError, RuntimeError, ValueError) as exc:
                    logger.error(
                        "Failed to load embedding model '%s': %s", self.model_name, exc, exc_info=True
                    )
                finally:
                    self._checked = True

        if self._model is None:
            raise ModelUnavailable(f"Embedding model '{self.model_name}' failed to load")
        return self._model

    def _zero(self) -> list[float]:
        return [0.0] * self.dimension

    async def embed_query(self, text: str) -> list[float]:
        """Embed a search query."""
        try:
            model = await self._get_model()
        except ModelUnavailable:
            logger.warning("Embedding model unavailable, using zero vector for query")
            return self._zero()

        start = time.perf_counter()
        try:
            vector = await asyncio.to_thread(model.get_query_embedding, text)
        except (RuntimeError, ValueError) as exc:
            logger.error("Error generating query embedding: %s", exc, exc_info=True)
            return self._zero()

        logger.debug(
            "Query embedding (%d chars) generated in %.0fms",
            len(text),
            (time.perf_counter() - start) * 1000,
        )
        return l2_normalize(vector)

    async def embed_documents(self, texts: Sequence[str]) -> list[list[float]]:
        """Embed passages; output order matches ``texts`` one to one."""
        if not texts:
            return []

        try:
            model = await self._get_model()
        except ModelUnavailable:
            logger.warning(
                "Embedding model unavailable, using zero vectors for %d documents", len(texts)
            )
            return [self._zero() for _ in texts]

        start = time.perf_counter()
        try:
            vectors = await asyncio.to_thread(model.get_text_embedding_batch, list(texts))
        except (RuntimeError, ValueError) as exc:
            logger.error("Error generating document embeddings: %s", exc, exc_info=True)
            return [self._zero() for _ in texts]

        duration = (time.perf_counter() - start) * 1000
        logger.info(
            "Generated %d embeddings in %.0fms (%.1fms/doc)",
            len(vectors),
            duration,
            duration / len(texts),
        )
        return [l2_normalize(v) for v in vectors]
