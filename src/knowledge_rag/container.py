"""Composition root: the shared services of one process.

Model handles and the rerank cache are owned by the services built here and
shared by reference with every pipeline stage. Components are constructed
lazily and cached on first access; nothing touches the network at import time.
"""

from __future__ import annotations

from dataclasses import dataclass
from functools import cached_property

from knowledge_rag.config import Settings, get_settings
from knowledge_rag.core.logging import get_logger
from knowledge_rag.extraction.ocr import TesseractOcrEngine
from knowledge_rag.repositories.vector_repository import VectorRepository
from knowledge_rag.services.embedding_service import EmbeddingService
from knowledge_rag.services.ingestion_service import IngestionService
from knowledge_rag.services.qdrant_service import QdrantService
from knowledge_rag.services.rerank_service import RerankingService
from knowledge_rag.services.search_service import SearchService

logger = get_logger(__name__)


@dataclass(frozen=True)
class ServiceContainer:
    """Holds the configured, cached runtime components."""

    settings: Settings

    @cached_property
    def qdrant_service(self) -> QdrantService:
        return QdrantService(self.settings)

    @cached_property
    def embedding_service(self) -> EmbeddingService:
        return EmbeddingService.from_settings(self.settings)

    @cached_property
    def rerank_service(self) -> RerankingService:
        return RerankingService.from_settings(self.settings)

    @cached_property
    def ocr_engine(self) -> TesseractOcrEngine:
        return TesseractOcrEngine(language=self.settings.ocr_language)

    @cached_property
    def vector_repository(self) -> VectorRepository:
        return VectorRepository(
            self.qdrant_service,
            self.embedding_service,
            batch_size=self.settings.upsert_batch_size,
        )

    @cached_property
    def ingestion_service(self) -> IngestionService:
        return IngestionService(
            self.settings,
            self.vector_repository,
            ocr_engine=self.ocr_engine,
        )

    @cached_property
    def search_service(self) -> SearchService:
        return SearchService(
            self.settings,
            self.embedding_service,
            self.vector_repository,
            self.rerank_service,
        )

    async def startup(self, *, preload_models: bool = True) -> None:
        """Ensure the collection schema and optionally load models up front."""
        await self.qdrant_service.ensure_schema(self.settings.embedding_dimension)
        if preload_models:
            embed_ok = await self.embedding_service.preload()
            rerank_ok = await self.rerank_service.preload()
            logger.info(
                "Models preloaded (embedding=%s, reranker=%s)",
                "ok" if embed_ok else "degraded",
                "ok" if rerank_ok else "degraded",
            )

    async def aclose(self) -> None:
        if "qdrant_service" in self.__dict__:
            await self.qdrant_service.aclose()


def build_container(settings: Settings | None = None) -> ServiceContainer:
    """Build a container from ``settings`` (or the cached environment settings)."""
    return ServiceContainer(settings or get_settings())
