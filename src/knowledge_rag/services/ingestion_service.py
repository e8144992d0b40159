"""High-level ingestion service that wires dependencies into the ingestion pipeline."""

from __future__ import annotations

from pathlib import Path

from knowledge_rag.config import Settings
from knowledge_rag.core.logging import get_logger
from knowledge_rag.core.models import ExistenceCheck
from knowledge_rag.extraction.ocr import OcrEngine
from knowledge_rag.extraction.registry import ExtractorRegistry, build_default_registry
from knowledge_rag.repositories.vector_repository import VectorRepository
from knowledge_rag.schemas.ingestion import FileIngestionResult
from knowledge_rag.services.pipeline import IngestionPipeline
from knowledge_rag.text_processing.chunker import ChunkConfig

logger = get_logger(__name__)


class IngestionService:
    """Facade over the ingestion pipeline that owns dependency construction."""

    def __init__(
        self,
        settings: Settings,
        vector_repository: VectorRepository,
        ocr_engine: OcrEngine | None = None,
        registry: ExtractorRegistry | None = None,
    ):
        self.settings = settings
        self.vector_repository = vector_repository
        self.registry = registry or build_default_registry(settings, ocr_engine)

        self.chunk_config = ChunkConfig(
            target_size=settings.chunk_size,
            overlap_size=settings.chunk_overlap,
            preserve_boundaries=settings.chunk_preserve_boundaries,
        )
        self.pipeline = IngestionPipeline(
            registry=self.registry,
            vector_repository=vector_repository,
            chunk_config=self.chunk_config,
        )

        logger.info(
            "IngestionService initialized (extensions: %s)",
            ", ".join(self.registry.supported_extensions),
        )

    def supports(self, path: str | Path) -> bool:
        return self.registry.supports(path)

    async def ingest_file(self, path: str | Path) -> FileIngestionResult:
        """Ingest a file, replacing any passages stored under its name."""
        return await self.pipeline.ingest_file(path)

    async def document_exists(self, document_id: str) -> ExistenceCheck:
        return await self.vector_repository.exists(document_id)

    async def delete_document(self, document_id: str) -> int:
        """Delete every passage stored for ``document_id``."""
        return await self.vector_repository.delete_by_document_id(document_id)
