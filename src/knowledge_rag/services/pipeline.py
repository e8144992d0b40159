"""Document ingestion pipeline: extract, chunk and replace by document identity."""

from __future__ import annotations

import time
from pathlib import Path

from knowledge_rag.core.logging import get_logger
from knowledge_rag.core.models import ContentUnit, Passage, PassageToUpload
from knowledge_rag.extraction.registry import ExtractorRegistry
from knowledge_rag.repositories.vector_repository import VectorRepository
from knowledge_rag.schemas.ingestion import FileIngestionResult
from knowledge_rag.text_processing.chunker import ChunkConfig, chunk_stats, chunk_text

logger = get_logger(__name__)


class IngestionPipeline:
    """Pipeline responsible for turning one file into stored passages."""

    def __init__(
        self,
        *,
        registry: ExtractorRegistry,
        vector_repository: VectorRepository,
        chunk_config: ChunkConfig | None = None,
    ) -> None:
        self._registry = registry
        self._vector_repository = vector_repository
        self._chunk_config = chunk_config or ChunkConfig()

    async def ingest_file(self, path: str | Path) -> FileIngestionResult:
        """Ingest ``path`` under its file name, replacing any previous version.

        Extraction failures and empty files are reported in the result.
        ``StoreUnavailable`` from the vector store propagates.
        """
        path = Path(path)
        document_id = path.name
        start = time.perf_counter()
        logger.info("Starting ingestion of %s", document_id)

        extraction = await self._registry.extract(path)
        if extraction.error is not None:
            return FileIngestionResult(
                filename=document_id,
                success=False,
                file_type=extraction.file_type,
                error=extraction.error,
            )
        if extraction.is_empty:
            logger.warning("No content extracted from %s; skipping", document_id)
            return FileIngestionResult(
                filename=document_id,
                success=False,
                file_type=extraction.file_type,
                error="No content extracted",
            )

        passages = self.build_passages(extraction.units)
        if not passages:
            logger.warning("No passages produced for %s; skipping", document_id)
            return FileIngestionResult(
                filename=document_id,
                success=False,
                file_type=extraction.file_type,
                error="No passages produced",
            )

        result = await self._vector_repository.replace_document(
            document_id,
            extraction.file_type,
            passages,
        )

        logger.info(
            "Ingested %s: %d passages (%d replaced) in %.0fms",
            document_id,
            result.uploaded_count,
            result.deleted_count,
            (time.perf_counter() - start) * 1000,
        )
        return FileIngestionResult(
            filename=document_id,
            success=True,
            file_type=extraction.file_type,
            chunks=result.uploaded_count,
            deleted=result.deleted_count,
        )

    def build_passages(self, units: list[ContentUnit]) -> list[PassageToUpload]:
        """Chunk each unit separately, keeping its source metadata.

        The returned order is the document order; the repository numbers the
        passages from it.
        """
        passages: list[PassageToUpload] = []
        all_chunks: list[Passage] = []
        for unit in units:
            chunks = chunk_text(unit.text, self._chunk_config)
            all_chunks.extend(chunks)
            passages.extend(
                PassageToUpload(
                    content=chunk.text,
                    source_type=unit.source_type,
                    page=unit.page,
                    section=unit.section,
                    image_index=unit.image_index,
                )
                for chunk in chunks
            )

        stats = chunk_stats(all_chunks)
        logger.info(
            "Chunked %d units into %d passages (avg %d, min %d, max %d chars)",
            len(units),
            stats.total_chunks,
            stats.avg_chunk_size,
            stats.min_chunk_size,
            stats.max_chunk_size,
        )
        return passages
