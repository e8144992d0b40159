"""Vector store gateway: document-scoped writes, deletes and search."""

from __future__ import annotations

import time
import uuid
from collections.abc import Sequence
from datetime import UTC, datetime

from qdrant_client import models as q

from knowledge_rag.adapters import qdrant_mapper
from knowledge_rag.core.constants import K_CHUNK_INDEX
from knowledge_rag.core.exceptions import PayloadIndexMissing, StoreUnavailable
from knowledge_rag.core.logging import get_logger
from knowledge_rag.core.models import (
    DocumentRecord,
    ExistenceCheck,
    PassageToUpload,
    ReplaceResult,
    SearchCandidate,
)
from knowledge_rag.services.embedding_service import EmbeddingService, is_zero_vector
from knowledge_rag.services.qdrant_service import QdrantService, document_filter

logger = get_logger(__name__)


class VectorRepository:
    """Persists passages keyed by document identity (the filename)."""

    def __init__(
        self,
        qdrant_service: QdrantService,
        embedding_service: EmbeddingService,
        *,
        batch_size: int = 100,
    ):
        self._qdrant = qdrant_service
        self._embeddings = embedding_service
        self.batch_size = batch_size

    async def exists(self, document_id: str) -> ExistenceCheck:
        """Report whether any passages are stored for ``document_id``.

        A missing ``document_id`` payload index only degrades duplicate
        detection: the document is reported as absent.
        """
        try:
            count = await self._qdrant.count(document_filter(document_id))
        except PayloadIndexMissing:
            logger.warning(
                "Payload index on document_id is missing; duplicate detection is degraded "
                "(run the setup_qdrant script to create it)"
            )
            return ExistenceCheck(exists=False, chunk_count=0)
        return ExistenceCheck(exists=count > 0, chunk_count=count)

    async def delete_by_document_id(self, document_id: str) -> int:
        """Delete every passage of ``document_id``; return how many were removed."""
        filter_ = document_filter(document_id)
        count = await self._qdrant.count(filter_)
        if count == 0:
            return 0
        await self._qdrant.delete(filter_=filter_)
        logger.info("Deleted %d points for document_id=%s", count, document_id)
        return count

    async def upsert_passages(
        self,
        document_id: str,
        file_type: str,
        passages: Sequence[PassageToUpload],
        batch_size: int | None = None,
    ) -> int:
        """Embed and write passages in sequential, acknowledged batches."""
        if not passages:
            return 0

        record = DocumentRecord(
            document_id=document_id,
            file_type=file_type,
            passages=list(passages),
            uploaded_at=datetime.now(UTC),
        )
        size = batch_size or self.batch_size

        vectors = await self._embeddings.embed_documents([p.content for p in record.passages])
        if any(is_zero_vector(v) for v in vectors):
            logger.warning(
                "document_id=%s stored with zero vectors; similarity for it is degraded",
                document_id,
            )

        total = len(record.passages)
        points = [
            qdrant_mapper.passage_to_point(
                passage,
                point_id=str(uuid.uuid4()),
                vector=vector,
                document_id=record.document_id,
                filename=record.document_id,
                file_type=record.file_type,
                chunk_index=index,
                total_chunks=total,
                uploaded_at=record.uploaded_at,
            )
            for index, (passage, vector) in enumerate(zip(record.passages, vectors, strict=True))
        ]

        start = time.perf_counter()
        num_batches = (total + size - 1) // size
        for batch_num, offset in enumerate(range(0, total, size), start=1):
            batch = points[offset : offset + size]
            await self._qdrant.upsert_points(batch, wait=True)
            logger.info(
                "Uploaded batch %d/%d (%d points) for document_id=%s",
                batch_num,
                num_batches,
                len(batch),
                document_id,
            )

        logger.info(
            "Uploaded %d points for document_id=%s in %.0fms",
            total,
            document_id,
            (time.perf_counter() - start) * 1000,
        )
        return total

    async def replace_document(
        self,
        document_id: str,
        file_type: str,
        passages: Sequence[PassageToUpload],
    ) -> ReplaceResult:
        """Replace all stored passages of ``document_id`` with ``passages``.

        Runs exists -> delete -> upsert. A failure between the delete and the
        upsert leaves the document with zero passages; this is logged and the
        store error is re-raised.
        """
        check = await self.exists(document_id)

        deleted = 0
        if check.exists:
            logger.info(
                "Document %s already exists with %d chunks; deleting old chunks",
                document_id,
                check.chunk_count,
            )
            deleted = await self.delete_by_document_id(document_id)

        try:
            uploaded = await self.upsert_passages(document_id, file_type, passages)
        except StoreUnavailable:
            if deleted:
                logger.error(
                    "Replace of document %s left it with zero passages: %d old chunks were "
                    "deleted but the new upload failed",
                    document_id,
                    deleted,
                    exc_info=True,
                )
            raise

        if deleted:
            logger.info(
                "Updated document %s (removed %d chunks, added %d chunks)",
                document_id,
                deleted,
                uploaded,
            )
        else:
            logger.info("Uploaded new document %s (%d chunks)", document_id, uploaded)
        return ReplaceResult(deleted_count=deleted, uploaded_count=uploaded)

    async def search(
        self,
        vector: Sequence[float],
        top_n: int,
        score_threshold: float | None = None,
    ) -> list[SearchCandidate]:
        """Nearest passages to ``vector`` scoring at least ``score_threshold``."""
        points = await self._qdrant.query_dense(
            vector,
            limit=top_n,
            score_threshold=score_threshold,
        )
        return [qdrant_mapper.scored_point_to_candidate(point) for point in points]

    async def get_document_passages(self, document_id: str) -> list[SearchCandidate]:
        """All stored passages of a document ordered by chunk index."""
        records: list[q.Record] = []
        offset = None
        while True:
            batch, offset = await self._qdrant.scroll(
                limit=256,
                offset=offset,
                filter_=document_filter(document_id),
            )
            records.extend(batch)
            if offset is None:
                break

        candidates = [qdrant_mapper.record_to_candidate(record) for record in records]
        candidates.sort(key=lambda c: c.metadata.get(K_CHUNK_INDEX, -1))
        return candidates
