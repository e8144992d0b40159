"""Helpers to translate between domain models and Qdrant transport objects."""

from __future__ import annotations

from datetime import datetime
from typing import Any, cast

from qdrant_client import models as q

from knowledge_rag.core.constants import (
    DENSE_VEC,
    K_CHUNK_INDEX,
    K_CONTENT,
    K_DOCUMENT_ID,
    K_FILE_TYPE,
    K_FILENAME,
    K_IMAGE_INDEX,
    K_METADATA,
    K_PAGE,
    K_SECTION,
    K_SOURCE_TYPE,
    K_TOTAL_CHUNKS,
    K_UPLOADED_AT,
)
from knowledge_rag.core.models import PassageToUpload, SearchCandidate


def passage_to_point(
    passage: PassageToUpload,
    *,
    point_id: str,
    vector: list[float],
    document_id: str,
    filename: str,
    file_type: str,
    chunk_index: int,
    total_chunks: int,
    uploaded_at: datetime,
) -> q.PointStruct:
    """Convert a passage and its embedding into a Qdrant point."""
    metadata: dict[str, Any] = {
        K_DOCUMENT_ID: document_id,
        K_FILENAME: filename,
        K_FILE_TYPE: file_type,
        K_CHUNK_INDEX: chunk_index,
        K_TOTAL_CHUNKS: total_chunks,
        K_SOURCE_TYPE: passage.source_type,
        K_UPLOADED_AT: uploaded_at.isoformat(),
    }
    if passage.page is not None:
        metadata[K_PAGE] = passage.page
    if passage.section is not None:
        metadata[K_SECTION] = passage.section
    if passage.image_index is not None:
        metadata[K_IMAGE_INDEX] = passage.image_index

    return q.PointStruct(
        id=point_id,
        vector={DENSE_VEC: vector},
        payload={K_CONTENT: passage.content, K_METADATA: metadata},
    )


def scored_point_to_candidate(point: q.ScoredPoint) -> SearchCandidate:
    """Convert a Qdrant search hit into a retrieval candidate."""
    payload = point.payload or {}
    metadata = payload.get(K_METADATA)
    return SearchCandidate(
        id=str(point.id),
        score=float(point.score or 0.0),
        content=cast(str | None, payload.get(K_CONTENT)) or "",
        metadata=dict(metadata) if isinstance(metadata, dict) else {},
    )


def record_to_candidate(record: q.Record) -> SearchCandidate:
    """Convert a scrolled record into a candidate without a score."""
    payload = record.payload or {}
    metadata = payload.get(K_METADATA)
    return SearchCandidate(
        id=str(record.id),
        score=0.0,
        content=cast(str | None, payload.get(K_CONTENT)) or "",
        metadata=dict(metadata) if isinstance(metadata, dict) else {},
    )
