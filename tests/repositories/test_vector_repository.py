"""Tests for the vector repository (replace-by-identity gateway)."""

from __future__ import annotations

from unittest.mock import AsyncMock

import pytest

from knowledge_rag.core.constants import (
    K_CHUNK_INDEX,
    K_DOCUMENT_ID,
    K_FILE_TYPE,
    K_FILENAME,
    K_IMAGE_INDEX,
    K_PAGE,
    K_SECTION,
    K_SOURCE_TYPE,
    K_TOTAL_CHUNKS,
    K_UPLOADED_AT,
)
from knowledge_rag.core.exceptions import PayloadIndexMissing, StoreUnavailable
from knowledge_rag.core.models import PassageToUpload
from knowledge_rag.repositories.vector_repository import VectorRepository
from knowledge_rag.services.embedding_service import EmbeddingService
from knowledge_rag.services.qdrant_service import QdrantService

pytestmark = pytest.mark.asyncio


def _passages(*texts: str, **kwargs) -> list[PassageToUpload]:
    return [PassageToUpload(content=text, **kwargs) for text in texts]


async def test_exists_reports_absent_document(repo: VectorRepository) -> None:
    check = await repo.exists("missing.txt")
    assert check.exists is False
    assert check.chunk_count == 0


async def test_upsert_writes_payload_shape(repo: VectorRepository) -> None:
    passages = [
        PassageToUpload(content="Intro to the guide", page=1, section="Intro"),
        PassageToUpload(content="Second page details", page=2),
        PassageToUpload(content="Diagram caption text", source_type="image", image_index=0),
    ]

    uploaded = await repo.upsert_passages("guide.pdf", "pdf", passages)
    stored = await repo.get_document_passages("guide.pdf")

    assert uploaded == 3
    assert [c.content for c in stored] == [p.content for p in passages]
    first = stored[0].metadata
    assert first[K_DOCUMENT_ID] == "guide.pdf"
    assert first[K_FILENAME] == "guide.pdf"
    assert first[K_FILE_TYPE] == "pdf"
    assert first[K_PAGE] == 1
    assert first[K_SECTION] == "Intro"
    assert first[K_SOURCE_TYPE] == "text"
    assert first[K_UPLOADED_AT]
    assert [c.metadata[K_CHUNK_INDEX] for c in stored] == [0, 1, 2]
    assert {c.metadata[K_TOTAL_CHUNKS] for c in stored} == {3}
    assert K_SECTION not in stored[1].metadata
    assert stored[2].metadata[K_IMAGE_INDEX] == 0
    assert stored[2].metadata[K_SOURCE_TYPE] == "image"


async def test_upsert_uses_sequential_acknowledged_batches(
    qdrant_service: QdrantService, embedding_service: EmbeddingService
) -> None:
    repo = VectorRepository(qdrant_service, embedding_service, batch_size=2)
    spy = AsyncMock(wraps=qdrant_service.upsert_points)
    qdrant_service.upsert_points = spy  # type: ignore[method-assign]

    await repo.upsert_passages("batched.txt", "txt", _passages("a", "b", "c", "d", "e"))

    assert [len(call.args[0]) for call in spy.await_args_list] == [2, 2, 1]
    assert all(call.kwargs["wait"] is True for call in spy.await_args_list)


async def test_replace_document_by_identity(repo: VectorRepository) -> None:
    first = await repo.replace_document("doc.txt", "txt", _passages("old one", "old two", "old three"))
    assert (first.deleted_count, first.uploaded_count) == (0, 3)

    second = await repo.replace_document("doc.txt", "txt", _passages("new one", "new two"))
    assert (second.deleted_count, second.uploaded_count) == (3, 2)

    stored = await repo.get_document_passages("doc.txt")
    assert [c.content for c in stored] == ["new one", "new two"]
    assert (await repo.exists("doc.txt")).chunk_count == 2


async def test_replace_leaves_other_documents_untouched(repo: VectorRepository) -> None:
    await repo.replace_document("a.txt", "txt", _passages("alpha"))
    await repo.replace_document("b.txt", "txt", _passages("beta one", "beta two"))

    await repo.replace_document("a.txt", "txt", _passages("alpha v2"))

    assert (await repo.exists("b.txt")).chunk_count == 2
    assert [c.content for c in await repo.get_document_passages("a.txt")] == ["alpha v2"]


async def test_delete_by_document_id(repo: VectorRepository) -> None:
    await repo.upsert_passages("gone.txt", "txt", _passages("x", "y"))

    assert await repo.delete_by_document_id("gone.txt") == 2
    assert await repo.delete_by_document_id("gone.txt") == 0
    assert (await repo.exists("gone.txt")).exists is False


async def test_missing_payload_index_degrades_exists(repo: VectorRepository) -> None:
    repo._qdrant.count = AsyncMock(side_effect=PayloadIndexMissing("Index required"))  # type: ignore[method-assign]

    check = await repo.exists("doc.txt")

    assert check.exists is False
    assert check.chunk_count == 0


async def test_failed_upload_after_delete_is_logged_and_raised(
    repo: VectorRepository, caplog: pytest.LogCaptureFixture
) -> None:
    await repo.replace_document("fragile.txt", "txt", _passages("v1 a", "v1 b"))
    repo._qdrant.upsert_points = AsyncMock(side_effect=StoreUnavailable("write refused"))  # type: ignore[method-assign]

    with pytest.raises(StoreUnavailable):
        await repo.replace_document("fragile.txt", "txt", _passages("v2"))

    assert "left it with zero passages" in caplog.text
    assert (await repo.exists("fragile.txt")).exists is False


async def test_search_returns_candidates_above_threshold(repo: VectorRepository) -> None:
    await repo.upsert_passages(
        "animals.txt", "txt", _passages("cats purr softly", "dogs bark loudly")
    )
    vector = await repo._embeddings.embed_query("cats purr softly")

    hits = await repo.search(vector, top_n=2, score_threshold=0.99)

    assert [h.content for h in hits] == ["cats purr softly"]
    assert hits[0].score == pytest.approx(1.0, abs=1e-5)
