"""Tests for the embedding service and its degraded mode."""

import math

import pytest
from llama_index.core.embeddings.mock_embed_model import MockEmbedding

from knowledge_rag.services.embedding_service import (
    EmbeddingService,
    is_zero_vector,
    l2_normalize,
)

pytestmark = pytest.mark.asyncio


def _failing_factory():
    raise OSError("model files not found")


async def test_vectors_are_l2_normalized() -> None:
    service = EmbeddingService(dimension=8, model_factory=lambda: MockEmbedding(embed_dim=8))

    query = await service.embed_query("what is qdrant?")
    docs = await service.embed_documents(["one", "two", "three"])

    assert len(query) == 8
    assert math.isclose(sum(v * v for v in query), 1.0, rel_tol=1e-6)
    assert len(docs) == 3
    assert all(math.isclose(sum(v * v for v in d), 1.0, rel_tol=1e-6) for d in docs)


async def test_model_is_loaded_once() -> None:
    calls = 0

    def factory():
        nonlocal calls
        calls += 1
        return MockEmbedding(embed_dim=4)

    service = EmbeddingService(dimension=4, model_factory=factory)
    assert await service.preload() is True
    await service.embed_query("a")
    await service.embed_documents(["b", "c"])

    assert calls == 1
    assert service.is_available


async def test_load_failure_degrades_to_zero_vectors() -> None:
    service = EmbeddingService(dimension=384, model_factory=_failing_factory)

    query = await service.embed_query("anything")
    docs = await service.embed_documents(["first", "second"])

    assert query == [0.0] * 384
    assert docs == [[0.0] * 384, [0.0] * 384]
    assert is_zero_vector(query)
    assert not service.is_available
    assert await service.preload() is False


async def test_embed_documents_empty_input() -> None:
    service = EmbeddingService(dimension=4, model_factory=_failing_factory)
    assert await service.embed_documents([]) == []


async def test_embed_documents_preserves_order(embedding_service: EmbeddingService) -> None:
    texts = ["apples and pears", "network timeout", "apples and pears"]

    vectors = await embedding_service.embed_documents(texts)

    assert vectors[0] == vectors[2]
    assert vectors[0] != vectors[1]


async def test_l2_normalize_leaves_zero_vector_alone() -> None:
    assert l2_normalize([0.0, 0.0]) == [0.0, 0.0]
    assert l2_normalize([3.0, 4.0]) == [0.6, 0.8]
