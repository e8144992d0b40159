# conftest.py
import hashlib
import re

import pytest
import pytest_asyncio
from llama_index.core.base.embeddings.base import BaseEmbedding
from qdrant_client import AsyncQdrantClient

from knowledge_rag.config import Settings
from knowledge_rag.repositories.vector_repository import VectorRepository
from knowledge_rag.services.embedding_service import EmbeddingService
from knowledge_rag.services.qdrant_service import QdrantService

EMBED_DIM = 256
_WORD = re.compile(r"\w+")


class HashingEmbedding(BaseEmbedding):
    """Deterministic bag-of-words embedding: texts sharing words score higher."""

    dim: int = EMBED_DIM

    def _embed(self, text: str) -> list[float]:
        vector = [0.0] * self.dim
        for word in _WORD.findall(text.lower()):
            digest = hashlib.md5(word.encode("utf-8")).digest()
            vector[digest[0] % self.dim] += 1.0
        return vector

    def _get_text_embedding(self, text: str) -> list[float]:
        return self._embed(text)

    async def _aget_text_embedding(self, text: str) -> list[float]:
        return self._embed(text)

    def _get_query_embedding(self, query: str) -> list[float]:
        return self._embed(query)

    async def _aget_query_embedding(self, query: str) -> list[float]:
        return self._embed(query)


@pytest.fixture
def test_settings() -> Settings:
    return Settings(
        qdrant_collection_name="test-documents",
        qdrant_url="http://unused-in-local-mode",
        qdrant_local_path=":memory:",
        embedding_dimension=EMBED_DIM,
        retrieval_score_threshold=0.0,
    )


@pytest.fixture
def embedding_service() -> EmbeddingService:
    return EmbeddingService(
        dimension=EMBED_DIM,
        model_factory=HashingEmbedding,
        model_name="hashing-test",
    )


@pytest_asyncio.fixture
async def aclient_local():
    """In-memory embedded Qdrant for tests."""
    client = AsyncQdrantClient(location=":memory:")
    try:
        yield client
    finally:
        await client.close()


@pytest_asyncio.fixture
async def qdrant_service(aclient_local: AsyncQdrantClient, test_settings: Settings):
    svc = QdrantService(settings=test_settings, aclient=aclient_local)
    await svc.ensure_schema()
    yield svc


@pytest.fixture
def repo(qdrant_service: QdrantService, embedding_service: EmbeddingService) -> VectorRepository:
    return VectorRepository(qdrant_service, embedding_service, batch_size=2)
