import pytest

from knowledge_rag.config import Settings
from knowledge_rag.container import build_container

pytestmark = pytest.mark.asyncio


async def test_container_shares_components(test_settings: Settings) -> None:
    container = build_container(test_settings)
    try:
        assert container.vector_repository is container.vector_repository
        assert container.search_service.embedding_service is container.embedding_service
        assert container.ingestion_service.vector_repository is container.vector_repository
        assert container.search_service.rerank_service is container.rerank_service
    finally:
        await container.aclose()


async def test_startup_creates_collection(test_settings: Settings) -> None:
    container = build_container(test_settings)
    try:
        await container.startup(preload_models=False)

        assert await container.qdrant_service.collection_exists()
    finally:
        await container.aclose()


async def test_aclose_without_store_access_is_noop(test_settings: Settings) -> None:
    container = build_container(test_settings)

    await container.aclose()

    assert "qdrant_service" not in container.__dict__
