import pytest
from pydantic import ValidationError

from knowledge_rag.config import Settings, get_settings


def test_defaults() -> None:
    settings = Settings(_env_file=None)

    assert settings.qdrant_collection_name == "documents"
    assert settings.embedding_dimension == 384
    assert (settings.chunk_size, settings.chunk_overlap) == (800, 200)
    assert settings.retrieval_overfetch_factor == 4
    assert settings.rerank_cache_size == 2000
    assert settings.rerank_cache_cleanup_interval == 300


def test_environment_overrides(monkeypatch: pytest.MonkeyPatch) -> None:
    monkeypatch.setenv("QDRANT_COLLECTION_NAME", "manuals")
    monkeypatch.setenv("CHUNK_SIZE", "1200")

    settings = Settings(_env_file=None)

    assert settings.qdrant_collection_name == "manuals"
    assert settings.chunk_size == 1200


def test_settings_are_frozen() -> None:
    settings = Settings(_env_file=None)

    with pytest.raises(ValidationError):
        settings.chunk_size = 10  # type: ignore[misc]


def test_get_settings_is_cached() -> None:
    get_settings.cache_clear()
    try:
        assert get_settings() is get_settings()
    finally:
        get_settings.cache_clear()
