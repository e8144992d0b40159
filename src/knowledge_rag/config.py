"""Application configuration and settings."""

from functools import lru_cache
from typing import Literal

from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    """Application settings loaded from environment variables."""

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
        extra="ignore",
        frozen=True,
    )

    # Application
    app_name: str = "Knowledge RAG"
    app_version: str = "0.1.0"
    environment: Literal["development", "staging", "production"] = "development"

    # Logging
    log_level: str = "INFO"

    # Qdrant Configuration
    qdrant_url: str = "http://localhost:6333"
    qdrant_api_key: str | None = None
    qdrant_collection_name: str = "documents"
    qdrant_prefer_grpc: bool = False
    qdrant_local_path: str | None = None  # Embedded mode; ":memory:" for tests
    qdrant_timeout: int = 5  # Timeout in seconds

    # Embedding Configuration
    embedding_model_name: str = "sentence-transformers/all-MiniLM-L6-v2"
    embedding_dimension: int = 384

    # Reranker Configuration
    rerank_model_name: str = "cross-encoder/ms-marco-MiniLM-L-6-v2"
    rerank_batch_size: int = 32
    rerank_cache_size: int = 2000
    rerank_cache_cleanup_interval: int = 300  # Seconds between lazy evictions
    rerank_cache_key_prefix_chars: int = 100

    # Chunking Configuration
    chunk_size: int = 800  # Characters, roughly 200 tokens
    chunk_overlap: int = 200
    chunk_preserve_boundaries: bool = True

    # OCR Configuration
    ocr_language: str = "eng"
    ocr_max_parallel: int = 3
    ocr_min_text_length: int = 10
    ocr_min_alnum_ratio: float = 0.3

    # Vector store writes
    upsert_batch_size: int = 100

    # Retrieval Configuration
    retrieval_top_k: int = 5
    retrieval_score_threshold: float = 0.7
    retrieval_overfetch_factor: int = 4
    search_max_attempts: int = 3

    # Filesystem ingestion
    incoming_dir: str = "incoming"
    processed_dir: str = "processed"


@lru_cache
def get_settings() -> Settings:
    """Get cached settings instance.

    Returns:
        Settings: Application settings instance.
    """
    return Settings()
