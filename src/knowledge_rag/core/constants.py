"""Central constants shared across the ingestion/retrieval stack."""

from typing import Final

# Named dense vector configured in the documents collection.
DENSE_VEC: Final[str] = "dense"

# Top-level payload keys.
K_CONTENT: Final[str] = "content"
K_METADATA: Final[str] = "metadata"

# Metadata keys (nested under ``metadata``).
K_DOCUMENT_ID: Final[str] = "document_id"
K_FILENAME: Final[str] = "filename"
K_FILE_TYPE: Final[str] = "file_type"
K_PAGE: Final[str] = "page"
K_SECTION: Final[str] = "section"
K_CHUNK_INDEX: Final[str] = "chunk_index"
K_TOTAL_CHUNKS: Final[str] = "total_chunks"
K_SOURCE_TYPE: Final[str] = "source_type"
K_IMAGE_INDEX: Final[str] = "image_index"
K_UPLOADED_AT: Final[str] = "uploaded_at"

# Indexed payload path used for existence checks and bulk deletes.
DOCUMENT_ID_FIELD: Final[str] = f"{K_METADATA}.{K_DOCUMENT_ID}"

# Neutral relevance score used when the cross-encoder is unavailable.
NEUTRAL_RERANK_SCORE: Final[float] = 0.5
