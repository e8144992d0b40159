"""Domain models for extracted content, passages and vector-store candidates."""

from dataclasses import dataclass, field
from datetime import datetime
from typing import Any, Literal

SourceType = Literal["text", "image"]


@dataclass(frozen=True)
class ContentUnit:
    """Ordered unit of text produced by an extractor."""

    text: str
    source_type: SourceType = "text"
    page: int | None = None
    section: str | None = None
    image_index: int | None = None


@dataclass(frozen=True)
class ExtractionResult:
    """Extractor output: content units plus format metadata."""

    units: list[ContentUnit]
    file_type: str
    total_pages: int | None = None
    total_images: int | None = None
    error: str | None = None

    @property
    def is_empty(self) -> bool:
        return not self.units


@dataclass(frozen=True)
class Passage:
    """A chunk of normalized text with its character span."""

    text: str
    sequence_index: int
    char_start: int
    char_end: int

    def __post_init__(self) -> None:
        if self.char_end <= self.char_start:
            raise ValueError(
                f"Passage span must be non-empty, got [{self.char_start}, {self.char_end})"
            )


@dataclass(frozen=True)
class PassageToUpload:
    """Passage plus the source-unit metadata persisted alongside it."""

    content: str
    source_type: SourceType = "text"
    page: int | None = None
    section: str | None = None
    image_index: int | None = None


@dataclass(frozen=True)
class DocumentRecord:
    """All passages stored under one document identity."""

    document_id: str
    file_type: str
    passages: list[PassageToUpload]
    uploaded_at: datetime


@dataclass(frozen=True)
class ExistenceCheck:
    """Result of a document existence lookup."""

    exists: bool
    chunk_count: int


@dataclass(frozen=True)
class ReplaceResult:
    """Counts reported by a replace-by-identity write."""

    deleted_count: int
    uploaded_count: int


@dataclass(frozen=True)
class SearchCandidate:
    """A stage-one vector search hit."""

    id: str
    score: float
    content: str
    metadata: dict[str, Any] = field(default_factory=dict)


@dataclass(frozen=True)
class RerankResult:
    """Cross-encoder score for one input document."""

    document: str
    score: float
    original_index: int
