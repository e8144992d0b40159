"""Extractor capability shared by all file-format converters."""

from __future__ import annotations

from pathlib import Path
from typing import Protocol, runtime_checkable

from knowledge_rag.core.models import ExtractionResult


@runtime_checkable
class Extractor(Protocol):
    """Turns one file into ordered content units.

    Implementations raise ``ExtractionFailure`` for unreadable input; the
    registry converts that into an empty result.
    """

    name: str
    supported_extensions: tuple[str, ...]

    async def extract(self, path: Path) -> ExtractionResult: ...


def file_extension(path: str | Path) -> str:
    """Lower-cased extension without the leading dot."""
    return Path(path).suffix.lower().lstrip(".")
