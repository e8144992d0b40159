"""Plain text and markdown extractor."""

from __future__ import annotations

import asyncio
from pathlib import Path

from knowledge_rag.core.exceptions import ExtractionFailure
from knowledge_rag.core.logging import get_logger
from knowledge_rag.core.models import ContentUnit, ExtractionResult

logger = get_logger(__name__)


class TextExtractor:
    """Passes the whole file through as a single unit."""

    name = "TXT"
    supported_extensions = ("txt", "md", "markdown")

    async def extract(self, path: Path) -> ExtractionResult:
        try:
            raw = await asyncio.to_thread(path.read_text, encoding="utf-8")
        except (OSError, UnicodeDecodeError) as exc:
            raise ExtractionFailure(f"Cannot read {path.name}: {exc}") from exc

        text = raw.strip()
        if not text:
            logger.info("[%s] %s is empty", self.name, path.name)
            return ExtractionResult(units=[], file_type="txt")

        logger.info("[%s] Extracted %d characters from %s", self.name, len(text), path.name)
        return ExtractionResult(units=[ContentUnit(text=text)], file_type="txt")
