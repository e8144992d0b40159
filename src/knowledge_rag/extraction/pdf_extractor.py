"""PDF extractor built on pypdf."""

from __future__ import annotations

import asyncio
from pathlib import Path

from pypdf import PdfReader
from pypdf.errors import PdfReadError

from knowledge_rag.core.exceptions import ExtractionFailure
from knowledge_rag.core.logging import get_logger
from knowledge_rag.core.models import ContentUnit, ExtractionResult
from knowledge_rag.text_processing.normalize_text import clean_extracted_text

logger = get_logger(__name__)


class PdfExtractor:
    """One content unit per page that carries any text."""

    name = "PDF"
    supported_extensions = ("pdf",)

    async def extract(self, path: Path) -> ExtractionResult:
        units, total_pages = await asyncio.to_thread(self._extract_sync, path)
        total_chars = sum(len(u.text) for u in units)
        logger.info(
            "[%s] Extracted text from %d/%d pages (%d chars) of %s",
            self.name,
            len(units),
            total_pages,
            total_chars,
            path.name,
        )
        return ExtractionResult(units=units, file_type="pdf", total_pages=total_pages)

    def _extract_sync(self, path: Path) -> tuple[list[ContentUnit], int]:
        try:
            reader = PdfReader(path)
            pages = list(reader.pages)
        except (PdfReadError, OSError, ValueError) as exc:
            raise ExtractionFailure(f"Cannot open PDF {path.name}: {exc}") from exc

        units: list[ContentUnit] = []
        for page_number, page in enumerate(pages, start=1):
            try:
                page_text = page_text_from_runs(page)
            except (PdfReadError, KeyError, ValueError) as exc:
                logger.warning(
                    "[%s] Skipping unreadable page %d of %s: %s",
                    self.name,
                    page_number,
                    path.name,
                    exc,
                )
                continue
            if page_text:
                units.append(ContentUnit(text=page_text, page=page_number))
        return units, len(pages)


def page_text_from_runs(page) -> str:
    """Join the page's positioned text runs with single spaces."""
    runs: list[str] = []

    def _visit(text, cm, tm, font_dict, font_size):  # noqa: ARG001
        if text and text.strip():
            runs.append(text.strip())

    page.extract_text(visitor_text=_visit)
    return clean_extracted_text(" ".join(runs))
