"""Extension-based dispatch over the available extractors."""

from __future__ import annotations

import time
from collections.abc import Sequence
from pathlib import Path

from knowledge_rag.config import Settings
from knowledge_rag.core.exceptions import ExtractionFailure, UnsupportedFileType
from knowledge_rag.core.logging import get_logger
from knowledge_rag.core.models import ExtractionResult
from knowledge_rag.extraction.base import Extractor, file_extension
from knowledge_rag.extraction.docx_extractor import DocxExtractor
from knowledge_rag.extraction.ocr import OcrEngine
from knowledge_rag.extraction.pdf_extractor import PdfExtractor
from knowledge_rag.extraction.text_extractor import TextExtractor

logger = get_logger(__name__)


class ExtractorRegistry:
    """Maps file extensions to extractors and isolates extraction failures."""

    def __init__(self, extractors: Sequence[Extractor]):
        self._by_extension: dict[str, Extractor] = {}
        for extractor in extractors:
            for ext in extractor.supported_extensions:
                self._by_extension[ext.lower()] = extractor

    @property
    def supported_extensions(self) -> list[str]:
        return sorted(self._by_extension)

    def supports(self, path: str | Path) -> bool:
        return file_extension(path) in self._by_extension

    def for_extension(self, extension: str) -> Extractor:
        ext = extension.lower().lstrip(".")
        extractor = self._by_extension.get(ext)
        if extractor is None:
            raise UnsupportedFileType(ext)
        return extractor

    async def extract(self, path: str | Path, extension: str | None = None) -> ExtractionResult:
        """Extract ``path``; failures produce an empty result carrying ``error``."""
        path = Path(path)
        ext = (extension or file_extension(path)).lower().lstrip(".")
        start = time.perf_counter()

        try:
            extractor = self.for_extension(ext)
            logger.info("Using %s extractor for %s", extractor.name, path.name)
            result = await extractor.extract(path)
        except ExtractionFailure as exc:
            logger.error("Extraction failed for %s: %s", path.name, exc.message)
            return ExtractionResult(units=[], file_type=ext, error=exc.message)

        logger.info(
            "Extracted %d content units from %s in %.0fms",
            len(result.units),
            path.name,
            (time.perf_counter() - start) * 1000,
        )
        return result


def build_default_registry(settings: Settings, ocr_engine: OcrEngine | None) -> ExtractorRegistry:
    """Registry with the text, PDF and DOCX extractors."""
    return ExtractorRegistry(
        [
            PdfExtractor(),
            DocxExtractor(
                ocr_engine,
                max_parallel=settings.ocr_max_parallel,
                min_text_length=settings.ocr_min_text_length,
                min_alnum_ratio=settings.ocr_min_alnum_ratio,
            ),
            TextExtractor(),
        ]
    )
