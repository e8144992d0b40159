"""DOCX extractor: paragraph text plus OCR over embedded images."""

from __future__ import annotations

import asyncio
import re
import zipfile
from dataclasses import dataclass
from pathlib import Path

import docx
from docx.opc.exceptions import PackageNotFoundError
from docx.oxml.ns import qn
from docx.table import Table

from knowledge_rag.core.exceptions import ExtractionFailure, ModelUnavailable
from knowledge_rag.core.logging import get_logger
from knowledge_rag.core.models import ContentUnit, ExtractionResult
from knowledge_rag.extraction.ocr import OcrEngine, is_valid_ocr_text, recognize_images

logger = get_logger(__name__)

_BLANK_LINES = re.compile(r"\n{2,}")


@dataclass(frozen=True, slots=True)
class _DocxContent:
    units: list[ContentUnit]
    images: list[bytes]


class DocxExtractor:
    """Text units per paragraph, then one unit per image that passes OCR checks."""

    name = "DOCX"
    supported_extensions = ("docx",)

    def __init__(
        self,
        ocr_engine: OcrEngine | None,
        *,
        max_parallel: int = 3,
        min_text_length: int = 10,
        min_alnum_ratio: float = 0.3,
    ):
        self.ocr_engine = ocr_engine
        self.max_parallel = max_parallel
        self.min_text_length = min_text_length
        self.min_alnum_ratio = min_alnum_ratio

    async def extract(self, path: Path) -> ExtractionResult:
        content = await asyncio.to_thread(self._read_sync, path)
        logger.info(
            "[%s] %s: %d text paragraphs, %d embedded images",
            self.name,
            path.name,
            len(content.units),
            len(content.images),
        )

        image_units = await self._ocr_units(content.images)
        logger.info(
            "[%s] Extraction complete: %d text units, %d image units",
            self.name,
            len(content.units),
            len(image_units),
        )
        return ExtractionResult(
            units=content.units + image_units,
            file_type="docx",
            total_images=len(content.images),
        )

    def _read_sync(self, path: Path) -> _DocxContent:
        try:
            document = docx.Document(str(path))
        except (PackageNotFoundError, zipfile.BadZipFile, KeyError, ValueError, OSError) as exc:
            raise ExtractionFailure(f"Cannot open DOCX {path.name}: {exc}") from exc

        units: list[ContentUnit] = []
        section: str | None = None
        for block in document.iter_inner_content():
            if isinstance(block, Table):
                text = _table_text(block)
            else:
                text = block.text
                style_name = block.style.name if block.style is not None else ""
                if text.strip() and style_name.startswith(("Heading", "Title")):
                    section = text.strip()

            for paragraph in _BLANK_LINES.split(text):
                paragraph = paragraph.strip()
                if paragraph:
                    units.append(ContentUnit(text=paragraph, section=section))

        return _DocxContent(units=units, images=_embedded_images(document))

    async def _ocr_units(self, images: list[bytes]) -> list[ContentUnit]:
        if not images:
            return []
        if self.ocr_engine is None:
            logger.warning("[%s] No OCR engine configured; skipping %d images", self.name, len(images))
            return []

        try:
            results = await recognize_images(self.ocr_engine, images, max_parallel=self.max_parallel)
        except ModelUnavailable as exc:
            logger.warning("[%s] OCR unavailable, skipping %d images: %s", self.name, len(images), exc)
            return []

        units: list[ContentUnit] = []
        for index, result in enumerate(results):
            if is_valid_ocr_text(result.text, self.min_text_length, self.min_alnum_ratio):
                units.append(ContentUnit(text=result.text, source_type="image", image_index=index))
            else:
                logger.info(
                    "[%s] Skipped low-quality OCR for image_%d (%d chars)",
                    self.name,
                    index,
                    len(result.text),
                )
        return units


def _table_text(table: Table) -> str:
    rows = []
    for row in table.rows:
        cells = [cell.text.strip() for cell in row.cells]
        if any(cells):
            rows.append(" | ".join(cells))
    return "\n".join(rows)


def _embedded_images(document) -> list[bytes]:
    """Image blobs in document order, each relationship once."""
    related = document.part.related_parts
    seen: set[str] = set()
    images: list[bytes] = []
    for blip in document.element.body.iter(qn("a:blip")):
        rel_id = blip.get(qn("r:embed"))
        if not rel_id or rel_id in seen:
            continue
        seen.add(rel_id)
        part = related.get(rel_id)
        if part is not None and part.content_type.startswith("image/"):
            images.append(part.blob)
    return images
