"""OCR over embedded images using Tesseract."""

from __future__ import annotations

import asyncio
import io
import time
from collections.abc import Sequence
from dataclasses import dataclass
from typing import Protocol

import pytesseract
from PIL import Image, UnidentifiedImageError

from knowledge_rag.core.exceptions import ModelUnavailable
from knowledge_rag.core.logging import get_logger
from knowledge_rag.text_processing.normalize_text import clean_extracted_text

logger = get_logger(__name__)


@dataclass(frozen=True, slots=True)
class OcrResult:
    """Recognized text and mean word confidence (0-100)."""

    text: str
    confidence: float


class OcrEngine(Protocol):
    async def recognize(self, image_bytes: bytes) -> OcrResult: ...


class TesseractOcrEngine:
    """Tesseract-backed OCR; the binary is probed once, on first use."""

    def __init__(self, language: str = "eng"):
        self.language = language
        self._checked = False
        self._available = False
        self._lock = asyncio.Lock()

    async def _ensure_available(self) -> None:
        if self._checked:
            if not self._available:
                raise ModelUnavailable("Tesseract OCR is not available")
            return

        async with self._lock:
            if not self._checked:
                start = time.perf_counter()
                try:
                    version = await asyncio.to_thread(pytesseract.get_tesseract_version)
                    self._available = True
                    logger.info(
                        "Tesseract %s ready in %.0fms (lang=%s)",
                        version,
                        (time.perf_counter() - start) * 1000,
                        self.language,
                    )
                except (pytesseract.TesseractNotFoundError, OSError) as exc:
                    self._available = False
                    logger.error("Failed to initialize Tesseract OCR: %s", exc)
                finally:
                    self._checked = True

        if not self._available:
            raise ModelUnavailable("Tesseract OCR is not available")

    async def recognize(self, image_bytes: bytes) -> OcrResult:
        await self._ensure_available()
        return await asyncio.to_thread(self._recognize_sync, image_bytes)

    def _recognize_sync(self, image_bytes: bytes) -> OcrResult:
        with Image.open(io.BytesIO(image_bytes)) as image:
            data = pytesseract.image_to_data(
                image,
                lang=self.language,
                output_type=pytesseract.Output.DICT,
            )

        lines: dict[tuple[int, int, int], list[str]] = {}
        confidences: list[float] = []
        for idx, word in enumerate(data["text"]):
            word = word.strip()
            if not word:
                continue
            key = (data["block_num"][idx], data["par_num"][idx], data["line_num"][idx])
            lines.setdefault(key, []).append(word)
            conf = float(data["conf"][idx])
            if conf >= 0:
                confidences.append(conf)

        text = "\n".join(" ".join(words) for words in lines.values())
        confidence = sum(confidences) / len(confidences) if confidences else 0.0
        return OcrResult(text=text, confidence=confidence)


def is_valid_ocr_text(text: str, min_length: int = 10, min_alnum_ratio: float = 0.3) -> bool:
    """Reject OCR output that is too short or mostly symbols."""
    if not text or len(text) < min_length:
        return False
    alnum = sum(1 for ch in text if ch.isalnum())
    return alnum / len(text) > min_alnum_ratio


async def recognize_images(
    engine: OcrEngine,
    images: Sequence[bytes],
    *,
    max_parallel: int = 3,
) -> list[OcrResult]:
    """OCR ``images`` with at most ``max_parallel`` in flight.

    Results are aligned with ``images``. A single unreadable image yields an
    empty result; ``ModelUnavailable`` propagates.
    """
    if not images:
        return []

    sem = asyncio.Semaphore(max(1, max_parallel))
    start = time.perf_counter()

    async def _one(index: int, image: bytes) -> OcrResult:
        async with sem:
            try:
                result = await engine.recognize(image)
            except ModelUnavailable:
                raise
            except (
                UnidentifiedImageError,
                Image.DecompressionBombError,
                pytesseract.TesseractError,
                OSError,
                ValueError,
            ) as exc:
                logger.warning("OCR failed for image_%d: %s", index, exc)
                return OcrResult(text="", confidence=0.0)

        text = clean_extracted_text(result.text)
        logger.debug(
            "OCR image_%d: %d chars, %.1f%% confidence",
            index,
            len(text),
            result.confidence,
        )
        return OcrResult(text=text, confidence=result.confidence)

    results = await asyncio.gather(*(_one(i, image) for i, image in enumerate(images)))

    elapsed = (time.perf_counter() - start) * 1000
    logger.info(
        "OCR processed %d images in %.0fms (max %d parallel)",
        len(images),
        elapsed,
        max_parallel,
    )
    return list(results)
