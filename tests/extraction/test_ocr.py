"""Tests for OCR validation and bounded fan-out."""

import asyncio

import pytest
from PIL import Image

from knowledge_rag.core.exceptions import ModelUnavailable
from knowledge_rag.extraction.ocr import OcrResult, is_valid_ocr_text, recognize_images

pytestmark = pytest.mark.asyncio


class RecordingOcr:
    """Returns the image bytes as text after a delay that reverses completion order."""

    def __init__(self) -> None:
        self.in_flight = 0
        self.max_in_flight = 0

    async def recognize(self, image_bytes: bytes) -> OcrResult:
        self.in_flight += 1
        self.max_in_flight = max(self.max_in_flight, self.in_flight)
        try:
            await asyncio.sleep(0.01 * (10 - int(image_bytes.decode().split("-")[1])))
            return OcrResult(text=image_bytes.decode(), confidence=90.0)
        finally:
            self.in_flight -= 1


class BrokenImageOcr:
    async def recognize(self, image_bytes: bytes) -> OcrResult:
        if image_bytes == b"bad":
            raise OSError("cannot identify image file")
        return OcrResult(text="Readable caption text", confidence=80.0)


class OversizedImageOcr:
    async def recognize(self, image_bytes: bytes) -> OcrResult:
        if image_bytes == b"huge":
            raise Image.DecompressionBombError("Image size (900000000 pixels) exceeds limit")
        return OcrResult(text="Readable caption text", confidence=80.0)


class MissingEngineOcr:
    async def recognize(self, image_bytes: bytes) -> OcrResult:
        raise ModelUnavailable("Tesseract OCR is not available")


@pytest.mark.parametrize(
    ("text", "expected"),
    [
        ("", False),
        ("short", False),
        ("Invoice total 42 EUR", True),
        ("~~~ ||| ### ::: ,,,", False),
    ],
)
async def test_is_valid_ocr_text(text: str, expected: bool) -> None:
    assert is_valid_ocr_text(text, min_length=10, min_alnum_ratio=0.3) is expected


async def test_alnum_ratio_must_exceed_threshold() -> None:
    # Exactly 30% alphanumeric is rejected; the ratio has to be strictly greater.
    assert is_valid_ocr_text("abc" + "-" * 7) is False
    assert is_valid_ocr_text("abcd" + "-" * 6) is True


async def test_results_preserve_input_order_and_bound_parallelism() -> None:
    engine = RecordingOcr()
    images = [f"image-{i}".encode() for i in range(7)]

    results = await recognize_images(engine, images, max_parallel=3)

    assert [r.text for r in results] == [f"image-{i}" for i in range(7)]
    assert engine.max_in_flight <= 3


async def test_unreadable_image_yields_empty_result() -> None:
    results = await recognize_images(BrokenImageOcr(), [b"ok", b"bad", b"ok"])

    assert [r.text for r in results] == [
        "Readable caption text",
        "",
        "Readable caption text",
    ]


async def test_decompression_bomb_is_skipped() -> None:
    results = await recognize_images(OversizedImageOcr(), [b"huge", b"ok"])

    assert [r.text for r in results] == ["", "Readable caption text"]


async def test_unavailable_engine_propagates() -> None:
    with pytest.raises(ModelUnavailable):
        await recognize_images(MissingEngineOcr(), [b"img"])


async def test_no_images_no_calls() -> None:
    assert await recognize_images(MissingEngineOcr(), []) == []
