"""Text normalization utilities for extraction and chunking."""

import re
import unicodedata

from knowledge_rag.core.logging import get_logger

logger = get_logger(__name__)

_EXCESS_NEWLINES = re.compile(r"\n{3,}")
_ZW_PATTERN = re.compile(r"[\u200B-\u200D\uFEFF]")  # Zero-width characters
_MULTISPACE_PATTERN = re.compile(r"[ ]{2,}")
_EOL_HYPHEN_PATTERN = re.compile(r"(\w)-\n(\w)")
_PAGE_MARKER_PATTERN = re.compile(r"^\s*(Page\s+\d+(\s+of\s+\d+)?|\d+\s*/\s*\d+)\s*$", re.I)


def normalize_line_endings(value: str) -> str:
    """Convert CRLF and lone CR line endings to LF."""
    return value.replace("\r\n", "\n").replace("\r", "\n")


def normalize_for_chunking(value: str) -> str:
    """Prepare text for the chunker.

    Line endings become LF, runs of three or more newlines collapse to a single
    blank line, and surrounding whitespace is trimmed. Character offsets of
    passages refer to the string returned here.
    """
    if not value:
        return ""
    text = normalize_line_endings(value)
    text = _EXCESS_NEWLINES.sub("\n\n", text)
    return text.strip()


def _drop_control_chars(value: str) -> str:
    """Turn tabs into spaces and drop other control characters except newline."""
    return "".join(
        " " if ch == "\t" else ch for ch in value if ch == "\n" or ch == "\t" or ch >= " "
    )


def clean_extracted_text(value: str) -> str:
    """Clean machine-extracted text (PDF pages, OCR output).

    Steps:
        1. Unicode normalization (NFKC) and LF line endings.
        2. Remove zero-width and control characters (except newline).
        3. Drop bare page markers such as "Page 3" or "3 / 12".
        4. Re-join words hyphenated across line ends.
        5. Collapse repeated spaces and excess blank lines, then trim.

    Args:
        value: Raw extracted text.

    Returns:
        Cleaned text with paragraph structure preserved.
    """
    if not value:
        return ""

    text = unicodedata.normalize("NFKC", value)
    text = normalize_line_endings(text)
    text = _ZW_PATTERN.sub("", _drop_control_chars(text))
    text = _MULTISPACE_PATTERN.sub(" ", text)

    lines = [
        line.rstrip() for line in text.split("\n") if not _PAGE_MARKER_PATTERN.match(line)
    ]
    text = "\n".join(lines)

    text = _EOL_HYPHEN_PATTERN.sub(r"\1\2", text)
    text = _EXCESS_NEWLINES.sub("\n\n", text).strip()

    logger.debug("Cleaned extracted text from %d to %d chars", len(value), len(text))
    return text
