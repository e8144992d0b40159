"""Tests for text normalization utilities."""

import pytest

from knowledge_rag.text_processing.normalize_text import (
    clean_extracted_text,
    normalize_for_chunking,
    normalize_line_endings,
)


def test_line_endings_normalized() -> None:
    assert normalize_line_endings("a\r\nb\rc\n") == "a\nb\nc\n"


@pytest.mark.parametrize(
    ("raw", "expected"),
    [
        ("", ""),
        ("  padded  ", "padded"),
        ("one\n\n\n\ntwo", "one\n\ntwo"),
        ("one\r\n\r\n\r\ntwo", "one\n\ntwo"),
        ("keep\n\nsingle blank", "keep\n\nsingle blank"),
    ],
)
def test_normalize_for_chunking(raw: str, expected: str) -> None:
    assert normalize_for_chunking(raw) == expected


def test_clean_unicode_normalization() -> None:
    assert clean_extracted_text("ｈｅｌｌｏ") == "hello"
    assert clean_extracted_text("café") == "café"


def test_clean_zero_width_and_control_characters_removed() -> None:
    assert clean_extracted_text("hello\u200bworld") == "helloworld"
    assert clean_extracted_text("\ufefftext") == "text"
    assert clean_extracted_text("bell\x07 here") == "bell here"
    assert clean_extracted_text("tab\tseparated") == "tab separated"


def test_clean_drops_page_markers() -> None:
    text = "Intro line\nPage 3\nBody line\n3 / 12\nPage 4 of 9\nEnd"
    assert clean_extracted_text(text) == "Intro line\nBody line\nEnd"


def test_clean_rejoins_hyphenated_words() -> None:
    assert clean_extracted_text("retrie-\nval works") == "retrieval works"


def test_clean_collapses_spaces_and_blank_lines() -> None:
    assert clean_extracted_text("a    b\n\n\n\n\nc   ") == "a b\n\nc"
