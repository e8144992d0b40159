"""Boundary-aware sliding-window text chunker."""

from __future__ import annotations

import re
from collections.abc import Sequence
from dataclasses import dataclass

from knowledge_rag.core.logging import get_logger
from knowledge_rag.core.models import Passage
from knowledge_rag.text_processing.normalize_text import normalize_for_chunking

logger = get_logger(__name__)

BOUNDARY_SEARCH_WINDOW = 100
_SENTENCE_TERMINATORS = frozenset(".!?")
_PARAGRAPH_BREAK = re.compile(r"\n\n")


@dataclass(frozen=True, slots=True)
class ChunkConfig:
    """Chunking parameters, all measured in characters."""

    target_size: int = 800
    overlap_size: int = 200
    preserve_boundaries: bool = True

    def __post_init__(self) -> None:
        if self.target_size <= 0:
            raise ValueError("target_size must be positive")
        if self.overlap_size < 0:
            raise ValueError("overlap_size must not be negative")


@dataclass(frozen=True, slots=True)
class ChunkStats:
    """Size summary over a list of passages."""

    total_chunks: int
    avg_chunk_size: int
    min_chunk_size: int
    max_chunk_size: int


def chunk_text(text: str, config: ChunkConfig | None = None) -> list[Passage]:
    """Split ``text`` into overlapping passages.

    The window advances by ``target_size - overlap_size``. When the step would
    not move past the previous passage start, the next window starts at the
    previous end instead, so the loop always makes progress. A tail shorter
    than the overlap is folded into the final passage.

    Args:
        text: Raw text. It is normalized first; offsets refer to the
            normalized string.
        config: Chunking parameters.

    Returns:
        Passages ordered by ``char_start`` with contiguous sequence indices.
    """
    cfg = config or ChunkConfig()
    normalized = normalize_for_chunking(text)
    length = len(normalized)

    if length == 0:
        return []

    if length <= cfg.target_size:
        return [Passage(text=normalized, sequence_index=0, char_start=0, char_end=length)]

    passages: list[Passage] = []
    tail_threshold = min(cfg.overlap_size, cfg.target_size)
    start = 0

    while start < length:
        nominal_end = start + cfg.target_size
        if nominal_end >= length:
            end = length
        elif cfg.preserve_boundaries:
            end = find_boundary(normalized, start, nominal_end)
        else:
            end = nominal_end

        if length - end < tail_threshold:
            end = length

        content = normalized[start:end].strip()
        if content:
            passages.append(
                Passage(
                    text=content,
                    sequence_index=len(passages),
                    char_start=start,
                    char_end=end,
                )
            )

        if end >= length:
            break

        next_start = end - cfg.overlap_size
        if next_start <= start:
            next_start = end
        start = next_start

    return passages


def find_boundary(text: str, start: int, target: int) -> int:
    """Pick a window end near ``target``.

    Prefers the sentence terminator (``.``, ``!`` or ``?`` followed by
    whitespace or end of text) closest to ``target`` within
    ``BOUNDARY_SEARCH_WINDOW`` characters, then the closest paragraph break,
    then ``target`` itself. The result is always greater than ``start``.
    """
    lo = max(start + 1, target - BOUNDARY_SEARCH_WINDOW)
    hi = min(len(text), target + BOUNDARY_SEARCH_WINDOW)

    best: int | None = None
    best_distance = BOUNDARY_SEARCH_WINDOW + 1
    for i in range(lo - 1, hi):
        if text[i] not in _SENTENCE_TERMINATORS:
            continue
        if i + 1 < len(text) and not text[i + 1].isspace():
            continue
        candidate = i + 1  # Keep the punctuation in the passage.
        if candidate <= start:
            continue
        distance = abs(candidate - target)
        if distance < best_distance:
            best, best_distance = candidate, distance
    if best is not None:
        return best

    breaks = [m.start() for m in _PARAGRAPH_BREAK.finditer(text, lo, hi)]
    if breaks:
        return min(breaks, key=lambda p: abs(p - target))

    return target


def chunk_stats(passages: Sequence[Passage]) -> ChunkStats:
    """Summarize passage sizes for logging."""
    if not passages:
        return ChunkStats(total_chunks=0, avg_chunk_size=0, min_chunk_size=0, max_chunk_size=0)

    sizes = [len(p.text) for p in passages]
    return ChunkStats(
        total_chunks=len(sizes),
        avg_chunk_size=round(sum(sizes) / len(sizes)),
        min_chunk_size=min(sizes),
        max_chunk_size=max(sizes),
    )
