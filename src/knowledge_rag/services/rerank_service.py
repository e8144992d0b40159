"""Cross-encoder reranking with a bounded score cache."""

from __future__ import annotations

import asyncio
import time
from collections.abc import Callable, Sequence
from typing import Any, Protocol

from knowledge_rag.config import Settings
from knowledge_rag.core.constants import NEUTRAL_RERANK_SCORE
from knowledge_rag.core.exceptions import ModelUnavailable
from knowledge_rag.core.logging import get_logger
from knowledge_rag.core.models import RerankResult
from knowledge_rag.services.rerank_cache import RerankCache

logger = get_logger(__name__)


class PairScorer(Protocol):
    """Scores one (query, passage) pair with a relevance value in [0, 1]."""

    async def score(self, query: str, passage: str) -> float: ...


class CrossEncoderScorer:
    """Adapter over a sentence-transformers ``CrossEncoder``."""

    def __init__(self, model: Any):
        self._model = model

    async def score(self, query: str, passage: str) -> float:
        scores = await asyncio.to_thread(self._model.predict, [(query, passage)])
        return float(scores[0])


def cross_encoder_factory(model_name: str) -> Callable[[], PairScorer]:
    def _build() -> PairScorer:
        from sentence_transformers import CrossEncoder

        # Single-label ms-marco models apply a sigmoid, giving scores in [0, 1].
        return CrossEncoderScorer(CrossEncoder(model_name))

    return _build


class RerankingService:
    """Reorders documents for a query by cross-encoder relevance.

    Pairs are scored in fixed-size batches: batches run one after another,
    pairs inside a batch run concurrently. If the model cannot be loaded the
    service returns the input order with a neutral score instead of failing.
    """

    def __init__(
        self,
        *,
        scorer_factory: Callable[[], PairScorer],
        cache: RerankCache,
        batch_size: int = 32,
        model_name: str = "custom",
    ):
        self.batch_size = batch_size
        self.model_name = model_name
        self.cache = cache
        self._scorer_factory = scorer_factory
        self._scorer: PairScorer | None = None
        self._checked = False
        self._lock = asyncio.Lock()

    @classmethod
    def from_settings(cls, settings: Settings) -> RerankingService:
        cache = RerankCache(
            max_entries=settings.rerank_cache_size,
            cleanup_interval=settings.rerank_cache_cleanup_interval,
            key_prefix_chars=settings.rerank_cache_key_prefix_chars,
        )
        return cls(
            scorer_factory=cross_encoder_factory(settings.rerank_model_name),
            cache=cache,
            batch_size=settings.rerank_batch_size,
            model_name=settings.rerank_model_name,
        )

    @property
    def is_available(self) -> bool:
        """False once a model load has been attempted and failed."""
        return not (self._checked and self._scorer is None)

    async def preload(self) -> bool:
        try:
            await self._get_scorer()
        except ModelUnavailable:
            return False
        return True

    async def _get_scorer(self) -> PairScorer:
        if self._scorer is not None:
            return self._scorer
        if self._checked:
            raise ModelUnavailable(f"Reranker model '{self.model_name}' failed to load")

        async with self._lock:
            if self._scorer is None and not self._checked:
                start = time.perf_counter()
                logger.info("Loading cross-encoder '%s'...", self.model_name)
                try:
                    self._scorer = await asyncio.to_thread(self._scorer_factory)
                    logger.info(
                        "Cross-encoder '%s' loaded in %.0fms (cache size %d)",
                        self.model_name,
                        (time.perf_counter() - start) * 1000,
                        self.cache.max_entries,
                    )
                except (ImportError, OSError, RuntimeError, ValueError) as exc:
                    logger.error(
                        "Failed to load cross-encoder '%s': %s", self.model_name, exc, exc_info=True
                    )
                finally:
                    self._checked = True

        if self._scorer is None:
            raise ModelUnavailable(f"Reranker model '{self.model_name}' failed to load")
        return self._scorer

    async def rerank(
        self,
        query: str,
        documents: Sequence[str],
        top_k: int = 5,
    ) -> list[RerankResult]:
        """Return the ``top_k`` documents sorted by descending relevance."""
        if not documents:
            logger.info("No documents to rerank")
            return []

        start = time.perf_counter()
        cached = self.cache.get(query, documents)
        if cached is not None:
            results = build_rerank_results(documents, cached, top_k)
            logger.info(
                "Reranked %d documents from cache in %.0fms",
                len(documents),
                (time.perf_counter() - start) * 1000,
            )
            return results

        try:
            scorer = await self._get_scorer()
        except ModelUnavailable:
            logger.warning("Reranker unavailable, returning original order with neutral scores")
            return [
                RerankResult(document=doc, score=NEUTRAL_RERANK_SCORE, original_index=idx)
                for idx, doc in enumerate(documents[:top_k])
            ]

        scores = await self._score_all(scorer, query, documents)
        self.cache.put(query, documents, scores)

        duration = (time.perf_counter() - start) * 1000
        logger.info(
            "Reranked %d documents in %.0fms (top %.4f, avg %.4f, min %.4f)",
            len(documents),
            duration,
            max(scores),
            sum(scores) / len(scores),
            min(scores),
        )
        return build_rerank_results(documents, scores, top_k)

    async def _score_all(
        self,
        scorer: PairScorer,
        query: str,
        documents: Sequence[str],
    ) -> list[float]:
        scores: list[float] = []
        num_batches = (len(documents) + self.batch_size - 1) // self.batch_size

        for batch_num, offset in enumerate(range(0, len(documents), self.batch_size), start=1):
            batch = documents[offset : offset + self.batch_size]
            batch_start = time.perf_counter()
            batch_scores = await asyncio.gather(
                *(self._score_pair(scorer, query, doc) for doc in batch)
            )
            scores.extend(batch_scores)
            logger.debug(
                "Rerank batch %d/%d (%d pairs) in %.0fms",
                batch_num,
                num_batches,
                len(batch),
                (time.perf_counter() - batch_start) * 1000,
            )
        return scores

    async def _score_pair(self, scorer: PairScorer, query: str, document: str) -> float:
        try:
            return await scorer.score(query, document)
        except (RuntimeError, ValueError) as exc:
            logger.error("Error scoring rerank pair: %s", exc)
            return 0.0


def build_rerank_results(
    documents: Sequence[str],
    scores: Sequence[float],
    top_k: int,
) -> list[RerankResult]:
    """Pair documents with scores, sort descending (stable) and truncate."""
    combined = [
        RerankResult(document=doc, score=scores[idx], original_index=idx)
        for idx, doc in enumerate(documents)
    ]
    combined.sort(key=lambda r: r.score, reverse=True)
    return combined[:top_k]
