"""Two-stage retrieval: dense vector search followed by cross-encoder reranking."""

from __future__ import annotations

import logging
import time
from enum import Enum

from tenacity import (
    AsyncRetrying,
    before_sleep_log,
    retry_if_exception_type,
    stop_after_attempt,
    wait_exponential,
)

from knowledge_rag.config import Settings
from knowledge_rag.core.exceptions import StoreTimeout
from knowledge_rag.core.logging import get_logger
from knowledge_rag.core.models import SearchCandidate
from knowledge_rag.repositories.vector_repository import VectorRepository
from knowledge_rag.schemas.search import RetrievalResponse, RetrievalResult
from knowledge_rag.services.embedding_service import EmbeddingService, is_zero_vector
from knowledge_rag.services.rerank_service import RerankingService

logger = get_logger(__name__)


class RetrievalStage(str, Enum):
    EMBEDDING_QUERY = "embedding_query"
    VECTOR_SEARCH = "vector_search"
    RERANKING = "reranking"
    SKIP_RERANK = "skip_rerank"
    DONE = "done"
    ERROR = "error"


class SearchService:
    """Retrieval orchestrator.

    Stage one embeds the query and searches the vector store; when reranking
    is requested it over-fetches ``overfetch_factor * top_k`` candidates so the
    cross-encoder has material to reorder. Stage two narrows them to ``top_k``.
    A stage-two failure falls back to the stage-one ordering and marks the
    response as degraded. Vector search timeouts are retried; other store
    errors propagate.
    """

    def __init__(
        self,
        settings: Settings,
        embedding_service: EmbeddingService,
        vector_repository: VectorRepository,
        rerank_service: RerankingService | None = None,
    ):
        self.settings = settings
        self.embedding_service = embedding_service
        self.vector_repository = vector_repository
        self.rerank_service = rerank_service
        self.overfetch_factor = settings.retrieval_overfetch_factor
        self.max_attempts = settings.search_max_attempts
        self.retry_wait = wait_exponential(multiplier=0.5, min=0.5, max=4)

        logger.info(
            "Search service initialized (reranker %s)",
            "enabled" if rerank_service is not None else "disabled",
        )

    async def search(
        self,
        query: str,
        top_k: int | None = None,
        *,
        rerank: bool = True,
        score_threshold: float | None = None,
    ) -> RetrievalResponse:
        """Return the ``top_k`` most relevant passages for ``query``."""
        limit = top_k if top_k is not None else self.settings.retrieval_top_k
        if limit <= 0:
            raise ValueError(f"top_k must be positive, got {limit}")
        threshold = (
            score_threshold if score_threshold is not None else self.settings.retrieval_score_threshold
        )
        use_rerank = rerank and self.rerank_service is not None

        stage = RetrievalStage.EMBEDDING_QUERY
        try:
            start = time.perf_counter()
            query_vector = await self.embedding_service.embed_query(query)
            degraded = is_zero_vector(query_vector)
            if degraded:
                logger.warning("Query vector is all zeros; retrieval relevance is degraded")

            stage = RetrievalStage.VECTOR_SEARCH
            fetch = limit * self.overfetch_factor if use_rerank else limit
            candidates = await self._vector_search(query_vector, fetch, threshold)
            logger.info(
                "Stage 1: %d candidates (requested %d, threshold %.2f) in %.0fms",
                len(candidates),
                fetch,
                threshold,
                (time.perf_counter() - start) * 1000,
            )
        except Exception as exc:
            logger.error(
                "Retrieval -> %s during %s: %s",
                RetrievalStage.ERROR.value,
                stage.value,
                exc,
                exc_info=True,
            )
            raise

        if not candidates:
            return RetrievalResponse(
                query=query,
                results=[],
                reranked=False,
                degraded=degraded,
                stage=RetrievalStage.DONE.value,
            )

        if not use_rerank:
            logger.info("Stage 2 skipped (%s)", RetrievalStage.SKIP_RERANK.value)
            return self._vector_ordered(query, candidates, limit, degraded=degraded)

        logger.debug("Retrieval -> %s", RetrievalStage.RERANKING.value)
        results = await self._rerank(query, candidates, limit)
        if results is None:
            return self._vector_ordered(query, candidates, limit, degraded=True)

        return RetrievalResponse(
            query=query,
            results=results,
            reranked=True,
            degraded=degraded,
            stage=RetrievalStage.DONE.value,
        )

    async def _vector_search(
        self,
        vector: list[float],
        limit: int,
        threshold: float,
    ) -> list[SearchCandidate]:
        async for attempt in AsyncRetrying(
            retry=retry_if_exception_type(StoreTimeout),
            stop=stop_after_attempt(self.max_attempts),
            wait=self.retry_wait,
            before_sleep=before_sleep_log(logger, logging.WARNING),
            reraise=True,
        ):
            with attempt:
                return await self.vector_repository.search(
                    vector,
                    top_n=limit,
                    score_threshold=threshold,
                )
        return []

    async def _rerank(
        self,
        query: str,
        candidates: list[SearchCandidate],
        limit: int,
    ) -> list[RetrievalResult] | None:
        """Stage two; ``None`` means fall back to the stage-one ordering."""
        if self.rerank_service is None:
            return None

        start = time.perf_counter()
        try:
            reranked = await self.rerank_service.rerank(
                query,
                [c.content for c in candidates],
                top_k=limit,
            )
        except Exception as exc:
            logger.error("Reranking failed, using vector ordering: %s", exc, exc_info=True)
            return None

        if not self.rerank_service.is_available:
            logger.warning("Reranker unavailable, using vector ordering")
            return None

        logger.info(
            "Stage 2: reranked %d candidates to %d in %.0fms",
            len(candidates),
            len(reranked),
            (time.perf_counter() - start) * 1000,
        )
        return [
            _to_result(candidates[item.original_index], rerank_score=item.score)
            for item in reranked
        ]

    def _vector_ordered(
        self,
        query: str,
        candidates: list[SearchCandidate],
        limit: int,
        *,
        degraded: bool,
    ) -> RetrievalResponse:
        ordered = sorted(candidates, key=lambda c: c.score, reverse=True)[:limit]
        return RetrievalResponse(
            query=query,
            results=[_to_result(c) for c in ordered],
            reranked=False,
            degraded=degraded,
            stage=RetrievalStage.DONE.value,
        )


def _to_result(candidate: SearchCandidate, rerank_score: float | None = None) -> RetrievalResult:
    return RetrievalResult(
        id=candidate.id,
        content=candidate.content,
        vector_score=candidate.score,
        rerank_score=rerank_score,
        metadata=candidate.metadata,
    )
