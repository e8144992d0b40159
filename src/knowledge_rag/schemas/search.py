"""Retrieval response schemas."""

from typing import Any

from pydantic import BaseModel, Field


class RetrievalResult(BaseModel):
    """One passage returned by the retrieval orchestrator."""

    id: str = Field(..., description="Point ID of the passage")
    content: str = Field(..., description="Passage text")
    vector_score: float = Field(..., description="Stage-one similarity score")
    rerank_score: float | None = Field(None, description="Cross-encoder score, if reranked")
    metadata: dict[str, Any] = Field(default_factory=dict, description="Stored passage metadata")


class RetrievalResponse(BaseModel):
    """Ranked passages for a query plus how they were produced."""

    query: str = Field(..., description="Original query text")
    results: list[RetrievalResult] = Field(default_factory=list, description="Ranked passages")
    reranked: bool = Field(False, description="Whether stage two reordered the results")
    degraded: bool = Field(
        False,
        description="Relevance is degraded (zero query vector, neutral reranker or stage-two failure)",
    )
    stage: str = Field(..., description="Terminal retrieval stage")

    @property
    def total_results(self) -> int:
        return len(self.results)
