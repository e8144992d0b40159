"""Thin async Qdrant service for the documents collection."""

from __future__ import annotations

from collections.abc import AsyncIterator, Sequence
from contextlib import asynccontextmanager
from typing import Any

import httpx
from qdrant_client import AsyncQdrantClient
from qdrant_client import models as q
from qdrant_client.conversions.common_types import PointId
from qdrant_client.http.exceptions import ResponseHandlingException, UnexpectedResponse

from knowledge_rag.config import Settings
from knowledge_rag.core.constants import DENSE_VEC, DOCUMENT_ID_FIELD
from knowledge_rag.core.exceptions import PayloadIndexMissing, StoreTimeout, StoreUnavailable
from knowledge_rag.core.logging import get_logger

logger = get_logger(__name__)


def _build_client(settings: Settings) -> AsyncQdrantClient:
    if settings.qdrant_local_path == ":memory:":
        return AsyncQdrantClient(location=":memory:")
    if settings.qdrant_local_path:
        return AsyncQdrantClient(path=settings.qdrant_local_path)
    return AsyncQdrantClient(
        url=settings.qdrant_url,
        api_key=settings.qdrant_api_key,
        prefer_grpc=settings.qdrant_prefer_grpc,
        timeout=settings.qdrant_timeout,
    )


class QdrantService:
    """Wrapper around the async Qdrant client.

    Every call is funnelled through :meth:`_store_call`, which turns client
    errors into ``StoreUnavailable``, ``StoreTimeout`` or
    ``PayloadIndexMissing``.
    """

    def __init__(
        self,
        settings: Settings,
        aclient: AsyncQdrantClient | None = None,
    ):
        self.settings = settings
        self.col = settings.qdrant_collection_name
        self.aclient = aclient or _build_client(settings)

        logger.info("QdrantService initialized for collection '%s'", self.col)

    async def aclose(self) -> None:
        """Close the client."""
        await self.aclient.close()

    @asynccontextmanager
    async def _store_call(self, operation: str) -> AsyncIterator[None]:
        try:
            yield
        except UnexpectedResponse as exc:
            detail = str(exc)
            if "index required" in detail.lower():
                raise PayloadIndexMissing(f"{operation}: {detail}") from exc
            raise StoreUnavailable(f"{operation} failed: {detail}") from exc
        except ResponseHandlingException as exc:
            if isinstance(exc.source, httpx.TimeoutException):
                raise StoreTimeout(f"{operation} timed out") from exc
            raise StoreUnavailable(f"{operation} failed: {exc}") from exc
        except (TimeoutError, httpx.TimeoutException) as exc:
            raise StoreTimeout(f"{operation} timed out") from exc
        except (httpx.TransportError, ConnectionError, ValueError) as exc:
            raise StoreUnavailable(f"{operation} failed: {exc}") from exc

    async def ensure_schema(self, vector_size: int | None = None) -> None:
        """Ensure the collection exists with the dense vector and payload index."""
        size = vector_size or self.settings.embedding_dimension
        if await self.collection_exists():
            logger.info("Collection '%s' already exists", self.col)
            await self.ensure_payload_indexes()
            return

        logger.info("Creating collection '%s' (dense size=%d, distance=DOT)", self.col, size)
        async with self._store_call("create_collection"):
            # Vectors are L2-normalized, so DOT equals cosine similarity.
            await self.aclient.create_collection(
                collection_name=self.col,
                vectors_config={
                    DENSE_VEC: q.VectorParams(size=size, distance=q.Distance.DOT),
                },
            )
        logger.info("Created collection '%s'", self.col)
        await self.ensure_payload_indexes()

    async def ensure_payload_indexes(self) -> None:
        """Create the keyword index on the document identity field."""
        logger.info("Ensuring payload index '%s' on '%s'", DOCUMENT_ID_FIELD, self.col)
        try:
            await self.aclient.create_payload_index(
                collection_name=self.col,
                field_name=DOCUMENT_ID_FIELD,
                field_schema=q.PayloadSchemaType.KEYWORD,
                wait=True,
            )
        except UnexpectedResponse as exc:
            if "already exists" in str(exc).lower():
                logger.debug("Index '%s' already exists", DOCUMENT_ID_FIELD)
            else:
                logger.warning("Failed to create index '%s': %s", DOCUMENT_ID_FIELD, exc)

    async def collection_exists(self) -> bool:
        """Return True if the collection already exists."""
        async with self._store_call("collection_exists"):
            return await self.aclient.collection_exists(self.col)

    async def list_collections(self) -> list[str]:
        async with self._store_call("get_collections"):
            response = await self.aclient.get_collections()
        return [c.name for c in response.collections]

    async def get_collection_info(
        self,
        collection_name: str | None = None,
    ) -> q.CollectionInfo:
        """Fetch collection information."""
        name = collection_name or self.col
        async with self._store_call("get_collection"):
            return await self.aclient.get_collection(name)

    async def upsert_points(
        self,
        points: Sequence[q.PointStruct],
        *,
        wait: bool = True,
    ) -> None:
        """Upsert raw points into the collection."""
        if not points:
            return

        async with self._store_call("upsert"):
            await self.aclient.upsert(
                collection_name=self.col,
                points=list(points),
                wait=wait,
            )
        logger.debug("Upserted %d points into '%s'", len(points), self.col)

    async def count(self, filter_: q.Filter | None = None) -> int:
        """Exact number of points matching ``filter_``."""
        async with self._store_call("count"):
            result = await self.aclient.count(
                collection_name=self.col,
                count_filter=filter_,
                exact=True,
            )
        return result.count

    async def scroll(
        self,
        *,
        limit: int,
        offset: PointId | None = None,
        filter_: q.Filter | None = None,
        with_payload: bool = True,
        with_vectors: bool = False,
    ) -> tuple[list[q.Record], PointId | None]:
        """Expose raw scroll for pagination use cases."""
        async with self._store_call("scroll"):
            return await self.aclient.scroll(
                collection_name=self.col,
                scroll_filter=filter_,
                limit=limit,
                offset=offset,
                with_payload=with_payload,
                with_vectors=with_vectors,
            )

    async def delete(
        self,
        *,
        ids: Sequence[str] | None = None,
        filter_: q.Filter | None = None,
        wait: bool = True,
    ) -> None:
        """Delete points by IDs or filter."""
        points_selector: Any
        if ids is not None:
            points_selector = q.PointIdsList(points=list(ids))
        elif filter_ is not None:
            points_selector = q.FilterSelector(filter=filter_)
        else:
            raise ValueError("Either ids or filter_ must be provided to delete points")

        async with self._store_call("delete"):
            await self.aclient.delete(
                collection_name=self.col,
                points_selector=points_selector,
                wait=wait,
            )

    async def query_dense(
        self,
        vector: Sequence[float],
        *,
        limit: int,
        score_threshold: float | None = None,
        filter_: q.Filter | None = None,
    ) -> list[q.ScoredPoint]:
        """Nearest-neighbour search on the dense vector."""
        async with self._store_call("query_points"):
            response = await self.aclient.query_points(
                collection_name=self.col,
                query=list(vector),
                using=DENSE_VEC,
                limit=limit,
                score_threshold=score_threshold,
                query_filter=filter_,
                with_payload=True,
                with_vectors=False,
            )
        return response.points


def document_filter(document_id: str) -> q.Filter:
    """Filter matching every point of one document."""
    return q.Filter(
        must=[
            q.FieldCondition(
                key=DOCUMENT_ID_FIELD,
                match=q.MatchValue(value=document_id),
            )
        ]
    )


__all__ = ["QdrantService", "document_filter"]
