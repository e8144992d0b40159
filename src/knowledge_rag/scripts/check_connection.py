#!/usr/bin/env python3
"""Check that Qdrant is reachable and report on the documents collection.

Usage:
    python -m knowledge_rag.scripts.check_connection
"""

import asyncio
import sys

from knowledge_rag.config import get_settings
from knowledge_rag.core.constants import DOCUMENT_ID_FIELD
from knowledge_rag.core.exceptions import StoreUnavailable
from knowledge_rag.core.logging import get_logger, setup_logging
from knowledge_rag.services.qdrant_service import QdrantService

logger = get_logger(__name__)


async def check_connection() -> bool:
    settings = get_settings()
    qdrant_service = QdrantService(settings)
    try:
        collections = await qdrant_service.list_collections()
        logger.info(f"Connected to {settings.qdrant_url}; collections: {collections or 'none'}")

        if qdrant_service.col not in collections:
            logger.warning(
                f"Collection '{qdrant_service.col}' does not exist; "
                "run knowledge_rag.scripts.setup_qdrant"
            )
            return True

        info = await qdrant_service.get_collection_info()
        logger.info(f"Collection '{qdrant_service.col}': {info.points_count} points")
        if DOCUMENT_ID_FIELD in (info.payload_schema or {}):
            logger.info(f"Payload index on '{DOCUMENT_ID_FIELD}' present")
        else:
            logger.warning(
                f"Payload index on '{DOCUMENT_ID_FIELD}' missing; duplicate detection is degraded"
            )
        return True
    except StoreUnavailable as exc:
        logger.error(f"Cannot reach Qdrant at {settings.qdrant_url}: {exc.message}")
        return False
    finally:
        await qdrant_service.aclose()


async def main() -> None:
    setup_logging()
    if not await check_connection():
        sys.exit(1)


if __name__ == "__main__":
    asyncio.run(main())
