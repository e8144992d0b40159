#!/usr/bin/env python3
"""Create the documents collection and its payload index.

Run once before the first ingestion. Safe to re-run: an existing collection is
kept and only the ``metadata.document_id`` index is (re)ensured.

Usage:
    python -m knowledge_rag.scripts.setup_qdrant
"""

import asyncio
import sys

from knowledge_rag.config import get_settings
from knowledge_rag.core.constants import DENSE_VEC
from knowledge_rag.core.exceptions import StoreUnavailable
from knowledge_rag.core.logging import get_logger, setup_logging
from knowledge_rag.services.qdrant_service import QdrantService

logger = get_logger(__name__)


async def setup_qdrant_collection() -> bool:
    """Create the Qdrant collection if it doesn't exist.

    Returns:
        True if successful, False otherwise
    """
    settings = get_settings()
    logger.info("=== Qdrant Collection Setup ===")
    logger.info(f"Qdrant URL: {settings.qdrant_url}")
    logger.info(f"Collection name: {settings.qdrant_collection_name}")

    qdrant_service = QdrantService(settings)
    try:
        existed = await qdrant_service.collection_exists()
        await qdrant_service.ensure_schema(settings.embedding_dimension)
        info = await qdrant_service.get_collection_info()
    except StoreUnavailable as exc:
        logger.error(f"Failed to setup Qdrant collection: {exc.message}", exc_info=True)
        return False
    finally:
        await qdrant_service.aclose()

    if existed:
        logger.info(
            f"Collection '{qdrant_service.col}' already exists ({info.points_count} points)"
        )
    else:
        logger.info(f"Collection '{qdrant_service.col}' created")

    logger.info(f"Status: {info.status}")
    vectors = info.config.params.vectors
    if isinstance(vectors, dict) and DENSE_VEC in vectors:
        dense = vectors[DENSE_VEC]
        logger.info(f"Dense vector '{DENSE_VEC}': size={dense.size} distance={dense.distance}")
    else:
        logger.warning(f"Collection has no '{DENSE_VEC}' vector; it was created with another schema")

    if info.payload_schema:
        for field, schema in info.payload_schema.items():
            logger.info(f"Payload index {field}: {schema.data_type}")
    else:
        logger.warning("No payload indexes found")
    return True


async def main() -> None:
    """Main entry point."""
    setup_logging()

    if not await setup_qdrant_collection():
        logger.error("Setup failed!")
        sys.exit(1)

    logger.info("Setup completed successfully!")


if __name__ == "__main__":
    asyncio.run(main())
