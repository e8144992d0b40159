"""Filesystem ingestion driver: incoming/ -> vector store -> processed/."""

from __future__ import annotations

import argparse
import asyncio
import shutil
import sys
import time
from pathlib import Path

from knowledge_rag.config import get_settings
from knowledge_rag.container import build_container
from knowledge_rag.core.exceptions import StoreUnavailable
from knowledge_rag.core.logging import get_logger, setup_logging
from knowledge_rag.schemas.ingestion import FileIngestionResult, IngestionReport
from knowledge_rag.services.ingestion_service import IngestionService

logger = get_logger(__name__)


class DirectoryWorker:
    """Ingests every supported file in ``incoming_dir``, one file at a time.

    A file is moved to ``processed_dir`` only after its passages are stored.
    A failed move is logged and does not undo the store-side write.
    """

    def __init__(
        self,
        ingestion_service: IngestionService,
        incoming_dir: str | Path,
        processed_dir: str | Path,
    ):
        self.ingestion_service = ingestion_service
        self.incoming_dir = Path(incoming_dir)
        self.processed_dir = Path(processed_dir)

    def pending_files(self) -> list[Path]:
        """Supported files waiting in the incoming directory, sorted by name."""
        if not self.incoming_dir.exists():
            self.incoming_dir.mkdir(parents=True)
            logger.info(f"Created incoming directory {self.incoming_dir}")
            return []

        files: list[Path] = []
        for path in sorted(self.incoming_dir.iterdir()):
            if not path.is_file():
                continue
            if self.ingestion_service.supports(path):
                files.append(path)
            else:
                logger.info(f"Skipping unsupported file {path.name}")
        return files

    async def run(self) -> IngestionReport:
        """Process all pending files and return the run report."""
        start = time.perf_counter()
        files = self.pending_files()
        if not files:
            logger.info(f"No supported files in {self.incoming_dir}")
            return IngestionReport(results=[], elapsed_seconds=time.perf_counter() - start)

        logger.info(f"Found {len(files)} file(s) to process in {self.incoming_dir}")
        results: list[FileIngestionResult] = []
        for index, path in enumerate(files, start=1):
            logger.info(f"[{index}/{len(files)}] Processing {path.name}")
            results.append(await self.process_file(path))

        report = IngestionReport(results=results, elapsed_seconds=time.perf_counter() - start)
        log_report(report)
        return report

    async def process_file(self, path: Path) -> FileIngestionResult:
        try:
            result = await self.ingestion_service.ingest_file(path)
        except StoreUnavailable as exc:
            logger.error(f"Vector store error while ingesting {path.name}: {exc}", exc_info=True)
            return FileIngestionResult(filename=path.name, success=False, error=exc.message)
        except Exception as exc:
            logger.error(f"Error ingesting {path.name}: {exc}", exc_info=True)
            return FileIngestionResult(filename=path.name, success=False, error=str(exc))

        if result.success:
            result.moved_to = self._move_to_processed(path)
        return result

    def _move_to_processed(self, path: Path) -> str | None:
        target = self.processed_dir / path.name
        try:
            self.processed_dir.mkdir(parents=True, exist_ok=True)
            shutil.move(str(path), str(target))
        except OSError as exc:
            logger.error(f"Stored {path.name} but failed to move it to {target}: {exc}")
            return None
        logger.info(f"Moved {path.name} to {self.processed_dir}")
        return str(target)


def log_report(report: IngestionReport) -> None:
    logger.info(
        f"Ingestion complete: {report.total_files} file(s), {report.successful} succeeded, "
        f"{report.failed} failed, {report.total_chunks} passages in {report.elapsed_seconds:.1f}s"
    )
    for result in report.results:
        if result.success:
            logger.info(
                f"  OK    {result.filename} ({result.chunks} passages, {result.deleted} replaced)"
            )
        else:
            logger.info(f"  FAIL  {result.filename}: {result.error}")


async def run_directory_ingestion(
    incoming_dir: str | None = None,
    processed_dir: str | None = None,
) -> IngestionReport:
    settings = get_settings()
    container = build_container(settings)
    try:
        await container.startup()
        worker = DirectoryWorker(
            container.ingestion_service,
            incoming_dir or settings.incoming_dir,
            processed_dir or settings.processed_dir,
        )
        return await worker.run()
    finally:
        await container.aclose()


def main(argv: list[str] | None = None) -> None:
    """Console entry point: ``knowledge-rag-ingest``."""
    parser = argparse.ArgumentParser(
        description="Ingest documents from an incoming directory into the vector store",
    )
    parser.add_argument("--incoming", help="Directory to scan (default: INCOMING_DIR)")
    parser.add_argument("--processed", help="Directory for ingested files (default: PROCESSED_DIR)")
    args = parser.parse_args(argv)

    setup_logging()
    try:
        report = asyncio.run(run_directory_ingestion(args.incoming, args.processed))
    except StoreUnavailable as exc:
        logger.error(f"Vector store unavailable: {exc.message}")
        sys.exit(1)

    sys.exit(1 if report.failed else 0)


if __name__ == "__main__":
    main()
