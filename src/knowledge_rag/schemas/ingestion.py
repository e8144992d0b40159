"""Ingestion report schemas."""

from pydantic import BaseModel, Field


class FileIngestionResult(BaseModel):
    """Outcome of ingesting one file."""

    filename: str = Field(..., description="Document identity (the file name)")
    success: bool = Field(..., description="Whether the passages were stored")
    file_type: str | None = Field(None, description="Detected file type")
    chunks: int = Field(0, description="Passages uploaded")
    deleted: int = Field(0, description="Passages of a previous version that were replaced")
    error: str | None = Field(None, description="Failure reason")
    moved_to: str | None = Field(None, description="Path the file was moved to after success")


class IngestionReport(BaseModel):
    """Summary of one directory ingestion run."""

    results: list[FileIngestionResult] = Field(default_factory=list)
    elapsed_seconds: float = Field(0.0, description="Wall-clock duration of the run")

    @property
    def total_files(self) -> int:
        return len(self.results)

    @property
    def successful(self) -> int:
        return sum(1 for r in self.results if r.success)

    @property
    def failed(self) -> int:
        return self.total_files - self.successful

    @property
    def total_chunks(self) -> int:
        return sum(r.chunks for r in self.results)
