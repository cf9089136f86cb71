"""Ingestion outcome models: per-file failures and whole-run reports."""

from __future__ import annotations

from pydantic import BaseModel, ConfigDict, Field
from pydantic.alias_generators import to_camel

from livekb.models.documents import ProcessedDocument


class FileFailure(BaseModel):
    """A file that was skipped during a session run, and why."""

    model_config = ConfigDict(frozen=True, alias_generator=to_camel, populate_by_name=True)

    file_name: str
    error: str
    error_type: str = ""


class IngestionReport(BaseModel):
    """Summary of processing (and optionally indexing) a set of files.

    Counts reflect successes only; skipped files are listed in
    ``failures`` with their error message.
    """

    model_config = ConfigDict(frozen=True, alias_generator=to_camel, populate_by_name=True)

    session_id: str
    processed_files: int = Field(default=0, ge=0)
    processed_chunks: int = Field(default=0, ge=0)
    indexed_vectors: int = Field(default=0, ge=0)
    documents: list[ProcessedDocument] = Field(default_factory=list)
    failures: list[FileFailure] = Field(default_factory=list)

    @property
    def success(self) -> bool:
        return not self.failures
