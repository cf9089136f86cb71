"""Pydantic request/response schemas for the livekb API.

Request schemas end with ``Request``, response schemas with ``Response``.
JSON keys are camelCase (``fileName``, ``processedChunks``) to match the
record shapes persisted on disk; requests also accept snake_case.
"""

from __future__ import annotations

from datetime import datetime
from enum import Enum
from typing import Any

from pydantic import BaseModel, ConfigDict, Field
from pydantic.alias_generators import to_camel

from livekb.models.documents import ProcessedDocument
from livekb.models.ingestion import FileFailure
from livekb.models.vectors import QueryMatch


class _CamelModel(BaseModel):
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)


class ProcessAction(str, Enum):
    PROCESS_ALL = "process_all"
    PROCESS_SINGLE = "process_single"


class ProcessRequest(_CamelModel):
    """Body of ``POST /sessions/{id}/process``."""

    action: ProcessAction = ProcessAction.PROCESS_ALL
    file_name: str | None = Field(default=None, description="Required for process_single.")
    embed: bool = Field(default=True, description="Also embed and upsert into the vector index.")


class ProcessResponse(_CamelModel):
    success: bool
    message: str
    processed_files: int
    processed_chunks: int
    indexed_vectors: int = 0
    documents: list[ProcessedDocument] = Field(default_factory=list)
    failures: list[FileFailure] = Field(default_factory=list)


class ProcessedDocumentSummary(_CamelModel):
    file_name: str
    file_type: str
    total_chunks: int
    original_size: int
    processed_at: datetime


class ProcessedListResponse(_CamelModel):
    session_id: str
    documents: list[ProcessedDocumentSummary]
    total: int


class ProcessingStatusResponse(_CamelModel):
    session_id: str
    uploaded_files: list[str]
    processed_files: list[str]
    pending_files: list[str]
    total_chunks: int


class SessionFolderResponse(_CamelModel):
    session_id: str
    exists: bool
    uploads: list[str] = Field(default_factory=list)
    processed: list[str] = Field(default_factory=list)


class SessionCleanupResponse(_CamelModel):
    session_id: str
    removed: bool
    vectors_deleted: int = 0


class UploadResponse(_CamelModel):
    session_id: str
    file_name: str
    size: int


class ContextRequest(_CamelModel):
    topic: str = Field(..., min_length=1, max_length=2000)
    max_contexts: int = Field(default=5, ge=1, le=50)


class ContextResponse(_CamelModel):
    """An empty ``contexts`` list is a normal outcome; ``fallback`` says so."""

    contexts: list[str]
    total: int
    fallback: bool


class SearchRequest(_CamelModel):
    query: str = Field(..., min_length=1, max_length=2000)
    top_k: int = Field(default=10, ge=1, le=100)


class SearchResponse(_CamelModel):
    matches: list[QueryMatch]
    total_results: int


class HealthResponse(BaseModel):
    """Application health check response."""

    status: str
    version: str
    providers: dict[str, Any]


class ErrorResponse(BaseModel):
    """Standard error response body."""

    error: str
    detail: str | None = None
