"""Document-side data models: parsed text, chunks and processing manifests.

All models are frozen pydantic v2 models.  Python attributes are
snake_case; the JSON form (manifests on disk, API bodies) uses camelCase
keys such as ``fileName`` and ``chunkIndex`` via an alias generator, so
always dump with ``by_alias=True`` when persisting.

Lifecycle:

    ParsedText       -- produced by the parser for one uploaded file
    DocumentChunk    -- one bounded window of that text plus metadata
    ProcessedDocument-- the manifest for one file (all of its chunks)

Chunks and manifests are never mutated after creation; re-processing a
file replaces them wholesale.
"""

from __future__ import annotations

from datetime import datetime

from pydantic import BaseModel, ConfigDict, Field
from pydantic.alias_generators import to_camel

# Indexed records carry a content preview; chunk text above this is cut.
INDEX_CONTENT_PREVIEW_CHARS = 2000

_CAMEL_FROZEN = ConfigDict(frozen=True, alias_generator=to_camel, populate_by_name=True)


class ParsedText(BaseModel):
    """Text extracted from one file by the parser."""

    model_config = _CAMEL_FROZEN

    text: str = Field(description="Extracted text, or a sentinel when extraction degraded.")
    pages: int | None = Field(default=None, ge=1, description="Page count when the format has pages.")
    degraded: bool = Field(
        default=False,
        description="True when text is a placeholder because extraction was unavailable or failed.",
    )


# ---------------------------------------------------------------------------
# DocumentChunk
# ---------------------------------------------------------------------------
class ChunkMetadata(BaseModel):
    """Positional and provenance metadata attached to every chunk."""

    model_config = _CAMEL_FROZEN

    file_name: str
    file_type: str = Field(description="Lowercased extension including the dot, e.g. '.pdf'.")
    chunk_index: int = Field(ge=0)
    total_chunks: int = Field(ge=1)
    session_id: str
    source_file: str = Field(description="Name of the uploaded file the chunk was read from.")
    page_number: int | None = Field(default=None, ge=1)
    word_count: int = Field(ge=0)
    created_at: datetime


class DocumentChunk(BaseModel):
    """A bounded substring of a source document with positional metadata."""

    model_config = _CAMEL_FROZEN

    id: str = Field(description="Deterministic id: '<sessionId>_<fileName>_chunk_<index>'.")
    content: str = Field(min_length=1)
    metadata: ChunkMetadata

    @staticmethod
    def make_id(session_id: str, file_name: str, chunk_index: int) -> str:
        """Build the deterministic chunk id for a (session, file, index) triple."""
        return f"{session_id}_{file_name}_chunk_{chunk_index}"

    def index_metadata(self, max_content_chars: int = INDEX_CONTENT_PREVIEW_CHARS) -> dict[str, str | int]:
        """Flatten to the scalar metadata stored next to the chunk's vector.

        Carries enough to render a labelled context snippet without
        re-reading the manifest.  ``pageNumber`` is omitted when unknown
        because vector stores reject null metadata values.
        """
        meta: dict[str, str | int] = {
            "fileName": self.metadata.file_name,
            "sessionId": self.metadata.session_id,
            "fileType": self.metadata.file_type,
            "chunkIndex": self.metadata.chunk_index,
            "totalChunks": self.metadata.total_chunks,
            "wordCount": self.metadata.word_count,
            "content": self.content[:max_content_chars],
        }
        if self.metadata.page_number is not None:
            meta["pageNumber"] = self.metadata.page_number
        return meta


# ---------------------------------------------------------------------------
# ProcessedDocument -- ingestion manifest for one file.
# ---------------------------------------------------------------------------
class ProcessedDocument(BaseModel):
    """Manifest written after a file has been parsed and chunked."""

    model_config = _CAMEL_FROZEN

    file_name: str
    file_type: str
    original_size: int = Field(ge=0, description="Size of the uploaded file in bytes.")
    chunks: list[DocumentChunk] = Field(default_factory=list)
    total_chunks: int = Field(ge=0)
    processed_at: datetime
    session_id: str
