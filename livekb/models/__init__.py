"""livekb domain models -- re-exports all public model classes.

    - documents.py  -- parsed text, chunks, per-file manifests
    - vectors.py    -- index descriptions, vector records, matches, snippets
    - ingestion.py  -- per-file failures and run reports
"""

from __future__ import annotations

from livekb.models.documents import (
    ChunkMetadata,
    DocumentChunk,
    ParsedText,
    ProcessedDocument,
)
from livekb.models.ingestion import FileFailure, IngestionReport
from livekb.models.vectors import (
    ContextSnippet,
    IndexDescription,
    IndexSpec,
    KnowledgeSearchResult,
    QueryMatch,
    VectorRecord,
)

__all__ = [
    "ChunkMetadata",
    "ContextSnippet",
    "DocumentChunk",
    "FileFailure",
    "IndexDescription",
    "IndexSpec",
    "IngestionReport",
    "KnowledgeSearchResult",
    "ParsedText",
    "ProcessedDocument",
    "QueryMatch",
    "VectorRecord",
]
