"""Unit tests for livekb data models -- aliases, ids and derived fields."""

from __future__ import annotations

from datetime import datetime, timezone

import pytest
from pydantic import ValidationError

from livekb.models.documents import (
    INDEX_CONTENT_PREVIEW_CHARS,
    ChunkMetadata,
    DocumentChunk,
    ParsedText,
)
from livekb.models.ingestion import FileFailure, IngestionReport
from livekb.models.vectors import ContextSnippet, QueryMatch


def _chunk(content: str = "Some text here.", page_number: int | None = None) -> DocumentChunk:
    return DocumentChunk(
        id=DocumentChunk.make_id("sessA", "doc.txt", 0),
        content=content,
        metadata=ChunkMetadata(
            file_name="doc.txt",
            file_type=".txt",
            chunk_index=0,
            total_chunks=1,
            session_id="sessA",
            source_file="doc.txt",
            page_number=page_number,
            word_count=len(content.split()),
            created_at=datetime(2026, 1, 1, tzinfo=timezone.utc),
        ),
    )


class TestDocumentChunk:
    def test_make_id(self) -> None:
        assert DocumentChunk.make_id("sessA", "doc.txt", 3) == "sessA_doc.txt_chunk_3"

    def test_camel_case_dump(self) -> None:
        payload = _chunk().model_dump(by_alias=True)
        metadata = payload["metadata"]

        assert set(metadata) >= {"fileName", "fileType", "chunkIndex", "totalChunks", "sessionId", "wordCount"}
        assert metadata["pageNumber"] is None

    def test_accepts_camel_case_input(self) -> None:
        chunk = _chunk()
        assert DocumentChunk.model_validate(chunk.model_dump(by_alias=True)) == chunk

    def test_empty_content_rejected(self) -> None:
        with pytest.raises(ValidationError):
            _chunk(content="")

    def test_frozen(self) -> None:
        with pytest.raises(ValidationError):
            _chunk().content = "changed"  # type: ignore[misc]

    def test_index_metadata_truncates_content(self) -> None:
        meta = _chunk(content="x" * 2500).index_metadata()

        assert len(meta["content"]) == INDEX_CONTENT_PREVIEW_CHARS
        assert meta["fileName"] == "doc.txt"
        assert meta["sessionId"] == "sessA"
        assert "pageNumber" not in meta

    def test_index_metadata_includes_known_page(self) -> None:
        assert _chunk(page_number=2).index_metadata()["pageNumber"] == 2


class TestParsedText:
    def test_pages_must_be_positive(self) -> None:
        with pytest.raises(ValidationError):
            ParsedText(text="x", pages=0)


class TestVectorModels:
    def test_query_match_accessors(self) -> None:
        match = QueryMatch(id="c", score=0.8, metadata={"fileName": "a.md", "content": "body"})
        assert match.file_name == "a.md"
        assert match.content == "body"

    def test_query_match_without_file_name(self) -> None:
        assert QueryMatch(id="c", score=0.8).file_name == "Unknown source"

    def test_context_snippet_format(self) -> None:
        snippet = ContextSnippet(source_label="a.md", text="body text")
        assert snippet.format() == "[Source: a.md]\nbody text"


class TestIngestionReport:
    def test_success_reflects_failures(self) -> None:
        assert IngestionReport(session_id="s").success is True
        failed = IngestionReport(session_id="s", failures=[FileFailure(file_name="x", error="bad")])
        assert failed.success is False

    def test_camel_case_dump(self) -> None:
        payload = IngestionReport(session_id="s", processed_files=2).model_dump(by_alias=True)
        assert payload["processedFiles"] == 2
        assert payload["indexedVectors"] == 0
