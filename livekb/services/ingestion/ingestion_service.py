"""Orchestrator for session document ingestion.

Pipeline stages: **parse -> chunk -> manifest** and, optionally,
**-> embed -> upsert**.

:class:`IngestionService` coordinates the parser, chunker and manifest
store (the "simple" path that only produces manifests) and, when an
embedder and index client are injected, the full RAG path that also
writes vectors into the session's namespace.  All collaborators are
constructor-injected so tests can swap any of them.

Failure policy:

* ``process_file`` / ``ingest_file`` raise on any error for that file.
* ``process_session_files`` / ``ingest_session`` catch and log a single
  file's failure and carry on with the rest; results hold successes only
  and the report lists every skipped file with its error.
* Embedding and upsert are fail-closed: a file whose vectors could not be
  written is reported as failed, never as indexed.
"""

from __future__ import annotations

import asyncio
import math
from datetime import datetime, timezone
from pathlib import Path

import structlog

from livekb.interfaces.manifest_store import IManifestStore
from livekb.models.documents import ChunkMetadata, DocumentChunk, ParsedText, ProcessedDocument
from livekb.models.ingestion import FileFailure, IngestionReport
from livekb.models.vectors import VectorRecord
from livekb.services.ingestion.batch_embedder import BatchEmbedder
from livekb.services.ingestion.chunker import TextChunker
from livekb.services.ingestion.parser import DocumentParser
from livekb.services.vector_index_client import VectorIndexClient
from livekb.utils.errors import (
    ConfigurationError,
    EmptyContentError,
    OperationCancelledError,
    UploadNotFoundError,
)

logger = structlog.get_logger(logger_name=__name__)


class IngestionService:
    """Orchestrates parse -> chunk -> manifest (-> embed -> upsert) per file."""

    def __init__(
        self,
        parser: DocumentParser,
        chunker: TextChunker,
        manifest_store: IManifestStore,
        embedder: BatchEmbedder | None = None,
        index_client: VectorIndexClient | None = None,
    ) -> None:
        self._parser = parser
        self._chunker = chunker
        self._manifest_store = manifest_store
        self._embedder = embedder
        self._index_client = index_client

    @property
    def can_index(self) -> bool:
        return self._embedder is not None and self._index_client is not None

    # ------------------------------------------------------------------
    # Parse / chunk / manifest
    # ------------------------------------------------------------------

    async def process_file(
        self,
        session_id: str,
        file_name: str,
        uploads_dir: Path,
        processed_dir: Path,
    ) -> ProcessedDocument:
        """Parse and chunk one uploaded file and persist its manifest.

        Raises
        ------
        UploadNotFoundError
            *file_name* is not a file under *uploads_dir*.
        EmptyContentError
            The parsed text is blank after trimming.
        UnsupportedFileTypeError
            The parser cannot read the file.
        """
        file_path = Path(uploads_dir) / file_name
        if Path(file_name).name != file_name or not file_path.is_file():
            raise UploadNotFoundError(f"File not found: {file_name}")

        original_size = file_path.stat().st_size
        file_type = file_path.suffix.lower()

        parsed = self._parser.parse(file_path, file_type)
        if not parsed.text.strip():
            raise EmptyContentError(f"No text content extracted from {file_name}")

        pieces = self._chunker.chunk(parsed.text)
        chunks = self._build_chunks(session_id, file_name, file_type, pieces, parsed)

        document = ProcessedDocument(
            file_name=file_name,
            file_type=file_type,
            original_size=original_size,
            chunks=chunks,
            total_chunks=len(chunks),
            processed_at=datetime.now(timezone.utc),
            session_id=session_id,
        )
        Path(processed_dir).mkdir(parents=True, exist_ok=True)
        self._manifest_store.save(document, Path(processed_dir))

        logger.info(
            "file_processed",
            session_id=session_id,
            file_name=file_name,
            file_type=file_type,
            size=original_size,
            chunks=len(chunks),
            degraded=parsed.degraded,
        )
        return document

    async def process_session_files(
        self,
        session_id: str,
        uploads_dir: Path,
        processed_dir: Path,
        cancel_event: asyncio.Event | None = None,
    ) -> list[ProcessedDocument]:
        """Process every uploaded file of a session; failures are skipped."""
        documents, _ = await self._process_all(session_id, uploads_dir, processed_dir, cancel_event)
        return documents

    def get_processed_document(
        self, session_id: str, file_name: str, processed_dir: Path
    ) -> ProcessedDocument | None:
        return self._manifest_store.load(session_id, file_name, Path(processed_dir))

    def list_processed_documents(self, processed_dir: Path) -> list[ProcessedDocument]:
        return self._manifest_store.list(Path(processed_dir))

    # ------------------------------------------------------------------
    # Embed / upsert
    # ------------------------------------------------------------------

    async def index_document(
        self,
        document: ProcessedDocument,
        cancel_event: asyncio.Event | None = None,
    ) -> int:
        """Embed a manifest's chunks and upsert them into the session namespace.

        Returns
        -------
        int
            Number of vectors written.
        """
        if self._embedder is None or self._index_client is None:
            raise ConfigurationError("Indexing requires an embedder and a vector index client")
        if not document.chunks:
            return 0

        vectors = await self._embedder.embed(
            [chunk.content for chunk in document.chunks], cancel_event=cancel_event
        )
        records = [
            VectorRecord(id=chunk.id, values=values, metadata=chunk.index_metadata())
            for chunk, values in zip(document.chunks, vectors, strict=True)
        ]
        written = await self._index_client.upsert(
            records, namespace=document.session_id, cancel_event=cancel_event
        )
        logger.info(
            "document_indexed",
            session_id=document.session_id,
            file_name=document.file_name,
            vectors=written,
        )
        return written

    async def ingest_file(
        self,
        session_id: str,
        file_name: str,
        uploads_dir: Path,
        processed_dir: Path,
        *,
        embed: bool = True,
        cancel_event: asyncio.Event | None = None,
    ) -> IngestionReport:
        """Process one file and, if *embed*, index it.  Errors propagate."""
        document = await self.process_file(session_id, file_name, uploads_dir, processed_dir)
        indexed = await self.index_document(document, cancel_event) if embed else 0
        return IngestionReport(
            session_id=session_id,
            processed_files=1,
            processed_chunks=document.total_chunks,
            indexed_vectors=indexed,
            documents=[document],
        )

    async def ingest_session(
        self,
        session_id: str,
        uploads_dir: Path,
        processed_dir: Path,
        *,
        embed: bool = True,
        cancel_event: asyncio.Event | None = None,
    ) -> IngestionReport:
        """Process (and optionally index) every file in a session's uploads."""
        if embed and not self.can_index:
            raise ConfigurationError("Indexing requires an embedder and a vector index client")

        documents, failures = await self._process_all(
            session_id, uploads_dir, processed_dir, cancel_event
        )

        indexed_total = 0
        if embed:
            indexed_documents: list[ProcessedDocument] = []
            for document in documents:
                try:
                    indexed_total += await self.index_document(document, cancel_event)
                except OperationCancelledError:
                    raise
                except Exception as exc:
                    logger.error(
                        "session_file_index_failed",
                        session_id=session_id,
                        file_name=document.file_name,
                        error=str(exc),
                    )
                    failures.append(self._failure(document.file_name, exc))
                    continue
                indexed_documents.append(document)
            documents = indexed_documents

        report = IngestionReport(
            session_id=session_id,
            processed_files=len(documents),
            processed_chunks=sum(d.total_chunks for d in documents),
            indexed_vectors=indexed_total,
            documents=documents,
            failures=failures,
        )
        logger.info(
            "session_ingested",
            session_id=session_id,
            files=report.processed_files,
            chunks=report.processed_chunks,
            vectors=report.indexed_vectors,
            failed=len(failures),
        )
        return report

    # ------------------------------------------------------------------
    # Internals
    # ------------------------------------------------------------------

    async def _process_all(
        self,
        session_id: str,
        uploads_dir: Path,
        processed_dir: Path,
        cancel_event: asyncio.Event | None,
    ) -> tuple[list[ProcessedDocument], list[FileFailure]]:
        uploads = Path(uploads_dir)
        if not uploads.is_dir():
            logger.error("uploads_dir_not_found", session_id=session_id, uploads_dir=str(uploads))
            return [], []

        files = sorted(p.name for p in uploads.iterdir() if p.is_file())
        documents: list[ProcessedDocument] = []
        failures: list[FileFailure] = []

        for file_name in files:
            if cancel_event is not None and cancel_event.is_set():
                raise OperationCancelledError(
                    f"Session {session_id} processing cancelled after {len(documents)} files"
                )
            try:
                documents.append(
                    await self.process_file(session_id, file_name, uploads, processed_dir)
                )
            except Exception as exc:
                logger.error(
                    "session_file_failed",
                    session_id=session_id,
                    file_name=file_name,
                    error_type=type(exc).__name__,
                    error=str(exc),
                )
                failures.append(self._failure(file_name, exc))

        logger.info(
            "session_files_processed",
            session_id=session_id,
            total=len(files),
            succeeded=len(documents),
            failed=len(failures),
        )
        return documents, failures

    @staticmethod
    def _build_chunks(
        session_id: str,
        file_name: str,
        file_type: str,
        pieces: list[str],
        parsed: ParsedText,
    ) -> list[DocumentChunk]:
        created_at = datetime.now(timezone.utc)
        contents = [piece.strip() for piece in pieces if piece.strip()]
        total = len(contents)

        chunks: list[DocumentChunk] = []
        for index, content in enumerate(contents):
            page_number = (
                math.floor(index / total * parsed.pages) + 1 if parsed.pages else None
            )
            chunks.append(
                DocumentChunk(
                    id=DocumentChunk.make_id(session_id, file_name, index),
                    content=content,
                    metadata=ChunkMetadata(
                        file_name=file_name,
                        file_type=file_type,
                        chunk_index=index,
                        total_chunks=total,
                        session_id=session_id,
                        source_file=file_name,
                        page_number=page_number,
                        word_count=len(content.split()),
                        created_at=created_at,
                    ),
                )
            )
        return chunks

    @staticmethod
    def _failure(file_name: str, exc: Exception) -> FileFailure:
        message = getattr(exc, "message", None) or str(exc) or type(exc).__name__
        return FileFailure(file_name=file_name, error=message, error_type=type(exc).__name__)
