"""Filesystem manifest store.

Layout inside a session's processed area::

    processed/
      notes.md.json                      <- ProcessedDocument manifest
      chunks/
        sess-1_notes.md_chunk_0.json     <- one DocumentChunk per file

JSON uses the camelCase record shape (``fileName``, ``chunkIndex`` ...).
"""

from __future__ import annotations

import glob
import re
from pathlib import Path

import structlog
from pydantic import ValidationError

from livekb.interfaces.manifest_store import IManifestStore
from livekb.models.documents import DocumentChunk, ProcessedDocument

logger = structlog.get_logger(logger_name=__name__)

CHUNKS_DIRNAME = "chunks"
_MANIFEST_SUFFIX = ".json"


class LocalManifestStore(IManifestStore):
    """Stores manifests as JSON files under the session's processed folder."""

    def save(self, document: ProcessedDocument, processed_dir: Path) -> Path:
        processed_dir = Path(processed_dir)
        chunks_dir = processed_dir / CHUNKS_DIRNAME
        chunks_dir.mkdir(parents=True, exist_ok=True)

        previous = self.load(document.session_id, document.file_name, processed_dir)
        if previous is not None and previous.total_chunks > document.total_chunks:
            logger.warning(
                "stale_chunk_ids_possible",
                session_id=document.session_id,
                file_name=document.file_name,
                previous_chunks=previous.total_chunks,
                current_chunks=document.total_chunks,
            )

        # Replace, never merge, the chunk side files of an earlier run.
        # The prefix also matches uploads named "<file>_chunk_...", so the
        # remainder must be a bare chunk index.
        prefix = DocumentChunk.make_id(document.session_id, document.file_name, 0)[:-1]
        own_side_file = re.compile(re.escape(prefix) + r"\d+" + re.escape(_MANIFEST_SUFFIX))
        for stale in glob.glob(str(chunks_dir / f"{glob.escape(prefix)}*{_MANIFEST_SUFFIX}")):
            if own_side_file.fullmatch(Path(stale).name):
                Path(stale).unlink(missing_ok=True)

        for chunk in document.chunks:
            (chunks_dir / f"{chunk.id}{_MANIFEST_SUFFIX}").write_text(
                chunk.model_dump_json(by_alias=True, indent=2), encoding="utf-8"
            )

        manifest_path = processed_dir / f"{document.file_name}{_MANIFEST_SUFFIX}"
        manifest_path.write_text(document.model_dump_json(by_alias=True, indent=2), encoding="utf-8")
        logger.debug("manifest_saved", path=str(manifest_path), chunks=document.total_chunks)
        return manifest_path

    def load(self, session_id: str, file_name: str, processed_dir: Path) -> ProcessedDocument | None:
        manifest_path = Path(processed_dir) / f"{file_name}{_MANIFEST_SUFFIX}"
        if not manifest_path.is_file():
            return None
        document = self._read_manifest(manifest_path)
        if document is None or document.session_id != session_id:
            return None
        return document

    def list(self, processed_dir: Path) -> list[ProcessedDocument]:
        processed_dir = Path(processed_dir)
        if not processed_dir.is_dir():
            return []

        documents: list[ProcessedDocument] = []
        for path in sorted(processed_dir.glob(f"*{_MANIFEST_SUFFIX}")):
            if not path.is_file():
                continue
            document = self._read_manifest(path)
            if document is not None:
                documents.append(document)
        return documents

    @staticmethod
    def _read_manifest(path: Path) -> ProcessedDocument | None:
        try:
            return ProcessedDocument.model_validate_json(path.read_text(encoding="utf-8"))
        except (OSError, ValidationError) as exc:
            logger.warning("manifest_unreadable", path=str(path), error=str(exc))
            return None
