"""Abstract base class for processing-manifest persistence."""

from __future__ import annotations

from abc import ABC, abstractmethod
from pathlib import Path

from livekb.models.documents import ProcessedDocument


# Concrete implementation: LocalManifestStore (livekb/providers/storage/)
class IManifestStore(ABC):
    """Persists :class:`ProcessedDocument` manifests and per-chunk side files.

    Manifests are addressed by ``(session_id, file_name)`` inside a
    session's processed area.
    """

    @abstractmethod
    def save(self, document: ProcessedDocument, processed_dir: Path) -> Path:
        """Write (or replace) the manifest and chunk side files for *document*."""

    @abstractmethod
    def load(self, session_id: str, file_name: str, processed_dir: Path) -> ProcessedDocument | None:
        """Return the manifest for *file_name*, or ``None`` if absent."""

    @abstractmethod
    def list(self, processed_dir: Path) -> list[ProcessedDocument]:
        """Return every readable manifest in *processed_dir*."""
