"""Abstract base class for binary-document text extractors (PDF today)."""

from __future__ import annotations

from abc import ABC, abstractmethod
from pathlib import Path

from livekb.models.documents import ParsedText


# Concrete implementations (livekb/providers/extraction/):
#   PyMuPDFTextExtractor -- page-aware PDF extraction via PyMuPDF (fitz)
#   NullTextExtractor    -- always unavailable; forces the degraded path
class ITextExtractor(ABC):
    """Contract for extracting plain text from a binary document."""

    @abstractmethod
    def extract(self, file_path: Path) -> ParsedText:
        """Extract text from *file_path*.

        Returns
        -------
        ParsedText
            Joined page text with ``pages`` set to the page count.

        Raises
        ------
        livekb.utils.errors.TextExtractionError
            If the document cannot be opened or read.
        livekb.utils.errors.ProviderUnavailableError
            If the extractor is not usable in this environment.
        """

    @abstractmethod
    def get_provider_name(self) -> str:
        """Return a short identifier, e.g. ``"pymupdf"``."""

    @abstractmethod
    def is_available(self) -> bool:
        """Return ``True`` if :meth:`extract` can be called."""
