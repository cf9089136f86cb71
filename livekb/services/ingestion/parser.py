"""File parser: dispatches an uploaded file to the right text reader.

* ``.txt`` / ``.md`` / ``.csv`` (configurable) are read as UTF-8 as-is.
* ``.pdf`` goes through an injected :class:`ITextExtractor`.  When the
  extractor is unavailable, fails, or finds no text layer, the parser
  returns a sentinel string naming the file and the reason, with
  ``pages=1`` and ``degraded=True``, so ingestion still yields an artifact.
* Any other extension is tried as strict UTF-8; undecodable bytes raise
  :class:`UnsupportedFileTypeError`.
"""

from __future__ import annotations

from pathlib import Path

import structlog

from livekb.interfaces.text_extractor import ITextExtractor
from livekb.models.documents import ParsedText
from livekb.providers.extraction.null_text_extractor import NullTextExtractor
from livekb.utils.errors import LiveKBError, UnsupportedFileTypeError

logger = structlog.get_logger(logger_name=__name__)

DEFAULT_TEXT_EXTENSIONS = frozenset({".txt", ".md", ".csv"})
PDF_EXTENSION = ".pdf"


def pdf_unavailable_text(file_name: str) -> str:
    return (
        f"[PDF file: {file_name} - PDF parsing library not available. "
        "Text extraction was skipped for this document.]"
    )


def pdf_failed_text(file_name: str, reason: str) -> str:
    return f"[PDF file: {file_name} - Parsing failed: {reason}]"


def pdf_empty_text(file_name: str) -> str:
    return f"[PDF file: {file_name} - No extractable text found (scanned or image-only PDF).]"


class DocumentParser:
    """Turns an uploaded file into :class:`ParsedText`."""

    def __init__(
        self,
        pdf_extractor: ITextExtractor | None = None,
        text_extensions: frozenset[str] | set[str] | list[str] | None = None,
    ) -> None:
        self._pdf_extractor = pdf_extractor or NullTextExtractor()
        self._text_extensions = frozenset(
            ext.lower() for ext in (text_extensions or DEFAULT_TEXT_EXTENSIONS)
        )

    def parse(self, file_path: Path | str, file_type: str | None = None) -> ParsedText:
        """Read *file_path* and return its text.

        Parameters
        ----------
        file_path:
            Path to the uploaded file.
        file_type:
            Extension to dispatch on (``".pdf"``); derived from the path when
            omitted.

        Raises
        ------
        UnsupportedFileTypeError
            Unknown extension whose bytes are not valid UTF-8.
        OSError
            The file cannot be read at all.
        """
        path = Path(file_path)
        extension = (file_type or path.suffix).lower()

        if extension == PDF_EXTENSION:
            return self._parse_pdf(path)

        raw = path.read_bytes()
        if extension in self._text_extensions:
            return ParsedText(text=raw.decode("utf-8", errors="replace"))

        try:
            text = raw.decode("utf-8")
        except UnicodeDecodeError as exc:
            logger.warning("unsupported_file_type", file_name=path.name, extension=extension)
            raise UnsupportedFileTypeError(extension) from exc

        logger.info("text_fallback_read", file_name=path.name, extension=extension)
        return ParsedText(text=text)

    def _parse_pdf(self, path: Path) -> ParsedText:
        extractor = self._pdf_extractor
        if not extractor.is_available():
            logger.warning("pdf_extractor_unavailable", file_name=path.name)
            return ParsedText(text=pdf_unavailable_text(path.name), pages=1, degraded=True)

        try:
            parsed = extractor.extract(path)
        except LiveKBError as exc:
            logger.warning("pdf_parse_degraded", file_name=path.name, error=exc.message)
            return ParsedText(text=pdf_failed_text(path.name, exc.message), pages=1, degraded=True)

        if not parsed.text.strip():
            logger.warning("pdf_parse_degraded", file_name=path.name, error="no text layer")
            return ParsedText(text=pdf_empty_text(path.name), pages=1, degraded=True)

        logger.info(
            "pdf_parsed",
            file_name=path.name,
            pages=parsed.pages,
            characters=len(parsed.text),
            extractor=extractor.get_provider_name(),
        )
        return parsed
