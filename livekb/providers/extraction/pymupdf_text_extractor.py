"""PDF text extraction via PyMuPDF (fitz).

Reads the document page by page with ``page.get_text("text")`` and joins
non-empty pages with a blank line.  ``pages`` in the result is the
document's page count, including pages that carried no text layer.
"""

from __future__ import annotations

from pathlib import Path

import fitz  # PyMuPDF -- the "fitz" import name is a PyMuPDF convention
import structlog

from livekb.interfaces.text_extractor import ITextExtractor
from livekb.models.documents import ParsedText
from livekb.utils.errors import TextExtractionError

logger = structlog.get_logger(logger_name=__name__)


class PyMuPDFTextExtractor(ITextExtractor):
    """Page-aware PDF extractor backed by PyMuPDF."""

    def extract(self, file_path: Path) -> ParsedText:
        try:
            doc = fitz.open(str(file_path))
        except Exception as exc:
            logger.error("pdf_open_failed", file_path=str(file_path), error=str(exc))
            raise TextExtractionError(
                message=f"Could not open PDF: {exc}",
                provider_name=self.get_provider_name(),
            ) from exc

        page_texts: list[str] = []
        try:
            page_count = len(doc)
            for page_num in range(page_count):
                text = doc[page_num].get_text("text").strip()
                if text:
                    page_texts.append(text)
        except Exception as exc:
            raise TextExtractionError(
                message=f"Could not read PDF pages: {exc}",
                provider_name=self.get_provider_name(),
            ) from exc
        finally:
            doc.close()

        if not page_texts:
            logger.warning("pdf_no_text_extracted", file_path=str(file_path), pages=page_count)

        return ParsedText(text="\n\n".join(page_texts), pages=max(page_count, 1))

    def get_provider_name(self) -> str:
        return "pymupdf"

    def is_available(self) -> bool:
        return True
