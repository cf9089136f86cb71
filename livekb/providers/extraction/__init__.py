"""Text extractors for binary document formats."""

from livekb.providers.extraction.null_text_extractor import NullTextExtractor
from livekb.providers.extraction.pymupdf_text_extractor import PyMuPDFTextExtractor

__all__ = ["NullTextExtractor", "PyMuPDFTextExtractor"]
