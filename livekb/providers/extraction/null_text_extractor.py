"""Extractor used when PDF extraction is switched off or not installed."""

from __future__ import annotations

from pathlib import Path

from livekb.interfaces.text_extractor import ITextExtractor
from livekb.models.documents import ParsedText
from livekb.utils.errors import ProviderUnavailableError


class NullTextExtractor(ITextExtractor):
    """Always reports unavailable, so the parser takes its degraded path."""

    def extract(self, file_path: Path) -> ParsedText:
        raise ProviderUnavailableError(
            message=f"No PDF text extractor configured for {file_path.name}",
            provider_name=self.get_provider_name(),
        )

    def get_provider_name(self) -> str:
        return "null"

    def is_available(self) -> bool:
        return False
