"""Vector-index data models: index descriptions, records, matches, snippets."""

from __future__ import annotations

from typing import Any

from pydantic import BaseModel, ConfigDict, Field
from pydantic.alias_generators import to_camel

_CAMEL_FROZEN = ConfigDict(frozen=True, alias_generator=to_camel, populate_by_name=True)

MetadataValue = str | int | float | bool


class IndexSpec(BaseModel):
    """Placement and metric of a vector index."""

    model_config = _CAMEL_FROZEN

    cloud: str = "aws"
    region: str = "us-west-2"
    metric: str = "cosine"


class IndexDescription(BaseModel):
    """What a vector backend reports about one index."""

    model_config = _CAMEL_FROZEN

    name: str
    dimension: int = Field(ge=1)
    spec: IndexSpec = Field(default_factory=IndexSpec)
    ready: bool = True
    vector_count: int = Field(default=0, ge=0)


class VectorRecord(BaseModel):
    """One vector plus its scalar metadata, as written to a namespace."""

    model_config = _CAMEL_FROZEN

    id: str = Field(min_length=1)
    values: list[float]
    metadata: dict[str, MetadataValue] = Field(default_factory=dict)


class QueryMatch(BaseModel):
    """A nearest-neighbour hit returned by a similarity query."""

    model_config = _CAMEL_FROZEN

    id: str
    score: float = Field(description="Similarity, higher is closer.")
    metadata: dict[str, Any] = Field(default_factory=dict)

    @property
    def content(self) -> str:
        return str(self.metadata.get("content", ""))

    @property
    def file_name(self) -> str:
        return str(self.metadata.get("fileName") or "Unknown source")


class ContextSnippet(BaseModel):
    """A labelled piece of retrieved context handed to a text generator."""

    model_config = _CAMEL_FROZEN

    source_label: str
    text: str
    score: float | None = None

    def format(self) -> str:
        return f"[Source: {self.source_label}]\n{self.text}"


class KnowledgeSearchResult(BaseModel):
    """Raw search output: all matches for a query, unfiltered by score."""

    model_config = _CAMEL_FROZEN

    matches: list[QueryMatch] = Field(default_factory=list)
    total_results: int = Field(default=0, ge=0)
