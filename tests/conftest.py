"""Shared pytest fixtures for the livekb test suite."""

from __future__ import annotations

import hashlib
import math
import struct
from pathlib import Path
from typing import Any
from unittest.mock import AsyncMock

import pytest

from livekb.interfaces.embedding_provider import IEmbeddingProvider
from livekb.interfaces.vector_index_provider import IVectorIndexProvider
from livekb.models.vectors import IndexDescription, IndexSpec, QueryMatch, VectorRecord
from livekb.providers.extraction.null_text_extractor import NullTextExtractor
from livekb.providers.storage.local_manifest_store import LocalManifestStore
from livekb.services.ingestion.batch_embedder import BatchEmbedder
from livekb.services.ingestion.chunker import TextChunker
from livekb.services.ingestion.ingestion_service import IngestionService
from livekb.services.ingestion.parser import DocumentParser
from livekb.services.retrieval_service import RetrievalService
from livekb.services.session_workspace import SessionWorkspace
from livekb.services.vector_index_client import VectorIndexClient
from livekb.utils.errors import IndexUnavailableError

EMBEDDING_DIM = 8


# ---------------------------------------------------------------------------
# Deterministic fakes
# ---------------------------------------------------------------------------


def hash_to_vector(text: str, dim: int = EMBEDDING_DIM) -> list[float]:
    """Deterministic unit vector derived from the SHA-256 of *text*."""
    raw = hashlib.sha256(text.encode("utf-8")).digest()
    while len(raw) < dim * 4:
        raw += hashlib.sha256(raw).digest()
    values = [
        (v % 2000) / 1000.0 - 1.0
        for v in struct.unpack(f"<{dim}I", raw[: dim * 4])
    ]
    magnitude = max(math.sqrt(sum(v * v for v in values)), 1e-10)
    return [v / magnitude for v in values]


class MockEmbeddingProvider(IEmbeddingProvider):
    """In-memory deterministic embedding provider that records its calls."""

    def __init__(self, dimension: int = EMBEDDING_DIM) -> None:
        self._dimension = dimension
        self.calls: list[tuple[list[str], str]] = []

    async def embed(self, texts: list[str], input_type: str = "passage") -> list[list[float]]:
        self.calls.append((list(texts), input_type))
        return [hash_to_vector(t, self._dimension) for t in texts]

    async def embed_single(self, text: str, input_type: str = "query") -> list[float]:
        return (await self.embed([text], input_type=input_type))[0]

    def get_dimension(self) -> int:
        return self._dimension

    def get_provider_name(self) -> str:
        return "mock-embedding"

    def is_available(self) -> bool:
        return True


class InMemoryIndexProvider(IVectorIndexProvider):
    """Namespaced vector index held in dicts; cosine similarity scoring."""

    def __init__(self) -> None:
        self.descriptions: dict[str, IndexDescription] = {}
        self.records: dict[str, dict[str, dict[str, VectorRecord]]] = {}
        self.query_calls: list[dict[str, Any]] = []

    async def list_indexes(self) -> list[str]:
        return sorted(self.descriptions)

    async def describe_index(self, name: str) -> IndexDescription:
        if name not in self.descriptions:
            raise IndexUnavailableError(f"No index {name}", provider_name="memory")
        count = sum(len(ns) for ns in self.records[name].values())
        return self.descriptions[name].model_copy(update={"vector_count": count})

    async def create_index(self, name: str, dimension: int, spec: IndexSpec) -> IndexDescription:
        self.descriptions[name] = IndexDescription(name=name, dimension=dimension, spec=spec)
        self.records[name] = {}
        return self.descriptions[name]

    async def upsert(self, index_name: str, records: list[VectorRecord], namespace: str) -> int:
        bucket = self.records[index_name].setdefault(namespace, {})
        for record in records:
            bucket[record.id] = record
        return len(records)

    async def query(
        self,
        index_name: str,
        vector: list[float],
        top_k: int,
        namespace: str,
        metadata_filter: dict[str, Any] | None = None,
    ) -> list[QueryMatch]:
        self.query_calls.append(
            {"namespace": namespace, "top_k": top_k, "filter": metadata_filter}
        )
        matches = []
        for record in self.records.get(index_name, {}).get(namespace, {}).values():
            if not _matches(record.metadata, metadata_filter):
                continue
            score = sum(a * b for a, b in zip(vector, record.values, strict=True))
            matches.append(QueryMatch(id=record.id, score=score, metadata=record.metadata))
        matches.sort(key=lambda m: m.score, reverse=True)
        return matches[:top_k]

    async def delete_namespace(self, index_name: str, namespace: str) -> int:
        return len(self.records.get(index_name, {}).pop(namespace, {}))

    def get_provider_name(self) -> str:
        return "memory"

    def is_available(self) -> bool:
        return True


def _matches(metadata: dict[str, Any], metadata_filter: dict[str, Any] | None) -> bool:
    for key, condition in (metadata_filter or {}).items():
        expected = condition.get("$eq") if isinstance(condition, dict) else condition
        if metadata.get(key) != expected:
            return False
    return True


# ---------------------------------------------------------------------------
# Fixtures
# ---------------------------------------------------------------------------


@pytest.fixture
def project_root() -> Path:
    return Path(__file__).parent.parent


@pytest.fixture
def embedding_provider() -> MockEmbeddingProvider:
    return MockEmbeddingProvider()


@pytest.fixture
def index_provider() -> InMemoryIndexProvider:
    return InMemoryIndexProvider()


@pytest.fixture
def no_sleep() -> AsyncMock:
    """Stand-in for ``asyncio.sleep`` so backoff and batch delays are instant."""
    return AsyncMock(return_value=None)


@pytest.fixture
def embedder(embedding_provider: MockEmbeddingProvider, no_sleep: AsyncMock) -> BatchEmbedder:
    return BatchEmbedder(embedding_provider, batch_size=90, batch_delay=0.1, sleep=no_sleep)


@pytest.fixture
def index_client(index_provider: InMemoryIndexProvider, no_sleep: AsyncMock) -> VectorIndexClient:
    return VectorIndexClient(
        index_provider,
        index_name="test-index",
        dimension=EMBEDDING_DIM,
        query_timeout=5.0,
        sleep=no_sleep,
    )


@pytest.fixture
def workspace(tmp_path: Path) -> SessionWorkspace:
    return SessionWorkspace(base_dir=tmp_path / "sessions", max_upload_bytes=1024 * 1024)


@pytest.fixture
def ingestion_service(embedder: BatchEmbedder, index_client: VectorIndexClient) -> IngestionService:
    return IngestionService(
        parser=DocumentParser(pdf_extractor=NullTextExtractor()),
        chunker=TextChunker(chunk_size=1000, overlap=200),
        manifest_store=LocalManifestStore(),
        embedder=embedder,
        index_client=index_client,
    )


@pytest.fixture
def retrieval_service(embedder: BatchEmbedder, index_client: VectorIndexClient) -> RetrievalService:
    return RetrievalService(embedder=embedder, index_client=index_client, similarity_threshold=0.7)
