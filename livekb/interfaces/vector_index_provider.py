"""Abstract base class for vector-index backends.

A backend stores fixed-dimension vectors in named indexes, partitioned by
namespace.  Retry, timeouts and index-handle caching are layered on top by
:class:`~livekb.services.vector_index_client.VectorIndexClient`; backends
make one attempt per call and raise on failure.

**Filter syntax** (``metadata_filter`` in :meth:`query`) follows the
common Mongo-style subset::

    {"sessionId": {"$eq": "sess-1"}}
    {"fileName": "notes.md"}                  # shorthand for $eq
    {"chunkIndex": {"$lte": 3}}

Multiple top-level keys are AND-ed.
"""

from __future__ import annotations

from abc import ABC, abstractmethod
from typing import Any

from livekb.models.vectors import IndexDescription, IndexSpec, QueryMatch, VectorRecord


# Concrete implementation: ChromaIndexProvider (livekb/providers/vector_index/)
class IVectorIndexProvider(ABC):
    """Contract for namespaced vector storage and similarity search."""

    @abstractmethod
    async def list_indexes(self) -> list[str]:
        """Return the names of all existing indexes."""

    @abstractmethod
    async def describe_index(self, name: str) -> IndexDescription:
        """Return the description of index *name*.

        Raises
        ------
        livekb.utils.errors.IndexUnavailableError
            If the index does not exist.
        """

    @abstractmethod
    async def create_index(self, name: str, dimension: int, spec: IndexSpec) -> IndexDescription:
        """Create index *name*; the caller has already checked it is absent."""

    @abstractmethod
    async def upsert(self, index_name: str, records: list[VectorRecord], namespace: str) -> int:
        """Insert or overwrite *records* in *namespace*.

        Writing the same ids twice must overwrite, never duplicate.

        Returns
        -------
        int
            The number of records written.
        """

    @abstractmethod
    async def query(
        self,
        index_name: str,
        vector: list[float],
        top_k: int,
        namespace: str,
        metadata_filter: dict[str, Any] | None = None,
    ) -> list[QueryMatch]:
        """Return up to *top_k* nearest records in *namespace*, best first."""

    @abstractmethod
    async def delete_namespace(self, index_name: str, namespace: str) -> int:
        """Remove every record in *namespace*; returns the number deleted."""

    @abstractmethod
    def get_provider_name(self) -> str:
        """Return a short identifier, e.g. ``"chromadb"``."""

    @abstractmethod
    def is_available(self) -> bool:
        """Return ``True`` if the backend is reachable."""
