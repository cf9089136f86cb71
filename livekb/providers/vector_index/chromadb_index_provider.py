"""ChromaDB vector index provider adapter.

Wraps ``chromadb.PersistentClient`` to implement
:class:`IVectorIndexProvider`.  Fully local, no external service needed.

Mapping onto ChromaDB:

* an *index* is a collection; its metadata records ``dimension``,
  ``metric``, ``cloud`` and ``region`` so :meth:`describe_index` can
  report them back;
* a *namespace* is the reserved ``_namespace`` metadata field plus an
  ``<namespace>::`` id prefix, so the same record id in two namespaces
  never collides and every query is filtered to one namespace;
* similarity score is ``1 - distance`` for cosine and inner-product
  spaces and ``1 / (1 + distance)`` for L2.

ChromaDB calls are blocking, so they run in a worker thread; that also
lets the caller's ``asyncio.wait_for`` timeout take effect.
"""

from __future__ import annotations

import asyncio
import os
from typing import Any

# Telemetry off before chromadb is imported; some versions only read the env var.
os.environ["ANONYMIZED_TELEMETRY"] = "False"

import chromadb
import structlog

from livekb.interfaces.vector_index_provider import IVectorIndexProvider
from livekb.models.vectors import IndexDescription, IndexSpec, QueryMatch, VectorRecord
from livekb.utils.errors import IndexUnavailableError, RAGError

logger = structlog.get_logger(logger_name=__name__)

NAMESPACE_FIELD = "_namespace"
_ID_SEPARATOR = "::"

# Pinecone-style metric names -> ChromaDB hnsw spaces.
_METRIC_TO_SPACE: dict[str, str] = {
    "cosine": "cosine",
    "dotproduct": "ip",
    "euclidean": "l2",
}


class _NoopEmbeddingFunction(chromadb.EmbeddingFunction[list[str]]):
    """Keeps ChromaDB from loading its default ONNX model.

    Every vector is computed by livekb's embedding providers before upsert,
    so ChromaDB's own embedding is never invoked.
    """

    def __call__(self, input: list[str]) -> list[list[float]]:
        raise NotImplementedError("livekb passes pre-computed embeddings to ChromaDB")

    def name(self) -> str:
        return "noop_precomputed"


class ChromaIndexProvider(IVectorIndexProvider):
    """Vector index backend over a local ChromaDB store."""

    def __init__(
        self,
        persist_directory: str = "./data/chromadb",
        client: Any | None = None,
    ) -> None:
        self._persist_directory = persist_directory
        self._client = client or chromadb.PersistentClient(
            path=persist_directory,
            settings=chromadb.config.Settings(anonymized_telemetry=False),
        )
        self._collections: dict[str, Any] = {}

    # ------------------------------------------------------------------
    # Index lifecycle
    # ------------------------------------------------------------------

    async def list_indexes(self) -> list[str]:
        try:
            collections = await asyncio.to_thread(self._client.list_collections)
        except Exception as exc:
            raise IndexUnavailableError(
                message=f"ChromaDB list_collections failed: {exc}",
                provider_name=self.get_provider_name(),
            ) from exc
        # Newer chromadb returns names, older returns Collection objects.
        return [c if isinstance(c, str) else c.name for c in collections]

    async def describe_index(self, name: str) -> IndexDescription:
        collection = await self._get_collection(name)
        meta = collection.metadata or {}
        if "dimension" not in meta:
            raise IndexUnavailableError(
                message=f"Collection '{name}' was not created by livekb (no dimension recorded)",
                provider_name=self.get_provider_name(),
            )
        count = await asyncio.to_thread(collection.count)
        return IndexDescription(
            name=name,
            dimension=int(meta["dimension"]),
            spec=IndexSpec(
                cloud=str(meta.get("cloud", "local")),
                region=str(meta.get("region", "local")),
                metric=str(meta.get("metric", "cosine")),
            ),
            ready=True,
            vector_count=count,
        )

    async def create_index(self, name: str, dimension: int, spec: IndexSpec) -> IndexDescription:
        space = _METRIC_TO_SPACE.get(spec.metric)
        if space is None:
            raise IndexUnavailableError(
                message=f"Unsupported metric '{spec.metric}'",
                provider_name=self.get_provider_name(),
            )
        metadata = {
            "hnsw:space": space,
            "dimension": dimension,
            "metric": spec.metric,
            "cloud": spec.cloud,
            "region": spec.region,
        }
        try:
            collection = await asyncio.to_thread(
                self._client.create_collection,
                name=name,
                metadata=metadata,
                embedding_function=_NoopEmbeddingFunction(),
            )
        except Exception as exc:
            raise IndexUnavailableError(
                message=f"ChromaDB create_collection '{name}' failed: {exc}",
                provider_name=self.get_provider_name(),
            ) from exc

        self._collections[name] = collection
        logger.info("chromadb_index_created", index=name, dimension=dimension, metric=spec.metric)
        return IndexDescription(name=name, dimension=dimension, spec=spec, ready=True)

    # ------------------------------------------------------------------
    # Records
    # ------------------------------------------------------------------

    async def upsert(self, index_name: str, records: list[VectorRecord], namespace: str) -> int:
        if not records:
            return 0
        collection = await self._get_collection(index_name)

        ids = [self._storage_id(namespace, r.id) for r in records]
        embeddings = [list(r.values) for r in records]
        metadatas = [{**r.metadata, NAMESPACE_FIELD: namespace} for r in records]

        try:
            await asyncio.to_thread(
                collection.upsert,
                ids=ids,
                embeddings=embeddings,
                metadatas=metadatas,
            )
        except Exception as exc:
            raise RAGError(
                message=f"ChromaDB upsert failed: {exc}",
                provider_name=self.get_provider_name(),
            ) from exc

        logger.debug("chromadb_upsert", index=index_name, namespace=namespace, count=len(records))
        return len(records)

    async def query(
        self,
        index_name: str,
        vector: list[float],
        top_k: int,
        namespace: str,
        metadata_filter: dict[str, Any] | None = None,
    ) -> list[QueryMatch]:
        collection = await self._get_collection(index_name)
        try:
            count = await asyncio.to_thread(collection.count)
            if count == 0 or top_k <= 0:
                return []

            results = await asyncio.to_thread(
                collection.query,
                query_embeddings=[vector],
                n_results=min(top_k, count),
                where=self._translate_filter(namespace, metadata_filter),
                include=["metadatas", "distances"],
            )
        except Exception as exc:
            raise RAGError(
                message=f"ChromaDB query failed: {exc}",
                provider_name=self.get_provider_name(),
            ) from exc

        ids = results["ids"][0] if results.get("ids") else []
        metadatas = results["metadatas"][0] if results.get("metadatas") else [{}] * len(ids)
        distances = results["distances"][0] if results.get("distances") else [0.0] * len(ids)
        metric = (collection.metadata or {}).get("metric", "cosine")

        matches: list[QueryMatch] = []
        for storage_id, meta, distance in zip(ids, metadatas, distances, strict=True):
            clean_meta = {k: v for k, v in (meta or {}).items() if k != NAMESPACE_FIELD}
            matches.append(
                QueryMatch(
                    id=self._record_id(namespace, storage_id),
                    score=self._distance_to_score(distance, metric),
                    metadata=clean_meta,
                )
            )
        matches.sort(key=lambda m: m.score, reverse=True)
        return matches

    async def delete_namespace(self, index_name: str, namespace: str) -> int:
        collection = await self._get_collection(index_name)
        where = {NAMESPACE_FIELD: {"$eq": namespace}}
        try:
            existing = await asyncio.to_thread(collection.get, where=where, include=[])
            count = len(existing["ids"]) if existing["ids"] else 0
            if count > 0:
                await asyncio.to_thread(collection.delete, where=where)
        except Exception as exc:
            raise RAGError(
                message=f"ChromaDB delete_namespace failed: {exc}",
                provider_name=self.get_provider_name(),
            ) from exc

        logger.info("chromadb_namespace_deleted", index=index_name, namespace=namespace, count=count)
        return count

    def get_provider_name(self) -> str:
        return "chromadb"

    def is_available(self) -> bool:
        """Return ``True`` if the ChromaDB client answers a heartbeat."""
        try:
            self._client.heartbeat()
            return True
        except Exception:
            return False

    # ------------------------------------------------------------------
    # Private helpers
    # ------------------------------------------------------------------

    async def _get_collection(self, name: str) -> Any:
        if name in self._collections:
            return self._collections[name]
        try:
            collection = await asyncio.to_thread(
                self._client.get_collection,
                name=name,
                embedding_function=_NoopEmbeddingFunction(),
            )
        except Exception as exc:
            raise IndexUnavailableError(
                message=f"Index '{name}' not found: {exc}",
                provider_name=self.get_provider_name(),
            ) from exc
        self._collections[name] = collection
        return collection

    @staticmethod
    def _storage_id(namespace: str, record_id: str) -> str:
        return f"{namespace}{_ID_SEPARATOR}{record_id}"

    @staticmethod
    def _record_id(namespace: str, storage_id: str) -> str:
        prefix = f"{namespace}{_ID_SEPARATOR}"
        return storage_id[len(prefix):] if storage_id.startswith(prefix) else storage_id

    @staticmethod
    def _distance_to_score(distance: float, metric: str) -> float:
        if metric == "euclidean":
            return 1.0 / (1.0 + distance)
        return max(-1.0, min(1.0, 1.0 - distance))

    @staticmethod
    def _translate_filter(namespace: str, metadata_filter: dict[str, Any] | None) -> dict[str, Any]:
        """Build a ChromaDB ``where`` clause scoped to *namespace*.

        ``{"sessionId": "a"}`` is shorthand for ``{"sessionId": {"$eq": "a"}}``;
        operator dicts with several operators become one clause per operator.
        """
        clauses: list[dict[str, Any]] = [{NAMESPACE_FIELD: {"$eq": namespace}}]
        for key, condition in (metadata_filter or {}).items():
            if isinstance(condition, dict):
                for op, value in condition.items():
                    clauses.append({key: {op: value}})
            else:
                clauses.append({key: {"$eq": condition}})

        if len(clauses) == 1:
            return clauses[0]
        return {"$and": clauses}
