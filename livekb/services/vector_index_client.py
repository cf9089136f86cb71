"""Vector index client: index lifecycle, namespaced upsert, resilient query.

Sits between the ingestion/retrieval services and an
:class:`IVectorIndexProvider` backend and adds the policies the backend
does not own:

* ``get_or_create_index`` is idempotent, refuses an existing index whose
  dimension differs, waits for a new index to report ready, and caches the
  resolved description per index name for the client's lifetime;
* ``upsert`` rejects any vector whose length differs from the index
  dimension before writing anything, then writes in batches;
* ``query`` wraps each attempt in a timeout and retries with exponential
  backoff.  The final failure is raised as :class:`QueryTimeoutError` or
  :class:`QueryFailureError`; this layer never turns a failure into an
  empty result.
"""

from __future__ import annotations

import asyncio
from typing import Any, Awaitable, Callable

import structlog

from livekb.interfaces.vector_index_provider import IVectorIndexProvider
from livekb.models.vectors import IndexDescription, IndexSpec, QueryMatch, VectorRecord
from livekb.utils.errors import (
    DimensionMismatchError,
    IndexUnavailableError,
    LiveKBError,
    OperationCancelledError,
    QueryFailureError,
    QueryTimeoutError,
)
from livekb.utils.retry import with_retry

logger = structlog.get_logger(logger_name=__name__)


class VectorIndexClient:
    """Policy layer over a vector index backend.

    Parameters
    ----------
    provider:
        The storage backend.
    index_name, dimension, spec:
        The default index this client reads and writes.
    query_timeout:
        Seconds allowed per query attempt.
    max_attempts, backoff_base:
        Query retry budget; attempt ``n`` failing waits ``backoff_base ** n``.
    upsert_batch_size:
        Records per backend upsert call.
    ready_timeout:
        Seconds to wait for a freshly created index to report ready.
    """

    def __init__(
        self,
        provider: IVectorIndexProvider,
        index_name: str,
        dimension: int,
        spec: IndexSpec | None = None,
        query_timeout: float = 20.0,
        max_attempts: int = 3,
        backoff_base: float = 2.0,
        upsert_batch_size: int = 100,
        ready_timeout: float = 60.0,
        sleep: Callable[[float], Awaitable[object]] = asyncio.sleep,
    ) -> None:
        self._provider = provider
        self._index_name = index_name
        self._dimension = dimension
        self._spec = spec or IndexSpec()
        self._query_timeout = query_timeout
        self._max_attempts = max_attempts
        self._backoff_base = backoff_base
        self._upsert_batch_size = max(1, upsert_batch_size)
        self._ready_timeout = ready_timeout
        self._sleep = sleep
        self._resolved: dict[str, IndexDescription] = {}
        self._lock = asyncio.Lock()

    @property
    def index_name(self) -> str:
        return self._index_name

    @property
    def dimension(self) -> int:
        return self._dimension

    @property
    def provider(self) -> IVectorIndexProvider:
        return self._provider

    # ------------------------------------------------------------------
    # Index lifecycle
    # ------------------------------------------------------------------

    async def get_or_create_index(
        self,
        name: str | None = None,
        dimension: int | None = None,
        spec: IndexSpec | None = None,
    ) -> IndexDescription:
        """Return the description of index *name*, creating it if absent.

        Raises
        ------
        IndexUnavailableError
            If listing or creating fails, the existing index has another
            dimension, or a new index never reports ready.
        """
        name = name or self._index_name
        dimension = dimension or self._dimension
        spec = spec or self._spec

        cached = self._resolved.get(name)
        if cached is not None:
            self._check_dimension(cached, dimension)
            return cached

        async with self._lock:
            cached = self._resolved.get(name)
            if cached is not None:
                self._check_dimension(cached, dimension)
                return cached

            try:
                existing = await self._provider.list_indexes()
                if name in existing:
                    description = await self._provider.describe_index(name)
                    logger.info("vector_index_found", index=name, dimension=description.dimension)
                else:
                    await self._provider.create_index(name, dimension, spec)
                    description = await self._wait_until_ready(name)
            except IndexUnavailableError:
                raise
            except LiveKBError as exc:
                raise IndexUnavailableError(
                    message=f"Could not resolve index '{name}': {exc.message}",
                    provider_name=self._provider.get_provider_name(),
                ) from exc
            except Exception as exc:
                raise IndexUnavailableError(
                    message=f"Could not resolve index '{name}': {exc}",
                    provider_name=self._provider.get_provider_name(),
                ) from exc

            self._check_dimension(description, dimension)
            self._resolved[name] = description
            return description

    async def _wait_until_ready(self, name: str) -> IndexDescription:
        waited = 0.0
        while True:
            description = await self._provider.describe_index(name)
            if description.ready:
                logger.info("vector_index_ready", index=name, dimension=description.dimension)
                return description
            if waited >= self._ready_timeout:
                raise IndexUnavailableError(
                    message=f"Index '{name}' not ready after {self._ready_timeout:.0f}s",
                    provider_name=self._provider.get_provider_name(),
                )
            await self._sleep(1.0)
            waited += 1.0

    def _check_dimension(self, description: IndexDescription, dimension: int) -> None:
        if description.dimension != dimension:
            raise IndexUnavailableError(
                message=(
                    f"Index '{description.name}' has dimension {description.dimension}, "
                    f"expected {dimension}"
                ),
                provider_name=self._provider.get_provider_name(),
            )

    # ------------------------------------------------------------------
    # Writes
    # ------------------------------------------------------------------

    async def upsert(
        self,
        vectors: list[VectorRecord],
        namespace: str,
        index_name: str | None = None,
        cancel_event: asyncio.Event | None = None,
    ) -> int:
        """Write *vectors* into *namespace*; same ids overwrite.

        Raises
        ------
        DimensionMismatchError
            If any vector differs from the index dimension (nothing is written).
        IndexUnavailableError
            If the index cannot be resolved.
        """
        if not vectors:
            return 0

        description = await self.get_or_create_index(index_name)
        for record in vectors:
            if len(record.values) != description.dimension:
                raise DimensionMismatchError(
                    message=(
                        f"Vector '{record.id}' has {len(record.values)} dimensions; "
                        f"index '{description.name}' expects {description.dimension}"
                    ),
                    provider_name=self._provider.get_provider_name(),
                )

        written = 0
        for start in range(0, len(vectors), self._upsert_batch_size):
            if cancel_event is not None and cancel_event.is_set():
                # Upsert is idempotent, so a rerun resumes cleanly.
                raise OperationCancelledError(
                    f"Upsert cancelled after {written}/{len(vectors)} vectors"
                )
            batch = vectors[start : start + self._upsert_batch_size]
            written += await self._provider.upsert(description.name, batch, namespace)

        logger.info("vectors_upserted", index=description.name, namespace=namespace, count=written)
        return written

    async def delete_namespace(self, namespace: str, index_name: str | None = None) -> int:
        description = await self.get_or_create_index(index_name)
        return await self._provider.delete_namespace(description.name, namespace)

    # ------------------------------------------------------------------
    # Reads
    # ------------------------------------------------------------------

    async def query(
        self,
        query_vector: list[float],
        top_k: int,
        namespace: str,
        metadata_filter: dict[str, Any] | None = None,
        index_name: str | None = None,
        cancel_event: asyncio.Event | None = None,
    ) -> list[QueryMatch]:
        """Return up to *top_k* nearest records in *namespace*.

        Raises
        ------
        QueryTimeoutError
            The last attempt exceeded the per-attempt timeout.
        QueryFailureError
            The last attempt failed for any other reason.
        IndexUnavailableError
            The index cannot be resolved.
        """
        description = await self.get_or_create_index(index_name)
        if len(query_vector) != description.dimension:
            raise DimensionMismatchError(
                message=(
                    f"Query vector has {len(query_vector)} dimensions; "
                    f"index '{description.name}' expects {description.dimension}"
                ),
                provider_name=self._provider.get_provider_name(),
            )

        try:
            matches = await with_retry(
                lambda: self._provider.query(
                    description.name, query_vector, top_k, namespace, metadata_filter
                ),
                max_attempts=self._max_attempts,
                backoff_base=self._backoff_base,
                timeout=self._query_timeout,
                cancel_event=cancel_event,
                sleep=self._sleep,
                operation_name="vector_query",
            )
        except OperationCancelledError:
            raise
        except asyncio.TimeoutError as exc:
            raise QueryTimeoutError(
                message=(
                    f"Query on '{description.name}' timed out after {self._query_timeout:.0f}s "
                    f"({self._max_attempts} attempts)"
                ),
                provider_name=self._provider.get_provider_name(),
            ) from exc
        except Exception as exc:
            raise QueryFailureError(
                message=f"Query on '{description.name}' failed after {self._max_attempts} attempts: {exc}",
                provider_name=self._provider.get_provider_name(),
            ) from exc

        logger.debug(
            "vector_query",
            index=description.name,
            namespace=namespace,
            top_k=top_k,
            results=len(matches),
        )
        return matches[:top_k]
