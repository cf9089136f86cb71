"""Batching front-end for any :class:`IEmbeddingProvider`.

Splits an ordered list of texts into requests of at most ``batch_size``
items (90 by default, below the common 96-item ceiling of hosted
inference APIs), pauses ``batch_delay`` seconds between requests, and
checks every response: one vector per input, each of the provider's
declared dimension.  Any failed or malformed batch fails the whole call;
partial embedding sets are never returned.
"""

from __future__ import annotations

import asyncio
from typing import Awaitable, Callable

import structlog

from livekb.interfaces.embedding_provider import (
    INPUT_TYPE_PASSAGE,
    INPUT_TYPE_QUERY,
    IEmbeddingProvider,
)
from livekb.utils.errors import EmbeddingBatchError, OperationCancelledError
from livekb.utils.retry import with_retry

logger = structlog.get_logger(logger_name=__name__)

DEFAULT_BATCH_SIZE = 90
DEFAULT_BATCH_DELAY = 0.1


class BatchEmbedder:
    """Embeds text lists in provider-sized batches, preserving order.

    Parameters
    ----------
    provider:
        The embedding backend.
    batch_size:
        Maximum texts per provider call.
    batch_delay:
        Seconds to wait between consecutive batches.
    max_attempts:
        Attempts per batch; ``1`` (default) means a failed batch is not retried.
    sleep:
        Coroutine used for the inter-batch pause (injectable for tests).
    """

    def __init__(
        self,
        provider: IEmbeddingProvider,
        batch_size: int = DEFAULT_BATCH_SIZE,
        batch_delay: float = DEFAULT_BATCH_DELAY,
        max_attempts: int = 1,
        sleep: Callable[[float], Awaitable[object]] = asyncio.sleep,
    ) -> None:
        if batch_size < 1:
            raise ValueError("batch_size must be >= 1")
        self._provider = provider
        self._batch_size = batch_size
        self._batch_delay = batch_delay
        self._max_attempts = max(1, max_attempts)
        self._sleep = sleep

    @property
    def provider(self) -> IEmbeddingProvider:
        return self._provider

    def get_dimension(self) -> int:
        return self._provider.get_dimension()

    async def embed(
        self,
        texts: list[str],
        *,
        input_type: str = INPUT_TYPE_PASSAGE,
        cancel_event: asyncio.Event | None = None,
    ) -> list[list[float]]:
        """Return one vector per text, positionally aligned with *texts*.

        Raises
        ------
        EmbeddingBatchError
            If any batch fails or returns malformed vectors.
        OperationCancelledError
            If *cancel_event* is set between batches.
        """
        if not texts:
            return []

        dimension = self._provider.get_dimension()
        provider_name = self._provider.get_provider_name()
        batch_count = (len(texts) + self._batch_size - 1) // self._batch_size
        vectors: list[list[float]] = []

        for batch_index, start in enumerate(range(0, len(texts), self._batch_size)):
            if batch_index > 0 and self._batch_delay > 0:
                await self._sleep(self._batch_delay)
            if cancel_event is not None and cancel_event.is_set():
                raise OperationCancelledError(
                    f"Embedding cancelled before batch {batch_index + 1}/{batch_count}"
                )

            batch = texts[start : start + self._batch_size]
            try:
                result = await with_retry(
                    lambda batch=batch: self._provider.embed(batch, input_type=input_type),
                    max_attempts=self._max_attempts,
                    cancel_event=cancel_event,
                    sleep=self._sleep,
                    operation_name="embedding_batch",
                )
            except OperationCancelledError:
                raise
            except Exception as exc:
                logger.error(
                    "embedding_batch_failed",
                    provider=provider_name,
                    batch=batch_index + 1,
                    batches=batch_count,
                    error=str(exc),
                )
                raise EmbeddingBatchError(
                    message=f"Embedding batch {batch_index + 1}/{batch_count} failed: {exc}",
                    provider_name=provider_name,
                    batch_index=batch_index,
                ) from exc

            self._validate_batch(result, len(batch), dimension, batch_index, provider_name)
            vectors.extend(result)
            logger.debug(
                "embedding_batch",
                provider=provider_name,
                batch=batch_index + 1,
                batches=batch_count,
                size=len(batch),
            )

        logger.info("embedding_complete", provider=provider_name, texts=len(texts), batches=batch_count)
        return vectors

    async def embed_query(self, text: str) -> list[float]:
        """Embed one search text as a single-item batch."""
        vectors = await self.embed([text], input_type=INPUT_TYPE_QUERY)
        return vectors[0]

    @staticmethod
    def _validate_batch(
        result: list[list[float]],
        expected_count: int,
        dimension: int,
        batch_index: int,
        provider_name: str,
    ) -> None:
        if len(result) != expected_count:
            raise EmbeddingBatchError(
                message=(
                    f"Embedding batch {batch_index + 1} returned {len(result)} vectors "
                    f"for {expected_count} inputs"
                ),
                provider_name=provider_name,
                batch_index=batch_index,
            )
        for vector in result:
            if len(vector) != dimension:
                raise EmbeddingBatchError(
                    message=(
                        f"Embedding batch {batch_index + 1} returned a {len(vector)}-dim vector; "
                        f"expected {dimension}"
                    ),
                    provider_name=provider_name,
                    batch_index=batch_index,
                )
