"""Retrieval service: turns a topic into labelled, score-gated context.

``get_relevant_context`` embeds the topic, over-fetches
``max_contexts * overfetch_factor`` candidates from the session's
namespace (also filtered on ``sessionId`` metadata), keeps only matches
scoring strictly above the similarity threshold, ranks them best first,
truncates to ``max_contexts`` and formats each as::

    [Source: <fileName>]
    <content>

Failure policy is explicit per call.  With ``fail_open=True`` (the
default for context assembly) any embedding or query error is logged as
``retrieval_degraded`` and an empty list is returned, so a downstream
generator can fall back to a topic-only prompt.  ``search_knowledge_base``
always propagates errors.
"""

from __future__ import annotations

import asyncio

import structlog

from livekb.models.vectors import ContextSnippet, KnowledgeSearchResult, QueryMatch
from livekb.services.ingestion.batch_embedder import BatchEmbedder
from livekb.services.vector_index_client import VectorIndexClient
from livekb.utils.errors import OperationCancelledError

logger = structlog.get_logger(logger_name=__name__)

DEFAULT_SIMILARITY_THRESHOLD = 0.7
DEFAULT_NAMESPACE = ""


class RetrievalService:
    """Assembles retrieval context for one session from the vector index."""

    def __init__(
        self,
        embedder: BatchEmbedder,
        index_client: VectorIndexClient,
        similarity_threshold: float = DEFAULT_SIMILARITY_THRESHOLD,
        overfetch_factor: int = 2,
        default_max_contexts: int = 5,
    ) -> None:
        self._embedder = embedder
        self._index_client = index_client
        self._similarity_threshold = similarity_threshold
        self._overfetch_factor = max(1, overfetch_factor)
        self._default_max_contexts = default_max_contexts

    @property
    def similarity_threshold(self) -> float:
        return self._similarity_threshold

    async def search_knowledge_base(
        self,
        query: str,
        session_id: str | None = None,
        top_k: int = 10,
        cancel_event: asyncio.Event | None = None,
    ) -> KnowledgeSearchResult:
        """Run a raw similarity search; no score gate, errors propagate.

        Scoped to ``namespace=session_id`` plus a ``sessionId`` equality
        filter when a session is given, else to the default namespace.
        """
        vector = await self._embedder.embed_query(query)
        namespace = session_id or DEFAULT_NAMESPACE
        metadata_filter = {"sessionId": {"$eq": session_id}} if session_id else None

        matches = await self._index_client.query(
            vector,
            top_k=top_k,
            namespace=namespace,
            metadata_filter=metadata_filter,
            cancel_event=cancel_event,
        )
        return KnowledgeSearchResult(matches=matches, total_results=len(matches))

    async def get_context_snippets(
        self,
        topic: str,
        session_id: str,
        max_contexts: int | None = None,
        *,
        fail_open: bool = True,
        cancel_event: asyncio.Event | None = None,
    ) -> list[ContextSnippet]:
        """Return up to *max_contexts* snippets scoring above the threshold."""
        limit = self._default_max_contexts if max_contexts is None else max_contexts
        if limit <= 0:
            return []

        try:
            result = await self.search_knowledge_base(
                topic,
                session_id=session_id,
                top_k=limit * self._overfetch_factor,
                cancel_event=cancel_event,
            )
        except OperationCancelledError:
            raise
        except Exception as exc:
            if not fail_open:
                raise
            logger.warning(
                "retrieval_degraded",
                session_id=session_id,
                error_type=type(exc).__name__,
                error=str(exc),
            )
            return []

        relevant = self._filter_and_rank(result.matches)[:limit]
        logger.info(
            "context_retrieved",
            session_id=session_id,
            candidates=result.total_results,
            above_threshold=len(relevant),
            threshold=self._similarity_threshold,
        )
        return [
            ContextSnippet(source_label=match.file_name, text=match.content, score=match.score)
            for match in relevant
        ]

    async def get_relevant_context(
        self,
        topic: str,
        session_id: str,
        max_contexts: int | None = None,
        *,
        fail_open: bool = True,
        cancel_event: asyncio.Event | None = None,
    ) -> list[str]:
        """Return formatted ``[Source: name]`` context strings for *topic*."""
        snippets = await self.get_context_snippets(
            topic,
            session_id,
            max_contexts,
            fail_open=fail_open,
            cancel_event=cancel_event,
        )
        return [snippet.format() for snippet in snippets]

    def _filter_and_rank(self, matches: list[QueryMatch]) -> list[QueryMatch]:
        kept = [m for m in matches if m.score > self._similarity_threshold]
        return sorted(kept, key=lambda m: m.score, reverse=True)
