"""OpenAI-compatible embedding provider adapter.

Wraps the ``openai`` async client to implement :class:`IEmbeddingProvider`.
Works against real OpenAI and against OpenAI-compatible hosts (TogetherAI,
Fireworks, a local gateway) via ``openai_base_url`` and
``openai_embedding_model``.
"""

from __future__ import annotations

import openai
import structlog

from livekb.config.settings import Settings
from livekb.interfaces.embedding_provider import (
    INPUT_TYPE_PASSAGE,
    INPUT_TYPE_QUERY,
    IEmbeddingProvider,
)
from livekb.utils.errors import RAGError

logger = structlog.get_logger(logger_name=__name__)

_DEFAULT_MODEL = "text-embedding-3-small"

# Known embedding model dimensions.
_MODEL_DIMENSIONS: dict[str, int] = {
    "text-embedding-3-small": 1536,
    "text-embedding-3-large": 3072,
    "text-embedding-ada-002": 1536,
    "BAAI/bge-base-en-v1.5": 768,
    "BAAI/bge-large-en-v1.5": 1024,
    "intfloat/multilingual-e5-large-instruct": 1024,
}

# Models that expect "query: " / "passage: " prefixes on their inputs.
_PREFIXED_MODELS = frozenset({"intfloat/multilingual-e5-large-instruct"})


class OpenAIEmbeddingProvider(IEmbeddingProvider):
    """Embedding provider backed by an OpenAI-compatible embeddings API.

    Uses ``text-embedding-3-small`` (1536 dims) unless
    ``openai_embedding_model`` is set.  Each :meth:`embed` call is one API
    request; batch sizing is the caller's concern.
    """

    def __init__(self, settings: Settings) -> None:
        self._api_key = settings.openai_api_key

        client_kwargs: dict = {"api_key": self._api_key}
        if settings.openai_base_url:
            client_kwargs["base_url"] = settings.openai_base_url

        self._client = openai.AsyncOpenAI(**client_kwargs)
        self._model = settings.openai_embedding_model or _DEFAULT_MODEL
        self._dimension = _MODEL_DIMENSIONS.get(self._model, 768)
        self._provider_label = (
            "openai-compatible_embedding" if settings.openai_base_url else "openai_embedding"
        )

    # ------------------------------------------------------------------
    # IEmbeddingProvider implementation
    # ------------------------------------------------------------------

    async def embed(
        self, texts: list[str], input_type: str = INPUT_TYPE_PASSAGE
    ) -> list[list[float]]:
        if not texts:
            return []

        if self._model in _PREFIXED_MODELS:
            texts = [f"{input_type}: {t}" for t in texts]

        try:
            response = await self._client.embeddings.create(input=texts, model=self._model)
        except openai.APIError as exc:
            raise RAGError(
                message=f"{self._provider_label} API error: {exc}",
                provider_name=self.get_provider_name(),
            ) from exc

        logger.info(
            "openai_embedding_request",
            model=self._model,
            provider=self._provider_label,
            batch_size=len(texts),
            tokens=response.usage.total_tokens if response.usage else None,
        )
        return [item.embedding for item in response.data]

    async def embed_single(self, text: str, input_type: str = INPUT_TYPE_QUERY) -> list[float]:
        result = await self.embed([text], input_type=input_type)
        return result[0]

    def get_dimension(self) -> int:
        return self._dimension

    def get_provider_name(self) -> str:
        return self._provider_label

    def is_available(self) -> bool:
        """Return ``True`` if an API key is configured."""
        return bool(self._api_key)
