"""Local ONNX-based embedding provider using fastembed.

Runs on CPU through ONNX Runtime, no API key and no PyTorch required.

Default model: ``intfloat/multilingual-e5-large`` (1024 dimensions).  e5
models are asymmetric, so stored chunks go through ``passage_embed`` and
search topics through ``query_embed``; fastembed adds the matching
``passage: `` / ``query: `` prefixes.
"""

from __future__ import annotations

import importlib.util

import structlog

from livekb.interfaces.embedding_provider import (
    INPUT_TYPE_QUERY,
    IEmbeddingProvider,
)
from livekb.utils.errors import RAGError

logger = structlog.get_logger(logger_name=__name__)

_MODEL_DIMENSIONS: dict[str, int] = {
    "intfloat/multilingual-e5-large": 1024,
    "BAAI/bge-base-en-v1.5": 768,
    "BAAI/bge-small-en-v1.5": 384,
    "sentence-transformers/all-MiniLM-L6-v2": 384,
}

_DEFAULT_MODEL = "intfloat/multilingual-e5-large"


class FastEmbedEmbeddingProvider(IEmbeddingProvider):
    """Embedding provider backed by fastembed (ONNX Runtime).

    The model is loaded on first use; the first run downloads the weights
    (~600MB for e5-large) into the fastembed cache.
    """

    def __init__(self, model_name: str | None = None) -> None:
        self._model_name = model_name or _DEFAULT_MODEL
        self._dimension = _MODEL_DIMENSIONS.get(self._model_name, 1024)
        self._model = None

    def _load_model(self) -> None:
        if self._model is not None:
            return
        try:
            from fastembed import TextEmbedding

            logger.info("loading_fastembed_model", model=self._model_name)
            self._model = TextEmbedding(model_name=self._model_name)
            logger.info(
                "fastembed_model_loaded",
                model=self._model_name,
                dimension=self._dimension,
            )
        except Exception as exc:
            raise RAGError(
                message=f"Failed to load fastembed model '{self._model_name}': {exc}",
                provider_name=self.get_provider_name(),
            ) from exc

    async def embed(self, texts: list[str], input_type: str = "passage") -> list[list[float]]:
        if not texts:
            return []

        self._load_model()

        try:
            # fastembed yields numpy arrays lazily
            if input_type == INPUT_TYPE_QUERY:
                vectors = list(self._model.query_embed(texts))
            else:
                vectors = list(self._model.passage_embed(texts))
            return [v.tolist() for v in vectors]
        except Exception as exc:
            raise RAGError(
                message=f"Fastembed embedding error: {exc}",
                provider_name=self.get_provider_name(),
            ) from exc

    async def embed_single(self, text: str, input_type: str = INPUT_TYPE_QUERY) -> list[float]:
        result = await self.embed([text], input_type=input_type)
        return result[0]

    def get_dimension(self) -> int:
        return self._dimension

    def get_provider_name(self) -> str:
        return f"fastembed_{self._model_name.split('/')[-1]}"

    def is_available(self) -> bool:
        """Return ``True`` if the fastembed package can be imported."""
        return importlib.util.find_spec("fastembed") is not None
