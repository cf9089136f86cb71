"""Abstract base class for text-embedding service providers.

Defines the contract for generating embedding vectors from text.
Implementations may wrap an OpenAI-compatible embeddings endpoint, a local
FastEmbed ONNX model, or any other backend.  Request batching and pacing
live one level up in
:class:`~livekb.services.ingestion.batch_embedder.BatchEmbedder`, so a
provider only has to turn one list of texts into one list of vectors.
"""

from __future__ import annotations

from abc import ABC, abstractmethod

# Asymmetric models (e5, bge) embed stored passages and search queries
# differently; symmetric providers ignore the distinction.
INPUT_TYPE_PASSAGE = "passage"
INPUT_TYPE_QUERY = "query"


# Concrete implementations (livekb/providers/embedding/):
#   FastEmbedEmbeddingProvider -- local ONNX, multilingual-e5-large by default
#   OpenAIEmbeddingProvider    -- OpenAI or any OpenAI-compatible endpoint
class IEmbeddingProvider(ABC):
    """Contract for text-embedding services used by ingestion and retrieval."""

    @abstractmethod
    async def embed(
        self, texts: list[str], input_type: str = INPUT_TYPE_PASSAGE
    ) -> list[list[float]]:
        """Generate embedding vectors for a batch of texts.

        Parameters
        ----------
        texts:
            One or more text strings to embed.
        input_type:
            ``"passage"`` for stored content, ``"query"`` for search text.

        Returns
        -------
        list[list[float]]
            Embedding vectors corresponding positionally to *texts*.  Each
            inner list has length equal to :meth:`get_dimension`.

        Raises
        ------
        livekb.utils.errors.RAGError
            If the embedding API call fails.
        """

    @abstractmethod
    async def embed_single(self, text: str, input_type: str = INPUT_TYPE_QUERY) -> list[float]:
        """Generate an embedding vector for a single text string.

        Parameters
        ----------
        text:
            The text string to embed.
        input_type:
            Defaults to ``"query"`` since single texts are usually searches.

        Returns
        -------
        list[float]
            The embedding vector with length equal to :meth:`get_dimension`.
        """

    @abstractmethod
    def get_dimension(self) -> int:
        """Return the dimensionality of the embedding vectors.

        Constant for the lifetime of the provider; the vector index is
        created with exactly this dimension.
        """

    @abstractmethod
    def get_provider_name(self) -> str:
        """Return a human-readable identifier, e.g. ``"fastembed"``."""

    @abstractmethod
    def is_available(self) -> bool:
        """Return ``True`` if the provider is configured and usable.

        Must not generate an actual embedding.
        """
