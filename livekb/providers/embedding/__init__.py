"""Embedding provider adapters."""

from livekb.providers.embedding.fastembed_embedding_provider import FastEmbedEmbeddingProvider
from livekb.providers.embedding.openai_embedding_provider import OpenAIEmbeddingProvider

__all__ = ["FastEmbedEmbeddingProvider", "OpenAIEmbeddingProvider"]
