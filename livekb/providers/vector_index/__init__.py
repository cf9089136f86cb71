"""Vector index backends."""

from livekb.providers.vector_index.chromadb_index_provider import ChromaIndexProvider

__all__ = ["ChromaIndexProvider"]
