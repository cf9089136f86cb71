"""Abstract interfaces for every external capability livekb depends on.

Concrete adapters live in ``livekb/providers/`` and are wired together in
``livekb/dependencies.py``.  Tests inject fakes through the same seams.

    Interface              ->  Concrete implementations
    ----------------------------------------------------------------
    IEmbeddingProvider     ->  FastEmbedEmbeddingProvider, OpenAIEmbeddingProvider
    ITextExtractor         ->  PyMuPDFTextExtractor, NullTextExtractor
    IVectorIndexProvider   ->  ChromaIndexProvider
    IManifestStore         ->  LocalManifestStore
"""

from livekb.interfaces.embedding_provider import IEmbeddingProvider
from livekb.interfaces.manifest_store import IManifestStore
from livekb.interfaces.text_extractor import ITextExtractor
from livekb.interfaces.vector_index_provider import IVectorIndexProvider

__all__ = [
    "IEmbeddingProvider",
    "IManifestStore",
    "ITextExtractor",
    "IVectorIndexProvider",
]
