"""Component assembly shared by the HTTP app and the CLI.

Every provider and service is constructed here from :class:`Settings`
and handed to its consumers explicitly; nothing in the service layer
reaches for module-level clients.  :func:`build_components` returns a
flat dict that ``main.py`` copies onto ``app.state`` and the CLI uses
directly.
"""

from __future__ import annotations

from typing import Any

import structlog

from livekb.config.loader import load_config
from livekb.config.settings import Settings
from livekb.interfaces.embedding_provider import IEmbeddingProvider
from livekb.interfaces.text_extractor import ITextExtractor
from livekb.interfaces.vector_index_provider import IVectorIndexProvider
from livekb.models.vectors import IndexSpec
from livekb.providers.embedding.fastembed_embedding_provider import FastEmbedEmbeddingProvider
from livekb.providers.embedding.openai_embedding_provider import OpenAIEmbeddingProvider
from livekb.providers.extraction.null_text_extractor import NullTextExtractor
from livekb.providers.extraction.pymupdf_text_extractor import PyMuPDFTextExtractor
from livekb.providers.storage.local_manifest_store import LocalManifestStore
from livekb.providers.vector_index.chromadb_index_provider import ChromaIndexProvider
from livekb.services.ingestion.batch_embedder import BatchEmbedder
from livekb.services.ingestion.chunker import TextChunker
from livekb.services.ingestion.ingestion_service import IngestionService
from livekb.services.ingestion.parser import DEFAULT_TEXT_EXTENSIONS, DocumentParser
from livekb.services.retrieval_service import RetrievalService
from livekb.services.session_workspace import SessionWorkspace
from livekb.services.vector_index_client import VectorIndexClient
from livekb.utils.errors import ConfigurationError

logger = structlog.get_logger(logger_name=__name__)


def build_embedding_provider(app_settings: Settings) -> IEmbeddingProvider:
    """Select the embedding provider named by ``EMBEDDING_PROVIDER``.

    ``auto`` resolves to OpenAI when an API key is configured, otherwise
    to local FastEmbed.

    Raises
    ------
    ConfigurationError
        Unknown provider name, or the chosen provider is not usable.
    """
    choice = app_settings.resolve_embedding_provider()
    if choice == "openai":
        provider: IEmbeddingProvider = OpenAIEmbeddingProvider(settings=app_settings)
    elif choice == "fastembed":
        provider = FastEmbedEmbeddingProvider(model_name=app_settings.fastembed_model)
    else:
        raise ConfigurationError(f"Unknown embedding provider: {app_settings.embedding_provider}")

    if not provider.is_available():
        raise ConfigurationError(
            f"Embedding provider '{choice}' is not available",
            provider_name=provider.get_provider_name(),
        )
    return provider


def build_pdf_extractor(app_settings: Settings) -> ITextExtractor:
    """Return the PDF extractor, resolved once at startup."""
    if not app_settings.pdf_extraction_enabled:
        logger.info("pdf_extraction_disabled")
        return NullTextExtractor()
    return PyMuPDFTextExtractor()


def build_components(
    app_settings: Settings,
    config: dict[str, Any] | None = None,
    embedding_provider: IEmbeddingProvider | None = None,
    index_provider: IVectorIndexProvider | None = None,
) -> dict[str, Any]:
    """Construct every provider and service for one process.

    *embedding_provider* and *index_provider* may be passed in to replace
    the configured backends.
    """
    config = config if config is not None else load_config(settings=app_settings)
    text_extensions = config.get("parsing", {}).get("text_extensions") or DEFAULT_TEXT_EXTENSIONS

    workspace = SessionWorkspace(
        base_dir=app_settings.session_root_dir,
        max_upload_bytes=app_settings.max_upload_bytes,
    )
    pdf_extractor = build_pdf_extractor(app_settings)
    parser = DocumentParser(pdf_extractor=pdf_extractor, text_extensions=text_extensions)
    chunker = TextChunker(chunk_size=app_settings.chunk_size, overlap=app_settings.chunk_overlap)
    manifest_store = LocalManifestStore()

    embedding_provider = embedding_provider or build_embedding_provider(app_settings)
    embedder = BatchEmbedder(
        embedding_provider,
        batch_size=app_settings.embedding_batch_size,
        batch_delay=app_settings.embedding_batch_delay,
        max_attempts=app_settings.embedding_batch_attempts,
    )

    index_provider = index_provider or ChromaIndexProvider(
        persist_directory=app_settings.chromadb_persist_dir
    )
    index_client = VectorIndexClient(
        index_provider,
        index_name=app_settings.vector_index_name,
        dimension=embedding_provider.get_dimension(),
        spec=IndexSpec(
            cloud=app_settings.vector_index_cloud,
            region=app_settings.vector_index_region,
            metric=app_settings.vector_index_metric,
        ),
        query_timeout=app_settings.query_timeout_seconds,
        max_attempts=app_settings.query_max_attempts,
        backoff_base=app_settings.query_backoff_base,
        upsert_batch_size=app_settings.upsert_batch_size,
    )

    ingestion_service = IngestionService(
        parser=parser,
        chunker=chunker,
        manifest_store=manifest_store,
        embedder=embedder,
        index_client=index_client,
    )
    retrieval_service = RetrievalService(
        embedder=embedder,
        index_client=index_client,
        similarity_threshold=app_settings.similarity_threshold,
        overfetch_factor=app_settings.context_overfetch_factor,
        default_max_contexts=app_settings.max_contexts,
    )

    provider_registry = {
        "embedding": embedding_provider.get_provider_name(),
        "vector_index": index_provider.get_provider_name(),
        "pdf_extractor": pdf_extractor.get_provider_name(),
    }
    logger.info("components_built", **provider_registry)

    return {
        "settings": app_settings,
        "config": config,
        "workspace": workspace,
        "ingestion_service": ingestion_service,
        "retrieval_service": retrieval_service,
        "index_client": index_client,
        "embedder": embedder,
        "provider_registry": provider_registry,
    }
