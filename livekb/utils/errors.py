"""Custom exception hierarchy for livekb.

All application exceptions inherit from :class:`LiveKBError`, which
carries an optional ``provider_name`` so error handlers can identify which
external service (e.g. "openai", "fastembed", "chromadb") caused the
failure.

The hierarchy is organized by pipeline stage:

    LiveKBError  (base -- catch-all for any livekb error)
    +-- ConfigurationError       (startup / missing config)
    +-- InvalidSessionIdError    (unsafe session id)
    +-- UploadRejectedError      (bad upload name or size)
    +-- UploadNotFoundError      (uploaded file missing)
    +-- UnsupportedFileTypeError (parser cannot read the extension)
    +-- EmptyContentError        (parsed text blank after trimming)
    +-- TextExtractionError      (PDF extraction failure, degraded by parser)
    +-- ProviderUnavailableError (external service down / not installed)
    +-- OperationCancelledError  (cancel signal observed between steps)
    +-- RAGError                 (embedding or vector-index failure)
        +-- EmbeddingBatchError
        +-- IndexUnavailableError
        +-- DimensionMismatchError
        +-- QueryFailureError
            +-- QueryTimeoutError

Retrieval degradation is deliberately *not* an exception: the retrieval
service logs it and returns an empty context list.
"""


class LiveKBError(Exception):
    """Base exception for all livekb errors.

    Every subclass carries a human-readable ``message`` and an optional
    ``provider_name`` identifying which external service triggered the
    error.  ``__str__`` prefixes the provider name in brackets, e.g.
    ``[chromadb] Index not ready``.
    """

    def __init__(
        self,
        message: str = "An unexpected error occurred",
        provider_name: str | None = None,
    ) -> None:
        self._message = message
        self._provider_name = provider_name
        super().__init__(self._message)

    @property
    def message(self) -> str:
        return self._message

    @property
    def provider_name(self) -> str | None:
        return self._provider_name

    def __str__(self) -> str:
        if self._provider_name:
            return f"[{self._provider_name}] {self._message}"
        return self._message


# ---------------------------------------------------------------------------
# Configuration / session errors
# ---------------------------------------------------------------------------

class ConfigurationError(LiveKBError):
    """Raised when configuration is invalid or missing at startup."""

    def __init__(
        self,
        message: str = "Invalid or missing configuration",
        provider_name: str | None = None,
    ) -> None:
        super().__init__(message=message, provider_name=provider_name)


class InvalidSessionIdError(LiveKBError):
    """Raised when a session id cannot be used as a folder name or namespace."""

    def __init__(
        self,
        message: str = "Invalid session id",
        provider_name: str | None = None,
    ) -> None:
        super().__init__(message=message, provider_name=provider_name)


class OperationCancelledError(LiveKBError):
    """Raised when a cancel signal is observed between batches or attempts."""

    def __init__(
        self,
        message: str = "Operation cancelled",
        provider_name: str | None = None,
    ) -> None:
        super().__init__(message=message, provider_name=provider_name)


# ---------------------------------------------------------------------------
# Parsing / ingestion errors
# ---------------------------------------------------------------------------

class UploadRejectedError(LiveKBError):
    """Raised when an upload has an unusable name or exceeds the size limit."""

    def __init__(
        self,
        message: str = "Upload rejected",
        provider_name: str | None = None,
    ) -> None:
        super().__init__(message=message, provider_name=provider_name)


class UploadNotFoundError(LiveKBError):
    """Raised when an uploaded file does not exist in the session folder."""

    def __init__(
        self,
        message: str = "Uploaded file not found",
        provider_name: str | None = None,
    ) -> None:
        super().__init__(message=message, provider_name=provider_name)


class UnsupportedFileTypeError(LiveKBError):
    """Raised when a file extension is unknown and is not readable as UTF-8."""

    def __init__(
        self,
        extension: str,
        message: str | None = None,
        provider_name: str | None = None,
    ) -> None:
        self._extension = extension
        super().__init__(
            message=message or f"Unsupported file type: {extension or '(none)'}",
            provider_name=provider_name,
        )

    @property
    def extension(self) -> str:
        return self._extension


class EmptyContentError(LiveKBError):
    """Raised when a parsed document has no text after trimming."""

    def __init__(
        self,
        message: str = "Document contains no text content",
        provider_name: str | None = None,
    ) -> None:
        super().__init__(message=message, provider_name=provider_name)


class TextExtractionError(LiveKBError):
    """Raised by text extractors when a document cannot be read."""

    def __init__(
        self,
        message: str = "Text extraction failed",
        provider_name: str | None = None,
    ) -> None:
        super().__init__(message=message, provider_name=provider_name)


# ---------------------------------------------------------------------------
# External service / provider errors
# ---------------------------------------------------------------------------

class ProviderUnavailableError(LiveKBError):
    """Raised when an external service or optional capability is unreachable."""

    def __init__(
        self,
        message: str = "External service is unavailable",
        provider_name: str | None = None,
    ) -> None:
        super().__init__(message=message, provider_name=provider_name)


# ---------------------------------------------------------------------------
# RAG / vector-index errors
# ---------------------------------------------------------------------------

class RAGError(LiveKBError):
    """Raised when a RAG operation fails (embedding or vector index)."""

    def __init__(
        self,
        message: str = "RAG operation failed",
        provider_name: str | None = None,
    ) -> None:
        super().__init__(message=message, provider_name=provider_name)


class EmbeddingBatchError(RAGError):
    """Raised when any embedding batch fails; no partial vectors are returned."""

    def __init__(
        self,
        message: str = "Embedding batch failed",
        provider_name: str | None = None,
        batch_index: int | None = None,
    ) -> None:
        self._batch_index = batch_index
        super().__init__(message=message, provider_name=provider_name)

    @property
    def batch_index(self) -> int | None:
        return self._batch_index


class IndexUnavailableError(RAGError):
    """Raised when a vector index cannot be resolved, created or validated."""

    def __init__(
        self,
        message: str = "Vector index is unavailable",
        provider_name: str | None = None,
    ) -> None:
        super().__init__(message=message, provider_name=provider_name)


class DimensionMismatchError(RAGError):
    """Raised when a vector's length differs from the index dimension."""

    def __init__(
        self,
        message: str = "Vector dimension does not match index dimension",
        provider_name: str | None = None,
    ) -> None:
        super().__init__(message=message, provider_name=provider_name)


class QueryFailureError(RAGError):
    """Raised when a similarity query still fails after all retry attempts."""

    def __init__(
        self,
        message: str = "Vector query failed",
        provider_name: str | None = None,
    ) -> None:
        super().__init__(message=message, provider_name=provider_name)


class QueryTimeoutError(QueryFailureError):
    """Raised when the final query attempt exceeded its timeout."""

    def __init__(
        self,
        message: str = "Vector query timed out",
        provider_name: str | None = None,
    ) -> None:
        super().__init__(message=message, provider_name=provider_name)
