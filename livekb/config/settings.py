"""Application settings loaded from environment variables via pydantic-settings.

Values are read from two sources, in priority order:

  1. Environment variables, e.g. ``CHUNK_SIZE=800``
  2. A ``.env`` file in the working directory

Field ``openai_api_key`` maps to env var ``OPENAI_API_KEY``.  Defaults
below apply when neither source sets a value.
"""

from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    """livekb application settings.

    Environment variables override defaults. Loaded from .env file when present.
    """

    model_config = SettingsConfigDict(env_file=".env", env_file_encoding="utf-8", extra="ignore")

    # === Session Area ===
    # Each session gets <session_root_dir>/<session_id>/{uploads,processed}.
    session_root_dir: str = "temp"
    max_upload_bytes: int = 20 * 1024 * 1024

    # === Chunking ===
    chunk_size: int = 1000
    chunk_overlap: int = 200

    # === Embedding ===
    # "auto" picks OpenAI when a key is set, otherwise local FastEmbed.
    embedding_provider: str = "auto"
    openai_api_key: str = ""
    openai_base_url: str = ""
    openai_embedding_model: str = ""
    fastembed_model: str = "intfloat/multilingual-e5-large"
    embedding_batch_size: int = 90
    embedding_batch_delay: float = 0.1  # seconds between batches
    embedding_batch_attempts: int = 1  # 1 = no retry

    # === Vector Index ===
    vector_index_name: str = "knowledge-index"
    vector_index_cloud: str = "aws"
    vector_index_region: str = "us-west-2"
    vector_index_metric: str = "cosine"
    chromadb_persist_dir: str = "./data/chromadb"
    upsert_batch_size: int = 100

    # === Query ===
    query_timeout_seconds: float = 20.0
    query_max_attempts: int = 3
    query_backoff_base: float = 2.0

    # === Retrieval ===
    similarity_threshold: float = 0.7
    max_contexts: int = 5
    context_overfetch_factor: int = 2

    # === Parsing ===
    pdf_extraction_enabled: bool = True

    # === App Config ===
    app_host: str = "0.0.0.0"
    app_port: int = 8000
    app_env: str = "development"
    log_level: str = "INFO"

    def resolve_embedding_provider(self) -> str:
        """Return the concrete embedding provider name for ``embedding_provider``."""
        choice = self.embedding_provider.strip().lower()
        if choice == "auto":
            return "openai" if self.openai_api_key else "fastembed"
        return choice
