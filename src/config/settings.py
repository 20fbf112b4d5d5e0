"""Application settings loaded from environment variables via pydantic-settings.

# ─── HOW SETTINGS WORK ─────────────────────────────────────────────────
#
# pydantic-settings reads configuration from two sources (in priority order):
#
#   1. **Environment variables** -- e.g., OPENAI_API_KEY=sk-abc123
#   2. **.env file** -- key=value lines in the project root .env file
#
# Field name `openai_api_key` maps to env var `OPENAI_API_KEY`.  The OCR
# credential also accepts the legacy `GOOGLE_GENERATIVE_AI_API_KEY` name.
#
# Default values are used when neither an env var nor a .env entry exists.
# An empty API key means "not configured": the embedding factory falls
# through to the next provider and the OCR fallback is skipped.
# ──────────────────────────────────────────────────────────────────────
"""

from pydantic import AliasChoices, Field
from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    """Legal document service settings.

    Environment variables override defaults. Loaded from .env file when present.
    """

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore",
        populate_by_name=True,
    )

    # === Embedding Providers ===
    openai_api_key: str = ""
    openai_base_url: str = ""  # Custom base URL for OpenAI-compatible APIs
    openai_embedding_model: str = ""  # Override embedding model
    ollama_base_url: str = "http://localhost:11434"
    embedding_dimension: int = 768
    embedding_batch_size: int = Field(default=100, ge=1)

    # === OCR Fallback ===
    google_api_key: str = Field(
        default="",
        validation_alias=AliasChoices("GOOGLE_API_KEY", "GOOGLE_GENERATIVE_AI_API_KEY"),
    )
    google_vision_url: str = "https://vision.googleapis.com/v1/files:annotate"
    ocr_min_text_length: int = 100
    ocr_max_pages: int = 50
    ocr_batch_size: int = Field(default=5, ge=1)
    ocr_timeout_seconds: float = 60.0

    # === Chunking ===
    chunk_size: int = Field(default=1000, ge=1)
    chunk_overlap: int = Field(default=200, ge=0)

    # === Storage ===
    chromadb_persist_dir: str = "./data/chromadb"
    chromadb_collection: str = "legal_documents"
    documents_db_path: str = "data/documents.db"
    blob_storage_dir: str = "data/blobs"

    # === Ingestion / Retrieval ===
    max_upload_mb: int = 50
    ingestion_concurrency: int = Field(default=4, ge=1)
    retrieval_limit: int = 10

    # === App Config ===
    app_host: str = "0.0.0.0"
    app_port: int = 8000
    app_env: str = "development"
    log_level: str = "INFO"

    @property
    def max_upload_bytes(self) -> int:
        return self.max_upload_mb * 1024 * 1024

    def get_available_embedding_providers(self) -> list[str]:
        """Return embedding provider names in priority order that look configured."""
        providers: list[str] = []
        if self.openai_api_key:
            providers.append("openai")
        if self.ollama_base_url:
            providers.append("nomic")
        return providers
