"""RAG configuration and environment-driven settings.

Defines the Settings class based on pydantic-settings to centralize configuration for:
- The embedding provider credential, model identifier and vector dimensions
- The PostgreSQL/pgvector store and statement timeouts
- Chunking defaults (size/overlap)
- Retrieval defaults
- Retrieval evals thresholds and dataset

RAG_CONFIG_VERSION is a compatibility tag only: it is written to logs and never
branches behaviour. Bump it when the chunk/embed/index strategy changes.
"""
import logging

from pydantic import Field, model_validator
from pydantic_settings import BaseSettings, SettingsConfigDict

logger = logging.getLogger(__name__)


class Settings(BaseSettings):
    """Strongly-typed RAG settings loaded from environment variables.

    Uses pydantic-settings to populate fields from a .env file or process env.
    If you change EMBED_MODEL, make sure EMBED_DIMS matches the model output and
    re-create the rag_chunks table (the vector column is fixed-length).
    """
    # Embedding provider
    OPENAI_API_KEY: str = Field(default="", description="OpenAI API key used for embeddings")
    EMBED_MODEL: str = "openai:text-embedding-3-small"  # provider:model
    EMBED_DIMS: int = 1536
    EMBED_TIMEOUT_SECONDS: float = 30.0

    # Data store
    DATABASE_URL: str = "postgresql+psycopg2://rag_user:rag_pass@db:5432/rag_db"
    DB_STATEMENT_TIMEOUT_MS: int = 15000

    # Chunking
    CHUNK_SIZE: int = 800
    CHUNK_OVERLAP: int = 200

    # Retrieval
    DEFAULT_TOP_K: int = 3
    RAG_CONFIG_VERSION: str = "v1"

    # HTTP boundary / logging
    INIT_DB_ON_STARTUP: bool = True
    LOG_LEVEL: str = "INFO"

    # Evals
    EVAL_DATASET_PATH: str = "data/evals/retrieval_seed.jsonl"
    EVAL_K: int = 3
    EVAL_MIN_PRECISION_AT_K: float = 0.2
    EVAL_MIN_RECALL_AT_K: float = 0.5

    model_config = SettingsConfigDict(env_file=".env", case_sensitive=False, extra="ignore")

    @model_validator(mode="after")
    def _check_dimensions(self) -> "Settings":
        if self.EMBED_DIMS <= 0:
            raise ValueError(f"EMBED_DIMS must be positive, got {self.EMBED_DIMS}")
        if self.CHUNK_SIZE <= 0 or not 0 <= self.CHUNK_OVERLAP < self.CHUNK_SIZE:
            raise ValueError(
                f"CHUNK_OVERLAP ({self.CHUNK_OVERLAP}) must be in [0, CHUNK_SIZE={self.CHUNK_SIZE})"
            )
        return self


settings = Settings()

if not settings.OPENAI_API_KEY:
    # Not fatal: chunking and store maintenance work without a key
    logger.warning("OPENAI_API_KEY not set. Embedding and rag_query will fail with MissingCredential.")
