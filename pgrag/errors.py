"""Error taxonomy for the RAG pipeline.

Four kinds of failure, all deriving from RagError so callers can catch the whole
family or tell them apart:

- InvalidConfiguration: chunk size/overlap preconditions violated (before any I/O).
- MissingCredential: no embedding provider credential configured (before any I/O).
- ProviderError: the embedding call failed or returned an unusable response.
- StoreError: the PostgreSQL/pgvector store failed or rejected the data.

Nothing in this package retries internally.
"""
from typing import Any, Dict, Optional


class RagError(Exception):
    """Base class for all RAG pipeline errors."""

    def __init__(self, message: str, details: Optional[Dict[str, Any]] = None) -> None:
        self.message = message
        self.details = details or {}
        super().__init__(message)

    def __str__(self) -> str:
        if self.details:
            return f"{self.message} | Details: {self.details}"
        return self.message


class InvalidConfiguration(RagError, ValueError):
    """Raised when chunking options violate size/overlap preconditions."""


class MissingCredential(RagError):
    """Raised when no embedding provider credential is configured."""

    def __init__(self, message: Optional[str] = None) -> None:
        super().__init__(
            message
            or (
                "OPENAI_API_KEY environment variable is not set. "
                "Embedding requires an OpenAI API key. "
                "Set OPENAI_API_KEY in your environment or .env file."
            )
        )


class ProviderError(RagError):
    """Raised when the embedding provider call fails or returns a bad response."""


class StoreError(RagError):
    """Raised when a vector store statement fails or data violates the store schema."""
