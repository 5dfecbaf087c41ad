"""Embedding utilities wrapping OpenAI's embeddings API.

Provides:
- Embedder: abstract embedding provider (model id, dims, batch + single embedding)
- OpenAIEmbedder: OpenAI implementation with a lazily created, per-instance client
- has_openai_key: whether a credential is configured
- get_default_embedder: factory wired from pgrag.config.settings

The credential is passed to the embedder at construction time; every call checks
it before touching the network and raises MissingCredential when absent.
Batching is delegated to the provider: one request per embed() call.
"""
import logging
from abc import ABC, abstractmethod
from typing import List, Optional, Sequence

from openai import OpenAI, OpenAIError

from pgrag.config import Settings, settings as default_settings
from pgrag.errors import MissingCredential, ProviderError

logger = logging.getLogger(__name__)


class Embedder(ABC):
    """Text to fixed-dimension vector provider.

    Attributes:
        model: Provider-qualified model identifier (e.g. "openai:text-embedding-3-small").
        dims: Length of every vector this embedder returns.
    """
    model: str
    dims: int

    @abstractmethod
    def has_credential(self) -> bool:
        """Return True if a provider credential is configured."""

    def ensure_credential(self) -> None:
        """Raise MissingCredential unless a provider credential is configured."""
        if not self.has_credential():
            raise MissingCredential()

    @abstractmethod
    def embed(self, texts: Sequence[str]) -> List[List[float]]:
        """Embed a batch of texts; output[i] corresponds to texts[i]."""

    @abstractmethod
    def embed_single(self, text: str) -> List[float]:
        """Embed a single text."""

    def _check_dims(self, vectors: List[List[float]]) -> List[List[float]]:
        for i, vec in enumerate(vectors):
            if len(vec) != self.dims:
                raise ProviderError(
                    "Embedding dimensionality mismatch",
                    {"model": self.model, "expected": self.dims, "got": len(vec), "index": i},
                )
        return vectors


class OpenAIEmbedder(Embedder):
    """Embedder backed by the OpenAI embeddings endpoint.

    Args:
        api_key: OpenAI API key; empty or None means no credential.
        model: Provider-qualified model identifier; the part after ':' is sent to OpenAI.
        dims: Expected vector length.
        timeout: Request timeout in seconds.
        client: Optional preconfigured OpenAI client (mainly for tests).
    """

    def __init__(
        self,
        api_key: Optional[str],
        model: str = default_settings.EMBED_MODEL,
        dims: int = default_settings.EMBED_DIMS,
        timeout: float = default_settings.EMBED_TIMEOUT_SECONDS,
        client: Optional[OpenAI] = None,
    ):
        self.api_key = api_key or ""
        self.model = model
        self.dims = dims
        self.timeout = timeout
        _, sep, name = model.partition(":")
        self.model_name = name if sep and name else model
        self._client = client

    def has_credential(self) -> bool:
        return len(self.api_key) > 0

    def get_client(self) -> OpenAI:
        """Return the cached OpenAI client, creating it on first use.

        Returns:
            OpenAI: Client with an explicit timeout and no automatic retries.
        """
        if self._client is None:
            self._client = OpenAI(api_key=self.api_key, timeout=self.timeout, max_retries=0)
        return self._client

    def _create(self, inputs: List[str]) -> List[List[float]]:
        try:
            resp = self.get_client().embeddings.create(model=self.model_name, input=inputs)
        except OpenAIError as e:
            raise ProviderError(
                f"Embedding request failed: {e}",
                {"model": self.model, "batch_size": len(inputs)},
            ) from e

        data = list(resp.data or [])
        if len(data) != len(inputs):
            raise ProviderError(
                "Embedding response size does not match request",
                {"model": self.model, "expected": len(inputs), "got": len(data)},
            )
        data.sort(key=lambda d: d.index)
        return self._check_dims([list(d.embedding) for d in data])

    def embed(self, texts: Sequence[str]) -> List[List[float]]:
        """Embed a batch of texts using a single provider request.

        Args:
            texts: Input strings.

        Returns:
            List[List[float]]: One vector per input, in input order.

        Raises:
            MissingCredential: If no API key is configured (no request is made).
            ProviderError: On request failure or an unusable response.
        """
        self.ensure_credential()
        if not texts:
            return []
        vectors = self._create(list(texts))
        logger.debug("Embedded %d texts with %s", len(vectors), self.model)
        return vectors

    def embed_single(self, text: str) -> List[float]:
        """Embed one string and return its vector.

        Raises:
            MissingCredential: If no API key is configured (no request is made).
            ProviderError: On request failure or an unusable response.
        """
        self.ensure_credential()
        return self._create([text])[0]


def has_openai_key(cfg: Optional[Settings] = None) -> bool:
    """Return True if OPENAI_API_KEY is set in the given (or global) settings."""
    cfg = cfg or default_settings
    return bool(cfg.OPENAI_API_KEY)


def get_default_embedder(cfg: Optional[Settings] = None) -> OpenAIEmbedder:
    """Build an OpenAIEmbedder from settings.

    Args:
        cfg: Settings to read; defaults to pgrag.config.settings.

    Returns:
        OpenAIEmbedder: Embedder carrying the configured key, model, dims and timeout.
    """
    cfg = cfg or default_settings
    return OpenAIEmbedder(
        api_key=cfg.OPENAI_API_KEY,
        model=cfg.EMBED_MODEL,
        dims=cfg.EMBED_DIMS,
        timeout=cfg.EMBED_TIMEOUT_SECONDS,
    )
