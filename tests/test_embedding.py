from types import SimpleNamespace
from unittest.mock import MagicMock, patch

import pytest
from openai import OpenAIError

from pgrag.config import Settings
from pgrag.embedding import OpenAIEmbedder, get_default_embedder, has_openai_key
from pgrag.errors import MissingCredential, ProviderError


def _response(*vectors, order=None):
    """Build an embeddings.create response; `order` permutes the returned items."""
    items = [SimpleNamespace(index=i, embedding=v) for i, v in enumerate(vectors)]
    if order is not None:
        items = [items[i] for i in order]
    return SimpleNamespace(data=items)


@pytest.fixture
def client():
    return MagicMock(name="OpenAI")


def _embedder(client, api_key="sk-test", dims=3):
    return OpenAIEmbedder(api_key=api_key, model="openai:text-embedding-3-small", dims=dims, client=client)


class TestOpenAIEmbedder:
    def test_embed_batch_single_request_in_input_order(self, client):
        client.embeddings.create.return_value = _response(
            [1.0, 0.0, 0.0], [0.0, 1.0, 0.0], order=[1, 0]
        )
        emb = _embedder(client)

        vectors = emb.embed(["first", "second"])

        assert vectors == [[1.0, 0.0, 0.0], [0.0, 1.0, 0.0]]
        client.embeddings.create.assert_called_once_with(
            model="text-embedding-3-small", input=["first", "second"]
        )

    def test_embed_single(self, client):
        client.embeddings.create.return_value = _response([0.1, 0.2, 0.3])

        assert _embedder(client).embed_single("hello") == [0.1, 0.2, 0.3]
        client.embeddings.create.assert_called_once_with(model="text-embedding-3-small", input=["hello"])

    def test_empty_batch_makes_no_request(self, client):
        assert _embedder(client).embed([]) == []
        client.embeddings.create.assert_not_called()

    @pytest.mark.parametrize("api_key", ["", None])
    def test_missing_credential_makes_no_request(self, client, api_key):
        emb = _embedder(client, api_key=api_key)

        assert emb.has_credential() is False
        with pytest.raises(MissingCredential):
            emb.embed(["text"])
        with pytest.raises(MissingCredential):
            emb.embed_single("text")
        with pytest.raises(MissingCredential):
            emb.embed([])
        client.embeddings.create.assert_not_called()

    def test_provider_failure_is_wrapped(self, client):
        client.embeddings.create.side_effect = OpenAIError("rate limited")

        with pytest.raises(ProviderError) as exc:
            _embedder(client).embed(["a", "b"])
        assert exc.value.details["batch_size"] == 2
        assert isinstance(exc.value.__cause__, OpenAIError)

    def test_wrong_dimensionality_is_rejected(self, client):
        client.embeddings.create.return_value = _response([1.0, 2.0])

        with pytest.raises(ProviderError) as exc:
            _embedder(client, dims=3).embed_single("x")
        assert exc.value.details["expected"] == 3
        assert exc.value.details["got"] == 2

    def test_response_count_mismatch_is_rejected(self, client):
        client.embeddings.create.return_value = _response([1.0, 0.0, 0.0])

        with pytest.raises(ProviderError):
            _embedder(client).embed(["a", "b"])

    def test_model_name_without_provider_prefix(self):
        assert OpenAIEmbedder(api_key="k", model="text-embedding-3-large").model_name == "text-embedding-3-large"

    def test_client_created_lazily_with_timeout_and_no_retries(self):
        emb = OpenAIEmbedder(api_key="sk-test", timeout=7.5)
        with patch("pgrag.embedding.OpenAI") as openai_cls:
            first = emb.get_client()
            second = emb.get_client()

        assert first is second
        openai_cls.assert_called_once_with(api_key="sk-test", timeout=7.5, max_retries=0)


class TestFactories:
    def test_default_embedder_reads_settings(self):
        cfg = Settings(_env_file=None, OPENAI_API_KEY="sk-abc", EMBED_DIMS=8, EMBED_TIMEOUT_SECONDS=3.0)
        emb = get_default_embedder(cfg)

        assert emb.api_key == "sk-abc"
        assert emb.dims == 8
        assert emb.timeout == 3.0
        assert emb.model == cfg.EMBED_MODEL

    def test_has_openai_key(self):
        assert has_openai_key(Settings(_env_file=None, OPENAI_API_KEY="sk-abc")) is True
        assert has_openai_key(Settings(_env_file=None, OPENAI_API_KEY="")) is False
