"""Unit tests for embedding provider adapters -- OpenAI and FastEmbed."""

from __future__ import annotations

from unittest.mock import AsyncMock, MagicMock, patch

import openai
import pytest

from livekb.config.settings import Settings
from livekb.providers.embedding.fastembed_embedding_provider import FastEmbedEmbeddingProvider
from livekb.providers.embedding.openai_embedding_provider import OpenAIEmbeddingProvider
from livekb.utils.errors import RAGError

_CLIENT_PATH = "livekb.providers.embedding.openai_embedding_provider.openai.AsyncOpenAI"


def _settings(**overrides) -> Settings:
    defaults = {
        "openai_api_key": "sk-test",
        "openai_base_url": "",
        "openai_embedding_model": "",
    }
    defaults.update(overrides)
    return Settings(**defaults)


def _response(vectors: list[list[float]]) -> MagicMock:
    response = MagicMock()
    response.data = [MagicMock(embedding=v) for v in vectors]
    response.usage = MagicMock(total_tokens=12)
    return response


# ======================================================================
# OpenAI Embedding Provider
# ======================================================================


class TestOpenAIEmbeddingProvider:
    def test_defaults(self) -> None:
        with patch(_CLIENT_PATH):
            provider = OpenAIEmbeddingProvider(_settings())

        assert provider.get_dimension() == 1536
        assert provider.get_provider_name() == "openai_embedding"
        assert provider.is_available() is True

    def test_compatible_host_label_and_dimension(self) -> None:
        settings = _settings(
            openai_base_url="https://api.together.xyz/v1",
            openai_embedding_model="intfloat/multilingual-e5-large-instruct",
        )
        with patch(_CLIENT_PATH) as client_cls:
            provider = OpenAIEmbeddingProvider(settings)

        client_cls.assert_called_once_with(api_key="sk-test", base_url="https://api.together.xyz/v1")
        assert provider.get_provider_name() == "openai-compatible_embedding"
        assert provider.get_dimension() == 1024

    def test_unavailable_without_key(self) -> None:
        with patch(_CLIENT_PATH):
            provider = OpenAIEmbeddingProvider(_settings(openai_api_key=""))
        assert provider.is_available() is False

    @pytest.mark.asyncio
    async def test_embed_sends_one_request(self) -> None:
        mock_client = AsyncMock()
        mock_client.embeddings.create = AsyncMock(return_value=_response([[0.1] * 3, [0.2] * 3]))

        with patch(_CLIENT_PATH, return_value=mock_client):
            provider = OpenAIEmbeddingProvider(_settings())
            result = await provider.embed(["hello", "world"])

        assert result == [[0.1] * 3, [0.2] * 3]
        mock_client.embeddings.create.assert_awaited_once_with(
            input=["hello", "world"], model="text-embedding-3-small"
        )

    @pytest.mark.asyncio
    async def test_instruct_model_gets_input_type_prefix(self) -> None:
        mock_client = AsyncMock()
        mock_client.embeddings.create = AsyncMock(return_value=_response([[0.5]]))
        settings = _settings(openai_embedding_model="intfloat/multilingual-e5-large-instruct")

        with patch(_CLIENT_PATH, return_value=mock_client):
            provider = OpenAIEmbeddingProvider(settings)
            await provider.embed_single("what settles fastest")

        sent = mock_client.embeddings.create.await_args.kwargs["input"]
        assert sent == ["query: what settles fastest"]

    @pytest.mark.asyncio
    async def test_empty_input_skips_request(self) -> None:
        mock_client = AsyncMock()
        with patch(_CLIENT_PATH, return_value=mock_client):
            provider = OpenAIEmbeddingProvider(_settings())
            assert await provider.embed([]) == []
        mock_client.embeddings.create.assert_not_called()

    @pytest.mark.asyncio
    async def test_api_error_is_wrapped(self) -> None:
        mock_client = AsyncMock()
        mock_client.embeddings.create = AsyncMock(
            side_effect=openai.APIError(message="Rate limit", request=MagicMock(), body=None)
        )

        with patch(_CLIENT_PATH, return_value=mock_client):
            provider = OpenAIEmbeddingProvider(_settings())
            with pytest.raises(RAGError, match="Rate limit"):
                await provider.embed(["test"])


# ======================================================================
# FastEmbed Embedding Provider
# ======================================================================


def _array(values: list[float]) -> MagicMock:
    array = MagicMock()
    array.tolist.return_value = values
    return array


class TestFastEmbedEmbeddingProvider:
    def test_defaults(self) -> None:
        provider = FastEmbedEmbeddingProvider()
        assert provider.get_dimension() == 1024
        assert provider.get_provider_name() == "fastembed_multilingual-e5-large"

    def test_known_small_model(self) -> None:
        provider = FastEmbedEmbeddingProvider("BAAI/bge-small-en-v1.5")
        assert provider.get_dimension() == 384

    @pytest.mark.asyncio
    async def test_passages_and_queries_use_matching_methods(self) -> None:
        provider = FastEmbedEmbeddingProvider()
        model = MagicMock()
        model.passage_embed.return_value = iter([_array([0.1, 0.2]), _array([0.3, 0.4])])
        model.query_embed.return_value = iter([_array([0.9, 0.8])])
        provider._model = model

        passages = await provider.embed(["a", "b"])
        query = await provider.embed_single("q")

        assert passages == [[0.1, 0.2], [0.3, 0.4]]
        assert query == [0.9, 0.8]
        model.passage_embed.assert_called_once_with(["a", "b"])
        model.query_embed.assert_called_once_with(["q"])

    @pytest.mark.asyncio
    async def test_model_errors_are_wrapped(self) -> None:
        provider = FastEmbedEmbeddingProvider()
        model = MagicMock()
        model.passage_embed.side_effect = RuntimeError("onnx failure")
        provider._model = model

        with pytest.raises(RAGError, match="onnx failure"):
            await provider.embed(["a"])

    @pytest.mark.asyncio
    async def test_model_load_failure_is_wrapped(self) -> None:
        provider = FastEmbedEmbeddingProvider("no/such-model")
        with patch("fastembed.TextEmbedding", side_effect=ValueError("unknown model")):
            with pytest.raises(RAGError, match="Failed to load fastembed model"):
                await provider.embed(["a"])
