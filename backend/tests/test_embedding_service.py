"""Tests for embedding providers."""
import math
from unittest.mock import AsyncMock, Mock

import pytest

from docuquery.exceptions import ProviderUnavailableError
from docuquery.main import Settings
from docuquery.models.document import EmbeddingResult
from docuquery.services.embedding_service import (
    EMBEDDING_DIMENSIONS,
    DeterministicEmbeddingProvider,
    FallbackEmbeddingProvider,
    OpenAIEmbeddingProvider,
    approximate_token_count,
    create_embedding_provider,
)


def embeddings_response(vector, total_tokens=3):
    response = Mock()
    response.data = [Mock(embedding=vector)]
    response.usage = Mock(total_tokens=total_tokens)
    return response


class TestDeterministicEmbeddingProvider:
    """Tests for DeterministicEmbeddingProvider."""

    def test_vector_shape_and_range(self):
        embedding = DeterministicEmbeddingProvider().generate_embedding("Deploy using Docker")
        assert len(embedding) == EMBEDDING_DIMENSIONS == 1536
        assert all(0.0 <= x <= 1.0 for x in embedding)
        assert all(math.isfinite(x) for x in embedding)

    def test_same_text_same_vector(self):
        provider = DeterministicEmbeddingProvider()
        assert provider.generate_embedding("hello") == provider.generate_embedding("hello")

    def test_seed_is_sum_of_character_codes(self):
        provider = DeterministicEmbeddingProvider(dimensions=3)
        seed = ord("a") + ord("b")
        expected = [math.sin(seed * (i + 1)) * 0.5 + 0.5 for i in range(3)]
        assert provider.generate_embedding("ab") == expected
        # Anagrams share a seed
        assert provider.generate_embedding("ba") == expected

    def test_empty_text(self):
        assert DeterministicEmbeddingProvider(dimensions=4).generate_embedding("") == [0.5] * 4

    @pytest.mark.asyncio
    async def test_embed_reports_token_count(self):
        result = await DeterministicEmbeddingProvider().embed("abcdefghi")
        assert isinstance(result, EmbeddingResult)
        assert result.token_count == 3

    def test_approximate_token_count(self):
        assert approximate_token_count("") == 0
        assert approximate_token_count("abcd") == 1
        assert approximate_token_count("abcde") == 2


class TestOpenAIEmbeddingProvider:
    """Tests for OpenAIEmbeddingProvider with a mocked SDK client."""

    def test_requires_api_key(self):
        with pytest.raises(ValueError):
            OpenAIEmbeddingProvider(api_key="")

    @pytest.mark.asyncio
    async def test_embed(self):
        provider = OpenAIEmbeddingProvider(api_key="test-key")
        provider.client = Mock()
        provider.client.embeddings.create = AsyncMock(return_value=embeddings_response([0.1, 0.2, 0.3], 7))

        result = await provider.embed("Test text")

        assert result.embedding == [0.1, 0.2, 0.3]
        assert result.token_count == 7
        provider.client.embeddings.create.assert_awaited_once_with(
            model="text-embedding-3-small", input="Test text"
        )

    @pytest.mark.asyncio
    async def test_transport_error_is_provider_unavailable(self):
        provider = OpenAIEmbeddingProvider(api_key="test-key")
        provider.client = Mock()
        provider.client.embeddings.create = AsyncMock(side_effect=RuntimeError("connection refused"))

        with pytest.raises(ProviderUnavailableError) as exc_info:
            await provider.embed("Test text")
        assert exc_info.value.provider == "openai"

    @pytest.mark.asyncio
    async def test_malformed_response_is_provider_unavailable(self):
        provider = OpenAIEmbeddingProvider(api_key="test-key")
        provider.client = Mock()
        provider.client.embeddings.create = AsyncMock(return_value=embeddings_response([0.1, float("nan")]))

        with pytest.raises(ProviderUnavailableError):
            await provider.embed("Test text")

    @pytest.mark.asyncio
    async def test_empty_data_is_provider_unavailable(self):
        provider = OpenAIEmbeddingProvider(api_key="test-key")
        provider.client = Mock()
        response = Mock()
        response.data = []
        provider.client.embeddings.create = AsyncMock(return_value=response)

        with pytest.raises(ProviderUnavailableError):
            await provider.embed("Test text")


class TestFallbackEmbeddingProvider:
    """Tests for FallbackEmbeddingProvider."""

    @pytest.mark.asyncio
    async def test_uses_primary_when_available(self):
        primary = Mock(name="primary")
        primary.name = "primary"
        primary.embed = AsyncMock(return_value=EmbeddingResult(embedding=[1.0, 0.0], token_count=2))
        provider = FallbackEmbeddingProvider(primary, DeterministicEmbeddingProvider(dimensions=2))

        result = await provider.embed("text")

        assert result.embedding == [1.0, 0.0]

    @pytest.mark.asyncio
    async def test_degrades_to_fallback(self):
        primary = Mock()
        primary.name = "openai"
        primary.embed = AsyncMock(side_effect=ProviderUnavailableError("openai", "HTTP 500"))
        fallback = DeterministicEmbeddingProvider()
        provider = FallbackEmbeddingProvider(primary, fallback)

        result = await provider.embed("Deploy using Docker")

        assert result.embedding == fallback.generate_embedding("Deploy using Docker")
        assert len(result.embedding) == 1536

    @pytest.mark.asyncio
    async def test_other_errors_propagate(self):
        primary = Mock()
        primary.name = "openai"
        primary.embed = AsyncMock(side_effect=KeyError("boom"))
        provider = FallbackEmbeddingProvider(primary, DeterministicEmbeddingProvider())

        with pytest.raises(KeyError):
            await provider.embed("text")

    @pytest.mark.asyncio
    async def test_close_closes_both(self):
        primary = Mock()
        primary.name = "openai"
        primary.close = AsyncMock()
        fallback = Mock()
        fallback.name = "deterministic"
        fallback.close = AsyncMock()

        await FallbackEmbeddingProvider(primary, fallback).close()

        primary.close.assert_awaited_once()
        fallback.close.assert_awaited_once()


class TestCreateEmbeddingProvider:
    """Tests for provider selection."""

    def test_no_credential_is_deterministic(self):
        provider = create_embedding_provider(Settings(openai_api_key="", use_local_embeddings=False))
        assert isinstance(provider, DeterministicEmbeddingProvider)

    def test_credential_wraps_remote_with_fallback(self):
        provider = create_embedding_provider(Settings(openai_api_key="test-key", use_local_embeddings=False))
        assert isinstance(provider, FallbackEmbeddingProvider)
        assert isinstance(provider.primary, OpenAIEmbeddingProvider)
        assert isinstance(provider.fallback, DeterministicEmbeddingProvider)

    def test_configured_dimensions(self):
        provider = create_embedding_provider(
            Settings(openai_api_key="", use_local_embeddings=False, embedding_dimensions=8)
        )
        assert len(provider.generate_embedding("x")) == 8
