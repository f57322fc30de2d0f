"""Embedding providers: OpenAI, deterministic fallback and the degrade-on-failure wrapper."""
import math
from abc import ABC, abstractmethod
from typing import List, Optional

import httpx
from openai import AsyncOpenAI

from docuquery.exceptions import ProviderUnavailableError
from docuquery.models.document import EmbeddingResult
from docuquery.utils.logger import logger
from docuquery.utils.metrics import PROVIDER_FALLBACKS

EMBEDDING_DIMENSIONS = 1536


def approximate_token_count(text: str) -> int:
    """Rough token estimate used when the provider does not report usage."""
    return math.ceil(len(text) / 4)


class EmbeddingProvider(ABC):
    """Turns text into a fixed-length vector."""

    name = "embedding"

    @abstractmethod
    async def embed(self, text: str) -> EmbeddingResult:
        """
        Embed a single text.

        Args:
            text: Text to embed

        Returns:
            EmbeddingResult with the vector and an approximate token count
        """

    async def close(self) -> None:
        """Release any network resources held by the provider."""


class DeterministicEmbeddingProvider(EmbeddingProvider):
    """
    Network-free embedding used when no credential is configured or the remote call fails.

    The seed is the sum of the character codes of the text and component ``i`` is
    ``sin(seed * (i + 1)) * 0.5 + 0.5``, so the same text always maps to the same
    vector and every component lies in [0, 1].
    """

    name = "deterministic"

    def __init__(self, dimensions: int = EMBEDDING_DIMENSIONS):
        self.dimensions = dimensions

    def generate_embedding(self, text: str) -> List[float]:
        seed = sum(ord(char) for char in text)
        return [math.sin(seed * (i + 1)) * 0.5 + 0.5 for i in range(self.dimensions)]

    async def embed(self, text: str) -> EmbeddingResult:
        return EmbeddingResult(
            embedding=self.generate_embedding(text),
            token_count=approximate_token_count(text),
        )


class OpenAIEmbeddingProvider(EmbeddingProvider):
    """Embeddings from an OpenAI-compatible ``/embeddings`` endpoint."""

    name = "openai"

    def __init__(
        self,
        api_key: str,
        model: str = "text-embedding-3-small",
        base_url: Optional[str] = None,
        timeout: float = 60.0,
    ):
        """
        Initialize the OpenAI embedding provider.

        Args:
            api_key: OpenAI API key
            model: Embedding model name
            base_url: Optional API base URL (e.g. https://api.openai.com/v1)
            timeout: Request timeout in seconds
        """
        if not api_key:
            raise ValueError("An API key is required for the OpenAI embedding provider")

        self.model = model
        self.client = AsyncOpenAI(
            api_key=api_key,
            base_url=base_url or None,
            http_client=httpx.AsyncClient(timeout=timeout),
            max_retries=0,
        )

    async def embed(self, text: str) -> EmbeddingResult:
        try:
            response = await self.client.embeddings.create(model=self.model, input=text)
            embedding = [float(x) for x in response.data[0].embedding]
            token_count = response.usage.total_tokens
        except Exception as e:
            raise ProviderUnavailableError(self.name, str(e)) from e

        if not embedding or not all(math.isfinite(x) for x in embedding):
            raise ProviderUnavailableError(self.name, "malformed embedding in response")

        return EmbeddingResult(embedding=embedding, token_count=token_count)

    async def close(self) -> None:
        await self.client.close()


class FallbackEmbeddingProvider(EmbeddingProvider):
    """Uses ``primary`` and degrades to ``fallback`` whenever the primary is unavailable."""

    def __init__(self, primary: EmbeddingProvider, fallback: EmbeddingProvider):
        self.primary = primary
        self.fallback = fallback
        self.name = f"{primary.name}+{fallback.name}"

    async def embed(self, text: str) -> EmbeddingResult:
        try:
            return await self.primary.embed(text)
        except ProviderUnavailableError as e:
            logger.warning(
                f"Embedding provider failed, using {self.fallback.name} embedding: {str(e)}",
                extra={"provider": self.primary.name},
            )
            PROVIDER_FALLBACKS.labels(kind="embedding").inc()
            return await self.fallback.embed(text)

    async def close(self) -> None:
        await self.primary.close()
        await self.fallback.close()


def create_embedding_provider(settings) -> EmbeddingProvider:
    """
    Select the embedding strategy once, from configuration.

    Args:
        settings: Application settings

    Returns:
        The deterministic provider when no credential is configured, otherwise a
        remote provider wrapped with the deterministic fallback
    """
    fallback = DeterministicEmbeddingProvider(dimensions=settings.embedding_dimensions)

    if settings.use_local_embeddings:
        # Optional dependency, only imported when selected
        from docuquery.services.local_embeddings import SentenceTransformerEmbeddingProvider

        logger.info(f"Using local embeddings: {settings.local_embedding_model}")
        return FallbackEmbeddingProvider(
            SentenceTransformerEmbeddingProvider(model_name=settings.local_embedding_model),
            fallback,
        )

    if settings.openai_api_key:
        logger.info(f"Using OpenAI embeddings: {settings.embedding_model}")
        return FallbackEmbeddingProvider(
            OpenAIEmbeddingProvider(
                api_key=settings.openai_api_key,
                model=settings.embedding_model,
                base_url=settings.openai_base_url,
                timeout=settings.request_timeout_seconds,
            ),
            fallback,
        )

    logger.info("No API key configured, using deterministic embeddings")
    return fallback
