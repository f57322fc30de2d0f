"""Answer generation through the OpenAI API with a templated local fallback."""
import time
from typing import List, Optional

import httpx
from openai import AsyncOpenAI

from docuquery.agent.prompts import AnswerPrompt, FallbackAnswer
from docuquery.exceptions import ProviderUnavailableError
from docuquery.models.document import DocumentSource
from docuquery.utils.logger import logger
from docuquery.utils.metrics import PROVIDER_FALLBACKS


class OpenAIGenerationProvider:
    """Service for chat completions against an OpenAI-compatible API."""

    name = "openai"

    def __init__(
        self,
        api_key: str,
        model: str = "gpt-4o-mini",
        base_url: Optional[str] = None,
        max_tokens: int = 2000,
        temperature: float = 0.7,
        timeout: float = 60.0,
    ):
        """
        Initialize generation provider.

        Args:
            api_key: OpenAI API key
            model: Model name to use
            base_url: Optional API base URL (e.g. https://api.openai.com/v1)
            max_tokens: Maximum tokens in the completion
            temperature: Sampling temperature
            timeout: Request timeout in seconds
        """
        if not api_key:
            raise ValueError("An API key is required for the OpenAI generation provider")

        self.model = model
        self.max_tokens = max_tokens
        self.temperature = temperature
        self.client = AsyncOpenAI(
            api_key=api_key,
            base_url=base_url or None,
            http_client=httpx.AsyncClient(timeout=timeout),
            max_retries=0,
        )

    async def generate(self, system_message: str, question: str) -> str:
        """
        Generate a completion for the question under the given system message.

        Raises:
            ProviderUnavailableError: On any transport, API or response-shape failure
        """
        start_time = time.time()

        try:
            response = await self.client.chat.completions.create(
                model=self.model,
                messages=[
                    {"role": "system", "content": system_message},
                    {"role": "user", "content": question},
                ],
                max_tokens=self.max_tokens,
                temperature=self.temperature,
            )
            answer = response.choices[0].message.content
        except Exception as e:
            raise ProviderUnavailableError(self.name, str(e)) from e

        if not answer:
            raise ProviderUnavailableError(self.name, "empty completion in response")

        token_usage = None
        if response.usage is not None:
            token_usage = {
                "prompt_tokens": response.usage.prompt_tokens,
                "completion_tokens": response.usage.completion_tokens,
                "total_tokens": response.usage.total_tokens,
            }

        logger.info(
            "LLM response generated",
            extra={
                "token_usage": token_usage,
                "response_time_ms": (time.time() - start_time) * 1000,
                "answer_length": len(answer),
            },
        )
        return answer

    async def close(self) -> None:
        await self.client.close()


class LLMService:
    """Produces grounded answers, degrading to a deterministic template."""

    def __init__(
        self,
        generator: Optional[OpenAIGenerationProvider] = None,
        model: str = "gpt-4o-mini",
        base_url: Optional[str] = None,
        max_tokens: int = 2000,
        temperature: float = 0.7,
        timeout: float = 60.0,
    ):
        """
        Initialize LLM service.

        Args:
            generator: Remote generator built from the configured credential, if any
            model: Model name used for per-request generators
            base_url: API base URL used for per-request generators
            max_tokens: Maximum tokens used for per-request generators
            temperature: Temperature used for per-request generators
            timeout: Request timeout used for per-request generators
        """
        self.generator = generator
        self.model = model
        self.base_url = base_url
        self.max_tokens = max_tokens
        self.temperature = temperature
        self.timeout = timeout

    @classmethod
    def from_settings(cls, settings) -> "LLMService":
        generator = None
        if settings.openai_api_key:
            generator = OpenAIGenerationProvider(
                api_key=settings.openai_api_key,
                model=settings.completion_model,
                base_url=settings.openai_base_url,
                max_tokens=settings.max_tokens,
                temperature=settings.temperature,
                timeout=settings.request_timeout_seconds,
            )
        return cls(
            generator=generator,
            model=settings.completion_model,
            base_url=settings.openai_base_url,
            max_tokens=settings.max_tokens,
            temperature=settings.temperature,
            timeout=settings.request_timeout_seconds,
        )

    def _build_request_generator(self, api_key: str) -> OpenAIGenerationProvider:
        return OpenAIGenerationProvider(
            api_key=api_key,
            model=self.model,
            base_url=self.base_url,
            max_tokens=self.max_tokens,
            temperature=self.temperature,
            timeout=self.timeout,
        )

    async def generate_answer(
        self, question: str, sources: List[DocumentSource], api_key: Optional[str] = None
    ) -> str:
        """
        Answer a question from retrieved sources.

        Args:
            question: User's question
            sources: Retrieved documents, most relevant first
            api_key: Optional credential used for this call only

        Returns:
            Generated answer, or the templated answer if no provider could be used
        """
        generator = self.generator
        request_generator = None
        if api_key:
            request_generator = self._build_request_generator(api_key)
            generator = request_generator

        if generator is None:
            return FallbackAnswer.build(question, sources)

        system_message = AnswerPrompt.build_system_message(sources)
        try:
            return await generator.generate(system_message, question)
        except ProviderUnavailableError as e:
            logger.warning(
                f"Answer generation failed, using templated answer: {str(e)}",
                extra={"provider": generator.name},
            )
            PROVIDER_FALLBACKS.labels(kind="generation").inc()
            return FallbackAnswer.build(question, sources)
        finally:
            if request_generator is not None:
                await request_generator.close()

    async def close(self) -> None:
        if self.generator is not None:
            await self.generator.close()
