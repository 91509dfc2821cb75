"""OpenAI chat-completions generation provider.

Wraps ``openai.AsyncOpenAI`` and maps SDK exceptions onto the provider
taxonomy. SDK-level retries are disabled; retry policy belongs to the
orchestrator.
"""

import logging

import openai

from quizcache.config import settings
from quizcache.entities import GenerationOptions, GenerationResponse
from quizcache.errors import (
    ProviderAuthError,
    ProviderError,
    ProviderInvalidRequestError,
    ProviderRateLimitedError,
    ProviderUnavailableError,
)

logger = logging.getLogger(__name__)

DEFAULT_SYSTEM_PROMPT = (
    "You are a helpful AI assistant that creates educational content. "
    "Be concise and accurate."
)


class OpenAIGenerationProvider:
    """OpenAI implementation of the GenerationProvider protocol.

    Example:
        ```python
        provider = OpenAIGenerationProvider.create()
        response = await provider.generate("Explain osmosis", GenerationOptions(max_tokens=100))
        print(response.content, response.tokens_consumed)
        ```
    """

    def __init__(
        self,
        client: openai.AsyncOpenAI,
        model_name: str | None = None,
    ) -> None:
        """Initialize the provider.

        Args:
            client: Configured async OpenAI client
            model_name: Chat model to call. Defaults to settings.openai_model.
        """
        self._client = client
        self._model_name = model_name or settings.openai_model

    @classmethod
    def create(
        cls,
        api_key: str | None = None,
        model_name: str | None = None,
        timeout: float | None = None,
    ) -> "OpenAIGenerationProvider":
        """Factory method to create the provider from settings.

        Args:
            api_key: API key. If None, uses settings.
            model_name: Model name. If None, uses settings.
            timeout: HTTP timeout in seconds. If None, uses settings.

        Returns:
            Configured OpenAIGenerationProvider

        Raises:
            ProviderAuthError: If no API key is configured
        """
        key = api_key or settings.openai_api_key
        if not key:
            raise ProviderAuthError(
                "OpenAI API key not found. Set OPENAI_API_KEY environment variable."
            )

        client = openai.AsyncOpenAI(
            api_key=key,
            timeout=timeout or settings.generation_timeout,
            max_retries=0,
        )
        return cls(client=client, model_name=model_name)

    @property
    def model_name(self) -> str:
        """Get the chat model name."""
        return self._model_name

    async def generate(self, prompt: str, options: GenerationOptions) -> GenerationResponse:
        """Run one chat completion.

        Args:
            prompt: The user prompt
            options: Generation options

        Returns:
            The completion text and total token usage

        Raises:
            ProviderError: Mapped from the SDK exception
        """
        request: dict = {
            "model": self._model_name,
            "messages": [
                {"role": "system", "content": options.system_prompt or DEFAULT_SYSTEM_PROMPT},
                {"role": "user", "content": prompt},
            ],
            "max_tokens": options.max_tokens,
            "temperature": options.temperature,
        }
        if options.structured_output:
            request["response_format"] = {"type": "json_object"}

        try:
            completion = await self._client.chat.completions.create(**request)
        except openai.OpenAIError as e:
            raise map_openai_error(e) from e

        if not completion.choices:
            raise ProviderUnavailableError("OpenAI returned no choices")

        content = completion.choices[0].message.content or ""
        usage = completion.usage
        return GenerationResponse(
            content=content,
            tokens_consumed=usage.total_tokens if usage is not None else None,
        )

    async def is_available(self) -> bool:
        """Check the API key and connectivity by listing models.

        Returns:
            True if the API answered, False otherwise
        """
        try:
            await self._client.models.list()
            return True
        except openai.OpenAIError as e:
            logger.warning("OpenAI availability check failed: %s", e)
            return False

    async def close(self) -> None:
        """Close the underlying HTTP client."""
        await self._client.close()


def map_openai_error(error: openai.OpenAIError) -> ProviderError:
    """Translate an OpenAI SDK exception into the provider taxonomy."""
    message = f"AI service error: {error}"

    # APITimeoutError subclasses APIConnectionError, both are transient.
    if isinstance(error, openai.APIConnectionError):
        return ProviderUnavailableError(message, original_error=error)
    if isinstance(error, openai.RateLimitError):
        return ProviderRateLimitedError(message, status_code=429, original_error=error)
    if isinstance(error, (openai.AuthenticationError, openai.PermissionDeniedError)):
        return ProviderAuthError(message, status_code=error.status_code, original_error=error)
    if isinstance(error, openai.APIStatusError):
        if error.status_code >= 500:
            return ProviderUnavailableError(
                message, status_code=error.status_code, original_error=error
            )
        return ProviderInvalidRequestError(
            message, status_code=error.status_code, original_error=error
        )
    return ProviderInvalidRequestError(message, original_error=error)
