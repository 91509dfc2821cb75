"""Ollama-based generation provider.

Uses Ollama's local chat API to generate text. Ollama serves models locally
without API keys, which makes it convenient for development.

Requirements:
    - Ollama installed: https://ollama.com
    - Model pulled: `ollama pull llama3.1`
    - Ollama running: `ollama serve` (usually runs automatically)

Token usage is reported as ``prompt_eval_count + eval_count``.
"""

import httpx

from quizcache.config import settings
from quizcache.entities import GenerationOptions, GenerationResponse
from quizcache.errors import (
    ProviderAuthError,
    ProviderInvalidRequestError,
    ProviderRateLimitedError,
    ProviderUnavailableError,
)

from .openai_provider import DEFAULT_SYSTEM_PROMPT


class OllamaGenerationProvider:
    """Ollama-based implementation of GenerationProvider protocol.

    This class satisfies the GenerationProvider protocol through structural
    typing - no explicit inheritance needed.

    The API endpoint is http://localhost:11434/api/chat by default.

    Example:
        ```python
        provider = OllamaGenerationProvider.create(model_name="llama3.1")
        response = await provider.generate("Explain osmosis", GenerationOptions())
        ```
    """

    def __init__(
        self,
        model_name: str | None = None,
        base_url: str | None = None,
        timeout: float | None = None,
        transport: httpx.AsyncBaseTransport | None = None,
    ) -> None:
        """Initialize the Ollama generation provider.

        Args:
            model_name: Name of the Ollama model.
                       Defaults to settings.ollama_model.
            base_url: Ollama API base URL.
                     Defaults to settings.ollama_base_url.
            timeout: Request timeout in seconds.
            transport: Optional httpx transport (used by tests).
        """
        self._model_name = model_name or settings.ollama_model
        self._base_url = base_url or settings.ollama_base_url
        self._timeout = timeout or settings.generation_timeout
        self._transport = transport
        self._client: httpx.AsyncClient | None = None

    @property
    def client(self) -> httpx.AsyncClient:
        """Lazy-load the async HTTP client.

        Returns:
            The httpx.AsyncClient instance
        """
        if self._client is None:
            self._client = httpx.AsyncClient(
                timeout=self._timeout,
                limits=httpx.Limits(max_connections=100, max_keepalive_connections=20),
                transport=self._transport,
            )
        return self._client

    @classmethod
    def create(
        cls,
        model_name: str | None = None,
        base_url: str | None = None,
    ) -> "OllamaGenerationProvider":
        """Factory method to create OllamaGenerationProvider with defaults.

        Args:
            model_name: Model name. If None, uses settings.
            base_url: Ollama API URL. If None, uses settings.

        Returns:
            Configured OllamaGenerationProvider
        """
        return cls(model_name=model_name, base_url=base_url)

    @property
    def model_name(self) -> str:
        """Get the model name/identifier.

        Returns:
            Model name (e.g., "llama3.1")
        """
        return self._model_name

    async def generate(self, prompt: str, options: GenerationOptions) -> GenerationResponse:
        """Generate a chat completion.

        Args:
            prompt: The user prompt
            options: Generation options

        Returns:
            The generated text and token count

        Raises:
            ProviderUnavailableError: Connection failures, timeouts and 5xx
            ProviderRateLimitedError: 429 responses
            ProviderAuthError: 401/403 responses
            ProviderInvalidRequestError: Other 4xx or malformed responses
        """
        url = f"{self._base_url}/api/chat"
        payload: dict = {
            "model": self._model_name,
            "messages": [
                {"role": "system", "content": options.system_prompt or DEFAULT_SYSTEM_PROMPT},
                {"role": "user", "content": prompt},
            ],
            "stream": False,
            "options": {
                "temperature": options.temperature,
                "num_predict": options.max_tokens,
            },
        }
        if options.structured_output:
            payload["format"] = "json"

        try:
            response = await self.client.post(url, json=payload)
        except httpx.HTTPError as e:
            error_msg = f"Ollama API error: {e}"
            if "connection refused" in str(e).lower():
                error_msg += "\n  → Is Ollama running? Try: ollama serve"
            raise ProviderUnavailableError(error_msg, original_error=e) from e

        self._raise_for_status(response)

        try:
            data = response.json()
        except ValueError as e:
            raise ProviderInvalidRequestError(f"Ollama returned invalid JSON: {e}") from e

        message = data.get("message") or {}
        if "content" not in message:
            raise ProviderInvalidRequestError(f"Unexpected response format: {data}")

        tokens = None
        if "prompt_eval_count" in data or "eval_count" in data:
            tokens = int(data.get("prompt_eval_count", 0)) + int(data.get("eval_count", 0))

        return GenerationResponse(content=message["content"], tokens_consumed=tokens)

    def _raise_for_status(self, response: httpx.Response) -> None:
        status = response.status_code
        if status < 400:
            return

        message = f"Ollama API error {status}: {response.text[:200]}"
        if status == 429:
            raise ProviderRateLimitedError(message, status_code=status)
        if status in (401, 403):
            raise ProviderAuthError(message, status_code=status)
        if status >= 500:
            raise ProviderUnavailableError(message, status_code=status)
        if status == 404 and "not found" in response.text.lower():
            message += f"\n  → Model not found. Try: ollama pull {self._model_name}"
        raise ProviderInvalidRequestError(message, status_code=status)

    async def is_available(self) -> bool:
        """Check if the Ollama server answers.

        Returns:
            True if Ollama is running, False otherwise
        """
        try:
            response = await self.client.get(f"{self._base_url}/api/tags")
            return response.status_code == 200
        except httpx.HTTPError:
            return False

    async def close(self) -> None:
        """Close the async HTTP client.

        Should be called when shutting down the application.
        """
        if self._client is not None:
            await self._client.aclose()
            self._client = None
