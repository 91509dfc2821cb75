"""The single boundary between the core and the generation provider.

GenerationClient bounds every call with a timeout, clips the token budget to
the per-request ceiling and guarantees that callers only ever see the
provider taxonomy (transient vs permanent).
"""

import asyncio
import logging
import time
from dataclasses import dataclass, replace

from quizcache.config import settings
from quizcache.entities import GenerationOptions, GenerationResponse
from quizcache.errors import ProviderError, ProviderUnavailableError
from quizcache.protocols import GenerationProvider

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class GenerationCall:
    """One prompt plus options, the unit the batcher queues."""

    prompt: str
    options: GenerationOptions


class GenerationClient:
    """Timeout-bounded adapter over a GenerationProvider.

    Example:
        ```python
        client = GenerationClient(provider=OpenAIGenerationProvider.create())
        response = await client.generate("Explain osmosis", GenerationOptions(max_tokens=100))
        ```
    """

    def __init__(
        self,
        provider: GenerationProvider,
        timeout: float | None = None,
        max_tokens_per_request: int | None = None,
    ) -> None:
        """Initialize the client.

        Args:
            provider: The configured provider adapter
            timeout: Seconds before a call is abandoned as transient.
                Defaults to settings.
            max_tokens_per_request: Ceiling for options.max_tokens.
                Defaults to settings.
        """
        self._provider = provider
        self._timeout = timeout or settings.generation_timeout
        self._max_tokens = max_tokens_per_request or settings.max_tokens_per_request

    async def generate(self, prompt: str, options: GenerationOptions) -> GenerationResponse:
        """Generate text for a prompt.

        Structured-output mode is requested from the provider when
        ``options.structured_output`` is set.

        Args:
            prompt: The user prompt
            options: Generation options

        Returns:
            The provider's text and token count

        Raises:
            ProviderTransientError: Rate limits, outages and timeouts
            ProviderPermanentError: Auth and invalid-request failures
        """
        effective = replace(options, max_tokens=min(options.max_tokens, self._max_tokens))
        started = time.monotonic()

        try:
            response = await asyncio.wait_for(
                self._provider.generate(prompt, effective), timeout=self._timeout
            )
        except asyncio.TimeoutError as e:
            logger.warning("Generation timed out after %.1fs", self._timeout)
            raise ProviderUnavailableError(
                f"Generation timed out after {self._timeout}s", original_error=e
            ) from e
        except ProviderError as e:
            logger.warning("Generation failed (%s): %s", type(e).__name__, e)
            raise

        logger.debug(
            "Generated %d chars (%s tokens) in %.0fms",
            len(response.content),
            response.tokens_consumed,
            (time.monotonic() - started) * 1000,
        )
        return response

    async def generate_many(
        self, calls: list[GenerationCall]
    ) -> list[GenerationResponse | ProviderError]:
        """Dispatch a batch of calls concurrently.

        Args:
            calls: Calls to dispatch

        Returns:
            One outcome per call, in order: a response or the provider error
            that call failed with
        """
        outcomes = await asyncio.gather(
            *(self.generate(call.prompt, call.options) for call in calls),
            return_exceptions=True,
        )

        results: list[GenerationResponse | ProviderError] = []
        for outcome in outcomes:
            if isinstance(outcome, BaseException) and not isinstance(outcome, ProviderError):
                # Anything outside the taxonomy fails the whole batch.
                raise outcome
            results.append(outcome)
        return results

    async def is_available(self) -> bool:
        """Check if the provider is reachable."""
        return await self._provider.is_available()

    async def close(self) -> None:
        """Release provider resources."""
        await self._provider.close()

    @property
    def provider(self) -> GenerationProvider:
        """Get the underlying provider (for testing)."""
        return self._provider

    @property
    def max_tokens_per_request(self) -> int:
        """Per-request token ceiling."""
        return self._max_tokens
