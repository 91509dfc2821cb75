"""Generation provider protocol.

Defines the interface for any LLM backend that turns a prompt into text.

Implementations can include:
- OpenAI chat completions (default)
- Ollama (local models)

Exactly one provider is configured per process; there is no routing or
failover between providers.
"""

from typing import Protocol, runtime_checkable

from quizcache.entities import GenerationOptions, GenerationResponse


@runtime_checkable
class GenerationProvider(Protocol):
    """Protocol for LLM generation backends.

    Similar to Go's interface pattern - any type that implements these
    methods satisfies the protocol, no explicit inheritance needed.

    Implementations map their native failures onto the provider taxonomy:
    ``ProviderRateLimitedError`` and ``ProviderUnavailableError`` (transient),
    ``ProviderInvalidRequestError`` and ``ProviderAuthError`` (permanent).
    """

    @property
    def model_name(self) -> str:
        """Return the name/identifier of the model.

        Returns:
            Model name or identifier
        """
        ...

    async def generate(self, prompt: str, options: GenerationOptions) -> GenerationResponse:
        """Generate text for a prompt.

        Args:
            prompt: The user prompt
            options: Token budget, temperature, structured-output hint and
                system prompt

        Returns:
            The generated text and the provider's token count
        """
        ...

    async def is_available(self) -> bool:
        """Check if the provider is reachable.

        Returns:
            True if available, False otherwise
        """
        ...

    async def close(self) -> None:
        """Release network resources."""
        ...
