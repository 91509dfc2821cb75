"""Tests for the GenerationClient boundary."""

import asyncio

import pytest

from conftest import ScriptedProvider
from quizcache.entities import GenerationOptions, GenerationResponse
from quizcache.errors import ProviderAuthError, ProviderRateLimitedError, ProviderUnavailableError
from quizcache.services import GenerationCall, GenerationClient


class SlowProvider(ScriptedProvider):
    async def generate(self, prompt: str, options: GenerationOptions) -> GenerationResponse:
        await asyncio.sleep(10)
        return GenerationResponse(content="too late")


class TestGenerate:
    @pytest.mark.asyncio
    async def test_returns_provider_response(self) -> None:
        provider = ScriptedProvider(GenerationResponse(content="hint text", tokens_consumed=12))
        client = GenerationClient(provider=provider, timeout=5.0, max_tokens_per_request=1000)

        response = await client.generate("prompt", GenerationOptions(max_tokens=50))

        assert response == GenerationResponse(content="hint text", tokens_consumed=12)

    @pytest.mark.asyncio
    async def test_max_tokens_is_clipped_to_ceiling(self) -> None:
        """Test the provider never sees a budget above the per-request ceiling."""
        provider = ScriptedProvider("ok")
        client = GenerationClient(provider=provider, timeout=5.0, max_tokens_per_request=200)

        await client.generate("prompt", GenerationOptions(max_tokens=5000, structured_output=True))

        _, sent = provider.calls[0]
        assert sent.max_tokens == 200
        assert sent.structured_output is True

    @pytest.mark.asyncio
    async def test_timeout_is_transient(self) -> None:
        """Test a call exceeding the timeout surfaces as ProviderUnavailableError."""
        client = GenerationClient(provider=SlowProvider(), timeout=0.01)

        with pytest.raises(ProviderUnavailableError):
            await client.generate("prompt", GenerationOptions())

    @pytest.mark.asyncio
    async def test_provider_errors_propagate_unchanged(self) -> None:
        client = GenerationClient(provider=ScriptedProvider(ProviderAuthError("bad key")))
        with pytest.raises(ProviderAuthError):
            await client.generate("prompt", GenerationOptions())


class TestGenerateMany:
    @pytest.mark.asyncio
    async def test_returns_one_outcome_per_call_in_order(self) -> None:
        """Test failures occupy their own slot without failing the batch."""
        limited = ProviderRateLimitedError("slow down", status_code=429)
        provider = ScriptedProvider("first", limited, "third")
        client = GenerationClient(provider=provider, timeout=5.0)

        outcomes = await client.generate_many(
            [GenerationCall(f"p{i}", GenerationOptions()) for i in range(3)]
        )

        assert outcomes[0].content == "first"
        assert outcomes[1] is limited
        assert outcomes[2].content == "third"

    @pytest.mark.asyncio
    async def test_unexpected_error_fails_the_batch(self) -> None:
        client = GenerationClient(provider=ScriptedProvider(RuntimeError("bug")), timeout=5.0)
        with pytest.raises(RuntimeError):
            await client.generate_many([GenerationCall("p", GenerationOptions())])

    @pytest.mark.asyncio
    async def test_close_closes_provider(self) -> None:
        provider = ScriptedProvider("ok")
        await GenerationClient(provider=provider).close()
        assert provider.closed is True
