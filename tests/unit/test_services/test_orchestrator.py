"""Tests for GenerationOrchestrator"""

import asyncio

import pytest

from src.models.generation import GenerationRequest, ProviderId
from src.services.generation.exceptions import (
    AllProvidersFailedError,
    GenerationCancelled,
    PermanentProviderError,
    ProviderExhaustedError,
)
from src.services.generation.retry_policy import RetryPolicy


class TestAutoProviderSelection:
    """Fallback across providers in auto mode"""

    @pytest.mark.asyncio
    async def test_falls_back_after_permanent_failure(self, make_orchestrator, fake_provider, all_keys):
        """A rejected key moves on to the next provider without retrying"""
        openai = fake_provider(ProviderId.OPENAI, [])
        openai.outcomes = [openai.fail("invalid api key", 401)]
        anthropic = fake_provider(ProviderId.ANTHROPIC, ["Hello"])
        orchestrator = make_orchestrator(
            {ProviderId.OPENAI: openai, ProviderId.ANTHROPIC: anthropic}, keys=all_keys
        )

        result = await orchestrator.generate(GenerationRequest(prompt="Say hi"))

        assert result.content == "Hello"
        assert result.provider == ProviderId.ANTHROPIC
        assert result.model == "claude-3-5-sonnet-20241022"
        assert result.cached is False
        assert len(openai.calls) == 1
        assert len(anthropic.calls) == 1

    @pytest.mark.asyncio
    async def test_falls_back_after_exhausting_retries(self, make_orchestrator, fake_provider, all_keys):
        openai = fake_provider(ProviderId.OPENAI, [])
        openai.outcomes = [openai.fail("rate limit exceeded", 429)]
        anthropic = fake_provider(ProviderId.ANTHROPIC, ["from claude"])
        orchestrator = make_orchestrator(
            {ProviderId.OPENAI: openai, ProviderId.ANTHROPIC: anthropic}, keys=all_keys
        )

        result = await orchestrator.generate(GenerationRequest(prompt="p"))

        assert result.provider == ProviderId.ANTHROPIC
        assert len(openai.calls) == 3

    @pytest.mark.asyncio
    async def test_follows_preference_order(self, make_orchestrator, fake_provider, all_keys):
        transports = {
            provider: fake_provider(provider, [f"from {provider.value}"])
            for provider in ProviderId
        }
        orchestrator = make_orchestrator(transports, keys=all_keys)

        result = await orchestrator.generate(GenerationRequest(prompt="p"))

        assert result.provider == ProviderId.OPENAI
        assert result.model == "gpt-4-turbo"
        assert all(not transports[p].calls for p in ProviderId if p != ProviderId.OPENAI)

    @pytest.mark.asyncio
    async def test_skips_providers_without_credentials(self, make_orchestrator, fake_provider):
        transports = {provider: fake_provider(provider, ["text"]) for provider in ProviderId}
        orchestrator = make_orchestrator(transports, keys={"google": "google-key"})

        result = await orchestrator.generate(GenerationRequest(prompt="p"))

        assert result.provider == ProviderId.GOOGLE
        assert result.model == "gemini-1.5-pro"
        assert transports[ProviderId.GOOGLE].calls[0]["api_key"] == "google-key"
        assert not transports[ProviderId.OPENAI].calls

    @pytest.mark.asyncio
    async def test_request_key_used_when_resolver_has_none(self, make_orchestrator, fake_provider):
        openai = fake_provider(ProviderId.OPENAI, ["text"])
        orchestrator = make_orchestrator({ProviderId.OPENAI: openai})

        await orchestrator.generate(GenerationRequest(prompt="p", api_key="sk-from-request"))

        assert openai.calls[0]["api_key"] == "sk-from-request"

    @pytest.mark.asyncio
    async def test_no_credentials_anywhere(self, make_orchestrator, fake_provider):
        transports = {provider: fake_provider(provider, ["text"]) for provider in ProviderId}
        orchestrator = make_orchestrator(transports, keys={})

        with pytest.raises(AllProvidersFailedError) as exc_info:
            await orchestrator.generate(GenerationRequest(prompt="p"))

        assert exc_info.value.permanent is True
        assert [provider for provider, _ in exc_info.value.failures] == [p.value for p in ProviderId]
        assert all(reason == "no credential" for _, reason in exc_info.value.failures)
        assert all(not transport.calls for transport in transports.values())

    @pytest.mark.asyncio
    async def test_all_providers_fail(self, make_orchestrator, fake_provider, all_keys):
        transports = {}
        for provider in ProviderId:
            transport = fake_provider(provider, [])
            transport.outcomes = [transport.fail("unauthorized", 401)]
            transports[provider] = transport
        orchestrator = make_orchestrator(transports, keys=all_keys)

        with pytest.raises(AllProvidersFailedError) as exc_info:
            await orchestrator.generate(GenerationRequest(prompt="p"))

        assert exc_info.value.permanent is False
        assert len(exc_info.value.failures) == 5
        assert str(exc_info.value).startswith("Provider selection failed.")

    @pytest.mark.asyncio
    async def test_missing_transport_is_recorded(self, make_orchestrator, fake_provider, all_keys):
        anthropic = fake_provider(ProviderId.ANTHROPIC, ["text"])
        orchestrator = make_orchestrator({ProviderId.ANTHROPIC: anthropic}, keys=all_keys)

        result = await orchestrator.generate(GenerationRequest(prompt="p"))

        assert result.provider == ProviderId.ANTHROPIC

    @pytest.mark.asyncio
    async def test_concrete_model_only_sent_to_provider_that_lists_it(
        self, make_orchestrator, fake_provider, all_keys
    ):
        openai = fake_provider(ProviderId.OPENAI, [])
        openai.outcomes = [openai.fail("invalid api key", 401)]
        anthropic = fake_provider(ProviderId.ANTHROPIC, ["text"])
        orchestrator = make_orchestrator(
            {ProviderId.OPENAI: openai, ProviderId.ANTHROPIC: anthropic}, keys=all_keys
        )

        result = await orchestrator.generate(GenerationRequest(prompt="p", model="gpt-4"))

        assert openai.calls[0]["model"] == "gpt-4"
        assert anthropic.calls[0]["model"] == "claude-3-5-sonnet-20241022"
        assert result.model == "claude-3-5-sonnet-20241022"


class TestExplicitProvider:
    """A named provider is tried alone"""

    @pytest.mark.asyncio
    async def test_exhausts_retries_without_fallback(self, make_orchestrator, fake_provider, all_keys):
        openai = fake_provider(ProviderId.OPENAI, [])
        openai.outcomes = [openai.fail("service unavailable", 503)]
        anthropic = fake_provider(ProviderId.ANTHROPIC, ["never"])
        orchestrator = make_orchestrator(
            {ProviderId.OPENAI: openai, ProviderId.ANTHROPIC: anthropic}, keys=all_keys
        )

        with pytest.raises(ProviderExhaustedError) as exc_info:
            await orchestrator.generate(GenerationRequest(provider="openai", prompt="p"))

        assert exc_info.value.attempts == 3
        assert exc_info.value.provider == "openai"
        assert len(openai.calls) == 3
        assert not anthropic.calls

    @pytest.mark.asyncio
    async def test_permanent_failure_is_not_retried(self, make_orchestrator, fake_provider, all_keys):
        openai = fake_provider(ProviderId.OPENAI, [])
        openai.outcomes = [openai.fail("Incorrect API key provided", 401)]
        orchestrator = make_orchestrator({ProviderId.OPENAI: openai}, keys=all_keys)

        with pytest.raises(PermanentProviderError) as exc_info:
            await orchestrator.generate(GenerationRequest(provider="openai", prompt="p"))

        assert "Incorrect API key provided" in str(exc_info.value)
        assert len(openai.calls) == 1

    @pytest.mark.asyncio
    async def test_unknown_failure_is_not_retried(self, make_orchestrator, fake_provider, all_keys):
        google = fake_provider(ProviderId.GOOGLE, [])
        google.outcomes = [google.fail("unexpected response format", 400)]
        orchestrator = make_orchestrator({ProviderId.GOOGLE: google}, keys=all_keys)

        with pytest.raises(PermanentProviderError):
            await orchestrator.generate(GenerationRequest(provider="google", prompt="p"))

        assert len(google.calls) == 1

    @pytest.mark.asyncio
    async def test_large_number_in_message_is_not_a_status_code(
        self, make_orchestrator, fake_provider, all_keys
    ):
        """A malformed request naming 5000 tokens aborts without retrying"""
        openai = fake_provider(ProviderId.OPENAI, [])
        openai.outcomes = [openai.fail(
            "max_tokens is too large: 5000. This model supports at most 4096 completion tokens",
            400,
        )]
        orchestrator = make_orchestrator({ProviderId.OPENAI: openai}, keys=all_keys)

        with pytest.raises(PermanentProviderError) as exc_info:
            await orchestrator.generate(GenerationRequest(provider="openai", prompt="p"))

        assert "max_tokens is too large" in str(exc_info.value)
        assert len(openai.calls) == 1

    @pytest.mark.asyncio
    async def test_transient_failure_then_success(self, make_orchestrator, fake_provider, all_keys):
        xai = fake_provider(ProviderId.XAI, [])
        xai.outcomes = [xai.fail("connection error: reset"), "recovered"]
        orchestrator = make_orchestrator({ProviderId.XAI: xai}, keys=all_keys)

        result = await orchestrator.generate(GenerationRequest(provider="xai", prompt="p"))

        assert result.content == "recovered"
        assert result.model == "grok-4-latest"
        assert len(xai.calls) == 2

    @pytest.mark.asyncio
    async def test_missing_key(self, make_orchestrator, fake_provider):
        openai = fake_provider(ProviderId.OPENAI, ["text"])
        orchestrator = make_orchestrator({ProviderId.OPENAI: openai}, keys={})

        with pytest.raises(PermanentProviderError) as exc_info:
            await orchestrator.generate(GenerationRequest(provider="openai", prompt="p"))

        assert "API key is required for openai" in str(exc_info.value)
        assert not openai.calls

    @pytest.mark.asyncio
    async def test_request_key_takes_precedence(self, make_orchestrator, fake_provider, all_keys):
        openai = fake_provider(ProviderId.OPENAI, ["text"])
        orchestrator = make_orchestrator({ProviderId.OPENAI: openai}, keys=all_keys)

        await orchestrator.generate(
            GenerationRequest(provider="openai", prompt="p", api_key="sk-explicit")
        )

        assert openai.calls[0]["api_key"] == "sk-explicit"

    @pytest.mark.asyncio
    async def test_concrete_model_passes_through(self, make_orchestrator, fake_provider, all_keys):
        openai = fake_provider(ProviderId.OPENAI, ["text"])
        orchestrator = make_orchestrator({ProviderId.OPENAI: openai}, keys=all_keys)

        result = await orchestrator.generate(
            GenerationRequest(provider="openai", model="gpt-3.5-turbo", prompt="p")
        )

        assert result.model == "gpt-3.5-turbo"
        assert openai.calls[0]["model"] == "gpt-3.5-turbo"

    @pytest.mark.asyncio
    async def test_slow_call_times_out_as_transient(self, make_orchestrator, fake_provider, all_keys):
        openai = fake_provider(ProviderId.OPENAI, ["late"], delay=1)
        orchestrator = make_orchestrator(
            {ProviderId.OPENAI: openai},
            keys=all_keys,
            policy=RetryPolicy(max_attempts=2, base_delay=0, timeout=0.05),
        )

        with pytest.raises(ProviderExhaustedError) as exc_info:
            await orchestrator.generate(GenerationRequest(provider="openai", prompt="p"))

        assert exc_info.value.attempts == 2
        assert "timeout" in str(exc_info.value.last_error)


class TestBackoff:
    """Waits between attempts double from the base delay"""

    @pytest.fixture
    def recorded_sleeps(self, monkeypatch):
        delays = []
        real_sleep = asyncio.sleep

        async def fake_sleep(delay, *args, **kwargs):
            delays.append(delay)
            await real_sleep(0)

        monkeypatch.setattr("src.services.generation.orchestrator.asyncio.sleep", fake_sleep)
        return delays

    @pytest.mark.asyncio
    async def test_three_attempts_wait_one_then_two_seconds(
        self, make_orchestrator, fake_provider, all_keys, recorded_sleeps
    ):
        openai = fake_provider(ProviderId.OPENAI, [])
        openai.outcomes = [openai.fail("rate limit exceeded", 429)]
        orchestrator = make_orchestrator(
            {ProviderId.OPENAI: openai},
            keys=all_keys,
            policy=RetryPolicy(max_attempts=3, base_delay=1.0, timeout=5),
        )

        with pytest.raises(ProviderExhaustedError):
            await orchestrator.generate(GenerationRequest(provider="openai", prompt="p"))

        assert recorded_sleeps == [1.0, 2.0]
        assert len(openai.calls) == 3

    @pytest.mark.asyncio
    async def test_no_wait_after_success(
        self, make_orchestrator, fake_provider, all_keys, recorded_sleeps
    ):
        openai = fake_provider(ProviderId.OPENAI, [])
        openai.outcomes = [openai.fail("overloaded", 529), openai.fail("overloaded", 529), "done"]
        orchestrator = make_orchestrator(
            {ProviderId.OPENAI: openai},
            keys=all_keys,
            policy=RetryPolicy(max_attempts=4, base_delay=0.5, timeout=5),
        )

        result = await orchestrator.generate(
            GenerationRequest(provider="openai", prompt="p"), cancel_event=asyncio.Event()
        )

        assert result.content == "done"
        assert recorded_sleeps == [0.5, 1.0]


class TestCancellation:

    @pytest.mark.asyncio
    async def test_already_cancelled(self, make_orchestrator, fake_provider, all_keys):
        openai = fake_provider(ProviderId.OPENAI, ["text"])
        orchestrator = make_orchestrator({ProviderId.OPENAI: openai}, keys=all_keys)
        cancel_event = asyncio.Event()
        cancel_event.set()

        with pytest.raises(GenerationCancelled):
            await orchestrator.generate(GenerationRequest(prompt="p"), cancel_event=cancel_event)

        assert not openai.calls

    @pytest.mark.asyncio
    async def test_cancel_during_backoff(self, make_orchestrator, fake_provider, all_keys):
        openai = fake_provider(ProviderId.OPENAI, [])
        openai.outcomes = [openai.fail("overloaded", 529)]
        orchestrator = make_orchestrator(
            {ProviderId.OPENAI: openai},
            keys=all_keys,
            policy=RetryPolicy(max_attempts=3, base_delay=30, timeout=5),
        )
        cancel_event = asyncio.Event()
        asyncio.get_running_loop().call_later(0.05, cancel_event.set)

        with pytest.raises(GenerationCancelled):
            await asyncio.wait_for(
                orchestrator.generate(
                    GenerationRequest(provider="openai", prompt="p"), cancel_event=cancel_event
                ),
                timeout=2,
            )

        assert len(openai.calls) == 1

    @pytest.mark.asyncio
    async def test_cancel_in_flight_call(self, make_orchestrator, fake_provider, all_keys):
        openai = fake_provider(ProviderId.OPENAI, ["slow"], delay=3)
        anthropic = fake_provider(ProviderId.ANTHROPIC, ["never"])
        orchestrator = make_orchestrator(
            {ProviderId.OPENAI: openai, ProviderId.ANTHROPIC: anthropic}, keys=all_keys
        )
        cancel_event = asyncio.Event()
        asyncio.get_running_loop().call_later(0.05, cancel_event.set)

        with pytest.raises(GenerationCancelled):
            await asyncio.wait_for(
                orchestrator.generate(GenerationRequest(prompt="p"), cancel_event=cancel_event),
                timeout=2,
            )

        assert not anthropic.calls


class TestResponseCaching:

    @pytest.mark.asyncio
    async def test_low_temperature_result_is_cached(self, make_orchestrator, fake_provider, all_keys):
        openai = fake_provider(ProviderId.OPENAI, [])
        openai.outcomes = [openai.fail("invalid api key", 401)]
        anthropic = fake_provider(ProviderId.ANTHROPIC, ["deterministic"])
        orchestrator = make_orchestrator(
            {ProviderId.OPENAI: openai, ProviderId.ANTHROPIC: anthropic}, keys=all_keys
        )
        request = GenerationRequest(prompt="same prompt", temperature=0.2)

        first = await orchestrator.generate(request)
        second = await orchestrator.generate(request)

        assert first.cached is False
        assert second.cached is True
        assert second.content == "deterministic"
        assert second.provider == ProviderId.ANTHROPIC
        assert second.model == "claude-3-5-sonnet-20241022"
        assert second.tokens_used == 0
        assert len(anthropic.calls) == 1

    @pytest.mark.asyncio
    async def test_high_temperature_is_not_cached(self, make_orchestrator, fake_provider, all_keys):
        openai = fake_provider(ProviderId.OPENAI, ["creative"])
        orchestrator = make_orchestrator({ProviderId.OPENAI: openai}, keys=all_keys)
        request = GenerationRequest(prompt="p", temperature=0.9)

        await orchestrator.generate(request)
        second = await orchestrator.generate(request)

        assert second.cached is False
        assert len(openai.calls) == 2

    @pytest.mark.asyncio
    async def test_use_cache_false_forces_live_call(self, make_orchestrator, fake_provider, all_keys):
        openai = fake_provider(ProviderId.OPENAI, ["text"])
        orchestrator = make_orchestrator({ProviderId.OPENAI: openai}, keys=all_keys)
        request = GenerationRequest(provider="openai", prompt="p", temperature=0.1)

        await orchestrator.generate(request)
        second = await orchestrator.generate(request, use_cache=False)

        assert second.cached is False
        assert len(openai.calls) == 2

    @pytest.mark.asyncio
    async def test_works_without_cache(self, make_orchestrator, fake_provider, all_keys):
        openai = fake_provider(ProviderId.OPENAI, ["text"])
        orchestrator = make_orchestrator({ProviderId.OPENAI: openai}, keys=all_keys, cache=None)

        result = await orchestrator.generate(GenerationRequest(prompt="p", temperature=0))

        assert result.cached is False


@pytest.mark.asyncio
async def test_health_check_lists_transports(make_orchestrator, fake_provider):
    orchestrator = make_orchestrator({ProviderId.GOOGLE: fake_provider(ProviderId.GOOGLE)})

    health = await orchestrator.health_check()

    assert health["status"] == "healthy"
    assert health["providers"] == ["google"]
    assert health["max_attempts"] == 3
