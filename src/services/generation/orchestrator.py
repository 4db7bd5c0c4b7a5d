"""Multi-provider generation with retry, fallback, caching and cancellation"""

import asyncio
from typing import Any, Awaitable, Callable, Dict, List, Mapping, Optional, Tuple

from .error_classifier import ErrorCategory, classify
from .exceptions import (
    AllProvidersFailedError,
    GenerationCancelled,
    PermanentProviderError,
    ProviderError,
    ProviderExhaustedError,
)
from .providers.base_provider import BaseModelProvider
from .providers.catalog import is_known_model, resolve_model
from .providers.provider_decorators import initialize_providers
from .providers.provider_registry import ModelProviderRegistry
from .retry_policy import RetryPolicy
from ..base_service import BaseService
from ..cache.cache_service import AIResponseCache
from ..credentials.resolvers import CredentialResolver, CredentialStoreError
from ..service_factory import ServiceFactory, ServiceType
from ...core.config import Settings
from ...core.telemetry import GenerationMetrics
from ...models.generation import (
    AUTO,
    GenerationRequest,
    GenerationResult,
    ProviderId,
    ProviderResponse,
    PROVIDER_PREFERENCE_ORDER,
)
from ...storage.base_storage import StorageError


class GenerationOrchestrator(BaseService):
    """Turns a GenerationRequest into a GenerationResult

    An explicit provider is tried alone. ``auto`` walks
    PROVIDER_PREFERENCE_ORDER, skipping providers without a credential and
    moving on after a permanent failure or exhausted retries. Each provider
    gets ``max_attempts`` calls; only transient failures are retried.
    """

    def __init__(
        self,
        credentials: CredentialResolver,
        cache: Optional[AIResponseCache] = None,
        policy: Optional[RetryPolicy] = None,
        transports: Optional[Mapping[ProviderId, BaseModelProvider]] = None,
        metrics: Optional[GenerationMetrics] = None,
        settings: Optional[Settings] = None
    ):
        super().__init__("GenerationOrchestrator", settings=settings)
        self.credentials = credentials
        self.cache = cache
        self.policy = policy or RetryPolicy.from_config(self.settings.orchestration)
        self.metrics = metrics or GenerationMetrics()
        self._transports = dict(transports) if transports is not None else None
        if self._transports is None:
            initialize_providers()

    # Transport and credential lookup

    def _transport(self, provider: ProviderId) -> BaseModelProvider:
        """Raises UnsupportedProviderError when nothing serves ``provider``"""
        if self._transports is not None and provider in self._transports:
            return self._transports[provider]
        return ModelProviderRegistry.create(provider)

    def _has_transport(self, provider: ProviderId) -> bool:
        if self._transports is not None:
            return provider in self._transports
        return ModelProviderRegistry.is_registered(provider)

    async def _resolve_credential(self, provider: ProviderId) -> Optional[str]:
        try:
            return await self.credentials.resolve(provider.value)
        except CredentialStoreError as e:
            self.logger.warning(
                f"Credential lookup failed for {provider.value}: {str(e)}",
                extra={"provider": provider.value}
            )
            return None

    def _model_for(self, provider: ProviderId, requested: str, auto_provider: bool) -> str:
        overrides = self.settings.llm.default_models
        if auto_provider and requested != AUTO and not is_known_model(provider, requested):
            # A concrete model only makes sense for the provider that lists it
            return resolve_model(provider, AUTO, overrides)
        return resolve_model(provider, requested, overrides)

    # Cache

    def _is_cacheable(self, request: GenerationRequest) -> bool:
        return (
            self.cache is not None
            and self.settings.cache.enabled
            and request.temperature <= self.settings.cache.max_cacheable_temperature
        )

    async def _cache_lookup(self, request: GenerationRequest) -> Optional[GenerationResult]:
        try:
            hit = await self.cache.get_cached_ai_response(
                request.provider_id, request.model, request.prompt, request.max_tokens
            )
        except StorageError as e:
            self.logger.warning(f"Response cache unavailable, skipping lookup: {str(e)}")
            return None

        self.metrics.record_cache_lookup(self.cache.AI_RESPONSE, hit is not None)
        if hit is None:
            return None
        try:
            return GenerationResult(
                content=hit["content"],
                provider=ProviderId(hit["provider"]),
                model=hit["model"],
                tokens_used=0,
                cached=True,
            )
        except (KeyError, ValueError, TypeError):
            self.logger.warning("Ignoring malformed cached response")
            return None

    async def _cache_store(self, request: GenerationRequest, result: GenerationResult):
        try:
            await self.cache.cache_ai_response(
                request.provider_id,
                request.model,
                request.prompt,
                result.content,
                tokens_used=result.tokens_used,
                max_tokens=request.max_tokens,
                served_by=(result.provider.value, result.model),
            )
        except StorageError as e:
            self.logger.warning(f"Failed to cache response: {str(e)}")

    # Cancellation-aware waiting

    async def _race(
        self,
        make_awaitable: Callable[[], Awaitable[Any]],
        cancel_event: Optional[asyncio.Event],
        provider: ProviderId
    ) -> Any:
        """Await ``make_awaitable()`` unless ``cancel_event`` fires first"""
        if cancel_event is None:
            return await make_awaitable()
        if cancel_event.is_set():
            raise GenerationCancelled(provider.value)

        work = asyncio.ensure_future(make_awaitable())
        cancelled = asyncio.ensure_future(cancel_event.wait())
        try:
            done, _ = await asyncio.wait({work, cancelled}, return_when=asyncio.FIRST_COMPLETED)
        finally:
            pending = [task for task in (work, cancelled) if not task.done()]
            for task in pending:
                task.cancel()
            if pending:
                await asyncio.gather(*pending, return_exceptions=True)

        if work in done:
            return work.result()
        raise GenerationCancelled(provider.value)

    async def _invoke(
        self,
        transport: BaseModelProvider,
        provider: ProviderId,
        model: str,
        request: GenerationRequest,
        api_key: str,
        cancel_event: Optional[asyncio.Event]
    ) -> ProviderResponse:
        def call():
            return asyncio.wait_for(
                transport.call(model, request.prompt, api_key, request.max_tokens, request.temperature),
                timeout=self.policy.timeout,
            )

        try:
            return await self._race(call, cancel_event, provider)
        except asyncio.TimeoutError as e:
            raise ProviderError(
                provider.value,
                f"request timeout after {self.policy.timeout:g}s",
            ) from e

    # Retry

    async def _call_with_retry(
        self,
        provider: ProviderId,
        model: str,
        request: GenerationRequest,
        api_key: str,
        cancel_event: Optional[asyncio.Event]
    ) -> GenerationResult:
        transport = self._transport(provider)
        attempts = 0
        while True:
            try:
                response = await self._invoke(
                    transport, provider, model, request, api_key, cancel_event
                )
            except ProviderError as e:
                attempts += 1
                category = classify(str(e))
                self.metrics.record_attempt(provider.value, category.value)

                if category is not ErrorCategory.TRANSIENT:
                    self.logger.warning(
                        f"{provider.value} failed with non-retryable error: {e.detail}",
                        extra={"provider": provider.value, "model": model, "attempt": attempts}
                    )
                    raise PermanentProviderError(provider.value, e.detail) from e

                if not self.policy.has_attempts_left(attempts):
                    raise ProviderExhaustedError(provider.value, attempts, e) from e

                delay = self.policy.delay_for(attempts - 1)
                self.logger.warning(
                    f"{provider.value} transient failure, retrying in {delay:g}s: {e.detail}",
                    extra={"provider": provider.value, "model": model, "attempt": attempts}
                )
                await self._race(lambda: asyncio.sleep(delay), cancel_event, provider)
                continue

            self.metrics.record_attempt(provider.value, "success")
            return GenerationResult(
                content=response.content,
                provider=provider,
                model=model,
                tokens_used=response.tokens_used,
            )

    # Provider selection

    async def _generate_explicit(
        self,
        request: GenerationRequest,
        cancel_event: Optional[asyncio.Event]
    ) -> GenerationResult:
        provider = ProviderId(request.provider)
        self._transport(provider)
        model = self._model_for(provider, request.model, auto_provider=False)

        api_key = request.api_key.strip() or await self._resolve_credential(provider)
        if not api_key:
            raise PermanentProviderError(
                provider.value, f"API key is required for {provider.value}"
            )
        return await self._call_with_retry(provider, model, request, api_key, cancel_event)

    async def _generate_auto(
        self,
        request: GenerationRequest,
        cancel_event: Optional[asyncio.Event]
    ) -> GenerationResult:
        failures: List[Tuple[str, str]] = []
        attempted = False
        request_key = request.api_key.strip()

        for provider in PROVIDER_PREFERENCE_ORDER:
            if cancel_event is not None and cancel_event.is_set():
                raise GenerationCancelled(provider.value)
            if not self._has_transport(provider):
                failures.append((provider.value, "no transport registered"))
                continue

            api_key = await self._resolve_credential(provider) or request_key
            if not api_key:
                failures.append((provider.value, "no credential"))
                continue

            attempted = True
            model = self._model_for(provider, request.model, auto_provider=True)
            try:
                return await self._call_with_retry(provider, model, request, api_key, cancel_event)
            except (PermanentProviderError, ProviderExhaustedError) as e:
                failures.append((provider.value, str(e)))
                self.metrics.record_fallback(provider.value)
                self.logger.warning(
                    f"Falling back from {provider.value}: {str(e)}",
                    extra={"provider": provider.value}
                )

        raise AllProvidersFailedError(failures, permanent=not attempted)

    async def generate(
        self,
        request: GenerationRequest,
        cancel_event: Optional[asyncio.Event] = None,
        use_cache: bool = True
    ) -> GenerationResult:
        """Generate content for ``request``

        Args:
            request: What to generate and with which provider
            cancel_event: Setting it abandons the in-flight call or backoff
            use_cache: False forces a live provider call

        Raises:
            PermanentProviderError: Explicit provider rejected the request
            ProviderExhaustedError: Explicit provider kept failing transiently
            AllProvidersFailedError: Auto mode ran out of providers
            GenerationCancelled: ``cancel_event`` was set
            UnsupportedProviderError: No transport for the explicit provider
        """
        with self.traced_operation(
            "generation.generate",
            provider=request.provider_id,
            model=request.model,
            max_tokens=request.max_tokens,
        ) as span:
            cacheable = use_cache and self._is_cacheable(request)
            if cacheable:
                cached = await self._cache_lookup(request)
                if cached is not None:
                    span.set_attribute("generation.cached", True)
                    return cached

            if request.is_auto_provider:
                result = await self._generate_auto(request, cancel_event)
            else:
                result = await self._generate_explicit(request, cancel_event)

            span.set_attributes({
                "generation.provider": result.provider.value,
                "generation.model": result.model,
            })
            if cacheable:
                await self._cache_store(request, result)

            self.logger.info(
                f"Generated {len(result.content)} chars with {result.provider.value}/{result.model}",
                extra={"provider": result.provider.value, "model": result.model}
            )
            return result

    async def health_check(self) -> Dict[str, Any]:
        return {
            "service": self.service_name,
            "status": "healthy",
            "providers": [
                provider.value for provider in PROVIDER_PREFERENCE_ORDER
                if self._has_transport(provider)
            ],
            "max_attempts": self.policy.max_attempts,
            "request_timeout_seconds": self.policy.timeout,
        }


ServiceFactory.register(ServiceType.ORCHESTRATOR, GenerationOrchestrator)
