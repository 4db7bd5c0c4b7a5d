"""Authoring workflows built on the generation orchestrator"""

import asyncio
import json
import re
from typing import Any, Awaitable, Dict, List, Optional

from .base_service import BaseService
from .cache.cache_service import AIResponseCache
from .credentials.key_format import get_api_key_validation_error
from .generation import prompts
from .generation.exceptions import GenerationCancelled, GenerationError, PermanentProviderError
from .generation.orchestrator import GenerationOrchestrator
from .generation.providers.catalog import catalog_as_dict, resolve_model
from .service_factory import ServiceFactory, ServiceType
from ..core.config import Settings
from ..models.generation import (
    AUTO,
    ApiKeyTestResult,
    BrainstormResult,
    GenerationRequest,
    GenerationResult,
    ProviderId,
)
from ..storage.base_storage import StorageError

_CODE_FENCE_RE = re.compile(r"^```(?:json)?\s*|\s*```$", re.IGNORECASE)
_NUMBERED_LINE_RE = re.compile(r"^\d+\.")
_NUMBER_PREFIX_RE = re.compile(r"^\d+\.?\s*")
_TITLE_LABEL_RE = re.compile(r"Title\s*\d*:?\s*", re.IGNORECASE)


def parse_brainstorm(content: str, topic: str) -> BrainstormResult:
    """Read ``{titles, outline}`` JSON, falling back to line scraping"""
    text = _CODE_FENCE_RE.sub("", (content or "").strip())
    try:
        parsed = json.loads(text)
    except ValueError:
        parsed = None

    if isinstance(parsed, dict) and parsed.get("titles") and parsed.get("outline"):
        outline = parsed["outline"]
        if not isinstance(outline, str):
            outline = json.dumps(outline, indent=2)
        return BrainstormResult(titles=[str(t) for t in parsed["titles"]], outline=outline)

    lines = [line.strip() for line in (content or "").splitlines() if line.strip()]
    titles: List[str] = []
    for line in lines:
        if "Title" in line or _NUMBERED_LINE_RE.match(line):
            title = _TITLE_LABEL_RE.sub("", _NUMBER_PREFIX_RE.sub("", line), count=1).strip()
            if title:
                titles.append(title)
        if len(titles) == 5:
            break

    return BrainstormResult(titles=titles or prompts.fallback_titles(topic), outline=content or "")


def friendly_key_error(provider: str, message: str) -> str:
    lowered = message.lower()
    if "401" in lowered or "unauthorized" in lowered or "invalid api key" in lowered:
        return f"Invalid API key for {provider}. Please check your key is correct and active."
    if "403" in lowered or "forbidden" in lowered:
        return f"API key for {provider} lacks required permissions or has exceeded quota."
    if "429" in lowered or "rate limit" in lowered:
        return f"Rate limit exceeded for {provider}. API key is valid but temporarily blocked."
    if "network" in lowered or "fetch" in lowered or "connection" in lowered:
        return f"Network error testing {provider} API key. Please check your connection."
    return f"Failed to validate {provider} API key: {message}"


class AuthoringService(BaseService):
    """Brainstorming, outlining, chapter and ebook writing, humanization"""

    def __init__(
        self,
        orchestrator: GenerationOrchestrator,
        cache: AIResponseCache,
        settings: Optional[Settings] = None
    ):
        super().__init__("AuthoringService", settings=settings)
        self.orchestrator = orchestrator
        self.cache = cache

    async def _cached(self, lookup: Awaitable[Any]) -> Any:
        try:
            return await lookup
        except StorageError as e:
            self.logger.warning(f"Response cache unavailable: {str(e)}")
            return None

    def _check_key_format(self, provider: str, api_key: str):
        """Reject an explicitly supplied key that cannot be right"""
        if provider == AUTO or not api_key.strip():
            return
        error = get_api_key_validation_error(provider, api_key)
        if error:
            raise PermanentProviderError(provider, error)

    async def _generate_text(
        self,
        provider: str,
        model: str,
        prompt: str,
        api_key: str,
        max_tokens: int,
        temperature: float,
        cancel_event: Optional[asyncio.Event] = None
    ) -> GenerationResult:
        request = GenerationRequest(
            provider=provider,
            model=model,
            prompt=prompt,
            api_key=api_key or "",
            max_tokens=max(1, max_tokens),
            temperature=temperature,
        )
        self._check_key_format(request.provider_id, request.api_key)
        return await self.orchestrator.generate(request, cancel_event=cancel_event)

    async def generate_content(
        self,
        request: GenerationRequest,
        cancel_event: Optional[asyncio.Event] = None
    ) -> GenerationResult:
        return await self.orchestrator.generate(request, cancel_event=cancel_event)

    async def brainstorm(
        self,
        topic: str,
        provider: str = AUTO,
        model: str = AUTO,
        api_key: str = "",
        cancel_event: Optional[asyncio.Event] = None
    ) -> BrainstormResult:
        """Five titles and an outline for ``topic``; cached for four hours"""
        with self.traced_operation("authoring.brainstorm", provider=provider):
            cached = await self._cached(self.cache.get_cached_brainstorm(topic, provider))
            if cached:
                return BrainstormResult(**cached)

            result = await self._generate_text(
                provider, model, prompts.brainstorm_prompt(topic), api_key,
                max_tokens=3000, temperature=0.8, cancel_event=cancel_event,
            )
            brainstorm = parse_brainstorm(result.content, topic)
            await self._cached(self.cache.cache_brainstorm(topic, provider, brainstorm.model_dump()))
            return brainstorm

    async def test_api_key(
        self,
        provider: str,
        api_key: str,
        cancel_event: Optional[asyncio.Event] = None
    ) -> ApiKeyTestResult:
        """Format check, then a tiny live request on the default model"""
        try:
            provider_id = ProviderId(provider)
        except ValueError:
            return ApiKeyTestResult(valid=False, error=f"Unsupported provider: {provider}")

        format_error = get_api_key_validation_error(provider_id.value, api_key)
        if format_error:
            return ApiKeyTestResult(valid=False, error=format_error)

        request = GenerationRequest(
            provider=provider_id,
            model=resolve_model(provider_id, AUTO, self.settings.llm.default_models),
            prompt=prompts.API_KEY_TEST_PROMPT,
            api_key=api_key,
            max_tokens=10,
            temperature=0.1,
        )
        try:
            await self.orchestrator.generate(request, cancel_event=cancel_event, use_cache=False)
        except GenerationCancelled:
            raise
        except GenerationError as e:
            self.logger.info(f"API key test failed for {provider_id.value}: {str(e)}")
            return ApiKeyTestResult(valid=False, error=friendly_key_error(provider_id.value, str(e)))
        return ApiKeyTestResult(valid=True)

    async def improve_outline(
        self,
        outline: str,
        provider: str = AUTO,
        model: str = AUTO,
        api_key: str = "",
        cancel_event: Optional[asyncio.Event] = None
    ) -> str:
        with self.traced_operation("authoring.improve_outline", provider=provider):
            result = await self._generate_text(
                provider, model, prompts.improve_outline_prompt(outline), api_key,
                max_tokens=2000, temperature=0.6, cancel_event=cancel_event,
            )
            return result.content

    async def generate_chapter(
        self,
        title: str,
        number: int,
        outline: str,
        tone: str = "auto",
        audience: str = "general readers",
        word_count: int = 2000,
        provider: str = AUTO,
        model: str = AUTO,
        api_key: str = "",
        cancel_event: Optional[asyncio.Event] = None
    ) -> str:
        """Write one chapter; cached for eight hours per title, number, outline and provider"""
        with self.traced_operation("authoring.generate_chapter", provider=provider, chapter=number):
            cached = await self._cached(
                self.cache.get_cached_chapter(title, number, outline, provider)
            )
            if cached:
                return cached

            result = await self._generate_text(
                provider, model,
                prompts.chapter_prompt(title, number, outline, tone, audience, word_count),
                api_key,
                max_tokens=min(4000, word_count // 2),
                temperature=0.7,
                cancel_event=cancel_event,
            )
            await self._cached(
                self.cache.cache_chapter(title, number, outline, provider, result.content)
            )
            return result.content

    async def generate_ebook(
        self,
        topic: str,
        word_count: int = 5000,
        tone: str = "auto",
        audience: str = "general readers",
        outline: Optional[str] = None,
        custom_tone: Optional[str] = None,
        provider: str = AUTO,
        model: str = AUTO,
        api_key: str = "",
        cancel_event: Optional[asyncio.Event] = None
    ) -> str:
        with self.traced_operation("authoring.generate_ebook", provider=provider):
            result = await self._generate_text(
                provider, model,
                prompts.ebook_prompt(topic, word_count, tone, audience, outline, custom_tone),
                api_key,
                max_tokens=min(8000, word_count // 2),
                temperature=0.7,
                cancel_event=cancel_event,
            )
            return result.content

    async def humanize_content(
        self,
        content: str,
        provider: str = AUTO,
        model: str = AUTO,
        api_key: str = "",
        cancel_event: Optional[asyncio.Event] = None
    ) -> str:
        """Rewrite AI prose to read naturally; cached for two hours"""
        with self.traced_operation("authoring.humanize", provider=provider):
            cached = await self._cached(self.cache.get_cached_humanization(content, provider))
            if cached:
                return cached

            result = await self._generate_text(
                provider, model, prompts.humanize_prompt(content), api_key,
                max_tokens=min(4000, len(content) * 2),
                temperature=0.3,
                cancel_event=cancel_event,
            )
            await self._cached(self.cache.cache_humanization(content, provider, result.content))
            return result.content

    def list_providers(self) -> List[Dict[str, Any]]:
        return catalog_as_dict()

    async def cache_stats(self) -> Dict[str, Any]:
        return await self.cache.get_stats()

    async def clear_cache(self, namespace: Optional[str] = None) -> int:
        if namespace:
            return await self.cache.clear_namespace(namespace)
        return await self.cache.clear_all()

    async def health_check(self) -> Dict[str, Any]:
        storage = await self.cache.storage.health_check()
        orchestrator = await self.orchestrator.health_check()
        healthy = storage.get("status") == "healthy" and orchestrator.get("status") == "healthy"
        return {
            "service": self.service_name,
            "status": "healthy" if healthy else "degraded",
            "storage": storage,
            "orchestrator": orchestrator,
        }


ServiceFactory.register(ServiceType.AUTHORING, AuthoringService)
