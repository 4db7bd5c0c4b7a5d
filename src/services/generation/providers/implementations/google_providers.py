"""Google Gemini transport over the REST API"""

from ..base_provider import BaseModelProvider
from ..provider_decorators import register_provider
from .....core.config import get_settings
from .....models.generation import ProviderId, ProviderResponse


@register_provider(ProviderId.GOOGLE)
class GeminiProvider(BaseModelProvider):
    """generateContent endpoint of the Generative Language API"""

    display_name = "Google"

    async def call(
        self,
        model: str,
        prompt: str,
        api_key: str,
        max_tokens: int,
        temperature: float
    ) -> ProviderResponse:
        base_url = self.config.get("base_url") or get_settings().llm.google_base_url
        data = await self._post_json(
            f"{base_url}/models/{model}:generateContent",
            payload={
                "contents": [{"parts": [{"text": prompt}]}],
                "generationConfig": {
                    "temperature": temperature,
                    "maxOutputTokens": max_tokens,
                },
            },
            params={"key": api_key},
        )

        try:
            text = data["candidates"][0]["content"]["parts"][0]["text"]
        except (KeyError, IndexError, TypeError) as e:
            # Gemini answers 200 with no candidates when the prompt is blocked
            raise self.error("unexpected response format, no candidates returned") from e

        usage = data.get("usageMetadata") or {}
        return ProviderResponse(content=text, tokens_used=usage.get("totalTokenCount"))
