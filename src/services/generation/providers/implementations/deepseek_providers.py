"""DeepSeek transport via the Hugging Face inference API"""

from ..base_provider import BaseModelProvider
from ..provider_decorators import register_provider
from .....core.config import get_settings
from .....models.generation import ProviderId, ProviderResponse


@register_provider(ProviderId.DEEPSEEK)
class DeepSeekProvider(BaseModelProvider):
    display_name = "DeepSeek"

    async def call(
        self,
        model: str,
        prompt: str,
        api_key: str,
        max_tokens: int,
        temperature: float
    ) -> ProviderResponse:
        base_url = self.config.get("base_url") or get_settings().llm.deepseek_base_url
        data = await self._post_json(
            f"{base_url}/{model}",
            payload={
                "inputs": prompt,
                "parameters": {
                    "max_new_tokens": max_tokens,
                    "temperature": temperature,
                    "return_full_text": False,
                },
            },
            headers={"Authorization": f"Bearer {api_key}"},
        )

        item = data[0] if isinstance(data, list) and data else data
        if not isinstance(item, dict) or "generated_text" not in item:
            raise self.error("unexpected response format, no generated_text")

        # The inference API does not report token usage
        return ProviderResponse(content=item["generated_text"] or "")
