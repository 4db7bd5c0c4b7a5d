"""OpenAI-compatible chat completion transports (OpenAI and xAI)"""

from typing import Optional

import openai
from openai import AsyncOpenAI

from ..base_provider import BaseModelProvider
from ..provider_decorators import register_provider
from .....core.config import get_settings
from .....models.generation import ProviderId, ProviderResponse


@register_provider(ProviderId.OPENAI)
class OpenAIProvider(BaseModelProvider):
    """Chat completions through the official OpenAI SDK"""

    display_name = "OpenAI"

    def base_url(self) -> Optional[str]:
        return self.config.get("base_url")

    def _sdk_client(self, api_key: str) -> AsyncOpenAI:
        # SDK retries are disabled; the orchestrator owns retry policy
        return AsyncOpenAI(
            api_key=api_key,
            base_url=self.base_url(),
            http_client=self._client(),
            timeout=self.request_timeout(),
            max_retries=0,
        )

    async def call(
        self,
        model: str,
        prompt: str,
        api_key: str,
        max_tokens: int,
        temperature: float
    ) -> ProviderResponse:
        settings = get_settings()
        client = self._sdk_client(api_key)
        try:
            response = await client.chat.completions.create(
                model=model,
                messages=[
                    {"role": "system", "content": settings.llm.system_prompt},
                    {"role": "user", "content": prompt},
                ],
                max_tokens=max_tokens,
                temperature=temperature,
            )
        except openai.APITimeoutError as e:
            raise self.error(f"request timed out: {e}") from e
        except openai.APIConnectionError as e:
            raise self.error(f"connection error: {e}") from e
        except openai.APIStatusError as e:
            raise self.error(e.message, e.status_code) from e
        except openai.APIError as e:
            raise self.error(e.message) from e

        if not response.choices:
            raise self.error("response contained no choices")

        usage = response.usage
        return ProviderResponse(
            content=response.choices[0].message.content or "",
            tokens_used=usage.total_tokens if usage else None,
        )


@register_provider(ProviderId.XAI)
class XAIProvider(OpenAIProvider):
    """Grok via xAI's OpenAI-compatible endpoint"""

    display_name = "xAI"

    def base_url(self) -> Optional[str]:
        return self.config.get("base_url") or get_settings().llm.xai_base_url
