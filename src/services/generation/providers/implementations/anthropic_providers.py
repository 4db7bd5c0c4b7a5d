"""Anthropic Claude transport"""

import anthropic
from anthropic import AsyncAnthropic

from ..base_provider import BaseModelProvider
from ..provider_decorators import register_provider
from .....models.generation import ProviderId, ProviderResponse


@register_provider(ProviderId.ANTHROPIC)
class AnthropicProvider(BaseModelProvider):
    """Messages API through the official Anthropic SDK"""

    display_name = "Anthropic"

    def _sdk_client(self, api_key: str) -> AsyncAnthropic:
        return AsyncAnthropic(
            api_key=api_key,
            base_url=self.config.get("base_url"),
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
        client = self._sdk_client(api_key)
        try:
            response = await client.messages.create(
                model=model,
                max_tokens=max_tokens,
                temperature=temperature,
                messages=[{"role": "user", "content": prompt}],
            )
        except anthropic.APITimeoutError as e:
            raise self.error(f"request timed out: {e}") from e
        except anthropic.APIConnectionError as e:
            raise self.error(f"connection error: {e}") from e
        except anthropic.APIStatusError as e:
            raise self.error(e.message, e.status_code) from e
        except anthropic.APIError as e:
            raise self.error(e.message) from e

        text = "".join(
            block.text for block in response.content
            if getattr(block, "type", None) == "text"
        )
        usage = response.usage
        return ProviderResponse(
            content=text,
            tokens_used=(usage.input_tokens + usage.output_tokens) if usage else None,
        )
