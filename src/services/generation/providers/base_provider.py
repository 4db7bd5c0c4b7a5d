"""Base transport interface shared by every provider"""

from abc import ABC, abstractmethod
from typing import Optional, Dict, Any, Tuple
from dataclasses import dataclass, field

import httpx

from ..exceptions import ProviderError
from ....core.config import get_settings
from ....models.generation import ProviderId, ProviderResponse


@dataclass(frozen=True)
class ModelInfo:
    id: str
    name: str
    description: str
    best_for: Tuple[str, ...] = field(default_factory=tuple)


@dataclass(frozen=True)
class ProviderInfo:
    """Catalog entry describing a provider and its models"""
    id: ProviderId
    name: str
    description: str
    requires_api_key: bool
    models: Tuple[ModelInfo, ...]
    default_model: str

    def model_ids(self) -> Tuple[str, ...]:
        return tuple(model.id for model in self.models)


class BaseModelProvider(ABC):
    """Abstract base class for provider transports

    A transport issues exactly one request per ``call``. It never retries;
    every failure surfaces as ``ProviderError`` whose text includes the
    HTTP status and the vendor's message.
    """

    provider_id: ProviderId
    display_name: str = "Provider"

    def __init__(
        self,
        http_client: Optional[httpx.AsyncClient] = None,
        config: Optional[Dict[str, Any]] = None
    ):
        self._http_client = http_client
        self.config = config or {}

    @abstractmethod
    async def call(
        self,
        model: str,
        prompt: str,
        api_key: str,
        max_tokens: int,
        temperature: float
    ) -> ProviderResponse:
        """Generate a completion

        Args:
            model: Concrete model id
            prompt: User prompt
            api_key: Credential for this call
            max_tokens: Maximum tokens to generate
            temperature: Sampling temperature (0.0 to 1.0)

        Raises:
            ProviderError: On any transport or API failure
        """
        pass

    def error(self, message: str, status_code: Optional[int] = None) -> ProviderError:
        prefix = f"{self.display_name} API error"
        if status_code is not None:
            prefix += f" ({status_code})"
        return ProviderError(self.provider_id.value, f"{prefix}: {message}", status_code)

    def request_timeout(self) -> float:
        """Seconds a single request may take before httpx gives up"""
        timeout = self.config.get("timeout")
        if timeout is None:
            timeout = get_settings().orchestration.request_timeout_seconds
        return float(timeout)

    def _client(self) -> httpx.AsyncClient:
        if self._http_client is None:
            # Bounded by the orchestration timeout rather than the httpx 5s default
            self._http_client = httpx.AsyncClient(timeout=httpx.Timeout(self.request_timeout()))
        return self._http_client

    async def close(self):
        if self._http_client is not None:
            await self._http_client.aclose()
            self._http_client = None

    async def _post_json(
        self,
        url: str,
        payload: Dict[str, Any],
        headers: Optional[Dict[str, str]] = None,
        params: Optional[Dict[str, str]] = None
    ) -> Any:
        """POST JSON and return the decoded body, translating failures"""
        try:
            response = await self._client().post(url, json=payload, headers=headers, params=params)
        except httpx.TimeoutException as e:
            raise self.error(f"request timed out ({type(e).__name__})") from e
        except httpx.TransportError as e:
            raise self.error(f"connection error: {e}") from e

        if response.status_code >= 400:
            raise self.error(_error_text(response), response.status_code)

        try:
            return response.json()
        except ValueError as e:
            raise self.error("response was not valid JSON", response.status_code) from e


def _error_text(response: httpx.Response) -> str:
    """Pull the vendor's message out of an error body"""
    try:
        body = response.json()
    except ValueError:
        return response.text or response.reason_phrase
    if isinstance(body, dict):
        error = body.get("error")
        if isinstance(error, dict):
            return error.get("message") or response.reason_phrase
        if isinstance(error, str):
            return error
    return response.reason_phrase
