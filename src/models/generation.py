"""Generation request and result models"""

from typing import Optional, List, Union
from enum import Enum
from pydantic import BaseModel, Field, ConfigDict, field_validator

AUTO = "auto"


class ProviderId(str, Enum):
    OPENAI = "openai"
    ANTHROPIC = "anthropic"
    XAI = "xai"
    GOOGLE = "google"
    DEEPSEEK = "deepseek"


# Order in which auto mode tries providers; fixed at build time
PROVIDER_PREFERENCE_ORDER: tuple = (
    ProviderId.OPENAI,
    ProviderId.ANTHROPIC,
    ProviderId.XAI,
    ProviderId.GOOGLE,
    ProviderId.DEEPSEEK,
)


class GenerationRequest(BaseModel):
    """A single text generation request. Immutable once issued."""

    model_config = ConfigDict(frozen=True)

    provider: Union[ProviderId, str] = Field(default=AUTO, description="Provider id or 'auto'")
    model: str = Field(default=AUTO, description="Model id or 'auto'")
    prompt: str
    api_key: str = Field(default="", description="Caller-supplied key, may be empty")
    max_tokens: int = Field(default=2000, gt=0)
    temperature: float = Field(default=0.7, ge=0.0, le=1.0)

    @field_validator("provider", mode="before")
    @classmethod
    def _normalize_provider(cls, value):
        if isinstance(value, ProviderId):
            return value
        text = str(value).strip().lower()
        if text == AUTO:
            return AUTO
        try:
            return ProviderId(text)
        except ValueError as e:
            raise ValueError(f"Unsupported provider: {value}") from e

    @field_validator("model", mode="before")
    @classmethod
    def _normalize_model(cls, value):
        text = str(value or "").strip()
        return text or AUTO

    @property
    def is_auto_provider(self) -> bool:
        return self.provider == AUTO

    @property
    def provider_id(self) -> str:
        return self.provider.value if isinstance(self.provider, ProviderId) else self.provider


class ProviderResponse(BaseModel):
    """Raw transport output"""
    content: str
    tokens_used: Optional[int] = None


class GenerationResult(BaseModel):
    """Normalized result; provider and model always name the backend actually used"""
    content: str
    provider: ProviderId
    model: str
    tokens_used: Optional[int] = None
    cached: bool = False

    @field_validator("model")
    @classmethod
    def _concrete_model(cls, value: str) -> str:
        if not value or value == AUTO:
            raise ValueError("result model must be concrete")
        return value


class BrainstormResult(BaseModel):
    titles: List[str]
    outline: str


class ApiKeyTestResult(BaseModel):
    valid: bool
    error: Optional[str] = None
