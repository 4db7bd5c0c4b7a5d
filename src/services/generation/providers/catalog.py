"""Static catalog of providers and their models"""

from types import MappingProxyType
from typing import Dict, Any, List, Mapping, Optional, Union

from .base_provider import ModelInfo, ProviderInfo
from ....models.generation import AUTO, ProviderId, PROVIDER_PREFERENCE_ORDER


def _provider(
    provider_id: ProviderId,
    name: str,
    description: str,
    default_model: str,
    *models: ModelInfo
) -> ProviderInfo:
    return ProviderInfo(
        id=provider_id,
        name=name,
        description=description,
        requires_api_key=True,
        models=models,
        default_model=default_model,
    )


PROVIDER_CATALOG: Mapping[ProviderId, ProviderInfo] = MappingProxyType({
    ProviderId.OPENAI: _provider(
        ProviderId.OPENAI, "OpenAI",
        "GPT models for high-quality content generation",
        "gpt-4-turbo",
        ModelInfo("gpt-4-turbo", "GPT-4 Turbo", "Latest GPT-4 with improved performance",
                  ("long-form", "creative", "technical")),
        ModelInfo("gpt-4", "GPT-4", "Most capable model for complex writing tasks",
                  ("long-form", "creative", "technical")),
        ModelInfo("gpt-3.5-turbo", "GPT-3.5 Turbo", "Fast and efficient for most writing tasks",
                  ("brainstorming", "outlines", "quick-generation")),
    ),
    ProviderId.ANTHROPIC: _provider(
        ProviderId.ANTHROPIC, "Anthropic Claude",
        "Claude models for nuanced, context-aware writing",
        "claude-3-5-sonnet-20241022",
        ModelInfo("claude-3-5-sonnet-20241022", "Claude 3.5 Sonnet", "Most capable Claude model in the catalog",
                  ("long-form", "creative", "analysis")),
        ModelInfo("claude-3-opus-20240229", "Claude 3 Opus", "Powerful model for complex tasks",
                  ("long-form", "creative", "analysis")),
        ModelInfo("claude-3-sonnet-20240229", "Claude 3 Sonnet", "Balanced performance and speed",
                  ("general", "brainstorming", "editing")),
    ),
    ProviderId.XAI: _provider(
        ProviderId.XAI, "xAI Grok",
        "Grok models with real-time knowledge",
        "grok-4-latest",
        ModelInfo("grok-4-latest", "Grok 4", "Latest Grok model with real-time knowledge",
                  ("current-events", "research", "creative")),
        ModelInfo("grok-beta", "Grok Beta", "Grok model with current information",
                  ("current-events", "research", "general")),
    ),
    ProviderId.GOOGLE: _provider(
        ProviderId.GOOGLE, "Google Gemini",
        "Gemini models for versatile content creation",
        "gemini-1.5-pro",
        ModelInfo("gemini-1.5-pro", "Gemini 1.5 Pro", "Advanced model with large context window",
                  ("long-form", "technical", "research")),
        ModelInfo("gemini-1.5-flash", "Gemini 1.5 Flash", "Fast and efficient model",
                  ("brainstorming", "quick-generation", "outlines")),
    ),
    ProviderId.DEEPSEEK: _provider(
        ProviderId.DEEPSEEK, "DeepSeek",
        "Open-source models via Hugging Face",
        "deepseek-llm-7b-instruct",
        ModelInfo("deepseek-llm-7b-instruct", "DeepSeek LLM 7B", "Efficient open-source model",
                  ("general", "brainstorming", "outlines")),
    ),
})


def _as_provider_id(provider: Union[ProviderId, str]) -> ProviderId:
    return provider if isinstance(provider, ProviderId) else ProviderId(provider)


def get_provider(provider: Union[ProviderId, str]) -> ProviderInfo:
    """Raises ValueError for ids outside the catalog"""
    return PROVIDER_CATALOG[_as_provider_id(provider)]


def list_providers() -> List[ProviderInfo]:
    return [PROVIDER_CATALOG[provider_id] for provider_id in PROVIDER_PREFERENCE_ORDER]


def is_known_model(provider: Union[ProviderId, str], model: str) -> bool:
    return model in get_provider(provider).model_ids()


def resolve_model(
    provider: Union[ProviderId, str],
    model: Optional[str] = AUTO,
    overrides: Optional[Mapping[str, str]] = None
) -> str:
    """Map the ``auto`` pseudo-model to the provider's default

    ``overrides`` (provider id -> model id) replaces the catalog default.
    A concrete model id passes through unchanged.
    """
    info = get_provider(provider)
    if model and model != AUTO:
        return model
    if overrides and overrides.get(info.id.value):
        return overrides[info.id.value]
    return info.default_model


def catalog_as_dict() -> List[Dict[str, Any]]:
    """Serializable view of the catalog, auto pseudo-model first per provider"""
    providers = []
    for info in list_providers():
        models = [{
            "id": AUTO,
            "name": "Auto Select",
            "description": f"Uses {info.default_model}",
            "best_for": ["all"],
        }]
        models.extend({
            "id": model.id,
            "name": model.name,
            "description": model.description,
            "best_for": list(model.best_for),
        } for model in info.models)
        providers.append({
            "id": info.id.value,
            "name": info.name,
            "description": info.description,
            "requires_api_key": info.requires_api_key,
            "default_model": info.default_model,
            "models": models,
        })
    return providers
