"""Offline API key format checks"""

import re
from dataclasses import dataclass
from typing import Dict, Optional, Pattern

from ...models.generation import ProviderId


@dataclass(frozen=True)
class KeyFormat:
    label: str
    min_length: int
    prefix: Optional[str] = None
    charset: Optional[Pattern] = None
    prefix_hint: Optional[str] = None


KEY_FORMATS: Dict[str, KeyFormat] = {
    ProviderId.OPENAI.value: KeyFormat("OpenAI API key", 20, prefix="sk-"),
    ProviderId.ANTHROPIC.value: KeyFormat("Anthropic API key", 30, prefix="sk-ant-"),
    ProviderId.GOOGLE.value: KeyFormat(
        "Google API key", 20, charset=re.compile(r"^[A-Za-z0-9_-]+$")
    ),
    ProviderId.XAI.value: KeyFormat("xAI API key", 20, prefix="xai-"),
    ProviderId.DEEPSEEK.value: KeyFormat(
        "Hugging Face token", 20, prefix="hf_",
        prefix_hint="DeepSeek requires a Hugging Face token starting with 'hf_'."
    ),
}

_FALLBACK_MIN_LENGTH = 10


def get_api_key_validation_error(provider: str, api_key: Optional[str]) -> Optional[str]:
    """Human readable reason the key is malformed, or None if it looks valid"""
    provider = getattr(provider, "value", provider)
    key = (api_key or "").strip()
    if not key:
        return f"API key is required for {provider}. Please add your API key in Settings."

    key_format = KEY_FORMATS.get(provider)
    if key_format is None:
        if len(key) < _FALLBACK_MIN_LENGTH:
            return f"API key for {provider} appears too short. Please verify your complete key."
        return None

    if key_format.prefix and not key.startswith(key_format.prefix):
        return key_format.prefix_hint or (
            f"{key_format.label}s must start with '{key_format.prefix}'. "
            "Please check your key format."
        )
    if len(key) < key_format.min_length:
        return f"{key_format.label} appears too short. Please verify your complete key."
    if key_format.charset and not key_format.charset.match(key):
        return (
            f"{key_format.label} contains invalid characters. Should only contain "
            "letters, numbers, underscores, and hyphens."
        )
    return None


def validate_api_key_format(provider: str, api_key: Optional[str]) -> bool:
    return get_api_key_validation_error(provider, api_key) is None
