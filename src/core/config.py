"""Central configuration management for the Bestseller AI backend"""

import os
from typing import Dict, Any, Optional
from pathlib import Path
import yaml
from pydantic_settings import BaseSettings
from pydantic import Field
from functools import lru_cache


class StorageConfig(BaseSettings):
    """Key-value substrate backing the response cache"""

    class Config:
        env_prefix = "STORAGE_"

    type: str = Field(default="memory", env="STORAGE_TYPE")
    redis_url: str = Field(default="redis://localhost:6379", env="STORAGE_REDIS_URL")
    key_prefix: str = Field(default="bestseller", env="STORAGE_KEY_PREFIX")


class LLMConfig(BaseSettings):
    # API Keys (used when no per-request key is supplied)
    openai_api_key: Optional[str] = Field(default=None, env="OPENAI_API_KEY")
    anthropic_api_key: Optional[str] = Field(default=None, env="ANTHROPIC_API_KEY")
    google_api_key: Optional[str] = Field(default=None, env="GOOGLE_API_KEY")
    xai_api_key: Optional[str] = Field(default=None, env="XAI_API_KEY")
    deepseek_api_key: Optional[str] = Field(default=None, env="DEEPSEEK_API_KEY")

    # Provider endpoints
    xai_base_url: str = Field(default="https://api.x.ai/v1", env="XAI_BASE_URL")
    google_base_url: str = Field(
        default="https://generativelanguage.googleapis.com/v1beta",
        env="GOOGLE_BASE_URL"
    )
    deepseek_base_url: str = Field(
        default="https://api-inference.huggingface.co/models/deepseek-ai",
        env="DEEPSEEK_BASE_URL"
    )

    # System prompt sent to chat-style providers
    system_prompt: str = Field(
        default="You are a professional ebook author and writing assistant.",
        env="LLM_SYSTEM_PROMPT"
    )

    # Per-provider default model overrides, e.g. {"openai": "gpt-4o"}
    default_models: Dict[str, str] = Field(default_factory=dict)

    def api_key_for(self, provider: str) -> Optional[str]:
        """Return the configured API key for a provider, if any"""
        return getattr(self, f"{provider}_api_key", None)


class OrchestrationConfig(BaseSettings):
    """Retry and timeout policy for provider calls"""

    class Config:
        env_prefix = "GENERATION_"

    max_attempts: int = Field(default=3, env="GENERATION_MAX_ATTEMPTS")
    base_delay_seconds: float = Field(default=1.0, env="GENERATION_BASE_DELAY_SECONDS")
    request_timeout_seconds: float = Field(default=30.0, env="GENERATION_REQUEST_TIMEOUT_SECONDS")
    default_max_tokens: int = Field(default=2000, env="GENERATION_DEFAULT_MAX_TOKENS")
    default_temperature: float = Field(default=0.7, env="GENERATION_DEFAULT_TEMPERATURE")


class CacheConfig(BaseSettings):
    """Response cache policy"""

    class Config:
        env_prefix = "CACHE_"

    enabled: bool = Field(default=True, env="CACHE_ENABLED")
    prefix: str = Field(default="bestseller_cache_", env="CACHE_PREFIX")
    default_ttl_minutes: int = Field(default=60, env="CACHE_DEFAULT_TTL_MINUTES")
    max_ttl_minutes: int = Field(default=24 * 60, env="CACHE_MAX_TTL_MINUTES")
    # Only near-deterministic requests are worth caching
    max_cacheable_temperature: float = Field(default=0.3, env="CACHE_MAX_CACHEABLE_TEMPERATURE")


class CredentialConfig(BaseSettings):
    """Where provider API keys come from"""

    class Config:
        env_prefix = "CREDENTIALS_"

    use_env_keys: bool = Field(default=True, env="CREDENTIALS_USE_ENV_KEYS")
    remote_store_url: Optional[str] = Field(default=None, env="CREDENTIALS_REMOTE_STORE_URL")
    remote_store_token: Optional[str] = Field(default=None, env="CREDENTIALS_REMOTE_STORE_TOKEN")
    remote_timeout_seconds: float = Field(default=10.0, env="CREDENTIALS_REMOTE_TIMEOUT_SECONDS")
    cache_ttl_seconds: int = Field(default=300, env="CREDENTIALS_CACHE_TTL_SECONDS")


class TelemetryConfig(BaseSettings):
    """OpenTelemetry export settings"""

    class Config:
        env_prefix = "TELEMETRY_"

    enabled: bool = Field(default=False, env="TELEMETRY_ENABLED")
    service_name: str = Field(default="bestseller-backend", env="TELEMETRY_SERVICE_NAME")
    otlp_endpoint: str = Field(default="http://localhost:4317", env="TELEMETRY_OTLP_ENDPOINT")


class Settings(BaseSettings):
    app_name: str = Field(default="Bestseller AI", env="APP_NAME")
    app_version: str = Field(default="1.0.0", env="APP_VERSION")
    debug: bool = Field(default=False, env="DEBUG")
    environment: str = Field(default="development", env="ENVIRONMENT")
    # Log level is read directly in logger.py; accepted here so it
    # does not fail validation when present in the environment
    bestseller_log_level: Optional[str] = Field(default="INFO", env="BESTSELLER_LOG_LEVEL")

    storage: StorageConfig = Field(default_factory=StorageConfig)
    llm: LLMConfig = Field(default_factory=LLMConfig)
    orchestration: OrchestrationConfig = Field(default_factory=OrchestrationConfig)
    cache: CacheConfig = Field(default_factory=CacheConfig)
    credentials: CredentialConfig = Field(default_factory=CredentialConfig)
    telemetry: TelemetryConfig = Field(default_factory=TelemetryConfig)

    class Config:
        env_file = ".env"
        env_nested_delimiter = "__"
        extra = "ignore"

    @classmethod
    def load_from_yaml(cls, yaml_path: Optional[str] = None) -> "Settings":
        """Load settings from YAML file with environment overrides"""
        if yaml_path and Path(yaml_path).exists():
            with open(yaml_path, 'r') as f:
                config_data: Dict[str, Any] = yaml.safe_load(f) or {}
                return cls(**config_data)
        return cls()


@lru_cache()
def get_settings() -> Settings:
    """Get cached settings instance"""
    yaml_path = os.getenv("CONFIG_PATH", "./config/settings.yaml")
    return Settings.load_from_yaml(yaml_path)
