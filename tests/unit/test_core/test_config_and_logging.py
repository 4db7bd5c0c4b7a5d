"""Tests for settings loading and structured logging"""

import json
import logging

from src.core.config import Settings
from src.core.logger import CentralizedLogger
from src.core.uvicorn_config import get_uvicorn_log_config


class TestSettings:

    def test_defaults(self, monkeypatch):
        monkeypatch.delenv("STORAGE_TYPE", raising=False)
        monkeypatch.delenv("TELEMETRY_ENABLED", raising=False)
        settings = Settings()

        assert settings.storage.type == "memory"
        assert settings.orchestration.max_attempts == 3
        assert settings.orchestration.request_timeout_seconds == 30.0
        assert settings.cache.max_cacheable_temperature == 0.3
        assert settings.telemetry.enabled is False

    def test_sub_config_env_prefix(self, monkeypatch):
        monkeypatch.setenv("GENERATION_MAX_ATTEMPTS", "5")
        monkeypatch.setenv("CACHE_PREFIX", "custom_")

        settings = Settings()

        assert settings.orchestration.max_attempts == 5
        assert settings.cache.prefix == "custom_"

    def test_load_from_yaml(self, tmp_path):
        config_file = tmp_path / "settings.yaml"
        config_file.write_text(
            "environment: production\n"
            "llm:\n"
            "  default_models:\n"
            "    openai: gpt-3.5-turbo\n"
        )

        settings = Settings.load_from_yaml(str(config_file))

        assert settings.environment == "production"
        assert settings.llm.default_models == {"openai": "gpt-3.5-turbo"}

    def test_missing_yaml_falls_back_to_defaults(self, tmp_path):
        settings = Settings.load_from_yaml(str(tmp_path / "missing.yaml"))
        assert settings.app_name == "Bestseller AI"

    def test_api_key_lookup(self, monkeypatch):
        monkeypatch.setenv("XAI_API_KEY", "xai-from-env")
        settings = Settings()

        assert settings.llm.api_key_for("xai") == "xai-from-env"
        assert settings.llm.api_key_for("unknown") is None


class TestCentralizedLogger:

    def test_handlers_attached_once(self):
        first = CentralizedLogger("SameName")
        second = CentralizedLogger("SameName")

        assert first.logger is second.logger
        assert len(second.logger.handlers) == 2

    def test_json_line_carries_context_fields(self):
        logger = CentralizedLogger("JsonCheck")
        json_handler = logger.logger.handlers[1]
        record = logging.LogRecord("JsonCheck", logging.WARNING, __file__, 1, "retrying", None, None)
        record.provider = "openai"
        record.attempt = 2
        record.trace_id = "no-trace"

        line = json.loads(json_handler.format(record))

        assert line["message"] == "retrying"
        assert line["provider"] == "openai"
        assert line["attempt"] == 2
        assert "model" not in line

    def test_trace_context_injected_without_span(self):
        kwargs = CentralizedLogger("NoSpan")._inject_trace_context({"extra": {"provider": "xai"}})

        assert kwargs["extra"] == {"provider": "xai", "trace_id": "no-trace", "span_id": "no-span"}


def test_uvicorn_log_config_formats(monkeypatch):
    monkeypatch.setenv("BESTSELLER_LOG_JSON_ONLY", "true")
    config = get_uvicorn_log_config()

    assert set(config["handlers"]) == {"json"}
    assert config["loggers"]["uvicorn.access"]["handlers"] == ["json"]
