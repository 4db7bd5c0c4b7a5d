"""Uvicorn logging configuration sharing the CentralizedLogger line format"""

import json
import logging
import os
import sys
from datetime import datetime, timezone
from typing import Dict, Any, List
from opentelemetry import trace


def _current_trace_ids():
    span = trace.get_current_span()
    if span and span.is_recording():
        span_context = span.get_span_context()
        return format(span_context.trace_id, '032x'), format(span_context.span_id, '016x')
    return "no-trace", "no-span"


class UvicornJsonFormatter(logging.Formatter):
    """JSON formatter for uvicorn logs"""

    def format(self, record):
        trace_id, span_id = _current_trace_ids()
        return json.dumps({
            'timestamp': datetime.now(timezone.utc).isoformat(),
            'level': record.levelname,
            'service': record.name,
            'message': record.getMessage(),
            'trace_id': trace_id,
            'span_id': span_id,
        })


class UvicornConsoleFormatter(logging.Formatter):
    """Colored console formatter for uvicorn logs"""

    COLORS = {
        'DEBUG': '\033[36m',
        'INFO': '\033[32m',
        'WARNING': '\033[33m',
        'ERROR': '\033[31m',
        'CRITICAL': '\033[35m',
    }
    RESET = '\033[0m'
    BOLD = '\033[1m'

    def format(self, record):
        color = self.COLORS.get(record.levelname, '')
        reset = self.RESET if color else ''
        level = f"{color}{self.BOLD if color else ''}{record.levelname}{reset}"
        name = f"{color}{record.name}{reset}"
        return f"{self.formatTime(record, '%H:%M:%S')} | {level:21s} | {name:20s} | {record.getMessage()}"


def get_uvicorn_log_config() -> Dict[str, Any]:
    """Build the dictConfig passed to ``uvicorn.run(log_config=...)``

    BESTSELLER_LOG_JSON_ONLY=true drops the console handler for production.
    """
    json_only = os.getenv('BESTSELLER_LOG_JSON_ONLY', 'false').lower() == 'true'
    handler_names: List[str] = ["json"] if json_only else ["console", "json"]

    formatters = {"json": {"()": "src.core.uvicorn_config.UvicornJsonFormatter"}}
    handlers = {
        "json": {
            "formatter": "json",
            "class": "logging.StreamHandler",
            "stream": "ext://sys.stderr",
        },
    }
    if not json_only:
        formatters["console"] = {"()": "src.core.uvicorn_config.UvicornConsoleFormatter"}
        handlers["console"] = {
            "formatter": "console",
            "class": "logging.StreamHandler",
            "stream": "ext://sys.stdout",
        }

    return {
        "version": 1,
        "disable_existing_loggers": False,
        "formatters": formatters,
        "handlers": handlers,
        "loggers": {
            name: {"handlers": handler_names, "level": "INFO", "propagate": False}
            for name in ("uvicorn", "uvicorn.error", "uvicorn.access")
        },
    }


def configure_otel_logging():
    """Quieten OTLP exporter warnings when no collector is listening"""
    for logger_name in (
        'opentelemetry.exporter.otlp.proto.grpc.trace_exporter',
        'opentelemetry.exporter.otlp.proto.grpc.metric_exporter',
        'opentelemetry.sdk.trace.export',
        'opentelemetry.sdk.metrics.export',
    ):
        logger = logging.getLogger(logger_name)
        logger.setLevel(logging.ERROR)
        if not logger.handlers:
            handler = logging.StreamHandler(sys.stderr)
            handler.setFormatter(UvicornJsonFormatter())
            logger.addHandler(handler)
