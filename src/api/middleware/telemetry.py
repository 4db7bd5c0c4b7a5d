"""Request tracing for the generation API

Continues an incoming W3C trace, tags the request span with the provider
and model the caller asked for, and echoes the trace ids to the client.
"""

import re
import uuid
from typing import Any, Dict, Optional, Tuple

from starlette.middleware.base import BaseHTTPMiddleware
from starlette.requests import Request
from opentelemetry import trace
from opentelemetry.propagate import extract
from opentelemetry.trace import Span, SpanKind, Status, StatusCode

from .error_handler import STATUS_CLIENT_CLOSED_REQUEST
from ...core.logger import CentralizedLogger


logger = CentralizedLogger("TelemetryMiddleware")
tracer = trace.get_tracer(__name__)

_TRACEPARENT_RE = re.compile(r"^[0-9a-f]{2}-([0-9a-f]{32})-([0-9a-f]{16})-[0-9a-f]{2}$")

_ROUTE_KINDS = {
    "/api/generate": "generate",
    "/api/keys/test": "key_test",
    "/api/providers": "catalog",
    "/api/health": "health",
    "/": "health",
}


def tag_generation_request(request: Request, provider: str, model: str):
    """Remember what the caller asked for so the request span can carry it"""
    request.state.generation = {"provider": provider, "model": model}


def route_kind(path: str) -> str:
    if path in _ROUTE_KINDS:
        return _ROUTE_KINDS[path]
    if path.startswith("/api/cache"):
        return "cache"
    if path.startswith("/api/"):
        return "authoring"
    return "other"


class TelemetryMiddleware(BaseHTTPMiddleware):
    """One server span per request, parented on the caller's traceparent"""

    async def dispatch(self, request: Request, call_next):
        trace_id, span_id = self._extract_trace_context(request)
        request.state.trace_id = trace_id
        request.state.span_id = span_id

        path = request.url.path
        with tracer.start_as_current_span(
            f"{request.method} {path}",
            context=extract(dict(request.headers)),
            kind=SpanKind.SERVER,
            attributes={
                "http.method": request.method,
                "http.target": path,
                "bestseller.route": route_kind(path),
                "trace.id": trace_id,
                "span.id": span_id,
            }
        ) as span:
            try:
                response = await call_next(request)
            except Exception as e:
                logger.error(
                    f"Request failed: {request.method} {path}: {str(e)}",
                    exc_info=True,
                    extra={"request_id": trace_id}
                )
                span.record_exception(e)
                span.set_status(Status(StatusCode.ERROR, str(e)))
                raise

            requested = self._requested_generation(request)
            self._annotate(span, response.status_code, requested)

            response.headers["X-Trace-Id"] = trace_id
            response.headers["X-Span-Id"] = span_id
            response.headers["traceparent"] = self._traceparent(span, trace_id, span_id)

            logger.debug(
                f"{request.method} {path} -> {response.status_code}",
                extra={
                    "request_id": trace_id,
                    "provider": requested.get("provider"),
                    "model": requested.get("model"),
                }
            )
            return response

    @staticmethod
    def _requested_generation(request: Request) -> Dict[str, Any]:
        generation = getattr(request.state, "generation", None)
        return generation if isinstance(generation, dict) else {}

    @staticmethod
    def _annotate(span: Span, status_code: int, requested: Dict[str, Any]):
        span.set_attribute("http.status_code", status_code)
        if requested.get("provider"):
            span.set_attribute("generation.requested_provider", requested["provider"])
        if requested.get("model"):
            span.set_attribute("generation.requested_model", requested["model"])

        if status_code == STATUS_CLIENT_CLOSED_REQUEST:
            # The client left; nothing failed on our side
            span.set_attribute("generation.cancelled", True)
        elif status_code >= 400:
            span.set_status(Status(StatusCode.ERROR, f"HTTP {status_code}"))
        else:
            span.set_status(Status(StatusCode.OK))

    @staticmethod
    def _traceparent(span: Span, trace_id: str, span_id: str) -> str:
        context = span.get_span_context()
        if context.is_valid:
            return f"00-{format(context.trace_id, '032x')}-{format(context.span_id, '016x')}-01"
        return f"00-{trace_id}-{span_id}-01"

    def _extract_trace_context(self, request: Request) -> Tuple[str, str]:
        """Trace id from traceparent or X-Trace-Id, else a fresh one"""
        traceparent: Optional[str] = request.headers.get("traceparent")
        if traceparent:
            match = _TRACEPARENT_RE.match(traceparent.strip().lower())
            if match:
                return match.group(1), self._generate_span_id()
            logger.warning(f"Ignoring malformed traceparent header: {traceparent}")

        trace_id = request.headers.get("X-Trace-Id") or self._generate_trace_id()
        span_id = request.headers.get("X-Span-Id") or self._generate_span_id()
        return trace_id, span_id

    @staticmethod
    def _generate_trace_id() -> str:
        return uuid.uuid4().hex

    @staticmethod
    def _generate_span_id() -> str:
        return uuid.uuid4().hex[:16]
