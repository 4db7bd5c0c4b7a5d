"""Base service class with OpenTelemetry integration"""

from contextlib import contextmanager
from typing import Optional, Dict, Any
from opentelemetry import trace
from opentelemetry.trace import Status, StatusCode

from ..core.logger import CentralizedLogger
from ..core.config import get_settings, Settings


class BaseService:
    """Base service class with automatic tracing and logging"""

    def __init__(self, service_name: str, settings: Optional[Settings] = None):
        self.service_name = service_name
        self.tracer = trace.get_tracer(service_name)
        self.logger = CentralizedLogger(service_name)
        self.settings = settings or get_settings()

    @contextmanager
    def traced_operation(self, operation_name: str, **attributes):
        """Context manager for traced operations"""
        with self.tracer.start_as_current_span(operation_name) as span:
            span.set_attributes({
                "service.name": self.service_name,
                "operation.name": operation_name,
                **{k: v for k, v in attributes.items() if v is not None}
            })

            try:
                self.logger.debug(f"Starting {operation_name}")
                yield span
                span.set_status(Status(StatusCode.OK))
                self.logger.debug(f"Completed {operation_name}")
            except Exception as e:
                span.record_exception(e)
                span.set_status(Status(StatusCode.ERROR, str(e)))
                self.logger.warning(f"Error in {operation_name}: {str(e)}")
                raise

    async def health_check(self) -> Dict[str, Any]:
        return {"service": self.service_name, "status": "healthy"}
