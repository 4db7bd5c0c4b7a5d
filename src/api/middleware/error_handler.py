"""Global error handling middleware"""

import traceback
import uuid
from typing import Any, Dict, Optional
from starlette.middleware.base import BaseHTTPMiddleware
from starlette.requests import Request
from starlette.responses import JSONResponse

from ...core.logger import CentralizedLogger
from ...services.credentials.resolvers import CredentialStoreError
from ...services.generation.exceptions import (
    AllProvidersFailedError,
    GenerationCancelled,
    PermanentProviderError,
    ProviderError,
    ProviderExhaustedError,
    UnsupportedProviderError,
)


logger = CentralizedLogger("ErrorHandler")

# Non-standard status used by nginx for "client closed request"
STATUS_CLIENT_CLOSED_REQUEST = 499


class ErrorHandlerMiddleware(BaseHTTPMiddleware):
    """Maps generation failures and common exceptions to JSON error responses"""

    async def dispatch(self, request: Request, call_next):
        try:
            return await call_next(request)

        except GenerationCancelled as e:
            logger.info(f"Generation cancelled: {str(e)}")
            return self._error_response(
                request, STATUS_CLIENT_CLOSED_REQUEST, "Client Closed Request", str(e)
            )

        except (PermanentProviderError, UnsupportedProviderError) as e:
            logger.warning(f"Rejected generation request: {str(e)}")
            return self._error_response(
                request, 400, "Bad Request", str(e), provider=e.provider
            )

        except ProviderExhaustedError as e:
            logger.warning(f"Provider exhausted: {str(e)}")
            return self._error_response(
                request, 503, "Service Unavailable", str(e), provider=e.provider
            )

        except AllProvidersFailedError as e:
            logger.warning(f"All providers failed: {str(e)}")
            # No usable credential anywhere is the caller's problem
            status_code, error = (400, "Bad Request") if e.permanent else (502, "Bad Gateway")
            return self._error_response(
                request, status_code, error, str(e),
                details={"failures": [
                    {"provider": provider, "reason": reason} for provider, reason in e.failures
                ]}
            )

        except (ProviderError, CredentialStoreError) as e:
            logger.error(f"Upstream failure: {str(e)}")
            return self._error_response(request, 502, "Bad Gateway", str(e))

        except ValueError as e:
            logger.warning(f"Validation error: {str(e)}")
            return self._error_response(request, 400, "Bad Request", str(e))

        except TimeoutError as e:
            logger.error(f"Request timeout: {str(e)}")
            return self._error_response(
                request, 504, "Gateway Timeout", "The request timed out"
            )

        except Exception as e:
            error_id = str(uuid.uuid4())
            logger.error(
                f"Unhandled error [{error_id}]: {str(e)}",
                exc_info=True,
                extra={"request_id": error_id}
            )

            settings = getattr(request.app.state, "settings", None)
            if settings is not None and settings.environment == "production":
                message = "An internal error occurred"
                details = None
            else:
                message = str(e)
                details = {
                    "type": type(e).__name__,
                    "traceback": traceback.format_exc().split("\n")
                }

            return self._error_response(
                request, 500, "Internal Server Error", message,
                error_id=error_id, details=details
            )

    def _error_response(
        self,
        request: Request,
        status_code: int,
        error: str,
        message: str,
        error_id: Optional[str] = None,
        details: Optional[Dict[str, Any]] = None,
        provider: Optional[str] = None
    ) -> JSONResponse:
        """Create standardized error response"""
        content = {
            "error": error,
            "message": message,
            "path": str(request.url.path),
            "method": request.method
        }

        if hasattr(request.state, "trace_id"):
            content["trace_id"] = request.state.trace_id
        if provider:
            content["provider"] = provider
        if error_id:
            content["error_id"] = error_id
        if details:
            content["details"] = details

        return JSONResponse(status_code=status_code, content=content)
