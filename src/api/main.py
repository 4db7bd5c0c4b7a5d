"""FastAPI application with OpenTelemetry integration"""

from contextlib import asynccontextmanager
from typing import Dict, Any

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from opentelemetry import trace
from opentelemetry.instrumentation.fastapi import FastAPIInstrumentor

from ..core.config import get_settings
from ..core.logger import CentralizedLogger
from ..core.telemetry import setup_telemetry
from ..services.generation.providers import initialize_providers
from ..services.service_factory import ServiceFactory, ServiceType
from .middleware.telemetry import TelemetryMiddleware
from .middleware.error_handler import ErrorHandlerMiddleware
from .routers import generation, catalog


settings = get_settings()
logger = CentralizedLogger("API")
tracer = trace.get_tracer(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Application lifespan manager"""
    logger.info(f"Starting {settings.app_name} API")

    if settings.telemetry.enabled:
        setup_telemetry()
        FastAPIInstrumentor().instrument_app(app)
        logger.info("OpenTelemetry instrumentation enabled")

        from ..core.uvicorn_config import configure_otel_logging
        configure_otel_logging()

    provider_init = initialize_providers()
    logger.info(f"Registered {provider_init['registered_providers']} provider transports")

    # Build the shared cache, credentials and services up front
    ServiceFactory.create(ServiceType.AUTHORING)
    logger.info(f"API running in {settings.environment} mode")

    yield

    logger.info(f"Shutting down {settings.app_name} API")
    from ..services.generation.providers import ModelProviderRegistry
    await ModelProviderRegistry.close_all()
    await ServiceFactory.shutdown()


app = FastAPI(
    title=f"{settings.app_name} API",
    description="Multi-provider AI generation backend for ebook authoring",
    version=settings.app_version,
    lifespan=lifespan,
    docs_url="/api/docs",
    redoc_url="/api/redoc",
    openapi_url="/api/openapi.json"
)
app.state.settings = settings

app.add_middleware(
    CORSMiddleware,
    allow_origins=["*"],
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
    expose_headers=["X-Trace-Id", "X-Span-Id"]
)

# Order matters: the last one added runs first
app.add_middleware(ErrorHandlerMiddleware)
app.add_middleware(TelemetryMiddleware)

app.include_router(generation.router, prefix="/api")
app.include_router(catalog.router, prefix="/api")


@app.get("/")
async def root() -> Dict[str, str]:
    """Root endpoint"""
    return {
        "name": f"{settings.app_name} API",
        "version": settings.app_version,
        "status": "healthy",
        "docs": "/api/docs"
    }


@app.get("/api/health")
async def health_check() -> Dict[str, Any]:
    """Health check endpoint with service status"""
    with tracer.start_as_current_span("health_check"):
        service_health = await ServiceFactory.health_check_all()

        all_healthy = all(
            status.get("status") == "healthy"
            for status in service_health.values()
        )

        return {
            "status": "healthy" if all_healthy else "degraded",
            "services": service_health,
            "environment": settings.environment,
            "telemetry_enabled": settings.telemetry.enabled
        }


@app.exception_handler(404)
async def not_found_handler(request, exc):
    """Handle 404 errors"""
    return JSONResponse(
        status_code=404,
        content={
            "error": "Not Found",
            "message": "The requested resource was not found",
            "path": str(request.url.path)
        }
    )
