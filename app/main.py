"""Criminal Strategy Engine Service.

This service turns a criminal case snapshot into a canonical disclosure
state, ranked defence strategy routes and hearing-ready checklists.
"""

from collections.abc import AsyncGenerator
from contextlib import asynccontextmanager

import structlog
from fastapi import FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from opentelemetry import trace
from opentelemetry.exporter.otlp.proto.grpc.trace_exporter import OTLPSpanExporter
from opentelemetry.instrumentation.fastapi import FastAPIInstrumentor
from opentelemetry.sdk.resources import SERVICE_NAME, Resource
from opentelemetry.sdk.trace import TracerProvider
from opentelemetry.sdk.trace.export import BatchSpanProcessor

from app.api.routes.health import router as health_router
from app.api.routes.monitoring import router as monitoring_router
from app.api.routes.strategy import router as strategy_router
from app.core.auth import close_async_http_client
from app.core.config import AppEnvironment, Settings, get_settings
from app.core.database import get_engine, reset_engine
from app.core.errors import StrategyEngineError, get_status_code
from app.core.logging import setup_logging
from app.core.tracing import clear_tracing_context, set_request_id, set_trace_parent

logger = structlog.get_logger(__name__)

API_V1_PREFIX = "/api/v1"
STRATEGY_ENGINE_PREFIX = "/strategy-engine"
BODY_METHODS = frozenset({"POST", "PUT", "PATCH"})
API_CSP_POLICY = (
    "default-src 'none'; frame-ancestors 'none'; base-uri 'none'; "
    "form-action 'none'; object-src 'none'"
)
DOCS_CSP_POLICY = (
    "default-src 'self'; img-src 'self' data:; style-src 'self' 'unsafe-inline'; "
    "script-src 'self' 'unsafe-inline'; frame-ancestors 'none'; object-src 'none'; "
    "base-uri 'self'"
)


def _request_log_context(request: Request) -> dict[str, str]:
    return {
        "path": request.url.path,
        "method": request.method,
        "request_id": getattr(request.state, "request_id", ""),
        "client_host": request.client.host if request.client else "",
    }


def _is_docs_path(path: str) -> bool:
    return path.startswith("/docs") or path.startswith("/redoc") or path.startswith("/openapi.json")


def _content_length(value: str | None) -> int | None:
    if value is None:
        return None
    try:
        return int(value)
    except ValueError:
        logger.warning("Invalid Content-Length header", content_length=value)
        return None


@asynccontextmanager
async def lifespan(app: FastAPI) -> AsyncGenerator[None, None]:
    """Application lifespan context manager."""
    settings = get_settings()
    setup_logging()

    logger.info(
        "Starting Criminal Strategy Engine",
        app=settings.app.name,
        env=settings.app.env.value,
        version=settings.app.version,
        engine_config=settings.engine.model_dump(),
    )

    app.state.settings = settings
    app.state.engine = get_engine()

    yield

    await close_async_http_client()
    await reset_engine()

    logger.info("Criminal Strategy Engine stopped")


def create_app() -> FastAPI:
    """Create and configure the FastAPI application."""
    settings = get_settings()

    app = FastAPI(
        title="Criminal Strategy Engine",
        description=(
            "Deterministic defence strategy engine: disclosure state, strategy routes, "
            "confidence, time pressure, decision checkpoints and hearing scripts."
        ),
        version=settings.app.version,
        lifespan=lifespan,
        docs_url="/docs" if settings.app.env != AppEnvironment.PROD else None,
        redoc_url="/redoc" if settings.app.env != AppEnvironment.PROD else None,
        openapi_url="/openapi.json" if settings.app.env != AppEnvironment.PROD else None,
    )

    app.add_middleware(
        CORSMiddleware,
        allow_origins=settings.security.cors_allowed_origins,
        allow_credentials=settings.security.cors_allow_credentials,
        allow_methods=settings.security.cors_allow_methods,
        allow_headers=settings.security.cors_allow_headers,
    )

    # /metrics is guarded by METRICS_TOKEN, not by JWT scopes.
    app.include_router(monitoring_router, prefix=API_V1_PREFIX)
    app.include_router(health_router, prefix=API_V1_PREFIX)
    app.include_router(strategy_router, prefix=API_V1_PREFIX + STRATEGY_ENGINE_PREFIX)

    setup_telemetry(app, settings)
    register_middleware(app, settings)
    register_exception_handlers(app)

    return app


def register_middleware(app: FastAPI, settings: Settings) -> None:
    """Register HTTP middleware. The last one registered runs outermost."""

    @app.middleware("http")
    async def payload_size_guard(request: Request, call_next):
        max_request = settings.security.max_request_size_bytes
        max_response = settings.security.max_response_size_bytes

        size = _content_length(request.headers.get("content-length"))
        if size is None and request.method in BODY_METHODS:
            size = len(await request.body())
        if size is not None and size > max_request:
            logger.warning(
                "Request payload exceeds configured size limit",
                **_request_log_context(request),
                content_length=size,
                max_request_size_bytes=max_request,
            )
            return JSONResponse(status_code=413, content={"detail": "Request payload too large"})

        response = await call_next(request)

        # A full strategy aggregate is bounded; an oversized one means runaway output.
        size = _content_length(response.headers.get("content-length"))
        if size is not None and size > max_response:
            logger.error(
                "Response payload exceeds configured size limit",
                **_request_log_context(request),
                content_length=size,
                max_response_size_bytes=max_response,
            )
            return JSONResponse(status_code=500, content={"detail": "Response payload too large"})

        return response

    @app.middleware("http")
    async def request_id_middleware(request: Request, call_next):
        """Bind X-Request-ID and traceparent to the request's log context.

        The id is generated when the caller sent none and is always echoed
        back, so case management can match its request to engine log lines.
        """
        request_id = set_request_id(request.headers.get("x-request-id"))
        set_trace_parent(request.headers.get("traceparent"))
        request.state.request_id = request_id

        try:
            response = await call_next(request)
        finally:
            # Long-lived workers reuse the context between requests.
            clear_tracing_context()

        response.headers["X-Request-ID"] = request_id
        return response

    @app.middleware("http")
    async def security_headers_middleware(request: Request, call_next):
        """Set baseline security headers for all responses."""
        response = await call_next(request)

        csp_policy = DOCS_CSP_POLICY if _is_docs_path(request.url.path) else API_CSP_POLICY
        response.headers.setdefault("X-Content-Type-Options", "nosniff")
        response.headers.setdefault("X-Frame-Options", "DENY")
        response.headers.setdefault(
            "Strict-Transport-Security", "max-age=63072000; includeSubDomains; preload"
        )
        response.headers.setdefault("Content-Security-Policy", csp_policy)
        return response


def register_exception_handlers(app: FastAPI) -> None:
    """Render StrategyEngineError subclasses as {"detail", "errors"} bodies."""

    @app.exception_handler(StrategyEngineError)
    async def domain_error_handler(request: Request, exc: StrategyEngineError) -> JSONResponse:
        status_code = get_status_code(exc)
        log = logger.error if status_code >= 500 else logger.warning
        log(
            "Domain exception",
            **_request_log_context(request),
            status_code=status_code,
            error_code=exc.code,
            error=exc.message,
            error_details=exc.details or {},
        )
        return JSONResponse(
            status_code=status_code,
            content={
                "detail": exc.message,
                **({"errors": exc.details} if exc.details else {}),
            },
        )

    @app.exception_handler(Exception)
    async def global_exception_handler(request: Request, exc: Exception) -> JSONResponse:
        """Handle unexpected exceptions."""
        logger.exception(
            "Unhandled exception",
            **_request_log_context(request),
            error=str(exc),
        )
        return JSONResponse(
            status_code=500,
            content={"detail": "Internal server error"},
        )


def setup_telemetry(app: FastAPI, settings: Settings) -> None:
    """Setup OpenTelemetry instrumentation."""
    if not settings.observability.otlp_endpoint:
        return

    resource = Resource(
        attributes={
            SERVICE_NAME: settings.observability.service_name,
        }
    )

    provider = TracerProvider(resource=resource)
    exporter = OTLPSpanExporter(
        endpoint=settings.observability.otlp_endpoint,
        insecure=settings.observability.otlp_insecure,
    )
    provider.add_span_processor(BatchSpanProcessor(exporter))
    trace.set_tracer_provider(provider)

    FastAPIInstrumentor.instrument_app(app)


def run() -> None:
    """Run the application using uvicorn."""
    import uvicorn

    settings = get_settings()

    uvicorn.run(
        "app.main:create_app",
        factory=True,
        host=settings.server.host,
        port=settings.server.port,
        reload=settings.app.env == AppEnvironment.LOCAL,
        workers=1 if settings.app.env == AppEnvironment.LOCAL else settings.server.workers,
        log_level=settings.app.log_level.lower(),
    )


if __name__ == "__main__":
    run()
