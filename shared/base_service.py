"""
Base service class for the HTTP Cat caching proxy.
"""

from fastapi import FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import PlainTextResponse
from contextlib import asynccontextmanager
from typing import Optional
import time

from shared.config import ServiceConfig, get_config
from shared.logging import configure_logging, get_logger, set_request_id, set_client_context, clear_context
from shared.metrics import get_metrics_collector
from shared.errors import CatProxyException


class BaseService:
    """Base service class with common functionality."""

    def __init__(self, service_name: str, config: Optional[ServiceConfig] = None):
        self.service_name = service_name
        self.config = config or get_config()

        configure_logging(service_name, self.config.log_level)

        self.logger = get_logger(f"{service_name}.service")
        self.metrics = get_metrics_collector(service_name)

        self.app = self._create_app()

        if self.config.enable_tracing:
            from shared.tracing import configure_tracing
            configure_tracing(
                service_name,
                self.app,
                self.config.otel_exporter,
                enable_console=self.config.enable_console_tracing
            )

        self._setup_middleware()
        self._setup_error_handlers()
        self._setup_routes()

    @asynccontextmanager
    async def _lifespan(self, app: FastAPI):
        await self.startup()
        self.logger.info("Service started", service=self.service_name)
        yield
        await self.shutdown()

    def _create_app(self) -> FastAPI:
        """Create FastAPI application."""
        return FastAPI(
            lifespan=self._lifespan,
            title=f"{self.service_name.title()} Service",
            description="Caching proxy for HTTP status cat images",
            version="1.0.0",
            # The whole path space belongs to the proxy routes
            docs_url=None,
            redoc_url=None,
            openapi_url=None,
        )

    def _setup_middleware(self):
        """Set up middleware."""

        # Off unless origins are configured; preflights never reach key checks
        origins = self.config.allowed_origins()
        if origins:
            self.app.add_middleware(
                CORSMiddleware,
                allow_origins=origins,
                allow_credentials=True,
                allow_methods=["*"],
                allow_headers=["*"],
            )

        @self.app.middleware("http")
        async def add_request_context(request: Request, call_next):
            start_time = time.time()
            request_id = set_request_id(request.headers.get("x-request-id"))
            set_client_context(request.client.host if request.client else None)

            try:
                response = await call_next(request)

                duration = time.time() - start_time
                self.metrics.record_http_request(
                    method=request.method,
                    status_code=response.status_code,
                    duration=duration
                )
                self.logger.info(
                    "HTTP request",
                    method=request.method,
                    path=request.url.path,
                    status_code=response.status_code,
                    duration_ms=round(duration * 1000, 2)
                )
                response.headers["X-Request-ID"] = request_id
                return response
            finally:
                clear_context()

    def _setup_error_handlers(self):
        """Map escaping exceptions to plain-text responses."""

        @self.app.exception_handler(CatProxyException)
        async def proxy_exception_handler(request: Request, exc: CatProxyException):
            """Handle CatProxyException."""
            self.logger.error("Proxy error", **exc.to_response().model_dump())
            self.metrics.record_error(exc.code)
            return PlainTextResponse(exc.message, status_code=exc.status_code)

        @self.app.exception_handler(Exception)
        async def general_exception_handler(request: Request, exc: Exception):
            """Handle general exceptions."""
            self.logger.error("Unhandled exception", error=str(exc), exc_info=True)
            self.metrics.record_error("INTERNAL_ERROR")
            return PlainTextResponse("Internal server error", status_code=500)

    def _setup_routes(self):
        """Set up service routes. Override in subclasses."""

    async def startup(self):
        """Prepare resources before traffic is accepted. Override in subclasses."""

    async def shutdown(self):
        """Release resources after the server stops. Override in subclasses."""

    def run(self):
        """Run the service."""
        import uvicorn

        if self.config.metrics_port:
            self.metrics.start_metrics_server(self.config.metrics_port)

        uvicorn.run(
            self.app,
            host=self.config.host,
            port=self.config.port,
            log_level=self.config.log_level.lower()
        )
