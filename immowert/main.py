from contextlib import asynccontextmanager

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

# Routers
from .routers.valuation import router as valuation_router

# Core modules
from .core.config import settings
from .core.logging import configure_logging, CorrelationIdMiddleware
from .core.metrics import PromMiddleware, metrics_endpoint
from .services.valuation_service import ValuationService

def create_app(service: ValuationService | None = None) -> FastAPI:
    """
    App factory so tests and ASGI servers can instantiate cleanly.
    Pass `service` to run against stub sources.
    """
    configure_logging(settings.LOG_LEVEL)  # Set up JSON logs + correlation-id filter

    @asynccontextmanager
    async def lifespan(app: FastAPI):
        # Caches load (and sweep) at start and are flushed once more at stop.
        app.state.service.load_caches()
        try:
            yield
        finally:
            app.state.service.flush()

    app = FastAPI(
        title="Immowert Property Valuation API",
        version="1.0.0",
        description="Market value estimates for German residential property from land values, listings and price indices.",
        lifespan=lifespan,
    )
    app.state.service = service or ValuationService()

    # CORS: allow the calculator frontend to call the API.
    allow_origins = [o.strip() for o in settings.ALLOW_ORIGINS.split(",")] if settings.ALLOW_ORIGINS else ["*"]
    app.add_middleware(
        CORSMiddleware,
        allow_origins=allow_origins,
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
        expose_headers=["ETag","X-Request-Id"],
    )

    # Observability middlewares
    app.add_middleware(CorrelationIdMiddleware)  # Adds/propagates X-Request-Id
    if settings.PROMETHEUS_ENABLED:
        app.add_middleware(PromMiddleware)       # Records req/latency metrics

    # Meta routes
    @app.get("/v1/health", tags=["meta"])
    def health():
        return {"status": "ok", "caches": app.state.service.cache_stats()}

    @app.get("/v1/ping", tags=["meta"])
    def ping():
        return {"pong": True}

    if settings.PROMETHEUS_ENABLED:
        # Standard Prometheus scrape endpoint
        app.add_route("/v1/metrics", metrics_endpoint, methods=["GET"])

    # Business routes
    app.include_router(valuation_router, prefix="/v1", tags=["valuation"])

    return app

app = create_app()
