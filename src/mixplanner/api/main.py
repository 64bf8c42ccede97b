"""
FastAPI application for the mix planner.

The API is a thin JSON layer over the forecasting and optimization engine.
Engine errors are mapped onto HTTP statuses here and nowhere else.
"""
from fastapi import FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.middleware.gzip import GZipMiddleware
from fastapi.responses import JSONResponse
import structlog
import traceback
import time
from contextlib import asynccontextmanager

from mixplanner.config.settings import settings
from mixplanner.api.routes import domains, forecast, health, optimization
from mixplanner.model.domains import available_domains
from mixplanner.utils.exceptions import InvalidInputError, UnknownDomainError

logger = structlog.get_logger()


@asynccontextmanager
async def lifespan(app: FastAPI):
    logger.info(
        "Mix planner API starting",
        environment=settings.env.value,
        domains=available_domains(),
        default_domain=settings.forecast.default_domain
    )
    yield
    logger.info("Mix planner API stopped")


async def invalid_input_handler(request: Request, exc: InvalidInputError):
    """Contract violations from the engine become 400s."""
    logger.warning("Invalid input", path=request.url.path, field=exc.field, detail=str(exc))
    return JSONResponse(
        status_code=400,
        content={"error": "Invalid input", "detail": str(exc), "field": exc.field}
    )


async def unknown_domain_handler(request: Request, exc: UnknownDomainError):
    """Unregistered domain names become 404s."""
    logger.warning("Unknown domain", path=request.url.path, domain=exc.domain)
    return JSONResponse(
        status_code=404,
        content={"error": "Unknown domain", "detail": str(exc), "available": exc.available}
    )


async def unhandled_exception_handler(request: Request, exc: Exception):
    logger.error("Unhandled exception", exc_info=exc, method=request.method, path=request.url.path)

    content = {"error": "Internal server error", "detail": "An unexpected error occurred"}
    if settings.is_development():
        content["detail"] = str(exc)
        content["traceback"] = traceback.format_exception(type(exc), exc, exc.__traceback__)
    return JSONResponse(status_code=500, content=content)


async def log_requests(request: Request, call_next):
    """Log every request with its status and latency."""
    start_time = time.perf_counter()
    response = await call_next(request)
    elapsed_ms = (time.perf_counter() - start_time) * 1000.0

    response.headers["X-Process-Time-Ms"] = f"{elapsed_ms:.1f}"
    logger.info(
        "HTTP request processed",
        method=request.method,
        path=request.url.path,
        status_code=response.status_code,
        elapsed_ms=round(elapsed_ms, 1)
    )
    return response


def create_app() -> FastAPI:
    """Build the application with its middleware, error mapping and routers."""
    application = FastAPI(
        title="Marketing Mix Planner API",
        description="Forecast funnel metrics from channel spend and recommend the profit-maximizing split",
        version=settings.api.version,
        lifespan=lifespan,
        docs_url="/docs" if settings.is_development() else None,
        redoc_url="/redoc" if settings.is_development() else None,
    )

    application.add_middleware(
        CORSMiddleware,
        allow_origins=settings.api.cors_origins,
        allow_credentials=True,
        allow_methods=settings.api.cors_methods,
        allow_headers=["*"],
    )
    application.add_middleware(GZipMiddleware, minimum_size=1000)
    application.middleware("http")(log_requests)

    application.add_exception_handler(InvalidInputError, invalid_input_handler)
    application.add_exception_handler(UnknownDomainError, unknown_domain_handler)
    application.add_exception_handler(Exception, unhandled_exception_handler)

    application.include_router(health.router, prefix="/api/health", tags=["health"])
    application.include_router(domains.router, prefix="/api/domains", tags=["domains"])
    application.include_router(forecast.router, prefix="/api/forecast", tags=["forecast"])
    application.include_router(optimization.router, prefix="/api/optimization", tags=["optimization"])

    @application.get("/")
    async def root():
        return {
            "message": "Marketing Mix Planner API",
            "version": settings.api.version,
            "environment": settings.env.value,
            "domains": available_domains()
        }

    return application


app = create_app()
