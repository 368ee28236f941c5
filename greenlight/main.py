import socket
from contextlib import asynccontextmanager
from typing import Final

from fastapi import FastAPI, Request
from fastapi.exceptions import RequestValidationError
from sqlalchemy.exc import SQLAlchemyError
from starlette.exceptions import HTTPException as StarletteHTTPException

from .config import settings
from .domain.exceptions import DomainError
from .infrastructure.database.database import get_main_engine, init_db
from .logging_config import get_logger, setup_logging
from .logging_utils import log_system_info
from .middleware import log_requests_middleware
from .presentation.catalog_routes import category_router, item_router
from .presentation.error_handlers import handle_domain_error, problem_response
from .presentation.health_routes import health_router
from .presentation.movie_routes import movie_router
from .presentation.problem_details import ErrorCodes, ProblemDetailFactory
from .presentation.user_routes import user_router
from .rate_limiting import RateLimiter, rate_limit_middleware
from .telemetry import setup_telemetry


@asynccontextmanager
async def lifespan(app: FastAPI):
    # Setup logging first
    setup_logging()
    logger = get_logger(__name__)

    init_db(get_main_engine())
    logger.info("Database initialized successfully")

    log_system_info(socket.gethostname(), settings.env, settings.debug)

    yield

    logger.info("Application shutdown completed")


def create_app() -> FastAPI:
    """Build the application with its own rate limiter."""
    app = FastAPI(
        title=settings.app_name,
        version=settings.version,
        lifespan=lifespan,
        description="""
**Greenlight** - a JSON API for a movie catalogue and a multilingual
category/item catalogue.

## Concurrency

Movies carry a `version`. Updates only succeed when the stored version is the
one that was read; otherwise the API answers `409 Conflict` and the client
should re-read and retry. Send `X-Expected-Version` to make the check explicit.

## Languages

Categories and items are stored once per language. The language is taken from
`Accept-Language` (`en` when absent). Supported languages: `en`, `ar`.

## Rate Limiting

Every `/v1/` endpoint is rate limited per client IP with a token bucket.
`X-RateLimit-Limit` and `X-RateLimit-Remaining` are included in responses;
rejected requests get `429` with `Retry-After`.

## Authentication

Movie endpoints require `Authorization: Bearer <token>` from an activated
account. Tokens are issued by `POST /v1/tokens/authentication`.
        """.strip(),
        openapi_tags=[
            {"name": "health", "description": "Service availability"},
            {
                "name": "movies",
                "description": "Versioned movie records with filtering and paging",
            },
            {
                "name": "categories",
                "description": "Categories with one translation per language",
            },
            {
                "name": "items",
                "description": "Items of a category, translated per language",
            },
            {
                "name": "users",
                "description": "Registration, activation and authentication tokens",
            },
        ],
    )

    app.state.rate_limiter = RateLimiter(
        rate=settings.limiter_rps,
        burst=settings.limiter_burst,
        idle_seconds=settings.limiter_idle_seconds,
        sweep_interval=settings.limiter_sweep_interval,
        enabled=settings.limiter_enabled,
    )

    # Setup OpenTelemetry tracing
    setup_telemetry(app)

    # Add middleware (order matters: rate limiting before logging)
    app.middleware("http")(rate_limit_middleware)
    app.middleware("http")(log_requests_middleware)

    _register_exception_handlers(app)

    app.include_router(health_router)
    app.include_router(movie_router)
    app.include_router(category_router)
    app.include_router(item_router)
    app.include_router(user_router)

    return app


def _register_exception_handlers(app: FastAPI) -> None:
    @app.exception_handler(DomainError)
    async def domain_error_handler(request: Request, exc: DomainError):
        """Global handler for domain-specific errors."""
        logger = get_logger(__name__)
        logger.warning(
            "Domain error occurred",
            error_type=type(exc).__name__,
            error_message=str(exc),
            path=request.url.path,
            method=request.method,
        )
        return handle_domain_error(exc, request)

    @app.exception_handler(RequestValidationError)
    async def validation_exception_handler(
        request: Request, exc: RequestValidationError
    ):
        """Requests whose body or parameters do not parse are bad requests."""
        logger = get_logger(__name__)
        logger.warning(
            "Request validation error occurred",
            errors=exc.errors(),
            path=request.url.path,
            method=request.method,
        )

        field_errors = []
        for error in exc.errors():
            field_name = ".".join(
                str(loc) for loc in error["loc"] if loc not in ("body", "query", "path")
            )
            field_errors.append(
                {
                    "field": field_name or "body",
                    "code": (
                        ErrorCodes.FIELD_REQUIRED
                        if error["type"] == "missing"
                        else error["type"]
                    ),
                    "message": error["msg"],
                }
            )

        problem = ProblemDetailFactory.request_malformed(
            detail="the request could not be parsed",
            instance=str(request.url.path),
            field_errors=field_errors,
        )
        return problem_response(problem)

    @app.exception_handler(StarletteHTTPException)
    async def http_exception_handler(request: Request, exc: StarletteHTTPException):
        problem = ProblemDetailFactory.from_status(
            exc.status_code, detail=str(exc.detail), instance=str(request.url.path)
        )
        return problem_response(problem, headers=getattr(exc, "headers", None))

    @app.exception_handler(SQLAlchemyError)
    async def database_error_handler(request: Request, exc: SQLAlchemyError):
        """Storage errors the repositories did not translate."""
        logger = get_logger(__name__)
        logger.error(
            "Database error occurred",
            error_type=type(exc).__name__,
            error_message=str(exc),
            path=request.url.path,
            method=request.method,
            exc_info=True,
        )
        problem = ProblemDetailFactory.internal_server_error(
            instance=str(request.url.path)
        )
        return problem_response(problem)

    @app.exception_handler(Exception)
    async def general_exception_handler(request: Request, exc: Exception):
        """Global handler for unexpected errors."""
        logger = get_logger(__name__)
        logger.error(
            "Unexpected error occurred",
            error_type=type(exc).__name__,
            error_message=str(exc),
            path=request.url.path,
            method=request.method,
            exc_info=True,
        )
        problem = ProblemDetailFactory.internal_server_error(
            instance=str(request.url.path)
        )
        return problem_response(problem)


app: Final = create_app()
