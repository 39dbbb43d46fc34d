"""LetterLab Backend — FastAPI application entry point."""

import logging
from contextlib import asynccontextmanager
from typing import Optional

from fastapi import FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse, PlainTextResponse
from starlette.exceptions import HTTPException as StarletteHTTPException

from letterlab import config
from letterlab.database import Database
from letterlab.middleware.body_limit import BodySizeLimitMiddleware
from letterlab.middleware.feature_flags import enabled_features
from letterlab.middleware.rate_limit import RateLimitMiddleware
from letterlab.routes import conversations, generate, usage, users

logging.basicConfig(
    level=logging.INFO,
    format="%(asctime)s %(levelname)s %(name)s: %(message)s",
)
logger = logging.getLogger(__name__)


def _validation_message(exc: RequestValidationError) -> str:
    errors = exc.errors()
    if not errors:
        return "Invalid request"
    first = errors[0]
    location = ".".join(str(part) for part in first.get("loc", ()) if part != "body")
    message = first.get("msg", "Invalid value")
    return f"{location}: {message}" if location else message


def _register_error_handlers(app: FastAPI) -> None:
    @app.exception_handler(StarletteHTTPException)
    async def http_error(request: Request, exc: StarletteHTTPException):
        return JSONResponse(
            status_code=exc.status_code,
            content={"error": exc.detail},
            headers=getattr(exc, "headers", None),
        )

    @app.exception_handler(RequestValidationError)
    async def validation_error(request: Request, exc: RequestValidationError):
        return JSONResponse(status_code=400, content={"error": _validation_message(exc)})

    @app.exception_handler(Exception)
    async def unhandled_error(request: Request, exc: Exception):
        logger.error("[%s %s] unhandled error", request.method, request.url.path, exc_info=exc)
        return JSONResponse(status_code=500, content={"error": "Internal server error"})


def create_app(database: Optional[Database] = None) -> FastAPI:
    """Build the app around one Database whose lifecycle follows the app's."""
    database = database or Database(config.DATABASE_URL)

    @asynccontextmanager
    async def lifespan(app: FastAPI):
        """Application startup and shutdown."""
        database.init()
        yield
        database.close()

    app = FastAPI(
        title="LetterLab Pro API",
        description="Professional email drafting with saved conversations and usage tracking",
        version="0.1.0",
        lifespan=lifespan,
    )
    app.state.database = database

    # Middleware added last runs first: CORS, then body cap, then rate limit
    app.add_middleware(RateLimitMiddleware, requests_per_minute=60, model_requests_per_minute=10)
    app.add_middleware(BodySizeLimitMiddleware, max_bytes=config.MAX_BODY_BYTES)
    app.add_middleware(
        CORSMiddleware,
        allow_origins=config.allowed_origins(),
        allow_origin_regex=config.VERCEL_ORIGIN_REGEX,
        allow_credentials=False,
        allow_methods=["GET", "POST", "PATCH", "DELETE", "OPTIONS"],
        allow_headers=["Content-Type", "Authorization"],
        max_age=86400,
    )

    _register_error_handlers(app)

    # Register route modules
    app.include_router(users.router, prefix="/api", tags=["Users"])
    app.include_router(conversations.router, prefix="/api", tags=["Conversations"])
    app.include_router(usage.router, prefix="/api", tags=["Usage"])
    app.include_router(generate.router, prefix="/api", tags=["Generation"])

    @app.get("/", response_class=PlainTextResponse)
    async def root():
        return "LetterLab backend is running."

    @app.get("/healthz")
    def healthz():
        if database.ping():
            return {"db": "ok"}
        return JSONResponse(status_code=503, content={"db": "down"})

    @app.get("/api/health")
    async def health_check():
        return {
            "ok": True,
            "service": "letterlab-backend",
            "env": config.APP_ENV,
            "hasKey": config.anthropic_api_key() is not None,
            "features": enabled_features(),
        }

    return app


app = create_app()
