import logging
from typing import List

from fastapi import FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse

from config import get_settings
from pipeline.errors import (
    ConfigurationError,
    ExtractionEmpty,
    InsufficientReferences,
    PipelineError,
    TransportError,
)
from routers import articles, health
from services.articles_service import ArticleConflict, ArticleNotFound, ArticleValidationError, ensure_table
from services.db import SnowflakeConnectionError

logger = logging.getLogger(__name__)

# Looked up along the exception's MRO, so subclasses override PipelineError
ERROR_STATUS = {
    ConfigurationError: 503,
    TransportError: 502,
    ExtractionEmpty: 422,
    InsufficientReferences: 422,
    ArticleValidationError: 422,
    ArticleNotFound: 404,
    ArticleConflict: 409,
    SnowflakeConnectionError: 503,
    PipelineError: 500,
}


def status_for(exc: Exception) -> int:
    for cls in type(exc).__mro__:
        if cls in ERROR_STATUS:
            return ERROR_STATUS[cls]
    return 500


async def handle_known_error(request: Request, exc: Exception) -> JSONResponse:
    status_code = status_for(exc)
    message = getattr(exc, "message", None) or str(exc)
    if status_code >= 500:
        logger.error(f"❌ {request.method} {request.url.path} failed: {message}")
    else:
        logger.info(f"{request.method} {request.url.path} -> {status_code}: {message}")
    return JSONResponse(status_code=status_code, content={"detail": message})


def warn_on_misconfiguration(settings) -> List[str]:
    """Log each backend a generation run would reject; returns the problems."""
    problems = health.configuration_problems(settings)
    for problem in problems:
        logger.warning(f"⚠️ Generation disabled until fixed: {problem}")
    return problems


def create_app() -> FastAPI:
    settings = get_settings()

    app = FastAPI(
        title=settings.app_name,
        debug=settings.debug,
        docs_url="/docs",
        redoc_url="/redoc",
        openapi_url="/openapi.json",
    )

    level = logging.DEBUG if settings.debug else logging.INFO
    logging.getLogger().setLevel(level)
    # Tame noisy libraries
    logging.getLogger("httpx").setLevel(logging.WARNING)
    logging.getLogger("openai").setLevel(logging.WARNING)
    logging.getLogger("snowflake.connector").setLevel(logging.WARNING)

    app.add_middleware(
        CORSMiddleware,
        allow_origins=settings.cors_origins,
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )

    for exc_class in ERROR_STATUS:
        app.add_exception_handler(exc_class, handle_known_error)

    app.include_router(health.router)
    app.include_router(articles.router)

    @app.on_event("startup")
    async def startup_event():
        warn_on_misconfiguration(settings)
        if not settings.snowflake_account:
            logging.warning("Snowflake is not configured; article endpoints will fail until it is")
            return
        try:
            ensure_table()
            logging.info(f"✅ Articles table ready: {settings.articles_table}")
        except SnowflakeConnectionError as e:
            logging.error(f"❌ Could not prepare articles table: {e}")

    return app


app = create_app()
