import logging
from collections.abc import AsyncGenerator
from contextlib import asynccontextmanager
from importlib.metadata import version as pkg_version

from fastapi import FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from sqlalchemy.exc import SQLAlchemyError

from spellbinder.api import cards_router, collection_router, health_router, sync_router
from spellbinder.config import configure_logging, settings
from spellbinder.db.database import init_db
from spellbinder.models.errors import (
    QueryExecutionError,
    SpellBinderError,
    UnauthenticatedError,
)

logger = logging.getLogger(__name__)


@asynccontextmanager
async def lifespan(_app: FastAPI) -> AsyncGenerator[None, None]:
    """Application lifespan handler for startup/shutdown."""
    configure_logging()
    await init_db()
    yield


app = FastAPI(
    title=settings.app_name,
    version=pkg_version("spellbinder"),
    lifespan=lifespan,
)


def _error_response(exc: SpellBinderError) -> JSONResponse:
    headers = {"WWW-Authenticate": "Bearer"} if isinstance(exc, UnauthenticatedError) else None
    return JSONResponse(
        status_code=exc.status_code,
        content={"success": False, "error": exc.message, "kind": exc.kind.value},
        headers=headers,
    )


@app.exception_handler(SpellBinderError)
async def spellbinder_error_handler(_request: Request, exc: SpellBinderError) -> JSONResponse:
    """Render known failures as ``{"success": false, "error", "kind"}``."""
    if exc.status_code >= 500:
        logger.error("%s: %s", exc.kind.value, exc.detail or exc.message)
    return _error_response(exc)


@app.exception_handler(SQLAlchemyError)
async def database_error_handler(request: Request, exc: SQLAlchemyError) -> JSONResponse:
    """Database failures outside the search service get the same envelope."""
    logger.error("Database error on %s %s", request.method, request.url.path, exc_info=exc)
    return _error_response(QueryExecutionError("Database query failed", detail=str(exc)))


app.include_router(cards_router)
app.include_router(collection_router)
app.include_router(health_router)
app.include_router(sync_router)

app.add_middleware(
    CORSMiddleware,
    allow_origins=["*"],  # Tighten in production
    allow_credentials=False,
    allow_methods=["*"],
    allow_headers=["*"],
)
