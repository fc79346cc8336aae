import contextlib
import logging
from collections.abc import AsyncIterator, Mapping
from typing import Any

import sentry_sdk
from fastapi import APIRouter, FastAPI, Request
from fastapi.responses import JSONResponse

from sqljson.api.handler import mount_queries
from sqljson.core.config import settings

_logger = logging.getLogger(__name__)


def create_app(db: Any, queries: Mapping[str, str], **prepare_kwargs: Any) -> FastAPI:
    """
    FastAPI app serving each ``path -> query`` in *queries* as streaming JSON.

    All queries are prepared up front; a query the database rejects raises
    PreparationError here. Prepared queries are closed on shutdown.
    """
    if settings.SENTRY_DSN and settings.ENVIRONMENT != "local":
        sentry_sdk.init(dsn=str(settings.SENTRY_DSN), enable_tracing=True)

    router = APIRouter(tags=["queries"])
    prepared = mount_queries(router, db, queries, **prepare_kwargs)

    @contextlib.asynccontextmanager
    async def lifespan(app: FastAPI) -> AsyncIterator[None]:  # noqa: ARG001
        try:
            yield
        finally:
            for p in prepared:
                p.close()

    app = FastAPI(title=settings.PROJECT_NAME, lifespan=lifespan)

    @app.exception_handler(Exception)
    async def unhandled_exception_handler(
        request: Request, exc: Exception
    ) -> JSONResponse:
        """Catch-all for unhandled exceptions: log and return 500 with safe message."""
        _logger.exception("Unhandled exception on %s %s", request.method, request.url.path)
        detail = "Internal server error"
        if settings.ENVIRONMENT == "local":
            detail = f"Internal server error: {exc}"
        return JSONResponse(
            status_code=500,
            content={"success": False, "message": detail, "data": []},
        )

    app.include_router(router)
    app.state.prepared_queries = prepared
    return app
