"""FastAPI application factory."""
from __future__ import annotations
from contextlib import asynccontextmanager
from fastapi import FastAPI, Request
from fastapi.exception_handlers import request_validation_exception_handler
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse
from sqlmodel import SQLModel
from payweek import __version__
from payweek.domain.exceptions import (
    NotFoundError, ImportValidationError, ConfigurationError,
    InferenceError, ImportTimeoutError, PersistenceError,
)
from payweek.logging import logger

def _validation_message(exc: RequestValidationError) -> str:
    parts = []
    for err in exc.errors():
        field = ".".join(str(p) for p in err.get("loc", ()) if p not in ("body", "query", "path"))
        msg = err.get("msg", "invalid value")
        parts.append(f"{field}: {msg}" if field else msg)
    return "; ".join(parts) or "Invalid request"


def create_app() -> FastAPI:
    @asynccontextmanager
    async def lifespan(app: FastAPI):
        from payweek.infra.db.engine import engine  # triggers WAL pragma + mapper registration
        from payweek.infra.db.schema_compat import ensure_schema_compat
        SQLModel.metadata.create_all(engine)
        ensure_schema_compat(engine)
        yield

    app = FastAPI(
        title="Payweek API",
        version=__version__,
        lifespan=lifespan,
    )

    # Import routers inside create_app() to avoid circular imports at module load time
    from payweek.api.routers.imports import router as imports_router
    from payweek.api.routers.weeks import router as weeks_router

    app.include_router(imports_router)
    app.include_router(weeks_router)

    @app.exception_handler(RequestValidationError)
    async def _request_invalid(request: Request, exc: RequestValidationError) -> JSONResponse:
        # Import endpoints answer bad form fields the same way as bad workbooks.
        if request.url.path.startswith(imports_router.prefix):
            return JSONResponse(status_code=400, content={"error": _validation_message(exc)})
        return await request_validation_exception_handler(request, exc)

    @app.exception_handler(NotFoundError)
    def _not_found(request: Request, exc: NotFoundError) -> JSONResponse:
        return JSONResponse(status_code=404, content={"detail": exc.message})

    @app.exception_handler(ImportValidationError)
    def _import_invalid(request: Request, exc: ImportValidationError) -> JSONResponse:
        return JSONResponse(status_code=400, content={"error": exc.message})

    @app.exception_handler(ConfigurationError)
    def _misconfigured(request: Request, exc: ConfigurationError) -> JSONResponse:
        logger.error("Configuration error: %s", exc.message)
        return JSONResponse(status_code=500, content={"error": exc.message})

    @app.exception_handler(InferenceError)
    def _inference_failed(request: Request, exc: InferenceError) -> JSONResponse:
        logger.error("Structure inference failed: %s", exc.message)
        return JSONResponse(status_code=502, content={"error": exc.message})

    @app.exception_handler(ImportTimeoutError)
    def _import_timed_out(request: Request, exc: ImportTimeoutError) -> JSONResponse:
        logger.warning("Import aborted: %s", exc.message)
        return JSONResponse(status_code=504, content={"error": exc.message})

    @app.exception_handler(PersistenceError)
    def _persistence_failed(request: Request, exc: PersistenceError) -> JSONResponse:
        return JSONResponse(status_code=500, content={"error": exc.message})

    @app.get("/health", tags=["ops"])
    def health() -> dict:
        return {"status": "ok"}

    return app
