# memory_vault/main.py

from contextlib import asynccontextmanager
from pathlib import Path
from datetime import datetime, timezone

from fastapi import FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse, FileResponse
from starlette.exceptions import HTTPException as StarletteHTTPException
from loguru import logger

from memory_vault.core.config import settings
from memory_vault.core.database import mongo_manager
from memory_vault.core.exceptions import (
    MemoryVaultError,
    SERVER_ERROR_MESSAGE,
    validation_error_from_pydantic,
)
from memory_vault.core.logging_config import setup_logging, add_trace_id_middleware
from memory_vault.services.media_store import media_manager
from memory_vault.modules.memories.repository import MemoryRepository
from memory_vault.api.v1 import api_router


async def memory_vault_exception_handler(request: Request, exc: MemoryVaultError):
    log = logger.bind(path=request.url.path, method=request.method)
    if exc.status_code >= 500:
        log.opt(exception=exc).error(f"{type(exc).__name__}: {exc.message} {exc.details}")
    else:
        log.warning(f"{type(exc).__name__}: {exc.message}")
    return JSONResponse(status_code=exc.status_code, content=exc.to_dict())


async def validation_exception_handler(request: Request, exc: RequestValidationError):
    error = validation_error_from_pydantic(exc.errors())
    logger.bind(path=request.url.path).warning(f"Validation Error: {exc.errors()}")
    return JSONResponse(status_code=error.status_code, content=error.to_dict())


async def http_exception_handler(request: Request, exc: StarletteHTTPException):
    logger.bind(path=request.url.path).warning(f"HTTP Exception Caught: {exc.status_code} {exc.detail}")
    return JSONResponse(status_code=exc.status_code, content={"error": str(exc.detail)}, headers=getattr(exc, "headers", None))


async def generic_exception_handler(request: Request, exc: Exception):
    logger.bind(path=request.url.path).opt(exception=exc).error(f"Unhandled Exception: {exc}")
    return JSONResponse(status_code=500, content={"error": SERVER_ERROR_MESSAGE})


@asynccontextmanager
async def lifespan(app: FastAPI):
    logger.info(f"Starting {settings.PROJECT_NAME}...")
    await mongo_manager.connect()
    await MemoryRepository(mongo_manager.get_db()).create_indexes()
    await media_manager.connect()
    try:
        yield
    finally:
        logger.info("Shutting down...")
        await media_manager.disconnect()
        await mongo_manager.disconnect()


def mount_frontend(app: FastAPI, static_dir: str) -> None:
    """Serves the built frontend, falling back to index.html for client-side routes."""
    static_root = Path(static_dir).resolve()
    index_file = static_root / "index.html"
    if not index_file.is_file():
        logger.warning(f"Production mode but no frontend build found at {static_root}; static serving disabled.")
        return

    @app.get("/{full_path:path}", include_in_schema=False)
    async def serve_frontend(full_path: str):
        if full_path.startswith(settings.API_PREFIX.strip("/") + "/"):
            raise StarletteHTTPException(status_code=404, detail="Not Found")
        candidate = (static_root / full_path).resolve()
        if full_path and candidate.is_file() and candidate.is_relative_to(static_root):
            return FileResponse(candidate)
        return FileResponse(index_file)

    logger.info(f"Serving frontend from {static_root}")


def create_app() -> FastAPI:
    setup_logging()
    app = FastAPI(
        title=settings.PROJECT_NAME,
        openapi_url=f"{settings.API_PREFIX}/openapi.json",
        lifespan=lifespan,
        exception_handlers={
            MemoryVaultError: memory_vault_exception_handler,
            RequestValidationError: validation_exception_handler,
            StarletteHTTPException: http_exception_handler,
            Exception: generic_exception_handler,
        },
    )

    app.middleware("http")(add_trace_id_middleware)
    app.add_middleware(
        CORSMiddleware,
        allow_origins=settings.cors_origins_list,
        allow_credentials=settings.cors_origins_list != ["*"],
        allow_methods=["*"],
        allow_headers=["*"],
    )

    app.include_router(api_router, prefix=settings.API_PREFIX)

    @app.get("/health", tags=["Health Check"])
    async def health():
        return {"status": "ok", "project": settings.PROJECT_NAME, "timestamp": datetime.now(timezone.utc)}

    if settings.is_production:
        mount_frontend(app, settings.STATIC_DIR)

    return app


app = create_app()


def run():
    """Console entry point: serves the app with uvicorn."""
    import uvicorn

    uvicorn.run("memory_vault.main:app", host=settings.HOST, port=settings.PORT, log_config=None)


if __name__ == "__main__":
    run()
