from fastapi import FastAPI, Request
from fastapi.responses import JSONResponse
from starlette.exceptions import HTTPException as StarletteHTTPException
from starlette.middleware.base import BaseHTTPMiddleware
from contextlib import asynccontextmanager
from typing import Optional

from session_uploads.utils.config import Settings
from session_uploads.utils.errors import TransferError, UploadPipelineError
from session_uploads.utils.s3_client import StorageClientLifecycle
from session_uploads.routers import storage, uploads, verification

import logging
import time

logging.basicConfig(
    level=logging.INFO,
    format="%(levelname)s:     %(message)s",
)


class RequestLoggingMiddleware(BaseHTTPMiddleware):
    """Middleware to log all incoming requests."""

    async def dispatch(self, request: Request, call_next):
        start_time = time.time()
        logging.info(
            f"🌐 Incoming request: {request.method} {request.url.path} "
            f"(from {request.client.host if request.client else 'unknown'})"
        )
        try:
            response = await call_next(request)
            process_time = time.time() - start_time
            logging.info(
                f"✅ Request completed: {request.method} {request.url.path} "
                f"-> {response.status_code} ({process_time:.3f}s)"
            )
            return response
        except Exception as e:
            process_time = time.time() - start_time
            logging.error(
                f"❌ Request failed: {request.method} {request.url.path} "
                f"after {process_time:.3f}s - {type(e).__name__}: {e}"
            )
            raise


def create_app(
    settings: Optional[Settings] = None,
    storage_lifecycle: Optional[StorageClientLifecycle] = None,
) -> FastAPI:
    settings = settings or Settings()

    @asynccontextmanager
    async def lifespan(app: FastAPI):
        """Builds the shared S3 client on startup and closes it on shutdown."""
        logging.info(
            f"🚀 Session Upload Service starting on {settings.host}:{settings.port}"
        )
        logging.info(f"Environment: {settings.app_env}")
        if app.state.storage is None:
            app.state.storage = StorageClientLifecycle.from_settings(settings)
        if not app.state.storage.available:
            logging.warning(
                f"⚠️ Storage unavailable, uploads will be rejected: {app.state.storage.reason}"
            )
        logging.info("Routers registered: /live-classes")
        yield
        app.state.storage.close()

    app = FastAPI(title="Session Upload Service", lifespan=lifespan)
    app.state.settings = settings
    app.state.storage = storage_lifecycle

    app.add_middleware(RequestLoggingMiddleware)

    @app.get("/health", tags=["health"])
    async def health():
        return {"status": "ok"}

    @app.exception_handler(UploadPipelineError)
    async def pipeline_exception_handler(request: Request, exc: UploadPipelineError):
        level = logging.WARNING if exc.status_code < 500 else logging.ERROR
        logging.log(
            level,
            f"⚠️ {type(exc).__name__} for {request.method} {request.url.path}: {exc.message}",
        )
        content = {
            "status": "fail" if exc.status_code < 500 else "error",
            "message": exc.message,
            "error": type(exc).__name__,
        }
        if isinstance(exc, TransferError) and exc.key:
            content["key"] = exc.key
        return JSONResponse(status_code=exc.status_code, content=content)

    @app.exception_handler(StarletteHTTPException)
    async def http_exception_handler(request: Request, exc: StarletteHTTPException):
        logging.warning(
            f"⚠️ HTTP {exc.status_code} error for {request.method} {request.url.path}: {exc.detail}"
        )
        return JSONResponse(status_code=exc.status_code, content={"detail": exc.detail})

    @app.exception_handler(Exception)
    async def generic_exception_handler(request: Request, exc: Exception):
        logging.error(
            f"❌ Unhandled exception for {request.method} {request.url.path}: {type(exc).__name__}",
            exc_info=exc,
        )
        return JSONResponse(status_code=500, content={"detail": "Internal Server Error"})

    app.include_router(uploads.router)
    app.include_router(verification.router)
    app.include_router(storage.router)
    return app


app = create_app()
