# main.py
import logging
import os
from contextlib import asynccontextmanager
from datetime import datetime, timezone
from typing import Optional

from fastapi import FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from fastapi.staticfiles import StaticFiles
from pydantic import ValidationError
from starlette.exceptions import HTTPException as StarletteHTTPException

import accounts
import analytics
import medicines
import orders
from alerts import StockAlerter
from config import Settings
from database import DocumentStore
from storage import DiskUploadStore

logger = logging.getLogger(__name__)


# -------------------------------------------------------------------
# 1. Logging
# -------------------------------------------------------------------

def configure_logging(level: str = "INFO"):
    logging.basicConfig(
        level=level,
        format="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
        handlers=[logging.StreamHandler()],
    )


# -------------------------------------------------------------------
# 2. Error responses: every failure is reported as {message, error?}
# -------------------------------------------------------------------

def _describe_errors(errors) -> str:
    parts = []
    for err in errors:
        loc = ".".join(str(p) for p in err.get("loc", ()) if p not in ("body", "query"))
        parts.append(f"{loc}: {err.get('msg')}" if loc else str(err.get("msg")))
    return "; ".join(parts)


async def http_exception_handler(request: Request, exc: StarletteHTTPException):
    return JSONResponse(
        status_code=exc.status_code,
        content={"message": exc.detail},
        headers=getattr(exc, "headers", None),
    )


async def validation_exception_handler(request: Request, exc: Exception):
    errors = exc.errors() if isinstance(exc, (RequestValidationError, ValidationError)) else []
    message = _describe_errors(errors)
    logger.warning(f"Validation failed on {request.method} {request.url.path}: {message}")
    return JSONResponse(
        status_code=400,
        content={"message": "Invalid request data", "error": message},
    )


async def server_error_handler(request: Request, exc: Exception):
    logger.exception(f"Unhandled error on {request.method} {request.url.path}")
    return JSONResponse(
        status_code=500,
        content={"message": "Server Error", "error": str(exc)},
    )


# -------------------------------------------------------------------
# 3. FastAPI app instantiation
# -------------------------------------------------------------------

def create_app(settings: Optional[Settings] = None) -> FastAPI:
    settings = settings or Settings.from_env()
    configure_logging(settings.log_level)
    store = DocumentStore(settings.database_url, settings.sync_database_url)

    @asynccontextmanager
    async def lifespan(app: FastAPI):
        await store.connect()
        yield
        await store.disconnect()

    app = FastAPI(title="Pharmacy Store API", lifespan=lifespan)
    app.state.settings = settings
    app.state.store = store
    app.state.upload_store = DiskUploadStore(settings.upload_dir)
    app.state.alerter = StockAlerter.from_settings(settings)

    app.add_middleware(
        CORSMiddleware,
        allow_origins=["*"],
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )

    app.add_exception_handler(StarletteHTTPException, http_exception_handler)
    app.add_exception_handler(RequestValidationError, validation_exception_handler)
    app.add_exception_handler(ValidationError, validation_exception_handler)
    app.add_exception_handler(Exception, server_error_handler)

    app.include_router(accounts.router)
    app.include_router(medicines.router)
    app.include_router(orders.router)
    app.include_router(analytics.router)

    @app.get("/health")
    async def health_check():
        """
        Simple health check endpoint.
        """
        return {"status": "OK", "timestamp": datetime.now(timezone.utc)}

    # uploaded images and prescriptions are served back from their stored path
    upload_prefix = "/" + os.path.basename(os.path.normpath(settings.upload_dir))
    app.mount(upload_prefix, StaticFiles(directory=settings.upload_dir), name="uploads")

    return app


if __name__ == "__main__":
    import uvicorn

    uvicorn.run(create_app(), host="0.0.0.0", port=int(os.getenv("PORT", 8000)))
