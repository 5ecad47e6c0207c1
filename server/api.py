"""FastAPI server exposing the ingestion pipelines."""

from __future__ import annotations

import logging
from typing import Optional

from fastapi import FastAPI, Header, Request
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse

from fits_app.app import FitsIngestionApp
from fits_app.logging_config import get_logger, log_event
from logic.validation import (
    ConnectRequest,
    ItemSubmission,
    ScanRequest,
    SuppressBrandRequest,
    error_payload,
    validation_failure,
)
from models.taxonomy import validate_message_category
from tools.gmail_client import MailProviderError
from tools.identity_provider import AuthenticationRequired
from tools.ingestion_store import PersistenceError

LOGGER = get_logger(__name__)


def create_app(fits_app: FitsIngestionApp | None = None) -> FastAPI:
    """Build the FastAPI app around a :class:`FitsIngestionApp`."""

    ingestion = fits_app or FitsIngestionApp()
    app = FastAPI(title="Fits Ingestion", version="0.1.0")
    app.state.ingestion = ingestion

    @app.exception_handler(AuthenticationRequired)
    async def _authentication_required(request: Request, exc: AuthenticationRequired) -> JSONResponse:
        return JSONResponse(status_code=401, content=error_payload("Authentication required", str(exc)))

    @app.exception_handler(MailProviderError)
    async def _mail_provider_error(request: Request, exc: MailProviderError) -> JSONResponse:
        log_event(LOGGER, logging.ERROR, "mail_provider_failed", path=request.url.path, error=str(exc))
        return JSONResponse(status_code=500, content=error_payload("Mail provider error", str(exc)))

    @app.exception_handler(PersistenceError)
    async def _persistence_error(request: Request, exc: PersistenceError) -> JSONResponse:
        log_event(LOGGER, logging.ERROR, "persistence_failed", path=request.url.path, error=str(exc))
        return JSONResponse(status_code=500, content=error_payload("Storage error", str(exc)))

    @app.exception_handler(Exception)
    async def _unexpected_error(request: Request, exc: Exception) -> JSONResponse:
        log_event(
            LOGGER,
            logging.ERROR,
            "request_failed",
            path=request.url.path,
            error=str(exc),
            error_type=type(exc).__name__,
            exc_info=exc,
        )
        return JSONResponse(status_code=500, content=error_payload("Internal server error", str(exc)))

    @app.exception_handler(RequestValidationError)
    async def _invalid_request(request: Request, exc: RequestValidationError) -> JSONResponse:
        return JSONResponse(status_code=400, content=validation_failure("Invalid request", exc.errors()))

    @app.get("/healthz")
    def healthcheck() -> dict:
        """Lightweight readiness probe."""

        return {
            "status": "ok",
            "service": "fits-ingestion",
            "environment": ingestion.config.environment or "local",
        }

    @app.post("/scan-gmail")
    def scan_gmail(request: ScanRequest) -> dict:
        """Scan the user's mailbox for fashion messages."""

        return ingestion.scan_mail(request)

    @app.post("/mail/connect")
    def connect_mail(request: ConnectRequest, authorization: Optional[str] = Header(default=None)) -> dict:
        user_id = ingestion.authenticate(authorization)
        return ingestion.connect_mail(user_id, request)

    @app.post("/closet-items")
    def add_closet_item(submission: ItemSubmission, authorization: Optional[str] = Header(default=None)) -> dict:
        """Create a closet item from a URL, an uploaded photo or manual fields."""

        user_id = ingestion.authenticate(authorization)
        return ingestion.ingest_item(user_id, submission)

    @app.get("/closet-items")
    def list_closet_items(authorization: Optional[str] = Header(default=None)) -> dict:
        return ingestion.list_items(ingestion.authenticate(authorization))

    @app.get("/messages")
    def list_messages(
        category: Optional[str] = None, authorization: Optional[str] = Header(default=None)
    ):
        user_id = ingestion.authenticate(authorization)
        if category:
            try:
                category = validate_message_category(category)
            except ValueError as exc:
                return JSONResponse(status_code=400, content=error_payload("Invalid category", str(exc)))
        return ingestion.list_messages(user_id, category=category)

    @app.get("/brands/{brand_name}/promotions")
    def brand_promotions(brand_name: str, authorization: Optional[str] = Header(default=None)) -> dict:
        return ingestion.brand_promotions(ingestion.authenticate(authorization), brand_name)

    @app.post("/suppressed-brands")
    def suppress_brand(request: SuppressBrandRequest, authorization: Optional[str] = Header(default=None)) -> dict:
        return ingestion.suppress_brand(ingestion.authenticate(authorization), request.brand_name)

    @app.delete("/suppressed-brands/{brand_name}")
    def unsuppress_brand(brand_name: str, authorization: Optional[str] = Header(default=None)) -> dict:
        return ingestion.unsuppress_brand(ingestion.authenticate(authorization), brand_name)

    return app


_APP: FastAPI | None = None


def get_app() -> FastAPI:
    """Expose a process-wide FastAPI instance for ASGI servers."""

    global _APP
    if _APP is None:
        _APP = create_app()
    return _APP


if __name__ == "__main__":
    import uvicorn

    uvicorn.run("server.api:get_app", factory=True, host="0.0.0.0", port=8080, reload=False)
