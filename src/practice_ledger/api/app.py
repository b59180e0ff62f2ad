"""FastAPI application factory."""

import logging

from fastapi import FastAPI, Request, status
from fastapi.responses import JSONResponse

from practice_ledger.api.routes import router
from practice_ledger.app_logging import configure_logging
from practice_ledger.containers import AppContainer
from practice_ledger.domain.errors import (
    ConflictError,
    NotFoundError,
    PartialChargeError,
    PracticeLedgerError,
    StoreError,
    ValidationError,
)

_STATUS_BY_ERROR: list[tuple[type[PracticeLedgerError], int]] = [
    (ValidationError, status.HTTP_422_UNPROCESSABLE_ENTITY),
    (NotFoundError, status.HTTP_404_NOT_FOUND),
    (ConflictError, status.HTTP_409_CONFLICT),
    (StoreError, status.HTTP_503_SERVICE_UNAVAILABLE),
    (PartialChargeError, status.HTTP_500_INTERNAL_SERVER_ERROR),
]


def create_app(container: AppContainer) -> FastAPI:
    """Create a FastAPI app configured with dependencies."""
    configure_logging()
    logger = logging.getLogger(__name__)

    app = FastAPI()
    app.state.container = container
    app.include_router(router)

    @app.exception_handler(PracticeLedgerError)
    async def ledger_error_handler(
        request: Request, exc: PracticeLedgerError
    ) -> JSONResponse:
        status_code = _status_for(exc)
        if status_code >= status.HTTP_500_INTERNAL_SERVER_ERROR:
            logger.error("%s %s failed: %s", request.method, request.url.path, exc)
        content: dict[str, object] = {"code": exc.code, "detail": str(exc)}
        if isinstance(exc, PartialChargeError):
            content["charged"] = [str(client_id) for client_id in exc.charged]
            content["pending"] = [str(client_id) for client_id in exc.pending]
        return JSONResponse(status_code=status_code, content=content)

    @app.get("/health")
    async def health() -> dict[str, str]:
        """Simple health check endpoint."""
        return {"status": "ok"}

    return app


def _status_for(exc: PracticeLedgerError) -> int:
    for error_type, status_code in _STATUS_BY_ERROR:
        if isinstance(exc, error_type):
            return status_code
    return status.HTTP_500_INTERNAL_SERVER_ERROR
