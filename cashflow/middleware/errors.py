"""Map engine exceptions onto HTTP responses."""
import logging

from fastapi import Request
from fastapi.responses import JSONResponse

from cashflow.exceptions import (
    CashflowError,
    DataIntegrityError,
    NotFoundError,
    UpstreamUnavailableError,
    ValidationError,
)

logger = logging.getLogger(__name__)

STATUS_CODES = {
    NotFoundError: 404,
    ValidationError: 400,
    DataIntegrityError: 400,
    UpstreamUnavailableError: 503,
}


def status_for(exc: CashflowError) -> int:
    for error_type, status_code in STATUS_CODES.items():
        if isinstance(exc, error_type):
            return status_code
    return 500


async def cashflow_error_handler(request: Request, exc: CashflowError) -> JSONResponse:
    status_code = status_for(exc)
    if status_code >= 500:
        logger.error(f"{request.method} {request.url.path} failed: {exc.message}")
    return JSONResponse(status_code=status_code, content={"detail": exc.message})


def setup_error_handlers(app):
    """Register handlers so routes can raise engine errors directly."""
    app.add_exception_handler(CashflowError, cashflow_error_handler)
