"""Map checkout exceptions onto HTTP responses."""
import logging

from fastapi import FastAPI, Request, status
from fastapi.responses import JSONResponse

from .exceptions import (
    DuplicateOrder,
    GatewayMisconfigured,
    OrderAlreadyLinked,
    OrderNotFound,
    PaymentError,
    StoreUnavailable,
    ValidationError,
)

logger = logging.getLogger(__name__)

STATUS_CODES = [
    (ValidationError, status.HTTP_400_BAD_REQUEST),
    (DuplicateOrder, status.HTTP_409_CONFLICT),
    (OrderAlreadyLinked, status.HTTP_409_CONFLICT),
    (OrderNotFound, status.HTTP_404_NOT_FOUND),
    (StoreUnavailable, status.HTTP_503_SERVICE_UNAVAILABLE),
    (GatewayMisconfigured, status.HTTP_503_SERVICE_UNAVAILABLE),
]


def status_code_for(exc: PaymentError) -> int:
    for exc_type, code in STATUS_CODES:
        if isinstance(exc, exc_type):
            return code
    return status.HTTP_500_INTERNAL_SERVER_ERROR


async def payment_error_handler(request: Request, exc: PaymentError) -> JSONResponse:
    code = status_code_for(exc)
    body = {"success": False, "detail": exc.message}
    if isinstance(exc, ValidationError):
        body["field"] = exc.field
    if code >= 500:
        logger.error("%s %s failed: %s", request.method, request.url.path, exc.message)
    return JSONResponse(status_code=code, content=body)


def register_exception_handlers(app: FastAPI) -> None:
    app.add_exception_handler(PaymentError, payment_error_handler)
