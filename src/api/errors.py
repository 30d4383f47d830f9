"""Translate billing errors into HTTP responses."""

from fastapi import FastAPI, Request, status
from fastapi.responses import JSONResponse

from src.billing.errors import (
    AlreadyFinalError,
    BillingError,
    FeesLockedError,
    InvalidAmountError,
    InvalidPurposeError,
    InvalidTransitionError,
    NotFoundError,
    OverpaymentRejectedError,
    PaymentPendingError,
    WorkNotDeletableError,
)
from src.core.logging import get_logger

logger = get_logger(__name__)

STATUS_BY_ERROR: dict[type[BillingError], int] = {
    NotFoundError: status.HTTP_404_NOT_FOUND,
    InvalidAmountError: status.HTTP_400_BAD_REQUEST,
    OverpaymentRejectedError: status.HTTP_400_BAD_REQUEST,
    PaymentPendingError: status.HTTP_400_BAD_REQUEST,
    InvalidTransitionError: status.HTTP_400_BAD_REQUEST,
    AlreadyFinalError: status.HTTP_409_CONFLICT,
    InvalidPurposeError: status.HTTP_400_BAD_REQUEST,
    FeesLockedError: status.HTTP_409_CONFLICT,
    WorkNotDeletableError: status.HTTP_403_FORBIDDEN,
}


def status_for(exc: BillingError) -> int:
    """HTTP status for a billing error; unknown kinds are client errors."""
    for error_type in type(exc).__mro__:
        if error_type in STATUS_BY_ERROR:
            return STATUS_BY_ERROR[error_type]
    return status.HTTP_400_BAD_REQUEST


async def billing_error_handler(request: Request, exc: BillingError) -> JSONResponse:
    """Render a BillingError as ``{"detail", "code", ...}``."""
    status_code = status_for(exc)
    logger.info(
        "billing_error",
        code=exc.code,
        status_code=status_code,
        path=request.url.path,
    )
    return JSONResponse(status_code=status_code, content=exc.to_dict())


def register_error_handlers(app: FastAPI) -> None:
    """Install the billing error handler on an application."""
    app.add_exception_handler(BillingError, billing_error_handler)
