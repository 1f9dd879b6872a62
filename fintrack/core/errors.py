import logging

from fastapi import Request
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse
from starlette import status

logger = logging.getLogger("fintrack.errors")


# Domain errors -------------------------------------------------------------


class CurrencyConversionError(Exception):
    """Base class for failures of the rate cache, fetcher and conversion engine.

    ``kind`` is the machine readable error code rendered by the API and
    ``status_code`` the HTTP status the handler maps it to.
    """

    kind = "conversion_error"
    status_code = status.HTTP_500_INTERNAL_SERVER_ERROR

    def __init__(self, message: str):
        super().__init__(message)
        self.message = message


class UnsupportedCurrency(CurrencyConversionError):
    kind = "unsupported_currency"
    status_code = status.HTTP_400_BAD_REQUEST

    def __init__(self, code: object):
        super().__init__(f"Unsupported currency: {code}")
        self.code = code


class ProviderError(CurrencyConversionError):
    """Rate provider answered with a business error or a non-success status."""

    kind = "provider_error"
    status_code = status.HTTP_502_BAD_GATEWAY

    def __init__(self, message: str, http_status: int | None = None):
        super().__init__(message)
        self.http_status = http_status


class RateServiceUnavailable(CurrencyConversionError):
    """Transport level failure reaching the rate provider (DNS, connect, timeout)."""

    kind = "network_error"
    status_code = status.HTTP_503_SERVICE_UNAVAILABLE


class InvalidResponse(CurrencyConversionError):
    kind = "invalid_response"
    status_code = status.HTTP_502_BAD_GATEWAY


class PersistenceError(CurrencyConversionError):
    kind = "persistence_error"
    status_code = status.HTTP_500_INTERNAL_SERVER_ERROR


class PartialConversionError(PersistenceError):
    """Expenses were re-priced and stored but the income upsert failed.

    The dataset is left with expenses in ``to_currency`` and income records in
    ``from_currency``. Re-running the whole conversion only picks up the income
    records still in ``from_currency``.
    """

    kind = "partial_conversion"

    def __init__(
        self,
        message: str,
        *,
        from_currency: str,
        to_currency: str,
        expenses_converted: int,
    ):
        super().__init__(message)
        self.from_currency = from_currency
        self.to_currency = to_currency
        self.expenses_converted = expenses_converted


# HTTP handlers -------------------------------------------------------------


def http_error_handler(request: Request, exc):  # type: ignore
    if exc.status_code == status.HTTP_404_NOT_FOUND:
        detail = exc.detail if exc.detail != "Not Found" else None
        return JSONResponse(
            status_code=status.HTTP_404_NOT_FOUND,
            content={
                "error": "not_found",
                "detail": detail or f"No route for {request.method} {request.url.path}",
            },
        )
    return JSONResponse(
        status_code=exc.status_code,
        content={"error": "http_error", "detail": exc.detail},
        headers=getattr(exc, "headers", None),
    )


def validation_error_handler(request: Request, exc: RequestValidationError):  # type: ignore
    return JSONResponse(
        status_code=status.HTTP_422_UNPROCESSABLE_ENTITY,
        content={
            "error": "validation_error",
            "detail": exc.errors(),
        },
    )


def conversion_error_handler(request: Request, exc: CurrencyConversionError):  # type: ignore
    if exc.status_code >= 500:
        logger.error(
            "conversion failed: %s", exc.message, extra={"error_kind": exc.kind}
        )
    content = {"error": exc.kind, "detail": exc.message}
    if isinstance(exc, PartialConversionError):
        content["expenses_converted"] = exc.expenses_converted
    return JSONResponse(status_code=exc.status_code, content=content)


def server_error_handler(request: Request, exc: Exception):  # type: ignore
    logger.exception("unhandled exception")
    return JSONResponse(
        status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
        content={
            "error": "internal_error",
            "detail": "An unexpected error occurred.",
        },
    )
