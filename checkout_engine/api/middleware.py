"""HTTP middleware for the checkout service.

Every failure leaves the service as the same error body, so the client
has a single place to decide between an inline banner, a toast and a
navigation:

    {error_code, message, treatment, redirect_to, retry_after, details, request_id}
"""

import time
from typing import Any, Callable
from uuid import uuid4

import structlog
from fastapi import FastAPI, Request, Response, status
from fastapi.responses import JSONResponse
from starlette.middleware.base import BaseHTTPMiddleware

from checkout_engine.domain.exceptions import (
    AuthExpiredError,
    CartUpdateFailedError,
    CheckoutSessionNotFoundError,
    CheckoutValidationError,
    DomainError,
    NetworkFailureError,
    PaymentInitFailedError,
    QuoteNotUsableError,
    RemoteServiceError,
    RemoteValidationError,
    ResponseDecodeError,
    ShippingUnavailableError,
    SourceUnusableError,
    SubmissionInProgressError,
)
from checkout_engine.domain.value_objects import SessionContext
from checkout_engine.infrastructure.config import settings

logger = structlog.get_logger()

REQUEST_ID_HEADER = "X-Request-ID"


def error_response(
    request: Request,
    status_code: int,
    error_code: str,
    message: str,
    treatment: str,
    redirect_to: str | None = None,
    retry_after: int | None = None,
    details: dict[str, Any] | None = None,
    headers: dict[str, str] | None = None,
) -> JSONResponse:
    """Render the shared error body."""
    return JSONResponse(
        status_code=status_code,
        content={
            "error_code": error_code,
            "message": message,
            "treatment": treatment,
            "redirect_to": redirect_to,
            "retry_after": retry_after,
            "details": details or {},
            "request_id": getattr(request.state, "request_id", None),
        },
        headers=headers,
    )


# ============================================================================
# Request Correlation
# ============================================================================


class RequestIdMiddleware(BaseHTTPMiddleware):
    """Tags each request with a correlation id.

    The id comes from the caller's ``X-Request-ID`` header when present.
    It is bound into the structlog context for the duration of the
    request, forwarded to the commerce API and echoed on the response.
    """

    async def dispatch(self, request: Request, call_next: Callable) -> Response:
        request_id = request.headers.get(REQUEST_ID_HEADER) or str(uuid4())
        request.state.request_id = request_id
        structlog.contextvars.bind_contextvars(request_id=request_id)

        started = time.perf_counter()
        response = None
        try:
            response = await call_next(request)
        finally:
            logger.info(
                "Request completed",
                method=request.method,
                path=request.url.path,
                status_code=response.status_code if response is not None else 500,
                duration_ms=round((time.perf_counter() - started) * 1000, 2),
            )
            structlog.contextvars.unbind_contextvars("request_id")

        response.headers[REQUEST_ID_HEADER] = request_id
        return response


# ============================================================================
# Bearer Token
# ============================================================================


# Reachable without signing in
PUBLIC_PATHS = {
    "/health",
    "/ready",
    "/docs",
    "/redoc",
    "/openapi.json",
}


def _sign_in_required(request: Request) -> JSONResponse:
    return error_response(
        request,
        status.HTTP_401_UNAUTHORIZED,
        error_code=AuthExpiredError.error_code,
        message="Please sign in to continue.",
        treatment=AuthExpiredError.treatment.value,
        redirect_to=settings.auth_redirect_path,
        retry_after=settings.auth_redirect_delay_seconds,
        headers={"WWW-Authenticate": "Bearer"},
    )


class BearerTokenMiddleware(BaseHTTPMiddleware):
    """Turns the buyer's bearer token into a SessionContext.

    The token is not verified here. It is forwarded to the commerce API,
    whose 401 surfaces as ``AuthExpiredError`` and the same redirect as a
    missing token. The context is stored on ``request.state.session_context``.
    """

    async def dispatch(self, request: Request, call_next: Callable) -> Response:
        path = request.url.path.rstrip("/")
        if path in PUBLIC_PATHS or path.startswith(("/docs", "/redoc")):
            return await call_next(request)

        scheme, _, token = request.headers.get("Authorization", "").partition(" ")
        if scheme.lower() != "bearer" or not token.strip():
            logger.warning("Missing or malformed bearer token", path=path, method=request.method)
            return _sign_in_required(request)

        request.state.session_context = SessionContext(access_token=token.strip())
        return await call_next(request)


# ============================================================================
# Domain Error Translation
# ============================================================================


# Checked in order; the first matching class wins.
_STATUS_CODES: list[tuple[type[DomainError], int]] = [
    (CheckoutSessionNotFoundError, status.HTTP_404_NOT_FOUND),
    (AuthExpiredError, status.HTTP_401_UNAUTHORIZED),
    (SubmissionInProgressError, status.HTTP_409_CONFLICT),
    (CheckoutValidationError, status.HTTP_422_UNPROCESSABLE_ENTITY),
    (RemoteValidationError, status.HTTP_400_BAD_REQUEST),
    (SourceUnusableError, status.HTTP_409_CONFLICT),
    (ShippingUnavailableError, status.HTTP_409_CONFLICT),
    (CartUpdateFailedError, status.HTTP_409_CONFLICT),
    (NetworkFailureError, status.HTTP_503_SERVICE_UNAVAILABLE),
    (PaymentInitFailedError, status.HTTP_502_BAD_GATEWAY),
    (RemoteServiceError, status.HTTP_502_BAD_GATEWAY),
    (ResponseDecodeError, status.HTTP_502_BAD_GATEWAY),
]


def status_code_for(error: DomainError) -> int:
    for error_type, code in _STATUS_CODES:
        if isinstance(error, error_type):
            return code
    return status.HTTP_400_BAD_REQUEST


def redirect_for(error: DomainError) -> tuple[str | None, int | None]:
    """Get where a redirect-treated error navigates, and after how long."""
    if isinstance(error, AuthExpiredError):
        return settings.auth_redirect_path, settings.auth_redirect_delay_seconds
    if isinstance(error, QuoteNotUsableError):
        return settings.quotes_redirect_path, None
    if isinstance(error, (SourceUnusableError, CheckoutSessionNotFoundError)):
        return settings.cart_redirect_path, None
    return None, None


async def domain_error_handler(request: Request, exc: DomainError) -> JSONResponse:
    """Render a domain error with its single user-facing treatment."""
    redirect_to, retry_after = redirect_for(exc)
    status_code = status_code_for(exc)

    logger.info(
        "Checkout request failed",
        path=request.url.path,
        error_code=exc.error_code,
        treatment=exc.treatment.value,
        status_code=status_code,
    )
    return error_response(
        request,
        status_code,
        error_code=exc.error_code,
        message=exc.message,
        treatment=exc.treatment.value,
        redirect_to=redirect_to,
        retry_after=retry_after,
        details=exc.details,
    )


# ============================================================================
# Unexpected Errors
# ============================================================================


class ErrorHandlerMiddleware(BaseHTTPMiddleware):
    """Last line for anything that is not a DomainError.

    The buyer sees a retryable toast; the traceback goes to the log.
    """

    async def dispatch(self, request: Request, call_next: Callable) -> Response:
        try:
            return await call_next(request)
        except Exception as e:
            logger.exception(
                "Unhandled exception",
                path=request.url.path,
                method=request.method,
                error=str(e),
            )
            return error_response(
                request,
                status.HTTP_500_INTERNAL_SERVER_ERROR,
                error_code="INTERNAL_ERROR",
                message="Something went wrong. Please try again.",
                treatment="toast",
            )


# ============================================================================
# Setup
# ============================================================================


def setup_middleware(app: FastAPI) -> None:
    """Register the error handler and middleware stack.

    Starlette runs the last-added middleware first, so requests pass
    through request-id tagging, then token extraction, then the
    catch-all error handler.
    """
    app.add_exception_handler(DomainError, domain_error_handler)
    app.add_middleware(ErrorHandlerMiddleware)
    app.add_middleware(BearerTokenMiddleware)
    app.add_middleware(RequestIdMiddleware)
