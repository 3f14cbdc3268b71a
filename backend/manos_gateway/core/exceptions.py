"""
Standardized exception handling for the gateway.

Every failure leaves the service as the same JSON envelope the dashboard
expects:

    {"success": false, "error": "...", "code": "...", "details": ..., "request_id": "..."}

- Validation errors (400) are detected before any network call
- Upstream HTTP errors keep the upstream status code and message
- Upstream network errors become 503 with a diagnostic message
"""
import logging
from typing import Any, Optional
from uuid import uuid4

from fastapi import FastAPI, Request, status
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse
from pydantic import BaseModel

logger = logging.getLogger(__name__)


class ErrorResponse(BaseModel):
    """Failure envelope returned by every endpoint."""
    success: bool = False
    error: str
    code: str
    details: Optional[Any] = None
    request_id: Optional[str] = None


# =============================================================================
# Base Exception Classes
# =============================================================================

class AppException(Exception):
    """Base exception for all application errors."""

    status_code: int = status.HTTP_500_INTERNAL_SERVER_ERROR
    error_code: str = "INTERNAL_ERROR"
    message: str = "Internal server error"

    def __init__(
        self,
        message: Optional[str] = None,
        details: Optional[Any] = None,
        error_code: Optional[str] = None,
    ):
        self.message = message or self.message
        self.details = details
        if error_code:
            self.error_code = error_code
        super().__init__(self.message)

    def to_response(self, request_id: Optional[str] = None) -> ErrorResponse:
        """Convert exception to the failure envelope."""
        return ErrorResponse(
            error=self.message,
            code=self.error_code,
            details=self.details,
            request_id=request_id,
        )


# =============================================================================
# Client Errors (4xx)
# =============================================================================

class ValidationException(AppException):
    """Invalid input data."""
    status_code = status.HTTP_400_BAD_REQUEST
    error_code = "VALIDATION_ERROR"
    message = "Invalid input data"


class MissingFieldException(ValidationException):
    """One or more required fields are absent."""
    error_code = "MISSING_FIELD"

    def __init__(self, *fields: str, message: Optional[str] = None):
        names = ", ".join(fields)
        super().__init__(
            message=message or f"Missing required field(s): {names}",
            details={"fields": list(fields)},
        )


class InvalidCoordinateException(ValidationException):
    """A coordinate embedded in a request failed validation."""
    error_code = "INVALID_COORDINATES"

    def __init__(self, entity: str, reason: str, lat: Any = None, lng: Any = None):
        super().__init__(
            message=f"Invalid coordinates for {entity}: {reason}",
            details={
                "entity": entity,
                "error": reason,
                "coordinates": {"lat": lat, "lng": lng},
            },
        )


class AuthenticationException(AppException):
    """Authentication failed."""
    status_code = status.HTTP_401_UNAUTHORIZED
    error_code = "AUTHENTICATION_FAILED"
    message = "Authorization header required"


class NotFoundException(AppException):
    """Resource not found."""
    status_code = status.HTTP_404_NOT_FOUND
    error_code = "NOT_FOUND"
    message = "Resource not found"


class RouteNotFoundException(NotFoundException):
    """Saved route not found upstream."""
    error_code = "ROUTE_NOT_FOUND"
    message = "Route not found"

    def __init__(self, route_uuid: str):
        super().__init__(
            message="Route not found",
            details={"route_uuid": route_uuid},
        )


class RateLimitException(AppException):
    """Rate limit exceeded."""
    status_code = status.HTTP_429_TOO_MANY_REQUESTS
    error_code = "RATE_LIMIT_EXCEEDED"
    message = "Rate limit exceeded. Please retry later."


# =============================================================================
# Upstream Service Exceptions
# =============================================================================

class UpstreamException(AppException):
    """Base class for failures talking to an upstream service."""
    status_code = status.HTTP_502_BAD_GATEWAY
    error_code = "UPSTREAM_ERROR"
    message = "Upstream service error"

    def __init__(
        self,
        service: str,
        message: Optional[str] = None,
        details: Optional[Any] = None,
    ):
        self.service = service
        super().__init__(message=message, details=details)


class UpstreamHTTPException(UpstreamException):
    """Upstream answered with a non-2xx status; the status is passed through."""
    error_code = "UPSTREAM_HTTP_ERROR"

    def __init__(
        self,
        service: str,
        status_code: int,
        message: Optional[str] = None,
        details: Optional[Any] = None,
    ):
        self.status_code = status_code
        super().__init__(
            service,
            message=message or f"{service} responded with status {status_code}",
            details=details,
        )


class UpstreamUnavailableException(UpstreamException):
    """Connection refused or dropped: the upstream is down."""
    status_code = status.HTTP_503_SERVICE_UNAVAILABLE
    error_code = "UPSTREAM_UNAVAILABLE"


class UpstreamMisconfiguredException(UpstreamException):
    """Upstream host could not be resolved: the base URL is wrong."""
    status_code = status.HTTP_503_SERVICE_UNAVAILABLE
    error_code = "UPSTREAM_NOT_FOUND"


class UpstreamTimeoutException(UpstreamException):
    """Upstream did not answer within the configured timeout."""
    status_code = status.HTTP_504_GATEWAY_TIMEOUT
    error_code = "UPSTREAM_TIMEOUT"


# =============================================================================
# Configuration Exception
# =============================================================================

class ConfigurationException(AppException):
    """A setting required by this endpoint is missing."""
    status_code = status.HTTP_500_INTERNAL_SERVER_ERROR
    error_code = "CONFIGURATION_ERROR"
    message = "Application configuration error"


# =============================================================================
# Exception Handler Registration
# =============================================================================

def get_request_id(request: Request) -> str:
    """Extract or generate request ID."""
    return getattr(request.state, "request_id", None) or str(uuid4())


async def app_exception_handler(request: Request, exc: AppException) -> JSONResponse:
    """Handle all application exceptions with the failure envelope."""
    request_id = get_request_id(request)
    response = exc.to_response(request_id=request_id)

    log = logger.warning if exc.status_code < 500 else logger.error
    log(
        f"{exc.error_code} on {request.method} {request.url.path}: {exc.message}",
        extra={"status_code": exc.status_code, "error_code": exc.error_code},
    )

    return JSONResponse(
        status_code=exc.status_code,
        content=response.model_dump(exclude_none=True),
        headers={"X-Request-ID": request_id},
    )


async def request_validation_exception_handler(
    request: Request, exc: RequestValidationError
) -> JSONResponse:
    """Map FastAPI body/query validation failures onto a 400 envelope."""
    request_id = get_request_id(request)
    errors = exc.errors()
    fields = [".".join(str(part) for part in err.get("loc", ()) if part != "body") for err in errors]
    message = "Invalid request: " + ", ".join(f for f in fields if f) if fields else "Invalid request"

    error = ErrorResponse(
        error=message,
        code=ValidationException.error_code,
        details=[{"field": f, "message": err.get("msg")} for f, err in zip(fields, errors)],
        request_id=request_id,
    )
    return JSONResponse(
        status_code=status.HTTP_400_BAD_REQUEST,
        content=error.model_dump(exclude_none=True),
        headers={"X-Request-ID": request_id},
    )


async def generic_exception_handler(request: Request, exc: Exception) -> JSONResponse:
    """Handle unexpected exceptions."""
    request_id = get_request_id(request)

    logger.exception(f"Unhandled exception: {exc}", extra={"request_id": request_id})

    error = ErrorResponse(
        error="Internal server error",
        code="INTERNAL_ERROR",
        details={"message": str(exc)},
        request_id=request_id,
    )

    return JSONResponse(
        status_code=500,
        content=error.model_dump(exclude_none=True),
        headers={"X-Request-ID": request_id},
    )


def register_exception_handlers(app: FastAPI) -> None:
    """Register all exception handlers with the FastAPI app."""
    app.add_exception_handler(AppException, app_exception_handler)
    app.add_exception_handler(RequestValidationError, request_validation_exception_handler)
    app.add_exception_handler(Exception, generic_exception_handler)
