"""
Custom error handlers for Newsdesk web application.

Maps the service exception taxonomy to HTTP status codes with user-friendly
messages and prevents technical details from leaking to clients.
"""

from fastapi import Request, status
from fastapi.responses import JSONResponse
from fastapi.exceptions import RequestValidationError
import logging

from src.web.exceptions import (
    ConflictError,
    InvalidArgumentError,
    NewsdeskError,
    NotFoundError,
    StoreUnavailableError,
)


logger = logging.getLogger(__name__)

# User-friendly error messages (don't expose technical details)
ERROR_MESSAGES = {
    # Lookup errors
    "user_not_found": "We couldn't find your profile.",
    "article_not_found": "Article not found. It may have been removed.",
    "saved_article_not_found": "Article not found in your saved list.",
    "not_found": "The requested resource was not found.",
    # Conflicts
    "user_duplicate": "That username or email is already registered.",
    # Availability
    "store_unavailable": "Articles are temporarily unavailable. Please try again shortly.",
    # Generic errors
    "server_error": "Something went wrong on our end. Please try again in a few moments.",
    "validation_error": "Please check your input and try again.",
}

STATUS_CODES = (
    (NotFoundError, status.HTTP_404_NOT_FOUND),
    (InvalidArgumentError, status.HTTP_400_BAD_REQUEST),
    (ConflictError, status.HTTP_409_CONFLICT),
    (StoreUnavailableError, status.HTTP_503_SERVICE_UNAVAILABLE),
)


def get_status_code(exception: Exception) -> int:
    """HTTP status for a service exception."""
    for exception_type, status_code in STATUS_CODES:
        if isinstance(exception, exception_type):
            return status_code
    return status.HTTP_500_INTERNAL_SERVER_ERROR


def get_friendly_message(exception: Exception) -> str:
    """
    Convert exception to user-friendly message.

    Validation errors carry messages written for the caller ("Page must be
    a positive integer") and are passed through; everything else maps to a
    fixed message.

    Args:
        exception: The exception that was raised

    Returns:
        User-friendly error message (no technical details)
    """
    exception_name = exception.__class__.__name__

    if isinstance(exception, InvalidArgumentError):
        return str(exception) or ERROR_MESSAGES["validation_error"]
    elif exception_name == "UserNotFoundError":
        return ERROR_MESSAGES["user_not_found"]
    elif exception_name == "ArticleNotFoundError":
        return ERROR_MESSAGES["article_not_found"]
    elif exception_name == "SavedArticleNotFoundError":
        return ERROR_MESSAGES["saved_article_not_found"]
    elif isinstance(exception, NotFoundError):
        return ERROR_MESSAGES["not_found"]
    elif exception_name == "DuplicateUserError":
        return ERROR_MESSAGES["user_duplicate"]
    elif isinstance(exception, StoreUnavailableError):
        return ERROR_MESSAGES["store_unavailable"]
    else:
        # Generic fallback
        return ERROR_MESSAGES["server_error"]


async def service_exception_handler(request: Request, exc: NewsdeskError) -> JSONResponse:
    """
    Handle service exceptions raised by route handlers.

    Args:
        request: The FastAPI request
        exc: The service exception

    Returns:
        JSON response with status code by exception family
    """
    status_code = get_status_code(exc)

    if status_code >= 500:
        logger.error(
            f"Service failure in {request.method} {request.url.path}: {exc}",
            exc_info=exc,
        )
    else:
        logger.info(f"{request.method} {request.url.path} -> {status_code}: {exc}")

    return JSONResponse(
        status_code=status_code,
        content={
            "detail": get_friendly_message(exc),
            "error_type": exc.__class__.__name__,
        },
    )


async def global_exception_handler(request: Request, exc: Exception) -> JSONResponse:
    """
    Catch-all for unexpected errors.

    The traceback goes to the log; the client only sees a generic message.
    """
    logger.error(
        f"Unhandled exception in {request.method} {request.url.path} "
        f"(query: {dict(request.query_params)})",
        exc_info=exc,
    )

    return JSONResponse(
        status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
        content={"detail": ERROR_MESSAGES["server_error"]},
    )


def _clean_validation_error(error: dict) -> dict:
    """JSON-safe copy of one pydantic error (ctx values may be exceptions)."""
    clean = {key: error.get(key) for key in ("type", "loc", "msg", "input")}
    if "ctx" in error:
        clean["ctx"] = {
            key: value if isinstance(value, (str, int, float, bool, type(None))) else str(value)
            for key, value in error["ctx"].items()
        }
    return clean


async def validation_exception_handler(
    request: Request, exc: RequestValidationError
) -> JSONResponse:
    """
    Handle request validation errors (malformed query params or bodies).

    Returns:
        422 response listing the cleaned validation errors
    """
    errors = [_clean_validation_error(error) for error in exc.errors()]

    logger.info(f"Validation error in {request.method} {request.url.path}: {errors}")

    return JSONResponse(
        status_code=status.HTTP_422_UNPROCESSABLE_ENTITY,
        content={"detail": errors},
    )
