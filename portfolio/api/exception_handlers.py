"""Global exception handlers that map domain exceptions to HTTP responses."""

import logging

from fastapi import Request, status
from fastapi.responses import JSONResponse
from sqlalchemy.exc import SQLAlchemyError

from portfolio.errors import (
    DUPLICATE_RESOURCE,
    INFRASTRUCTURE_ERROR,
    NOT_FOUND,
    READ_ONLY_RESOURCE,
    VALIDATION_ERROR,
    CommandSubmissionError,
    DomainValidationError,
    DuplicateResourceError,
    NotFoundError,
    ReadOnlyResourceError,
)
from portfolio.schemas.error import ErrorResponse

logger = logging.getLogger(__name__)


def _error_response(status_code: int, detail: str, code: str) -> JSONResponse:
    """Return a standardized error response with detail and machine-readable code."""
    body = ErrorResponse(detail=detail, code=code)
    return JSONResponse(status_code=status_code, content=body.model_dump())


def domain_validation_error_handler(
    _request: Request, exc: DomainValidationError
) -> JSONResponse:
    return _error_response(
        status.HTTP_400_BAD_REQUEST,
        str(exc),
        VALIDATION_ERROR,
    )


def duplicate_resource_error_handler(
    _request: Request, exc: DuplicateResourceError
) -> JSONResponse:
    return _error_response(
        status.HTTP_409_CONFLICT,
        str(exc),
        DUPLICATE_RESOURCE,
    )


def read_only_resource_error_handler(
    _request: Request, exc: ReadOnlyResourceError
) -> JSONResponse:
    return _error_response(
        status.HTTP_409_CONFLICT,
        str(exc),
        READ_ONLY_RESOURCE,
    )


def not_found_error_handler(_request: Request, exc: NotFoundError) -> JSONResponse:
    return _error_response(
        status.HTTP_404_NOT_FOUND,
        str(exc),
        NOT_FOUND,
    )


def command_submission_error_handler(
    _request: Request, exc: CommandSubmissionError
) -> JSONResponse:
    return _error_response(
        status.HTTP_503_SERVICE_UNAVAILABLE,
        str(exc),
        INFRASTRUCTURE_ERROR,
    )


def database_error_handler(_request: Request, exc: SQLAlchemyError) -> JSONResponse:
    logger.error("Database error while handling request: %s", exc)
    return _error_response(
        status.HTTP_503_SERVICE_UNAVAILABLE,
        "Storage is temporarily unavailable",
        INFRASTRUCTURE_ERROR,
    )


def register_exception_handlers(app):
    """Register domain exception handlers on the FastAPI app."""
    app.add_exception_handler(DomainValidationError, domain_validation_error_handler)
    app.add_exception_handler(DuplicateResourceError, duplicate_resource_error_handler)
    app.add_exception_handler(ReadOnlyResourceError, read_only_resource_error_handler)
    app.add_exception_handler(NotFoundError, not_found_error_handler)
    app.add_exception_handler(CommandSubmissionError, command_submission_error_handler)
    app.add_exception_handler(SQLAlchemyError, database_error_handler)
