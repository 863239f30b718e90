"""Global exception handlers for FastAPI application."""

from __future__ import annotations

import logging
import math
from typing import Any

from fastapi import FastAPI, Request, status
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse
from pydantic import ValidationError as PydanticValidationError

from health_monitor.core.exceptions import AppException, CircuitBreakerOpenException
from health_monitor.core.schemas.problem_details import (
    FieldError,
    ProblemDetails,
    ValidationProblemDetails,
    default_title,
)
from health_monitor.infra.metrics import tracking
from health_monitor.infra.resilience import AllProvidersUnavailableError, CircuitOpenError

logger = logging.getLogger(__name__)


def _get_request_id(request: Request) -> str | None:
    return getattr(request.state, "request_id", None)


def _create_problem_detail(
    status_code: int,
    detail: str,
    type_: str = "about:blank",
    title: str | None = None,
    instance: str | None = None,
    extra: dict[str, Any] | None = None,
) -> dict[str, Any]:
    """Create RFC 7807 Problem Details response.

    Args:
        status_code: HTTP status code.
        detail: Human-readable error description.
        type_: Error type identifier.
        title: Short human-readable summary.
        instance: URI identifying this occurrence.
        extra: Additional context information.

    Returns:
        Dictionary representing the problem detail.
    """
    problem = ProblemDetails(
        type=type_,
        title=title or default_title(status_code),
        status=status_code,
        detail=detail,
        instance=instance,
    )

    response_data = problem.model_dump(exclude_none=True)
    if extra:
        response_data.update(extra)

    return response_data


def _field_errors(errors: list[dict[str, Any]]) -> list[FieldError]:
    return [
        FieldError(
            field=".".join(str(loc) for loc in error["loc"]),
            message=error["msg"],
            type=error["type"],
            value=error.get("input"),
        )
        for error in errors
    ]


async def app_exception_handler(request: Request, exc: AppException) -> JSONResponse:
    """Handle custom application exceptions.

    Converts ``AppException`` instances into RFC 7807 Problem Details
    responses. Breaker rejections carry a ``Retry-After`` header.
    """
    request_id = _get_request_id(request)

    tracking.track_error(
        error_type=exc.type,
        endpoint=request.url.path,
        status_code=exc.status_code,
        extra={"detail": exc.detail},
    )

    logger.warning(
        "Application exception occurred",
        extra={
            "request_id": request_id,
            "path": request.url.path,
            "method": request.method,
            "exception_type": exc.type,
            "status_code": exc.status_code,
            "detail": exc.detail,
        },
    )

    problem_data = _create_problem_detail(
        status_code=exc.status_code,
        detail=exc.detail,
        type_=exc.type,
        title=exc.title,
        instance=exc.instance or str(request.url),
        extra=exc.extra,
    )

    if request_id:
        problem_data["request_id"] = request_id

    headers = {}
    if isinstance(exc, CircuitBreakerOpenException) and exc.extra.get("retry_after") is not None:
        headers["Retry-After"] = str(exc.extra["retry_after"])

    return JSONResponse(
        status_code=exc.status_code,
        content=problem_data,
        headers=headers if headers else None,
    )


async def circuit_open_exception_handler(request: Request, exc: CircuitOpenError) -> JSONResponse:
    """Translate a breaker rejection that escaped a route into a 503 problem."""
    extra: dict[str, Any] = {"circuit_breaker": exc.name}
    if exc.retry_after is not None:
        extra["retry_after"] = max(1, math.ceil(exc.retry_after))
    return await app_exception_handler(
        request,
        CircuitBreakerOpenException(detail=str(exc), extra=extra),
    )


async def providers_unavailable_exception_handler(
    request: Request, exc: AllProvidersUnavailableError
) -> JSONResponse:
    """Translate a failed provider race into a 503 problem listing each provider error."""
    return await app_exception_handler(
        request,
        CircuitBreakerOpenException(
            detail=str(exc),
            extra={"providers": {name: str(e) for name, e in exc.errors.items()}},
        ),
    )


async def validation_exception_handler(
    request: Request, exc: RequestValidationError
) -> JSONResponse:
    """Handle FastAPI request validation errors with field-level detail."""
    request_id = _get_request_id(request)
    validation_errors = _field_errors(list(exc.errors()))

    tracking.track_error(
        error_type="validation-error",
        endpoint=request.url.path,
        status_code=status.HTTP_422_UNPROCESSABLE_ENTITY,
    )

    logger.warning(
        "Request validation failed",
        extra={
            "request_id": request_id,
            "path": request.url.path,
            "method": request.method,
            "error_count": len(validation_errors),
            "errors": [e.model_dump() for e in validation_errors],
        },
    )

    problem = ValidationProblemDetails(
        type="validation-error",
        title="Validation Error",
        status=status.HTTP_422_UNPROCESSABLE_ENTITY,
        detail=f"Request validation failed for {len(validation_errors)} field(s)",
        instance=str(request.url),
        errors=validation_errors,
    )

    response_data = problem.model_dump(mode="json", exclude_none=True)
    if request_id:
        response_data["request_id"] = request_id

    return JSONResponse(
        status_code=status.HTTP_422_UNPROCESSABLE_ENTITY,
        content=response_data,
    )


async def pydantic_validation_exception_handler(
    request: Request, exc: PydanticValidationError
) -> JSONResponse:
    """Handle Pydantic validation errors raised outside request parsing."""
    request_id = _get_request_id(request)
    validation_errors = _field_errors(list(exc.errors()))

    logger.warning(
        "Pydantic validation failed",
        extra={
            "request_id": request_id,
            "path": request.url.path,
            "method": request.method,
            "error_count": len(validation_errors),
        },
    )

    problem = ValidationProblemDetails(
        type="validation-error",
        title="Validation Error",
        status=status.HTTP_422_UNPROCESSABLE_ENTITY,
        detail=f"Data validation failed for {len(validation_errors)} field(s)",
        instance=str(request.url),
        errors=validation_errors,
    )

    response_data = problem.model_dump(mode="json", exclude_none=True)
    if request_id:
        response_data["request_id"] = request_id

    return JSONResponse(
        status_code=status.HTTP_422_UNPROCESSABLE_ENTITY,
        content=response_data,
    )


async def generic_exception_handler(request: Request, exc: Exception) -> JSONResponse:
    """Handle unexpected exceptions.

    Logs the full traceback and returns a generic 500 problem without
    exposing internal details.
    """
    request_id = _get_request_id(request)

    tracking.track_unhandled_exception(
        exception_type=type(exc).__name__,
        endpoint=request.url.path,
    )

    logger.error(
        "Unexpected exception occurred",
        extra={
            "request_id": request_id,
            "path": request.url.path,
            "method": request.method,
            "exception_type": type(exc).__name__,
            "exception_message": str(exc),
        },
        exc_info=True,
    )

    problem_data = _create_problem_detail(
        status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
        detail="An unexpected error occurred while processing your request",
        type_="internal-error",
        title="Internal Server Error",
        instance=str(request.url),
    )

    if request_id:
        problem_data["request_id"] = request_id

    return JSONResponse(
        status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
        content=problem_data,
    )


def configure_exception_handlers(app: FastAPI) -> None:
    """Register every handler that converts exceptions into problem responses.

    Example:
            app = FastAPI()
        configure_exception_handlers(app)
    """
    app.add_exception_handler(AppException, app_exception_handler)
    app.add_exception_handler(CircuitOpenError, circuit_open_exception_handler)
    app.add_exception_handler(AllProvidersUnavailableError, providers_unavailable_exception_handler)
    app.add_exception_handler(RequestValidationError, validation_exception_handler)
    app.add_exception_handler(PydanticValidationError, pydantic_validation_exception_handler)
    app.add_exception_handler(Exception, generic_exception_handler)

    logger.info("Exception handlers configured")
