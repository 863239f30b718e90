"""RFC 7807 Problem Details schemas for error responses."""

from __future__ import annotations

from typing import Any

from pydantic import BaseModel, ConfigDict, Field

_TITLES = {
    400: "Bad Request",
    404: "Not Found",
    422: "Unprocessable Entity",
    500: "Internal Server Error",
    503: "Service Unavailable",
    504: "Gateway Timeout",
}


def default_title(status_code: int) -> str:
    return _TITLES.get(status_code, "Error")


class ProblemDetails(BaseModel):
    """RFC 7807 Problem Details for HTTP APIs.

    See: https://datatracker.ietf.org/doc/html/rfc7807

    Example:
            return JSONResponse(
            status_code=404,
            content=ProblemDetails(
                type="target-not-found",
                title="Not Found",
                status=404,
                detail="Unknown target: api-v1-foo",
                instance="/api/v1/health/functions/api-v1-foo"
            ).model_dump()
        )
    """

    type: str = Field(
        default="about:blank",
        min_length=1,
        max_length=200,
        description="URI reference identifying the problem type",
    )
    title: str = Field(
        min_length=1, max_length=200, description="Short, human-readable summary of the problem"
    )
    status: int = Field(ge=100, le=599, description="HTTP status code")
    detail: str | None = Field(
        default=None,
        max_length=2000,
        description="Human-readable explanation specific to this occurrence",
    )
    instance: str | None = Field(
        default=None,
        max_length=500,
        description="URI reference identifying the specific occurrence",
    )

    model_config = ConfigDict(
        json_schema_extra={
            "example": {
                "type": "circuit-breaker-open",
                "title": "Service Unavailable",
                "status": 503,
                "detail": "Circuit breaker 'api-v1-search' is open",
                "instance": "/api/v1/health/functions/api-v1-search",
            }
        },
        str_strip_whitespace=True,
    )


class FieldError(BaseModel):
    """One field-level validation failure."""

    field: str
    message: str
    type: str
    value: Any = None


class ValidationProblemDetails(ProblemDetails):
    """Problem details carrying field-level validation errors."""

    errors: list[FieldError] = Field(default_factory=list)


__all__ = ["FieldError", "ProblemDetails", "ValidationProblemDetails", "default_title"]
