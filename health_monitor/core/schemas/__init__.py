"""Shared schema types."""

from health_monitor.core.schemas.common import HealthStatus, ResourceClass
from health_monitor.core.schemas.problem_details import (
    FieldError,
    ProblemDetails,
    ValidationProblemDetails,
)

__all__ = [
    "FieldError",
    "HealthStatus",
    "ProblemDetails",
    "ResourceClass",
    "ValidationProblemDetails",
]
