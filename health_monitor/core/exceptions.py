"""Custom exception classes for the application."""

from __future__ import annotations

from typing import Any

from health_monitor.core.schemas.problem_details import default_title


class AppException(Exception):
    """Base application exception.

    All custom exceptions should inherit from this class.
    Follows RFC 7807 Problem Details for HTTP APIs.

    Attributes:
        status_code: HTTP status code for the error.
        detail: Human-readable error message.
        type: Error type identifier (used in RFC 7807 problem details).
        title: Short, human-readable summary of the problem type.
        instance: URI reference that identifies the specific occurrence of the problem.
        extra: Additional context-specific information about the error.

    Example:
            raise AppException(
            status_code=404,
            detail="Unknown target: api-v1-foo",
            type="target-not-found",
            extra={"available_targets": ["api-v1-products"]},
        )
    """

    def __init__(
        self,
        status_code: int,
        detail: str,
        type: str = "about:blank",
        title: str | None = None,
        instance: str | None = None,
        extra: dict[str, Any] | None = None,
    ) -> None:
        """Initialize application exception.

        Args:
            status_code: HTTP status code.
            detail: Human-readable error message.
            type: Error type identifier.
            title: Short summary of the problem type.
            instance: URI reference identifying this specific occurrence.
            extra: Additional context about the error.
        """
        self.status_code = status_code
        self.detail = detail
        self.type = type
        self.title = title or default_title(status_code)
        self.instance = instance
        self.extra = extra or {}
        super().__init__(detail)


class NotFoundException(AppException):
    """Exception raised when a resource is not found.

    Example:
            raise NotFoundException(
            detail="Unknown target: api-v1-foo",
            type="target-not-found",
            extra={"available_targets": ["api-v1-products"]},
        )
    """

    def __init__(
        self,
        detail: str,
        type: str = "not-found",
        instance: str | None = None,
        extra: dict[str, Any] | None = None,
    ) -> None:
        """Initialize not found exception.

        Args:
            detail: Human-readable error message.
            type: Error type identifier.
            instance: URI reference identifying this specific occurrence.
            extra: Additional context about the error.
        """
        super().__init__(
            status_code=404,
            detail=detail,
            type=type,
            title="Not Found",
            instance=instance,
            extra=extra,
        )


class ServiceUnavailableException(AppException):
    """Exception raised when a service is temporarily unavailable.

    Example:
            raise ServiceUnavailableException(
            detail="All AI providers unavailable",
            type="service-unavailable",
            extra={"providers": ["groq-chat", "zai-chat"]},
        )
    """

    def __init__(
        self,
        detail: str,
        type: str = "service-unavailable",
        instance: str | None = None,
        extra: dict[str, Any] | None = None,
    ) -> None:
        """Initialize service unavailable exception.

        Args:
            detail: Human-readable error message.
            type: Error type identifier.
            instance: URI reference identifying this specific occurrence.
            extra: Additional context about the error.
        """
        super().__init__(
            status_code=503,
            detail=detail,
            type=type,
            title="Service Unavailable",
            instance=instance,
            extra=extra,
        )


class CircuitBreakerOpenException(ServiceUnavailableException):
    """HTTP-facing form of a breaker rejection.

    Example:
            raise CircuitBreakerOpenException(
            detail="Circuit breaker 'geocoding' is open",
            extra={"circuit_breaker": "geocoding", "retry_after": 42},
        )
    """

    def __init__(
        self,
        detail: str,
        instance: str | None = None,
        extra: dict[str, Any] | None = None,
    ) -> None:
        super().__init__(
            detail=detail,
            type="circuit-breaker-open",
            instance=instance,
            extra=extra,
        )
