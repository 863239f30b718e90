"""Common schemas and validators."""

from __future__ import annotations

from enum import Enum


class HealthStatus(str, Enum):
    """Health check status values.

    TIMEOUT is kept distinct from UNHEALTHY so operators can tell a slow
    dependency from one that is down.
    """

    HEALTHY = "healthy"
    DEGRADED = "degraded"
    UNHEALTHY = "unhealthy"
    TIMEOUT = "timeout"
    UNKNOWN = "unknown"

    @property
    def is_failure(self) -> bool:
        """Whether this status counts as a failed check."""
        return self in (HealthStatus.UNHEALTHY, HealthStatus.TIMEOUT)

    @property
    def is_operational(self) -> bool:
        """Whether the dependency answered correctly (possibly slowly)."""
        return self in (HealthStatus.HEALTHY, HealthStatus.DEGRADED)


class ResourceClass(str, Enum):
    """Kinds of dependency that carry their own degraded-latency threshold."""

    DATABASE = "database"
    STORAGE = "storage"
    FUNCTION = "function"
