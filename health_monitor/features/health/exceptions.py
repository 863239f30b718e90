"""Probe error taxonomy.

These exceptions are raised inside a probe attempt (and therefore seen by a
guarding circuit breaker as failures), then converted by ``HealthProbe`` into
typed ``ProbeResult`` values. They never escape a probe.
"""

from __future__ import annotations


class ProbeError(Exception):
    """Base class for failed probe attempts."""

    def __init__(self, target: str, message: str) -> None:
        super().__init__(message)
        self.target = target
        self.message = message


class ProbeTimeoutError(ProbeError):
    """The attempt did not complete within its deadline."""

    def __init__(self, target: str, timeout_ms: int) -> None:
        super().__init__(target, f"Timeout after {timeout_ms}ms")
        self.timeout_ms = timeout_ms


class ProbeFailureError(ProbeError):
    """The attempt completed but indicated failure, or failed at the network level."""


class UnexpectedStatusError(ProbeFailureError):
    """A response arrived with a status code outside the accepted set."""

    def __init__(self, target: str, status_code: int) -> None:
        super().__init__(target, f"Unexpected status code: {status_code}")
        self.status_code = status_code


__all__ = [
    "ProbeError",
    "ProbeFailureError",
    "ProbeTimeoutError",
    "UnexpectedStatusError",
]
