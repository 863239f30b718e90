"""Resilience patterns for calls to unreliable dependencies.

- CircuitBreaker: fails fast while a dependency is known to be failing
- CircuitBreakerRegistry: lazily created breakers keyed by dependency name
- race_providers: first success across interchangeable guarded providers

Example:
    >>> from health_monitor.infra.resilience import CircuitBreakerRegistry, race_providers
    >>>
    >>> registry = CircuitBreakerRegistry()
    >>> reply = await race_providers(
    ...     registry,
    ...     [("groq-chat", ask_groq), ("zai-chat", ask_zai)],
    ... )
"""

from __future__ import annotations

from health_monitor.infra.resilience.circuit_breaker import (
    CircuitBreaker,
    CircuitOpenError,
    CircuitState,
    DependencyState,
)
from health_monitor.infra.resilience.race import AllProvidersUnavailableError, race_providers
from health_monitor.infra.resilience.registry import CircuitBreakerRegistry

__all__ = [
    "AllProvidersUnavailableError",
    "CircuitBreaker",
    "CircuitBreakerRegistry",
    "CircuitOpenError",
    "CircuitState",
    "DependencyState",
    "race_providers",
]
