"""Owner of the process-wide mutable resilience state."""

from __future__ import annotations

from dataclasses import dataclass, field

from health_monitor.core.settings.alerting import AlertSettings
from health_monitor.core.settings.resilience import CircuitBreakerSettings
from health_monitor.features.health.alerting import AlertGate
from health_monitor.infra.resilience.registry import CircuitBreakerRegistry


@dataclass
class ResilienceContext:
    """Breaker registry and alert gate passed explicitly through the call graph.

    One context lives as long as the service that owns it; tests build a fresh
    one so breaker and alert state never leak between them.
    """

    breakers: CircuitBreakerRegistry = field(default_factory=CircuitBreakerRegistry)
    alert_gate: AlertGate = field(default_factory=AlertGate)

    @classmethod
    def from_settings(
        cls,
        circuit_settings: CircuitBreakerSettings | None = None,
        alert_settings: AlertSettings | None = None,
    ) -> ResilienceContext:
        alerts = alert_settings or AlertSettings()
        return cls(
            breakers=CircuitBreakerRegistry(circuit_settings),
            alert_gate=AlertGate(cooldown=alerts.cooldown, threshold=alerts.threshold),
        )

    async def reset(self) -> None:
        """Close every breaker and forget all alert state."""
        await self.breakers.reset()
        self.alert_gate.clear()


__all__ = ["ResilienceContext"]
