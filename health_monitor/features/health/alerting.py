"""Alert rate limiting and alert message formatting.

``AlertGate`` keeps one ``AlertState`` per target. A failing cycle increments
the target's consecutive failure count; the target is due for an alert once
that count reaches the threshold and either it never alerted or the cooldown
has elapsed since its last alert. An operational cycle resets the count.

Only alert emission is throttled. Summaries always report the true status.

State is held in memory for the life of the process. ``export()`` and
``restore()`` let a caller carry cooldowns across restarts if it wants to.
"""

from __future__ import annotations

import logging
import threading
from collections.abc import Callable, Mapping, Sequence
from dataclasses import dataclass
from datetime import UTC, datetime, timedelta
from typing import TYPE_CHECKING, Any, Protocol, runtime_checkable

from health_monitor.core.schemas.common import HealthStatus

if TYPE_CHECKING:
    from health_monitor.features.health.schemas import HealthSummary, ProbeResult

logger = logging.getLogger(__name__)

MAX_LISTED = 5


def _utc_now() -> datetime:
    return datetime.now(UTC)


@dataclass
class AlertState:
    """Per-target alert bookkeeping."""

    last_alert_time: datetime | None = None
    consecutive_failures: int = 0


class AlertGate:
    """Per-target cooldown state machine preventing alert storms.

    Example:
        >>> gate = AlertGate(cooldown=900.0)
        >>> gate.evaluate("api-v1-auth", HealthStatus.UNHEALTHY)
        True
        >>> gate.evaluate("api-v1-auth", HealthStatus.UNHEALTHY)  # within cooldown
        False
    """

    def __init__(
        self,
        cooldown: float = 900.0,
        threshold: int = 1,
        *,
        clock: Callable[[], datetime] = _utc_now,
    ) -> None:
        """Initialize alert gate.

        Args:
            cooldown: Minimum seconds between two alerts for the same target.
            threshold: Consecutive failed cycles before a target may alert.
            clock: Returns the current aware datetime.
        """
        if cooldown < 0:
            msg = "cooldown must not be negative"
            raise ValueError(msg)
        if threshold < 1:
            msg = "threshold must be at least 1"
            raise ValueError(msg)
        self.cooldown = timedelta(seconds=cooldown)
        self.threshold = threshold
        self._clock = clock
        self._states: dict[str, AlertState] = {}
        self._lock = threading.Lock()

    def evaluate(self, name: str, status: HealthStatus) -> bool:
        """Record one cycle for ``name`` and return whether an alert is due.

        When an alert is due the target's ``last_alert_time`` is stamped, so
        the caller is expected to emit it.
        """
        with self._lock:
            state = self._states.setdefault(name, AlertState())

            if not status.is_failure:
                state.consecutive_failures = 0
                return False

            state.consecutive_failures += 1
            if state.consecutive_failures < self.threshold:
                return False

            now = self._clock()
            if state.last_alert_time is not None and now - state.last_alert_time < self.cooldown:
                logger.debug(
                    f"Alert for {name} suppressed by cooldown",
                    extra={
                        "target": name,
                        "consecutive_failures": state.consecutive_failures,
                        "last_alert_time": state.last_alert_time.isoformat(),
                    },
                )
                return False

            state.last_alert_time = now
            return True

    def observe(self, name: str, status: HealthStatus) -> None:
        """Track the failure streak for a target that may never alert itself."""
        with self._lock:
            state = self._states.setdefault(name, AlertState())
            if status.is_failure:
                state.consecutive_failures += 1
            else:
                state.consecutive_failures = 0

    def get(self, name: str) -> AlertState | None:
        with self._lock:
            return self._states.get(name)

    def in_cooldown(self, name: str) -> bool:
        """Whether ``name`` reached the failure threshold but its cooldown is still running."""
        with self._lock:
            state = self._states.get(name)
            if state is None or state.last_alert_time is None:
                return False
            return (
                state.consecutive_failures >= self.threshold
                and self._clock() - state.last_alert_time < self.cooldown
            )

    def has_any_failures(self) -> bool:
        """Whether any target is failing or has alerted since the last ``clear()``."""
        with self._lock:
            return any(
                s.consecutive_failures > 0 or s.last_alert_time is not None
                for s in self._states.values()
            )

    def has_alerted(self) -> bool:
        with self._lock:
            return any(s.last_alert_time is not None for s in self._states.values())

    def clear(self, name: str | None = None) -> None:
        with self._lock:
            if name is None:
                self._states.clear()
            else:
                self._states.pop(name, None)

    def export(self) -> dict[str, dict[str, Any]]:
        """Serialize every state to JSON-friendly values."""
        with self._lock:
            return {
                name: {
                    "last_alert_time": (
                        s.last_alert_time.isoformat() if s.last_alert_time else None
                    ),
                    "consecutive_failures": s.consecutive_failures,
                }
                for name, s in self._states.items()
            }

    def restore(self, data: Mapping[str, Mapping[str, Any]]) -> None:
        """Load states produced by ``export()``, replacing existing entries."""
        with self._lock:
            for name, raw in data.items():
                last = raw.get("last_alert_time")
                self._states[name] = AlertState(
                    last_alert_time=datetime.fromisoformat(last) if last else None,
                    consecutive_failures=int(raw.get("consecutive_failures", 0)),
                )


# ──────────────────────────────────────────────────────────────
# Notifiers
# ──────────────────────────────────────────────────────────────


@runtime_checkable
class AlertNotifier(Protocol):
    """External alert channel. Returns whether the alert was delivered."""

    async def send(self, message: str, *, silent: bool = False) -> bool: ...


class LoggingAlertNotifier:
    """Notifier that writes alerts to the log, for deployments without a channel."""

    def __init__(self, logger_name: str = "health_monitor.alerts") -> None:
        self._logger = logging.getLogger(logger_name)

    async def send(self, message: str, *, silent: bool = False) -> bool:
        level = logging.INFO if silent else logging.WARNING
        self._logger.log(level, message, extra={"alert": True, "silent": silent})
        return True


# ──────────────────────────────────────────────────────────────
# Message formatting
# ──────────────────────────────────────────────────────────────


def alert_severity(failing: Sequence[ProbeResult]) -> str:
    """Severity label from the mix of critical and non-critical failures."""
    critical = sum(1 for r in failing if r.critical)
    non_critical = len(failing) - critical
    if critical >= 3:
        return "CRITICAL OUTAGE"
    if critical > 0:
        return "Critical Alert"
    if non_critical >= 5:
        return "Multiple Failures"
    return "Warning"


def _list_lines(results: Sequence[ProbeResult], *, with_errors: bool) -> list[str]:
    if not results:
        return ["  None"]
    lines = []
    for r in results[:MAX_LISTED]:
        line = f"  [{r.status.value}] {r.name}"
        if with_errors and r.error:
            line += f" - {r.error[:50]}"
        lines.append(line)
    if len(results) > MAX_LISTED:
        lines.append(f"  ...and {len(results) - MAX_LISTED} more")
    return lines


def format_alert_message(
    summary: HealthSummary,
    failing: Sequence[ProbeResult],
    *,
    is_recovery: bool = False,
) -> str:
    """Render a plain-text alert for a fleet summary.

    Args:
        summary: Summary of the check cycle.
        failing: Unhealthy or timed-out results to list.
        is_recovery: Render the "all operational again" notice instead.
    """
    timestamp = summary.timestamp.strftime("%Y-%m-%d %H:%M:%S")
    counts = summary.counts

    if is_recovery:
        return "\n".join(
            [
                "All Systems Operational",
                "",
                f"Status: {summary.status.value.upper()}",
                f"Time: {timestamp}",
                "",
                f"All {counts.total} targets are healthy.",
                "Previous issues have been resolved.",
            ]
        )

    critical = [r for r in failing if r.critical]
    others = [r for r in failing if not r.critical]
    lines = [
        f"{alert_severity(failing)}: Targets Unhealthy",
        "",
        "Summary:",
        f"  Healthy: {counts.healthy}/{counts.total}",
        f"  Unhealthy: {counts.unhealthy}",
        f"  Timeouts: {counts.timeout}",
        f"  Degraded: {counts.degraded}",
        "",
        "Critical Targets Down:",
        *_list_lines(critical, with_errors=True),
        "",
        "Other Failures:",
        *_list_lines(others, with_errors=False),
    ]

    recovered = sum(1 for r in summary.results if r.recovered_from_cold_start)
    if recovered:
        lines += ["", f"{recovered} target(s) recovered after cold start retry"]

    lines += ["", f"Time: {timestamp}"]
    return "\n".join(lines)


__all__ = [
    "AlertGate",
    "AlertNotifier",
    "AlertState",
    "LoggingAlertNotifier",
    "alert_severity",
    "format_alert_message",
]
