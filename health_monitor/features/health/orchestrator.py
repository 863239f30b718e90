"""Bounded-concurrency fleet checks.

Targets are split into consecutive batches of ``max_concurrent``. Probes in a
batch run concurrently and the next batch starts only once every probe of the
current one has settled, so at most ``max_concurrent`` probes are ever in
flight. Results come back in input order.
"""

from __future__ import annotations

import asyncio
import logging
from itertools import batched
from typing import TYPE_CHECKING, Protocol

from health_monitor.core.schemas.common import HealthStatus
from health_monitor.features.health.schemas import ProbeConfig, ProbeResult

if TYPE_CHECKING:
    from collections.abc import Sequence

logger = logging.getLogger(__name__)


class ProbeRunner(Protocol):
    async def check_with_retry(self, config: ProbeConfig) -> ProbeResult: ...


class BatchOrchestrator:
    """Runs a probe over many targets in fixed-size windows."""

    def __init__(self, probe: ProbeRunner, max_concurrent: int = 10) -> None:
        if max_concurrent < 1:
            msg = "max_concurrent must be at least 1"
            raise ValueError(msg)
        self._probe = probe
        self.max_concurrent = max_concurrent

    async def run(self, targets: Sequence[ProbeConfig]) -> list[ProbeResult]:
        """Check every target and return one result per target, in input order."""
        results: list[ProbeResult] = []

        for index, batch in enumerate(batched(targets, self.max_concurrent)):
            logger.debug(
                f"Checking batch {index + 1} ({len(batch)} targets)",
                extra={"batch": index + 1, "batch_size": len(batch)},
            )
            # gather preserves argument order regardless of completion order
            results.extend(await asyncio.gather(*(self._check_isolated(t) for t in batch)))

        return results

    async def _check_isolated(self, config: ProbeConfig) -> ProbeResult:
        try:
            return await self._probe.check_with_retry(config)
        except Exception as e:
            logger.exception(
                f"Health check for {config.name} raised",
                extra={"target": config.name},
            )
            return ProbeResult(
                name=config.name,
                status=HealthStatus.UNHEALTHY,
                response_time_ms=0,
                error=f"Check error: {e}",
                critical=config.critical,
            )


__all__ = ["BatchOrchestrator", "ProbeRunner"]
