"""Registry of probe targets.

The built-in fleet lists every function the monitor probes, grouped by role.
A YAML file (``HEALTH_TARGETS_FILE``) can replace it:

    targets:
      - name: api-v1-products
        critical: true
        expected_status_codes: [200, 400, 401]
      - name: api-v1-email
        skip_in_quick_check: true

A bare top-level list is accepted as well. When a name appears more than once
the first occurrence wins.
"""

from __future__ import annotations

import logging
from collections.abc import Iterable, Iterator, Mapping
from pathlib import Path
from typing import Any

import yaml

from health_monitor.features.health.schemas import ProbeConfig

logger = logging.getLogger(__name__)

_AUTH_STATUSES = frozenset({200, 401})

# ──────────────────────────────────────────────────────────────
# Built-in fleet
# ──────────────────────────────────────────────────────────────

CRITICAL_TARGETS: tuple[ProbeConfig, ...] = (
    ProbeConfig(name="api-v1-products", critical=True, expected_status_codes={200, 400, 401}),
    ProbeConfig(name="api-v1-feature-flags", critical=True),
    ProbeConfig(name="api-v1-geocoding", critical=True),
    ProbeConfig(name="api-v1-auth", critical=True),
    ProbeConfig(name="api-v1-attestation", critical=True, expected_status_codes={200, 400}),
    ProbeConfig(name="api-v1-notifications", critical=True),
)

API_TARGETS: tuple[ProbeConfig, ...] = (
    ProbeConfig(name="api-v1-search"),
    ProbeConfig(name="api-v1-metrics"),
    ProbeConfig(name="api-v1-chat", requires_auth=True, expected_status_codes=_AUTH_STATUSES),
    ProbeConfig(name="api-v1-engagement", requires_auth=True, expected_status_codes=_AUTH_STATUSES),
    ProbeConfig(name="api-v1-profile", requires_auth=True, expected_status_codes=_AUTH_STATUSES),
    ProbeConfig(name="api-v1-reviews", requires_auth=True, expected_status_codes=_AUTH_STATUSES),
    ProbeConfig(
        name="api-v1-admin",
        expected_status_codes={200, 401, 403},
        skip_in_quick_check=True,
    ),
    ProbeConfig(name="api-v1-validation"),
    ProbeConfig(name="api-v1-ai", requires_auth=True, expected_status_codes=_AUTH_STATUSES),
)

DATA_TARGETS: tuple[ProbeConfig, ...] = (
    ProbeConfig(name="api-v1-sync", requires_auth=True, expected_status_codes=_AUTH_STATUSES),
    ProbeConfig(name="api-v1-analytics"),
)

UTILITY_TARGETS: tuple[ProbeConfig, ...] = (
    ProbeConfig(
        name="api-v1-cache",
        test_payload={"operation": "exists", "key": "health_ping"},
    ),
    ProbeConfig(name="check-upstash-services"),
    ProbeConfig(name="api-v1-localization"),
    ProbeConfig(name="api-v1-images", critical=True, requires_auth=True),
    ProbeConfig(name="api-v1-alerts"),
    ProbeConfig(name="api-v1-email", skip_in_quick_check=True),
    # Webhook bots, not directly callable
    ProbeConfig(name="telegram-bot-foodshare", skip_in_quick_check=True),
    ProbeConfig(name="whatsapp-bot-foodshare", skip_in_quick_check=True),
)

DEFAULT_TARGETS: tuple[ProbeConfig, ...] = (
    *CRITICAL_TARGETS,
    *API_TARGETS,
    *DATA_TARGETS,
    *UTILITY_TARGETS,
)


class TargetRegistry:
    """Ordered, name-unique collection of probe targets."""

    def __init__(self, targets: Iterable[ProbeConfig] = DEFAULT_TARGETS) -> None:
        self._targets: dict[str, ProbeConfig] = {}
        for target in targets:
            if target.name in self._targets:
                logger.debug(
                    f"Ignoring duplicate target '{target.name}'",
                    extra={"target": target.name},
                )
                continue
            self._targets[target.name] = target

    @classmethod
    def from_yaml(cls, path: str | Path) -> TargetRegistry:
        """Load targets from a YAML file.

        Raises:
            FileNotFoundError: If the file does not exist.
            ValueError: If the document is not a list of targets.
            pydantic.ValidationError: If a target entry is invalid.
        """
        document = yaml.safe_load(Path(path).read_text(encoding="utf-8"))
        if isinstance(document, Mapping):
            document = document.get("targets")
        if not isinstance(document, list):
            msg = f"{path}: expected a list of targets or a 'targets' key"
            raise ValueError(msg)

        registry = cls(ProbeConfig.model_validate(entry) for entry in document)
        logger.info(
            f"Loaded {len(registry)} probe targets from {path}",
            extra={"targets_file": str(path), "target_count": len(registry)},
        )
        return registry

    def __len__(self) -> int:
        return len(self._targets)

    def __iter__(self) -> Iterator[ProbeConfig]:
        return iter(self._targets.values())

    def __contains__(self, name: object) -> bool:
        return name in self._targets

    def get(self, name: str) -> ProbeConfig | None:
        return self._targets.get(name)

    def is_registered(self, name: str) -> bool:
        return name in self._targets

    @property
    def names(self) -> list[str]:
        return list(self._targets)

    def all(self) -> list[ProbeConfig]:
        return list(self._targets.values())

    def critical(self) -> list[ProbeConfig]:
        return [t for t in self._targets.values() if t.critical]

    def quick_check(self) -> list[ProbeConfig]:
        """Targets probed in quick mode (everything not marked ``skip_in_quick_check``)."""
        return [t for t in self._targets.values() if not t.skip_in_quick_check]

    def select(self, *, quick: bool = False) -> list[ProbeConfig]:
        return self.quick_check() if quick else self.all()

    def describe(self) -> list[dict[str, Any]]:
        return [t.model_dump(mode="json") for t in self._targets.values()]


__all__ = [
    "API_TARGETS",
    "CRITICAL_TARGETS",
    "DATA_TARGETS",
    "DEFAULT_TARGETS",
    "UTILITY_TARGETS",
    "TargetRegistry",
]
