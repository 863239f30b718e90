"""Tests for the probe target registry."""

from __future__ import annotations

from typing import TYPE_CHECKING

import pytest
from pydantic import ValidationError

from health_monitor.features.health.schemas import ProbeConfig
from health_monitor.features.health.targets import TargetRegistry

if TYPE_CHECKING:
    from pathlib import Path


class TestDefaultFleet:
    """Test the built-in target list."""

    def test_sizes(self) -> None:
        """Test the fleet has 25 unique targets, 7 of them critical."""
        registry = TargetRegistry()

        assert len(registry) == 25
        assert len(set(registry.names)) == 25
        assert len(registry.critical()) == 7

    def test_quick_check_skips_slow_targets(self) -> None:
        """Test quick mode leaves out admin, email and the webhook bots."""
        quick = {t.name for t in TargetRegistry().quick_check()}

        assert len(quick) == 21
        for name in (
            "api-v1-admin",
            "api-v1-email",
            "telegram-bot-foodshare",
            "whatsapp-bot-foodshare",
        ):
            assert name not in quick

    def test_select(self) -> None:
        """Test select() switches between quick and full lists."""
        registry = TargetRegistry()

        assert registry.select() == registry.all()
        assert registry.select(quick=True) == registry.quick_check()

    def test_lookup(self) -> None:
        """Test lookup by name."""
        registry = TargetRegistry()

        cache = registry.get("api-v1-cache")
        assert cache is not None
        assert cache.test_payload == {"operation": "exists", "key": "health_ping"}
        assert "api-v1-cache" in registry
        assert registry.get("api-v1-missing") is None
        assert not registry.is_registered("api-v1-missing")

    def test_describe_is_json_friendly(self) -> None:
        """Test describe() returns plain dicts."""
        described = TargetRegistry([ProbeConfig(name="api-v1-auth", critical=True)]).describe()

        assert described[0]["name"] == "api-v1-auth"
        assert described[0]["critical"] is True
        assert sorted(described[0]["expected_status_codes"]) == [200, 400, 401, 404]


class TestCustomTargets:
    """Test custom target lists and YAML loading."""

    def test_first_duplicate_wins(self) -> None:
        """Test later entries with a known name are ignored."""
        registry = TargetRegistry(
            [
                ProbeConfig(name="api-v1-auth", critical=True),
                ProbeConfig(name="api-v1-auth", critical=False),
            ]
        )

        assert len(registry) == 1
        assert registry.get("api-v1-auth").critical is True  # type: ignore[union-attr]

    def test_from_yaml_mapping(self, tmp_path: Path) -> None:
        """Test a document with a ``targets`` key."""
        path = tmp_path / "targets.yaml"
        path.write_text(
            "targets:\n"
            "  - name: api-v1-products\n"
            "    critical: true\n"
            "    expected_status_codes: [200, 400, 401]\n"
            "  - name: api-v1-email\n"
            "    skip_in_quick_check: true\n",
            encoding="utf-8",
        )

        registry = TargetRegistry.from_yaml(path)

        assert registry.names == ["api-v1-products", "api-v1-email"]
        products = registry.get("api-v1-products")
        assert products is not None
        assert products.expected_status_codes == frozenset({200, 400, 401})
        assert [t.name for t in registry.quick_check()] == ["api-v1-products"]

    def test_from_yaml_list(self, tmp_path: Path) -> None:
        """Test a bare top-level list."""
        path = tmp_path / "targets.yaml"
        path.write_text("- name: status\n  method: GET\n", encoding="utf-8")

        registry = TargetRegistry.from_yaml(path)

        assert registry.get("status").method == "GET"  # type: ignore[union-attr]

    def test_from_yaml_rejects_other_documents(self, tmp_path: Path) -> None:
        """Test a scalar document is rejected."""
        path = tmp_path / "targets.yaml"
        path.write_text("just a string\n", encoding="utf-8")

        with pytest.raises(ValueError, match="expected a list of targets"):
            TargetRegistry.from_yaml(path)

    def test_from_yaml_validates_entries(self, tmp_path: Path) -> None:
        """Test unknown fields in an entry fail validation."""
        path = tmp_path / "targets.yaml"
        path.write_text("- name: api-v1-auth\n  retries: 3\n", encoding="utf-8")

        with pytest.raises(ValidationError):
            TargetRegistry.from_yaml(path)

    def test_invalid_status_codes(self) -> None:
        """Test empty or out-of-range status code sets are rejected."""
        with pytest.raises(ValidationError, match="must not be empty"):
            ProbeConfig(name="api-v1-auth", expected_status_codes=frozenset())
        with pytest.raises(ValidationError, match="invalid HTTP status code"):
            ProbeConfig(name="api-v1-auth", expected_status_codes={200, 700})
