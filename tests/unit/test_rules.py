"""Rules loading and validation."""

from __future__ import annotations

from pathlib import Path

import pytest

from bulletin.components.delivery import DeliveryConfig
from bulletin.components.slots import build_limits
from bulletin.rules.loader import _strip_fences, load_rules
from bulletin.rules.models import Rules

PROJECT_ROOT = Path(__file__).parent.parent.parent


class TestLoadRules:
    def test_load_project_rules(self) -> None:
        rules = load_rules(PROJECT_ROOT / "rules.yaml")

        assert rules.newsletter.category_limits.highlight == 3
        assert rules.delivery.batch_size == 300
        assert rules.delivery.second_batch_delay_hours == 24
        assert rules.provider.name == "dev"

    def test_missing_file_raises(self) -> None:
        with pytest.raises(FileNotFoundError):
            load_rules(Path("/nonexistent/rules.yaml"))

    def test_invalid_yaml_raises(self, tmp_path: Path) -> None:
        path = tmp_path / "rules.yaml"
        path.write_text("delivery: [batch_size: 3")

        with pytest.raises(ValueError, match="Invalid YAML"):
            load_rules(path)

    def test_schema_violation_raises(self, tmp_path: Path) -> None:
        path = tmp_path / "rules.yaml"
        path.write_text("delivery:\n  batch_size: 0\n")

        with pytest.raises(ValueError, match="validation failed"):
            load_rules(path)

    def test_unknown_provider_rejected(self, tmp_path: Path) -> None:
        path = tmp_path / "rules.yaml"
        path.write_text("provider:\n  name: mailchimp\n")

        with pytest.raises(ValueError):
            load_rules(path)

    def test_empty_file_gives_defaults(self, tmp_path: Path) -> None:
        path = tmp_path / "rules.yaml"
        path.write_text("")

        assert load_rules(path) == Rules()

    def test_fenced_yaml(self, tmp_path: Path) -> None:
        path = tmp_path / "rules.md"
        path.write_text(
            "# Rules\n\nSome notes.\n\n```yaml\ndelivery:\n  batch_size: 50\n```\n"
        )

        rules = load_rules(path)

        assert rules.delivery.batch_size == 50


def test_strip_fences_passthrough() -> None:
    assert _strip_fences("a: 1\n") == "a: 1\n"


def test_rules_feed_component_config() -> None:
    rules = Rules.model_validate(
        {
            "newsletter": {
                "category_limits": {"highlight": 1, "normal": 2, "grid": 3},
                "subject_template": "Issue {number}",
            },
            "delivery": {"batch_size": 10, "second_batch_delay_hours": 2},
        }
    )

    limits = build_limits(rules)
    config = DeliveryConfig.from_rules(rules)

    assert (limits.highlight, limits.normal, limits.grid) == (1, 2, 3)
    assert config.batch_size == 10
    assert config.second_batch_delay_hours == 2
    assert config.subject_template == "Issue {number}"
