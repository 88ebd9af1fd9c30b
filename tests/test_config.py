"""Tests for configuration loading and environment overrides."""

import json
from pathlib import Path

import pytest

from bandgov.config import DEFAULT_CONFIG_DIR, ROOT, GovernanceConfig
from bandgov.errors import ValidationError


class TestLoad:
    def test_shipped_defaults(self) -> None:
        config = GovernanceConfig.from_config_dir(DEFAULT_CONFIG_DIR)
        assert config.default_quorum_percentage == 50.0
        assert config.default_voting_period_hours == 168.0
        assert config.activity_page_max_limit == 200
        assert not config.diagnostics

    def test_missing_file_uses_defaults(self, tmp_path: Path) -> None:
        assert GovernanceConfig.from_config_dir(tmp_path) == GovernanceConfig()

    def test_unknown_key(self, tmp_path: Path) -> None:
        (tmp_path / "governance_defaults.json").write_text(json.dumps({"quorum": 10}))
        with pytest.raises(ValidationError, match="Unknown configuration key"):
            GovernanceConfig.from_config_dir(tmp_path)

    def test_env_overrides(self, tmp_path: Path) -> None:
        config = GovernanceConfig.load(tmp_path, env={
            "BANDGOV_DEFAULT_QUORUM_PERCENTAGE": "25",
            "BANDGOV_DIAGNOSTICS": "yes",
            "BANDGOV_LOG_FORMAT": "json",
            "UNRELATED": "x",
        })
        assert config.default_quorum_percentage == 25.0
        assert config.diagnostics is True
        assert config.log_format == "json"

    def test_bad_env_value(self, tmp_path: Path) -> None:
        with pytest.raises(ValidationError):
            GovernanceConfig.load(tmp_path, env={"BANDGOV_ACTIVITY_PAGE_MAX_LIMIT": "many"})


class TestValidation:
    def test_percentage_range(self) -> None:
        with pytest.raises(ValidationError):
            GovernanceConfig(default_approval_threshold=150)

    def test_voting_period(self) -> None:
        with pytest.raises(ValidationError):
            GovernanceConfig(default_voting_period_hours=0)

    @pytest.mark.parametrize("hours", [float("nan"), float("inf"), 1e8])
    def test_voting_period_must_be_finite_and_bounded(self, hours: float) -> None:
        with pytest.raises(ValidationError, match="default_voting_period_hours"):
            GovernanceConfig(default_voting_period_hours=hours)

    def test_nan_voting_period_from_env(self, tmp_path: Path) -> None:
        with pytest.raises(ValidationError):
            GovernanceConfig.load(tmp_path, env={"BANDGOV_DEFAULT_VOTING_PERIOD_HOURS": "nan"})

    def test_page_limits(self) -> None:
        with pytest.raises(ValidationError):
            GovernanceConfig(activity_page_default_limit=300, activity_page_max_limit=200)

    def test_log_format(self) -> None:
        with pytest.raises(ValidationError):
            GovernanceConfig(log_format="xml")


class TestPackaging:
    def test_design_notes_not_published_as_readme(self) -> None:
        metadata = (ROOT / "pyproject.toml").read_text()
        assert "DESIGN.md" not in metadata
