"""Runtime configuration.

Defaults are read from ``config/governance_defaults.json`` and may be
overridden from the environment (a ``.env`` file at the project root is
loaded first). Environment keys use the ``BANDGOV_`` prefix and the
upper-cased field name, e.g. ``BANDGOV_DB_PATH``.
"""

from __future__ import annotations

import json
import math
import os
from dataclasses import dataclass, fields, replace
from pathlib import Path
from typing import Any, Mapping, Optional

from dotenv import load_dotenv

from bandgov.errors import ValidationError


ROOT = Path(__file__).resolve().parents[2]
DEFAULT_CONFIG_DIR = ROOT / "config"
DEFAULTS_FILENAME = "governance_defaults.json"
ENV_PREFIX = "BANDGOV_"

_LOG_FORMATS = ("console", "json")
_TRUE = {"1", "true", "yes", "on"}

# Ten years.
MAX_VOTING_PERIOD_HOURS = 24.0 * 366 * 10


def check_voting_period(value: Any, name: str = "voting_period_hours") -> float:
    """Coerce a voting period to hours, rejecting non-finite or out-of-range values."""
    try:
        hours = float(value)
    except (TypeError, ValueError):
        raise ValidationError(f"{name} must be a number, got {value!r}") from None
    if not math.isfinite(hours) or hours <= 0:
        raise ValidationError(f"{name} must be a positive number, got {value!r}")
    if hours > MAX_VOTING_PERIOD_HOURS:
        raise ValidationError(
            f"{name} must not exceed {MAX_VOTING_PERIOD_HOURS:g} hours, got {hours:g}"
        )
    return hours


@dataclass(frozen=True)
class GovernanceConfig:
    """Band defaults and runtime settings.

    Band-level thresholds here are only defaults applied when a band is
    created without explicit values; each band stores its own copy.
    """
    default_quorum_percentage: float = 50.0
    default_approval_threshold: float = 50.0
    default_voting_period_hours: float = 168.0
    activity_page_default_limit: int = 50
    activity_page_max_limit: int = 200
    db_path: str = "data/bandgov.sqlite3"
    log_level: str = "INFO"
    log_format: str = "console"
    diagnostics: bool = False

    def __post_init__(self) -> None:
        for name in ("default_quorum_percentage", "default_approval_threshold"):
            value = getattr(self, name)
            if not 0 <= value <= 100:
                raise ValidationError(f"{name} must be within 0-100, got {value}")
        check_voting_period(self.default_voting_period_hours, "default_voting_period_hours")
        if self.activity_page_default_limit <= 0 or self.activity_page_max_limit <= 0:
            raise ValidationError("activity page limits must be positive")
        if self.activity_page_default_limit > self.activity_page_max_limit:
            raise ValidationError(
                "activity_page_default_limit cannot exceed activity_page_max_limit"
            )
        if self.log_format not in _LOG_FORMATS:
            raise ValidationError(
                f"log_format must be one of {_LOG_FORMATS}, got {self.log_format!r}"
            )

    @classmethod
    def from_mapping(cls, data: Mapping[str, Any]) -> GovernanceConfig:
        """Build a config from a plain mapping, coercing to field types."""
        known = {f.name: f for f in fields(cls)}
        kwargs: dict[str, Any] = {}
        for key, raw in data.items():
            if key not in known:
                raise ValidationError(f"Unknown configuration key: {key}")
            kwargs[key] = _coerce(key, known[key].type, raw)
        return cls(**kwargs)

    @classmethod
    def from_config_dir(cls, config_dir: Path) -> GovernanceConfig:
        """Load defaults from the JSON document in *config_dir*."""
        path = config_dir / DEFAULTS_FILENAME
        if not path.exists():
            return cls()
        with path.open("r", encoding="utf-8") as f:
            data = json.load(f)
        return cls.from_mapping(data)

    @classmethod
    def load(
        cls,
        config_dir: Optional[Path] = None,
        env: Optional[Mapping[str, str]] = None,
    ) -> GovernanceConfig:
        """Load file defaults, then apply ``BANDGOV_*`` environment overrides.

        When *env* is omitted the process environment is used, after
        loading ``.env`` from the project root.
        """
        base = cls.from_config_dir(config_dir or DEFAULT_CONFIG_DIR)
        if env is None:
            load_dotenv(ROOT / ".env")
            env = os.environ
        return base.with_overrides(env)

    def with_overrides(self, env: Mapping[str, str]) -> GovernanceConfig:
        overrides: dict[str, Any] = {}
        for f in fields(self):
            key = ENV_PREFIX + f.name.upper()
            if key in env:
                overrides[f.name] = _coerce(f.name, f.type, env[key])
        if not overrides:
            return self
        return replace(self, **overrides)


def _coerce(name: str, type_name: Any, raw: Any) -> Any:
    # Annotations are strings under `from __future__ import annotations`.
    type_name = getattr(type_name, "__name__", type_name)
    try:
        if type_name == "bool":
            if isinstance(raw, bool):
                return raw
            return str(raw).strip().lower() in _TRUE
        if type_name == "int":
            return int(raw)
        if type_name == "float":
            return float(raw)
        return str(raw)
    except (TypeError, ValueError) as e:
        raise ValidationError(f"Invalid value for {name}: {raw!r} ({e})") from e
