"""
Protocol parameters for the incident ledger.

Defaults are the fixed protocol constants. A deployment may override them
from a TOML file with a `[ledger]` table:

    [ledger]
    report_points = 100
    cooldown = 3600
"""

from __future__ import annotations

import os
from dataclasses import dataclass, fields, replace
from pathlib import Path
from typing import Any

from .errors import ConfigError

HOME_ENV_VAR = "CIVICWATCH_HOME"
CONFIG_FILENAME = "civicwatch.toml"


@dataclass(frozen=True)
class LedgerConfig:
    report_points: int = 100
    upvote_points: int = 2
    downvote_penalty: int = 400
    solve_points: int = 20
    cooldown: int = 3600
    min_priority: int = 1
    max_priority: int = 5
    flag_min_downvotes: int = 5
    flag_ratio: int = 2

    def __post_init__(self) -> None:
        for f in fields(self):
            value = getattr(self, f.name)
            if isinstance(value, bool) or not isinstance(value, int):
                raise ConfigError(f"{f.name} must be an integer, got {value!r}")
            if value < 0:
                raise ConfigError(f"{f.name} must be non-negative, got {value}")
        if self.min_priority > self.max_priority:
            raise ConfigError(
                f"min_priority ({self.min_priority}) exceeds max_priority ({self.max_priority})"
            )

    def to_dict(self) -> dict[str, int]:
        return {f.name: getattr(self, f.name) for f in fields(self)}


def _coerce_dict(value: Any) -> dict[str, Any]:
    return value if isinstance(value, dict) else {}


def load_config(path: Path) -> LedgerConfig:
    """
    Load ledger parameters from TOML.

    Unknown keys are rejected so a typo never silently falls back to a default.
    """
    import tomllib

    try:
        data = tomllib.loads(path.read_text(encoding="utf-8"))
    except tomllib.TOMLDecodeError as e:
        raise ConfigError(f"{path}: {e}") from e

    table = _coerce_dict(data.get("ledger"))
    known = {f.name for f in fields(LedgerConfig)}
    unknown = sorted(set(table) - known)
    if unknown:
        raise ConfigError(f"{path}: unknown [ledger] keys: {', '.join(unknown)}")

    return replace(LedgerConfig(), **table)


def default_home() -> Path:
    """Ledger home directory: $CIVICWATCH_HOME, else ./.civicwatch."""
    env = os.environ.get(HOME_ENV_VAR, "").strip()
    if env:
        return Path(env)
    return Path.cwd() / ".civicwatch"


def resolve_config(home: Path, explicit: Path | None = None) -> LedgerConfig:
    """Pick the explicit config file, else `<home>/civicwatch.toml`, else defaults."""
    if explicit is not None:
        return load_config(explicit)
    candidate = home / CONFIG_FILENAME
    if candidate.exists():
        return load_config(candidate)
    return LedgerConfig()
