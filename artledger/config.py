"""
Engine configuration loaded from ``.artledger/config.toml``.

The schema is intentionally small: limits and defaults are data, behaviour is
code. A missing file yields the defaults.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, fields
from pathlib import Path
from typing import Any

logger = logging.getLogger(__name__)

CONFIG_DIRNAME = ".artledger"
CONFIG_FILENAME = "config.toml"

MIN_CONFLICT_RETRIES = 1
MAX_CONFLICT_RETRIES = 5

LOG_LEVELS = ("DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL")


@dataclass(frozen=True)
class EngineConfig:
    actor: str = "human:local"
    default_project: str | None = None
    version_limit: int = 50
    message_limit: int = 200
    op_limit: int = 500
    list_limit: int = 50
    conflict_retries: int = 3
    log_level: str = "WARNING"


def data_dir(root: Path) -> Path:
    """Path to the ``.artledger`` directory under a workspace root."""
    return root / CONFIG_DIRNAME


def config_path(root: Path) -> Path:
    return data_dir(root) / CONFIG_FILENAME


def _require_int(key: str, value: Any) -> int:
    if isinstance(value, bool) or not isinstance(value, int):
        raise ValueError(f"config.{key} must be an integer")
    if value <= 0:
        raise ValueError(f"config.{key} must be a positive integer")
    return value


def _require_str(key: str, value: Any) -> str:
    if not isinstance(value, str) or not value.strip():
        raise ValueError(f"config.{key} must be a non-empty string")
    return value.strip()


def parse_config(data: dict[str, Any]) -> EngineConfig:
    """Build an EngineConfig from a parsed TOML mapping."""
    known = {f.name for f in fields(EngineConfig)}
    unknown = sorted(set(data) - known)
    if unknown:
        logger.warning("Ignoring unknown config keys: %s", ", ".join(unknown))

    values: dict[str, Any] = {}
    for key in ("version_limit", "message_limit", "op_limit", "list_limit", "conflict_retries"):
        if key in data:
            values[key] = _require_int(key, data[key])
    for key in ("actor", "default_project"):
        if key in data:
            values[key] = _require_str(key, data[key])
    if "log_level" in data:
        level = _require_str("log_level", data["log_level"]).upper()
        if level not in LOG_LEVELS:
            raise ValueError(f"config.log_level must be one of {', '.join(LOG_LEVELS)}")
        values["log_level"] = level

    if "conflict_retries" in values:
        values["conflict_retries"] = max(
            MIN_CONFLICT_RETRIES, min(MAX_CONFLICT_RETRIES, values["conflict_retries"])
        )

    return EngineConfig(**values)


def load_config(root: Path) -> EngineConfig:
    """Load config for a workspace root (defaults when no file exists)."""
    import tomllib

    path = config_path(root)
    if not path.exists():
        return EngineConfig()

    data = tomllib.loads(path.read_text(encoding="utf-8"))
    config = parse_config(data)
    logger.debug("Loaded config from %s", path)
    return config
