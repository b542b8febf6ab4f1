"""TOML-based wait configuration.

Loads ~/.opwait/defaults.toml (global) and opwait.toml (project), merges
them, and resolves the ``[wait]`` table into a WaitConfig.

Example opwait.toml::

    [wait]
    timeout_minutes = 10
    max_interval = 30.0
"""

from __future__ import annotations

import tomllib
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, TypeAlias

from opwait.core.exceptions import ConfigurationError
from opwait.wait import PollPolicy

RawConfig: TypeAlias = dict[str, Any]

GLOBAL_CONFIG_PATH = Path.home() / ".opwait" / "defaults.toml"
PROJECT_CONFIG_NAME = "opwait.toml"

DEFAULT_TIMEOUT_MINUTES = 4.0

_POLICY_KEYS = frozenset({"initial_interval", "min_interval", "max_interval", "multiplier"})


@dataclass(frozen=True, slots=True)
class WaitConfig:
    """Caller-side defaults for operation_wait."""

    timeout_minutes: float = DEFAULT_TIMEOUT_MINUTES
    policy: PollPolicy = field(default_factory=PollPolicy)


def _deep_merge(base: RawConfig, override: RawConfig) -> RawConfig:
    result = dict(base)
    for key, value in override.items():
        if key in result and isinstance(result[key], dict) and isinstance(value, dict):
            result[key] = _deep_merge(result[key], value)
        else:
            result[key] = value
    return result


def _read_toml(path: Path) -> RawConfig:
    if not path.is_file():
        return {}
    try:
        with path.open("rb") as f:
            return tomllib.load(f)
    except tomllib.TOMLDecodeError as e:
        raise ConfigurationError(f"Invalid TOML in {path}: {e}") from e


def load_config(
    *,
    project_dir: Path | None = None,
    global_path: Path | None = None,
) -> RawConfig:
    global_cfg = _read_toml(global_path or GLOBAL_CONFIG_PATH)
    project_path = (project_dir or Path.cwd()) / PROJECT_CONFIG_NAME
    project_cfg = _read_toml(project_path)

    merged = _deep_merge(global_cfg, project_cfg)
    merged.setdefault("wait", {})
    return merged


def _number(raw: RawConfig, key: str) -> float:
    value = raw[key]
    if isinstance(value, bool) or not isinstance(value, int | float):
        raise ConfigurationError(f"wait.{key} must be a number, got {value!r}")
    return float(value)


def build_wait_config(raw: RawConfig) -> WaitConfig:
    unknown = set(raw) - _POLICY_KEYS - {"timeout_minutes"}
    if unknown:
        raise ConfigurationError(
            f"Unknown wait settings: {', '.join(sorted(unknown))}. "
            f"Valid: {', '.join(sorted(_POLICY_KEYS | {'timeout_minutes'}))}"
        )

    policy = PollPolicy(**{k: _number(raw, k) for k in _POLICY_KEYS if k in raw})
    timeout = _number(raw, "timeout_minutes") if "timeout_minutes" in raw else DEFAULT_TIMEOUT_MINUTES
    if timeout <= 0:
        raise ConfigurationError(f"wait.timeout_minutes must be positive, got {timeout}")

    return WaitConfig(timeout_minutes=timeout, policy=policy)


def load_wait_config(
    *,
    project_dir: Path | None = None,
    global_path: Path | None = None,
) -> WaitConfig:
    config = load_config(project_dir=project_dir, global_path=global_path)
    wait = config["wait"]
    if not isinstance(wait, dict):
        raise ConfigurationError("'wait' must be a table")
    return build_wait_config(wait)
