from __future__ import annotations

import dataclasses
import os
from dataclasses import dataclass
from pathlib import Path
from typing import Any, Mapping, Sequence

from ruamel.yaml import YAML
from ruamel.yaml.error import YAMLError

from .errors import SettingsError

ENV_BASE_URL = "CONFORMANCE_BASE_URL"
ENV_TOKEN = "CONFORMANCE_TOKEN"
ENV_CONFIG = "CONFORMANCE_CONFIG"

_LOG_LEVELS = {"CRITICAL", "ERROR", "WARNING", "INFO", "DEBUG"}


@dataclass(frozen=True)
class ConsoleSettings:
    base_url: str = "http://localhost:8080"
    token: str | None = None
    timeout_s: float = 30.0
    poll_budget_s: float = 60.0
    poll_interval_s: float = 1.0
    log_level: str = "WARNING"

    def merged(self, values: Mapping[str, Any]) -> "ConsoleSettings":
        known = {f.name: f for f in dataclasses.fields(self)}
        changes: dict[str, Any] = {}
        for key, value in values.items():
            if value is None:
                continue
            if key not in known:
                raise SettingsError(f"Unknown setting: {key}")
            changes[key] = _coerce(key, value)
        return dataclasses.replace(self, **changes)


def _coerce(key: str, value: Any) -> Any:
    if key in {"timeout_s", "poll_budget_s", "poll_interval_s"}:
        try:
            number = float(value)
        except (TypeError, ValueError):
            raise SettingsError(f"{key} must be a number, got {value!r}") from None
        if number <= 0:
            raise SettingsError(f"{key} must be positive, got {value!r}")
        return number
    if key == "log_level":
        level = str(value).upper()
        if level not in _LOG_LEVELS:
            raise SettingsError(f"Unknown log level: {value!r}")
        return level
    return str(value)


def _to_builtin(value: Any) -> Any:
    if isinstance(value, Mapping):
        return {str(k): _to_builtin(v) for k, v in value.items()}
    if isinstance(value, Sequence) and not isinstance(value, (str, bytes, bytearray)):
        return [_to_builtin(v) for v in value]
    return value


def load_settings_file(path: Path) -> dict[str, Any]:
    yaml = YAML(typ="safe")
    try:
        with path.open("r", encoding="utf-8") as file:
            data = yaml.load(file)
    except OSError as exc:
        raise SettingsError(f"Cannot read settings file {path}: {exc}") from exc
    except YAMLError as exc:
        raise SettingsError(f"Invalid YAML in {path}: {exc}") from exc
    if data is None:
        return {}
    if not isinstance(data, Mapping):
        raise SettingsError(f"Settings file {path} must contain a mapping")
    return _to_builtin(data)


def load_settings(
    path: str | Path | None = None,
    *,
    env: Mapping[str, str] | None = None,
    overrides: Mapping[str, Any] | None = None,
) -> ConsoleSettings:
    """Defaults, then the YAML file, then the environment, then `overrides`."""

    env = os.environ if env is None else env
    settings = ConsoleSettings()

    if path is None and env.get(ENV_CONFIG):
        path = env[ENV_CONFIG]
    if path is not None:
        settings = settings.merged(load_settings_file(Path(path)))

    settings = settings.merged({"base_url": env.get(ENV_BASE_URL) or None, "token": env.get(ENV_TOKEN) or None})
    return settings.merged(overrides or {})
