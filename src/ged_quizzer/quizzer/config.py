"""Configuration loader for quiz sessions.

Values resolve with precedence CLI > environment > ``quizzer.toml`` >
built-in defaults. The TOML file lives in the workspace ``config``
directory unless ``--config`` or ``GED_QUIZZER_CONFIG`` points elsewhere.
"""

from __future__ import annotations

import copy
import os
from dataclasses import dataclass
from importlib import resources
from pathlib import Path
from typing import Any, Mapping, MutableMapping, Optional

from ..core import config as core_config
from ..core import workspace as workspace_mod
from .generator import DEFAULT_MODEL
from .models import (
    DEFAULT_HISTORY_SIZE,
    DEFAULT_TIME_LIMIT,
    MAX_HISTORY_SIZE,
    Difficulty,
)

CONFIG_FILENAME = "quizzer.toml"
CONFIG_ENV = "GED_QUIZZER_CONFIG"
ENV_PREFIX = "GED_QUIZZER_"

_DEFAULTS: Mapping[str, Mapping[str, Any]] = {
    "ai": {
        "model": DEFAULT_MODEL,
        "temperature": 0.7,
        "max_tokens": 800,
        "request_timeout_seconds": 60,
    },
    "session": {
        "difficulty": Difficulty.MEDIUM.value,
        "time_limit_seconds": DEFAULT_TIME_LIMIT,
        "history_size": DEFAULT_HISTORY_SIZE,
    },
    "logging": {"level": "INFO", "verbose": False},
}


class QuizzerConfigError(RuntimeError):
    """Raised when configuration parsing or validation fails."""


@dataclass(frozen=True)
class AIConfig:
    model: str
    temperature: float
    max_tokens: int
    request_timeout_seconds: int


@dataclass(frozen=True)
class SessionConfig:
    difficulty: Difficulty
    time_limit_seconds: int
    history_size: int


@dataclass(frozen=True)
class LoggingConfig:
    level: str
    verbose: bool


@dataclass(frozen=True)
class QuizzerConfig:
    """Fully resolved settings for one quiz run."""

    ai: AIConfig
    session: SessionConfig
    logging: LoggingConfig


@dataclass(frozen=True)
class ConfigOverrides:
    """CLI-sourced values applied on top of environment and file options."""

    model: Optional[str] = None
    difficulty: Optional[str] = None
    time_limit_seconds: Optional[int] = None
    log_level: Optional[str] = None
    verbose: Optional[bool] = None


@dataclass(frozen=True)
class LoadResult:
    """Loaded config plus the workspace it was resolved against."""

    config: QuizzerConfig
    layout: workspace_mod.WorkspaceLayout
    config_path: Optional[Path]


def load_config(
    *,
    config_path: Optional[Path] = None,
    overrides: Optional[ConfigOverrides] = None,
    env: Optional[Mapping[str, str]] = None,
    workspace_path: Optional[Path] = None,
) -> LoadResult:
    overrides = overrides or ConfigOverrides()
    env_map = os.environ if env is None else env

    try:
        layout = workspace_mod.ensure_workspace(
            env=env_map, path=workspace_path
        )
    except workspace_mod.WorkspaceError as exc:
        raise QuizzerConfigError(str(exc)) from exc

    requested = resolve_config_path(
        layout, config_path=config_path, env=env_map
    )
    table: MutableMapping[str, Any] = copy.deepcopy(dict(_DEFAULTS))
    loaded_path: Optional[Path] = None
    if requested.exists():
        try:
            document = core_config.load_toml(requested)
        except core_config.TomlConfigError as exc:
            raise QuizzerConfigError(str(exc)) from exc
        _apply_file_values(table, document)
        loaded_path = requested
    elif config_path is not None or env_map.get(CONFIG_ENV, "").strip():
        raise QuizzerConfigError(f"Config file not found: {requested}")

    ai = table["ai"]
    session = table["session"]
    log = table["logging"]

    config = QuizzerConfig(
        ai=AIConfig(
            model=_require_str(
                _pick_first(overrides.model, _env(env_map, "MODEL"), ai["model"]),
                field="ai.model",
            ),
            temperature=_require_temperature(ai["temperature"]),
            max_tokens=_require_positive_int(
                ai["max_tokens"], field="ai.max_tokens"
            ),
            request_timeout_seconds=_require_positive_int(
                ai["request_timeout_seconds"],
                field="ai.request_timeout_seconds",
            ),
        ),
        session=SessionConfig(
            difficulty=_resolve_difficulty(
                _pick_first(
                    overrides.difficulty,
                    _env(env_map, "DIFFICULTY"),
                    session["difficulty"],
                )
            ),
            time_limit_seconds=_require_positive_int(
                _pick_first(
                    overrides.time_limit_seconds,
                    session["time_limit_seconds"],
                ),
                field="session.time_limit_seconds",
            ),
            history_size=_require_history_size(session["history_size"]),
        ),
        logging=LoggingConfig(
            level=_require_str(
                _pick_first(
                    overrides.log_level,
                    _env(env_map, "LOG_LEVEL"),
                    log["level"],
                ),
                field="logging.level",
            ).upper(),
            verbose=_require_bool(
                _pick_first(overrides.verbose, log["verbose"]),
                field="logging.verbose",
            ),
        ),
    )
    return LoadResult(config=config, layout=layout, config_path=loaded_path)


def resolve_config_path(
    layout: workspace_mod.WorkspaceLayout,
    *,
    config_path: Optional[Path] = None,
    env: Optional[Mapping[str, str]] = None,
) -> Path:
    if config_path is not None:
        return config_path.expanduser()
    env_map = os.environ if env is None else env
    candidate = env_map.get(CONFIG_ENV, "").strip()
    if candidate:
        return Path(candidate).expanduser()
    return layout.path_for("config") / CONFIG_FILENAME


def read_template() -> str:
    """Return the packaged ``quizzer.toml`` template."""
    return (
        resources.files("ged_quizzer.quizzer")
        .joinpath(CONFIG_FILENAME)
        .read_text(encoding="utf-8")
    )


def write_template(path: Path, *, overwrite: bool = False) -> Path:
    try:
        return core_config.write_toml_template(
            path, template=read_template(), overwrite=overwrite
        )
    except core_config.TomlConfigError as exc:
        raise QuizzerConfigError(str(exc)) from exc


def _apply_file_values(
    table: MutableMapping[str, Any], document: Mapping[str, Any]
) -> None:
    """Overlay ``quizzer.toml`` tables onto the defaults, one level deep."""
    for name, values in document.items():
        if name not in table:
            raise QuizzerConfigError(f"Unknown configuration key '{name}'.")
        if not isinstance(values, Mapping):
            raise QuizzerConfigError(
                f"Expected table for '{name}', found {type(values).__name__}."
            )
        section = table[name]
        for key, value in values.items():
            if key not in section:
                raise QuizzerConfigError(
                    f"Unknown configuration key '{name}.{key}'."
                )
            section[key] = value


def _env(env_map: Mapping[str, str], key: str) -> Optional[str]:
    raw = env_map.get(f"{ENV_PREFIX}{key}")
    if raw is None:
        return None
    return raw.strip() or None


def _pick_first(*candidates: object) -> object:
    for candidate in candidates:
        if candidate is not None:
            return candidate
    return None


def _resolve_difficulty(value: object) -> Difficulty:
    try:
        return Difficulty.parse(str(value))
    except ValueError as exc:
        raise QuizzerConfigError(str(exc)) from exc


def _require_str(value: object, *, field: str) -> str:
    if not isinstance(value, str) or not value.strip():
        raise QuizzerConfigError(f"'{field}' must be a non-empty string.")
    return value.strip()


def _require_positive_int(value: object, *, field: str) -> int:
    if isinstance(value, bool) or not isinstance(value, int) or value <= 0:
        raise QuizzerConfigError(f"'{field}' must be a positive integer.")
    return value


def _require_history_size(value: object) -> int:
    if (
        isinstance(value, bool)
        or not isinstance(value, int)
        or not 1 <= value <= MAX_HISTORY_SIZE
    ):
        raise QuizzerConfigError(
            "'session.history_size' must be an integer from 1 to "
            f"{MAX_HISTORY_SIZE}."
        )
    return value


def _require_bool(value: object, *, field: str) -> bool:
    if not isinstance(value, bool):
        raise QuizzerConfigError(f"'{field}' must be true or false.")
    return value


def _require_temperature(value: object) -> float:
    if isinstance(value, bool) or not isinstance(value, (int, float)):
        raise QuizzerConfigError("'ai.temperature' must be a number.")
    if not 0.0 <= float(value) <= 2.0:
        raise QuizzerConfigError(
            "'ai.temperature' must be between 0.0 and 2.0."
        )
    return float(value)
