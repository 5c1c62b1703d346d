"""TOML read and template-write helpers for the quizzer configuration."""

from __future__ import annotations

import tomllib
from pathlib import Path
from typing import Any, Mapping

__all__ = [
    "TomlConfigError",
    "load_toml",
    "write_toml_template",
]


class TomlConfigError(RuntimeError):
    """Raised when a TOML document cannot be read, parsed or written."""


def load_toml(path: Path) -> Mapping[str, Any]:
    """Parse the TOML document at ``path``.

    Missing files and syntax errors surface as :class:`TomlConfigError` so
    callers only have one exception type to translate.
    """

    try:
        with path.open("rb") as handle:
            return tomllib.load(handle)
    except FileNotFoundError as exc:
        raise TomlConfigError(f"Config file not found: {path}") from exc
    except tomllib.TOMLDecodeError as exc:
        raise TomlConfigError(f"Failed to parse {path}: {exc}") from exc


def write_toml_template(
    path: Path,
    *,
    template: str,
    overwrite: bool = False,
) -> Path:
    """Write ``template`` to ``path`` unless it exists and ``overwrite`` is off."""

    if path.exists() and not overwrite:
        raise TomlConfigError(f"Config already exists: {path}")
    path.parent.mkdir(parents=True, exist_ok=True)
    path.write_text(template, encoding="utf-8")
    try:
        path.chmod(0o600)
    except PermissionError:  # pragma: no cover - depends on filesystem
        pass
    return path
