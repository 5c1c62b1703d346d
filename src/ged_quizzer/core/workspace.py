"""Per-user workspace holding the quizzer config and log directories."""

from __future__ import annotations

import os
import tempfile
from dataclasses import dataclass
from pathlib import Path
from types import MappingProxyType
from typing import Mapping

__all__ = [
    "WORKSPACE_ENV",
    "DEFAULT_WORKSPACE",
    "WorkspaceError",
    "WorkspaceLayout",
    "ensure_workspace",
]

WORKSPACE_ENV = "GED_QUIZZER_HOME"
DEFAULT_WORKSPACE = Path.home() / ".ged-quizzer"

_SUBDIRS = ("config", "logs")


class WorkspaceError(RuntimeError):
    """Raised when the workspace directories cannot be prepared."""


@dataclass(frozen=True)
class WorkspaceLayout:
    """Resolved workspace root and its subdirectories."""

    home: Path
    directories: Mapping[str, Path]

    def path_for(self, key: str) -> Path:
        try:
            return self.directories[key]
        except KeyError as exc:
            raise KeyError(f"Unknown workspace directory '{key}'.") from exc


def ensure_workspace(
    *,
    env: Mapping[str, str] | None = None,
    path: Path | None = None,
    create: bool = True,
) -> WorkspaceLayout:
    """Resolve the workspace root and, by default, create its directories.

    ``path`` wins over ``GED_QUIZZER_HOME``. When neither is given and the
    home directory is not writable the layout falls back to the system temp
    directory.
    """

    env_map = os.environ if env is None else env
    base, explicit = _resolve_base(env_map, path)
    candidates = [base]
    if create and not explicit:
        candidates.append(Path(tempfile.gettempdir()) / "ged-quizzer")

    last_error: Exception | None = None
    for candidate in candidates:
        try:
            return _layout_for(candidate, create=create)
        except PermissionError as exc:
            last_error = exc
    raise WorkspaceError(
        f"Unable to prepare workspace at {base}"
    ) from last_error


def _resolve_base(
    env: Mapping[str, str], override: Path | None
) -> tuple[Path, bool]:
    if override is not None:
        return override.expanduser().absolute(), True
    custom = (env.get(WORKSPACE_ENV) or "").strip()
    if custom:
        return Path(custom).expanduser().absolute(), True
    return DEFAULT_WORKSPACE, False


def _layout_for(base: Path, *, create: bool) -> WorkspaceLayout:
    if base.exists() and not base.is_dir():
        raise WorkspaceError(
            f"Configured workspace exists and is not a directory: {base}"
        )
    directories = {name: base / name for name in _SUBDIRS}
    if create:
        for directory in (base, *directories.values()):
            directory.mkdir(parents=True, exist_ok=True)
            if not directory.is_dir():
                raise WorkspaceError(
                    f"Expected directory but found a file: {directory}"
                )
            try:
                directory.chmod(0o700)
            except (PermissionError, NotImplementedError):
                pass
    return WorkspaceLayout(
        home=base, directories=MappingProxyType(directories)
    )
