from __future__ import annotations

from pathlib import Path

import pytest

from ged_quizzer.quizzer import config as config_mod
from ged_quizzer.quizzer.config import (
    ConfigOverrides,
    QuizzerConfigError,
    load_config,
)
from ged_quizzer.quizzer.models import Difficulty


def _write_config(path: Path, body: str) -> Path:
    path.parent.mkdir(parents=True, exist_ok=True)
    path.write_text(body, encoding="utf-8")
    return path


def test_defaults_without_config_file(workspace_env):
    result = load_config(env=workspace_env)

    config = result.config
    assert result.config_path is None
    assert config.ai.model == "gpt-4o-mini"
    assert config.session.difficulty is Difficulty.MEDIUM
    assert config.session.time_limit_seconds == 60
    assert config.session.history_size == 5
    assert config.logging.level == "INFO"
    assert config.logging.verbose is False
    assert result.layout.path_for("logs").is_dir()


def test_workspace_config_file_is_merged(workspace_env):
    home = Path(workspace_env["GED_QUIZZER_HOME"])
    path = _write_config(
        home / "config" / "quizzer.toml",
        '[session]\ndifficulty = "hard"\ntime_limit_seconds = 90\n'
        '[ai]\ntemperature = 0.3\n',
    )

    result = load_config(env=workspace_env)

    assert result.config_path == path
    assert result.config.session.difficulty is Difficulty.HARD
    assert result.config.session.time_limit_seconds == 90
    assert result.config.ai.temperature == pytest.approx(0.3)
    assert result.config.ai.max_tokens == 800


def test_precedence_cli_over_env_over_file(workspace_env, tmp_path):
    path = _write_config(
        tmp_path / "custom.toml",
        '[ai]\nmodel = "file-model"\n[session]\ndifficulty = "easy"\n'
        '[logging]\nlevel = "warning"\n',
    )
    env = {
        **workspace_env,
        "GED_QUIZZER_MODEL": "env-model",
        "GED_QUIZZER_DIFFICULTY": "hard",
    }

    from_env = load_config(config_path=path, env=env).config
    assert from_env.ai.model == "env-model"
    assert from_env.session.difficulty is Difficulty.HARD
    assert from_env.logging.level == "WARNING"

    overrides = ConfigOverrides(
        model="cli-model",
        difficulty="medium",
        time_limit_seconds=30,
        log_level="debug",
        verbose=True,
    )
    from_cli = load_config(config_path=path, env=env, overrides=overrides)
    assert from_cli.config.ai.model == "cli-model"
    assert from_cli.config.session.difficulty is Difficulty.MEDIUM
    assert from_cli.config.session.time_limit_seconds == 30
    assert from_cli.config.logging.level == "DEBUG"
    assert from_cli.config.logging.verbose is True


def test_config_path_from_environment(workspace_env, tmp_path):
    path = _write_config(tmp_path / "env.toml", "[session]\nhistory_size = 3\n")
    env = {**workspace_env, "GED_QUIZZER_CONFIG": str(path)}
    assert load_config(env=env).config.session.history_size == 3


@pytest.mark.parametrize(
    "body, message",
    [
        ("[ai]\nunknown = 1\n", "ai.unknown"),
        ("[extras]\nvalue = 1\n", "extras"),
        ("[ai.extra]\nvalue = 1\n", "ai.extra"),
        ("ai = 3\n", "Expected table for 'ai'"),
        ('[session]\ndifficulty = "expert"\n', "expert"),
        ("[session]\ntime_limit_seconds = 0\n", "time_limit_seconds"),
        ("[session]\nhistory_size = true\n", "history_size"),
        ("[session]\nhistory_size = 8\n", "from 1 to 5"),
        ("[session]\nhistory_size = 0\n", "from 1 to 5"),
        ("[ai]\ntemperature = 5\n", "temperature"),
        ('[logging]\nverbose = "yes"\n', "logging.verbose"),
        ("[ai\n", "Failed to parse"),
    ],
)
def test_invalid_config_raises(workspace_env, tmp_path, body, message):
    path = _write_config(tmp_path / "bad.toml", body)
    with pytest.raises(QuizzerConfigError) as exc:
        load_config(config_path=path, env=workspace_env)
    assert message in str(exc.value)


def test_missing_explicit_config_is_error(workspace_env, tmp_path):
    with pytest.raises(QuizzerConfigError) as exc:
        load_config(config_path=tmp_path / "missing.toml", env=workspace_env)
    assert "not found" in str(exc.value)


def test_template_round_trips_through_loader(workspace_env, tmp_path):
    target = tmp_path / "quizzer.toml"
    config_mod.write_template(target)

    result = load_config(config_path=target, env=workspace_env)
    assert result.config_path == target
    assert result.config.session.difficulty is Difficulty.MEDIUM

    with pytest.raises(QuizzerConfigError):
        config_mod.write_template(target)
    config_mod.write_template(target, overwrite=True)


def test_history_size_accepts_the_cap(workspace_env, tmp_path):
    path = _write_config(tmp_path / "cap.toml", "[session]\nhistory_size = 5\n")
    result = load_config(config_path=path, env=workspace_env)
    assert result.config.session.history_size == 5
