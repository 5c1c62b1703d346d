"""``ged-quizzer`` command line entry point."""

from __future__ import annotations

import argparse
import sys
from importlib import metadata
from pathlib import Path
from typing import Optional, Sequence

from .core import workspace as workspace_mod
from .core.logging import configure_logger
from .quizzer.config import (
    ConfigOverrides,
    QuizzerConfigError,
    load_config,
    resolve_config_path,
    write_template,
)
from .quizzer.generator import OpenAIQuestionGenerator
from .quizzer.models import Difficulty
from .quizzer.view import QuizApp

LOGGER_NAME = "ged_quizzer.quizzer"


def _build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="ged-quizzer",
        description=(
            "Timed GED-style multiple-choice math quiz with questions and "
            "explanations generated by OpenAI."
        ),
        epilog=(
            "Run `ged-quizzer config init` to scaffold quizzer.toml in the "
            "workspace config directory."
        ),
    )
    parser.add_argument(
        "--difficulty",
        choices=[level.value for level in Difficulty],
        help="Starting difficulty (defaults to the configured value).",
    )
    parser.add_argument("--model", help="OpenAI chat model to use.")
    parser.add_argument(
        "--time-limit",
        type=int,
        dest="time_limit",
        help="Seconds allowed per question.",
    )
    parser.add_argument(
        "--config", type=Path, help="Path to a quizzer.toml config file."
    )
    parser.add_argument(
        "--workspace",
        type=Path,
        help="Override the workspace root holding config/ and logs/.",
    )
    parser.add_argument(
        "--log-level", help="Log level for the session log (default INFO)."
    )
    parser.add_argument(
        "--verbose",
        action="store_true",
        help="Also echo log records to stderr.",
    )
    return parser


def main(argv: Optional[Sequence[str]] = None) -> int:
    args_list = list(argv) if argv is not None else list(sys.argv[1:])

    head = args_list[:1]
    if head in (["-V"], ["--version"], ["version"]):
        return _handle_version()
    if head == ["config"]:
        return _handle_config(args_list[1:])
    if head == ["run"]:
        args_list = args_list[1:]

    parser = _build_parser()
    args = parser.parse_args(args_list)

    overrides = ConfigOverrides(
        model=args.model,
        difficulty=args.difficulty,
        time_limit_seconds=args.time_limit,
        log_level=args.log_level,
        verbose=True if args.verbose else None,
    )
    try:
        load_result = load_config(
            config_path=args.config,
            overrides=overrides,
            workspace_path=args.workspace,
        )
    except QuizzerConfigError as exc:
        parser.error(str(exc))

    config = load_result.config
    logger, log_path = configure_logger(
        LOGGER_NAME,
        log_dir=load_result.layout.path_for("logs"),
        level=config.logging.level,
        verbose=config.logging.verbose,
    )

    try:
        generator = OpenAIQuestionGenerator(
            model=config.ai.model,
            temperature=config.ai.temperature,
            max_tokens=config.ai.max_tokens,
            request_timeout=config.ai.request_timeout_seconds,
            logger=logger,
        )
    except RuntimeError as exc:
        sys.stderr.write(str(exc) + "\n")
        return 1

    app = QuizApp(
        generator,
        difficulty=config.session.difficulty,
        time_limit=config.session.time_limit_seconds,
        history_size=config.session.history_size,
        logger=logger,
    )
    logger.info(
        "Quiz session started",
        extra={
            "event": "session",
            "model": config.ai.model,
            "difficulty": config.session.difficulty.value,
            "config_path": load_result.config_path,
        },
    )
    try:
        app.run()
    finally:
        app.controller.close()

    state = app.controller.state
    logger.info(
        "Quiz session ended",
        extra={
            "event": "session",
            "score": state.score,
            "questions_answered": state.questions_answered,
        },
    )
    sys.stdout.write(
        f"Final score: {state.score} / {state.questions_answered}\n"
        f"Log file: {log_path}\n"
    )
    return 0


def _handle_version() -> int:
    try:
        version = metadata.version("ged-quizzer")
    except metadata.PackageNotFoundError:
        version = "unknown"
    sys.stdout.write(version + "\n")
    return 0


def _build_config_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="ged-quizzer config",
        description="Manage the quizzer.toml configuration file.",
    )
    parser.add_argument(
        "--workspace",
        type=Path,
        help="Workspace root used to resolve the default config path.",
    )
    subparsers = parser.add_subparsers(dest="command", required=True)
    init_parser = subparsers.add_parser(
        "init", help="Write the default quizzer.toml template."
    )
    init_parser.add_argument(
        "--path", type=Path, help="Destination for the config file."
    )
    init_parser.add_argument(
        "--force",
        action="store_true",
        help="Overwrite the destination if it already exists.",
    )
    subparsers.add_parser("path", help="Print the config file location.")
    return parser


def _handle_config(argv: Sequence[str]) -> int:
    parser = _build_config_parser()
    args = parser.parse_args(argv)
    try:
        layout = workspace_mod.ensure_workspace(path=args.workspace)
    except workspace_mod.WorkspaceError as exc:
        sys.stderr.write(str(exc) + "\n")
        return 1

    if args.command == "path":
        sys.stdout.write(f"{resolve_config_path(layout)}\n")
        return 0

    target = resolve_config_path(layout, config_path=args.path)
    try:
        written = write_template(target, overwrite=args.force)
    except QuizzerConfigError as exc:
        sys.stderr.write(str(exc) + "\n")
        return 1
    sys.stdout.write(f"Wrote quizzer config to {written}\n")
    return 0


if __name__ == "__main__":  # pragma: no cover - module CLI guard
    raise SystemExit(main())
