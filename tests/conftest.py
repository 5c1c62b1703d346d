from __future__ import annotations

import logging
import sys
from pathlib import Path
from typing import Iterator

import pytest

from ged_quizzer.core.logging import release_logger

TESTS_DIR = Path(__file__).resolve().parent
if str(TESTS_DIR) not in sys.path:
    sys.path.insert(0, str(TESTS_DIR))

from quiz_fixtures import FakeGenerator, OpenAIStub  # noqa: E402


@pytest.fixture
def fake_generator() -> FakeGenerator:
    return FakeGenerator()


@pytest.fixture
def openai_stub() -> OpenAIStub:
    return OpenAIStub()


@pytest.fixture
def workspace_env(tmp_path: Path) -> dict[str, str]:
    """Environment mapping pointing the workspace at a temp directory."""

    return {"GED_QUIZZER_HOME": str(tmp_path / "home")}


@pytest.fixture(autouse=True)
def _release_quizzer_logger() -> Iterator[None]:
    yield
    release_logger(logging.getLogger("ged_quizzer.quizzer"))
