"""Test doubles shared across the ged_quizzer test suite."""

from .generator import FakeGenerator, make_question  # noqa: F401
from .openai import OpenAIStub  # noqa: F401
from .polling import wait_until  # noqa: F401

__all__ = ["FakeGenerator", "OpenAIStub", "make_question", "wait_until"]
