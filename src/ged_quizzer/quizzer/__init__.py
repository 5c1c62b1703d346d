"""Timed multiple-choice math quiz driven by an AI question generator."""

from .controller import LOW_TIME_THRESHOLD, QuizSessionController
from .generator import (
    ExplanationFailure,
    GenerationFailure,
    OpenAIQuestionGenerator,
    QuestionGenerator,
)
from .models import TIMEOUT_INDEX, Difficulty, Phase, Question, SessionState
from .timer import CountdownTimer

__all__ = [
    "LOW_TIME_THRESHOLD",
    "TIMEOUT_INDEX",
    "CountdownTimer",
    "Difficulty",
    "ExplanationFailure",
    "GenerationFailure",
    "OpenAIQuestionGenerator",
    "Phase",
    "Question",
    "QuestionGenerator",
    "QuizSessionController",
    "SessionState",
]
