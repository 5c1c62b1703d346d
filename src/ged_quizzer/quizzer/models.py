"""Question and session state types for the quiz controller."""

from __future__ import annotations

from collections import deque
from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Mapping, Optional

__all__ = [
    "DEFAULT_HISTORY_SIZE",
    "DEFAULT_TIME_LIMIT",
    "MAX_HISTORY_SIZE",
    "OPTION_COUNT",
    "TIMEOUT_INDEX",
    "Difficulty",
    "Phase",
    "Question",
    "SessionState",
]

OPTION_COUNT = 4
TIMEOUT_INDEX = -1
DEFAULT_TIME_LIMIT = 60
MAX_HISTORY_SIZE = 5
DEFAULT_HISTORY_SIZE = MAX_HISTORY_SIZE


class Difficulty(str, Enum):
    """Question difficulty levels offered to the user."""

    EASY = "easy"
    MEDIUM = "medium"
    HARD = "hard"

    @classmethod
    def parse(cls, value: "str | Difficulty") -> "Difficulty":
        if isinstance(value, cls):
            return value
        normalized = str(value).strip().lower()
        for member in cls:
            if member.value == normalized:
                return member
        expected = ", ".join(member.value for member in cls)
        raise ValueError(
            f"Unknown difficulty '{value}'. Expected one of: {expected}."
        )


class Phase(Enum):
    """Controller states for a single round."""

    LOADING_QUESTION = "loading_question"
    READY = "ready"
    ANSWERED = "answered"
    ERROR = "error"


@dataclass(frozen=True)
class Question:
    """A generated multiple-choice question with exactly four options."""

    question: str
    options: tuple[str, ...]
    correct_answer_index: int

    @classmethod
    def from_payload(cls, payload: Mapping[str, Any]) -> "Question":
        """Validate a decoded generator response.

        Expected shape::

            {"question": str, "options": [str, str, str, str],
             "correctAnswerIndex": int}

        ``correct_answer_index`` is accepted as an alias for the index key.
        Raises ValueError describing the first problem found.
        """
        if not isinstance(payload, Mapping):
            raise ValueError("question payload must be a JSON object")
        text = payload.get("question")
        if not isinstance(text, str) or not text.strip():
            raise ValueError("'question' must be a non-empty string")
        options = payload.get("options")
        if not isinstance(options, list) or len(options) != OPTION_COUNT:
            raise ValueError(
                f"'options' must be a list of exactly {OPTION_COUNT} strings"
            )
        if not all(isinstance(opt, str) and opt.strip() for opt in options):
            raise ValueError("every option must be a non-empty string")
        index = payload.get("correctAnswerIndex")
        if index is None:
            index = payload.get("correct_answer_index")
        # bool is an int subclass; reject it explicitly
        if not isinstance(index, int) or isinstance(index, bool):
            raise ValueError("'correctAnswerIndex' must be an integer")
        if not 0 <= index < OPTION_COUNT:
            raise ValueError(
                f"'correctAnswerIndex' must be between 0 and {OPTION_COUNT - 1}"
            )
        return cls(
            question=text.strip(),
            options=tuple(opt.strip() for opt in options),
            correct_answer_index=index,
        )

    @property
    def correct_answer(self) -> str:
        return self.options[self.correct_answer_index]

    @staticmethod
    def option_label(index: int) -> str:
        return chr(ord("A") + index)


@dataclass
class SessionState:
    """Mutable quiz state. Only the controller writes to it."""

    difficulty: Difficulty = Difficulty.MEDIUM
    time_left: int = DEFAULT_TIME_LIMIT
    history_size: int = DEFAULT_HISTORY_SIZE
    phase: Phase = Phase.LOADING_QUESTION
    question: Optional[Question] = None
    selected_index: Optional[int] = None
    is_answered: bool = False
    loading_explanation: bool = False
    explanation: str = ""
    error: Optional[str] = None
    score: int = 0
    questions_answered: int = 0
    recent_history: deque[str] = field(init=False)

    def __post_init__(self) -> None:
        self.recent_history = deque(maxlen=self.history_size)

    def remember(self, question_text: str) -> None:
        """Append to the rolling history, evicting the oldest entry."""
        self.recent_history.append(question_text)

    def history_snapshot(self) -> tuple[str, ...]:
        return tuple(self.recent_history)

    def clear_round(self) -> None:
        self.question = None
        self.selected_index = None
        self.is_answered = False
        self.loading_explanation = False
        self.explanation = ""
        self.error = None
