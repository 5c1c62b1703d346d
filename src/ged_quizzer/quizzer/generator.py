"""Question and explanation generation backed by OpenAI chat completions.

The controller only depends on the :class:`QuestionGenerator` protocol. The
OpenAI implementation runs the synchronous client in a worker thread so the
event loop (and the countdown) keeps running while a request is in flight.
"""

from __future__ import annotations

import asyncio
import json
import logging
import re
from typing import Any, Optional, Protocol, Sequence

from ..core.ai import load_client
from .models import Difficulty, Question

__all__ = [
    "DEFAULT_MODEL",
    "ExplanationFailure",
    "GenerationFailure",
    "OpenAIQuestionGenerator",
    "QuestionGenerator",
    "build_explanation_prompt",
    "build_question_prompt",
    "parse_question",
]

DEFAULT_MODEL = "gpt-4o-mini"

_QUESTION_SYSTEM_PROMPT = (
    "You write multiple-choice math questions for students preparing for "
    "the GED test. Reply with a single JSON object and nothing else."
)
_EXPLANATION_SYSTEM_PROMPT = (
    "You are a patient GED math tutor. Explain solutions step by step in "
    "plain language."
)
_TIMEOUT_MARKER = "The student ran out of time and did not select an answer."


class GenerationFailure(RuntimeError):
    """A question could not be generated or failed validation."""


class ExplanationFailure(RuntimeError):
    """An explanation could not be generated."""


class QuestionGenerator(Protocol):
    """Contract between the quiz controller and the generation service."""

    async def generate_question(
        self, difficulty: Difficulty, recent_history: Sequence[str]
    ) -> Question:
        """Return one new question at ``difficulty``.

        ``recent_history`` holds recently asked question texts the service
        should avoid repeating.
        """

    async def generate_explanation(
        self, question: Question, incorrect_answer: Optional[str]
    ) -> str:
        """Explain ``question``; ``incorrect_answer`` is None on timeout."""


def build_question_prompt(
    difficulty: Difficulty, recent_history: Sequence[str]
) -> str:
    lines = [
        f"Generate one multiple-choice math question of {difficulty.value} "
        "difficulty appropriate for a GED test.",
        "Topics can include basic arithmetic, algebra, geometry, and data "
        "analysis.",
        "Ensure there are exactly 4 options and exactly one correct answer.",
        "",
        "Respond with JSON matching this schema:",
        '{"question": str, "options": [str, str, str, str], '
        '"correctAnswerIndex": int (0-based index into options)}',
    ]
    history = [text for text in recent_history if text.strip()]
    if history:
        lines.append("")
        lines.append(
            "Do not repeat or closely paraphrase any of these recent "
            "questions:"
        )
        lines.extend(f"- {text}" for text in history)
    return "\n".join(lines)


def build_explanation_prompt(
    question: Question, incorrect_answer: Optional[str]
) -> str:
    if incorrect_answer is None:
        student_action = _TIMEOUT_MARKER
    else:
        student_action = f'The student incorrectly chose: "{incorrect_answer}"'
    options = "\n".join(f"- {option}" for option in question.options)
    return (
        "A student is preparing for the GED math test. Please provide a "
        "step-by-step explanation for the following problem.\n\n"
        f'Problem: "{question.question}"\n\n'
        f"The multiple-choice options were:\n{options}\n\n"
        f"{student_action}\n"
        f'The correct answer is: "{question.correct_answer}"\n\n'
        "Explain clearly how to arrive at the correct answer. Break down the "
        "reasoning into simple steps. Be encouraging."
    )


def parse_question(content: str) -> Question:
    """Decode a model reply into a validated :class:`Question`.

    Replies wrapped in a fenced code block are unwrapped first. Raises
    ValueError for anything that is not a valid question object.
    """
    if not content or not content.strip():
        raise ValueError("empty response")
    fenced = re.search(r"```(?:json)?\s*(.+?)```", content, re.DOTALL)
    payload = fenced.group(1) if fenced else content
    try:
        data = json.loads(payload)
    except json.JSONDecodeError as exc:
        raise ValueError(f"response is not valid JSON: {exc}") from exc
    return Question.from_payload(data)


class OpenAIQuestionGenerator:
    """Generator using ``client.chat.completions.create``."""

    def __init__(
        self,
        client: Any | None = None,
        *,
        model: str = DEFAULT_MODEL,
        temperature: float = 0.7,
        max_tokens: int = 800,
        request_timeout: float | None = None,
        logger: logging.Logger | None = None,
    ) -> None:
        self._client = (
            client if client is not None
            else load_client(timeout=request_timeout)
        )
        self._model = model
        self._temperature = temperature
        self._max_tokens = max_tokens
        self._logger = logger or logging.getLogger("ged_quizzer.quizzer")

    @property
    def model(self) -> str:
        return self._model

    async def generate_question(
        self, difficulty: Difficulty, recent_history: Sequence[str]
    ) -> Question:
        prompt = build_question_prompt(difficulty, recent_history)
        try:
            content = await asyncio.to_thread(
                self._complete,
                _QUESTION_SYSTEM_PROMPT,
                prompt,
                json_mode=True,
            )
            question = parse_question(content)
        except Exception as exc:
            self._logger.exception(
                "Question generation failed",
                extra={
                    "event": "generate_question",
                    "difficulty": difficulty.value,
                },
            )
            raise GenerationFailure(
                "Failed to generate a new question. Please try again."
            ) from exc
        self._logger.debug(
            "Question generated",
            extra={
                "event": "generate_question",
                "difficulty": difficulty.value,
                "history_size": len(recent_history),
            },
        )
        return question

    async def generate_explanation(
        self, question: Question, incorrect_answer: Optional[str]
    ) -> str:
        prompt = build_explanation_prompt(question, incorrect_answer)
        try:
            content = await asyncio.to_thread(
                self._complete, _EXPLANATION_SYSTEM_PROMPT, prompt
            )
        except Exception as exc:
            self._logger.exception(
                "Explanation generation failed",
                extra={"event": "generate_explanation"},
            )
            raise ExplanationFailure(
                "Failed to generate an explanation. Please try again."
            ) from exc
        if not content:
            self._logger.error(
                "Explanation response was empty",
                extra={"event": "generate_explanation"},
            )
            raise ExplanationFailure(
                "Failed to generate an explanation. Please try again."
            )
        return content

    def _complete(
        self, system_prompt: str, user_prompt: str, *, json_mode: bool = False
    ) -> str:
        kwargs: dict[str, Any] = {
            "model": self._model,
            "messages": [
                {"role": "system", "content": system_prompt},
                {"role": "user", "content": user_prompt},
            ],
            "temperature": self._temperature,
            "max_tokens": self._max_tokens,
        }
        if json_mode:
            kwargs["response_format"] = {"type": "json_object"}
        response = self._client.chat.completions.create(**kwargs)
        content = response.choices[0].message.content
        return (content or "").strip()
