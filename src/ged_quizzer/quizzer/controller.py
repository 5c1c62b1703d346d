"""Quiz session controller: round lifecycle, countdown and scoring.

One controller owns one :class:`SessionState`. Views read ``state`` and call
the controller's operations; they never write to the state directly.

Round lifecycle::

    LOADING_QUESTION -> READY -> ANSWERED (loading_explanation?) -> LOADING_QUESTION
           |
           +-> ERROR -> (retry) -> LOADING_QUESTION

A user click and the countdown reaching zero both end up in
:meth:`QuizSessionController.select_answer`. The ``is_answered`` flag is
checked and set there before any ``await``, so whichever arrives first is
the only answer recorded.
"""

from __future__ import annotations

import asyncio
import logging
from typing import Callable, Optional, Sequence

from .generator import QuestionGenerator
from .models import (
    DEFAULT_HISTORY_SIZE,
    DEFAULT_TIME_LIMIT,
    MAX_HISTORY_SIZE,
    TIMEOUT_INDEX,
    Difficulty,
    Phase,
    Question,
    SessionState,
)
from .timer import CountdownTimer

__all__ = ["LOW_TIME_THRESHOLD", "QuizSessionController"]

LOW_TIME_THRESHOLD = 10

_QUESTION_FALLBACK = "An unknown error occurred."
_EXPLANATION_FALLBACK = "Could not fetch explanation."

StateListener = Callable[[SessionState], None]


class QuizSessionController:
    """Drive quiz rounds against a :class:`QuestionGenerator`."""

    def __init__(
        self,
        generator: QuestionGenerator,
        *,
        difficulty: Difficulty | str = Difficulty.MEDIUM,
        time_limit: int = DEFAULT_TIME_LIMIT,
        history_size: int = DEFAULT_HISTORY_SIZE,
        tick_interval: float = 1.0,
        on_change: Optional[StateListener] = None,
        logger: Optional[logging.Logger] = None,
    ) -> None:
        if time_limit <= 0:
            raise ValueError("time_limit must be a positive number of seconds")
        if not 1 <= history_size <= MAX_HISTORY_SIZE:
            raise ValueError(
                f"history_size must be between 1 and {MAX_HISTORY_SIZE}"
            )
        self._generator = generator
        self._time_limit = time_limit
        self._history_size = history_size
        self._on_change = on_change
        self._logger = logger or logging.getLogger("ged_quizzer.quizzer")
        self._timer = CountdownTimer(
            self.tick, interval=tick_interval, logger=self._logger
        )
        self._fetch_task: Optional[asyncio.Task[None]] = None
        self._explanation_task: Optional[asyncio.Task[None]] = None
        self._state = self._new_state(Difficulty.parse(difficulty))

    @property
    def state(self) -> SessionState:
        return self._state

    @property
    def time_limit(self) -> int:
        return self._time_limit

    @property
    def timer_running(self) -> bool:
        return self._timer.running

    @property
    def can_advance(self) -> bool:
        return self._state.is_answered

    @property
    def can_retry(self) -> bool:
        return self._state.phase is Phase.ERROR

    @property
    def is_time_low(self) -> bool:
        return self._state.time_left <= LOW_TIME_THRESHOLD

    def format_time_left(self) -> str:
        minutes, seconds = divmod(max(self._state.time_left, 0), 60)
        return f"{minutes:02d}:{seconds:02d}"

    async def start(self) -> None:
        """Fetch the first question of the session."""
        await self.fetch_next_question()

    async def start_or_switch_difficulty(
        self, level: Difficulty | str
    ) -> bool:
        """Start over at ``level``; no-op when it is already current.

        Score, answered count and history are reset, and any in-flight
        round is abandoned without affecting the score.
        """
        level = Difficulty.parse(level)
        if level is self._state.difficulty:
            return False
        previous = self._state.difficulty
        self._abort_round()
        self._state = self._new_state(level)
        self._logger.info(
            "Difficulty switched",
            extra={
                "event": "difficulty",
                "previous": previous.value,
                "difficulty": level.value,
            },
        )
        await self.fetch_next_question()
        return True

    def request_next_question(self) -> asyncio.Task[None]:
        """Reset the round and schedule a question fetch.

        The previous fetch, pending explanation and countdown are cancelled
        first. Returns the fetch task.
        """
        self._abort_round()
        state = self._state
        state.clear_round()
        state.phase = Phase.LOADING_QUESTION
        task = asyncio.get_running_loop().create_task(
            self._load_question(state, state.history_snapshot()),
            name="quiz-fetch-question",
        )
        self._fetch_task = task
        self._notify()
        return task

    async def fetch_next_question(self) -> None:
        task = self.request_next_question()
        await asyncio.wait({task})
        # A newer fetch may have replaced this one.
        if not task.cancelled():
            task.result()

    async def next_question(self) -> bool:
        """Advance after an answered round."""
        if not self.can_advance:
            return False
        await self.fetch_next_question()
        return True

    async def retry(self) -> bool:
        """Re-run a failed question fetch."""
        if not self.can_retry:
            return False
        self._logger.info(
            "Retrying question fetch", extra={"event": "retry"}
        )
        await self.fetch_next_question()
        return True

    def select_answer(self, index: int) -> bool:
        """Record the answer for the current question.

        ``index`` is the chosen option or ``TIMEOUT_INDEX`` when time ran
        out. Returns False when there is no open question to answer.
        """
        state = self._state
        question = state.question
        if question is None or state.is_answered:
            return False
        if index != TIMEOUT_INDEX and not 0 <= index < len(question.options):
            raise ValueError(f"Answer index out of range: {index}")

        state.is_answered = True
        state.selected_index = index
        state.questions_answered += 1
        state.phase = Phase.ANSWERED
        self._timer.cancel()

        correct = index == question.correct_answer_index
        if correct:
            state.score += 1
        self._logger.info(
            "Answer recorded",
            extra={
                "event": "answer",
                "selected_index": index,
                "correct": correct,
                "score": state.score,
                "questions_answered": state.questions_answered,
            },
        )
        if not correct:
            incorrect = None if index == TIMEOUT_INDEX else question.options[index]
            state.loading_explanation = True
            self._explanation_task = asyncio.get_running_loop().create_task(
                self._load_explanation(state, question, incorrect),
                name="quiz-fetch-explanation",
            )
        self._notify()
        return True

    async def wait_for_explanation(self) -> None:
        task = self._explanation_task
        if task is not None:
            await asyncio.wait({task})

    def tick(self) -> None:
        """Advance the countdown by one second; auto-submit at zero."""
        state = self._state
        if state.phase is not Phase.READY or state.is_answered:
            return
        if state.time_left > 0:
            state.time_left -= 1
        if state.time_left > 0:
            self._notify()
            return
        self._timer.cancel()
        self._logger.info(
            "Question timed out", extra={"event": "timeout"}
        )
        self.select_answer(TIMEOUT_INDEX)

    def close(self) -> None:
        """Stop the countdown and drop any in-flight requests."""
        self._abort_round()
        self._logger.debug("Session closed", extra={"event": "close"})

    def _new_state(self, difficulty: Difficulty) -> SessionState:
        return SessionState(
            difficulty=difficulty,
            time_left=self._time_limit,
            history_size=self._history_size,
        )

    def _abort_round(self) -> None:
        self._timer.cancel()
        for task in (self._fetch_task, self._explanation_task):
            if task is not None and not task.done():
                task.cancel()
        self._fetch_task = None
        self._explanation_task = None

    async def _load_question(
        self, state: SessionState, history: Sequence[str]
    ) -> None:
        try:
            question = await self._generator.generate_question(
                state.difficulty, history
            )
        except Exception as exc:
            state.phase = Phase.ERROR
            state.error = _describe(exc, _QUESTION_FALLBACK)
            self._logger.warning(
                "Question fetch failed",
                extra={"event": "fetch", "error": state.error},
            )
            self._notify()
            return
        self._present(state, question)

    def _present(self, state: SessionState, question: Question) -> None:
        state.question = question
        state.remember(question.question)
        state.time_left = self._time_limit
        state.phase = Phase.READY
        self._timer.start()
        self._logger.debug(
            "Question ready",
            extra={
                "event": "fetch",
                "difficulty": state.difficulty.value,
                "history": list(state.recent_history),
            },
        )
        self._notify()

    async def _load_explanation(
        self,
        state: SessionState,
        question: Question,
        incorrect_answer: Optional[str],
    ) -> None:
        try:
            text = await self._generator.generate_explanation(
                question, incorrect_answer
            )
        except Exception as exc:
            state.error = _describe(exc, _EXPLANATION_FALLBACK)
            self._logger.warning(
                "Explanation fetch failed",
                extra={"event": "explanation", "error": state.error},
            )
        else:
            if text and text.strip():
                state.explanation = text.strip()
            else:
                state.error = _EXPLANATION_FALLBACK
        state.loading_explanation = False
        self._notify()

    def _notify(self) -> None:
        if self._on_change is not None:
            self._on_change(self._state)


def _describe(exc: BaseException, fallback: str) -> str:
    message = str(exc).strip()
    return message or fallback
