"""Textual front-end for a quiz session."""

from __future__ import annotations

import logging
from typing import Optional

from rich.text import Text
from textual.app import App, ComposeResult
from textual.binding import Binding
from textual.containers import Horizontal, Vertical
from textual.css.query import NoMatches
from textual.widgets import Button, Footer, Static

from .controller import QuizSessionController
from .generator import QuestionGenerator
from .models import (
    DEFAULT_HISTORY_SIZE,
    DEFAULT_TIME_LIMIT,
    OPTION_COUNT,
    Difficulty,
    Phase,
    Question,
    SessionState,
)

__all__ = ["QuizApp", "explanation_text"]


def explanation_text(explanation: str) -> Text:
    """Heading plus one paragraph per non-blank line."""
    paragraphs = [line.strip() for line in explanation.splitlines() if line.strip()]
    text = Text("Let's break it down:\n", style="bold blue")
    text.append("\n\n".join(paragraphs))
    return text


class QuizApp(App):
    TITLE = "GED Math Quizzer"
    SUB_TITLE = "Sharpen your skills for test day!"
    CSS = """
#status { height: 3; }
#score, #timer { width: 1fr; content-align: center middle; text-style: bold; }
#timer.low { color: $error; }
#levels { height: 3; align: center middle; }
#levels Button.active { background: $accent; }
#stage { padding: 1 2; }
#question { text-style: bold; margin-bottom: 1; }
#choices Button { width: 100%; }
#choices Button.correct { background: $success; }
#choices Button.wrong { background: $error; }
#message.error, #explanation.error { color: $error; }
#actions { height: 3; align: center middle; }
"""
    BINDINGS = [
        Binding("a", "answer(0)", "A"),
        Binding("b", "answer(1)", "B"),
        Binding("c", "answer(2)", "C"),
        Binding("d", "answer(3)", "D"),
        Binding("n", "next", "Next"),
        Binding("r", "retry", "Retry"),
        Binding("e", "difficulty('easy')", "Easy"),
        Binding("m", "difficulty('medium')", "Medium"),
        Binding("h", "difficulty('hard')", "Hard"),
        Binding("q", "quit", "Quit"),
    ]

    def __init__(
        self,
        generator: QuestionGenerator,
        *,
        difficulty: Difficulty = Difficulty.MEDIUM,
        time_limit: int = DEFAULT_TIME_LIMIT,
        history_size: int = DEFAULT_HISTORY_SIZE,
        tick_interval: float = 1.0,
        logger: Optional[logging.Logger] = None,
    ) -> None:
        super().__init__()
        self.controller = QuizSessionController(
            generator,
            difficulty=difficulty,
            time_limit=time_limit,
            history_size=history_size,
            tick_interval=tick_interval,
            on_change=self._on_state_change,
            logger=logger,
        )

    def compose(self) -> ComposeResult:
        with Horizontal(id="status"):
            yield Static(id="score")
            yield Static(id="timer")
        with Horizontal(id="levels"):
            for level in Difficulty:
                yield Button(level.value.capitalize(), id=f"level-{level.value}")
        with Vertical(id="stage"):
            yield Static(id="message")
            yield Static(id="question")
            with Vertical(id="choices"):
                for index in range(OPTION_COUNT):
                    yield Button("", id=f"choice-{index}")
            yield Static(id="explanation")
            with Horizontal(id="actions"):
                yield Button("Try Again", id="retry", variant="error")
                yield Button("Next Question", id="next", variant="primary")
        yield Footer()

    def on_mount(self) -> None:
        self._on_state_change(self.controller.state)
        self.run_worker(self.controller.start(), name="start")

    def on_unmount(self) -> None:
        self.controller.close()

    def action_answer(self, index: int) -> None:
        self.controller.select_answer(index)

    def action_next(self) -> None:
        if self.controller.can_advance:
            self.run_worker(self.controller.next_question(), name="next")

    def action_retry(self) -> None:
        if self.controller.can_retry:
            self.run_worker(self.controller.retry(), name="retry")

    def action_difficulty(self, level: str) -> None:
        self.run_worker(
            self.controller.start_or_switch_difficulty(level),
            name="difficulty",
        )

    def on_button_pressed(self, event: Button.Pressed) -> None:
        button_id = event.button.id or ""
        if button_id.startswith("choice-"):
            self.action_answer(int(button_id.removeprefix("choice-")))
        elif button_id.startswith("level-"):
            self.action_difficulty(button_id.removeprefix("level-"))
        elif button_id == "next":
            self.action_next()
        elif button_id == "retry":
            self.action_retry()

    def _on_state_change(self, state: SessionState) -> None:
        try:
            self._render_status(state)
            self._render_round(state)
        except NoMatches:
            # Not composed yet, or already torn down.
            return

    def _render_status(self, state: SessionState) -> None:
        self.query_one("#score", Static).update(
            f"Score: {state.score} / {state.questions_answered}"
        )
        timer = self.query_one("#timer", Static)
        timer.update(f"Time Left: {self.controller.format_time_left()}")
        timer.set_class(self.controller.is_time_low, "low")
        for level in Difficulty:
            button = self.query_one(f"#level-{level.value}", Button)
            button.set_class(level is state.difficulty, "active")

    def _render_round(self, state: SessionState) -> None:
        message = self.query_one("#message", Static)
        message.set_class(state.phase is Phase.ERROR, "error")
        if state.phase is Phase.LOADING_QUESTION:
            message.update("Generating a new question...")
        elif state.phase is Phase.ERROR:
            message.update(state.error or "")
        else:
            message.update("")

        question = state.question
        self.query_one("#question", Static).update(
            question.question if question else ""
        )
        for index in range(OPTION_COUNT):
            self._render_choice(index, question, state)

        explanation = self.query_one("#explanation", Static)
        explanation.set_class(False, "error")
        if state.loading_explanation:
            explanation.update("Generating explanation...")
        elif state.explanation:
            explanation.update(explanation_text(state.explanation))
        elif state.is_answered and state.error:
            explanation.set_class(True, "error")
            explanation.update(state.error)
        else:
            explanation.update("")

        self.query_one("#retry", Button).display = self.controller.can_retry
        self.query_one("#next", Button).display = self.controller.can_advance

    def _render_choice(
        self, index: int, question: Optional[Question], state: SessionState
    ) -> None:
        button = self.query_one(f"#choice-{index}", Button)
        button.display = question is not None
        if question is None:
            return
        button.label = f"{Question.option_label(index)}. {question.options[index]}"
        button.disabled = state.is_answered
        is_correct = index == question.correct_answer_index
        button.set_class(state.is_answered and is_correct, "correct")
        button.set_class(
            state.is_answered and index == state.selected_index and not is_correct,
            "wrong",
        )
