"""
Round Engine - runs the timed question loop

Drives each question through countdown, selection, submission, scoring and
auto-advance. The engine is usable two ways:

- started (start() inside a running event loop): a countdown task calls
  tick() once per time unit and a deferred call advances after feedback;
- manual: callers invoke tick()/advance() themselves, which keeps tests
  deterministic.

All timers belong to the engine instance and are cancelled when a question
is answered, when the engine advances, and on close().
"""

import asyncio
import logging
from typing import Callable, Iterable, Optional

from ..config import GameConfig, config
from ..quiz.schema import AnswerRecord, Question, QuestionType
from .rules import evaluate_answer, score_answer

logger = logging.getLogger(__name__)

CompletionCallback = Callable[[list[AnswerRecord], float], None]
Listener = Callable[[str, "RoundEngine"], None]

# Events passed to listeners
TICK = "tick"
ANSWERED = "answered"
QUESTION = "question"
COMPLETE = "complete"


class RoundEngine:
    """
    Plays a fixed sequence of questions, one round at a time.

    Exposes read-only state for rendering (current question, time left,
    score, streak, combo, answered/feedback) and two user actions:
    selecting (select/enter_text) and submit().
    """

    def __init__(
        self,
        questions: Iterable[Question],
        on_complete: Optional[CompletionCallback] = None,
        *,
        game: Optional[GameConfig] = None,
    ):
        """
        Initialize engine.

        Args:
            questions: Non-empty sequence of questions with unique ids
            on_complete: Called once with (answers, final_score) after the
                last question's answer is recorded
            game: Timing and scoring settings (defaults to config.game)

        Raises:
            ValueError: If the question sequence is empty or malformed
        """
        questions = tuple(questions)
        if not questions:
            raise ValueError("RoundEngine needs at least one question")
        for q in questions:
            if not isinstance(q, Question):
                raise ValueError(f"Expected Question, got {type(q).__name__}")
        if len({q.id for q in questions}) != len(questions):
            raise ValueError("Question ids must be unique")

        self._questions = questions
        self._on_complete = on_complete
        self._game = game or config.game
        self._listeners: list[Listener] = []

        self._index = 0
        self._time_left = self._game.time_limit
        self._selection: list[str] = []
        self._text = ""
        self._answered = False

        self._answers: list[AnswerRecord] = []
        self._score = 0.0
        self._streak = 0
        self._combo = 1.0

        self._complete = False
        self._closed = False
        self._loop: Optional[asyncio.AbstractEventLoop] = None
        self._countdown_task: Optional[asyncio.Task] = None
        self._advance_handle: Optional[asyncio.TimerHandle] = None
        self._completion: Optional[asyncio.Future] = None

    # ------------------------------------------------------------------
    # Observable state
    # ------------------------------------------------------------------

    @property
    def questions(self) -> tuple[Question, ...]:
        return self._questions

    @property
    def current_question(self) -> Question:
        return self._questions[self._index]

    @property
    def current_index(self) -> int:
        return self._index

    @property
    def total(self) -> int:
        return len(self._questions)

    @property
    def time_limit(self) -> int:
        return self._game.time_limit

    @property
    def time_left(self) -> int:
        return self._time_left

    @property
    def selection(self) -> tuple[str, ...]:
        """Options picked so far (MCQ/MSQ)."""
        return tuple(self._selection)

    @property
    def text_input(self) -> str:
        """Raw typed answer (NAT)."""
        return self._text

    @property
    def is_answered(self) -> bool:
        return self._answered

    @property
    def is_complete(self) -> bool:
        return self._complete

    @property
    def is_closed(self) -> bool:
        return self._closed

    @property
    def is_running(self) -> bool:
        """Whether timers are driven by the event loop."""
        return self._loop is not None and not self._closed

    @property
    def score(self) -> float:
        return self._score

    @property
    def streak(self) -> int:
        return self._streak

    @property
    def combo_multiplier(self) -> float:
        return self._combo

    @property
    def answers(self) -> tuple[AnswerRecord, ...]:
        return tuple(self._answers)

    @property
    def last_answer(self) -> Optional[AnswerRecord]:
        """The answer for the current question while its feedback shows."""
        if self._answered and self._answers:
            return self._answers[-1]
        return None

    @property
    def progress(self) -> tuple[int, int]:
        """(answered, total)"""
        return (len(self._answers), len(self._questions))

    def subscribe(self, listener: Listener) -> None:
        """Register a callback for tick/answered/question/complete events."""
        self._listeners.append(listener)

    def _notify(self, event: str) -> None:
        for listener in list(self._listeners):
            listener(event, self)

    # ------------------------------------------------------------------
    # User actions
    # ------------------------------------------------------------------

    def _accepting_input(self) -> bool:
        return not (self._closed or self._complete or self._answered)

    def select(self, option: str) -> None:
        """
        Pick an option on the current question.

        MCQ replaces the selection; MSQ toggles the option. No-op for NAT
        and once the question is answered.

        Raises:
            ValueError: If the option does not belong to the question
        """
        if not self._accepting_input():
            return

        question = self.current_question
        if question.type == QuestionType.NAT:
            return
        if option not in question.options:
            raise ValueError(f"{option!r} is not an option of question {question.id}")

        if question.type == QuestionType.MCQ:
            self._selection = [option]
        elif option in self._selection:
            self._selection.remove(option)
        else:
            self._selection.append(option)

    def enter_text(self, text: str) -> None:
        """Set the typed answer for a NAT question. No-op otherwise."""
        if not self._accepting_input():
            return
        if self.current_question.type == QuestionType.NAT:
            self._text = text

    def submit(self) -> Optional[AnswerRecord]:
        """
        Evaluate and score the current question.

        Runs at most once per question; later calls return None and change
        nothing.

        Returns:
            The new AnswerRecord, or None if the call was redundant
        """
        if not self._accepting_input():
            return None

        question = self.current_question
        if question.type == QuestionType.NAT:
            selection = [self._text.strip()]
        else:
            selection = list(self._selection)

        is_correct = evaluate_answer(question, selection)
        update = score_answer(
            question.type,
            is_correct,
            self._time_left,
            self._score,
            self._streak,
            self._combo,
            self._game,
        )
        self._score = update.score
        self._streak = update.streak
        self._combo = update.combo_multiplier

        record = AnswerRecord(
            question_id=question.id,
            selected_options=tuple(selection),
            is_correct=is_correct,
            time_taken=self._game.time_limit - self._time_left,
        )
        self._answers.append(record)
        self._answered = True

        logger.debug(
            f"Question {self._index + 1}/{self.total} answered: correct={is_correct} "
            f"points={update.points:+.1f} score={self._score:.1f} combo={self._combo}"
        )

        self._cancel_countdown()
        self._schedule_advance()
        self._notify(ANSWERED)
        return record

    # ------------------------------------------------------------------
    # Time
    # ------------------------------------------------------------------

    def tick(self) -> None:
        """
        Consume one time unit on the current question.

        Reaching zero submits whatever is selected. No-op once answered.
        """
        if not self._accepting_input():
            return

        self._time_left = max(0, self._time_left - 1)
        self._notify(TICK)

        if self._time_left == 0:
            logger.debug(f"Time expired on question {self._index + 1}")
            self.submit()

    def advance(self) -> None:
        """
        Move past an answered question.

        Resets the round for the next question, or reports completion after
        the last one. No-op while the current question is unanswered.
        """
        if self._closed or self._complete or not self._answered:
            return

        self._cancel_advance()

        if self._index + 1 >= len(self._questions):
            self._finish()
            return

        self._index += 1
        self._time_left = self._game.time_limit
        self._selection = []
        self._text = ""
        self._answered = False

        self._start_countdown()
        self._notify(QUESTION)

    def _finish(self) -> None:
        self._complete = True
        self._cancel_timers()

        answers = list(self._answers)
        logger.info(f"Round complete: {len(answers)} answers, score {self._score:.1f}")

        if self._on_complete is not None:
            self._on_complete(answers, self._score)
        if self._completion is not None and not self._completion.done():
            self._completion.set_result((answers, self._score))
        self._notify(COMPLETE)

    # ------------------------------------------------------------------
    # Scheduling
    # ------------------------------------------------------------------

    def start(self) -> None:
        """
        Drive the timers from the running event loop.

        Must be called from inside a coroutine.
        """
        if self._closed:
            raise RuntimeError("Cannot start a closed RoundEngine")
        if self._loop is not None:
            return

        self._loop = asyncio.get_running_loop()
        if self._answered:
            self._schedule_advance()
        else:
            self._start_countdown()

    async def wait_complete(self) -> Optional[tuple[list[AnswerRecord], float]]:
        """
        Wait until the last question is answered and advanced past.

        Returns:
            (answers, final_score), or None if the engine was closed first
        """
        if self._complete:
            return (list(self._answers), self._score)
        if self._closed:
            return None
        if self._completion is None:
            self._completion = asyncio.get_running_loop().create_future()
        return await self._completion

    def close(self) -> None:
        """Tear down: cancel every pending timer and ignore further actions."""
        if self._closed:
            return
        self._closed = True
        self._cancel_timers()
        if self._completion is not None and not self._completion.done():
            self._completion.set_result(None)
        logger.debug("Round engine closed")

    def _start_countdown(self) -> None:
        self._cancel_timers()
        if self._loop is None or self._closed:
            return
        self._countdown_task = self._loop.create_task(self._run_countdown(self._index))

    async def _run_countdown(self, index: int) -> None:
        while True:
            await asyncio.sleep(self._game.tick_seconds)
            if self._closed or self._answered or self._index != index:
                return
            self.tick()

    def _schedule_advance(self) -> None:
        self._cancel_advance()
        if self._loop is None or self._closed:
            return
        delay = self._game.advance_delay * self._game.tick_seconds
        self._advance_handle = self._loop.call_later(delay, self._auto_advance)

    def _auto_advance(self) -> None:
        self._advance_handle = None
        self.advance()

    def _cancel_countdown(self) -> None:
        task = self._countdown_task
        self._countdown_task = None
        if task is None or task.done():
            return
        try:
            current = asyncio.current_task()
        except RuntimeError:
            current = None
        # A timeout submits from inside the countdown task; it exits on its own.
        if task is not current:
            task.cancel()

    def _cancel_advance(self) -> None:
        if self._advance_handle is not None:
            self._advance_handle.cancel()
            self._advance_handle = None

    def _cancel_timers(self) -> None:
        self._cancel_countdown()
        self._cancel_advance()

    def to_dict(self) -> dict:
        """Snapshot of the state a renderer needs."""
        last = self.last_answer
        return {
            "question": self.current_question.to_dict() if not self._complete else None,
            "index": self._index,
            "total": self.total,
            "time_left": self._time_left,
            "selection": list(self._selection),
            "text_input": self._text,
            "is_answered": self._answered,
            "is_complete": self._complete,
            "score": self._score,
            "streak": self._streak,
            "combo_multiplier": self._combo,
            "feedback": last.to_dict() if last else None,
        }
