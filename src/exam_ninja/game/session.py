"""
Quiz Session - the game lifecycle

Coordinates:
1. Question generation (loading)
2. The round engine (playing)
3. The final answers and score (results)

Every status change goes through one transition table, so a session can
never hold questions with a mismatched answer list.
"""

import asyncio
import logging
from enum import Enum
from typing import Optional

from ..config import GameConfig, config
from ..generation.generator import GenerationError, QuestionGenerator
from ..quiz.schema import AnswerRecord, Question, QuizConfig
from .engine import RoundEngine

logger = logging.getLogger(__name__)

_USE_CONFIG = object()

GENERATION_FAILED_NOTICE = (
    "Failed to generate quiz. Please check your connection or try a different topic."
)


class SessionStatus(str, Enum):
    """Status of a quiz session."""
    IDLE = "idle"
    LOADING = "loading"
    PLAYING = "playing"
    RESULTS = "results"


TRANSITIONS: dict[SessionStatus, frozenset[SessionStatus]] = {
    SessionStatus.IDLE: frozenset({SessionStatus.LOADING}),
    SessionStatus.LOADING: frozenset({SessionStatus.PLAYING, SessionStatus.IDLE}),
    SessionStatus.PLAYING: frozenset({SessionStatus.RESULTS, SessionStatus.IDLE}),
    SessionStatus.RESULTS: frozenset({SessionStatus.LOADING, SessionStatus.IDLE}),
}


class SessionError(Exception):
    """Base exception for session lifecycle errors."""
    pass


class InvalidTransitionError(SessionError):
    """A status change that the lifecycle does not allow."""

    def __init__(self, current: SessionStatus, target: SessionStatus):
        super().__init__(f"Cannot go from {current.value} to {target.value}")
        self.current = current
        self.target = target


class QuizSession:
    """
    Owns all per-run state: questions, answers, score, status.

    idle -> loading -> playing -> results, with failures during loading
    falling back to idle and nothing retained.
    """

    def __init__(
        self,
        generator: QuestionGenerator,
        *,
        generation_timeout=_USE_CONFIG,
        auto_start: bool = True,
        game: Optional[GameConfig] = None,
    ):
        """
        Initialize session.

        Args:
            generator: Question-generation collaborator
            generation_timeout: Seconds to wait for questions; None waits
                forever (defaults to config.generation.timeout_seconds)
            auto_start: Start the round engine's timers when play begins
            game: Timing and scoring settings for the round engine
        """
        self.generator = generator
        self.generation_timeout = (
            config.generation.timeout_seconds
            if generation_timeout is _USE_CONFIG
            else generation_timeout
        )
        self.auto_start = auto_start
        self.game = game

        self._status = SessionStatus.IDLE
        self._questions: tuple[Question, ...] = ()
        self._answers: tuple[AnswerRecord, ...] = ()
        self._score = 0.0
        self._streak = 0
        self._engine: Optional[RoundEngine] = None
        self._last_config: Optional[QuizConfig] = None
        self._notice: Optional[str] = None
        self._load_token = 0

    # ------------------------------------------------------------------
    # Observable state
    # ------------------------------------------------------------------

    @property
    def status(self) -> SessionStatus:
        return self._status

    @property
    def questions(self) -> tuple[Question, ...]:
        return self._questions

    @property
    def answers(self) -> tuple[AnswerRecord, ...]:
        if self._status == SessionStatus.PLAYING and self._engine is not None:
            return self._engine.answers
        return self._answers

    @property
    def score(self) -> float:
        if self._status == SessionStatus.PLAYING and self._engine is not None:
            return self._engine.score
        return self._score

    @property
    def streak(self) -> int:
        if self._status == SessionStatus.PLAYING and self._engine is not None:
            return self._engine.streak
        return self._streak

    @property
    def current_index(self) -> int:
        if self._status == SessionStatus.PLAYING and self._engine is not None:
            return self._engine.current_index
        if self._status == SessionStatus.RESULTS:
            return len(self._questions)
        return 0

    @property
    def engine(self) -> Optional[RoundEngine]:
        return self._engine

    @property
    def notice(self) -> Optional[str]:
        """User-visible message from the last failed generation."""
        return self._notice

    @property
    def last_config(self) -> Optional[QuizConfig]:
        return self._last_config

    def _transition(self, target: SessionStatus) -> None:
        if target not in TRANSITIONS[self._status]:
            raise InvalidTransitionError(self._status, target)
        logger.info(f"Session {self._status.value} -> {target.value}")
        self._status = target

    # ------------------------------------------------------------------
    # Triggers
    # ------------------------------------------------------------------

    async def start(self, quiz_config: QuizConfig) -> SessionStatus:
        """
        Request a new quiz (idle -> loading -> playing | idle).

        Args:
            quiz_config: Topic, exam type, difficulty and question count

        Returns:
            The status after loading: PLAYING on success, IDLE on failure

        Raises:
            ValueError: If the configuration is invalid
            InvalidTransitionError: If the session is not idle
        """
        is_valid, errors = quiz_config.validate()
        if not is_valid:
            raise ValueError("; ".join(errors))
        if self._status != SessionStatus.IDLE:
            raise InvalidTransitionError(self._status, SessionStatus.LOADING)

        return await self._load(quiz_config)

    async def restart(self) -> SessionStatus:
        """
        Replay with the last configuration (results -> loading).

        Raises:
            InvalidTransitionError: If the session is not showing results
        """
        if self._status != SessionStatus.RESULTS:
            raise InvalidTransitionError(self._status, SessionStatus.LOADING)
        if self._last_config is None:
            raise SessionError("No previous quiz configuration to replay")

        return await self._load(self._last_config)

    def home(self) -> None:
        """
        Discard the session and return to idle.

        Allowed from results, and from loading or playing to abandon the
        request or the game. A no-op when already idle.
        """
        if self._status == SessionStatus.IDLE:
            return
        self._load_token += 1
        self._transition(SessionStatus.IDLE)
        self._teardown_engine()
        self._reset()

    async def wait_for_results(self) -> SessionStatus:
        """
        Wait for the running game to finish.

        Returns:
            RESULTS when the game completed, or the current status if it
            was abandoned first
        """
        if self._status == SessionStatus.PLAYING and self._engine is not None:
            await self._engine.wait_complete()
        return self._status

    # ------------------------------------------------------------------
    # Internals
    # ------------------------------------------------------------------

    async def _load(self, quiz_config: QuizConfig) -> SessionStatus:
        self._transition(SessionStatus.LOADING)
        self._teardown_engine()
        self._reset()
        self._load_token += 1
        token = self._load_token

        error: Optional[Exception] = None
        try:
            questions = await self._generate(quiz_config)
        except Exception as e:
            questions, error = [], e

        # home() abandoned this request, possibly followed by a newer start()
        if token != self._load_token:
            logger.debug("Discarding the result of an abandoned load")
            return self._status

        if isinstance(error, asyncio.TimeoutError):
            logger.warning(f"Question generation timed out after {self.generation_timeout}s")
            return self._fail()
        if isinstance(error, GenerationError):
            logger.warning(f"Question generation failed: {error}")
            return self._fail()
        if error is not None:
            logger.error("Unexpected error during question generation", exc_info=error)
            return self._fail()

        if not questions:
            logger.warning("Question generation returned no questions")
            return self._fail()

        try:
            self._begin(questions, quiz_config)
        except ValueError as e:
            logger.error(f"Rejected generated question set: {e}")
            return self._fail()
        return self._status

    async def _generate(self, quiz_config: QuizConfig) -> list[Question]:
        request = self.generator.generate(
            topic=quiz_config.topic,
            exam_type=quiz_config.exam_type,
            difficulty=quiz_config.difficulty,
            count=quiz_config.question_count,
        )
        if self.generation_timeout:
            return await asyncio.wait_for(request, timeout=self.generation_timeout)
        return await request

    def _begin(self, questions: list[Question], quiz_config: QuizConfig) -> None:
        engine = RoundEngine(questions, on_complete=self._handle_complete, game=self.game)

        self._questions = engine.questions
        self._answers = ()
        self._score = 0.0
        self._streak = 0
        self._engine = engine
        self._last_config = quiz_config
        self._transition(SessionStatus.PLAYING)

        if self.auto_start:
            engine.start()

    def _fail(self) -> SessionStatus:
        if self._status != SessionStatus.LOADING:
            return self._status
        self._reset()
        self._notice = GENERATION_FAILED_NOTICE
        self._transition(SessionStatus.IDLE)
        return self._status

    def _handle_complete(self, answers: list[AnswerRecord], final_score: float) -> None:
        """Completion callback from the round engine."""
        if self._status != SessionStatus.PLAYING:
            return
        if len(answers) != len(self._questions):
            raise SessionError(
                f"Round ended with {len(answers)} answers for {len(self._questions)} questions"
            )

        self._answers = tuple(answers)
        self._score = final_score
        if self._engine is not None:
            self._streak = self._engine.streak
        self._transition(SessionStatus.RESULTS)

    def _teardown_engine(self) -> None:
        if self._engine is not None:
            self._engine.close()
            self._engine = None

    def _reset(self) -> None:
        self._questions = ()
        self._answers = ()
        self._score = 0.0
        self._streak = 0
        self._notice = None

    def to_dict(self) -> dict:
        return {
            "status": self._status.value,
            "questions": [q.to_dict() for q in self._questions],
            "current_index": self.current_index,
            "score": self.score,
            "streak": self.streak,
            "answers": [a.to_dict() for a in self.answers],
            "notice": self._notice,
            "last_config": self._last_config.to_dict() if self._last_config else None,
        }
