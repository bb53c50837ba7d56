"""
Tests for the timed round engine.
"""

import asyncio

import pytest

from exam_ninja.config import GameConfig
from exam_ninja.game.engine import RoundEngine, ANSWERED, COMPLETE, QUESTION, TICK
from exam_ninja.quiz.schema import Question, QuestionType


def sample_questions() -> list[Question]:
    return [
        Question(
            id="q1",
            type=QuestionType.MCQ,
            text="2 + 2 = ?",
            options=("3", "4", "5", "6"),
            correct_answer=("4",),
            explanation="Basic addition.",
        ),
        Question(
            id="q2",
            type=QuestionType.MSQ,
            text="Which are prime?",
            options=("2", "3", "4", "9"),
            correct_answer=("2", "3"),
            explanation="2 and 3 have no other divisors.",
        ),
        Question(
            id="q3",
            type=QuestionType.NAT,
            text="6 x 7 = ?",
            correct_answer=("42",),
            explanation="Multiplication.",
        ),
    ]


def fast_game(**overrides) -> GameConfig:
    settings = dict(time_limit=3, advance_delay=2.5, tick_seconds=0.001)
    settings.update(overrides)
    return GameConfig(**settings)


class TestConstruction:
    """Tests for RoundEngine construction."""

    def test_initial_state(self):
        """Test a fresh engine sits on the first question."""
        engine = RoundEngine(sample_questions())

        assert engine.current_index == 0
        assert engine.current_question.id == "q1"
        assert engine.total == 3
        assert engine.time_left == 30
        assert engine.score == 0.0
        assert engine.streak == 0
        assert engine.combo_multiplier == 1.0
        assert engine.is_answered is False
        assert engine.is_complete is False
        assert engine.answers == ()

    def test_empty_questions_rejected(self):
        """Test an empty question list is refused."""
        with pytest.raises(ValueError):
            RoundEngine([])

    def test_duplicate_ids_rejected(self):
        """Test duplicate question ids are refused."""
        q = sample_questions()[0]
        with pytest.raises(ValueError):
            RoundEngine([q, q])

    def test_non_question_rejected(self):
        """Test raw dicts are refused."""
        with pytest.raises(ValueError):
            RoundEngine([{"id": "q1"}])


class TestSelection:
    """Tests for selecting options."""

    def test_mcq_replaces_selection(self):
        """Test MCQ keeps only the latest pick."""
        engine = RoundEngine(sample_questions())
        engine.select("3")
        engine.select("4")

        assert engine.selection == ("4",)

    def test_msq_toggles(self):
        """Test MSQ picks toggle on and off."""
        engine = RoundEngine(sample_questions())
        engine.select("4")
        engine.submit()
        engine.advance()

        engine.select("2")
        engine.select("3")
        engine.select("2")

        assert engine.selection == ("3",)

    def test_foreign_option_rejected(self):
        """Test an option from another question is refused."""
        engine = RoundEngine(sample_questions())
        with pytest.raises(ValueError):
            engine.select("42")

    def test_select_ignored_after_answer(self):
        """Test selection is frozen once answered."""
        engine = RoundEngine(sample_questions())
        engine.select("4")
        engine.submit()
        engine.select("3")

        assert engine.selection == ("4",)

    def test_text_only_for_nat(self):
        """Test typed input is ignored on choice questions."""
        engine = RoundEngine(sample_questions())
        engine.enter_text("4")

        assert engine.text_input == ""


class TestSubmit:
    """Tests for submitting answers."""

    def test_correct_mcq(self):
        """Test a correct answer scores and starts a streak."""
        engine = RoundEngine(sample_questions())
        for _ in range(10):
            engine.tick()
        engine.select("4")
        record = engine.submit()

        assert record.is_correct is True
        assert record.question_id == "q1"
        assert record.selected_options == ("4",)
        assert record.time_taken == 10
        assert engine.score == 140
        assert engine.streak == 1
        assert engine.combo_multiplier == 1.2
        assert engine.is_answered is True
        assert engine.last_answer == record

    def test_double_submit_ignored(self):
        """Test a second submit records nothing."""
        engine = RoundEngine(sample_questions())
        engine.select("4")
        engine.submit()
        assert engine.submit() is None

        assert len(engine.answers) == 1
        assert engine.streak == 1

    def test_nat_uses_trimmed_text(self):
        """Test NAT submits the trimmed typed value."""
        engine = RoundEngine(sample_questions()[2:])
        engine.enter_text(" 42 ")
        record = engine.submit()

        assert record.selected_options == ("42",)
        assert record.is_correct is True

    def test_wrong_answer_resets_combo(self):
        """Test a wrong answer resets streak and combo."""
        engine = RoundEngine(sample_questions())
        engine.select("4")
        engine.submit()
        engine.advance()

        engine.select("2")
        engine.submit()

        assert engine.streak == 0
        assert engine.combo_multiplier == 1.0
        assert engine.score == 160  # MSQ carries no penalty


class TestTimer:
    """Tests for tick-driven timeouts."""

    def test_tick_counts_down(self):
        """Test each tick removes one unit."""
        engine = RoundEngine(sample_questions())
        engine.tick()
        engine.tick()

        assert engine.time_left == 28

    def test_timeout_submits_selection(self):
        """Test reaching zero submits whatever is selected."""
        engine = RoundEngine(sample_questions())
        for _ in range(30):
            engine.tick()

        assert engine.time_left == 0
        assert engine.is_answered is True
        record = engine.answers[0]
        assert record.selected_options == ()
        assert record.is_correct is False
        assert record.time_taken == 30

    def test_timeout_with_correct_selection(self):
        """Test a correct pick still counts when time runs out."""
        engine = RoundEngine(sample_questions())
        engine.select("4")
        for _ in range(30):
            engine.tick()

        assert engine.answers[0].is_correct is True
        assert engine.score == 100

    def test_tick_ignored_after_answer(self):
        """Test the clock stops once answered."""
        engine = RoundEngine(sample_questions())
        engine.submit()
        engine.tick()

        assert engine.time_left == 30


class TestAdvance:
    """Tests for moving between questions."""

    def test_advance_requires_answer(self):
        """Test advance is a no-op before submission."""
        engine = RoundEngine(sample_questions())
        engine.advance()

        assert engine.current_index == 0

    def test_advance_resets_round(self):
        """Test the next question starts fresh."""
        engine = RoundEngine(sample_questions())
        engine.tick()
        engine.select("4")
        engine.submit()
        engine.advance()

        assert engine.current_index == 1
        assert engine.time_left == 30
        assert engine.selection == ()
        assert engine.is_answered is False
        assert engine.last_answer is None

    def test_completion_callback_once(self):
        """Test the callback fires once with every answer."""
        calls = []
        engine = RoundEngine(sample_questions(), on_complete=lambda a, s: calls.append((a, s)))

        for _ in range(3):
            engine.submit()
            engine.advance()
        engine.advance()

        assert engine.is_complete is True
        assert len(calls) == 1
        answers, final_score = calls[0]
        assert [a.question_id for a in answers] == ["q1", "q2", "q3"]
        assert final_score == 0.0

    def test_events_emitted(self):
        """Test listeners see the round lifecycle."""
        events = []
        engine = RoundEngine(sample_questions()[:1])
        engine.subscribe(lambda event, _: events.append(event))

        engine.tick()
        engine.submit()
        engine.advance()

        assert events == [TICK, ANSWERED, COMPLETE]

    def test_question_event(self):
        """Test moving on emits a question event."""
        events = []
        engine = RoundEngine(sample_questions())
        engine.subscribe(lambda event, _: events.append(event))
        engine.submit()
        engine.advance()

        assert events[-1] == QUESTION

    def test_to_dict(self):
        """Test the render snapshot."""
        engine = RoundEngine(sample_questions())
        engine.select("4")
        engine.submit()
        data = engine.to_dict()

        assert data["question"]["id"] == "q1"
        assert data["is_answered"] is True
        assert data["feedback"]["isCorrect"] is True
        assert data["combo_multiplier"] == 1.2


class TestScheduling:
    """Tests for event-loop driven timers."""

    @pytest.mark.asyncio
    async def test_full_run_with_timeouts(self):
        """Test a started engine times out every question and completes."""
        engine = RoundEngine(sample_questions(), game=fast_game())
        engine.start()

        result = await asyncio.wait_for(engine.wait_complete(), timeout=5)

        assert result is not None
        answers, final_score = result
        assert len(answers) == 3
        assert all(not a.is_correct for a in answers)
        assert all(a.time_taken == 3 for a in answers)
        assert final_score == 0.0

    @pytest.mark.asyncio
    async def test_answer_then_auto_advance(self):
        """Test a submitted answer advances after the feedback delay."""
        engine = RoundEngine(sample_questions(), game=fast_game(time_limit=1000, tick_seconds=0.01, advance_delay=1))
        engine.start()

        engine.select("4")
        engine.submit()
        assert engine.current_index == 0

        await asyncio.sleep(0.1)
        assert engine.current_index == 1
        assert engine.time_left > 900
        engine.close()

    @pytest.mark.asyncio
    async def test_close_cancels_timers(self):
        """Test nothing happens after close."""
        engine = RoundEngine(sample_questions(), game=fast_game(time_limit=1000))
        engine.start()
        await asyncio.sleep(0.02)
        engine.close()
        time_left = engine.time_left

        await asyncio.sleep(0.05)

        assert engine.time_left == time_left
        assert engine.is_closed is True
        assert await engine.wait_complete() is None

    @pytest.mark.asyncio
    async def test_close_releases_waiter(self):
        """Test a pending wait_complete returns None on close."""
        engine = RoundEngine(sample_questions(), game=fast_game(time_limit=1000))
        engine.start()
        waiter = asyncio.ensure_future(engine.wait_complete())
        await asyncio.sleep(0)

        engine.close()

        assert await asyncio.wait_for(waiter, timeout=1) is None

    @pytest.mark.asyncio
    async def test_start_after_close_fails(self):
        """Test a closed engine can't be started."""
        engine = RoundEngine(sample_questions())
        engine.close()
        with pytest.raises(RuntimeError):
            engine.start()
