"""
Command-line interface for exam-ninja

Generates AI exam questions and plays the timed quiz in the terminal.
"""

import argparse
import asyncio
import logging
import sys
import threading
from typing import Optional

from .config import config
from .game.engine import RoundEngine
from .game.session import QuizSession, SessionStatus
from .generation.generator import GenerationError, QuestionGenerator
from .providers import ModelProvider, get_provider
from .quiz.schema import AnswerRecord, Difficulty, ExamType, Question, QuestionType, QuizConfig, questions_to_json
from .results import SessionReport, format_report_terminal


def build_provider(name: str, model: Optional[str] = None) -> ModelProvider:
    """Create the provider for a CLI run."""
    if name == "mock":
        return get_provider("mock")
    return get_provider(name, default_model=model or config.models.PROVIDER_DEFAULTS[name])


def format_question(engine: RoundEngine) -> str:
    """Render the current question with its options."""
    question = engine.current_question
    lines = [
        "",
        f"Score: {round(engine.score)}   Streak: x{engine.streak}   "
        f"Combo: {engine.combo_multiplier:.1f}x   Time: {engine.time_left}s",
        f"[{question.type.value}] Question {engine.current_index + 1}/{engine.total}",
        question.text,
    ]

    if question.type == QuestionType.NAT:
        lines.append("Enter your numerical answer:")
    else:
        for i, option in enumerate(question.options):
            lines.append(f"  {chr(65 + i)}. {option}")
        if question.type == QuestionType.MSQ:
            lines.append("Select all that apply (e.g. 'A C'):")
        else:
            lines.append("Choose one option:")

    return "\n".join(lines)


def format_feedback(question: Question, record: AnswerRecord) -> str:
    if record.is_correct:
        return "Correct! Well done.\nNext question coming up..."
    return (
        f"Incorrect! Answer: {', '.join(question.correct_answer)}\n"
        f"Next question coming up..."
    )


def apply_input(engine: RoundEngine, line: str) -> Optional[str]:
    """
    Turn one typed line into selections and a submission.

    Returns:
        An error hint if the line couldn't be understood, else None
    """
    question = engine.current_question
    line = line.strip()

    if question.type == QuestionType.NAT:
        engine.enter_text(line)
        engine.submit()
        return None

    picks = []
    for token in line.replace(",", " ").split():
        index = ord(token.upper()) - 65 if len(token) == 1 else -1
        if 0 <= index < len(question.options):
            picks.append(question.options[index])
        elif token in question.options:
            picks.append(token)
        else:
            return f"Unknown option: {token}"

    if question.type == QuestionType.MCQ and len(picks) > 1:
        return "Choose exactly one option"

    for option in dict.fromkeys(picks):
        engine.select(option)
    engine.submit()
    return None


class StdinLines:
    """Feeds stdin lines into an asyncio queue from a daemon thread."""

    def __init__(self, loop: asyncio.AbstractEventLoop):
        self.queue: asyncio.Queue = asyncio.Queue()
        self._loop = loop
        self._thread = threading.Thread(target=self._read, daemon=True)
        self.eof = False

    def start(self) -> "StdinLines":
        self._thread.start()
        return self

    def _read(self):
        for line in sys.stdin:
            self._loop.call_soon_threadsafe(self.queue.put_nowait, line)
        self.eof = True
        self._loop.call_soon_threadsafe(self.queue.put_nowait, None)


async def _next_line(lines: StdinLines, changed: asyncio.Event) -> Optional[str]:
    """Wait for a typed line, or return None when the engine changes first."""
    getter = asyncio.ensure_future(lines.queue.get())
    waiter = asyncio.ensure_future(changed.wait())
    done, pending = await asyncio.wait({getter, waiter}, return_when=asyncio.FIRST_COMPLETED)
    for task in pending:
        task.cancel()
    if getter in done:
        return getter.result()
    return None


async def play_session(session: QuizSession, lines: StdinLines) -> None:
    """Drive a playing session from terminal input until it ends."""
    engine = session.engine
    changed = asyncio.Event()
    engine.subscribe(lambda event, _: changed.set())

    while session.status == SessionStatus.PLAYING and not engine.is_complete:
        index = engine.current_index
        question = engine.current_question
        print(format_question(engine))

        while not engine.is_answered:
            changed.clear()
            line = await _next_line(lines, changed)
            if line is None:
                continue
            hint = apply_input(engine, line)
            if hint:
                print(hint)

        if engine.time_left == 0:
            print("Time's up!")
        print(format_feedback(question, engine.last_answer))

        while engine.current_index == index and not engine.is_complete and not engine.is_closed:
            changed.clear()
            await changed.wait()


async def run_play(args) -> int:
    provider = build_provider("mock" if args.mock else args.provider, args.model)
    session = QuizSession(QuestionGenerator(provider, model=args.model))
    quiz_config = QuizConfig(
        topic=args.topic,
        exam_type=args.exam,
        difficulty=Difficulty(args.difficulty),
        question_count=args.count,
    )

    print(f"\nGenerating {args.count} {args.difficulty} {args.exam} questions on \"{args.topic}\"...")
    lines = StdinLines(asyncio.get_running_loop()).start()

    try:
        status = await session.start(quiz_config)
        while True:
            if status != SessionStatus.PLAYING:
                print(session.notice or "Could not start the quiz.", file=sys.stderr)
                return 1

            await play_session(session, lines)
            if session.status != SessionStatus.RESULTS:
                return 1

            report = SessionReport.from_session(session)
            print(format_report_terminal(report))

            print("Replay same topic? [y/N]")
            answer = None if lines.eof else await lines.queue.get()
            if not answer or answer.strip().lower() != "y":
                session.home()
                return 0
            status = await session.restart()
    finally:
        await provider.close()


async def run_generate(args) -> int:
    provider = build_provider("mock" if args.mock else args.provider, args.model)
    generator = QuestionGenerator(provider, model=args.model)

    try:
        questions = await generator.generate(
            topic=args.topic,
            exam_type=args.exam,
            difficulty=Difficulty(args.difficulty),
            count=args.count,
        )
    except GenerationError as e:
        print(f"Error: {e}", file=sys.stderr)
        return 1
    finally:
        await provider.close()

    print(questions_to_json(questions))
    return 0


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="exam-ninja",
        description="AI-generated competitive exam practice with a timed scoring game",
        epilog='Example: exam-ninja play "Thermodynamics" --exam GATE --difficulty Hard'
    )
    parser.add_argument(
        "--verbose", "-v",
        action="store_true",
        help="Enable debug logging"
    )

    subparsers = parser.add_subparsers(dest="command", help="Available commands")

    for name, help_text in (
        ("play", "Play a timed quiz in the terminal"),
        ("generate", "Generate a question set and print it as JSON"),
    ):
        sub = subparsers.add_parser(name, help=help_text)
        sub.add_argument("topic", help="What do you want to study?")
        sub.add_argument(
            "--exam",
            choices=[e.value for e in ExamType],
            default=ExamType.GATE.value,
            help="Exam pattern (default: GATE)"
        )
        sub.add_argument(
            "--difficulty",
            choices=[d.value for d in Difficulty],
            default=Difficulty.MEDIUM.value,
            help="Difficulty (default: Medium)"
        )
        sub.add_argument(
            "--count",
            type=int,
            default=config.generation.default_count,
            help=f"Number of questions (default: {config.generation.default_count})"
        )
        sub.add_argument(
            "--provider",
            choices=["gemini", "claude", "deepseek", "mock"],
            default=config.models.provider,
            help=f"AI provider (default: {config.models.provider})"
        )
        sub.add_argument(
            "--model",
            default=config.models.model or None,
            help="Model override (default: provider default)"
        )
        sub.add_argument(
            "--mock",
            action="store_true",
            help="Use mock AI (for testing without API key)"
        )

    return parser


def main(argv: Optional[list[str]] = None) -> int:
    """Main CLI entry point."""
    parser = build_parser()
    args = parser.parse_args(argv)

    logging.basicConfig(
        level=logging.DEBUG if args.verbose else logging.WARNING,
        format="%(levelname)s %(name)s: %(message)s",
    )

    if not args.command:
        parser.print_help()
        return 1

    if args.count < 1:
        parser.error("--count must be a positive integer")
    if not args.topic.strip():
        parser.error("topic must not be empty")

    if args.command == "play":
        return asyncio.run(run_play(args))
    return asyncio.run(run_generate(args))


if __name__ == "__main__":
    sys.exit(main())
