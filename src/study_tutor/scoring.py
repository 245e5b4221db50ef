"""Answer scoring, exam aggregation and grading.

Scoring is a pure function of (question, submitted answer). Each QuestionKind
has its own scorer registered in ``SCORERS``; adding an assessable kind means
adding one entry there.
"""
from datetime import datetime, timedelta
from enum import Enum
from typing import Callable, Sequence

from loguru import logger

from study_tutor.models import (
    ExamEntry, ExamResult, GradeBand, Question, QuestionKind, ScoreResult,
)

PASS_THRESHOLD = 0.60

GRADE_BANDS = (
    GradeBand("A", "Excellent", 90),
    GradeBand("B", "Good", 80),
    GradeBand("C", "Satisfactory", 70),
    GradeBand("D", "Sufficient", 60),
    GradeBand("F", "Fail", 0),
)

_TRUE_WORDS = ("t", "true")
_FALSE_WORDS = ("f", "false")


def parse_choice(question: Question, answer) -> int | None:
    """Resolve a submitted answer to an option index, or None if unusable.

    Accepts an int index, a letter (a, B, ...), a 1-based number string, or
    true/false words for true/false questions.
    """
    if answer is None:
        return None
    if isinstance(answer, bool):
        if not question.is_true_false:
            return None
        answer = "true" if answer else "false"
    if isinstance(answer, int):
        index = answer
    else:
        text = str(answer).strip().lower()
        if not text:
            return None
        if question.is_true_false and text in _TRUE_WORDS + _FALSE_WORDS:
            wanted = "true" if text in _TRUE_WORDS else "false"
            return next(i for i, o in enumerate(question.options) if o.strip().lower() == wanted)
        if len(text) == 1 and "a" <= text <= "z":
            index = ord(text) - ord("a")
        elif text.isdigit():
            index = int(text) - 1
        else:
            return None
    if not 0 <= index < len(question.options):
        return None
    return index


def _score_choice(question: Question, answer) -> ScoreResult:
    index = parse_choice(question, answer)
    if index is None:
        return ScoreResult(0, question.points, correct=False, answered=False, detail="unanswered")
    if index in question.answers:
        return ScoreResult(question.points, question.points, correct=True, answered=True, detail="correct")
    return ScoreResult(0, question.points, correct=False, answered=True, detail="incorrect")


def _tokens(text: str) -> list[str]:
    return [t.strip().casefold() for t in text.split(",") if t.strip()]


def _score_fill_in(question: Question, answer) -> ScoreResult:
    submitted = _tokens(str(answer)) if answer is not None else []
    canonical = [str(token).strip().casefold() for token in question.answers]
    if not submitted:
        return ScoreResult(0, question.points, correct=False, answered=False, detail="unanswered")
    unused = list(canonical)
    matched = 0
    for token in submitted:
        if token in unused:
            unused.remove(token)
            matched += 1
    earned = question.points * matched // len(canonical)
    return ScoreResult(
        earned, question.points,
        correct=matched == len(canonical),
        answered=True,
        detail=f"{matched}/{len(canonical)} matched",
    )


SCORERS: dict[QuestionKind, Callable[[Question, object], ScoreResult]] = {
    QuestionKind.CHOICE: _score_choice,
    QuestionKind.FILL_IN: _score_fill_in,
}


def score(question: Question, answer) -> ScoreResult:
    return SCORERS[question.kind](question, answer)


def grade_for(percentage: float) -> GradeBand:
    for band in GRADE_BANDS:
        if percentage >= band.minimum:
            return band
    return GRADE_BANDS[-1]


def is_passing(earned: int, possible: int) -> bool:
    """60% of the possible points passes. An exam with nothing presented never does."""
    if possible <= 0:
        return False
    return earned >= PASS_THRESHOLD * possible


def summarize(entries: Sequence[ExamEntry], duration_seconds: int = 0,
              timed_out: bool = False, planned_questions: int | None = None) -> ExamResult:
    return ExamResult(
        entries=list(entries),
        duration_seconds=max(int(duration_seconds), 0),
        total_possible=sum(e.points_possible for e in entries),
        total_earned=sum(e.points_earned for e in entries),
        timed_out=timed_out,
        planned_questions=len(entries) if planned_questions is None else planned_questions,
    )


def result_passed(result: ExamResult) -> bool:
    return is_passing(result.total_earned, result.total_possible)


def result_grade(result: ExamResult) -> GradeBand:
    return grade_for(result.percentage)


class ExamState(str, Enum):
    NOT_STARTED = "not_started"
    IN_PROGRESS = "in_progress"
    TIMED_OUT = "timed_out"
    COMPLETED = "completed"


class ExamStateError(RuntimeError):
    """Raised when an exam run is driven out of order."""


class ExamRun:
    """A timed exam over a fixed list of questions.

    The deadline is polled whenever the next question is requested; an answer
    in progress is never cut off. Questions never reached do not count toward
    the totals.
    """

    def __init__(self, questions: Sequence[Question], duration_seconds: int):
        self.questions = list(questions)
        self.duration = timedelta(seconds=duration_seconds)
        self.state = ExamState.NOT_STARTED
        self.entries: list[ExamEntry] = []
        self.started_at: datetime | None = None
        self.ended_at: datetime | None = None
        self._current: Question | None = None

    @property
    def position(self) -> int:
        return len(self.entries)

    @property
    def finished(self) -> bool:
        return self.state in (ExamState.TIMED_OUT, ExamState.COMPLETED)

    def start(self, now: datetime | None = None) -> None:
        if self.state is not ExamState.NOT_STARTED:
            raise ExamStateError(f"Cannot start an exam that is {self.state.value}")
        self.started_at = now or datetime.now()
        self.state = ExamState.IN_PROGRESS
        logger.info("Exam started: {} questions, {}s limit", len(self.questions), int(self.duration.total_seconds()))

    def remaining_seconds(self, now: datetime | None = None) -> int:
        if self.started_at is None:
            return int(self.duration.total_seconds())
        left = self.started_at + self.duration - (now or datetime.now())
        return max(int(left.total_seconds()), 0)

    def next_question(self, now: datetime | None = None) -> Question | None:
        """Return the next question, or None once the exam has ended."""
        if self.finished:
            return None
        if self.state is not ExamState.IN_PROGRESS:
            raise ExamStateError("Exam has not been started")
        if self._current is not None:
            return self._current
        now = now or datetime.now()
        if now - self.started_at > self.duration:
            self.state = ExamState.TIMED_OUT
            self.ended_at = now
            logger.info("Exam timed out after {} of {} questions", self.position, len(self.questions))
            return None
        if self.position >= len(self.questions):
            self.state = ExamState.COMPLETED
            self.ended_at = now
            return None
        self._current = self.questions[self.position]
        return self._current

    def answer(self, answer, now: datetime | None = None) -> ScoreResult:
        if self.state is not ExamState.IN_PROGRESS or self._current is None:
            raise ExamStateError("No question is awaiting an answer")
        question = self._current
        result = score(question, answer)
        self.entries.append(ExamEntry(question, question.points, result.points_earned, result, answer))
        self._current = None
        return result

    def finish(self, now: datetime | None = None) -> None:
        """Stop early; the question on screen, if unanswered, is dropped."""
        if self.state is ExamState.NOT_STARTED:
            raise ExamStateError("Exam has not been started")
        if self.finished:
            return
        self._current = None
        self.state = ExamState.COMPLETED
        self.ended_at = now or datetime.now()

    def result(self) -> ExamResult:
        if not self.finished:
            raise ExamStateError("Exam is still running")
        duration = (self.ended_at - self.started_at).total_seconds()
        return summarize(
            self.entries, duration,
            timed_out=self.state is ExamState.TIMED_OUT,
            planned_questions=len(self.questions),
        )
