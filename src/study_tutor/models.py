"""Data classes for the tutor domain model."""
import hashlib
from dataclasses import dataclass, field
from datetime import date, datetime
from enum import Enum, IntEnum
from typing import Optional

MAX_INTERVAL_DAYS = 90
MASTERY_MIN_SEEN = 10
MASTERY_MIN_ACCURACY = 0.80
WEAK_MIN_ATTEMPTS = 5
WEAK_MAX_ACCURACY = 0.60
DEFAULT_DAILY_GOAL = 20


class Subject(str, Enum):
    BSYS = "BSYS"
    DIGICOM = "DigiCom"
    TEAM = "TEAM"

    @property
    def long_name(self) -> str:
        return SUBJECT_TITLES[self]


SUBJECT_TITLES = {
    Subject.BSYS: "Operating Systems",
    Subject.DIGICOM: "Digital Communications",
    Subject.TEAM: "Teamwork",
}


class Rating(IntEnum):
    FORGOT = 1
    HARD = 2
    GOOD = 3
    EASY = 4


class QuestionKind(str, Enum):
    CHOICE = "choice"
    FILL_IN = "fill_in"


ITEM_TYPES = ("c", "q")


def make_item_id(subject: str, topic: str, text: str, item_type: str = "c") -> str:
    """Derive a stable id from an item's content, independent of list position.

    ``item_type`` is "c" for flashcards and "q" for questions, so a card and a
    question with the same text never share progress.
    """
    if item_type not in ITEM_TYPES:
        raise ValueError(f"Unknown item type: {item_type!r}")
    digest = hashlib.sha1(f"{item_type}\n{topic}\n{text}".encode("utf-8")).hexdigest()[:12]
    return f"{Subject(subject).value.lower()}-{item_type}-{digest}"


def topic_key(subject: str, topic: str) -> str:
    return f"{Subject(subject).value}-{topic}"


@dataclass(frozen=True)
class Flashcard:
    item_id: str
    subject: Subject
    topic: str
    front: str
    back: str
    source: str = "seeded"

    def __post_init__(self):
        object.__setattr__(self, "subject", Subject(self.subject))
        if not self.front.strip() or not self.back.strip():
            raise ValueError(f"Flashcard {self.item_id!r} needs a front and a back")

    @property
    def topic_key(self) -> str:
        return topic_key(self.subject, self.topic)


@dataclass(frozen=True)
class Question:
    """An assessable item.

    For CHOICE questions ``answers`` holds the correct option indices; for
    FILL_IN questions it holds the accepted canonical tokens.
    """
    item_id: str
    subject: Subject
    topic: str
    kind: QuestionKind
    stem: str
    answers: tuple
    options: tuple = ()
    points: int = 1
    explanation: str = ""
    source: str = "seeded"

    def __post_init__(self):
        object.__setattr__(self, "subject", Subject(self.subject))
        object.__setattr__(self, "kind", QuestionKind(self.kind))
        # a bare string would be split into characters
        if isinstance(self.answers, str) or isinstance(self.options, str):
            raise ValueError(f"Question {self.item_id!r}: answers and options must be lists")
        object.__setattr__(self, "options", tuple(self.options))
        object.__setattr__(self, "answers", tuple(self.answers))
        if self.points < 1:
            raise ValueError(f"Question {self.item_id!r} must be worth at least 1 point")
        if not self.answers:
            raise ValueError(f"Question {self.item_id!r} has no correct answer")
        if self.kind is QuestionKind.CHOICE:
            if len(self.options) < 2:
                raise ValueError(f"Choice question {self.item_id!r} needs at least two options")
            for index in self.answers:
                if not isinstance(index, int) or not 0 <= index < len(self.options):
                    raise ValueError(f"Choice question {self.item_id!r} has invalid answer index {index!r}")
        else:
            for token in self.answers:
                if not str(token).strip():
                    raise ValueError(f"Fill-in question {self.item_id!r} has a blank canonical token")
                # submitted answers are split on commas
                if "," in str(token):
                    raise ValueError(f"Fill-in question {self.item_id!r} has a token containing a comma: {token!r}")

    @property
    def topic_key(self) -> str:
        return topic_key(self.subject, self.topic)

    @property
    def is_true_false(self) -> bool:
        return (
            self.kind is QuestionKind.CHOICE
            and len(self.options) == 2
            and {o.strip().lower() for o in self.options} == {"true", "false"}
        )


@dataclass
class ReviewRecord:
    times_correct: int = 0
    times_seen: int = 0
    interval_days: int = 1
    last_reviewed_at: Optional[datetime] = None

    @property
    def accuracy(self) -> float:
        if self.times_seen == 0:
            return 0.0
        return self.times_correct / self.times_seen


@dataclass
class TopicStat:
    correct: int = 0
    attempts: int = 0

    @property
    def accuracy(self) -> float:
        if self.attempts == 0:
            return 0.0
        return self.correct / self.attempts

    @property
    def is_weak(self) -> bool:
        return self.attempts >= WEAK_MIN_ATTEMPTS and self.correct / self.attempts < WEAK_MAX_ACCURACY


@dataclass
class SessionState:
    current_streak_days: int = 0
    last_active_date: Optional[date] = None
    today_completed_count: int = 0
    daily_goal: int = DEFAULT_DAILY_GOAL
    total_study_seconds: int = 0
    longest_streak_days: int = 0


@dataclass(frozen=True)
class ScoreResult:
    points_earned: int
    points_possible: int
    correct: bool
    answered: bool
    detail: str = ""

    @property
    def partial(self) -> bool:
        return not self.correct and self.points_earned > 0


@dataclass(frozen=True)
class GradeBand:
    letter: str
    label: str
    minimum: float


@dataclass(frozen=True)
class ExamEntry:
    question: Question
    points_possible: int
    points_earned: int
    result: ScoreResult
    answer: object = None


@dataclass
class ExamResult:
    entries: list = field(default_factory=list)
    duration_seconds: int = 0
    total_possible: int = 0
    total_earned: int = 0
    timed_out: bool = False
    planned_questions: int = 0

    @property
    def percentage(self) -> float:
        if self.total_possible == 0:
            return 0.0
        return self.total_earned / self.total_possible * 100

    @property
    def answered_count(self) -> int:
        return sum(1 for e in self.entries if e.result.answered)

    @property
    def correct_count(self) -> int:
        return sum(1 for e in self.entries if e.result.correct)
