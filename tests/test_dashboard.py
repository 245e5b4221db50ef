# tests/test_dashboard.py
from datetime import date, datetime

import pytest

from study_tutor.dashboard import (
    format_duration, get_accuracy_color, get_accuracy_label, get_overall_score, get_study_stats,
    get_subject_scores,
)
from study_tutor.db import init_db
from study_tutor.models import SessionState, TopicStat
from study_tutor.progress import ProgressStore
from study_tutor.scheduling import SchedulingEngine
from study_tutor.scoring import summarize
from study_tutor.seed import seed_all
from study_tutor.storage import record_exam
from study_tutor.tracker import SessionTracker

NOW = datetime(2024, 7, 1, 12, 0)


@pytest.fixture
def db(tmp_db):
    init_db(tmp_db)
    seed_all(tmp_db)
    return tmp_db


def test_accuracy_label():
    assert get_accuracy_label(85) == "STRONG"
    assert get_accuracy_label(65) == "OK"
    assert get_accuracy_label(30) == "WEAK"
    assert get_accuracy_label(0) == "NO DATA"


def test_accuracy_color():
    assert get_accuracy_color(80) == "green"
    assert get_accuracy_color(60) == "yellow"
    assert get_accuracy_color(10) == "red"
    assert get_accuracy_color(0) == "dim"


def test_subject_scores():
    engine = SchedulingEngine(ProgressStore(), {
        "BSYS-Memory": TopicStat(3, 4),
        "BSYS-Processes": TopicStat(1, 4),
        "TEAM-Conflict": TopicStat(9, 10),
    })
    scores = {s["subject"]: s for s in get_subject_scores(engine)}
    assert scores["BSYS"]["score"] == 50.0
    assert scores["BSYS"]["label"] == "WEAK"
    assert scores["TEAM"]["label"] == "STRONG"
    assert scores["DigiCom"]["attempts"] == 0
    assert scores["DigiCom"]["label"] == "NO DATA"
    assert scores["DigiCom"]["name"] == "Digital Communications"


def test_overall_score():
    assert get_overall_score(SchedulingEngine(ProgressStore())) == 0.0
    engine = SchedulingEngine(ProgressStore(), {"BSYS-Memory": TopicStat(1, 3), "TEAM-Roles": TopicStat(2, 3)})
    assert get_overall_score(engine) == 50.0


@pytest.mark.parametrize("seconds,expected", [(0, "0m"), (59, "0m"), (125, "2m"), (3660, "1h 01m"), (-5, "0m")])
def test_format_duration(seconds, expected):
    assert format_duration(seconds) == expected


def test_study_stats(db):
    engine = SchedulingEngine(ProgressStore())
    for _ in range(10):
        engine.progress.apply_review("bsys-tlb", 4, NOW)
    engine.progress.apply_review("bsys-pcb", 1, NOW)
    tracker = SessionTracker(SessionState(
        current_streak_days=3, last_active_date=date(2024, 7, 1), today_completed_count=4,
        daily_goal=10, total_study_seconds=5400, longest_streak_days=8,
    ))
    record_exam(db, summarize([]))

    stats = get_study_stats(db, engine, tracker, NOW)
    assert stats["flashcards_total"] == 21
    assert stats["questions_total"] == 14
    assert stats["mastered"] == 1
    assert stats["due_now"] == 19
    assert stats["reviews"] == 11
    assert stats["current_streak"] == 3
    assert stats["longest_streak"] == 8
    assert stats["study_time"] == "1h 30m"
    assert stats["exams_taken"] == 1
    assert stats["exams_passed"] == 0
    assert stats["avg_exam_score"] == 0.0
