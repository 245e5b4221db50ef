# tests/test_storage.py
from datetime import date, datetime

import pytest

from study_tutor.db import get_connection, init_db
from study_tutor.models import ExamEntry, Question, SessionState, TopicStat
from study_tutor.progress import ProgressStore
from study_tutor.scheduling import SchedulingEngine
from study_tutor.scoring import score, summarize
from study_tutor.settings import get_daily_goal, set_setting
from study_tutor.storage import (
    get_exam_history, load_engine, load_progress, load_session, load_topic_stats, record_exam,
    save_engine, save_progress, save_session, save_topic_stats,
)

NOW = datetime(2024, 4, 2, 8, 30)


@pytest.fixture
def db(tmp_db):
    init_db(tmp_db)
    return tmp_db


def test_progress_round_trip(db):
    store = ProgressStore()
    store.apply_review("a", 4, NOW)
    store.apply_review("a", 1, NOW)
    for _ in range(10):
        store.apply_review("b", 3, NOW)
    save_progress(db, store)

    loaded = load_progress(db)
    assert loaded.get_record("a") == store.get_record("a")
    assert loaded.get_record("b").interval_days == 90
    assert loaded.get_record("b").last_reviewed_at == NOW
    assert loaded.mastered == {"b"}


def test_save_progress_updates_existing_rows(db):
    store = ProgressStore()
    store.apply_review("a", 4, NOW)
    save_progress(db, store)
    store.apply_review("a", 4, NOW)
    save_progress(db, store)
    assert load_progress(db).get_record("a").times_seen == 2


def test_load_progress_skips_bad_rows_and_clamps(db):
    conn = get_connection(db)
    conn.execute(
        "INSERT INTO review_records VALUES ('broken', 1, 1, 2, 'yesterday-ish')"
    )
    conn.execute(
        "INSERT INTO review_records VALUES ('odd', 9, 3, 500, ?)", (NOW.isoformat(),)
    )
    conn.commit()
    conn.close()

    store = load_progress(db)
    assert "broken" not in store.records
    odd = store.get_record("odd")
    assert (odd.times_correct, odd.times_seen, odd.interval_days) == (3, 3, 90)


def test_empty_database_loads_defaults(db):
    engine = load_engine(db)
    assert len(engine.progress) == 0
    assert engine.topic_stats == {}
    state = load_session(db)
    assert state == SessionState()


def test_topic_stats_round_trip(db):
    save_topic_stats(db, {"BSYS-Memory": TopicStat(2, 5), "TEAM-Roles": TopicStat(4, 4)})
    save_topic_stats(db, {"BSYS-Memory": TopicStat(3, 6)})
    stats = load_topic_stats(db)
    assert stats["BSYS-Memory"] == TopicStat(3, 6)
    assert stats["TEAM-Roles"] == TopicStat(4, 4)


def test_engine_round_trip(db):
    engine = SchedulingEngine(ProgressStore())
    engine.record_topic_outcome("DigiCom-OSI", False)
    engine.progress.apply_review("x", 3, NOW)
    save_engine(db, engine)
    loaded = load_engine(db)
    assert loaded.get_topic_stat("DigiCom-OSI").attempts == 1
    assert loaded.progress.get_record("x").times_correct == 1


def test_session_round_trip(db):
    state = SessionState(
        current_streak_days=6, last_active_date=date(2024, 4, 1), today_completed_count=11,
        daily_goal=15, total_study_seconds=4200, longest_streak_days=9,
    )
    save_session(db, state)
    assert load_session(db) == state
    assert get_daily_goal(db) == 15


def test_load_session_ignores_bad_values(db):
    set_setting(db, "last_active_date", "someday")
    set_setting(db, "current_streak_days", "many")
    state = load_session(db)
    assert state.last_active_date is None
    assert state.current_streak_days == 0


def _question(item_id, points):
    return Question(
        item_id=item_id, subject="BSYS", topic="Memory", kind="choice",
        stem="?", options=["yes", "no"], answers=[0], points=points,
    )


def test_record_exam_and_history(db):
    entries = []
    for item_id, points, answer in [("q1", 2, "a"), ("q2", 3, "b"), ("q3", 5, "a")]:
        q = _question(item_id, points)
        result = score(q, answer)
        entries.append(ExamEntry(q, q.points, result.points_earned, result, answer))
    result = summarize(entries, duration_seconds=300, planned_questions=4, timed_out=True)

    first = record_exam(db, result, taken_at=datetime(2024, 4, 1, 10, 0))
    second = record_exam(db, summarize([]), taken_at=datetime(2024, 4, 2, 10, 0))
    assert second > first

    history = get_exam_history(db)
    assert [h["id"] for h in history] == [second, first]
    latest, earlier = history
    assert latest["passed"] == 0
    assert earlier["total_earned"] == 7
    assert earlier["total_possible"] == 10
    assert earlier["percentage"] == 70.0
    assert earlier["grade"] == "C"
    assert earlier["passed"] == 1
    assert earlier["timed_out"] == 1
    assert earlier["questions_planned"] == 4
    assert earlier["questions_presented"] == 3
    assert get_exam_history(db, limit=1)[0]["id"] == second
