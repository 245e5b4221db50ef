"""Load and save the learner's progress, topic statistics, session state and exam history."""
from datetime import date, datetime

from loguru import logger

from study_tutor.db import get_connection
from study_tutor.models import ExamResult, ReviewRecord, SessionState, TopicStat
from study_tutor.progress import ProgressStore
from study_tutor.scheduling import SchedulingEngine
from study_tutor.scoring import result_grade, result_passed
from study_tutor.settings import get_daily_goal, get_setting, set_setting

SESSION_KEYS = (
    "current_streak_days", "today_completed_count", "total_study_seconds", "longest_streak_days",
)


def load_progress(db_path: str) -> ProgressStore:
    conn = get_connection(db_path)
    rows = conn.execute("SELECT * FROM review_records").fetchall()
    mastered = [r["item_id"] for r in conn.execute("SELECT item_id FROM mastered_items").fetchall()]
    conn.close()
    records = {}
    for row in rows:
        try:
            last = datetime.fromisoformat(row["last_reviewed_at"]) if row["last_reviewed_at"] else None
        except ValueError:
            logger.warning("Skipping review record {}: bad timestamp {!r}", row["item_id"], row["last_reviewed_at"])
            continue
        times_seen = max(row["times_seen"], 0)
        records[row["item_id"]] = ReviewRecord(
            times_correct=min(max(row["times_correct"], 0), times_seen),
            times_seen=times_seen,
            interval_days=min(max(row["interval_days"], 1), 90),
            last_reviewed_at=last,
        )
    store = ProgressStore()
    store.restore(records, mastered)
    logger.debug("Loaded {} review records, {} mastered", len(records), len(mastered))
    return store


def save_progress(db_path: str, store: ProgressStore) -> None:
    conn = get_connection(db_path)
    for item_id, r in store.records.items():
        last = r.last_reviewed_at.isoformat() if r.last_reviewed_at else None
        conn.execute(
            """INSERT INTO review_records (item_id, times_correct, times_seen, interval_days, last_reviewed_at)
            VALUES (?, ?, ?, ?, ?)
            ON CONFLICT(item_id) DO UPDATE SET times_correct=excluded.times_correct,
                times_seen=excluded.times_seen, interval_days=excluded.interval_days,
                last_reviewed_at=excluded.last_reviewed_at""",
            (item_id, r.times_correct, r.times_seen, r.interval_days, last),
        )
    now = datetime.now().isoformat()
    for item_id in store.mastered:
        conn.execute(
            "INSERT OR IGNORE INTO mastered_items (item_id, mastered_at) VALUES (?, ?)", (item_id, now),
        )
    conn.commit()
    conn.close()


def load_topic_stats(db_path: str) -> dict[str, TopicStat]:
    conn = get_connection(db_path)
    rows = conn.execute("SELECT * FROM topic_stats").fetchall()
    conn.close()
    stats = {}
    for row in rows:
        attempts = max(row["attempts"], 0)
        stats[row["topic_key"]] = TopicStat(correct=min(max(row["correct"], 0), attempts), attempts=attempts)
    return stats


def save_topic_stats(db_path: str, stats: dict[str, TopicStat]) -> None:
    conn = get_connection(db_path)
    for key, stat in stats.items():
        conn.execute(
            """INSERT INTO topic_stats (topic_key, correct, attempts) VALUES (?, ?, ?)
            ON CONFLICT(topic_key) DO UPDATE SET correct=excluded.correct, attempts=excluded.attempts""",
            (key, stat.correct, stat.attempts),
        )
    conn.commit()
    conn.close()


def load_engine(db_path: str) -> SchedulingEngine:
    return SchedulingEngine(load_progress(db_path), load_topic_stats(db_path))


def save_engine(db_path: str, engine: SchedulingEngine) -> None:
    save_progress(db_path, engine.progress)
    save_topic_stats(db_path, engine.topic_stats)


def _int_setting(db_path: str, key: str) -> int:
    raw = get_setting(db_path, key, "0")
    try:
        return max(int(raw), 0)
    except ValueError:
        logger.warning("Session field {}={!r} is not a number, resetting to 0", key, raw)
        return 0


def load_session(db_path: str) -> SessionState:
    state = SessionState(daily_goal=get_daily_goal(db_path))
    for key in SESSION_KEYS:
        setattr(state, key, _int_setting(db_path, key))
    raw_date = get_setting(db_path, "last_active_date")
    if raw_date:
        try:
            state.last_active_date = date.fromisoformat(raw_date)
        except ValueError:
            logger.warning("Ignoring bad last_active_date {!r}", raw_date)
    return state


def save_session(db_path: str, state: SessionState) -> None:
    for key in SESSION_KEYS:
        set_setting(db_path, key, str(getattr(state, key)))
    if state.last_active_date:
        set_setting(db_path, "last_active_date", state.last_active_date.isoformat())
    set_setting(db_path, "daily_goal", str(state.daily_goal))


def record_exam(db_path: str, result: ExamResult, taken_at: datetime | None = None) -> int:
    grade = result_grade(result)
    passed = result_passed(result)
    conn = get_connection(db_path)
    cur = conn.execute(
        """INSERT INTO exam_history
        (taken_at, questions_planned, questions_presented, questions_answered, total_earned,
         total_possible, percentage, grade, passed, timed_out, duration_seconds)
        VALUES (?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?)""",
        (
            (taken_at or datetime.now()).isoformat(), result.planned_questions, len(result.entries),
            result.answered_count, result.total_earned, result.total_possible,
            round(result.percentage, 1), grade.letter, int(passed), int(result.timed_out),
            result.duration_seconds,
        ),
    )
    conn.commit()
    exam_id = cur.lastrowid
    conn.close()
    logger.info(
        "Exam {} recorded: {}/{} ({}), {}", exam_id, result.total_earned, result.total_possible,
        grade.letter, "passed" if passed else "failed",
    )
    return exam_id


def get_exam_history(db_path: str, limit: int = 10) -> list[dict]:
    conn = get_connection(db_path)
    rows = conn.execute(
        "SELECT * FROM exam_history ORDER BY taken_at DESC, id DESC LIMIT ?", (limit,)
    ).fetchall()
    conn.close()
    return [dict(r) for r in rows]
