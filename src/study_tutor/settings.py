"""User settings stored in the database."""
from loguru import logger

from study_tutor.db import get_connection
from study_tutor.models import DEFAULT_DAILY_GOAL

DEFAULTS = {
    "daily_goal": DEFAULT_DAILY_GOAL,
    "session_size": 10,
    "exam_question_count": 20,
    "exam_minutes": 30,
}

EXAM_LENGTHS = (10, 20, 30)


def get_setting(db_path: str, key: str, default: str = None) -> str | None:
    conn = get_connection(db_path)
    row = conn.execute("SELECT value FROM user_settings WHERE key = ?", (key,)).fetchone()
    conn.close()
    return row["value"] if row else default


def set_setting(db_path: str, key: str, value: str) -> None:
    conn = get_connection(db_path)
    conn.execute(
        "INSERT INTO user_settings (key, value) VALUES (?, ?) ON CONFLICT(key) DO UPDATE SET value=?",
        (key, value, value),
    )
    conn.commit()
    conn.close()


def get_int_setting(db_path: str, key: str) -> int:
    """Read a positive integer setting, falling back to its default when unset or invalid."""
    default = DEFAULTS[key]
    raw = get_setting(db_path, key)
    if raw is None:
        return default
    try:
        value = int(raw)
    except ValueError:
        logger.warning("Setting {}={!r} is not a number, using {}", key, raw, default)
        return default
    if value < 1:
        logger.warning("Setting {}={} must be at least 1, using {}", key, value, default)
        return default
    return value


def set_int_setting(db_path: str, key: str, value: int) -> None:
    if key not in DEFAULTS:
        raise KeyError(f"Unknown setting: {key}")
    if value < 1:
        raise ValueError(f"{key} must be at least 1")
    set_setting(db_path, key, str(value))


def get_daily_goal(db_path: str) -> int:
    return get_int_setting(db_path, "daily_goal")


def get_session_size(db_path: str) -> int:
    return get_int_setting(db_path, "session_size")


def get_exam_question_count(db_path: str) -> int:
    return get_int_setting(db_path, "exam_question_count")


def get_exam_seconds(db_path: str) -> int:
    return get_int_setting(db_path, "exam_minutes") * 60
