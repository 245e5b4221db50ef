"""Streak, daily goal and study-time bookkeeping."""
from datetime import date, datetime

from loguru import logger

from study_tutor.models import SessionState


class SessionTracker:
    """Owns the learner's SessionState for one run of the program."""

    def __init__(self, state: SessionState | None = None):
        self.state = state or SessionState()
        self.session_completed = 0
        self.started_at: datetime | None = None

    def roll_day(self, today: date) -> None:
        """Advance the streak and reset the daily counter at a day boundary.

        Calling this more than once on the same day changes nothing.
        """
        if isinstance(today, datetime):
            today = today.date()
        state = self.state
        if state.last_active_date is None:
            state.current_streak_days = 1
            state.today_completed_count = 0
        else:
            days = (today - state.last_active_date).days
            if days < 0:
                logger.warning(
                    "Clock moved back from {} to {}, keeping streak state",
                    state.last_active_date, today,
                )
                return
            if days == 1:
                state.current_streak_days += 1
                state.today_completed_count = 0
            elif days > 1:
                logger.info("Streak of {} days broken after {} days away", state.current_streak_days, days)
                state.current_streak_days = 1
                state.today_completed_count = 0
        state.last_active_date = today
        state.longest_streak_days = max(state.longest_streak_days, state.current_streak_days)

    def record_completed(self, n: int = 1) -> None:
        self.state.today_completed_count += n
        self.session_completed += n

    def accrue_study_time(self, seconds: int) -> None:
        if seconds <= 0:
            return
        self.state.total_study_seconds += int(seconds)

    def start_session(self, now: datetime | None = None) -> None:
        self.started_at = now or datetime.now()
        self.roll_day(self.started_at.date())

    def end_session(self, now: datetime | None = None) -> int:
        """Accrue wall-clock time since start_session. Returns the seconds added."""
        if self.started_at is None:
            return 0
        elapsed = int(((now or datetime.now()) - self.started_at).total_seconds())
        self.accrue_study_time(elapsed)
        self.started_at = None
        return max(elapsed, 0)

    @property
    def goal_reached(self) -> bool:
        return self.state.today_completed_count >= self.state.daily_goal

    @property
    def goal_remaining(self) -> int:
        return max(self.state.daily_goal - self.state.today_completed_count, 0)
