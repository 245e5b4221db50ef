"""Per-item review history, interval scheduling and mastery marks."""
from datetime import date, datetime, timedelta
from types import MappingProxyType
from typing import Iterable, Mapping

from loguru import logger

from study_tutor.models import (
    MASTERY_MIN_ACCURACY, MASTERY_MIN_SEEN, MAX_INTERVAL_DAYS, Rating, ReviewRecord,
)


def clamp_rating(rating: int) -> int:
    """Clamp a self-assessment rating into the 1-4 (Forgot..Easy) range."""
    clamped = max(Rating.FORGOT, min(Rating.EASY, int(rating)))
    if clamped != rating:
        logger.warning("Rating {} out of range, clamped to {}", rating, int(clamped))
    return int(clamped)


def next_interval(interval_days: int, rating: int) -> int:
    """Double the interval on success (capped at 90 days), reset to 1 otherwise."""
    if rating >= Rating.GOOD:
        return min(interval_days * 2, MAX_INTERVAL_DAYS)
    return 1


def _as_date(moment) -> date:
    return moment.date() if isinstance(moment, datetime) else moment


class ProgressStore:
    """Owns every ReviewRecord and the set of mastered items, keyed by item id."""

    def __init__(self):
        self._records: dict[str, ReviewRecord] = {}
        self._mastered: set[str] = set()

    def __len__(self) -> int:
        return len(self._records)

    @property
    def records(self) -> Mapping[str, ReviewRecord]:
        return MappingProxyType(self._records)

    @property
    def mastered(self) -> frozenset:
        return frozenset(self._mastered)

    def restore(self, records: Mapping[str, ReviewRecord], mastered: Iterable[str]) -> None:
        """Replace the store's contents with a previously saved snapshot."""
        self._records = dict(records)
        self._mastered = set(mastered)

    def forget(self, item_id: str) -> None:
        """Drop all history of an item whose content was deleted."""
        self._records.pop(item_id, None)
        self._mastered.discard(item_id)

    def get_record(self, item_id: str) -> ReviewRecord:
        record = self._records.get(item_id)
        if record is None:
            return ReviewRecord()
        return ReviewRecord(
            record.times_correct, record.times_seen, record.interval_days, record.last_reviewed_at,
        )

    def apply_review(self, item_id: str, rating: int, now: datetime | None = None) -> ReviewRecord:
        rating = clamp_rating(rating)
        now = now or datetime.now()
        record = self._records.setdefault(item_id, ReviewRecord())
        record.times_seen += 1
        if rating >= Rating.GOOD:
            record.times_correct += 1
        record.interval_days = next_interval(record.interval_days, rating)
        record.last_reviewed_at = now
        self._update_mastery(item_id, record)
        return self.get_record(item_id)

    def _update_mastery(self, item_id: str, record: ReviewRecord) -> None:
        if item_id in self._mastered:
            return
        if record.times_seen >= MASTERY_MIN_SEEN and record.times_correct / record.times_seen >= MASTERY_MIN_ACCURACY:
            self._mastered.add(item_id)
            logger.info("Item {} mastered after {} reviews", item_id, record.times_seen)

    def is_mastered(self, item_id: str) -> bool:
        return item_id in self._mastered

    def is_due(self, item_id: str, now: datetime | date | None = None) -> bool:
        record = self._records.get(item_id)
        if record is None or record.last_reviewed_at is None:
            return True
        today = _as_date(now or datetime.now())
        elapsed = (today - record.last_reviewed_at.date()).days
        return elapsed >= record.interval_days

    def next_due_date(self, item_id: str) -> date | None:
        """Calendar date the item becomes due, or None if it has never been reviewed."""
        record = self._records.get(item_id)
        if record is None or record.last_reviewed_at is None:
            return None
        return record.last_reviewed_at.date() + timedelta(days=record.interval_days)

    def count_due(self, item_ids: Iterable[str], now: datetime | date | None = None) -> int:
        return sum(1 for item_id in item_ids if self.is_due(item_id, now))
