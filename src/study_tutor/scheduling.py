"""Due-item selection, weak-topic detection and review bookkeeping."""
import random
from datetime import date, datetime
from typing import Iterable, Iterator, Mapping, Sequence

from loguru import logger

from study_tutor.models import Rating, ScoreResult, TopicStat
from study_tutor.progress import ProgressStore


def rating_for(result: ScoreResult) -> int:
    """Translate an assessment result into a review rating."""
    if result.correct:
        return Rating.GOOD
    if result.partial:
        return Rating.HARD
    return Rating.FORGOT


class SchedulingEngine:
    def __init__(self, progress: ProgressStore, topic_stats: Mapping[str, TopicStat] | None = None):
        self.progress = progress
        self._topic_stats: dict[str, TopicStat] = dict(topic_stats or {})

    @property
    def topic_stats(self) -> dict[str, TopicStat]:
        return {key: TopicStat(s.correct, s.attempts) for key, s in self._topic_stats.items()}

    def get_topic_stat(self, key: str) -> TopicStat:
        stat = self._topic_stats.get(key)
        return TopicStat(stat.correct, stat.attempts) if stat else TopicStat()

    def select_due(self, items: Iterable, now: datetime | date | None = None) -> Iterator:
        """Lazily yield the items that are due for review."""
        now = now or datetime.now()
        return (item for item in items if self.progress.is_due(item.item_id, now))

    def is_weak_topic(self, key: str, topic_stats: Mapping[str, TopicStat] | None = None) -> bool:
        stats = self._topic_stats if topic_stats is None else topic_stats
        stat = stats.get(key)
        return stat is not None and stat.is_weak

    def select_weak(self, items: Iterable, topic_stats: Mapping[str, TopicStat] | None = None) -> list:
        """Items on weak topics, or every candidate when no topic is weak."""
        pool = list(items)
        weak = [item for item in pool if self.is_weak_topic(item.topic_key, topic_stats)]
        if not weak:
            logger.debug("No weak topics among {} candidates, using the full pool", len(pool))
            return pool
        return weak

    def weak_topics(self) -> list[tuple[str, TopicStat]]:
        """Weak topics sorted worst accuracy first."""
        weak = [(key, stat) for key, stat in self._topic_stats.items() if stat.is_weak]
        return sorted(weak, key=lambda pair: (pair[1].accuracy, -pair[1].attempts, pair[0]))

    def record_topic_outcome(self, key: str, correct: bool) -> None:
        stat = self._topic_stats.setdefault(key, TopicStat())
        stat.attempts += 1
        if correct:
            stat.correct += 1

    def record_answer(self, item, result: ScoreResult, now: datetime | None = None):
        """Feed a scored answer back into topic stats and the item's review record."""
        self.record_topic_outcome(item.topic_key, result.correct)
        return self.progress.apply_review(item.item_id, rating_for(result), now)

    def record_rating(self, item, rating: int, now: datetime | None = None):
        """Feed a flashcard self-assessment back into topic stats and progress."""
        record = self.progress.apply_review(item.item_id, rating, now)
        self.record_topic_outcome(item.topic_key, rating >= Rating.GOOD)
        return record


def pick_session(candidates: Iterable, size: int, rng: random.Random | None = None) -> list:
    """Shuffle candidates and take up to ``size`` of them, never repeating or padding."""
    pool: Sequence = list(candidates)
    rng = rng or random.Random()
    rng.shuffle(pool)
    return pool[:max(size, 0)]
