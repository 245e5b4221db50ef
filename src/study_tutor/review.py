"""Weak area identification and review session logic."""
import random

from study_tutor.content import get_flashcards, get_questions
from study_tutor.scheduling import SchedulingEngine, pick_session

QUICK_REVIEW_SIZE = 10


def split_topic_key(key: str) -> tuple[str, str]:
    subject, _, topic = key.partition("-")
    return subject, topic


def get_weak_topics(engine: SchedulingEngine) -> list[dict]:
    """Weak topics, worst accuracy first."""
    results = []
    for key, stat in engine.weak_topics():
        subject, topic = split_topic_key(key)
        results.append({
            "topic_key": key,
            "subject": subject,
            "topic": topic,
            "correct": stat.correct,
            "attempts": stat.attempts,
            "accuracy": round(stat.accuracy * 100, 1),
        })
    return results


def get_review_cards(db_path: str, engine: SchedulingEngine, limit: int = QUICK_REVIEW_SIZE,
                     subject=None, rng: random.Random | None = None) -> list:
    """Flashcards on weak topics, or any cards when nothing is weak."""
    cards = get_flashcards(db_path, subject=subject)
    return pick_session(engine.select_weak(cards), limit, rng)


def get_review_questions(db_path: str, engine: SchedulingEngine, limit: int = QUICK_REVIEW_SIZE,
                         subject=None, rng: random.Random | None = None) -> list:
    questions = get_questions(db_path, subject=subject)
    return pick_session(engine.select_weak(questions), limit, rng)
