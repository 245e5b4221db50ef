"""Seed the database with the packaged flashcards and questions."""
import json
from datetime import datetime
from pathlib import Path

from loguru import logger

from study_tutor.db import get_connection
from study_tutor.models import Flashcard, Question, make_item_id

CONTENT_DIR = Path(__file__).parent / "data"


def is_seeded(db_path: str) -> bool:
    """Check whether the database already holds seeded content."""
    conn = get_connection(db_path)
    count = conn.execute("SELECT COUNT(*) FROM flashcards WHERE source = 'seeded'").fetchone()[0]
    conn.close()
    return count > 0


def flashcard_from_dict(data: dict, source: str = "seeded") -> Flashcard:
    item_id = data.get("id") or make_item_id(data["subject"], data["topic"], data["front"], "c")
    return Flashcard(
        item_id=item_id, subject=data["subject"], topic=data["topic"],
        front=data["front"], back=data["back"], source=source,
    )


def question_from_dict(data: dict, source: str = "seeded") -> Question:
    item_id = data.get("id") or make_item_id(data["subject"], data["topic"], data["stem"], "q")
    return Question(
        item_id=item_id, subject=data["subject"], topic=data["topic"],
        kind=data.get("kind", "choice"), stem=data["stem"],
        options=data.get("options", []), answers=data["answers"],
        points=int(data.get("points", 1)), explanation=data.get("explanation", ""),
        source=source,
    )


def _check_id_free(conn, other_table: str, item_id: str) -> None:
    """Flashcards and questions share one id space for progress tracking."""
    if conn.execute(f"SELECT 1 FROM {other_table} WHERE item_id = ?", (item_id,)).fetchone():
        raise ValueError(f"Id {item_id} is already used in {other_table}")


def insert_flashcard(conn, card: Flashcard) -> bool:
    """Insert a card unless its id is already present. Returns True when inserted."""
    _check_id_free(conn, "questions", card.item_id)
    cur = conn.execute(
        """INSERT OR IGNORE INTO flashcards (item_id, subject, topic, front, back, source, created_at)
        VALUES (?, ?, ?, ?, ?, ?, ?)""",
        (card.item_id, card.subject.value, card.topic, card.front, card.back, card.source,
         datetime.now().isoformat()),
    )
    return cur.rowcount > 0


def insert_question(conn, q: Question) -> bool:
    _check_id_free(conn, "flashcards", q.item_id)
    cur = conn.execute(
        """INSERT OR IGNORE INTO questions
        (item_id, subject, topic, kind, stem, options, answers, points, explanation, source, created_at)
        VALUES (?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?)""",
        (q.item_id, q.subject.value, q.topic, q.kind.value, q.stem, json.dumps(list(q.options)),
         json.dumps(list(q.answers)), q.points, q.explanation, q.source, datetime.now().isoformat()),
    )
    return cur.rowcount > 0


def seed_flashcards(db_path: str) -> int:
    """Insert flashcards from flashcards.json, skipping ids already present."""
    data = json.loads((CONTENT_DIR / "flashcards.json").read_text(encoding="utf-8"))
    conn = get_connection(db_path)
    added = sum(insert_flashcard(conn, flashcard_from_dict(card)) for card in data["flashcards"])
    conn.commit()
    conn.close()
    return added


def seed_questions(db_path: str) -> int:
    """Insert quiz questions from questions.json, skipping ids already present."""
    data = json.loads((CONTENT_DIR / "questions.json").read_text(encoding="utf-8"))
    conn = get_connection(db_path)
    added = sum(insert_question(conn, question_from_dict(q)) for q in data["questions"])
    conn.commit()
    conn.close()
    return added


def seed_all(db_path: str) -> int:
    """Run all seed functions. New corpus items are added; existing ids keep their progress."""
    added = seed_flashcards(db_path) + seed_questions(db_path)
    if added:
        logger.info("Seeded {} new content items", added)
    return added
