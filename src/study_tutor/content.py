"""Flashcard and question queries, plus custom content management."""
import json

from loguru import logger

from study_tutor.db import get_connection
from study_tutor.models import Flashcard, Question, QuestionKind, Subject, make_item_id
from study_tutor.seed import insert_flashcard, insert_question


def _row_to_flashcard(row) -> Flashcard:
    return Flashcard(
        item_id=row["item_id"], subject=row["subject"], topic=row["topic"],
        front=row["front"], back=row["back"], source=row["source"],
    )


def _row_to_question(row) -> Question:
    return Question(
        item_id=row["item_id"], subject=row["subject"], topic=row["topic"], kind=row["kind"],
        stem=row["stem"], options=json.loads(row["options"]), answers=json.loads(row["answers"]),
        points=row["points"], explanation=row["explanation"] or "", source=row["source"],
    )


def _filters(subject=None, topic=None, source=None) -> tuple[str, list]:
    clauses, params = [], []
    if subject is not None:
        clauses.append("subject = ?")
        params.append(Subject(subject).value)
    if topic is not None:
        clauses.append("topic = ?")
        params.append(topic)
    if source is not None:
        clauses.append("source = ?")
        params.append(source)
    where = f"WHERE {' AND '.join(clauses)}" if clauses else ""
    return where, params


def get_flashcards(db_path: str, subject=None, topic=None, source=None) -> list[Flashcard]:
    where, params = _filters(subject, topic, source)
    conn = get_connection(db_path)
    rows = conn.execute(f"SELECT * FROM flashcards {where} ORDER BY subject, topic, item_id", params).fetchall()
    conn.close()
    return [_row_to_flashcard(r) for r in rows]


def get_questions(db_path: str, subject=None, topic=None, source=None, kind=None) -> list[Question]:
    where, params = _filters(subject, topic, source)
    if kind is not None:
        where += (" AND " if where else "WHERE ") + "kind = ?"
        params.append(QuestionKind(kind).value)
    conn = get_connection(db_path)
    rows = conn.execute(f"SELECT * FROM questions {where} ORDER BY subject, topic, item_id", params).fetchall()
    conn.close()
    return [_row_to_question(r) for r in rows]


def get_flashcard(db_path: str, item_id: str) -> Flashcard | None:
    conn = get_connection(db_path)
    row = conn.execute("SELECT * FROM flashcards WHERE item_id = ?", (item_id,)).fetchone()
    conn.close()
    return _row_to_flashcard(row) if row else None


def get_question(db_path: str, item_id: str) -> Question | None:
    conn = get_connection(db_path)
    row = conn.execute("SELECT * FROM questions WHERE item_id = ?", (item_id,)).fetchone()
    conn.close()
    return _row_to_question(row) if row else None


def get_topics(db_path: str, subject) -> list[dict]:
    """Topics of a subject with their flashcard counts, alphabetically."""
    conn = get_connection(db_path)
    rows = conn.execute(
        "SELECT topic, COUNT(*) as cards FROM flashcards WHERE subject = ? GROUP BY topic ORDER BY topic",
        (Subject(subject).value,),
    ).fetchall()
    conn.close()
    return [{"topic": r["topic"], "cards": r["cards"]} for r in rows]


# --- Custom content ---


def add_flashcard(db_path: str, subject, topic: str, front: str, back: str) -> Flashcard:
    topic, front = topic.strip(), front.strip()
    card = Flashcard(
        item_id=make_item_id(subject, topic, front, "c"), subject=subject, topic=topic,
        front=front, back=back.strip(), source="custom",
    )
    conn = get_connection(db_path)
    try:
        inserted = insert_flashcard(conn, card)
        conn.commit()
    finally:
        conn.close()
    if not inserted:
        raise ValueError(f"A flashcard with id {card.item_id} already exists")
    logger.info("Added custom flashcard {}", card.item_id)
    return card


def add_question(db_path: str, subject, topic: str, stem: str, answers, options=(),
                 kind=QuestionKind.CHOICE, points: int = 1, explanation: str = "") -> Question:
    topic, stem = topic.strip(), stem.strip()
    question = Question(
        item_id=make_item_id(subject, topic, stem, "q"), subject=subject, topic=topic,
        kind=kind, stem=stem, options=options, answers=answers, points=points,
        explanation=explanation.strip(), source="custom",
    )
    conn = get_connection(db_path)
    try:
        inserted = insert_question(conn, question)
        conn.commit()
    finally:
        conn.close()
    if not inserted:
        raise ValueError(f"A question with id {question.item_id} already exists")
    logger.info("Added custom question {}", question.item_id)
    return question


def update_flashcard(db_path: str, item_id: str, **fields) -> Flashcard:
    """Edit a custom flashcard in place. Its id stays the same so progress is kept."""
    card = get_flashcard(db_path, item_id)
    if card is None or card.source != "custom":
        raise KeyError(f"No custom flashcard {item_id}")
    updated = Flashcard(
        item_id=item_id,
        subject=fields.get("subject", card.subject),
        topic=fields.get("topic", card.topic),
        front=fields.get("front", card.front),
        back=fields.get("back", card.back),
        source="custom",
    )
    conn = get_connection(db_path)
    conn.execute(
        "UPDATE flashcards SET subject=?, topic=?, front=?, back=? WHERE item_id=?",
        (updated.subject.value, updated.topic, updated.front, updated.back, item_id),
    )
    conn.commit()
    conn.close()
    return updated


def update_question(db_path: str, item_id: str, **fields) -> Question:
    """Edit a custom question in place, keeping its id."""
    q = get_question(db_path, item_id)
    if q is None or q.source != "custom":
        raise KeyError(f"No custom question {item_id}")
    updated = Question(
        item_id=item_id,
        subject=fields.get("subject", q.subject),
        topic=fields.get("topic", q.topic),
        kind=fields.get("kind", q.kind),
        stem=fields.get("stem", q.stem),
        options=fields.get("options", q.options),
        answers=fields.get("answers", q.answers),
        points=fields.get("points", q.points),
        explanation=fields.get("explanation", q.explanation),
        source="custom",
    )
    conn = get_connection(db_path)
    conn.execute(
        """UPDATE questions SET subject=?, topic=?, kind=?, stem=?, options=?, answers=?,
        points=?, explanation=? WHERE item_id=?""",
        (updated.subject.value, updated.topic, updated.kind.value, updated.stem,
         json.dumps(list(updated.options)), json.dumps(list(updated.answers)),
         updated.points, updated.explanation, item_id),
    )
    conn.commit()
    conn.close()
    return updated


def delete_custom_item(db_path: str, item_id: str) -> bool:
    """Delete a custom flashcard or question together with its stored progress.

    Seeded content cannot be deleted. Callers holding a loaded ProgressStore
    must also call its ``forget`` so the next save does not write it back.
    """
    conn = get_connection(db_path)
    removed = 0
    for table in ("flashcards", "questions"):
        removed += conn.execute(
            f"DELETE FROM {table} WHERE item_id = ? AND source = 'custom'", (item_id,)
        ).rowcount
    if removed:
        conn.execute("DELETE FROM review_records WHERE item_id = ?", (item_id,))
        conn.execute("DELETE FROM mastered_items WHERE item_id = ?", (item_id,))
    conn.commit()
    conn.close()
    if removed:
        logger.info("Deleted custom item {}", item_id)
    return removed > 0
