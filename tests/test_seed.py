# tests/test_seed.py
import pytest

from study_tutor.content import get_flashcards, get_questions
from study_tutor.db import init_db
from study_tutor.models import Subject
from study_tutor.seed import (
    flashcard_from_dict, is_seeded, question_from_dict, seed_all, seed_flashcards, seed_questions,
)


@pytest.fixture
def db(tmp_db):
    init_db(tmp_db)
    return tmp_db


def test_seed_flashcards(db):
    assert not is_seeded(db)
    assert seed_flashcards(db) == 21
    assert is_seeded(db)
    subjects = {c.subject for c in get_flashcards(db)}
    assert subjects == set(Subject)


def test_seed_questions(db):
    assert seed_questions(db) == 14
    questions = get_questions(db)
    assert sum(1 for q in questions if q.kind.value == "fill_in") == 4
    assert all(q.source == "seeded" for q in questions)


def test_seed_all_is_idempotent(db):
    assert seed_all(db) == 35
    assert seed_all(db) == 0
    assert len(get_flashcards(db)) == 21


def test_seeded_ids_are_stable(db):
    seed_all(db)
    ids = {c.item_id for c in get_flashcards(db)}
    assert {"bsys-process-states", "digicom-osi-layers", "team-tuckman"} <= ids


def test_flashcard_from_dict_derives_id_when_missing():
    card = flashcard_from_dict({"subject": "TEAM", "topic": "Roles", "front": "Plant?", "back": "Ideas"})
    assert card.item_id.startswith("team-")
    again = flashcard_from_dict({"subject": "TEAM", "topic": "Roles", "front": "Plant?", "back": "Other"})
    assert again.item_id == card.item_id


def test_question_from_dict_defaults():
    q = question_from_dict(
        {"subject": "BSYS", "topic": "Memory", "stem": "Pages?", "options": ["a", "b"], "answers": [0]},
        source="custom",
    )
    assert q.kind.value == "choice"
    assert q.points == 1
    assert q.source == "custom"


def test_question_from_dict_missing_field():
    with pytest.raises(KeyError):
        question_from_dict({"subject": "BSYS", "topic": "Memory", "answers": [0]})
