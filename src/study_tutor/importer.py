"""Import and export of custom study content."""
import json
from dataclasses import dataclass, field
from pathlib import Path

import yaml
from loguru import logger

from study_tutor.content import get_flashcards, get_questions
from study_tutor.db import get_connection
from study_tutor.models import Subject
from study_tutor.seed import flashcard_from_dict, insert_flashcard, insert_question, question_from_dict

# Keyword mapping for auto-categorization
SUBJECT_KEYWORDS = {
    Subject.BSYS: ["process", "thread", "scheduler", "scheduling", "memory", "page", "tlb", "deadlock",
                   "kernel", "fork", "semaphore", "mutex", "file system", "virtual"],
    Subject.DIGICOM: ["osi", "tcp", "udp", "ip ", "packet", "frame", "signal", "modulation", "bandwidth",
                      "nyquist", "router", "ethernet", "protocol", "bit"],
    Subject.TEAM: ["team", "conflict", "feedback", "role", "tuckman", "belbin", "meeting", "leader",
                   "communication", "storming", "norming", "cooperation"],
}

DEFAULT_TOPIC = "Imported"


@dataclass
class ImportResult:
    filename: str
    flashcards: int = 0
    questions: int = 0
    skipped: int = 0
    errors: list = field(default_factory=list)


def categorize_content(text: str) -> Subject | None:
    """Auto-categorize text into a subject by keyword matching."""
    text_lower = text.lower()
    scores = {subject: sum(1 for kw in keywords if kw in text_lower) for subject, keywords in SUBJECT_KEYWORDS.items()}
    best = max(scores, key=scores.get)
    return best if scores[best] > 0 else None


def parse_text_cards(text: str, subject=None, topic: str = DEFAULT_TOPIC) -> list[dict]:
    """Parse ``front ; back`` lines. Blank lines and ``#`` comments are ignored."""
    cards = []
    for line in text.splitlines():
        line = line.strip()
        if not line or line.startswith("#"):
            continue
        parts = line.split(";", 1)
        if len(parts) != 2:
            continue
        front, back = parts[0].strip(), parts[1].strip()
        card_subject = subject or categorize_content(line) or Subject.BSYS
        cards.append({"subject": Subject(card_subject).value, "topic": topic, "front": front, "back": back})
    return cards


def read_content_file(file_path: str, subject=None, topic: str = DEFAULT_TOPIC) -> dict:
    """Read a content file into ``{"flashcards": [...], "questions": [...]}``."""
    path = Path(file_path)
    suffix = path.suffix.lower()
    text = path.read_text(encoding="utf-8")

    if suffix == ".json":
        data = json.loads(text)
    elif suffix in (".yaml", ".yml"):
        data = yaml.safe_load(text) or {}
    else:
        return {"flashcards": parse_text_cards(text, subject, topic), "questions": []}
    if not isinstance(data, dict):
        raise ValueError(f"{path.name}: expected a mapping with 'flashcards' and/or 'questions'")
    return {"flashcards": data.get("flashcards") or [], "questions": data.get("questions") or []}


def import_file(db_path: str, file_path: str, subject=None, topic: str = DEFAULT_TOPIC) -> ImportResult:
    """Import custom content. Malformed entries are reported and skipped, duplicates ignored."""
    data = read_content_file(file_path, subject, topic)
    result = ImportResult(filename=Path(file_path).name)
    conn = get_connection(db_path)
    for kind, build, insert in (
        ("flashcards", flashcard_from_dict, insert_flashcard),
        ("questions", question_from_dict, insert_question),
    ):
        for index, entry in enumerate(data[kind], 1):
            try:
                item = build(entry, source="custom")
                inserted = insert(conn, item)
            except (KeyError, TypeError, ValueError) as e:
                result.errors.append(f"{kind} #{index}: {e}")
                continue
            if inserted:
                setattr(result, kind, getattr(result, kind) + 1)
            else:
                result.skipped += 1
    conn.commit()
    conn.close()
    logger.info(
        "Imported {}: {} flashcards, {} questions, {} duplicates, {} errors",
        result.filename, result.flashcards, result.questions, result.skipped, len(result.errors),
    )
    for error in result.errors:
        logger.warning("Import {}: {}", result.filename, error)
    return result


def export_custom_content(db_path: str, file_path: str) -> dict:
    """Write custom flashcards and questions to a JSON or YAML file that import_file can read back."""
    cards = get_flashcards(db_path, source="custom")
    questions = get_questions(db_path, source="custom")
    data = {
        "flashcards": [
            {"id": c.item_id, "subject": c.subject.value, "topic": c.topic, "front": c.front, "back": c.back}
            for c in cards
        ],
        "questions": [
            {
                "id": q.item_id, "subject": q.subject.value, "topic": q.topic, "kind": q.kind.value,
                "stem": q.stem, "options": list(q.options), "answers": list(q.answers),
                "points": q.points, "explanation": q.explanation,
            }
            for q in questions
        ],
    }
    path = Path(file_path)
    if path.suffix.lower() in (".yaml", ".yml"):
        path.write_text(yaml.safe_dump(data, sort_keys=False, allow_unicode=True), encoding="utf-8")
    else:
        path.write_text(json.dumps(data, indent=2, ensure_ascii=False), encoding="utf-8")
    logger.info("Exported {} flashcards and {} questions to {}", len(cards), len(questions), path)
    return {"filename": path.name, "flashcards": len(cards), "questions": len(questions)}
