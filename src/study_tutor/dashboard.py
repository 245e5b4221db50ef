"""Progress dashboard statistics."""
from datetime import datetime

from study_tutor.content import get_flashcards, get_questions
from study_tutor.models import Subject
from study_tutor.scheduling import SchedulingEngine
from study_tutor.storage import get_exam_history
from study_tutor.tracker import SessionTracker


def get_accuracy_label(score: float) -> str:
    if score >= 80:
        return "STRONG"
    elif score >= 60:
        return "OK"
    elif score > 0:
        return "WEAK"
    return "NO DATA"


def get_accuracy_color(score: float) -> str:
    if score >= 80:
        return "green"
    elif score >= 60:
        return "yellow"
    elif score > 0:
        return "red"
    return "dim"


def get_subject_scores(engine: SchedulingEngine) -> list[dict]:
    """Accuracy per subject, aggregated over all of its topic statistics."""
    totals = {subject: [0, 0] for subject in Subject}
    for key, stat in engine.topic_stats.items():
        for subject in Subject:
            if key.startswith(f"{subject.value}-"):
                totals[subject][0] += stat.correct
                totals[subject][1] += stat.attempts
    results = []
    for subject, (correct, attempts) in totals.items():
        score = (correct / attempts * 100) if attempts else 0.0
        results.append({
            "subject": subject.value,
            "name": subject.long_name,
            "correct": correct,
            "attempts": attempts,
            "score": round(score, 1),
            "label": get_accuracy_label(score),
        })
    return results


def get_overall_score(engine: SchedulingEngine) -> float:
    stats = engine.topic_stats.values()
    attempts = sum(s.attempts for s in stats)
    if not attempts:
        return 0.0
    return round(sum(s.correct for s in stats) / attempts * 100, 1)


def format_duration(seconds: int) -> str:
    hours, rest = divmod(max(int(seconds), 0), 3600)
    minutes = rest // 60
    return f"{hours}h {minutes:02d}m" if hours else f"{minutes}m"


def get_study_stats(db_path: str, engine: SchedulingEngine, tracker: SessionTracker,
                    now: datetime | None = None) -> dict:
    cards = get_flashcards(db_path)
    questions = get_questions(db_path)
    card_ids = [c.item_id for c in cards]
    exams = get_exam_history(db_path, limit=1000)
    state = tracker.state
    return {
        "flashcards_total": len(cards),
        "questions_total": len(questions),
        "mastered": sum(1 for item_id in card_ids if engine.progress.is_mastered(item_id)),
        "due_now": engine.progress.count_due(card_ids, now),
        "reviews": sum(r.times_seen for r in engine.progress.records.values()),
        "current_streak": state.current_streak_days,
        "longest_streak": state.longest_streak_days,
        "today_completed": state.today_completed_count,
        "daily_goal": state.daily_goal,
        "study_time": format_duration(state.total_study_seconds),
        "exams_taken": len(exams),
        "exams_passed": sum(1 for e in exams if e["passed"]),
        "avg_exam_score": round(sum(e["percentage"] for e in exams) / len(exams), 1) if exams else 0.0,
    }
