"""Interactive CLI application."""
import sys
from dataclasses import dataclass
from datetime import date, datetime
from pathlib import Path

from loguru import logger
from rich.console import Console
from rich.panel import Panel
from rich.prompt import Prompt, IntPrompt
from rich.table import Table

from study_tutor.content import (
    add_flashcard, add_question, delete_custom_item, get_flashcard,
    get_flashcards, get_question, get_questions, get_topics, update_flashcard, update_question,
)
from study_tutor.dashboard import (
    get_accuracy_color, get_overall_score, get_study_stats, get_subject_scores, format_duration,
)
from study_tutor.db import init_db, DEFAULT_DB_PATH
from study_tutor.importer import export_custom_content, import_file, parse_text_cards
from study_tutor.models import ExamEntry, ExamResult, QuestionKind, Subject
from study_tutor.review import get_review_cards, get_weak_topics
from study_tutor.scheduling import SchedulingEngine, pick_session
from study_tutor.scoring import (
    ExamRun, result_grade, result_passed, score, summarize,
)
from study_tutor.seed import seed_all
from study_tutor.settings import (
    EXAM_LENGTHS, get_exam_question_count, get_exam_seconds, get_int_setting,
    get_session_size, set_int_setting,
)
from study_tutor.storage import (
    get_exam_history, load_engine, load_session, record_exam, save_engine, save_session,
)
from study_tutor.tracker import SessionTracker

console = Console()

EXIT_WORDS = ("q", "menu")
SUBJECT_COLORS = {Subject.BSYS: "blue", Subject.DIGICOM: "green", Subject.TEAM: "magenta"}


class SessionExitRequested(Exception):
    """Raised when the learner leaves a running session from any prompt."""


@dataclass
class Study:
    db_path: str
    engine: SchedulingEngine
    tracker: SessionTracker

    def save(self) -> None:
        save_engine(self.db_path, self.engine)
        save_session(self.db_path, self.tracker.state)

    def roll_day(self, today: date | None = None) -> None:
        """Pick up a day boundary crossed while the program was running."""
        self.tracker.roll_day(today or date.today())


def session_prompt(prompt: str, **kwargs) -> str:
    answer = Prompt.ask(prompt, **kwargs)
    if (answer or "").strip().lower() in EXIT_WORDS:
        raise SessionExitRequested()
    return answer


def session_int_prompt(prompt: str, choices: list[str], **kwargs) -> int:
    return int(session_prompt(prompt, choices=choices, **kwargs))


def show_welcome(study: Study):
    state = study.tracker.state
    console.print(Panel(
        "[bold]Study Tutor[/bold]\n[dim]BSYS · DigiCom · TEAM[/dim]\n\n"
        f"Streak: [bold]{state.current_streak_days}[/bold] day(s)  |  "
        f"Today: [bold]{state.today_completed_count}/{state.daily_goal}[/bold]",
        title="Welcome", border_style="blue",
    ))


def show_menu():
    console.print("\n[bold]Commands:[/bold]")
    commands = [
        ("flashcards", "Study due flashcards"),
        ("quiz", "Practice quiz"),
        ("exam", "Timed exam simulation"),
        ("review", "Drill weak topics"),
        ("browse", "Browse topics"),
        ("progress", "Progress dashboard"),
        ("custom", "Manage your own content"),
        ("settings", "Daily goal and exam options"),
        ("quit", "Save and exit"),
    ]
    for cmd, desc in commands:
        console.print(f"  [cyan]{cmd:<14}[/cyan] {desc}")


def choose_subject(allow_all: bool = True) -> Subject | None:
    subjects = list(Subject)
    for i, subject in enumerate(subjects, 1):
        color = SUBJECT_COLORS[subject]
        console.print(f"  [{color}]{i}[/{color}]) {subject.value} - {subject.long_name}")
    choices = [str(i) for i in range(1, len(subjects) + 1)]
    if allow_all:
        console.print(f"  [cyan]{len(subjects) + 1}[/cyan]) All subjects")
        choices.append(str(len(subjects) + 1))
    picked = int(session_prompt("Subject", choices=choices, default=choices[-1]))
    return subjects[picked - 1] if picked <= len(subjects) else None


def run_flashcard_session(study: Study, cards: list) -> tuple[int, int]:
    if not cards:
        console.print("[yellow]Nothing to study right now![/yellow]")
        return 0, 0
    known = 0
    console.print(f"\n[bold]Flashcard Session[/bold] — {len(cards)} cards\n")
    for i, card in enumerate(cards, 1):
        color = SUBJECT_COLORS[card.subject]
        console.print(Panel(
            card.front, title=f"Card {i}/{len(cards)} | {card.subject.value} | {card.topic}", border_style=color,
        ))
        session_prompt("[dim]Press Enter to reveal answer[/dim]", default="", show_default=False)
        console.print(Panel(card.back, border_style="green"))
        rating = session_int_prompt(
            "Rate yourself (1=forgot, 2=hard, 3=good, 4=easy)", choices=["1", "2", "3", "4"],
        )
        record = study.engine.record_rating(card, rating)
        study.tracker.record_completed(1)
        if rating >= 3:
            known += 1
        console.print(f"[dim]Next review in {record.interval_days} day(s)[/dim]\n")
    console.print(f"[bold]Known: {known}/{len(cards)} ({known / len(cards) * 100:.0f}%)[/bold]\n")
    return known, len(cards)


def show_question(question, number: int, total: int) -> None:
    color = SUBJECT_COLORS[question.subject]
    console.print(f"[bold]Q{number}/{total}[/bold] [{color}]{question.subject.value}[/{color}] · {question.topic}")
    console.print(f"{question.stem}  [dim]({question.points} pt)[/dim]\n")
    if question.kind is QuestionKind.CHOICE:
        for i, option in enumerate(question.options):
            console.print(f"  [cyan]{chr(ord('a') + i)})[/cyan] {option}")
    else:
        console.print("  [dim]Separate multiple answers with commas.[/dim]")


def correct_answer_text(question) -> str:
    if question.kind is QuestionKind.CHOICE:
        return ", ".join(f"{chr(ord('a') + i)}) {question.options[i]}" for i in question.answers)
    return ", ".join(question.answers)


def show_result_summary(result: ExamResult, title: str = "Results") -> None:
    grade = result_grade(result)
    passed = result_passed(result)
    color = "green" if passed else "red"
    lines = [
        f"Score: [bold]{result.total_earned}/{result.total_possible}[/bold] ({result.percentage:.0f}%)",
        f"Grade: [{color}][bold]{grade.letter}[/bold] {grade.label}[/{color}]",
        f"Correct: {result.correct_count}/{len(result.entries)}",
    ]
    if result.duration_seconds:
        lines.append(f"Time: {result.duration_seconds // 60}m {result.duration_seconds % 60}s")
    if result.timed_out:
        lines.append(f"[yellow]Time ran out after {len(result.entries)} of {result.planned_questions} questions[/yellow]")
    console.print(Panel("\n".join(lines), title=title, border_style=color))


def run_quiz_session(study: Study, questions: list) -> ExamResult:
    if not questions:
        console.print("[yellow]No questions available![/yellow]")
        return summarize([])
    entries = []
    console.print(f"\n[bold]Quiz[/bold] — {len(questions)} questions\n")
    for i, q in enumerate(questions, 1):
        show_question(q, i, len(questions))
        answer = session_prompt("\nYour answer", default="", show_default=False)
        result = score(q, answer)
        study.engine.record_answer(q, result)
        study.tracker.record_completed(1)
        entries.append(ExamEntry(q, q.points, result.points_earned, result, answer))
        if result.correct:
            console.print("[green]Correct![/green]")
        elif result.points_earned:
            console.print(f"[yellow]Partly right ({result.detail}).[/yellow] Answer: [green]{correct_answer_text(q)}[/green]")
        else:
            console.print(f"[red]Incorrect.[/red] Answer: [green]{correct_answer_text(q)}[/green]")
        if q.explanation:
            console.print(f"[dim]{q.explanation}[/dim]")
        console.print()
    result = summarize(entries)
    show_result_summary(result, title="Quiz Results")
    return result


def run_exam(study: Study, questions: list, duration_seconds: int, clock=datetime.now) -> ExamResult | None:
    if not questions:
        console.print("[yellow]No questions available![/yellow]")
        return None
    run = ExamRun(questions, duration_seconds)
    run.start(clock())
    console.print(f"\n[bold]Exam[/bold] — {len(questions)} questions, {duration_seconds // 60} minutes\n")
    try:
        while True:
            q = run.next_question(clock())
            if q is None:
                break
            console.print(f"[dim]{format_duration(run.remaining_seconds(clock()))} left[/dim]")
            show_question(q, run.position + 1, len(questions))
            answer = session_prompt("\nAnswer", default="", show_default=False)
            result = run.answer(answer, clock())
            study.engine.record_answer(q, result)
            study.tracker.record_completed(1)
            console.print()
    except SessionExitRequested:
        console.print("[yellow]Exam ended early.[/yellow]")
    run.finish(clock())
    result = run.result()
    record_exam(study.db_path, result)
    show_result_summary(result, title="Exam Results")

    wrong = [e for e in result.entries if not e.result.correct]
    if wrong and Prompt.ask("Review incorrect answers?", choices=["y", "n"], default="n") == "y":
        for entry in wrong:
            q = entry.question
            console.print(f"\n[red]{q.stem}[/red]")
            if entry.result.answered:
                console.print(f"  Your answer: {entry.answer}")
            console.print(f"  [green]Correct: {correct_answer_text(q)}[/green]")
            if q.explanation:
                console.print(f"  [dim]{q.explanation}[/dim]")
    return result


def cmd_flashcards(study: Study):
    console.print("\n[bold]Flashcard Drill[/bold]")
    subject = choose_subject()
    cards = get_flashcards(study.db_path, subject=subject)
    due = pick_session(study.engine.select_due(cards), get_session_size(study.db_path))
    run_flashcard_session(study, due)


def cmd_quiz(study: Study):
    console.print("\n[bold]Practice Quiz[/bold]")
    subject = choose_subject()
    pool = get_questions(study.db_path, subject=subject)
    if not pool:
        console.print("[yellow]No questions available![/yellow]")
        return
    count = IntPrompt.ask(f"Number of questions (max {len(pool)})", default=min(10, len(pool)))
    count = max(1, min(count, len(pool)))
    run_quiz_session(study, pick_session(pool, count))


def cmd_exam(study: Study):
    console.print(Panel(
        "Mixed questions from all subjects.\nNo feedback until the end.\nTimed.",
        title="Exam Simulation", border_style="red",
    ))
    default = str(get_exam_question_count(study.db_path))
    choices = [str(n) for n in EXAM_LENGTHS]
    length = int(Prompt.ask("Questions", choices=choices, default=default if default in choices else choices[1]))
    pool = get_questions(study.db_path)
    run_exam(study, pick_session(pool, length), get_exam_seconds(study.db_path))


def cmd_review(study: Study):
    console.print("\n[bold]Weak Topic Review[/bold]\n")
    weak = get_weak_topics(study.engine)
    if weak:
        table = Table(title="Weak Topics")
        table.add_column("Subject")
        table.add_column("Topic")
        table.add_column("Accuracy", justify="right")
        table.add_column("Attempts", justify="right")
        for w in weak:
            table.add_row(w["subject"], w["topic"], f"{w['accuracy']}%", str(w["attempts"]))
        console.print(table)
    else:
        console.print("[green]No weak topics detected! Reviewing a random mix.[/green]")
    run_flashcard_session(study, get_review_cards(study.db_path, study.engine))


def cmd_browse(study: Study):
    subject = choose_subject(allow_all=False)
    topics = get_topics(study.db_path, subject)
    if not topics:
        console.print("[yellow]No topics yet.[/yellow]")
        return
    for i, t in enumerate(topics, 1):
        console.print(f"  [cyan]{i}[/cyan]) {t['topic']} ({t['cards']} cards)")
    picked = int(session_prompt("Topic", choices=[str(i) for i in range(1, len(topics) + 1)]))
    topic = topics[picked - 1]["topic"]
    for card in get_flashcards(study.db_path, subject=subject, topic=topic):
        mastered = " [green]✓ mastered[/green]" if study.engine.progress.is_mastered(card.item_id) else ""
        console.print(Panel(f"[bold]{card.front}[/bold]\n\n{card.back}", title=f"{topic}{mastered}"))


def cmd_progress(study: Study):
    stats = get_study_stats(study.db_path, study.engine, study.tracker)
    overall = get_overall_score(study.engine)
    color = get_accuracy_color(overall)
    console.print(Panel(
        f"Streak: [bold]{stats['current_streak']}[/bold] day(s) (best {stats['longest_streak']})  |  "
        f"Today: [bold]{stats['today_completed']}/{stats['daily_goal']}[/bold]  |  "
        f"Study time: [bold]{stats['study_time']}[/bold]",
        title="Your Progress", border_style="blue",
    ))

    table = Table(title="Subject Statistics")
    table.add_column("Subject", style="cyan")
    table.add_column("Accuracy", justify="right")
    table.add_column("Answered", justify="right")
    table.add_column("Status")
    for s in get_subject_scores(study.engine):
        sc_color = get_accuracy_color(s["score"])
        bar_filled = int(s["score"] / 5)
        table.add_row(
            f"{s['subject']} - {s['name']}",
            f"[{sc_color}]{'█' * bar_filled}{'░' * (20 - bar_filled)}[/{sc_color}] {s['score']}%",
            f"{s['correct']}/{s['attempts']}",
            f"[{sc_color}]{s['label']}[/{sc_color}]",
        )
    console.print(table)
    console.print(f"\n  Overall: [{color}][bold]{overall}%[/bold][/{color}]")
    console.print(f"  Cards mastered: [bold]{stats['mastered']}/{stats['flashcards_total']}[/bold]  |  "
                  f"Due now: [bold]{stats['due_now']}[/bold]  |  "
                  f"Questions: [bold]{stats['questions_total']}[/bold]")
    if stats["exams_taken"]:
        console.print(f"  Exams: [bold]{stats['exams_passed']}/{stats['exams_taken']}[/bold] passed, "
                      f"average [bold]{stats['avg_exam_score']}%[/bold]")
        for exam in get_exam_history(study.db_path, limit=5):
            console.print(f"    [dim]{exam['taken_at'][:16]}[/dim]  {exam['percentage']}%  {exam['grade']}")


def _add_custom_flashcard(db_path: str):
    subject = choose_subject(allow_all=False)
    topic = Prompt.ask("Topic", default="Custom")
    front = Prompt.ask("Front (question)")
    back = Prompt.ask("Back (answer)")
    card = add_flashcard(db_path, subject, topic, front, back)
    console.print(f"[green]Added flashcard {card.item_id}[/green]")


def _add_custom_question(db_path: str):
    subject = choose_subject(allow_all=False)
    topic = Prompt.ask("Topic", default="Custom")
    qtype = Prompt.ask("Type", choices=["choice", "truefalse", "fillin"], default="choice")
    stem = Prompt.ask("Question")
    points = IntPrompt.ask("Points", default=1)
    if qtype == "fillin":
        tokens = Prompt.ask("Accepted answers (comma separated)")
        answers = [t.strip() for t in tokens.split(",") if t.strip()]
        options, kind = (), QuestionKind.FILL_IN
    else:
        if qtype == "truefalse":
            options = ("True", "False")
        else:
            options = tuple(Prompt.ask(f"Option {chr(ord('A') + i)}") for i in range(4))
        letters = [chr(ord("a") + i) for i in range(len(options))]
        answers = [letters.index(Prompt.ask("Correct option", choices=letters))]
        kind = QuestionKind.CHOICE
    explanation = Prompt.ask("Explanation", default="")
    q = add_question(db_path, subject, topic, stem, answers, options=options, kind=kind,
                     points=points, explanation=explanation)
    console.print(f"[green]Added question {q.item_id}[/green]")


def _bulk_add(db_path: str):
    subject = choose_subject(allow_all=False)
    topic = Prompt.ask("Topic", default="Imported")
    console.print("[dim]One card per line as 'front ; back'. Empty line to finish.[/dim]")
    added = 0
    while True:
        line = Prompt.ask(">", default="", show_default=False)
        if not line.strip():
            break
        for card in parse_text_cards(line, subject, topic):
            try:
                add_flashcard(db_path, card["subject"], card["topic"], card["front"], card["back"])
                added += 1
            except ValueError as e:
                console.print(f"[red]{e}[/red]")
    console.print(f"[green]Added {added} flashcards[/green]")


def _list_custom(db_path: str):
    table = Table(title="Your Content")
    table.add_column("ID", style="cyan")
    table.add_column("Type")
    table.add_column("Subject")
    table.add_column("Text")
    for c in get_flashcards(db_path, source="custom"):
        table.add_row(c.item_id, "card", c.subject.value, c.front[:50])
    for q in get_questions(db_path, source="custom"):
        table.add_row(q.item_id, q.kind.value, q.subject.value, q.stem[:50])
    console.print(table)


def _edit_custom(db_path: str):
    item_id = Prompt.ask("Item ID")
    card = get_flashcard(db_path, item_id)
    if card is not None:
        update_flashcard(
            db_path, item_id,
            front=Prompt.ask("Front", default=card.front),
            back=Prompt.ask("Back", default=card.back),
        )
        console.print("[green]Flashcard updated.[/green]")
        return
    q = get_question(db_path, item_id)
    if q is None:
        console.print(f"[red]No item {item_id}[/red]")
        return
    update_question(
        db_path, item_id,
        stem=Prompt.ask("Question", default=q.stem),
        points=IntPrompt.ask("Points", default=q.points),
        explanation=Prompt.ask("Explanation", default=q.explanation),
    )
    console.print("[green]Question updated.[/green]")


def cmd_custom(study: Study):
    db_path = study.db_path
    console.print("\n[bold]Custom Content[/bold]")
    action = Prompt.ask(
        "Action", choices=["card", "question", "bulk", "list", "edit", "delete", "import", "export"],
        default="list",
    )
    try:
        if action == "card":
            _add_custom_flashcard(db_path)
        elif action == "question":
            _add_custom_question(db_path)
        elif action == "bulk":
            _bulk_add(db_path)
        elif action == "list":
            _list_custom(db_path)
        elif action == "edit":
            _edit_custom(db_path)
        elif action == "delete":
            item_id = Prompt.ask("Item ID")
            if delete_custom_item(db_path, item_id):
                study.engine.progress.forget(item_id)
                console.print(f"[green]Deleted {item_id}[/green]")
            else:
                console.print(f"[red]No custom item {item_id}[/red]")
        elif action == "import":
            file_path = Prompt.ask("File path")
            if not Path(file_path).exists():
                console.print(f"[red]File not found: {file_path}[/red]")
                return
            result = import_file(db_path, file_path)
            console.print(f"[green]Imported {result.filename}: {result.flashcards} cards, "
                          f"{result.questions} questions[/green]"
                          + (f" [dim]({result.skipped} already present)[/dim]" if result.skipped else ""))
            for error in result.errors:
                console.print(f"[red]  {error}[/red]")
        elif action == "export":
            file_path = Prompt.ask("File path", default="study_export.json")
            result = export_custom_content(db_path, file_path)
            console.print(f"[green]Exported {result['flashcards']} cards and {result['questions']} "
                          f"questions to {result['filename']}[/green]")
    except (KeyError, ValueError) as e:
        console.print(f"[red]{e}[/red]")


def cmd_settings(study: Study):
    db_path = study.db_path
    table = Table(title="Settings")
    table.add_column("Setting", style="cyan")
    table.add_column("Value", justify="right")
    for key in ("daily_goal", "session_size", "exam_question_count", "exam_minutes"):
        table.add_row(key, str(get_int_setting(db_path, key)))
    console.print(table)
    key = Prompt.ask(
        "Change", choices=["daily_goal", "session_size", "exam_question_count", "exam_minutes", "none"],
        default="none",
    )
    if key == "none":
        return
    value = IntPrompt.ask("New value")
    try:
        set_int_setting(db_path, key, value)
    except ValueError as e:
        console.print(f"[red]{e}[/red]")
        return
    if key == "daily_goal":
        study.tracker.state.daily_goal = value
    console.print("[green]Saved.[/green]")


COMMANDS = {
    "flashcards": cmd_flashcards,
    "quiz": cmd_quiz,
    "exam": cmd_exam,
    "review": cmd_review,
    "browse": cmd_browse,
    "progress": cmd_progress,
    "custom": cmd_custom,
    "settings": cmd_settings,
}


def configure_logging(db_path: str) -> None:
    Path(db_path).parent.mkdir(parents=True, exist_ok=True)
    logger.remove()
    logger.add(sys.stderr, level="WARNING", format="<level>{message}</level>")
    logger.add(
        Path(db_path).parent / "study_tutor.log",
        level="INFO", rotation="1 MB", retention=3,
    )


def open_study(db_path: str) -> Study:
    init_db(db_path)
    seed_all(db_path)
    tracker = SessionTracker(load_session(db_path))
    tracker.start_session()
    study = Study(db_path, load_engine(db_path), tracker)
    study.save()
    return study


def main():
    db_path = DEFAULT_DB_PATH
    configure_logging(db_path)
    study = open_study(db_path)
    show_welcome(study)

    while True:
        show_menu()
        choice = Prompt.ask("\n[bold]>[/bold]", default="flashcards").strip().lower()
        if choice in ("quit", "exit", "q"):
            study.tracker.end_session()
            study.save()
            console.print(f"[dim]Progress saved. Studied {study.tracker.session_completed} item(s) "
                          f"this session. See you tomorrow![/dim]")
            break
        command = COMMANDS.get(choice)
        if command is None:
            console.print("[red]Unknown command. Try again.[/red]")
            continue
        study.roll_day()
        goal_was_reached = study.tracker.goal_reached
        try:
            command(study)
        except SessionExitRequested:
            console.print("[dim]Session ended.[/dim]")
        except KeyboardInterrupt:
            console.print("\n[dim]Use 'quit' to exit.[/dim]")
        except Exception as e:
            logger.exception("Command {} failed", choice)
            console.print(f"[red]Error: {e}[/red]")
        finally:
            study.save()
        if study.tracker.goal_reached and not goal_was_reached:
            console.print(f"[green]Daily goal of {study.tracker.state.daily_goal} reached![/green]")


if __name__ == "__main__":
    main()
