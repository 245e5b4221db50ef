import pytest
from datetime import date, datetime, timedelta
from unittest.mock import patch

from study_tutor.app import (
    SessionExitRequested, Study, choose_subject, cmd_custom, cmd_settings, correct_answer_text,
    open_study, run_exam, run_flashcard_session, run_quiz_session, session_int_prompt, session_prompt,
)
from study_tutor.content import get_flashcard, get_flashcards
from study_tutor.db import init_db
from study_tutor.models import Question, Subject
from study_tutor.progress import ProgressStore
from study_tutor.scheduling import SchedulingEngine
from study_tutor.seed import seed_all
from study_tutor.settings import get_daily_goal
from study_tutor.storage import get_exam_history, load_engine, load_session
from study_tutor.tracker import SessionTracker

START = datetime(2024, 9, 2, 18, 0)


def test_session_exit_requested_is_exception():
    with pytest.raises(SessionExitRequested):
        raise SessionExitRequested()


def test_session_prompt_raises_on_q():
    with patch("study_tutor.app.Prompt.ask", return_value="q"):
        with pytest.raises(SessionExitRequested):
            session_prompt("test prompt")


def test_session_prompt_raises_on_menu():
    with patch("study_tutor.app.Prompt.ask", return_value=" MENU "):
        with pytest.raises(SessionExitRequested):
            session_prompt("test prompt")


def test_session_prompt_returns_normal_input():
    with patch("study_tutor.app.Prompt.ask", return_value="hello"):
        assert session_prompt("test prompt") == "hello"


def test_session_int_prompt_returns_number():
    with patch("study_tutor.app.Prompt.ask", return_value="3"):
        assert session_int_prompt("rate", choices=["1", "2", "3", "4"]) == 3


def test_choose_subject():
    with patch("study_tutor.app.Prompt.ask", return_value="2"):
        assert choose_subject() is Subject.DIGICOM
    with patch("study_tutor.app.Prompt.ask", return_value="4"):
        assert choose_subject() is None


@pytest.fixture
def study(tmp_db):
    init_db(tmp_db)
    seed_all(tmp_db)
    return Study(tmp_db, SchedulingEngine(ProgressStore()), SessionTracker())


def _choice(item_id, answer_index=0, points=1, topic="Memory"):
    return Question(
        item_id=item_id, subject="BSYS", topic=topic, kind="choice",
        stem=f"Question {item_id}", options=["one", "two", "three"], answers=[answer_index], points=points,
    )


def test_run_flashcard_session_records_ratings(study):
    cards = get_flashcards(study.db_path, topic="Memory")
    with patch("study_tutor.app.Prompt.ask", side_effect=["", "4", "", "1"]):
        known, total = run_flashcard_session(study, cards)
    assert (known, total) == (1, 2)
    assert study.tracker.state.today_completed_count == 2
    assert study.engine.progress.get_record(cards[0].item_id).interval_days == 2
    assert study.engine.progress.get_record(cards[1].item_id).interval_days == 1
    stat = study.engine.get_topic_stat("BSYS-Memory")
    assert (stat.correct, stat.attempts) == (1, 2)


def test_run_flashcard_session_exits_on_q(study):
    cards = get_flashcards(study.db_path, topic="Processes")[:2]
    with patch("study_tutor.app.Prompt.ask", side_effect=["", "3", "q"]):
        with pytest.raises(SessionExitRequested):
            run_flashcard_session(study, cards)
    assert study.engine.progress.get_record(cards[0].item_id).times_seen == 1
    assert study.engine.progress.get_record(cards[1].item_id).times_seen == 0


def test_run_flashcard_session_empty(study):
    assert run_flashcard_session(study, []) == (0, 0)


def test_run_quiz_session_scores_answers(study):
    fill_in = Question(
        item_id="fi", subject="BSYS", topic="Deadlocks", kind="fill_in", stem="Conditions?",
        answers=["mutual exclusion", "hold and wait", "no preemption", "circular wait"], points=4,
    )
    with patch("study_tutor.app.Prompt.ask", side_effect=["a", "c", "circular wait, hold and wait"]):
        result = run_quiz_session(study, [_choice("q1"), _choice("q2"), fill_in])
    assert (result.total_earned, result.total_possible) == (3, 6)
    assert result.correct_count == 1
    assert study.tracker.state.today_completed_count == 3
    assert study.engine.get_topic_stat("BSYS-Memory").attempts == 2
    assert study.engine.progress.get_record("fi").interval_days == 1


def test_run_exam_records_history(study):
    questions = [_choice("e1", 1, points=2), _choice("e2", 2, points=3)]
    with patch("study_tutor.app.Prompt.ask", side_effect=["b", "c"]):
        result = run_exam(study, questions, 600, clock=lambda: START)
    assert (result.total_earned, result.total_possible) == (5, 5)
    assert not result.timed_out
    history = get_exam_history(study.db_path)
    assert len(history) == 1
    assert history[0]["grade"] == "A"
    assert history[0]["passed"] == 1


def test_run_exam_times_out(study):
    ticks = iter(START + timedelta(seconds=10 * i) for i in range(100))
    questions = [_choice(f"t{i}") for i in range(5)]
    with patch("study_tutor.app.Prompt.ask", side_effect=["a", "a"]):
        result = run_exam(study, questions, 60, clock=lambda: next(ticks))
    assert result.timed_out
    assert len(result.entries) == 2
    assert result.total_possible == 2
    assert get_exam_history(study.db_path)[0]["timed_out"] == 1


def test_run_exam_quit_keeps_answered_questions(study):
    questions = [_choice("x1"), _choice("x2"), _choice("x3")]
    with patch("study_tutor.app.Prompt.ask", side_effect=["b", "q", "n"]):
        result = run_exam(study, questions, 600, clock=lambda: START)
    assert len(result.entries) == 1
    assert (result.total_earned, result.total_possible) == (0, 1)
    assert get_exam_history(study.db_path)[0]["questions_presented"] == 1


def test_run_exam_without_questions(study):
    assert run_exam(study, [], 600) is None


def test_correct_answer_text():
    assert correct_answer_text(_choice("c", 2)) == "c) three"


def test_cmd_settings_updates_daily_goal(study):
    with patch("study_tutor.app.Prompt.ask", return_value="daily_goal"), \
            patch("study_tutor.app.IntPrompt.ask", return_value=5):
        cmd_settings(study)
    assert get_daily_goal(study.db_path) == 5
    assert study.tracker.state.daily_goal == 5


def test_cmd_custom_add_and_delete_flashcard(study):
    with patch("study_tutor.app.Prompt.ask",
               side_effect=["card", "3", "Roles", "What does a Shaper do?", "Drives the team"]):
        cmd_custom(study)
    custom = get_flashcards(study.db_path, source="custom")
    assert len(custom) == 1
    assert custom[0].subject is Subject.TEAM

    with patch("study_tutor.app.Prompt.ask", side_effect=["delete", custom[0].item_id]):
        cmd_custom(study)
    assert get_flashcard(study.db_path, custom[0].item_id) is None


def test_cmd_custom_refuses_seeded_delete(study):
    with patch("study_tutor.app.Prompt.ask", side_effect=["delete", "bsys-tlb"]):
        cmd_custom(study)
    assert get_flashcard(study.db_path, "bsys-tlb") is not None


def test_open_study_seeds_and_starts_streak(tmp_db):
    study = open_study(tmp_db)
    assert len(get_flashcards(tmp_db)) == 21
    assert study.tracker.state.current_streak_days == 1
    assert load_session(tmp_db).last_active_date is not None
    study.engine.progress.apply_review("bsys-tlb", 4)
    study.save()
    assert load_engine(tmp_db).progress.get_record("bsys-tlb").times_seen == 1


def test_study_roll_day_picks_up_midnight(study):
    study.tracker.start_session(datetime(2024, 9, 2, 23, 50))
    study.tracker.record_completed(7)
    study.roll_day(date(2024, 9, 3))
    assert study.tracker.state.today_completed_count == 0
    assert study.tracker.state.current_streak_days == 2
    study.roll_day(date(2024, 9, 3))
    assert study.tracker.state.current_streak_days == 2


def test_cmd_custom_delete_forgets_progress(study):
    with patch("study_tutor.app.Prompt.ask",
               side_effect=["card", "1", "Memory", "What is swapping?", "Moving pages to disk"]):
        cmd_custom(study)
    item_id = get_flashcards(study.db_path, source="custom")[0].item_id
    study.engine.progress.apply_review(item_id, 4)
    study.save()

    with patch("study_tutor.app.Prompt.ask", side_effect=["delete", item_id]):
        cmd_custom(study)
    study.save()
    assert item_id not in study.engine.progress.records
    assert item_id not in load_engine(study.db_path).progress.records
