# tests/test_integration.py
"""End-to-end test of the core workflow."""
import asyncio

from see_tutor.dashboard import calc_readiness_score, get_study_stats
from see_tutor.db import init_db
from see_tutor.mock_exam import get_mock_exam_history
from see_tutor.models import ACTIVE, PASSED, AppStatus
from see_tutor.progress import get_attempts, load_progress
from see_tutor.session import TutorSession


def test_full_session_workflow(tmp_db, lessons, fake_generator, fake_evaluator, make_result, make_question):
    """Pass five lessons, sit a mock exam, and pick up where we left off after a restart."""
    init_db(tmp_db)
    session = TutorSession(load_progress(tmp_db, lessons), fake_generator, fake_evaluator, db_path=tmp_db)

    # First lesson: one miss, then three passes
    asyncio.run(session.start_lesson())
    fake_evaluator.results.append(make_result(60, knowledge_points=["Dependency tests"], explanation="Model."))
    asyncio.run(session.submit_answer("Not quite."))
    for score in (91, 94, 97):
        fake_evaluator.results.append(make_result(score))
        asyncio.run(session.submit_answer("Better."))
    assert session.status == AppStatus.TOPIC_PASSED
    session.advance()

    # Progress survives a restart mid-way
    reloaded = load_progress(tmp_db, lessons)
    assert reloaded[0].status == PASSED
    assert reloaded[0].score == 97
    assert reloaded[0].twists_completed == 2
    assert reloaded[1].status == ACTIVE

    # Next four lessons
    for _ in range(4):
        asyncio.run(session.start_lesson())
        for _ in range(3):
            fake_evaluator.results.append(make_result(95))
            asyncio.run(session.submit_answer("Solid."))
        session.advance()

    attempts = get_attempts(tmp_db)
    assert len(attempts) == 16
    assert sum(1 for a in attempts if a.is_twist) == 10
    assert attempts[0].score == 60

    # Mock exam
    fake_generator.mock_questions = [make_question("A"), make_question("B"), make_question("C"),
                                     make_question("D"), make_question("A")]
    asyncio.run(session.start_mock_exam())
    for letter in ("A", "B", "C", "D", "B"):
        session.submit_mock_answer(letter)
    assert session.status == AppStatus.MOCK_EXAM_COMPLETED
    history = get_mock_exam_history(tmp_db)
    assert history[0]["score"] == 4
    assert history[0]["percentage"] == 80.0
    session.exit_mock_exam()

    # Restart: a new session resumes at lesson six
    restarted = TutorSession(load_progress(tmp_db, lessons), fake_generator, fake_evaluator, db_path=tmp_db)
    assert restarted.state.lesson_index == 5
    assert len(restarted.state.passed) == 5

    stats = get_study_stats(tmp_db, restarted.state.lessons)
    assert stats["lessons_passed"] == 5
    assert stats["answers_graded"] == 16
    assert stats["mock_exams_taken"] == 1
    assert calc_readiness_score(tmp_db, restarted.state.lessons) > 0
