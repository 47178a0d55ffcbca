import pytest

from see_tutor.db import init_db
from see_tutor.errors import ValidationError
from see_tutor.mock_exam import (
    NO_ANSWER, MockExamResult, MockExamSession, format_mock_summary, get_mock_exam_history, normalize_answer,
    record_mock_exam_result, score_mock_exam,
)


def test_normalize_answer():
    assert normalize_answer(" b ") == "B"
    with pytest.raises(ValidationError):
        normalize_answer("E")
    with pytest.raises(ValidationError):
        normalize_answer("")


def test_score_all_correct(make_question):
    questions = [make_question("A"), make_question("B")]
    result = score_mock_exam(questions, ["A", "B"])
    assert result.score == 2
    assert result.percentage == 100.0
    assert result.incorrect == []


def test_score_lists_incorrect_answers(make_question):
    questions = [make_question("A"), make_question("B", topic="Dependents"), make_question("C")]
    result = score_mock_exam(questions, ["A", "D"])
    assert result.score == 1
    assert result.total == 3
    assert result.percentage == 33.3
    assert [m.position for m in result.incorrect] == [2, 3]
    assert result.incorrect[0].topic == "Dependents"
    assert result.incorrect[0].your_answer == "D"
    assert result.incorrect[0].correct_text == "Option B"
    assert result.incorrect[1].your_answer == NO_ANSWER


def test_score_empty_exam():
    result = score_mock_exam([], [])
    assert result.percentage == 0.0


def test_session_walks_through_questions(make_question):
    exam = MockExamSession(questions=[make_question("A"), make_question("B")])
    assert exam.total == 2
    assert exam.current_question.correct_answer == "A"
    assert exam.submit("a") == "A"
    assert exam.current_index == 1
    exam.submit("C")
    assert exam.is_finished
    assert exam.current_question is None
    assert exam.result().score == 1


def test_session_invalid_answer_leaves_state(make_question):
    exam = MockExamSession(questions=[make_question("A")])
    with pytest.raises(ValidationError):
        exam.submit("Z")
    assert exam.current_index == 0
    assert exam.answers == []


def test_session_rejects_answers_after_finish(make_question):
    exam = MockExamSession(questions=[make_question("A")])
    exam.submit("A")
    with pytest.raises(ValidationError):
        exam.submit("A")
    assert exam.answers == ["A"]


def test_summary_text(make_question):
    result = score_mock_exam([make_question("A"), make_question("B")], ["A", "C"])
    text = format_mock_summary(result)
    assert "**Mock Exam Completed!**" in text
    assert "Score:** 1 out of 2 (50.0%)" in text
    assert "**Question 2 (Topic: Filing Status)**" in text
    assert "Correct Answer: B: Option B" in text


def test_summary_all_correct(make_question):
    text = format_mock_summary(score_mock_exam([make_question("A")], ["A"]))
    assert "You answered all questions correctly" in text


def test_history(tmp_db):
    init_db(tmp_db)
    record_mock_exam_result(tmp_db, MockExamResult(score=4, total=5, percentage=80.0))
    record_mock_exam_result(tmp_db, MockExamResult(score=3, total=5, percentage=60.0))
    history = get_mock_exam_history(tmp_db)
    assert [h["percentage"] for h in history] == [80.0, 60.0]
    assert history[0]["taken_at"]
