import pytest
from pydantic import ValidationError

from see_tutor.schemas import (
    PASSING_SCORE, RUBRIC_WEIGHTS, EvaluationResult, MockExamPayload, MockQuestion, Scenario, parse_payload,
    response_format,
)

EVALUATION_JSON = """{
  "totalScore": 91,
  "scores": {"rules": 28, "calculations": 27, "compliance": 14, "alternatives": 9, "planning": 9, "clarity": 4},
  "feedback": {"good": ["Cited IRC 2(b)"], "corrections": [], "takeaways": ["HOH needs a qualifying person"]},
  "knowledgePoints": [],
  "detailedExplanation": ""
}"""


def test_rubric_weights_sum_to_100():
    assert sum(RUBRIC_WEIGHTS.values()) == 100
    assert PASSING_SCORE == 90


def test_scenario_parses_wire_names():
    scenario = parse_payload('{"scenario": "  Ann is single.  ", "question": "What status?"}', Scenario)
    assert scenario.scenario_text == "Ann is single."
    assert scenario.question_text == "What status?"


def test_scenario_rejects_empty_text():
    with pytest.raises(ValidationError):
        parse_payload('{"scenario": "", "question": "Q?"}', Scenario)


def test_parse_payload_strips_code_fence():
    text = '```json\n{"scenario": "S", "question": "Q"}\n```'
    assert parse_payload(text, Scenario).question_text == "Q"


def test_parse_payload_rejects_bad_json():
    with pytest.raises(ValidationError):
        parse_payload("not json at all", Scenario)


def test_evaluation_result_parses():
    result = parse_payload(EVALUATION_JSON, EvaluationResult)
    assert result.total_score == 91
    assert result.scores.rules == 28
    assert result.passed
    assert result.knowledge_points == []


def test_evaluation_result_boundary():
    result = parse_payload(EVALUATION_JSON.replace('"totalScore": 91', '"totalScore": 89'), EvaluationResult)
    assert not result.passed
    result = parse_payload(EVALUATION_JSON.replace('"totalScore": 91', '"totalScore": 90'), EvaluationResult)
    assert result.passed


def test_rubric_category_cannot_exceed_weight():
    with pytest.raises(ValidationError):
        parse_payload(EVALUATION_JSON.replace('"clarity": 4', '"clarity": 6'), EvaluationResult)


def test_total_score_bounded():
    with pytest.raises(ValidationError):
        parse_payload(EVALUATION_JSON.replace('"totalScore": 91', '"totalScore": 101'), EvaluationResult)


def test_mock_question_normalizes_letter():
    q = MockQuestion.model_validate({
        "question": "Which form?",
        "options": {"A": "1040", "B": "1065", "C": "1120", "D": "990"},
        "correctAnswer": " b ",
        "topic": "Partnerships",
    })
    assert q.correct_answer == "B"
    assert q.options.text_for("B") == "1065"


def test_mock_question_rejects_unknown_letter():
    with pytest.raises(ValidationError):
        MockQuestion.model_validate({
            "question": "Which form?",
            "options": {"A": "1040", "B": "1065", "C": "1120", "D": "990"},
            "correctAnswer": "E",
            "topic": "Partnerships",
        })


def test_mock_exam_payload_parses():
    payload = parse_payload(
        '{"questions": [{"question": "Q", "options": {"A": "a", "B": "b", "C": "c", "D": "d"}, '
        '"correctAnswer": "D", "topic": "T"}]}',
        MockExamPayload,
    )
    assert len(payload.questions) == 1
    assert payload.questions[0].correct_answer == "D"


def test_response_format_uses_wire_names():
    fmt = response_format(Scenario, "scenario")
    assert fmt["type"] == "json_schema"
    assert fmt["json_schema"]["name"] == "scenario"
    properties = fmt["json_schema"]["schema"]["properties"]
    assert set(properties) == {"scenario", "question"}


def test_evaluation_response_format_uses_camel_case():
    properties = response_format(EvaluationResult, "evaluation")["json_schema"]["schema"]["properties"]
    assert "totalScore" in properties
    assert "knowledgePoints" in properties
    assert "detailedExplanation" in properties
