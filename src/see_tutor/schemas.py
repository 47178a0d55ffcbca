"""Pydantic schemas for the structured payloads returned by the language model.

Each model validates one collaborator response and also supplies the JSON
schema sent with the request that constrains the model's output.
"""
from __future__ import annotations

import re
from typing import Any, Literal, Type, TypeVar

from pydantic import BaseModel, ConfigDict, Field, field_validator
from pydantic.alias_generators import to_camel

__all__ = [
    "Scenario",
    "RubricScores",
    "Feedback",
    "EvaluationResult",
    "MockOptions",
    "MockQuestion",
    "MockExamPayload",
    "RUBRIC_WEIGHTS",
    "PASSING_SCORE",
    "response_format",
    "parse_payload",
]

RUBRIC_WEIGHTS = {
    "rules": 30,
    "calculations": 30,
    "compliance": 15,
    "alternatives": 10,
    "planning": 10,
    "clarity": 5,
}
PASSING_SCORE = 90

_T = TypeVar("_T", bound=BaseModel)

_FENCE_RE = re.compile(r"^```(?:json)?\s*|\s*```$")


class _Payload(BaseModel):
    model_config = ConfigDict(
        alias_generator=to_camel,
        populate_by_name=True,
        str_strip_whitespace=True,
    )


class Scenario(_Payload):
    scenario_text: str = Field(
        alias="scenario",
        min_length=1,
        description="The detailed, practical tax scenario containing the client case and facts.",
    )
    question_text: str = Field(
        alias="question",
        min_length=1,
        description="A precise and complex question for the student to answer based on the scenario.",
    )


class RubricScores(_Payload):
    rules: int = Field(ge=0, le=RUBRIC_WEIGHTS["rules"])
    calculations: int = Field(ge=0, le=RUBRIC_WEIGHTS["calculations"])
    compliance: int = Field(ge=0, le=RUBRIC_WEIGHTS["compliance"])
    alternatives: int = Field(ge=0, le=RUBRIC_WEIGHTS["alternatives"])
    planning: int = Field(ge=0, le=RUBRIC_WEIGHTS["planning"])
    clarity: int = Field(ge=0, le=RUBRIC_WEIGHTS["clarity"])


class Feedback(_Payload):
    good: list[str] = Field(default_factory=list)
    corrections: list[str] = Field(default_factory=list)
    takeaways: list[str] = Field(default_factory=list)


class EvaluationResult(_Payload):
    total_score: int = Field(ge=0, le=100)
    scores: RubricScores
    feedback: Feedback
    knowledge_points: list[str]
    detailed_explanation: str = Field(
        description=(
            "A detailed explanation of the correct answer and reasoning, provided ONLY if "
            "the total score is below 90. Otherwise, this should be an empty string."
        ),
    )

    @property
    def passed(self) -> bool:
        return self.total_score >= PASSING_SCORE


class MockOptions(BaseModel):
    model_config = ConfigDict(str_strip_whitespace=True)

    A: str = Field(min_length=1)
    B: str = Field(min_length=1)
    C: str = Field(min_length=1)
    D: str = Field(min_length=1)

    def text_for(self, letter: str) -> str:
        return getattr(self, letter)


class MockQuestion(_Payload):
    question: str = Field(min_length=1)
    options: MockOptions
    correct_answer: Literal["A", "B", "C", "D"]
    topic: str = Field(
        min_length=1,
        description="The specific topic from the lesson plan this question covers.",
    )

    @field_validator("correct_answer", mode="before")
    @classmethod
    def _normalize_letter(cls, value: Any) -> Any:
        if isinstance(value, str):
            return value.strip().upper()
        return value


class MockExamPayload(_Payload):
    questions: list[MockQuestion]


def response_format(model: Type[BaseModel], name: str) -> dict:
    """Build the ``response_format`` argument constraining output to ``model``."""
    return {
        "type": "json_schema",
        "json_schema": {
            "name": name,
            "schema": model.model_json_schema(by_alias=True),
        },
    }


def parse_payload(text: str, model: Type[_T]) -> _T:
    """Validate a JSON payload, tolerating a surrounding ```json fence.

    Raises ``pydantic.ValidationError`` when the payload is not valid JSON or
    does not match ``model``.
    """
    return model.model_validate_json(_FENCE_RE.sub("", text.strip()))
