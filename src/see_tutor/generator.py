"""Scenario, mock-exam and reference generation through the language model."""
import logging
from typing import Optional, Sequence

import openai
from pydantic import ValidationError as SchemaError

from see_tutor.config import Settings, settings as default_settings
from see_tutor.errors import GenerationError
from see_tutor.llm import LLMClient
from see_tutor.models import Lesson, LessonProgress, Reference
from see_tutor.prompts import (
    build_mock_exam_prompt, build_reference_query, build_scenario_prompt,
)
from see_tutor.schemas import MockExamPayload, MockQuestion, Scenario, parse_payload, response_format

logger = logging.getLogger(__name__)

MIN_MOCK_QUESTIONS = 5
MAX_MOCK_QUESTIONS = 15


def mock_question_count(passed_count: int) -> int:
    """Half the mastered topics, kept between 5 and 15 questions."""
    return max(MIN_MOCK_QUESTIONS, min(MAX_MOCK_QUESTIONS, passed_count // 2))


class Generator:
    def __init__(self, llm: LLMClient, config: Optional[Settings] = None):
        self.llm = llm
        self.settings = config or default_settings

    async def generate_scenario(
        self,
        lesson: Lesson,
        passed: Sequence[LessonProgress],
        previous_scenario: Optional[str] = None,
        is_twist: bool = False,
    ) -> Scenario:
        prompt = build_scenario_prompt(lesson, passed, previous_scenario, is_twist)
        try:
            text = await self.llm.generate_json(
                prompt,
                model=self.settings.SCENARIO_MODEL,
                response_format=response_format(Scenario, "scenario"),
                temperature=self.settings.SCENARIO_TEMPERATURE,
                max_tokens=self.settings.SCENARIO_MAX_TOKENS,
            )
        except openai.OpenAIError as e:
            logger.error("Scenario request failed for day %d: %s", lesson.day, e)
            raise GenerationError(f"Failed to generate scenario: {e}") from e
        if not text:
            raise GenerationError(
                "Failed to generate scenario: The AI returned an empty response, possibly due to content filters."
            )
        try:
            return parse_payload(text, Scenario)
        except SchemaError as e:
            logger.error("Malformed scenario payload: %s\n%s", e, text)
            raise GenerationError("Failed to generate scenario: AI response was malformed.") from e

    async def generate_mock_exam_questions(self, passed: Sequence[LessonProgress]) -> list[MockQuestion]:
        count = mock_question_count(len(passed))
        prompt = build_mock_exam_prompt(passed, count)
        try:
            text = await self.llm.generate_json(
                prompt,
                model=self.settings.MOCK_EXAM_MODEL,
                response_format=response_format(MockExamPayload, "mock_exam"),
                temperature=self.settings.MOCK_EXAM_TEMPERATURE,
                max_tokens=self.settings.MOCK_EXAM_MAX_TOKENS,
            )
        except openai.OpenAIError as e:
            logger.error("Mock exam request failed: %s", e)
            raise GenerationError(f"Failed to generate mock exam: {e}") from e
        if not text:
            raise GenerationError("Failed to generate mock exam: The AI returned an empty response.")
        try:
            payload = parse_payload(text, MockExamPayload)
        except SchemaError as e:
            logger.error("Malformed mock exam payload: %s\n%s", e, text)
            raise GenerationError("Failed to generate mock exam: The AI returned an invalid JSON response.") from e
        if not payload.questions:
            raise GenerationError("The generated exam had no questions.")
        if len(payload.questions) != count:
            logger.warning("Asked for %d mock questions, got %d", count, len(payload.questions))
        return payload.questions

    async def get_irs_references(self, lesson: Lesson) -> list[Reference]:
        """Official guidance links for a lesson. Never raises; failures give an empty list."""
        try:
            return await self.llm.search_references(
                build_reference_query(lesson), model=self.settings.REFERENCE_MODEL,
            )
        except Exception as e:
            logger.warning("Reference lookup failed for day %d: %s", lesson.day, e)
            return []
