"""Rubric grading of free-text answers."""
import logging
from typing import Optional, Sequence

import openai
from pydantic import ValidationError as SchemaError

from see_tutor.config import Settings, settings as default_settings
from see_tutor.errors import EvaluationError
from see_tutor.llm import LLMClient
from see_tutor.models import LessonProgress
from see_tutor.prompts import build_evaluation_prompt
from see_tutor.schemas import EvaluationResult, parse_payload, response_format

logger = logging.getLogger(__name__)


class Evaluator:
    def __init__(self, llm: LLMClient, config: Optional[Settings] = None):
        self.llm = llm
        self.settings = config or default_settings

    async def evaluate_answer(
        self,
        scenario_text: str,
        answer_text: str,
        passed: Sequence[LessonProgress],
    ) -> EvaluationResult:
        prompt = build_evaluation_prompt(scenario_text, answer_text, passed)
        try:
            text = await self.llm.generate_json(
                prompt,
                model=self.settings.EVALUATION_MODEL,
                response_format=response_format(EvaluationResult, "evaluation"),
                temperature=self.settings.EVALUATION_TEMPERATURE,
                max_tokens=self.settings.EVALUATION_MAX_TOKENS,
            )
        except openai.OpenAIError as e:
            logger.error("Evaluation request failed: %s", e)
            raise EvaluationError(f"Failed to evaluate answer: {e}") from e
        if not text:
            raise EvaluationError("Failed to evaluate answer: The AI returned an empty response.")
        try:
            return parse_payload(text, EvaluationResult)
        except SchemaError as e:
            logger.error("Malformed evaluation payload: %s\n%s", e, text)
            raise EvaluationError("Failed to evaluate answer: The AI returned an invalid response.") from e
