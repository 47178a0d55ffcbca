"""Lesson and mock-exam session state machine.

The whole session is one ``SessionState`` value. ``TutorSession`` owns it and
exposes one coroutine or method per learner command. Each command checks the
current status, calls the generator or evaluator, updates lesson progress and
the transcript, and persists progress when it changes.
"""
import asyncio
import logging
import sqlite3
from dataclasses import dataclass, field
from typing import Awaitable, Optional, Sequence, TypeVar

from see_tutor.errors import EvaluationError, GenerationError, TutorError, ValidationError
from see_tutor.evaluator import Evaluator
from see_tutor.generator import Generator
from see_tutor.mock_exam import MockExamResult, MockExamSession, format_mock_summary, record_mock_exam_result
from see_tutor.models import (
    ACTIVE, LEARNER, LOCKED, PASSED, SYSTEM, TUTOR, AppStatus, AttemptRecord, LessonProgress, Reference,
)
from see_tutor.progress import activate_current_lesson, passed_lessons, record_attempt, save_progress
from see_tutor.prompts import build_study_prompt
from see_tutor.schemas import Scenario
from see_tutor.transcript import (
    ALL_COMPLETED, GENERATING_MOCK, LESSON_SELECTED, NO_REFERENCES, READY_FOR_NEXT, RETURNED_FROM_MOCK, WELCOME,
    Transcript, format_error, format_feedback, format_knowledge_points, format_lesson_start, format_mastered,
    format_mock_question, format_model_answer, format_references_header, format_retry, format_scenario,
    format_study_prompt, format_twist, format_twist_notice,
)

logger = logging.getLogger(__name__)

_T = TypeVar("_T")

MAX_TWISTS = 2
MIN_PASSED_FOR_MOCK = 5

BUSY_STATES = {AppStatus.GENERATING, AppStatus.EVALUATING, AppStatus.GENERATING_MOCK_EXAM}
MOCK_STATES = {AppStatus.GENERATING_MOCK_EXAM, AppStatus.MOCK_EXAM_IN_PROGRESS, AppStatus.MOCK_EXAM_COMPLETED}
INPUT_STATES = {AppStatus.AWAITING_ANSWER, AppStatus.MOCK_EXAM_IN_PROGRESS}
LESSON_STATES = {AppStatus.IDLE, AppStatus.AWAITING_ANSWER, AppStatus.TOPIC_PASSED, AppStatus.COMPLETED}


@dataclass
class SessionState:
    lessons: list[LessonProgress]
    lesson_index: int = 0
    status: AppStatus = AppStatus.IDLE
    scenario: Optional[Scenario] = None
    original_scenario: Optional[Scenario] = None
    mock_exam: Optional[MockExamSession] = None
    transcript: Transcript = field(default_factory=Transcript)

    @property
    def current(self) -> LessonProgress:
        return self.lessons[self.lesson_index]

    @property
    def passed(self) -> list[LessonProgress]:
        return passed_lessons(self.lessons)

    @property
    def input_disabled(self) -> bool:
        return self.status not in INPUT_STATES


class TutorSession:
    def __init__(
        self,
        lessons: list[LessonProgress],
        generator: Generator,
        evaluator: Evaluator,
        db_path: Optional[str] = None,
        timeout: Optional[float] = None,
    ):
        if not lessons:
            raise ValueError("A session needs at least one lesson")
        self.generator = generator
        self.evaluator = evaluator
        self.db_path = db_path
        self.timeout = timeout
        self.state = SessionState(lessons=lessons)
        self.state.lesson_index = activate_current_lesson(lessons)
        self._persist()
        self.transcript.append(SYSTEM, WELCOME)

    @property
    def status(self) -> AppStatus:
        return self.state.status

    @property
    def transcript(self) -> Transcript:
        return self.state.transcript

    @property
    def current_lesson(self) -> LessonProgress:
        return self.state.current

    def index_for_day(self, day: int) -> int:
        for i, progress in enumerate(self.state.lessons):
            if progress.day == day:
                return i
        raise ValidationError(f"There is no lesson for day {day}.")

    # -- lessons ---------------------------------------------------------

    async def start_lesson(self) -> None:
        self._require({AppStatus.IDLE}, "start a lesson")
        progress = self.state.current
        lesson = progress.lesson
        passed = self.state.passed
        self.transcript.append(SYSTEM, format_lesson_start(lesson))
        self._set_status(AppStatus.GENERATING)
        references_task = asyncio.ensure_future(self._lookup_references(progress))
        try:
            scenario = await self._bounded(
                self.generator.generate_scenario(lesson, passed), GenerationError, "Scenario generation",
            )
        except GenerationError as e:
            references_task.cancel()
            await asyncio.gather(references_task, return_exceptions=True)
            logger.error("Could not start lesson day %d: %s", lesson.day, e)
            self.transcript.append(SYSTEM, format_error("generating the lesson", e))
            self._set_status(AppStatus.IDLE)
            return
        references = await references_task

        self.state.scenario = scenario
        self.state.original_scenario = scenario
        self.transcript.append(TUTOR, format_scenario(scenario))
        self.transcript.append(SYSTEM, format_study_prompt(build_study_prompt(lesson)))
        if references:
            self.transcript.append(SYSTEM, format_references_header(), references)
        else:
            self.transcript.append(SYSTEM, NO_REFERENCES)
        self._set_status(AppStatus.AWAITING_ANSWER)

    async def submit_answer(self, answer: str) -> None:
        self._require({AppStatus.AWAITING_ANSWER}, "submit an answer")
        answer = (answer or "").strip()
        if not answer:
            raise ValidationError("Please type an answer before submitting.")
        scenario = self.state.scenario
        if scenario is None:
            raise ValidationError("There is no scenario to answer. Start a lesson first.")

        progress = self.state.current
        self.transcript.append(LEARNER, answer)
        self._set_status(AppStatus.EVALUATING)
        try:
            result = await self._bounded(
                self.evaluator.evaluate_answer(scenario.scenario_text, answer, self.state.passed),
                EvaluationError,
                "Evaluation",
            )
        except EvaluationError as e:
            logger.error("Could not evaluate answer for day %d: %s", progress.day, e)
            self.transcript.append(SYSTEM, format_error("evaluating your answer", e))
            self._set_status(AppStatus.AWAITING_ANSWER)
            return

        self._record_attempt(progress, result.total_score, is_twist=scenario is not self.state.original_scenario)
        self.transcript.append(TUTOR, format_feedback(result))

        if result.passed:
            if progress.twists_completed < MAX_TWISTS:
                await self._issue_twist(progress, scenario, result.total_score)
            else:
                progress.status = PASSED
                progress.score = result.total_score
                self._persist()
                self.transcript.append(SYSTEM, format_mastered(result.total_score))
                self._set_status(AppStatus.TOPIC_PASSED)
            return

        if result.knowledge_points:
            self.transcript.append(TUTOR, format_knowledge_points(result.knowledge_points))
        if result.detailed_explanation:
            self.transcript.append(TUTOR, format_model_answer(result.detailed_explanation))
        original = self.state.original_scenario or scenario
        self.state.scenario = original
        self.transcript.append(TUTOR, format_retry(original))
        self._set_status(AppStatus.AWAITING_ANSWER)

    async def _issue_twist(self, progress: LessonProgress, scenario: Scenario, score: int) -> None:
        progress.twists_completed += 1
        self._persist()
        self.transcript.append(SYSTEM, format_twist_notice(score))
        self._set_status(AppStatus.GENERATING)
        try:
            twist = await self._bounded(
                self.generator.generate_scenario(
                    progress.lesson, self.state.passed, previous_scenario=scenario.scenario_text, is_twist=True,
                ),
                GenerationError,
                "Twist generation",
            )
        except GenerationError as e:
            logger.error("Could not generate twist for day %d: %s", progress.day, e)
            self.transcript.append(SYSTEM, format_error("generating the twist scenario", e))
            self._set_status(AppStatus.AWAITING_ANSWER)
            return
        self.state.scenario = twist
        self.transcript.append(TUTOR, format_twist(twist, progress.twists_completed))
        self._set_status(AppStatus.AWAITING_ANSWER)

    def advance(self) -> None:
        self._require(LESSON_STATES, "move to the next lesson")
        next_index = self.state.lesson_index + 1
        if next_index >= len(self.state.lessons):
            self.transcript.append(SYSTEM, ALL_COMPLETED)
            self._set_status(AppStatus.COMPLETED)
            return
        current = self.state.current
        if current.status == ACTIVE:
            current.status = LOCKED
        following = self.state.lessons[next_index]
        if following.status == LOCKED:
            following.status = ACTIVE
        self._move_to(next_index, READY_FOR_NEXT)

    def select_lesson(self, index: int) -> None:
        self._require(LESSON_STATES, "switch lessons")
        if not 0 <= index < len(self.state.lessons):
            raise ValidationError(f"Lesson {index} does not exist.")
        if index == self.state.lesson_index:
            return
        current = self.state.current
        if current.status == ACTIVE:
            current.status = LOCKED
        target = self.state.lessons[index]
        if target.status != PASSED:
            target.status = ACTIVE
        self._move_to(index, LESSON_SELECTED)

    def _move_to(self, index: int, message: str) -> None:
        self.state.lesson_index = index
        self.state.scenario = None
        self.state.original_scenario = None
        self._persist()
        self.transcript.clear()
        self.transcript.append(SYSTEM, message)
        self._set_status(AppStatus.IDLE)

    # -- mock exam -------------------------------------------------------

    async def start_mock_exam(self) -> None:
        self._require(
            {AppStatus.IDLE, AppStatus.TOPIC_PASSED, AppStatus.COMPLETED, AppStatus.MOCK_EXAM_COMPLETED},
            "start a mock exam",
        )
        passed = self.state.passed
        if len(passed) < MIN_PASSED_FOR_MOCK:
            raise ValidationError(f"You need to pass at least {MIN_PASSED_FOR_MOCK} topics to start a mock exam.")

        self.state.mock_exam = None
        self.transcript.clear()
        self.transcript.append(SYSTEM, GENERATING_MOCK)
        self._set_status(AppStatus.GENERATING_MOCK_EXAM)
        try:
            questions = await self._bounded(
                self.generator.generate_mock_exam_questions(passed), GenerationError, "Mock exam generation",
            )
            if not questions:
                raise GenerationError("The generated exam had no questions.")
        except GenerationError as e:
            logger.error("Could not generate mock exam: %s", e)
            self.transcript.append(SYSTEM, format_error("generating the mock exam", e))
            self._set_status(AppStatus.IDLE)
            return

        exam = MockExamSession(questions=list(questions))
        self.state.mock_exam = exam
        self._set_status(AppStatus.MOCK_EXAM_IN_PROGRESS)
        self.transcript.append(TUTOR, format_mock_question(exam.current_question, 0, exam.total))

    def submit_mock_answer(self, answer: str) -> Optional[MockExamResult]:
        """Record one answer. Returns the result once the last question is answered."""
        self._require({AppStatus.MOCK_EXAM_IN_PROGRESS}, "answer a mock exam question")
        exam = self.state.mock_exam
        letter = exam.submit(answer)
        self.transcript.append(LEARNER, letter)
        if not exam.is_finished:
            self.transcript.append(TUTOR, format_mock_question(exam.current_question, exam.current_index, exam.total))
            return None
        result = exam.result()
        self.transcript.append(SYSTEM, format_mock_summary(result))
        self._record_mock_result(result)
        self._set_status(AppStatus.MOCK_EXAM_COMPLETED)
        return result

    def exit_mock_exam(self) -> None:
        self._require({AppStatus.MOCK_EXAM_IN_PROGRESS, AppStatus.MOCK_EXAM_COMPLETED}, "leave the mock exam")
        self.state.mock_exam = None
        self.state.scenario = None
        self.state.original_scenario = None
        self.transcript.clear()
        self.transcript.append(SYSTEM, RETURNED_FROM_MOCK)
        self._set_status(AppStatus.IDLE)

    async def submit(self, text: str) -> None:
        """Route typed input to the mock exam or the lesson, whichever is waiting for it."""
        if self.status == AppStatus.MOCK_EXAM_IN_PROGRESS:
            self.submit_mock_answer(text)
        else:
            await self.submit_answer(text)

    # -- helpers ---------------------------------------------------------

    def _require(self, allowed: set, action: str) -> None:
        if self.state.status not in allowed:
            raise ValidationError(f"You can't {action} right now ({self.state.status.value}).")

    def _set_status(self, status: AppStatus) -> None:
        logger.debug("Session %s -> %s", self.state.status.value, status.value)
        self.state.status = status

    async def _bounded(self, call: Awaitable[_T], error_type: type[TutorError], what: str) -> _T:
        try:
            return await asyncio.wait_for(call, self.timeout)
        except asyncio.TimeoutError as e:
            raise error_type(f"{what} timed out after {self.timeout:g} seconds") from e

    async def _lookup_references(self, progress: LessonProgress) -> Sequence[Reference]:
        try:
            return await asyncio.wait_for(self.generator.get_irs_references(progress.lesson), self.timeout)
        except asyncio.TimeoutError:
            logger.warning("Reference lookup for day %d timed out", progress.day)
            return []

    def _persist(self) -> None:
        if not self.db_path:
            return
        try:
            save_progress(self.db_path, self.state.lessons)
        except sqlite3.Error:
            logger.exception("Failed to save lesson progress")

    def _record_attempt(self, progress: LessonProgress, score: int, is_twist: bool) -> None:
        if not self.db_path:
            return
        attempt = AttemptRecord(
            lesson_day=progress.day, topic=progress.topic, part=progress.lesson.part, score=score, is_twist=is_twist,
        )
        try:
            record_attempt(self.db_path, attempt)
        except sqlite3.Error:
            logger.exception("Failed to record evaluation attempt")

    def _record_mock_result(self, result: MockExamResult) -> None:
        if not self.db_path:
            return
        try:
            record_mock_exam_result(self.db_path, result)
        except sqlite3.Error:
            logger.exception("Failed to record mock exam result")
