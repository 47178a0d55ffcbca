import pytest

from see_tutor.models import Lesson, Reference
from see_tutor.progress import new_progress
from see_tutor.schemas import EvaluationResult, Feedback, MockOptions, MockQuestion, RubricScores, Scenario
from see_tutor.session import TutorSession


@pytest.fixture
def tmp_db(tmp_path):
    """Provide a temporary SQLite database path for tests."""
    db_path = str(tmp_path / "test_tutor.db")
    return db_path


@pytest.fixture
def lessons():
    """Eight lessons across two exam parts."""
    topics = [
        ("Filing Status", "Part 1"), ("Dependents", "Part 1"), ("Capital Gains", "Part 1"),
        ("Retirement Income", "Part 1"), ("Education Credits", "Part 1"),
        ("Business Entities", "Part 2"), ("Depreciation", "Part 2"), ("S Corporations", "Part 2"),
    ]
    return [
        Lesson(
            week=(day - 1) // 5 + 1, day=day, phase="Phase 1", topic=topic,
            description=f"{topic} rules and examples.", references="Pub 17", part=part, sequence=f"1.{day:02d}",
        )
        for day, (topic, part) in enumerate(topics, 1)
    ]


@pytest.fixture
def progress(lessons):
    return new_progress(lessons)


class FakeGenerator:
    """Stands in for Generator. Queue scenarios or exceptions in ``scenarios``."""

    def __init__(self):
        self.scenarios = []
        self.scenario_calls = []
        self.references = [Reference(title="Publication 501", uri="https://www.irs.gov/pub/irs-pdf/p501.pdf")]
        self.reference_calls = 0
        self.mock_questions = []
        self.mock_error = None
        self.mock_calls = []

    async def generate_scenario(self, lesson, passed, previous_scenario=None, is_twist=False):
        self.scenario_calls.append({
            "lesson": lesson,
            "passed": list(passed),
            "previous_scenario": previous_scenario,
            "is_twist": is_twist,
        })
        if self.scenarios:
            item = self.scenarios.pop(0)
        else:
            n = len(self.scenario_calls)
            item = Scenario(scenario_text=f"Scenario {n}", question_text=f"Question {n}?")
        if isinstance(item, Exception):
            raise item
        return item

    async def get_irs_references(self, lesson):
        self.reference_calls += 1
        return list(self.references)

    async def generate_mock_exam_questions(self, passed):
        self.mock_calls.append(list(passed))
        if self.mock_error is not None:
            raise self.mock_error
        return list(self.mock_questions)


class FakeEvaluator:
    """Stands in for Evaluator. Queue results or exceptions in ``results``."""

    def __init__(self):
        self.results = []
        self.calls = []

    async def evaluate_answer(self, scenario_text, answer_text, passed):
        self.calls.append({"scenario_text": scenario_text, "answer_text": answer_text, "passed": list(passed)})
        item = self.results.pop(0)
        if isinstance(item, Exception):
            raise item
        return item


@pytest.fixture
def fake_generator():
    return FakeGenerator()


@pytest.fixture
def fake_evaluator():
    return FakeEvaluator()


@pytest.fixture
def make_result():
    def _make(score, knowledge_points=(), explanation=""):
        return EvaluationResult(
            total_score=score,
            scores=RubricScores(rules=25, calculations=25, compliance=10, alternatives=5, planning=5, clarity=5),
            feedback=Feedback(good=["Clear structure"], corrections=["Check the phase-out"], takeaways=["Know §2"]),
            knowledge_points=list(knowledge_points),
            detailed_explanation=explanation,
        )
    return _make


@pytest.fixture
def make_question():
    def _make(correct="A", topic="Filing Status"):
        return MockQuestion(
            question=f"Which answer is {correct}?",
            options=MockOptions(A="Option A", B="Option B", C="Option C", D="Option D"),
            correct_answer=correct,
            topic=topic,
        )
    return _make


@pytest.fixture
def make_session(progress, fake_generator, fake_evaluator):
    def _make(db_path=None, timeout=None, lessons=None):
        return TutorSession(
            lessons if lessons is not None else progress,
            fake_generator,
            fake_evaluator,
            db_path=db_path,
            timeout=timeout,
        )
    return _make
