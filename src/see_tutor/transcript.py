"""Conversation transcript and the text of the messages the tutor posts to it."""
import itertools
from typing import Optional, Sequence

from see_tutor.models import LEARNER, SYSTEM, TUTOR, Lesson, Reference, TranscriptEntry
from see_tutor.schemas import PASSING_SCORE, EvaluationResult, MockQuestion, Scenario

SENDERS = (LEARNER, TUTOR, SYSTEM)

WELCOME = "Welcome to your personalized IRS SEE Exam Prep Workflow. Use 'start' to begin today's lesson."
READY_FOR_NEXT = "Ready for the next challenge? Use 'start' when you are ready."
LESSON_SELECTED = "You've selected a new lesson. Use 'start' when you are ready."
RETURNED_FROM_MOCK = "You have returned to the main lesson plan. Use 'start' to continue where you left off."
ALL_COMPLETED = "You have completed all lessons! Congratulations!"
GENERATING_MOCK = "Generating a mock exam based on your mastered topics. This may take a moment..."
NO_REFERENCES = (
    "**Official IRS Guidance:**\n"
    "No specific guidance found via search for this topic. Please refer to standard IRS publications."
)


class Transcript:
    """Append-only message log. Ids stay unique across clears."""

    def __init__(self):
        self._entries: list[TranscriptEntry] = []
        self._ids = itertools.count(1)

    def append(self, sender: str, text: str, references: Optional[Sequence[Reference]] = None) -> TranscriptEntry:
        if sender not in SENDERS:
            raise ValueError(f"Unknown sender: {sender}")
        entry = TranscriptEntry(id=next(self._ids), sender=sender, text=text, references=list(references or []))
        self._entries.append(entry)
        return entry

    def clear(self) -> None:
        self._entries = []

    @property
    def entries(self) -> list[TranscriptEntry]:
        return list(self._entries)

    def since(self, entry_id: int) -> list[TranscriptEntry]:
        return [e for e in self._entries if e.id > entry_id]

    def __len__(self) -> int:
        return len(self._entries)

    def __iter__(self):
        return iter(list(self._entries))


def bullet_list(items: Sequence[str]) -> str:
    return "\n".join(f"- {item}" for item in items)


def format_lesson_start(lesson: Lesson) -> str:
    return f"Starting lesson: {lesson.topic} - {lesson.description}"


def format_scenario(scenario: Scenario) -> str:
    return (
        "A new client query has arrived.\n\n"
        f"**Scenario:**\n{scenario.scenario_text}\n\n"
        f"**Question:**\n{scenario.question_text}"
    )


def format_twist(scenario: Scenario, twist_number: int) -> str:
    return f"**Twist {twist_number}:**\n{scenario.scenario_text}\n\n**Question:**\n{scenario.question_text}"


def format_retry(scenario: Scenario) -> str:
    return (
        "Let's try that again. Here is the original scenario:\n\n"
        f"**Scenario:**\n{scenario.scenario_text}\n\n"
        f"**Question:**\n{scenario.question_text}"
    )


def format_study_prompt(prompt: str) -> str:
    return f"**Study Prompt:**\n{prompt}"


def format_references_header() -> str:
    return "**Official IRS Guidance:**"


def format_feedback(result: EvaluationResult) -> str:
    scores = result.scores
    text = f"**Score: {result.total_score}%**\n\n"
    text += (
        "**Rubric Breakdown:**\n"
        f"- Rules & Authority: {scores.rules}/30\n"
        f"- Calculations: {scores.calculations}/30\n"
        f"- Compliance: {scores.compliance}/15\n"
        f"- Alternatives: {scores.alternatives}/10\n"
        f"- Planning: {scores.planning}/10\n"
        f"- Clarity: {scores.clarity}/5\n\n"
    )
    text += f"**What you did well:**\n{bullet_list(result.feedback.good)}\n\n"
    text += f"**Corrections:**\n{bullet_list(result.feedback.corrections)}\n\n"
    text += f"**Key takeaways:**\n{bullet_list(result.feedback.takeaways)}"
    if not result.passed:
        text += (
            f"\n\nYour score is {result.total_score}%. You need {PASSING_SCORE}% to pass. "
            "Review the feedback and the model answer below."
        )
    return text


def format_knowledge_points(points: Sequence[str]) -> str:
    return f"**Key Knowledge Points to Review:**\n{bullet_list(points)}"


def format_model_answer(explanation: str) -> str:
    return f"**Model Answer & Explanation:**\n{explanation}"


def format_twist_notice(score: int) -> str:
    return f"Excellent work! You've scored {score}%. Let's cement your knowledge with a twist on the scenario."


def format_mastered(score: int) -> str:
    return f"Congratulations! You've mastered this topic with a score of {score}%."


def format_error(action: str, error: Exception) -> str:
    return f"Sorry, I encountered an error {action}: {error}. Please try again."


def format_mock_question(question: MockQuestion, index: int, total: int) -> str:
    options = question.options
    return (
        f"**Question {index + 1} of {total}** (Topic: {question.topic})\n\n"
        f"{question.question}\n\n"
        f"A. {options.A}\n"
        f"B. {options.B}\n"
        f"C. {options.C}\n"
        f"D. {options.D}"
    )
