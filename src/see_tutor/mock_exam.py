"""Mock exam session: answer collection, scoring and result history."""
from dataclasses import dataclass, field
from datetime import datetime
from typing import Optional

from see_tutor.db import get_connection
from see_tutor.errors import ValidationError
from see_tutor.schemas import MockQuestion

ANSWER_LETTERS = ("A", "B", "C", "D")
NO_ANSWER = "No Answer"


def normalize_answer(answer: str) -> str:
    letter = (answer or "").strip().upper()
    if letter not in ANSWER_LETTERS:
        raise ValidationError("Invalid answer. Please enter A, B, C, or D.")
    return letter


@dataclass
class IncorrectAnswer:
    position: int
    topic: str
    your_answer: str
    correct_answer: str
    correct_text: str


@dataclass
class MockExamResult:
    score: int
    total: int
    percentage: float
    incorrect: list[IncorrectAnswer] = field(default_factory=list)


def score_mock_exam(questions: list[MockQuestion], answers: list[str]) -> MockExamResult:
    score = 0
    incorrect = []
    for i, question in enumerate(questions):
        answer = answers[i] if i < len(answers) else None
        if answer == question.correct_answer:
            score += 1
        else:
            incorrect.append(IncorrectAnswer(
                position=i + 1,
                topic=question.topic,
                your_answer=answer or NO_ANSWER,
                correct_answer=question.correct_answer,
                correct_text=question.options.text_for(question.correct_answer),
            ))
    total = len(questions)
    percentage = round((score / total) * 100, 1) if total else 0.0
    return MockExamResult(score=score, total=total, percentage=percentage, incorrect=incorrect)


@dataclass
class MockExamSession:
    questions: list[MockQuestion]
    current_index: int = 0
    answers: list[str] = field(default_factory=list)

    @property
    def total(self) -> int:
        return len(self.questions)

    @property
    def is_finished(self) -> bool:
        return self.current_index >= self.total

    @property
    def current_question(self) -> Optional[MockQuestion]:
        if self.is_finished:
            return None
        return self.questions[self.current_index]

    def submit(self, answer: str) -> str:
        """Record an answer for the current question and move on.

        Raises ValidationError, leaving the session untouched, when the answer
        is not one of A-D or the exam is already over.
        """
        if self.is_finished:
            raise ValidationError("The mock exam is already finished.")
        letter = normalize_answer(answer)
        self.answers.append(letter)
        self.current_index += 1
        return letter

    def result(self) -> MockExamResult:
        return score_mock_exam(self.questions, self.answers)


def format_mock_summary(result: MockExamResult) -> str:
    text = (
        "**Mock Exam Completed!**\n\n"
        f"- **Score:** {result.score} out of {result.total} ({result.percentage:.1f}%)\n\n"
    )
    if result.incorrect:
        reviews = [
            f"**Question {miss.position} (Topic: {miss.topic})**\n"
            f"- Your Answer: {miss.your_answer}\n"
            f"- Correct Answer: {miss.correct_answer}: {miss.correct_text}"
            for miss in result.incorrect
        ]
        text += "**Review your incorrect answers:**\n\n" + "\n\n".join(reviews)
    else:
        text += "Excellent work! You answered all questions correctly!"
    return text


def record_mock_exam_result(db_path: str, result: MockExamResult) -> None:
    conn = get_connection(db_path)
    conn.execute(
        "INSERT INTO mock_exam_results (score, total, percentage, taken_at) VALUES (?, ?, ?, ?)",
        (result.score, result.total, result.percentage, datetime.now().isoformat()),
    )
    conn.commit()
    conn.close()


def get_mock_exam_history(db_path: str) -> list[dict]:
    conn = get_connection(db_path)
    rows = conn.execute("SELECT * FROM mock_exam_results ORDER BY id").fetchall()
    conn.close()
    return [dict(row) for row in rows]
