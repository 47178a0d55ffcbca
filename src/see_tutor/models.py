"""Data classes for the tutor domain model."""
from dataclasses import dataclass, field
from enum import Enum
from typing import Optional

LOCKED = "locked"
ACTIVE = "active"
PASSED = "passed"
LESSON_STATUSES = (LOCKED, ACTIVE, PASSED)

LEARNER = "learner"
TUTOR = "tutor"
SYSTEM = "system"


class AppStatus(Enum):
    IDLE = "IDLE"
    GENERATING = "GENERATING"
    AWAITING_ANSWER = "AWAITING_ANSWER"
    EVALUATING = "EVALUATING"
    TOPIC_PASSED = "TOPIC_PASSED"
    COMPLETED = "COMPLETED"
    GENERATING_MOCK_EXAM = "GENERATING_MOCK_EXAM"
    MOCK_EXAM_IN_PROGRESS = "MOCK_EXAM_IN_PROGRESS"
    MOCK_EXAM_COMPLETED = "MOCK_EXAM_COMPLETED"


@dataclass(frozen=True)
class Lesson:
    week: int
    day: int
    phase: str
    topic: str
    description: str
    references: str = ""
    part: str = ""
    sequence: str = ""


@dataclass
class LessonProgress:
    lesson: Lesson
    status: str = LOCKED
    score: int = 0
    twists_completed: int = 0

    @property
    def day(self) -> int:
        return self.lesson.day

    @property
    def topic(self) -> str:
        return self.lesson.topic

    @property
    def is_passed(self) -> bool:
        return self.status == PASSED


@dataclass(frozen=True)
class Reference:
    title: str
    uri: str


@dataclass
class TranscriptEntry:
    id: int
    sender: str
    text: str
    references: list[Reference] = field(default_factory=list)


@dataclass
class AttemptRecord:
    lesson_day: int
    topic: str
    part: str
    score: int
    is_twist: bool = False
    evaluated_at: Optional[str] = None
