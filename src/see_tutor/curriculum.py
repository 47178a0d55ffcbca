"""Load the fixed lesson plan from the packaged curriculum file."""
from pathlib import Path

import yaml

from see_tutor.models import Lesson

CONTENT_DIR = Path(__file__).parent / "content"
CURRICULUM_FILE = CONTENT_DIR / "curriculum.yaml"

REQUIRED_FIELDS = ("week", "day", "phase", "topic", "description")


def parse_lesson(entry: dict) -> Lesson:
    missing = [name for name in REQUIRED_FIELDS if entry.get(name) in (None, "")]
    if missing:
        raise ValueError(f"Lesson entry is missing {', '.join(missing)}: {entry!r}")
    return Lesson(
        week=int(entry["week"]),
        day=int(entry["day"]),
        phase=str(entry["phase"]),
        topic=str(entry["topic"]),
        description=str(entry["description"]),
        references=str(entry.get("references", "")),
        part=str(entry.get("part", "")),
        sequence=str(entry.get("sequence", "")),
    )


def load_curriculum(path: str | Path = CURRICULUM_FILE) -> list[Lesson]:
    """Return the lessons in day order. Day numbers must be unique."""
    data = yaml.safe_load(Path(path).read_text(encoding="utf-8")) or {}
    lessons = [parse_lesson(entry) for entry in data.get("lessons", [])]
    seen = set()
    for lesson in lessons:
        if lesson.day in seen:
            raise ValueError(f"Duplicate lesson day {lesson.day} in {path}")
        seen.add(lesson.day)
    return sorted(lessons, key=lambda lesson: lesson.day)


def get_parts(lessons: list[Lesson]) -> list[str]:
    """Exam parts in the order they first appear."""
    parts = []
    for lesson in lessons:
        if lesson.part and lesson.part not in parts:
            parts.append(lesson.part)
    return parts
