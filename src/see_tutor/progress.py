"""Lesson progress store: one record per curriculum lesson, kept in a single settings slot."""
import json
import logging
from datetime import datetime

from see_tutor.db import get_connection
from see_tutor.models import ACTIVE, LESSON_STATUSES, LOCKED, PASSED, AttemptRecord, Lesson, LessonProgress

logger = logging.getLogger(__name__)

PROGRESS_KEY = "lesson_progress"


def get_setting(db_path: str, key: str, default: str = None) -> str | None:
    conn = get_connection(db_path)
    row = conn.execute("SELECT value FROM user_settings WHERE key = ?", (key,)).fetchone()
    conn.close()
    return row["value"] if row else default


def set_setting(db_path: str, key: str, value: str) -> None:
    conn = get_connection(db_path)
    conn.execute(
        "INSERT INTO user_settings (key, value) VALUES (?, ?) ON CONFLICT(key) DO UPDATE SET value=?",
        (key, value, value),
    )
    conn.commit()
    conn.close()


def new_progress(lessons: list[Lesson]) -> list[LessonProgress]:
    return [LessonProgress(lesson=lesson) for lesson in lessons]


def serialize_progress(progress: list[LessonProgress]) -> str:
    return json.dumps([
        {
            "day": p.day,
            "status": p.status,
            "score": p.score,
            "twistsCompleted": p.twists_completed,
        }
        for p in progress
    ])


def deserialize_progress(raw: str, lessons: list[Lesson]) -> list[LessonProgress]:
    """Rebuild progress for ``lessons`` from a saved slot, matching records by day.

    Lessons without a saved record start locked. Saved records for days no
    longer in the curriculum are ignored.
    """
    saved = {}
    for record in json.loads(raw):
        saved[int(record["day"])] = record
    progress = []
    for lesson in lessons:
        record = saved.get(lesson.day)
        if record is None:
            progress.append(LessonProgress(lesson=lesson))
            continue
        status = record.get("status", LOCKED)
        if status not in LESSON_STATUSES:
            status = LOCKED
        progress.append(LessonProgress(
            lesson=lesson,
            status=status,
            score=max(0, min(100, int(record.get("score", 0)))),
            twists_completed=max(0, min(2, int(record.get("twistsCompleted", 0)))),
        ))
    return progress


def load_progress(db_path: str, lessons: list[Lesson]) -> list[LessonProgress]:
    raw = get_setting(db_path, PROGRESS_KEY)
    if raw is None:
        return new_progress(lessons)
    try:
        return deserialize_progress(raw, lessons)
    except (ValueError, TypeError, KeyError) as e:
        logger.warning("Saved lesson progress is unreadable, starting fresh: %s", e)
        return new_progress(lessons)


def save_progress(db_path: str, progress: list[LessonProgress]) -> None:
    set_setting(db_path, PROGRESS_KEY, serialize_progress(progress))


def passed_lessons(progress: list[LessonProgress]) -> list[LessonProgress]:
    return [p for p in progress if p.status == PASSED]


def activate_current_lesson(progress: list[LessonProgress]) -> int:
    """Point at the first lesson not yet passed and make it the only active one.

    Returns the index of the current lesson, or the last index when every
    lesson is passed (in which case nothing is active).
    """
    if not progress:
        return 0
    current = next((i for i, p in enumerate(progress) if p.status != PASSED), None)
    for i, p in enumerate(progress):
        if p.status == ACTIVE and i != current:
            p.status = LOCKED
    if current is None:
        return len(progress) - 1
    progress[current].status = ACTIVE
    return current


def record_attempt(db_path: str, attempt: AttemptRecord) -> None:
    conn = get_connection(db_path)
    conn.execute(
        "INSERT INTO evaluation_attempts (lesson_day, topic, part, score, is_twist, evaluated_at) VALUES (?, ?, ?, ?, ?, ?)",
        (
            attempt.lesson_day, attempt.topic, attempt.part, attempt.score,
            int(attempt.is_twist), attempt.evaluated_at or datetime.now().isoformat(),
        ),
    )
    conn.commit()
    conn.close()


def get_attempts(db_path: str, lesson_day: int | None = None) -> list[AttemptRecord]:
    conn = get_connection(db_path)
    if lesson_day is None:
        rows = conn.execute("SELECT * FROM evaluation_attempts ORDER BY id").fetchall()
    else:
        rows = conn.execute(
            "SELECT * FROM evaluation_attempts WHERE lesson_day = ? ORDER BY id", (lesson_day,)
        ).fetchall()
    conn.close()
    return [
        AttemptRecord(
            lesson_day=row["lesson_day"],
            topic=row["topic"],
            part=row["part"] or "",
            score=row["score"],
            is_twist=bool(row["is_twist"]),
            evaluated_at=row["evaluated_at"],
        )
        for row in rows
    ]
