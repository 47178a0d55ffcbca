"""Readiness dashboard scoring and statistics."""
from see_tutor.curriculum import get_parts
from see_tutor.db import get_connection
from see_tutor.mock_exam import get_mock_exam_history
from see_tutor.models import LessonProgress, PASSED
from see_tutor.progress import get_attempts
from see_tutor.schemas import PASSING_SCORE


def get_readiness_label(score: float) -> str:
    if score >= 80:
        return "READY"
    elif score >= 65:
        return "LIKELY"
    elif score >= 50:
        return "NEEDS WORK"
    return "NOT READY"


def get_readiness_color(score: float) -> str:
    if score >= 80:
        return "green"
    elif score >= 65:
        return "yellow"
    elif score >= 50:
        return "dark_orange"
    return "red"


def calc_mastery_progress(lessons: list[LessonProgress]) -> float:
    """Share of lessons passed, as a percentage."""
    if not lessons:
        return 0.0
    passed = sum(1 for p in lessons if p.status == PASSED)
    return round((passed / len(lessons)) * 100, 1)


def _average(values: list[float]) -> float:
    return sum(values) / len(values) if values else 0.0


def calc_readiness_score(db_path: str, lessons: list[LessonProgress]) -> float:
    mastery = calc_mastery_progress(lessons)
    answers = _average([a.score for a in get_attempts(db_path)])
    mock = _average([h["percentage"] for h in get_mock_exam_history(db_path)])
    # Weighted: mastery 50%, answer quality 30%, mock exams 20%
    score = mastery * 0.5 + answers * 0.3 + mock * 0.2
    return round(score, 1)


def get_part_scores(lessons: list[LessonProgress]) -> list[dict]:
    results = []
    for part in get_parts([p.lesson for p in lessons]):
        in_part = [p for p in lessons if p.lesson.part == part]
        passed = sum(1 for p in in_part if p.status == PASSED)
        pct = (passed / len(in_part)) * 100
        results.append({
            "part": part,
            "passed": passed,
            "total": len(in_part),
            "score": round(pct, 1),
            "label": get_readiness_label(pct),
        })
    return results


def get_study_stats(db_path: str, lessons: list[LessonProgress]) -> dict:
    attempts = get_attempts(db_path)
    history = get_mock_exam_history(db_path)
    return {
        "lessons_passed": sum(1 for p in lessons if p.status == PASSED),
        "lessons_total": len(lessons),
        "answers_graded": len(attempts),
        "twist_answers": sum(1 for a in attempts if a.is_twist),
        "avg_answer_score": round(_average([a.score for a in attempts]), 1),
        "mock_exams_taken": len(history),
        "avg_mock_score": round(_average([h["percentage"] for h in history]), 1),
    }


def get_weak_lessons(db_path: str, lessons: list[LessonProgress], threshold: float = PASSING_SCORE) -> list[dict]:
    """Lessons not yet passed whose average graded score is below threshold (worst first)."""
    not_passed = {p.day: p for p in lessons if p.status != PASSED}
    conn = get_connection(db_path)
    rows = conn.execute(
        """SELECT lesson_day, COUNT(*) as total, AVG(score) as avg_score
        FROM evaluation_attempts
        GROUP BY lesson_day
        HAVING AVG(score) < ?
        ORDER BY AVG(score) ASC""",
        (threshold,),
    ).fetchall()
    conn.close()
    return [
        {
            "lesson_day": r["lesson_day"],
            "topic": not_passed[r["lesson_day"]].topic,
            "attempts": r["total"],
            "avg_score": round(r["avg_score"], 1),
        }
        for r in rows
        if r["lesson_day"] in not_passed
    ]
