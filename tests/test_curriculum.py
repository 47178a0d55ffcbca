import pytest

from see_tutor.curriculum import get_parts, load_curriculum, parse_lesson


def test_packaged_curriculum_loads():
    lessons = load_curriculum()
    assert len(lessons) == 48
    assert [l.day for l in lessons] == list(range(1, 49))
    assert lessons[1].topic == "Filing Status"


def test_packaged_curriculum_has_three_parts():
    lessons = load_curriculum()
    assert get_parts(lessons) == ["Part 1", "Part 2", "Part 3"]
    assert all(l.description for l in lessons)


def test_parse_lesson_requires_fields():
    with pytest.raises(ValueError, match="topic"):
        parse_lesson({"week": 1, "day": 1, "phase": "P", "description": "d"})


def test_parse_lesson_optional_fields_default():
    lesson = parse_lesson({"week": "2", "day": "7", "phase": "P", "topic": "T", "description": "d"})
    assert lesson.day == 7
    assert lesson.week == 2
    assert lesson.part == ""


def test_load_curriculum_sorts_by_day(tmp_path):
    path = tmp_path / "plan.yaml"
    path.write_text(
        "lessons:\n"
        "  - {week: 1, day: 2, phase: P, topic: B, description: b}\n"
        "  - {week: 1, day: 1, phase: P, topic: A, description: a}\n",
        encoding="utf-8",
    )
    lessons = load_curriculum(path)
    assert [l.topic for l in lessons] == ["A", "B"]


def test_load_curriculum_rejects_duplicate_days(tmp_path):
    path = tmp_path / "plan.yaml"
    path.write_text(
        "lessons:\n"
        "  - {week: 1, day: 1, phase: P, topic: A, description: a}\n"
        "  - {week: 1, day: 1, phase: P, topic: B, description: b}\n",
        encoding="utf-8",
    )
    with pytest.raises(ValueError, match="Duplicate"):
        load_curriculum(path)


def test_get_parts_first_seen_order(lessons):
    assert get_parts(lessons) == ["Part 1", "Part 2"]
