"""Prompt builders for scenario generation, grading, mock exams and reference lookup."""
from typing import Optional, Sequence

from see_tutor.models import Lesson, LessonProgress
from see_tutor.schemas import PASSING_SCORE, RUBRIC_WEIGHTS

EXAM_NAME = "US IRS Special Enrollment Examination (SEE)"

RUBRIC_LINES = {
    "rules": "Applicable Rules & Authority: correctly identify and apply relevant IRC sections, regulations, and IRS guidance.",
    "calculations": "Calculations: accurate calculations with clear work shown.",
    "compliance": "Compliance & Documentation: the correct forms, schedules, deadlines, and record-keeping.",
    "alternatives": "Alternatives & Elections: valid alternatives or elections, considered and explained.",
    "planning": "Planning Strategies & Pitfalls: tax planning opportunities or common errors.",
    "clarity": "Clarity/Structure: a well-organized, clear, and professional answer.",
}

STUDY_HEADINGS = (
    "Applicable Rules",
    "Calculations",
    "Examples",
    "Alternatives",
    "Compliance",
    "Planning",
    "Pitfalls",
    "Short Checklist",
)


def format_mastered_topics(passed: Sequence[LessonProgress], empty: str = "None yet") -> str:
    if not passed:
        return empty
    return ", ".join(p.topic for p in passed)


def build_scenario_prompt(
    lesson: Lesson,
    passed: Sequence[LessonProgress],
    previous_scenario: Optional[str] = None,
    is_twist: bool = False,
) -> str:
    prompt = f"""You are an expert curriculum designer for the {EXAM_NAME}.
Write one concise, practical, real-world tax scenario for a tax professional to solve, and one question about it.

**Today's Topic:** {lesson.topic} - {lesson.description}
**Exam Part:** {lesson.part}
**Topics Previously Mastered by Student:** {format_mastered_topics(passed)}

**Instructions:**
1. Frame the scenario as a single client case with concrete facts and figures.
2. The scenario must test the student's knowledge of today's topic directly.
3. Where it fits, weave in elements of the previously mastered topics. Raise the complexity as more topics are mastered.
4. Keep the scenario rich in detail but concise.
5. Ask one precise question that needs a detailed analysis, not a yes/no or single-number answer.
6. Do NOT include hints or solutions.
"""
    if is_twist and previous_scenario:
        prompt += f"""
**This is a "Twist" Scenario:**
The student already solved a scenario on this topic. Change a few key facts to test the same knowledge from a different angle.
- **Previous Scenario:** "{previous_scenario}"
- **Your Task:** Write a new scenario and question that are a logical variation of the previous one. Do not repeat it. Introduce a new element or change a critical number or condition.
"""
    prompt += "\nRespond ONLY with a valid JSON object that adheres to the defined schema."
    return prompt


def build_evaluation_prompt(scenario_text: str, answer_text: str, passed: Sequence[LessonProgress]) -> str:
    rubric = "\n".join(
        f"{i}. {RUBRIC_LINES[name]} ({weight} points)"
        for i, (name, weight) in enumerate(RUBRIC_WEIGHTS.items(), 1)
    )
    return f"""You are an expert tax law instructor and grader for the {EXAM_NAME}.
Grade the student's answer to a tax scenario and give clear, actionable feedback.

**Context:**
- **Scenario:** "{scenario_text}"
- **Student's Answer:** "{answer_text}"
- **Previously Mastered Topics:** {format_mastered_topics(passed, empty="None")}

**Grading Rubric:**
Score every category. The total score is the sum of the category scores, out of 100.
{rubric}

**Your Task:**
1. Analyze the answer against the scenario and the rubric.
2. Give brief, high-yield bullet-point feedback:
   - "good": 2-3 things the student did well.
   - "corrections": for each mistake, state what was wrong and briefly explain the correct approach.
   - "takeaways": 2-3 high-level summary points.
3. If the total score is less than {PASSING_SCORE}:
   a. List the core concepts the student missed as short "knowledgePoints".
   b. Write a "detailedExplanation": the complete, correct model answer, walking through the rules, calculations, and compliance steps and explaining why.
4. If the total score is {PASSING_SCORE} or above, "knowledgePoints" MUST be empty and "detailedExplanation" MUST be an empty string.
5. Respond ONLY with a valid JSON object that adheres to the defined schema.
"""


def build_mock_exam_prompt(passed: Sequence[LessonProgress], count: int) -> str:
    topics = "\n".join(f"- {p.topic}: {p.lesson.description}" for p in passed)
    return f"""You are an expert curriculum designer for the {EXAM_NAME}.
Write a mock exam of {count} multiple-choice questions.

**Topics Mastered by Student:**
{topics}

**Instructions:**
1. Write exactly {count} distinct questions.
2. Base them on a random, representative sample of the topics above.
3. Give each question four options: A, B, C, and D.
4. Mark the correct answer of each question with its letter.
5. Pitch the difficulty at a final review exam.
6. Name the topic from the list above that each question covers.
7. Respond ONLY with a valid JSON object that adheres to the defined schema, with the questions in a "questions" array.
"""


def build_reference_query(lesson: Lesson) -> str:
    return (
        f'Find official IRS publications, forms, and articles for the tax topic: '
        f'"{lesson.topic} - {lesson.description}". Prioritize .gov websites.'
    )


def build_study_prompt(lesson: Lesson) -> str:
    """Research prompt the learner can take to their own notes or study tools."""
    headings = "\n".join(f"- {heading}" for heading in STUDY_HEADINGS)
    return (
        "Analyze all of the following resources for paid tax preparers and tax professionals in context to\n\n"
        f"**Phase:** {lesson.phase}\n"
        f"**Topic:** {lesson.topic}: {lesson.description}\n"
        f"**Citations:** {lesson.references}\n\n"
        f"and your output must include (with clear headings):\n{headings}"
    )
