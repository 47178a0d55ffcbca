"""Interactive CLI application."""
import asyncio
import logging
import sys

import openai
from rich.console import Console
from rich.markdown import Markdown
from rich.panel import Panel
from rich.prompt import IntPrompt, Prompt
from rich.table import Table
from rich.text import Text

from see_tutor.config import Settings, settings
from see_tutor.curriculum import load_curriculum
from see_tutor.dashboard import (
    calc_mastery_progress, calc_readiness_score, get_part_scores, get_readiness_color, get_readiness_label,
    get_study_stats, get_weak_lessons,
)
from see_tutor.db import init_db
from see_tutor.errors import ValidationError
from see_tutor.evaluator import Evaluator
from see_tutor.generator import Generator
from see_tutor.llm import LLMClient
from see_tutor.log import setup_logging
from see_tutor.models import ACTIVE, LEARNER, PASSED, SYSTEM, AppStatus, TranscriptEntry
from see_tutor.progress import load_progress
from see_tutor.session import MIN_PASSED_FOR_MOCK, TutorSession

logger = logging.getLogger(__name__)

console = Console()

SENDER_STYLES = {
    LEARNER: ("You", "magenta"),
    SYSTEM: ("System", "bright_black"),
}
TUTOR_STYLE = ("Tutor", "cyan")

SUGGESTED_COMMANDS = {
    AppStatus.IDLE: "start",
    AppStatus.AWAITING_ANSWER: "answer",
    AppStatus.TOPIC_PASSED: "next",
    AppStatus.COMPLETED: "mock",
    AppStatus.MOCK_EXAM_IN_PROGRESS: "answer",
    AppStatus.MOCK_EXAM_COMPLETED: "exit",
}

DISCLAIMER = "Educational use only, US tax context (SEE focus). Not legal/tax advice to the public."


def show_welcome():
    console.print(Panel(
        "[bold]IRS Special Enrollment Examination[/bold]\n[dim]Scenario-based exam prep[/dim]",
        title="Welcome", border_style="blue",
    ))
    console.print(f"[dim]{DISCLAIMER}[/dim]")


def show_menu(session: TutorSession):
    lesson = session.current_lesson
    console.print(f"\n[bold]Day {lesson.day}: {lesson.topic}[/bold] [dim]({session.status.value})[/dim]")
    console.print("[bold]Commands:[/bold]")
    commands = [
        ("start", "Start today's lesson"),
        ("answer", "Answer the current question"),
        ("next", "Proceed to the next topic"),
        ("select <day>", "Switch to another lesson"),
        ("mock", f"Mock exam (needs {MIN_PASSED_FOR_MOCK} topics passed)"),
        ("exit", "Leave the mock exam"),
        ("plan", "View the lesson plan"),
        ("dashboard", "Readiness score + progress"),
        ("quit", "Exit"),
    ]
    for cmd, desc in commands:
        console.print(f"  [cyan]{cmd:<14}[/cyan] {desc}")


def suggested_command(status: AppStatus) -> str:
    return SUGGESTED_COMMANDS.get(status, "plan")


def render_entry(entry: TranscriptEntry) -> None:
    title, style = SENDER_STYLES.get(entry.sender, TUTOR_STYLE)
    console.print(Panel(Markdown(entry.text), title=title, title_align="left", border_style=style))
    for ref in entry.references:
        link = Text(f"  ↗ {ref.title or ref.uri}", style=f"link {ref.uri}")
        console.print(link)


def render_new_entries(session: TutorSession, last_shown: int) -> int:
    """Print transcript entries added since ``last_shown`` and return the newest id."""
    for entry in session.transcript.since(last_shown):
        render_entry(entry)
        last_shown = entry.id
    return last_shown


def read_answer() -> str:
    console.print("[dim]Type your answer. Finish with an empty line.[/dim]")
    lines = []
    while True:
        line = Prompt.ask("", default="", show_default=False)
        if not line.strip():
            break
        lines.append(line)
    return "\n".join(lines)


async def cmd_answer(session: TutorSession):
    if session.status == AppStatus.MOCK_EXAM_IN_PROGRESS:
        answer = Prompt.ask("Your answer (A, B, C, or D)")
        session.submit_mock_answer(answer)
        return
    if session.state.input_disabled:
        raise ValidationError("There is no question waiting for an answer. Use 'start' first.")
    answer = read_answer()
    with console.status("Grading your answer..."):
        await session.submit_answer(answer)


async def cmd_start(session: TutorSession):
    with console.status("Preparing today's scenario..."):
        await session.start_lesson()


async def cmd_mock(session: TutorSession):
    with console.status("Generating mock exam..."):
        await session.start_mock_exam()


def cmd_select(session: TutorSession, arg: str | None):
    if arg is None:
        day = IntPrompt.ask("Lesson day")
    else:
        try:
            day = int(arg)
        except ValueError:
            raise ValidationError(f"'{arg}' is not a lesson day number.")
    session.select_lesson(session.index_for_day(day))


def cmd_plan(session: TutorSession):
    table = Table(title="Lesson Plan")
    table.add_column("Day", justify="right")
    table.add_column("Topic")
    table.add_column("Phase")
    table.add_column("Part")
    table.add_column("Status")
    table.add_column("Score", justify="right")
    table.add_column("Twists", justify="right")
    current = session.state.lesson_index
    for i, p in enumerate(session.state.lessons):
        marker = " ←" if i == current else ""
        if p.status == PASSED:
            status = "[green]passed[/green]"
        elif p.status == ACTIVE:
            status = "[cyan]active[/cyan]"
        else:
            status = "[dim]locked[/dim]"
        table.add_row(
            f"{p.day}{marker}",
            p.topic,
            p.lesson.phase,
            p.lesson.part,
            status,
            f"{p.score}%" if p.status == PASSED else "",
            str(p.twists_completed),
        )
    console.print(table)


def cmd_dashboard(session: TutorSession, db_path: str):
    lessons = session.state.lessons
    score = calc_readiness_score(db_path, lessons)
    label = get_readiness_label(score)
    color = get_readiness_color(score)
    stats = get_study_stats(db_path, lessons)

    console.print(Panel(
        f"[bold]{stats['lessons_passed']} of {stats['lessons_total']} Topics Mastered[/bold]"
        f" ({calc_mastery_progress(lessons)}%)",
        title="SEE Readiness Dashboard", border_style="blue",
    ))

    bar_filled = int(score / 5)
    bar_empty = 20 - bar_filled
    bar = f"[{color}]{'█' * bar_filled}{'░' * bar_empty}[/{color}]"
    console.print(f"\n  Overall Readiness: [bold]{score}%[/bold] {bar} [{color}]{label}[/{color}]\n")

    table = Table(title="Exam Part Breakdown")
    table.add_column("Part", style="cyan")
    table.add_column("Passed", justify="right")
    table.add_column("Score", justify="right")
    table.add_column("Status")
    for ps in get_part_scores(lessons):
        sc_color = get_readiness_color(ps["score"])
        table.add_row(
            ps["part"],
            f"{ps['passed']}/{ps['total']}",
            f"{ps['score']}%",
            f"[{sc_color}]{ps['label']}[/{sc_color}]",
        )
    console.print(table)

    console.print(f"\n  Answers graded: [bold]{stats['answers_graded']}[/bold]  |  "
                  f"Twists: [bold]{stats['twist_answers']}[/bold]  |  "
                  f"Avg Score: [bold]{stats['avg_answer_score']}%[/bold]  |  "
                  f"Mock Exams: [bold]{stats['mock_exams_taken']}[/bold]  |  "
                  f"Avg Mock: [bold]{stats['avg_mock_score']}%[/bold]")

    weak = get_weak_lessons(db_path, lessons)
    if weak:
        weakest = weak[0]
        console.print(
            f"\n  [yellow]Recommendation: revisit Day {weakest['lesson_day']} "
            f"({weakest['topic']}, avg {weakest['avg_score']}%)[/yellow]"
        )


async def dispatch(session: TutorSession, choice: str, db_path: str) -> bool:
    """Run one command. Returns False when the user asked to quit."""
    parts = choice.split(maxsplit=1)
    if not parts:
        return True
    command = parts[0].lower()
    arg = parts[1] if len(parts) > 1 else None
    if command == "start":
        await cmd_start(session)
    elif command == "answer":
        await cmd_answer(session)
    elif command == "next":
        session.advance()
    elif command == "select":
        cmd_select(session, arg)
    elif command == "mock":
        await cmd_mock(session)
    elif command == "exit":
        session.exit_mock_exam()
    elif command == "plan":
        cmd_plan(session)
    elif command == "dashboard":
        cmd_dashboard(session, db_path)
    elif command in ("quit", "q"):
        console.print("[dim]Good luck on your exam![/dim]")
        return False
    else:
        console.print("[red]Unknown command. Try again.[/red]")
    return True


def build_session(db_path: str, config: Settings) -> TutorSession:
    init_db(db_path)
    lessons = load_progress(db_path, load_curriculum())
    llm = LLMClient(config)
    return TutorSession(
        lessons,
        Generator(llm, config),
        Evaluator(llm, config),
        db_path=db_path,
        timeout=config.call_timeout,
    )


async def run(session: TutorSession, db_path: str):
    show_welcome()
    last_shown = render_new_entries(session, 0)
    while True:
        show_menu(session)
        choice = Prompt.ask("\n[bold]>[/bold]", default=suggested_command(session.status)).strip()
        try:
            if not await dispatch(session, choice, db_path):
                break
        except ValidationError as e:
            console.print(f"[yellow]{e}[/yellow]")
        except KeyboardInterrupt:
            console.print("\n[dim]Use 'quit' to exit.[/dim]")
        except Exception as e:
            logger.exception("Command %r failed", choice)
            console.print(f"[red]Error: {e}[/red]")
        last_shown = render_new_entries(session, last_shown)


def main():
    setup_logging()
    db_path = settings.DB_PATH
    try:
        session = build_session(db_path, settings)
    except openai.OpenAIError as e:
        console.print(f"[red]Could not set up the OpenAI client: {e}[/red]")
        console.print("[dim]Set OPENAI_API_KEY (or SEE_TUTOR_OPENAI_API_KEY) and try again.[/dim]")
        sys.exit(1)
    asyncio.run(run(session, db_path))


if __name__ == "__main__":
    main()
