import logging
import typer
from rich.console import Console
from rich.table import Table
from typing import Optional, List
from datetime import datetime, date
from pydantic import ValidationError as SchemaValidationError

from studyplan.config import settings
from studyplan.database import SessionLocal, init_db
from studyplan.crud import (
    get_course_settings, complete_orientation,
    add_plan_entries, create_module, get_course_modules, get_module_progress
)
from studyplan.errors import PlanError
from studyplan.models import TaskType, PlanEntryStatus, SessionBucket, SelfRating, LearnStatus
from studyplan.schemas import CourseSettingsCreate, PlanEntryCreate
from studyplan.service import (
    load_plan, load_todays_plan, save_course_settings, check_behind_schedule_for_course,
    mark_module_learned_for_course
)
from studyplan.transitions import set_task_status

app = typer.Typer(help="Study Plan CLI - weekly plan, today's plan and progress tracking")
console = Console()

STATUS_STYLES = {
    PlanEntryStatus.COMPLETED: "[green]Completed[/green]",
    PlanEntryStatus.IN_PROGRESS: "[blue]In progress[/blue]",
    PlanEntryStatus.PENDING: "[dim]Pending[/dim]",
    PlanEntryStatus.SKIPPED: "[yellow]Skipped[/yellow]",
}

SECTION_TITLES = {
    SessionBucket.SESSION_COURTE: "Short session (1 block)",
    SessionBucket.SESSION_LONGUE: "Long session (2 blocks)",
    SessionBucket.SESSION_COURTE_SUPPLEMENTAIRE: "Extra short session (1 block)",
    SessionBucket.SESSION_LONGUE_SUPPLEMENTAIRE: "Extra long session (2 blocks)",
}

PHASE_LABELS = {
    TaskType.LEARN: "Phase 1 - Learn",
    TaskType.REVIEW: "Phase 2 - Review",
    TaskType.PRACTICE: "Phase 3 - Practice",
}

@app.callback()
def main():
    """Configure logging for every command"""
    logging.basicConfig(
        level=settings.log_level.upper(),
        format="%(asctime)s [%(levelname)s] %(name)s: %(message)s",
    )

def parse_date(value: str) -> date:
    return datetime.strptime(value, "%Y-%m-%d").date()

def fail(message: str):
    console.print(f"[red]✗[/red] {message}")
    raise typer.Exit(code=1)

def require_settings(db, user_id: int, course_id: int):
    course_settings = get_course_settings(db, user_id, course_id)
    if not course_settings:
        fail(f"Study plan not configured for user {user_id} in course {course_id}")
    return course_settings

@app.command()
def init():
    """Initialize database tables"""
    init_db()
    console.print("[green]✓[/green] Database initialized successfully!")

@app.command()
def reset_db():
    """Delete all data and reinitialize database (WARNING: irreversible!)"""
    confirm = typer.confirm("⚠️  This will DELETE ALL DATA. Are you sure?")
    if not confirm:
        console.print("[yellow]Cancelled.[/yellow]")
        return

    from studyplan.database import engine, Base
    import studyplan.models  # noqa: F401
    console.print("[yellow]Dropping all tables...[/yellow]")
    Base.metadata.drop_all(bind=engine)
    console.print("[yellow]Recreating tables...[/yellow]")
    Base.metadata.create_all(bind=engine)
    console.print("[green]✓[/green] Database reset complete! All data deleted.")

@app.command()
def configure(
    user_id: int = typer.Option(..., prompt="User ID"),
    course_id: int = typer.Option(..., prompt="Course ID"),
    exam_date: str = typer.Option(..., prompt="Exam date (YYYY-MM-DD)"),
    hours: int = typer.Option(..., prompt="Study hours per week"),
    days: str = typer.Option("1,2,3,4,5", help="Study days as ISO weekdays (1 = Monday)"),
    self_rating: SelfRating = typer.Option(SelfRating.NOVICE, help="NOVICE, INTERMEDIATE or RETAKER")
):
    """Create or update a student's study plan settings"""
    db = SessionLocal()
    try:
        data = CourseSettingsCreate(
            user_id=user_id,
            course_id=course_id,
            exam_date=parse_date(exam_date),
            study_hours_per_week=hours,
            preferred_study_days=[int(d) for d in days.split(",") if d.strip()],
            self_rating=self_rating
        )
        if data.exam_date <= date.today():
            fail("The exam date must be in the future")

        course_settings, is_first_creation = save_course_settings(db, data)
        action = "created" if is_first_creation else "updated"
        console.print(f"[green]✓[/green] Settings {action}!")
        console.print(f"  Exam date: {course_settings.exam_date}")
        console.print(f"  Study plan: {course_settings.study_hours_per_week} h/week on days {course_settings.preferred_study_days}")
        low = course_settings.recommended_hours_min or settings.default_recommended_hours_min
        high = course_settings.recommended_hours_max or settings.default_recommended_hours_max
        if not low <= course_settings.study_hours_per_week <= high:
            console.print(f"[yellow]Recommended: {low}-{high} hours per week[/yellow]")
    except (SchemaValidationError, ValueError) as e:
        fail(f"Invalid settings: {e}")
    finally:
        db.close()

@app.command("complete-orientation")
def complete_orientation_command(user_id: int, course_id: int):
    """Mark the orientation as completed"""
    db = SessionLocal()
    try:
        if not complete_orientation(db, user_id, course_id):
            fail(f"Study plan not configured for user {user_id} in course {course_id}")
        console.print("[green]✓[/green] Orientation completed!")
    finally:
        db.close()

@app.command()
def add_module(
    course_id: int = typer.Option(..., prompt="Course ID"),
    title: str = typer.Option(..., prompt="Module title"),
    order: int = typer.Option(0, help="Display order")
):
    """Add a module to a course"""
    db = SessionLocal()
    try:
        module = create_module(db, course_id, title, order)
        console.print(f"[green]✓[/green] Module created! ID: {module.id}")
    finally:
        db.close()

@app.command()
def add_entry(
    user_id: int = typer.Option(..., prompt="User ID"),
    course_id: int = typer.Option(..., prompt="Course ID"),
    entry_date: str = typer.Option(..., "--date", prompt="Date (YYYY-MM-DD)"),
    task_type: TaskType = typer.Option(..., prompt="Task type (LEARN/REVIEW/PRACTICE)"),
    module_id: Optional[int] = typer.Option(None, help="Module ID (required for LEARN)"),
    description: str = typer.Option("", help="What to do"),
    blocks: int = typer.Option(1, help="Estimated 25-minute blocks"),
    bucket: Optional[SessionBucket] = typer.Option(None, help="Session bucket for today's plan")
):
    """Add a plan entry"""
    db = SessionLocal()
    try:
        entry = PlanEntryCreate(
            user_id=user_id,
            course_id=course_id,
            date=parse_date(entry_date),
            task_type=task_type,
            module_id=module_id,
            description=description,
            estimated_blocks=blocks,
            session_bucket=bucket
        )
        db_entry = add_plan_entries(db, [entry])[0]
        console.print(f"[green]✓[/green] Plan entry created! ID: {db_entry.id}")
    except (SchemaValidationError, ValueError) as e:
        fail(f"Invalid plan entry: {e}")
    finally:
        db.close()

@app.command()
def view_plan(user_id: int, course_id: int):
    """View the weekly study plan from week 1 to the exam"""
    db = SessionLocal()
    try:
        course_settings = require_settings(db, user_id, course_id)
        plan = load_plan(db, course_settings)
        if not plan.weeks:
            console.print(f"[yellow]No study plan available for user {user_id}[/yellow]")
            return

        console.print(f"\n[bold]Study Plan[/bold] ({plan.week1_start_date} to {plan.exam_date})\n")
        today = date.today()
        for week in plan.weeks:
            title = f"Week {week.week_number}: {week.week_start_date} - {week.week_end_date}"
            if week.week_start_date <= today <= week.week_end_date:
                title += " [cyan](this week)[/cyan]"
            if week.is_exam_week:
                title += " [magenta](exam week)[/magenta]"
            console.print(f"[bold]{title}[/bold]  {week.completed_tasks}/{week.total_tasks} completed ({week.completion_percentage}%)")

            if not week.tasks:
                continue
            table = Table(show_header=True, header_style="bold magenta")
            table.add_column("Phase", style="cyan")
            table.add_column("Task", style="green")
            table.add_column("Blocks", justify="right")
            table.add_column("Status")
            table.add_column("Entries", style="dim")
            for task in week.tasks:
                label = task.description or task.module_title or ""
                table.add_row(
                    PHASE_LABELS[task.type],
                    label,
                    str(task.estimated_blocks),
                    STATUS_STYLES[task.status],
                    ",".join(str(i) for i in task.entry_ids)
                )
            console.print(table)
    except PlanError as e:
        fail(f"Error: {e}")
    finally:
        db.close()

@app.command()
def today(
    user_id: int,
    course_id: int,
    on: Optional[str] = typer.Option(None, "--date", help="Day to show (YYYY-MM-DD), default: today")
):
    """View today's plan by session"""
    db = SessionLocal()
    try:
        course_settings = require_settings(db, user_id, course_id)
        day = parse_date(on) if on else date.today()
        plan = load_todays_plan(db, course_settings, today=day)

        console.print(f"\n[bold]Plan for {day}[/bold] - {plan.total_blocks} blocks")
        if plan.phase1_module:
            console.print(f"Phase 1 module: {plan.phase1_module.title}")

        for bucket in SessionBucket:
            entries = plan.sections.bucket(bucket)
            console.print(f"\n[cyan]{SECTION_TITLES[bucket]}[/cyan]")
            if not entries:
                console.print("  [dim]Nothing scheduled[/dim]")
            for entry in entries:
                console.print(
                    f"  #{entry.id} {PHASE_LABELS[entry.task_type]}: {entry.description} "
                    f"({entry.estimated_blocks} blocks) {STATUS_STYLES[entry.status]}"
                )
    except PlanError as e:
        fail(f"Error: {e}")
    finally:
        db.close()

def _update_status(entry_ids: List[int], status: PlanEntryStatus, user_id: Optional[int], time_spent: Optional[int] = None):
    db = SessionLocal()
    try:
        set_task_status(db, entry_ids, status, user_id=user_id, actual_time_spent_seconds=time_spent)
        console.print(f"[green]✓[/green] {len(entry_ids)} plan entries set to {status.value}")
    except PlanError as e:
        fail(f"Error: {e}")
    finally:
        db.close()

@app.command()
def set_status(
    entry_id: List[int] = typer.Option(..., help="Plan entry ID (repeat for every entry of a task)"),
    status: PlanEntryStatus = typer.Option(..., help="PENDING, IN_PROGRESS or COMPLETED"),
    user_id: Optional[int] = typer.Option(None, help="Only update entries owned by this user")
):
    """Set the status of a task's plan entries (all or nothing)"""
    _update_status(entry_id, status, user_id)

@app.command()
def start_task(entry_id: int, user_id: Optional[int] = typer.Option(None)):
    """Mark a plan entry as in progress"""
    _update_status([entry_id], PlanEntryStatus.IN_PROGRESS, user_id)

@app.command()
def complete_task(
    entry_id: int,
    user_id: Optional[int] = typer.Option(None),
    minutes: Optional[int] = typer.Option(None, help="Time actually spent, in minutes")
):
    """Mark a plan entry as completed"""
    _update_status([entry_id], PlanEntryStatus.COMPLETED, user_id, minutes * 60 if minutes is not None else None)

@app.command()
def mark_learned(user_id: int, course_id: int, module_id: int):
    """Mark a module as learned"""
    db = SessionLocal()
    try:
        progress = mark_module_learned_for_course(db, user_id, course_id, module_id)
        console.print(f"[green]✓[/green] Module {progress.module_id} marked as learned")
    finally:
        db.close()

@app.command()
def view_progress(user_id: int, course_id: int):
    """View module progress for a course"""
    db = SessionLocal()
    try:
        learned = {
            p.module_id for p in get_module_progress(db, user_id, course_id)
            if p.learn_status == LearnStatus.LEARNED
        }
        modules = get_course_modules(db, course_id)
        if not modules:
            console.print(f"[yellow]No modules found for course {course_id}[/yellow]")
            return

        table = Table(show_header=True, header_style="bold magenta")
        table.add_column("ID", style="cyan")
        table.add_column("Module", style="green")
        table.add_column("Status")
        for module in modules:
            status = "[green]Learned[/green]" if module.id in learned else "[dim]Not learned[/dim]"
            table.add_row(str(module.id), module.title, status)
        console.print(table)
        console.print(f"  {len(learned)}/{len(modules)} modules learned")
    finally:
        db.close()

@app.command()
def check_behind(
    user_id: int,
    course_id: int,
    minimum_blocks: Optional[int] = typer.Option(None, help="Minimum study blocks the course requires")
):
    """Check whether the student is behind schedule"""
    db = SessionLocal()
    try:
        course_settings = require_settings(db, user_id, course_id)
        result = check_behind_schedule_for_course(db, course_settings, minimum_study_blocks=minimum_blocks)
        if not result.is_behind:
            console.print("[green]✓[/green] On track!")
            return

        console.print("[red]You are behind on your study plan[/red]")
        console.print(f"  {result.warning}")
        if result.suggestions:
            console.print("\n[bold]Suggestions:[/bold]")
            for suggestion in result.suggestions:
                console.print(f"  - {suggestion}")
    except PlanError as e:
        fail(f"Error: {e}")
    finally:
        db.close()

if __name__ == "__main__":
    app()
