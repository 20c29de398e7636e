# -*- coding: utf-8 -*-
from datetime import date

import click
from rich.console import Console
from rich.markup import escape
from rich.panel import Panel
from rich.table import Table

from mcp_wrappers.tasks.mcp_service import (
    _complete_task,
    _create_task,
    _list_tasks,
)
from scheduler.dates import parse_date
from scheduler.nextdate import next_date
from scheduler.rules import RuleError, describe_rule, parse_rule
from services.shared.models import Task


console = Console()


def format_date_human(date_text: str) -> str:
    """Convert YYYYMMDD to a readable form such as 'Thu 08.02.2024'."""
    try:
        return parse_date(date_text).strftime("%a %d.%m.%Y")
    except ValueError:
        # Fallback for malformed dates
        return date_text


def truncate_title(title: str, max_length: int = 45) -> str:
    """Truncate title to max_length characters, adding ellipsis if needed."""
    if len(title) <= max_length:
        return title
    return title[:max_length-3] + "..."


def create_tasks_table(tasks: list[Task]) -> Table:
    """Create a table of tasks."""
    table = Table(title="📅 Tasks", show_header=True, header_style="bold magenta")
    table.add_column("ID", style="cyan", justify="right")
    table.add_column("Date", style="yellow")
    table.add_column("Title", style="white")
    table.add_column("Repeat", style="green")
    table.add_column("Comment", style="dim")

    for task in tasks:
        table.add_row(
            task.id,
            format_date_human(task.date),
            truncate_title(task.title),
            task.repeat or "—",
            truncate_title(task.comment, 30) if task.comment else "—",
        )
    return table


def _fail(message: str) -> None:
    console.print(f"[red]Error:[/red] {escape(message)}")
    raise SystemExit(1)


@click.group(context_settings={"help_option_names": ["-h", "--help"]})
def main() -> None:
    """Task scheduler: compute recurrence dates and manage tasks."""


@main.command("next")
@click.argument("start")
@click.argument("repeat")
@click.option("--now", "now_text", default="", help="Reference date (YYYYMMDD), defaults to today.")
def next_command(start: str, repeat: str, now_text: str) -> None:
    """Print the next date after NOW for task START repeating by REPEAT.

    START: Task date in YYYYMMDD format.
    REPEAT: Recurrence rule, e.g. "d 7", "y", "w 1,5", "m -1 2,8".
    """
    try:
        now = parse_date(now_text) if now_text else date.today()
    except ValueError as e:
        _fail(f"invalid --now date: {e}")

    try:
        result = next_date(now, start, repeat)
        description = describe_rule(parse_rule(repeat))
    except RuleError as e:
        _fail(f"{e} ({e.kind.value})")

    console.print(
        Panel.fit(
            f"[bold]{result}[/bold]  {format_date_human(result)}\n"
            f"[dim]{description}, after {now.strftime('%d.%m.%Y')}[/dim]",
            title="⏭ Next date",
            border_style="blue",
        )
    )


@main.command("tasks")
@click.option("--search", "-s", default="", help="Text or date (YYYYMMDD / DD.MM.YYYY) to filter by.")
def tasks_command(search: str) -> None:
    """List upcoming tasks from the task service."""
    try:
        tasks = _list_tasks(search)
    except RuntimeError as e:
        _fail(str(e))

    if not tasks:
        console.print("✅ No tasks found.")
        return
    console.print(create_tasks_table(tasks))


@main.command("add")
@click.argument("title")
@click.option("--date", "date_text", default="", help="Due date (YYYYMMDD), defaults to today.")
@click.option("--comment", default="", help="Free-form comment.")
@click.option("--repeat", default="", help="Recurrence rule.")
def add_command(title: str, date_text: str, comment: str, repeat: str) -> None:
    """Create a task titled TITLE."""
    try:
        saved = _create_task(title, date=date_text, comment=comment, repeat=repeat)
    except RuntimeError as e:
        _fail(str(e))
    console.print(f"[bold green]✓[/bold green] {saved.message} (id {saved.id})")


@main.command("done")
@click.argument("task_id")
def done_command(task_id: str) -> None:
    """Mark task TASK_ID as done."""
    try:
        _complete_task(task_id)
    except RuntimeError as e:
        _fail(str(e))
    console.print(f"[bold green]✓[/bold green] Task {task_id} done")


@main.command("serve")
@click.option("--host", default="0.0.0.0", show_default=True)
@click.option("--port", type=int, default=None, help="Defaults to TODO_PORT or 7540.")
def serve_command(host: str, port: int) -> None:
    """Run the task service."""
    import uvicorn

    from services.task_service.app import app
    from services.task_service.config import get_port

    try:
        port = port or get_port()
    except ValueError as e:
        _fail(str(e))
    uvicorn.run(app, host=host, port=port)


if __name__ == "__main__":
    main()
