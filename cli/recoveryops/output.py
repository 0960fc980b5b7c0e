"""Rich console output utilities for the Recovery Ops CLI."""

import logging
from typing import Any

from rich.console import Console
from rich.logging import RichHandler
from rich.markup import escape
from rich.panel import Panel
from rich.progress import Progress, SpinnerColumn, TextColumn
from rich.table import Table

from schemas.operation_state import LogCategory, LogEntry, OperationSnapshot, OperationState
from schemas.recovery_task import RecoveryTask, TaskStatus

console = Console()
error_console = Console(stderr=True)

CATEGORY_STYLES = {
    LogCategory.SYSTEM: "bold cyan",
    LogCategory.AI: "magenta",
    LogCategory.COMMS: "yellow",
    LogCategory.TASK: "green",
}

STATUS_STYLES = {
    TaskStatus.PENDING: "dim",
    TaskStatus.IN_PROGRESS: "bold yellow",
    TaskStatus.COMPLETED: "green",
}

STATE_STYLES = {
    OperationState.IDLE: "dim",
    OperationState.PLANNING: "magenta",
    OperationState.EXECUTING: "bold yellow",
    OperationState.PAUSED: "bold red",
    OperationState.AWAITING_APPROVAL: "bold blue",
    OperationState.COMPLETED: "bold green",
}


def setup_logging(level: str = "INFO", rich_tracebacks: bool = True) -> None:
    """Route library logging through a RichHandler on stderr.

    Activity log entries are printed by the console subscriber, so their
    logger is held at WARNING unless DEBUG output was asked for.
    """
    numeric = getattr(logging, level.upper(), logging.INFO)
    logging.basicConfig(
        level=numeric,
        format="%(message)s",
        datefmt="[%X]",
        handlers=[RichHandler(console=error_console, rich_tracebacks=rich_tracebacks, show_path=False)],
        force=True,
    )
    if numeric > logging.DEBUG:
        logging.getLogger("orchestrator.activity").setLevel(logging.WARNING)


def print_success(message: str) -> None:
    """Print a success message."""
    console.print(f"[green]✓[/green] {message}")


def print_error(message: str) -> None:
    """Print an error message to stderr."""
    error_console.print(f"[red]✗[/red] {message}")


def print_warning(message: str) -> None:
    """Print a warning message."""
    console.print(f"[yellow]![/yellow] {message}")


def print_info(message: str) -> None:
    """Print an info message."""
    console.print(f"[blue]→[/blue] {message}")


def print_log_entry(entry: LogEntry) -> None:
    """Print one activity log line, colored by category."""
    style = CATEGORY_STYLES.get(entry.category, "white")
    console.print(
        f"[dim]{entry.timestamp:%H:%M:%S}[/dim] [{style}]{entry.category.value:<6}[/{style}] {escape(entry.message)}",
        highlight=False,
    )


def print_tasks(tasks: list[RecoveryTask], active_index: int = -1, title: str = "Recovery Plan") -> None:
    """Print the task queue as a table, marking the active task."""
    if not tasks:
        print_info("No tasks in queue.")
        return

    table = Table(title=title, show_header=True, header_style="bold")
    table.add_column("", width=1)
    table.add_column("ID", style="cyan")
    table.add_column("Task")
    table.add_column("Unit")
    table.add_column("ETA", justify="right")
    table.add_column("Status")

    for i, task in enumerate(tasks):
        style = STATUS_STYLES.get(task.status, "white")
        table.add_row(
            "▶" if i == active_index else "",
            task.id,
            f"[bold]{escape(task.title)}[/bold]\n[dim]{escape(task.description)}[/dim]" if task.description else escape(task.title),
            escape(task.assigned_agent),
            task.estimated_time or "-",
            f"[{style}]{task.status.value}[/{style}]",
        )

    console.print(table)


def print_snapshot(snapshot: OperationSnapshot) -> None:
    """Print operation state and progress."""
    stats = snapshot.statistics
    style = STATE_STYLES.get(snapshot.state, "white")
    console.print(
        Panel(
            f"[{style}]{snapshot.state.value}[/{style}]\n"
            f"{stats.completed}/{stats.total} tasks completed ({stats.progress_percent}%)",
            title="Operation Status",
            border_style="cyan",
        )
    )


def print_config_section(name: str, values: dict[str, Any]) -> None:
    """Print one configuration section as a table."""
    console.print(f"\n[bold]{escape(f'[{name}]')}[/bold]")
    table = Table(show_header=False)
    table.add_column("Key", style="cyan")
    table.add_column("Value")
    for key, value in values.items():
        table.add_row(key, str(value))
    console.print(table)


def create_spinner() -> Progress:
    """Create a simple spinner for indeterminate progress."""
    return Progress(
        SpinnerColumn(),
        TextColumn("[progress.description]{task.description}"),
        console=console,
        transient=True,
    )
