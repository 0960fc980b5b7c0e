"""Recovery Ops CLI.

Command-line interface for planning and running recovery operations.
"""

import asyncio
from pathlib import Path
from typing import Optional

import typer
from rich.prompt import Prompt

from cli.recoveryops.output import (
    console,
    create_spinner,
    print_config_section,
    print_error,
    print_info,
    print_log_entry,
    print_snapshot,
    print_success,
    print_tasks,
    print_warning,
    setup_logging,
)

app = typer.Typer(
    name="recovery-ops",
    help="Recovery Ops - AI-assisted disaster recovery operations",
    no_args_is_help=True,
)

# Config sub-app
config_app = typer.Typer(
    name="config",
    help="Inspect configuration settings.",
)
app.add_typer(config_app, name="config")


def _load_settings(backend: str | None, model: str | None):
    from settings.config import get_config

    config = get_config()
    if backend:
        config.llm.backend = backend
    if model:
        config.llm.model = model
    setup_logging(config.logging.level, config.logging.rich_tracebacks)
    return config


def _build_orchestrator(config, auto_approve: bool = False, task_duration: float | None = None):
    """Wire the configured LLM backend into both agents and the orchestrator."""
    from agents import CommandInterpreterAgent, RecoveryPlannerAgent
    from llm_backend import get_backend
    from orchestrator import ApprovalGate, RecoveryOrchestrator

    llm = get_backend(config.llm.backend, **config.llm.backend_kwargs())
    planner = RecoveryPlannerAgent(llm, temperature=config.llm.temperature)
    interpreter = CommandInterpreterAgent(llm)

    if task_duration is not None:
        config.operation.task_duration_seconds = task_duration
    gate = ApprovalGate(console=console, auto_approve=auto_approve or config.operation.auto_approve)
    return RecoveryOrchestrator.from_config(config, planner, interpreter, approval_gate=gate)


@app.command()
def plan(
    disaster_type: Optional[str] = typer.Option(None, "--type", "-t", help="Disaster type (e.g. Flood, Earthquake)"),
    location: Optional[str] = typer.Option(None, "--location", "-l", help="Affected location"),
    backend: Optional[str] = typer.Option(
        None,
        "--backend",
        "-b",
        help="LLM backend: auto|ollama|openai|anthropic|lmstudio",
    ),
    model: Optional[str] = typer.Option(None, "--model", "-m", help="Override model name"),
) -> None:
    """Generate a recovery plan and print it.

    Examples:
        recovery-ops plan
        recovery-ops plan --type Earthquake --location "Sector 7"
    """
    config = _load_settings(backend, model)
    disaster_type = disaster_type or config.operation.default_disaster_type
    location = location or config.operation.default_location

    try:
        orchestrator = _build_orchestrator(config)
    except (ImportError, ValueError) as e:
        print_error(f"Failed to initialize LLM backend: {e}")
        raise typer.Exit(1)

    orchestrator.log.subscribe(print_log_entry)
    with create_spinner() as progress:
        progress.add_task("Generating recovery plan...", total=None)
        asyncio.run(orchestrator.generate_plan(disaster_type, location))

    print_tasks(orchestrator.tasks, title=f"Recovery Plan: {disaster_type} in {location}")


@app.command()
def run(
    disaster_type: Optional[str] = typer.Option(None, "--type", "-t", help="Disaster type (e.g. Flood, Earthquake)"),
    location: Optional[str] = typer.Option(None, "--location", "-l", help="Affected location"),
    backend: Optional[str] = typer.Option(
        None,
        "--backend",
        "-b",
        help="LLM backend: auto|ollama|openai|anthropic|lmstudio",
    ),
    model: Optional[str] = typer.Option(None, "--model", "-m", help="Override model name"),
    auto_approve: bool = typer.Option(
        False,
        "--auto-approve",
        "-y",
        help="Confirm every task without prompting",
    ),
    task_duration: Optional[float] = typer.Option(
        None,
        "--task-duration",
        help="Simulated seconds per task",
    ),
    export: Optional[Path] = typer.Option(
        None,
        "--export",
        "-o",
        help="Write the final operation snapshot as JSON",
    ),
) -> None:
    """Plan and execute a recovery operation.

    At each approval gate choose to confirm the task, pause for review, or
    issue an operator command such as "reassign medical triage to Sector 4".

    Examples:
        recovery-ops run --type Wildfire --location "Ridge County"
        recovery-ops run --auto-approve --export operation.json
    """
    config = _load_settings(backend, model)
    disaster_type = disaster_type or config.operation.default_disaster_type
    location = location or config.operation.default_location

    try:
        orchestrator = _build_orchestrator(config, auto_approve=auto_approve, task_duration=task_duration)
    except (ImportError, ValueError) as e:
        print_error(f"Failed to initialize LLM backend: {e}")
        raise typer.Exit(1)

    orchestrator.log.subscribe(print_log_entry)
    try:
        asyncio.run(_run_operation(orchestrator, disaster_type, location))
    except KeyboardInterrupt:
        orchestrator.close()
        print_warning("Operation interrupted by operator")
        _export(orchestrator, export)
        raise typer.Exit(130)

    print_snapshot(orchestrator.snapshot())
    _export(orchestrator, export)


async def _run_operation(orchestrator, disaster_type: str, location: str) -> None:
    from orchestrator import ApprovalResult
    from schemas.operation_state import OperationState

    await orchestrator.generate_plan(disaster_type, location)
    print_tasks(orchestrator.tasks)

    if not orchestrator.start():
        print_error("Operation could not start: no runnable tasks")
        return

    gate = orchestrator.gate
    while True:
        if gate.auto_approve:
            state = await orchestrator.wait_for_state(OperationState.PAUSED, OperationState.COMPLETED)
        else:
            state = await orchestrator.wait_for_state(
                OperationState.AWAITING_APPROVAL, OperationState.PAUSED, OperationState.COMPLETED
            )

        if state == OperationState.COMPLETED:
            return

        if state == OperationState.PAUSED:
            if not await _handle_pause(orchestrator):
                return
            continue

        request = gate.pending
        if request is None:
            await asyncio.sleep(0)
            continue

        response = await asyncio.to_thread(gate.prompt, request)
        if response.command:
            await _submit(orchestrator, response.command)
        elif response.result == ApprovalResult.APPROVED:
            orchestrator.approve(request.task_id)
        elif response.result == ApprovalResult.PAUSE:
            orchestrator.pause_for_review()
        else:
            print_tasks(orchestrator.tasks, orchestrator.active_index, title="Current Queue")


async def _handle_pause(orchestrator) -> bool:
    """Prompt while paused. Returns False when the operator aborts."""
    print_tasks(orchestrator.tasks, orchestrator.active_index, title="Operation Paused")
    choice = await asyncio.to_thread(
        Prompt.ask,
        "Resume, command, or abort",
        choices=["r", "c", "a"],
        default="r",
        console=console,
    )
    if choice == "a":
        return False
    if choice == "c":
        command = await asyncio.to_thread(Prompt.ask, "Command", console=console)
        if command:
            await _submit(orchestrator, command)
        return True
    orchestrator.resume()
    return True


async def _submit(orchestrator, command: str) -> None:
    with create_spinner() as progress:
        progress.add_task("Interpreting command...", total=None)
        outcome = await orchestrator.submit_command(command)
    if not outcome.applied:
        print_warning(f"Command {outcome.status.value}: {outcome.error or outcome.reply}")


def _export(orchestrator, path: Path | None) -> None:
    if path is None:
        return
    path.write_text(orchestrator.snapshot().model_dump_json(indent=2))
    print_success(f"Snapshot written to {path}")


@config_app.command("show")
def config_show(
    section: Optional[str] = typer.Argument(
        None,
        help="Config section to show (llm, operation, logging)",
    ),
) -> None:
    """Show current configuration.

    Examples:
        recovery-ops config show
        recovery-ops config show operation
    """
    from settings.config import find_config_file, get_config

    config_path = find_config_file()
    if config_path:
        print_info(f"Config file: {config_path}")
    else:
        print_warning("No config.toml found (using defaults)")

    sections = get_config().to_dict()
    if section:
        if section.lower() not in sections:
            print_error(f"Unknown section: {section}")
            print_info(f"Available: {', '.join(sections)}")
            raise typer.Exit(1)
        sections = {section.lower(): sections[section.lower()]}

    for name, values in sections.items():
        print_config_section(name, values)


@config_app.command("init")
def config_init(
    force: bool = typer.Option(
        False,
        "--force",
        "-f",
        help="Overwrite existing config.toml",
    ),
) -> None:
    """Create a default config.toml file."""
    config_path = Path.cwd() / "config.toml"

    if config_path.exists() and not force:
        print_warning(f"Config file already exists: {config_path}")
        print_info("Use --force to overwrite")
        raise typer.Exit(1)

    config_path.write_text(DEFAULT_CONFIG)
    print_success(f"Created config file: {config_path}")


DEFAULT_CONFIG = """# Recovery Ops Configuration
# Auto-generated by 'recovery-ops config init'

[llm]
# Backend: "auto" | "ollama" | "openai" | "anthropic" | "lmstudio"
backend = "auto"
model = "llama3.1:8b"
base_url = "http://localhost:11434"
timeout = 60
temperature = 0.4

[operation]
task_duration_seconds = 3.0
planner_timeout_seconds = 60.0
command_timeout_seconds = 30.0
log_max_entries = 500
default_location = "Coastal District A"
default_disaster_type = "Flood"
auto_approve = false

[logging]
level = "INFO"
rich_tracebacks = true
"""


@app.command()
def version() -> None:
    """Show Recovery Ops version."""
    from cli.recoveryops import __version__

    console.print(f"Recovery Ops v{__version__}")


def main() -> None:
    """Main entry point for the CLI."""
    app()


if __name__ == "__main__":
    main()
