"""Tests for the recovery-ops CLI."""

import json

import pytest
from conftest import ScriptedLLM
from typer.testing import CliRunner

import settings.config
from cli.recoveryops import __version__
from cli.recoveryops.cli import app

runner = CliRunner()


@pytest.fixture(autouse=True)
def isolated(tmp_path, monkeypatch):
    """Run every command from an empty directory with fresh settings."""
    monkeypatch.chdir(tmp_path)
    monkeypatch.setattr(settings.config, "_config", None)
    monkeypatch.setattr("cli.recoveryops.cli.setup_logging", lambda *args, **kwargs: None)
    for name in ("LLM_BACKEND", "LLM_MODEL", "TASK_DURATION_SECONDS", "LOG_LEVEL"):
        monkeypatch.delenv(name, raising=False)
    return tmp_path


def test_version():
    result = runner.invoke(app, ["version"])
    assert result.exit_code == 0
    assert __version__ in result.output


def test_config_show_defaults():
    result = runner.invoke(app, ["config", "show"])
    assert result.exit_code == 0
    assert "No config.toml found" in result.output
    assert "task_duration_seconds" in result.output


def test_config_show_unknown_section():
    result = runner.invoke(app, ["config", "show", "weather"])
    assert result.exit_code == 1
    assert "Unknown section" in result.output


def test_config_init(isolated):
    result = runner.invoke(app, ["config", "init"])
    assert result.exit_code == 0
    assert (isolated / "config.toml").exists()

    again = runner.invoke(app, ["config", "init"])
    assert again.exit_code == 1

    forced = runner.invoke(app, ["config", "init", "--force"])
    assert forced.exit_code == 0


def test_generated_config_loads(isolated):
    runner.invoke(app, ["config", "init"])
    config = settings.config.load_config(isolated / "config.toml")
    assert config == settings.config.Config()


def _plan_response() -> str:
    tasks = [
        {"id": str(i), "title": f"Phase {i}", "description": "", "assignedAgent": "Logistics", "estimatedTime": "1 hour"}
        for i in range(1, 6)
    ]
    return json.dumps({"tasks": tasks})


def test_plan(monkeypatch):
    llm = ScriptedLLM(_plan_response())
    monkeypatch.setattr("llm_backend.get_backend", lambda kind, **kwargs: llm)

    result = runner.invoke(app, ["plan", "--type", "Earthquake", "--location", "Sector 7", "--backend", "ollama"])

    assert result.exit_code == 0
    assert "Phase 5" in result.output
    assert "Plan generated with 5 operational phases." in result.output


def test_plan_falls_back_when_backend_fails(monkeypatch):
    llm = ScriptedLLM(error=ConnectionError("connection refused"))
    monkeypatch.setattr("llm_backend.get_backend", lambda kind, **kwargs: llm)

    result = runner.invoke(app, ["plan", "--backend", "ollama"])

    assert result.exit_code == 0
    assert "Degraded" in result.output
    assert "Medical Triage" in result.output


def test_plan_unknown_backend():
    result = runner.invoke(app, ["plan", "--backend", "carrier-pigeon"])
    assert result.exit_code == 1
    assert "Failed to initialize LLM backend" in result.output


def test_run_auto_approve_exports_snapshot(monkeypatch, isolated):
    llm = ScriptedLLM(_plan_response())
    monkeypatch.setattr("llm_backend.get_backend", lambda kind, **kwargs: llm)
    export = isolated / "operation.json"

    result = runner.invoke(
        app,
        ["run", "--backend", "ollama", "--auto-approve", "--task-duration", "0.01", "--export", str(export)],
    )

    assert result.exit_code == 0
    assert "All recovery operations completed successfully." in result.output
    snapshot = json.loads(export.read_text())
    assert snapshot["state"] == "COMPLETED"
    assert all(t["status"] == "completed" for t in snapshot["tasks"])
