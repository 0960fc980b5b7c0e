"""Agents module for recovery operations.

Provides the LLM-backed collaborators of the orchestrator:
- RecoveryPlannerAgent: Generate an ordered recovery plan for a scenario
- CommandInterpreterAgent: Rewrite the task queue from operator commands
"""

from .base import BaseAgent, LLMProtocol
from .command_interpreter_agent import CommandInterpreterAgent
from .errors import (
    AgentError,
    CapabilityExhaustedError,
    InterpreterError,
    InterpreterTimeoutError,
    MalformedResultError,
    PlannerError,
)
from .recovery_planner_agent import RecoveryPlannerAgent

__all__ = [
    # Base
    "BaseAgent",
    "LLMProtocol",
    # Agents
    "RecoveryPlannerAgent",
    "CommandInterpreterAgent",
    # Errors
    "AgentError",
    "PlannerError",
    "InterpreterError",
    "InterpreterTimeoutError",
    "MalformedResultError",
    "CapabilityExhaustedError",
]
