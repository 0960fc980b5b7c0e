"""Command Interpreter Agent: applies free-text operator commands to the task queue."""

import json
from typing import Any

from pydantic import ValidationError

from llm_backend import BackendCapacityError
from orchestrator.collaborators import CommandResult
from schemas.recovery_task import RecoveryTask
from utils.json_repair import parse_llm_json

from .base import BaseAgent
from .errors import (
    CapabilityExhaustedError,
    InterpreterError,
    InterpreterTimeoutError,
    MalformedResultError,
)

DEFAULT_REPLY = "Command acknowledged."

SYSTEM_PROMPT = """You are an AI operations commander managing disaster recovery. Field operators speak commands over the radio and you keep the task list in line with them.

Instructions:
1. Analyze the operator command.
2. Update the task list: mark tasks completed, add new tasks, remove tasks, reassign units, reorder, or edit details.
3. Keep every task you do not change exactly as given, including its id and status.
4. New tasks get a new id and status "pending".
5. Generate a short, military-style confirmation reply.

Valid statuses: "pending", "in-progress", "completed".

IMPORTANT: Respond ONLY with valid JSON matching this exact structure:
{
  "updatedTasks": [
    {
      "id": "1",
      "title": "Short task title",
      "description": "What the team does",
      "status": "pending",
      "assignedAgent": "Unit name",
      "estimatedTime": "2 hours"
    }
  ],
  "reply": "Copy. Medical Unit reassigned to Sector 4."
}"""


class CommandInterpreterAgent(BaseAgent):
    """Agent that rewrites the task queue from an operator command.

    Implements the orchestrator's ``CommandInterpreter`` contract through
    ``interpret``. Fields the model leaves out of a known task are carried
    over from the queue it was shown.
    """

    def __init__(
        self,
        llm: Any,
        system_prompt: str | None = None,
        temperature: float = 0.2,
        **kwargs: Any,
    ) -> None:
        super().__init__(
            llm,
            system_prompt=system_prompt,
            temperature=temperature,
            description="Interpret operator commands",
            **kwargs,
        )

    def default_system_prompt(self) -> str:
        return SYSTEM_PROMPT

    def build_prompt(self, transcript: str, tasks: list[RecoveryTask]) -> str:
        current = json.dumps([t.to_wire() for t in tasks], indent=2)
        return (
            f"Current Tasks JSON:\n{current}\n\n"
            f'Operator Command: "{transcript}"\n\n'
            'Return JSON with "updatedTasks" and "reply".'
        )

    async def interpret(self, transcript: str, tasks: list[RecoveryTask]) -> CommandResult:
        """Apply ``transcript`` to ``tasks`` and return the new queue.

        Raises:
            InterpreterTimeoutError: If the backend timed out
            CapabilityExhaustedError: If the model refused for quota or size
            MalformedResultError: If the answer holds no usable task list
            InterpreterError: For any other backend failure
        """
        prompt = self.build_prompt(transcript, tasks)
        try:
            response = await self._achat(prompt, json_mode=True)
        except BackendCapacityError as e:
            raise CapabilityExhaustedError(str(e), original_error=e) from e
        except TimeoutError as e:
            raise InterpreterTimeoutError(getattr(self.llm, "timeout", 0.0), original_error=e) from e
        except (ConnectionError, RuntimeError) as e:
            raise InterpreterError(f"Interpreter backend failed: {e}", retryable=True, original_error=e) from e
        return self.parse_result(response, tasks)

    def parse_result(self, response: str, current_tasks: list[RecoveryTask]) -> CommandResult:
        """Validate a model response against the queue it was shown.

        Raises:
            MalformedResultError: If ``updatedTasks`` is missing, empty or invalid
        """
        data = parse_llm_json(response, default=None)
        if not isinstance(data, dict):
            raise MalformedResultError("Could not parse JSON object from interpreter response")

        items = data.get("updatedTasks")
        if not isinstance(items, list) or not items:
            raise MalformedResultError("Interpreter response has no updatedTasks")

        known = {t.id: t for t in current_tasks}
        next_id = _next_numeric_id(current_tasks, items)

        tasks: list[RecoveryTask] = []
        for item in items:
            if not isinstance(item, dict):
                raise MalformedResultError(f"Task entry is not an object: {item!r}")

            task_id = None if item.get("id") is None else str(item["id"]).strip()
            if task_id in known:
                payload = {**known[task_id].to_wire(), **item, "id": task_id}
            else:
                payload = dict(item)
                if not task_id:
                    payload["id"] = str(next_id)
                    next_id += 1

            try:
                tasks.append(RecoveryTask.model_validate(payload))
            except ValidationError as e:
                raise MalformedResultError(f"Invalid task in interpreter response: {e}", original_error=e) from e

        reply = data.get("reply")
        if not isinstance(reply, str) or not reply.strip():
            reply = DEFAULT_REPLY
        return CommandResult(tasks=tasks, reply=reply.strip())


def _next_numeric_id(current: list[RecoveryTask], items: list[Any]) -> int:
    """First integer id above every numeric id already in use."""
    used = [t.id for t in current]
    used += [str(i.get("id")) for i in items if isinstance(i, dict) and i.get("id") is not None]
    numbers = [int(u) for u in used if u.strip().isdigit()]
    return max(numbers, default=0) + 1
