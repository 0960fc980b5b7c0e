"""Recovery Planner Agent: turns a disaster scenario into an ordered task plan."""

import json
from typing import Any

from pydantic import ValidationError

from llm_backend import BackendCapacityError
from schemas.recovery_task import DisasterType, RecoveryTask, TaskStatus
from utils.json_repair import parse_llm_json

from .base import BaseAgent
from .errors import PlannerError

SYSTEM_PROMPT = """You are a disaster recovery operations planner. Given a disaster type and a location, you produce the task plan a field response team executes in order.

Each task must be:
1. **Specific**: one concrete action for one unit (e.g. "Deploy water purification units to shelters")
2. **Assigned**: name the unit doing the work (Recon Unit, Medical Unit, Engineering Corps, Logistics, Comms Team, Search & Rescue)
3. **Estimated**: a short duration label such as "2 hours" or "30 mins"
4. **Ordered**: list tasks in the order they should be executed

IMPORTANT: Respond ONLY with valid JSON matching this exact structure:
{
  "tasks": [
    {
      "id": "1",
      "title": "Short task title",
      "description": "What the team does and where",
      "assignedAgent": "Unit name",
      "estimatedTime": "2 hours"
    }
  ]
}"""

MIN_TASKS = 5
MAX_TASKS = 7


class RecoveryPlannerAgent(BaseAgent):
    """Agent for generating recovery operation plans.

    Implements the orchestrator's ``Planner`` contract through ``generate``.
    Every returned task is pending regardless of what the model said.
    """

    def __init__(
        self,
        llm: Any,
        system_prompt: str | None = None,
        temperature: float = 0.4,
        **kwargs: Any,
    ) -> None:
        """Initialize RecoveryPlannerAgent.

        Args:
            llm: LLM backend for inference
            system_prompt: Override the default system prompt
            temperature: Sampling temperature
        """
        super().__init__(
            llm,
            system_prompt=system_prompt,
            temperature=temperature,
            description="Generate recovery plans",
            **kwargs,
        )

    def default_system_prompt(self) -> str:
        return SYSTEM_PROMPT

    def build_prompt(self, disaster_type: DisasterType, location: str) -> str:
        return (
            f"Create a detailed recovery operation plan for a {disaster_type.value} in {location}.\n"
            f"Generate {MIN_TASKS}-{MAX_TASKS} specific, actionable tasks for a response team.\n\n"
            "Remember to respond with ONLY valid JSON matching the required structure."
        )

    async def generate(self, disaster_type: DisasterType, location: str) -> list[RecoveryTask]:
        """Produce a plan for the scenario.

        Raises:
            PlannerError: If the model fails or answers with no usable task
        """
        prompt = self.build_prompt(disaster_type, location)
        try:
            response = await self._achat(prompt, json_mode=True)
        except BackendCapacityError as e:
            raise PlannerError(f"Model capacity exhausted: {e}", retryable=True, original_error=e) from e
        except (ConnectionError, TimeoutError, RuntimeError) as e:
            raise PlannerError(f"Planner backend failed: {e}", retryable=True, original_error=e) from e
        return self.parse_plan(response)

    def parse_plan(self, response: str) -> list[RecoveryTask]:
        """Validate a model response into pending tasks.

        Accepts either ``{"tasks": [...]}`` or a bare array. Items that do not
        validate are dropped. Ids are renumbered 1..n when any is missing or
        repeated.

        Raises:
            PlannerError: If no task survives validation
        """
        data = parse_llm_json(response, default=None)
        if isinstance(data, dict):
            data = data.get("tasks")
        if not isinstance(data, list):
            raise PlannerError("Could not parse a task list from planner response")

        items = [item for item in data if isinstance(item, dict)]
        ids = ["" if item.get("id") is None else str(item["id"]).strip() for item in items]
        renumber = any(not i for i in ids) or len(set(ids)) != len(ids)

        tasks: list[RecoveryTask] = []
        for item in items:
            payload = {**item, "status": TaskStatus.PENDING}
            payload["id"] = str(len(tasks) + 1) if renumber else payload.get("id")
            try:
                tasks.append(RecoveryTask.model_validate(payload))
            except ValidationError as e:
                self.logger.warning("Dropping invalid plan item %s: %s", json.dumps(item)[:200], e.errors()[0]["msg"])

        if not tasks:
            raise PlannerError("Planner response contained no valid tasks")
        if not MIN_TASKS <= len(tasks) <= MAX_TASKS:
            self.logger.info("Planner returned %d tasks (asked for %d-%d)", len(tasks), MIN_TASKS, MAX_TASKS)
        return tasks
