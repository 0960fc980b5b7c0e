"""Ordered recovery task queue with an active-task pointer."""

import logging

from schemas.recovery_task import RecoveryTask, TaskStatistics, TaskStatus

logger = logging.getLogger(__name__)


class TaskQueue:
    """Ordered sequence of recovery tasks, executed one at a time.

    Insertion order is execution order. ``active_index`` points at the task
    currently being worked on and is ``-1`` until the first task starts.
    The queue is owned by the orchestrator; it never decides *when* to move,
    only *how*.
    """

    def __init__(self, tasks: list[RecoveryTask] | None = None) -> None:
        self._tasks: list[RecoveryTask] = [t.model_copy() for t in tasks or []]
        self.active_index: int = -1

    def __len__(self) -> int:
        return len(self._tasks)

    def __repr__(self) -> str:
        return f"TaskQueue(tasks={len(self._tasks)}, active_index={self.active_index})"

    @property
    def tasks(self) -> list[RecoveryTask]:
        """Deep copy of the tasks, safe to hand to collaborators."""
        return self.snapshot()

    @property
    def active_task(self) -> RecoveryTask | None:
        if 0 <= self.active_index < len(self._tasks):
            return self._tasks[self.active_index]
        return None

    @property
    def is_started(self) -> bool:
        return self.active_index >= 0

    @property
    def is_exhausted(self) -> bool:
        """True once the queue was started and nothing from the active task on is left to run."""
        return self.is_started and self._next_runnable(self.active_index) is None

    def snapshot(self) -> list[RecoveryTask]:
        return [t.model_copy(deep=True) for t in self._tasks]

    def get(self, task_id: str) -> RecoveryTask | None:
        for task in self._tasks:
            if task.id == task_id:
                return task
        return None

    def index_of(self, task_id: str) -> int:
        for i, task in enumerate(self._tasks):
            if task.id == task_id:
                return i
        return -1

    def statistics(self) -> TaskStatistics:
        return TaskStatistics.from_tasks(self._tasks)

    def replace(self, new_tasks: list[RecoveryTask]) -> None:
        """Swap the whole sequence and forget any progress pointer."""
        self._tasks = [t.model_copy(deep=True) for t in new_tasks]
        self.active_index = -1

    def start_first(self) -> bool:
        """Mark the first runnable task in-progress.

        Returns:
            False (and changes nothing) if the queue was already started,
            is empty, or holds only completed tasks.
        """
        if self.active_index != -1:
            logger.warning("start_first called on a started queue (active_index=%d)", self.active_index)
            return False

        index = self._next_runnable(0)
        if index is None:
            return False

        self._tasks[index].status = TaskStatus.IN_PROGRESS
        self.active_index = index
        return True

    def complete_active(self) -> bool:
        """Mark the active task completed."""
        task = self.active_task
        if task is None:
            return False
        task.status = TaskStatus.COMPLETED
        return True

    def advance(self) -> bool:
        """Promote the next runnable task after the active one.

        Tasks a command already completed are skipped rather than regressed.
        When nothing is left, ``active_index`` stays on the last task and no
        task is in progress.

        Returns:
            True if a new task became active, False if the queue is exhausted
            or the active task is not completed yet.
        """
        task = self.active_task
        if task is None or not task.is_completed():
            return False

        index = self._next_runnable(self.active_index + 1)
        if index is None:
            self.active_index = len(self._tasks) - 1
            return False

        self._tasks[index].status = TaskStatus.IN_PROGRESS
        self.active_index = index
        return True

    def merge(
        self,
        external_tasks: list[RecoveryTask],
        shown_tasks: list[RecoveryTask] | None = None,
        running: bool = False,
    ) -> None:
        """Accept an externally rewritten queue as the new contents.

        Once the queue is started, the active task is the first task that is
        not completed. A task a command puts ahead of the running one becomes
        active and the running one goes back to pending; a completed active
        task hands over to the next runnable one. With nothing left to run the
        queue is exhausted.

        Args:
            external_tasks: Queue returned by the command interpreter
            shown_tasks: The queue the interpreter was given. For tasks whose
                status the command left untouched, the current status wins so
                progress made while the command was outstanding survives.
            running: True while the operation holds an active task; that
                task is then kept in progress.
        """
        previous_id = self.active_task.id if self.active_task else None
        shown = {t.id: t.status for t in shown_tasks or []}

        merged: list[RecoveryTask] = []
        for incoming in external_tasks:
            task = incoming.model_copy(deep=True)
            current = self.get(task.id)
            if current is not None and shown.get(task.id) == task.status:
                task.status = current.status
            merged.append(task)
        self._tasks = merged

        if not self._tasks:
            self.active_index = -1
            return

        if self.active_index >= 0:
            first = self._next_runnable(0)
            self.active_index = first if first is not None else len(self._tasks) - 1
            if self.active_task.id != previous_id:
                logger.debug("Merge moved active task from %s to %s", previous_id, self.active_task.id)

        # Only the active task may be in progress
        for i, task in enumerate(self._tasks):
            if task.is_in_progress() and i != self.active_index:
                task.status = TaskStatus.PENDING

        active = self.active_task
        if running and active is not None and active.is_pending():
            active.status = TaskStatus.IN_PROGRESS

    def _next_runnable(self, start: int) -> int | None:
        for i in range(start, len(self._tasks)):
            if not self._tasks[i].is_completed():
                return i
        return None
