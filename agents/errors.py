"""Exceptions raised by the planning and command agents."""


class AgentError(Exception):
    """Base exception for agent errors."""

    def __init__(
        self,
        message: str,
        retryable: bool = False,
        original_error: Exception | None = None,
    ) -> None:
        """Initialize agent error.

        Args:
            message: Error message
            retryable: Whether retrying the same call may succeed
            original_error: Underlying exception, if any
        """
        super().__init__(message)
        self.retryable = retryable
        self.original_error = original_error


class PlannerError(AgentError):
    """The planner could not produce a recovery plan."""


class InterpreterError(AgentError):
    """The command interpreter could not process a command."""


class InterpreterTimeoutError(InterpreterError):
    """Command interpretation took too long."""

    def __init__(self, timeout: float, original_error: Exception | None = None) -> None:
        super().__init__(
            f"Command interpretation timed out after {timeout} seconds",
            retryable=True,
            original_error=original_error,
        )
        self.timeout = timeout


class MalformedResultError(InterpreterError):
    """The interpreter answered, but not with a usable task queue."""


class CapabilityExhaustedError(InterpreterError):
    """The backing model refused the request (quota, rate limit, context size)."""

    def __init__(self, message: str = "Model capacity exhausted", original_error: Exception | None = None) -> None:
        super().__init__(message, retryable=True, original_error=original_error)
