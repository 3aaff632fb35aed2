"""Fatal errors raised by the agent loop.

Both kinds carry the steps accumulated before the failure so callers can log the trace.
"""

from typing import (
    List,
    Sequence,
)

from groundhog.core.schema import AgentStep


class AgentError(RuntimeError):
    """Base class for errors that abort a turn."""

    def __init__(self, message: str, steps: Sequence[AgentStep] = ()) -> None:
        super().__init__(message)
        self.steps: List[AgentStep] = list(steps)


class PlannerError(AgentError):
    """The model call failed or its response could not be turned into a plan."""


class MaxIterationsExceeded(AgentError):
    """The model did not finish within the allowed number of tool rounds."""

    def __init__(self, max_iterations: int, steps: Sequence[AgentStep] = ()) -> None:
        super().__init__(f"Agent stopped after {max_iterations} iterations", steps)
        self.max_iterations = max_iterations
