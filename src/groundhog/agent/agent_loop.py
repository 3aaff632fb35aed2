"""Main orchestration loop for Groundhog."""

from __future__ import annotations

import logging
from typing import (
    List,
    Optional,
)

from groundhog.agent.llm import (
    StreamCallback,
    load_model,
)
from groundhog.agent.planner_interface import Planner
from groundhog.agent.tool_executor import execute_action
from groundhog.config import (
    Settings,
    settings,
)
from groundhog.core.errors import MaxIterationsExceeded
from groundhog.core.schema import (
    AgentStep,
    ToolContext,
    TurnResult,
)
from groundhog.tools import ToolRegistry
from groundhog.tools.builtin import build_registry

logger = logging.getLogger(__name__)


# ---------------------------------------------------------------------------
# Agent Loop
# ---------------------------------------------------------------------------
class AgentExecutor:
    """
    Runs one user turn: plan, dispatch the requested tools, feed the results back, repeat.

    The executor holds no per-turn state, so one instance can serve concurrent turns of
    different sessions.  Within a turn everything is sequential: tools of a batch run one after
    another in the order the model asked for them.
    """

    def __init__(
        self,
        planner: Planner,
        registry: ToolRegistry | None = None,
        max_iterations: int | None = None,
    ) -> None:
        self.planner = planner
        self.registry = registry if registry is not None else planner.registry
        if max_iterations is None:
            max_iterations = settings.MAX_ITERATIONS
        self.max_iterations = max_iterations

    async def run(
        self,
        user_input: str,
        ctx: Optional[ToolContext] = None,
        history: str = "",
        stream: Optional[StreamCallback] = None,
    ) -> TurnResult:
        """
        Process *user_input* until the model gives a final answer.

        *history* is the rendered conversation so far; recording the finished turn is up to the
        caller.

        Raises
        ------
        PlannerError
            The model call failed or returned something unusable.
        MaxIterationsExceeded
            More than ``max_iterations`` tool rounds were needed.
        """
        ctx = ctx or ToolContext()
        steps: List[AgentStep] = []
        iterations = 0

        while True:
            actions, finish = await self.planner.plan(steps, user_input, history, stream=stream)

            if finish is not None:
                logger.info("Turn finished after %d tool call(s)", len(steps))
                return TurnResult(output=finish.output, steps=steps)

            # The round that would exceed the cap is planned but not dispatched
            if iterations >= self.max_iterations:
                logger.warning("Giving up after %d iterations", self.max_iterations)
                raise MaxIterationsExceeded(self.max_iterations, steps)

            for action in actions:
                logger.info("Dispatching tool '%s' (id=%s)", action.tool, action.tool_id or "-")
                steps.append(await execute_action(self.registry, action, ctx))
            iterations += 1


def create_executor(config: Settings = settings) -> AgentExecutor:
    """Wire the configured model back-end and the built-in tools into an executor."""
    registry = build_registry(config)
    planner = Planner(load_model(config=config), registry)
    logger.info("Agent ready with tools: %s", ", ".join(registry.names()))
    return AgentExecutor(planner, registry, max_iterations=config.MAX_ITERATIONS)
