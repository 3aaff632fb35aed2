"""Dispatches agent actions to tools in a :class:`ToolRegistry` and wraps errors."""

import logging

from groundhog.core.schema import (
    AgentAction,
    AgentStep,
    ToolContext,
)
from groundhog.tools import (
    ToolNotFoundError,
    ToolRegistry,
)

logger = logging.getLogger(__name__)


class ToolExecutionError(RuntimeError):
    """Raised when a tool invocation fails."""


async def execute_tool(
    registry: ToolRegistry, name: str, tool_input: str, ctx: ToolContext | None = None
) -> str:
    """
    Look up *name* in *registry* and invoke it with *tool_input*.

    Parameters
    ----------
    registry:
        Where to find the tool.
    name:
        The registered tool name.
    tool_input:
        Normalized input string passed verbatim to the tool.
    ctx:
        Per-request values for the tool.  An empty context is used if *None*.

    Returns
    -------
    str
        Whatever the tool returned.

    Raises
    ------
    ToolNotFoundError
        If the tool is missing.
    ToolExecutionError
        If the tool raises or returns something other than a string.  Cancellation is not
        wrapped and propagates as is.
    """
    tool = registry.lookup(name)

    try:
        logger.debug("Executing tool '%s' with input=%r", name, tool_input)
        result = await tool.invoke(ctx or ToolContext(), tool_input)
        if not isinstance(result, str):
            raise TypeError(f"expected a string result, got {type(result).__name__}")
        return result
    except Exception as exc:  # noqa: BLE001
        logger.debug("Tool '%s' raised", name, exc_info=True)
        raise ToolExecutionError(f"Tool '{name}' failed: {exc}") from exc


async def execute_action(
    registry: ToolRegistry, action: AgentAction, ctx: ToolContext | None = None
) -> AgentStep:
    """Run *action* and record what it produced.  Tool errors become the observation."""
    try:
        observation = await execute_tool(registry, action.tool, action.tool_input, ctx)
        logger.info("Tool '%s' returned %d chars", action.tool, len(observation))
    except ToolNotFoundError as exc:
        logger.warning("Model asked for unknown tool '%s'", action.tool)
        observation = str(exc)
    except ToolExecutionError as exc:
        logger.warning("%s", exc)
        observation = str(exc)
    return AgentStep(action=action, observation=observation)
