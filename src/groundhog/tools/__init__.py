"""
Tool registry for Groundhog.

This module defines the tool contract, a registry to look tools up by name, and a decorator to
turn plain functions into tools.  A tool takes a single string input and returns a string; tools
that want structured input additionally implement :class:`ParameterizedTool` and export a JSON
schema for their arguments.
"""

import asyncio
import copy
import inspect
import logging
from abc import (
    ABC,
    abstractmethod,
)
from typing import (
    Any,
    Callable,
    Dict,
    Iterable,
    Iterator,
    List,
    Optional,
)

from groundhog.core.schema import (
    FunctionDefinition,
    ToolContext,
)

logger = logging.getLogger(__name__)

DEFAULT_PARAMETERS: Dict[str, Any] = {
    "type": "object",
    "properties": {"__arg1": {"title": "__arg1", "type": "string"}},
    "required": ["__arg1"],
}
"""Schema given to tools that declare none: one positional string argument."""


class ToolNotFoundError(LookupError):
    """Raised when a tool name is not present in a registry."""

    def __init__(self, name: str) -> None:
        super().__init__(f"tool '{name}' does not exist")
        self.name = name


# ---------------------------------------------------------------------------
# Tool contract
# ---------------------------------------------------------------------------
class Tool(ABC):
    """Base contract every capability implements."""

    name: str = ""
    description: str = ""

    @abstractmethod
    async def invoke(self, ctx: ToolContext, tool_input: str) -> str:
        """Run the tool and return its textual result.  Failures are raised."""


class ParameterizedTool(Tool):
    """A tool that exports a JSON schema for structured arguments."""

    @abstractmethod
    def parameters(self) -> Dict[str, Any]:
        """Return the JSON schema of the tool's argument object."""


class FunctionTool(Tool):
    """Adapts a plain function ``fn(tool_input) -> str`` (sync or async) to :class:`Tool`."""

    def __init__(self, name: str, fn: Callable[[str], Any], description: str | None = None):
        self.name = name
        self.description = inspect.cleandoc(description or fn.__doc__ or "")
        self._fn = fn

    async def invoke(self, ctx: ToolContext, tool_input: str) -> str:
        if inspect.iscoroutinefunction(self._fn):
            result = await self._fn(tool_input)
        else:
            result = await asyncio.to_thread(self._fn, tool_input)
        return str(result)


class StructuredFunctionTool(FunctionTool, ParameterizedTool):
    """A :class:`FunctionTool` whose input is a JSON object described by *schema*."""

    def __init__(
        self,
        name: str,
        fn: Callable[[str], Any],
        schema: Dict[str, Any],
        description: str | None = None,
    ):
        super().__init__(name, fn, description)
        self._schema = schema

    def parameters(self) -> Dict[str, Any]:
        return self._schema


# ---------------------------------------------------------------------------
# Registry
# ---------------------------------------------------------------------------
class ToolRegistry:
    """
    Name -> tool lookup with a stable iteration order.

    The schema of each tool is resolved once when the tool is added: tools implementing
    :class:`ParameterizedTool` contribute their own schema, everything else gets
    :data:`DEFAULT_PARAMETERS`.
    """

    def __init__(self, tools: Iterable[Tool] = ()) -> None:
        self._tools: Dict[str, Tool] = {}
        self._parameters: Dict[str, Dict[str, Any]] = {}
        for tool in tools:
            self.add(tool)

    def add(self, tool: Tool) -> None:
        """Add *tool*; raise ``ValueError`` if its name is taken."""
        if not tool.name:
            raise ValueError("Tool name must not be empty.")
        if tool.name in self._tools:
            raise ValueError(f"Tool '{tool.name}' is already registered.")

        params: Optional[Dict[str, Any]] = None
        if isinstance(tool, ParameterizedTool):
            params = tool.parameters()
        self._tools[tool.name] = tool
        self._parameters[tool.name] = params or DEFAULT_PARAMETERS
        logger.debug("Registered tool '%s'", tool.name)

    def lookup(self, name: str) -> Tool:
        """Return the tool called *name* or raise :class:`ToolNotFoundError`."""
        try:
            return self._tools[name]
        except KeyError:
            raise ToolNotFoundError(name) from None

    def get(self, name: str) -> Tool | None:
        return self._tools.get(name)

    def all(self) -> List[Tool]:
        """All tools in insertion order."""
        return list(self._tools.values())

    def names(self) -> List[str]:
        return list(self._tools)

    def function_definitions(self) -> List[FunctionDefinition]:
        """Describe every tool for the model, in registry order."""
        return [
            FunctionDefinition(
                name=tool.name,
                description=tool.description,
                parameters=copy.deepcopy(self._parameters[tool.name]),
            )
            for tool in self._tools.values()
        ]

    def __contains__(self, name: object) -> bool:
        return name in self._tools

    def __iter__(self) -> Iterator[Tool]:
        return iter(self.all())

    def __len__(self) -> int:
        return len(self._tools)


TOOL_REGISTRY = ToolRegistry()
"""Global registry filled by :func:`register_tool`."""


def register_tool(
    name: str, description: str | None = None, parameters: Dict[str, Any] | None = None
) -> Callable:
    """
    Register a function as a tool with the given name.

    The function receives the normalized tool input as its only argument and returns something
    printable.  It is registered as a decorator, so it can be used like this:

        @register_tool("my_tool")
        def my_tool_function(tool_input):
            # Do something
            return result

    Parameters
    ----------
    name: str
        The name of the tool.  This must be unique within :data:`TOOL_REGISTRY`.
    description: str | None
        Text shown to the model.  Defaults to the function's docstring.
    parameters: dict | None
        JSON schema for structured input.  Without it the tool takes one plain string.

    Returns
    -------
    Callable
        A decorator that registers the function and returns it unchanged.

    Raises
    ------
    ValueError
        If a tool with the same name is already registered.
    """
    if name in TOOL_REGISTRY:
        raise ValueError(f"Tool '{name}' is already registered.")

    def wrapper(fn: Callable) -> Callable:
        tool: FunctionTool
        if parameters is not None:
            tool = StructuredFunctionTool(name, fn, parameters, description)
        else:
            tool = FunctionTool(name, fn, description)
        TOOL_REGISTRY.add(tool)
        return fn

    return wrapper
