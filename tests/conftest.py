"""Shared fixtures."""

import pytest

from groundhog.tools import (
    FunctionTool,
    ToolRegistry,
)
from tests.helpers import RecordingTool


@pytest.fixture
def calculator_tool() -> RecordingTool:
    return RecordingTool("calculator", {"2+2": "4"})


@pytest.fixture
def registry(calculator_tool: RecordingTool) -> ToolRegistry:
    return ToolRegistry([calculator_tool, FunctionTool("echo", lambda text: text, "Echo input")])
