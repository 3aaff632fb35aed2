"""Test doubles: a scripted model back-end and a recording tool."""

from typing import (
    Callable,
    List,
    Optional,
    Sequence,
    Tuple,
    Union,
)

from groundhog.agent.llm import (
    ChatModel,
    StreamCallback,
)
from groundhog.agent.planner_interface import Planner
from groundhog.core.schema import (
    FunctionCall,
    FunctionDefinition,
    Message,
    ModelChoice,
    ModelResponse,
    ToolCall,
    ToolContext,
)
from groundhog.tools import (
    Tool,
    ToolRegistry,
)

Script = Union[ModelResponse, Callable[[int], ModelResponse]]


def text_response(text: str) -> ModelResponse:
    return ModelResponse(choices=[ModelChoice(content=text)])


def tool_response(*calls: Tuple[str, str, str], content: str = "") -> ModelResponse:
    """Build a response from ``(call_id, tool_name, raw_arguments)`` triples."""
    return ModelResponse(
        choices=[
            ModelChoice(
                content=content,
                tool_calls=[
                    ToolCall(id=cid, function=FunctionCall(name=name, arguments=args))
                    for cid, name, args in calls
                ],
            )
        ]
    )


class ScriptedModel(ChatModel):
    """
    Replays canned responses in order and records what it was asked.

    A callable entry is called with the 0-based index of the model call; when *repeat* is set
    the last entry is reused once the script runs out.
    """

    def __init__(self, script: Sequence[Script], repeat: bool = False) -> None:
        self.script = list(script)
        self.repeat = repeat
        self.calls: List[Tuple[List[Message], List[FunctionDefinition]]] = []

    async def generate(
        self,
        messages: Sequence[Message],
        functions: Sequence[FunctionDefinition],
        stream: Optional[StreamCallback] = None,
    ) -> ModelResponse:
        index = len(self.calls)
        self.calls.append((list(messages), list(functions)))
        if index < len(self.script):
            entry = self.script[index]
        elif self.repeat and self.script:
            entry = self.script[-1]
        else:
            raise AssertionError(f"unexpected model call #{index + 1}")

        response = entry(index) if callable(entry) else entry
        if stream is not None and response.choices and response.choices[0].content:
            await stream(response.choices[0].content)
        return response


class RecordingTool(Tool):
    """Answers from a fixed mapping and remembers every input it saw."""

    def __init__(self, name: str, answers: dict | None = None, fail: bool = False) -> None:
        self.name = name
        self.description = f"{name} test tool"
        self.answers = answers or {}
        self.fail = fail
        self.inputs: List[str] = []
        self.contexts: List[ToolContext] = []

    async def invoke(self, ctx: ToolContext, tool_input: str) -> str:
        self.inputs.append(tool_input)
        self.contexts.append(ctx)
        if self.fail:
            raise RuntimeError(f"{self.name} is broken")
        return self.answers.get(tool_input, f"{self.name}({tool_input})")


def make_planner(model: ChatModel, registry: ToolRegistry) -> Planner:
    return Planner(model, registry, system_prompt="You are a test assistant.")
