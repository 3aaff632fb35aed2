"""
Schema definitions for model <-> planner <-> agent <-> tool messages.

These data models serve as the contract between the language model backend, the planner, the
execution loop, and individual tools.  We keep them separate from runtime logic so they can be
imported anywhere without side-effects.
"""

from typing import (
    Annotated,
    Any,
    Dict,
    List,
    Literal,
    Optional,
    Union,
)

from pydantic import (
    BaseModel,
    ConfigDict,
    Field,
    SecretStr,
)


# ---------------------------------------------------------------------------
# Model-facing types
# ---------------------------------------------------------------------------
class FunctionCall(BaseModel):
    """A function the model asked to call, with its raw argument text."""

    name: str
    arguments: str = ""


class ToolCall(BaseModel):
    """One structured tool-call request from a model response."""

    id: str = Field(..., description="Call id, unique within one planning round")
    type: Literal["function"] = "function"
    function: FunctionCall


class FunctionDefinition(BaseModel):
    """A tool as the model sees it."""

    name: str
    description: str
    parameters: Dict[str, Any]


class SystemMessage(BaseModel):
    role: Literal["system"] = "system"
    content: str


class HumanMessage(BaseModel):
    role: Literal["human"] = "human"
    content: str


class AIMessage(BaseModel):
    """Assistant turn: either free text or a batch of tool calls (with optional commentary)."""

    role: Literal["ai"] = "ai"
    content: str = ""
    tool_calls: List[ToolCall] = Field(default_factory=list)


class ToolResultMessage(BaseModel):
    role: Literal["tool"] = "tool"
    tool_call_id: str = ""  # empty for legacy function calls
    name: str = ""
    content: str


Message = Annotated[
    Union[SystemMessage, HumanMessage, AIMessage, ToolResultMessage],
    Field(discriminator="role"),
]


class ModelChoice(BaseModel):
    """A single candidate completion."""

    content: str = ""
    tool_calls: List[ToolCall] = Field(default_factory=list)
    function_call: Optional[FunctionCall] = None  # legacy single call, carries no id


class ModelResponse(BaseModel):
    choices: List[ModelChoice] = Field(default_factory=list)


# ---------------------------------------------------------------------------
# Agent-facing types
# ---------------------------------------------------------------------------
class ToolContext(BaseModel):
    """Per-request values handed to every tool invocation of a turn."""

    model_config = ConfigDict(frozen=True)

    session_id: Optional[str] = None
    credential: Optional[SecretStr] = Field(
        None, description="Delegated credential for tools calling third-party APIs"
    )


class AgentAction(BaseModel):
    """A tool invocation decided by the planner."""

    model_config = ConfigDict(frozen=True)

    tool: str
    tool_input: str
    tool_id: str = ""
    log: str = ""
    planning_round: int = Field(0, description="1-based index of the planner call")


class AgentStep(BaseModel):
    """An action together with what came back from dispatching it."""

    model_config = ConfigDict(frozen=True)

    action: AgentAction
    observation: str


class AgentFinish(BaseModel):
    """Terminal planner output for a turn."""

    model_config = ConfigDict(frozen=True)

    output: str
    log: str = ""


class TurnResult(BaseModel):
    """What a completed turn hands back to the caller."""

    output: str
    steps: List[AgentStep] = Field(default_factory=list)
