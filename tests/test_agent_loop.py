"""Tests for the execution loop."""

import asyncio

import pytest
from pydantic import SecretStr

from groundhog.agent.agent_loop import AgentExecutor
from groundhog.core.errors import (
    MaxIterationsExceeded,
    PlannerError,
)
from groundhog.core.schema import (
    ModelResponse,
    ToolContext,
    ToolResultMessage,
)
from groundhog.tools import ToolRegistry
from tests.helpers import (
    RecordingTool,
    ScriptedModel,
    make_planner,
    text_response,
    tool_response,
)


def _executor(
    model: ScriptedModel, registry: ToolRegistry, max_iterations: int = 5
) -> AgentExecutor:
    return AgentExecutor(make_planner(model, registry), registry, max_iterations=max_iterations)


@pytest.mark.asyncio
async def test_direct_answer_without_tools(
    registry: ToolRegistry, calculator_tool: RecordingTool
) -> None:
    model = ScriptedModel([text_response("4")])

    result = await _executor(model, registry).run("what is 2+2?")

    assert result.output == "4"
    assert result.steps == []
    assert calculator_tool.inputs == []
    assert len(model.calls) == 1


@pytest.mark.asyncio
async def test_calculator_round_trip(
    registry: ToolRegistry, calculator_tool: RecordingTool
) -> None:
    model = ScriptedModel(
        [
            tool_response(("call_1", "calculator", '{"__arg1": "2+2"}')),
            text_response("4"),
        ]
    )

    result = await _executor(model, registry).run("what is 2+2?")

    assert result.output == "4"
    assert len(result.steps) == 1
    assert result.steps[0].action.tool == "calculator"
    assert result.steps[0].observation == "4"
    assert calculator_tool.inputs == ["2+2"]

    # The second planning call sees the observation
    second_messages, _ = model.calls[1]
    assert isinstance(second_messages[-1], ToolResultMessage)
    assert second_messages[-1].tool_call_id == "call_1"
    assert second_messages[-1].content == "4"


@pytest.mark.asyncio
async def test_unknown_tool_becomes_observation(registry: ToolRegistry) -> None:
    model = ScriptedModel(
        [
            tool_response(("call_1", "weather", '{"__arg1": "Berlin"}')),
            text_response("I can't check the weather."),
        ]
    )

    result = await _executor(model, registry).run("weather in Berlin?")

    assert result.output == "I can't check the weather."
    assert result.steps[0].observation == "tool 'weather' does not exist"
    second_messages, _ = model.calls[1]
    assert second_messages[-1].content == "tool 'weather' does not exist"


@pytest.mark.asyncio
async def test_always_failing_tool_hits_iteration_cap() -> None:
    broken = RecordingTool("flaky", fail=True)
    registry = ToolRegistry([broken])
    model = ScriptedModel(
        [lambda i: tool_response((f"call_{i}", "flaky", "go"))], repeat=True
    )

    with pytest.raises(MaxIterationsExceeded) as excinfo:
        await _executor(model, registry, max_iterations=3).run("try it")

    assert len(model.calls) == 4
    assert len(broken.inputs) == 3
    assert not isinstance(excinfo.value, PlannerError)
    assert excinfo.value.max_iterations == 3
    assert len(excinfo.value.steps) == 3
    assert all("flaky is broken" in step.observation for step in excinfo.value.steps)


@pytest.mark.parametrize("cap", [0, 1, 2, 5])
@pytest.mark.asyncio
async def test_planning_calls_bounded_by_cap(cap: int, registry: ToolRegistry) -> None:
    model = ScriptedModel(
        [lambda i: tool_response((f"c{i}", "echo", "loop"))], repeat=True
    )

    with pytest.raises(MaxIterationsExceeded):
        await _executor(model, registry, max_iterations=cap).run("loop forever")

    assert len(model.calls) == cap + 1


@pytest.mark.asyncio
async def test_batch_dispatched_in_order(
    registry: ToolRegistry, calculator_tool: RecordingTool
) -> None:
    model = ScriptedModel(
        [
            tool_response(
                ("a", "calculator", '{"__arg1": "1+1"}'),
                ("b", "echo", '{"__arg1": "middle"}'),
                ("c", "calculator", '{"__arg1": "2+2"}'),
            ),
            text_response("done"),
        ]
    )

    result = await _executor(model, registry).run("several things")

    assert [s.action.tool_id for s in result.steps] == ["a", "b", "c"]
    assert [s.observation for s in result.steps] == ["calculator(1+1)", "middle", "4"]
    assert calculator_tool.inputs == ["1+1", "2+2"]

    second_messages, _ = model.calls[1]
    results = [m for m in second_messages if isinstance(m, ToolResultMessage)]
    assert [m.tool_call_id for m in results] == ["a", "b", "c"]


@pytest.mark.asyncio
async def test_planner_error_carries_trace(registry: ToolRegistry) -> None:
    model = ScriptedModel(
        [tool_response(("a", "echo", "first")), ModelResponse(choices=[])]
    )

    with pytest.raises(PlannerError) as excinfo:
        await _executor(model, registry).run("hi")

    assert [s.observation for s in excinfo.value.steps] == ["first"]


@pytest.mark.asyncio
async def test_context_reaches_tools(
    registry: ToolRegistry, calculator_tool: RecordingTool
) -> None:
    model = ScriptedModel([tool_response(("a", "calculator", "2+2")), text_response("4")])
    ctx = ToolContext(session_id="s1", credential=SecretStr("token"))

    await _executor(model, registry).run("2+2", ctx=ctx)

    assert calculator_tool.contexts[0].session_id == "s1"
    assert calculator_tool.contexts[0].credential is not None
    assert calculator_tool.contexts[0].credential.get_secret_value() == "token"


@pytest.mark.asyncio
async def test_history_is_shown_to_the_model(registry: ToolRegistry) -> None:
    model = ScriptedModel([text_response("hello again")])

    await _executor(model, registry).run("hi", history="User: hi\nAssistant: hello")

    messages, _ = model.calls[0]
    assert any("User: hi\nAssistant: hello" in m.content for m in messages)


@pytest.mark.asyncio
async def test_cancellation_stops_the_turn() -> None:
    started = asyncio.Event()
    slow_calls: list[str] = []

    class SlowTool(RecordingTool):
        async def invoke(self, ctx, tool_input):  # type: ignore[override]
            slow_calls.append(tool_input)
            started.set()
            await asyncio.sleep(3600)
            return "never"

    registry = ToolRegistry([SlowTool("slow")])
    model = ScriptedModel(
        [tool_response(("a", "slow", "1"), ("b", "slow", "2")), text_response("unreachable")]
    )
    task = asyncio.create_task(_executor(model, registry).run("go"))
    await started.wait()
    task.cancel()

    with pytest.raises(asyncio.CancelledError):
        await task

    assert slow_calls == ["1"]
    assert len(model.calls) == 1


@pytest.mark.asyncio
async def test_unparseable_deep_arguments_reach_the_tool_verbatim(
    registry: ToolRegistry, calculator_tool: RecordingTool
) -> None:
    raw = '{"x":' + "[" * 100000 + "}"
    model = ScriptedModel([tool_response(("call_1", "calculator", raw)), text_response("done")])

    result = await _executor(model, registry).run("nested")

    assert result.output == "done"
    assert calculator_tool.inputs == [raw]
