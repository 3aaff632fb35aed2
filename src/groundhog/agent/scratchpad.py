"""Rebuild the model-visible record of the tool calls made so far in a turn."""

from itertools import groupby
from typing import (
    List,
    Sequence,
)

from groundhog.core.schema import (
    AgentStep,
    AIMessage,
    FunctionCall,
    Message,
    ToolCall,
    ToolResultMessage,
)


def construct_scratchpad(steps: Sequence[AgentStep]) -> List[Message]:
    """
    Convert *steps* into alternating AI / tool-result messages.

    Consecutive steps from the same planning round form one batch.  Each batch becomes one
    :class:`AIMessage` holding all of its tool calls, followed by one
    :class:`ToolResultMessage` per call in the same order.  Action logs stay on our side: the
    AI message carries the calls only.
    """
    messages: List[Message] = []
    for _, group in groupby(steps, key=lambda step: step.action.planning_round):
        batch = list(group)
        messages.append(
            AIMessage(
                tool_calls=[
                    ToolCall(
                        id=step.action.tool_id,
                        function=FunctionCall(
                            name=step.action.tool, arguments=step.action.tool_input
                        ),
                    )
                    for step in batch
                ],
            )
        )
        messages.extend(
            ToolResultMessage(
                tool_call_id=step.action.tool_id, name=step.action.tool, content=step.observation
            )
            for step in batch
        )
    return messages
