"""
Planner for Groundhog.

One call to :meth:`Planner.plan` is one planning round: it shows the model the system prompt,
the chat history, the current request and the tool usage so far in this turn, and turns the
response into either a batch of :class:`AgentAction` or an :class:`AgentFinish`.
"""

import logging
from datetime import date
from typing import (
    List,
    Optional,
    Sequence,
    Set,
    Tuple,
)

from groundhog.agent.arguments import normalize_tool_input
from groundhog.agent.llm import (
    ChatModel,
    StreamCallback,
)
from groundhog.agent.scratchpad import construct_scratchpad
from groundhog.core.errors import PlannerError
from groundhog.core.schema import (
    AgentAction,
    AgentFinish,
    AgentStep,
    FunctionCall,
    FunctionDefinition,
    HumanMessage,
    Message,
    ModelResponse,
    SystemMessage,
)
from groundhog.tools import ToolRegistry

logger = logging.getLogger(__name__)

SYSTEM_PROMPT = """\
You are the Groundhog assistant. Today is {today}. Help users manage schedules, tasks and notes \
using the provided tools. Default to tool use whenever information must be fetched, created, or \
updated instead of inventing details. Keep answers brief and actionable. When asked to edit an \
existing item, first obtain its id via the listing tools before attempting any update.\
"""

PlanResult = Tuple[List[AgentAction], Optional[AgentFinish]]


def default_system_prompt(today: date | None = None) -> str:
    today = today or date.today()
    return SYSTEM_PROMPT.format(today=f"{today:%A %b} {today.day}, {today.year}")


def _action_log(name: str, tool_input: str, content: str) -> str:
    log = f"Invoking: {name} with {tool_input}"
    if content:
        log += f" responded: {content}"
    return log


def _fresh_id(planning_round: int, index: int, used: Set[str]) -> str:
    call_id = f"call_{planning_round}_{index}"
    suffix = 0
    while call_id in used:
        suffix += 1
        call_id = f"call_{planning_round}_{index}_{suffix}"
    return call_id


class Planner:
    """Asks the model what to do next."""

    def __init__(
        self, model: ChatModel, registry: ToolRegistry, system_prompt: str | None = None
    ) -> None:
        self.model = model
        self.registry = registry
        self.system_prompt = system_prompt

    def functions(self) -> List[FunctionDefinition]:
        return self.registry.function_definitions()

    def build_messages(
        self, steps: Sequence[AgentStep], user_input: str, history: str = ""
    ) -> List[Message]:
        """System prompt, history as one text block, the request, then the scratchpad."""
        messages: List[Message] = [
            SystemMessage(content=self.system_prompt or default_system_prompt())
        ]
        if history:
            # Kept as text rather than structured turns
            messages.append(SystemMessage(content=f"Chat history:\n{history}"))
        messages.append(HumanMessage(content=user_input))
        messages.extend(construct_scratchpad(steps))
        return messages

    async def plan(
        self,
        steps: Sequence[AgentStep],
        user_input: str,
        history: str = "",
        stream: Optional[StreamCallback] = None,
    ) -> PlanResult:
        """
        Run one planning round.

        Returns
        -------
        (actions, finish)
            Exactly one of them is non-empty.

        Raises
        ------
        PlannerError
            If the model call fails or the response holds neither tool calls nor text.
        """
        planning_round = steps[-1].action.planning_round + 1 if steps else 1
        messages = self.build_messages(steps, user_input, history)

        try:
            response = await self.model.generate(messages, self.functions(), stream=stream)
        except Exception as exc:  # pylint: disable=broad-except
            logger.error("Model call failed: %s", exc)
            raise PlannerError(f"Model call failed: {exc}", steps) from exc

        return self.parse_output(response, planning_round, steps)

    def parse_output(
        self,
        response: ModelResponse,
        planning_round: int = 1,
        steps: Sequence[AgentStep] = (),
    ) -> PlanResult:
        """Translate a model response into actions or a finish."""
        if not response.choices:
            raise PlannerError("no choices in response", steps)
        choice = response.choices[0]

        if choice.tool_calls:
            used_ids: Set[str] = {step.action.tool_id for step in steps if step.action.tool_id}
            calls: List[Tuple[str, FunctionCall]] = []
            for i, call in enumerate(choice.tool_calls):
                call_id = call.id
                if not call_id or call_id in used_ids:
                    # The scratchpad replays our ids, so a replacement stays consistent
                    call_id = _fresh_id(planning_round, i, used_ids)
                    logger.debug("Replaced tool call id %r with %r", call.id, call_id)
                used_ids.add(call_id)
                calls.append((call_id, call.function))

            normalized = [(cid, fn, normalize_tool_input(fn.arguments)) for cid, fn in calls]
            # Every action of the round shares the same log text
            log = "\n".join(_action_log(fn.name, arg, "") for _, fn, arg in normalized)
            if choice.content:
                log += f" responded: {choice.content}"
            actions = [
                AgentAction(
                    tool=fn.name,
                    tool_input=arg,
                    tool_id=cid,
                    log=log,
                    planning_round=planning_round,
                )
                for cid, fn, arg in normalized
            ]
            logger.debug("Model requested tools: %s", [a.tool for a in actions])
            return actions, None

        if choice.function_call is not None:
            fn = choice.function_call
            tool_input = normalize_tool_input(fn.arguments)
            logger.debug("Model requested legacy function call: %s", fn.name)
            return [
                AgentAction(
                    tool=fn.name,
                    tool_input=tool_input,
                    tool_id="",
                    log=_action_log(fn.name, tool_input, choice.content),
                    planning_round=planning_round,
                )
            ], None

        if not choice.content.strip():
            raise PlannerError("model returned neither tool calls nor text", steps)
        return [], AgentFinish(output=choice.content, log=choice.content)
