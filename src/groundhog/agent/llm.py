"""
Language model back-ends.

This module is the only place that *directly* talks to an LLM.  The planner sees a model only
through :class:`ChatModel`, so everything else (agent loop, tools, memory) stays model-agnostic.

Out of the box we support any OpenAI-compatible chat-completions endpoint (OpenAI itself, Groq,
vLLM, ...) through the ``openai`` SDK.  Additional providers can be added by subclassing
:class:`ChatModel` and registering via :func:`register_model`.
"""

import logging
from abc import (
    ABC,
    abstractmethod,
)
from typing import (
    Any,
    Awaitable,
    Callable,
    Dict,
    List,
    Optional,
    Sequence,
    Type,
)

from groundhog.config import (
    Settings,
    settings,
)
from groundhog.core.schema import (
    AIMessage,
    FunctionCall,
    FunctionDefinition,
    HumanMessage,
    Message,
    ModelChoice,
    ModelResponse,
    SystemMessage,
    ToolCall,
    ToolResultMessage,
)

logger = logging.getLogger(__name__)

StreamCallback = Callable[[str], Awaitable[None]]
"""Receives output text chunks as the model produces them."""


# ---------------------------------------------------------------------------
# Registry helpers
# ---------------------------------------------------------------------------
_MODEL_REGISTRY: dict[str, Type["ChatModel"]] = {}


def register_model(name: str) -> Callable:
    """Decorator to register a model class under *name*."""

    def wrapper(cls: Type["ChatModel"]) -> Type["ChatModel"]:
        _MODEL_REGISTRY[name] = cls
        return cls

    return wrapper


def load_model(name: str | None = None, config: Settings = settings) -> "ChatModel":
    """
    Factory that returns an instantiated model back-end.

    Fallback order:
    1. *name* arg
    2. ``MODEL_PROVIDER`` setting
    """
    target = name or config.MODEL_PROVIDER
    cls = _MODEL_REGISTRY.get(target.lower())
    if cls is None:
        raise ValueError(f"Model provider '{target}' is not registered.")
    return cls.from_settings(config)


# ---------------------------------------------------------------------------
# Base class
# ---------------------------------------------------------------------------
class ChatModel(ABC):
    """Abstract chat model that can request function calls."""

    @classmethod
    def from_settings(cls, config: Settings) -> "ChatModel":
        return cls()

    @abstractmethod
    async def generate(
        self,
        messages: Sequence[Message],
        functions: Sequence[FunctionDefinition],
        stream: Optional[StreamCallback] = None,
    ) -> ModelResponse:
        """Run one completion over *messages*, offering *functions* to the model."""


# ---------------------------------------------------------------------------
# OpenAI-compatible back-end
# ---------------------------------------------------------------------------
def to_openai_messages(messages: Sequence[Message]) -> List[Dict[str, Any]]:
    """Convert our message types into chat-completions message dicts."""
    out: List[Dict[str, Any]] = []
    for msg in messages:
        if isinstance(msg, SystemMessage):
            out.append({"role": "system", "content": msg.content})
        elif isinstance(msg, HumanMessage):
            out.append({"role": "user", "content": msg.content})
        elif isinstance(msg, AIMessage):
            entry: Dict[str, Any] = {"role": "assistant", "content": msg.content or None}
            calls = msg.tool_calls
            if len(calls) == 1 and not calls[0].id:
                entry["function_call"] = calls[0].function.model_dump()
            elif calls:
                entry["tool_calls"] = [call.model_dump() for call in calls]
            out.append(entry)
        elif isinstance(msg, ToolResultMessage):
            if msg.tool_call_id:
                out.append(
                    {"role": "tool", "tool_call_id": msg.tool_call_id, "content": msg.content}
                )
            else:
                out.append({"role": "function", "name": msg.name, "content": msg.content})
    return out


def to_openai_tools(functions: Sequence[FunctionDefinition]) -> List[Dict[str, Any]]:
    return [{"type": "function", "function": fn.model_dump()} for fn in functions]


def _choice_from_message(message: Any) -> ModelChoice:
    tool_calls = [
        ToolCall(
            id=call.id,
            function=FunctionCall(name=call.function.name, arguments=call.function.arguments or ""),
        )
        for call in (getattr(message, "tool_calls", None) or [])
    ]
    function_call = None
    legacy = getattr(message, "function_call", None)
    if legacy is not None:
        function_call = FunctionCall(name=legacy.name, arguments=legacy.arguments or "")
    return ModelChoice(
        content=message.content or "", tool_calls=tool_calls, function_call=function_call
    )


@register_model("openai")
class OpenAIChatModel(ChatModel):
    """Chat-completions back-end using the ``openai`` SDK."""

    def __init__(
        self,
        model: str,
        api_key: str | None = None,
        base_url: str | None = None,
        temperature: float = 0.2,
        client: Any = None,
    ) -> None:
        if client is None:
            import openai  # pylint: disable=import-outside-toplevel

            client = openai.AsyncOpenAI(api_key=api_key, base_url=base_url)
        self._client = client
        self.model = model
        self.temperature = temperature

    @classmethod
    def from_settings(cls, config: Settings) -> "OpenAIChatModel":
        return cls(
            model=config.OPENAI_MODEL,
            api_key=config.OPENAI_API_KEY,
            base_url=config.OPENAI_BASE_URL,
            temperature=config.TEMPERATURE,
        )

    async def generate(
        self,
        messages: Sequence[Message],
        functions: Sequence[FunctionDefinition],
        stream: Optional[StreamCallback] = None,
    ) -> ModelResponse:
        kwargs: Dict[str, Any] = {
            "model": self.model,
            "messages": to_openai_messages(messages),
            "temperature": self.temperature,
        }
        if functions:
            kwargs["tools"] = to_openai_tools(functions)
        logger.debug(
            "Calling %s with %d messages, %d tools (stream=%s)",
            self.model,
            len(messages),
            len(functions),
            stream is not None,
        )

        if stream is None:
            resp = await self._client.chat.completions.create(**kwargs)
            return ModelResponse(choices=[_choice_from_message(c.message) for c in resp.choices])

        return await self._generate_streaming(kwargs, stream)

    async def _generate_streaming(
        self, kwargs: Dict[str, Any], stream: StreamCallback
    ) -> ModelResponse:
        """Forward text deltas to *stream* while assembling tool calls and legacy function calls."""
        content: List[str] = []
        calls: Dict[int, Dict[str, str]] = {}
        legacy: Dict[str, str] | None = None
        seen_choice = False

        chunks = await self._client.chat.completions.create(stream=True, **kwargs)
        async for chunk in chunks:
            for choice in chunk.choices:
                if choice.index != 0:
                    continue
                seen_choice = True
                delta = choice.delta
                if delta.content:
                    content.append(delta.content)
                    await stream(delta.content)
                for call in delta.tool_calls or []:
                    acc = calls.setdefault(call.index, {"id": "", "name": "", "arguments": ""})
                    if call.id:
                        acc["id"] = call.id
                    if call.function is not None:
                        acc["name"] += call.function.name or ""
                        acc["arguments"] += call.function.arguments or ""
                function_call = getattr(delta, "function_call", None)
                if function_call is not None:
                    legacy = legacy or {"name": "", "arguments": ""}
                    legacy["name"] += function_call.name or ""
                    legacy["arguments"] += function_call.arguments or ""

        if not seen_choice:
            return ModelResponse()
        tool_calls = [
            ToolCall(
                id=acc["id"], function=FunctionCall(name=acc["name"], arguments=acc["arguments"])
            )
            for _, acc in sorted(calls.items())
        ]
        legacy_call = FunctionCall(**legacy) if legacy is not None else None
        return ModelResponse(
            choices=[
                ModelChoice(
                    content="".join(content), tool_calls=tool_calls, function_call=legacy_call
                )
            ]
        )
