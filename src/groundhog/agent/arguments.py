"""Turn the model's raw tool-argument text into the string a tool receives."""

import json
from typing import Any

POSITIONAL_ARG = "__arg1"


def canonical_json(value: Any) -> str:
    """Stable JSON text: sorted keys, no insignificant whitespace."""
    return json.dumps(value, sort_keys=True, separators=(",", ":"), ensure_ascii=False)


def normalize_tool_input(raw: str) -> str:
    """
    Normalize a tool-call argument payload.

    - blank input gives ``""``
    - anything that is not a JSON object passes through (trimmed)
    - ``{"__arg1": v}`` gives ``v`` itself, for tools taking one plain string
    - any other object is re-serialized as canonical JSON

    Never raises.
    """
    trimmed = raw.strip() if raw else ""
    if not trimmed:
        return ""

    # Deeply nested payloads overflow the decoder and the encoder alike
    try:
        parsed = json.loads(trimmed)
        if not isinstance(parsed, dict):
            return trimmed
        if list(parsed) == [POSITIONAL_ARG]:
            value = parsed[POSITIONAL_ARG]
            return value if isinstance(value, str) else canonical_json(value)
        return canonical_json(parsed)
    except (ValueError, RecursionError):
        return trimmed
