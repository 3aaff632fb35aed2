"""Predefined request patterns the user can pick instead of typing a full prompt."""

from typing import (
    Dict,
    List,
)

DEFAULT_PATTERN = "No pattern"
FALLBACK_TEXT = "Please act on the following request."

PATTERNS: Dict[str, str] = {
    DEFAULT_PATTERN: "",
    "Plan Day": "Based on the provided notes, create a detailed plan for my day.",
    "Analyse My Day": "Based on the provided notes, analyze my day and give me feedback.",
    "Summarize Notes": "Summarize the key points from the provided notes in a few sentences.",
    "Identify People": "List all the people mentioned in the provided notes.",
    "Extract Actions": "Extract all action items or tasks from the provided notes.",
}


def pattern_names() -> List[str]:
    """Pattern names with the default first."""
    return [DEFAULT_PATTERN] + [name for name in PATTERNS if name != DEFAULT_PATTERN]


def build_user_input(message: str, pattern: str | None = None, notes_block: str = "") -> str:
    """Combine pattern text, the user's message and pre-loaded notes into one request."""
    pattern = pattern or DEFAULT_PATTERN
    pattern_text = PATTERNS.get(pattern, FALLBACK_TEXT)

    if message and pattern_text:
        user_input = f'{pattern_text}\n\nMy specific focus for this request is: "{message}"'
    else:
        user_input = message or pattern_text

    if notes_block:
        user_input += "\nNotes content: \n" + notes_block
    return user_input
