"""Terminal helpers shared by the API launcher and the CLI client."""

import sys
from enum import Enum
from typing import Any


class AnsiColors(Enum):
    """ANSI escape codes used for terminal output."""

    RED = "\033[91m"
    GREEN = "\033[92m"
    YELLOW = "\033[33m"
    BLUE = "\033[94m"
    RESET = "\033[0m"


def colorize(text: str, color: AnsiColors) -> str:
    """Wrap *text* in *color*, or leave it alone when stdout is not a terminal."""
    if not sys.stdout.isatty():
        return text
    return f"{color.value}{text}{AnsiColors.RESET.value}"


def colored_print(text: str, color: AnsiColors, *args: Any, **kwargs: Any) -> None:
    """
    Print text in color.

    Args:
        text: The text to print
        color: The color to use (AnsiColors enum)
        args: Additional positional arguments for print
        kwargs: Additional keyword arguments for print
    """
    print(colorize(text, color), *args, **kwargs)
