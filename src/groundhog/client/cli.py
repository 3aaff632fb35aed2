"""CLI client for the Groundhog API."""

from __future__ import annotations

import logging
import time
from typing import (
    Any,
    Dict,
    Tuple,
    cast,
)

import httpx

from groundhog.common import (
    AnsiColors,
    colored_print,
)
from groundhog.config import settings
from groundhog.core.patterns import DEFAULT_PATTERN

logger = logging.getLogger(__name__)

HELP_TEXT = """\
Commands:
  :patterns         list request patterns
  :pattern <name>   use a pattern for the next messages (":pattern" alone resets it)
  exit | quit       leave the shell"""


# ---------------------------------------------------------------------------
# CLI Client
# ---------------------------------------------------------------------------
def get_user_message() -> Tuple[str, bool]:
    """
    Get a message from the user via standard input.

    Returns:
        Tuple of (user_input, success_flag)
        The success_flag is False if input couldn't be read (e.g., Ctrl+C)
    """
    try:
        return input().strip(), True
    except (EOFError, KeyboardInterrupt):
        return "", False


def call_api(
    method: str, endpoint: str, data: Dict[str, Any] | None = None, max_retries: int = 5
) -> Any:
    """Call the API and return the decoded JSON, retrying while the server is starting."""
    api_url = f"http://localhost:{settings.API_PORT}{endpoint}"

    for attempt in range(max_retries):
        try:
            with httpx.Client(timeout=settings.TURN_TIMEOUT + 10) as client:
                response = client.request(method, api_url, json=data)
                response.raise_for_status()
                return response.json()
        except httpx.ConnectError:
            if attempt == max_retries - 1:
                break
            retry_delay = 0.5 * (2**attempt)  # exponential backoff: 0.5s, 1s, 2s, 4s...
            logger.info(
                "API not ready yet, retrying in %.1f seconds (attempt %d/%d)...",
                retry_delay,
                attempt + 1,
                max_retries,
            )
            time.sleep(retry_delay)
        except httpx.HTTPStatusError as exc:
            detail = exc.response.text
            try:
                detail = exc.response.json().get("detail", detail)
            except ValueError:
                pass
            colored_print(f"API error: {detail}", AnsiColors.RED)
            return {}
        except httpx.HTTPError as exc:
            logger.error("API request error: %s", exc)
            colored_print(f"Error connecting to API: {exc}", AnsiColors.RED)
            return {}

    colored_print(f"Failed to connect to API after {max_retries} attempts", AnsiColors.RED)
    return {}


def run_cli() -> None:
    """Run the CLI client that communicates with the API."""
    session_id = cast(Dict[str, Any], call_api("POST", "/sessions")).get("session_id")
    if not session_id:
        colored_print("⚠️ Failed to create a session", AnsiColors.RED)
        return

    pattern = DEFAULT_PATTERN
    colored_print(
        "\n🦫 Groundhog shell - type ':help' for commands, 'exit' to quit", AnsiColors.GREEN
    )
    while True:
        colored_print("\n🧑 You: ", AnsiColors.BLUE, end="")
        user_msg, ok = get_user_message()
        if not ok or user_msg.lower() in {"exit", "quit"}:
            break

        if user_msg == ":help":
            print(HELP_TEXT)
            continue
        if user_msg == ":patterns":
            for name in call_api("GET", "/patterns") or []:
                colored_print(f"  {name}", AnsiColors.GREEN)
            continue
        if user_msg.startswith(":pattern"):
            pattern = user_msg[len(":pattern") :].strip() or DEFAULT_PATTERN
            colored_print(f"Pattern: {pattern}", AnsiColors.GREEN)
            continue

        response = call_api(
            "POST", "/agent", {"message": user_msg, "pattern": pattern, "session_id": session_id}
        )
        for step in response.get("steps", []):
            action = step["action"]
            colored_print(f"[{action['tool']}] {step['observation']}", AnsiColors.GREEN)

        colored_print(response.get("reply", "No response from API"), AnsiColors.YELLOW)


if __name__ == "__main__":
    run_cli()
