"""
Notes tools.

Notes are plain files in a single directory whose names start with a date, e.g.
``2024-05-01.md``.  :class:`NotesTool` returns the most recent ones, :class:`NotesReaderTool`
reads a single file by name.  The helpers are also used to pre-load notes into a request.
"""

import asyncio
import logging
import re
from dataclasses import dataclass
from datetime import (
    date,
    datetime,
)
from pathlib import Path
from typing import List

from groundhog.core.schema import ToolContext
from groundhog.tools import Tool

logger = logging.getLogger(__name__)

DEFAULT_MAX_NOTES = 5

_DATE_RE = re.compile(r"^(\d{4}-\d{2}-\d{2})")
_NUMBER_RE = re.compile(r"\d+")


class NotesError(RuntimeError):
    """Raised when the notes directory or a note cannot be read."""


@dataclass(frozen=True)
class DatedNote:
    path: Path
    day: date


def get_last_notes(notes_dir: str | Path, amount: int = DEFAULT_MAX_NOTES) -> List[DatedNote]:
    """Return up to *amount* dated notes from *notes_dir*, oldest first."""
    if amount <= 0:
        amount = DEFAULT_MAX_NOTES

    directory = Path(notes_dir)
    if not directory.is_dir():
        raise NotesError(f"Couldn't read notes directory '{directory}'")

    notes: List[DatedNote] = []
    for entry in directory.iterdir():
        match = _DATE_RE.match(entry.name)
        if not match or not entry.is_file():
            continue
        try:
            day = datetime.strptime(match.group(1), "%Y-%m-%d").date()
        except ValueError:
            logger.debug("Skipping '%s': not a valid date", entry.name)
            continue
        notes.append(DatedNote(path=entry.resolve(), day=day))

    notes.sort(key=lambda note: note.day)
    return notes[-amount:]


def format_notes(notes: List[DatedNote]) -> str:
    """Render notes as one text block for the model."""
    parts: List[str] = []
    for i, note in enumerate(notes, start=1):
        try:
            content = note.path.read_text(encoding="utf-8")
        except OSError as exc:
            logger.warning("Couldn't read note file %s: %s", note.path, exc)
            continue
        parts.append(f"\nNote {i} ({note.day.isoformat()})\n{content}\n")
    return "".join(parts)


def parse_amount(tool_input: str) -> int:
    """Extract the first positive integer from *tool_input*, or 0."""
    match = _NUMBER_RE.search(tool_input.strip())
    if match:
        return int(match.group(0))
    return 0


class NotesTool(Tool):
    """Recent dated notes from the user's notes directory."""

    name = "notes"

    def __init__(self, notes_dir: str | Path, max_entries: int = DEFAULT_MAX_NOTES) -> None:
        self.notes_dir = Path(notes_dir)
        self.max_entries = max_entries if max_entries > 0 else DEFAULT_MAX_NOTES
        self.description = (
            "Fetch the most recent dated notes from the user's notes directory "
            f"(default: {self.max_entries}). Optionally pass an integer in the input to choose "
            "how many notes to return."
        )

    def _read(self, tool_input: str) -> str:
        amount = parse_amount(tool_input) or self.max_entries
        notes = get_last_notes(self.notes_dir, amount)
        if not notes:
            return "No notes found."
        return format_notes(notes)

    async def invoke(self, ctx: ToolContext, tool_input: str) -> str:
        return await asyncio.to_thread(self._read, tool_input)


class NotesReaderTool(Tool):
    """Read one note file by its exact filename."""

    name = "notes_reader"
    description = (
        "Use this tool to read the content of a specific note file from the notes directory. "
        'The input should be the exact filename of the note, e.g. "2024-05-01.md".'
    )

    def __init__(self, notes_dir: str | Path) -> None:
        self.notes_dir = Path(notes_dir)

    def _read(self, filename: str) -> str:
        filename = filename.strip().strip("\"'")
        if not filename or Path(filename).name != filename or filename in {".", ".."}:
            raise NotesError("invalid filename provided; please provide only the filename")

        path = self.notes_dir / filename
        if not path.is_file():
            try:
                available = sorted(p.name for p in self.notes_dir.iterdir() if p.is_file())
            except OSError:
                return f"File '{filename}' not found."
            listing = "".join(f"- {name}\n" for name in available)
            return f"File '{filename}' not found. Available files are:\n{listing}"

        try:
            return path.read_text(encoding="utf-8")
        except OSError as exc:
            raise NotesError(f"error reading file '{filename}': {exc}") from exc

    async def invoke(self, ctx: ToolContext, tool_input: str) -> str:
        return await asyncio.to_thread(self._read, tool_input)
