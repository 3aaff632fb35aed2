"""Assemble the registry of tools the service exposes to the model."""

from groundhog.config import (
    Settings,
    settings,
)
from groundhog.tools import (
    TOOL_REGISTRY,
    ToolRegistry,
)
from groundhog.tools import calculator  # noqa: F401  # pylint: disable=unused-import
from groundhog.tools.notes import (
    NotesReaderTool,
    NotesTool,
)


def build_registry(config: Settings = settings) -> ToolRegistry:
    """Decorator-registered tools first, then the notes tools bound to *config*."""
    return ToolRegistry(
        [
            *TOOL_REGISTRY.all(),
            NotesTool(config.NOTES_DIR, config.MAX_NOTES),
            NotesReaderTool(config.NOTES_DIR),
        ]
    )
