"""CLI module for ScanQuell."""

from .commands import (
    run_apply_command,
    run_list_generations_command,
    run_undo_command,
)
from .formatters import (
    JsonFormatter,
    OutputFormatter,
    TextFormatter,
)

__all__ = [
    # Formatters
    "OutputFormatter",
    "TextFormatter",
    "JsonFormatter",
    # Commands
    "run_apply_command",
    "run_undo_command",
    "run_list_generations_command",
]
