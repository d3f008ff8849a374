"""Output formatters for CLI output.

This module renders apply and undo reports and the generation list
as text (with optional colors) or JSON.
"""

import json
import sys
from abc import ABC, abstractmethod
from typing import Any

from scanquell.actions import NOT_UNDOABLE_NOTICE
from scanquell.core.models import (
    ApplyReport,
    OutcomeStatus,
    ResourceOutcome,
    UndoReport,
)
from scanquell.core.snapshot import GenerationInfo


# ANSI color codes for terminal output
class Colors:
    """ANSI color codes for terminal output."""

    RESET = "\033[0m"
    BOLD = "\033[1m"
    DIM = "\033[2m"

    SUCCESS = "\033[92m"  # Green
    FAILURE = "\033[91m"  # Red
    WARNING = "\033[93m"  # Yellow
    INFO = "\033[94m"     # Blue

    @classmethod
    def is_supported(cls) -> bool:
        """Check if terminal supports colors."""
        return hasattr(sys.stdout, "isatty") and sys.stdout.isatty()


def colorize(text: str, color: str, force: bool = False) -> str:
    """Apply color to text if supported.

    Args:
        text: Text to colorize
        color: ANSI color code
        force: Force color even if not supported

    Returns:
        Colored text or plain text
    """
    if force or Colors.is_supported():
        return f"{color}{text}{Colors.RESET}"
    return text


def get_status_color(status: OutcomeStatus) -> str:
    """Get color for an outcome status."""
    color_map = {
        OutcomeStatus.SUCCESS: Colors.SUCCESS,
        OutcomeStatus.FAILED: Colors.FAILURE,
        OutcomeStatus.SKIPPED: Colors.DIM,
    }
    return color_map.get(status, Colors.RESET)


class OutputFormatter(ABC):
    """Abstract base class for output formatters."""

    @abstractmethod
    def format_apply_report(self, report: ApplyReport) -> str:
        """Format an apply report."""
        pass

    @abstractmethod
    def format_undo_report(self, report: UndoReport) -> str:
        """Format an undo report."""
        pass

    @abstractmethod
    def format_generation_list(self, generations: list[GenerationInfo]) -> str:
        """Format the list of retained generations."""
        pass


class TextFormatter(OutputFormatter):
    """Plain text formatter with optional colors."""

    def __init__(self, use_colors: bool = True, verbose: bool = False):
        """Initialize the text formatter.

        Args:
            use_colors: Whether to use ANSI colors
            verbose: Whether to list skipped steps too
        """
        self.use_colors = use_colors and Colors.is_supported()
        self.verbose = verbose

    def _colorize(self, text: str, color: str) -> str:
        """Apply color if enabled."""
        if self.use_colors:
            return colorize(text, color, force=True)
        return text

    def format_outcome(self, outcome: ResourceOutcome) -> str:
        """Format one outcome line."""
        status = self._colorize(f"{outcome.status.value:<7}", get_status_color(outcome.status))
        line = f"  [{status}] {outcome.resource}"
        if outcome.message:
            line += f" - {outcome.message}"
        return line

    def _format_outcomes(self, outcomes: list[ResourceOutcome]) -> list[str]:
        lines: list[str] = []
        current_operation = None
        for outcome in outcomes:
            if outcome.status == OutcomeStatus.SKIPPED and not self.verbose:
                continue
            if outcome.operation != current_operation:
                current_operation = outcome.operation
                lines.append(self._colorize(current_operation, Colors.BOLD))
            lines.append(self.format_outcome(outcome))
        return lines

    def _format_summary(self, outcomes: list[ResourceOutcome]) -> str:
        counts = {status: 0 for status in OutcomeStatus}
        for outcome in outcomes:
            counts[outcome.status] += 1
        return (
            f"Succeeded: {self._colorize(str(counts[OutcomeStatus.SUCCESS]), Colors.SUCCESS)}  "
            f"Failed: {self._colorize(str(counts[OutcomeStatus.FAILED]), Colors.FAILURE)}  "
            f"Skipped: {counts[OutcomeStatus.SKIPPED]}"
        )

    def format_apply_report(self, report: ApplyReport) -> str:
        """Format an apply report."""
        title = "Apply"
        if report.dry_run:
            title += " (dry run)"
        lines = [self._colorize(f"{title}: snapshot generation {report.generation}", Colors.BOLD), ""]
        lines.extend(self._format_outcomes(report.outcomes))
        lines.append("")
        lines.append(self._format_summary(report.outcomes))

        if report.cache_files_deleted is not None:
            lines.append(f"Cache files deleted: {report.cache_files_deleted}")
            lines.append(self._colorize(f"Note: {NOT_UNDOABLE_NOTICE}", Colors.WARNING))

        if report.failures:
            lines.append(self._colorize("Some changes could not be made; see above.", Colors.WARNING))
        if report.dry_run:
            lines.append("Nothing was changed; saved snapshots were left as they are.")
        else:
            lines.append("Run with --undo to restore the previous settings.")
        return "\n".join(lines)

    def format_undo_report(self, report: UndoReport) -> str:
        """Format an undo report."""
        if report.source is None:
            return "No snapshot found; nothing to undo."

        source = "latest snapshot" if report.source == "latest" else f"generation {report.source}"
        title = f"Undo: restored from {source}"
        if report.used_fallback:
            title += " (latest pointer unavailable)"
        if report.dry_run:
            title += " (dry run)"

        lines = [self._colorize(title, Colors.BOLD), ""]
        lines.extend(self._format_outcomes(report.outcomes))
        lines.append("")
        lines.append(self._format_summary(report.outcomes))
        lines.append(f"Tasks re-enabled: {report.tasks_reenabled}")

        if report.failures:
            lines.append(self._colorize("Some settings could not be restored; see above.", Colors.WARNING))
        return "\n".join(lines)

    def format_generation_list(self, generations: list[GenerationInfo]) -> str:
        """Format the list of retained generations as a table."""
        if not generations:
            return "No snapshot generations found."

        header = f"{'Generation':<28} {'Records':>8} {'Tasks':>6}  Latest"
        lines = [self._colorize(header, Colors.BOLD), "-" * 52]
        for info in generations:
            marker = "*" if info.is_latest else ""
            lines.append(
                f"{info.name:<28} {info.record_count:>8} {info.disabled_task_count:>6}  {marker}"
            )
        lines.append("-" * 52)
        lines.append(f"Total: {len(generations)} generation(s)")
        return "\n".join(lines)


class JsonFormatter(OutputFormatter):
    """JSON output formatter."""

    def __init__(self, indent: int = 2, compact: bool = False):
        """Initialize the JSON formatter.

        Args:
            indent: Indentation level
            compact: Whether to use compact output
        """
        self.indent = None if compact else indent

    def _outcome_dict(self, outcome: ResourceOutcome) -> dict[str, Any]:
        return {
            "operation": outcome.operation,
            "resource": outcome.resource,
            "status": outcome.status.value,
            "message": outcome.message,
        }

    def format_apply_report(self, report: ApplyReport) -> str:
        """Format an apply report as JSON."""
        data = {
            "mode": "apply",
            "generation": report.generation,
            "dry_run": report.dry_run,
            "started_at": report.started_at.isoformat(),
            "completed_at": report.completed_at.isoformat() if report.completed_at else None,
            "cache_files_deleted": report.cache_files_deleted,
            "failures": len(report.failures),
            "outcomes": [self._outcome_dict(o) for o in report.outcomes],
        }
        return json.dumps(data, indent=self.indent)

    def format_undo_report(self, report: UndoReport) -> str:
        """Format an undo report as JSON."""
        data = {
            "mode": "undo",
            "source": report.source,
            "used_fallback": report.used_fallback,
            "dry_run": report.dry_run,
            "tasks_reenabled": report.tasks_reenabled,
            "failures": len(report.failures),
            "outcomes": [self._outcome_dict(o) for o in report.outcomes],
        }
        return json.dumps(data, indent=self.indent)

    def format_generation_list(self, generations: list[GenerationInfo]) -> str:
        """Format the generation list as JSON."""
        data = [
            {
                "name": info.name,
                "path": str(info.path),
                "record_count": info.record_count,
                "disabled_task_count": info.disabled_task_count,
                "is_latest": info.is_latest,
            }
            for info in generations
        ]
        return json.dumps(data, indent=self.indent)
