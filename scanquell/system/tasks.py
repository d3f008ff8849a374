"""Task Scheduler accessor - list, enable and disable scheduled tasks."""

import fnmatch
import json
import logging
from typing import Any

from scanquell.core.models import AccessResult, ScheduledTaskInfo
from scanquell.system.base import BaseAccessor, ps_quote

logger = logging.getLogger("scanquell.system.tasks")

# Get-ScheduledTask serializes State as an integer enum
_TASK_STATES = {0: "Unknown", 1: "Disabled", 2: "Queued", 3: "Ready", 4: "Running"}

_LIST_TASKS_COMMAND = (
    "Get-ScheduledTask | Select-Object TaskName, TaskPath, "
    "@{N='State';E={$_.State.ToString()}} | ConvertTo-Json -Compress"
)


def task_matches(task: ScheduledTaskInfo, name_pattern: str, path_pattern: str) -> bool:
    """Check a task against glob patterns, case-insensitively.

    A task matches if its name matches ``name_pattern`` or its path
    matches ``path_pattern``. An empty pattern never matches.
    """
    if name_pattern and fnmatch.fnmatchcase(task.name.lower(), name_pattern.lower()):
        return True
    if path_pattern and fnmatch.fnmatchcase(task.path.lower(), path_pattern.lower()):
        return True
    return False


class TaskScheduler(BaseAccessor):
    """Accessor for the Windows Task Scheduler.

    Example:
        scheduler = TaskScheduler()
        result = scheduler.list_tasks("*LibraryScan*", "\\\\Microsoft\\\\XboxApp\\\\*")
        for task in result.value or []:
            if not task.is_disabled:
                scheduler.disable(task.name, task.path)
    """

    def list_tasks(self, name_pattern: str, path_pattern: str) -> AccessResult:
        """List tasks whose name or path matches the given patterns.

        Returns:
            OK with a list of ScheduledTaskInfo, or FAILED.
        """
        result = self._run_powershell(_LIST_TASKS_COMMAND)
        if not result["success"]:
            return AccessResult.failure(result["error"] or "Get-ScheduledTask failed")

        if not result["output"]:
            return AccessResult.success([])

        try:
            data = json.loads(result["output"])
        except json.JSONDecodeError as e:
            return AccessResult.failure(f"Failed to parse task list: {e}")

        # Handle single task (not a list)
        if isinstance(data, dict):
            data = [data]

        tasks = [self._process_task(raw) for raw in data]
        return AccessResult.success(
            [t for t in tasks if t and task_matches(t, name_pattern, path_pattern)]
        )

    def disable(self, name: str, path: str) -> AccessResult:
        """Disable a scheduled task."""
        return self._change_state(name, path, enable=False)

    def enable(self, name: str, path: str) -> AccessResult:
        """Enable a scheduled task."""
        return self._change_state(name, path, enable=True)

    def _change_state(self, name: str, path: str, enable: bool) -> AccessResult:
        verb = "Enable" if enable else "Disable"
        task = ScheduledTaskInfo(name=name, path=path)

        if self.dry_run:
            self._log_dry_run(f"{verb.lower()} task {task.full_path}")
            return AccessResult.success()

        result = self._run_powershell(
            f"{verb}-ScheduledTask -TaskPath {ps_quote(path)} -TaskName {ps_quote(name)} -ErrorAction Stop"
        )

        if not result["success"]:
            # Try alternative method with full path
            result = self._run_command(
                ["schtasks.exe", "/Change", "/TN", task.full_path, f"/{verb}"]
            )

        if result["success"]:
            return AccessResult.success()
        return AccessResult.failure(result["error"] or f"{verb} {task.full_path} failed")

    def _process_task(self, raw: dict[str, Any]) -> ScheduledTaskInfo | None:
        name = raw.get("TaskName")
        if not name:
            return None

        state = raw.get("State", "Unknown")
        if isinstance(state, int):
            state = _TASK_STATES.get(state, "Unknown")

        return ScheduledTaskInfo(
            name=name,
            path=raw.get("TaskPath") or "\\",
            state=str(state),
        )
