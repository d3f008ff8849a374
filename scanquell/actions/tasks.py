"""Scheduled task operation - disable the discovery tasks."""

import logging

from scanquell.actions.base import MutationContext, outcome_from_result
from scanquell.core.models import (
    OutcomeStatus,
    ResourceOutcome,
    ScheduledTaskInfo,
)

logger = logging.getLogger("scanquell.actions.tasks")

DISABLE_TASKS = "disable-discovery-tasks"


def find_discovery_tasks(context: MutationContext) -> tuple[list[ScheduledTaskInfo], list[ResourceOutcome]]:
    """List tasks matching any configured pattern, without duplicates.

    Returns:
        Matching tasks in discovery order, and outcomes for failed listings
    """
    seen: set[tuple[str, str]] = set()
    matches: list[ScheduledTaskInfo] = []
    failures: list[ResourceOutcome] = []

    for pattern in context.targets.task_patterns:
        result = context.accessors.tasks.list_tasks(pattern.name_pattern, pattern.path_pattern)
        if not result.ok:
            failures.append(
                ResourceOutcome(
                    DISABLE_TASKS,
                    f"{pattern.name_pattern} | {pattern.path_pattern}",
                    OutcomeStatus.FAILED,
                    f"Could not list tasks: {result.error}",
                )
            )
            continue

        for task in result.value:
            key = (task.name.lower(), task.path.lower())
            if key not in seen:
                seen.add(key)
                matches.append(task)

    return matches, failures


def disable_discovery_tasks(context: MutationContext) -> list[ResourceOutcome]:
    """Disable every enabled task that matches the discovery patterns.

    Tasks that are already disabled are left out of the Disabled-Task
    List, so undo only re-enables what this run turned off. The list is
    saved only when something was disabled.

    Args:
        context: Mutation context for this apply run

    Returns:
        One outcome per matching task, plus listing failures
    """
    tasks, outcomes = find_discovery_tasks(context)
    disabled: list[ScheduledTaskInfo] = []

    for task in tasks:
        if task.is_disabled:
            outcomes.append(
                ResourceOutcome(DISABLE_TASKS, task.full_path, OutcomeStatus.SKIPPED, "Already disabled")
            )
            continue

        result = context.accessors.tasks.disable(task.name, task.path)
        outcome = outcome_from_result(
            DISABLE_TASKS,
            "DISABLE_TASK",
            task.full_path,
            result,
            success_message=f"{task.state} -> Disabled",
        )
        outcomes.append(outcome)
        if result.ok:
            disabled.append(task)
            # Rewritten after each task so an interrupted run keeps its trail
            context.store.save_disabled_tasks(context.handle, disabled)

    logger.info(f"Disabled {len(disabled)} of {len(tasks)} matching task(s)")
    return outcomes
