"""System module - accessors for services, registry and scheduled tasks."""

from dataclasses import dataclass, field

from .base import BaseAccessor
from .elevation import is_elevated
from .registry import KeyValueStore, exported_value_names
from .services import ServiceControl
from .tasks import TaskScheduler, task_matches


@dataclass
class Accessors:
    """The three resource accessors a run works through."""

    services: ServiceControl = field(default_factory=ServiceControl)
    registry: KeyValueStore = field(default_factory=KeyValueStore)
    tasks: TaskScheduler = field(default_factory=TaskScheduler)


def create_accessors(dry_run: bool = False, command_timeout: int = 60) -> Accessors:
    """Create accessors sharing one dry-run flag and timeout.

    Args:
        dry_run: If True, mutating calls are simulated
        command_timeout: Timeout in seconds for commands

    Returns:
        Accessors instance
    """
    return Accessors(
        services=ServiceControl(dry_run=dry_run, command_timeout=command_timeout),
        registry=KeyValueStore(dry_run=dry_run, command_timeout=command_timeout),
        tasks=TaskScheduler(dry_run=dry_run, command_timeout=command_timeout),
    )


__all__ = [
    "Accessors",
    "BaseAccessor",
    "KeyValueStore",
    "ServiceControl",
    "TaskScheduler",
    "create_accessors",
    "exported_value_names",
    "is_elevated",
    "task_matches",
]
