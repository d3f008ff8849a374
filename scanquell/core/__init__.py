"""Core module - configuration, logging, models, snapshots and orchestration.

The snapshot store and orchestrator are imported from their own
modules; they depend on the system accessors, which depend on the
models defined here.
"""

from .config import Config, SuppressionTargets, TaskPattern, load_config
from .logging_config import setup_logging
from .models import (
    AccessResult,
    AccessStatus,
    ApplyReport,
    ElevationRequiredError,
    OutcomeStatus,
    ResourceIdentity,
    ResourceKind,
    ResourceOutcome,
    RestoreReport,
    ScheduledTaskInfo,
    SnapshotRecord,
    StartupMode,
    UndoReport,
)

__all__ = [
    # Models
    "AccessResult",
    "AccessStatus",
    "ApplyReport",
    "ElevationRequiredError",
    "OutcomeStatus",
    "ResourceIdentity",
    "ResourceKind",
    "ResourceOutcome",
    "RestoreReport",
    "ScheduledTaskInfo",
    "SnapshotRecord",
    "StartupMode",
    "UndoReport",
    # Config
    "Config",
    "SuppressionTargets",
    "TaskPattern",
    "load_config",
    "setup_logging",
]
