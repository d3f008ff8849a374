"""Actions module - the mutation operations run by apply."""

from .base import MutationContext, outcome_from_result
from .cache import NOT_UNDOABLE_NOTICE, PurgeResult, purge_cached_artifacts, purge_outcomes
from .flags import suppress_discovery_flags
from .services import curb_background_scanning, extended_suppression
from .tasks import disable_discovery_tasks, find_discovery_tasks

__all__ = [
    "MutationContext",
    "outcome_from_result",
    "curb_background_scanning",
    "extended_suppression",
    "suppress_discovery_flags",
    "disable_discovery_tasks",
    "find_discovery_tasks",
    "purge_cached_artifacts",
    "purge_outcomes",
    "PurgeResult",
    "NOT_UNDOABLE_NOTICE",
]
