"""Shared context and helpers for mutation operations."""

from dataclasses import dataclass

from scanquell.core.config import SuppressionTargets
from scanquell.core.logging_config import log_action
from scanquell.core.models import AccessResult, OutcomeStatus, ResourceOutcome
from scanquell.core.snapshot import GenerationHandle, SnapshotStore
from scanquell.system import Accessors


@dataclass
class MutationContext:
    """Everything an operation needs during one apply run.

    Attributes:
        store: Snapshot store capturing prior state
        handle: Generation being written by this run
        accessors: Resource accessors used for the mutations
        targets: Services, keys, flags and patterns to act on
    """

    store: SnapshotStore
    handle: GenerationHandle
    accessors: Accessors
    targets: SuppressionTargets


def outcome_from_result(
    operation: str,
    action_type: str,
    resource: str,
    result: AccessResult,
    success_message: str,
    absent_message: str = "Resource does not exist; skipped",
) -> ResourceOutcome:
    """Turn an accessor result into a report line and log it.

    Args:
        operation: Operation name shown in the report
        action_type: Action name written to the action log
        resource: Resource description
        result: Accessor result
        success_message: Message used when the call succeeded
        absent_message: Message used when the resource does not exist

    Returns:
        ResourceOutcome for the run report
    """
    if result.ok:
        log_action(action_type, resource, True, success_message)
        return ResourceOutcome(operation, resource, OutcomeStatus.SUCCESS, success_message)
    if result.absent:
        return ResourceOutcome(operation, resource, OutcomeStatus.SKIPPED, absent_message)

    log_action(action_type, resource, False, result.error or "")
    return ResourceOutcome(operation, resource, OutcomeStatus.FAILED, result.error or "Unknown error")
