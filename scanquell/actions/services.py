"""Service operations - curb the scanning helper and extra Xbox services.

The primary Gaming Services service stays on Automatic because game
installs and launches depend on it. Its networking helper is what
walks drives looking for games, so it goes to Manual and is stopped.
"""

import logging

from scanquell.actions.base import MutationContext, outcome_from_result
from scanquell.core.models import (
    STATE_ABSENT,
    OutcomeStatus,
    ResourceIdentity,
    ResourceKind,
    ResourceOutcome,
    StartupMode,
)

logger = logging.getLogger("scanquell.actions.services")

CURB_SCANNING = "curb-background-scanning"
EXTENDED_SUPPRESSION = "extended-suppression"


def set_service_mode(
    context: MutationContext,
    operation: str,
    name: str,
    mode: StartupMode,
) -> ResourceOutcome:
    """Capture a service's startup mode, then set it.

    Setting a mode the service already has is skipped, so a second
    apply leaves the service alone.
    """
    identity = ResourceIdentity(ResourceKind.SERVICE, name)
    record = context.store.capture(context.handle, identity)

    if record.state == STATE_ABSENT:
        logger.info(f"Service {name} not installed; skipping")
        return ResourceOutcome(
            operation, str(identity), OutcomeStatus.SKIPPED, "Service not installed"
        )

    if StartupMode.parse(record.state) == mode:
        return ResourceOutcome(
            operation, str(identity), OutcomeStatus.SUCCESS, f"Already {mode.value}"
        )

    result = context.accessors.services.set_startup_mode(name, mode)
    return outcome_from_result(
        operation,
        "SET_STARTUP",
        str(identity),
        result,
        success_message=f"{record.state} -> {mode.value}",
        absent_message="Service not installed",
    )


def stop_service(context: MutationContext, operation: str, name: str) -> ResourceOutcome:
    """Stop a service. Best-effort: a failure is reported, not raised."""
    identity = ResourceIdentity(ResourceKind.SERVICE, name)
    result = context.accessors.services.stop(name)
    return outcome_from_result(
        operation,
        "STOP",
        str(identity),
        result,
        success_message="Stopped",
        absent_message="Service not installed",
    )


def curb_service(context: MutationContext, operation: str, name: str) -> list[ResourceOutcome]:
    """Capture, set to Manual, then stop a service."""
    outcomes = [set_service_mode(context, operation, name, StartupMode.MANUAL)]
    if outcomes[0].status != OutcomeStatus.SKIPPED:
        outcomes.append(stop_service(context, operation, name))
    return outcomes


def curb_background_scanning(context: MutationContext) -> list[ResourceOutcome]:
    """Keep the primary service Automatic and curb its scanning helper.

    Args:
        context: Mutation context for this apply run

    Returns:
        Outcomes for the primary and helper services
    """
    targets = context.targets
    logger.info("Curbing background scanning service")

    outcomes = [
        set_service_mode(context, CURB_SCANNING, targets.primary_service, StartupMode.AUTOMATIC)
    ]
    outcomes.extend(curb_service(context, CURB_SCANNING, targets.helper_service))
    return outcomes


def extended_suppression(context: MutationContext) -> list[ResourceOutcome]:
    """Set each extended service (live presence, telemetry) to Manual and stop it.

    Args:
        context: Mutation context for this apply run

    Returns:
        Outcomes for every extended service
    """
    logger.info(f"Applying extended suppression to {len(context.targets.extended_services)} service(s)")

    outcomes: list[ResourceOutcome] = []
    for name in context.targets.extended_services:
        outcomes.extend(curb_service(context, EXTENDED_SUPPRESSION, name))
    return outcomes
