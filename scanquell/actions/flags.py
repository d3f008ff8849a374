"""Registry flag operation - switch off the library discovery flags."""

import logging

from scanquell.actions.base import MutationContext, outcome_from_result
from scanquell.core.models import (
    OutcomeStatus,
    ResourceIdentity,
    ResourceKind,
    ResourceOutcome,
)

logger = logging.getLogger("scanquell.actions.flags")

SUPPRESS_FLAGS = "suppress-discovery-flags"
FLAG_OFF = 0


def suppress_discovery_flags(context: MutationContext) -> list[ResourceOutcome]:
    """Write every discovery flag to 0 at every configured location.

    The whole key is exported before it is touched, so undo puts back
    the key as it was, unrelated values included.

    Args:
        context: Mutation context for this apply run

    Returns:
        One outcome per (location, flag)
    """
    targets = context.targets
    registry = context.accessors.registry
    outcomes: list[ResourceOutcome] = []

    for location in targets.registry_locations:
        identity = ResourceIdentity(ResourceKind.REGISTRY, location)
        record = context.store.capture(
            context.handle, identity, touched_values=tuple(targets.flag_names)
        )
        logger.info(f"Suppressing discovery flags under {location} (prior: {record.state})")

        for flag in targets.flag_names:
            result = registry.set_value(location, flag, FLAG_OFF)
            outcome = outcome_from_result(
                SUPPRESS_FLAGS,
                "SET_VALUE",
                f"{location}\\{flag}",
                result,
                success_message=f"Set to {FLAG_OFF}",
            )
            if outcome.status == OutcomeStatus.SKIPPED:
                # set_value creates the key, so ABSENT here means it failed
                outcome.status = OutcomeStatus.FAILED
                outcome.message = "Key could not be created"
            outcomes.append(outcome)

    return outcomes
