"""Suppression Orchestrator - runs the apply and undo paths.

Apply:
    elevation check -> new snapshot generation -> curb scanning service
    -> suppress discovery flags -> disable discovery tasks
    -> [extended suppression] -> [purge cache]

Undo:
    elevation check -> replay latest pointer (or newest generation)
    -> re-enable the tasks that apply disabled

Individual resource failures are collected into the report; only the
elevation check stops a run.
"""

from collections.abc import Callable
from datetime import datetime

from scanquell.actions import (
    MutationContext,
    curb_background_scanning,
    disable_discovery_tasks,
    extended_suppression,
    purge_cached_artifacts,
    purge_outcomes,
    suppress_discovery_flags,
)
from scanquell.core.config import Config
from scanquell.core.logging_config import get_logger, log_action, set_run_context
from scanquell.core.models import (
    ApplyReport,
    ElevationRequiredError,
    OutcomeStatus,
    ResourceOutcome,
    UndoReport,
)
from scanquell.core.snapshot import LATEST_DIR, SnapshotStore, create_snapshot_store
from scanquell.system import Accessors, create_accessors, is_elevated

REENABLE_TASKS = "re-enable-tasks"


class SuppressionOrchestrator:
    """Sequences the mutation operations and the restore path.

    Example:
        orchestrator = SuppressionOrchestrator(config)
        report = orchestrator.apply(clear_cache=True)
        print(f"{len(report.failures)} failure(s)")

        undo_report = orchestrator.undo()
    """

    def __init__(
        self,
        config: Config,
        accessors: Accessors | None = None,
        store: SnapshotStore | None = None,
        dry_run: bool = False,
        elevation_check: Callable[[], bool] = is_elevated,
    ) -> None:
        """Initialize the orchestrator.

        Args:
            config: Application configuration
            accessors: Resource accessors (created from config if omitted)
            store: Snapshot store (created from config if omitted)
            dry_run: If True, mutations are logged but not performed
            elevation_check: Callable reporting whether the process is elevated
        """
        self.config = config
        self.dry_run = dry_run
        self.accessors = accessors or create_accessors(
            dry_run=dry_run,
            command_timeout=config.command_timeout_seconds,
        )
        self.store = store or create_snapshot_store(config.snapshots_dir, self.accessors)
        self.elevation_check = elevation_check
        self.logger = get_logger("main")

    def check_preconditions(self) -> None:
        """Make sure the run may mutate system state.

        Raises:
            ElevationRequiredError: If the process is not elevated
        """
        if not self.elevation_check():
            raise ElevationRequiredError(
                "Administrator privileges are required. "
                "Re-run from an elevated prompt."
            )

    def apply(self, clear_cache: bool = False, deep_clean: bool = False) -> ApplyReport:
        """Run the apply path.

        Args:
            clear_cache: Also purge cached discovery artifacts (not undoable)
            deep_clean: Also curb the live-presence and telemetry services

        Returns:
            ApplyReport with every per-resource outcome

        Raises:
            ElevationRequiredError: If the process is not elevated
        """
        self.check_preconditions()

        handle = self.store.begin_generation(dry_run=self.dry_run)
        set_run_context(f"apply {handle.name}", dry_run=self.dry_run)
        report = ApplyReport(generation=handle.name, dry_run=self.dry_run)
        context = MutationContext(
            store=self.store,
            handle=handle,
            accessors=self.accessors,
            targets=self.config.targets,
        )

        self.logger.info(f"Applying discovery suppression (generation {handle.name})")

        report.outcomes.extend(curb_background_scanning(context))
        report.outcomes.extend(suppress_discovery_flags(context))
        report.outcomes.extend(disable_discovery_tasks(context))

        if deep_clean:
            report.outcomes.extend(extended_suppression(context))

        if clear_cache:
            purge = purge_cached_artifacts(
                self.config.cache_dir,
                self.config.targets.cache_patterns,
                dry_run=self.dry_run,
            )
            report.cache_files_deleted = purge.deleted_count
            report.outcomes.extend(purge_outcomes(purge))

        report.completed_at = datetime.now()
        self.logger.info(
            f"Apply finished: {len(report.outcomes)} step(s), {len(report.failures)} failure(s)"
        )
        return report

    def undo(self, generation: str | None = None) -> UndoReport:
        """Run the undo path.

        Args:
            generation: Restore this generation instead of the latest pointer

        Returns:
            UndoReport naming the snapshot source used

        Raises:
            ElevationRequiredError: If the process is not elevated
        """
        self.check_preconditions()

        set_run_context(f"undo {generation or LATEST_DIR}", dry_run=self.dry_run)
        if generation:
            restore = self.store.restore_generation(generation)
            used_fallback = False
        else:
            restore = self.store.restore_latest()
            used_fallback = restore is None
            if restore is None:
                self.logger.info("Latest snapshot unavailable; falling back to newest generation")
                set_run_context("undo newest generation", dry_run=self.dry_run)
                restore = self.store.restore_most_recent_generation()

        if restore is None:
            self.logger.warning("No snapshot found to restore from")
            return UndoReport(source=None, used_fallback=used_fallback, dry_run=self.dry_run)

        report = UndoReport(
            source=restore.source,
            used_fallback=used_fallback,
            outcomes=list(restore.outcomes),
            dry_run=self.dry_run,
        )

        for task in self.store.load_disabled_tasks(restore.source):
            result = self.accessors.tasks.enable(task.name, task.path)
            if result.ok:
                report.tasks_reenabled += 1
                status, message = OutcomeStatus.SUCCESS, "Re-enabled"
            else:
                status, message = OutcomeStatus.FAILED, f"Failed to re-enable: {result.error}"
            log_action("ENABLE_TASK", task.full_path, result.ok, message)
            report.outcomes.append(ResourceOutcome(REENABLE_TASKS, task.full_path, status, message))

        self.logger.info(
            f"Undo from {restore.source} finished: "
            f"{len(report.outcomes)} step(s), {len(report.failures)} failure(s)"
        )
        return report


def create_orchestrator(config: Config, dry_run: bool = False) -> SuppressionOrchestrator:
    """Create an orchestrator wired to the real system.

    Args:
        config: Application configuration
        dry_run: If True, simulate mutations

    Returns:
        SuppressionOrchestrator instance
    """
    return SuppressionOrchestrator(config, dry_run=dry_run)
