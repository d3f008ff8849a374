"""Snapshot Store - captures prior resource state and replays it on undo.

Each apply run writes a new generation directory named after its
start time, plus a ``latest`` directory that mirrors it. Generations
are never modified or deleted after the run that wrote them; ``latest``
is thrown away and recreated at the start of every apply.

Layout::

    snapshots/
        20261018-101500-123456/
            service_GamingServicesNet.json
            registry_HKCU_Software_Microsoft_GamingApp_Discovery.json
            registry_HKCU_Software_Microsoft_GamingApp_Discovery.reg
            disabled_tasks.json
        latest/
            generation.json   (name of the generation it mirrors)
            (same files as the newest generation)
        dry-run/
            (snapshots of the most recent dry run; never restored)
"""

import json
import logging
import os
import re
import shutil
from dataclasses import dataclass, field
from datetime import datetime
from pathlib import Path
from typing import Any

from scanquell.core.logging_config import log_action
from scanquell.core.models import (
    STATE_ABSENT,
    STATE_UNKNOWN,
    OutcomeStatus,
    ResourceIdentity,
    ResourceKind,
    ResourceOutcome,
    RestoreReport,
    ScheduledTaskInfo,
    SnapshotRecord,
    StartupMode,
)
from scanquell.system import Accessors, exported_value_names

logger = logging.getLogger("scanquell.core.snapshot")

LATEST_DIR = "latest"
LATEST_MARKER_FILE = "generation.json"
DRY_RUN_DIR = "dry-run"
TASK_LIST_FILE = "disabled_tasks.json"
GENERATION_FORMAT = "%Y%m%d-%H%M%S-%f"
GENERATION_NAME_RE = re.compile(r"^\d{8}-\d{6}-\d{6}(_\d{2,})?$")

# Startup mode used when a captured mode string is not recognized
FALLBACK_STARTUP_MODE = StartupMode.MANUAL


@dataclass(frozen=True)
class GenerationHandle:
    """Handle to the generation being written by the current apply run.

    Attributes:
        name: Generation directory name
        path: Generation directory
        latest_path: Latest pointer directory
        created_at: When the generation was started
    """

    name: str
    path: Path
    latest_path: Path
    created_at: datetime = field(default_factory=datetime.now)

    @property
    def directories(self) -> tuple[Path, ...]:
        """Directories every record of this generation is written to."""
        if self.latest_path == self.path:
            return (self.path,)
        return (self.path, self.latest_path)


@dataclass
class GenerationInfo:
    """Summary of a retained generation.

    Attributes:
        name: Generation directory name
        path: Generation directory
        record_count: Number of resource records it holds
        disabled_task_count: Number of entries in its Disabled-Task List
        is_latest: Whether the latest pointer mirrors this generation
    """

    name: str
    path: Path
    record_count: int
    disabled_task_count: int = 0
    is_latest: bool = False


class SnapshotStore:
    """Persists resource state before mutation and restores it on undo.

    Example:
        store = SnapshotStore(config.snapshots_dir, accessors)
        handle = store.begin_generation()
        store.capture(handle, ResourceIdentity(ResourceKind.SERVICE, "GamingServicesNet"))

        # Later, on undo
        report = store.restore_latest() or store.restore_most_recent_generation()
    """

    def __init__(self, snapshots_dir: Path, accessors: Accessors) -> None:
        """Initialize the snapshot store.

        Args:
            snapshots_dir: Base directory holding generations and latest
            accessors: Resource accessors used to read and restore state
        """
        self.snapshots_dir = snapshots_dir
        self.accessors = accessors

    @property
    def latest_path(self) -> Path:
        return self.snapshots_dir / LATEST_DIR

    # ------------------------------------------------------------------
    # Capture
    # ------------------------------------------------------------------

    def begin_generation(self, dry_run: bool = False) -> GenerationHandle:
        """Start a new generation and reset the latest pointer.

        Must be called once per apply run, before any mutation. A dry
        run writes its records to a scratch directory instead, leaving
        the generations and the latest pointer untouched.

        Args:
            dry_run: Write to the dry-run scratch directory

        Returns:
            Handle for the new generation
        """
        self.snapshots_dir.mkdir(parents=True, exist_ok=True)

        created_at = datetime.now()
        base_name = created_at.strftime(GENERATION_FORMAT)

        if dry_run:
            scratch = self.snapshots_dir / DRY_RUN_DIR
            if scratch.exists():
                shutil.rmtree(scratch)
            scratch.mkdir()
            logger.info(f"Dry run {base_name}: snapshots go to {scratch}")
            return GenerationHandle(
                name=base_name,
                path=scratch,
                latest_path=scratch,
                created_at=created_at,
            )

        name = base_name
        suffix = 1
        while (self.snapshots_dir / name).exists():
            suffix += 1
            name = f"{base_name}_{suffix:02d}"

        path = self.snapshots_dir / name
        path.mkdir()

        if self.latest_path.exists():
            shutil.rmtree(self.latest_path)
        self.latest_path.mkdir()
        self._write_json(self.latest_path / LATEST_MARKER_FILE, {"generation": name})

        logger.info(f"Started snapshot generation {name}")
        return GenerationHandle(
            name=name,
            path=path,
            latest_path=self.latest_path,
            created_at=created_at,
        )

    def capture(
        self,
        handle: GenerationHandle,
        identity: ResourceIdentity,
        touched_values: tuple[str, ...] = (),
    ) -> SnapshotRecord:
        """Capture the current state of a resource.

        The record is written to the generation and to the latest
        pointer before this returns, so the caller may mutate the
        resource afterwards. A resource that does not exist is recorded
        as "absent"; one whose state cannot be read as "unknown".

        Args:
            handle: Generation being written
            identity: Resource to capture
            touched_values: Registry value names the caller will write

        Returns:
            The written SnapshotRecord

        Raises:
            ValueError: If the identity kind cannot be captured this way
        """
        if identity.kind == ResourceKind.SERVICE:
            state = self._capture_service(identity)
        elif identity.kind == ResourceKind.REGISTRY:
            state = self._capture_registry(handle, identity)
        else:
            raise ValueError(f"Cannot capture {identity.kind.value} resources; use save_disabled_tasks")

        record = SnapshotRecord(
            identity=identity,
            state=state,
            touched_values=tuple(touched_values),
        )

        data = record.to_dict()
        for directory in handle.directories:
            self._write_json(directory / f"{identity.file_stem}.json", data)

        logger.debug(f"Captured {identity}: {state}")
        return record

    def _capture_service(self, identity: ResourceIdentity) -> str:
        result = self.accessors.services.get_startup_mode(identity.name)
        if result.ok:
            return result.value.value
        if result.absent:
            logger.info(f"Service {identity.name} does not exist; recording as absent")
            return STATE_ABSENT
        logger.warning(f"Could not read startup mode of {identity.name}: {result.error}")
        return STATE_UNKNOWN

    def _capture_registry(self, handle: GenerationHandle, identity: ResourceIdentity) -> str:
        result = self.accessors.registry.export_subtree(identity.name)
        if result.absent:
            logger.info(f"Key {identity.name} does not exist; recording as absent")
            return STATE_ABSENT
        if not result.ok:
            logger.warning(f"Could not export {identity.name}: {result.error}")
            return STATE_UNKNOWN

        blob_name = f"{identity.file_stem}.reg"
        for directory in handle.directories:
            self._write_bytes(directory / blob_name, result.value)
        return blob_name

    def save_disabled_tasks(
        self,
        handle: GenerationHandle,
        tasks: list[ScheduledTaskInfo],
    ) -> bool:
        """Persist the Disabled-Task List to the generation and latest.

        An empty list writes nothing, so undo can tell "nothing was
        disabled" apart from a list that was never written.

        Returns:
            True if a file was written
        """
        if not tasks:
            return False

        data = {
            "saved_at": datetime.now().isoformat(),
            "tasks": [{"name": t.name, "path": t.path} for t in tasks],
        }
        for directory in handle.directories:
            self._write_json(directory / TASK_LIST_FILE, data)

        logger.info(f"Saved {len(tasks)} disabled task(s) to generation {handle.name}")
        return True

    def load_disabled_tasks(self, source: str) -> list[ScheduledTaskInfo]:
        """Load the Disabled-Task List of a snapshot directory.

        Args:
            source: "latest" or a generation name

        Returns:
            Task entries in the order they were disabled; empty if the
            list is missing or unreadable
        """
        path = self.snapshots_dir / source / TASK_LIST_FILE
        if not path.exists():
            return []

        try:
            with open(path, encoding="utf-8") as f:
                data = json.load(f)
            return [
                ScheduledTaskInfo(name=entry["name"], path=entry["path"], state="Disabled")
                for entry in data["tasks"]
            ]
        except (OSError, ValueError, KeyError, TypeError) as e:
            logger.warning(f"Failed to load disabled task list from {path}: {e}")
            return []

    # ------------------------------------------------------------------
    # Restore
    # ------------------------------------------------------------------

    def restore_latest(self) -> RestoreReport | None:
        """Replay every record in the latest pointer.

        Returns:
            RestoreReport, or None if the latest pointer is missing or empty
        """
        if not self._has_contents(self.latest_path):
            logger.info("Latest snapshot pointer is missing or empty")
            return None
        return self._replay(self.latest_path, LATEST_DIR)

    def restore_most_recent_generation(self) -> RestoreReport | None:
        """Replay the newest retained generation.

        Used when the latest pointer is unavailable.

        Returns:
            RestoreReport naming the generation used, or None if there is none
        """
        name = self._select_newest_generation()
        if name is None:
            logger.info("No snapshot generations found")
            return None
        logger.info(f"Restoring from generation {name}")
        return self._replay(self.snapshots_dir / name, name)

    def restore_generation(self, name: str) -> RestoreReport | None:
        """Replay one named generation.

        Returns:
            RestoreReport, or None if the generation does not exist or is empty
        """
        path = self.snapshots_dir / name
        if name == LATEST_DIR or not GENERATION_NAME_RE.match(name) or not self._has_contents(path):
            logger.warning(f"Generation not found: {name}")
            return None
        return self._replay(path, name)

    def list_generations(self) -> list[GenerationInfo]:
        """List retained generations, newest first."""
        latest_name = self._latest_generation_name()
        infos: list[GenerationInfo] = []

        for name in self._generation_names():
            path = self.snapshots_dir / name
            files = self._file_names(path)
            infos.append(
                GenerationInfo(
                    name=name,
                    path=path,
                    record_count=sum(
                        1 for f in files if f.endswith(".json") and f != TASK_LIST_FILE
                    ),
                    disabled_task_count=len(self.load_disabled_tasks(name)),
                    is_latest=name == latest_name,
                )
            )

        infos.sort(key=lambda info: self._generation_sort_key(info.name), reverse=True)
        return infos

    def _latest_generation_name(self) -> str | None:
        """Name of the generation the latest pointer mirrors, if recorded."""
        path = self.latest_path / LATEST_MARKER_FILE
        if not path.exists():
            return None
        try:
            with open(path, encoding="utf-8") as f:
                return json.load(f)["generation"]
        except (OSError, ValueError, KeyError, TypeError) as e:
            logger.warning(f"Failed to read {path}: {e}")
            return None

    def _select_newest_generation(self) -> str | None:
        """Pick the generation undo should trust when latest is unavailable.

        Generation names embed their start time, and collision suffixes
        sort after the bare name, so the greatest name is the one created
        last. Empty generations (a run that stopped before capturing
        anything) are passed over.
        """
        candidates = [
            name for name in self._generation_names()
            if self._has_contents(self.snapshots_dir / name)
        ]
        if not candidates:
            return None
        return max(candidates, key=self._generation_sort_key)

    def _generation_sort_key(self, name: str) -> tuple[str, int]:
        stamp, _, suffix = name.partition("_")
        return stamp, int(suffix) if suffix else 1

    def _generation_names(self) -> list[str]:
        if not self.snapshots_dir.exists():
            return []
        return [
            entry.name
            for entry in self.snapshots_dir.iterdir()
            if entry.is_dir() and GENERATION_NAME_RE.match(entry.name)
        ]

    def _replay(self, directory: Path, source: str) -> RestoreReport:
        """Restore every record in a snapshot directory, newest capture first."""
        report = RestoreReport(source=source)
        records: list[SnapshotRecord] = []

        for path in sorted(directory.glob("*.json")):
            if path.name in (TASK_LIST_FILE, LATEST_MARKER_FILE):
                continue
            try:
                with open(path, encoding="utf-8") as f:
                    records.append(SnapshotRecord.from_dict(json.load(f)))
            except (OSError, ValueError, KeyError, TypeError) as e:
                logger.warning(f"Skipping unreadable snapshot {path.name}: {e}")
                report.outcomes.append(
                    ResourceOutcome(
                        operation="restore",
                        resource=path.stem,
                        status=OutcomeStatus.FAILED,
                        message=f"Unreadable snapshot file: {e}",
                    )
                )

        records.sort(key=lambda r: r.captured_at, reverse=True)

        for record in records:
            if record.kind == ResourceKind.SERVICE:
                outcome = self._restore_service(record)
            elif record.kind == ResourceKind.REGISTRY:
                outcome = self._restore_registry(record, directory)
            else:
                outcome = ResourceOutcome(
                    operation="restore",
                    resource=str(record.identity),
                    status=OutcomeStatus.SKIPPED,
                    message=f"Unsupported record kind: {record.kind.value}",
                )

            if outcome.status != OutcomeStatus.SKIPPED:
                log_action("RESTORE", str(record.identity), outcome.success, outcome.message)
            report.outcomes.append(outcome)

        return report

    def _restore_service(self, record: SnapshotRecord) -> ResourceOutcome:
        name = record.identity.name
        outcome = ResourceOutcome(
            operation="restore",
            resource=str(record.identity),
            status=OutcomeStatus.SUCCESS,
        )

        if record.is_absent:
            outcome.message = "Service did not exist before apply; nothing to restore"
            return outcome

        if record.state == STATE_UNKNOWN:
            outcome.status = OutcomeStatus.SKIPPED
            outcome.message = "Prior startup mode was not known"
            return outcome

        mode = StartupMode.parse(record.state)
        if mode is None:
            logger.warning(
                f"Unrecognized startup mode '{record.state}' for {name}; "
                f"using {FALLBACK_STARTUP_MODE.value}"
            )
            mode = FALLBACK_STARTUP_MODE

        result = self.accessors.services.set_startup_mode(name, mode)
        if result.ok:
            outcome.message = f"Startup mode restored to {mode.value}"
        elif result.absent:
            outcome.status = OutcomeStatus.SKIPPED
            outcome.message = "Service no longer exists"
        else:
            outcome.status = OutcomeStatus.FAILED
            outcome.message = f"Failed to restore startup mode {mode.value}: {result.error}"
        return outcome

    def _restore_registry(self, record: SnapshotRecord, directory: Path) -> ResourceOutcome:
        path = record.identity.name
        registry = self.accessors.registry
        outcome = ResourceOutcome(
            operation="restore",
            resource=str(record.identity),
            status=OutcomeStatus.SUCCESS,
        )

        if record.is_absent:
            # The key was created by apply; remove it again
            result = registry.delete_subtree(path)
            if result.ok or result.absent:
                outcome.message = "Key did not exist before apply; removed"
            else:
                outcome.status = OutcomeStatus.FAILED
                outcome.message = f"Failed to remove key: {result.error}"
            return outcome

        if record.state == STATE_UNKNOWN:
            outcome.status = OutcomeStatus.SKIPPED
            outcome.message = "Prior key contents were not known"
            return outcome

        blob_path = directory / record.state
        try:
            blob = blob_path.read_bytes()
        except OSError as e:
            blob = b""
            logger.warning(f"Could not read {blob_path}: {e}")
        if not blob:
            outcome.status = OutcomeStatus.FAILED
            outcome.message = f"Exported key data missing: {record.state}"
            return outcome

        result = registry.import_blob(blob)
        if not result.ok:
            outcome.status = OutcomeStatus.FAILED
            outcome.message = f"Failed to import saved key data: {result.error}"
            return outcome

        # Values written by apply that were not there before must go
        prior_names = exported_value_names(blob, path)
        errors: list[str] = []
        for value_name in record.touched_values:
            if value_name in prior_names:
                continue
            deleted = registry.delete_value(path, value_name)
            if not (deleted.ok or deleted.absent):
                errors.append(f"{value_name}: {deleted.error}")

        if errors:
            outcome.status = OutcomeStatus.FAILED
            outcome.message = "Imported saved key data but could not remove " + "; ".join(errors)
        else:
            outcome.message = "Key restored from saved export"
        return outcome

    # ------------------------------------------------------------------
    # File helpers
    # ------------------------------------------------------------------

    def _has_contents(self, directory: Path) -> bool:
        return directory.is_dir() and any(
            p.name != LATEST_MARKER_FILE for p in directory.iterdir()
        )

    def _file_names(self, directory: Path) -> set[str]:
        if not directory.is_dir():
            return set()
        return {p.name for p in directory.iterdir() if p.is_file()}

    def _write_json(self, path: Path, data: dict[str, Any]) -> None:
        self._write_bytes(path, json.dumps(data, indent=2).encode("utf-8"))

    def _write_bytes(self, path: Path, content: bytes) -> None:
        """Write a file durably: temp file, fsync, then rename into place."""
        tmp_path = path.with_name(path.name + ".tmp")
        with open(tmp_path, "wb") as f:
            f.write(content)
            f.flush()
            os.fsync(f.fileno())
        os.replace(tmp_path, path)


def create_snapshot_store(snapshots_dir: Path, accessors: Accessors) -> SnapshotStore:
    """Create a snapshot store.

    Args:
        snapshots_dir: Base directory for generations
        accessors: Resource accessors

    Returns:
        SnapshotStore instance
    """
    return SnapshotStore(snapshots_dir=snapshots_dir, accessors=accessors)
