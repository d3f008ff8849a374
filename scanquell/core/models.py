"""Core data models for ScanQuell.

This module defines the enums, data classes, and exceptions used
throughout the application: resource identities, snapshot records,
accessor results and the per-run reports.
"""

import re
from dataclasses import dataclass, field
from datetime import datetime
from enum import Enum
from typing import Any

# Snapshot state values that are not real resource state
STATE_ABSENT = "absent"
STATE_UNKNOWN = "unknown"


class ElevationRequiredError(Exception):
    """Raised when apply or undo is attempted without admin rights."""


class ResourceKind(Enum):
    """Kinds of OS resources the snapshot store can capture."""

    SERVICE = "service"
    REGISTRY = "registry"
    TASK_LIST = "task_list"


class StartupMode(Enum):
    """Windows service startup modes.

    Values are the names accepted by Set-Service and shown in services.msc.
    """

    AUTOMATIC = "Automatic"
    AUTOMATIC_DELAYED = "AutomaticDelayedStart"
    MANUAL = "Manual"
    DISABLED = "Disabled"

    @property
    def sc_value(self) -> str:
        """Get the value accepted by ``sc.exe config <name> start=``."""
        return {
            StartupMode.AUTOMATIC: "auto",
            StartupMode.AUTOMATIC_DELAYED: "delayed-auto",
            StartupMode.MANUAL: "demand",
            StartupMode.DISABLED: "disabled",
        }[self]

    @classmethod
    def parse(cls, value: int | str | None) -> "StartupMode | None":
        """Convert a start mode string or SCM integer to an enum.

        Accepts the names written to snapshots, ``sc qc`` tokens
        (``AUTO_START``, ``DEMAND_START``), WMI StartMode values
        (``Auto``) and the SCM integers 2-4.

        Returns:
            The matching StartupMode, or None if unrecognized.
        """
        if value is None:
            return None

        if isinstance(value, int):
            return {2: cls.AUTOMATIC, 3: cls.MANUAL, 4: cls.DISABLED}.get(value)

        value_lower = value.strip().lower()
        if not value_lower:
            return None
        if "auto" in value_lower:
            if "delay" in value_lower:
                return cls.AUTOMATIC_DELAYED
            return cls.AUTOMATIC
        if "manual" in value_lower or "demand" in value_lower:
            return cls.MANUAL
        if "disabled" in value_lower:
            return cls.DISABLED
        return None


class AccessStatus(Enum):
    """Outcome of a single accessor call."""

    OK = "ok"
    FAILED = "failed"
    ABSENT = "absent"


@dataclass
class AccessResult:
    """Result of a resource accessor call.

    Accessors return one of these instead of raising, so one bad
    resource never stops the rest of a run.

    Attributes:
        status: OK, FAILED or ABSENT
        value: Returned data for read calls
        error: Error text when the call failed
    """

    status: AccessStatus
    value: Any = None
    error: str | None = None

    @property
    def ok(self) -> bool:
        return self.status == AccessStatus.OK

    @property
    def absent(self) -> bool:
        return self.status == AccessStatus.ABSENT

    @classmethod
    def success(cls, value: Any = None) -> "AccessResult":
        return cls(AccessStatus.OK, value=value)

    @classmethod
    def failure(cls, error: str) -> "AccessResult":
        return cls(AccessStatus.FAILED, error=error)

    @classmethod
    def missing(cls) -> "AccessResult":
        return cls(AccessStatus.ABSENT)


@dataclass(frozen=True)
class ResourceIdentity:
    """Stable identity of one mutable OS resource.

    Attributes:
        kind: Kind of resource
        name: Service name or registry key path
    """

    kind: ResourceKind
    name: str

    @property
    def file_stem(self) -> str:
        """Filesystem-safe stem used for the record file."""
        safe = re.sub(r"[^A-Za-z0-9.-]+", "_", self.name).strip("_")
        return f"{self.kind.value}_{safe}"

    def __str__(self) -> str:
        return f"{self.kind.value}:{self.name}"


@dataclass(frozen=True)
class SnapshotRecord:
    """Captured prior state of one resource.

    Attributes:
        identity: Resource the state belongs to
        state: Startup mode name, blob file name, "absent" or "unknown"
        captured_at: Capture timestamp
        touched_values: Registry value names the mutation writes
    """

    identity: ResourceIdentity
    state: str
    captured_at: datetime = field(default_factory=datetime.now)
    touched_values: tuple[str, ...] = ()

    @property
    def kind(self) -> ResourceKind:
        return self.identity.kind

    @property
    def is_absent(self) -> bool:
        return self.state == STATE_ABSENT

    def to_dict(self) -> dict[str, Any]:
        """Convert the record to a JSON-friendly dictionary."""
        return {
            "kind": self.identity.kind.value,
            "name": self.identity.name,
            "state": self.state,
            "captured_at": self.captured_at.isoformat(),
            "touched_values": list(self.touched_values),
        }

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> "SnapshotRecord":
        """Create a record from its dictionary form.

        Raises:
            KeyError: If a required field is missing.
            ValueError: If the kind or timestamp is invalid.
        """
        return cls(
            identity=ResourceIdentity(ResourceKind(data["kind"]), data["name"]),
            state=str(data["state"]),
            captured_at=datetime.fromisoformat(data["captured_at"]),
            touched_values=tuple(data.get("touched_values", [])),
        )


@dataclass(frozen=True)
class ScheduledTaskInfo:
    """A scheduled task as reported by the task scheduler.

    Attributes:
        name: Task name
        path: Task folder path (e.g. \\Microsoft\\XboxApp\\)
        state: Scheduler state string (Ready, Running, Disabled, ...)
    """

    name: str
    path: str
    state: str = "Unknown"

    @property
    def is_disabled(self) -> bool:
        return self.state.lower() == "disabled"

    @property
    def full_path(self) -> str:
        return self.path.rstrip("\\") + "\\" + self.name


class OutcomeStatus(Enum):
    """Status of one resource in a run report."""

    SUCCESS = "SUCCESS"
    FAILED = "FAILED"
    SKIPPED = "SKIPPED"


@dataclass
class ResourceOutcome:
    """Outcome of one step against one resource.

    Attributes:
        operation: Operation or restore step name
        resource: Resource description
        status: SUCCESS, FAILED or SKIPPED
        message: Human-readable detail
    """

    operation: str
    resource: str
    status: OutcomeStatus
    message: str = ""

    @property
    def success(self) -> bool:
        return self.status != OutcomeStatus.FAILED


@dataclass
class RestoreReport:
    """Result of replaying one snapshot directory.

    Attributes:
        source: Name of the directory used ("latest" or a generation name)
        outcomes: One outcome per record
    """

    source: str
    outcomes: list[ResourceOutcome] = field(default_factory=list)

    @property
    def failures(self) -> list[ResourceOutcome]:
        return [o for o in self.outcomes if not o.success]


@dataclass
class ApplyReport:
    """Result of an apply run.

    Attributes:
        generation: Name of the snapshot generation written
        outcomes: Per-resource outcomes in execution order
        cache_files_deleted: Number of cache files purged (None if not run)
        dry_run: Whether mutations were simulated
        started_at: Run start timestamp
        completed_at: Run completion timestamp
    """

    generation: str
    outcomes: list[ResourceOutcome] = field(default_factory=list)
    cache_files_deleted: int | None = None
    dry_run: bool = False
    started_at: datetime = field(default_factory=datetime.now)
    completed_at: datetime | None = None

    @property
    def failures(self) -> list[ResourceOutcome]:
        return [o for o in self.outcomes if not o.success]


@dataclass
class UndoReport:
    """Result of an undo run.

    Attributes:
        source: Snapshot directory restored from, None if nothing was found
        used_fallback: Whether the latest pointer was missing or empty
        outcomes: Per-resource outcomes
        tasks_reenabled: Number of scheduled tasks re-enabled
        dry_run: Whether mutations were simulated
    """

    source: str | None
    used_fallback: bool = False
    outcomes: list[ResourceOutcome] = field(default_factory=list)
    tasks_reenabled: int = 0
    dry_run: bool = False

    @property
    def failures(self) -> list[ResourceOutcome]:
        return [o for o in self.outcomes if not o.success]
