"""Pytest configuration and shared fixtures.

The fake accessors below keep resource state in memory and follow the
same contracts as the real sc.exe/reg.exe/PowerShell accessors, so the
snapshot store, operations and orchestrator can be exercised anywhere.
"""

import re
import sys
import tempfile
from pathlib import Path

import pytest

# Add project root to path for imports
sys.path.insert(0, str(Path(__file__).parent.parent))

from scanquell.core.config import Config, SuppressionTargets, TaskPattern  # noqa: E402
from scanquell.core.models import AccessResult, ScheduledTaskInfo, StartupMode  # noqa: E402
from scanquell.system import Accessors, task_matches  # noqa: E402
from scanquell.system.registry import HIVE_NAMES, decode_reg_export, expand_hive  # noqa: E402


class FakeServiceControl:
    """In-memory service configuration."""

    def __init__(self, modes: dict[str, StartupMode] | None = None) -> None:
        self.modes: dict[str, StartupMode] = dict(modes or {})
        self.running: set[str] = set(self.modes)
        self.fail_set: set[str] = set()
        self.fail_stop: set[str] = set()
        self.set_calls: list[tuple[str, StartupMode]] = []

    def get_startup_mode(self, name: str) -> AccessResult:
        if name not in self.modes:
            return AccessResult.missing()
        return AccessResult.success(self.modes[name])

    def set_startup_mode(self, name: str, mode: StartupMode) -> AccessResult:
        if name not in self.modes:
            return AccessResult.missing()
        if name in self.fail_set:
            return AccessResult.failure("Access is denied.")
        self.set_calls.append((name, mode))
        self.modes[name] = mode
        return AccessResult.success()

    def stop(self, name: str) -> AccessResult:
        if name not in self.modes:
            return AccessResult.missing()
        if name in self.fail_stop:
            return AccessResult.failure("Service cannot be stopped")
        self.running.discard(name)
        return AccessResult.success()


_SHORT_HIVES = {full: short for short, full in HIVE_NAMES.items()}


class FakeKeyValueStore:
    """In-memory registry whose exports use the real .reg text format."""

    def __init__(self, keys: dict[str, dict[str, int | str]] | None = None) -> None:
        self.keys: dict[str, dict[str, int | str]] = {
            path: dict(values) for path, values in (keys or {}).items()
        }
        self.fail_set: set[str] = set()

    def _subtree(self, path: str) -> list[str]:
        prefix = path.lower() + "\\"
        return sorted(
            key for key in self.keys
            if key.lower() == path.lower() or key.lower().startswith(prefix)
        )

    def export_subtree(self, path: str) -> AccessResult:
        subtree = self._subtree(path)
        if not subtree:
            return AccessResult.missing()

        lines = ["Windows Registry Editor Version 5.00", ""]
        for key in subtree:
            lines.append(f"[{expand_hive(key)}]")
            for name, value in self.keys[key].items():
                if isinstance(value, int):
                    lines.append(f'"{name}"=dword:{value:08x}')
                else:
                    lines.append(f'"{name}"="{value}"')
            lines.append("")
        text = "\r\n".join(lines)
        return AccessResult.success(b"\xff\xfe" + text.encode("utf-16-le"))

    def import_blob(self, blob: bytes) -> AccessResult:
        current = None
        for line in decode_reg_export(blob).splitlines():
            line = line.strip()
            if line.startswith("["):
                hive, _, rest = line[1:-1].partition("\\")
                current = f"{_SHORT_HIVES.get(hive, hive)}\\{rest}"
                self.keys.setdefault(current, {})
                continue
            match = re.match(r'^"([^"]*)"=(.*)$', line)
            if current and match:
                name, raw = match.groups()
                if raw.startswith("dword:"):
                    self.keys[current][name] = int(raw[6:], 16)
                else:
                    self.keys[current][name] = raw.strip('"')
        return AccessResult.success()

    def set_value(self, path: str, name: str, int_value: int) -> AccessResult:
        if path in self.fail_set:
            return AccessResult.failure("Access is denied.")
        self.keys.setdefault(path, {})[name] = int_value
        return AccessResult.success()

    def delete_value(self, path: str, name: str) -> AccessResult:
        values = self.keys.get(path)
        if values is None or name not in values:
            return AccessResult.missing()
        del values[name]
        return AccessResult.success()

    def delete_subtree(self, path: str) -> AccessResult:
        subtree = self._subtree(path)
        if not subtree:
            return AccessResult.missing()
        for key in subtree:
            del self.keys[key]
        return AccessResult.success()


class FakeTaskScheduler:
    """In-memory task scheduler keyed by (name, path)."""

    def __init__(self, tasks: dict[tuple[str, str], str] | None = None) -> None:
        self.tasks: dict[tuple[str, str], str] = dict(tasks or {})
        self.fail_list = False
        self.fail_disable: set[str] = set()
        self.enable_calls: list[tuple[str, str]] = []

    def list_tasks(self, name_pattern: str, path_pattern: str) -> AccessResult:
        if self.fail_list:
            return AccessResult.failure("Task Scheduler unavailable")
        matches = []
        for (name, path), state in self.tasks.items():
            info = ScheduledTaskInfo(name, path, state)
            if task_matches(info, name_pattern, path_pattern):
                matches.append(info)
        return AccessResult.success(matches)

    def disable(self, name: str, path: str) -> AccessResult:
        if (name, path) not in self.tasks:
            return AccessResult.missing()
        if name in self.fail_disable:
            return AccessResult.failure("Access is denied.")
        self.tasks[(name, path)] = "Disabled"
        return AccessResult.success()

    def enable(self, name: str, path: str) -> AccessResult:
        if (name, path) not in self.tasks:
            return AccessResult.failure("The system cannot find the file specified.")
        self.enable_calls.append((name, path))
        self.tasks[(name, path)] = "Ready"
        return AccessResult.success()


HKLM_DISCOVERY = r"HKLM\SOFTWARE\Microsoft\GamingServices\Discovery"
HKCU_DISCOVERY = r"HKCU\Software\Microsoft\GamingApp\Discovery"
XBOX_APP_PATH = "\\Microsoft\\XboxApp\\"


@pytest.fixture
def temp_dir():
    """Create a temporary directory for tests."""
    with tempfile.TemporaryDirectory() as tmpdir:
        yield Path(tmpdir)


@pytest.fixture
def test_targets():
    """Targets matching the fake system below."""
    return SuppressionTargets(
        primary_service="GamingServices",
        helper_service="GamingServicesNet",
        extended_services=["XblAuthManager", "XboxNetApiSvc"],
        registry_locations=[HKLM_DISCOVERY, HKCU_DISCOVERY],
        flag_names=["EnableLibraryScan", "EnableDriveScan", "EnableAutoImport"],
        task_patterns=[
            TaskPattern("*GameDiscovery*", "\\Microsoft\\GamingServices\\*"),
            TaskPattern("*LibraryScan*", "\\Microsoft\\XboxApp\\*"),
        ],
        cache_patterns=["*discovery*.db", "*.scanidx"],
    )


@pytest.fixture
def test_config(temp_dir, test_targets):
    """Create a test configuration rooted in a temp directory."""
    config = Config(config_dir=temp_dir, cache_dir=temp_dir / "cache")
    config.targets = test_targets
    config.ensure_directories()
    return config


@pytest.fixture
def fake_services():
    return FakeServiceControl({
        "GamingServices": StartupMode.AUTOMATIC,
        "GamingServicesNet": StartupMode.AUTOMATIC,
        "XblAuthManager": StartupMode.MANUAL,
        "XboxNetApiSvc": StartupMode.AUTOMATIC,
    })


@pytest.fixture
def fake_registry():
    # The HKLM key exists with an unrelated value; the HKCU key does not
    return FakeKeyValueStore({
        HKLM_DISCOVERY: {"LastScanDrive": "D:", "EnableLibraryScan": 1},
    })


@pytest.fixture
def fake_tasks():
    return FakeTaskScheduler({
        ("GameDiscoveryRefresh", "\\Microsoft\\GamingServices\\"): "Ready",
        ("LibraryScanDaily", XBOX_APP_PATH): "Ready",
        ("LibraryScanLogon", XBOX_APP_PATH): "Running",
        ("LibraryScanWeekly", XBOX_APP_PATH): "Disabled",
        ("GameDiscoveryLegacy", "\\Microsoft\\GamingServices\\"): "Disabled",
        ("XblGameSaveTask", "\\Microsoft\\XblGameSave\\"): "Ready",
    })


@pytest.fixture
def fake_accessors(fake_services, fake_registry, fake_tasks):
    return Accessors(services=fake_services, registry=fake_registry, tasks=fake_tasks)
