"""Configuration management for ScanQuell.

This module handles loading, saving, and validating configuration
from JSON files and environment variables. The lists of services,
registry locations, flags and task patterns the tool touches live here
as plain data so they can be swapped out in tests.
"""

import json
import os
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any

# Default paths
DEFAULT_CONFIG_DIR = Path(os.environ.get("APPDATA", "~")) / "ScanQuell"
DEFAULT_CONFIG_FILE = "config.json"
DEFAULT_SNAPSHOTS_DIR = "snapshots"
DEFAULT_LOGS_DIR = "logs"
DEFAULT_CACHE_DIR = (
    Path(os.environ.get("LOCALAPPDATA", "~"))
    / "Packages"
    / "Microsoft.GamingApp_8wekyb3d8bbwe"
    / "LocalCache"
)


@dataclass(frozen=True)
class TaskPattern:
    """Glob patterns selecting scheduled tasks.

    A task matches when its name matches ``name_pattern`` or its
    folder path matches ``path_pattern``.
    """

    name_pattern: str
    path_pattern: str


@dataclass
class SuppressionTargets:
    """Resources touched by the mutation operations."""

    primary_service: str = "GamingServices"
    helper_service: str = "GamingServicesNet"
    extended_services: list[str] = field(
        default_factory=lambda: ["XblAuthManager", "XboxNetApiSvc", "DiagTrack"]
    )
    registry_locations: list[str] = field(
        default_factory=lambda: [
            r"HKLM\SOFTWARE\Microsoft\GamingServices\Discovery",
            r"HKCU\Software\Microsoft\GamingApp\Discovery",
        ]
    )
    flag_names: list[str] = field(
        default_factory=lambda: ["EnableLibraryScan", "EnableDriveScan", "EnableAutoImport"]
    )
    task_patterns: list[TaskPattern] = field(
        default_factory=lambda: [
            TaskPattern("*GameDiscovery*", "\\Microsoft\\GamingServices\\*"),
            TaskPattern("*LibraryScan*", "\\Microsoft\\XboxApp\\*"),
        ]
    )
    cache_patterns: list[str] = field(
        default_factory=lambda: ["*discovery*.db", "*librarycache*", "*.scanidx"]
    )

    def to_dict(self) -> dict[str, Any]:
        """Convert targets to a JSON-friendly dictionary."""
        return {
            "primary_service": self.primary_service,
            "helper_service": self.helper_service,
            "extended_services": list(self.extended_services),
            "registry_locations": list(self.registry_locations),
            "flag_names": list(self.flag_names),
            "task_patterns": [
                {"name": p.name_pattern, "path": p.path_pattern}
                for p in self.task_patterns
            ],
            "cache_patterns": list(self.cache_patterns),
        }

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> "SuppressionTargets":
        """Create targets from a dictionary, keeping defaults for missing keys."""
        targets = cls()
        targets.primary_service = data.get("primary_service", targets.primary_service)
        targets.helper_service = data.get("helper_service", targets.helper_service)
        targets.extended_services = data.get("extended_services", targets.extended_services)
        targets.registry_locations = data.get("registry_locations", targets.registry_locations)
        targets.flag_names = data.get("flag_names", targets.flag_names)
        if "task_patterns" in data:
            targets.task_patterns = [
                TaskPattern(p.get("name", ""), p.get("path", ""))
                for p in data["task_patterns"]
            ]
        targets.cache_patterns = data.get("cache_patterns", targets.cache_patterns)
        return targets


@dataclass
class Config:
    """Main configuration container for ScanQuell.

    Attributes:
        config_dir: Base directory for all ScanQuell data
        snapshots_dir: Directory holding snapshot generations
        logs_dir: Directory for log files
        cache_dir: Application cache directory purged by --clear-cache
        command_timeout_seconds: Timeout for sc/reg/PowerShell commands
        targets: Services, keys, flags and patterns to act on
    """

    config_dir: Path = field(default_factory=lambda: DEFAULT_CONFIG_DIR.expanduser())
    snapshots_dir: Path = field(default_factory=lambda: Path(DEFAULT_SNAPSHOTS_DIR))
    logs_dir: Path = field(default_factory=lambda: Path(DEFAULT_LOGS_DIR))
    cache_dir: Path = field(default_factory=lambda: DEFAULT_CACHE_DIR.expanduser())
    command_timeout_seconds: int = 60

    targets: SuppressionTargets = field(default_factory=SuppressionTargets)

    def __post_init__(self) -> None:
        """Resolve relative paths to absolute paths."""
        if not self.snapshots_dir.is_absolute():
            self.snapshots_dir = self.config_dir / self.snapshots_dir
        if not self.logs_dir.is_absolute():
            self.logs_dir = self.config_dir / self.logs_dir

    def ensure_directories(self) -> None:
        """Create all required directories if they don't exist."""
        for directory in [self.config_dir, self.snapshots_dir, self.logs_dir]:
            directory.mkdir(parents=True, exist_ok=True)

    def to_dict(self) -> dict[str, Any]:
        """Convert configuration to dictionary for JSON serialization."""
        return {
            "config_dir": str(self.config_dir),
            "snapshots_dir": str(self.snapshots_dir),
            "logs_dir": str(self.logs_dir),
            "cache_dir": str(self.cache_dir),
            "command_timeout_seconds": self.command_timeout_seconds,
            "targets": self.targets.to_dict(),
        }

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> "Config":
        """Create configuration from dictionary."""
        config = cls()

        if "config_dir" in data:
            config.config_dir = Path(data["config_dir"])
            # Re-anchor the defaults under the new base directory
            config.snapshots_dir = Path(DEFAULT_SNAPSHOTS_DIR)
            config.logs_dir = Path(DEFAULT_LOGS_DIR)
        if "snapshots_dir" in data:
            config.snapshots_dir = Path(data["snapshots_dir"])
        if "logs_dir" in data:
            config.logs_dir = Path(data["logs_dir"])
        if "cache_dir" in data:
            config.cache_dir = Path(data["cache_dir"]).expanduser()

        config.command_timeout_seconds = data.get("command_timeout_seconds", 60)

        if "targets" in data:
            config.targets = SuppressionTargets.from_dict(data["targets"])

        # Re-run post_init to resolve paths
        config.__post_init__()

        return config


def get_config_path(config_path: Path | None = None) -> Path:
    """Resolve the config file path, falling back to the default location."""
    if config_path is None:
        return DEFAULT_CONFIG_DIR.expanduser() / DEFAULT_CONFIG_FILE
    return config_path


def load_config(config_path: Path | None = None) -> Config:
    """Load configuration from file.

    Args:
        config_path: Path to config file. If None, uses default location.

    Returns:
        Config object with loaded settings.

    Raises:
        json.JSONDecodeError: If config file contains invalid JSON.
    """
    config_path = get_config_path(config_path)

    if not config_path.exists():
        # Return default config if no config file exists
        return Config()

    with open(config_path, encoding="utf-8") as f:
        data = json.load(f)

    return Config.from_dict(data)


def save_config(config: Config, config_path: Path | None = None) -> None:
    """Save configuration to file.

    Args:
        config: Config object to save.
        config_path: Path to config file. If None, uses default location.
    """
    if config_path is None:
        config_path = config.config_dir / DEFAULT_CONFIG_FILE

    config_path.parent.mkdir(parents=True, exist_ok=True)

    with open(config_path, "w", encoding="utf-8") as f:
        json.dump(config.to_dict(), f, indent=2)
