"""Tests for configuration management."""

import json
from pathlib import Path
from tempfile import TemporaryDirectory

from scanquell.core.config import (
    Config,
    SuppressionTargets,
    TaskPattern,
    get_config_path,
    load_config,
    save_config,
)


class TestSuppressionTargets:
    """Tests for SuppressionTargets."""

    def test_default_values(self):
        """Test default target values."""
        targets = SuppressionTargets()

        assert targets.primary_service == "GamingServices"
        assert targets.helper_service == "GamingServicesNet"
        assert "XblAuthManager" in targets.extended_services
        assert len(targets.registry_locations) == 2
        assert "EnableLibraryScan" in targets.flag_names
        assert TaskPattern("*LibraryScan*", "\\Microsoft\\XboxApp\\*") in targets.task_patterns

    def test_from_dict_keeps_missing_defaults(self):
        """Keys not in the file keep their defaults."""
        targets = SuppressionTargets.from_dict({"helper_service": "OtherNet"})

        assert targets.helper_service == "OtherNet"
        assert targets.primary_service == "GamingServices"
        assert len(targets.task_patterns) == 2

    def test_task_patterns_round_trip(self):
        targets = SuppressionTargets(task_patterns=[TaskPattern("*Scan*", "")])

        restored = SuppressionTargets.from_dict(targets.to_dict())

        assert restored.task_patterns == [TaskPattern("*Scan*", "")]


class TestConfig:
    """Tests for main Config class."""

    def test_paths_resolved_under_config_dir(self):
        """Test that relative paths are resolved."""
        with TemporaryDirectory() as tmpdir:
            config = Config(config_dir=Path(tmpdir))

            assert config.snapshots_dir == Path(tmpdir) / "snapshots"
            assert config.logs_dir == Path(tmpdir) / "logs"

    def test_ensure_directories(self):
        """Test that ensure_directories creates required directories."""
        with TemporaryDirectory() as tmpdir:
            config = Config(config_dir=Path(tmpdir) / "scanquell")
            config.ensure_directories()

            assert config.config_dir.exists()
            assert config.snapshots_dir.exists()
            assert config.logs_dir.exists()

    def test_to_dict(self):
        """Test conversion to dictionary."""
        config = Config()
        data = config.to_dict()

        assert "config_dir" in data
        assert "snapshots_dir" in data
        assert data["command_timeout_seconds"] == 60
        assert data["targets"]["primary_service"] == "GamingServices"

    def test_from_dict_reanchors_defaults(self):
        """A new config_dir carries the default sub-directories with it."""
        with TemporaryDirectory() as tmpdir:
            config = Config.from_dict({"config_dir": tmpdir})

            assert config.snapshots_dir == Path(tmpdir) / "snapshots"
            assert config.logs_dir == Path(tmpdir) / "logs"

    def test_from_dict(self):
        """Test creation from dictionary."""
        data = {
            "command_timeout_seconds": 15,
            "targets": {"extended_services": ["DiagTrack"]},
        }

        config = Config.from_dict(data)

        assert config.command_timeout_seconds == 15
        assert config.targets.extended_services == ["DiagTrack"]


class TestConfigIO:
    """Tests for config file I/O."""

    def test_save_and_load_config(self):
        """Test saving and loading configuration."""
        with TemporaryDirectory() as tmpdir:
            config_path = Path(tmpdir) / "config.json"

            config = Config(config_dir=Path(tmpdir), cache_dir=Path(tmpdir) / "cache")
            config.command_timeout_seconds = 30
            config.targets.flag_names = ["EnableLibraryScan"]

            save_config(config, config_path)
            assert config_path.exists()

            loaded = load_config(config_path)

            assert loaded.command_timeout_seconds == 30
            assert loaded.cache_dir == Path(tmpdir) / "cache"
            assert loaded.snapshots_dir == config.snapshots_dir
            assert loaded.targets.flag_names == ["EnableLibraryScan"]

    def test_load_nonexistent_config(self):
        """Test loading a config file that doesn't exist returns defaults."""
        config = load_config(Path("/nonexistent/path/config.json"))

        assert config.targets.helper_service == "GamingServicesNet"

    def test_saved_file_is_json(self):
        with TemporaryDirectory() as tmpdir:
            config_path = Path(tmpdir) / "config.json"
            save_config(Config(config_dir=Path(tmpdir)), config_path)

            with open(config_path) as f:
                data = json.load(f)
            assert "targets" in data


class TestGetConfigPath:
    """Tests for get_config_path function."""

    def test_explicit_path_kept(self):
        assert get_config_path(Path("/tmp/x/config.json")) == Path("/tmp/x/config.json")

    def test_default_location(self):
        path = get_config_path()
        assert path.name == "config.json"
        assert path.parent.name == "ScanQuell"
