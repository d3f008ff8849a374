"""Shared fixtures for integration tests.

All integration tests require Windows and are skipped on other platforms.
"""

import sys

import pytest

# Skip entire directory on non-Windows
pytestmark = pytest.mark.skipif(
    sys.platform != "win32",
    reason="Integration tests require Windows",
)


@pytest.fixture
def real_config():
    """Create a real Config pointing to a temporary directory."""
    import tempfile
    from pathlib import Path

    from scanquell.core.config import Config

    with tempfile.TemporaryDirectory(prefix="scanquell_test_") as tmpdir:
        config = Config(config_dir=Path(tmpdir), cache_dir=Path(tmpdir) / "cache")
        config.ensure_directories()
        yield config


@pytest.fixture
def is_admin():
    """Check if the test is running with admin privileges."""
    from scanquell.system import is_elevated

    return is_elevated()


@pytest.fixture
def scratch_key():
    """A throwaway HKCU key, removed after the test."""
    from scanquell.system import KeyValueStore

    path = r"HKCU\Software\ScanQuellTest\Discovery"
    store = KeyValueStore()
    yield path
    store.delete_subtree(r"HKCU\Software\ScanQuellTest")
