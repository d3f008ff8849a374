"""Key-Value Store accessor - export, import and edit registry keys.

Key paths use reg.exe syntax with short hive names, for example
``HKLM\\SOFTWARE\\Microsoft\\GamingServices\\Discovery``. Subtree
snapshots are the raw bytes of a ``reg export`` file.
"""

import logging
import os
import re
import tempfile
from pathlib import Path

from scanquell.core.models import AccessResult
from scanquell.system.base import BaseAccessor

logger = logging.getLogger("scanquell.system.registry")

HIVE_NAMES = {
    "HKLM": "HKEY_LOCAL_MACHINE",
    "HKCU": "HKEY_CURRENT_USER",
    "HKCR": "HKEY_CLASSES_ROOT",
    "HKU": "HKEY_USERS",
    "HKCC": "HKEY_CURRENT_CONFIG",
}

_VALUE_LINE_RE = re.compile(r'^"((?:[^"\\]|\\.)*)"\s*=')


def expand_hive(path: str) -> str:
    """Expand a short hive prefix (HKLM) to its full name."""
    hive, sep, rest = path.partition("\\")
    full = HIVE_NAMES.get(hive.upper(), hive)
    return f"{full}{sep}{rest}"


def decode_reg_export(blob: bytes) -> str:
    """Decode a .reg export; reg.exe writes UTF-16 with a BOM."""
    if blob.startswith(b"\xff\xfe") or blob.startswith(b"\xfe\xff"):
        return blob.decode("utf-16")
    return blob.decode("utf-8-sig", errors="replace")


def exported_value_names(blob: bytes, path: str) -> set[str]:
    """Get the value names stored directly under ``path`` in an export.

    Args:
        blob: Raw ``reg export`` output
        path: Key path whose own values are wanted (subkeys excluded)

    Returns:
        Set of value names; the default value is returned as "@".
    """
    header = f"[{expand_hive(path)}]".lower()
    names: set[str] = set()
    in_section = False

    for line in decode_reg_export(blob).splitlines():
        stripped = line.strip()
        if stripped.startswith("["):
            in_section = stripped.lower() == header
            continue
        if not in_section:
            continue
        if stripped.startswith("@="):
            names.add("@")
            continue
        match = _VALUE_LINE_RE.match(stripped)
        if match:
            names.add(match.group(1).replace('\\"', '"').replace("\\\\", "\\"))

    return names


class KeyValueStore(BaseAccessor):
    """Accessor for the Windows registry via reg.exe.

    Example:
        store = KeyValueStore()
        blob = store.export_subtree(r"HKCU\\Software\\Microsoft\\GamingApp")
        store.set_value(r"HKCU\\Software\\Microsoft\\GamingApp", "EnableLibraryScan", 0)
    """

    def key_exists(self, path: str) -> AccessResult:
        """Check whether a key exists (OK with True/False)."""
        result = self._run_command(["reg.exe", "query", path])
        if result["success"]:
            return AccessResult.success(True)
        if result["returncode"] == 1:
            return AccessResult.success(False)
        return AccessResult.failure(result["error"] or f"reg query {path} failed")

    def export_subtree(self, path: str) -> AccessResult:
        """Export a key and everything below it.

        Returns:
            OK with the export bytes, ABSENT if the key does not exist,
            or FAILED.
        """
        exists = self.key_exists(path)
        if not exists.ok:
            return exists
        if not exists.value:
            return AccessResult.missing()

        fd, tmp_name = tempfile.mkstemp(suffix=".reg", prefix="scanquell_")
        os.close(fd)
        tmp_path = Path(tmp_name)
        try:
            result = self._run_command(["reg.exe", "export", path, str(tmp_path), "/y"])
            if not result["success"]:
                return AccessResult.failure(result["error"] or f"reg export {path} failed")
            blob = tmp_path.read_bytes()
            if not blob:
                return AccessResult.failure(f"reg export {path} produced an empty file")
            return AccessResult.success(blob)
        except OSError as e:
            return AccessResult.failure(f"Could not read export of {path}: {e}")
        finally:
            tmp_path.unlink(missing_ok=True)

    def import_blob(self, blob: bytes) -> AccessResult:
        """Import a previously exported subtree."""
        if self.dry_run:
            self._log_dry_run(f"import a {len(blob)}-byte registry export")
            return AccessResult.success()

        fd, tmp_name = tempfile.mkstemp(suffix=".reg", prefix="scanquell_")
        tmp_path = Path(tmp_name)
        try:
            with os.fdopen(fd, "wb") as f:
                f.write(blob)
            result = self._run_command(["reg.exe", "import", str(tmp_path)])
            if result["success"]:
                return AccessResult.success()
            return AccessResult.failure(result["error"] or "reg import failed")
        except OSError as e:
            return AccessResult.failure(f"Could not stage registry import: {e}")
        finally:
            tmp_path.unlink(missing_ok=True)

    def set_value(self, path: str, name: str, int_value: int) -> AccessResult:
        """Write a REG_DWORD value, creating the key if needed."""
        if self.dry_run:
            self._log_dry_run(f"set {path}\\{name} = {int_value}")
            return AccessResult.success()

        result = self._run_command(
            ["reg.exe", "add", path, "/v", name, "/t", "REG_DWORD", "/d", str(int_value), "/f"]
        )
        if result["success"]:
            return AccessResult.success()
        return AccessResult.failure(result["error"] or f"reg add {path} /v {name} failed")

    def delete_value(self, path: str, name: str) -> AccessResult:
        """Delete one value; a value that is already gone counts as ABSENT."""
        if self.dry_run:
            self._log_dry_run(f"delete {path}\\{name}")
            return AccessResult.success()

        result = self._run_command(["reg.exe", "delete", path, "/v", name, "/f"])
        if result["success"]:
            return AccessResult.success()
        if result["returncode"] == 1:
            return AccessResult.missing()
        return AccessResult.failure(result["error"] or f"reg delete {path} /v {name} failed")

    def delete_subtree(self, path: str) -> AccessResult:
        """Delete a key and everything below it."""
        if self.dry_run:
            self._log_dry_run(f"delete key {path}")
            return AccessResult.success()

        exists = self.key_exists(path)
        if exists.ok and not exists.value:
            return AccessResult.missing()

        result = self._run_command(["reg.exe", "delete", path, "/f"])
        if result["success"]:
            return AccessResult.success()
        return AccessResult.failure(result["error"] or f"reg delete {path} failed")
