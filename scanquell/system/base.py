"""Base class for resource accessors.

Accessors shell out to sc.exe, reg.exe and PowerShell. Every command
goes through the runners here, which never raise: timeouts, missing
executables and OS errors come back as a failed result dict.
"""

import logging
import os
import subprocess
from typing import Any

logger = logging.getLogger("scanquell.system.base")


def ps_quote(value: str) -> str:
    """Quote a value as a PowerShell single-quoted string literal."""
    return "'" + value.replace("'", "''") + "'"


class BaseAccessor:
    """Shared command plumbing for the resource accessors.

    Attributes:
        dry_run: If True, mutating calls are logged but not executed
        command_timeout: Timeout in seconds for each command
    """

    def __init__(self, dry_run: bool = False, command_timeout: int = 60) -> None:
        """Initialize the accessor.

        Args:
            dry_run: If True, simulate mutating calls
            command_timeout: Timeout in seconds for subprocess commands
        """
        self.dry_run = dry_run
        self.command_timeout = command_timeout
        self._is_windows = os.name == "nt"

    def _run_powershell(self, command: str) -> dict[str, Any]:
        """Run a PowerShell command."""
        return self._run(["powershell.exe", "-NoProfile", "-Command", command])

    def _run_command(self, args: list[str]) -> dict[str, Any]:
        """Run an executable with arguments (sc.exe, reg.exe, schtasks.exe)."""
        return self._run(args)

    def _run(self, args: list[str]) -> dict[str, Any]:
        if not self._is_windows:
            return {"success": False, "output": "", "error": "Not Windows", "returncode": None}

        try:
            result = subprocess.run(
                args,
                capture_output=True,
                text=True,
                timeout=self.command_timeout,
                creationflags=(
                    subprocess.CREATE_NO_WINDOW if hasattr(subprocess, "CREATE_NO_WINDOW") else 0
                ),
            )

            return {
                "success": result.returncode == 0,
                "output": result.stdout.strip(),
                "error": (result.stderr.strip() or result.stdout.strip())
                if result.returncode != 0
                else "",
                "returncode": result.returncode,
            }

        except subprocess.TimeoutExpired:
            return {
                "success": False,
                "output": "",
                "error": f"Command timed out after {self.command_timeout}s",
                "returncode": None,
            }
        except OSError as e:
            logger.debug(f"Could not run {args[0]}: {e}")
            return {"success": False, "output": "", "error": str(e), "returncode": None}

    def _log_dry_run(self, description: str) -> None:
        logger.info(f"[DRY RUN] Would {description}")
