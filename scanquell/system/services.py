"""Service Control accessor - query and change Windows service startup modes.

Startup mode is read and written with sc.exe. When sc.exe cannot be
run at all, the startup mode is looked up through WMI instead.
"""

import logging
import re
from typing import Any

from scanquell.core.models import AccessResult, StartupMode
from scanquell.system.base import BaseAccessor, ps_quote

logger = logging.getLogger("scanquell.system.services")

# Win32 error returned by the SCM for an unknown service name
ERROR_SERVICE_DOES_NOT_EXIST = 1060

_START_TYPE_RE = re.compile(r"START_TYPE\s*:\s*\d+\s+(\S+)(\s+\(DELAYED\))?", re.IGNORECASE)


class ServiceControl(BaseAccessor):
    """Accessor for Windows service configuration.

    Example:
        services = ServiceControl()
        result = services.get_startup_mode("GamingServicesNet")
        if result.ok and result.value != StartupMode.MANUAL:
            services.set_startup_mode("GamingServicesNet", StartupMode.MANUAL)
    """

    def get_startup_mode(self, name: str) -> AccessResult:
        """Get the configured startup mode of a service.

        Args:
            name: Service name

        Returns:
            OK with a StartupMode, ABSENT if the service does not exist,
            FAILED if the mode could not be determined.
        """
        result = self._run_command(["sc.exe", "qc", name])

        if result["success"]:
            mode = self._parse_start_type(result["output"])
            if mode is None:
                return AccessResult.failure(f"Unrecognized start type for {name}")
            return AccessResult.success(mode)

        if self._is_missing_service(result):
            return AccessResult.missing()

        if result["returncode"] is None:
            # sc.exe itself could not run; ask WMI
            return self._get_startup_mode_wmi(name)

        return AccessResult.failure(result["error"] or f"sc qc {name} failed")

    def set_startup_mode(self, name: str, mode: StartupMode) -> AccessResult:
        """Set the startup mode of a service.

        Args:
            name: Service name
            mode: New startup mode

        Returns:
            OK, ABSENT if the service does not exist, or FAILED.
        """
        if self.dry_run:
            self._log_dry_run(f"set {name} startup mode to {mode.value}")
            return AccessResult.success()

        result = self._run_command(["sc.exe", "config", name, "start=", mode.sc_value])
        if result["success"]:
            logger.debug(f"Set {name} startup mode to {mode.value}")
            return AccessResult.success()
        if self._is_missing_service(result):
            return AccessResult.missing()
        return AccessResult.failure(result["error"] or f"sc config {name} failed")

    def stop(self, name: str) -> AccessResult:
        """Stop a service if it is running.

        Best-effort: callers record a failure but carry on.
        """
        if self.dry_run:
            self._log_dry_run(f"stop service {name}")
            return AccessResult.success()

        result = self._run_powershell(
            f"Stop-Service -Name {ps_quote(name)} -Force -ErrorAction Stop"
        )
        if result["success"]:
            return AccessResult.success()
        if "Cannot find any service" in result["error"]:
            return AccessResult.missing()
        return AccessResult.failure(result["error"] or f"Stop-Service {name} failed")

    def _parse_start_type(self, output: str) -> StartupMode | None:
        """Parse the START_TYPE line of ``sc qc`` output."""
        match = _START_TYPE_RE.search(output)
        if not match:
            return None
        token = match.group(1)
        if match.group(2):
            token += "_DELAYED"
        return StartupMode.parse(token)

    def _is_missing_service(self, result: dict[str, Any]) -> bool:
        return (
            result["returncode"] == ERROR_SERVICE_DOES_NOT_EXIST
            or str(ERROR_SERVICE_DOES_NOT_EXIST) in result["error"]
        )

    def _get_startup_mode_wmi(self, name: str) -> AccessResult:
        """Get a service's startup mode via WMI (fallback method)."""
        try:
            import wmi

            c = wmi.WMI()
            matches = c.Win32_Service(Name=name)
            if not matches:
                return AccessResult.missing()

            mode = StartupMode.parse(matches[0].StartMode)
            if mode is None:
                return AccessResult.failure(
                    f"Unrecognized start mode for {name}: {matches[0].StartMode}"
                )
            return AccessResult.success(mode)

        except ImportError:
            logger.debug("WMI module not available")
            return AccessResult.failure("sc.exe unavailable and WMI module not installed")
        except Exception as e:
            logger.error(f"Error querying {name} via WMI: {e}")
            return AccessResult.failure(str(e))
