"""Privilege check for the current process."""

import logging
import os

logger = logging.getLogger("scanquell.system.elevation")


def is_elevated() -> bool:
    """Check if the process runs with administrator rights.

    Returns:
        True if elevated (Administrator on Windows, root elsewhere)
    """
    if os.name == "nt":
        try:
            import ctypes

            return ctypes.windll.shell32.IsUserAnAdmin() != 0
        except (AttributeError, OSError) as e:
            logger.warning(f"Could not determine elevation: {e}")
            return False

    return hasattr(os, "geteuid") and os.geteuid() == 0
