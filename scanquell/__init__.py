"""ScanQuell - stop game-library discovery scans without breaking Gaming Services."""

__version__ = "0.1.0"
