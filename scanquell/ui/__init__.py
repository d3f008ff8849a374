"""User interface modules.

This package contains the command-line interface: report formatters
and the apply/undo command handlers.
"""
