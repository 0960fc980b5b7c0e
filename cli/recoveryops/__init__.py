"""Recovery Ops CLI.

Command-line interface for planning and running recovery operations.
"""

__version__ = "0.1.0"

from cli.recoveryops.cli import app, main

__all__ = ["__version__", "app", "main"]
