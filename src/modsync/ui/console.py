"""
Centralized console configuration for modsync.

- console: Main console for command output
- error_console: Diagnostics and log output (writes to stderr)
"""

from rich.console import Console

console = Console(color_system="auto")

error_console = Console(
    stderr=True,
    style="bold red",
)
