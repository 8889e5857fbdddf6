"""Command-line interface components."""

from .main import cli
from .types import CLIContext, CommandResult

__all__ = [
    "cli",
    "CLIContext",
    "CommandResult",
]
