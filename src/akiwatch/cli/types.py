"""Type definitions for the CLI module."""

from pathlib import Path
from typing import Any, Optional

from ..config import AppSettings


class CommandResult:
    """Result of a CLI command execution."""

    def __init__(
        self,
        success: bool,
        message: str = "",
        data: Optional[dict[str, Any]] = None,
        exit_code: int = 0,
    ):
        self.success = success
        self.message = message
        self.data = data or {}
        self.exit_code = exit_code or (0 if success else 1)

    def __bool__(self) -> bool:
        return self.success


class CLIContext:
    """Context object for CLI commands."""

    def __init__(
        self,
        settings: AppSettings,
        config_file: Optional[Path] = None,
        status_file: Optional[Path] = None,
        verbose: bool = False,
    ):
        self.settings = settings
        self.config_file = Path(config_file or settings.config_file)
        self.status_file = Path(status_file or settings.status_file)
        self.verbose = verbose
