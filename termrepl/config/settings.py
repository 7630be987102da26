"""
settings.py

This module provides application configuration management for the termrepl
application.

Features:
- Centralized application configuration using Pydantic settings
- Constants for application-wide use
- Command-line overrides applied on top of environment configuration

Usage:
Import appsettings for application configuration values.
"""

from argparse import Namespace
from pathlib import Path
from typing import Final
from appdirs import user_data_dir
from pydantic_settings import BaseSettings, SettingsConfigDict
from rich.console import Console

# Console instance for rich output
console: Final[Console] = Console()

# Set up the data directory and default history file using appdirs
DATA_DIR: Final[Path] = Path(user_data_dir("termrepl", ""))
HISTORY_FILE: Final[Path] = DATA_DIR / "history"
HISTORY_LENGTH: Final[int] = 1000

PROMPT_TEMPLATE: Final[str] = "⧐  "


class App(BaseSettings):
    """
    Application settings model.

    Provides a centralized configuration for application behavior and features.
    Settings can be overridden through environment variables with TERMREPL_ prefix.

    Attributes:
        beQuiet: Suppress detailed logging output
        debug: Render the session state below the input line
        historyFile: Where submitted lines are persisted
        historyMaxLines: How many of the most recent lines are persisted
        promptTemplate: Prompt text; may contain {user}, {host} and {dir}
        logFile: Optional file receiving log records instead of stderr
    """

    beQuiet: bool = True
    debug: bool = False

    historyFile: Path = HISTORY_FILE
    historyMaxLines: int = HISTORY_LENGTH

    promptTemplate: str = PROMPT_TEMPLATE

    logFile: Path | None = None

    model_config = SettingsConfigDict(
        env_prefix="TERMREPL_",  # Environment variables with this prefix override settings
        case_sensitive=False,  # Allow case-insensitive environment variables
        extra="allow",  # Allow additional attributes not defined in the model
    )


def settings_override(settings: App, options: Namespace) -> App:
    """
    Apply command-line options on top of environment-derived settings.

    Only options that were actually given replace the configured value.

    Args:
        settings: The settings to start from
        options: Parsed command-line arguments

    Returns:
        App: The settings with overrides applied
    """
    if getattr(options, "history_file", None):
        settings.historyFile = Path(options.history_file).expanduser()
    if getattr(options, "history_lines", None) is not None:
        settings.historyMaxLines = options.history_lines
    if getattr(options, "debug", False):
        settings.debug = True
    return settings


# Create the application settings instance
appsettings: Final[App] = App()
