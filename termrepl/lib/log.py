"""
Debug logging for termrepl, built on Loguru.

`LOG` is the only logging entry point used by the rest of the package. It
records at debug level, attributed to the caller, and stays silent while
`appsettings.beQuiet` is set (the default), so an interactive session shows
nothing but the REPL itself.

Records go to stderr unless `log_sinkSet` points them at a file. Use a file
when debugging the interactive REPL: stderr output would land in the middle
of the live input line.

Example:
    from termrepl.lib.log import LOG
    LOG(f"Loaded {n} history entries")

Environment:
- `TERMREPL_BEQUIET=False` turns debug records on.
- `TERMREPL_LOGFILE=<path>` sends them to a file.
"""

from loguru import logger
from pathlib import Path
from typing import Any
import sys

# Create a distinct logger instance for the app
app_logger = logger.bind(app="TERMREPL")

# Configure the app-specific logger
logger_format = (
    "<green>{time:YYYY-MM-DD HH:mm:ss}</green> │ "
    "<level>{level: <5}</level> │ "
    "<yellow>{name: >28}</yellow>::"
    "<cyan>{function: <30}</cyan> @ "
    "<cyan>{line: <4}</cyan> ║ "
    "<level>{message}</level>"
)

app_logger.remove()  # Remove any default handlers
_sink_id: int = app_logger.add(sys.stderr, format=logger_format)


def log_sinkSet(path: Path | str) -> None:
    """
    Route all application log records to a file.

    The REPL owns the terminal while it runs, so records written to stderr
    would be interleaved with the live input line.

    :param path: File that receives the log records (created if missing).
    """
    global _sink_id
    app_logger.remove(_sink_id)
    _sink_id = app_logger.add(str(path), format=logger_format, colorize=False)


def LOG(*args: Any, **kwargs: Any) -> None:
    """
    Emit a debug record unless `beQuiet` is set.

    The settings are looked up on every call, so a flag changed at runtime
    (e.g. by a test) takes effect immediately.

    :param args: Message and format arguments, as for `logger.debug`.
    :param kwargs: Extra record fields.
    """
    try:
        from termrepl.config.settings import appsettings

        if not appsettings.beQuiet:
            app_logger.opt(depth=1).debug(*args, **kwargs)
    except Exception as e:
        print(f"Logging error: {e}")  # Fallback to standard output on failure
