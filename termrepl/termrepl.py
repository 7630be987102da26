"""
termrepl Main Module.

This module serves as the main entry point for termrepl, an interactive
terminal front end for a scripting language runtime.

Features:
- Interactive REPL with persistent history, reverse search (Ctrl-R) and
  context-aware completion (Tab)
- Long-running statements evaluate in the background; keystrokes are
  relayed to the running program and Ctrl-C cancels it
- Non-interactive execution of piped scripts or a single --command

Usage:
    Run this module as a standalone script to start the REPL.

Examples:
    Start interactive REPL:
        $ termrepl

    Single statement mode:
        $ termrepl --command "sum(range(10))"
        $ echo "print('hello')" | termrepl
        $ termrepl < script.py

    Keep a different history:
        $ termrepl --history-file ~/.config/termrepl/work_history --history-lines 200

Note:
    Input priority order:
    1. stdin (if available)
    2. --command argument (if provided)
    3. interactive REPL (default)
"""

from argparse import Namespace, ArgumentParser, ArgumentDefaultsHelpFormatter
from termrepl.config.settings import appsettings, settings_override
from termrepl.lib.repl import repl_do, script_run
from termrepl.lib.input import mode_detect, input_readStdin
from termrepl.models.dataModel import InputMode
import asyncio
from rich.console import Console
from termrepl.lib.log import LOG, log_sinkSet
import sys
from typing import Final

__version__: Final[str] = "0.1.0"

console: Final[Console] = Console()

# Define the argument parser
parser: Final[ArgumentParser] = ArgumentParser(
    description="An interactive terminal front end for a scripting language runtime.",
    formatter_class=ArgumentDefaultsHelpFormatter,
)
parser.add_argument(
    "-c", "--command", type=str, help="Run a single statement and exit"
)
parser.add_argument("--history-file", type=str, help="Where to keep the history")
parser.add_argument(
    "--history-lines", type=int, help="How many history entries to keep"
)
parser.add_argument(
    "--debug", action="store_true", help="Show session state under the input line"
)
parser.add_argument(
    "-V", "--version", action="version", version=f"%(prog)s {__version__}"
)


async def async_main(options: Namespace) -> int:
    """Asynchronous main function handling all input modes.

    Args:
        options: Parsed command-line arguments

    Returns:
        int: Process exit code

    Note:
        Handles three input modes in priority order:
        1. stdin content
        2. --command argument
        3. interactive REPL
    """
    try:
        settings_override(appsettings, options)
        if appsettings.logFile:
            log_sinkSet(appsettings.logFile)

        # Detect input mode
        mode: InputMode = await mode_detect(options.command)

        # Process based on mode
        if mode.has_stdin:
            source: str = await input_readStdin()
            return script_run(source)

        if mode.command:
            return script_run(mode.command)

        await repl_do(appsettings)
        return 0

    except Exception as e:
        LOG(f"Unhandled exception in async_main: {e}")
        console.print(f"[bold red]An unexpected error occurred: {e}[/bold red]")
        return 1


def main(argv: list[str] | None = None) -> None:
    """Main entry point.

    Args:
        argv: Command-line arguments, sys.argv[1:] when None

    Note:
        Parses arguments, runs the selected input mode and exits with its
        status
    """
    options: Namespace = parser.parse_args(argv)

    try:
        sys.exit(asyncio.run(async_main(options)))
    except KeyboardInterrupt:
        console.print("\n[bold cyan]Program interrupted by user. Exiting.[/bold cyan]")


if __name__ == "__main__":
    main()
