"""
Persistent command history.

History is an ordered tuple of submitted lines, oldest first. It is appended to
in memory for the whole session and written to disk once, at quit.

File format:
    Newline-delimited UTF-8 text, one entry per line, most recent last.
    Only the `max_lines` most recent entries are kept, both on load and on
    save. Blank lines are ignored on load. Only `\n` separates entries, so
    Unicode separators such as U+2028 survive inside an entry.

Entries with embedded line breaks cannot be represented in this format; they
stay in the in-memory history but are left out of the file.
"""

from pathlib import Path
from typing import Final, Iterable
from termrepl.lib.errors import HistoryPersistenceError
from termrepl.lib.log import LOG

LINE_BREAKS: Final[tuple[str, ...]] = ("\n", "\r")


def history_clip(lines: Iterable[str], max_lines: int) -> list[str]:
    """Keep only the `max_lines` most recent entries."""
    entries: list[str] = list(lines)
    if max_lines <= 0:
        return []
    return entries[-max_lines:]


def history_append(history: tuple[str, ...], line: str) -> tuple[str, ...]:
    """Return history with `line` added at the end.

    Consecutive duplicates are kept: every submission is recorded.
    """
    return history + (line,)


def history_load(path: Path | str, max_lines: int) -> list[str]:
    """Read persisted history.

    Args:
        path: History file
        max_lines: Maximum number of entries to return

    Returns:
        list[str]: The most recent entries, oldest first; empty if the file
        does not exist or cannot be read
    """
    history_path: Path = Path(path)
    if not history_path.exists():
        return []
    try:
        text: str = history_path.read_text(encoding="utf-8")
    except (OSError, UnicodeDecodeError) as e:
        LOG(f"Cannot read history file {history_path}: {e}")
        return []
    # str.splitlines would also split on \x0b, \x1c, \x85, \u2028 and friends.
    entries: list[str] = [line.rstrip("\r") for line in text.split("\n")]
    return history_clip((line for line in entries if line), max_lines)


def history_save(path: Path | str, max_lines: int, lines: Iterable[str]) -> None:
    """Write history, replacing the file's previous content.

    Args:
        path: History file; parent directories are created
        max_lines: Maximum number of entries to write
        lines: Entries, oldest first

    Raises:
        HistoryPersistenceError: If the file cannot be written
    """
    history_path: Path = Path(path)
    storable: list[str] = []
    for line in lines:
        if any(brk in line for brk in LINE_BREAKS):
            LOG(f"Not persisting multi-line history entry: {line!r}")
            continue
        storable.append(line)

    entries: list[str] = history_clip(storable, max_lines)
    try:
        history_path.parent.mkdir(parents=True, exist_ok=True)
        history_path.write_text(
            "".join(f"{entry}\n" for entry in entries), encoding="utf-8"
        )
    except OSError as e:
        raise HistoryPersistenceError(str(history_path), e.strerror or str(e)) from e
    LOG(f"Saved {len(entries)} history entries to {history_path}")
