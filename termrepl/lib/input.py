"""
Input handling for termrepl.

This module turns terminal input into events for the session controller and
decides how the program was invoked.

The module handles:
- prompt_toolkit key names and key presses to `KeyEvent`
- Bracketed paste
- Input mode detection (piped stdin, --command, interactive)
- Reading a whole script from stdin
"""

import sys
from typing import Final
from prompt_toolkit.key_binding.key_processor import KeyPressEvent
from termrepl.lib.log import LOG
from termrepl.models.dataModel import InputMode, Key, KeyEvent

# prompt_toolkit key names bound by the REPL and the key each one stands for.
KEY_NAMES: Final[dict[str, Key]] = {
    "enter": Key.ENTER,
    "tab": Key.TAB,
    "up": Key.UP,
    "down": Key.DOWN,
    "left": Key.LEFT,
    "right": Key.RIGHT,
    "home": Key.HOME,
    "end": Key.END,
    "backspace": Key.BACKSPACE,
    "delete": Key.DELETE,
    "escape": Key.ESCAPE,
    "c-c": Key.CTRL_C,
    "c-d": Key.CTRL_D,
    "c-l": Key.CTRL_L,
    "c-r": Key.CTRL_R,
}


def key_fromName(name: str) -> KeyEvent:
    """Event for one of the named keys in KEY_NAMES.

    Raises:
        KeyError: If the name is not bound by the REPL
    """
    return KeyEvent(key=KEY_NAMES[name])


def key_fromPress(event: KeyPressEvent) -> KeyEvent | None:
    """Event for a key press that has no named binding.

    Returns:
        KeyEvent with the typed characters, or None for unprintable input
        (unbound control keys)
    """
    data: str = event.data
    if not data or not data.isprintable():
        return None
    return KeyEvent(key=Key.RUNES, runes=data)


def key_fromPaste(data: str) -> KeyEvent | None:
    """Event for pasted text; the line is single-line, so breaks become spaces."""
    text: str = data.replace("\r\n", " ").replace("\n", " ").replace("\r", " ")
    if not text:
        return None
    return KeyEvent(key=Key.RUNES, runes=text)


async def mode_detect(command: str | None = None) -> InputMode:
    """Choose between running a piped script, one statement, or the REPL.

    A script piped into termrepl wins over `--command`, which wins over the
    interactive REPL. When stdin cannot be inspected at all (e.g. it was
    closed by the parent process) it counts as not piped.

    Args:
        command: Statement given with --command, if any

    Returns:
        InputMode for `async_main` to dispatch on
    """
    try:
        piped: bool = not sys.stdin.isatty()
    except (AttributeError, ValueError, OSError) as e:
        LOG(f"stdin not inspectable, treating it as a terminal: {e}")
        piped = False
    if piped:
        return InputMode(has_stdin=True, use_repl=False)
    if command:
        return InputMode(command=command, use_repl=False)
    return InputMode()


async def input_readStdin() -> str:
    """Read a whole script from stdin.

    Trailing whitespace is dropped; leading indentation is kept because it is
    part of the program.

    Raises:
        IOError: If stdin cannot be read or holds nothing but whitespace
    """
    try:
        source: str = sys.stdin.read()
    except (OSError, UnicodeDecodeError) as e:
        LOG(f"Cannot read script from stdin: {e}")
        raise IOError(f"Failed to read from stdin: {e}") from e
    if not source.strip():
        raise IOError("Empty input from stdin")
    return source.rstrip()
