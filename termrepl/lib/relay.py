"""
Keystroke relay into a running program's standard input.

While the runtime executes a statement the terminal belongs to the REPL, so a
program reading its stdin would never see the user's typing. The REPL writes
relayed keystrokes into a `StdinRelay` and the runtime reads lines back out of
it from the evaluation thread.

One relay serves every evaluation of a session, but only the newest one may
read from it. `open` hands out a generation number to each new evaluation,
whose thread registers it with `reader_bind`; `revoke` retires it on cancel.
A reader whose generation is no longer current sees EOF, so a cancelled
`input()` can never take a line typed for the next statement.
"""

import threading
from typing import Self


class StdinRelay:
    """Thread-safe byte buffer with a blocking line reader.

    `write` is called from the event loop, `readline` from the evaluation
    thread. Closing the relay wakes a blocked reader, which then sees EOF.
    """

    def __init__(self: Self) -> None:
        self._buffer: bytearray = bytearray()
        self._ready: threading.Condition = threading.Condition()
        self._closed: bool = False
        self._generation: int = 0
        self._reader: threading.local = threading.local()

    @property
    def closed(self: Self) -> bool:
        return self._closed

    def open(self: Self) -> int:
        """Start serving a new evaluation.

        Anything typed but not yet read is dropped and every reader bound to
        an earlier generation is released with EOF.

        Returns:
            int: Generation to pass to `reader_bind` and `revoke`
        """
        with self._ready:
            self._generation += 1
            self._buffer.clear()
            self._ready.notify_all()
            return self._generation

    def reader_bind(self: Self, generation: int) -> None:
        """Tie the calling thread's reads to an evaluation's generation."""
        self._reader.generation = generation

    def revoke(self: Self, generation: int) -> None:
        """Release a cancelled evaluation's reader and drop its pending input."""
        with self._ready:
            if generation != self._generation:
                return
            self._generation += 1
            self._buffer.clear()
            self._ready.notify_all()

    def _stale(self: Self) -> bool:
        generation: int | None = getattr(self._reader, "generation", None)
        return generation is not None and generation != self._generation

    def write(self: Self, data: bytes) -> int:
        """Append bytes for the reader.

        Args:
            data: Raw bytes to forward

        Returns:
            int: Number of bytes accepted (0 once closed)
        """
        with self._ready:
            if self._closed:
                return 0
            self._buffer.extend(data)
            self._ready.notify_all()
        return len(data)

    def readline(self: Self) -> bytes:
        """Block until a full line (or EOF) is available and return it.

        Returns:
            bytes: The line including its trailing newline, or the remaining
            bytes without one once the relay is closed; b"" at EOF or when
            the calling thread's evaluation was revoked.
        """
        with self._ready:
            while b"\n" not in self._buffer and not self._closed and not self._stale():
                self._ready.wait()
            if self._stale():
                return b""
            end: int = self._buffer.find(b"\n")
            end = len(self._buffer) if end < 0 else end + 1
            line: bytes = bytes(self._buffer[:end])
            del self._buffer[:end]
            return line

    def close(self: Self) -> None:
        with self._ready:
            self._closed = True
            self._ready.notify_all()
