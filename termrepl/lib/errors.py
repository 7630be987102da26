"""Exceptions raised by termrepl."""


class TermreplError(Exception):
    """Base class for termrepl errors."""


class HistoryPersistenceError(TermreplError):
    """The history file could not be written.

    Attributes:
        path: The history file
        reason: Why the write failed
    """

    def __init__(self, path: str, reason: str) -> None:
        super().__init__(f"Cannot write to history file ({path}): {reason}")
        self.path: str = path
        self.reason: str = reason
