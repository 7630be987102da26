"""
dataModel.py

This module defines the data models and schemas used throughout the termrepl
application. The models leverage Pydantic for validation and type safety.

Features:
- Enum classes for session modes, keys, suggestion kinds and runtime value kinds.
- Key and evaluation events consumed by the session controller.
- Suggestion candidates and reverse-search state.
- Results exchanged with the language runtime.
- Input mode detection for the entry point.

Usage:
Import these models to validate and structure data used in the application.
"""

from enum import Enum, IntEnum
from typing import Any, Callable, Final
from pydantic import BaseModel, ConfigDict, Field
from termrepl.lib.inputline import InputLine

COMMENT_WIDTH: Final[int] = 50


class Mode(Enum):
    """
    Enum for the mode that currently owns keystrokes.
    """

    NORMAL = "normal"
    EVALUATING = "evaluating"
    SUGGESTING = "suggesting"
    SEARCHING = "searching"


class Key(Enum):
    """
    Enum for the keys the session controller distinguishes.

    RUNES carries literal characters in `KeyEvent.runes`.
    """

    RUNES = "runes"
    ENTER = "enter"
    TAB = "tab"
    UP = "up"
    DOWN = "down"
    LEFT = "left"
    RIGHT = "right"
    HOME = "home"
    END = "end"
    BACKSPACE = "backspace"
    DELETE = "delete"
    ESCAPE = "escape"
    CTRL_C = "ctrl+c"
    CTRL_D = "ctrl+d"
    CTRL_L = "ctrl+l"
    CTRL_R = "ctrl+r"


class SuggestionKind(IntEnum):
    """
    Kind of a completion candidate.

    Candidates are sorted descending by this ordinal, so functions are
    listed first and properties last.
    """

    PROPERTY = 0
    IDENTIFIER = 1
    FUNCTION = 2


class ValueKind(Enum):
    """
    Closed set of runtime value kinds the front end distinguishes.
    """

    NULL = "null"
    MAPPING = "mapping"
    OTHER = "other"


class RuntimeValue(BaseModel):
    """A value produced by the language runtime.

    Attributes:
        kind: Which of the distinguished kinds the value is
        native: The runtime's own representation
        entries: Key to value pairs, for MAPPING values only
    """

    model_config = ConfigDict(frozen=True, arbitrary_types_allowed=True)

    kind: ValueKind
    native: Any = None
    entries: dict[str, "RuntimeValue"] = Field(default_factory=dict)

    @classmethod
    def null(cls) -> "RuntimeValue":
        """The runtime-independent no-value sentinel."""
        return cls(kind=ValueKind.NULL)


RuntimeValue.model_rebuild()


class KeyEvent(BaseModel):
    """A keystroke delivered to the session.

    Attributes:
        key: Which key was pressed
        runes: Literal characters typed, for Key.RUNES
    """

    model_config = ConfigDict(frozen=True)

    key: Key
    runes: str = ""


class EvaluationResult(BaseModel):
    """Outcome of running one submitted statement.

    Attributes:
        output: The value the statement evaluated to
        succeeded: False when the runtime reports an error
        parse_errors: Syntax errors, in the order the parser reported them
        stdout: Text the program printed while this statement ran
    """

    model_config = ConfigDict(frozen=True)

    output: RuntimeValue
    succeeded: bool
    parse_errors: list[str] = Field(default_factory=list)
    stdout: str = ""


class EvaluationDone(BaseModel):
    """Result-ready event for one evaluation.

    Attributes:
        evaluation_id: Identifier of the evaluation that produced the result
        result: The result itself
    """

    model_config = ConfigDict(frozen=True)

    evaluation_id: str
    result: EvaluationResult


class SuggestionCandidate(BaseModel):
    """A completion candidate.

    Attributes:
        value: Text that replaces the token under completion
        comment: Documentation or printed value shown next to it
        kind: FUNCTION, IDENTIFIER or PROPERTY
    """

    model_config = ConfigDict(frozen=True)

    value: str
    comment: str = ""
    kind: SuggestionKind

    @property
    def comment_display(self) -> str:
        """The comment as shown in the suggestion list."""
        if len(self.comment) > COMMENT_WIDTH:
            return self.comment[:COMMENT_WIDTH] + "..."
        return self.comment


class SearchState(BaseModel):
    """Incremental reverse search state.

    Attributes:
        query: The search field
        position: Index into history where the next scan starts
    """

    model_config = ConfigDict(frozen=True)

    query: InputLine = Field(
        default_factory=lambda: InputLine(focused=False)
    )
    position: int = -1


class BuiltinFunction(BaseModel):
    """A function the runtime provides out of the box.

    Attributes:
        documentation: One-line description
        standalone: Can only be called as a plain function, never on a value
        method_only: Can only be called on a value, never bare
        applies: Whether the function can be called on a given value
    """

    model_config = ConfigDict(frozen=True, arbitrary_types_allowed=True)

    documentation: str = ""
    standalone: bool = False
    method_only: bool = False
    applies: Callable[[RuntimeValue], bool] = lambda value: True


class ParseOutcome(BaseModel):
    """Result of parsing the current line for completion.

    Attributes:
        root: The runtime's syntax tree, if any
        errors: Syntax errors
        subject: The node under completion, if any
    """

    model_config = ConfigDict(arbitrary_types_allowed=True)

    root: Any = None
    errors: list[str] = Field(default_factory=list)
    subject: Any = None


class InputMode(BaseModel):
    """Input mode determination.

    Attributes:
        has_stdin: Whether stdin has content
        command: Source text given on the command line
        use_repl: Whether to use interactive REPL
    """

    has_stdin: bool = False
    command: str | None = None
    use_repl: bool = True
