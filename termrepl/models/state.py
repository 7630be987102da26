"""
state.py

Session state and the effects the session controller asks the event loop to
perform.

The `Session` is an immutable value. Every controller handler takes a session
and returns a new one together with a list of effects, so a sequence of
events can be replayed deterministically and tested without a terminal.
"""

from typing import Final
from pydantic import BaseModel, ConfigDict, Field
from rich.text import Text
from termrepl.lib.evaluation import EvaluationSession
from termrepl.lib.inputline import InputLine
from termrepl.models.dataModel import Mode, SearchState, SuggestionCandidate

SEARCH_PROMPT: Final[str] = " search: "


class Session(BaseModel):
    """The whole state of the interactive session.

    Attributes:
        mode: Which mode currently owns keystrokes
        line: The input line
        prompt: Rendered prompt prefix
        dirty_input: In-progress edit saved before history, suggestion or
            search excursions
        history: Submitted lines, oldest first
        history_index: Cursor into history, -1..len(history)-1
        evaluation: The running evaluation, only while EVALUATING
        suggestions: Completion candidates, only while SUGGESTING
        suggestion_index: Highlighted candidate, -1 when none
        replacement: The text span the candidates replace
        search: Reverse search state
    """

    model_config = ConfigDict(frozen=True, arbitrary_types_allowed=True)

    mode: Mode = Mode.NORMAL
    line: InputLine = Field(default_factory=InputLine)
    prompt: str = ""
    dirty_input: str = ""
    history: tuple[str, ...] = ()
    history_index: int = -1
    evaluation: EvaluationSession | None = None
    suggestions: tuple[SuggestionCandidate, ...] = ()
    suggestion_index: int = -1
    replacement: str = ""
    search: SearchState = Field(default_factory=SearchState)

    @property
    def history_maxIndex(self) -> int:
        return len(self.history) - 1

    @property
    def is_evaluating(self) -> bool:
        return self.mode is Mode.EVALUATING

    @property
    def is_suggesting(self) -> bool:
        return self.mode is Mode.SUGGESTING

    @property
    def is_searching(self) -> bool:
        return self.mode is Mode.SEARCHING

    def current_line(self) -> str:
        """Prompt followed by the line's text, as echoed to the transcript."""
        return self.prompt + self.line.value

    def state_map(self) -> dict[str, object]:
        """Debug view of the interesting fields."""
        return {
            "mode": self.mode.value,
            "history_index": self.history_index,
            "max_history_index": self.history_maxIndex,
            "dirty_input": self.dirty_input,
            "is_evaluating": self.is_evaluating,
            "suggestions_index": self.suggestion_index,
            "search_position": self.search.position,
        }


class PrintEffect(BaseModel):
    """Append lines to the transcript above the input line."""

    model_config = ConfigDict(frozen=True, arbitrary_types_allowed=True)

    lines: list[Text]


class AwaitEffect(BaseModel):
    """Wait for an evaluation and feed its result back as an event."""

    model_config = ConfigDict(frozen=True, arbitrary_types_allowed=True)

    evaluation: EvaluationSession


class ClearEffect(BaseModel):
    """Clear the terminal."""


class QuitEffect(BaseModel):
    """Terminate the session."""


Effect = PrintEffect | AwaitEffect | ClearEffect | QuitEffect


class Transition(BaseModel):
    """What handling one event produced.

    Attributes:
        session: The new session value
        effects: Side effects for the event loop, in order
    """

    model_config = ConfigDict(frozen=True, arbitrary_types_allowed=True)

    session: Session
    effects: list[Effect] = Field(default_factory=list)
