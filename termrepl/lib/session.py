"""
Session controller: the REPL's view/update state machine.

Every event (a keystroke or a finished evaluation) goes through
`SessionController.update`, which returns the next `Session` value and the
effects the event loop must perform. The controller routes each keystroke to
exactly one mode, in this order of precedence:

1. EVALUATING: keys are relayed to the running program's stdin; Ctrl-C
   cancels the evaluation
2. SUGGESTING: Enter accepts, Tab/Down and Up cycle, anything else restores
   the text typed before completion
3. SEARCHING: Enter accepts, Ctrl-R continues backwards, Ctrl-C/Ctrl-D
   abandon, anything else edits the query and restarts the scan
4. NORMAL: line editing, history navigation, submission, completion, search,
   clear screen and quit

Submitting `quit` or `help` runs the corresponding REPL command instead of
evaluating the line.
"""

from pathlib import Path
from random import Random
from typing import Callable, Final, Self
from rich.text import Text
from termrepl.lib.errors import HistoryPersistenceError
from termrepl.lib.evaluation import EvaluationSession
from termrepl.lib.history import history_append, history_save
from termrepl.lib.inputline import InputLine
from termrepl.lib.log import LOG
from termrepl.lib.prompt import help_lines
from termrepl.lib.relay import StdinRelay
from termrepl.lib.runtime import Runtime
from termrepl.lib.search import (
    search_abandon,
    search_accept,
    search_continue,
    search_restart,
    search_startOrAdvance,
)
from termrepl.lib.styles import STYLE_ERR
from termrepl.lib.suggest import (
    suggestion_accept,
    suggestion_cycle,
    suggestions_exit,
    suggestions_start,
)
from termrepl.models.dataModel import (
    EvaluationDone,
    EvaluationResult,
    Key,
    KeyEvent,
    Mode,
    RuntimeValue,
    SearchState,
)
from termrepl.models.state import (
    AwaitEffect,
    ClearEffect,
    Effect,
    PrintEffect,
    QuitEffect,
    Session,
    Transition,
)

COMMAND_QUIT: Final[str] = "quit"
COMMAND_HELP: Final[str] = "help"

EDITING_KEYS: Final[frozenset[Key]] = frozenset(
    {
        Key.RUNES,
        Key.BACKSPACE,
        Key.DELETE,
        Key.LEFT,
        Key.RIGHT,
        Key.HOME,
        Key.END,
    }
)


def line_edit(line: InputLine, event: KeyEvent) -> InputLine:
    """Apply an ordinary editing key to a line; other keys leave it as is."""
    edits: dict[Key, Callable[[], InputLine]] = {
        Key.BACKSPACE: line.backspace,
        Key.DELETE: line.delete,
        Key.LEFT: lambda: line.cursor_move(-1),
        Key.RIGHT: lambda: line.cursor_move(+1),
        Key.HOME: line.cursor_start,
        Key.END: line.cursor_end,
    }
    if event.key is Key.RUNES:
        return line.insert(event.runes)
    if event.key in edits:
        return edits[event.key]()
    return line


def result_lines(runtime: Runtime, result: EvaluationResult) -> list[Text]:
    """Transcript lines for an evaluation result.

    Order: syntax errors (numbered on their first line only), whatever the
    program printed, then the value unless it is the no-value sentinel. A
    failed evaluation's value is styled as an error.
    """
    lines: list[Text] = []

    if result.parse_errors:
        lines.append(
            Text(f"encountered {len(result.parse_errors)} syntax errors:", style=STYLE_ERR)
        )
        for number, error in enumerate(result.parse_errors, start=1):
            for i, part in enumerate(error.split("\n")):
                prefix: str = f"{number}) " if i == 0 else "   "
                lines.append(Text("  " + prefix + part, style=STYLE_ERR))

    if result.stdout:
        lines.append(Text(result.stdout.removesuffix("\n")))

    if not runtime.is_no_value(result.output):
        printed: str = runtime.printed_form(result.output)
        lines.append(Text(printed) if result.succeeded else Text(printed, style=STYLE_ERR))

    return lines


def input_reset(session: Session) -> Session:
    """Drop every transient state and go back to NORMAL.

    The line's text is kept; callers clear it when they need to.
    """
    return session.model_copy(
        update={
            "mode": Mode.NORMAL,
            "dirty_input": "",
            "history_index": session.history_maxIndex,
            "evaluation": None,
            "suggestions": (),
            "suggestion_index": -1,
            "replacement": "",
            "line": session.line.cursor_end().focus(),
            "search": SearchState(position=session.history_maxIndex),
        }
    )


def history_previous(session: Session) -> Session:
    """Show the previous (older) history entry.

    The text being edited is saved on the first press, i.e. while the index
    still points at the most recent entry.
    """
    if session.history_index < 0:
        return session

    dirty_input: str = session.dirty_input
    if session.history_index == session.history_maxIndex:
        dirty_input = session.line.value

    return session.model_copy(
        update={
            "dirty_input": dirty_input,
            "line": session.line.value_set(session.history[session.history_index]),
            "history_index": session.history_index - 1,
        }
    )


def history_next(session: Session) -> Session:
    """Show the next (newer) history entry, or the saved text past the newest.

    The entry on display is `history[history_index + 1]`.
    """
    shown: int = session.history_index + 1
    if shown > session.history_maxIndex:
        return session

    if shown + 1 <= session.history_maxIndex:
        return session.model_copy(
            update={
                "history_index": shown,
                "line": session.line.value_set(session.history[shown + 1]),
            }
        )

    return session.model_copy(
        update={
            "history_index": session.history_maxIndex,
            "line": session.line.value_set(session.dirty_input),
        }
    )


class SessionController:
    """Routes events to the active mode and produces the next session.

    Attributes:
        runtime: Language runtime evaluations and completions go to
        relay: Stdin relay handed to every evaluation
        history_file: Where history is saved at quit
        history_maxLines: How many entries are saved
    """

    def __init__(
        self: Self,
        runtime: Runtime,
        relay: StdinRelay | None = None,
        history_file: Path | str | None = None,
        history_maxLines: int = 1000,
        rng: Random | None = None,
    ) -> None:
        self.runtime: Runtime = runtime
        self.relay: StdinRelay | None = relay
        self.history_file: Path | None = Path(history_file) if history_file else None
        self.history_maxLines: int = history_maxLines
        self.rng: Random = rng or Random()

    def session_initialize(
        self: Self, history: list[str], prompt: str, placeholder: str = ""
    ) -> Session:
        """Build the first session value from persisted history."""
        entries: tuple[str, ...] = tuple(history)
        return Session(
            prompt=prompt,
            line=InputLine(placeholder=placeholder),
            history=entries,
            history_index=len(entries) - 1,
            search=SearchState(position=len(entries) - 1),
        )

    def update(self: Self, session: Session, event: KeyEvent | EvaluationDone) -> Transition:
        """Handle one event.

        Args:
            session: Current session
            event: Keystroke or evaluation result

        Returns:
            Transition with the new session and the effects to perform
        """
        if isinstance(event, EvaluationDone):
            return self.evaluation_done(session, event)
        if isinstance(event, KeyEvent):
            return self.key_handle(session, event)
        LOG(f"Ignoring unknown event {event!r}")
        return Transition(session=session)

    def key_handle(self: Self, session: Session, event: KeyEvent) -> Transition:
        if session.is_evaluating:
            if event.key is Key.CTRL_C:
                return self.evaluation_abort(session)
            return self.stdin_intercept(session, event)

        if session.is_suggesting:
            if event.key is Key.ENTER:
                return Transition(session=suggestion_accept(session))
            if event.key in (Key.TAB, Key.DOWN):
                return Transition(session=suggestion_cycle(session, +1))
            if event.key is Key.UP:
                return Transition(session=suggestion_cycle(session, -1))
            return Transition(session=suggestions_exit(session))

        if session.is_searching:
            if event.key is Key.ENTER:
                return Transition(session=search_accept(session))
            if event.key is Key.CTRL_R:
                return Transition(session=search_continue(session))
            if event.key in (Key.CTRL_C, Key.CTRL_D):
                return Transition(session=search_abandon(session))
            query: InputLine = line_edit(session.search.query, event)
            return Transition(
                session=search_restart(
                    session.model_copy(
                        update={"search": session.search.model_copy(update={"query": query})}
                    )
                )
            )

        return self.normal_handle(session, event)

    def normal_handle(self: Self, session: Session, event: KeyEvent) -> Transition:
        if event.key in (Key.ESCAPE, Key.CTRL_D):
            return self.quit(session)
        if event.key is Key.CTRL_C:
            return self.interrupt(input_reset(session))
        if event.key is Key.CTRL_R:
            return Transition(session=search_startOrAdvance(session))
        if event.key is Key.ENTER:
            return self.submit(session)
        if event.key is Key.TAB:
            return self.complete(session)
        if event.key is Key.CTRL_L:
            return self.clear(session)
        if event.key is Key.UP:
            return Transition(session=history_previous(session))
        if event.key is Key.DOWN:
            return Transition(session=history_next(session))
        if event.key in EDITING_KEYS:
            return Transition(
                session=session.model_copy(update={"line": line_edit(session.line, event)})
            )
        return Transition(session=session)

    def submit(self: Self, session: Session) -> Transition:
        """Submit the current line.

        An empty line just echoes the prompt. Anything else is recorded in
        history and then runs `quit`, `help`, or goes to the runtime.
        """
        session = session.model_copy(update={"line": session.line.placeholder_set("")})
        source: str = session.line.value

        if not source:
            return Transition(session=session, effects=[PrintEffect(lines=[Text(session.prompt)])])

        session = input_reset(
            session.model_copy(update={"history": history_append(session.history, source)})
        )

        if source == COMMAND_QUIT:
            return self.quit(session)
        if source == COMMAND_HELP:
            return self.help(session)
        return self.evaluation_start(session, source)

    def complete(self: Self, session: Session) -> Transition:
        """Tab in NORMAL mode: run the placeholder example, or complete."""
        if not session.line.value:
            if session.line.placeholder:
                return Transition(
                    session=session.model_copy(
                        update={"line": session.line.value_set(session.line.placeholder)}
                    )
                )
            return Transition(session=session)
        return Transition(session=suggestions_start(self.runtime, session))

    def evaluation_start(self: Self, session: Session, source: str) -> Transition:
        evaluation: EvaluationSession = EvaluationSession(
            self.runtime, source, relay=self.relay
        ).start()
        return Transition(
            session=session.model_copy(
                update={
                    "mode": Mode.EVALUATING,
                    "evaluation": evaluation,
                    "line": session.line.blur(),
                }
            ),
            effects=[AwaitEffect(evaluation=evaluation)],
        )

    def evaluation_abort(self: Self, session: Session) -> Transition:
        """Ctrl-C while evaluating: cancel and report a failed, empty result.

        The session returns to NORMAL immediately. The runtime may still be
        running; its eventual result is discarded.
        """
        if session.evaluation is not None:
            session.evaluation.cancel()
        return self.result_render(
            session, EvaluationResult(output=RuntimeValue.null(), succeeded=False)
        )

    def evaluation_done(self: Self, session: Session, event: EvaluationDone) -> Transition:
        active: EvaluationSession | None = session.evaluation
        if not session.is_evaluating or active is None or active.id != event.evaluation_id:
            LOG(f"Dropping result of stale evaluation {event.evaluation_id}")
            return Transition(session=session)
        return self.result_render(session, event.result)

    def result_render(self: Self, session: Session, result: EvaluationResult) -> Transition:
        """Print the transcript for a finished evaluation and go back to NORMAL.

        Order: the submitted line, syntax errors, captured program output,
        then the value itself unless it is the no-value sentinel.
        """
        lines: list[Text] = [Text(session.current_line())]
        lines.extend(result_lines(self.runtime, result))

        session = input_reset(session)
        return Transition(
            session=session.model_copy(update={"line": session.line.reset()}),
            effects=[PrintEffect(lines=lines)],
        )

    def stdin_intercept(self: Self, session: Session, event: KeyEvent) -> Transition:
        """Forward a keystroke to the running program instead of the line."""
        if session.evaluation is not None:
            data: bytes = b"\n" if event.key is Key.ENTER else event.runes.encode("utf-8")
            session.evaluation.relay_write(data)
        return Transition(session=session)

    def interrupt(self: Self, session: Session) -> Transition:
        """Ctrl-C at the prompt: echo the line and start over."""
        lines: list[Text] = [Text(session.current_line())]
        return Transition(
            session=session.model_copy(update={"line": session.line.reset()}),
            effects=[PrintEffect(lines=lines)],
        )

    def clear(self: Self, session: Session) -> Transition:
        return Transition(
            session=session.model_copy(update={"line": session.line.placeholder_set("")}),
            effects=[ClearEffect()],
        )

    def help(self: Self, session: Session) -> Transition:
        lines: list[Text] = [Text(session.current_line())]
        lines.extend(help_lines(session.prompt, self.rng))
        return Transition(
            session=session.model_copy(update={"line": session.line.reset()}),
            effects=[PrintEffect(lines=lines)],
        )

    def quit(self: Self, session: Session) -> Transition:
        """Persist history and terminate.

        A history write failure is reported but never prevents quitting.
        """
        effects: list[Effect] = []
        if self.history_file is not None:
            try:
                history_save(self.history_file, self.history_maxLines, session.history)
            except HistoryPersistenceError as e:
                LOG(f"History not saved: {e}")
                effects.append(PrintEffect(lines=[Text(str(e), style=STYLE_ERR)]))
        effects.append(QuitEffect())
        return Transition(session=session, effects=effects)
