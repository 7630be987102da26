"""
REPL implementation for termrepl.

This module provides the REPL (Read-Eval-Print Loop) interface, managing:
- The prompt_toolkit application that owns the terminal
- Routing every key press to the session controller
- Applying controller effects (transcript output, awaiting evaluations,
  clearing the screen, quitting)
- Non-interactive execution of whole scripts

The UI runs on a single asyncio loop. Evaluations run on their own thread;
the loop awaits their completion future in a task and feeds the result back
through the controller like any other event.
"""

import asyncio
from typing import Final, Self
from prompt_toolkit.application import Application, run_in_terminal
from prompt_toolkit.formatted_text import ANSI
from prompt_toolkit.key_binding import KeyBindings
from prompt_toolkit.key_binding.key_processor import KeyPressEvent
from prompt_toolkit.keys import Keys
from prompt_toolkit.layout import Layout, Window
from prompt_toolkit.layout.controls import FormattedTextControl
from prompt_toolkit.shortcuts import set_title
from rich.console import Console
from rich.text import Text
from termrepl.config.settings import App
from termrepl.lib.evaluation import EvaluationSession
from termrepl.lib.history import history_load
from termrepl.lib.input import KEY_NAMES, key_fromName, key_fromPaste, key_fromPress
from termrepl.lib.log import LOG
from termrepl.lib.prompt import placeholder_pick, prompt_render, welcome_lines
from termrepl.lib.pyruntime import PythonRuntime
from termrepl.lib.relay import StdinRelay
from termrepl.lib.runtime import Runtime
from termrepl.lib.session import SessionController, result_lines
from termrepl.lib.view import view_ansi
from termrepl.models.dataModel import EvaluationDone, EvaluationResult, KeyEvent
from termrepl.models.state import (
    AwaitEffect,
    ClearEffect,
    Effect,
    PrintEffect,
    QuitEffect,
    Session,
    Transition,
)

console: Final[Console] = Console(highlight=False)

WINDOW_TITLE: Final[str] = "termrepl"


class ReplApp:
    """Event loop driving a `SessionController` from the terminal.

    Attributes:
        controller: State machine handling every event
        session: Current session value
        debug: Show the session state below the input line
        relay: Stdin relay, closed when the application exits
    """

    def __init__(
        self: Self,
        controller: SessionController,
        session: Session,
        debug: bool = False,
        relay: StdinRelay | None = None,
        output: Console | None = None,
    ) -> None:
        self.controller: SessionController = controller
        self.session: Session = session
        self.debug: bool = debug
        self.relay: StdinRelay | None = relay
        self.console: Console = output or console
        self.app: Application | None = None
        self._tasks: set[asyncio.Task] = set()

    def bindings_build(self: Self) -> KeyBindings:
        """Bind every named key, plus any printable key and paste."""
        bindings: KeyBindings = KeyBindings()

        for name in KEY_NAMES:
            bindings.add(name, eager=(name == "escape"))(self._named_handler(name))

        @bindings.add(Keys.Any)
        def _any(event: KeyPressEvent) -> None:
            key: KeyEvent | None = key_fromPress(event)
            if key is not None:
                self.dispatch(key)

        @bindings.add(Keys.BracketedPaste)
        def _paste(event: KeyPressEvent) -> None:
            key: KeyEvent | None = key_fromPaste(event.data)
            if key is not None:
                self.dispatch(key)

        return bindings

    def _named_handler(self: Self, name: str):
        def handler(event: KeyPressEvent) -> None:
            self.dispatch(key_fromName(name))

        return handler

    def application_build(self: Self) -> Application:
        control: FormattedTextControl = FormattedTextControl(
            self.view_text, show_cursor=False
        )
        window: Window = Window(control, dont_extend_height=True, wrap_lines=False)
        self.app = Application(
            layout=Layout(window),
            key_bindings=self.bindings_build(),
            full_screen=False,
            mouse_support=False,
            erase_when_done=True,
        )
        return self.app

    def view_text(self: Self) -> ANSI:
        width: int = 80
        if self.app is not None:
            width = max(self.app.output.get_size().columns - 1, 20)
        return ANSI(view_ansi(self.session, width, self.debug))

    def dispatch(self: Self, event: KeyEvent | EvaluationDone) -> None:
        """Run an event through the controller and apply its effects."""
        try:
            transition: Transition = self.controller.update(self.session, event)
        except Exception as e:
            LOG(f"Error handling {event!r}: {e}")
            self.transcript_print([Text(f"Error: {e}", style="bold red")])
            return

        self.session = transition.session
        for effect in transition.effects:
            self.effect_apply(effect)
        if self.app is not None:
            self.app.invalidate()

    def effect_apply(self: Self, effect: Effect) -> None:
        if isinstance(effect, PrintEffect):
            self.transcript_print(effect.lines)
        elif isinstance(effect, AwaitEffect):
            task: asyncio.Task = asyncio.get_running_loop().create_task(
                self.evaluation_await(effect.evaluation)
            )
            self._tasks.add(task)
            task.add_done_callback(self._tasks.discard)
        elif isinstance(effect, ClearEffect):
            if self.app is not None:
                self.app.renderer.clear()
        elif isinstance(effect, QuitEffect):
            if self.relay is not None:
                self.relay.close()
            if self.app is not None and self.app.is_running:
                self.app.exit()

    def transcript_print(self: Self, lines: list[Text]) -> None:
        """Print lines above the live view."""

        def _print() -> None:
            for line in lines:
                self.console.print(line)

        if self.app is not None and self.app.is_running:
            run_in_terminal(_print)
        else:
            _print()

    async def evaluation_await(self: Self, evaluation: EvaluationSession) -> None:
        """Wait for an evaluation's result and deliver it as an event.

        Nothing is delivered for a cancelled evaluation: the controller has
        already reported it.
        """
        try:
            result: EvaluationResult = await asyncio.wrap_future(evaluation.future)
        except asyncio.CancelledError:
            if evaluation.future.cancelled():
                LOG(f"Evaluation {evaluation.id} cancelled, nothing to deliver")
                return
            raise
        self.dispatch(EvaluationDone(evaluation_id=evaluation.id, result=result))

    async def run(self: Self) -> None:
        app: Application = self.app or self.application_build()
        set_title(WINDOW_TITLE)
        await app.run_async()


async def repl_do(settings: App, runtime: Runtime | None = None) -> None:
    """Main REPL entry point.

    Flow:
    1. Load history and build the runtime and controller
    2. Print the welcome banner
    3. Run the terminal application until the user quits

    Exits on:
    - `quit`, Esc or Ctrl-D at the prompt
    """
    relay: StdinRelay = StdinRelay()
    engine: Runtime = runtime or PythonRuntime(relay=relay)
    controller: SessionController = SessionController(
        engine,
        relay=relay,
        history_file=settings.historyFile,
        history_maxLines=settings.historyMaxLines,
    )
    history: list[str] = history_load(settings.historyFile, settings.historyMaxLines)
    LOG(f"Loaded {len(history)} history entries from {settings.historyFile}")
    session: Session = controller.session_initialize(
        history, prompt_render(settings.promptTemplate), placeholder_pick()
    )

    for line in welcome_lines(engine.version):
        console.print(line)

    repl: ReplApp = ReplApp(controller, session, debug=settings.debug, relay=relay)
    try:
        await repl.run()
    except Exception as e:
        LOG(f"REPL critical error: {e}")
        console.print(f"[bold red]Fatal error: {e}[/bold red]")
    finally:
        relay.close()


def script_run(source: str, runtime: Runtime | None = None) -> int:
    """Run source text non-interactively and print its transcript.

    Args:
        source: Whole script or single statement
        runtime: Runtime to use; a fresh PythonRuntime by default

    Returns:
        int: Exit code, 0 on success and 1 on any error
    """
    engine: Runtime = runtime or PythonRuntime()
    result: EvaluationResult = engine.run(source)
    for line in result_lines(engine, result):
        console.print(line)
    return 0 if result.succeeded and not result.parse_errors else 1
