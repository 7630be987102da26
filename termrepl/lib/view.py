"""
Render tree for the live part of the screen.

Everything above the input line is transcript, printed once and forgotten.
The live view is redrawn after every event and consists of, top to bottom:

- the input line (prompt, text and a block cursor, or the placeholder)
- the search field, while searching
- the suggestion list, while suggesting
- a dump of the session state, in debug mode

The tree is built from rich renderables and exported as ANSI text, which
prompt_toolkit displays as-is.
"""

from typing import Final
from rich.console import Console, Group, RenderableType
from rich.padding import Padding
from rich.text import Text
from termrepl.lib.inputline import InputLine
from termrepl.lib.styles import (
    STYLE_CURSOR,
    STYLE_DEBUG,
    STYLE_PLACEHOLDER,
    STYLE_SEARCH_PROMPT,
    STYLE_SEARCH_TEXT,
    STYLE_SELECTED_PREFIX,
    STYLE_SELECTED_SUGGESTION,
    STYLE_SUGGESTIONS,
)
from termrepl.models.state import SEARCH_PROMPT, Session

SELECTED_PREFIX: Final[str] = " → "
UNSELECTED_PREFIX: Final[str] = "   "


def line_render(line: InputLine, prompt: str, text_style: str = "") -> Text:
    """Prompt plus the line's text, with a block cursor when focused."""
    rendered: Text = Text(prompt)
    if not line.value and line.placeholder:
        if line.focused:
            rendered.append(line.placeholder[0], style=STYLE_CURSOR)
            rendered.append(line.placeholder[1:], style=STYLE_PLACEHOLDER)
        else:
            rendered.append(line.placeholder, style=STYLE_PLACEHOLDER)
        return rendered

    if not line.focused:
        rendered.append(line.value, style=text_style)
        return rendered

    rendered.append(line.value[: line.cursor], style=text_style)
    rendered.append(line.value[line.cursor : line.cursor + 1] or " ", style=STYLE_CURSOR)
    rendered.append(line.value[line.cursor + 1 :], style=text_style)
    return rendered


def suggestions_render(session: Session) -> RenderableType:
    lines: list[Text] = []
    for i, candidate in enumerate(session.suggestions):
        if i == session.suggestion_index:
            line: Text = Text(SELECTED_PREFIX, style=STYLE_SELECTED_PREFIX)
            line.append(candidate.value, style=STYLE_SELECTED_SUGGESTION)
            if candidate.comment_display:
                line.append(" # " + candidate.comment_display, style=STYLE_PLACEHOLDER)
        else:
            line = Text(UNSELECTED_PREFIX)
            line.append(candidate.value, style=STYLE_SUGGESTIONS[candidate.kind])
        lines.append(line)
    return Padding(Group(*lines), (0, 0, 0, 1))


def debug_render(session: Session) -> RenderableType:
    state: dict[str, object] = session.state_map()
    lines: list[Text] = [
        Text(f"{key}: {state[key]}", style=STYLE_DEBUG) for key in sorted(state)
    ]
    return Padding(Group(*lines), (1, 0, 0, 2))


def view_render(session: Session, debug: bool = False) -> Group:
    """Build the live view for a session."""
    components: list[RenderableType] = [line_render(session.line, session.prompt)]

    if session.is_searching:
        search_line: Text = Text(SEARCH_PROMPT, style=STYLE_SEARCH_PROMPT)
        search_line.append_text(line_render(session.search.query, "", str(STYLE_SEARCH_TEXT)))
        components.append(search_line)

    if session.is_suggesting:
        components.append(suggestions_render(session))

    if debug:
        components.append(debug_render(session))

    return Group(*components)


def view_ansi(session: Session, width: int = 80, debug: bool = False) -> str:
    """The live view as ANSI-escaped text for the terminal."""
    console: Console = Console(
        width=width, force_terminal=True, color_system="truecolor", highlight=False
    )
    with console.capture() as capture:
        console.print(view_render(session, debug), end="")
    return capture.get()
