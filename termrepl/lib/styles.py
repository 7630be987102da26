"""Rich styles shared by the transcript and the live view."""

from typing import Final
from rich.style import Style
from termrepl.models.dataModel import SuggestionKind

STYLE_ERR: Final[Style] = Style(color="red")
STYLE_FAINT: Final[Style] = Style(dim=True)
STYLE_CODE: Final[Style] = Style(color="cyan")
STYLE_DEBUG: Final[Style] = Style(color="magenta", dim=True)

STYLE_CURSOR: Final[Style] = Style(reverse=True)
STYLE_PLACEHOLDER: Final[Style] = Style(color="bright_black")

STYLE_SEARCH_PROMPT: Final[Style] = Style(color="black", bgcolor="yellow", bold=True)
STYLE_SEARCH_TEXT: Final[Style] = Style(color="yellow")

STYLE_SELECTED_PREFIX: Final[Style] = Style(color="green", bold=True)
STYLE_SELECTED_SUGGESTION: Final[Style] = Style(bold=True, underline=True)

STYLE_SUGGESTIONS: Final[dict[SuggestionKind, Style]] = {
    SuggestionKind.FUNCTION: Style(color="blue"),
    SuggestionKind.IDENTIFIER: Style(color="green"),
    SuggestionKind.PROPERTY: Style(color="yellow"),
}
