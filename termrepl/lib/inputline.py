"""
Single-line editable text buffer.

An `InputLine` is an immutable value: every edit returns a new line. Text and
cursor live in a prompt_toolkit `Document`, itself immutable, which does the
cursor arithmetic. The line adds an optional placeholder shown while it is
empty, and whether it currently has keyboard focus.
"""

from typing import Self
from prompt_toolkit.document import Document
from pydantic import BaseModel, ConfigDict, Field


class InputLine(BaseModel):
    """Editable line with cursor, placeholder and focus.

    Attributes:
        document: Text and cursor position
        placeholder: Hint text displayed while the text is empty
        focused: Whether keystrokes edit this line
    """

    model_config = ConfigDict(frozen=True, arbitrary_types_allowed=True)

    document: Document = Field(default_factory=Document)
    placeholder: str = ""
    focused: bool = True

    @property
    def value(self: Self) -> str:
        return self.document.text

    @property
    def cursor(self: Self) -> int:
        return self.document.cursor_position

    def _document_set(self: Self, text: str, cursor: int) -> Self:
        return self.model_copy(
            update={"document": Document(text=text, cursor_position=cursor)}
        )

    def value_set(self: Self, value: str) -> Self:
        """Replace the text and move the cursor to its end."""
        return self._document_set(value, len(value))

    def reset(self: Self) -> Self:
        return self.model_copy(update={"document": Document()})

    def focus(self: Self) -> Self:
        return self.model_copy(update={"focused": True})

    def blur(self: Self) -> Self:
        return self.model_copy(update={"focused": False})

    def placeholder_set(self: Self, placeholder: str) -> Self:
        return self.model_copy(update={"placeholder": placeholder})

    def insert(self: Self, text: str) -> Self:
        """Insert text at the cursor; the cursor ends up after it."""
        doc: Document = self.document
        return self._document_set(
            doc.text_before_cursor + text + doc.text_after_cursor,
            doc.cursor_position + len(text),
        )

    def backspace(self: Self) -> Self:
        doc: Document = self.document
        if not doc.text_before_cursor:
            return self
        return self._document_set(
            doc.text_before_cursor[:-1] + doc.text_after_cursor, doc.cursor_position - 1
        )

    def delete(self: Self) -> Self:
        doc: Document = self.document
        if doc.is_cursor_at_the_end:
            return self
        return self._document_set(
            doc.text_before_cursor + doc.text_after_cursor[1:], doc.cursor_position
        )

    def cursor_move(self: Self, offset: int) -> Self:
        doc: Document = self.document
        if offset < 0:
            delta: int = doc.get_cursor_left_position(-offset)
        else:
            delta = doc.get_cursor_right_position(offset)
        return self._document_set(doc.text, doc.cursor_position + delta)

    def cursor_start(self: Self) -> Self:
        return self._document_set(self.value, 0)

    def cursor_end(self: Self) -> Self:
        return self._document_set(self.value, len(self.value))
