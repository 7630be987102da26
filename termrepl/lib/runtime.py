r"""
Boundary between the REPL front end and a language runtime.

The front end never looks inside the language it drives. Everything it needs
(running code, parsing the current line for completion, reading the
environment, listing built-in functions, printing values) goes through the
`Runtime` protocol defined here.

Completion works on two node shapes the runtime hands back from `parse`:

- `IdentifierNode`: a bare name under the cursor, e.g. `hel`
- `PropertyNode`: a property or method access, e.g. `"abc".up`

Any other node, or no node at all, means there is nothing to complete.
"""

from dataclasses import dataclass
from typing import Any, Protocol, Self, runtime_checkable
from termrepl.models.dataModel import (
    BuiltinFunction,
    EvaluationResult,
    ParseOutcome,
    RuntimeValue,
)


@dataclass(frozen=True)
class IdentifierNode:
    """A bare identifier being typed.

    Attributes:
        name: Text of the identifier
    """

    name: str


@dataclass(frozen=True)
class PropertyNode:
    """A property or method access being typed.

    Attributes:
        subject: Runtime node for the expression left of the dot
        partial: Text typed after the dot, possibly empty
    """

    subject: Any
    partial: str


@runtime_checkable
class Runtime(Protocol):
    """Protocol every language runtime adapter implements.

    `run` is the only method called off the UI thread; everything else is
    called from the event loop.
    """

    version: str

    def run(self: Self, source: str) -> EvaluationResult:
        """Execute source text and report the resulting value.

        Args:
            source: The submitted statement

        Returns:
            EvaluationResult with the value, success flag, parse errors and
            the text this run printed. Output of concurrent runs must not
            mix, so a cancelled run cannot leak into the next one.
        """
        ...

    def parse(self: Self, source: str) -> ParseOutcome:
        """Parse source text without running it."""
        ...

    def environment_keys(self: Self) -> set[str]: ...

    def environment_get(self: Self, name: str) -> RuntimeValue: ...

    def builtins_list(self: Self) -> dict[str, BuiltinFunction]: ...

    def subexpression_evaluate(self: Self, node: Any) -> RuntimeValue:
        """Evaluate a parsed expression; may have side effects."""
        ...

    def printed_form(self: Self, value: RuntimeValue) -> str: ...

    def is_no_value(self: Self, value: RuntimeValue) -> bool: ...
