"""Shared fixtures: a scriptable runtime and a session controller around it."""

import threading
from typing import Any
import pytest
from termrepl.lib.relay import StdinRelay
from termrepl.lib.runtime import IdentifierNode, PropertyNode
from termrepl.lib.session import SessionController
from termrepl.models.dataModel import (
    BuiltinFunction,
    EvaluationResult,
    ParseOutcome,
    RuntimeValue,
    ValueKind,
)


class FakeRuntime:
    """Runtime double.

    Statements evaluate to their upper-cased text unless a result was
    registered in `results`. Setting `gate` makes `run` block until the gate
    is set. Parsing treats the trailing word as an identifier and
    `subject.partial` as a property access on a binding.
    """

    version = "fake 1.0"

    def __init__(self) -> None:
        self.env: dict[str, RuntimeValue] = {
            "hello": RuntimeValue(kind=ValueKind.OTHER, native="world"),
            "help_text": RuntimeValue(kind=ValueKind.OTHER, native="read the docs"),
            "config": RuntimeValue(
                kind=ValueKind.MAPPING,
                native={"depth": 3, "name": "demo"},
                entries={
                    "depth": RuntimeValue(kind=ValueKind.OTHER, native=3),
                    "name": RuntimeValue(kind=ValueKind.OTHER, native="demo"),
                },
            ),
        }
        self.functions: dict[str, BuiltinFunction] = {
            "len": BuiltinFunction(documentation="length of a value"),
            "help": BuiltinFunction(documentation="prints help", standalone=True),
            "hex": BuiltinFunction(
                documentation="hexadecimal form",
                applies=lambda value: isinstance(value.native, int),
            ),
            "upper": BuiltinFunction(
                documentation="upper-case a string",
                method_only=True,
                applies=lambda value: isinstance(value.native, str),
            ),
        }
        self.results: dict[str, EvaluationResult] = {}
        self.gate: threading.Event | None = None

    def run(self, source: str) -> EvaluationResult:
        if self.gate is not None:
            self.gate.wait(5)
        if source in self.results:
            return self.results[source]
        return EvaluationResult(
            output=RuntimeValue(kind=ValueKind.OTHER, native=source.upper()),
            succeeded=True,
        )

    def parse(self, source: str) -> ParseOutcome:
        if source.count("(") != source.count(")"):
            return ParseOutcome(errors=["unbalanced parenthesis"])
        word: str = source.split(" ")[-1]
        if not word:
            return ParseOutcome()
        if "." in word:
            subject, _, partial = word.rpartition(".")
            return ParseOutcome(subject=PropertyNode(subject=subject, partial=partial))
        if word.isidentifier():
            return ParseOutcome(subject=IdentifierNode(name=word))
        return ParseOutcome(subject=word)

    def environment_keys(self) -> set[str]:
        return set(self.env)

    def environment_get(self, name: str) -> RuntimeValue:
        return self.env[name]

    def builtins_list(self) -> dict[str, BuiltinFunction]:
        return self.functions

    def subexpression_evaluate(self, node: Any) -> RuntimeValue:
        if node in self.env:
            return self.env[node]
        if node.isdigit():
            return RuntimeValue(kind=ValueKind.OTHER, native=int(node))
        return RuntimeValue(kind=ValueKind.OTHER, native=node.strip("'\""))

    def printed_form(self, value: RuntimeValue) -> str:
        if value.kind is ValueKind.NULL:
            return "null"
        return str(value.native)

    def is_no_value(self, value: RuntimeValue) -> bool:
        return value.kind is ValueKind.NULL


@pytest.fixture
def runtime() -> FakeRuntime:
    return FakeRuntime()


@pytest.fixture
def relay() -> StdinRelay:
    return StdinRelay()


@pytest.fixture
def controller(runtime: FakeRuntime, relay: StdinRelay, tmp_path) -> SessionController:
    return SessionController(
        runtime,
        relay=relay,
        history_file=tmp_path / "history",
        history_maxLines=100,
    )
