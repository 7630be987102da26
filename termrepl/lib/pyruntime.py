"""
Runtime adapter that drives the running Python interpreter.

`PythonRuntime` implements the `Runtime` protocol on top of `ast`, `compile`,
`exec` and `eval`, with one persistent namespace for the whole session.

Behavior:
- A statement whose last part is an expression evaluates to that expression's
  value (like the interactive interpreter); otherwise it evaluates to None,
  the no-value sentinel.
- `print` writes to a buffer owned by the running statement and returned in
  its result, so output of a cancelled statement that is still running never
  reaches the next one. `input` reads lines typed by the user through the
  stdin relay.
- Syntax errors are reported as parse errors and nothing is executed.
- Exceptions make the evaluation fail with the formatted traceback as value.

Completion:
- The subject is the deepest expression ending exactly at the end of the
  line: a `Name` completes as an identifier and an `Attribute` as a property.
  A line ending in `.` completes the expression before the dot.
- Built-ins are the public callables of the `builtins` module plus the
  public methods of the core value types.
- Modules, classes and instances of user-defined types are mappings of their
  public attributes, so `math.sq` offers `sqrt`.
"""

import ast
import builtins
import inspect
import io
import platform
import sys
import threading
import traceback
import types
from typing import Any, Final, Self
from termrepl.lib.log import LOG
from termrepl.lib.relay import StdinRelay
from termrepl.lib.runtime import IdentifierNode, PropertyNode
from termrepl.models.dataModel import (
    BuiltinFunction,
    EvaluationResult,
    ParseOutcome,
    RuntimeValue,
    ValueKind,
)

FILENAME: Final[str] = "<repl>"

METHOD_TYPES: Final[tuple[type, ...]] = (
    str,
    bytes,
    list,
    tuple,
    dict,
    set,
    frozenset,
    int,
    float,
    complex,
)


def doc_firstLine(obj: Any) -> str:
    doc: str = inspect.getdoc(obj) or ""
    for line in doc.splitlines():
        if line.strip():
            return line.strip()
    return ""


def syntaxError_format(e: SyntaxError) -> str:
    """A syntax error as message, offending line and caret, one per line."""
    lines: list[str] = [f"{e.msg} (line {e.lineno}, column {e.offset})"]
    if e.text:
        lines.append("    " + e.text.rstrip("\n"))
        if e.offset:
            lines.append("    " + " " * (e.offset - 1) + "^")
    return "\n".join(lines)


def exception_format(e: BaseException) -> str:
    """Traceback of an exception without the adapter's own frames."""
    te: traceback.TracebackException = traceback.TracebackException.from_exception(e)
    te.stack = traceback.StackSummary.from_list(
        [frame for frame in te.stack if frame.filename != __file__]
    )
    return "".join(te.format()).rstrip("\n")


def tail_expression(source: str, tree: ast.AST) -> ast.expr | None:
    """The deepest expression node ending exactly where the source ends."""
    lines: list[str] = source.split("\n")
    end_line: int = len(lines)
    end_col: int = len(lines[-1].encode("utf-8"))

    found: ast.expr | None = None
    # ast.walk is breadth first, so later matches are nested deeper.
    for node in ast.walk(tree):
        if not isinstance(node, ast.expr):
            continue
        if node.end_lineno == end_line and node.end_col_offset == end_col:
            found = node
    return found


class PythonRuntime:
    """Python interpreter behind the `Runtime` protocol.

    Attributes:
        version: Interpreter version shown in the welcome banner
        namespace: Globals shared by every statement of the session
        relay: Where `input()` reads from
    """

    def __init__(self: Self, relay: StdinRelay | None = None) -> None:
        self.version: str = f"Python {platform.python_version()}"
        self.relay: StdinRelay | None = relay
        self._capture: threading.local = threading.local()
        self._functions: dict[str, BuiltinFunction] | None = None

        session_builtins: dict[str, Any] = dict(vars(builtins))
        session_builtins["print"] = self._print
        session_builtins["input"] = self._input
        self.namespace: dict[str, Any] = {
            "__name__": "__repl__",
            "__builtins__": session_builtins,
        }

    def _write(self: Self, text: str) -> None:
        stdout: io.StringIO | None = getattr(self._capture, "stdout", None)
        if stdout is None:
            # A thread the program started itself, outside any run.
            sys.stdout.write(text)
            return
        stdout.write(text)

    def _print(
        self: Self,
        *args: Any,
        sep: str | None = " ",
        end: str | None = "\n",
        file: Any = None,
        flush: bool = False,
    ) -> None:
        if file is not None and file not in (sys.stdout, sys.stderr):
            print(*args, sep=sep, end=end, file=file, flush=flush)
            return
        separator: str = " " if sep is None else sep
        self._write(separator.join(str(arg) for arg in args) + ("\n" if end is None else end))

    def _input(self: Self, prompt: Any = "") -> str:
        if prompt:
            self._write(str(prompt))
        if self.relay is None:
            raise EOFError("EOF when reading a line")
        line: bytes = self.relay.readline()
        if not line:
            raise EOFError("EOF when reading a line")
        return line.decode("utf-8", errors="replace").removesuffix("\n")

    def run(self: Self, source: str) -> EvaluationResult:
        """Run a statement, capturing what it prints on the calling thread."""
        self._capture.stdout = io.StringIO()
        try:
            result: EvaluationResult = self._execute(source)
        finally:
            printed: str = self._capture.stdout.getvalue()
            del self._capture.stdout
        return result.model_copy(update={"stdout": printed})

    def _execute(self: Self, source: str) -> EvaluationResult:
        try:
            tree: ast.Module = ast.parse(source, FILENAME, "exec")
        except SyntaxError as e:
            return EvaluationResult(
                output=RuntimeValue.null(),
                succeeded=False,
                parse_errors=[syntaxError_format(e)],
            )

        tail: ast.Expression | None = None
        if tree.body and isinstance(tree.body[-1], ast.Expr):
            tail = ast.Expression(body=tree.body.pop().value)

        try:
            exec(compile(tree, FILENAME, "exec"), self.namespace)
            value: Any = None
            if tail is not None:
                value = eval(compile(tail, FILENAME, "eval"), self.namespace)
        except (Exception, SystemExit) as e:
            LOG(f"Statement raised {type(e).__name__}")
            return EvaluationResult(
                output=RuntimeValue(kind=ValueKind.OTHER, native=e), succeeded=False
            )

        if value is not None:
            self.namespace["_"] = value
        return EvaluationResult(output=self.value_wrap(value), succeeded=True)

    def parse(self: Self, source: str) -> ParseOutcome:
        try:
            tree: ast.Module = ast.parse(source, FILENAME, "exec")
        except SyntaxError as e:
            if not source.endswith("."):
                return ParseOutcome(errors=[syntaxError_format(e)])
            return self._parse_trailingDot(source)

        node: ast.expr | None = tail_expression(source, tree)
        if isinstance(node, ast.Name):
            return ParseOutcome(root=tree, subject=IdentifierNode(name=node.id))
        if isinstance(node, ast.Attribute):
            return ParseOutcome(
                root=tree, subject=PropertyNode(subject=node.value, partial=node.attr)
            )
        return ParseOutcome(root=tree, subject=node)

    def _parse_trailingDot(self: Self, source: str) -> ParseOutcome:
        base: str = source[:-1]
        try:
            tree: ast.Module = ast.parse(base, FILENAME, "exec")
        except SyntaxError as e:
            return ParseOutcome(errors=[syntaxError_format(e)])
        node: ast.expr | None = tail_expression(base, tree)
        if node is None:
            return ParseOutcome(root=tree)
        return ParseOutcome(root=tree, subject=PropertyNode(subject=node, partial=""))

    def environment_keys(self: Self) -> set[str]:
        return {name for name in self.namespace if not name.startswith("__")}

    def environment_get(self: Self, name: str) -> RuntimeValue:
        return self.value_wrap(self.namespace.get(name))

    def builtins_list(self: Self) -> dict[str, BuiltinFunction]:
        """Built-in functions and core type methods, computed once."""
        if self._functions is not None:
            return self._functions

        functions: dict[str, BuiltinFunction] = {}
        for name, obj in vars(builtins).items():
            if name.startswith("_") or not callable(obj):
                continue
            if isinstance(obj, type) and issubclass(obj, BaseException):
                continue
            functions[name] = BuiltinFunction(
                documentation=doc_firstLine(obj), standalone=True
            )

        owners: dict[str, list[type]] = {}
        for owner in METHOD_TYPES:
            for name in dir(owner):
                if not name.startswith("_") and callable(getattr(owner, name)):
                    owners.setdefault(name, []).append(owner)

        for name, types_ in owners.items():
            applicable: tuple[type, ...] = tuple(types_)
            functions[name] = BuiltinFunction(
                documentation=doc_firstLine(getattr(applicable[0], name)),
                standalone=False,
                method_only=name not in functions,
                applies=lambda value, t=applicable: isinstance(value.native, t),
            )

        self._functions = functions
        return functions

    def subexpression_evaluate(self: Self, node: Any) -> RuntimeValue:
        expression: ast.Expression = ast.fix_missing_locations(ast.Expression(body=node))
        native: Any = eval(compile(expression, FILENAME, "eval"), self.namespace)
        return self.value_wrap(native, with_entries=True)

    def value_wrap(self: Self, native: Any, with_entries: bool = False) -> RuntimeValue:
        """Tag a Python object with its value kind.

        Args:
            native: The object
            with_entries: Collect public attributes of namespace-like objects

        Returns:
            RuntimeValue wrapping the object
        """
        if native is None:
            return RuntimeValue.null()
        if not self._is_namespace(native):
            return RuntimeValue(kind=ValueKind.OTHER, native=native)

        entries: dict[str, RuntimeValue] = {}
        if with_entries:
            for name in dir(native):
                if name.startswith("_"):
                    continue
                try:
                    entries[name] = self.value_wrap(getattr(native, name))
                except Exception as e:
                    LOG(f"Skipping attribute {name}: {e}")
        return RuntimeValue(kind=ValueKind.MAPPING, native=native, entries=entries)

    @staticmethod
    def _is_namespace(native: Any) -> bool:
        if isinstance(native, (types.ModuleType, type)):
            return True
        return type(native).__module__ != "builtins"

    def printed_form(self: Self, value: RuntimeValue) -> str:
        if value.kind is ValueKind.NULL:
            return "None"
        if isinstance(value.native, BaseException):
            return exception_format(value.native)
        try:
            return repr(value.native)
        except Exception as e:
            return f"<unprintable {type(value.native).__name__}: {e}>"

    def is_no_value(self: Self, value: RuntimeValue) -> bool:
        return value.kind is ValueKind.NULL

