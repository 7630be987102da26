"""
Context-aware autocompletion.

Given the node under completion (as parsed by the runtime) the engine builds a
ranked list of candidates and the span of text they replace.

Node shapes:
- IdentifierNode `hel`: environment bindings and built-in functions whose
  name starts with `hel` (case-insensitive)
- PropertyNode `subject.par`: built-in functions applicable to the value of
  `subject`, plus the entries of that value when it is a mapping

Candidates are listed functions first, then identifiers, then properties.
Previews are always applied to the text as it was before completion started,
so cycling through candidates never compounds replacements.
"""

from typing import Any
from termrepl.lib.log import LOG
from termrepl.lib.runtime import IdentifierNode, PropertyNode, Runtime
from termrepl.models.dataModel import (
    BuiltinFunction,
    Mode,
    ParseOutcome,
    RuntimeValue,
    SuggestionCandidate,
    SuggestionKind,
    ValueKind,
)
from termrepl.models.state import Session


def prefix_matches(name: str, prefix: str) -> bool:
    return name.lower().startswith(prefix.lower())


def suggestions_rank(
    candidates: list[SuggestionCandidate],
) -> list[SuggestionCandidate]:
    """Stable sort by kind, functions first and properties last."""
    return sorted(candidates, key=lambda c: c.kind, reverse=True)


def identifier_suggestions(
    runtime: Runtime, node: IdentifierNode, functions: dict[str, BuiltinFunction]
) -> list[SuggestionCandidate]:
    matches: list[SuggestionCandidate] = []

    for name in sorted(runtime.environment_keys()):
        if prefix_matches(name, node.name):
            value: RuntimeValue = runtime.environment_get(name)
            matches.append(
                SuggestionCandidate(
                    value=name,
                    comment=runtime.printed_form(value),
                    kind=SuggestionKind.IDENTIFIER,
                )
            )

    for name in sorted(functions):
        fn: BuiltinFunction = functions[name]
        if fn.method_only:
            continue
        if prefix_matches(name, node.name):
            matches.append(
                SuggestionCandidate(
                    value=name, comment=fn.documentation, kind=SuggestionKind.FUNCTION
                )
            )
    return matches


def property_suggestions(
    runtime: Runtime, node: PropertyNode, functions: dict[str, BuiltinFunction]
) -> list[SuggestionCandidate]:
    # Evaluating the subject may run arbitrary code: `f().x` calls f.
    subject: RuntimeValue = runtime.subexpression_evaluate(node.subject)
    matches: list[SuggestionCandidate] = []

    for name in sorted(functions):
        fn: BuiltinFunction = functions[name]
        if fn.standalone or not fn.applies(subject):
            continue
        if prefix_matches(name, node.partial):
            matches.append(
                SuggestionCandidate(
                    value=name, comment=fn.documentation, kind=SuggestionKind.FUNCTION
                )
            )

    if subject.kind is ValueKind.MAPPING:
        for key, value in subject.entries.items():
            matches.append(
                SuggestionCandidate(
                    value=key,
                    comment=runtime.printed_form(value),
                    kind=SuggestionKind.PROPERTY,
                )
            )
    return matches


def suggestions_get(
    runtime: Runtime, node: Any
) -> tuple[list[SuggestionCandidate], str]:
    """Build completion candidates for a parsed node.

    Args:
        runtime: Runtime providing the environment and built-ins
        node: The node under completion

    Returns:
        Tuple of:
            - candidates, ranked
            - the text the candidates replace ("" when there are none)
    """
    functions: dict[str, BuiltinFunction] = runtime.builtins_list()

    if isinstance(node, IdentifierNode):
        return suggestions_rank(identifier_suggestions(runtime, node, functions)), node.name
    if isinstance(node, PropertyNode):
        return (
            suggestions_rank(property_suggestions(runtime, node, functions)),
            node.partial,
        )
    return [], ""


def suggestion_apply(original: str, replacement: str, value: str) -> str:
    """Replace the completed span of `original` with `value`.

    The span is expected at the end of the text (the cursor sits there when
    completion starts); otherwise its last occurrence is replaced.
    """
    if original.endswith(replacement):
        return original[: len(original) - len(replacement)] + value
    head, found, tail = original.rpartition(replacement)
    if not found:
        return original + value
    return head + value + tail


def suggestions_start(runtime: Runtime, session: Session) -> Session:
    """Run completion on the current line.

    No candidates (or a line that does not parse) leaves the session alone.
    A single candidate is applied straight away. Otherwise the session
    enters SUGGESTING with nothing highlighted yet.
    """
    text: str = session.line.value
    try:
        outcome: ParseOutcome = runtime.parse(text)
    except Exception as e:
        LOG(f"Completion parse failed: {e}")
        return session
    if outcome.errors or outcome.subject is None:
        return session

    try:
        candidates, replacement = suggestions_get(runtime, outcome.subject)
    except Exception as e:
        LOG(f"Completion failed for {text!r}: {e}")
        return session
    if not candidates:
        return session

    if len(candidates) == 1:
        completed: str = suggestion_apply(text, replacement, candidates[0].value)
        return session.model_copy(
            update={
                "line": session.line.value_set(completed),
                "dirty_input": "",
                "history_index": session.history_maxIndex,
            }
        )

    return session.model_copy(
        update={
            "mode": Mode.SUGGESTING,
            "dirty_input": text,
            "suggestions": tuple(candidates),
            "suggestion_index": -1,
            "replacement": replacement,
        }
    )


def suggestion_cycle(session: Session, direction: int) -> Session:
    """Highlight the next (+1) or previous (-1) candidate and preview it."""
    if not session.is_suggesting:
        return session
    count: int = len(session.suggestions)
    start: int = session.suggestion_index
    if start < 0 and direction < 0:
        # Nothing highlighted yet: going back lands on the last candidate.
        start = count
    index: int = (start + direction) % count
    preview: str = suggestion_apply(
        session.dirty_input, session.replacement, session.suggestions[index].value
    )
    return session.model_copy(
        update={"suggestion_index": index, "line": session.line.value_set(preview)}
    )


def suggestions_end(session: Session, line_value: str) -> Session:
    return session.model_copy(
        update={
            "mode": Mode.NORMAL,
            "line": session.line.value_set(line_value),
            "dirty_input": "",
            "suggestions": (),
            "suggestion_index": -1,
            "replacement": "",
            "history_index": session.history_maxIndex,
        }
    )


def suggestion_accept(session: Session) -> Session:
    """Keep the previewed text."""
    return suggestions_end(session, session.line.value)


def suggestions_exit(session: Session) -> Session:
    """Drop the preview and put the original text back."""
    return suggestions_end(session, session.dirty_input)
