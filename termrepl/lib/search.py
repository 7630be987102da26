"""
Incremental reverse history search.

Search scans history backwards for the first entry containing the query as a
case-sensitive substring and shows it in the input line. Typing restarts the
scan from the most recent entry; the continue key (Ctrl-R) resumes it one
entry further back.

Operations:
    search_startOrAdvance: enter search mode, or re-run the scan for the
        current query
    search_continue: step one entry back and re-run the scan
    search_accept: keep the displayed match as editable text
    search_abandon: leave search and restore the pre-search text
"""

from termrepl.lib.inputline import InputLine
from termrepl.models.dataModel import Mode, SearchState
from termrepl.models.state import Session


def search_scan(session: Session) -> Session:
    """Scan backwards from the search position for the current query.

    A match becomes the input line's value and pins the position on it.
    Without a match the position goes back to the most recent entry and the
    input line keeps whatever it showed before. An empty query clears the
    input line.
    """
    query: str = session.search.query.value
    if not query:
        return session.model_copy(update={"line": session.line.reset()})

    for i in range(min(session.search.position, session.history_maxIndex), -1, -1):
        entry: str = session.history[i]
        if query in entry:
            return session.model_copy(
                update={
                    "line": session.line.value_set(entry),
                    "search": session.search.model_copy(update={"position": i}),
                }
            )

    return session.model_copy(
        update={
            "search": session.search.model_copy(
                update={"position": session.history_maxIndex}
            )
        }
    )


def search_startOrAdvance(session: Session) -> Session:
    """Enter search mode, or scan again for the current query.

    Entering clears the query, moves focus from the input line to the search
    field, and remembers the text being edited.
    """
    if not session.is_searching:
        return session.model_copy(
            update={
                "mode": Mode.SEARCHING,
                "dirty_input": session.line.value,
                "line": session.line.blur(),
                "search": SearchState(
                    query=InputLine(focused=True),
                    position=session.history_maxIndex,
                ),
            }
        )
    return search_scan(session)


def search_restart(session: Session) -> Session:
    """Scan from the most recent entry, after the query changed."""
    return search_scan(
        session.model_copy(
            update={
                "search": session.search.model_copy(
                    update={"position": session.history_maxIndex}
                )
            }
        )
    )


def search_continue(session: Session) -> Session:
    """Look for the next older match."""
    if not session.is_searching or not session.history:
        return session
    return search_scan(
        session.model_copy(
            update={
                "search": session.search.model_copy(
                    update={"position": session.search.position - 1}
                )
            }
        )
    )


def search_end(session: Session, line: InputLine) -> Session:
    """Leave search mode with `line` as the input line."""
    return session.model_copy(
        update={
            "mode": Mode.NORMAL,
            "line": line.cursor_end().focus(),
            "dirty_input": "",
            "history_index": session.history_maxIndex,
            "search": SearchState(position=session.history_maxIndex),
        }
    )


def search_accept(session: Session) -> Session:
    if not session.is_searching:
        return session
    return search_end(session, session.line)


def search_abandon(session: Session) -> Session:
    if not session.is_searching:
        return session
    return search_end(session, session.line.value_set(session.dirty_input))
