# tests/test_lib/test_search.py
import pytest
from termrepl.lib.inputline import InputLine
from termrepl.lib.search import (
    search_abandon,
    search_accept,
    search_continue,
    search_restart,
    search_startOrAdvance,
)
from termrepl.models.dataModel import Mode
from termrepl.models.state import Session


def session_make(history: list[str], text: str = "") -> Session:
    return Session(
        prompt="> ",
        line=InputLine().value_set(text),
        history=tuple(history),
        history_index=len(history) - 1,
    )


def query_type(session: Session, query: str) -> Session:
    search = session.search.model_copy(update={"query": InputLine().value_set(query)})
    return search_restart(session.model_copy(update={"search": search}))


@pytest.fixture
def history() -> list[str]:
    return ["foo = 1", "bar = 2", "foo = 3"]


def test_start_enters_search_mode(history):
    session = search_startOrAdvance(session_make(history, "draft"))
    assert session.mode is Mode.SEARCHING
    assert session.dirty_input == "draft"
    assert session.line.focused is False
    assert session.search.query.focused is True
    assert session.search.query.value == ""
    assert session.search.position == 2


def test_typing_finds_most_recent_match(history):
    session = query_type(search_startOrAdvance(session_make(history)), "foo")
    assert session.line.value == "foo = 3"
    assert session.search.position == 2


def test_continue_finds_older_match(history):
    session = query_type(search_startOrAdvance(session_make(history)), "foo")
    session = search_continue(session)
    assert session.line.value == "foo = 1"
    assert session.search.position == 0


def test_no_older_match_keeps_line_and_rewinds(history):
    session = query_type(search_startOrAdvance(session_make(history)), "foo")
    session = search_continue(search_continue(session))
    assert session.line.value == "foo = 1"
    assert session.search.position == 2


def test_match_is_case_sensitive(history):
    session = query_type(search_startOrAdvance(session_make(history)), "FOO")
    assert session.line.value == ""
    assert session.search.position == 2


def test_empty_query_clears_line(history):
    session = query_type(search_startOrAdvance(session_make(history)), "bar")
    assert session.line.value == "bar = 2"
    session = query_type(session, "")
    assert session.line.value == ""


def test_start_or_advance_while_searching_rescans(history):
    session = query_type(search_startOrAdvance(session_make(history)), "bar")
    assert search_startOrAdvance(session).line.value == "bar = 2"


def test_continue_with_empty_history_is_noop():
    session = search_startOrAdvance(session_make([]))
    assert search_continue(session) == session


def test_accept_keeps_match(history):
    session = query_type(search_startOrAdvance(session_make(history, "draft")), "bar")
    session = search_accept(session)
    assert session.mode is Mode.NORMAL
    assert session.line.value == "bar = 2"
    assert session.line.focused is True
    assert session.line.cursor == len("bar = 2")
    assert session.dirty_input == ""
    assert session.history_index == 2


def test_abandon_restores_text_before_search(history):
    session = query_type(search_startOrAdvance(session_make(history, "draft")), "bar")
    session = search_abandon(session)
    assert session.mode is Mode.NORMAL
    assert session.line.value == "draft"
    assert session.search.query.value == ""


def test_accept_and_abandon_outside_search_are_noops(history):
    session = session_make(history, "draft")
    assert search_accept(session) == session
    assert search_abandon(session) == session
    assert search_continue(session) == session
