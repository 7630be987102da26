# tests/test_lib/test_session.py
import random
import threading
from unittest.mock import patch
import pytest
from termrepl.lib.errors import HistoryPersistenceError
from termrepl.lib.session import SessionController
from termrepl.lib.styles import STYLE_ERR
from termrepl.models.dataModel import (
    EvaluationDone,
    EvaluationResult,
    Key,
    KeyEvent,
    Mode,
    RuntimeValue,
    ValueKind,
)
from termrepl.models.state import (
    AwaitEffect,
    ClearEffect,
    Effect,
    PrintEffect,
    QuitEffect,
    Session,
)


def typed(text: str) -> list[KeyEvent]:
    return [KeyEvent(key=Key.RUNES, runes=char) for char in text]


def press(key: Key, times: int = 1) -> list[KeyEvent]:
    return [KeyEvent(key=key)] * times


def feed(
    controller: SessionController, session: Session, events: list
) -> tuple[Session, list[Effect]]:
    """Run events through the controller, collecting every effect."""
    effects: list[Effect] = []
    for event in events:
        transition = controller.update(session, event)
        session = transition.session
        effects.extend(transition.effects)
    return session, effects


def transcript(effects: list[Effect]) -> list[str]:
    return [
        line.plain
        for effect in effects
        if isinstance(effect, PrintEffect)
        for line in effect.lines
    ]


def evaluation_finish(
    controller: SessionController, session: Session
) -> tuple[Session, list[Effect]]:
    """Wait for the running evaluation and deliver its result."""
    evaluation = session.evaluation
    result = evaluation.future.result(timeout=5)
    return feed(
        controller,
        session,
        [EvaluationDone(evaluation_id=evaluation.id, result=result)],
    )


@pytest.fixture
def session(controller) -> Session:
    return controller.session_initialize(["foo = 1", "bar = 2", "foo = 3"], "> ")


def test_initial_session(session):
    assert session.mode is Mode.NORMAL
    assert session.history_index == 2
    assert session.search.position == 2
    assert session.line.focused


def test_empty_submit_echoes_prompt(controller, session):
    after, effects = feed(controller, session, press(Key.ENTER))
    assert transcript(effects) == ["> "]
    assert after.mode is Mode.NORMAL
    assert after.history == session.history


def test_submit_starts_evaluation(controller, session):
    after, effects = feed(controller, session, typed("abc") + press(Key.ENTER))
    assert after.mode is Mode.EVALUATING
    assert after.history[-1] == "abc"
    assert after.history_index == 3
    assert after.line.focused is False
    assert after.current_line() == "> abc"
    assert len(effects) == 1
    assert isinstance(effects[0], AwaitEffect)
    assert effects[0].evaluation is after.evaluation

    done, effects = evaluation_finish(controller, after)
    assert transcript(effects) == ["> abc", "ABC"]
    assert done.mode is Mode.NORMAL
    assert done.evaluation is None
    assert done.line.value == ""
    assert done.line.focused


def test_result_transcript_order(controller, session, runtime):
    runtime.results["bad"] = EvaluationResult(
        output=RuntimeValue.null(),
        succeeded=False,
        parse_errors=["first", "second\ndetail"],
        stdout="printed\n",
    )
    after, _ = feed(controller, session, typed("bad") + press(Key.ENTER))
    _, effects = evaluation_finish(controller, after)
    assert transcript(effects) == [
        "> bad",
        "encountered 2 syntax errors:",
        "  1) first",
        "  2) second",
        "     detail",
        "printed",
    ]


def test_failed_value_is_styled_as_error(controller, session, runtime):
    runtime.results["boom"] = EvaluationResult(
        output=RuntimeValue(kind=ValueKind.OTHER, native="Boom!"), succeeded=False
    )
    after, _ = feed(controller, session, typed("boom") + press(Key.ENTER))
    _, effects = evaluation_finish(controller, after)
    last = effects[0].lines[-1]
    assert last.plain == "Boom!"
    assert last.style == STYLE_ERR


def test_cancel_suppresses_late_result(controller, session, runtime):
    """
    Ctrl-C while evaluating reports immediately; the eventual result is dropped.
    """
    runtime.gate = threading.Event()
    running, _ = feed(controller, session, typed("slow") + press(Key.ENTER))
    evaluation = running.evaluation

    cancelled, effects = feed(controller, running, press(Key.CTRL_C))
    assert transcript(effects) == ["> slow"]
    assert cancelled.mode is Mode.NORMAL
    assert cancelled.evaluation is None
    assert evaluation.future.cancelled()

    runtime.gate.set()
    evaluation.join(5)
    late = EvaluationDone(
        evaluation_id=evaluation.id,
        result=EvaluationResult(
            output=RuntimeValue(kind=ValueKind.OTHER, native="SLOW"), succeeded=True
        ),
    )
    after, effects = feed(controller, cancelled, [late])
    assert effects == []
    assert after == cancelled


def test_result_of_other_evaluation_is_ignored(controller, session, runtime):
    runtime.gate = threading.Event()
    running, _ = feed(controller, session, typed("slow") + press(Key.ENTER))
    stray = EvaluationDone(
        evaluation_id="not-the-running-one",
        result=EvaluationResult(output=RuntimeValue.null(), succeeded=True),
    )
    after, effects = feed(controller, running, [stray])
    assert effects == []
    assert after.mode is Mode.EVALUATING
    runtime.gate.set()
    running.evaluation.join(5)


def test_keys_relayed_while_evaluating(controller, session, runtime, relay):
    runtime.gate = threading.Event()
    running, _ = feed(controller, session, typed("read") + press(Key.ENTER))

    after, effects = feed(
        controller, running, typed("yes") + press(Key.ENTER) + press(Key.ESCAPE)
    )
    assert relay.readline() == b"yes\n"
    assert effects == []
    assert after.mode is Mode.EVALUATING
    assert after.line.value == "read"

    runtime.gate.set()
    running.evaluation.join(5)


@pytest.mark.parametrize("ups", [1, 2, 3])
def test_history_up_then_down_restores_line(controller, session, ups):
    start, _ = feed(controller, session, typed("draft"))
    moved, _ = feed(controller, start, press(Key.UP, ups))
    assert moved.line.value == session.history[-ups]
    back, _ = feed(controller, moved, press(Key.DOWN, ups))
    assert back.line.value == "draft"
    assert back.history_index == 2


def test_history_walk_shows_each_entry(controller, session):
    shown: list[str] = []
    current = session
    for _ in range(4):
        current, _ = feed(controller, current, press(Key.UP))
        shown.append(current.line.value)
    assert shown == ["foo = 3", "bar = 2", "foo = 1", "foo = 1"]

    shown = []
    for _ in range(4):
        current, _ = feed(controller, current, press(Key.DOWN))
        shown.append(current.line.value)
    assert shown == ["bar = 2", "foo = 3", "", ""]


def test_history_keys_with_empty_history(controller):
    empty = controller.session_initialize([], "> ")
    after, _ = feed(controller, empty, typed("x") + press(Key.UP) + press(Key.DOWN))
    assert after.line.value == "x"
    assert after.history_index == -1


def test_duplicate_submissions_recorded(controller, session):
    after, _ = feed(controller, session, typed("foo = 3") + press(Key.ENTER))
    after.evaluation.join(5)
    assert after.history[-2:] == ("foo = 3", "foo = 3")


def test_search_through_controller(controller, session):
    searching, _ = feed(controller, session, typed("draft") + press(Key.CTRL_R))
    assert searching.mode is Mode.SEARCHING

    found, _ = feed(controller, searching, typed("foo"))
    assert found.line.value == "foo = 3"
    assert found.search.query.value == "foo"

    older, _ = feed(controller, found, press(Key.CTRL_R))
    assert older.line.value == "foo = 1"

    accepted, _ = feed(controller, older, press(Key.ENTER))
    assert accepted.mode is Mode.NORMAL
    assert accepted.line.value == "foo = 1"
    assert accepted.evaluation is None


@pytest.mark.parametrize("key", [Key.CTRL_C, Key.CTRL_D])
def test_search_abandon_restores_draft(controller, session, key):
    searching, _ = feed(controller, session, typed("draft") + press(Key.CTRL_R) + typed("bar"))
    assert searching.line.value == "bar = 2"
    after, effects = feed(controller, searching, press(key))
    assert after.mode is Mode.NORMAL
    assert after.line.value == "draft"
    assert effects == []


def test_search_query_editing_restarts_scan(controller, session):
    searching, _ = feed(controller, session, press(Key.CTRL_R) + typed("bax"))
    assert searching.line.value == "bar = 2"
    corrected, _ = feed(controller, searching, press(Key.BACKSPACE) + press(Key.BACKSPACE))
    assert corrected.search.query.value == "b"
    assert corrected.line.value == "bar = 2"


def test_suggestions_through_controller(controller, session):
    suggesting, _ = feed(controller, session, typed("hel") + press(Key.TAB))
    assert suggesting.mode is Mode.SUGGESTING
    assert suggesting.line.value == "hel"

    cycled, _ = feed(controller, suggesting, press(Key.TAB) + press(Key.DOWN))
    assert cycled.line.value == "hello"
    cycled, _ = feed(controller, cycled, press(Key.UP))
    assert cycled.line.value == "help"

    accepted, effects = feed(controller, cycled, press(Key.ENTER))
    assert accepted.mode is Mode.NORMAL
    assert accepted.line.value == "help"
    assert effects == []


def test_up_before_any_highlight_previews_last_candidate(controller, session):
    suggesting, _ = feed(controller, session, typed("hel") + press(Key.TAB))
    cycled, _ = feed(controller, suggesting, press(Key.UP))
    assert cycled.suggestion_index == len(cycled.suggestions) - 1
    assert cycled.line.value == "help_text"


def test_other_key_leaves_suggestions_with_original_text(controller, session):
    suggesting, _ = feed(controller, session, typed("hel") + press(Key.TAB) + press(Key.TAB))
    after, _ = feed(controller, suggesting, typed("x"))
    assert after.mode is Mode.NORMAL
    assert after.line.value == "hel"


def test_tab_on_empty_line_takes_placeholder(controller):
    fresh = controller.session_initialize([], "> ", placeholder="sum(range(10))")
    after, _ = feed(controller, fresh, press(Key.TAB))
    assert after.line.value == "sum(range(10))"


def test_submit_clears_placeholder(controller):
    fresh = controller.session_initialize([], "> ", placeholder="sum(range(10))")
    after, _ = feed(controller, fresh, press(Key.ENTER))
    assert after.line.placeholder == ""


def test_ctrl_c_at_prompt_echoes_and_clears(controller, session):
    after, effects = feed(controller, session, typed("oops") + press(Key.CTRL_C))
    assert transcript(effects) == ["> oops"]
    assert after.line.value == ""
    assert after.history == session.history


def test_ctrl_l_clears_screen(controller, session):
    _, effects = feed(controller, session, press(Key.CTRL_L))
    assert isinstance(effects[0], ClearEffect)


def test_help_command(controller, session):
    after, effects = feed(controller, session, typed("help") + press(Key.ENTER))
    lines = transcript(effects)
    assert lines[0] == "> help"
    assert any("Try typing something" in line for line in lines)
    assert after.mode is Mode.NORMAL
    assert after.evaluation is None
    assert after.line.value == ""


def test_quit_command_saves_history(controller, session, tmp_path):
    after, effects = feed(controller, session, typed("quit") + press(Key.ENTER))
    assert isinstance(effects[-1], QuitEffect)
    assert (tmp_path / "history").read_text() == "foo = 1\nbar = 2\nfoo = 3\nquit\n"


@pytest.mark.parametrize("key", [Key.ESCAPE, Key.CTRL_D])
def test_quit_keys(controller, session, key, tmp_path):
    _, effects = feed(controller, session, press(key))
    assert [type(effect) for effect in effects] == [QuitEffect]
    assert (tmp_path / "history").exists()


def test_quit_reports_history_failure(controller, session):
    with patch("termrepl.lib.session.history_save") as mock_save:
        mock_save.side_effect = HistoryPersistenceError("/ro/history", "Read-only file system")
        _, effects = feed(controller, session, press(Key.ESCAPE))
    assert transcript(effects) == [
        "Cannot write to history file (/ro/history): Read-only file system"
    ]
    assert isinstance(effects[-1], QuitEffect)


def test_unknown_event_is_ignored(controller, session):
    transition = controller.update(session, "not an event")
    assert transition.session == session
    assert transition.effects == []


def test_modes_stay_consistent(controller, session):
    """
    Whatever the keys, exactly one mode owns the session and its state agrees.
    """
    rng = random.Random(7)
    pool = typed("fo.hel") + [
        KeyEvent(key=key)
        for key in (
            Key.ENTER,
            Key.TAB,
            Key.UP,
            Key.DOWN,
            Key.LEFT,
            Key.BACKSPACE,
            Key.CTRL_C,
            Key.CTRL_R,
            Key.CTRL_L,
        )
    ]
    current = session
    for _ in range(300):
        current, _ = feed(controller, current, [rng.choice(pool)])
        if current.is_evaluating:
            assert current.evaluation is not None
            current, _ = evaluation_finish(controller, current)
        assert current.evaluation is None
        assert (current.mode is Mode.SUGGESTING) == bool(current.suggestions)
        assert -1 <= current.history_index <= current.history_maxIndex
        assert current.line.focused != current.is_searching
