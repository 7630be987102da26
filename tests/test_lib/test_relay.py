# tests/test_lib/test_relay.py
import threading
from termrepl.lib.relay import StdinRelay


def test_readline_returns_complete_lines():
    relay = StdinRelay()
    relay.write(b"first\nsec")
    assert relay.readline() == b"first\n"
    relay.write(b"ond\n")
    assert relay.readline() == b"second\n"


def test_readline_blocks_until_newline():
    relay = StdinRelay()
    received: list[bytes] = []
    reader = threading.Thread(target=lambda: received.append(relay.readline()))
    reader.start()

    for char in b"hi":
        relay.write(bytes([char]))
    reader.join(0.1)
    assert reader.is_alive()

    relay.write(b"\n")
    reader.join(5)
    assert received == [b"hi\n"]


def test_close_wakes_reader_with_eof():
    relay = StdinRelay()
    received: list[bytes] = []
    reader = threading.Thread(target=lambda: received.append(relay.readline()))
    reader.start()

    relay.close()
    reader.join(5)
    assert received == [b""]
    assert relay.closed


def test_close_flushes_partial_line():
    relay = StdinRelay()
    relay.write(b"partial")
    relay.close()
    assert relay.readline() == b"partial"
    assert relay.readline() == b""


def test_write_after_close_is_refused():
    relay = StdinRelay()
    relay.close()
    assert relay.write(b"late\n") == 0


def reader_start(relay: StdinRelay, generation: int, received: list[bytes]) -> threading.Thread:
    def read() -> None:
        relay.reader_bind(generation)
        received.append(relay.readline())

    reader = threading.Thread(target=read)
    reader.start()
    return reader


def test_revoked_reader_gets_eof():
    relay = StdinRelay()
    received: list[bytes] = []
    generation = relay.open()
    reader = reader_start(relay, generation, received)
    reader.join(0.1)
    assert reader.is_alive()

    relay.write(b"par")
    relay.revoke(generation)
    reader.join(5)
    assert received == [b""]
    assert not relay.closed


def test_stale_reader_leaves_line_for_current_generation():
    relay = StdinRelay()
    stale: list[bytes] = []
    current: list[bytes] = []
    old_reader = reader_start(relay, relay.open(), stale)
    new_reader = reader_start(relay, relay.open(), current)
    old_reader.join(5)
    assert stale == [b""]

    relay.write(b"hi\n")
    new_reader.join(5)
    assert current == [b"hi\n"]


def test_open_drops_leftover_input():
    relay = StdinRelay()
    relay.write(b"typed during the last statement")
    relay.open()
    relay.write(b"fresh\n")
    assert relay.readline() == b"fresh\n"


def test_revoking_an_old_generation_is_ignored():
    relay = StdinRelay()
    old = relay.open()
    relay.open()
    relay.write(b"keep\n")
    relay.revoke(old)
    assert relay.readline() == b"keep\n"
