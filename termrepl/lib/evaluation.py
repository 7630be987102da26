"""
Cancellable background evaluation.

An `EvaluationSession` owns exactly one execution of submitted source text:

- `start()` runs `runtime.run(source)` on a daemon thread and returns at once
- the result is delivered through a single-slot `concurrent.futures.Future`
- `cancel()` sets a cancellation token; a result produced afterwards is
  discarded instead of delivered
- `relay_write()` forwards keystrokes to the program's stdin while it runs;
  starting opens a fresh relay generation and cancelling revokes it, so a
  cancelled program blocked in a read gets EOF instead of the next
  statement's input

The token is checked once, right before delivery. Runtimes have no cancellation
checkpoints, so a cancelled statement keeps running in the background until it
finishes on its own; whatever it produces is lost.
"""

import threading
import uuid
from concurrent.futures import Future, InvalidStateError
from datetime import datetime
from enum import Enum
from typing import Self
from termrepl.lib.log import LOG
from termrepl.lib.relay import StdinRelay
from termrepl.lib.runtime import Runtime
from termrepl.models.dataModel import EvaluationResult, RuntimeValue, ValueKind


class EvaluationState(Enum):
    IDLE = "idle"
    RUNNING = "running"
    COMPLETED = "completed"
    CANCELLED = "cancelled"


def evaluationID_generate() -> str:
    """
    Generate a unique evaluation ID in the format YYYYMMDDHHmmSSmmm-<uuid>.

    :return: An evaluation ID string.
    """
    now = datetime.now()
    timestamp = now.strftime("%Y%m%d%H%M%S") + f"{now.microsecond // 1000:03d}"
    return f"{timestamp}-{uuid.uuid4().hex}"


class EvaluationSession:
    """One in-flight runtime execution.

    Attributes:
        id: Unique identifier, echoed back with the result
        source: The submitted statement
        state: IDLE, RUNNING, COMPLETED or CANCELLED
        token: Cancellation token checked before the result is delivered
        future: Completion channel resolved with the EvaluationResult
    """

    def __init__(
        self: Self,
        runtime: Runtime,
        source: str,
        relay: StdinRelay | None = None,
        evaluation_id: str | None = None,
    ) -> None:
        self.id: str = evaluation_id or evaluationID_generate()
        self.source: str = source
        self.runtime: Runtime = runtime
        self.relay: StdinRelay | None = relay
        self.state: EvaluationState = EvaluationState.IDLE
        self.token: threading.Event = threading.Event()
        self.future: Future[EvaluationResult] = Future()
        self._thread: threading.Thread | None = None
        self._generation: int = 0

    @property
    def running(self: Self) -> bool:
        return self.state is EvaluationState.RUNNING

    def start(self: Self) -> Self:
        """Hand the source to the runtime on a background thread.

        Returns:
            The session itself, now RUNNING

        Raises:
            RuntimeError: If the session was already started
        """
        if self.state is not EvaluationState.IDLE:
            raise RuntimeError(f"Evaluation {self.id} already started")
        self.state = EvaluationState.RUNNING
        if self.relay is not None:
            self._generation = self.relay.open()
        self._thread = threading.Thread(
            target=self._execute, name=f"eval-{self.id}", daemon=True
        )
        self._thread.start()
        LOG(f"Started evaluation {self.id}: {self.source!r}")
        return self

    def _execute(self: Self) -> None:
        if self.relay is not None:
            self.relay.reader_bind(self._generation)
        try:
            result: EvaluationResult = self.runtime.run(self.source)
        except Exception as e:
            LOG(f"Runtime raised during evaluation {self.id}: {e}")
            result = EvaluationResult(
                output=RuntimeValue(kind=ValueKind.OTHER, native=e), succeeded=False
            )

        if self.token.is_set():
            LOG(f"Discarding result of cancelled evaluation {self.id}")
            return

        try:
            self.future.set_result(result)
        except InvalidStateError:
            LOG(f"Discarding result of cancelled evaluation {self.id}")
            return
        self.state = EvaluationState.COMPLETED

    def cancel(self: Self) -> bool:
        """Signal cancellation and give up on the result.

        Returns:
            bool: True if the session was running and is now cancelled
        """
        if self.state is not EvaluationState.RUNNING:
            return False
        self.token.set()
        self.future.cancel()
        if self.relay is not None:
            self.relay.revoke(self._generation)
        self.state = EvaluationState.CANCELLED
        LOG(f"Cancelled evaluation {self.id}")
        return True

    def relay_write(self: Self, data: bytes) -> int:
        """Forward raw bytes to the program's stdin.

        Args:
            data: Bytes typed by the user

        Returns:
            int: Bytes written; 0 when not running or without a relay
        """
        if not self.running or self.relay is None or not data:
            return 0
        return self.relay.write(data)

    def join(self: Self, timeout: float | None = None) -> None:
        """Wait for the background thread, mostly useful in tests."""
        if self._thread is not None:
            self._thread.join(timeout)
