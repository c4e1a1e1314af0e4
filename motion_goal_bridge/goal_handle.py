"""
Live record of one in-flight goal: cancellation flag and write-once outcome.
"""

import threading
from typing import Callable, List, Optional

from motion_goal_bridge.error_codes import TerminalOutcomeError
from motion_goal_bridge.goal_types import Goal, GoalKind, GoalOutcome, TerminalResult


class CancellationGate:
    """Cooperative cancellation flag, set by the requester and polled by the worker."""

    def __init__(self):
        self._event = threading.Event()

    def request_cancel(self):
        self._event.set()

    def is_canceling(self) -> bool:
        return self._event.is_set()


class GoalRecord:
    """
    One accepted goal.

    The terminal result may be written exactly once; a second write raises
    TerminalOutcomeError. Callbacks registered with add_done_callback run once,
    right after the terminal result is written.
    """

    def __init__(self, goal_id: str, goal: Goal, kind: GoalKind):
        self.goal_id = goal_id
        self.goal = goal
        self.kind = kind
        self.cancel_gate = CancellationGate()

        self._lock = threading.Lock()
        self._done = threading.Event()
        self._result: Optional[TerminalResult] = None
        self._callbacks: List[Callable[['GoalRecord'], None]] = []

    def request_cancel(self):
        self.cancel_gate.request_cancel()

    def is_canceling(self) -> bool:
        return self.cancel_gate.is_canceling()

    @property
    def result(self) -> Optional[TerminalResult]:
        with self._lock:
            return self._result

    def is_terminal(self) -> bool:
        return self._done.is_set()

    def succeed(self, message: str = '') -> TerminalResult:
        return self._finish(TerminalResult(GoalOutcome.SUCCEEDED, True, message))

    def abort(self, message: str = '', error_code: Optional[int] = None) -> TerminalResult:
        return self._finish(TerminalResult(GoalOutcome.ABORTED, False, message, error_code))

    def canceled(self, message: str = '') -> TerminalResult:
        return self._finish(TerminalResult(GoalOutcome.CANCELED, False, message))

    def _finish(self, result: TerminalResult) -> TerminalResult:
        with self._lock:
            if self._result is not None:
                raise TerminalOutcomeError(
                    f'Goal {self.goal_id} already {self._result.outcome.value}, '
                    f'refusing to mark it {result.outcome.value}'
                )
            self._result = result
            callbacks = list(self._callbacks)
            self._callbacks.clear()
            self._done.set()

        for callback in callbacks:
            callback(self)
        return result

    def add_done_callback(self, callback: Callable[['GoalRecord'], None]):
        with self._lock:
            if self._result is None:
                self._callbacks.append(callback)
                return
        callback(self)

    def wait(self, timeout: Optional[float] = None) -> Optional[TerminalResult]:
        """Block until the terminal result is written, or timeout."""
        self._done.wait(timeout)
        return self.result


def resolve_on_terminal(record: GoalRecord, future):
    """
    Complete ``future`` with the record's terminal result once it is written.

    Works with any future exposing ``set_result`` (rclpy or
    concurrent.futures), so a caller can await the outcome instead of
    blocking a thread in ``GoalRecord.wait``.
    """
    record.add_done_callback(lambda r: future.set_result(r.result))
    return future
