import threading
from concurrent.futures import Future

import pytest

from motion_goal_bridge.error_codes import TerminalOutcomeError
from motion_goal_bridge.goal_handle import GoalRecord, resolve_on_terminal
from motion_goal_bridge.goal_types import Goal, GoalKind, GoalOutcome


@pytest.fixture
def record():
    return GoalRecord('g1', Goal(state='home'), GoalKind.NAMED_TARGET)


def test_terminal_result_is_written_once(record):
    result = record.succeed('done')
    assert result.outcome == GoalOutcome.SUCCEEDED
    assert result.success
    assert record.is_terminal()

    with pytest.raises(TerminalOutcomeError):
        record.abort('late abort')
    with pytest.raises(TerminalOutcomeError):
        record.canceled()

    assert record.result.outcome == GoalOutcome.SUCCEEDED
    assert record.result.message == 'done'


def test_abort_keeps_error_code(record):
    record.abort('planning failed', error_code=-1)
    assert not record.result.success
    assert record.result.error_code == -1


def test_cancel_flag(record):
    assert not record.is_canceling()
    record.request_cancel()
    record.request_cancel()
    assert record.is_canceling()
    assert not record.is_terminal()


def test_done_callbacks_run_once(record):
    seen = []
    record.add_done_callback(lambda r: seen.append(r.result.outcome))
    record.canceled('stop')
    record.add_done_callback(lambda r: seen.append('late'))

    assert seen == [GoalOutcome.CANCELED, 'late']


def test_wait_returns_result_from_other_thread(record):
    threading.Timer(0.05, record.succeed).start()
    result = record.wait(timeout=2.0)
    assert result is not None
    assert result.outcome == GoalOutcome.SUCCEEDED


def test_wait_times_out(record):
    assert record.wait(timeout=0.01) is None


def test_resolve_on_terminal_completes_future(record):
    future = resolve_on_terminal(record, Future())
    assert not future.done()

    threading.Timer(0.05, record.abort, args=('late',)).start()

    result = future.result(timeout=2.0)
    assert result.outcome == GoalOutcome.ABORTED
    assert result.message == 'late'


def test_resolve_on_terminal_after_finish(record):
    record.succeed()
    assert resolve_on_terminal(record, Future()).result(timeout=0).success
