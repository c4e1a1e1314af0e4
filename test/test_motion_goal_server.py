import inspect
import threading
from types import SimpleNamespace

import pytest

pytest.importorskip('rclpy')
pytest.importorskip('motion_goal_interfaces')

from motion_goal_bridge.goal_handle import GoalRecord  # noqa: E402
from motion_goal_bridge.goal_types import Goal, GoalKind, GoalOutcome  # noqa: E402
from motion_goal_bridge.motion_goal_server import MotionGoalServer  # noqa: E402


def test_execute_callback_is_a_coroutine():
    assert inspect.iscoroutinefunction(MotionGoalServer._execute_callback)


def test_terminal_future_completes_from_worker_thread(motion_logger):
    server = SimpleNamespace(executor=None, motion_logger=motion_logger)
    record = GoalRecord('g1', Goal(state='home'), GoalKind.NAMED_TARGET)

    future = MotionGoalServer._terminal_future(server, record)
    assert not future.done()

    worker = threading.Thread(target=record.succeed, args=('done',))
    worker.start()
    worker.join(2.0)

    assert future.done()
    assert future.result().outcome == GoalOutcome.SUCCEEDED
