import pytest

from motion_goal_bridge.error_codes import MoveItErrorCode
from motion_goal_bridge.execution_driver import ExecutionDriver
from motion_goal_bridge.goal_handle import GoalRecord
from motion_goal_bridge.goal_types import Goal, GoalKind, GoalOutcome
from motion_goal_bridge.planning_session import PlanningSession


@pytest.fixture
def session(move_group, config, motion_logger):
    s = PlanningSession(lambda: move_group, config, motion_logger)
    s.initialize()
    return s


@pytest.fixture
def record():
    return GoalRecord('g1', Goal(state='home'), GoalKind.NAMED_TARGET)


def test_success(session, record, move_group, motion_logger):
    driver = ExecutionDriver(motion_logger)
    status = driver.execute(session, 'plan')
    result = driver.finish(session, record, status)

    assert move_group.executed == ['plan']
    assert result.outcome == GoalOutcome.SUCCEEDED
    assert move_group.stop_count == 0


def test_failure_stops_and_aborts(session, record, move_group, motion_logger):
    move_group.execute_status = MoveItErrorCode.CONTROL_FAILED
    driver = ExecutionDriver(motion_logger)

    result = driver.finish(session, record, driver.execute(session, 'plan'))

    assert result.outcome == GoalOutcome.ABORTED
    assert result.error_code == MoveItErrorCode.CONTROL_FAILED
    assert 'CONTROL_FAILED' in result.message
    assert move_group.stop_count == 1


def test_success_status_after_shutdown_aborts(session, record, move_group, motion_logger):
    driver = ExecutionDriver(motion_logger)

    result = driver.finish(session, record, MoveItErrorCode.SUCCESS, operational=False)

    assert result.outcome == GoalOutcome.ABORTED
    assert move_group.stop_count == 1
