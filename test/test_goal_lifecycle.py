import threading
from concurrent.futures import Future

import pytest

from motion_goal_bridge.error_codes import GoalDispatchError, MoveItErrorCode
from motion_goal_bridge.execution_driver import ExecutionDriver
from motion_goal_bridge.goal_handle import resolve_on_terminal
from motion_goal_bridge.goal_lifecycle import GoalLifecycleController
from motion_goal_bridge.goal_types import Goal, GoalOutcome, Pose
from motion_goal_bridge.planner_configurator import PlannerConfigurator
from motion_goal_bridge.planning_session import PlanningSession
from motion_goal_bridge.trajectory_synthesizer import TrajectorySynthesizer

TIMEOUT = 5.0


class WorkerKilled(BaseException):
    pass


@pytest.fixture
def make_controller(move_group, config, motion_logger):
    controllers = []

    def factory(**kwargs):
        session = PlanningSession(lambda: move_group, config, motion_logger)
        controller = GoalLifecycleController(
            session,
            PlannerConfigurator(config),
            TrajectorySynthesizer(config, motion_logger),
            ExecutionDriver(motion_logger),
            motion_logger,
            **kwargs,
        )
        controllers.append(controller)
        return controller

    yield factory
    for controller in controllers:
        controller.shutdown(wait=True)


@pytest.fixture
def controller(make_controller):
    return make_controller()


def waypoints():
    return [Pose.from_xyz(0.3, 0.1, 0.4), Pose.from_xyz(0.3, -0.1, 0.4)]


def test_named_target_succeeds(controller, move_group):
    stages = []
    record = controller.submit(Goal(state='home', velocity=0.2, acceleration=0.2),
                               feedback_callback=stages.append)

    result = record.wait(TIMEOUT)

    assert result.outcome == GoalOutcome.SUCCEEDED
    assert result.success
    assert move_group.executed == ['joint-plan']
    assert stages == ['configuring', 'synthesizing', 'executing']


def test_waypoints_succeed(controller, move_group):
    record = controller.submit(Goal(pose_array=waypoints()))

    result = record.wait(TIMEOUT)

    assert result.outcome == GoalOutcome.SUCCEEDED
    assert move_group.executed == ['cartesian-plan']


def test_partial_path_aborts_without_execution(controller, move_group):
    move_group.cartesian_fraction = 0.6
    record = controller.submit(Goal(pose_array=waypoints()))

    result = record.wait(TIMEOUT)

    assert result.outcome == GoalOutcome.ABORTED
    assert not result.success
    assert '60.0%' in result.message
    assert 'execute' not in move_group.call_names()
    assert move_group.stop_count == 1


def test_named_target_planning_failure_aborts(controller, move_group):
    move_group.plan_error_code = MoveItErrorCode.PLANNING_FAILED
    record = controller.submit(Goal(state='home'))

    result = record.wait(TIMEOUT)

    assert result.outcome == GoalOutcome.ABORTED
    assert result.error_code == MoveItErrorCode.PLANNING_FAILED
    assert 'PLANNING_FAILED' in result.message
    assert move_group.executed == []


def test_cancel_during_synthesis_observed_before_execution(controller, move_group):
    move_group.on_plan = lambda: controller.cancel('dest-1')

    record = controller.dispatch('dest-1', Goal(destination=Pose.from_xyz(1.0, 2.0, 3.0)))
    result = record.wait(TIMEOUT)

    assert result.outcome == GoalOutcome.CANCELED
    assert not result.success
    assert 'post-synthesis' in result.message
    assert move_group.stop_count == 1
    assert 'execute' not in move_group.call_names()


def test_cancel_twice_is_same_as_once(controller, move_group):
    def cancel_twice():
        controller.cancel('g-twice')
        controller.cancel('g-twice')

    move_group.on_plan = cancel_twice
    record = controller.dispatch('g-twice', Goal(state='home'))

    result = record.wait(TIMEOUT)

    assert result.outcome == GoalOutcome.CANCELED
    assert move_group.stop_count == 1


def test_cancel_during_execution_observed_after_it_returns(controller, move_group):
    move_group.on_execute = lambda: controller.cancel('g-exec')
    record = controller.dispatch('g-exec', Goal(state='home'))

    result = record.wait(TIMEOUT)

    assert result.outcome == GoalOutcome.CANCELED
    assert 'post-execution' in result.message
    assert move_group.executed == ['joint-plan']


def test_empty_goal_is_rejected(controller, move_group):
    assert controller.submit(Goal()) is None
    assert controller.active_goal_ids() == []
    assert move_group.calls == []


def test_invalid_goal_dispatched_directly_aborts(controller, move_group):
    record = controller.dispatch('bad', Goal())

    result = record.wait(TIMEOUT)

    assert result.outcome == GoalOutcome.ABORTED
    assert 'compute_cartesian_path' not in move_group.call_names()
    assert 'plan' not in move_group.call_names()


def test_execution_failure_aborts_with_status(controller, move_group):
    move_group.execute_status = MoveItErrorCode.CONTROL_FAILED
    record = controller.submit(Goal(state='home'))

    result = record.wait(TIMEOUT)

    assert result.outcome == GoalOutcome.ABORTED
    assert result.error_code == MoveItErrorCode.CONTROL_FAILED
    assert move_group.stop_count == 1


def test_not_operational_aborts_before_execution(make_controller, move_group):
    controller = make_controller(is_operational=lambda: False)
    record = controller.submit(Goal(state='home'))

    result = record.wait(TIMEOUT)

    assert result.outcome == GoalOutcome.ABORTED
    assert result.message == 'System shut down before execution'
    assert 'SUCCESS' not in result.message
    assert move_group.executed == []


def test_destination_succeeds(controller, move_group, config):
    destination = Pose.from_xyz(0.3, 0.2, 0.4)
    record = controller.submit(Goal(destination=destination))

    result = record.wait(TIMEOUT)

    assert result.outcome == GoalOutcome.SUCCEEDED
    assert move_group.executed == ['cartesian-plan']
    request = move_group.cartesian_requests[-1]
    assert request['waypoints'][0] is destination
    assert len(request['constraints'].position_constraints) == 1
    assert len(request['constraints'].orientation_constraints) == 1
    assert ('set_planner_id', config.destination_planner_id) in move_group.calls


@pytest.mark.parametrize('fraction', [0.999999, 0.0])
def test_incomplete_destination_path_aborts_without_execution(controller, move_group, fraction):
    move_group.cartesian_fraction = fraction
    record = controller.submit(Goal(destination=Pose.from_xyz(0.3, 0.2, 0.4)))

    result = record.wait(TIMEOUT)

    assert result.outcome == GoalOutcome.ABORTED
    assert not result.success
    assert 'execute' not in move_group.call_names()
    assert move_group.stop_count == 1


def test_raising_terminal_listener_does_not_disturb_goal(controller, move_group, ros_logger):
    seen = []

    def broken(record):
        raise RuntimeError('listener broke')

    controller.add_terminal_listener(broken)
    controller.add_terminal_listener(lambda r: seen.append(r.goal_id))

    record = controller.dispatch('g-broken', Goal(state='home'))
    record.wait(TIMEOUT)
    controller.shutdown(wait=True)

    assert record.result.outcome == GoalOutcome.SUCCEEDED
    assert seen == ['g-broken']
    assert move_group.stop_count == 0
    assert any('listener broke' in m for m in ros_logger.of_level('error'))


def test_queued_goals_resolve_without_blocking_the_caller(controller, move_group):
    started = threading.Event()
    release = threading.Event()

    def block():
        started.set()
        release.wait(TIMEOUT)

    move_group.on_execute = block

    first = resolve_on_terminal(controller.dispatch('first', Goal(state='home')), Future())
    assert started.wait(TIMEOUT)
    queued = [
        resolve_on_terminal(controller.dispatch(f'queued-{i}', Goal(state='home')), Future())
        for i in range(4)
    ]

    # Caller stays free while the pool is busy: a queued goal can still be cancelled
    assert controller.cancel('queued-2')
    assert not first.done()
    assert not any(f.done() for f in queued)

    release.set()

    assert first.result(TIMEOUT).outcome == GoalOutcome.SUCCEEDED
    outcomes = [f.result(TIMEOUT).outcome for f in queued]
    assert outcomes == [
        GoalOutcome.SUCCEEDED,
        GoalOutcome.SUCCEEDED,
        GoalOutcome.CANCELED,
        GoalOutcome.SUCCEEDED,
    ]


def test_exception_in_worker_aborts_and_stops(controller, move_group):
    def explode():
        raise RuntimeError('planner exploded')

    move_group.on_plan = explode
    record = controller.submit(Goal(state='home'))

    result = record.wait(TIMEOUT)

    assert result.outcome == GoalOutcome.ABORTED
    assert 'planner exploded' in result.message
    assert move_group.stop_count >= 1


def test_worker_killed_is_aborted_by_supervisor(controller, move_group):
    def kill():
        raise WorkerKilled()

    move_group.on_plan = kill
    record = controller.submit(Goal(state='home'))

    result = record.wait(TIMEOUT)

    assert result.outcome == GoalOutcome.ABORTED
    assert 'Worker crashed' in result.message


def test_terminal_listener_called_once_per_goal(controller):
    seen = []
    controller.add_terminal_listener(lambda r: seen.append((r.goal_id, r.result.outcome)))

    record = controller.dispatch('g-listen', Goal(state='home'))
    record.wait(TIMEOUT)
    controller.shutdown(wait=True)

    assert seen == [('g-listen', GoalOutcome.SUCCEEDED)]
    assert controller.get_goal('g-listen') is None


def test_duplicate_active_goal_id_is_refused(controller, move_group):
    release = threading.Event()
    move_group.on_execute = lambda: release.wait(TIMEOUT)

    record = controller.dispatch('same', Goal(state='home'))
    try:
        with pytest.raises(GoalDispatchError):
            controller.dispatch('same', Goal(state='home'))
    finally:
        release.set()

    assert record.wait(TIMEOUT).outcome == GoalOutcome.SUCCEEDED


def test_dispatch_after_shutdown_is_refused(controller):
    controller.shutdown()
    with pytest.raises(GoalDispatchError):
        controller.dispatch('late', Goal(state='home'))


def test_cancel_unknown_goal_is_accepted(controller, ros_logger):
    assert controller.cancel('nope')
    assert any('nope' in m for m in ros_logger.of_level('warn'))


def test_queued_goal_dropped_on_shutdown_is_aborted(controller, move_group):
    started = threading.Event()
    release = threading.Event()

    def block():
        started.set()
        release.wait(TIMEOUT)

    move_group.on_execute = block

    running = controller.dispatch('first', Goal(state='home'))
    queued = controller.dispatch('second', Goal(state='home'))
    assert started.wait(TIMEOUT)

    controller.shutdown(wait=False)
    release.set()

    assert running.wait(TIMEOUT).outcome == GoalOutcome.SUCCEEDED
    result = queued.wait(TIMEOUT)
    assert result.outcome == GoalOutcome.ABORTED
    assert 'dropped' in result.message


def test_session_initialized_once_across_goals(controller, move_group):
    controller.submit(Goal(state='home')).wait(TIMEOUT)
    controller.submit(Goal(pose_array=waypoints())).wait(TIMEOUT)

    assert move_group.call_names().count('set_goal_tolerance') == 1
    assert ('set_goal_tolerance', 0.0001) in move_group.calls
    assert ('set_pose_reference_frame', 'world') in move_group.calls
