import threading

import pytest

from motion_goal_bridge.config import BridgeConfig
from motion_goal_bridge.error_codes import MoveItErrorCode
from motion_goal_bridge.logging_utils import MotionLogger


class RecordingRosLogger:
    """Stands in for node.get_logger()."""

    def __init__(self):
        self.messages = []

    def info(self, msg):
        self.messages.append(('info', msg))

    def warn(self, msg):
        self.messages.append(('warn', msg))

    def error(self, msg):
        self.messages.append(('error', msg))

    def debug(self, msg):
        self.messages.append(('debug', msg))

    def of_level(self, level):
        return [m for lvl, m in self.messages if lvl == level]


class FakeMoveGroup:
    """
    Records every call made on it. Planning and execution results are set
    through the attributes; ``on_plan`` / ``on_execute`` hooks run inside the
    corresponding call (e.g. to request a cancel mid-goal).
    """

    def __init__(self):
        self.calls = []
        self.plan_error_code = MoveItErrorCode.SUCCESS
        self.cartesian_fraction = 1.0
        self.cartesian_error_code = MoveItErrorCode.SUCCESS
        self.execute_status = MoveItErrorCode.SUCCESS
        self.on_plan = None
        self.on_execute = None
        self.stop_count = 0
        self.executed = []
        self.path_constraints = None
        self.cartesian_requests = []

    def _record(self, name, *args):
        self.calls.append((name,) + args)

    def call_names(self):
        return [c[0] for c in self.calls]

    def get_planning_frame(self):
        return 'world'

    def get_end_effector_link(self):
        return 'tool0'

    def set_goal_tolerance(self, value):
        self._record('set_goal_tolerance', value)

    def set_pose_reference_frame(self, frame):
        self._record('set_pose_reference_frame', frame)

    def set_max_velocity_scaling(self, value):
        self._record('set_max_velocity_scaling', value)

    def set_max_acceleration_scaling(self, value):
        self._record('set_max_acceleration_scaling', value)

    def set_planning_time(self, value):
        self._record('set_planning_time', value)

    def set_planner_id(self, value):
        self._record('set_planner_id', value)

    def set_num_planning_attempts(self, value):
        self._record('set_num_planning_attempts', value)

    def set_path_constraints(self, constraints):
        self._record('set_path_constraints', constraints)
        self.path_constraints = constraints

    def set_named_target(self, name):
        self._record('set_named_target', name)

    def plan(self):
        self._record('plan')
        if self.on_plan is not None:
            self.on_plan()
        if self.plan_error_code == MoveItErrorCode.SUCCESS:
            return self.plan_error_code, 'joint-plan'
        return self.plan_error_code, None

    def compute_cartesian_path(self, waypoints, eef_step, jump_threshold,
                               avoid_collisions=True, constraints=None):
        self._record('compute_cartesian_path')
        self.cartesian_requests.append({
            'waypoints': waypoints,
            'eef_step': eef_step,
            'jump_threshold': jump_threshold,
            'avoid_collisions': avoid_collisions,
            'constraints': constraints,
        })
        if self.on_plan is not None:
            self.on_plan()
        return 'cartesian-plan', self.cartesian_fraction, self.cartesian_error_code

    def execute(self, plan):
        self._record('execute', plan)
        self.executed.append(plan)
        if self.on_execute is not None:
            self.on_execute()
        return self.execute_status

    def stop(self):
        self._record('stop')
        self.stop_count += 1


class FakeScene:
    def __init__(self):
        self.applied = []
        self.lock = threading.Lock()

    def apply_collision_object(self, obj):
        with self.lock:
            self.applied.append((obj.id, obj.operation, len(obj.meshes)))
        return True


@pytest.fixture
def config():
    return BridgeConfig()


@pytest.fixture
def ros_logger():
    return RecordingRosLogger()


@pytest.fixture
def motion_logger(ros_logger, tmp_path):
    logger = MotionLogger(ros_logger, str(tmp_path / 'logs'))
    yield logger
    logger.close()


@pytest.fixture
def move_group():
    return FakeMoveGroup()


@pytest.fixture
def scene():
    return FakeScene()
