"""MoveIt error codes and the exceptions raised by the bridge."""

from enum import IntEnum


class MoveItErrorCode(IntEnum):
    """Numbering of moveit_msgs/MoveItErrorCodes."""
    SUCCESS = 1
    FAILURE = 99999
    PLANNING_FAILED = -1
    INVALID_MOTION_PLAN = -2
    MOTION_PLAN_INVALIDATED_BY_ENVIRONMENT_CHANGE = -3
    CONTROL_FAILED = -4
    UNABLE_TO_AQUIRE_SENSOR_DATA = -5
    TIMED_OUT = -6
    PREEMPTED = -7
    START_STATE_IN_COLLISION = -10
    START_STATE_VIOLATES_PATH_CONSTRAINTS = -11
    GOAL_IN_COLLISION = -12
    GOAL_VIOLATES_PATH_CONSTRAINTS = -13
    GOAL_CONSTRAINTS_VIOLATED = -14
    INVALID_GROUP_NAME = -15
    INVALID_GOAL_CONSTRAINTS = -16
    INVALID_ROBOT_STATE = -17
    INVALID_LINK_NAME = -18
    INVALID_OBJECT_NAME = -19
    FRAME_TRANSFORM_FAILURE = -21
    COLLISION_CHECKING_UNAVAILABLE = -22
    ROBOT_STATE_STALE = -23
    SENSOR_INFO_STALE = -24
    COMMUNICATION_FAILURE = -25
    NO_IK_SOLUTION = -31


def get_error_name(error_code) -> str:
    """Convert MoveIt error code to name."""
    try:
        return MoveItErrorCode(int(error_code)).name
    except ValueError:
        return f'UNKNOWN_{error_code}'


class MotionBridgeError(RuntimeError):
    """Base class for bridge errors."""


class TerminalOutcomeError(MotionBridgeError):
    """A goal's terminal outcome was written more than once."""


class SessionNotInitializedError(MotionBridgeError):
    """The planning session was used before its one-time initialization."""


class GoalDispatchError(MotionBridgeError):
    """A goal could not be handed to a worker."""
