"""
Planning session: the lazily initialized move group handle plus the planning
parameters currently applied to it.
"""

import threading
from dataclasses import dataclass, field
from typing import Callable, List, Optional

import numpy as np

from motion_goal_bridge.config import BridgeConfig
from motion_goal_bridge.error_codes import SessionNotInitializedError


@dataclass
class PositionConstraint:
    """Keeps the link origin inside a sphere."""
    link_name: str
    frame_id: str
    center: np.ndarray
    radius: float
    weight: float = 1.0


@dataclass
class OrientationConstraint:
    """Keeps the link orientation within per-axis tolerances."""
    link_name: str
    frame_id: str
    orientation: np.ndarray  # [x, y, z, w]
    absolute_x_axis_tolerance: float
    absolute_y_axis_tolerance: float
    absolute_z_axis_tolerance: float
    weight: float = 1.0


@dataclass
class PathConstraints:
    position_constraints: List[PositionConstraint] = field(default_factory=list)
    orientation_constraints: List[OrientationConstraint] = field(default_factory=list)

    def is_empty(self) -> bool:
        return not self.position_constraints and not self.orientation_constraints


class PlanningSession:
    """
    Owns the move group handle shared by all goals.

    The handle is created by ``move_group_factory`` on the first call to
    ``initialize()`` and reused afterwards. Every setter records the value it
    forwards so the applied configuration can be inspected.
    """

    def __init__(self, move_group_factory: Callable[[], object], config: BridgeConfig, logger):
        self._factory = move_group_factory
        self.config = config
        self.logger = logger

        self._init_lock = threading.Lock()
        self._move_group = None

        self.velocity_scale: Optional[float] = None
        self.acceleration_scale: Optional[float] = None
        self.planning_time: Optional[float] = None
        self.planner_id: Optional[str] = None
        self.num_planning_attempts: Optional[int] = None
        self.path_constraints = PathConstraints()

    @property
    def is_initialized(self) -> bool:
        return self._move_group is not None

    def initialize(self):
        """Create the move group handle once and apply session-wide settings."""
        with self._init_lock:
            if self._move_group is not None:
                return self._move_group

            move_group = self._factory()
            move_group.set_goal_tolerance(self.config.goal_tolerance)
            move_group.set_pose_reference_frame(self.config.planning_frame)
            self._move_group = move_group

            self.logger.info(
                f'Planning session ready: planning frame "{move_group.get_planning_frame()}", '
                f'end effector "{move_group.get_end_effector_link()}"'
            )
            return move_group

    @property
    def move_group(self):
        if self._move_group is None:
            raise SessionNotInitializedError('Planning session used before initialize()')
        return self._move_group

    @property
    def planning_frame(self) -> str:
        return self.move_group.get_planning_frame()

    @property
    def end_effector_link(self) -> str:
        return self.move_group.get_end_effector_link()

    def set_scaling(self, velocity_scale: float, acceleration_scale: float):
        self.move_group.set_max_velocity_scaling(velocity_scale)
        self.move_group.set_max_acceleration_scaling(acceleration_scale)
        self.velocity_scale = velocity_scale
        self.acceleration_scale = acceleration_scale

    def set_planning_time(self, seconds: float):
        self.move_group.set_planning_time(seconds)
        self.planning_time = seconds

    def set_planner_id(self, planner_id: str):
        self.move_group.set_planner_id(planner_id)
        self.planner_id = planner_id

    def set_num_planning_attempts(self, attempts: int):
        self.move_group.set_num_planning_attempts(attempts)
        self.num_planning_attempts = attempts

    def set_path_constraints(self, constraints: PathConstraints):
        """Replace the active path constraints."""
        self.move_group.set_path_constraints(constraints)
        self.path_constraints = constraints

    def clear_path_constraints(self):
        self.set_path_constraints(PathConstraints())

    def stop(self):
        if self._move_group is not None:
            self._move_group.stop()
