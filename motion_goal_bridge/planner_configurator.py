"""Applies kind-specific planning parameters before each synthesis call."""

import numpy as np

from motion_goal_bridge.config import BridgeConfig
from motion_goal_bridge.goal_types import Goal, GoalKind, Pose
from motion_goal_bridge.planning_session import (
    OrientationConstraint,
    PathConstraints,
    PlanningSession,
    PositionConstraint,
)


class PlannerConfigurator:
    """
    Sets scaling, planning time, planner and path constraints as a pure
    function of goal kind.

    Destination goals get fixed scaling, the destination planner and a
    position/orientation path constraint around the target. Every other kind
    gets the goal's own scaling, the default planner and no path constraints,
    so nothing configured for an earlier goal survives into the next one.
    """

    def __init__(self, config: BridgeConfig):
        self.config = config

    def configure(self, session: PlanningSession, goal: Goal, kind: GoalKind):
        cfg = self.config

        if kind == GoalKind.DESTINATION:
            session.set_scaling(cfg.destination_velocity_scale, cfg.destination_acceleration_scale)
            session.set_planning_time(cfg.planning_time)
            session.set_planner_id(cfg.destination_planner_id)
            session.set_num_planning_attempts(cfg.destination_planning_attempts)
            session.set_path_constraints(self.build_destination_constraints(session, goal.destination))
        else:
            session.set_scaling(goal.velocity, goal.acceleration)
            session.set_planning_time(cfg.planning_time)
            session.set_planner_id(cfg.default_planner_id)
            session.set_num_planning_attempts(cfg.default_planning_attempts)
            session.clear_path_constraints()

    def build_destination_constraints(self, session: PlanningSession, target: Pose) -> PathConstraints:
        """Sphere position constraint and per-axis orientation constraint at the target."""
        frame = session.planning_frame
        link = session.end_effector_link
        tol = self.config.orientation_tolerance

        position = PositionConstraint(
            link_name=link,
            frame_id=frame,
            center=np.array(target.position, dtype=float),
            radius=self.config.position_tolerance,
            weight=1.0,
        )
        orientation = OrientationConstraint(
            link_name=link,
            frame_id=frame,
            orientation=np.array(target.orientation, dtype=float),
            absolute_x_axis_tolerance=tol,
            absolute_y_axis_tolerance=tol,
            absolute_z_axis_tolerance=tol,
            weight=1.0,
        )
        return PathConstraints(
            position_constraints=[position],
            orientation_constraints=[orientation],
        )
