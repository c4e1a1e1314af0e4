"""Turns a configured goal into a named-target plan or a Cartesian path."""

from typing import List

import numpy as np

from motion_goal_bridge.config import BridgeConfig
from motion_goal_bridge.error_codes import MoveItErrorCode, get_error_name
from motion_goal_bridge.goal_types import Goal, GoalKind, Pose, SynthesisResult
from motion_goal_bridge.planning_session import PlanningSession

FRACTION_EPSILON = np.finfo(float).eps


def is_complete_path(fraction: float) -> bool:
    """True only for a non-zero fraction equal to 1.0 within machine epsilon."""
    return fraction > 0.0 and abs(fraction - 1.0) <= FRACTION_EPSILON


class TrajectorySynthesizer:
    """
    Named targets are planned once with binary success. Waypoints and
    destinations go through compute_cartesian_path; a partial path is a
    failure and is never handed to execution.
    """

    def __init__(self, config: BridgeConfig, logger):
        self.config = config
        self.logger = logger

    def synthesize(self, session: PlanningSession, goal: Goal, kind: GoalKind) -> SynthesisResult:
        if kind == GoalKind.NAMED_TARGET:
            return self.plan_named_target(session, goal.state)
        if kind == GoalKind.WAYPOINTS:
            return self.plan_cartesian(session, list(goal.pose_array),
                                       self.config.waypoint_jump_threshold)
        if kind == GoalKind.DESTINATION:
            return self.plan_cartesian(session, [goal.destination],
                                       self.config.destination_jump_threshold)
        raise ValueError(f'Cannot synthesize a trajectory for goal kind {kind.value}')

    def plan_named_target(self, session: PlanningSession, name: str) -> SynthesisResult:
        move_group = session.move_group
        move_group.set_named_target(name)
        error_code, plan = move_group.plan()

        success = error_code == MoveItErrorCode.SUCCESS
        if success:
            self.logger.debug(f'Named target "{name}" planned')
        else:
            self.logger.warn(f'Planning to named target "{name}" failed: {get_error_name(error_code)}')

        return SynthesisResult(
            plan=plan if success else None,
            fraction=1.0 if success else 0.0,
            error_code=int(error_code),
            success=success,
        )

    def plan_cartesian(self, session: PlanningSession, waypoints: List[Pose],
                       jump_threshold: float) -> SynthesisResult:
        move_group = session.move_group
        constraints = session.path_constraints
        trajectory, fraction, error_code = move_group.compute_cartesian_path(
            waypoints,
            self.config.eef_step,
            jump_threshold,
            self.config.avoid_collisions,
            None if constraints.is_empty() else constraints,
        )

        self.logger.debug(
            f'Cartesian path over {len(waypoints)} waypoint(s): fraction={fraction:.2%}, '
            f'error={get_error_name(error_code)}'
        )

        return SynthesisResult(
            plan=trajectory,
            fraction=float(fraction),
            error_code=int(error_code),
            success=is_complete_path(fraction),
        )
