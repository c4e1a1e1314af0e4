"""Classifies incoming goals by payload kind and decides acceptance."""

import numpy as np

from motion_goal_bridge.goal_types import Goal, GoalKind


def classify_goal(goal: Goal) -> GoalKind:
    """
    Determine the payload kind of a goal, first match wins:
    named target, waypoint sequence, destination, otherwise invalid.

    A destination counts only when all three position coordinates are
    finite and non-zero, so (0, y, z) reads as "no destination supplied".
    """
    if goal.state:
        return GoalKind.NAMED_TARGET
    if len(goal.pose_array) > 0:
        return GoalKind.WAYPOINTS
    position = np.asarray(goal.destination.position, dtype=float)
    if np.all(np.isfinite(position)) and np.all(position != 0.0):
        return GoalKind.DESTINATION
    return GoalKind.INVALID


class GoalClassifier:
    """Accept/reject decision for incoming goal requests."""

    def __init__(self, logger=None):
        self.logger = logger

    def classify(self, goal: Goal) -> GoalKind:
        return classify_goal(goal)

    def accepts(self, goal: Goal) -> bool:
        kind = classify_goal(goal)
        if self.logger is not None:
            if kind == GoalKind.NAMED_TARGET:
                self.logger.info(f'Received named target goal "{goal.state}", executing')
            elif kind == GoalKind.WAYPOINTS:
                self.logger.info(f'Received waypoint goal with {len(goal.pose_array)} poses, executing')
            elif kind == GoalKind.DESTINATION:
                self.logger.info(f'Received destination goal {goal.destination}, executing')
            else:
                self.logger.warn('Rejected goal: no named target, waypoints or destination')
        return kind != GoalKind.INVALID
