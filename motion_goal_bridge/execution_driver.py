"""Executes synthesized plans and maps the execution status to an outcome."""

from motion_goal_bridge.error_codes import MoveItErrorCode, get_error_name
from motion_goal_bridge.goal_handle import GoalRecord
from motion_goal_bridge.goal_types import TerminalResult
from motion_goal_bridge.planning_session import PlanningSession


class ExecutionDriver:

    def __init__(self, logger):
        self.logger = logger

    def execute(self, session: PlanningSession, plan) -> int:
        """Run the plan on the robot, blocking until it finishes."""
        status = session.move_group.execute(plan)
        self.logger.debug(f'Execution finished with {get_error_name(status)} ({status})')
        return int(status)

    def finish(self, session: PlanningSession, record: GoalRecord, status: int,
               operational: bool = True) -> TerminalResult:
        """Succeed on a successful status, otherwise stop the robot and abort."""
        if operational and status == MoveItErrorCode.SUCCESS:
            return record.succeed('Motion completed')

        session.stop()
        message = f'Execution failed: {get_error_name(status)} ({status})'
        if not operational:
            message = f'System shut down during execution ({status})'
        return record.abort(message, error_code=status)
