"""
Goal lifecycle controller.

Accepted goals run on a bounded worker pool:

    configure -> synthesize -> cancel check -> execute -> cancel check -> result

Every worker is supervised: if it ever exits without writing a terminal
result, the controller stops the robot and aborts the goal itself.
"""

import threading
import uuid
from concurrent.futures import Future, ThreadPoolExecutor
from enum import Enum
from functools import partial
from typing import Callable, Dict, List, Optional

from motion_goal_bridge.error_codes import GoalDispatchError, get_error_name
from motion_goal_bridge.execution_driver import ExecutionDriver
from motion_goal_bridge.goal_classifier import GoalClassifier, classify_goal
from motion_goal_bridge.goal_handle import GoalRecord
from motion_goal_bridge.goal_types import Goal, GoalKind
from motion_goal_bridge.planner_configurator import PlannerConfigurator
from motion_goal_bridge.planning_session import PlanningSession
from motion_goal_bridge.trajectory_synthesizer import TrajectorySynthesizer


class Checkpoint(Enum):
    """Points where a pending cancellation is observed."""
    PRE_SYNTHESIS = 'pre-synthesis'
    POST_SYNTHESIS = 'post-synthesis'
    POST_EXECUTION = 'post-execution'


FeedbackCallback = Callable[[str], None]


class GoalLifecycleController:

    def __init__(
        self,
        session: PlanningSession,
        configurator: PlannerConfigurator,
        synthesizer: TrajectorySynthesizer,
        driver: ExecutionDriver,
        logger,
        max_workers: int = 1,
        is_operational: Callable[[], bool] = lambda: True,
    ):
        self.session = session
        self.configurator = configurator
        self.synthesizer = synthesizer
        self.driver = driver
        self.logger = logger
        self.classifier = GoalClassifier(logger)
        self.is_operational = is_operational

        self._pool = ThreadPoolExecutor(max_workers=max(1, max_workers),
                                        thread_name_prefix='motion_goal')
        self._lock = threading.Lock()
        self._active: Dict[str, GoalRecord] = {}
        self._workers: Dict[str, Future] = {}
        self._terminal_listeners: List[Callable[[GoalRecord], None]] = []
        self._shut_down = False

    # === Requester-facing operations ===

    def accepts(self, goal: Goal) -> bool:
        return self.classifier.accepts(goal)

    def submit(self, goal: Goal, goal_id: Optional[str] = None,
               feedback_callback: Optional[FeedbackCallback] = None) -> Optional[GoalRecord]:
        """Classify and, if accepted, dispatch. Returns None on rejection."""
        if not self.accepts(goal):
            return None
        return self.dispatch(goal_id or uuid.uuid4().hex, goal, feedback_callback)

    def dispatch(self, goal_id: str, goal: Goal,
                 feedback_callback: Optional[FeedbackCallback] = None) -> GoalRecord:
        """Hand an accepted goal to a worker without waiting for it."""
        record = GoalRecord(goal_id, goal, classify_goal(goal))

        with self._lock:
            if self._shut_down:
                raise GoalDispatchError(f'Controller shut down, cannot dispatch goal {goal_id}')
            if goal_id in self._active:
                raise GoalDispatchError(f'Goal {goal_id} is already active')
            self._active[goal_id] = record

        record.add_done_callback(self._on_terminal)
        future = self._pool.submit(self._run_goal, record, feedback_callback)
        with self._lock:
            if not record.is_terminal():
                self._workers[goal_id] = future
        future.add_done_callback(partial(self._on_worker_exit, record))
        return record

    def cancel(self, goal_id: str) -> bool:
        """Flag a goal for cancellation. Always accepted."""
        with self._lock:
            record = self._active.get(goal_id)
        if record is None:
            self.logger.warn(f'Cancel requested for unknown or finished goal {goal_id}')
        else:
            self.logger.info(f'Cancel requested for goal {goal_id}')
            record.request_cancel()
        return True

    def add_terminal_listener(self, listener: Callable[[GoalRecord], None]):
        """Called once per goal right after its terminal result is written."""
        self._terminal_listeners.append(listener)

    def get_goal(self, goal_id: str) -> Optional[GoalRecord]:
        with self._lock:
            return self._active.get(goal_id)

    def active_goal_ids(self) -> List[str]:
        with self._lock:
            return list(self._active)

    def shutdown(self, wait: bool = True):
        with self._lock:
            self._shut_down = True
        self._pool.shutdown(wait=wait, cancel_futures=True)

    # === Worker ===

    def _run_goal(self, record: GoalRecord, feedback_callback: Optional[FeedbackCallback]):
        try:
            self._execute_goal(record, feedback_callback)
        except Exception as e:
            self.logger.error(f'Goal {record.goal_id} raised {type(e).__name__}: {e}')
            # Motion is only stopped for a goal that has not finished
            if not record.is_terminal():
                self._stop_motion()
                record.abort(f'Exception: {e}')

    def _execute_goal(self, record: GoalRecord, feedback_callback: Optional[FeedbackCallback]):
        goal_id = record.goal_id
        kind = record.kind
        self.logger.goal_start(goal_id, kind.value)

        self.session.initialize()

        if kind == GoalKind.INVALID:
            record.abort('Goal has no named target, waypoints or destination')
            return

        if self._cancel_checkpoint(record, Checkpoint.PRE_SYNTHESIS):
            return

        self._progress(record, 'configuring', feedback_callback)
        self.configurator.configure(self.session, record.goal, kind)

        self._progress(record, 'synthesizing', feedback_callback)
        synthesis = self.synthesizer.synthesize(self.session, record.goal, kind)

        if not (synthesis.success and self.is_operational()):
            self.session.stop()
            if synthesis.success:
                message = 'System shut down before execution'
            elif kind == GoalKind.NAMED_TARGET:
                message = f'Planning to "{record.goal.state}" failed: {get_error_name(synthesis.error_code)}'
            else:
                message = (
                    f'Cartesian path only {synthesis.fraction * 100:.1f}% achievable '
                    f'({get_error_name(synthesis.error_code)})'
                )
            record.abort(message, error_code=synthesis.error_code)
            return

        if self._cancel_checkpoint(record, Checkpoint.POST_SYNTHESIS):
            return

        self._progress(record, 'executing', feedback_callback)
        status = self.driver.execute(self.session, synthesis.plan)

        if self._cancel_checkpoint(record, Checkpoint.POST_EXECUTION):
            return

        self.driver.finish(self.session, record, status, operational=self.is_operational())

    def _cancel_checkpoint(self, record: GoalRecord, checkpoint: Checkpoint) -> bool:
        if not record.is_canceling():
            return False
        self.logger.goal_progress(record.goal_id, f'cancel observed at {checkpoint.value} checkpoint')
        self.session.stop()
        record.canceled(f'Canceled at {checkpoint.value} checkpoint')
        return True

    def _progress(self, record: GoalRecord, stage: str,
                  feedback_callback: Optional[FeedbackCallback]):
        self.logger.goal_progress(record.goal_id, stage)
        if feedback_callback is not None:
            feedback_callback(stage)

    def _stop_motion(self):
        try:
            self.session.stop()
        except Exception as e:
            self.logger.error(f'Stop failed: {e}')

    # === Supervision ===

    def _on_terminal(self, record: GoalRecord):
        result = record.result
        self.logger.goal_complete(record.goal_id, result.success,
                                  f'{result.outcome.value} {result.message}'.strip())
        with self._lock:
            self._active.pop(record.goal_id, None)
            self._workers.pop(record.goal_id, None)
        for listener in self._terminal_listeners:
            try:
                listener(record)
            except Exception as e:
                self.logger.error(f'Terminal listener for goal {record.goal_id} raised '
                                  f'{type(e).__name__}: {e}')

    def _on_worker_exit(self, record: GoalRecord, future: Future):
        if future.cancelled():
            reason = 'Goal dropped before it started'
        elif future.exception() is not None:
            reason = f'Worker crashed: {future.exception()}'
        else:
            reason = 'Worker exited without a terminal result'

        if record.is_terminal():
            return
        self.logger.error(f'Goal {record.goal_id}: {reason}')
        self._stop_motion()
        record.abort(reason)
