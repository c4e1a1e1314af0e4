#!/usr/bin/env python3
"""
Motion Goal Action Server

Bridges MoveGoal requests to MoveIt 2. A goal carries exactly one of:
- state: a named joint target, e.g. "home"
- pose_array: Cartesian waypoints followed in order
- destination: a single pose reached under position/orientation constraints

Goals run on a bounded worker pool and are cancelled cooperatively at fixed
checkpoints. A streamed surface reconstruction (visualization_msgs/Marker,
TRIANGLE_LIST) is turned into a collision obstacle in the planning scene.
"""

import rclpy
from rclpy.action import ActionServer, CancelResponse, GoalResponse
from rclpy.callback_groups import ReentrantCallbackGroup
from rclpy.exceptions import ParameterUninitializedException
from rclpy.executors import MultiThreadedExecutor
from rclpy.node import Node
from rclpy.parameter import Parameter
from rclpy.task import Future

from visualization_msgs.msg import Marker

from motion_goal_interfaces.action import MoveGoal

from motion_goal_bridge.config import BridgeConfig
from motion_goal_bridge.error_codes import MotionBridgeError
from motion_goal_bridge.execution_driver import ExecutionDriver
from motion_goal_bridge.goal_handle import GoalRecord, resolve_on_terminal
from motion_goal_bridge.goal_lifecycle import GoalLifecycleController
from motion_goal_bridge.goal_types import GoalOutcome
from motion_goal_bridge.logging_utils import MotionLogger
from motion_goal_bridge.moveit_interface import MoveItMoveGroup, MoveItPlanningScene
from motion_goal_bridge.msg_conversions import goal_from_msg, points_from_msg, pose_from_msg
from motion_goal_bridge.obstacle_model import ObstacleModel
from motion_goal_bridge.planner_configurator import PlannerConfigurator
from motion_goal_bridge.planning_session import PlanningSession
from motion_goal_bridge.trajectory_synthesizer import TrajectorySynthesizer


class MotionGoalServer(Node):

    def __init__(self):
        super().__init__('motion_goal_server')

        self._declare_parameters()
        self.config = self._load_config()

        self.callback_group = ReentrantCallbackGroup()
        self.motion_logger = MotionLogger(self.get_logger(), self.config.log_dir)

        self.session = PlanningSession(
            lambda: MoveItMoveGroup(self, self.config, self.callback_group),
            self.config,
            self.motion_logger,
        )
        self.controller = GoalLifecycleController(
            self.session,
            PlannerConfigurator(self.config),
            TrajectorySynthesizer(self.config, self.motion_logger),
            ExecutionDriver(self.motion_logger),
            self.motion_logger,
            max_workers=self.config.max_concurrent_goals,
            is_operational=rclpy.ok,
        )

        self.obstacles = ObstacleModel(
            MoveItPlanningScene(self, self.callback_group),
            self.config.obstacle_id,
            self.config.planning_frame,
            self.motion_logger,
        )
        self._surface_sub = self.create_subscription(
            Marker, self.config.surface_topic, self._surface_callback, 10,
            callback_group=self.callback_group
        )

        self._action_server = ActionServer(
            self,
            MoveGoal,
            'move_goal',
            execute_callback=self._execute_callback,
            goal_callback=self._goal_callback,
            cancel_callback=self._cancel_callback,
            callback_group=self.callback_group
        )

        self.get_logger().info('Motion Goal Server ready')
        self.get_logger().info(f'  Planning group: {self.config.planning_group}')
        self.get_logger().info(f'  Named targets: {sorted(self.config.named_targets)}')
        self.get_logger().info(f'  Log file: {self.motion_logger.get_log_file_path()}')

    def _declare_parameters(self):
        """Declare all node parameters."""
        defaults = BridgeConfig()

        # Robot
        self.declare_parameter('planning_group', defaults.planning_group)
        self.declare_parameter('end_effector_link', defaults.end_effector_link)
        self.declare_parameter('planning_frame', defaults.planning_frame)
        self.declare_parameter('joint_names', defaults.joint_names)
        self.declare_parameter('named_targets', list(defaults.named_targets))

        # Planning
        self.declare_parameter('goal_tolerance', defaults.goal_tolerance)
        self.declare_parameter('planning_time', defaults.planning_time)
        self.declare_parameter('eef_step', defaults.eef_step)
        self.declare_parameter('waypoint_jump_threshold', defaults.waypoint_jump_threshold)
        self.declare_parameter('destination_jump_threshold', defaults.destination_jump_threshold)
        self.declare_parameter('avoid_collisions', defaults.avoid_collisions)

        # Destination goals
        self.declare_parameter('destination_velocity_scale', defaults.destination_velocity_scale)
        self.declare_parameter('destination_acceleration_scale', defaults.destination_acceleration_scale)
        self.declare_parameter('destination_planner_id', defaults.destination_planner_id)
        self.declare_parameter('destination_planning_attempts', defaults.destination_planning_attempts)
        self.declare_parameter('position_tolerance', defaults.position_tolerance)
        self.declare_parameter('orientation_tolerance', defaults.orientation_tolerance)

        # Other goals
        self.declare_parameter('default_planner_id', defaults.default_planner_id)
        self.declare_parameter('default_planning_attempts', defaults.default_planning_attempts)

        # Runtime
        self.declare_parameter('max_concurrent_goals', defaults.max_concurrent_goals)
        self.declare_parameter('service_timeout', defaults.service_timeout)
        self.declare_parameter('surface_topic', defaults.surface_topic)
        self.declare_parameter('obstacle_id', defaults.obstacle_id)
        self.declare_parameter('log_dir', defaults.log_dir)

    def _load_config(self) -> BridgeConfig:
        """Load parameters into a BridgeConfig."""
        p = lambda name: self.get_parameter(name).value
        defaults = BridgeConfig()

        named_targets = {}
        for name in p('named_targets'):
            param_name = f'named_targets.{name}'
            if name in defaults.named_targets:
                self.declare_parameter(param_name, defaults.named_targets[name])
            else:
                self.declare_parameter(param_name, Parameter.Type.DOUBLE_ARRAY)
            try:
                values = self.get_parameter(param_name).value
            except ParameterUninitializedException:
                values = None
            if values is None:
                self.get_logger().warn(f'Named target "{name}" has no joint values, ignored')
                continue
            named_targets[name] = list(values)

        return BridgeConfig(
            planning_group=p('planning_group'),
            end_effector_link=p('end_effector_link'),
            planning_frame=p('planning_frame'),
            joint_names=list(p('joint_names')),
            named_targets=named_targets,
            goal_tolerance=p('goal_tolerance'),
            planning_time=p('planning_time'),
            eef_step=p('eef_step'),
            waypoint_jump_threshold=p('waypoint_jump_threshold'),
            destination_jump_threshold=p('destination_jump_threshold'),
            avoid_collisions=p('avoid_collisions'),
            destination_velocity_scale=p('destination_velocity_scale'),
            destination_acceleration_scale=p('destination_acceleration_scale'),
            destination_planner_id=p('destination_planner_id'),
            destination_planning_attempts=p('destination_planning_attempts'),
            position_tolerance=p('position_tolerance'),
            orientation_tolerance=p('orientation_tolerance'),
            default_planner_id=p('default_planner_id'),
            default_planning_attempts=p('default_planning_attempts'),
            max_concurrent_goals=p('max_concurrent_goals'),
            service_timeout=p('service_timeout'),
            surface_topic=p('surface_topic'),
            obstacle_id=p('obstacle_id'),
            log_dir=p('log_dir'),
        )

    # === Action callbacks ===

    def _goal_callback(self, goal_request) -> GoalResponse:
        """Accept goals carrying a named target, waypoints or a destination."""
        if self.controller.accepts(goal_from_msg(goal_request)):
            return GoalResponse.ACCEPT
        return GoalResponse.REJECT

    def _cancel_callback(self, goal_handle) -> CancelResponse:
        """Flag the goal; the worker observes it at its next checkpoint."""
        self.controller.cancel(self._goal_id(goal_handle))
        return CancelResponse.ACCEPT

    async def _execute_callback(self, goal_handle):
        goal_id = self._goal_id(goal_handle)
        result = MoveGoal.Result()

        def publish_status(stage: str):
            feedback = MoveGoal.Feedback()
            feedback.status = stage
            goal_handle.publish_feedback(feedback)

        try:
            record = self.controller.dispatch(goal_id, goal_from_msg(goal_handle.request), publish_status)
        except MotionBridgeError as e:
            self.motion_logger.error(f'Goal {goal_id} not dispatched: {e}')
            goal_handle.abort()
            result.success = False
            return result

        # Completed by the goal worker, no executor thread is held while waiting
        terminal = await self._terminal_future(record)

        if terminal.outcome == GoalOutcome.SUCCEEDED:
            goal_handle.succeed()
        elif terminal.outcome == GoalOutcome.CANCELED and goal_handle.is_cancel_requested:
            goal_handle.canceled()
        else:
            goal_handle.abort()

        result.success = terminal.success
        return result

    def _terminal_future(self, record: GoalRecord) -> Future:
        """rclpy future that completes with the record's terminal result."""
        future = Future(executor=self.executor)
        # set_result only wakes the executor when a done callback is registered
        future.add_done_callback(
            lambda f: self.motion_logger.debug(f'Goal {record.goal_id} result handed to action server')
        )
        resolve_on_terminal(record, future)
        return future

    @staticmethod
    def _goal_id(goal_handle) -> str:
        return bytes(goal_handle.goal_id.uuid).hex()

    # === Obstacles ===

    def _surface_callback(self, msg: Marker):
        if msg.type != Marker.TRIANGLE_LIST:
            self.motion_logger.warn(f'Ignoring surface marker of type {msg.type}, expected TRIANGLE_LIST')
            return
        if msg.header.frame_id and msg.header.frame_id != self.config.planning_frame:
            self.motion_logger.debug(
                f'Surface in frame "{msg.header.frame_id}" applied in "{self.config.planning_frame}"'
            )
        self.obstacles.update(points_from_msg(msg.points), pose_from_msg(msg.pose))

    def destroy_node(self):
        self.controller.shutdown(wait=False)
        self.motion_logger.close()
        super().destroy_node()


def main(args=None):
    rclpy.init(args=args)

    server = MotionGoalServer()

    executor = MultiThreadedExecutor(num_threads=4)
    executor.add_node(server)

    try:
        executor.spin()
    except KeyboardInterrupt:
        pass
    finally:
        server.destroy_node()
        rclpy.shutdown()


if __name__ == '__main__':
    main()
