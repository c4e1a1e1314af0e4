"""
MoveIt 2 adapters over the move_group ROS interfaces.

MoveItMoveGroup offers the blocking planning/execution calls the goal
workers use. All waits happen on the worker thread, so the node must be spun
by a MultiThreadedExecutor for responses to arrive.
"""

import threading
from typing import Dict, List, Optional, Tuple

import rclpy
from action_msgs.msg import GoalStatus
from moveit_msgs.action import ExecuteTrajectory
from moveit_msgs.msg import (
    Constraints,
    JointConstraint,
    MoveItErrorCodes,
    PlanningScene,
    RobotState,
)
from moveit_msgs.srv import ApplyPlanningScene, GetCartesianPath, GetMotionPlan, GetPositionFK
from rclpy.action import ActionClient
from sensor_msgs.msg import JointState
from std_msgs.msg import String

from motion_goal_bridge.config import BridgeConfig
from motion_goal_bridge.goal_types import CollisionMeshObject, Pose
from motion_goal_bridge.msg_conversions import (
    collision_object_to_msg,
    constraints_to_msg,
    pose_from_msg,
    pose_to_msg,
)
from motion_goal_bridge.planning_session import PathConstraints


def wait_for_future(future, timeout_sec: Optional[float] = None) -> bool:
    """Block the calling (non-executor) thread until the future is done."""
    event = threading.Event()
    future.add_done_callback(lambda _: event.set())
    if timeout_sec is not None:
        return event.wait(timeout_sec)
    while not event.wait(0.1):
        if not rclpy.ok():
            return False
    return True


class MoveItMoveGroup:
    """Move group handle backed by move_group services and actions."""

    def __init__(self, node, config: BridgeConfig, callback_group=None):
        self.node = node
        self.config = config
        self._logger = node.get_logger()

        self._plan_client = node.create_client(
            GetMotionPlan, '/plan_kinematic_path', callback_group=callback_group
        )
        self._cartesian_client = node.create_client(
            GetCartesianPath, '/compute_cartesian_path', callback_group=callback_group
        )
        self._fk_client = node.create_client(
            GetPositionFK, '/compute_fk', callback_group=callback_group
        )
        self._exec_client = ActionClient(
            node, ExecuteTrajectory, '/execute_trajectory', callback_group=callback_group
        )
        self._stop_pub = node.create_publisher(String, '/trajectory_execution_event', 10)

        self._joint_state_lock = threading.Lock()
        self._current_joint_states: Dict[str, float] = {}
        self._joint_state_sub = node.create_subscription(
            JointState, '/joint_states', self._joint_state_callback, 10,
            callback_group=callback_group
        )

        # Planning parameters
        self.velocity_scaling = 1.0
        self.acceleration_scaling = 1.0
        self.planning_time = 5.0
        self.planner_id = ''
        self.num_planning_attempts = 1
        self.goal_tolerance = 0.0001
        self.pose_reference_frame = config.planning_frame
        self.path_constraints = Constraints()
        self.named_target: Optional[str] = None

        self._exec_lock = threading.Lock()
        self._exec_goal_handle = None

        self._logger.info('Waiting for move_group services...')
        timeout = config.service_timeout
        for client in (self._plan_client, self._cartesian_client, self._fk_client):
            if not client.wait_for_service(timeout_sec=timeout):
                self._logger.warn(f'Service {client.srv_name} not available after {timeout:.0f}s')
        if not self._exec_client.wait_for_server(timeout_sec=timeout):
            self._logger.warn(f'/execute_trajectory not available after {timeout:.0f}s')

    def _joint_state_callback(self, msg: JointState):
        """Store current joint states."""
        with self._joint_state_lock:
            for i, name in enumerate(msg.name):
                self._current_joint_states[name] = msg.position[i]

    def _get_current_robot_state(self) -> RobotState:
        robot_state = RobotState()
        with self._joint_state_lock:
            robot_state.joint_state.name = list(self.config.joint_names)
            robot_state.joint_state.position = [
                self._current_joint_states.get(name, 0.0) for name in self.config.joint_names
            ]
        return robot_state

    def _call_service(self, client, request):
        if not client.service_is_ready():
            self._logger.error(f'Service {client.srv_name} not available')
            return None
        future = client.call_async(request)
        if not wait_for_future(future, self.config.service_timeout):
            client.remove_pending_request(future)
            self._logger.error(f'Service {client.srv_name} timed out')
            return None
        return future.result()

    # === Identity ===

    def get_planning_frame(self) -> str:
        return self.config.planning_frame

    def get_end_effector_link(self) -> str:
        return self.config.end_effector_link

    def get_current_pose(self) -> Optional[Pose]:
        """Forward kinematics of the end effector at the current joint state."""
        request = GetPositionFK.Request()
        request.header.frame_id = self.pose_reference_frame
        request.header.stamp = self.node.get_clock().now().to_msg()
        request.fk_link_names = [self.config.end_effector_link]
        request.robot_state = self._get_current_robot_state()

        response = self._call_service(self._fk_client, request)
        if response is None or response.error_code.val != MoveItErrorCodes.SUCCESS:
            return None
        return pose_from_msg(response.pose_stamped[0].pose)

    # === Session parameters ===

    def set_max_velocity_scaling(self, value: float):
        self.velocity_scaling = value

    def set_max_acceleration_scaling(self, value: float):
        self.acceleration_scaling = value

    def set_planning_time(self, seconds: float):
        self.planning_time = seconds

    def set_planner_id(self, planner_id: str):
        self.planner_id = planner_id

    def set_num_planning_attempts(self, attempts: int):
        self.num_planning_attempts = attempts

    def set_path_constraints(self, constraints: PathConstraints):
        self.path_constraints = constraints_to_msg(constraints)

    def set_goal_tolerance(self, tolerance: float):
        self.goal_tolerance = tolerance

    def set_pose_reference_frame(self, frame: str):
        self.pose_reference_frame = frame

    def set_named_target(self, name: str):
        self.named_target = name

    # === Planning ===

    def plan(self) -> Tuple[int, object]:
        """Plan to the named target. Returns (error code, RobotTrajectory or None)."""
        joint_values = self.config.named_targets.get(self.named_target)
        if joint_values is None:
            self._logger.error(f'Unknown named target "{self.named_target}"')
            return MoveItErrorCodes.INVALID_GOAL_CONSTRAINTS, None

        req = GetMotionPlan.Request()
        mp = req.motion_plan_request
        mp.group_name = self.config.planning_group
        mp.planner_id = self.planner_id
        mp.num_planning_attempts = self.num_planning_attempts
        mp.allowed_planning_time = self.planning_time
        mp.max_velocity_scaling_factor = self.velocity_scaling
        mp.max_acceleration_scaling_factor = self.acceleration_scaling
        mp.start_state.is_diff = True
        mp.path_constraints = self.path_constraints

        constraints = Constraints()
        for name, value in zip(self.config.joint_names, joint_values):
            jc = JointConstraint()
            jc.joint_name = name
            jc.position = float(value)
            jc.tolerance_above = self.goal_tolerance
            jc.tolerance_below = self.goal_tolerance
            jc.weight = 1.0
            constraints.joint_constraints.append(jc)
        mp.goal_constraints.append(constraints)

        response = self._call_service(self._plan_client, req)
        if response is None:
            return MoveItErrorCodes.TIMED_OUT, None

        error_code = response.motion_plan_response.error_code.val
        if error_code != MoveItErrorCodes.SUCCESS:
            return error_code, None
        return error_code, response.motion_plan_response.trajectory

    def compute_cartesian_path(self, waypoints: List[Pose], eef_step: float, jump_threshold: float,
                               avoid_collisions: bool = True,
                               constraints: Optional[PathConstraints] = None):
        """Returns (RobotTrajectory, fraction, error code)."""
        stamp = self.node.get_clock().now().to_msg()

        cart_req = GetCartesianPath.Request()
        cart_req.header.frame_id = self.pose_reference_frame
        cart_req.header.stamp = stamp
        cart_req.group_name = self.config.planning_group
        cart_req.link_name = self.config.end_effector_link
        cart_req.waypoints = [pose_to_msg(p) for p in waypoints]
        cart_req.max_step = eef_step
        cart_req.jump_threshold = jump_threshold
        cart_req.avoid_collisions = avoid_collisions
        cart_req.start_state = self._get_current_robot_state()
        if constraints is not None:
            cart_req.path_constraints = constraints_to_msg(constraints, stamp)

        # Only available from Iron onwards
        if hasattr(cart_req, 'max_velocity_scaling_factor'):
            cart_req.max_velocity_scaling_factor = self.velocity_scaling
        if hasattr(cart_req, 'max_acceleration_scaling_factor'):
            cart_req.max_acceleration_scaling_factor = self.acceleration_scaling

        cart_resp = self._call_service(self._cartesian_client, cart_req)
        if cart_resp is None:
            return None, 0.0, MoveItErrorCodes.TIMED_OUT

        self._logger.info(f'Cartesian path: fraction={cart_resp.fraction:.2%}')
        return cart_resp.solution, cart_resp.fraction, cart_resp.error_code.val

    # === Execution ===

    def execute(self, trajectory) -> int:
        """Execute a RobotTrajectory, blocking until it finishes."""
        if not self._exec_client.server_is_ready():
            self._logger.error('/execute_trajectory not available')
            return MoveItErrorCodes.COMMUNICATION_FAILURE

        exec_goal = ExecuteTrajectory.Goal()
        exec_goal.trajectory = trajectory

        send_goal_future = self._exec_client.send_goal_async(exec_goal)
        if not wait_for_future(send_goal_future, self.config.service_timeout):
            return MoveItErrorCodes.TIMED_OUT

        exec_handle = send_goal_future.result()
        if not exec_handle.accepted:
            self._logger.error('Execution rejected')
            return MoveItErrorCodes.CONTROL_FAILED

        with self._exec_lock:
            self._exec_goal_handle = exec_handle
        try:
            result_future = exec_handle.get_result_async()
            if not wait_for_future(result_future):
                return MoveItErrorCodes.PREEMPTED
            exec_result = result_future.result()
        finally:
            with self._exec_lock:
                self._exec_goal_handle = None

        if exec_result.status == GoalStatus.STATUS_CANCELED:
            return MoveItErrorCodes.PREEMPTED
        return exec_result.result.error_code.val

    def stop(self):
        """Stop any trajectory the controllers are executing."""
        self._stop_pub.publish(String(data='stop'))
        with self._exec_lock:
            exec_handle = self._exec_goal_handle
        if exec_handle is not None:
            exec_handle.cancel_goal_async()


class MoveItPlanningScene:
    """Applies collision objects through /apply_planning_scene."""

    def __init__(self, node, callback_group=None):
        self.node = node
        self._logger = node.get_logger()
        self._apply_client = node.create_client(
            ApplyPlanningScene, '/apply_planning_scene', callback_group=callback_group
        )

    def apply_collision_object(self, obj: CollisionMeshObject) -> bool:
        if not self._apply_client.service_is_ready():
            self._logger.warn(f'Service {self._apply_client.srv_name} not available, obstacle not applied')
            return False

        scene = PlanningScene()
        scene.is_diff = True
        scene.world.collision_objects.append(
            collision_object_to_msg(obj, self.node.get_clock().now().to_msg())
        )

        future = self._apply_client.call_async(ApplyPlanningScene.Request(scene=scene))
        future.add_done_callback(self._apply_done)
        return True

    def _apply_done(self, future):
        response = future.result()
        if response is None or not response.success:
            self._logger.error('Planning scene rejected obstacle update')
