#!/usr/bin/env python3
"""
Command line client for the motion goal action server.

Usage examples:
    # Named target
    ros2 run motion_goal_bridge goal_client --state home

    # Cartesian waypoints (x y z per waypoint), shared orientation
    ros2 run motion_goal_bridge goal_client --waypoints 0.3 0.1 0.4 0.3 -0.1 0.4 --rpy 3.14 0 0

    # Constrained destination, cancelled after 2 seconds
    ros2 run motion_goal_bridge goal_client --destination 0.3 0.2 0.4 --cancel-after 2.0
"""

import argparse

import rclpy
from rclpy.action import ActionClient
from rclpy.node import Node

from motion_goal_interfaces.action import MoveGoal

from motion_goal_bridge.goal_types import Pose
from motion_goal_bridge.msg_conversions import pose_to_msg


class GoalClient(Node):
    def __init__(self):
        super().__init__('motion_goal_client')
        self.client = ActionClient(self, MoveGoal, 'move_goal')
        self.goal_handle = None
        self.success = False

    def send_goal(self, goal_msg, cancel_after: float = None):
        self.get_logger().info('Waiting for move_goal action server...')
        self.client.wait_for_server()

        if goal_msg.state:
            self.get_logger().info(f'Sending named target goal "{goal_msg.state}"')
        elif goal_msg.pose_array:
            self.get_logger().info(f'Sending waypoint goal with {len(goal_msg.pose_array)} poses')
        else:
            p = goal_msg.destination.position
            self.get_logger().info(f'Sending destination goal ({p.x:.3f}, {p.y:.3f}, {p.z:.3f})')

        future = self.client.send_goal_async(goal_msg, feedback_callback=self.feedback_callback)
        future.add_done_callback(self.goal_response_callback)

        if cancel_after is not None:
            self._cancel_timer = self.create_timer(cancel_after, self.cancel_goal)
        return future

    def goal_response_callback(self, future):
        self.goal_handle = future.result()
        if not self.goal_handle.accepted:
            self.get_logger().error('Goal rejected!')
            rclpy.shutdown()
            return

        self.get_logger().info('Goal accepted, waiting for result...')
        result_future = self.goal_handle.get_result_async()
        result_future.add_done_callback(self.result_callback)

    def cancel_goal(self):
        self._cancel_timer.cancel()
        if self.goal_handle is None:
            self.get_logger().warn('No accepted goal to cancel yet')
            return
        self.get_logger().info('Requesting cancel')
        self.goal_handle.cancel_goal_async()

    def result_callback(self, future):
        response = future.result()
        self.success = response.result.success
        if self.success:
            self.get_logger().info('Success')
        else:
            self.get_logger().error(f'Failed (status {response.status})')
        rclpy.shutdown()

    def feedback_callback(self, feedback_msg):
        self.get_logger().info(f'Status: {feedback_msg.feedback.status}')


def build_goal(args) -> MoveGoal.Goal:
    roll, pitch, yaw = args.rpy
    goal_msg = MoveGoal.Goal()
    goal_msg.velocity = args.velocity
    goal_msg.acceleration = args.acceleration

    if args.state:
        goal_msg.state = args.state
    elif args.waypoints:
        coords = args.waypoints
        goal_msg.pose_array = [
            pose_to_msg(Pose.from_xyz_rpy(*coords[i:i + 3], roll, pitch, yaw))
            for i in range(0, len(coords), 3)
        ]
    else:
        goal_msg.destination = pose_to_msg(Pose.from_xyz_rpy(*args.destination, roll, pitch, yaw))
    return goal_msg


def main():
    parser = argparse.ArgumentParser(
        description='Send a MoveGoal to the motion goal server',
        formatter_class=argparse.RawDescriptionHelpFormatter,
    )

    target = parser.add_mutually_exclusive_group(required=True)
    target.add_argument('--state', type=str, help='Named joint target, e.g. home')
    target.add_argument('--waypoints', nargs='+', type=float, metavar='XYZ',
                        help='Waypoint positions, three values (x y z) per waypoint')
    target.add_argument('--destination', nargs=3, type=float, metavar=('X', 'Y', 'Z'),
                        help='Destination position; every coordinate must be non-zero')

    parser.add_argument('--rpy', nargs=3, type=float, metavar=('R', 'P', 'Y'),
                        default=[0.0, 0.0, 0.0],
                        help='Orientation as roll, pitch, yaw in radians (default: 0 0 0)')
    parser.add_argument('--velocity', type=float, default=0.1,
                        help='Velocity scaling (0.0-1.0, default: 0.1)')
    parser.add_argument('--acceleration', type=float, default=0.1,
                        help='Acceleration scaling (0.0-1.0, default: 0.1)')
    parser.add_argument('--cancel-after', type=float, default=None, metavar='SEC',
                        help='Request cancellation after this many seconds')

    args = parser.parse_args()
    if args.waypoints and len(args.waypoints) % 3 != 0:
        parser.error('--waypoints takes three values per waypoint')

    rclpy.init()
    client = GoalClient()
    client.send_goal(build_goal(args), cancel_after=args.cancel_after)

    try:
        rclpy.spin(client)
    except KeyboardInterrupt:
        pass


if __name__ == '__main__':
    main()
