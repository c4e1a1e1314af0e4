#!/usr/bin/env python3
"""
Launch file for the Motion Goal Server.

Expects move_group to be running already (e.g. from the robot's MoveIt
launch).
"""

from launch import LaunchDescription
from launch.actions import DeclareLaunchArgument
from launch.substitutions import LaunchConfiguration, PathJoinSubstitution
from launch_ros.actions import Node
from launch_ros.substitutions import FindPackageShare


def generate_launch_description():
    planning_group_arg = DeclareLaunchArgument(
        'planning_group',
        default_value='manipulator',
        description='MoveIt planning group'
    )

    planning_frame_arg = DeclareLaunchArgument(
        'planning_frame',
        default_value='world',
        description='Reference frame for all goal poses and obstacles'
    )

    surface_topic_arg = DeclareLaunchArgument(
        'surface_topic',
        default_value='surface_mesh',
        description='Marker (TRIANGLE_LIST) topic carrying the sensed surface'
    )

    log_dir_arg = DeclareLaunchArgument(
        'log_dir',
        default_value='',
        description='Directory for detailed goal logs (default: ./ros_logging/motion_goal_bridge)'
    )

    config_file = PathJoinSubstitution([
        FindPackageShare('motion_goal_bridge'),
        'config',
        'motion_goal_bridge.yaml'
    ])

    motion_goal_server_node = Node(
        package='motion_goal_bridge',
        executable='motion_goal_server',
        name='motion_goal_server',
        output='screen',
        parameters=[
            config_file,
            {
                'planning_group': LaunchConfiguration('planning_group'),
                'planning_frame': LaunchConfiguration('planning_frame'),
                'surface_topic': LaunchConfiguration('surface_topic'),
                'log_dir': LaunchConfiguration('log_dir'),
            }
        ],
    )

    return LaunchDescription([
        planning_group_arg,
        planning_frame_arg,
        surface_topic_arg,
        log_dir_arg,
        motion_goal_server_node,
    ])
