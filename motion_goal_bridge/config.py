"""Bridge configuration, filled from node parameters."""

from dataclasses import dataclass, field
from typing import Dict, List


UR_JOINT_NAMES = [
    'shoulder_pan_joint',
    'shoulder_lift_joint',
    'elbow_joint',
    'wrist_1_joint',
    'wrist_2_joint',
    'wrist_3_joint',
]


@dataclass
class BridgeConfig:
    # Robot
    planning_group: str = 'manipulator'
    end_effector_link: str = 'tool0'
    planning_frame: str = 'world'
    joint_names: List[str] = field(default_factory=lambda: list(UR_JOINT_NAMES))
    named_targets: Dict[str, List[float]] = field(
        default_factory=lambda: {'home': [0.0, -1.5708, 1.5708, -1.5708, -1.5708, 0.0]}
    )

    # Session
    goal_tolerance: float = 0.0001
    planning_time: float = 10.0

    # Cartesian paths
    eef_step: float = 0.01
    waypoint_jump_threshold: float = 0.0
    destination_jump_threshold: float = 0.05
    avoid_collisions: bool = True

    # Destination goals
    destination_velocity_scale: float = 0.1
    destination_acceleration_scale: float = 0.2
    destination_planner_id: str = 'RRTConnectkConfigDefault'
    destination_planning_attempts: int = 10
    position_tolerance: float = 0.01
    orientation_tolerance: float = 0.01

    # Other goals
    default_planner_id: str = ''
    default_planning_attempts: int = 1

    # Runtime
    max_concurrent_goals: int = 1
    service_timeout: float = 30.0

    # Obstacles
    surface_topic: str = 'surface_mesh'
    obstacle_id: str = 'sensor_surface'

    log_dir: str = ''
