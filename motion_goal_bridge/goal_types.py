"""
Plain data types shared by the goal pipeline.

These mirror the MoveGoal action and the MoveIt messages closely enough that
the ROS adapters can convert field by field, while keeping the core free of
any rclpy import.
"""

from dataclasses import dataclass, field
from enum import Enum
from typing import Any, List, Optional

import numpy as np


def _identity_quaternion() -> np.ndarray:
    return np.array([0.0, 0.0, 0.0, 1.0])


def rpy_to_quaternion(roll: float, pitch: float, yaw: float) -> np.ndarray:
    """
    Convert roll-pitch-yaw angles (radians) to a quaternion [x, y, z, w].
    Convention: Rz(yaw) * Ry(pitch) * Rx(roll)
    """
    cr, sr = np.cos(roll / 2), np.sin(roll / 2)
    cp, sp = np.cos(pitch / 2), np.sin(pitch / 2)
    cy, sy = np.cos(yaw / 2), np.sin(yaw / 2)

    return np.array([
        sr * cp * cy - cr * sp * sy,
        cr * sp * cy + sr * cp * sy,
        cr * cp * sy - sr * sp * cy,
        cr * cp * cy + sr * sp * sy,
    ])


@dataclass
class Pose:
    """Position [x, y, z] and quaternion orientation [x, y, z, w]."""
    position: np.ndarray = field(default_factory=lambda: np.zeros(3))
    orientation: np.ndarray = field(default_factory=_identity_quaternion)

    @classmethod
    def from_xyz(cls, x: float, y: float, z: float,
                 qx: float = 0.0, qy: float = 0.0, qz: float = 0.0, qw: float = 1.0) -> 'Pose':
        return cls(
            position=np.array([x, y, z], dtype=float),
            orientation=np.array([qx, qy, qz, qw], dtype=float),
        )

    @classmethod
    def from_xyz_rpy(cls, x: float, y: float, z: float,
                     roll: float = 0.0, pitch: float = 0.0, yaw: float = 0.0) -> 'Pose':
        return cls(
            position=np.array([x, y, z], dtype=float),
            orientation=rpy_to_quaternion(roll, pitch, yaw),
        )

    def __str__(self):
        x, y, z = self.position
        return f'({x:.3f}, {y:.3f}, {z:.3f})'


class GoalKind(Enum):
    NAMED_TARGET = 'named_target'
    WAYPOINTS = 'waypoints'
    DESTINATION = 'destination'
    INVALID = 'invalid'


@dataclass
class Goal:
    """A motion request as received from the requester.

    Only one payload is meant to be populated. An empty ``state``, an empty
    ``pose_array`` or a destination with a zero coordinate all read as
    "not this kind".
    """
    state: str = ''
    pose_array: List[Pose] = field(default_factory=list)
    destination: Pose = field(default_factory=Pose)
    velocity: float = 0.0
    acceleration: float = 0.0


class GoalOutcome(Enum):
    SUCCEEDED = 'succeeded'
    ABORTED = 'aborted'
    CANCELED = 'canceled'


@dataclass
class TerminalResult:
    """Write-once terminal result of a goal."""
    outcome: GoalOutcome
    success: bool
    message: str = ''
    error_code: Optional[int] = None


@dataclass
class SynthesisResult:
    """Output of trajectory synthesis.

    ``fraction`` is only meaningful for Cartesian paths; named-target plans
    report 1.0 on success and 0.0 on failure.
    """
    plan: Any
    fraction: float
    error_code: int
    success: bool = False


@dataclass
class SurfaceMesh:
    """Triangle mesh, triangles as (M, 3) vertex indices."""
    vertices: np.ndarray
    triangles: np.ndarray


@dataclass
class CollisionMeshObject:
    """Single collision object made of mesh+pose pairs."""
    id: str
    frame_id: str
    meshes: List[SurfaceMesh] = field(default_factory=list)
    mesh_poses: List[Pose] = field(default_factory=list)
    operation: str = 'ADD'
