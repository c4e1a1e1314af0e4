"""Conversions between ROS messages and the bridge's plain data types."""

from typing import List

from geometry_msgs.msg import Point, Pose as PoseMsg
from moveit_msgs.msg import (
    BoundingVolume,
    CollisionObject,
    Constraints,
    OrientationConstraint as OrientationConstraintMsg,
    PositionConstraint as PositionConstraintMsg,
)
from shape_msgs.msg import Mesh, MeshTriangle, SolidPrimitive

from motion_goal_bridge.goal_types import CollisionMeshObject, Goal, Pose
from motion_goal_bridge.planning_session import PathConstraints


def pose_from_msg(msg: PoseMsg) -> Pose:
    return Pose.from_xyz(
        msg.position.x, msg.position.y, msg.position.z,
        msg.orientation.x, msg.orientation.y, msg.orientation.z, msg.orientation.w,
    )


def pose_to_msg(pose: Pose) -> PoseMsg:
    msg = PoseMsg()
    msg.position.x = float(pose.position[0])
    msg.position.y = float(pose.position[1])
    msg.position.z = float(pose.position[2])
    msg.orientation.x = float(pose.orientation[0])
    msg.orientation.y = float(pose.orientation[1])
    msg.orientation.z = float(pose.orientation[2])
    msg.orientation.w = float(pose.orientation[3])
    return msg


def goal_from_msg(request) -> Goal:
    """Build a Goal from a MoveGoal.Goal message."""
    return Goal(
        state=request.state,
        pose_array=[pose_from_msg(p) for p in request.pose_array],
        destination=pose_from_msg(request.destination),
        velocity=request.velocity,
        acceleration=request.acceleration,
    )


def constraints_to_msg(constraints: PathConstraints, stamp=None) -> Constraints:
    msg = Constraints()

    for pc in constraints.position_constraints:
        pos_constraint = PositionConstraintMsg()
        pos_constraint.header.frame_id = pc.frame_id
        if stamp is not None:
            pos_constraint.header.stamp = stamp
        pos_constraint.link_name = pc.link_name
        pos_constraint.weight = pc.weight

        bv = BoundingVolume()
        sphere = SolidPrimitive()
        sphere.type = SolidPrimitive.SPHERE
        sphere.dimensions = [float(pc.radius)]
        bv.primitives.append(sphere)

        sphere_pose = PoseMsg()
        sphere_pose.position.x = float(pc.center[0])
        sphere_pose.position.y = float(pc.center[1])
        sphere_pose.position.z = float(pc.center[2])
        sphere_pose.orientation.w = 1.0
        bv.primitive_poses.append(sphere_pose)
        pos_constraint.constraint_region = bv

        msg.position_constraints.append(pos_constraint)

    for oc in constraints.orientation_constraints:
        ori_constraint = OrientationConstraintMsg()
        ori_constraint.header.frame_id = oc.frame_id
        if stamp is not None:
            ori_constraint.header.stamp = stamp
        ori_constraint.link_name = oc.link_name
        ori_constraint.orientation.x = float(oc.orientation[0])
        ori_constraint.orientation.y = float(oc.orientation[1])
        ori_constraint.orientation.z = float(oc.orientation[2])
        ori_constraint.orientation.w = float(oc.orientation[3])
        ori_constraint.absolute_x_axis_tolerance = oc.absolute_x_axis_tolerance
        ori_constraint.absolute_y_axis_tolerance = oc.absolute_y_axis_tolerance
        ori_constraint.absolute_z_axis_tolerance = oc.absolute_z_axis_tolerance
        ori_constraint.weight = oc.weight

        msg.orientation_constraints.append(ori_constraint)

    return msg


def collision_object_to_msg(obj: CollisionMeshObject, stamp=None) -> CollisionObject:
    msg = CollisionObject()
    msg.header.frame_id = obj.frame_id
    if stamp is not None:
        msg.header.stamp = stamp
    msg.id = obj.id
    msg.operation = CollisionObject.ADD if obj.operation == 'ADD' else CollisionObject.REMOVE

    for mesh, pose in zip(obj.meshes, obj.mesh_poses):
        msg.meshes.append(
            Mesh(
                triangles=[MeshTriangle(vertex_indices=[int(i) for i in face]) for face in mesh.triangles],
                vertices=[Point(x=float(v[0]), y=float(v[1]), z=float(v[2])) for v in mesh.vertices],
            )
        )
        msg.mesh_poses.append(pose_to_msg(pose))

    return msg


def points_from_msg(points) -> List[List[float]]:
    return [[p.x, p.y, p.z] for p in points]
