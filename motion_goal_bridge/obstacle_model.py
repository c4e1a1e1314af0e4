"""
Obstacle model built from a streamed sensor surface reconstruction.

Each received surface becomes one mesh; meshes accumulate on a single
collision object that is re-applied to the planning scene as ADD on every
update.
"""

import threading

import numpy as np

from motion_goal_bridge.goal_types import CollisionMeshObject, Pose, SurfaceMesh


def build_surface_mesh(points) -> SurfaceMesh:
    """
    Build a mesh from points taken as consecutive, non-overlapping triangles.
    Trailing points that do not complete a triangle are dropped.
    """
    vertices = np.asarray(points, dtype=float).reshape(-1, 3)
    num_triangles = len(vertices) // 3
    vertices = vertices[:num_triangles * 3]
    triangles = np.arange(num_triangles * 3, dtype=np.uint32).reshape(-1, 3)
    return SurfaceMesh(vertices=vertices, triangles=triangles)


class ObstacleModel:
    """
    Single persistent collision object fed by surface updates.

    The object is created on the first update that carries at least one
    triangle. The scene only needs an ``apply_collision_object(object)``
    method.
    """

    def __init__(self, scene, object_id: str, frame_id: str, logger):
        self.scene = scene
        self.object_id = object_id
        self.frame_id = frame_id
        self.logger = logger

        self._lock = threading.Lock()
        self.collision_object = None

    def update(self, points, pose: Pose) -> bool:
        """Append the surface as a new mesh and re-apply the object. Returns False if skipped."""
        mesh = build_surface_mesh(points)
        num_points = len(np.asarray(points, dtype=float).reshape(-1, 3))

        if len(mesh.triangles) == 0:
            self.logger.warn(f'Surface update with {num_points} point(s) has no complete triangle, skipped')
            return False
        if num_points % 3 != 0:
            self.logger.warn(f'Surface update has {num_points % 3} trailing point(s), dropped')

        with self._lock:
            if self.collision_object is None:
                self.collision_object = CollisionMeshObject(id=self.object_id, frame_id=self.frame_id)
                self.logger.info(f'Created obstacle "{self.object_id}" in frame "{self.frame_id}"')

            self.collision_object.meshes.append(mesh)
            self.collision_object.mesh_poses.append(pose)
            self.collision_object.operation = 'ADD'

            self.logger.debug(
                f'Obstacle "{self.object_id}": mesh {len(self.collision_object.meshes)} '
                f'with {len(mesh.triangles)} triangle(s)'
            )
            self.scene.apply_collision_object(self.collision_object)
        return True

    @property
    def mesh_count(self) -> int:
        with self._lock:
            return 0 if self.collision_object is None else len(self.collision_object.meshes)
