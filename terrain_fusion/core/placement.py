"""
Surface placement resolver.

Seats objects on the finished height grid under one of three policies:

- Level: flat rotation, the object's base sits on the surface
- SlopeAligned: the object's up axis follows the surface normal
- Foundation: flat rotation, the object's top face sits just above the
  surface and the body extends downward

Rotations are quaternions in (x, y, z, w) order with Y up. Yaw angles are
degrees clockwise around Y, with 0 facing +Z.
"""

import math
from dataclasses import dataclass
from typing import Iterable, List, Optional, Sequence, Tuple

import numpy as np
import structlog

from ..config.generation_settings import PlacementPolicy, PlacementSettings
from ..errors import OutOfBoundsQuery
from .height_grid import HeightGrid

logger = structlog.get_logger()

UP = np.array([0.0, 1.0, 0.0])
IDENTITY = (0.0, 0.0, 0.0, 1.0)


def quaternion_from_yaw(yaw_degrees: float) -> Tuple[float, float, float, float]:
    half = math.radians(yaw_degrees) / 2.0
    return (0.0, math.sin(half), 0.0, math.cos(half))


def quaternion_from_to(source: np.ndarray, target: np.ndarray) -> Tuple[float, float, float, float]:
    """Shortest-arc rotation taking unit vector ``source`` onto ``target``."""
    source = np.asarray(source, dtype=np.float64)
    target = np.asarray(target, dtype=np.float64)
    source = source / np.linalg.norm(source)
    target = target / np.linalg.norm(target)

    dot = float(np.dot(source, target))
    if dot > 1.0 - 1e-12:
        return IDENTITY
    if dot < -1.0 + 1e-12:
        # Opposite vectors: rotate 180 degrees around any perpendicular axis
        axis = np.cross(source, [1.0, 0.0, 0.0])
        if np.linalg.norm(axis) < 1e-6:
            axis = np.cross(source, [0.0, 0.0, 1.0])
        axis = axis / np.linalg.norm(axis)
        return (float(axis[0]), float(axis[1]), float(axis[2]), 0.0)

    axis = np.cross(source, target)
    q = np.array([axis[0], axis[1], axis[2], 1.0 + dot])
    q = q / np.linalg.norm(q)
    return tuple(float(c) for c in q)


def quaternion_multiply(a: Sequence[float], b: Sequence[float]) -> Tuple[float, float, float, float]:
    """Hamilton product ``a * b`` (apply ``b`` first, then ``a``)."""
    ax, ay, az, aw = a
    bx, by, bz, bw = b
    return (
        aw * bx + ax * bw + ay * bz - az * by,
        aw * by - ax * bz + ay * bw + az * bx,
        aw * bz + ax * by - ay * bx + az * bw,
        aw * bw - ax * bx - ay * by - az * bz,
    )


def longest_edge_yaw(points: np.ndarray) -> float:
    """
    Yaw (degrees) of the longest edge of a closed polygon in world x/z.

    Args:
        points: Array of shape (N, 2) with (x, z) vertices

    Returns:
        ``atan2(dx, dz)`` of the longest edge in degrees, 0 for fewer than
        two vertices
    """
    points = np.asarray(points, dtype=np.float64)
    if len(points) < 2:
        return 0.0
    edges = np.roll(points, -1, axis=0) - points
    lengths = np.hypot(edges[:, 0], edges[:, 1])
    dx, dz = edges[int(np.argmax(lengths))]
    return math.degrees(math.atan2(dx, dz))


@dataclass
class Placement:
    """Resolved transform for one object."""

    position: Tuple[float, float, float]  # pivot at the object's vertical center
    rotation: Tuple[float, float, float, float]
    surface_y: float
    base_y: float
    top_y: float
    normal: Tuple[float, float, float]
    policy: PlacementPolicy
    yaw: float = 0.0
    size_x: float = 0.0
    size_z: float = 0.0


class SurfacePlacementResolver:
    """Resolves object transforms against a finished HeightGrid."""

    def __init__(self, grid: HeightGrid, settings: Optional[PlacementSettings] = None):
        self.grid = grid
        self.settings = settings or PlacementSettings()

    def surface(self, x: float, z: float) -> Tuple[float, np.ndarray]:
        """World height and unit normal at (x, z). Raises OutOfBoundsQuery."""
        return self.grid.world_height(x, z), self.grid.normal_at(x, z)

    def resolve(
        self,
        x: float,
        z: float,
        object_height: float = 0.0,
        yaw: float = 0.0,
        policy: Optional[PlacementPolicy] = None,
    ) -> Placement:
        """
        Place an object at world (x, z).

        ``base_y`` and ``top_y`` are the vertical placement: the object spans
        ``[base_y, top_y]`` with ``top_y - base_y == object_height``. Level and
        SlopeAligned rest ``base_y`` on the surface (plus ``y_offset``);
        Foundation sinks the object so ``top_y`` sits
        ``foundation_top_offset`` above the surface. ``position`` is the
        vertical centre of that span, for engines that pivot meshes at their
        centre; a bottom-pivoted mesh should be seated at ``base_y``.

        Args:
            x, z: World position
            object_height: Vertical size of the object
            yaw: Rotation around Y in degrees
            policy: Overrides the configured policy

        Returns:
            Placement

        Raises:
            OutOfBoundsQuery: (x, z) is outside the terrain extent
        """
        policy = policy or self.settings.policy
        surface_y, normal = self.surface(x, z)
        yaw_rotation = quaternion_from_yaw(yaw)

        if policy == PlacementPolicy.FOUNDATION:
            top_y = surface_y + self.settings.foundation_top_offset
            base_y = top_y - object_height
            rotation = yaw_rotation
        elif policy == PlacementPolicy.SLOPE_ALIGNED:
            base_y = surface_y + self.settings.y_offset
            top_y = base_y + object_height
            rotation = quaternion_multiply(quaternion_from_to(UP, normal), yaw_rotation)
        else:
            base_y = surface_y + self.settings.y_offset
            top_y = base_y + object_height
            rotation = yaw_rotation

        return Placement(
            position=(x, (base_y + top_y) / 2.0, z),
            rotation=rotation,
            surface_y=surface_y,
            base_y=base_y,
            top_y=top_y,
            normal=tuple(float(c) for c in normal),
            policy=policy,
            yaw=yaw,
        )

    def resolve_footprint(
        self,
        footprint: Sequence[Tuple[float, float]],
        object_height: float,
        policy: Optional[PlacementPolicy] = None,
    ) -> Placement:
        """
        Place an object over a geographic footprint polygon.

        The footprint is projected to world space. The object sits at the
        vertex centroid, is sized to the axis-aligned extent and yawed along
        the longest edge.

        Args:
            footprint: Outer ring as (lon, lat) pairs
            object_height: Vertical size of the object
            policy: Overrides the configured policy
        """
        ring = np.asarray(footprint, dtype=np.float64).reshape(-1, 2)
        if len(ring) == 0:
            raise ValueError("Footprint has no vertices")

        xs, zs = self.grid.transform.geo_to_world(ring[:, 0], ring[:, 1])
        world = np.column_stack([np.atleast_1d(xs), np.atleast_1d(zs)])

        cx, cz = world.mean(axis=0)
        size_x, size_z = world.max(axis=0) - world.min(axis=0)
        yaw = longest_edge_yaw(world)

        placement = self.resolve(float(cx), float(cz), object_height, yaw, policy)
        placement.size_x = float(size_x)
        placement.size_z = float(size_z)
        return placement

    def resolve_batch(
        self,
        positions: Iterable[Tuple[float, float]],
        object_height: float = 0.0,
        policy: Optional[PlacementPolicy] = None,
    ) -> List[Optional[Placement]]:
        """
        Place many objects; out-of-bounds positions yield None.

        A bad position never aborts the rest of the batch.
        """
        results: List[Optional[Placement]] = []
        skipped = 0
        for x, z in positions:
            try:
                results.append(self.resolve(x, z, object_height, policy=policy))
            except OutOfBoundsQuery as e:
                logger.debug("Placement skipped", x=e.x, z=e.z)
                results.append(None)
                skipped += 1

        if skipped:
            logger.warning("Placements outside terrain extent", skipped=skipped, total=len(results))
        return results
