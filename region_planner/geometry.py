import math
from dataclasses import dataclass
from typing import Protocol

import numpy as np


class QuaternionLike(Protocol):
    x: float
    y: float
    z: float
    w: float


@dataclass(frozen=True)
class WorldPoint:
    """A 2D point in some world frame (meters)."""

    x: float
    y: float


@dataclass(frozen=True)
class Pose2D:
    """A 2D robot pose: position in meters and heading in radians about +Z."""

    x: float
    y: float
    yaw: float = 0.0

    @property
    def position(self) -> WorldPoint:
        return WorldPoint(self.x, self.y)


@dataclass(frozen=True)
class Transform2D:
    """Rigid 2D transform mapping points from a source frame into a target frame.

    A point `p` in the source frame maps to `R(yaw) @ p + (x, y)` in the target frame, which is the planar part of a
    tf2 `TransformStamped` looked up as `lookup_transform(target, source)`.

    Attributes:
        x: Translation along the target frame's X axis (m).
        y: Translation along the target frame's Y axis (m).
        yaw: Rotation about +Z (radians).
    """

    x: float = 0.0
    y: float = 0.0
    yaw: float = 0.0

    def apply(self, point: WorldPoint) -> WorldPoint:
        rotated = rotate_by_yaw(point, self.yaw)
        return WorldPoint(rotated.x + self.x, rotated.y + self.y)

    def apply_arrays(self, xs: np.ndarray, ys: np.ndarray) -> tuple[np.ndarray, np.ndarray]:
        """Vectorized `apply` over coordinate arrays of equal shape."""
        c = math.cos(self.yaw)
        s = math.sin(self.yaw)
        return c * xs - s * ys + self.x, s * xs + c * ys + self.y

    def inverse(self) -> "Transform2D":
        c = math.cos(self.yaw)
        s = math.sin(self.yaw)
        return Transform2D(x=-(c * self.x + s * self.y), y=s * self.x - c * self.y, yaw=-self.yaw)

    def compose(self, other: "Transform2D") -> "Transform2D":
        """Return the transform equivalent to applying `other` first, then `self`."""
        moved = self.apply(WorldPoint(other.x, other.y))
        return Transform2D(x=moved.x, y=moved.y, yaw=normalize_angle(self.yaw + other.yaw))


def normalize_angle(angle: float) -> float:
    """Wrap an angle into [-pi, pi)."""
    return (angle + math.pi) % (2.0 * math.pi) - math.pi


def get_yaw_radians_from_quaternion(q: QuaternionLike) -> float:
    """Extract the yaw angle in radians from a quaternion.

    Args:
        q: Any object with x, y, z, w attributes (e.g. a ROS quaternion message).

    Returns:
        Yaw rotation in radians about the +Z axis.
    """
    siny_cosp = 2.0 * (q.w * q.z + q.x * q.y)
    cosy_cosp = 1.0 - 2.0 * (q.y * q.y + q.z * q.z)
    return math.atan2(siny_cosp, cosy_cosp)


def quaternion_components_from_yaw(yaw: float) -> tuple[float, float, float, float]:
    """Components (x, y, z, w) of a pure yaw rotation about +Z."""
    return 0.0, 0.0, math.sin(yaw / 2.0), math.cos(yaw / 2.0)


def rotate_by_yaw(point: WorldPoint, angle: float) -> WorldPoint:
    """Rotate a point about the origin by the given angle (radians)."""
    c = math.cos(angle)
    s = math.sin(angle)
    return WorldPoint(x=c * point.x - s * point.y, y=s * point.x + c * point.y)


def bearing(origin: WorldPoint, target: WorldPoint) -> float:
    """Heading (radians) of the vector from `origin` to `target`."""
    return math.atan2(target.y - origin.y, target.x - origin.x)


def point_is_close(pointA: WorldPoint, pointB: WorldPoint) -> bool:
    """Check whether two points are within 1cm of each other on both axes."""
    return math.isclose(pointA.x, pointB.x, abs_tol=0.01) and math.isclose(pointA.y, pointB.y, abs_tol=0.01)
