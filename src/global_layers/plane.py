"""
Oriented slicing planes and the stacking direction used to rank them.

A Plane is stored as an anchor point plus a unit normal (n . p = offset).
Planes are immutable; shifting returns a new plane so a step's slicing
plane is never modified by whoever inspects it.
"""
from __future__ import annotations

from dataclasses import dataclass
from typing import Sequence

import numpy as np
from scipy.spatial.transform import Rotation

# Component-wise tolerance for two unit normals to count as the same orientation.
NORMAL_TOLERANCE = 1e-6

_PARALLEL_EPS = 1e-12

CANONICAL_UP = np.array([0.0, 0.0, 1.0])


def _as_vec3(values: Sequence[float], name: str) -> np.ndarray:
    vec = np.array(values, dtype=float).reshape(-1)
    if vec.shape != (3,):
        raise ValueError(f"{name} must have 3 components, got {vec.shape[0]}")
    return vec


@dataclass(frozen=True, eq=False)
class Plane:
    """An oriented plane through ``point`` with unit ``normal``."""

    point: np.ndarray
    normal: np.ndarray

    def __post_init__(self):
        point = _as_vec3(self.point, "point")
        normal = _as_vec3(self.normal, "normal")
        length = float(np.linalg.norm(normal))
        if length == 0.0:
            raise ValueError("Plane normal must be non-zero")
        point.setflags(write=False)
        normal = normal / length
        normal.setflags(write=False)
        object.__setattr__(self, "point", point)
        object.__setattr__(self, "normal", normal)

    @classmethod
    def from_offset(cls, normal: Sequence[float], offset: float) -> "Plane":
        """Build the plane n . p = offset (normal is normalized first)."""
        through_origin = cls(point=(0.0, 0.0, 0.0), normal=normal)
        return through_origin.shifted_along_normal(offset)

    @property
    def offset(self) -> float:
        """Signed distance of the plane from the origin along its normal."""
        return float(self.normal @ self.point)

    def shifted_along_normal(self, distance: float) -> "Plane":
        return Plane(point=self.point + self.normal * float(distance), normal=self.normal)

    def signed_distance_to(self, point: Sequence[float]) -> float:
        p = _as_vec3(point, "point")
        return float(self.normal @ (p - self.point))

    def distance_along(self, direction: Sequence[float], origin: Sequence[float] = (0.0, 0.0, 0.0)) -> float:
        """Signed distance from ``origin`` to this plane along ``direction``.

        Intersects the line origin + t * direction with the plane and returns
        t scaled to the unit direction, so it is a length in plane units.

        Raises:
            ValueError: if the direction is parallel to the plane.
        """
        d = _as_vec3(direction, "direction")
        d = d / np.linalg.norm(d)
        o = _as_vec3(origin, "origin")
        denom = float(self.normal @ d)
        if abs(denom) < _PARALLEL_EPS:
            raise ValueError(
                f"Stacking direction {d.tolist()} is parallel to plane with normal {self.normal.tolist()}"
            )
        return float(self.normal @ (self.point - o)) / denom

    def is_equal(self, other: "Plane", tolerance: float) -> bool:
        """Whether ``other`` is the same plane within ``tolerance`` (inclusive).

        Normals must match in orientation (flipped normals differ) and the
        anchor of ``other`` must lie within ``tolerance`` of this plane.
        """
        if not np.allclose(self.normal, other.normal, rtol=0.0, atol=NORMAL_TOLERANCE):
            return False
        return abs(self.signed_distance_to(other.point)) <= tolerance

    def __repr__(self) -> str:
        n = ", ".join(f"{v:.4g}" for v in self.normal)
        return f"Plane(normal=({n}), offset={self.offset:.4g})"


def stacking_rotation(pitch_deg: float, yaw_deg: float, roll_deg: float) -> Rotation:
    """Rotation for a stacking orientation.

    Pitch turns about X, roll about Y and yaw about Z, applied in that order
    about the fixed axes.
    """
    return Rotation.from_euler("xyz", [pitch_deg, roll_deg, yaw_deg], degrees=True)


def stacking_direction(pitch_deg: float = 0.0, yaw_deg: float = 0.0, roll_deg: float = 0.0) -> np.ndarray:
    """Canonical build-up axis: (0, 0, 1) rotated by the stacking orientation."""
    return stacking_rotation(pitch_deg, yaw_deg, roll_deg).apply(CANONICAL_UP)
