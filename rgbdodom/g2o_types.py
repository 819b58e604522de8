"""Error terms and their Jacobians for pose and structure optimisation.

A pose is an :class:`SE3` mapping world points into the camera frame.
Pose Jacobians are taken with respect to a left perturbation
``exp(delta) * T`` with ``delta`` ordered rotation first: ``(omega, upsilon)``.
"""

from __future__ import annotations

from dataclasses import dataclass, field

import numpy as np

from .camera import Camera
from .se3 import SE3

__all__ = [
    "EdgeProjectXYZRGBD",
    "EdgeProjectXYZRGBDPoseOnly",
    "EdgeProjectXYZ2UVPoseOnly",
]


def _vector(values, size: int, name: str) -> np.ndarray:
    vector = np.asarray(values, dtype=np.float64)
    if vector.shape != (size,):
        raise ValueError(f"{name} must have shape ({size},), got {vector.shape}")
    return vector.copy()


def _point_pose_jacobian(xyz_trans: np.ndarray) -> np.ndarray:
    """Jacobian of ``measurement - T p`` with respect to the pose."""
    x, y, z = xyz_trans
    return np.array(
        [
            [0.0, -z, y, -1.0, 0.0, 0.0],
            [z, 0.0, -x, 0.0, -1.0, 0.0],
            [-y, x, 0.0, 0.0, 0.0, -1.0],
        ]
    )


@dataclass(eq=False)
class EdgeProjectXYZRGBD:
    """3-D measurement of a free point seen from a free pose."""

    measurement: np.ndarray
    information: np.ndarray = field(default_factory=lambda: np.eye(3))

    def __post_init__(self) -> None:
        self.measurement = _vector(self.measurement, 3, "measurement")

    def compute_error(self, point, pose: SE3) -> np.ndarray:
        """``measurement - pose * point``."""
        return self.measurement - pose * _vector(point, 3, "point")

    def linearize_oplus(self, point, pose: SE3) -> tuple[np.ndarray, np.ndarray]:
        """Jacobians with respect to the point (3x3) and the pose (3x6)."""
        xyz_trans = pose * _vector(point, 3, "point")
        return -pose.rotation_matrix(), _point_pose_jacobian(xyz_trans)


@dataclass(eq=False)
class EdgeProjectXYZRGBDPoseOnly:
    """3-D measurement of a fixed point; only the pose is free."""

    measurement: np.ndarray
    point: np.ndarray
    information: np.ndarray = field(default_factory=lambda: np.eye(3))

    def __post_init__(self) -> None:
        self.measurement = _vector(self.measurement, 3, "measurement")
        self.point = _vector(self.point, 3, "point")

    def compute_error(self, pose: SE3) -> np.ndarray:
        """``measurement - pose * point``."""
        return self.measurement - pose * self.point

    def linearize_oplus(self, pose: SE3) -> np.ndarray:
        """Jacobian (3x6) with respect to the pose."""
        return _point_pose_jacobian(pose * self.point)


@dataclass(eq=False)
class EdgeProjectXYZ2UVPoseOnly:
    """Pixel measurement of a fixed point; only the pose is free."""

    measurement: np.ndarray
    point: np.ndarray
    camera: Camera
    information: np.ndarray = field(default_factory=lambda: np.eye(2))

    def __post_init__(self) -> None:
        self.measurement = _vector(self.measurement, 2, "measurement")
        self.point = _vector(self.point, 3, "point")

    def compute_error(self, pose: SE3) -> np.ndarray:
        """``measurement - project(pose * point)``."""
        return self.measurement - self.camera.camera2pixel(pose * self.point)

    def linearize_oplus(self, pose: SE3) -> np.ndarray:
        """Jacobian (2x6) with respect to the pose."""
        x, y, z = pose * self.point
        z_2 = z * z
        fx, fy = self.camera.fx, self.camera.fy
        return np.array(
            [
                [
                    x * y / z_2 * fx,
                    -(1.0 + x * x / z_2) * fx,
                    y / z * fx,
                    -1.0 / z * fx,
                    0.0,
                    x / z_2 * fx,
                ],
                [
                    (1.0 + y * y / z_2) * fy,
                    -x * y / z_2 * fy,
                    -x / z * fy,
                    0.0,
                    -1.0 / z * fy,
                    y / z_2 * fy,
                ],
            ]
        )