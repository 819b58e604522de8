"""Pinhole RGB-D camera model and coordinate transforms."""

from __future__ import annotations

from dataclasses import dataclass

import numpy as np

from .se3 import SE3

__all__ = ["Camera"]


def _vector(values, size: int, name: str) -> np.ndarray:
    vector = np.asarray(values, dtype=np.float64)
    if vector.shape != (size,):
        raise ValueError(f"{name} must have shape ({size},), got {vector.shape}")
    return vector


@dataclass
class Camera:
    """Intrinsics of a pinhole camera with a depth sensor."""

    fx: float
    fy: float
    cx: float
    cy: float
    depth_scale: float = 0.0

    @classmethod
    def from_config(cls, config) -> "Camera":
        """Read ``camera.fx`` ... ``camera.depth_scale`` from a configuration."""
        return cls(
            fx=config.get("camera.fx", float),
            fy=config.get("camera.fy", float),
            cx=config.get("camera.cx", float),
            cy=config.get("camera.cy", float),
            depth_scale=config.get("camera.depth_scale", float),
        )

    def world2camera(self, p_w, t_c_w: SE3) -> np.ndarray:
        """World point into camera coordinates."""
        return t_c_w * _vector(p_w, 3, "p_w")

    def camera2world(self, p_c, t_c_w: SE3) -> np.ndarray:
        """Camera point into world coordinates."""
        return t_c_w.inverse() * _vector(p_c, 3, "p_c")

    def camera2pixel(self, p_c) -> np.ndarray:
        """Project a camera point onto the image plane."""
        x, y, z = _vector(p_c, 3, "p_c")
        return np.array([self.fx * x / z + self.cx, self.fy * y / z + self.cy])

    def pixel2camera(self, p_p, depth: float = 1.0) -> np.ndarray:
        """Back-project a pixel at the given depth into camera coordinates."""
        u, v = _vector(p_p, 2, "p_p")
        return np.array(
            [
                (u - self.cx) * depth / self.fx,
                (v - self.cy) * depth / self.fy,
                depth,
            ]
        )

    def pixel2world(self, p_p, t_c_w: SE3, depth: float = 1.0) -> np.ndarray:
        """Back-project a pixel at the given depth into world coordinates."""
        return self.camera2world(self.pixel2camera(p_p, depth), t_c_w)

    def world2pixel(self, p_w, t_c_w: SE3) -> np.ndarray:
        """Project a world point onto the image plane."""
        return self.camera2pixel(self.world2camera(p_w, t_c_w))