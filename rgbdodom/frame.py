"""Camera frames: an image pair with a pose and a camera model."""

from __future__ import annotations

import itertools
from dataclasses import dataclass, field

import numpy as np

from .camera import Camera
from .se3 import SE3

__all__ = ["Frame"]

_frame_ids = itertools.count()

# Neighbours tried when the depth at a keypoint is missing: left, up, right, down.
_NEIGHBOURS = ((-1, 0), (0, -1), (1, 0), (0, 1))


def _keypoint_xy(keypoint) -> tuple[float, float]:
    pt = getattr(keypoint, "pt", keypoint)
    x, y = pt
    return float(x), float(y)


@dataclass(eq=False)
class Frame:
    """One recorded frame with its estimated pose ``t_c_w`` (world to camera)."""

    id: int = -1
    time_stamp: float = 0.0
    t_c_w: SE3 = field(default_factory=SE3)
    camera: Camera | None = None
    color: np.ndarray | None = None
    depth: np.ndarray | None = None
    is_key_frame: bool = False

    @classmethod
    def create(cls) -> "Frame":
        """A new frame carrying the next id."""
        return cls(id=next(_frame_ids))

    def find_depth(self, keypoint) -> float:
        """Depth at a keypoint in metres, or -1.0 when none is available.

        When the depth at the keypoint is zero, the four direct neighbours
        are tried in turn.
        """
        if self.depth is None or self.camera is None:
            raise ValueError("frame has no depth image or camera")
        x_f, y_f = _keypoint_xy(keypoint)
        x, y = int(round(x_f)), int(round(y_f))
        rows, cols = self.depth.shape[:2]
        if not (0 <= x < cols and 0 <= y < rows):
            raise IndexError(f"keypoint ({x}, {y}) lies outside the depth image")
        candidates = [(x, y)] + [
            (x + dx, y + dy)
            for dx, dy in _NEIGHBOURS
            if 0 <= x + dx < cols and 0 <= y + dy < rows
        ]
        for cx, cy in candidates:
            d = int(self.depth[cy, cx])
            if d != 0:
                return float(d) / self.camera.depth_scale
        return -1.0

    def cam_center(self) -> np.ndarray:
        """Position of the camera centre in world coordinates."""
        return self.t_c_w.inverse().translation

    def set_pose(self, t_c_w: SE3) -> None:
        """Replace the pose of this frame."""
        self.t_c_w = t_c_w

    def is_in_frame(self, pt_world) -> bool:
        """Whether a world point projects inside this frame's colour image."""
        if self.camera is None or self.color is None:
            raise ValueError("frame has no colour image or camera")
        p_cam = self.camera.world2camera(pt_world, self.t_c_w)
        if p_cam[2] < 0:
            return False
        with np.errstate(divide="ignore", invalid="ignore"):
            u, v = self.camera.world2pixel(pt_world, self.t_c_w)
        rows, cols = self.color.shape[:2]
        return bool(u > 0 and v > 0 and u < cols and v < rows)