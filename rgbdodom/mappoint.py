"""Landmarks: 3-D points with a descriptor and observation counts."""

from __future__ import annotations

import itertools
from dataclasses import dataclass, field
from typing import Any

import numpy as np

__all__ = ["MapPoint"]

_point_ids = itertools.count()


def _vector3(values) -> np.ndarray:
    vector = np.asarray(values, dtype=np.float64)
    if vector.shape != (3,):
        raise ValueError(f"expected a 3-vector, got shape {vector.shape}")
    return vector.copy()


@dataclass(eq=False)
class MapPoint:
    """A landmark in world coordinates."""

    id: int = -1
    pos: np.ndarray = field(default_factory=lambda: np.zeros(3))
    norm: np.ndarray = field(default_factory=lambda: np.zeros(3))
    descriptor: np.ndarray | None = None
    observed_frames: list[Any] = field(default_factory=list)
    good: bool = True
    matched_times: int = 0
    visible_times: int = 0

    def __post_init__(self) -> None:
        self.pos = _vector3(self.pos)
        self.norm = _vector3(self.norm)

    @classmethod
    def create(cls, pos_world=None, norm=None, descriptor=None, frame=None) -> "MapPoint":
        """A new landmark with the next id, seen and matched once."""
        return cls(
            id=next(_point_ids),
            pos=np.zeros(3) if pos_world is None else pos_world,
            norm=np.zeros(3) if norm is None else norm,
            descriptor=descriptor,
            observed_frames=[] if frame is None else [frame],
            matched_times=1,
            visible_times=1,
        )