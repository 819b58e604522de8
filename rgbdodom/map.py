"""The map: all key-frames and landmarks, each indexed by id."""

from __future__ import annotations

import logging
from dataclasses import dataclass, field

from .frame import Frame
from .mappoint import MapPoint

__all__ = ["Map"]

logger = logging.getLogger(__name__)


@dataclass(eq=False)
class Map:
    """Key-frames and landmarks; inserting an existing id replaces the entry."""

    map_points: dict[int, MapPoint] = field(default_factory=dict)
    keyframes: dict[int, Frame] = field(default_factory=dict)

    def insert_keyframe(self, frame: Frame) -> None:
        """Add or replace a key-frame."""
        logger.info("Key frame size = %d", len(self.keyframes))
        self.keyframes[frame.id] = frame

    def insert_map_point(self, map_point: MapPoint) -> None:
        """Add or replace a landmark."""
        self.map_points[map_point.id] = map_point