"""Frame-to-map RGB-D visual odometry.

Each new frame is matched against the landmarks visible from the last
key-frame's pose. Its pose comes from PnP on those matches and is accepted
only if enough matches are inliers and the motion is plausible. The map is
then pruned, and a key-frame is added once the camera has moved far enough.
"""

from __future__ import annotations

import logging
import math
import time
from dataclasses import dataclass, field
from enum import IntEnum

import numpy as np

from .features import DESCRIPTOR_BYTES, KeyPoint, OrbExtractor, match_descriptors
from .frame import Frame
from .map import Map
from .mappoint import MapPoint
from .pnp import MIN_POINTS, optimize_pose, solve_pnp_ransac
from .se3 import SE3

__all__ = ["VOState", "VisualOdometry"]

logger = logging.getLogger(__name__)

MAX_MOTION = 5.0
MAX_VIEW_ANGLE = math.pi / 6.0
MAX_MAP_POINTS = 1000
FEW_MATCHES = 100
MIN_MATCH_DISTANCE = 30.0


class VOState(IntEnum):
    """Tracking state of the odometry."""

    INITIALIZING = -1
    OK = 0
    LOST = 1


def _unit(vector: np.ndarray) -> np.ndarray:
    norm = float(np.linalg.norm(vector))
    return vector / norm if norm > 0.0 else vector


@dataclass(eq=False)
class VisualOdometry:
    """Tracks the camera pose from a sequence of RGB-D frames."""

    num_of_features: int = 500
    scale_factor: float = 1.2
    level_pyramid: int = 8
    match_ratio: float = 2.0
    max_num_lost: int = 10
    min_inliers: int = 10
    key_frame_min_rot: float = 0.1
    key_frame_min_trans: float = 0.1
    map_point_erase_ratio: float = 0.1

    state: VOState = field(default=VOState.INITIALIZING, init=False)
    map: Map = field(default_factory=Map, init=False)
    ref: Frame | None = field(default=None, init=False)
    curr: Frame | None = field(default=None, init=False)
    orb: OrbExtractor = field(init=False)
    keypoints_curr: list[KeyPoint] = field(default_factory=list, init=False)
    descriptors_curr: np.ndarray = field(
        default_factory=lambda: np.zeros((0, DESCRIPTOR_BYTES), dtype=np.uint8),
        init=False,
    )
    match_3dpts: list[MapPoint] = field(default_factory=list, init=False)
    match_2dkp_index: list[int] = field(default_factory=list, init=False)
    t_c_w_estimated: SE3 = field(default_factory=SE3, init=False)
    num_inliers: int = field(default=0, init=False)
    num_lost: int = field(default=0, init=False)

    def __post_init__(self) -> None:
        self.orb = OrbExtractor(
            self.num_of_features, self.scale_factor, self.level_pyramid
        )

    @classmethod
    def from_config(cls, config) -> "VisualOdometry":
        """Read the odometry parameters from a configuration."""
        return cls(
            num_of_features=config.get("number_of_features", int),
            scale_factor=config.get("scale_factor", float),
            level_pyramid=config.get("level_pyramid", int),
            match_ratio=config.get("match_ratio", float),
            max_num_lost=int(config.get("max_num_lost", float)),
            min_inliers=config.get("min_inliers", int),
            key_frame_min_rot=config.get("keyframe_rotation", float),
            key_frame_min_trans=config.get("keyframe_translation", float),
            map_point_erase_ratio=config.get("map_point_erase_ratio", float),
        )

    def add_frame(self, frame: Frame) -> bool:
        """Track a new frame; False when its pose estimate was rejected."""
        if self.state is VOState.INITIALIZING:
            self.state = VOState.OK
            self.curr = self.ref = frame
            self._extract_keypoints()
            self._compute_descriptors()
            self._add_keyframe()  # the first frame is a key-frame
            return True

        if self.state is VOState.OK:
            self.curr = frame
            frame.t_c_w = self.ref.t_c_w
            self._extract_keypoints()
            self._compute_descriptors()
            self._feature_matching()
            self._pose_estimation_pnp()
            if self._check_estimated_pose():
                frame.t_c_w = self.t_c_w_estimated
                self._optimize_map()
                self.num_lost = 0
                if self._check_keyframe():
                    self._add_keyframe()
                return True
            self.num_lost += 1
            if self.num_lost > self.max_num_lost:
                self.state = VOState.LOST
            return False

        logger.info("vo has lost.")
        return True

    def view_angle(self, frame: Frame, point: MapPoint) -> float:
        """Angle between the point's viewing normal and the ray from ``frame``."""
        n = _unit(point.pos - frame.cam_center())
        cosine = float(n @ point.norm)
        return math.acos(min(1.0, max(-1.0, cosine)))

    # Steps of the pipeline

    def _extract_keypoints(self) -> None:
        start = time.perf_counter()
        self.keypoints_curr = self.orb.detect(self.curr.color)
        logger.debug("extract keypoints cost time: %f", time.perf_counter() - start)

    def _compute_descriptors(self) -> None:
        start = time.perf_counter()
        self.keypoints_curr, self.descriptors_curr = self.orb.compute(
            self.curr.color, self.keypoints_curr
        )
        logger.debug(
            "descriptor computation cost time: %f", time.perf_counter() - start
        )

    def _feature_matching(self) -> None:
        start = time.perf_counter()
        candidates: list[MapPoint] = []
        descriptors: list[np.ndarray] = []
        for point in self.map.map_points.values():
            if self.curr.is_in_frame(point.pos):
                point.visible_times += 1
                if point.descriptor is not None:
                    candidates.append(point)
                    descriptors.append(np.asarray(point.descriptor, dtype=np.uint8))

        matches = (
            match_descriptors(np.vstack(descriptors), self.descriptors_curr)
            if candidates
            else []
        )
        self.match_3dpts = []
        self.match_2dkp_index = []
        if matches:
            min_dis = min(m.distance for m in matches)
            limit = max(min_dis * self.match_ratio, MIN_MATCH_DISTANCE)
            for m in matches:
                if m.distance < limit:
                    self.match_3dpts.append(candidates[m.query_idx])
                    self.match_2dkp_index.append(m.train_idx)
        logger.info("good matches: %d", len(self.match_3dpts))
        logger.debug("match cost time: %f", time.perf_counter() - start)

    def _pose_estimation_pnp(self) -> None:
        pts2d = np.array(
            [self.keypoints_curr[i].pt for i in self.match_2dkp_index], dtype=np.float64
        ).reshape(-1, 2)
        pts3d = np.array(
            [p.pos for p in self.match_3dpts], dtype=np.float64
        ).reshape(-1, 3)

        if len(pts3d) < MIN_POINTS:
            self.num_inliers = 0
            self.t_c_w_estimated = self.curr.t_c_w
            logger.info("pnp inliers: 0")
            return

        pose, inliers = solve_pnp_ransac(pts3d, pts2d, self.ref.camera, 100, 4.0, 0.99)
        self.num_inliers = len(inliers)
        logger.info("pnp inliers: %d", self.num_inliers)
        for index in inliers.tolist():
            self.match_3dpts[index].matched_times += 1
        if len(inliers):
            pose = optimize_pose(
                pose, pts3d[inliers], pts2d[inliers], self.curr.camera, 10
            )
        self.t_c_w_estimated = pose
        logger.debug("T_c_w_estimated:\n%s", pose.matrix())

    def _relative_motion(self) -> np.ndarray:
        return (self.ref.t_c_w * self.t_c_w_estimated.inverse()).log()

    def _check_estimated_pose(self) -> bool:
        if self.num_inliers < self.min_inliers:
            logger.info("reject because inlier is too small: %d", self.num_inliers)
            return False
        motion = float(np.linalg.norm(self._relative_motion()))
        if motion > MAX_MOTION:
            logger.info("reject because motion is too large: %f", motion)
            return False
        return True

    def _check_keyframe(self) -> bool:
        d = self._relative_motion()
        trans, rot = d[:3], d[3:]
        return bool(
            np.linalg.norm(rot) > self.key_frame_min_rot
            or np.linalg.norm(trans) > self.key_frame_min_trans
        )

    def _new_map_point(self, index: int, keypoint: KeyPoint, depth: float) -> MapPoint:
        p_world = self.ref.camera.pixel2world(
            np.array(keypoint.pt, dtype=np.float64), self.curr.t_c_w, depth
        )
        n = _unit(p_world - self.ref.cam_center())
        return MapPoint.create(
            p_world, n, self.descriptors_curr[index].copy(), self.curr
        )

    def _add_keyframe(self) -> None:
        if not self.map.keyframes:
            # first key-frame: every keypoint with a depth becomes a landmark
            for index, keypoint in enumerate(self.keypoints_curr):
                d = self.curr.find_depth(keypoint)
                if d < 0:
                    continue
                self.map.insert_map_point(self._new_map_point(index, keypoint, d))
        self.map.insert_keyframe(self.curr)
        self.ref = self.curr

    def _add_map_points(self) -> None:
        matched = set(self.match_2dkp_index)
        for index, keypoint in enumerate(self.keypoints_curr):
            if index in matched:
                continue
            d = self.ref.find_depth(keypoint)
            if d < 0:
                continue
            self.map.insert_map_point(self._new_map_point(index, keypoint, d))

    def _should_erase(self, point: MapPoint) -> bool:
        if not self.curr.is_in_frame(point.pos):
            return True
        ratio = (
            point.matched_times / point.visible_times
            if point.visible_times
            else math.inf
        )
        if ratio < self.map_point_erase_ratio:
            return True
        if self.view_angle(self.curr, point) > MAX_VIEW_ANGLE:
            return True
        return not point.good

    def _optimize_map(self) -> None:
        for point_id in [
            pid for pid, point in self.map.map_points.items() if self._should_erase(point)
        ]:
            del self.map.map_points[point_id]

        if len(self.match_2dkp_index) < FEW_MATCHES:
            self._add_map_points()
        if len(self.map.map_points) > MAX_MAP_POINTS:
            self.map_point_erase_ratio += 0.05
        else:
            self.map_point_erase_ratio = 0.1
        logger.info("map points: %d", len(self.map.map_points))