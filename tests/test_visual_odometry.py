import math

import numpy as np
import pytest

from rgbdodom.camera import Camera
from rgbdodom.config import Config
from rgbdodom.frame import Frame
from rgbdodom.mappoint import MapPoint
from rgbdodom.visual_odometry import VisualOdometry, VOState

WIDTH, HEIGHT = 160, 120
DEPTH_LOW, DEPTH_HIGH, DEPTH_SCALE = 2000, 6000, 1000.0


def _camera():
    return Camera(fx=100.0, fy=100.0, cx=80.0, cy=60.0, depth_scale=DEPTH_SCALE)


def _images(seed=7):
    rng = np.random.default_rng(seed)
    color = rng.integers(0, 256, size=(HEIGHT, WIDTH, 3), dtype=np.uint8)
    depth = rng.integers(DEPTH_LOW, DEPTH_HIGH, size=(HEIGHT, WIDTH), dtype=np.uint16)
    return color, depth


def _frame(color, depth):
    frame = Frame.create()
    frame.camera = _camera()
    frame.color = color
    frame.depth = depth
    return frame


def _vo(**overrides):
    params = dict(
        num_of_features=150,
        scale_factor=1.2,
        level_pyramid=4,
        match_ratio=2.0,
        max_num_lost=10,
        min_inliers=10,
        key_frame_min_rot=0.1,
        key_frame_min_trans=0.1,
        map_point_erase_ratio=0.1,
    )
    params.update(overrides)
    return VisualOdometry(**params)


def test_from_config_reads_parameters(tmp_path):
    path = tmp_path / "default.yaml"
    path.write_text(
        "%YAML:1.0\n"
        "number_of_features: 321\n"
        "scale_factor: 1.5\n"
        "level_pyramid: 3\n"
        "match_ratio: 2.5\n"
        "max_num_lost: 7.0\n"
        "min_inliers: 12\n"
        "keyframe_rotation: 0.2\n"
        "keyframe_translation: 0.3\n"
        "map_point_erase_ratio: 0.15\n"
    )
    vo = VisualOdometry.from_config(Config.load(path))
    assert vo.num_of_features == 321
    assert vo.scale_factor == 1.5
    assert vo.level_pyramid == 3
    assert vo.match_ratio == 2.5
    assert vo.max_num_lost == 7
    assert vo.min_inliers == 12
    assert vo.key_frame_min_rot == 0.2
    assert vo.key_frame_min_trans == 0.3
    assert vo.map_point_erase_ratio == 0.15
    assert vo.orb.num_features == 321
    assert vo.state is VOState.INITIALIZING


def test_from_config_missing_key_raises(tmp_path):
    path = tmp_path / "partial.yaml"
    path.write_text("number_of_features: 100\n")
    with pytest.raises(KeyError):
        VisualOdometry.from_config(Config.load(path))


def test_view_angle_aligned_and_perpendicular():
    vo = _vo()
    frame = Frame()
    aligned = MapPoint(pos=[0.0, 0.0, 5.0], norm=[0.0, 0.0, 1.0])
    side = MapPoint(pos=[0.0, 0.0, 5.0], norm=[1.0, 0.0, 0.0])
    opposite = MapPoint(pos=[0.0, 0.0, 5.0], norm=[0.0, 0.0, -1.0])
    assert vo.view_angle(frame, aligned) == pytest.approx(0.0, abs=1e-12)
    assert vo.view_angle(frame, side) == pytest.approx(math.pi / 2)
    assert vo.view_angle(frame, opposite) == pytest.approx(math.pi)


def test_first_frame_becomes_keyframe_with_landmarks():
    vo = _vo()
    color, depth = _images()
    frame = _frame(color, depth)
    assert vo.add_frame(frame) is True
    assert vo.state is VOState.OK
    assert vo.ref is frame
    assert list(vo.map.keyframes.values()) == [frame]
    assert len(vo.map.map_points) > 0
    for point in vo.map.map_points.values():
        assert DEPTH_LOW / DEPTH_SCALE <= point.pos[2] < DEPTH_HIGH / DEPTH_SCALE
        assert np.linalg.norm(point.norm) == pytest.approx(1.0)
        assert point.observed_frames == [frame]


def test_identical_second_frame_keeps_identity_pose():
    vo = _vo()
    color, depth = _images()
    vo.add_frame(_frame(color, depth))
    second = _frame(color.copy(), depth.copy())
    assert vo.add_frame(second) is True
    assert vo.num_inliers >= vo.min_inliers
    assert vo.num_lost == 0
    assert np.allclose(second.t_c_w.matrix(), np.eye(4), atol=1e-5)
    # no motion: no new key-frame
    assert len(vo.map.keyframes) == 1


def test_blank_frame_is_rejected():
    vo = _vo()
    color, depth = _images()
    first = _frame(color, depth)
    vo.add_frame(first)
    blank = _frame(np.zeros_like(color), depth)
    assert vo.add_frame(blank) is False
    assert vo.num_inliers == 0
    assert vo.num_lost == 1
    assert vo.state is VOState.OK
    assert vo.ref is first


def test_rejections_beyond_limit_mark_lost():
    vo = _vo(max_num_lost=0)
    color, depth = _images()
    first = _frame(color, depth)
    vo.add_frame(first)
    vo.min_inliers = 10**6
    second = _frame(color.copy(), depth.copy())
    assert vo.add_frame(second) is False
    assert vo.num_lost == 1
    assert vo.state is VOState.LOST
    assert np.allclose(second.t_c_w.matrix(), first.t_c_w.matrix())

    points_before = dict(vo.map.map_points)
    third = _frame(color.copy(), depth.copy())
    assert vo.add_frame(third) is True
    assert vo.state is VOState.LOST
    assert vo.map.map_points == points_before
    assert vo.curr is second