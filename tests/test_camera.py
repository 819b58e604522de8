import numpy as np
import pytest

from rgbdodom.camera import Camera
from rgbdodom.se3 import SE3


class _DictConfig:
    def __init__(self, values):
        self.values = values
        self.requests = []

    def get(self, key, kind):
        self.requests.append((key, kind))
        return kind(self.values[key])


@pytest.fixture
def camera():
    return Camera(fx=517.3, fy=516.5, cx=325.1, cy=249.7, depth_scale=5000.0)


@pytest.fixture
def pose():
    return SE3.exp([0.2, -0.1, 0.5, 0.05, -0.1, 0.2])


def test_from_config_reads_camera_keys():
    config = _DictConfig(
        {
            "camera.fx": "517.3",
            "camera.fy": "516.5",
            "camera.cx": "325.1",
            "camera.cy": "249.7",
            "camera.depth_scale": "5000",
        }
    )
    cam = Camera.from_config(config)
    assert cam == Camera(517.3, 516.5, 325.1, 249.7, 5000.0)
    assert ("camera.depth_scale", float) in config.requests


def test_depth_scale_defaults_to_zero():
    assert Camera(1.0, 2.0, 3.0, 4.0).depth_scale == 0.0


def test_optical_axis_projects_to_principal_point(camera):
    assert np.allclose(camera.camera2pixel([0.0, 0.0, 2.0]), [camera.cx, camera.cy])


def test_pixel_camera_round_trip(camera):
    pixel = np.array([100.0, 400.0])
    point = camera.pixel2camera(pixel, 2.5)
    assert point[2] == 2.5
    assert np.allclose(camera.camera2pixel(point), pixel)


def test_pixel2camera_default_depth(camera):
    assert camera.pixel2camera([10.0, 20.0])[2] == 1.0


def test_world_camera_round_trip(camera, pose):
    p_w = np.array([1.0, -0.5, 3.0])
    p_c = camera.world2camera(p_w, pose)
    assert np.allclose(p_c, pose * p_w)
    assert np.allclose(camera.camera2world(p_c, pose), p_w)


def test_pixel_world_round_trip(camera, pose):
    pixel = np.array([210.0, 130.0])
    p_w = camera.pixel2world(pixel, pose, 1.8)
    assert np.allclose(camera.world2pixel(p_w, pose), pixel)
    assert np.allclose(camera.world2camera(p_w, pose)[2], 1.8)


def test_identity_pose_world_equals_camera(camera):
    point = np.array([0.3, 0.4, 2.0])
    identity = SE3.identity()
    assert np.allclose(camera.world2pixel(point, identity), camera.camera2pixel(point))


def test_rejects_wrong_shapes(camera, pose):
    with pytest.raises(ValueError):
        camera.camera2pixel([1.0, 2.0])
    with pytest.raises(ValueError):
        camera.pixel2camera([1.0, 2.0, 3.0])
    with pytest.raises(ValueError):
        camera.world2camera([1.0], pose)