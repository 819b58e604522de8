import numpy as np
import pytest

from rgbdodom.camera import Camera
from rgbdodom.g2o_types import (
    EdgeProjectXYZ2UVPoseOnly,
    EdgeProjectXYZRGBD,
    EdgeProjectXYZRGBDPoseOnly,
)
from rgbdodom.se3 import SE3, SO3

EPS = 1e-6


@pytest.fixture
def pose():
    return SE3(SO3.exp([0.1, -0.2, 0.3]), [0.5, -0.1, 2.0])


@pytest.fixture
def point():
    return np.array([0.3, 0.2, 1.5])


@pytest.fixture
def camera():
    return Camera(fx=517.3, fy=516.5, cx=325.1, cy=249.7, depth_scale=5000.0)


def _perturb(pose, delta):
    # delta is (omega, upsilon); SE3.exp takes (upsilon, omega).
    return SE3.exp(np.concatenate([delta[3:], delta[:3]])) * pose


def _numeric_pose_jacobian(error_fn, pose):
    columns = [
        (error_fn(_perturb(pose, step)) - error_fn(_perturb(pose, -step))) / (2 * EPS)
        for step in np.eye(6) * EPS
    ]
    return np.column_stack(columns)


def test_rgbd_error_zero_at_measurement(pose, point):
    edge = EdgeProjectXYZRGBD(pose * point)
    np.testing.assert_allclose(edge.compute_error(point, pose), np.zeros(3), atol=1e-12)


def test_rgbd_point_jacobian_matches_numeric(pose, point):
    edge = EdgeProjectXYZRGBD([1.0, 2.0, 3.0])
    jac_point, _ = edge.linearize_oplus(point, pose)
    columns = [
        (edge.compute_error(point + step, pose) - edge.compute_error(point - step, pose))
        / (2 * EPS)
        for step in np.eye(3) * EPS
    ]
    np.testing.assert_allclose(jac_point, np.column_stack(columns), atol=1e-6)


def test_rgbd_pose_jacobian_matches_numeric(pose, point):
    edge = EdgeProjectXYZRGBD([1.0, 2.0, 3.0])
    _, jac_pose = edge.linearize_oplus(point, pose)
    numeric = _numeric_pose_jacobian(lambda p: edge.compute_error(point, p), pose)
    assert jac_pose.shape == (3, 6)
    np.testing.assert_allclose(jac_pose, numeric, atol=1e-5)


def test_rgbd_pose_only_matches_binary_edge(pose, point):
    measurement = np.array([0.2, 0.1, 3.0])
    binary = EdgeProjectXYZRGBD(measurement)
    unary = EdgeProjectXYZRGBDPoseOnly(measurement, point)
    np.testing.assert_allclose(unary.compute_error(pose), binary.compute_error(point, pose))
    np.testing.assert_allclose(
        unary.linearize_oplus(pose), binary.linearize_oplus(point, pose)[1]
    )


def test_rgbd_pose_only_jacobian_matches_numeric(pose, point):
    edge = EdgeProjectXYZRGBDPoseOnly([0.0, 0.0, 1.0], point)
    numeric = _numeric_pose_jacobian(edge.compute_error, pose)
    np.testing.assert_allclose(edge.linearize_oplus(pose), numeric, atol=1e-5)


def test_uv_error_zero_at_projection(pose, point, camera):
    edge = EdgeProjectXYZ2UVPoseOnly(camera.world2pixel(point, pose), point, camera)
    np.testing.assert_allclose(edge.compute_error(pose), np.zeros(2), atol=1e-9)


def test_uv_jacobian_matches_numeric(pose, point, camera):
    edge = EdgeProjectXYZ2UVPoseOnly([320.0, 240.0], point, camera)
    numeric = _numeric_pose_jacobian(edge.compute_error, pose)
    jac = edge.linearize_oplus(pose)
    assert jac.shape == (2, 6)
    np.testing.assert_allclose(jac, numeric, rtol=1e-5, atol=1e-4)


def test_default_information_is_identity(point, camera):
    edge = EdgeProjectXYZ2UVPoseOnly([1.0, 2.0], point, camera)
    np.testing.assert_array_equal(edge.information, np.eye(2))


def test_bad_measurement_shape_rejected(point, camera):
    with pytest.raises(ValueError):
        EdgeProjectXYZ2UVPoseOnly([1.0, 2.0, 3.0], point, camera)