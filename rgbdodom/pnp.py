"""Camera pose from 3-D to 2-D correspondences.

A RANSAC search over six-point linear (DLT) solutions finds the inliers;
the pose is then refined by Levenberg-Marquardt on the reprojection error.
"""

from __future__ import annotations

import math
import sys

import numpy as np

from .camera import Camera
from .g2o_types import EdgeProjectXYZ2UVPoseOnly
from .se3 import SE3

__all__ = ["solve_pnp_ransac", "optimize_pose"]

MIN_POINTS = 6
_MAX_DAMPING_TRIES = 10
_RANSAC_SEED = 0


def _points(points3d, points2d) -> tuple[np.ndarray, np.ndarray]:
    pts3 = np.asarray(points3d, dtype=np.float64).reshape(-1, 3)
    pts2 = np.asarray(points2d, dtype=np.float64).reshape(-1, 2)
    if pts3.shape[0] != pts2.shape[0]:
        raise ValueError(
            f"{pts3.shape[0]} 3-D points but {pts2.shape[0]} 2-D points"
        )
    return pts3, pts2


def _normalized(points2d: np.ndarray, camera: Camera) -> np.ndarray:
    return np.column_stack(
        [
            (points2d[:, 0] - camera.cx) / camera.fx,
            (points2d[:, 1] - camera.cy) / camera.fy,
        ]
    )


def _dlt(points3d: np.ndarray, normalized: np.ndarray) -> SE3 | None:
    """Linear pose from six or more correspondences, or None when degenerate."""
    centroid = points3d.mean(axis=0)
    spread = math.sqrt(float(np.mean(np.sum((points3d - centroid) ** 2, axis=1))))
    if spread <= 0.0:
        return None
    homogeneous = np.hstack([(points3d - centroid) / spread, np.ones((len(points3d), 1))])
    x = normalized[:, 0:1]
    y = normalized[:, 1:2]
    a = np.zeros((2 * len(points3d), 12))
    a[0::2, 0:4] = homogeneous
    a[0::2, 8:12] = -x * homogeneous
    a[1::2, 4:8] = homogeneous
    a[1::2, 8:12] = -y * homogeneous
    try:
        _, _, vt = np.linalg.svd(a)
        conditioning = np.eye(4)
        conditioning[:3, :3] /= spread
        conditioning[:3, 3] = -centroid / spread
        p = vt[-1].reshape(3, 4) @ conditioning
        m = p[:, :3]
        if np.linalg.det(m) < 0.0:
            p = -p
            m = -m
        u, singular, vt_m = np.linalg.svd(m)
    except np.linalg.LinAlgError:
        return None
    scale = float(singular.mean())
    if not math.isfinite(scale) or scale <= sys.float_info.epsilon:
        return None
    try:
        return SE3(u @ vt_m, p[:, 3] / scale)
    except ValueError:
        return None


def _inlier_mask(pose: SE3, pts3, pts2, camera: Camera, threshold: float) -> np.ndarray:
    p_cam = pose * pts3
    z = p_cam[:, 2]
    with np.errstate(divide="ignore", invalid="ignore"):
        uv = np.column_stack(
            [
                camera.fx * p_cam[:, 0] / z + camera.cx,
                camera.fy * p_cam[:, 1] / z + camera.cy,
            ]
        )
        error = np.linalg.norm(uv - pts2, axis=1)
    return (z > 0.0) & np.isfinite(error) & (error <= threshold)


def _update_iterations(confidence: float, outlier_ratio: float, max_iters: int) -> int:
    outlier_ratio = min(max(outlier_ratio, 0.0), 1.0)
    num = max(1.0 - confidence, sys.float_info.min)
    denom = 1.0 - (1.0 - outlier_ratio) ** MIN_POINTS
    if denom < sys.float_info.min:
        return 0
    num = math.log(num)
    denom = math.log(denom)
    if denom >= 0.0 or -num >= max_iters * (-denom):
        return max_iters
    return int(round(num / denom))


def solve_pnp_ransac(
    points3d,
    points2d,
    camera: Camera,
    iterations: int = 100,
    reprojection_error: float = 4.0,
    confidence: float = 0.99,
) -> tuple[SE3, np.ndarray]:
    """Robust pose ``T_c_w`` from world points and their pixels.

    Returns the pose and the indices of the inlier correspondences. When no
    consensus is found, the identity pose and no inliers are returned.
    """
    pts3, pts2 = _points(points3d, points2d)
    n = pts3.shape[0]
    if n < MIN_POINTS:
        raise ValueError(f"at least {MIN_POINTS} correspondences are needed, got {n}")
    if iterations < 1:
        raise ValueError("iterations must be at least 1")
    if reprojection_error <= 0.0:
        raise ValueError("reprojection_error must be positive")
    if not 0.0 < confidence < 1.0:
        raise ValueError("confidence must lie strictly between 0 and 1")

    normalized = _normalized(pts2, camera)
    rng = np.random.default_rng(_RANSAC_SEED)
    best_pose: SE3 | None = None
    best_mask = np.zeros(n, dtype=bool)
    limit = iterations
    done = 0
    while done < limit:
        done += 1
        sample = rng.choice(n, MIN_POINTS, replace=False)
        pose = _dlt(pts3[sample], normalized[sample])
        if pose is None:
            continue
        mask = _inlier_mask(pose, pts3, pts2, camera, reprojection_error)
        if mask.sum() > best_mask.sum():
            best_pose, best_mask = pose, mask
            limit = _update_iterations(confidence, 1.0 - mask.sum() / n, limit)

    if best_pose is None or best_mask.sum() < MIN_POINTS:
        return SE3.identity(), np.zeros(0, dtype=int)

    refined = _dlt(pts3[best_mask], normalized[best_mask]) or best_pose
    refined = optimize_pose(refined, pts3[best_mask], pts2[best_mask], camera, 10)
    refined_mask = _inlier_mask(refined, pts3, pts2, camera, reprojection_error)
    if refined_mask.sum() >= best_mask.sum():
        best_pose, best_mask = refined, refined_mask
    return best_pose, np.flatnonzero(best_mask)


def _oplus(pose: SE3, delta: np.ndarray) -> SE3:
    # delta is ordered (omega, upsilon); SE3.exp takes (upsilon, omega).
    return SE3.exp(np.concatenate([delta[3:], delta[:3]])) * pose


def _chi2(pose: SE3, edges) -> float:
    total = 0.0
    for edge in edges:
        error = edge.compute_error(pose)
        total += float(error @ edge.information @ error)
    return total


def _linear_system(pose: SE3, edges) -> tuple[np.ndarray, np.ndarray, float]:
    hessian = np.zeros((6, 6))
    gradient = np.zeros(6)
    chi2 = 0.0
    for edge in edges:
        error = edge.compute_error(pose)
        jacobian = edge.linearize_oplus(pose)
        weighted = jacobian.T @ edge.information
        hessian += weighted @ jacobian
        gradient -= weighted @ error
        chi2 += float(error @ edge.information @ error)
    return hessian, gradient, chi2


def optimize_pose(
    pose: SE3, points3d, points2d, camera: Camera, iterations: int = 10
) -> SE3:
    """Refine ``pose`` by Levenberg-Marquardt on the pixel reprojection error."""
    pts3, pts2 = _points(points3d, points2d)
    edges = [
        EdgeProjectXYZ2UVPoseOnly(measurement=uv, point=p, camera=camera)
        for p, uv in zip(pts3, pts2)
    ]
    if not edges:
        return pose

    current = pose
    hessian, gradient, chi2 = _linear_system(current, edges)
    top = float(np.max(np.diag(hessian)))
    damping = 1e-5 * top if math.isfinite(top) and top > 0.0 else 1e-5
    growth = 2.0
    for _ in range(iterations):
        accepted = False
        for _ in range(_MAX_DAMPING_TRIES):
            try:
                delta = np.linalg.solve(hessian + damping * np.eye(6), gradient)
            except np.linalg.LinAlgError:
                damping *= growth
                growth *= 2.0
                continue
            candidate = _oplus(current, delta)
            new_chi2 = _chi2(candidate, edges)
            gain = float(delta @ (damping * delta + gradient))
            rho = (chi2 - new_chi2) / gain if gain > 0.0 else -1.0
            if math.isfinite(new_chi2) and rho > 0.0:
                current = candidate
                damping *= max(1.0 / 3.0, 1.0 - (2.0 * rho - 1.0) ** 3)
                growth = 2.0
                accepted = True
                break
            damping *= growth
            growth *= 2.0
        if not accepted:
            break
        hessian, gradient, chi2 = _linear_system(current, edges)
    return current