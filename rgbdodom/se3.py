"""Rotations (SO3) and rigid-body transforms (SE3) with exp/log maps.

Tangent vectors of SE3 are ordered translation first: ``(upsilon, omega)``.
"""

from __future__ import annotations

import math

import numpy as np

__all__ = ["SO3", "SE3"]

_SMALL_ANGLE = 1e-10
_ORTHO_TOLERANCE = 1e-5


def _hat(w: np.ndarray) -> np.ndarray:
    return np.array(
        [
            [0.0, -w[2], w[1]],
            [w[2], 0.0, -w[0]],
            [-w[1], w[0], 0.0],
        ]
    )


def _vee(m: np.ndarray) -> np.ndarray:
    return np.array([m[2, 1], m[0, 2], m[1, 0]])


def _diagonal_sum(m: np.ndarray) -> float:
    return float(m[0, 0] + m[1, 1] + m[2, 2])


def _vector(values, size: int, name: str) -> np.ndarray:
    vector = np.asarray(values, dtype=np.float64)
    if vector.shape != (size,):
        raise ValueError(f"{name} must have shape ({size},), got {vector.shape}")
    return vector


def _transform_points(matrix: np.ndarray, offset, points) -> np.ndarray:
    array = np.asarray(points, dtype=np.float64)
    if array.shape[-1:] != (3,):
        raise ValueError(f"points must have a trailing dimension of 3, got {array.shape}")
    result = array @ matrix.T
    return result if offset is None else result + offset


class SO3:
    """A rotation in three dimensions, held as an orthonormal matrix."""

    __slots__ = ("_matrix",)

    def __init__(self, matrix) -> None:
        m = np.asarray(matrix, dtype=np.float64)
        if m.shape != (3, 3):
            raise ValueError(f"a rotation matrix must be 3x3, got {m.shape}")
        if not np.all(np.isfinite(m)):
            raise ValueError("rotation matrix has non-finite entries")
        if (
            not np.allclose(m @ m.T, np.eye(3), atol=_ORTHO_TOLERANCE)
            or np.linalg.det(m) <= 0.0
        ):
            raise ValueError("matrix is not a proper rotation")
        u, _, vt = np.linalg.svd(m)
        self._matrix = u @ vt

    @classmethod
    def _raw(cls, matrix: np.ndarray) -> "SO3":
        obj = cls.__new__(cls)
        obj._matrix = matrix
        return obj

    @classmethod
    def exp(cls, omega) -> "SO3":
        """Rotation of angle ``|omega|`` about the axis ``omega``."""
        w = _vector(omega, 3, "omega")
        theta = float(np.linalg.norm(w))
        w_hat = _hat(w)
        if theta < _SMALL_ANGLE:
            return cls._raw(np.eye(3) + w_hat)
        a = math.sin(theta) / theta
        b = (1.0 - math.cos(theta)) / (theta * theta)
        return cls._raw(np.eye(3) + a * w_hat + b * (w_hat @ w_hat))

    def log(self) -> np.ndarray:
        """Rotation vector (axis times angle) of this rotation."""
        r = self._matrix
        cos_theta = min(1.0, max(-1.0, (_diagonal_sum(r) - 1.0) / 2.0))
        theta = math.acos(cos_theta)
        skew = _vee(r - r.T)  # equals 2 sin(theta) * axis
        if theta < _SMALL_ANGLE:
            return 0.5 * skew
        if math.pi - theta < 1e-2:
            # sin(theta) is tiny: take the axis from the symmetric part.
            aat = ((r + r.T) / 2.0 - cos_theta * np.eye(3)) / (1.0 - cos_theta)
            k = int(np.argmax(np.diag(aat)))
            axis = aat[:, k] / math.sqrt(aat[k, k])
            axis /= np.linalg.norm(axis)
            if axis @ skew < 0.0:
                axis = -axis
            return theta * axis
        return theta / (2.0 * math.sin(theta)) * skew

    def inverse(self) -> "SO3":
        """The opposite rotation."""
        return SO3._raw(self._matrix.T.copy())

    def __mul__(self, other):
        if isinstance(other, SO3):
            return SO3._raw(self._matrix @ other._matrix)
        if isinstance(other, SE3):
            return NotImplemented
        return _transform_points(self._matrix, None, other)

    @property
    def matrix(self) -> np.ndarray:
        """The 3x3 rotation matrix."""
        return self._matrix.copy()

    @property
    def quaternion(self) -> np.ndarray:
        """Unit quaternion as ``(x, y, z, w)``."""
        m = self._matrix
        q = np.zeros(4)
        diag_sum = _diagonal_sum(m)
        if diag_sum > 0.0:
            t = math.sqrt(diag_sum + 1.0)
            q[3] = 0.5 * t
            t = 0.5 / t
            q[0] = (m[2, 1] - m[1, 2]) * t
            q[1] = (m[0, 2] - m[2, 0]) * t
            q[2] = (m[1, 0] - m[0, 1]) * t
        else:
            i = 0
            if m[1, 1] > m[0, 0]:
                i = 1
            if m[2, 2] > m[i, i]:
                i = 2
            j = (i + 1) % 3
            k = (j + 1) % 3
            t = math.sqrt(m[i, i] - m[j, j] - m[k, k] + 1.0)
            q[i] = 0.5 * t
            t = 0.5 / t
            q[3] = (m[k, j] - m[j, k]) * t
            q[j] = (m[j, i] + m[i, j]) * t
            q[k] = (m[k, i] + m[i, k]) * t
        return q

    def __repr__(self) -> str:
        return f"SO3({self._matrix.tolist()!r})"


class SE3:
    """A rigid-body transform ``p -> R p + t``."""

    __slots__ = ("_rotation", "_translation")

    def __init__(self, rotation=None, translation=None) -> None:
        if rotation is None:
            self._rotation = SO3._raw(np.eye(3))
        elif isinstance(rotation, SO3):
            self._rotation = rotation
        else:
            self._rotation = SO3(rotation)
        if translation is None:
            self._translation = np.zeros(3)
        else:
            self._translation = _vector(translation, 3, "translation").copy()

    @classmethod
    def identity(cls) -> "SE3":
        """The transform that changes nothing."""
        return cls()

    @classmethod
    def exp(cls, xi) -> "SE3":
        """Transform for the tangent vector ``(upsilon, omega)``."""
        vector = _vector(xi, 6, "xi")
        upsilon, omega = vector[:3], vector[3:]
        rotation = SO3.exp(omega)
        theta = float(np.linalg.norm(omega))
        w_hat = _hat(omega)
        w_hat2 = w_hat @ w_hat
        if theta < _SMALL_ANGLE:
            v = np.eye(3) + 0.5 * w_hat + w_hat2 / 6.0
        else:
            v = (
                np.eye(3)
                + (1.0 - math.cos(theta)) / theta**2 * w_hat
                + (theta - math.sin(theta)) / theta**3 * w_hat2
            )
        return cls(rotation, v @ upsilon)

    def log(self) -> np.ndarray:
        """Tangent vector ``(upsilon, omega)`` of this transform."""
        omega = self._rotation.log()
        theta = float(np.linalg.norm(omega))
        w_hat = _hat(omega)
        w_hat2 = w_hat @ w_hat
        if theta < _SMALL_ANGLE:
            v_inv = np.eye(3) - 0.5 * w_hat + w_hat2 / 12.0
        else:
            half = theta / 2.0
            coefficient = (1.0 - half * math.cos(half) / math.sin(half)) / theta**2
            v_inv = np.eye(3) - 0.5 * w_hat + coefficient * w_hat2
        return np.concatenate([v_inv @ self._translation, omega])

    def inverse(self) -> "SE3":
        """The transform that undoes this one."""
        r_inv = self._rotation.inverse()
        return SE3(r_inv, -(r_inv.matrix @ self._translation))

    def __mul__(self, other):
        if isinstance(other, SE3):
            rotation = self._rotation * other._rotation
            translation = self._rotation.matrix @ other._translation + self._translation
            return SE3(rotation, translation)
        if isinstance(other, SO3):
            return NotImplemented
        return _transform_points(self._rotation.matrix, self._translation, other)

    @property
    def rotation(self) -> SO3:
        """The rotational part."""
        return self._rotation

    @property
    def translation(self) -> np.ndarray:
        """The translational part."""
        return self._translation.copy()

    def rotation_matrix(self) -> np.ndarray:
        """The 3x3 rotation matrix."""
        return self._rotation.matrix

    def matrix(self) -> np.ndarray:
        """The 4x4 homogeneous matrix."""
        m = np.eye(4)
        m[:3, :3] = self._rotation.matrix
        m[:3, 3] = self._translation
        return m

    def __repr__(self) -> str:
        return (
            f"SE3({self._rotation.matrix.tolist()!r}, "
            f"{self._translation.tolist()!r})"
        )