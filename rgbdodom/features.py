"""Oriented FAST keypoints with rotated binary descriptors, and their matching.

Keypoints are found on an image pyramid with the FAST segment test and are
ranked by their Harris response. Each keypoint gets an orientation from the
intensity centroid of its patch. Its descriptor is 256 binary intensity
comparisons, rotated to that orientation and packed into 32 bytes.
"""

from __future__ import annotations

import math
from dataclasses import dataclass

import numpy as np

__all__ = [
    "KeyPoint",
    "Match",
    "OrbExtractor",
    "hamming_distance",
    "match_descriptors",
]

DESCRIPTOR_BYTES = 32
_PATCH_SIZE = 31
_HALF_PATCH = 15
_EDGE = 19
_FAST_THRESHOLD = 20.0
_HARRIS_K = 0.04
_HARRIS_RADIUS = 3
_SMOOTH_RADIUS = 2

# Bresenham circle of radius 3 used by the FAST segment test, as (dx, dy).
_CIRCLE = (
    (0, -3), (1, -3), (2, -2), (3, -1), (3, 0), (3, 1), (2, 2), (1, 3),
    (0, 3), (-1, 3), (-2, 2), (-3, 1), (-3, 0), (-3, -1), (-2, -2), (-1, -3),
)
_ARC_LENGTH = 9

_POPCOUNT = np.unpackbits(np.arange(256, dtype=np.uint8)[:, None], axis=1).sum(axis=1)


def _make_pattern() -> np.ndarray:
    """Fixed sampling pattern: 256 pairs of points, shape (256, 2, 2) as (pair, point, xy)."""
    rng = np.random.default_rng(20160331)
    points = np.rint(rng.normal(0.0, _PATCH_SIZE / 5.0, size=(256, 2, 2)))
    return np.clip(points, -13, 13)


_PATTERN = _make_pattern()


def _make_disc() -> tuple[np.ndarray, np.ndarray]:
    dy, dx = np.mgrid[-_HALF_PATCH : _HALF_PATCH + 1, -_HALF_PATCH : _HALF_PATCH + 1]
    inside = dx * dx + dy * dy <= _HALF_PATCH * _HALF_PATCH
    return dx[inside], dy[inside]


_DISC_DX, _DISC_DY = _make_disc()


@dataclass(frozen=True)
class KeyPoint:
    """An image feature; ``pt`` is in full-resolution pixel coordinates."""

    pt: tuple[float, float]
    size: float = float(_PATCH_SIZE)
    angle: float = -1.0
    response: float = 0.0
    octave: int = 0


@dataclass(frozen=True)
class Match:
    """The best train descriptor for one query descriptor."""

    query_idx: int
    train_idx: int
    distance: float


def _gray(image) -> np.ndarray:
    array = np.asarray(image)
    if array.ndim == 3 and array.shape[2] >= 3:
        return array[..., :3].astype(np.float64) @ np.array([0.299, 0.587, 0.114])
    if array.ndim == 3 and array.shape[2] == 1:
        return array[..., 0].astype(np.float64)
    if array.ndim == 2:
        return array.astype(np.float64)
    raise ValueError(f"expected a grey or colour image, got shape {array.shape}")


def _resize(image: np.ndarray, scale: float) -> np.ndarray:
    """Bilinear shrink of ``image`` by ``scale``."""
    h, w = image.shape
    nh, nw = max(1, int(round(h / scale))), max(1, int(round(w / scale)))

    def axis(n_out: int, n_in: int):
        coords = np.clip((np.arange(n_out) + 0.5) * scale - 0.5, 0.0, n_in - 1)
        lo = np.floor(coords).astype(int)
        hi = np.minimum(lo + 1, n_in - 1)
        return lo, hi, coords - lo

    y0, y1, wy = axis(nh, h)
    x0, x1, wx = axis(nw, w)
    wy = wy[:, None]
    wx = wx[None, :]
    top = image[y0][:, x0] * (1.0 - wx) + image[y0][:, x1] * wx
    bottom = image[y1][:, x0] * (1.0 - wx) + image[y1][:, x1] * wx
    return top * (1.0 - wy) + bottom * wy


def _box_mean(image: np.ndarray, radius: int) -> np.ndarray:
    """Mean over a (2r+1)-square window, edges replicated."""
    k = 2 * radius + 1
    padded = np.pad(image, ((radius + 1, radius), (radius + 1, radius)), mode="edge")
    c = padded.cumsum(axis=0).cumsum(axis=1)
    total = c[k:, k:] - c[:-k, k:] - c[k:, :-k] + c[:-k, :-k]
    return total / (k * k)


def _fast_mask(image: np.ndarray) -> np.ndarray:
    """Pixels that pass the FAST-9 segment test, away from the border."""
    h, w = image.shape
    m = _EDGE
    mask = np.zeros((h, w), dtype=bool)
    if h <= 2 * m or w <= 2 * m:
        return mask
    center = image[m : h - m, m : w - m]
    ring = np.stack(
        [image[m + dy : h - m + dy, m + dx : w - m + dx] for dx, dy in _CIRCLE]
    )
    brighter = ring > center + _FAST_THRESHOLD
    darker = ring < center - _FAST_THRESHOLD
    brighter = np.concatenate([brighter, brighter[: _ARC_LENGTH - 1]])
    darker = np.concatenate([darker, darker[: _ARC_LENGTH - 1]])
    corner = np.zeros(center.shape, dtype=bool)
    for start in range(len(_CIRCLE)):
        window = slice(start, start + _ARC_LENGTH)
        corner |= brighter[window].all(axis=0) | darker[window].all(axis=0)
    mask[m : h - m, m : w - m] = corner
    return mask


def _harris(image: np.ndarray) -> np.ndarray:
    gy, gx = np.gradient(image)
    sxx = _box_mean(gx * gx, _HARRIS_RADIUS)
    syy = _box_mean(gy * gy, _HARRIS_RADIUS)
    sxy = _box_mean(gx * gy, _HARRIS_RADIUS)
    trace = sxx + syy
    return sxx * syy - sxy * sxy - _HARRIS_K * trace * trace


def _neighbour_max(score: np.ndarray) -> np.ndarray:
    padded = np.pad(score, 1, constant_values=-np.inf)
    h, w = score.shape
    shifts = [
        padded[1 + dy : 1 + dy + h, 1 + dx : 1 + dx + w]
        for dy in (-1, 0, 1)
        for dx in (-1, 0, 1)
        if dx or dy
    ]
    return np.max(np.stack(shifts), axis=0)


def _orientation(image: np.ndarray, xs: np.ndarray, ys: np.ndarray) -> np.ndarray:
    """Angle in degrees, in [0, 360), of the intensity centroid around each point."""
    patches = image[ys[:, None] + _DISC_DY[None, :], xs[:, None] + _DISC_DX[None, :]]
    m10 = patches @ _DISC_DX.astype(np.float64)
    m01 = patches @ _DISC_DY.astype(np.float64)
    angles = np.mod(np.degrees(np.arctan2(m01, m10)), 360.0)
    return np.where(angles >= 360.0, 0.0, angles)


@dataclass
class OrbExtractor:
    """Detects oriented FAST keypoints and computes their binary descriptors."""

    num_features: int = 500
    scale_factor: float = 1.2
    level_pyramid: int = 8

    def __post_init__(self) -> None:
        if self.num_features < 1:
            raise ValueError("num_features must be at least 1")
        if self.scale_factor <= 1.0:
            raise ValueError("scale_factor must be greater than 1")
        if self.level_pyramid < 1:
            raise ValueError("level_pyramid must be at least 1")

    def _pyramid(self, gray: np.ndarray) -> list[tuple[np.ndarray, float]]:
        layers = [(gray, 1.0)]
        for level in range(1, self.level_pyramid):
            scale = self.scale_factor**level
            layer = _resize(gray, scale)
            if min(layer.shape) <= 2 * _EDGE:
                break
            layers.append((layer, scale))
        return layers

    def _quotas(self) -> list[int]:
        levels = self.level_pyramid
        if levels == 1:
            return [self.num_features]
        factor = 1.0 / self.scale_factor
        first = self.num_features * (1.0 - factor) / (1.0 - factor**levels)
        quotas = [int(round(first * factor**level)) for level in range(levels - 1)]
        quotas.append(max(self.num_features - sum(quotas), 0))
        return quotas

    def detect(self, image) -> list[KeyPoint]:
        """Keypoints of ``image``, strongest first, at most ``num_features``."""
        keypoints: list[KeyPoint] = []
        for level, ((layer, scale), quota) in enumerate(
            zip(self._pyramid(_gray(image)), self._quotas())
        ):
            keypoints.extend(_detect_level(layer, level, scale, quota))
        keypoints.sort(key=lambda kp: kp.response, reverse=True)
        return keypoints[: self.num_features]

    def compute(self, image, keypoints) -> tuple[list[KeyPoint], np.ndarray]:
        """Descriptors for ``keypoints``.

        Keypoints whose rotated sampling pattern leaves the image are dropped;
        the kept keypoints come back with an ``(n, 32)`` array of ``uint8``.
        """
        keypoints = list(keypoints)
        if not keypoints:
            return [], np.zeros((0, DESCRIPTOR_BYTES), dtype=np.uint8)
        layers = self._pyramid(_gray(image))
        smoothed = [_box_mean(layer, _SMOOTH_RADIUS) for layer, _ in layers]
        kept: list[KeyPoint] = []
        rows: list[np.ndarray] = []
        for kp in keypoints:
            if not 0 <= kp.octave < len(layers):
                raise ValueError(f"keypoint octave {kp.octave} is not in the pyramid")
            scale = layers[kp.octave][1]
            layer = smoothed[kp.octave]
            h, w = layer.shape
            x = int(round(kp.pt[0] / scale))
            y = int(round(kp.pt[1] / scale))
            theta = math.radians(kp.angle) if kp.angle >= 0 else 0.0
            c, s = math.cos(theta), math.sin(theta)
            px = np.rint(c * _PATTERN[..., 0] - s * _PATTERN[..., 1]).astype(int) + x
            py = np.rint(s * _PATTERN[..., 0] + c * _PATTERN[..., 1]).astype(int) + y
            if px.min() < 0 or py.min() < 0 or px.max() >= w or py.max() >= h:
                continue
            values = layer[py, px]
            rows.append(np.packbits(values[:, 0] < values[:, 1]))
            kept.append(kp)
        if not rows:
            return [], np.zeros((0, DESCRIPTOR_BYTES), dtype=np.uint8)
        return kept, np.vstack(rows).astype(np.uint8)


def _detect_level(layer: np.ndarray, level: int, scale: float, quota: int) -> list[KeyPoint]:
    if quota <= 0:
        return []
    mask = _fast_mask(layer)
    if not mask.any():
        return []
    score = np.where(mask, _harris(layer), -np.inf)
    peaks = mask & (score >= _neighbour_max(score))
    ys, xs = np.nonzero(peaks)
    order = np.argsort(-score[ys, xs], kind="stable")[:quota]
    xs, ys = xs[order], ys[order]
    angles = _orientation(layer, xs, ys)
    return [
        KeyPoint(
            pt=(float(x * scale), float(y * scale)),
            size=_PATCH_SIZE * scale,
            angle=float(angle),
            response=float(score[y, x]),
            octave=level,
        )
        for x, y, angle in zip(xs.tolist(), ys.tolist(), angles.tolist())
    ]


def hamming_distance(a, b) -> int:
    """Number of differing bits between two byte descriptors."""
    first = np.asarray(a, dtype=np.uint8)
    second = np.asarray(b, dtype=np.uint8)
    if first.shape != second.shape:
        raise ValueError(f"descriptor shapes differ: {first.shape} and {second.shape}")
    return int(_POPCOUNT[np.bitwise_xor(first, second)].sum())


def match_descriptors(query, train) -> list[Match]:
    """For every query descriptor, the train descriptor nearest in Hamming distance."""
    q = np.asarray(query, dtype=np.uint8)
    t = np.asarray(train, dtype=np.uint8)
    if q.size == 0 or t.size == 0:
        return []
    if q.ndim != 2 or t.ndim != 2:
        raise ValueError("descriptors must be two-dimensional arrays")
    if q.shape[1] != t.shape[1]:
        raise ValueError(
            f"descriptor lengths differ: {q.shape[1]} and {t.shape[1]}"
        )
    matches = []
    for query_idx, row in enumerate(q):
        distances = _POPCOUNT[np.bitwise_xor(row[None, :], t)].sum(axis=1)
        best = int(np.argmin(distances))
        matches.append(Match(query_idx, best, float(distances[best])))
    return matches