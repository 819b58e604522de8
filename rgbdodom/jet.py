"""First-order dual numbers ("jets") for automatic differentiation.

A jet ``a + sum_i v[i] t_i`` has a scalar part ``a`` and an infinitesimal
part ``v`` whose products vanish (``t_i * t_j == 0``). If a function is
written against jets, its result carries both the value and the gradient.
"""

from __future__ import annotations

import math
import sys
from numbers import Real
from typing import Union

import numpy as np

_SCALAR_TYPES = (int, float, np.integer, np.floating)

Scalar = Union[int, float]


def _is_scalar(value: object) -> bool:
    return isinstance(value, _SCALAR_TYPES) and not isinstance(value, bool)


class Jet:
    """A scalar value together with its first-order perturbation vector."""

    __slots__ = ("a", "v")
    __hash__ = None  # equality compares the scalar part only

    def __init__(self, a: Scalar, v) -> None:
        self.a = float(a)
        vector = np.array(v, dtype=np.float64)
        if vector.ndim != 1:
            raise ValueError("the infinitesimal part must be one-dimensional")
        self.v = vector

    @classmethod
    def constant(cls, value: Scalar, dimension: int) -> "Jet":
        """Return ``value + 0``: a jet with a zero infinitesimal part."""
        if dimension < 0:
            raise ValueError("dimension must not be negative")
        return cls(value, np.zeros(dimension))

    @classmethod
    def variable(cls, value: Scalar, index: int, dimension: int) -> "Jet":
        """Return ``value + t_index``: the independent variable number ``index``."""
        if not 0 <= index < dimension:
            raise IndexError(
                f"variable index {index} out of range for dimension {dimension}"
            )
        v = np.zeros(dimension)
        v[index] = 1.0
        return cls(value, v)

    @property
    def dimension(self) -> int:
        """Number of infinitesimal components."""
        return self.v.shape[0]

    def _check_same_dimension(self, other: "Jet") -> None:
        if self.v.shape != other.v.shape:
            raise ValueError(
                f"jets of different dimension: {self.dimension} and {other.dimension}"
            )

    # Arithmetic

    def __pos__(self) -> "Jet":
        return self

    def __neg__(self) -> "Jet":
        return Jet(-self.a, -self.v)

    def __add__(self, other):
        if isinstance(other, Jet):
            self._check_same_dimension(other)
            return Jet(self.a + other.a, self.v + other.v)
        if _is_scalar(other):
            return Jet(self.a + float(other), self.v)
        return NotImplemented

    def __radd__(self, other):
        if _is_scalar(other):
            return Jet(self.a + float(other), self.v)
        return NotImplemented

    def __sub__(self, other):
        if isinstance(other, Jet):
            self._check_same_dimension(other)
            return Jet(self.a - other.a, self.v - other.v)
        if _is_scalar(other):
            return Jet(self.a - float(other), self.v)
        return NotImplemented

    def __rsub__(self, other):
        if _is_scalar(other):
            return Jet(float(other) - self.a, -self.v)
        return NotImplemented

    def __mul__(self, other):
        if isinstance(other, Jet):
            self._check_same_dimension(other)
            return Jet(self.a * other.a, self.a * other.v + self.v * other.a)
        if _is_scalar(other):
            s = float(other)
            return Jet(self.a * s, self.v * s)
        return NotImplemented

    def __rmul__(self, other):
        if _is_scalar(other):
            s = float(other)
            return Jet(self.a * s, self.v * s)
        return NotImplemented

    def __truediv__(self, other):
        if isinstance(other, Jet):
            self._check_same_dimension(other)
            # (a + u) / (b + v) = (a + u)(b - v) / b^2, since v*v = 0.
            inverse = 1.0 / other.a
            ratio = self.a * inverse
            return Jet(ratio, (self.v - ratio * other.v) * inverse)
        if _is_scalar(other):
            inverse = 1.0 / float(other)
            return Jet(self.a * inverse, self.v * inverse)
        return NotImplemented

    def __rtruediv__(self, other):
        if _is_scalar(other):
            s = float(other)
            scale = -s / (self.a * self.a)
            return Jet(s / self.a, self.v * scale)
        return NotImplemented

    # Comparisons look at the scalar part only.

    def _scalar_of(self, other):
        if isinstance(other, Jet):
            return other.a
        if _is_scalar(other):
            return float(other)
        return None

    def __lt__(self, other):
        value = self._scalar_of(other)
        return NotImplemented if value is None else self.a < value

    def __le__(self, other):
        value = self._scalar_of(other)
        return NotImplemented if value is None else self.a <= value

    def __gt__(self, other):
        value = self._scalar_of(other)
        return NotImplemented if value is None else self.a > value

    def __ge__(self, other):
        value = self._scalar_of(other)
        return NotImplemented if value is None else self.a >= value

    def __eq__(self, other):
        value = self._scalar_of(other)
        return NotImplemented if value is None else self.a == value

    def __ne__(self, other):
        value = self._scalar_of(other)
        return NotImplemented if value is None else self.a != value

    def __str__(self) -> str:
        parts = " ".join(f"{x:g}" for x in self.v)
        return f"[{self.a:g} ; {parts}]"

    def __repr__(self) -> str:
        return f"Jet({self.a!r}, {self.v.tolist()!r})"


def _float_is_normal(x: float) -> bool:
    return math.isfinite(x) and abs(x) >= sys.float_info.min


def _parts(x):
    if isinstance(x, Jet):
        return [x.a, *x.v.tolist()]
    if isinstance(x, Real) or _is_scalar(x):
        return [float(x)]
    raise TypeError(f"expected a number or a Jet, got {type(x).__name__}")


def is_finite(x) -> bool:
    """True when every part of ``x`` is finite."""
    return all(math.isfinite(p) for p in _parts(x))


def is_infinite(x) -> bool:
    """True when any part of ``x`` is infinite."""
    return any(math.isinf(p) for p in _parts(x))


def is_nan(x) -> bool:
    """True when any part of ``x`` is NaN."""
    return any(math.isnan(p) for p in _parts(x))


def is_normal(x) -> bool:
    """True when every part of ``x`` is a normal floating-point number."""
    return all(_float_is_normal(p) for p in _parts(x))