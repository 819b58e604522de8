"""Elementary functions that accept both plain numbers and jets.

Every function follows the chain rule ``f(a + h) ~= f(a) + f'(a) h``.
Given a plain number, it returns a plain float. Domain errors give NaN
or infinity, as the C maths library does, and raise nothing.
"""

from __future__ import annotations

import math
from numbers import Real

import numpy as np

from .jet import Jet

__all__ = [
    "fabs",
    "log",
    "exp",
    "sqrt",
    "cos",
    "acos",
    "sin",
    "asin",
    "tan",
    "atan",
    "sinh",
    "cosh",
    "tanh",
    "atan2",
    "pow",
]


def _scalar(x) -> np.float64:
    if isinstance(x, bool) or not isinstance(x, (Real, np.integer, np.floating)):
        raise TypeError(f"expected a number or a Jet, got {type(x).__name__}")
    return np.float64(x)


def _quiet(fn, *args) -> float:
    with np.errstate(all="ignore"):
        return float(fn(*(np.float64(a) for a in args)))


def _unary(x, value_fn, slope_fn):
    """Apply ``value_fn`` to ``x``; for a jet, scale ``v`` by ``slope_fn(a, value)``."""
    if not isinstance(x, Jet):
        return _quiet(value_fn, _scalar(x))
    a = np.float64(x.a)
    with np.errstate(all="ignore"):
        value = value_fn(a)
        slope = slope_fn(a, value)
        return Jet(value, x.v * slope)


def fabs(x):
    """Absolute value; a jet with a negative scalar part is negated whole."""
    if isinstance(x, Jet):
        return -x if x.a < 0.0 else x
    return abs(float(_scalar(x)))


def log(x):
    """Natural logarithm."""
    return _unary(x, np.log, lambda a, _: 1.0 / a)


def exp(x):
    """Exponential."""
    return _unary(x, np.exp, lambda _, value: value)


def sqrt(x):
    """Square root."""
    return _unary(x, np.sqrt, lambda _, value: 1.0 / (2.0 * value))


def cos(x):
    """Cosine."""
    return _unary(x, np.cos, lambda a, _: -np.sin(a))


def acos(x):
    """Arc cosine."""
    return _unary(x, np.arccos, lambda a, _: -1.0 / np.sqrt(1.0 - a * a))


def sin(x):
    """Sine."""
    return _unary(x, np.sin, lambda a, _: np.cos(a))


def asin(x):
    """Arc sine."""
    return _unary(x, np.arcsin, lambda a, _: 1.0 / np.sqrt(1.0 - a * a))


def tan(x):
    """Tangent."""
    return _unary(x, np.tan, lambda _, value: 1.0 + value * value)


def atan(x):
    """Arc tangent."""
    return _unary(x, np.arctan, lambda a, _: 1.0 / (1.0 + a * a))


def sinh(x):
    """Hyperbolic sine."""
    return _unary(x, np.sinh, lambda a, _: np.cosh(a))


def cosh(x):
    """Hyperbolic cosine."""
    return _unary(x, np.cosh, lambda a, _: np.sinh(a))


def tanh(x):
    """Hyperbolic tangent."""
    return _unary(x, np.tanh, lambda _, value: 1.0 - value * value)


def _pair(f, g) -> tuple[Jet, Jet]:
    """Promote a jet/number pair to two jets of the same dimension."""
    if isinstance(f, Jet) and isinstance(g, Jet):
        if f.v.shape != g.v.shape:
            raise ValueError(
                f"jets of different dimension: {f.dimension} and {g.dimension}"
            )
        return f, g
    if isinstance(f, Jet):
        return f, Jet.constant(_scalar(g), f.dimension)
    return Jet.constant(_scalar(f), g.dimension), g


def atan2(y, x):
    """Angle of the point ``(x, y)``, with the rate of change ``(-y dx + x dy) / r^2``."""
    if not isinstance(y, Jet) and not isinstance(x, Jet):
        return _quiet(np.arctan2, _scalar(y), _scalar(x))
    g, f = _pair(y, x)
    with np.errstate(all="ignore"):
        a = np.float64(f.a)
        b = np.float64(g.a)
        scale = 1.0 / (a * a + b * b)
        return Jet(np.arctan2(b, a), scale * (-b * f.v + a * g.v))


def pow(f, g):  # noqa: A001 - mirrors the maths-library name
    """``f`` raised to ``g``; either or both may be jets."""
    f_jet = isinstance(f, Jet)
    g_jet = isinstance(g, Jet)
    if not f_jet and not g_jet:
        return _quiet(np.power, _scalar(f), _scalar(g))
    with np.errstate(all="ignore"):
        if f_jet and not g_jet:
            # (a + da)^p ~= a^p + p a^(p-1) da
            a = np.float64(f.a)
            p = _scalar(g)
            return Jet(np.power(a, p), (p * np.power(a, p - 1.0)) * f.v)
        if g_jet and not f_jet:
            # a^(p + dp) ~= a^p + a^p log(a) dp
            base = _scalar(f)
            value = np.power(base, np.float64(g.a))
            return Jet(value, (np.log(base) * value) * g.v)
        if f.v.shape != g.v.shape:
            raise ValueError(
                f"jets of different dimension: {f.dimension} and {g.dimension}"
            )
        a = np.float64(f.a)
        b = np.float64(g.a)
        value = np.power(a, b)
        d_base = b * np.power(a, b - 1.0)
        d_exponent = value * np.log(a)
        return Jet(value, d_base * f.v + d_exponent * g.v)