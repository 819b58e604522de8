import math

import numpy as np
import pytest

from rgbdodom import jetmath
from rgbdodom.jet import Jet

PAIRS = [
    (jetmath.log, math.log),
    (jetmath.exp, math.exp),
    (jetmath.sqrt, math.sqrt),
    (jetmath.cos, math.cos),
    (jetmath.acos, math.acos),
    (jetmath.sin, math.sin),
    (jetmath.asin, math.asin),
    (jetmath.tan, math.tan),
    (jetmath.atan, math.atan),
    (jetmath.sinh, math.sinh),
    (jetmath.cosh, math.cosh),
    (jetmath.tanh, math.tanh),
]


def _central_difference(fn, x, h=1e-6):
    return (fn(x + h) - fn(x - h)) / (2.0 * h)


@pytest.mark.parametrize("fn, reference", PAIRS)
def test_unary_jet_matches_value_and_derivative(fn, reference):
    x = 0.3
    result = fn(Jet.variable(x, 0, 1))
    assert result.a == pytest.approx(reference(x))
    assert result.v[0] == pytest.approx(_central_difference(reference, x), rel=1e-6)


@pytest.mark.parametrize("fn, reference", PAIRS)
def test_unary_on_float_agrees_with_math(fn, reference):
    assert jetmath.sin(0.3) == pytest.approx(math.sin(0.3))
    assert fn(0.3) == pytest.approx(reference(0.3))


def test_derivative_only_in_own_component():
    result = jetmath.sin(Jet.variable(0.7, 1, 3))
    assert result.v[0] == 0.0
    assert result.v[2] == 0.0
    assert result.v[1] == pytest.approx(math.cos(0.7))


def test_fabs_negates_negative_jet():
    result = jetmath.fabs(Jet(-2.0, [1.0, -3.0]))
    assert result.a == 2.0
    assert result.v.tolist() == [-1.0, 3.0]


def test_fabs_keeps_positive_jet_and_floats():
    jet = Jet(2.0, [1.0, -3.0])
    assert jetmath.fabs(jet).v.tolist() == [1.0, -3.0]
    assert jetmath.fabs(-4.5) == 4.5


def test_atan2_gradient_matches_finite_difference():
    y, x = 0.4, -1.2
    result = jetmath.atan2(Jet.variable(y, 0, 2), Jet.variable(x, 1, 2))
    assert result.a == pytest.approx(math.atan2(y, x))
    dy = _central_difference(lambda t: math.atan2(t, x), y)
    dx = _central_difference(lambda t: math.atan2(y, t), x)
    assert result.v[0] == pytest.approx(dy, rel=1e-6)
    assert result.v[1] == pytest.approx(dx, rel=1e-6)


def test_atan2_mixed_scalar_and_jet():
    result = jetmath.atan2(0.5, Jet.variable(2.0, 0, 1))
    assert result.a == pytest.approx(math.atan2(0.5, 2.0))
    expected = _central_difference(lambda t: math.atan2(0.5, t), 2.0)
    assert result.v[0] == pytest.approx(expected, rel=1e-6)


def test_pow_jet_base_constant_exponent():
    result = jetmath.pow(Jet.variable(1.7, 0, 1), 2.5)
    assert result.a == pytest.approx(1.7**2.5)
    expected = _central_difference(lambda t: t**2.5, 1.7)
    assert result.v[0] == pytest.approx(expected, rel=1e-6)


def test_pow_constant_base_jet_exponent():
    result = jetmath.pow(3.0, Jet.variable(0.8, 0, 1))
    assert result.a == pytest.approx(3.0**0.8)
    expected = _central_difference(lambda t: 3.0**t, 0.8)
    assert result.v[0] == pytest.approx(expected, rel=1e-6)


def test_pow_both_jets_agrees_with_partial_forms():
    base = Jet.variable(1.3, 0, 2)
    exponent = Jet.variable(0.6, 1, 2)
    both = jetmath.pow(base, exponent)
    only_base = jetmath.pow(base, 0.6)
    only_exponent = jetmath.pow(1.3, exponent)
    assert both.a == pytest.approx(only_base.a)
    assert np.allclose(both.v, only_base.v + only_exponent.v)


def test_pow_dimension_mismatch():
    with pytest.raises(ValueError):
        jetmath.pow(Jet.variable(1.0, 0, 2), Jet.variable(1.0, 0, 3))


def test_atan2_dimension_mismatch():
    with pytest.raises(ValueError):
        jetmath.atan2(Jet.variable(1.0, 0, 2), Jet.variable(1.0, 0, 1))


def test_domain_errors_follow_c_semantics():
    assert jetmath.log(0.0) == -math.inf
    assert math.isnan(jetmath.sqrt(-1.0))
    assert math.isnan(jetmath.pow(-2.0, 0.5))


def test_rejects_non_numbers():
    with pytest.raises(TypeError):
        jetmath.sin("x")