"""Jacobians of vector-valued functions by forward-mode automatic differentiation.

Every parameter block is concatenated into one vector of length ``N``. Each
entry is replaced by a jet of dimension ``N`` whose infinitesimal part is the
matching column of the identity. The functor is then evaluated on these jets.
The scalar parts of its outputs are the function value. The infinitesimal
parts, split block by block, are the Jacobians.
"""

from __future__ import annotations

from collections.abc import Callable, Sequence
from numbers import Real

import numpy as np

from .jet import Jet

__all__ = ["EvaluationError", "make_perturbation", "differentiate"]

MAX_PARAMETER_BLOCKS = 10


class EvaluationError(RuntimeError):
    """The functor reported that it could not evaluate at the given point."""


def make_perturbation(values, offset: int, dimension: int) -> list[Jet]:
    """Turn ``values`` into jets seeded with an identity block starting at ``offset``.

    Entry ``j`` becomes ``values[j] + t_(offset + j)`` in a jet of ``dimension``
    infinitesimal components.
    """
    array = np.asarray(values, dtype=np.float64)
    if array.ndim != 1:
        raise ValueError("values must be one-dimensional")
    if offset < 0:
        raise ValueError("offset must not be negative")
    if offset + array.shape[0] > dimension:
        raise ValueError(
            f"{array.shape[0]} values at offset {offset} do not fit in dimension {dimension}"
        )
    return [
        Jet.variable(value, offset + j, dimension)
        for j, value in enumerate(array.tolist())
    ]


def _blocks(parameters) -> list[np.ndarray]:
    blocks = []
    for block in parameters:
        array = np.asarray(block, dtype=np.float64)
        if array.ndim != 1:
            raise ValueError("each parameter block must be one-dimensional")
        blocks.append(array)
    if len(blocks) > MAX_PARAMETER_BLOCKS:
        raise ValueError(
            f"at most {MAX_PARAMETER_BLOCKS} parameter blocks are supported, "
            f"got {len(blocks)}"
        )
    return blocks


def _wanted(want_jacobians, count: int) -> list[bool]:
    if want_jacobians is None:
        return [True] * count
    if isinstance(want_jacobians, bool):
        return [want_jacobians] * count
    wanted = [bool(w) for w in want_jacobians]
    if len(wanted) != count:
        raise ValueError(
            f"want_jacobians has {len(wanted)} entries for {count} parameter blocks"
        )
    return wanted


def _as_jet(value, dimension: int) -> Jet:
    if isinstance(value, Jet):
        if value.dimension != dimension:
            raise ValueError(
                f"output jet has dimension {value.dimension}, expected {dimension}"
            )
        return value
    if isinstance(value, bool) or not isinstance(value, (Real, np.integer, np.floating)):
        raise TypeError(f"functor output must be a number or a Jet, got {type(value).__name__}")
    return Jet.constant(float(value), dimension)


def differentiate(
    functor: Callable[..., Sequence | None],
    parameters: Sequence,
    num_outputs: int,
    want_jacobians=None,
) -> tuple[np.ndarray, list[np.ndarray | None]]:
    """Evaluate ``functor`` and its Jacobians with respect to each parameter block.

    ``functor`` is called with one list of jets per parameter block and must
    return ``num_outputs`` jets or numbers; returning ``None`` or ``False``
    means the evaluation failed, and :class:`EvaluationError` is raised.

    ``want_jacobians`` is ``None`` (all), a single bool, or one bool per block.
    Returns the function value and, per block, an ``(num_outputs, len(block))``
    Jacobian or ``None`` where it was not wanted.
    """
    if num_outputs < 0:
        raise ValueError("num_outputs must not be negative")
    blocks = _blocks(parameters)
    wanted = _wanted(want_jacobians, len(blocks))

    sizes = [block.shape[0] for block in blocks]
    dimension = sum(sizes)
    offsets = np.concatenate([[0], np.cumsum(sizes)]).astype(int).tolist()

    unpacked = [
        make_perturbation(block, offset, dimension)
        for block, offset in zip(blocks, offsets)
    ]

    result = functor(*unpacked)
    if result is None or result is False:
        raise EvaluationError("the functor failed to evaluate")
    outputs = [_as_jet(value, dimension) for value in result]
    if len(outputs) != num_outputs:
        raise ValueError(
            f"functor returned {len(outputs)} outputs, expected {num_outputs}"
        )

    values = np.array([jet.a for jet in outputs], dtype=np.float64)
    if outputs:
        derivatives = np.vstack([jet.v for jet in outputs])
    else:
        derivatives = np.zeros((0, dimension))

    jacobians: list[np.ndarray | None] = []
    for size, offset, want in zip(sizes, offsets, wanted):
        if want:
            jacobians.append(derivatives[:, offset : offset + size].copy())
        else:
            jacobians.append(None)
    return values, jacobians