from __future__ import annotations

import numbers
from functools import reduce
from typing import Any, Iterator, Optional, Sequence, Tuple

from .errors import DimensionMismatch, UnsupportedValueKind


def is_scalar(x: Any) -> bool:
    """Return True for Python/NumPy numbers and 0-d arrays of any framework."""

    if isinstance(x, numbers.Number):
        return True
    shape = getattr(x, "shape", None)
    return shape is not None and len(shape) == 0


def _check_kind(x: Any, name: str) -> None:
    if is_scalar(x):
        return
    shape = getattr(x, "shape", None)
    if shape is None:
        raise UnsupportedValueKind(f"`{name}` is not defined for values of type {type(x).__name__}")
    if len(shape) != 1:
        raise UnsupportedValueKind(
            f"`{name}` is not defined for values of type {type(x).__name__} "
            f"with {len(shape)} dimensions; only scalars and 1-D arrays are supported"
        )


def size_of(x: Any) -> int:
    """Number of scalar components in a scalar or flat array."""

    return 1 if is_scalar(x) else int(x.shape[0])


def dtype_of(xp: Any, x: Any) -> Any:
    return xp.asarray(x).dtype


def flat(xp: Any, v: Any) -> Any:
    return xp.reshape(v, (-1,))


def shape_of(x: Any) -> Tuple[int, ...]:
    """Shape of a scalar (``()``) or array-like of any framework."""

    if isinstance(x, numbers.Number):
        return ()
    shape = getattr(x, "shape", None)
    if shape is None:
        raise UnsupportedValueKind(f"values of type {type(x).__name__} have no shape")
    return tuple(int(s) for s in shape)


def check_shapes(values: Sequence[Any], refs: Sequence[Any], what: str) -> None:
    """Raise `DimensionMismatch` unless each value has the shape of its reference.

    Tangents are matched against inputs and cotangents against outputs; a
    scalar never stands in for a vector.
    """

    for i, (v, ref) in enumerate(zip(values, refs)):
        got, expected = shape_of(v), shape_of(ref)
        if got != expected:
            raise DimensionMismatch(f"{what} {i} has shape {got}, expected {expected}")


def result_dtype(xp: Any, *values: Any) -> Any:
    """Common dtype of ``values`` under the namespace's promotion rules."""

    dtypes = [dtype_of(xp, v) for v in values]
    promote = getattr(xp, "promote_types", None)
    if promote is None:
        return xp.result_type(*dtypes)
    return reduce(promote, dtypes)


def zeros_like_value(xp: Any, x: Any) -> Any:
    return xp.zeros(shape_of(x), dtype=dtype_of(xp, x))


def zero_matrix_like(xp: Any, x: Any, ncols: Optional[int] = None) -> Any:
    """Return a zero block with one row per component of ``x``.

    ``ncols`` defaults to the size of ``x`` (a square block).
    """

    _check_kind(x, "zero_matrix_like")
    n = size_of(x)
    return xp.zeros((n, n if ncols is None else int(ncols)), dtype=dtype_of(xp, x))


def identity_matrix_like(xp: Any, *xs: Any) -> Tuple[Tuple[Any, ...], ...]:
    """Build the block rows of an identity over the concatenated inputs.

    Row ``i`` holds an identity block for ``xs[i]`` and, for every other input
    ``j``, a zero block of shape ``(size(xs[j]), size(xs[i]))``. Walking the
    columns of row ``i`` therefore perturbs input ``i`` along each basis
    direction while holding the other inputs fixed. Scalars are treated as
    1-element vectors here; `probe_tangents` turns their columns back into 0-d
    values.
    """

    for x in xs:
        _check_kind(x, "identity_matrix_like")
    rows = []
    for i, xi in enumerate(xs):
        ni = size_of(xi)
        row = []
        for j, xj in enumerate(xs):
            if j == i:
                row.append(xp.eye(ni, dtype=dtype_of(xp, xi)))
            else:
                row.append(zero_matrix_like(xp, xj, ni))
        rows.append(tuple(row))
    return tuple(rows)


def _column(xp: Any, block: Any, k: int, like: Any) -> Any:
    col = block[:, k]
    if is_scalar(like):
        return xp.reshape(col, ())
    return col


def probe_tangents(xp: Any, row: Sequence[Any], xs: Sequence[Any]) -> Iterator[Tuple[Any, ...]]:
    """Yield one tangent tuple per column of an identity block row."""

    ncols = int(row[0].shape[1])
    for k in range(ncols):
        yield tuple(_column(xp, block, k, x) for block, x in zip(row, xs))


def dot(xp: Any, w: Any, v: Any) -> Any:
    """Contract a cotangent ``w`` with an output value ``v`` of the same shape."""

    check_shapes((w,), (v,), "cotangent")
    return xp.sum(w * v)


__all__ = [
    "is_scalar",
    "size_of",
    "dtype_of",
    "shape_of",
    "check_shapes",
    "result_dtype",
    "zeros_like_value",
    "flat",
    "zero_matrix_like",
    "identity_matrix_like",
    "probe_tangents",
    "dot",
]
