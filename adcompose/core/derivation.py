from __future__ import annotations

"""Generic rules turning one native primitive into the others.

Every backend supplies a single primitive (a full Jacobian, a pushforward or a
pullback). The functions here build the remaining ones from it, for any number
of inputs and outputs, by probing with identity/zero block matrices.
"""

import logging
from typing import Any, List, Sequence, Tuple

from .errors import DimensionMismatch
from .matrices import (
    check_shapes,
    dot,
    dtype_of,
    flat,
    identity_matrix_like,
    is_scalar,
    probe_tangents,
    result_dtype,
    size_of,
    zeros_like_value,
)
from .types import DifferentiableFunction, JacobianResult, PullbackFunction, PushforwardFunction

logger = logging.getLogger(__name__)


def _stack(xp: Any, parts: Sequence[Any], axis: int) -> Any:
    # parts are per-probe results; a tuple means one entry per output
    first = parts[0]
    if isinstance(first, tuple):
        return tuple(xp.stack([flat(xp, p[o]) for p in parts], axis) for o in range(len(first)))
    return xp.stack([flat(xp, p) for p in parts], axis)


def _empty_columns(xp: Any, out: Any) -> Any:
    # (size(out), 0) block per output, for an input with no components
    if isinstance(out, tuple):
        return tuple(_empty_columns(xp, o) for o in out)
    return xp.zeros((size_of(out), 0), dtype=dtype_of(xp, out))


def as_tuple(values: Any, n: int, what: str) -> Tuple[Any, ...]:
    """Normalize a single value or a tuple of values to an ``n``-tuple.

    A bare value is accepted only when ``n == 1``.
    """

    if not isinstance(values, tuple):
        values = (values,)
    if len(values) != n:
        raise DimensionMismatch(f"expected {n} {what}, got {len(values)}")
    return values


def jacobian_from_pushforward(
    xp: Any, pushforward: PushforwardFunction, xs: Sequence[Any]
) -> JacobianResult:
    """Assemble the Jacobian column by column from a pushforward.

    For input ``i`` the pushforward is evaluated once per basis direction of
    ``xs[i]``, with every other input's tangent held at zero. The resulting
    output tangents become the columns of input ``i``'s block. An input with
    no components costs one all-zero probe to learn the output sizes.
    """

    rows = identity_matrix_like(xp, *xs)
    blocks: List[Any] = []
    for i, row in enumerate(rows):
        columns = [pushforward(tangents) for tangents in probe_tangents(xp, row, xs)]
        logger.debug("pushforward probes for input %d: %d", i, len(columns))
        if columns:
            blocks.append(_stack(xp, columns, 1))
        else:
            zeros = tuple(zeros_like_value(xp, x) for x in xs)
            blocks.append(_empty_columns(xp, pushforward(zeros)))
    return tuple(blocks)


def jacobian_from_pullback(xp: Any, value: Any, pullback: PullbackFunction) -> JacobianResult:
    """Assemble the Jacobian row by row from a pullback.

    ``value`` is the primal output used to size the cotangent probes; a
    ``tuple`` value means ``f`` has several outputs. Each probe yields one row
    of every input's block at once. An output with no components costs one
    all-zero probe to learn the input sizes.
    """

    multi = isinstance(value, tuple)
    outputs = value if multi else (value,)
    rows = identity_matrix_like(xp, *outputs)
    per_output: List[Any] = []
    for o, row in enumerate(rows):
        cotangent_rows = [
            pullback(ws if multi else ws[0]) for ws in probe_tangents(xp, row, outputs)
        ]
        logger.debug("pullback probes for output %d: %d", o, len(cotangent_rows))
        if not cotangent_rows:
            zeros = tuple(zeros_like_value(xp, out) for out in outputs)
            grads = pullback(zeros if multi else zeros[0])
            per_output.append(
                tuple(xp.zeros((0, size_of(g)), dtype=dtype_of(xp, g)) for g in grads)
            )
            continue
        n_inputs = len(cotangent_rows[0])
        per_output.append(
            tuple(xp.stack([flat(xp, r[i]) for r in cotangent_rows], 0) for i in range(n_inputs))
        )
    n_inputs = len(per_output[0])
    if multi:
        return tuple(tuple(blocks[i] for blocks in per_output) for i in range(n_inputs))
    return per_output[0]


def gradient_from_jacobian(xp: Any, jacs: JacobianResult, xs: Sequence[Any]) -> Tuple[Any, ...]:
    """Conjugate-transpose each single-output block and reshape it like its input."""

    grads = []
    for block, x in zip(jacs, xs):
        if isinstance(block, tuple):
            raise DimensionMismatch("gradient requires a function with a single output")
        shape = () if is_scalar(x) else tuple(x.shape)
        grads.append(xp.reshape(xp.swapaxes(xp.conj(block), 0, 1), shape))
    return tuple(grads)


def pushforward_from_jacobian(backend: Any, f: DifferentiableFunction, xs: Sequence[Any]) -> PushforwardFunction:
    """Return ``ds -> d/de f(xs + e * ds)`` evaluated at ``e = 0``.

    Only a single scalar direction is differentiated, so this costs one
    Jacobian column regardless of the input sizes. The direction variable
    takes the promoted dtype of all inputs and tangents.
    """

    xp = backend.xp
    xs = tuple(xs)

    def pushforward(ds: Any) -> Any:
        ds = as_tuple(ds, len(xs), "tangents")
        check_shapes(ds, xs, "tangent")
        shapes: List[Any] = []

        def along(eps: Any) -> Any:
            out = f(*(x + eps * d for x, d in zip(xs, ds)))
            if not shapes:
                outs = out if isinstance(out, tuple) else (out,)
                shapes.append(tuple(() if is_scalar(o) else tuple(o.shape) for o in outs))
            return out

        eps = xp.zeros((), dtype=result_dtype(xp, *xs, *ds))
        (block,) = backend.jacobian(along, eps)
        if isinstance(block, tuple):
            return tuple(xp.reshape(b, s) for b, s in zip(block, shapes[0]))
        return xp.reshape(block, shapes[0][0])

    return pushforward


def pullback_from_jacobian(backend: Any, f: DifferentiableFunction, xs: Sequence[Any]) -> PullbackFunction:
    """Return ``ws -> ws^T J`` via the gradient of the contracted output."""

    xp = backend.xp
    xs = tuple(xs)

    def pullback(ws: Any) -> Tuple[Any, ...]:
        def contracted(*_xs: Any) -> Any:
            vs = f(*_xs)
            if isinstance(vs, tuple):
                cotangents = as_tuple(ws, len(vs), "cotangents")
                return sum(dot(xp, w, v) for w, v in zip(cotangents, vs))
            (w,) = as_tuple(ws, 1, "cotangents")
            return dot(xp, w, vs)

        jacs = backend.jacobian(contracted, *xs)
        return tuple(xp.conj(g) for g in gradient_from_jacobian(xp, jacs, xs))

    return pullback


__all__ = [
    "as_tuple",
    "jacobian_from_pushforward",
    "jacobian_from_pullback",
    "gradient_from_jacobian",
    "pushforward_from_jacobian",
    "pullback_from_jacobian",
]
