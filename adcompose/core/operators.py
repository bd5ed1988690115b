from __future__ import annotations

"""Differential operators expressed through a backend's primitives.

Every operator takes the backend first and the function second, followed by
the inputs. Results with one slot per input are always tuples, also for a
single input.
"""

from typing import Any, Callable, Tuple

from .backend import Backend, lowest, second_lowest
from .derivation import as_tuple, gradient_from_jacobian
from .errors import DimensionMismatch
from .matrices import check_shapes, is_scalar
from .primal import primal_value
from .types import DifferentiableFunction, JacobianResult, PullbackFunction, PushforwardFunction


def _only(x: Any) -> Any:
    # Hessians support a single input; a 1-tuple is unwrapped
    if isinstance(x, tuple):
        if len(x) != 1:
            raise DimensionMismatch(f"hessian supports a single input, got {len(x)}")
        return x[0]
    return x


def _derivative_of(block: Any) -> Any:
    if isinstance(block, tuple):
        return tuple(_derivative_of(b) for b in block)
    column = block[:, 0]
    return column[0] if int(column.shape[0]) == 1 else column


def _gradient_map(ab: Backend, f: DifferentiableFunction) -> Callable[[Any], Any]:
    inner = lowest(ab)

    def grad(x: Any) -> Any:
        return gradient(inner, f, x)[0]

    return grad


def jacobian(ab: Backend, f: DifferentiableFunction, *xs: Any) -> JacobianResult:
    """Compute the Jacobians of ``f`` with respect to each of ``xs``.

    Returns a tuple with one entry per input. Each entry is a matrix of shape
    ``(output_size, input_size)``, or a tuple of such matrices when ``f``
    returns a tuple of outputs.
    """

    return lowest(ab).jacobian(f, *xs)


def value_and_jacobian(ab: Backend, f: DifferentiableFunction, *xs: Any) -> Tuple[Any, JacobianResult]:
    """Return ``(f(*xs), jacobian(ab, f, *xs))``.

    The value is taken from the derivative pass when the primitive produced
    it, so ``f`` is not evaluated a second time.
    """

    output, jacs = lowest(ab).jacobian_with_primal(f, *xs)
    return primal_value(ab, output, f, xs), jacs


def derivative(ab: Backend, f: DifferentiableFunction, *xs: Any) -> Tuple[Any, ...]:
    """Compute the derivatives of ``f`` with respect to the scalars ``xs``.

    Returns one derivative per input: a scalar for scalar-valued ``f``, a
    vector for vector-valued ``f``.
    """

    for x in xs:
        if not is_scalar(x):
            raise TypeError(f"derivative requires scalar inputs, got {type(x).__name__}")
    return tuple(_derivative_of(block) for block in jacobian(ab, f, *xs))


def value_and_derivative(ab: Backend, f: DifferentiableFunction, *xs: Any) -> Tuple[Any, Tuple[Any, ...]]:
    for x in xs:
        if not is_scalar(x):
            raise TypeError(f"derivative requires scalar inputs, got {type(x).__name__}")
    value, jacs = value_and_jacobian(ab, f, *xs)
    return value, tuple(_derivative_of(block) for block in jacs)


def gradient(ab: Backend, f: DifferentiableFunction, *xs: Any) -> Tuple[Any, ...]:
    """Compute the gradients of the scalar-valued ``f`` with respect to ``xs``.

    Each gradient is the conjugate transpose of the corresponding Jacobian
    block, reshaped to the shape of its input.
    """

    b = lowest(ab)
    return gradient_from_jacobian(b.xp, b.jacobian(f, *xs), xs)


def value_and_gradient(ab: Backend, f: DifferentiableFunction, *xs: Any) -> Tuple[Any, Tuple[Any, ...]]:
    value, jacs = value_and_jacobian(ab, f, *xs)
    return value, gradient_from_jacobian(lowest(ab).xp, jacs, xs)


def hessian(ab: Backend, f: DifferentiableFunction, x: Any) -> JacobianResult:
    """Compute the Hessian of the scalar-valued ``f`` at ``x``.

    The gradient is taken with ``lowest(ab)`` and differentiated again with
    ``second_lowest(ab)``. Returns a 1-tuple holding the matrix.
    """

    x = _only(x)
    return jacobian(second_lowest(ab), _gradient_map(ab, f), x)


def value_and_hessian(ab: Backend, f: DifferentiableFunction, x: Any) -> Tuple[Any, JacobianResult]:
    x = _only(x)
    value = f(x)
    return value, jacobian(second_lowest(ab), _gradient_map(ab, f), x)


def value_gradient_and_hessian(
    ab: Backend, f: DifferentiableFunction, x: Any
) -> Tuple[Any, Tuple[Any], JacobianResult]:
    """Return ``(f(x), (gradient,), hessian)``.

    The gradient is the primal value of the outer Jacobian pass and is reused
    when that backend's primitive produces it.
    """

    x = _only(x)
    value = f(x)
    grad, hess = value_and_jacobian(second_lowest(ab), _gradient_map(ab, f), x)
    return value, (grad,), hess


def pushforward_function(ab: Backend, f: DifferentiableFunction, *xs: Any) -> PushforwardFunction:
    """Return the pushforward (Jacobian-vector product) of ``f`` at ``xs``.

    The returned function takes a tuple with one tangent per input; a single
    tangent is accepted when ``f`` has one input. Each tangent must have
    the shape of its input.
    """

    pf = lowest(ab).pushforward_function(f, *xs)
    n = len(xs)

    def pushforward(ds: Any) -> Any:
        ds = as_tuple(ds, n, "tangents")
        check_shapes(ds, xs, "tangent")
        return pf(ds)

    return pushforward


def value_and_pushforward_function(
    ab: Backend, f: DifferentiableFunction, *xs: Any
) -> Callable[[Any], Tuple[Any, Any]]:
    """Return a function mapping tangents to ``(f(*xs), pushforward(tangents))``."""

    value = f(*xs)
    pf = pushforward_function(ab, f, *xs)

    def value_and_pushforward(ds: Any) -> Tuple[Any, Any]:
        return value, pf(ds)

    return value_and_pushforward


def value_and_pullback_function(
    ab: Backend, f: DifferentiableFunction, *xs: Any
) -> Tuple[Any, PullbackFunction]:
    """Return ``(f(*xs), pullback)``.

    ``pullback`` takes a tuple with one cotangent per output of ``f``; a single
    cotangent is accepted when ``f`` has one output. Each cotangent must have
    the shape of its output. It returns a tuple with one cotangent per input.
    """

    value, pb = lowest(ab).value_and_pullback_function(f, *xs)
    multi = isinstance(value, tuple)
    n_outputs = len(value) if multi else 1

    def pullback(ws: Any) -> Tuple[Any, ...]:
        ws = as_tuple(ws, n_outputs, "cotangents")
        check_shapes(ws, value if multi else (value,), "cotangent")
        return pb(ws if multi else ws[0])

    return value, pullback


def pullback_function(ab: Backend, f: DifferentiableFunction, *xs: Any) -> PullbackFunction:
    """Return the pullback (vector-Jacobian product) of ``f`` at ``xs``."""

    return value_and_pullback_function(ab, f, *xs)[1]


__all__ = [
    "derivative",
    "gradient",
    "jacobian",
    "hessian",
    "value_and_derivative",
    "value_and_gradient",
    "value_and_jacobian",
    "value_and_hessian",
    "value_gradient_and_hessian",
    "pushforward_function",
    "value_and_pushforward_function",
    "pullback_function",
    "value_and_pullback_function",
]
