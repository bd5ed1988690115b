from __future__ import annotations

"""Deferred, matrix-free derivative operators.

A lazy operator captures ``(backend, f, xs)`` and computes nothing until it is
multiplied. Products with vectors go through pushforwards/pullbacks so the
Jacobian or Hessian is never formed; products with scalars (numbers or 0-d
arrays) scale the materialized operator.
"""

from dataclasses import dataclass
from typing import Any, Optional, Tuple

from .backend import Backend, HigherOrderBackend, lowest, second_lowest
from .errors import DimensionMismatch
from .matrices import is_scalar
from .operators import (
    _gradient_map,
    _only,
    derivative,
    gradient,
    hessian,
    jacobian,
    pullback_function,
    pushforward_function,
)
from .types import DifferentiableFunction


def _scale(blocks: Any, s: Any, left: bool) -> Any:
    if isinstance(blocks, tuple):
        return tuple(_scale(b, s, left) for b in blocks)
    return s * blocks if left else blocks * s


def _as_tuple(ys: Any) -> Tuple[Any, ...]:
    return ys if isinstance(ys, tuple) else (ys,)


@dataclass(frozen=True)
class _LazyOperator:
    backend: Backend
    f: DifferentiableFunction
    xs: Tuple[Any, ...]

    # Make ``ndarray * op`` defer to ``op.__rmul__`` instead of broadcasting.
    __array_ufunc__ = None

    def _conj(self, ys: Any) -> Any:
        xp = lowest(self.backend).xp
        if isinstance(ys, tuple):
            return tuple(xp.conj(y) for y in ys)
        return xp.conj(ys)


class _ElementwiseOperator(_LazyOperator):
    """Derivatives and gradients are small; products materialize them."""

    def _pairs(self, y: Any) -> Any:
        values = self._materialize()  # type: ignore[attr-defined]
        if isinstance(y, tuple):
            if len(y) != len(self.xs):
                raise DimensionMismatch(f"expected {len(self.xs)} factors, got {len(y)}")
            return zip(values, y)
        return ((v, y) for v in values)

    def __mul__(self, y: Any) -> Tuple[Any, ...]:
        return tuple(v * yi for v, yi in self._pairs(y))

    def __rmul__(self, y: Any) -> Tuple[Any, ...]:
        return tuple(yi * v for v, yi in self._pairs(y))


class LazyDerivative(_ElementwiseOperator):
    def _materialize(self) -> Tuple[Any, ...]:
        return derivative(self.backend, self.f, *self.xs)


class LazyGradient(_ElementwiseOperator):
    def _materialize(self) -> Tuple[Any, ...]:
        return gradient(self.backend, self.f, *self.xs)


class LazyJacobian(_LazyOperator):
    """``J * v`` is a Jacobian-vector product, ``w * J`` a vector-Jacobian product."""

    def __mul__(self, ys: Any) -> Any:
        if is_scalar(ys):
            return _scale(jacobian(self.backend, self.f, *self.xs), ys, left=False)
        res = pushforward_function(self.backend, self.f, *self.xs)(_as_tuple(ys))
        return _as_tuple(res)

    def __rmul__(self, ys: Any) -> Any:
        if is_scalar(ys):
            return _scale(jacobian(self.backend, self.f, *self.xs), ys, left=True)
        return pullback_function(self.backend, self.f, *self.xs)(self._conj(ys))

    __matmul__ = __mul__
    __rmatmul__ = __rmul__


class LazyHessian(_LazyOperator):
    """``H * v`` and ``w * H`` differentiate the gradient map along ``v``/``w``."""

    def __mul__(self, ys: Any) -> Any:
        if is_scalar(ys):
            return _scale(hessian(self.backend, self.f, self.xs), ys, left=False)
        outer = second_lowest(self.backend)
        res = pushforward_function(outer, _gradient_map(self.backend, self.f), *self.xs)(
            _as_tuple(ys)
        )
        return _as_tuple(res)

    def __rmul__(self, ys: Any) -> Any:
        if is_scalar(ys):
            return _scale(hessian(self.backend, self.f, self.xs), ys, left=True)
        outer = second_lowest(self.backend)
        return pullback_function(outer, _gradient_map(self.backend, self.f), *self.xs)(
            self._conj(ys)
        )

    __matmul__ = __mul__
    __rmatmul__ = __rmul__


def lazy_derivative(ab: Backend, f: DifferentiableFunction, *xs: Any) -> LazyDerivative:
    """Return an operator for multiplying by the derivative of ``f`` at the scalars ``xs``.

    ``ld * y`` takes a number, an array, or a tuple with one factor per input.
    """

    for x in xs:
        if not is_scalar(x):
            raise TypeError(f"lazy_derivative requires scalar inputs, got {type(x).__name__}")
    return LazyDerivative(ab, f, tuple(xs))


def lazy_gradient(ab: Backend, f: DifferentiableFunction, *xs: Any) -> LazyGradient:
    return LazyGradient(ab, f, tuple(xs))


def lazy_jacobian(ab: Backend, f: DifferentiableFunction, *xs: Any) -> LazyJacobian:
    """Return an operator for multiplying by the Jacobian of ``f`` at ``xs``.

    ``lj * v`` takes one tangent per input (a tuple when ``f`` has several
    inputs); ``w * lj`` takes one cotangent per output. A scalar, including a
    0-d array, scales the materialized Jacobian.
    """

    return LazyJacobian(ab, f, tuple(xs))


def lazy_hessian(ab: Backend, f: DifferentiableFunction, x: Any) -> LazyHessian:
    """Return an operator for multiplying by the Hessian of the scalar-valued ``f`` at ``x``."""

    return LazyHessian(ab, f, (_only(x),))


@dataclass(frozen=True)
class D:
    """Jacobian operator of ``f``: ``D(backend, f)(*xs)`` is lazy by default."""

    backend: Backend
    f: DifferentiableFunction

    def __call__(self, *xs: Any, lazy: bool = True) -> Any:
        if lazy:
            return lazy_jacobian(self.backend, self.f, *xs)
        return jacobian(self.backend, self.f, *xs)

    def second(self, outer: Optional[Backend] = None) -> "H":
        """Differentiate again, with ``outer`` (default: the same backend) on the outside."""

        return H(HigherOrderBackend((self.backend if outer is None else outer, self.backend)), self.f)


@dataclass(frozen=True)
class H:
    """Hessian operator of ``f``: ``H(backend, f)(x)`` is lazy by default."""

    backend: Backend
    f: DifferentiableFunction

    def __call__(self, x: Any, lazy: bool = True) -> Any:
        if lazy:
            return lazy_hessian(self.backend, self.f, x)
        return hessian(self.backend, self.f, x)


__all__ = [
    "LazyDerivative",
    "LazyGradient",
    "LazyJacobian",
    "LazyHessian",
    "lazy_derivative",
    "lazy_gradient",
    "lazy_jacobian",
    "lazy_hessian",
    "D",
    "H",
]
