"""adcompose: backend-agnostic composition of differential operators.

A backend supplies one differentiation primitive (a Jacobian, a pushforward or
a pullback) from a third-party library; this package derives derivatives,
gradients, Jacobians, Hessians and lazy matrix-free operators from it.
Library bindings live under `adcompose.backends` and are imported on demand.
"""

from __future__ import annotations

import logging
from importlib.metadata import PackageNotFoundError, version
from typing import Any

try:  # Prefer a real version from installed metadata; fall back during dev.
    __version__ = version("adcompose")
except PackageNotFoundError:  # pragma: no cover - only hit in editable installs without build
    __version__ = "0.0.0"

logging.getLogger(__name__).addHandler(logging.NullHandler())

from ._lazy import MissingBackend, available_backends, get_backend_or_raise
from .core import (
    Backend,
    BackendKind,
    D,
    DimensionMismatch,
    FiniteDifferenceBackend,
    ForwardModeBackend,
    H,
    HigherOrderBackend,
    LazyDerivative,
    LazyGradient,
    LazyHessian,
    LazyJacobian,
    ReverseModeBackend,
    UnimplementedPrimitiveError,
    UnsupportedPrimitiveError,
    UnsupportedValueKind,
    derivative,
    gradient,
    hessian,
    jacobian,
    lazy_derivative,
    lazy_gradient,
    lazy_hessian,
    lazy_jacobian,
    lowest,
    primitive,
    pullback_function,
    pushforward_function,
    reduce_order,
    second_lowest,
    value_and_derivative,
    value_and_gradient,
    value_and_hessian,
    value_and_jacobian,
    value_and_pullback_function,
    value_and_pushforward_function,
    value_gradient_and_hessian,
)

__all__ = [
    "__version__",
    # Backend model
    "Backend",
    "BackendKind",
    "FiniteDifferenceBackend",
    "ForwardModeBackend",
    "ReverseModeBackend",
    "HigherOrderBackend",
    "primitive",
    "lowest",
    "second_lowest",
    "reduce_order",
    # Backend resolution
    "MissingBackend",
    "available_backends",
    "get_backend_or_raise",
    "backend",
    "higher_order",
    # Errors
    "DimensionMismatch",
    "UnimplementedPrimitiveError",
    "UnsupportedPrimitiveError",
    "UnsupportedValueKind",
    # Operators
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
    # Lazy operators
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


def backend(name: str, **options: Any) -> Backend:
    """Return the backend registered under ``name``, e.g. ``"jax-reverse"``.

    Options are forwarded to the backend constructor.
    """

    return get_backend_or_raise(name, **options)


def higher_order(outer: str | Backend, inner: str | Backend) -> HigherOrderBackend:
    """Compose two backends; ``inner`` differentiates the function, ``outer`` its derivative.

    Accepts backend instances or registered names, so
    ``higher_order("jax-forward", "jax-reverse")`` is forward-over-reverse.
    """

    resolved = [get_backend_or_raise(b) if isinstance(b, str) else b for b in (outer, inner)]
    return HigherOrderBackend(resolved)
