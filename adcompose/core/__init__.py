from __future__ import annotations

"""Framework-agnostic composition engine.

This package holds the backend capability interface, the primitive derivation
rules, and the operator library built on top of them. Nothing here imports an
autodiff framework.
"""

from .backend import (
    Backend,
    BackendKind,
    FiniteDifferenceBackend,
    ForwardModeBackend,
    HigherOrderBackend,
    ReverseModeBackend,
    lowest,
    primitive,
    reduce_order,
    second_lowest,
)
from .errors import (
    DimensionMismatch,
    UnimplementedPrimitiveError,
    UnsupportedPrimitiveError,
    UnsupportedValueKind,
)
from .lazy import (
    D,
    H,
    LazyDerivative,
    LazyGradient,
    LazyHessian,
    LazyJacobian,
    lazy_derivative,
    lazy_gradient,
    lazy_hessian,
    lazy_jacobian,
)
from .matrices import identity_matrix_like, zero_matrix_like
from .operators import (
    derivative,
    gradient,
    hessian,
    jacobian,
    pullback_function,
    pushforward_function,
    value_and_derivative,
    value_and_gradient,
    value_and_hessian,
    value_and_jacobian,
    value_and_pullback_function,
    value_and_pushforward_function,
    value_gradient_and_hessian,
)
from .primal import primal_value

__all__ = [
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
    "primal_value",
    # Errors
    "DimensionMismatch",
    "UnimplementedPrimitiveError",
    "UnsupportedPrimitiveError",
    "UnsupportedValueKind",
    # Probes
    "identity_matrix_like",
    "zero_matrix_like",
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
