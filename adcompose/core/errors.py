from __future__ import annotations

"""Exception types raised by the composition engine."""

from typing import Any


class UnimplementedPrimitiveError(NotImplementedError):
    """Raised when a backend is asked for an operator it has no primitive for."""

    def __init__(self, backend: Any, operation: str) -> None:
        super().__init__(
            f"{type(backend).__name__} implements none of the primitives needed for "
            f"`{operation}`. Register one of: jacobian, pushforward_function, "
            "pullback_function, value_and_pullback_function."
        )
        self.backend = backend
        self.operation = operation


class UnsupportedPrimitiveError(TypeError):
    """Raised at class-definition time when registering an unknown primitive."""


class DimensionMismatch(ValueError):
    """Raised when a tangent/cotangent tuple does not match the function's arity."""


class UnsupportedValueKind(TypeError):
    """Raised when probe matrices are requested for a value that is neither a
    scalar nor a one-dimensional array."""


__all__ = [
    "UnimplementedPrimitiveError",
    "UnsupportedPrimitiveError",
    "DimensionMismatch",
    "UnsupportedValueKind",
]
