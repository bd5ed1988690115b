from __future__ import annotations

from typing import Any, Callable, Protocol, Tuple, Union, runtime_checkable


@runtime_checkable
class ArrayLike(Protocol):
    """A minimal protocol representing an array from any framework.

    Intentionally small to avoid importing optional frameworks at type-check time.
    """

    shape: Any


# Differentiable arguments are scalars or flat arrays.
Value = Union[complex, float, int, ArrayLike]

DifferentiableFunction = Callable[..., Any]

# One tangent per input, one cotangent per output.
Tangents = Tuple[Any, ...]
Cotangents = Tuple[Any, ...]

PushforwardFunction = Callable[[Any], Any]
PullbackFunction = Callable[[Any], Tuple[Any, ...]]

# Per-input slot: a matrix (single output) or a tuple of matrices (one per output).
JacobianBlock = Union[Any, Tuple[Any, ...]]
JacobianResult = Tuple[JacobianBlock, ...]


__all__ = [
    "ArrayLike",
    "Value",
    "DifferentiableFunction",
    "Tangents",
    "Cotangents",
    "PushforwardFunction",
    "PullbackFunction",
    "JacobianBlock",
    "JacobianResult",
]
