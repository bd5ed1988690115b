from __future__ import annotations

from typing import Any, Optional, Sequence

from .backend import Backend, BackendKind, lowest
from .types import DifferentiableFunction


def _unwrap(value: Any) -> Any:
    if isinstance(value, tuple):
        return tuple(_unwrap(v) for v in value)
    return value


def primal_value(
    backend: Backend,
    maybe_computed_output: Optional[Any],
    f: DifferentiableFunction,
    xs: Sequence[Any],
) -> Any:
    """Return ``f(*xs)``, reusing an output the derivative pass already produced.

    Finite-difference backends always re-evaluate ``f``: the values they see
    are at perturbed points. Other backends reuse ``maybe_computed_output``
    when one is available and fall back to a single evaluation otherwise.
    """

    if lowest(backend).kind is BackendKind.FINITE_DIFFERENCE or maybe_computed_output is None:
        return f(*xs)
    return _unwrap(maybe_computed_output)


__all__ = ["primal_value"]
