from __future__ import annotations

from dataclasses import dataclass
from enum import Enum
from typing import Any, Callable, ClassVar, FrozenSet, Optional, Sequence, Tuple, TypeVar

from .derivation import (
    jacobian_from_pullback,
    jacobian_from_pushforward,
    pullback_from_jacobian,
    pushforward_from_jacobian,
)
from .errors import UnimplementedPrimitiveError, UnsupportedPrimitiveError
from .types import DifferentiableFunction, JacobianResult, PullbackFunction, PushforwardFunction


class BackendKind(Enum):
    FINITE_DIFFERENCE = "finite_difference"
    FORWARD_MODE = "forward_mode"
    REVERSE_MODE = "reverse_mode"
    HIGHER_ORDER = "higher_order"


PRIMITIVE_NAMES: Tuple[str, ...] = (
    "jacobian",
    "pushforward_function",
    "pullback_function",
    "value_and_pullback_function",
)

_PRIMITIVE_MARKER = "__adcompose_primitive__"
_PULLBACKS = frozenset({"pullback_function", "value_and_pullback_function"})

F = TypeVar("F", bound=Callable[..., Any])


def primitive(fn: F) -> F:
    """Register a method as its backend's native differentiation primitive.

    The method name selects the slot. The remaining slots are derived by the
    base class on first use::

        class MyBackend(ForwardModeBackend):
            @primitive
            def pushforward_function(self, f, *xs):
                ...

    Raises:
        UnsupportedPrimitiveError: when the method name is not a known slot.
    """

    name = getattr(fn, "__name__", repr(fn))
    if name not in PRIMITIVE_NAMES:
        raise UnsupportedPrimitiveError(
            f"Unsupported AD primitive {name!r}; expected one of: {', '.join(PRIMITIVE_NAMES)}"
        )
    setattr(fn, _PRIMITIVE_MARKER, True)
    return fn


class Backend:
    """Capability interface for differentiation backends.

    A concrete backend registers one (or more) of the primitive slots with
    `primitive`. Every slot it leaves out is derived here from the ones it
    provides; routing looks only at ``primitives``, never at the class. The
    ``kind`` tag is reserved for the primal-extraction and order-reduction
    policies.

    Backends are immutable descriptors and carry no per-call state.
    """

    kind: ClassVar[BackendKind]
    primitives: ClassVar[FrozenSet[str]] = frozenset()

    def __init_subclass__(cls, **kwargs: Any) -> None:
        super().__init_subclass__(**kwargs)
        cls.primitives = frozenset(
            name
            for name in PRIMITIVE_NAMES
            if getattr(getattr(cls, name, None), _PRIMITIVE_MARKER, False)
        )

    @property
    def xp(self) -> Any:
        """Array namespace used to build probe matrices for this backend."""

        import numpy

        return numpy

    def _require_primitive(self, operation: str) -> None:
        if not self.primitives:
            raise UnimplementedPrimitiveError(self, operation)

    # ---------- Primitive slots ----------
    def jacobian(self, f: DifferentiableFunction, *xs: Any) -> JacobianResult:
        return self.jacobian_with_primal(f, *xs)[1]

    def jacobian_with_primal(self, f: DifferentiableFunction, *xs: Any) -> Tuple[Optional[Any], JacobianResult]:
        """Return ``(output, jacobian)``.

        ``output`` is the primal value when the primitive produced it as a
        by-product (pullbacks do), otherwise ``None``.
        """

        if "jacobian" in self.primitives:
            return None, self.jacobian(f, *xs)
        if "pushforward_function" in self.primitives:
            return None, jacobian_from_pushforward(self.xp, self.pushforward_function(f, *xs), xs)
        if self.primitives & _PULLBACKS:
            value, pullback = self.value_and_pullback_function(f, *xs)
            return value, jacobian_from_pullback(self.xp, value, pullback)
        raise UnimplementedPrimitiveError(self, "jacobian")

    def pushforward_function(self, f: DifferentiableFunction, *xs: Any) -> PushforwardFunction:
        self._require_primitive("pushforward_function")
        return pushforward_from_jacobian(self, f, xs)

    def value_and_pullback_function(
        self, f: DifferentiableFunction, *xs: Any
    ) -> Tuple[Any, PullbackFunction]:
        self._require_primitive("value_and_pullback_function")
        if "pullback_function" in self.primitives:
            return f(*xs), self.pullback_function(f, *xs)
        return f(*xs), pullback_from_jacobian(self, f, xs)

    def pullback_function(self, f: DifferentiableFunction, *xs: Any) -> PullbackFunction:
        return self.value_and_pullback_function(f, *xs)[1]


class FiniteDifferenceBackend(Backend):
    """Backends whose primitive does not yield the primal value."""

    kind = BackendKind.FINITE_DIFFERENCE


class ForwardModeBackend(Backend):
    kind = BackendKind.FORWARD_MODE


class ReverseModeBackend(Backend):
    kind = BackendKind.REVERSE_MODE


@dataclass(frozen=True, init=False)
class HigherOrderBackend(Backend):
    """Composition of backends for higher-order derivatives.

    ``backends`` is ordered outer to inner: the last entry differentiates the
    user function, the one before it differentiates that derivative, and so
    on. ``HigherOrderBackend((forward, reverse))`` is forward-over-reverse;
    ``HigherOrderBackend((reverse, forward))`` is reverse-over-forward.
    """

    kind = BackendKind.HIGHER_ORDER
    backends: Tuple[Backend, ...]

    def __init__(self, backends: Sequence[Backend]) -> None:
        backends = tuple(backends)
        if not backends:
            raise ValueError("HigherOrderBackend requires at least one backend")
        object.__setattr__(self, "backends", backends)

    @property
    def xp(self) -> Any:
        return lowest(self).xp

    def jacobian(self, f: DifferentiableFunction, *xs: Any) -> JacobianResult:
        return lowest(self).jacobian(f, *xs)

    def jacobian_with_primal(self, f: DifferentiableFunction, *xs: Any) -> Tuple[Optional[Any], JacobianResult]:
        return lowest(self).jacobian_with_primal(f, *xs)

    def pushforward_function(self, f: DifferentiableFunction, *xs: Any) -> PushforwardFunction:
        return lowest(self).pushforward_function(f, *xs)

    def value_and_pullback_function(
        self, f: DifferentiableFunction, *xs: Any
    ) -> Tuple[Any, PullbackFunction]:
        return lowest(self).value_and_pullback_function(f, *xs)

    def pullback_function(self, f: DifferentiableFunction, *xs: Any) -> PullbackFunction:
        return lowest(self).pullback_function(f, *xs)


def _is_composite(b: Backend) -> bool:
    return b.kind is BackendKind.HIGHER_ORDER


def lowest(b: Backend) -> Backend:
    """Backend applied directly to the user function (innermost)."""

    if _is_composite(b):
        return b.backends[-1]  # type: ignore[attr-defined]
    return b


def reduce_order(b: Backend) -> Backend:
    """Drop the innermost backend of a composite.

    Never produces an empty composite: a single remaining backend is returned
    as a plain backend.
    """

    if not _is_composite(b):
        return b
    backends = b.backends  # type: ignore[attr-defined]
    assert len(backends) >= 1, "HigherOrderBackend must hold at least one backend"
    if len(backends) == 1:
        return lowest(b)
    if len(backends) == 2:
        return backends[0]
    return HigherOrderBackend(backends[:-1])


def second_lowest(b: Backend) -> Backend:
    """Backend used for the next differentiation layer out."""

    if not _is_composite(b):
        return b
    return lowest(reduce_order(b))


__all__ = [
    "BackendKind",
    "PRIMITIVE_NAMES",
    "primitive",
    "Backend",
    "FiniteDifferenceBackend",
    "ForwardModeBackend",
    "ReverseModeBackend",
    "HigherOrderBackend",
    "lowest",
    "second_lowest",
    "reduce_order",
]
