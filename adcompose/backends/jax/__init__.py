from __future__ import annotations

"""JAX backend public surface.

Three bindings are provided, one per primitive slot:

- `JaxForwardBackend`: ``pushforward_function`` via `jax.jvp`
- `JaxReverseBackend`: ``value_and_pullback_function`` via `jax.vjp`
- `JaxJacobianBackend`: ``jacobian`` via `jax.jacfwd` / `jax.jacrev`

Functions must return JAX arrays or tuples of arrays. The backends compose
with each other inside a `HigherOrderBackend`, e.g.
``HigherOrderBackend((JaxForwardBackend(), JaxReverseBackend()))`` computes
Hessians forward-over-reverse.
"""

from dataclasses import dataclass
from typing import Any, Tuple

from ...core.backend import BackendKind, ForwardModeBackend, ReverseModeBackend, primitive
from ...core.matrices import size_of
from ...core.types import DifferentiableFunction, JacobianResult, PullbackFunction, PushforwardFunction


def _jax() -> tuple[Any, Any]:
    # Local import to avoid importing JAX unless this backend is actively used
    import jax  # type: ignore
    import jax.numpy as jnp  # type: ignore

    return jax, jnp


def _as_primal(jnp: Any, x: Any) -> Any:
    # integer inputs are differentiated as the default floating dtype
    arr = jnp.asarray(x)
    if not jnp.issubdtype(arr.dtype, jnp.inexact):
        arr = arr.astype(jnp.result_type(float))
    return arr


class _JaxArrays:
    @property
    def xp(self) -> Any:
        return _jax()[1]


@dataclass(frozen=True)
class JaxForwardBackend(_JaxArrays, ForwardModeBackend):
    @primitive
    def pushforward_function(self, f: DifferentiableFunction, *xs: Any) -> PushforwardFunction:
        jax, jnp = _jax()
        primals = tuple(_as_primal(jnp, x) for x in xs)

        def pushforward(ds: Tuple[Any, ...]) -> Any:
            tangents = tuple(jnp.asarray(d, dtype=p.dtype) for d, p in zip(ds, primals))
            _, out = jax.jvp(f, primals, tangents)
            return out

        return pushforward


@dataclass(frozen=True)
class JaxReverseBackend(_JaxArrays, ReverseModeBackend):
    @primitive
    def value_and_pullback_function(
        self, f: DifferentiableFunction, *xs: Any
    ) -> Tuple[Any, PullbackFunction]:
        jax, jnp = _jax()
        value, vjp = jax.vjp(f, *(_as_primal(jnp, x) for x in xs))

        def pullback(ws: Any) -> Tuple[Any, ...]:
            cotangents = jax.tree_util.tree_map(
                lambda w, v: jnp.asarray(w, dtype=v.dtype), ws, value
            )
            return tuple(vjp(cotangents))

        return value, pullback


@dataclass(frozen=True)
class JaxJacobianBackend(_JaxArrays, ForwardModeBackend):
    """Native Jacobians from `jax.jacfwd` (``mode="forward"``) or `jax.jacrev`."""

    mode: str = "forward"

    def __post_init__(self) -> None:
        if self.mode not in ("forward", "reverse"):
            raise ValueError("mode must be 'forward' or 'reverse'")

    @property
    def kind(self) -> BackendKind:  # type: ignore[override]
        return BackendKind.FORWARD_MODE if self.mode == "forward" else BackendKind.REVERSE_MODE

    @primitive
    def jacobian(self, f: DifferentiableFunction, *xs: Any) -> JacobianResult:
        jax, jnp = _jax()
        primals = tuple(_as_primal(jnp, x) for x in xs)
        sizes = [size_of(p) for p in primals]
        transform = jax.jacfwd if self.mode == "forward" else jax.jacrev
        raw = transform(f, argnums=tuple(range(len(primals))))(*primals)

        # jax nests outputs outside inputs; flip to one slot per input
        if isinstance(raw, tuple) and raw and isinstance(raw[0], tuple):
            return tuple(
                tuple(jnp.reshape(per_output[i], (-1, n)) for per_output in raw)
                for i, n in enumerate(sizes)
            )
        return tuple(jnp.reshape(r, (-1, n)) for r, n in zip(raw, sizes))


__all__ = [
    "JaxForwardBackend",
    "JaxReverseBackend",
    "JaxJacobianBackend",
]
