from __future__ import annotations

"""PyTorch backend public surface.

Binds the pushforward and pullback slots to `torch.func.jvp` and
`torch.func.vjp`. Both transforms compose, so a `HigherOrderBackend` of the
two gives Hessians without materializing anything in Python.
"""

import importlib
from dataclasses import dataclass
from typing import Any, Sequence, Tuple

from ...core.backend import ForwardModeBackend, ReverseModeBackend, primitive
from ...core.types import DifferentiableFunction, PullbackFunction, PushforwardFunction


def _torch() -> Any:
    # Local import to avoid importing torch unless this backend is actively used
    mod = importlib.import_module("torch")
    return mod


def _as_tensors(torch: Any, xs: Sequence[Any]) -> Tuple[Any, ...]:
    # integer inputs are differentiated as the default floating dtype
    out = []
    for x in xs:
        t = x if torch.is_tensor(x) else torch.as_tensor(x)
        if not (t.is_floating_point() or t.is_complex()):
            t = t.to(torch.get_default_dtype())
        out.append(t)
    return tuple(out)


def _like(torch: Any, value: Any, ref: Any) -> Any:
    return torch.as_tensor(value, dtype=ref.dtype, device=ref.device)


class _TorchArrays:
    @property
    def xp(self) -> Any:
        return _torch()


@dataclass(frozen=True)
class TorchForwardBackend(_TorchArrays, ForwardModeBackend):
    @primitive
    def pushforward_function(self, f: DifferentiableFunction, *xs: Any) -> PushforwardFunction:
        torch = _torch()
        primals = _as_tensors(torch, xs)

        def pushforward(ds: Tuple[Any, ...]) -> Any:
            tangents = tuple(_like(torch, d, p) for d, p in zip(ds, primals))
            _, out = torch.func.jvp(f, primals, tangents)
            return out

        return pushforward


@dataclass(frozen=True)
class TorchReverseBackend(_TorchArrays, ReverseModeBackend):
    @primitive
    def value_and_pullback_function(
        self, f: DifferentiableFunction, *xs: Any
    ) -> Tuple[Any, PullbackFunction]:
        torch = _torch()
        value, vjp_fn = torch.func.vjp(f, *_as_tensors(torch, xs))

        def pullback(ws: Any) -> Tuple[Any, ...]:
            if isinstance(value, tuple):
                cotangents: Any = tuple(_like(torch, w, v) for w, v in zip(ws, value))
            else:
                cotangents = _like(torch, ws, value)
            return tuple(vjp_fn(cotangents))

        return value, pullback


__all__ = [
    "TorchForwardBackend",
    "TorchReverseBackend",
]
