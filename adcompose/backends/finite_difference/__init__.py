from __future__ import annotations

"""Finite-difference backend public surface.

Binds the ``jacobian`` primitive to `scipy.differentiate.jacobian`. All inputs
are packed into one flat vector so SciPy sees a single ``R^M -> R^N`` map; the
result is split back into per-input, per-output blocks.
"""

from dataclasses import dataclass
from typing import Any, Callable, Dict, List, Mapping, Optional, Sequence

import numpy as np

from ...core.backend import FiniteDifferenceBackend, primitive
from ...core.matrices import is_scalar
from ...core.types import DifferentiableFunction, JacobianResult

_TOLERANCE_KEYS = ("atol", "rtol")


def _scipy_jacobian() -> Callable[..., Any]:
    # Local import keeps scipy off the import path of the core engine
    from scipy.differentiate import jacobian

    return jacobian


def _as_float_array(x: Any) -> np.ndarray:
    arr = np.asarray(x)
    if not np.issubdtype(arr.dtype, np.inexact):
        arr = arr.astype(float)
    return arr


def _offsets(sizes: Sequence[int]) -> List[int]:
    out = [0]
    for n in sizes:
        out.append(out[-1] + n)
    return out


@dataclass(frozen=True)
class ScipyFiniteDifferenceBackend(FiniteDifferenceBackend):
    """Adaptive central differences via SciPy.

    Options are forwarded to `scipy.differentiate.jacobian`; see its
    documentation for their meaning.
    """

    order: int = 8
    maxiter: int = 10
    initial_step: float = 0.5
    step_factor: float = 2.0
    tolerances: Optional[Mapping[str, float]] = None

    def __post_init__(self) -> None:
        if int(self.order) <= 0:
            raise ValueError("order must be a positive integer")
        if int(self.maxiter) <= 0:
            raise ValueError("maxiter must be a positive integer")
        if self.initial_step <= 0.0:
            raise ValueError("initial_step must be positive")
        if self.step_factor <= 0.0:
            raise ValueError("step_factor must be positive")
        if self.tolerances is not None:
            unknown = set(self.tolerances) - set(_TOLERANCE_KEYS)
            if unknown:
                raise ValueError(f"tolerances accepts only 'atol' and 'rtol', got {sorted(unknown)}")

    @primitive
    def jacobian(self, f: DifferentiableFunction, *xs: Any) -> JacobianResult:
        arrays = [_as_float_array(x) for x in xs]
        scalars = [is_scalar(x) for x in xs]
        in_offsets = _offsets([int(a.size) for a in arrays])
        z0 = np.concatenate([a.reshape(-1) for a in arrays])
        layout: Dict[str, Any] = {}

        def unpack(column: np.ndarray) -> List[Any]:
            args = []
            for i, scalar in enumerate(scalars):
                lo, hi = in_offsets[i], in_offsets[i + 1]
                args.append(column[lo] if scalar else column[lo:hi].copy())
            return args

        def evaluate(column: np.ndarray) -> np.ndarray:
            out = f(*unpack(column))
            outs = out if isinstance(out, tuple) else (out,)
            parts = [np.reshape(np.asarray(o), -1) for o in outs]
            if not layout:
                layout["multi"] = isinstance(out, tuple)
                layout["offsets"] = _offsets([int(p.size) for p in parts])
            return np.concatenate(parts)

        def vectorized(z: np.ndarray) -> np.ndarray:
            # SciPy evaluates many abscissae at once: z has shape (M, ...)
            batch = z.shape[1:]
            columns = z.reshape(z.shape[0], -1)
            res = np.stack([evaluate(columns[:, k]) for k in range(columns.shape[1])], axis=1)
            return res.reshape((res.shape[0],) + batch)

        res = _scipy_jacobian()(
            vectorized,
            z0,
            tolerances=None if self.tolerances is None else dict(self.tolerances),
            maxiter=int(self.maxiter),
            order=int(self.order),
            initial_step=self.initial_step,
            step_factor=self.step_factor,
        )
        df = np.asarray(res.df).reshape(layout["offsets"][-1], in_offsets[-1])

        out_offsets = layout["offsets"]
        blocks = []
        for i in range(len(arrays)):
            c0, c1 = in_offsets[i], in_offsets[i + 1]
            per_output = tuple(
                df[out_offsets[o] : out_offsets[o + 1], c0:c1] for o in range(len(out_offsets) - 1)
            )
            blocks.append(per_output if layout["multi"] else per_output[0])
        return tuple(blocks)


__all__ = [
    "ScipyFiniteDifferenceBackend",
]
