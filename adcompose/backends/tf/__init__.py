from __future__ import annotations

"""TensorFlow backend public surface.

Binds the pushforward slot to `tf.autodiff.ForwardAccumulator` and the pullback
slot to a persistent `tf.GradientTape`. Probe matrices are built with
``tensorflow.experimental.numpy``.
"""

from dataclasses import dataclass
from typing import Any, Tuple

from ...core.backend import ForwardModeBackend, ReverseModeBackend, primitive
from ...core.types import DifferentiableFunction, PullbackFunction, PushforwardFunction


def _tf() -> Any:
    # Local import to avoid importing TensorFlow unless this backend is actively used
    import tensorflow as tf  # type: ignore

    return tf


def _as_primal(tf: Any, x: Any) -> Any:
    # integer inputs are differentiated as the default floating dtype
    t = tf.convert_to_tensor(x)
    if not (t.dtype.is_floating or t.dtype.is_complex):
        t = tf.cast(t, tf.float32)
    return t


class _TFArrays:
    @property
    def xp(self) -> Any:
        import tensorflow.experimental.numpy as tnp  # type: ignore

        return tnp


@dataclass(frozen=True)
class TFForwardBackend(_TFArrays, ForwardModeBackend):
    @primitive
    def pushforward_function(self, f: DifferentiableFunction, *xs: Any) -> PushforwardFunction:
        tf = _tf()
        primals = [_as_primal(tf, x) for x in xs]

        def pushforward(ds: Tuple[Any, ...]) -> Any:
            tangents = [tf.cast(d, p.dtype) for d, p in zip(ds, primals)]
            with tf.autodiff.ForwardAccumulator(primals, tangents) as acc:
                out = f(*primals)
            return acc.jvp(out, unconnected_gradients=tf.UnconnectedGradients.ZERO)

        return pushforward


@dataclass(frozen=True)
class TFReverseBackend(_TFArrays, ReverseModeBackend):
    @primitive
    def value_and_pullback_function(
        self, f: DifferentiableFunction, *xs: Any
    ) -> Tuple[Any, PullbackFunction]:
        tf = _tf()
        primals = [_as_primal(tf, x) for x in xs]
        # persistent: the Jacobian assembly pulls back once per output component
        with tf.GradientTape(persistent=True) as tape:
            for p in primals:
                tape.watch(p)
            value = f(*primals)

        def pullback(ws: Any) -> Tuple[Any, ...]:
            if isinstance(value, tuple):
                targets: Any = list(value)
                cotangents: Any = [tf.cast(w, v.dtype) for w, v in zip(ws, value)]
            else:
                targets = value
                cotangents = tf.cast(ws, value.dtype)
            grads = tape.gradient(
                targets,
                primals,
                output_gradients=cotangents,
                unconnected_gradients=tf.UnconnectedGradients.ZERO,
            )
            return tuple(grads)

        return value, pullback


__all__ = [
    "TFForwardBackend",
    "TFReverseBackend",
]
