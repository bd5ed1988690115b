from __future__ import annotations

from typing import Any, List

import numpy as np
import pytest

from adcompose import ForwardModeBackend, ReverseModeBackend, primitive
from adcompose.backends.finite_difference import ScipyFiniteDifferenceBackend

_FD = ScipyFiniteDifferenceBackend()


def _block(jac: Any, o: int, multi: bool) -> np.ndarray:
    return np.asarray(jac[o] if multi else jac)


class PushforwardOnlyBackend(ForwardModeBackend):
    """Test backend exposing only a pushforward (J @ v from SciPy differences)."""

    def __init__(self) -> None:
        self.calls = 0

    @primitive
    def pushforward_function(self, f, *xs):  # type: ignore[no-untyped-def]
        value = f(*xs)
        multi = isinstance(value, tuple)
        outs = value if multi else (value,)
        jacs = _FD.jacobian(f, *xs)

        def pushforward(ds):  # type: ignore[no-untyped-def]
            self.calls += 1
            res: List[Any] = []
            for o, out in enumerate(outs):
                total = sum(_block(jacs[i], o, multi) @ np.reshape(d, -1) for i, d in enumerate(ds))
                res.append(np.reshape(total, np.shape(out)))
            return tuple(res) if multi else res[0]

        return pushforward


class PullbackOnlyBackend(ReverseModeBackend):
    """Test backend exposing only a value-and-pullback (w @ J from SciPy differences)."""

    def __init__(self) -> None:
        self.calls = 0
        self.last_value: Any = None

    @primitive
    def value_and_pullback_function(self, f, *xs):  # type: ignore[no-untyped-def]
        value = f(*xs)
        self.last_value = value
        multi = isinstance(value, tuple)
        jacs = _FD.jacobian(f, *xs)

        def pullback(ws):  # type: ignore[no-untyped-def]
            self.calls += 1
            ws_t = ws if multi else (ws,)
            return tuple(
                np.reshape(
                    sum(np.reshape(w, -1) @ _block(jacs[i], o, multi) for o, w in enumerate(ws_t)),
                    np.shape(x),
                )
                for i, x in enumerate(xs)
            )

        return value, pullback


class LinearPushforwardBackend(ForwardModeBackend):
    """Exact pushforward for linear maps: J @ v is f(v). Works for complex f."""

    @primitive
    def pushforward_function(self, f, *xs):  # type: ignore[no-untyped-def]
        return lambda ds: f(*ds)


@pytest.fixture
def linear() -> LinearPushforwardBackend:
    return LinearPushforwardBackend()


@pytest.fixture
def fd() -> ScipyFiniteDifferenceBackend:
    return ScipyFiniteDifferenceBackend()


@pytest.fixture
def pushforward_only() -> PushforwardOnlyBackend:
    return PushforwardOnlyBackend()


@pytest.fixture
def pullback_only() -> PullbackOnlyBackend:
    return PullbackOnlyBackend()


@pytest.fixture(params=["finite_difference", "pushforward", "pullback"])
def any_backend(request):  # type: ignore[no-untyped-def]
    if request.param == "finite_difference":
        return ScipyFiniteDifferenceBackend()
    if request.param == "pushforward":
        return PushforwardOnlyBackend()
    return PullbackOnlyBackend()
