from __future__ import annotations

import numpy as np
import pytest

from adcompose import (
    DimensionMismatch,
    ForwardModeBackend,
    ReverseModeBackend,
    jacobian,
    pullback_function,
    primitive,
    pushforward_function,
    value_and_pullback_function,
)


def _f(x):  # type: ignore[no-untyped-def]
    return np.array([x[0] ** 2, x[0] * x[1]])


_X = np.array([1.0, 2.0])
_J = np.array([[2.0, 0.0], [2.0, 1.0]])


def test_jacobian_from_pushforward_one_probe_per_column(pushforward_only) -> None:
    (block,) = jacobian(pushforward_only, _f, _X)
    np.testing.assert_allclose(block, _J, rtol=1e-6, atol=1e-8)
    assert pushforward_only.calls == 2


def test_jacobian_from_pullback_one_probe_per_row(pullback_only) -> None:
    (block,) = jacobian(pullback_only, _f, _X)
    np.testing.assert_allclose(block, _J, rtol=1e-6, atol=1e-8)
    assert pullback_only.calls == 2


def test_multi_input_multi_output_block_structure(any_backend) -> None:
    def f(x, y):  # type: ignore[no-untyped-def]
        return (x * y, np.sum(x))

    x = np.array([1.0, 2.0, 3.0])
    jx, jy = jacobian(any_backend, f, x, 2.0)

    assert isinstance(jx, tuple) and isinstance(jy, tuple)
    assert np.shape(jx[0]) == (3, 3) and np.shape(jx[1]) == (1, 3)
    assert np.shape(jy[0]) == (3, 1) and np.shape(jy[1]) == (1, 1)
    np.testing.assert_allclose(jx[0], 2.0 * np.eye(3), atol=1e-8)
    np.testing.assert_allclose(jx[1], np.ones((1, 3)), atol=1e-8)
    np.testing.assert_allclose(jy[0], x.reshape(3, 1), atol=1e-8)
    np.testing.assert_allclose(jy[1], np.zeros((1, 1)), atol=1e-8)


def test_separable_function_has_zero_cross_blocks(any_backend) -> None:
    def f(x, y):  # type: ignore[no-untyped-def]
        return (x**2, np.sin(y))

    x, y = np.array([1.0, -2.0]), np.array([0.5, 0.25])
    (dx_fx, dx_fy), (dy_fx, dy_fy) = jacobian(any_backend, f, x, y)
    np.testing.assert_allclose(dx_fy, np.zeros((2, 2)), atol=1e-8)
    np.testing.assert_allclose(dy_fx, np.zeros((2, 2)), atol=1e-8)
    np.testing.assert_allclose(dx_fx, np.diag(2 * x), atol=1e-7)
    np.testing.assert_allclose(dy_fy, np.diag(np.cos(y)), atol=1e-7)


def test_pushforward_matches_jacobian_vector_product(any_backend) -> None:
    v = np.array([0.5, -1.0])
    out = pushforward_function(any_backend, _f, _X)(v)
    np.testing.assert_allclose(out, _J @ v, atol=1e-7)


def test_pushforward_is_linear(fd) -> None:
    def f(x, y):  # type: ignore[no-untyped-def]
        return np.array([3.0 * x[0] - y, x[1] + 2.0 * y])

    x = np.array([1.0, 2.0])
    pf = pushforward_function(fd, f, x, 0.5)
    d1 = (np.array([1.0, 0.0]), 1.0)
    d2 = (np.array([0.0, 2.0]), -1.0)
    a, b = 2.0, -3.0
    combined = (a * d1[0] + b * d2[0], a * d1[1] + b * d2[1])
    np.testing.assert_allclose(pf(combined), a * pf(d1) + b * pf(d2), atol=1e-8)


def test_pushforward_scalar_output_keeps_scalar_shape(fd) -> None:
    out = pushforward_function(fd, lambda x: np.sum(x**2), np.array([1.0, 2.0]))(np.array([1.0, 1.0]))
    assert np.shape(out) == ()
    assert float(out) == pytest.approx(6.0)


def test_pullback_matches_vector_jacobian_product(any_backend) -> None:
    w = np.array([1.0, 3.0])
    (out,) = pullback_function(any_backend, _f, _X)(w)
    np.testing.assert_allclose(out, w @ _J, atol=1e-7)


def test_pullback_multi_output_sums_contributions(any_backend) -> None:
    def f(x):  # type: ignore[no-untyped-def]
        return (x**2, np.sum(x))

    x = np.array([1.0, 2.0])
    (out,) = pullback_function(any_backend, f, x)((np.array([1.0, 1.0]), 2.0))
    np.testing.assert_allclose(out, 2 * x + 2.0, atol=1e-7)


def test_value_and_pullback_returns_primal(any_backend) -> None:
    value, pb = value_and_pullback_function(any_backend, _f, _X)
    np.testing.assert_allclose(value, _f(_X))
    (out,) = pb(np.array([1.0, 0.0]))
    np.testing.assert_allclose(out, _J[0], atol=1e-7)


def test_tangent_arity_mismatch_is_rejected(any_backend) -> None:
    pf = pushforward_function(any_backend, lambda x, y: x * y, 1.0, 2.0)
    with pytest.raises(DimensionMismatch):
        pf((1.0,))
    with pytest.raises(DimensionMismatch):
        pf(1.0)


def test_cotangent_arity_mismatch_is_rejected(any_backend) -> None:
    pb = pullback_function(any_backend, lambda x: (x, 2.0 * x), 1.0)
    with pytest.raises(DimensionMismatch):
        pb(1.0)
    with pytest.raises(DimensionMismatch):
        pb((1.0, 1.0, 1.0))


def test_tangent_shape_mismatch_is_rejected(any_backend) -> None:
    pf = pushforward_function(any_backend, _f, _X)
    with pytest.raises(DimensionMismatch, match="shape"):
        pf(2.0)
    with pytest.raises(DimensionMismatch, match="shape"):
        pf(np.ones(3))


def test_cotangent_shape_mismatch_is_rejected(any_backend) -> None:
    with pytest.raises(DimensionMismatch, match="shape"):
        pullback_function(any_backend, _f, _X)(1.0)
    pb = pullback_function(any_backend, lambda x: (x**2, np.sum(x)), _X)
    with pytest.raises(DimensionMismatch, match="shape"):
        pb((np.ones(2), np.ones(2)))


def test_derived_closures_check_shapes(fd, pushforward_only) -> None:
    with pytest.raises(DimensionMismatch):
        fd.pushforward_function(_f, _X)(2.0)
    with pytest.raises(DimensionMismatch):
        pushforward_only.pullback_function(_f, _X)(1.0)


class _ProjectingPushforward(ForwardModeBackend):
    # f(x, y) = (sum(x), 2 * y)
    @primitive
    def pushforward_function(self, f, *xs):  # type: ignore[no-untyped-def]
        return lambda ds: np.sum(ds[0]) if len(ds) == 1 else 2.0 * ds[1]


class _ZeroPullback(ReverseModeBackend):
    @primitive
    def value_and_pullback_function(self, f, *xs):  # type: ignore[no-untyped-def]
        return f(*xs), lambda ws: tuple(np.zeros(np.shape(x)) for x in xs)


def test_empty_input_gives_zero_column_block() -> None:
    (block,) = jacobian(_ProjectingPushforward(), np.sum, np.zeros(0))
    assert np.shape(block) == (1, 0)

    jx, jy = jacobian(_ProjectingPushforward(), lambda x, y: 2.0 * y, np.zeros(0), _X)
    assert np.shape(jx) == (2, 0)
    np.testing.assert_allclose(jy, 2.0 * np.eye(2))


def test_empty_output_gives_zero_row_block() -> None:
    (block,) = jacobian(_ZeroPullback(), lambda x: x[:0], _X)
    assert np.shape(block) == (0, 2)


def test_direction_uses_promoted_dtype(fd) -> None:
    y = np.array([0.3, 0.7])
    pf = pushforward_function(fd, lambda x, y: np.sin(y), np.float32(0.5), y)
    out = pf((0.0, np.ones(2)))
    assert out.dtype == np.float64
    np.testing.assert_allclose(out, np.cos(y), rtol=1e-8)
