from __future__ import annotations

import numpy as np
import pytest

pytestmark = pytest.mark.integration


def _import_tf():
    return pytest.importorskip("tensorflow")


def test_jacobian_forward_and_reverse():
    tf = _import_tf()
    import adcompose as ad
    from adcompose.backends.tf import TFForwardBackend, TFReverseBackend

    x = np.array([1.0, 2.0])
    f = lambda x: tf.stack([x[0] ** 2, x[0] * x[1]])  # noqa: E731
    for b in (TFForwardBackend(), TFReverseBackend()):
        (block,) = ad.jacobian(b, f, x)
        np.testing.assert_allclose(np.asarray(block), [[2.0, 0.0], [2.0, 1.0]])


def test_gradient_reverse():
    _import_tf()
    import adcompose as ad

    (g,) = ad.gradient(ad.backend("tf"), lambda x: x[0] ** 2 * x[1], np.array([1.0, 2.0]))
    np.testing.assert_allclose(np.asarray(g), [4.0, 1.0])


def test_pushforward_of_two_inputs():
    _import_tf()
    import adcompose as ad

    pf = ad.pushforward_function(ad.backend("tf-forward"), lambda x, y: x * y, np.float64(2.0), np.float64(5.0))
    assert float(pf((1.0, 1.0))) == pytest.approx(7.0)


def test_integer_inputs_are_promoted():
    _import_tf()
    import adcompose as ad

    for name in ("tf-forward", "tf-reverse"):
        (d,) = ad.derivative(ad.backend(name), lambda x: x * x, 3)
        assert float(d) == pytest.approx(6.0)
