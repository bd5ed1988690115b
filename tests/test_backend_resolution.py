from __future__ import annotations

import sys

import pytest

import adcompose
from adcompose import HigherOrderBackend, MissingBackend, available_backends, get_backend_or_raise
from adcompose.backends.finite_difference import ScipyFiniteDifferenceBackend


def test_finite_difference_resolves_with_options() -> None:
    b = get_backend_or_raise("finite_difference", order=4, maxiter=5)
    assert isinstance(b, ScipyFiniteDifferenceBackend)
    assert b.order == 4 and b.maxiter == 5


def test_alias_resolves() -> None:
    assert isinstance(get_backend_or_raise("fd"), ScipyFiniteDifferenceBackend)


def test_unknown_backend_raises() -> None:
    with pytest.raises(MissingBackend, match="Unknown backend"):
        get_backend_or_raise("does-not-exist")


@pytest.mark.parametrize(
    ("name", "module"),
    [("torch", "torch"), ("jax-forward", "jax"), ("tf-reverse", "tensorflow")],
)
def test_missing_framework_raises(monkeypatch, name, module) -> None:
    monkeypatch.setitem(sys.modules, module, None)
    with pytest.raises(MissingBackend, match="pip install"):
        get_backend_or_raise(name)


def test_missing_backend_is_runtime_error() -> None:
    assert issubclass(MissingBackend, RuntimeError)


def test_available_backends_lists_registered_names() -> None:
    names = available_backends()
    assert "finite_difference" in names
    assert {"jax-forward", "jax-reverse", "jax-jacobian"} <= set(names)
    assert {"torch-forward", "torch-reverse", "tf-forward", "tf-reverse"} <= set(names)
    assert names == sorted(names)


def test_backend_helper_forwards_options() -> None:
    b = adcompose.backend("finite_difference", initial_step=0.25)
    assert b.initial_step == 0.25


def test_higher_order_accepts_names_and_instances() -> None:
    inner = ScipyFiniteDifferenceBackend(order=4)
    ho = adcompose.higher_order("finite_difference", inner)
    assert isinstance(ho, HigherOrderBackend)
    assert ho.backends[1] is inner
    assert isinstance(ho.backends[0], ScipyFiniteDifferenceBackend)


@pytest.mark.parametrize(
    "options",
    [
        {"order": 0},
        {"maxiter": -1},
        {"initial_step": 0.0},
        {"step_factor": -2.0},
        {"tolerances": {"eps": 1e-3}},
    ],
)
def test_finite_difference_options_are_validated(options) -> None:
    with pytest.raises(ValueError):
        ScipyFiniteDifferenceBackend(**options)


def test_finite_difference_backend_is_frozen() -> None:
    b = ScipyFiniteDifferenceBackend()
    with pytest.raises(AttributeError):
        b.order = 2  # type: ignore[misc]


def test_version_is_a_string() -> None:
    assert isinstance(adcompose.__version__, str)
