from __future__ import annotations

"""Lazy backend resolution utilities.

Binding modules are imported only on demand to keep cold import time minimal
and to avoid importing optional autodiff frameworks unless actually used.
"""

import logging
from importlib import import_module
from typing import Any, Dict, List, Tuple

from .core.backend import Backend

logger = logging.getLogger(__name__)


class MissingBackend(RuntimeError):
    """Raised when a suitable backend cannot be found or imported."""


_JAX_HINT = "Install with: pip install 'adcompose[jax]'."
_TORCH_HINT = (
    "Install with: pip install 'adcompose[torch]' and ensure torch is installed "
    "(see https://pytorch.org/get-started/)."
)
_TF_HINT = "Install with: pip install 'adcompose[tf]' and ensure tensorflow is installed."

# name -> (binding module, class, framework module, install hint)
_REGISTRY: Dict[str, Tuple[str, str, str, str]] = {
    "finite_difference": (
        "adcompose.backends.finite_difference",
        "ScipyFiniteDifferenceBackend",
        "scipy.differentiate",
        "Install with: pip install 'scipy>=1.15'.",
    ),
    "jax-forward": ("adcompose.backends.jax", "JaxForwardBackend", "jax", _JAX_HINT),
    "jax-reverse": ("adcompose.backends.jax", "JaxReverseBackend", "jax", _JAX_HINT),
    "jax-jacobian": ("adcompose.backends.jax", "JaxJacobianBackend", "jax", _JAX_HINT),
    "torch-forward": ("adcompose.backends.torch", "TorchForwardBackend", "torch", _TORCH_HINT),
    "torch-reverse": ("adcompose.backends.torch", "TorchReverseBackend", "torch", _TORCH_HINT),
    "tf-forward": ("adcompose.backends.tf", "TFForwardBackend", "tensorflow", _TF_HINT),
    "tf-reverse": ("adcompose.backends.tf", "TFReverseBackend", "tensorflow", _TF_HINT),
}

_ALIASES: Dict[str, str] = {
    "fd": "finite_difference",
    "jax": "jax-reverse",
    "torch": "torch-reverse",
    "tf": "tf-reverse",
}


def available_backends() -> List[str]:
    """Names accepted by `get_backend_or_raise` (aliases excluded)."""

    return sorted(_REGISTRY)


def get_backend_or_raise(name: str, **options: Any) -> Backend:
    """Instantiate the backend registered under ``name``.

    ``options`` are forwarded to the backend constructor. The framework and
    the binding module are imported on first use.
    """

    key = _ALIASES.get(name, name)
    try:
        module_name, class_name, framework, hint = _REGISTRY[key]
    except KeyError:
        raise MissingBackend(
            f"Unknown backend {name!r}. Expected one of: {', '.join(available_backends())}."
        ) from None

    try:
        import_module(framework)
        module = import_module(module_name)
    except ImportError as exc:
        raise MissingBackend(f"Backend {name!r} is not available. {hint}") from exc

    logger.debug("resolved backend %r to %s.%s", name, module_name, class_name)
    backend_cls = getattr(module, class_name)
    return backend_cls(**options)  # type: ignore[no-any-return]


__all__ = [
    "MissingBackend",
    "available_backends",
    "get_backend_or_raise",
]
