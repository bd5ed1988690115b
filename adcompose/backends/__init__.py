from __future__ import annotations

"""Backend package providing library-specific primitive bindings.

Each sub-package binds a single primitive slot of `adcompose.core.Backend` to
one third-party differentiation library. The framework itself is imported only
when a primitive is first used.
"""

__all__ = []
