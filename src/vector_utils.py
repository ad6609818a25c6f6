"""Small helpers for working with 3-vectors stored as NumPy arrays.

All vectors are ``(3,)`` float arrays in a right-handed, y-up world frame.
"""

from __future__ import annotations

import numpy as np

WORLD_UP = np.array([0.0, 1.0, 0.0])
X_AXIS = np.array([1.0, 0.0, 0.0])


def normalize(v: np.ndarray, fallback: np.ndarray | None = None, eps: float = 1e-12) -> np.ndarray:
    """Return ``v`` scaled to unit length.

    If ``v`` is shorter than ``eps`` a copy of ``fallback`` is returned
    instead, or the zero vector when no fallback is given.
    """
    v = np.asarray(v, dtype=float)
    length = float(np.linalg.norm(v))
    if length < eps:
        if fallback is None:
            return np.zeros_like(v)
        return np.array(fallback, dtype=float)
    return v / length


def reject(v: np.ndarray, axis: np.ndarray) -> np.ndarray:
    """Remove the component of ``v`` along the unit vector ``axis``."""
    return v - axis * float(np.dot(v, axis))


def lerp(a: np.ndarray, b: np.ndarray, alpha: float) -> np.ndarray:
    """Linear interpolation ``a + (b - a) * alpha``."""
    return a + (b - a) * alpha
