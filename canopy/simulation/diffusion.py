"""Diffusion of continuous cell fields.

Operates on raw NumPy arrays extracted from the grid.  Separated from
the engine so the smoothing kernel can be swapped or optimised
independently of the tick pipeline.
"""

from __future__ import annotations

import numpy as np
from numpy.typing import NDArray


def _window_sum(values: NDArray[np.float64]) -> NDArray[np.float64]:
    """Sum each cell's 3x3 window, treating out-of-bounds as zero."""
    h, w = values.shape
    padded = np.pad(values, 1, mode="constant", constant_values=0.0)
    total = np.zeros_like(values)
    for dy in range(3):
        for dx in range(3):
            total += padded[dy : dy + h, dx : dx + w]
    return total


def neighbourhood_mean(values: NDArray[np.float64]) -> NDArray[np.float64]:
    """Return the mean of each cell's in-bounds 3x3 neighbourhood.

    The count includes the cell itself, so a corner averages 4 values,
    an edge 6 and an interior cell 9.  Nothing wraps around.

    Args:
        values: 2D array of field values indexed ``[y, x]``.

    Returns:
        New array of the same shape.
    """
    counts = _window_sum(np.ones_like(values))
    return _window_sum(values) / counts


def diffuse(values: NDArray[np.float64], rate: float) -> NDArray[np.float64]:
    """Blend every cell toward its neighbourhood mean.

    Computes ``old + (mean - old) * rate`` from a single snapshot, so
    the result does not depend on any visiting order.

    Args:
        values: 2D array of field values.
        rate: Blend factor; ``0`` leaves the field unchanged.

    Returns:
        New array of the same shape.
    """
    if rate <= 0:
        return values.copy()
    return values + (neighbourhood_mean(values) - values) * rate
