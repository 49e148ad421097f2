"""Shared visual styling constants for posterior plots."""

from __future__ import annotations

from typing import Tuple

from matplotlib import colormaps

# Overlay colors.
COLOR_BOX = "grey"
COLOR_MEAN = "red"
COLOR_ZERO_LINE = "black"

# Qualitative palette used to fill one violin per parameter.
SET1: Tuple[Tuple[float, float, float, float], ...] = tuple(
    tuple(color) + (1.0,) for color in colormaps["Set1"].colors
)


def color_for_index(index: int) -> Tuple[float, float, float, float]:
    """Return the Set1 color for the ``index``-th series, cycling as needed."""

    return SET1[index % len(SET1)]


__all__ = [
    "COLOR_BOX",
    "COLOR_MEAN",
    "COLOR_ZERO_LINE",
    "SET1",
    "color_for_index",
]
