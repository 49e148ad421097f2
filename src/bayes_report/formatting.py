"""Shared numeric formatting helpers for reports and tables.

Narrative sentences use :func:`format_digit`, which collapses negligible
values to ``"0"`` and keeps small values readable by switching to
significant digits. Tables written to CSV use :func:`round3` so that all
artefacts share a three-decimal convention.
"""

from __future__ import annotations

import math
from numbers import Real
from typing import Any

import numpy as np

# Values below this magnitude are reported as "0" in narratives.
NULL_THRESHOLD = 0.001
# Values above this magnitude are reported as "Inf.".
INF_THRESHOLD = 9e8


def format_digit(
    x: Any,
    digits: int = 2,
    null_threshold: float = NULL_THRESHOLD,
    inf_threshold: float = INF_THRESHOLD,
) -> Any:
    """Return ``x`` formatted for inclusion in a sentence.

    Parameters
    ----------
    x:
        Value to format. Non-numeric values (including strings such as
        ``"unavailable"``) are returned unchanged.
    digits:
        Number of decimals for values of magnitude one or more, and number of
        significant digits for smaller values.
    null_threshold:
        Magnitudes strictly below this threshold are rendered as ``"0"``.
    inf_threshold:
        Magnitudes strictly above this threshold are rendered as ``"Inf."``.

    Returns
    -------
    Any
        Formatted string, or ``x`` itself when it is not a real number.
    """

    if isinstance(x, bool) or not isinstance(x, (Real, np.number)):
        return x
    value = float(x)
    if not math.isfinite(value):
        return str(value)
    if abs(value) < null_threshold:
        return "0"
    if abs(value) > inf_threshold:
        return "Inf."
    if abs(value) < 1:
        # "#" keeps trailing zeros so 0.5 reads "0.50".
        return f"{value:#.{digits}g}"
    return f"{value:.{digits}f}"


def round3(value: float) -> float:
    """Return ``value`` rounded to three decimal places."""

    return round(value, 3)


__all__ = ["NULL_THRESHOLD", "INF_THRESHOLD", "format_digit", "round3"]
