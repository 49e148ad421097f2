"""Descriptive indices of posterior distributions.

These helpers work on a one-dimensional array of posterior draws for a
single parameter and return the centrality, dispersion and uncertainty
indices reported for every coefficient of a model.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Sequence, Tuple

import numpy as np
from statsmodels.robust.scale import mad as _robust_mad

DEFAULT_CI = 90


@dataclass(frozen=True)
class PosteriorIndices:
    """Summary statistics for the draws of one parameter.

    ``mpe`` is a percentage; ``ci_values`` and ``mpe_values`` are
    ``(low, high)`` pairs on the parameter scale.
    """

    median: float
    mad: float
    mean: float
    sd: float
    ci_values: Tuple[float, float]
    mpe: float
    mpe_values: Tuple[float, float]


def _as_draws(posterior: Sequence[float]) -> np.ndarray:
    """Return ``posterior`` as a flat float array, rejecting empty input."""

    draws = np.asarray(posterior, dtype=float).ravel()
    if draws.size == 0:
        msg = "Posterior must contain at least one draw"
        raise ValueError(msg)
    return draws


def hdi(posterior: Sequence[float], prob: float = 0.95) -> Tuple[float, float]:
    """Return the Highest Density Interval of ``posterior``.

    Uses the sorted-interval method: among all intervals spanning
    ``ceil(prob * n)`` consecutive sorted draws, the narrowest one is
    returned.

    Parameters
    ----------
    posterior:
        Posterior draws.
    prob:
        Probability mass to include, in ``(0, 1]``.

    Returns
    -------
    Tuple[float, float]
        ``(lower, upper)`` bounds of the interval.
    """

    if not 0.0 < prob <= 1.0:
        msg = f"prob must be in (0, 1], got {prob!r}"
        raise ValueError(msg)
    sorted_draws = np.sort(_as_draws(posterior))
    n_draws = len(sorted_draws)
    interval_size = int(np.ceil(round(prob * n_draws, 9)))
    if interval_size >= n_draws:
        return float(sorted_draws[0]), float(sorted_draws[-1])

    widths = sorted_draws[interval_size - 1 :] - sorted_draws[: n_draws - interval_size + 1]
    best = int(np.argmin(widths))
    return float(sorted_draws[best]), float(sorted_draws[best + interval_size - 1])


def mad(posterior: Sequence[float]) -> float:
    """Return the normal-consistent median absolute deviation.

    The raw MAD is divided by the 0.75 normal quantile, which matches the
    1.4826 constant used by R's ``mad``.
    """

    return float(_robust_mad(_as_draws(posterior), center=np.median))


def mpe(posterior: Sequence[float]) -> Tuple[float, Tuple[float, float]]:
    """Return the maximum probability of effect and its value range.

    The MPE is the percentage of draws on the dominant side of zero. The
    returned range spans from zero to the most extreme draw on that side:
    ``(0, max)`` when positive draws dominate, ``(min, 0)`` otherwise.
    """

    draws = _as_draws(posterior)
    positive = float(np.mean(draws > 0)) * 100
    negative = float(np.mean(draws < 0)) * 100
    if positive > negative:
        return positive, (0.0, float(draws.max()))
    return negative, (float(draws.min()), 0.0)


def describe_posterior(
    posterior: Sequence[float],
    ci: float = DEFAULT_CI,
) -> PosteriorIndices:
    """Return :class:`PosteriorIndices` for ``posterior``.

    ``ci`` is the credible interval width in percent; the interval is the
    HDI at ``ci / 100``.
    """

    if not 0 < ci <= 100:
        msg = f"ci must be a percentage in (0, 100], got {ci!r}"
        raise ValueError(msg)
    draws = _as_draws(posterior)
    mpe_value, mpe_values = mpe(draws)
    sd = float(np.std(draws, ddof=1)) if draws.size > 1 else float("nan")
    return PosteriorIndices(
        median=float(np.median(draws)),
        mad=mad(draws),
        mean=float(np.mean(draws)),
        sd=sd,
        ci_values=hdi(draws, prob=ci / 100),
        mpe=mpe_value,
        mpe_values=mpe_values,
    )


__all__ = [
    "DEFAULT_CI",
    "PosteriorIndices",
    "describe_posterior",
    "hdi",
    "mad",
    "mpe",
]
