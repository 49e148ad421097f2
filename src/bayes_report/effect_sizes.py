"""Effect size interpretation following Cohen (1988).

Coefficients of a model fitted on standardized data can be read as
Cohen's d. The helpers here label single values and, for posterior draws,
estimate the probability that the effect falls in each magnitude category.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Dict, List, Sequence, Tuple

import numpy as np
import pandas as pd

from bayes_report.formatting import format_digit
from bayes_report.posteriors import DEFAULT_CI, hdi, mad

LOGGER = logging.getLogger(__name__)

# Lower bounds of each magnitude category on the absolute d scale. The
# "very large" band extends Cohen's rules as proposed by Sawilowsky (2009).
D_THRESHOLDS: Tuple[Tuple[str, float], ...] = (
    ("VerySmall", 0.0),
    ("Small", 0.2),
    ("Medium", 0.5),
    ("Large", 0.8),
    ("VeryLarge", 1.3),
)

CATEGORY_LABELS: Dict[str, str] = {
    "VerySmall": "very small",
    "Small": "small",
    "Medium": "medium",
    "Large": "large",
    "VeryLarge": "very large",
    "Opposite": "opposite",
}


@dataclass
class EffectSizeInterpretation:
    """Probabilities of each effect size category for one posterior.

    ``probs`` maps category keys (``VeryLarge`` ... ``Opposite``) to
    percentages that sum to 100.
    """

    probs: Dict[str, float]
    table: pd.DataFrame
    text: str


def interpret_d(d: float) -> str:
    """Return the Cohen (1988) label for an effect size ``d``."""

    magnitude = abs(float(d))
    label = "very small"
    for key, lower in D_THRESHOLDS:
        if magnitude >= lower:
            label = CATEGORY_LABELS[key]
    return label


def _category_masks(draws: np.ndarray) -> Dict[str, np.ndarray]:
    """Return boolean masks assigning each draw to a category."""

    direction = 1.0 if float(np.mean(draws)) >= 0 else -1.0
    oriented = draws * direction
    masks: Dict[str, np.ndarray] = {"Opposite": oriented < 0}
    bounds = [lower for _, lower in D_THRESHOLDS] + [np.inf]
    for index, (key, lower) in enumerate(D_THRESHOLDS):
        upper = bounds[index + 1]
        masks[key] = (oriented >= lower) & (oriented < upper)
    return masks


def interpret_d_posterior(
    posterior: Sequence[float],
    ci: float = DEFAULT_CI,
) -> EffectSizeInterpretation:
    """Interpret the posterior draws of a standardized coefficient.

    The direction of the effect is given by the sign of the posterior mean.
    Draws on the other side of zero count as ``Opposite``; the remaining
    draws are binned by magnitude using :data:`D_THRESHOLDS`.

    Parameters
    ----------
    posterior:
        Posterior draws of the coefficient.
    ci:
        Credible interval width, in percent, for the per-category table.

    Returns
    -------
    EffectSizeInterpretation
        Category probabilities (percentages), a per-category table and a
        sentence listing the non-zero categories by decreasing probability.
    """

    draws = np.asarray(posterior, dtype=float).ravel()
    if draws.size == 0:
        msg = "Posterior must contain at least one draw"
        raise ValueError(msg)

    masks = _category_masks(draws)
    order = ["VeryLarge", "Large", "Medium", "Small", "VerySmall", "Opposite"]
    probs = {key: float(np.mean(masks[key])) * 100 for key in order}

    rows: List[Dict[str, object]] = []
    for key in order:
        selected = draws[masks[key]]
        if selected.size == 0:
            continue
        low, high = hdi(selected, prob=ci / 100)
        rows.append(
            {
                "Effect_Size": CATEGORY_LABELS[key],
                "Probability": probs[key],
                "Median": float(np.median(selected)),
                "MAD": mad(selected),
                "CI_lower": low,
                "CI_higher": high,
            }
        )
    table = pd.DataFrame(
        rows,
        columns=["Effect_Size", "Probability", "Median", "MAD", "CI_lower", "CI_higher"],
    )
    return EffectSizeInterpretation(
        probs=probs, table=table, text=_effect_size_text(probs)
    )


def _effect_size_text(probs: Dict[str, float]) -> str:
    """Return the narrative sentence for category probabilities."""

    ranked = sorted(
        ((key, value) for key, value in probs.items() if value > 0),
        key=lambda item: item[1],
        reverse=True,
    )
    parts = []
    for key, value in ranked:
        if key == "Opposite":
            parts.append(f"{format_digit(value)}% that it has an opposite direction")
        else:
            parts.append(
                f"{format_digit(value)}% that this effect size is "
                f"{CATEGORY_LABELS[key]}"
            )
    if len(parts) > 1:
        listing = ", ".join(parts[:-1]) + " and " + parts[-1]
    else:
        listing = parts[0]
    return f"   - There is a probability of {listing}."


def is_standardized(df: pd.DataFrame, tolerance: float = 0.01) -> bool:
    """Return whether every numeric column of ``df`` looks Z-scored.

    A column is considered standardized when its mean is within
    ``tolerance`` of 0 and its standard deviation within ``tolerance`` of
    1. Frames without numeric columns are not standardized.
    """

    numeric = df.select_dtypes(include="number")
    if numeric.shape[1] == 0:
        return False
    for column in numeric.columns:
        values = numeric[column].dropna()
        if values.size < 2:
            LOGGER.debug("Column %s has fewer than two values", column)
            return False
        if abs(float(values.mean())) > tolerance:
            return False
        if abs(float(values.std(ddof=1)) - 1.0) > tolerance:
            return False
    return True


__all__ = [
    "CATEGORY_LABELS",
    "D_THRESHOLDS",
    "EffectSizeInterpretation",
    "interpret_d",
    "interpret_d_posterior",
    "is_standardized",
]
