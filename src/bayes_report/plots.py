"""Matplotlib rendering of posterior distributions.

The posterior plot shows one horizontal violin per parameter with a
translucent boxplot on top, a dashed marker at the posterior mean and a
reference line at zero.
"""

from __future__ import annotations

import logging
from pathlib import Path
from typing import Sequence

import matplotlib.pyplot as plt
import numpy as np
import pandas as pd

from bayes_report.style import COLOR_BOX, COLOR_MEAN, COLOR_ZERO_LINE, color_for_index

LOGGER = logging.getLogger(__name__)

# Half-height of the dashed mean marker, relative to the violin spacing.
MEAN_MARKER_HALF_WIDTH = 0.375


def plot_posteriors(draws: pd.DataFrame, variables: Sequence[str]) -> plt.Figure:
    """Return a figure comparing the posterior draws of ``variables``.

    Parameters
    ----------
    draws:
        Posterior draws with one column per parameter.
    variables:
        Columns to plot, drawn from bottom to top in the given order.

    Returns
    -------
    matplotlib.figure.Figure
        The rendered figure. Callers own it and should close it, for example
        through :func:`save_figure`.
    """

    plt.switch_backend("Agg")
    names = [name for name in variables if name in draws.columns]
    if not names:
        msg = "No posterior draws to plot"
        raise ValueError(msg)
    series = [draws[name].dropna().to_numpy(dtype=float) for name in names]
    positions = np.arange(1, len(names) + 1)

    height = max(3.0, 0.8 * len(names) + 1.0)
    fig, ax = plt.subplots(figsize=(7.0, height))

    violins = ax.violinplot(
        series,
        positions=positions,
        orientation="horizontal",
        showextrema=False,
    )
    for index, body in enumerate(violins["bodies"]):
        body.set_facecolor(color_for_index(index))
        body.set_edgecolor("black")
        body.set_alpha(1.0)

    ax.boxplot(
        series,
        positions=positions,
        orientation="horizontal",
        widths=0.3,
        patch_artist=True,
        showfliers=False,
        boxprops={"facecolor": COLOR_BOX, "alpha": 0.3},
        medianprops={"color": "black"},
    )

    for position, values in zip(positions, series):
        ax.vlines(
            float(np.mean(values)),
            position - MEAN_MARKER_HALF_WIDTH,
            position + MEAN_MARKER_HALF_WIDTH,
            colors=COLOR_MEAN,
            linestyles="dashed",
        )
    ax.axvline(0.0, color=COLOR_ZERO_LINE, linewidth=1.0)

    ax.set_yticks(positions)
    ax.set_yticklabels(names)
    ax.set_xlabel("Coefficient")
    ax.set_ylabel("Variable")
    ax.spines["top"].set_visible(False)
    ax.spines["right"].set_visible(False)
    fig.tight_layout()
    return fig


def save_figure(output_path: Path, fig: plt.Figure) -> Path:
    """Expand, create parent directories, save and close a figure."""

    resolved = Path(output_path).expanduser().resolve()
    resolved.parent.mkdir(parents=True, exist_ok=True)
    fig.savefig(resolved, dpi=150)
    plt.close(fig)
    LOGGER.info("Wrote figure to %s", resolved)
    return resolved


__all__ = ["plot_posteriors", "save_figure"]
