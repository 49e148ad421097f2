"""
Tests for the analysis of fitted Bayesian regressions.
"""

from __future__ import annotations

import logging
import warnings
from typing import Iterator

import matplotlib.pyplot as plt
import numpy as np
import pandas as pd
import pytest
from matplotlib import MatplotlibDeprecationWarning

from bayes_report.analyze import (
    EFFSIZE_COLUMNS,
    SUMMARY_COLUMNS,
    analyze,
    get_summary,
    get_text,
    get_values,
)
from bayes_report.fit import ModelFit, PriorSpec, PriorSummary
from bayes_report.standardize import standardize

N_DRAWS = 2000


@pytest.fixture(autouse=True)
def close_figures() -> Iterator[None]:
    yield
    plt.close("all")


def _draws(with_r2: bool = True) -> pd.DataFrame:
    rng = np.random.default_rng(666)
    draws = pd.DataFrame(
        {
            "(Intercept)": rng.normal(0.0, 0.1, N_DRAWS),
            "advance": rng.normal(-0.1, 0.1, N_DRAWS),
            "privileges": rng.normal(0.5, 0.1, N_DRAWS),
            "sigma": rng.normal(0.8, 0.05, N_DRAWS),
        }
    )
    if with_r2:
        draws["R2"] = rng.beta(20, 40, N_DRAWS)
    return draws


def _priors() -> PriorSummary:
    return PriorSummary(
        prior=PriorSpec(distribution="normal", location=[0, 0], scale=[1, 1]),
        prior_intercept=PriorSpec(distribution="normal", location=[0], scale=[10]),
    )


def _fit(**overrides) -> ModelFit:
    settings = {
        "formula": "rating ~ advance + privileges",
        "family": "gaussian",
        "link": "identity",
        "draws": _draws(),
        "priors": _priors(),
    }
    settings.update(overrides)
    return ModelFit(**settings)


def test_analyze_reports_every_coefficient_and_r2() -> None:
    """Values and summary cover the coefficients followed by R2."""

    result = analyze(_fit())
    values = get_values(result)

    assert list(values) == ["(Intercept)", "advance", "privileges", "R2"]
    assert values["privileges"].median == pytest.approx(0.5, abs=0.02)
    assert values["advance"].mpe > 80
    assert values["advance"].mpe_values[1] == 0.0
    assert values["R2"].available

    summary = get_summary(result)
    assert list(summary.columns) == SUMMARY_COLUMNS
    assert summary["Variable"].tolist() == ["(Intercept)", "advance", "privileges", "R2"]
    assert result.random is None


def test_analyze_attaches_priors() -> None:
    """Predictor and intercept priors are looked up by position."""

    values = analyze(_fit()).values

    assert values["advance"].prior == {
        "distribution": "normal",
        "location": 0,
        "scale": 1,
        "adjusted_scale": None,
    }
    assert values["(Intercept)"].prior["scale"] == 10
    assert values["R2"].prior == {}


def test_analyze_text_layout() -> None:
    """The narrative starts with the model, priors, R2 and intercept."""

    result = analyze(_fit())
    text = result.text

    assert text[0] == (
        "We fitted a Markov Chain Monte Carlo gaussian (link = identity) model "
        "to predict rating (formula = rating ~ advance + privileges). "
        "Priors were set as follows: "
    )
    assert text[2] == "  ~ normal (location = (0, 0), scale = (1.00, 1.00))"
    assert text[5].startswith("The model explains between ")
    assert "The model's intercept is at " in text[5]
    assert text[5].endswith("Within this model:")
    assert text[7].startswith("   - The effect of advance has a probability of ")
    assert "90% CI [" in text[7]
    assert text[8].startswith("   - The effect of privileges")
    assert get_text(result) == "\n".join(text)


def test_analyze_prior_locations_keep_their_precision() -> None:
    """Prior locations are printed as given while scales use two decimals."""

    priors = PriorSummary(
        prior=PriorSpec(distribution="normal", location=[2.5, 0], scale=[1, 2.5])
    )
    text = analyze(_fit(priors=priors)).text

    assert text[2] == "  ~ normal (location = (2.5, 0), scale = (1.00, 2.50))"


def test_analyze_plot_uses_current_matplotlib_api() -> None:
    """Rendering the horizontal posterior plot emits no deprecation warnings."""

    with warnings.catch_warnings():
        warnings.simplefilter("error", MatplotlibDeprecationWarning)
        result = analyze(_fit())

    assert len(result.plot.axes[0].get_yticklabels()) == 4


def test_analyze_custom_ci_in_text() -> None:
    """The credible interval width appears in each sentence."""

    result = analyze(_fit(), ci=95)

    assert "95% CI [" in result.values["privileges"].text


def test_analyze_describes_interactions() -> None:
    """Two-way interactions are named in the narrative."""

    draws = _draws()
    draws["advance:privileges"] = np.random.default_rng(2).normal(0.2, 0.1, N_DRAWS)
    fit = _fit(formula="rating ~ advance * privileges", draws=draws)

    result = analyze(fit)

    assert result.values["advance:privileges"].text.startswith(
        "   - The interaction effect between advance and privileges"
    )


def test_analyze_without_r2() -> None:
    """An unavailable R2 is reported nowhere but kept as an empty value."""

    result = analyze(_fit(draws=_draws(with_r2=False), priors=None))

    r2 = result.values["R2"]
    assert not r2.available
    assert r2.text == ""
    assert "R2" not in result.summary["Variable"].tolist()
    assert result.text[0] == (
        "We fitted a Markov Chain Monte Carlo gaussian (link = identity) model "
        "to predict rating (formula = rating ~ advance + privileges)."
    )
    assert result.text[3] == result.values["(Intercept)"].text
    labels = [label.get_text() for label in result.plot.axes[0].get_yticklabels()]
    assert labels == ["(Intercept)", "advance", "privileges"]


def test_analyze_computes_bayes_r2_from_fitted_values() -> None:
    """R2 is derived from fitted values and model data when missing."""

    rng = np.random.default_rng(5)
    outcome = rng.normal(size=30)
    fitted = outcome[np.newaxis, :] * 0.8 + rng.normal(0, 0.3, size=(N_DRAWS, 30))
    data = pd.DataFrame(
        {"rating": outcome, "advance": rng.normal(size=30), "privileges": rng.normal(size=30)}
    )

    result = analyze(_fit(draws=_draws(with_r2=False), fitted=fitted, data=data))

    r2 = result.values["R2"]
    assert r2.available
    assert 0.0 < r2.median < 1.0
    assert result.summary["Variable"].tolist()[-1] == "R2"


def test_analyze_effect_sizes(caplog: pytest.LogCaptureFixture) -> None:
    """Effect sizes add probability columns and sentences."""

    rng = np.random.default_rng(9)
    data = pd.DataFrame(
        {
            "rating": rng.normal(60, 10, 30),
            "advance": rng.normal(40, 5, 30),
            "privileges": rng.normal(50, 8, 30),
        }
    )
    with caplog.at_level(logging.WARNING, logger="bayes_report.analyze"):
        result = analyze(_fit(data=data), effsize=True)

    assert "not standardized" in caplog.text
    summary = result.summary
    assert list(summary.columns) == SUMMARY_COLUMNS + list(EFFSIZE_COLUMNS)
    coefficient_rows = summary[summary["Variable"] != "R2"]
    totals = coefficient_rows[list(EFFSIZE_COLUMNS)].sum(axis=1)
    np.testing.assert_allclose(totals.to_numpy(), 100.0)
    assert summary.loc[summary["Variable"] == "R2", "Large"].isna().all()

    privileges = result.values["privileges"]
    assert privileges.effsize_probs["Medium"] > 40
    assert (privileges.effsize["Variable"] == "privileges").all()
    assert privileges.effsize_text in result.text
    assert result.values["R2"].effsize is None
    assert "Effect sizes are based on Cohen (1988) recommendations." in result.text[0]


def test_analyze_effect_sizes_on_standardized_data(
    caplog: pytest.LogCaptureFixture,
) -> None:
    """No warning is logged when the model data is standardized."""

    rng = np.random.default_rng(9)
    data = standardize(
        pd.DataFrame(
            {
                "rating": rng.normal(60, 10, 30),
                "advance": rng.normal(40, 5, 30),
                "privileges": rng.normal(50, 8, 30),
            }
        )
    )
    with caplog.at_level(logging.WARNING, logger="bayes_report.analyze"):
        analyze(_fit(data=data), effsize=True)

    assert "not standardized" not in caplog.text


def test_analyze_mixed_model_reports_group_level_effects() -> None:
    """Group-level draws are summarised separately from coefficients."""

    rng = np.random.default_rng(11)
    draws = _draws()
    for level, center in (("setosa", -0.5), ("versicolor", 0.1), ("virginica", 0.4)):
        draws[f"b[(Intercept) Species:{level}]"] = rng.normal(center, 0.05, N_DRAWS)
    fit = _fit(formula="rating ~ advance + privileges + (1 | Species)", draws=draws)

    result = analyze(fit)

    assert "b[(Intercept) Species:setosa]" not in result.values
    random = result.random
    assert random["level"].tolist() == ["setosa", "versicolor", "virginica"]
    assert random["group"].unique().tolist() == ["Species"]
    assert random.loc[random["level"] == "setosa", "Median"].iloc[0] == pytest.approx(
        -0.5, abs=0.02
    )


def test_analyze_rejects_invalid_ci() -> None:
    """The credible interval must be a percentage."""

    with pytest.raises(ValueError):
        analyze(_fit(), ci=0)
