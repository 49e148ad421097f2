"""
Tests for model fit containers and adapters.
"""

from __future__ import annotations

import json
from pathlib import Path

import arviz as az
import numpy as np
import pandas as pd
import pytest

from bayes_report.fit import (
    ModelFit,
    PriorSpec,
    PriorSummary,
    bayes_r2,
    fit_from_inference_data,
    formula_variables,
    load_model_fit,
    parse_group_level_name,
)


def _draws(n: int = 100) -> pd.DataFrame:
    rng = np.random.default_rng(7)
    return pd.DataFrame(
        {
            "(Intercept)": rng.normal(0.0, 0.1, n),
            "x": rng.normal(0.4, 0.1, n),
            "sigma": rng.normal(1.0, 0.05, n),
            "b[(Intercept) g:a]": rng.normal(0.1, 0.1, n),
            "b[(Intercept) g:b]": rng.normal(-0.1, 0.1, n),
            "R2": rng.beta(5, 10, n),
        }
    )


@pytest.mark.parametrize(
    ("formula", "expected"),
    [
        ("vs ~ mpg * cyl", ["vs", "mpg", "cyl"]),
        ("Sepal.Length ~ Sepal.Width + (1 | Species)", ["Sepal.Length", "Sepal.Width", "Species"]),
        ("log(y) ~ x + I(z^2) + x:z", ["y", "x", "z"]),
        ("`my var` ~ 0 + x", ["my var", "x"]),
    ],
)
def test_formula_variables(formula: str, expected: list[str]) -> None:
    """Variables are listed once, outcome first, without function names."""

    assert formula_variables(formula) == expected


def test_parse_group_level_name_supports_both_conventions() -> None:
    """Group-level names from rstanarm and bambi are both recognised."""

    assert parse_group_level_name("b[(Intercept) Species:setosa]") == {
        "term": "(Intercept)",
        "group": "Species",
        "level": "setosa",
    }
    assert parse_group_level_name("1|Species[virginica]") == {
        "term": "1",
        "group": "Species",
        "level": "virginica",
    }
    assert parse_group_level_name("Sepal.Width") is None


def test_model_fit_infers_population_coefficients() -> None:
    """Auxiliary, group-level and R2 columns are not coefficients."""

    fit = ModelFit(formula="y ~ x + (1 | g)", family="gaussian", link="identity", draws=_draws())

    assert fit.coefficients == ["(Intercept)", "x"]
    assert fit.outcome == "y"
    assert fit.predictors == ["x", "g"]
    assert fit.group_level_names() == ["b[(Intercept) g:a]", "b[(Intercept) g:b]"]
    assert fit.posterior("x").shape == (100,)


def test_model_fit_rejects_unknown_parameters() -> None:
    """Missing coefficients and parameters are reported."""

    with pytest.raises(ValueError, match="missing"):
        ModelFit(
            formula="y ~ z",
            family="gaussian",
            link="identity",
            draws=_draws(),
            coefficients=["(Intercept)", "z"],
        )
    fit = ModelFit(formula="y ~ x", family="gaussian", link="identity", draws=_draws())
    with pytest.raises(KeyError):
        fit.posterior("z")


def test_prior_spec_from_dict_accepts_scalar_and_dist_alias() -> None:
    """Prior payloads may use ``dist`` and scalar locations."""

    spec = PriorSpec.from_dict({"dist": "normal", "location": 0, "scale": 2.5})
    assert spec.location == [0.0]
    assert spec.scale == [2.5]
    assert spec.adjusted_scale is None
    assert spec.distributions() == ["normal"]

    summary = PriorSummary.from_dict(
        {"prior": {"distribution": ["normal", "student_t"], "location": [0, 0], "scale": [1, 2]}}
    )
    assert summary.prior.distributions() == ["normal", "student_t"]
    assert summary.prior_intercept is None


def test_bayes_r2_gaussian_and_binomial() -> None:
    """R2 is one for a perfect fit and zero without explained variance."""

    outcome = np.array([1.0, 2.0, 3.0, 4.0])
    perfect = np.tile(outcome, (5, 1))
    np.testing.assert_allclose(bayes_r2(perfect, outcome, "gaussian"), np.ones(5))

    flat = np.full((5, 4), 0.5)
    np.testing.assert_allclose(
        bayes_r2(flat, [0, 1, 0, 1], "binomial"), np.zeros(5)
    )


def test_bayes_r2_rejects_bad_inputs() -> None:
    """Shape mismatches and unsupported families raise ValueError."""

    with pytest.raises(ValueError):
        bayes_r2(np.ones((3, 2)), [1.0, 2.0, 3.0])
    with pytest.raises(ValueError):
        bayes_r2(np.ones(3), [1.0, 2.0, 3.0])
    with pytest.raises(ValueError, match="not supported"):
        bayes_r2(np.ones((3, 2)), [1.0, 2.0], "gamma")


def test_fit_from_inference_data_flattens_chains_and_vectors() -> None:
    """Chains are stacked and vector variables become ``name[coord]``."""

    rng = np.random.default_rng(3)
    idata = az.from_dict(
        posterior={
            "Intercept": rng.normal(size=(2, 50)),
            "x": rng.normal(size=(2, 50)),
            "sigma": np.abs(rng.normal(size=(2, 50))),
            "1|g": rng.normal(size=(2, 50, 3)),
            "mu": rng.normal(size=(2, 50, 4)),
        },
        coords={"g__factor_dim": ["a", "b", "c"], "__obs__": [0, 1, 2, 3]},
        dims={"1|g": ["g__factor_dim"], "mu": ["__obs__"]},
    )

    fit = fit_from_inference_data(idata, "y ~ x + (1 | g)", fitted_var="mu")

    assert len(fit.draws) == 100
    assert fit.coefficients == ["(Intercept)", "x"]
    assert fit.group_level_names() == ["1|g[a]", "1|g[b]", "1|g[c]"]
    assert "mu" not in fit.draws.columns
    assert fit.fitted.shape == (100, 4)


def test_load_model_fit_reads_draws_and_metadata(tmp_path: Path) -> None:
    """Exported draws and JSON metadata build a ModelFit."""

    draws_path = tmp_path / "draws.csv"
    _draws().to_csv(draws_path, index=False)
    metadata_path = tmp_path / "model.json"
    metadata_path.write_text(
        json.dumps(
            {
                "formula": "y ~ x",
                "family": "gaussian",
                "link": "identity",
                "priors": {
                    "prior": {"distribution": "normal", "location": [0], "scale": [1]},
                    "prior_intercept": {"distribution": "normal", "location": 0, "scale": 10},
                },
            }
        ),
        encoding="utf-8",
    )

    fit = load_model_fit(draws_path, metadata_path)

    assert fit.coefficients == ["(Intercept)", "x"]
    assert fit.priors.prior_intercept.scale == [10.0]
    assert fit.data is None


def test_load_model_fit_reports_bad_inputs(tmp_path: Path) -> None:
    """Missing files and incomplete metadata raise clear errors."""

    draws_path = tmp_path / "draws.csv"
    _draws().to_csv(draws_path, index=False)
    metadata_path = tmp_path / "model.json"
    metadata_path.write_text(json.dumps({"formula": "y ~ x"}), encoding="utf-8")

    with pytest.raises(ValueError, match="family"):
        load_model_fit(draws_path, metadata_path)
    with pytest.raises(FileNotFoundError):
        load_model_fit(tmp_path / "missing.csv", metadata_path)
