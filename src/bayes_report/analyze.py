"""Analysis of fitted Bayesian regression models.

:func:`analyze` summarises every population-level coefficient of a
:class:`~bayes_report.fit.ModelFit` (median, MAD, mean, SD, HDI and maximum
probability of effect), adds the Bayesian R2 when it can be obtained,
optionally interprets coefficients as Cohen's d, and assembles the results
into a table, a narrative and a posterior plot.

Typical usage::

    data = standardize(raw)
    fit = fit_from_inference_data(idata, "rating ~ advance + privileges")
    result = analyze(fit, effsize=True)
    print(result)
    result.summary
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from typing import Any, Dict, List, Optional

import matplotlib.pyplot as plt
import numpy as np
import pandas as pd

from bayes_report.effect_sizes import interpret_d_posterior, is_standardized
from bayes_report.fit import INTERCEPT, ModelFit, bayes_r2, parse_group_level_name
from bayes_report.formatting import format_digit
from bayes_report.plots import plot_posteriors
from bayes_report.posteriors import DEFAULT_CI, describe_posterior, mad

LOGGER = logging.getLogger(__name__)

R2 = "R2"

# Narrative numbers below this magnitude are printed as "0".
NULL_THRESHOLD = 0.0001

SUMMARY_COLUMNS = ["Variable", "MPE", "Median", "MAD", "Mean", "SD", "CI_lower", "CI_higher"]
EFFSIZE_COLUMNS = {
    "Very_Large": "VeryLarge",
    "Large": "Large",
    "Medium": "Medium",
    "Small": "Small",
    "Very_Small": "VerySmall",
    "Opposite": "Opposite",
}


@dataclass
class CoefficientValues:
    """Indices, narrative and prior of a single model parameter.

    Numeric fields are ``None`` when the parameter is unavailable (an R2
    that could not be computed). Effect size fields are only filled when
    effect sizes were requested, and stay ``None`` for the R2.
    """

    name: str
    posterior: np.ndarray
    median: Optional[float] = None
    mad: Optional[float] = None
    mean: Optional[float] = None
    sd: Optional[float] = None
    ci_values: Optional[tuple] = None
    mpe: Optional[float] = None
    mpe_values: Optional[tuple] = None
    text: str = ""
    prior: Dict[str, Any] = field(default_factory=dict)
    effsize: Optional[pd.DataFrame] = None
    effsize_text: Optional[str] = None
    effsize_probs: Optional[Dict[str, float]] = None

    @property
    def available(self) -> bool:
        return self.median is not None


@dataclass
class AnalysisResult:
    """Output of :func:`analyze`.

    ``text`` is a list of narrative lines, ``summary`` one row per reported
    parameter, ``values`` the full per-parameter details keyed by name and
    ``random`` the group-level effects of mixed models.
    """

    text: List[str]
    plot: plt.Figure
    summary: pd.DataFrame
    values: Dict[str, CoefficientValues]
    random: Optional[pd.DataFrame] = None

    def __str__(self) -> str:
        return "\n".join(self.text)


def get_values(result: AnalysisResult) -> Dict[str, CoefficientValues]:
    return result.values


def get_summary(result: AnalysisResult) -> pd.DataFrame:
    return result.summary


def get_text(result: AnalysisResult) -> str:
    return str(result)


def get_plot(result: AnalysisResult) -> plt.Figure:
    return result.plot


def _fmt(value: float) -> str:
    return format_digit(value, null_threshold=NULL_THRESHOLD)


def _resolve_r2(fit: ModelFit) -> Optional[np.ndarray]:
    """Return posterior R2 draws, or ``None`` when they cannot be obtained."""

    if R2 in fit.draws.columns:
        draws = fit.posterior(R2)
    elif fit.r2 is not None:
        draws = np.asarray(fit.r2, dtype=float).ravel()
    else:
        try:
            if fit.fitted is None or fit.data is None:
                msg = "fitted values and model data are required"
                raise ValueError(msg)
            draws = bayes_r2(fit.fitted, fit.data[fit.outcome], fit.family)
        except (ValueError, KeyError) as err:
            LOGGER.info("Bayesian R2 unavailable: %s", err)
            return None
    if draws.size == 0 or np.all(draws == 0):
        return None
    return draws


def _random_effects(fit: ModelFit) -> Optional[pd.DataFrame]:
    """Return median and MAD of every group-level effect, or ``None``."""

    rows = []
    for name in fit.group_level_names():
        parts = parse_group_level_name(name)
        posterior = fit.posterior(name)
        rows.append(
            {
                "term": parts["term"],
                "group": parts["group"],
                "level": parts["level"],
                "Median": float(np.median(posterior)),
                "MAD": mad(posterior),
            }
        )
    if not rows:
        return None
    return pd.DataFrame(rows, columns=["term", "group", "level", "Median", "MAD"])


def _prior_info(fit: ModelFit, varname: str) -> Dict[str, Any]:
    """Return the prior attached to ``varname`` as a plain dictionary."""

    priors = fit.priors
    if priors is None:
        return {}
    if varname == INTERCEPT:
        spec = priors.prior_intercept
        if spec is None:
            return {}
        distributions = spec.distributions()
        return {
            "distribution": distributions[0] if distributions else spec.distribution,
            "location": spec.location[0] if spec.location else None,
            "scale": spec.scale[0] if spec.scale else None,
            "adjusted_scale": spec.adjusted_scale[0] if spec.adjusted_scale else None,
        }
    # Priors are indexed by predictor position, which does not hold for
    # categorical predictors expanded into several coefficients.
    if priors.prior is None or varname not in fit.predictors:
        return {}
    spec = priors.prior
    index = fit.predictors.index(varname)

    def _pick(values: Optional[List[Any]]) -> Any:
        if values and index < len(values):
            return values[index]
        return None

    return {
        "distribution": _pick(spec.distributions()),
        "location": _pick(spec.location),
        "scale": _pick(spec.scale),
        "adjusted_scale": _pick(spec.adjusted_scale),
    }


def _coefficient_text(varname: str, values: CoefficientValues, ci: float) -> str:
    """Return the narrative line describing one parameter."""

    low, high = values.ci_values
    ci_text = f"{ci:g}% CI [{_fmt(low)}, {_fmt(high)}]"
    if varname == INTERCEPT:
        return (
            f"The model's intercept is at {format_digit(values.median)} "
            f"(MAD = {format_digit(values.mad)}, {ci_text}). Within this model:"
        )
    if varname == R2:
        return (
            f"The model explains between {format_digit(values.posterior.min() * 100)}% "
            f"and {format_digit(values.posterior.max() * 100)}% of the outcome's "
            f"variance (R2's median = {format_digit(values.median)}, "
            f"MAD = {format_digit(values.mad)}, {ci_text}). "
        )

    parts = varname.split(":")
    if len(parts) == 2:
        name = f"interaction effect between {parts[0]} and {parts[1]}"
    elif len(parts) > 2:
        name = varname
    else:
        name = f"effect of {varname}"
    mpe_low, mpe_high = values.mpe_values
    return (
        f"   - The {name} has a probability of {format_digit(values.mpe)}% "
        f"that its coefficient is between {_fmt(mpe_low)} and {_fmt(mpe_high)} "
        f"(Median = {_fmt(values.median)}, MAD = {_fmt(values.mad)}, "
        f"{ci_text}, MPE = {format_digit(values.mpe)}%)."
    )


def _describe(
    fit: ModelFit,
    varname: str,
    posterior: Optional[np.ndarray],
    ci: float,
) -> CoefficientValues:
    prior = _prior_info(fit, varname)
    if posterior is None:
        return CoefficientValues(
            name=varname, posterior=np.zeros(len(fit.draws)), prior=prior
        )
    indices = describe_posterior(posterior, ci=ci)
    values = CoefficientValues(
        name=varname,
        posterior=posterior,
        median=indices.median,
        mad=indices.mad,
        mean=indices.mean,
        sd=indices.sd,
        ci_values=indices.ci_values,
        mpe=indices.mpe,
        mpe_values=indices.mpe_values,
        prior=prior,
    )
    values.text = _coefficient_text(varname, values, ci)
    return values


def _model_text(
    fit: ModelFit,
    values: Dict[str, CoefficientValues],
    effsize: bool,
) -> List[str]:
    """Return the full narrative as a list of lines."""

    info_effsize = (
        " Effect sizes are based on Cohen (1988) recommendations." if effsize else ""
    )
    prior_spec = fit.priors.prior if fit.priors is not None else None
    info = (
        f"We fitted a Markov Chain Monte Carlo {fit.family} (link = {fit.link}) "
        f"model to predict {fit.outcome} (formula = {fit.formula})."
        f"{info_effsize}"
    )
    header: List[str] = [info]
    if prior_spec is not None:
        header[0] += " Priors were set as follows: "
        scales = prior_spec.adjusted_scale or prior_spec.scale
        distributions = sorted(set(prior_spec.distributions())) or [
            str(prior_spec.distribution)
        ]
        locations = ", ".join(f"{value:g}" for value in prior_spec.location)
        scale_text = ", ".join(format_digit(value) for value in scales)
        header.extend(
            [
                "",
                f"  ~ {', '.join(distributions)} (location = ({locations}), "
                f"scale = ({scale_text}))",
            ]
        )

    coefs_text: List[str] = []
    for varname, entry in values.items():
        coefs_text.append(entry.text)
        if effsize and varname not in (INTERCEPT, R2):
            coefs_text.extend([entry.effsize_text or "", ""])

    lines = header + ["", ""]
    if coefs_text:
        lines.append(coefs_text[-1] + coefs_text[0])
        lines.append("")
        lines.extend(coefs_text[1:-1])
    return lines


def _summary_table(
    values: Dict[str, CoefficientValues],
    varnames: List[str],
    effsize: bool,
) -> pd.DataFrame:
    rows = []
    for varname in varnames:
        entry = values[varname]
        row: Dict[str, Any] = {
            "Variable": varname,
            "MPE": entry.mpe,
            "Median": entry.median,
            "MAD": entry.mad,
            "Mean": entry.mean,
            "SD": entry.sd,
            "CI_lower": entry.ci_values[0],
            "CI_higher": entry.ci_values[1],
        }
        if effsize:
            for column, key in EFFSIZE_COLUMNS.items():
                probs = entry.effsize_probs
                row[column] = probs[key] if probs is not None else np.nan
        rows.append(row)
    columns = SUMMARY_COLUMNS + (list(EFFSIZE_COLUMNS) if effsize else [])
    return pd.DataFrame(rows, columns=columns)


def analyze(fit: ModelFit, ci: float = DEFAULT_CI, effsize: bool = False) -> AnalysisResult:
    """Analyze a fitted Bayesian regression.

    Parameters
    ----------
    fit:
        Model fit to analyze.
    ci:
        Credible interval width in percent.
    effsize:
        When true, interpret every coefficient as Cohen's d. The model
        should then have been fitted on standardized data; a warning is
        logged otherwise.

    Returns
    -------
    AnalysisResult
        Narrative, summary table, per-parameter values, posterior plot and,
        for mixed models, the group-level effects.
    """

    if not 0 < ci <= 100:
        msg = f"ci must be a percentage in (0, 100], got {ci!r}"
        raise ValueError(msg)

    coefficients = [
        name for name in fit.coefficients if parse_group_level_name(name) is None
    ]
    varnames = coefficients + [R2]
    r2_draws = _resolve_r2(fit)
    has_r2 = r2_draws is not None
    if not has_r2:
        LOGGER.info("R2 could not be computed for this model")

    random_info = _random_effects(fit)

    values: Dict[str, CoefficientValues] = {}
    for varname in varnames:
        posterior = r2_draws if varname == R2 else fit.posterior(varname)
        values[varname] = _describe(fit, varname, posterior, ci)

    if effsize:
        if fit.data is not None:
            model_columns = [name for name in fit.variables if name in fit.data.columns]
            standardized = is_standardized(fit.data[model_columns])
        else:
            standardized = False
        if not standardized:
            LOGGER.warning(
                "It seems that your data was not standardized... "
                "Interpret effect sizes with caution!"
            )
        for varname in coefficients:
            interpretation = interpret_d_posterior(values[varname].posterior, ci=ci)
            table = interpretation.table.copy()
            table["Variable"] = varname
            values[varname].effsize = table
            values[varname].effsize_text = interpretation.text
            values[varname].effsize_probs = interpretation.probs

    reported = varnames if has_r2 else coefficients
    summary = _summary_table(values, reported, effsize)
    text = _model_text(fit, values, effsize)

    plot_draws = pd.DataFrame(
        {name: pd.Series(values[name].posterior) for name in reported}
    )
    plot = plot_posteriors(plot_draws, reported)

    return AnalysisResult(
        text=text,
        plot=plot,
        summary=summary,
        values=values,
        random=random_info,
    )


__all__ = [
    "AnalysisResult",
    "CoefficientValues",
    "analyze",
    "get_plot",
    "get_summary",
    "get_text",
    "get_values",
]
