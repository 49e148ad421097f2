"""Reporting helpers for Bayesian regression fits.

This package turns the posterior draws of a fitted Bayesian regression into
summary tables, narrative text and posterior plots, and provides the
standardization helpers used to prepare data before fitting. The fitting
itself is left to the modeling library (rstanarm, PyMC, bambi, ...).
"""

from bayes_report.analyze import (
    AnalysisResult,
    CoefficientValues,
    analyze,
    get_plot,
    get_summary,
    get_text,
    get_values,
)
from bayes_report.effect_sizes import (
    interpret_d,
    interpret_d_posterior,
    is_standardized,
)
from bayes_report.fit import (
    ModelFit,
    PriorSpec,
    PriorSummary,
    bayes_r2,
    fit_from_inference_data,
    formula_variables,
    load_model_fit,
)
from bayes_report.formatting import format_digit
from bayes_report.posteriors import describe_posterior, hdi, mad, mpe
from bayes_report.standardize import standardize

__all__ = [
    "AnalysisResult",
    "CoefficientValues",
    "ModelFit",
    "PriorSpec",
    "PriorSummary",
    "analyze",
    "bayes_r2",
    "describe_posterior",
    "fit_from_inference_data",
    "format_digit",
    "formula_variables",
    "get_plot",
    "get_summary",
    "get_text",
    "get_values",
    "hdi",
    "interpret_d",
    "interpret_d_posterior",
    "is_standardized",
    "load_model_fit",
    "mad",
    "mpe",
    "standardize",
]
