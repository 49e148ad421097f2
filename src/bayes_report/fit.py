"""Containers and adapters for fitted Bayesian regression models.

The reporting helpers never talk to a sampler directly. Instead they work on
a :class:`ModelFit`, a small view of a fitted model holding its formula,
family, posterior draws and (optionally) priors, model data and fitted
values. Adapters build that view from an ArviZ ``InferenceData`` object, as
produced by PyMC or bambi, or from a CSV export of the draws.
"""

from __future__ import annotations

import json
import logging
import re
from dataclasses import dataclass, field
from itertools import product
from pathlib import Path
from typing import Any, Dict, List, Mapping, Optional, Sequence

import numpy as np
import pandas as pd

LOGGER = logging.getLogger(__name__)

INTERCEPT = "(Intercept)"

# Group-level columns, e.g. ``b[(Intercept) Species:setosa]`` (rstanarm) or
# ``1|Species[setosa]`` (bambi).
_RSTANARM_GROUP_RE = re.compile(r"^b\[(?P<term>\S+) (?P<group>[^:\]]+):(?P<level>[^\]]+)\]$")
_BAMBI_GROUP_RE = re.compile(r"^(?P<term>[^|\[]+)\|(?P<group>[^\[]+)\[(?P<level>[^\]]+)\]$")

_TOKEN_RE = re.compile(r"`(?P<quoted>[^`]+)`|(?P<name>[A-Za-z_.][A-Za-z0-9_.]*)(?P<call>\s*\()?")


@dataclass
class PriorSpec:
    """One prior family with per-coefficient locations and scales."""

    distribution: Any
    location: List[float]
    scale: List[float]
    adjusted_scale: Optional[List[float]] = None

    def distributions(self) -> List[str]:
        """Return one distribution name per coefficient."""

        if isinstance(self.distribution, str):
            return [self.distribution] * len(self.location)
        return [str(name) for name in self.distribution]

    @classmethod
    def from_dict(cls, payload: Mapping[str, Any]) -> "PriorSpec":
        """Build a prior from a mapping with ``distribution`` (or ``dist``)."""

        distribution = payload.get("distribution", payload.get("dist"))
        if distribution is None:
            msg = "Prior specification is missing 'distribution'"
            raise ValueError(msg)

        def _as_list(value: Any) -> List[float]:
            if value is None:
                return []
            if isinstance(value, (int, float)):
                return [float(value)]
            return [float(item) for item in value]

        adjusted = payload.get("adjusted_scale")
        return cls(
            distribution=distribution,
            location=_as_list(payload.get("location")),
            scale=_as_list(payload.get("scale")),
            adjusted_scale=_as_list(adjusted) if adjusted is not None else None,
        )


@dataclass
class PriorSummary:
    """Priors of a fit: the coefficient prior and the intercept prior."""

    prior: Optional[PriorSpec] = None
    prior_intercept: Optional[PriorSpec] = None

    @classmethod
    def from_dict(cls, payload: Mapping[str, Any]) -> "PriorSummary":
        prior = payload.get("prior")
        intercept = payload.get("prior_intercept")
        return cls(
            prior=PriorSpec.from_dict(prior) if prior else None,
            prior_intercept=PriorSpec.from_dict(intercept) if intercept else None,
        )


def formula_variables(formula: str) -> List[str]:
    """Return the variable names used in a model formula.

    Names are returned in order of first appearance, so the outcome comes
    first for two-sided formulas. Function calls such as ``log(x)`` only
    contribute their arguments, and numeric literals are ignored.
    """

    names: List[str] = []
    for match in _TOKEN_RE.finditer(formula):
        if match.group("quoted"):
            token = match.group("quoted")
        else:
            token = match.group("name")
            if match.group("call") or re.fullmatch(r"\.?\d.*|\.", token):
                continue
        if token not in names:
            names.append(token)
    return names


def parse_group_level_name(name: str) -> Optional[Dict[str, str]]:
    """Return ``term``, ``group`` and ``level`` for a group-level column."""

    for pattern in (_RSTANARM_GROUP_RE, _BAMBI_GROUP_RE):
        match = pattern.match(name)
        if match:
            return {key: value.strip() for key, value in match.groupdict().items()}
    return None


def _is_auxiliary(name: str) -> bool:
    """Return whether a draw column is not a population-level coefficient."""

    if parse_group_level_name(name) is not None:
        return True
    lowered = name.lower()
    return (
        "|" in name
        or name.startswith("b[")
        or name == "R2"
        or lowered.startswith("sigma")
        or lowered.endswith("_sigma")
        or lowered in {"log-posterior", "lp__", "mean_ppd"}
    )


@dataclass
class ModelFit:
    """Post-processing view of a fitted Bayesian regression.

    ``draws`` holds one column per parameter and one row per posterior
    draw (chains concatenated). ``fitted`` is a ``(draws, observations)``
    matrix of expected outcomes on the response scale, used to compute a
    Bayesian R2 when the fit does not provide one.
    """

    formula: str
    family: str
    link: str
    draws: pd.DataFrame
    coefficients: Optional[List[str]] = None
    data: Optional[pd.DataFrame] = None
    priors: Optional[PriorSummary] = None
    fitted: Optional[np.ndarray] = None
    r2: Optional[np.ndarray] = None
    variables: List[str] = field(init=False)

    def __post_init__(self) -> None:
        self.variables = formula_variables(self.formula)
        if not self.variables:
            msg = f"Could not find any variable in formula {self.formula!r}"
            raise ValueError(msg)
        if self.coefficients is None:
            self.coefficients = [
                str(name) for name in self.draws.columns if not _is_auxiliary(str(name))
            ]
        missing = [name for name in self.coefficients if name not in self.draws.columns]
        if missing:
            msg = f"Coefficients missing from draws: {', '.join(missing)}"
            raise ValueError(msg)

    @property
    def outcome(self) -> str:
        return self.variables[0]

    @property
    def predictors(self) -> List[str]:
        return self.variables[1:]

    def posterior(self, name: str) -> np.ndarray:
        """Return the draws of parameter ``name`` as a float array."""

        if name not in self.draws.columns:
            raise KeyError(f"Parameter {name!r} not found in posterior draws")
        return self.draws[name].to_numpy(dtype=float)

    def group_level_names(self) -> List[str]:
        """Return draw columns holding group-level (varying) effects."""

        return [
            str(name)
            for name in self.draws.columns
            if parse_group_level_name(str(name)) is not None
        ]


def bayes_r2(
    fitted: np.ndarray,
    outcome: Sequence[float],
    family: str = "gaussian",
) -> np.ndarray:
    """Return posterior draws of the Bayesian R2 (Gelman et al., 2019).

    For each draw the R2 is ``var(mu) / (var(mu) + var_res)``, where
    ``var_res`` is the residual variance for gaussian models, the mean of
    ``mu * (1 - mu)`` for binomial models and the mean of ``mu`` for Poisson
    models.

    Parameters
    ----------
    fitted:
        ``(draws, observations)`` matrix of expected outcomes on the
        response scale.
    outcome:
        Observed outcome, one value per observation.
    family:
        Model family name.
    """

    mu = np.asarray(fitted, dtype=float)
    if mu.ndim != 2:
        msg = f"fitted must be a (draws, observations) matrix, got shape {mu.shape}"
        raise ValueError(msg)
    observed = np.asarray(outcome, dtype=float).ravel()
    if mu.shape[1] != observed.size:
        msg = (
            f"fitted has {mu.shape[1]} observations but outcome has "
            f"{observed.size}"
        )
        raise ValueError(msg)

    name = family.lower()
    if name in {"gaussian", "normal", "t", "student_t", "studentt"}:
        var_res = np.var(observed[np.newaxis, :] - mu, axis=1, ddof=1)
    elif name in {"binomial", "bernoulli"}:
        var_res = np.mean(mu * (1.0 - mu), axis=1)
    elif name == "poisson":
        var_res = np.mean(mu, axis=1)
    else:
        msg = f"Bayesian R2 is not supported for family {family!r}"
        raise ValueError(msg)
    var_fit = np.var(mu, axis=1, ddof=1)
    return var_fit / (var_fit + var_res)


def fit_from_inference_data(
    idata: Any,
    formula: str,
    family: str = "gaussian",
    link: str = "identity",
    *,
    coefficients: Optional[Sequence[str]] = None,
    data: Optional[pd.DataFrame] = None,
    priors: Optional[PriorSummary] = None,
    fitted_var: Optional[str] = None,
    obs_dim: str = "__obs__",
) -> ModelFit:
    """Build a :class:`ModelFit` from an ArviZ ``InferenceData``.

    Chains and draws of every posterior variable are flattened into one
    column per scalar, vector-valued variables being expanded into
    ``name[coord]`` columns. Variables carrying ``obs_dim`` are per
    observation and are skipped, except ``fitted_var`` which becomes the
    fitted-value matrix. A variable named ``Intercept`` is renamed
    ``(Intercept)``.
    """

    posterior = idata.posterior
    columns: Dict[str, np.ndarray] = {}
    fitted: Optional[np.ndarray] = None
    for var_name in posterior.data_vars:
        data_array = posterior[var_name]
        values = np.asarray(data_array.values, dtype=float)
        extra_dims = list(data_array.dims[2:])
        flat = values.reshape((-1,) + values.shape[2:])
        if var_name == fitted_var:
            fitted = flat.reshape(flat.shape[0], -1)
            continue
        if obs_dim in extra_dims:
            continue
        name = INTERCEPT if var_name == "Intercept" else str(var_name)
        if not extra_dims:
            columns[name] = flat
            continue
        coord_values = [
            [str(item) for item in data_array.coords[dim].values]
            if dim in data_array.coords
            else [str(item) for item in range(data_array.sizes[dim])]
            for dim in extra_dims
        ]
        for index in product(*(range(len(items)) for items in coord_values)):
            label = ",".join(coord_values[axis][pos] for axis, pos in enumerate(index))
            columns[f"{name}[{label}]"] = flat[(slice(None),) + index]

    if fitted_var is not None and fitted is None:
        LOGGER.warning("Fitted variable %s not found in posterior", fitted_var)
    draws = pd.DataFrame(columns)
    return ModelFit(
        formula=formula,
        family=family,
        link=link,
        draws=draws,
        coefficients=list(coefficients) if coefficients is not None else None,
        data=data,
        priors=priors,
        fitted=fitted,
    )


def load_model_fit(
    draws_csv: Path,
    metadata_json: Path,
    data_csv: Optional[Path] = None,
) -> ModelFit:
    """Load a :class:`ModelFit` from exported draws and model metadata.

    Parameters
    ----------
    draws_csv:
        CSV with one column per parameter and one row per posterior draw.
    metadata_json:
        JSON object with ``formula``, ``family`` and ``link`` keys and
        optional ``coefficients`` and ``priors`` entries. ``priors`` follows
        the layout of :meth:`PriorSummary.from_dict`.
    data_csv:
        Optional CSV with the data the model was fitted on.
    """

    draws_path = Path(draws_csv).expanduser()
    metadata_path = Path(metadata_json).expanduser()
    for path in (draws_path, metadata_path):
        if not path.exists():
            raise FileNotFoundError(f"Input file not found at {path}")

    with metadata_path.open("r", encoding="utf-8") as handle:
        try:
            metadata = json.load(handle)
        except json.JSONDecodeError as err:
            msg = f"Could not parse model metadata {metadata_path}: {err}"
            raise ValueError(msg) from err
    if not isinstance(metadata, dict):
        msg = f"Model metadata {metadata_path} must contain a JSON object"
        raise ValueError(msg)
    missing = [key for key in ("formula", "family", "link") if key not in metadata]
    if missing:
        msg = f"Model metadata {metadata_path} is missing: {', '.join(missing)}"
        raise ValueError(msg)

    data = None
    if data_csv is not None:
        data_path = Path(data_csv).expanduser()
        if not data_path.exists():
            raise FileNotFoundError(f"Input file not found at {data_path}")
        data = pd.read_csv(data_path)

    priors_payload = metadata.get("priors")
    LOGGER.info("Loaded draws from %s", draws_path)
    return ModelFit(
        formula=str(metadata["formula"]),
        family=str(metadata["family"]),
        link=str(metadata["link"]),
        draws=pd.read_csv(draws_path),
        coefficients=metadata.get("coefficients"),
        data=data,
        priors=PriorSummary.from_dict(priors_payload) if priors_payload else None,
    )


__all__ = [
    "INTERCEPT",
    "ModelFit",
    "PriorSpec",
    "PriorSummary",
    "bayes_r2",
    "fit_from_inference_data",
    "formula_variables",
    "load_model_fit",
    "parse_group_level_name",
]
