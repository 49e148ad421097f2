"""Z-score standardization of numeric data.

Models fitted on standardized variables yield coefficients that can be
interpreted as effect sizes, so data is usually passed through
:func:`standardize` before fitting.
"""

from __future__ import annotations

import logging
from typing import Iterable, List, Optional, Union

import numpy as np
import pandas as pd

LOGGER = logging.getLogger(__name__)

ColumnNames = Union[str, Iterable[str]]


def _as_name_list(names: Optional[ColumnNames]) -> List[str]:
    """Return ``names`` as a list, accepting a single column name."""

    if names is None:
        return []
    if isinstance(names, str):
        return [names]
    return list(names)


def _zscore(values: pd.Series) -> pd.Series:
    """Return ``values`` centered on the mean and scaled by the SD (ddof=1)."""

    numeric = values.astype(float)
    sd = numeric.std(ddof=1)
    if not np.isfinite(sd) or sd == 0:
        LOGGER.warning(
            "Column %s has zero or undefined standard deviation; "
            "standardized values are NaN.",
            values.name,
        )
        return pd.Series(np.nan, index=values.index, name=values.name)
    return (numeric - numeric.mean()) / sd


def standardize(
    df: Union[pd.DataFrame, pd.Series, np.ndarray, List[float]],
    subset: Optional[ColumnNames] = None,
    except_: Optional[ColumnNames] = None,
) -> Union[pd.DataFrame, np.ndarray]:
    """Standardize (Z-score) numeric columns.

    Parameters
    ----------
    df:
        Data frame to standardize. A Series, array or single-column frame is
        treated as one vector and returned as a 1-D array of Z-scores.
    subset:
        Column name or names that are candidates for standardization. When
        omitted, every column is a candidate.
    except_:
        Column name or names that are never standardized.

    Returns
    -------
    pandas.DataFrame or numpy.ndarray
        A new frame with the same columns, order and index where numeric
        candidate columns are replaced by their Z-scores, or a 1-D array for
        vector input. Non-numeric columns are returned unchanged.
    """

    if not isinstance(df, pd.DataFrame):
        vector = pd.Series(np.asarray(df, dtype=float).ravel())
        return _zscore(vector).to_numpy()
    if df.shape[1] == 1:
        return _zscore(df.iloc[:, 0]).to_numpy()

    columns = list(df.columns)
    subset_names = _as_name_list(subset)
    except_names = _as_name_list(except_)
    unknown = [name for name in subset_names + except_names if name not in columns]
    if unknown:
        LOGGER.debug("Ignoring unknown columns: %s", ", ".join(map(str, unknown)))
    subset_names = [name for name in subset_names if name in columns]
    except_names = [name for name in except_names if name in columns]

    if subset_names:
        candidates = [name for name in columns if name in subset_names]
    else:
        candidates = columns
    candidates = [name for name in candidates if name not in except_names]

    result = df.copy()
    for name in candidates:
        column = df[name]
        if pd.api.types.is_bool_dtype(column) or not pd.api.types.is_numeric_dtype(
            column
        ):
            continue
        result[name] = _zscore(column)
    return result


__all__ = ["standardize"]
