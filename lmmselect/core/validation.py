"""
Input validation utilities for lmmselect.

These validators follow the "fail fast, fail loud" principle. They raise
immediately with clear error messages rather than silently correcting
or making assumptions about user intent.

Design principles:
    - No silent type coercion
    - Clear, actionable error messages with actual values
    - Each function validates ONE thing
    - Column names included in all error messages
"""

from __future__ import annotations

from typing import Any, Iterable

import numpy as np
import pandas as pd
from numpy.typing import NDArray

from lmmselect.core.compute.tolerances import (
    MIN_GROUP_LEVELS,
    MIN_ROWS_PER_GROUP,
)
from lmmselect.core.exceptions import (
    DegenerateGroupingError,
    MalformedInputError,
    ValidationError,
)


def check_columns(df: pd.DataFrame, columns: Iterable[str], context: str) -> None:
    """
    Verify every named column is present.

    Args:
        df: Frame to check
        columns: Required column names
        context: What needs the columns (used in the error message)

    Raises:
        MalformedInputError: If any column is absent
    """
    missing = [c for c in columns if c not in df.columns]
    if missing:
        available = [str(c) for c in df.columns]
        raise MalformedInputError(
            f"{context}: missing required column(s) {missing}. "
            f"Available: {available}",
            missing=missing,
            available=available,
        )


def check_not_null(df: pd.DataFrame, column: str) -> None:
    """
    Verify a column holds no missing values.

    Raises:
        MalformedInputError: If the column has nulls
    """
    n_null = int(df[column].isna().sum())
    if n_null:
        raise MalformedInputError(
            f"{column}: {n_null} missing value(s); identifier columns must "
            f"never be null",
        )


def check_numeric(df: pd.DataFrame, column: str) -> None:
    """
    Verify a column has a numeric dtype.

    Raises:
        MalformedInputError: If the column is not numeric
    """
    if not pd.api.types.is_numeric_dtype(df[column]):
        raise MalformedInputError(
            f"{column}: non-numeric dtype {df[column].dtype}, expected numeric data"
        )


def check_finite(array: NDArray[np.floating[Any]], name: str) -> None:
    """
    Verify array contains no NaN or Inf values.

    Args:
        array: Array to check
        name: Parameter name for error messages

    Raises:
        ValidationError: If array contains non-finite values
    """
    if not np.all(np.isfinite(array)):
        n_nan = int(np.sum(np.isnan(array)))
        n_inf = int(np.sum(np.isinf(array)))
        raise ValidationError(
            f"{name}: contains non-finite values ({n_nan} NaN, {n_inf} Inf)"
        )


def check_min_samples(n: int, min_samples: int, name: str) -> None:
    """
    Verify there are at least the minimum number of observations.

    Raises:
        ValidationError: If n is below min_samples
    """
    if n < min_samples:
        raise ValidationError(
            f"{name}: requires at least {min_samples} observations, got {n}"
        )


def check_grouping_factor(
    df: pd.DataFrame,
    group: str,
    *,
    min_levels: int = MIN_GROUP_LEVELS,
    min_rows_per_level: int = MIN_ROWS_PER_GROUP,
) -> None:
    """
    Verify a grouping factor can carry a random effect.

    A grouping factor needs at least ``min_levels`` distinct levels, and no
    level may be observed fewer than ``min_rows_per_level`` times.

    Args:
        df: Frame holding the grouping column
        group: Grouping column name
        min_levels: Minimum number of distinct levels
        min_rows_per_level: Minimum rows per level

    Raises:
        MalformedInputError: If the column is absent
        DegenerateGroupingError: If the factor fails either requirement
    """
    check_columns(df, [group], f"grouping factor '{group}'")

    counts = df[group].value_counts(dropna=True)
    # unused categorical levels show up with a zero count
    counts = counts[counts > 0]
    n_levels = int(len(counts))
    if n_levels < min_levels:
        raise DegenerateGroupingError(
            f"Grouping factor '{group}' has only {n_levels} level(s), "
            f"need at least {min_levels}",
            group=group,
            n_levels=n_levels,
        )

    small = counts[counts < min_rows_per_level]
    if len(small):
        levels = [lvl for lvl in small.index]
        raise DegenerateGroupingError(
            f"Grouping factor '{group}' has {len(levels)} level(s) with fewer "
            f"than {min_rows_per_level} observations: {levels[:10]}",
            group=group,
            n_levels=n_levels,
            singleton_levels=levels,
        )
