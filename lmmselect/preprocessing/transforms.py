"""
Column derivations applied before model fitting.

Every function takes a Dataset and returns a new Dataset; the input is
never modified. A referenced column that does not exist raises
MalformedInputError.
"""

from __future__ import annotations

import logging
import re
from typing import Any, Mapping, Sequence

import numpy as np
import pandas as pd

from lmmselect.core.datasource import Dataset
from lmmselect.core.exceptions import MalformedInputError
from lmmselect.core.validation import check_numeric

logger = logging.getLogger(__name__)


def relevel(
    dataset: Dataset,
    column: str,
    baseline: Any,
    levels: Sequence[Any] | None = None,
) -> Dataset:
    """Make ``column`` categorical with ``baseline`` as its first level.

    Treatment coding uses the first level as the reference, so the fitted
    intercept represents the baseline level.

    Args:
        dataset: Source dataset.
        column: Factor column.
        baseline: Level to put first.
        levels: Optional explicit full ordering. The baseline is moved to
            the front if it is not already there. Observed values missing
            from ``levels`` are an error.

    Returns:
        New Dataset with ``column`` as an unordered categorical.

    Raises:
        MalformedInputError: If the column is absent, the baseline is not a
            level, or observed values are not covered by ``levels``.
    """
    dataset.require(column)
    values = dataset[column]

    if levels is None:
        observed = values.dropna().unique().tolist()
        try:
            ordered = sorted(observed)
        except TypeError:
            ordered = observed
    else:
        ordered = list(dict.fromkeys(levels))
        uncovered = sorted(
            {str(v) for v in values.dropna().unique() if v not in ordered}
        )
        if uncovered:
            raise MalformedInputError(
                f"{column}: observed value(s) {uncovered} not in the explicit "
                f"level ordering {ordered}"
            )

    if baseline not in ordered:
        raise MalformedInputError(
            f"{column}: baseline {baseline!r} is not a level. "
            f"Levels: {ordered}"
        )

    ordered = [baseline] + [lvl for lvl in ordered if lvl != baseline]
    recoded = pd.Categorical(values, categories=ordered, ordered=False)

    logger.debug("Releveled %s with baseline %r (levels: %s)", column, baseline, ordered)
    return dataset.with_columns(
        derivation=f"relevel({column}, baseline={baseline!r})",
        **{column: recoded},
    )


def derive_group(
    dataset: Dataset,
    source: str,
    target: str,
    patterns: Mapping[str, str],
    default: Any = None,
) -> Dataset:
    """Derive a categorical column by regular-expression match on an identifier.

    Patterns are tried in order; the first that matches (``re.search``)
    assigns its label. Identifier conventions are data-specific and often
    inconsistent, so unmatched rows are counted and logged rather than
    treated as an error.

    Args:
        dataset: Source dataset.
        source: Identifier column to match against (values coerced to str).
        target: Name of the new column.
        patterns: Ordered mapping label → regular expression.
        default: Value for rows no pattern matches.

    Raises:
        MalformedInputError: If ``source`` is absent or a pattern does not
            compile.
    """
    dataset.require(source)
    if not patterns:
        raise MalformedInputError(f"derive_group({target}): no patterns given")

    compiled = []
    for label, pattern in patterns.items():
        try:
            compiled.append((label, re.compile(pattern)))
        except re.error as e:
            raise MalformedInputError(
                f"derive_group({target}): invalid pattern for {label!r}: {e}"
            ) from e

    def _match(value: Any) -> Any:
        if pd.isna(value):
            return default
        text = str(value)
        for label, regex in compiled:
            if regex.search(text):
                return label
        return default

    derived = dataset[source].map(_match)
    n_unmatched = int((derived.isna() if default is None else derived.eq(default)).sum())
    if n_unmatched:
        logger.warning(
            "derive_group(%s): %d of %d row(s) matched no pattern",
            target, n_unmatched, len(derived),
        )

    return dataset.with_columns(
        derivation=f"derive_group({source} -> {target})",
        **{target: derived},
    )


def log_transform(dataset: Dataset, column: str, target: str | None = None) -> Dataset:
    """Add ``log(x + 1)`` of a numeric column (tolerates zeros).

    Args:
        dataset: Source dataset.
        column: Numeric column.
        target: Name of the new column; default ``log_<column>``.

    Raises:
        MalformedInputError: If the column is absent, not numeric, or holds
            values ≤ -1.
    """
    dataset.require(column)
    frame = dataset.frame
    check_numeric(frame, column)

    x = frame[column].astype(float)
    bad = x <= -1.0
    if bad.any():
        raise MalformedInputError(
            f"{column}: {int(bad.sum())} value(s) ≤ -1; log(x + 1) is undefined"
        )

    target = target or f"log_{column}"
    return dataset.with_columns(
        derivation=f"log1p({column}) -> {target}",
        **{target: np.log1p(x)},
    )


def standardize_within(
    dataset: Dataset,
    column: str,
    by: str,
    target: str | None = None,
) -> Dataset:
    """Add a z-score of ``column`` computed independently within each ``by`` group.

    Each group is centred on its own mean and scaled by its own sample
    standard deviation (ddof=1). Groups with a single row or with zero
    spread have no defined z-score and get NaN.

    Args:
        dataset: Source dataset.
        column: Numeric column.
        by: Grouping column (e.g. subject identifier).
        target: Name of the new column; default ``z_<column>``.

    Raises:
        MalformedInputError: If either column is absent or ``column`` is not
            numeric.
    """
    dataset.require(column, by)
    frame = dataset.frame
    check_numeric(frame, column)

    grouped = frame.groupby(by, observed=True, sort=False)[column]
    mean = grouped.transform('mean')
    sd = grouped.transform('std')

    degenerate = ~(sd > 0)
    if degenerate.any():
        bad_groups = frame.loc[degenerate, by].unique().tolist()
        logger.warning(
            "standardize_within(%s by %s): %d group(s) without spread get NaN: %s",
            column, by, len(bad_groups), bad_groups[:10],
        )

    z = (frame[column] - mean) / sd.where(~degenerate)

    target = target or f"z_{column}"
    return dataset.with_columns(
        derivation=f"zscore({column} within {by}) -> {target}",
        **{target: z},
    )
