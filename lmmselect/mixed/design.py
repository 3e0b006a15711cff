"""
Design validation for model fitting.

MixedDesign validates and organizes the inputs of one fit: the formula,
the dataset it refers to and the estimation mode. All checks that can
fail without fitting anything happen here, so a degenerate grouping
factor or a misnamed column is reported before any optimizer runs.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass

import numpy as np
import pandas as pd

from lmmselect.core.compute.tolerances import DEFAULT_MAX_ITER, MIN_OBSERVATIONS
from lmmselect.core.datasource import Dataset
from lmmselect.core.validation import (
    check_columns,
    check_finite,
    check_grouping_factor,
    check_min_samples,
    check_numeric,
)
from lmmselect.mixed._common import EstimationMode
from lmmselect.mixed.formula import Formula

logger = logging.getLogger(__name__)


@dataclass(frozen=True, eq=False)
class MixedDesign:
    """Validated design for one model fit.

    Attributes:
        formula: The model formula.
        dataset: The dataset the formula refers to (borrowed, never modified).
        method: Estimation mode.
        frame: Columns used by the formula, rows with missing values dropped.
        n: Number of observations used.
        n_dropped: Rows dropped for missing values.
        max_iter: Optimizer iteration cap.
    """
    formula: Formula
    dataset: Dataset
    method: EstimationMode
    frame: pd.DataFrame
    n: int
    n_dropped: int
    max_iter: int

    @property
    def reml(self) -> bool:
        return self.method is EstimationMode.REML

    @property
    def y(self) -> np.ndarray:
        return self.frame[self.formula.response].to_numpy(dtype=np.float64)

    @staticmethod
    def validate(
        formula: Formula,
        dataset: Dataset,
        method: EstimationMode | str = EstimationMode.REML,
        *,
        max_iter: int = DEFAULT_MAX_ITER,
    ) -> 'MixedDesign':
        """Validate inputs and create a MixedDesign.

        Args:
            formula: Model formula.
            dataset: Dataset holding every column the formula references.
            method: 'REML' or 'ML'.
            max_iter: Optimizer iteration cap.

        Returns:
            Validated MixedDesign.

        Raises:
            MalformedInputError: A referenced column is absent or the
                response is not numeric.
            DegenerateGroupingError: A grouping factor has fewer than 2
                levels or singleton groups.
            ValidationError: Too few observations or a non-finite response.
        """
        method = EstimationMode.coerce(method)
        source = dataset.frame
        columns = list(formula.variables)

        check_columns(source, columns, f"formula '{formula}'")
        check_numeric(source, formula.response)

        frame = source[columns].dropna()
        n_dropped = len(source) - len(frame)
        if n_dropped:
            logger.warning(
                "Dropped %d of %d row(s) with missing values in %s",
                n_dropped, len(source), columns,
            )

        n = len(frame)
        check_min_samples(n, MIN_OBSERVATIONS, f"formula '{formula}'")
        check_finite(
            frame[formula.response].to_numpy(dtype=np.float64),
            formula.response,
        )

        for group in formula.groups:
            check_grouping_factor(frame, group)

        if max_iter < 1:
            raise ValueError(f"max_iter must be positive, got {max_iter}")

        return MixedDesign(
            formula=formula,
            dataset=dataset,
            method=method,
            frame=frame.reset_index(drop=True),
            n=n,
            n_dropped=n_dropped,
            max_iter=max_iter,
        )
