"""
Tabular dataset container for lmmselect.

Dataset is the "I have observations" abstraction: one row per measurement,
columns for the subject identifier, categorical factors, the response and
any derived fields. It never modifies its source; every transform returns
a new Dataset.

Usage:
    from lmmselect.core.datasource import Dataset

    ds = Dataset.from_file("sleepstudy.csv", required=["reaction", "days", "subject"])
    ds = Dataset.from_dataframe(df)

    ds.keys()           # frozenset({'reaction', 'days', 'subject'})
    rt = ds['reaction'] # pandas Series
"""

from __future__ import annotations

import csv
import logging
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, Iterable

import pandas as pd

from lmmselect.core.exceptions import MalformedInputError
from lmmselect.core.validation import check_columns, check_not_null

logger = logging.getLogger(__name__)


def normalize_column_name(name: Any) -> str:
    """Case-normalize a column name: strip surrounding whitespace, lower-case."""
    return str(name).strip().lower()


@dataclass(frozen=True, eq=False)
class Dataset:
    """
    Immutable wrapper over a pandas DataFrame.

    Construct via factory classmethods, not directly. The wrapped frame is
    never handed out for mutation: ``frame`` returns a copy.
    """
    _frame: pd.DataFrame
    _metadata: dict[str, Any] = field(default_factory=dict)

    # === Column Access ===

    def keys(self) -> frozenset[str]:
        """Return the names of all columns."""
        return frozenset(str(c) for c in self._frame.columns)

    def __getitem__(self, key: str) -> pd.Series:
        """
        Access a named column (a copy).

        Raises:
            KeyError: If key not found, with a message listing available columns
        """
        if key not in self._frame.columns:
            raise KeyError(
                f"Dataset has no column '{key}'. Available: {sorted(self.keys())}"
            )
        return self._frame[key].copy()

    def __contains__(self, key: str) -> bool:
        return key in self._frame.columns

    def __len__(self) -> int:
        return len(self._frame)

    # === Properties ===

    @property
    def n_observations(self) -> int:
        """Number of rows."""
        return len(self._frame)

    @property
    def columns(self) -> tuple[str, ...]:
        return tuple(str(c) for c in self._frame.columns)

    @property
    def metadata(self) -> dict[str, Any]:
        """Provenance metadata (source path, derivations applied)."""
        return self._metadata.copy()

    @property
    def frame(self) -> pd.DataFrame:
        """A copy of the underlying frame."""
        return self._frame.copy()

    def require(self, *columns: str) -> None:
        """
        Raise MalformedInputError unless every column is present.
        """
        check_columns(self._frame, columns, "dataset")

    def require_not_null(self, column: str) -> None:
        """Raise MalformedInputError if the column is absent or holds nulls."""
        check_columns(self._frame, [column], "dataset")
        check_not_null(self._frame, column)

    def n_levels(self, column: str) -> int:
        """Number of distinct non-null values of a column."""
        self.require(column)
        return int(self._frame[column].nunique(dropna=True))

    # === Derivation ===

    def with_columns(self, derivation: str | None = None, **columns: Any) -> Dataset:
        """
        Return a new Dataset with columns added or replaced.

        Args:
            derivation: Short description recorded in metadata['derivations']
            **columns: Column name → values (Series, array or scalar)
        """
        frame = self._frame.copy()
        for name, values in columns.items():
            frame[name] = values
        metadata = self.metadata
        if derivation is not None:
            metadata['derivations'] = tuple(metadata.get('derivations', ())) + (derivation,)
        return Dataset(_frame=frame, _metadata=metadata)

    def complete_cases(self, *columns: str) -> Dataset:
        """
        Return a new Dataset without rows missing any of ``columns``.

        Returns self when nothing would be dropped.

        Raises:
            MalformedInputError: If a column is absent
        """
        check_columns(self._frame, columns, "complete cases")
        mask = self._frame[list(columns)].notna().all(axis=1)
        n_dropped = int((~mask).sum())
        if n_dropped == 0:
            return self
        logger.warning(
            "Dropped %d of %d row(s) with missing values in %s",
            n_dropped, len(self._frame), list(columns),
        )
        metadata = self.metadata
        metadata['n_observations'] = int(mask.sum())
        metadata['derivations'] = tuple(metadata.get('derivations', ())) + (
            f"complete cases on {', '.join(columns)}",
        )
        return Dataset(_frame=self._frame[mask].reset_index(drop=True), _metadata=metadata)

    # === Factory Methods ===

    @classmethod
    def from_dataframe(
        cls,
        df: pd.DataFrame,
        *,
        required: Iterable[str] = (),
        source_path: str | None = None,
    ) -> Dataset:
        """
        Construct from a pandas DataFrame (copied, column names normalized).

        Raises:
            MalformedInputError: If a required column is absent, or if two
                columns collide after normalization
        """
        frame = df.copy()
        normalized = [normalize_column_name(c) for c in frame.columns]
        duplicates = sorted({c for c in normalized if normalized.count(c) > 1})
        if duplicates:
            raise MalformedInputError(
                f"Column names collide after case normalization: {duplicates}"
            )
        frame.columns = normalized

        check_columns(frame, [normalize_column_name(c) for c in required], "dataset")

        metadata: dict[str, Any] = {
            'n_observations': len(frame),
            'source': 'dataframe',
            'columns': list(frame.columns),
        }
        if source_path:
            metadata['source'] = 'file'
            metadata['source_path'] = source_path

        return cls(_frame=frame, _metadata=metadata)

    @classmethod
    def from_file(
        cls,
        path: str | Path,
        *,
        sep: str | None = None,
        required: Iterable[str] = (),
    ) -> Dataset:
        """
        Construct from a delimited text file with a header row.

        Args:
            path: File path
            sep: Delimiter; sniffed from the file when None
            required: Columns that must be present (case-insensitive)

        Raises:
            MalformedInputError: If the file is missing, empty or lacks a
                required column
        """
        path = Path(path)
        if not path.is_file():
            raise MalformedInputError(f"Input file not found: {path}")
        if path.stat().st_size == 0:
            raise MalformedInputError(f"{path}: file is empty")

        try:
            if sep is None:
                df = pd.read_csv(path, sep=None, engine='python')
            else:
                df = pd.read_csv(path, sep=sep)
        except pd.errors.EmptyDataError as e:
            raise MalformedInputError(f"{path}: file is empty") from e
        except (pd.errors.ParserError, csv.Error) as e:
            raise MalformedInputError(f"{path}: cannot parse: {e}") from e

        logger.info("Loaded %d rows x %d columns from %s", len(df), df.shape[1], path)
        return cls.from_dataframe(df, required=required, source_path=str(path))

    @classmethod
    def build(cls, source: str | Path | pd.DataFrame, **kwargs: Any) -> Dataset:
        """
        Convenience factory that dispatches to the appropriate from_* method.

        Examples:
            Dataset.build("data.csv")
            Dataset.build(df, required=['subject'])
        """
        if isinstance(source, (str, Path)):
            return cls.from_file(source, **kwargs)
        return cls.from_dataframe(source, **kwargs)

    def __repr__(self) -> str:
        return f"Dataset(n={self.n_observations}, columns={list(self.columns)})"
