"""Columnar dataset: feature column variants, labels, and stable partitioning."""

from __future__ import annotations

from collections.abc import Callable, Iterable, Mapping
from dataclasses import dataclass
from types import MappingProxyType

import numpy as np
import polars as pl

from histree.exceptions import LabelColumnNotFoundError, LabelColumnTypeError, RowCountMismatchError

# ---------------------------------------------------------------------------
# Column variants
# ---------------------------------------------------------------------------


@dataclass(frozen=True, eq=False)
class RawColumn:
    """A numeric feature column that has not been quantized yet.

    Attributes:
        values (np.ndarray): One `float32` value per row.
    """

    values: np.ndarray

    def __post_init__(self) -> None:
        object.__setattr__(self, "values", np.asarray(self.values, dtype=np.float32))

    def __len__(self) -> int:
        return len(self.values)

    def partition(self, mask: np.ndarray) -> tuple[RawColumn, RawColumn]:
        """Split rows into `(mask, ~mask)` halves, preserving order."""
        return RawColumn(self.values[mask]), RawColumn(self.values[~mask])


@dataclass(frozen=True, eq=False)
class QuantizedColumn:
    """A numeric feature column reduced to ordered boundaries and per-row bins.

    Boundaries are shared by every partition of the column; only the bin
    indices are split when the dataset is partitioned.

    Attributes:
        boundaries (np.ndarray): Non-decreasing `float32` bin boundaries, at most
            255 of them. Boundary `k` is the inclusive upper edge of bin `k`.
        bins (np.ndarray): One `uint8` bin index per row, the count of
            boundaries strictly below the row's raw value.
    """

    boundaries: np.ndarray
    bins: np.ndarray

    def __post_init__(self) -> None:
        object.__setattr__(self, "boundaries", np.asarray(self.boundaries, dtype=np.float32))
        object.__setattr__(self, "bins", np.asarray(self.bins, dtype=np.uint8))

    def __len__(self) -> int:
        return len(self.bins)

    def partition(self, mask: np.ndarray) -> tuple[QuantizedColumn, QuantizedColumn]:
        """Split bin indices into `(mask, ~mask)` halves; boundaries are copied to both."""
        return (
            QuantizedColumn(self.boundaries.copy(), self.bins[mask]),
            QuantizedColumn(self.boundaries.copy(), self.bins[~mask]),
        )


@dataclass(frozen=True, eq=False)
class TextColumn:
    """A string column. Carried through partitions but never split on.

    Attributes:
        values (tuple[str, ...]): One string per row.
    """

    values: tuple[str, ...]

    def __post_init__(self) -> None:
        object.__setattr__(self, "values", tuple(self.values))

    def __len__(self) -> int:
        return len(self.values)

    def partition(self, mask: np.ndarray) -> tuple[TextColumn, TextColumn]:
        """Split rows into `(mask, ~mask)` halves, preserving order."""
        left = tuple(value for value, keep in zip(self.values, mask, strict=True) if keep)
        right = tuple(value for value, keep in zip(self.values, mask, strict=True) if not keep)
        return TextColumn(left), TextColumn(right)


type Column = RawColumn | QuantizedColumn | TextColumn


# ---------------------------------------------------------------------------
# Dataset
# ---------------------------------------------------------------------------


@dataclass(frozen=True, eq=False)
class Dataset:
    """Named feature columns plus one label per row.

    A dataset is never modified after construction. Partitioning always
    produces two new datasets, and every column keeps exactly one entry per
    label.

    Attributes:
        columns (Mapping[str, Column]): Read-only mapping of column name to column.
        labels (np.ndarray): `float32` training target, one entry per row.

    Raises:
        RowCountMismatchError: If any column's length differs from the label length.

    Examples:
        >>> ds = Dataset({"x": RawColumn([1.0, 2.0, 3.0])}, labels=[0.0, 1.0, 1.0])
        >>> ds.row_count
        3
        >>> left, right = ds.partition(lambda i: i < 1)
        >>> left.labels.tolist(), right.labels.tolist()
        ([0.0], [1.0, 1.0])
    """

    columns: Mapping[str, Column]
    labels: np.ndarray

    def __post_init__(self) -> None:
        labels = np.asarray(self.labels, dtype=np.float32)
        object.__setattr__(self, "labels", labels)
        object.__setattr__(self, "columns", MappingProxyType(dict(self.columns)))
        expected = len(labels)
        for name, column in self.columns.items():
            if len(column) != expected:
                raise RowCountMismatchError(column=name, expected=expected, actual=len(column))

    @property
    def row_count(self) -> int:
        """Number of rows (labels) in the dataset."""
        return len(self.labels)

    @property
    def column_names(self) -> list[str]:
        """Column names in lexicographic order."""
        return sorted(self.columns)

    def partition(self, predicate: Callable[[int], bool]) -> tuple[Dataset, Dataset]:
        """Stable-partition rows by a predicate over row indices.

        Rows where `predicate(i)` is true go to the left dataset, all others to
        the right, each side keeping the original relative order. The same
        predicate applies to the labels and every column.

        Args:
            predicate (Callable[[int], bool]): Called once per row index in
                `[0, row_count)`.

        Returns:
            tuple[Dataset, Dataset]: `(left, right)` datasets whose row counts
                sum to `row_count`.
        """
        mask = np.fromiter((bool(predicate(i)) for i in range(self.row_count)), dtype=bool, count=self.row_count)
        return self.partition_mask(mask)

    def partition_mask(self, mask: np.ndarray) -> tuple[Dataset, Dataset]:
        """Stable-partition rows by a boolean mask.

        Args:
            mask (np.ndarray): Boolean array of length `row_count`; True rows go left.

        Returns:
            tuple[Dataset, Dataset]: `(left, right)` datasets.
        """
        mask = np.asarray(mask, dtype=bool)
        left_columns: dict[str, Column] = {}
        right_columns: dict[str, Column] = {}
        for name, column in self.columns.items():
            left_columns[name], right_columns[name] = column.partition(mask)
        return (
            Dataset(left_columns, self.labels[mask]),
            Dataset(right_columns, self.labels[~mask]),
        )

    def with_columns(self, columns: Mapping[str, Column]) -> Dataset:
        """Return a new dataset with `columns` replacing or adding to the current ones."""
        return Dataset({**self.columns, **columns}, self.labels)

    def select(self, names: Iterable[str]) -> Dataset:
        """Return a new dataset keeping only the named columns and all labels.

        Raises:
            KeyError: If a name is not a column of this dataset.
        """
        return Dataset({name: self.columns[name] for name in names}, self.labels)

    @classmethod
    def from_polars(cls, df: pl.DataFrame, label: str) -> Dataset:
        """Build a dataset from a polars DataFrame.

        Numeric columns become `RawColumn`s, string-like columns become
        `TextColumn`s, and columns of any other dtype are skipped. The label
        column is removed from the features.

        Args:
            df (pl.DataFrame): Source frame.
            label (str): Name of the numeric label column.

        Returns:
            Dataset: The converted dataset.

        Raises:
            LabelColumnNotFoundError: If `label` is not a column of `df`.
            LabelColumnTypeError: If the label column is not numeric.
        """
        if label not in df.columns:
            raise LabelColumnNotFoundError(label=label, available_columns=list(df.columns))
        label_series = df[label]
        if not label_series.dtype.is_numeric():
            raise LabelColumnTypeError(label=label, dtype=str(label_series.dtype))

        columns = dict(_columns_from_series(df[name] for name in df.columns if name != label))
        return cls(columns, label_series.cast(pl.Float32).to_numpy())


# ---------------------------------------------------------------------------
# Private helpers
# ---------------------------------------------------------------------------

_TEXT_DTYPES: tuple[type[pl.DataType], ...] = (pl.String, pl.Categorical, pl.Enum)


def _columns_from_series(series_iter: Iterable[pl.Series]) -> Iterable[tuple[str, Column]]:
    """Convert polars series to columns, skipping unsupported dtypes.

    Args:
        series_iter (Iterable[pl.Series]): Feature series to convert.

    Yields:
        tuple[str, Column]: `(name, column)` pairs for the supported series.
    """
    for series in series_iter:
        if series.dtype.is_numeric():
            yield series.name, RawColumn(series.cast(pl.Float32).to_numpy())
        elif isinstance(series.dtype, _TEXT_DTYPES):
            yield series.name, TextColumn(tuple(series.cast(pl.String).to_list()))
