"""Quantization of raw float columns into ordered bin boundaries and per-row bin indices.

Two boundary strategies are supported:

- `"random_sample"`: sort a random sample of `samples_per_bin * n_bins` values
  and take evenly spaced order statistics. Avoids a full sort of the column;
  the approximation improves as `samples_per_bin` grows.
- `"uniform"`: `n_bins` boundaries evenly spaced over `[min, max]`. Exact and
  deterministic, but outliers stretch the bins.

Bin indices are stored as `uint8`, which caps the number of boundaries at 255
(bins 0 through 255). Raising that limit means widening the bin dtype and the
memory of every quantized column with it.
"""

from __future__ import annotations

from typing import Final, Literal

import numpy as np
from loguru import logger

from histree.dataset import Column, Dataset, QuantizedColumn, RawColumn

type QuantizationStrategy = Literal["random_sample", "uniform"]

MAX_BINS: Final[int] = 255
DEFAULT_SAMPLES_PER_BIN: Final[int] = 100

# ---------------------------------------------------------------------------
# Public interface -- Boundary strategies
# ---------------------------------------------------------------------------


def quantiles_from_random_sample(
    values: np.ndarray,
    n_bins: int,
    *,
    samples_per_bin: int = DEFAULT_SAMPLES_PER_BIN,
    rng: np.random.Generator | None = None,
) -> np.ndarray:
    """Estimate `n_bins` quantile boundaries from a random sample of `values`.

    Draws `samples_per_bin * n_bins` values without replacement (every value
    when the column is shorter than that), sorts them, and keeps the first
    sample of each of `n_bins` contiguous, equally sized runs.

    Args:
        values (np.ndarray): Raw column values.
        n_bins (int): Target number of bins, in `[1, MAX_BINS]`.
        samples_per_bin (int): Sample size multiplier. Defaults to 100.
        rng (np.random.Generator | None): Random source. A fresh unseeded
            generator is used when `None`.

    Returns:
        np.ndarray: Non-decreasing `float32` boundaries; empty when `values` is empty.

    Raises:
        ValueError: If `n_bins` or `samples_per_bin` is out of range.
    """
    _validate_n_bins(n_bins)
    if samples_per_bin < 1:
        raise ValueError(f"samples_per_bin must be at least 1, got {samples_per_bin}")
    values = np.asarray(values, dtype=np.float32)
    if len(values) == 0:
        return np.empty(0, dtype=np.float32)

    rng = rng if rng is not None else np.random.default_rng()
    sample_size = min(len(values), samples_per_bin * n_bins)
    samples = np.sort(rng.choice(values, size=sample_size, replace=False))
    # Start of each run; equal to `samples[::sample_size // n_bins]` when the sample divides evenly.
    run_starts = (np.arange(n_bins) * sample_size) // n_bins
    return samples[run_starts]


def uniform_boundaries(values: np.ndarray, n_bins: int) -> np.ndarray:
    """Compute `n_bins` boundaries evenly spaced over the column's range.

    Boundary `k` is `min + (k + 1) * (max - min) / n_bins`, so the last
    boundary equals the column maximum and bin `k` covers the half-open
    interval `(boundary[k - 1], boundary[k]]`.

    Args:
        values (np.ndarray): Raw column values.
        n_bins (int): Number of bins, in `[1, MAX_BINS]`.

    Returns:
        np.ndarray: Non-decreasing `float32` boundaries of length `n_bins`;
            empty when `values` is empty.

    Raises:
        ValueError: If `n_bins` is out of range.
    """
    _validate_n_bins(n_bins)
    values = np.asarray(values, dtype=np.float32)
    if len(values) == 0:
        return np.empty(0, dtype=np.float32)

    low = float(values.min())
    high = float(values.max())
    if low == high:
        # Zero-width range: every boundary equals the single value, so every row lands in bin 0.
        logger.debug("Constant column, all rows assigned to bin 0", value=low)
        return np.full(n_bins, low, dtype=np.float32)
    return np.linspace(low, high, n_bins + 1, dtype=np.float64)[1:].astype(np.float32)


# ---------------------------------------------------------------------------
# Public interface -- Bin assignment
# ---------------------------------------------------------------------------


def assign_bins(values: np.ndarray, boundaries: np.ndarray) -> np.ndarray:
    """Assign each value the number of boundaries strictly below it.

    This is the binary-search insertion point of the value into the sorted
    boundaries, which is at most `len(boundaries)` and therefore fits in
    `uint8` as long as there are at most 255 boundaries.

    Args:
        values (np.ndarray): Raw column values.
        boundaries (np.ndarray): Non-decreasing boundaries, at most `MAX_BINS`.

    Returns:
        np.ndarray: `uint8` bin index per value.

    Raises:
        ValueError: If there are more than `MAX_BINS` boundaries.

    Examples:
        >>> assign_bins(np.array([0.5, 1.0, 1.5, 9.0]), np.array([1.0, 2.0])).tolist()
        [0, 0, 1, 2]
    """
    if len(boundaries) > MAX_BINS:
        raise ValueError(f"At most {MAX_BINS} boundaries fit in uint8 bins, got {len(boundaries)}")
    positions = np.searchsorted(
        np.asarray(boundaries, dtype=np.float32),
        np.asarray(values, dtype=np.float32),
        side="left",
    )
    return positions.astype(np.uint8)


# ---------------------------------------------------------------------------
# Public interface -- Column and dataset quantization
# ---------------------------------------------------------------------------


def quantize_column(
    column: Column,
    *,
    strategy: QuantizationStrategy = "random_sample",
    n_bins: int = MAX_BINS,
    samples_per_bin: int = DEFAULT_SAMPLES_PER_BIN,
    rng: np.random.Generator | None = None,
) -> Column:
    """Quantize a raw column; any other column is returned unchanged.

    Args:
        column (Column): Column to quantize.
        strategy (QuantizationStrategy): Boundary selection strategy.
        n_bins (int): Target number of bins, in `[1, MAX_BINS]`. Defaults to 255.
        samples_per_bin (int): Sample multiplier for `"random_sample"`.
        rng (np.random.Generator | None): Random source for `"random_sample"`.

    Returns:
        Column: A `QuantizedColumn` for raw input, otherwise `column` itself.
    """
    if not isinstance(column, RawColumn):
        return column
    if strategy == "uniform":
        boundaries = uniform_boundaries(column.values, n_bins)
    else:
        boundaries = quantiles_from_random_sample(column.values, n_bins, samples_per_bin=samples_per_bin, rng=rng)
    return QuantizedColumn(boundaries, assign_bins(column.values, boundaries))


def quantize_dataset(
    dataset: Dataset,
    *,
    strategy: QuantizationStrategy = "random_sample",
    n_bins: int = MAX_BINS,
    samples_per_bin: int = DEFAULT_SAMPLES_PER_BIN,
    rng: np.random.Generator | None = None,
) -> Dataset:
    """Quantize every raw column of a dataset.

    Columns are processed in lexicographic name order so a seeded generator
    gives the same boundaries on every run.

    Args:
        dataset (Dataset): Dataset whose raw columns should be quantized.
        strategy (QuantizationStrategy): Boundary selection strategy.
        n_bins (int): Target number of bins, in `[1, MAX_BINS]`.
        samples_per_bin (int): Sample multiplier for `"random_sample"`.
        rng (np.random.Generator | None): Random source for `"random_sample"`.

    Returns:
        Dataset: New dataset with quantized columns and the same labels.
    """
    _validate_n_bins(n_bins)
    rng = rng if rng is not None else np.random.default_rng()
    quantized: dict[str, Column] = {}
    for name in dataset.column_names:
        column = dataset.columns[name]
        if isinstance(column, RawColumn):
            quantized[name] = quantize_column(
                column,
                strategy=strategy,
                n_bins=n_bins,
                samples_per_bin=samples_per_bin,
                rng=rng,
            )
    logger.debug("Quantized columns", strategy=strategy, n_bins=n_bins, columns=sorted(quantized))
    return dataset.with_columns(quantized)


# ---------------------------------------------------------------------------
# Private helpers
# ---------------------------------------------------------------------------


def _validate_n_bins(n_bins: int) -> None:
    """Raise `ValueError` unless `1 <= n_bins <= MAX_BINS`.

    Args:
        n_bins (int): Requested bin count.

    Raises:
        ValueError: If `n_bins` is out of range.
    """
    if not (1 <= n_bins <= MAX_BINS):
        raise ValueError(f"n_bins must be between 1 and {MAX_BINS}, got {n_bins}")
