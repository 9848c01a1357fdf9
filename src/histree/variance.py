"""Histogram variance scoring of every candidate split point of a quantized column.

Two O(N) passes over the rows plus an O(256) scan score all 256 candidate
boundaries of a column at once:

1. per-bin row count and label sum,
2. cumulative mean over bins `0..=b` (the mean of the left side of a split above bin `b`),
3. per-bin sum of squared deviations of each label from the cumulative mean of its own bin,
4. cumulative variance curve: running deviation sum over running row count.

Accumulators are float64 so that identical labels give exactly zero variance.
"""

from __future__ import annotations

from typing import Final, Literal, NamedTuple

import numpy as np

from histree.dataset import QuantizedColumn

type SplitCriterion = Literal["weighted_variance", "left_variance"]

N_BUCKETS: Final[int] = 256

# ---------------------------------------------------------------------------
# Public types
# ---------------------------------------------------------------------------


class VarianceBuckets(NamedTuple):
    """Per-bin histogram of row counts and squared label deviations.

    Attributes:
        counts (np.ndarray): `int64` row count per bin, length 256.
        variance_sums (np.ndarray): `float64` sum of squared deviations per bin,
            each deviation taken from the cumulative mean of the row's own bin.
    """

    counts: np.ndarray
    variance_sums: np.ndarray


class ColumnSplit(NamedTuple):
    """Best split found within a single quantized column.

    Attributes:
        bin_cutoff (int): Rows with bin index `< bin_cutoff` go left.
        threshold (float): Boundary directly above the last left bin; raw
            values `<= threshold` go left.
        score (float): Split score, lower is better.
    """

    bin_cutoff: int
    threshold: float
    score: float


# ---------------------------------------------------------------------------
# Public interface
# ---------------------------------------------------------------------------


def variance_buckets(bins: np.ndarray, labels: np.ndarray) -> VarianceBuckets:
    """Accumulate per-bin counts and squared deviations from the cumulative bin means.

    Args:
        bins (np.ndarray): `uint8` bin index per row.
        labels (np.ndarray): Label per row, same length as `bins`.

    Returns:
        VarianceBuckets: 256-length count and deviation-sum arrays.
    """
    bins = np.asarray(bins, dtype=np.uint8)
    labels = np.asarray(labels, dtype=np.float64)
    counts = np.bincount(bins, minlength=N_BUCKETS)
    sums = np.bincount(bins, weights=labels, minlength=N_BUCKETS)

    with np.errstate(divide="ignore", invalid="ignore"):
        cumulative_means = np.cumsum(sums) / np.cumsum(counts)

    deviations = labels - cumulative_means[bins]
    variance_sums = np.bincount(bins, weights=deviations * deviations, minlength=N_BUCKETS)
    return VarianceBuckets(counts=counts, variance_sums=variance_sums)


def variance_buckets_to_variances(buckets: VarianceBuckets) -> np.ndarray:
    """Turn variance buckets into the cumulative variance-per-row curve.

    Entry `b` is the mean squared deviation of all rows with bin index `<= b`.
    Entries before the first populated bin are NaN.

    Args:
        buckets (VarianceBuckets): Output of `variance_buckets`.

    Returns:
        np.ndarray: `float64` curve of length 256.
    """
    with np.errstate(divide="ignore", invalid="ignore"):
        return np.cumsum(buckets.variance_sums) / np.cumsum(buckets.counts)


def split_scores(
    bins: np.ndarray,
    labels: np.ndarray,
    *,
    criterion: SplitCriterion = "weighted_variance",
) -> np.ndarray:
    """Score a split above every bin of a column.

    Entry `i` scores sending bins `<= i` left and bins `> i` right. It is NaN
    whenever either side would be empty.

    With `"left_variance"` the score is the cumulative variance curve itself.
    With `"weighted_variance"` the same curve is also computed over the
    mirrored bin order to get the right side, and the score is the row-weighted
    mean of the left and right variances.

    Args:
        bins (np.ndarray): `uint8` bin index per row.
        labels (np.ndarray): Label per row.
        criterion (SplitCriterion): Scoring rule. Defaults to `"weighted_variance"`.

    Returns:
        np.ndarray: `float64` score per bin, length 256.
    """
    bins = np.asarray(bins, dtype=np.uint8)
    left_buckets = variance_buckets(bins, labels)
    left_variances = variance_buckets_to_variances(left_buckets)
    left_counts = np.cumsum(left_buckets.counts)
    right_counts = len(bins) - left_counts

    if criterion == "left_variance":
        scores = left_variances.copy()
    else:
        mirrored = variance_buckets(np.uint8(N_BUCKETS - 1) - bins, labels)
        # right_variances[b] covers the rows with bin index >= b
        right_variances = variance_buckets_to_variances(mirrored)[::-1]
        scores = np.full(N_BUCKETS, np.nan)
        scores[:-1] = (left_counts[:-1] * left_variances[:-1] + right_counts[:-1] * right_variances[1:]) / len(bins)

    scores[(left_counts == 0) | (right_counts == 0)] = np.nan
    return scores


def best_column_split(
    column: QuantizedColumn,
    labels: np.ndarray,
    *,
    criterion: SplitCriterion = "weighted_variance",
) -> ColumnSplit | None:
    """Find the lowest-scoring split of one quantized column.

    NaN scores are skipped and the first minimum in ascending bin order wins.
    The winning bin `i` yields `bin_cutoff = i + 1` and the threshold
    `boundaries[i]`.

    Args:
        column (QuantizedColumn): Column to evaluate.
        labels (np.ndarray): Dataset labels, one per row.
        criterion (SplitCriterion): Scoring rule.

    Returns:
        ColumnSplit | None: The best split, or `None` when no split leaves rows
            on both sides.
    """
    if len(column) == 0:
        return None
    scores = split_scores(column.bins, labels, criterion=criterion)
    if np.isnan(scores).all():
        return None
    best_bin = int(np.nanargmin(scores))
    if best_bin >= len(column.boundaries):
        return None
    return ColumnSplit(
        bin_cutoff=best_bin + 1,
        threshold=float(column.boundaries[best_bin]),
        score=float(scores[best_bin]),
    )
