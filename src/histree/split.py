"""Split selection across all quantized columns of a dataset."""

from __future__ import annotations

from typing import NamedTuple

from loguru import logger

from histree.dataset import Dataset, QuantizedColumn
from histree.exceptions import UnquantizedColumnError
from histree.variance import SplitCriterion, best_column_split


class SplitCandidate(NamedTuple):
    """The best split of one column.

    Attributes:
        column (str): Column name.
        bin_cutoff (int): Rows with bin index `< bin_cutoff` go left.
        threshold (float): Raw values `<= threshold` go left.
        score (float): Split score, lower is better.
    """

    column: str
    bin_cutoff: int
    threshold: float
    score: float


def column_candidates(
    dataset: Dataset,
    *,
    criterion: SplitCriterion = "weighted_variance",
) -> list[SplitCandidate]:
    """Score every quantized column and collect one candidate per splittable column.

    Non-quantized columns are skipped. Columns are visited in lexicographic
    name order.

    Args:
        dataset (Dataset): Dataset to evaluate.
        criterion (SplitCriterion): Scoring rule.

    Returns:
        list[SplitCandidate]: Candidates in column-name order; empty when no
            column can be split.
    """
    candidates: list[SplitCandidate] = []
    for name in dataset.column_names:
        column = dataset.columns[name]
        if not isinstance(column, QuantizedColumn):
            continue
        column_split = best_column_split(column, dataset.labels, criterion=criterion)
        if column_split is None:
            continue
        candidates.append(SplitCandidate(name, *column_split))
    return candidates


def find_best_split(
    dataset: Dataset,
    *,
    criterion: SplitCriterion = "weighted_variance",
) -> SplitCandidate | None:
    """Select the lowest-scoring split over all quantized columns.

    Ties keep the candidate whose column name sorts first.

    Args:
        dataset (Dataset): Dataset to evaluate.
        criterion (SplitCriterion): Scoring rule.

    Returns:
        SplitCandidate | None: The winning split, or `None` when no split is possible.
    """
    candidates = column_candidates(dataset, criterion=criterion)
    if not candidates:
        logger.debug("No split candidate", rows=dataset.row_count)
        return None
    best = min(candidates, key=lambda candidate: candidate.score)
    logger.debug(
        "Split selected",
        column=best.column,
        threshold=best.threshold,
        score=best.score,
        candidates=len(candidates),
        rows=dataset.row_count,
    )
    return best


def split_dataset(dataset: Dataset, candidate: SplitCandidate) -> tuple[Dataset, Dataset]:
    """Partition a dataset on a split candidate.

    Args:
        dataset (Dataset): Dataset to partition.
        candidate (SplitCandidate): Split to apply.

    Returns:
        tuple[Dataset, Dataset]: `(left, right)`, where left holds the rows
            whose bin index in `candidate.column` is below `candidate.bin_cutoff`.

    Raises:
        UnquantizedColumnError: If the candidate's column is not quantized.
        KeyError: If the candidate's column does not exist.
    """
    column = dataset.columns[candidate.column]
    if not isinstance(column, QuantizedColumn):
        raise UnquantizedColumnError(column=candidate.column, kind=type(column).__name__)
    return dataset.partition_mask(column.bins < candidate.bin_cutoff)
