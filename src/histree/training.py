"""Training pipeline orchestration: quantize, build, summarize."""

from __future__ import annotations

from dataclasses import dataclass

import numpy as np
import polars as pl
from loguru import logger

from histree.dataset import Dataset, QuantizedColumn
from histree.models import LeafSummary, RegressionRule, TreeConfig
from histree.quantize import quantize_dataset
from histree.rules import extract_rules, summarize_tree
from histree.timing import DISABLED_TIMER, Timer
from histree.tree import Tree, build_tree, leaf_count, map_leaves, predict_frame, render_tree, tree_depth


@dataclass(frozen=True)
class TrainingResult:
    """A trained tree together with its rules and shape metadata.

    Attributes:
        tree (Tree[LeafSummary]): The trained tree with summarized leaves.
        rules (list[RegressionRule]): One rule per leaf, left to right.
        features (list[str]): Quantized columns available for splitting, sorted.
        sample_count (int): Number of training rows.
        depth (int): Depth of the trained tree.
        leaf_count (int): Number of leaves in the trained tree.
    """

    tree: Tree[LeafSummary]
    rules: list[RegressionRule]
    features: list[str]
    sample_count: int
    depth: int
    leaf_count: int

    def predict(self, df: pl.DataFrame) -> pl.Series:
        """Predict the leaf mean for every row of `df`."""
        return predict_frame(map_leaves(self.tree, lambda summary: summary.prediction), df)

    def render(self) -> str:
        """Render the tree as indented text with leaf statistics."""
        return render_tree(
            self.tree,
            lambda summary: f"{summary.prediction:.4g} (samples={summary.samples}, std={summary.std:.4g})",
        )


def train_tree(
    dataset: Dataset,
    config: TreeConfig | None = None,
    *,
    rng: np.random.Generator | None = None,
    timer: Timer = DISABLED_TIMER,
) -> TrainingResult:
    """Quantize a dataset, grow a tree on it, and summarize the leaves.

    Args:
        dataset (Dataset): Training data with raw (or already quantized) columns.
        config (TreeConfig | None): Training configuration; defaults to `TreeConfig()`.
        rng (np.random.Generator | None): Random source for the random-sample
            strategy. Defaults to `np.random.default_rng(config.seed)`.
        timer (Timer): Receives `"quantize"`, `"build_tree"`, `"split_search"`
            and `"summarize"` spans when enabled.

    Returns:
        TrainingResult: The trained tree, its rules, and shape metadata.
    """
    config = config if config is not None else TreeConfig()
    rng = rng if rng is not None else np.random.default_rng(config.seed)
    logger.info(
        "Training started",
        rows=dataset.row_count,
        columns=len(dataset.columns),
        max_depth=config.max_depth,
        strategy=config.strategy,
    )

    with timer.span("quantize"):
        quantized = quantize_dataset(
            dataset,
            strategy=config.strategy,
            n_bins=config.n_bins,
            samples_per_bin=config.samples_per_bin,
            rng=rng,
        )
    with timer.span("build_tree"):
        dataset_tree = build_tree(
            quantized,
            max_depth=config.max_depth,
            min_leaf_size=config.min_leaf_size,
            criterion=config.criterion,
            timer=timer,
        )
    with timer.span("summarize"):
        summary_tree = summarize_tree(dataset_tree)
        rules = extract_rules(summary_tree)

    result = TrainingResult(
        tree=summary_tree,
        rules=rules,
        features=[name for name in quantized.column_names if isinstance(quantized.columns[name], QuantizedColumn)],
        sample_count=dataset.row_count,
        depth=tree_depth(summary_tree),
        leaf_count=leaf_count(summary_tree),
    )
    logger.info("Training finished", depth=result.depth, leaves=result.leaf_count)
    return result


def fit_frame(
    df: pl.DataFrame,
    label: str,
    config: TreeConfig | None = None,
    *,
    timer: Timer = DISABLED_TIMER,
) -> TrainingResult:
    """Train a tree directly from a polars DataFrame.

    Args:
        df (pl.DataFrame): Training frame.
        label (str): Name of the numeric label column.
        config (TreeConfig | None): Training configuration.
        timer (Timer): Span timer.

    Returns:
        TrainingResult: The trained tree, its rules, and shape metadata.

    Raises:
        LabelColumnNotFoundError: If `label` is not a column of `df`.
        LabelColumnTypeError: If the label column is not numeric.
    """
    return train_tree(Dataset.from_polars(df, label), config, timer=timer)
