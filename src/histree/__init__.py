"""histree: a single regression tree grown on histogram (quantile-bin) splits."""

from loguru import logger

from histree.dataset import Dataset, QuantizedColumn, RawColumn, TextColumn
from histree.loading import load_csv
from histree.logging import PACKAGE_NAME, enable_logging
from histree.models import LeafSummary, Predicate, RegressionRule, TreeConfig
from histree.timing import Timer
from histree.training import TrainingResult, fit_frame, train_tree
from histree.tree import Branch, Leaf, Tree, build_tree, map_leaves, predict, render_tree

logger.disable(PACKAGE_NAME)  # noqa: RUF067 - Disable logging for the histree package by default

__all__ = [
    "Branch",
    "Dataset",
    "Leaf",
    "LeafSummary",
    "Predicate",
    "QuantizedColumn",
    "RawColumn",
    "RegressionRule",
    "TextColumn",
    "Timer",
    "TrainingResult",
    "Tree",
    "TreeConfig",
    "build_tree",
    "enable_logging",
    "fit_frame",
    "load_csv",
    "map_leaves",
    "predict",
    "render_tree",
    "train_tree",
]
