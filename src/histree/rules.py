"""Leaf summarization and rule extraction for built trees."""

from __future__ import annotations

import numpy as np

from histree.dataset import Dataset
from histree.models import LeafSummary, Predicate, RegressionRule
from histree.tree import Leaf, Tree, map_leaves


def leaf_mean(dataset: Dataset) -> float:
    """Return the arithmetic mean of a leaf's labels, NaN when the leaf is empty."""
    if dataset.row_count == 0:
        return float("nan")
    return float(np.mean(dataset.labels, dtype=np.float64))


def summarize_leaf(dataset: Dataset) -> LeafSummary:
    """Summarize the labels of one leaf dataset.

    Args:
        dataset (Dataset): Rows that reached the leaf.

    Returns:
        LeafSummary: Mean, row count, and population standard deviation.
    """
    if dataset.row_count == 0:
        return LeafSummary(prediction=float("nan"), samples=0, std=float("nan"))
    return LeafSummary(
        prediction=leaf_mean(dataset),
        samples=dataset.row_count,
        std=float(np.std(dataset.labels, dtype=np.float64)),
    )


def summarize_tree(tree: Tree[Dataset]) -> Tree[LeafSummary]:
    """Replace every leaf dataset with its `LeafSummary`."""
    return map_leaves(tree, summarize_leaf)


def extract_rules(tree: Tree[LeafSummary]) -> list[RegressionRule]:
    """Extract one rule per leaf, from left to right.

    Each rule lists the predicates on the path from the root to its leaf: a
    `"<="` predicate for every left turn and a `">"` predicate for every right
    turn.

    Args:
        tree (Tree[LeafSummary]): A summarized tree.

    Returns:
        list[RegressionRule]: Rules in left-to-right leaf order.
    """
    rules: list[RegressionRule] = []
    _walk_tree(tree, path_predicates=[], rules=rules)
    return rules


def _walk_tree(
    node: Tree[LeafSummary],
    *,
    path_predicates: list[Predicate],
    rules: list[RegressionRule],
) -> None:
    """Recursively walk a subtree and append its leaf rules to `rules`.

    Args:
        node (Tree[LeafSummary]): Current subtree.
        path_predicates (list[Predicate]): Predicates from the root down to `node`.
        rules (list[RegressionRule]): Accumulator; leaf rules are appended in place.
    """
    if isinstance(node, Leaf):
        summary = node.payload
        rules.append(
            RegressionRule(
                predicates=path_predicates,
                prediction=summary.prediction,
                samples=summary.samples,
                std=summary.std,
            )
        )
        return

    left_predicate = Predicate(variable=node.column, operator="<=", value=node.threshold)
    right_predicate = Predicate(variable=node.column, operator=">", value=node.threshold)
    _walk_tree(node.left, path_predicates=[*path_predicates, left_predicate], rules=rules)
    _walk_tree(node.right, path_predicates=[*path_predicates, right_predicate], rules=rules)
