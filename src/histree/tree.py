"""Binary regression tree: node types, recursive builder, and structural helpers.

A tree is either a `Leaf` holding a payload or a `Branch` holding the split
column, its threshold, and two owned subtrees. Trees are built once by
`build_tree` (with `Dataset` leaves) and afterwards only transformed into new
trees of the same shape with `map_leaves`.
"""

from __future__ import annotations

from collections.abc import Callable, Iterator, Mapping
from dataclasses import dataclass
from typing import Any

import numpy as np
import polars as pl
from loguru import logger

from histree.dataset import Dataset
from histree.split import find_best_split, split_dataset
from histree.timing import DISABLED_TIMER, Timer
from histree.variance import SplitCriterion

# ---------------------------------------------------------------------------
# Node types
# ---------------------------------------------------------------------------


@dataclass(frozen=True)
class Leaf[T]:
    """Terminal node.

    Attributes:
        payload (T): Leaf content, e.g. the leaf's `Dataset` right after
            building or a `LeafSummary` after summarization.
    """

    payload: T

    def map[U](self, fn: Callable[[T], U]) -> Leaf[U]:
        return Leaf(fn(self.payload))


@dataclass(frozen=True)
class Branch[T]:
    """Internal node splitting on one quantized column.

    Attributes:
        column (str): Column the split tests.
        threshold (float): Raw values `<= threshold` go left.
        bin_cutoff (int): Bin indices `< bin_cutoff` go left.
        left (Tree[T]): Subtree for rows at or below the threshold.
        right (Tree[T]): Subtree for rows above the threshold.
    """

    column: str
    threshold: float
    bin_cutoff: int
    left: Tree[T]
    right: Tree[T]

    def map[U](self, fn: Callable[[T], U]) -> Branch[U]:
        return Branch(self.column, self.threshold, self.bin_cutoff, self.left.map(fn), self.right.map(fn))


type Tree[T] = Leaf[T] | Branch[T]

# ---------------------------------------------------------------------------
# Public interface -- Building
# ---------------------------------------------------------------------------


def build_tree(
    dataset: Dataset,
    *,
    max_depth: int,
    min_leaf_size: int = 10,
    criterion: SplitCriterion = "weighted_variance",
    timer: Timer = DISABLED_TIMER,
) -> Tree[Dataset]:
    """Grow a regression tree over a dataset with quantized columns.

    A node becomes a leaf holding its (unpartitioned) dataset when the depth
    budget is used up, when it has fewer than `min_leaf_size` rows, or when no
    quantized column can be split. Otherwise it becomes a branch on the best
    split and both halves are built with one less level of depth.

    Args:
        dataset (Dataset): Training rows; only `QuantizedColumn`s are split on.
        max_depth (int): Remaining depth budget, `>= 0`.
        min_leaf_size (int): Minimum row count for a node to be split, `>= 1`.
        criterion (SplitCriterion): Split scoring rule.
        timer (Timer): Receives one `"split_search"` span per evaluated node.

    Returns:
        Tree[Dataset]: The built tree with dataset leaves.

    Raises:
        ValueError: If `max_depth` is negative or `min_leaf_size` is below 1.
    """
    if max_depth < 0:
        raise ValueError(f"max_depth must be non-negative, got {max_depth}")
    if min_leaf_size < 1:
        raise ValueError(f"min_leaf_size must be at least 1, got {min_leaf_size}")
    return _build_node(dataset, max_depth, min_leaf_size=min_leaf_size, criterion=criterion, timer=timer)


# ---------------------------------------------------------------------------
# Public interface -- Structural helpers
# ---------------------------------------------------------------------------


def map_leaves[T, U](tree: Tree[T], fn: Callable[[T], U]) -> Tree[U]:
    """Replace every leaf payload with `fn(payload)`, keeping branches unchanged.

    Args:
        tree (Tree[T]): Source tree.
        fn (Callable[[T], U]): Leaf transformation.

    Returns:
        Tree[U]: A new tree of the same shape.
    """
    return tree.map(fn)


def iter_leaves[T](tree: Tree[T]) -> Iterator[T]:
    """Yield leaf payloads from left to right."""
    if isinstance(tree, Leaf):
        yield tree.payload
        return
    yield from iter_leaves(tree.left)
    yield from iter_leaves(tree.right)


def leaf_count(tree: Tree[object]) -> int:
    """Return the number of leaves in the tree."""
    return sum(1 for _ in iter_leaves(tree))


def tree_depth(tree: Tree[object]) -> int:
    """Return the number of branches on the longest root-to-leaf path."""
    if isinstance(tree, Leaf):
        return 0
    return 1 + max(tree_depth(tree.left), tree_depth(tree.right))


def predict[T](tree: Tree[T], row: Mapping[str, float]) -> T:
    """Route one row to its leaf and return the leaf payload.

    Args:
        tree (Tree[T]): A built tree.
        row (Mapping[str, float]): Raw feature values keyed by column name; must
            contain every column the row's path splits on.

    Returns:
        T: Payload of the reached leaf.
    """
    node = tree
    while isinstance(node, Branch):
        node = node.left if np.float32(row[node.column]) <= np.float32(node.threshold) else node.right
    return node.payload


def predict_frame(tree: Tree[float], df: pl.DataFrame) -> pl.Series:
    """Predict every row of a polars DataFrame with a tree of float leaves.

    Args:
        tree (Tree[float]): Tree whose leaves are predictions, e.g. the output
            of `map_leaves(tree, leaf_mean)`.
        df (pl.DataFrame): Rows to predict; must contain every split column.

    Returns:
        pl.Series: `Float64` series named `"prediction"`, one value per row.
    """
    predictions = np.full(df.height, np.nan, dtype=np.float64)
    column_cache: dict[str, np.ndarray] = {}

    def _route(node: Tree[float], rows: np.ndarray) -> None:
        if isinstance(node, Leaf):
            predictions[rows] = node.payload
            return
        if node.column not in column_cache:
            column_cache[node.column] = df[node.column].cast(pl.Float32).to_numpy()
        goes_left = column_cache[node.column][rows] <= np.float32(node.threshold)
        _route(node.left, rows[goes_left])
        _route(node.right, rows[~goes_left])

    _route(tree, np.arange(df.height))
    return pl.Series("prediction", predictions, dtype=pl.Float64)


def render_tree[T](tree: Tree[T], fmt: Callable[[T], str] = str, *, indent: str = "    ") -> str:
    """Render a tree as indented text, one line per branch condition or leaf.

    Args:
        tree (Tree[T]): Tree to render.
        fmt (Callable[[T], str]): Leaf payload formatter. Defaults to `str`.
        indent (str): Indentation added per level.

    Returns:
        str: The rendered tree.

    Examples:
        >>> tree = Branch("x", 5.5, 5, Leaf(0.0), Leaf(10.0))
        >>> print(render_tree(tree))
        x <= 5.5:
            -> 0.0
        x > 5.5:
            -> 10.0
    """
    return "\n".join(_render_lines(tree, fmt, indent, depth=0))


# ---------------------------------------------------------------------------
# Private helpers
# ---------------------------------------------------------------------------


def _build_node(
    dataset: Dataset,
    max_depth: int,
    *,
    min_leaf_size: int,
    criterion: SplitCriterion,
    timer: Timer,
) -> Tree[Dataset]:
    """Build one node and, for branches, both of its subtrees."""
    if max_depth == 0 or dataset.row_count < min_leaf_size:
        return Leaf(dataset)

    with timer.span("split_search"):
        candidate = find_best_split(dataset, criterion=criterion)
    if candidate is None:
        return Leaf(dataset)

    left, right = split_dataset(dataset, candidate)
    logger.trace(
        "Branch created",
        column=candidate.column,
        threshold=candidate.threshold,
        left_rows=left.row_count,
        right_rows=right.row_count,
        depth_remaining=max_depth - 1,
    )
    child_kwargs: dict[str, Any] = {"min_leaf_size": min_leaf_size, "criterion": criterion, "timer": timer}
    return Branch(
        candidate.column,
        candidate.threshold,
        candidate.bin_cutoff,
        _build_node(left, max_depth - 1, **child_kwargs),
        _build_node(right, max_depth - 1, **child_kwargs),
    )


def _render_lines[T](tree: Tree[T], fmt: Callable[[T], str], indent: str, *, depth: int) -> Iterator[str]:
    """Yield the rendered lines of a subtree at the given depth."""
    prefix = indent * depth
    if isinstance(tree, Leaf):
        yield f"{prefix}-> {fmt(tree.payload)}"
        return
    yield f"{prefix}{tree.column} <= {tree.threshold}:"
    yield from _render_lines(tree.left, fmt, indent, depth=depth + 1)
    yield f"{prefix}{tree.column} > {tree.threshold}:"
    yield from _render_lines(tree.right, fmt, indent, depth=depth + 1)
