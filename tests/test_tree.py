"""Tests for tree building, structural helpers, prediction, and rendering."""

from __future__ import annotations

import numpy as np
import polars as pl
import pytest
from pytest_check import check

from histree.dataset import Dataset, RawColumn, TextColumn
from histree.quantize import quantize_dataset
from histree.rules import leaf_mean
from histree.tree import (
    Branch,
    Leaf,
    build_tree,
    iter_leaves,
    leaf_count,
    map_leaves,
    predict,
    predict_frame,
    render_tree,
    tree_depth,
)


class TestBuildTree:
    """Tests for `build_tree`."""

    def test_zero_depth_returns_input_as_single_leaf(self) -> None:
        """With no depth budget the root should be a leaf holding the unpartitioned input."""
        # Arrange
        dataset = _make_step_dataset()

        # Act
        tree = build_tree(dataset, max_depth=0)

        # Assert
        with check:
            assert isinstance(tree, Leaf)
        with check:
            assert tree.payload is dataset

    @pytest.mark.parametrize("max_depth", [0, 1, 5])
    def test_no_quantized_columns_gives_single_leaf(self, max_depth: int) -> None:
        """Without quantized columns the tree should be one leaf at any depth budget.

        Args:
            max_depth (int): Depth budget.
        """
        # Arrange
        dataset = Dataset(
            {"x": RawColumn(np.arange(20.0)), "city": TextColumn(["Oslo"] * 20)},
            labels=np.arange(20.0),
        )

        # Act
        tree = build_tree(dataset, max_depth=max_depth, min_leaf_size=1)

        # Assert
        assert isinstance(tree, Leaf)
        assert tree.payload.row_count == 20

    def test_step_function_gives_two_homogeneous_leaves(self) -> None:
        """A depth-one tree on a step function should split near 5.5 into constant leaves."""
        # Arrange
        dataset = _make_step_dataset()

        # Act
        tree = build_tree(dataset, max_depth=1, min_leaf_size=1)

        # Assert
        assert isinstance(tree, Branch)
        with check:
            assert tree.column == "x"
        with check:
            assert tree.threshold == pytest.approx(5.5, abs=1e-5)
        with check:
            assert set(tree.left.payload.labels.tolist()) == {0.0}
        with check:
            assert set(tree.right.payload.labels.tolist()) == {10.0}

    def test_depth_never_exceeds_budget(self) -> None:
        """No root-to-leaf path should contain more branches than `max_depth`."""
        # Arrange
        rng = np.random.default_rng(12)
        x = rng.uniform(0.0, 10.0, 400)
        dataset = quantize_dataset(
            Dataset({"x": RawColumn(x)}, labels=np.sin(x) + rng.normal(0.0, 0.1, 400)),
            strategy="uniform",
            n_bins=64,
        )

        # Act
        tree = build_tree(dataset, max_depth=3, min_leaf_size=1)

        # Assert
        with check:
            assert tree_depth(tree) <= 3
        with check:
            assert leaf_count(tree) <= 2**3

    def test_leaves_partition_the_training_rows(self) -> None:
        """Leaf row counts should add up to the input row count."""
        # Arrange
        dataset = _make_step_dataset()

        # Act
        tree = build_tree(dataset, max_depth=4, min_leaf_size=1)

        # Assert
        assert sum(leaf.row_count for leaf in iter_leaves(tree)) == dataset.row_count

    def test_nodes_below_min_leaf_size_are_not_split(self) -> None:
        """A node with fewer rows than `min_leaf_size` should stay a leaf."""
        # Arrange
        dataset = _make_step_dataset()

        # Act
        tree = build_tree(dataset, max_depth=5, min_leaf_size=11)

        # Assert
        assert isinstance(tree, Leaf)

    def test_deeper_trees_keep_leaves_homogeneous(self) -> None:
        """Every leaf of a deep tree on a step function should hold a single label value."""
        # Arrange
        dataset = _make_step_dataset()

        # Act
        tree = build_tree(dataset, max_depth=6, min_leaf_size=1)

        # Assert
        for leaf in iter_leaves(tree):
            with check:
                assert len(set(leaf.labels.tolist())) == 1

    @pytest.mark.parametrize(
        ("max_depth", "min_leaf_size", "match"),
        [(-1, 10, "max_depth"), (3, 0, "min_leaf_size")],
    )
    def test_invalid_arguments_raise(self, max_depth: int, min_leaf_size: int, match: str) -> None:
        """Negative depth or a zero leaf size should raise ValueError.

        Args:
            max_depth (int): Depth budget.
            min_leaf_size (int): Minimum split size.
            match (str): Expected fragment of the error message.
        """
        # Arrange
        dataset = _make_step_dataset()

        # Act / Assert
        with pytest.raises(ValueError, match=match):
            build_tree(dataset, max_depth=max_depth, min_leaf_size=min_leaf_size)


class TestStructuralHelpers:
    """Tests for `map_leaves`, `iter_leaves`, `leaf_count`, and `tree_depth`."""

    def test_identity_map_gives_equal_tree(self) -> None:
        """Mapping leaves with the identity function should give an equal tree."""
        # Arrange
        tree = _make_small_tree()

        # Act
        mapped = map_leaves(tree, lambda payload: payload)

        # Assert
        with check:
            assert mapped == tree
        with check:
            assert mapped is not tree

    def test_map_keeps_shape_and_branch_data(self) -> None:
        """Mapping should transform payloads only, keeping columns, thresholds, and cutoffs."""
        # Arrange
        tree = _make_small_tree()

        # Act
        mapped = map_leaves(tree, lambda payload: payload * 2)

        # Assert
        assert isinstance(mapped, Branch)
        with check:
            assert (mapped.column, mapped.threshold, mapped.bin_cutoff) == ("x", 5.5, 5)
        with check:
            assert list(iter_leaves(mapped)) == [2.0, 20.0, 40.0]
        with check:
            assert tree_depth(mapped) == tree_depth(tree)

    def test_iter_leaves_is_left_to_right(self) -> None:
        """Leaves should be yielded in left-to-right order."""
        # Arrange / Act / Assert
        assert list(iter_leaves(_make_small_tree())) == [1.0, 10.0, 20.0]

    def test_count_and_depth(self) -> None:
        """Leaf count and depth should match the hand-built tree."""
        # Arrange
        tree = _make_small_tree()

        # Act / Assert
        with check:
            assert leaf_count(tree) == 3
        with check:
            assert tree_depth(tree) == 2
        with check:
            assert tree_depth(Leaf(0.0)) == 0


class TestPredict:
    """Tests for `predict` and `predict_frame`."""

    @pytest.mark.parametrize(
        ("row", "expected"),
        [
            ({"x": 1.0, "y": 0.0}, 1.0),
            ({"x": 5.5, "y": 0.0}, 1.0),
            ({"x": 6.0, "y": 2.0}, 10.0),
            ({"x": 6.0, "y": 2.5}, 20.0),
        ],
        ids=["left", "threshold-goes-left", "right-left", "right-right"],
    )
    def test_single_row_routing(self, row: dict[str, float], expected: float) -> None:
        """Rows at or below a threshold should go left, above it right.

        Args:
            row (dict[str, float]): Feature values.
            expected (float): Expected leaf payload.
        """
        # Arrange / Act / Assert
        assert predict(_make_small_tree(), row) == expected

    def test_frame_prediction_matches_row_prediction(self) -> None:
        """Vectorized prediction should agree with routing each row on its own."""
        # Arrange
        tree = _make_small_tree()
        df = pl.DataFrame({"x": [1.0, 5.5, 6.0, 9.0, 6.0], "y": [9.0, 9.0, 2.0, 3.0, 2.5]})

        # Act
        predictions = predict_frame(tree, df)

        # Assert
        expected = [predict(tree, row) for row in df.iter_rows(named=True)]
        with check:
            assert predictions.to_list() == expected
        with check:
            assert predictions.name == "prediction"
        with check:
            assert predictions.dtype == pl.Float64

    def test_built_tree_predicts_training_means(self) -> None:
        """A tree built on the step function should predict each group's mean."""
        # Arrange
        tree = map_leaves(build_tree(_make_step_dataset(), max_depth=1, min_leaf_size=1), leaf_mean)
        df = pl.DataFrame({"x": [2.0, 5.0, 6.0, 9.5]})

        # Act
        predictions = predict_frame(tree, df)

        # Assert
        assert predictions.to_list() == [0.0, 0.0, 10.0, 10.0]


class TestRenderTree:
    """Tests for `render_tree`."""

    def test_render_nested_tree(self) -> None:
        """Each branch should show both conditions with its subtrees indented below."""
        # Arrange
        tree = _make_small_tree()

        # Act
        rendered = render_tree(tree)

        # Assert
        assert rendered.splitlines() == [
            "x <= 5.5:",
            "    -> 1.0",
            "x > 5.5:",
            "    y <= 2.0:",
            "        -> 10.0",
            "    y > 2.0:",
            "        -> 20.0",
        ]

    def test_render_leaf_uses_formatter(self) -> None:
        """A single leaf should render through the payload formatter."""
        # Arrange / Act
        rendered = render_tree(Leaf(3.14159), lambda value: f"{value:.2f}")

        # Assert
        assert rendered == "-> 3.14"


# ---------------------------------------------------------------------------
# Private test helpers
# ---------------------------------------------------------------------------


def _make_step_dataset() -> Dataset:
    """Build the quantized x = 1..10 dataset whose labels step from 0 to 10 after x = 5.

    Returns:
        Dataset: One uniformly quantized column `x` with ten bins.
    """
    raw = Dataset(
        {"x": RawColumn(np.arange(1, 11, dtype=np.float32))},
        labels=[0.0] * 5 + [10.0] * 5,
    )
    return quantize_dataset(raw, strategy="uniform", n_bins=10)


def _make_small_tree() -> Branch[float]:
    """Build a two-level tree with float leaves: x <= 5.5 -> 1.0, else y <= 2.0 -> 10.0, else 20.0.

    Returns:
        Branch[float]: The hand-built tree.
    """
    return Branch("x", 5.5, 5, Leaf(1.0), Branch("y", 2.0, 3, Leaf(10.0), Leaf(20.0)))
