"""Tests for leaf summarization, rule extraction, and the rule models."""

from __future__ import annotations

import math

import numpy as np
import pytest
from pytest_check import check

from histree.dataset import Dataset, RawColumn
from histree.models import LeafSummary, Predicate, RegressionRule
from histree.rules import extract_rules, leaf_mean, summarize_leaf, summarize_tree
from histree.tree import Branch, Leaf, iter_leaves


class TestLeafStatistics:
    """Tests for `leaf_mean` and `summarize_leaf`."""

    def test_mean_and_population_std(self) -> None:
        """The summary should carry the mean, row count, and population standard deviation."""
        # Arrange
        dataset = _make_leaf_dataset([2.0, 4.0, 4.0, 4.0, 5.0, 5.0, 7.0, 9.0])

        # Act
        summary = summarize_leaf(dataset)

        # Assert
        with check:
            assert summary.prediction == pytest.approx(5.0)
        with check:
            assert summary.samples == 8
        with check:
            assert summary.std == pytest.approx(2.0)
        with check:
            assert leaf_mean(dataset) == pytest.approx(5.0)

    def test_empty_leaf_gives_nan(self) -> None:
        """An empty leaf should have a NaN mean and zero samples."""
        # Arrange
        dataset = _make_leaf_dataset([])

        # Act
        summary = summarize_leaf(dataset)

        # Assert
        with check:
            assert math.isnan(leaf_mean(dataset))
        with check:
            assert math.isnan(summary.prediction)
        with check:
            assert summary.samples == 0

    def test_summarize_tree_keeps_shape(self) -> None:
        """Summarizing should replace each leaf dataset with its summary, left to right."""
        # Arrange
        tree = Branch("x", 1.5, 1, Leaf(_make_leaf_dataset([1.0, 3.0])), Leaf(_make_leaf_dataset([10.0])))

        # Act
        summarized = summarize_tree(tree)

        # Assert
        assert [summary.prediction for summary in iter_leaves(summarized)] == [2.0, 10.0]


class TestExtractRules:
    """Tests for `extract_rules`."""

    def test_one_rule_per_leaf_with_path_predicates(self) -> None:
        """Each rule should list the root-to-leaf conditions, `<=` for left turns and `>` for right."""
        # Arrange
        tree = Branch(
            "sqft",
            1250.0,
            40,
            Leaf(_summary(210_000.0, 12)),
            Branch("rooms", 3.0, 3, Leaf(_summary(300_000.0, 8)), Leaf(_summary(420_000.0, 5))),
        )

        # Act
        rules = extract_rules(tree)

        # Assert
        with check:
            assert len(rules) == 3
        with check:
            assert [str(p) for p in rules[0].predicates] == ["sqft <= 1250.0"]
        with check:
            assert [str(p) for p in rules[2].predicates] == ["sqft > 1250.0", "rooms > 3.0"]
        with check:
            assert [rule.prediction for rule in rules] == [210_000.0, 300_000.0, 420_000.0]
        with check:
            assert [rule.samples for rule in rules] == [12, 8, 5]

    def test_single_leaf_tree_has_one_unconditional_rule(self) -> None:
        """A tree with no branches should produce one rule with no predicates."""
        # Arrange / Act
        rules = extract_rules(Leaf(_summary(7.0, 3)))

        # Assert
        with check:
            assert len(rules) == 1
        with check:
            assert rules[0].predicates == []
        with check:
            assert str(rules[0]).startswith("IF TRUE THEN 7")

    def test_each_row_matches_exactly_one_rule(self) -> None:
        """The rules of a tree should be mutually exclusive and cover every row."""
        # Arrange
        tree = Branch("x", 5.0, 5, Leaf(_summary(0.0, 1)), Branch("y", 1.0, 1, Leaf(_summary(1.0, 1)), Leaf(_summary(2.0, 1))))
        rules = extract_rules(tree)
        rows = [{"x": x, "y": y} for x in (0.0, 5.0, 5.1, 9.0) for y in (-1.0, 1.0, 1.5)]

        # Act
        match_counts = [sum(rule.matches(row) for rule in rules) for row in rows]

        # Assert
        assert match_counts == [1] * len(rows)


class TestRuleModels:
    """Tests for `Predicate` and `RegressionRule`."""

    @pytest.mark.parametrize(
        ("operator", "x", "expected"),
        [("<=", 3.0, True), ("<=", 3.5, False), (">", 3.0, False), (">", 3.5, True)],
    )
    def test_predicate_eval(self, operator: str, x: float, expected: bool) -> None:
        """Predicates should compare the feature value against the threshold.

        Args:
            operator (str): Predicate operator.
            x (float): Feature value.
            expected (bool): Expected outcome.
        """
        # Arrange
        predicate = Predicate(variable="x", operator=operator, value=3.0)  # type: ignore[arg-type]

        # Act / Assert
        assert predicate.eval(x) is expected

    def test_rule_string(self) -> None:
        """A rule should render as IF/AND/THEN with its leaf statistics."""
        # Arrange
        rule = RegressionRule(
            predicates=[
                Predicate(variable="sqft", operator=">", value=1250.0),
                Predicate(variable="rooms", operator="<=", value=3.0),
            ],
            prediction=412_000.0,
            samples=87,
            std=35_500.0,
        )

        # Act / Assert
        assert str(rule) == "IF sqft > 1250.0 AND rooms <= 3.0 THEN 4.12e+05 (samples=87, std=3.55e+04)"

    def test_invalid_operator_is_rejected(self) -> None:
        """Operators other than `<=` and `>` should fail validation."""
        # Arrange / Act / Assert
        with pytest.raises(ValueError):
            Predicate(variable="x", operator="==", value=1.0)  # type: ignore[arg-type]

    def test_negative_samples_are_rejected(self) -> None:
        """A leaf summary cannot have a negative row count."""
        # Arrange / Act / Assert
        with pytest.raises(ValueError):
            LeafSummary(prediction=1.0, samples=-1, std=0.0)


# ---------------------------------------------------------------------------
# Private test helpers
# ---------------------------------------------------------------------------


def _make_leaf_dataset(labels: list[float]) -> Dataset:
    """Build a leaf dataset with one raw column and the given labels.

    Args:
        labels (list[float]): Leaf labels.

    Returns:
        Dataset: Dataset with a single column `x` holding `0..len(labels)`.
    """
    return Dataset({"x": RawColumn(np.arange(len(labels), dtype=np.float32))}, labels=labels)


def _summary(prediction: float, samples: int) -> LeafSummary:
    """Build a leaf summary with zero spread.

    Args:
        prediction (float): Leaf mean.
        samples (int): Leaf row count.

    Returns:
        LeafSummary: The summary.
    """
    return LeafSummary(prediction=prediction, samples=samples, std=0.0)
