"""Pydantic configuration, leaf summary, and rule models."""

from __future__ import annotations

import operator
from collections.abc import Callable
from typing import Literal

from pydantic import BaseModel, Field

from histree.quantize import DEFAULT_SAMPLES_PER_BIN, MAX_BINS, QuantizationStrategy
from histree.variance import SplitCriterion

# ---------------------------------------------------------------------------
# Public type aliases
# ---------------------------------------------------------------------------

type PredicateOp = Literal["<=", ">"]

# ---------------------------------------------------------------------------
# Public models
# ---------------------------------------------------------------------------


class TreeConfig(BaseModel):
    """Training configuration for a single histogram regression tree.

    Attributes:
        max_depth (int): Maximum number of splits on any root-to-leaf path.
            `0` produces a single leaf.
        min_leaf_size (int): Nodes with fewer rows than this become leaves.
        n_bins (int): Number of quantile bins per column, at most 255.
        strategy (QuantizationStrategy): Boundary selection strategy.
        samples_per_bin (int): Sample multiplier for the `"random_sample"` strategy.
        criterion (SplitCriterion): Split scoring rule.
        seed (int | None): Seed for the random-sample strategy. `None` means
            non-deterministic boundaries.

    Examples:
        >>> config = TreeConfig(max_depth=3, strategy="uniform")
        >>> config.n_bins
        255
    """

    max_depth: int = Field(
        default=6,
        ge=0,
        description="Maximum number of splits on any root-to-leaf path; 0 yields a single leaf.",
    )
    min_leaf_size: int = Field(
        default=10,
        ge=1,
        description="Nodes with fewer rows than this are not split further.",
    )
    n_bins: int = Field(
        default=MAX_BINS,
        ge=1,
        le=MAX_BINS,
        description="Number of quantile bins per column; bins are stored as uint8.",
    )
    strategy: QuantizationStrategy = Field(
        default="random_sample",
        description="Boundary selection: random-sample quantiles or a uniform range.",
    )
    samples_per_bin: int = Field(
        default=DEFAULT_SAMPLES_PER_BIN,
        ge=1,
        description="Values sampled per bin when estimating random-sample quantiles.",
    )
    criterion: SplitCriterion = Field(
        default="weighted_variance",
        description="Split score: row-weighted variance of both children, or of the left child only.",
    )
    seed: int | None = Field(
        default=None,
        description="Seed for the random-sample strategy; None for non-deterministic boundaries.",
    )


class LeafSummary(BaseModel):
    """Label statistics of the training rows that reached one leaf.

    Attributes:
        prediction (float): Mean label; NaN for an empty leaf.
        samples (int): Number of training rows at the leaf.
        std (float): Population standard deviation of the labels.
    """

    prediction: float = Field(description="Mean label of the rows at this leaf.")
    samples: int = Field(ge=0, description="Number of training rows at this leaf.")
    std: float = Field(description="Population standard deviation of the labels at this leaf.")


class Predicate(BaseModel):
    """A single threshold condition on one feature column.

    Attributes:
        variable (str): Column name the condition applies to.
        operator (PredicateOp): `"<="` for the left branch, `">"` for the right.
        value (float): Split threshold.

    Examples:
        >>> p = Predicate(variable="sqft", operator="<=", value=1250.0)
        >>> str(p)
        'sqft <= 1250.0'
        >>> p.eval(900.0)
        True
    """

    variable: str = Field(description="Column name the condition applies to.")
    operator: PredicateOp = Field(description="'<=' for the left branch, '>' for the right branch.")
    value: float = Field(description="Split threshold.")

    def __str__(self) -> str:
        """Return the predicate as `"<variable> <operator> <value>"`."""
        return f"{self.variable} {self.operator} {self.value}"

    def eval(self, x: float) -> bool:
        """Evaluate this predicate against a feature value.

        Args:
            x (float): The feature value to test.

        Returns:
            bool: `True` if the predicate holds for `x`.
        """
        return _OPS[self.operator](x, self.value)


class RegressionRule(BaseModel):
    """The path from the root to one leaf, with that leaf's statistics.

    Attributes:
        predicates (list[Predicate]): Conditions along the path, root first.
            Empty for a single-leaf tree.
        prediction (float): Mean label at the leaf.
        samples (int): Number of training rows at the leaf.
        std (float): Standard deviation of the labels at the leaf.

    Examples:
        >>> rule = RegressionRule(
        ...     predicates=[Predicate(variable="sqft", operator=">", value=1250.0)],
        ...     prediction=412000.0,
        ...     samples=87,
        ...     std=35500.0,
        ... )
        >>> rule.matches({"sqft": 1800.0})
        True
    """

    predicates: list[Predicate] = Field(
        description="Conditions along the root-to-leaf path; empty for a single-leaf tree.",
    )
    prediction: float = Field(description="Mean label at the leaf.")
    samples: int = Field(ge=0, description="Number of training rows at the leaf.")
    std: float = Field(description="Standard deviation of the labels at the leaf.")

    def __str__(self) -> str:
        """Return the rule as `"IF <p1> AND <p2> THEN <prediction>"`."""
        condition = " AND ".join(str(predicate) for predicate in self.predicates) or "TRUE"
        return f"IF {condition} THEN {self.prediction:.4g} (samples={self.samples}, std={self.std:.4g})"

    def matches(self, row: dict[str, float]) -> bool:
        """Return True when every predicate holds for the row."""
        return all(predicate.eval(row[predicate.variable]) for predicate in self.predicates)


# ---------------------------------------------------------------------------
# Private helpers
# ---------------------------------------------------------------------------

_OPS: dict[str, Callable[[float, float], bool]] = {
    "<=": operator.le,
    ">": operator.gt,
}
