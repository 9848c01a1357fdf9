"""Custom exceptions for histree.

This module defines the precondition violations raised by the training engine.
Degenerate data (constant columns, empty candidate sets) is never an error;
these exceptions only signal a malformed call.

Dataset validation exceptions:
- LabelColumnNotFoundError: Raised when the label column does not exist (ValueError).
- LabelColumnTypeError: Raised when the label column is not numeric (TypeError).
- RowCountMismatchError: Raised when a column's length differs from the label length (ValueError).

Split exceptions:
- UnquantizedColumnError: Raised when a split is requested on a column that has
  not been quantized (TypeError).
"""

from __future__ import annotations


class LabelColumnNotFoundError(ValueError):
    """Raised when the designated label column does not exist.

    Attributes:
        label (str): The requested label column name.
        available_columns (list[str]): Column names present in the input.

    Examples:
        >>> err = LabelColumnNotFoundError(label="price", available_columns=["sqft", "rooms"])
        >>> err.label
        'price'
    """

    label: str
    available_columns: list[str]

    def __init__(self, label: str, available_columns: list[str]) -> None:
        """Initialize LabelColumnNotFoundError.

        Args:
            label (str): The label column name that was not found.
            available_columns (list[str]): Column names present in the input.
        """
        super().__init__(f"Label column '{label}' not found; available columns: {sorted(available_columns)}")
        self.label = label
        self.available_columns = available_columns


class LabelColumnTypeError(TypeError):
    """Raised when the label column exists but is not numeric.

    Attributes:
        label (str): The label column name.
        dtype (str): String form of the offending column type.

    Examples:
        >>> err = LabelColumnTypeError(label="city", dtype="String")
        >>> err.dtype
        'String'
    """

    label: str
    dtype: str

    def __init__(self, label: str, dtype: str) -> None:
        """Initialize LabelColumnTypeError.

        Args:
            label (str): The label column name.
            dtype (str): String form of the column's type.
        """
        super().__init__(f"Label column '{label}' must be numeric, got {dtype}")
        self.label = label
        self.dtype = dtype


class RowCountMismatchError(ValueError):
    """Raised when a column does not have one entry per label.

    Attributes:
        column (str): Name of the offending column.
        expected (int): Number of labels (the dataset row count).
        actual (int): Number of entries in the column.
    """

    column: str
    expected: int
    actual: int

    def __init__(self, column: str, expected: int, actual: int) -> None:
        """Initialize RowCountMismatchError.

        Args:
            column (str): Name of the offending column.
            expected (int): Number of labels.
            actual (int): Number of entries in the column.
        """
        super().__init__(f"Column '{column}' has {actual} rows, expected {expected}")
        self.column = column
        self.expected = expected
        self.actual = actual

    def __repr__(self) -> str:
        """Return detailed representation for debugging.

        Returns:
            str: Representation including column name and both row counts.
        """
        return f"{self.__class__.__name__}(column={self.column!r}, expected={self.expected}, actual={self.actual})"


class UnquantizedColumnError(TypeError):
    """Raised when a split is requested on a column that is not quantized.

    Only quantized columns carry per-row bin indices, so they are the only
    columns a split can be applied to.

    Attributes:
        column (str): Name of the column.
        kind (str): The column variant that was found instead, e.g. `"RawColumn"`.

    Examples:
        >>> err = UnquantizedColumnError(column="age", kind="RawColumn")
        >>> str(err)
        "Cannot split on column 'age': expected QuantizedColumn, got RawColumn"
    """

    column: str
    kind: str

    def __init__(self, column: str, kind: str) -> None:
        """Initialize UnquantizedColumnError.

        Args:
            column (str): Name of the column.
            kind (str): Name of the column variant that was found.
        """
        super().__init__(f"Cannot split on column '{column}': expected QuantizedColumn, got {kind}")
        self.column = column
        self.kind = kind
