"""Delimited-text loading into a `Dataset`.

Column types are inferred from the first data row only: a column whose first
value parses as a number is loaded as a float column, anything else is
dropped (or kept as text on request).
"""

from __future__ import annotations

from pathlib import Path
from typing import IO

import polars as pl
from loguru import logger

from histree.dataset import Dataset, RawColumn, TextColumn
from histree.exceptions import LabelColumnNotFoundError, LabelColumnTypeError


def load_csv(
    source: str | Path | IO[bytes] | bytes,
    label: str,
    *,
    separator: str = ",",
    keep_text: bool = False,
) -> Dataset:
    """Load a delimited text file into a dataset.

    Args:
        source (str | Path | IO[bytes] | bytes): Path, open binary file, or raw bytes.
        label (str): Name of the numeric label column.
        separator (str): Field separator. Defaults to `","`.
        keep_text (bool): Keep non-numeric columns as `TextColumn`s instead of
            dropping them. Defaults to False.

    Returns:
        Dataset: Float feature columns (plus text columns when `keep_text`)
            and the label.

    Raises:
        LabelColumnNotFoundError: If the header has no `label` column.
        LabelColumnTypeError: If the label's first value is not numeric.
    """
    if not isinstance(source, (str, Path, bytes)):
        # The source is read twice, so a stream is buffered first.
        source = source.read()
    first_row = pl.read_csv(source, separator=separator, n_rows=1, infer_schema_length=1)
    schema_overrides = {
        name: pl.Float64 if dtype.is_numeric() else pl.String for name, dtype in first_row.schema.items()
    }
    df = pl.read_csv(source, separator=separator, schema_overrides=schema_overrides)
    if label not in df.columns:
        raise LabelColumnNotFoundError(label=label, available_columns=list(df.columns))
    if not df[label].dtype.is_numeric():
        raise LabelColumnTypeError(label=label, dtype=str(df[label].dtype))

    columns: dict[str, RawColumn | TextColumn] = {}
    dropped: list[str] = []
    for name in df.columns:
        if name == label:
            continue
        series = df[name]
        if series.dtype.is_numeric():
            columns[name] = RawColumn(series.cast(pl.Float32).to_numpy())
        elif keep_text:
            columns[name] = TextColumn(tuple(series.cast(pl.String).to_list()))
        else:
            dropped.append(name)

    if dropped:
        logger.debug("Dropped non-numeric columns", columns=dropped)
    logger.info("Loaded dataset", rows=df.height, columns=len(columns), label=label)
    return Dataset(columns, df[label].cast(pl.Float32).to_numpy())
