from __future__ import annotations

import logging
from typing import List, Optional, Sequence

import numpy as np
import pandas as pd

logger = logging.getLogger(__name__)

UNMAPPED_POLICIES = ("error", "na", "drop")


class TransformError(Exception):
    """Raised when a reshape or recode cannot be applied to a table."""


class UnmappedLevelError(TransformError):
    """Raised when a column holds values outside the declared level list."""

    def __init__(self, column: str, values: List[str]):
        self.column = column
        self.values = values
        super().__init__(f"Column '{column}' has values outside the declared levels: {values}")


# ---------------------------------------------------------------------------
# Wide -> long
# ---------------------------------------------------------------------------

def pivot_longer(
    df: pd.DataFrame,
    columns: Sequence[str],
    names_to: str = "name",
    values_to: str = "value",
) -> pd.DataFrame:
    """
    Stack the given wide columns into a key column and a value column.

    Every other column is carried along as an identifier. The result has
    len(df) * len(columns) rows, ordered by original row and then by the
    order of `columns`:

        date        unemployment  interest          date        name          value
        1990-01-01  5.4           8.2         ->    1990-01-01  unemployment  5.4
                                                    1990-01-01  interest      8.2
    """
    columns = list(columns)
    if not columns:
        raise TransformError("pivot_longer needs at least one column to pivot.")

    missing = [c for c in columns if c not in df.columns]
    if missing:
        raise TransformError(f"Cannot pivot missing columns {missing}. Present: {list(df.columns)}")

    clash = [c for c in (names_to, values_to) if c in df.columns and c not in columns]
    if clash:
        raise TransformError(f"Output columns {clash} already exist in the table.")

    id_cols = [c for c in df.columns if c not in columns]

    # melt stacks column-by-column; a stable sort on the original row
    # position restores row-major order.
    long = df.reset_index(drop=True).reset_index(names="_row")
    long = long.melt(
        id_vars=["_row"] + id_cols,
        value_vars=columns,
        var_name=names_to,
        value_name=values_to,
    )
    long = long.sort_values("_row", kind="stable").drop(columns="_row").reset_index(drop=True)
    return long


# ---------------------------------------------------------------------------
# Ordered factors
# ---------------------------------------------------------------------------

def to_ordered_categorical(
    df: pd.DataFrame,
    column: str,
    levels: Sequence[str],
    on_unmapped: str = "error",
) -> pd.DataFrame:
    """
    Return a copy of df with `column` recoded as an ordered categorical.

    `levels` fixes both the allowed values and their display order.
    Values already missing stay missing. Any other value not in `levels`
    is handled by on_unmapped:
      - "error": raise UnmappedLevelError (default)
      - "na":    keep the row, set the value to missing
      - "drop":  remove the row
    """
    if on_unmapped not in UNMAPPED_POLICIES:
        raise TransformError(f"on_unmapped must be one of {UNMAPPED_POLICIES}, got {on_unmapped!r}")
    if column not in df.columns:
        raise TransformError(f"Column '{column}' not found. Present: {list(df.columns)}")

    levels = list(levels)
    if len(set(levels)) != len(levels):
        raise TransformError(f"Levels for '{column}' contain duplicates: {levels}")

    raw = df[column]
    unmapped_mask = raw.notna() & ~raw.isin(levels)
    unmapped = sorted({str(v) for v in raw[unmapped_mask]})

    out = df.copy()
    if unmapped:
        if on_unmapped == "error":
            raise UnmappedLevelError(column, unmapped)
        if on_unmapped == "drop":
            logger.warning(
                "Dropping %d rows with unmapped %s values: %s",
                int(unmapped_mask.sum()), column, unmapped,
            )
            out = out.loc[~unmapped_mask]
        else:
            logger.warning(
                "Setting %d unmapped %s values to missing: %s",
                int(unmapped_mask.sum()), column, unmapped,
            )

    out[column] = pd.Categorical(out[column], categories=levels, ordered=True)
    return out


# ---------------------------------------------------------------------------
# Small derived columns
# ---------------------------------------------------------------------------

def signif(values, digits: int):
    """
    Round to `digits` significant digits, half to even (like R's signif).

    signif(1987, 3) -> 1990, signif(1985, 3) -> 1980
    """
    if digits < 1:
        raise TransformError("digits must be >= 1")

    scalar = np.ndim(values) == 0
    arr = np.atleast_1d(np.asarray(values, dtype=float))
    out = arr.copy()
    for i, v in enumerate(arr):
        if np.isfinite(v) and v != 0:
            magnitude = int(np.floor(np.log10(abs(v))))
            out[i] = np.round(v, digits - 1 - magnitude)
    return float(out[0]) if scalar else out


def add_decade(df: pd.DataFrame, date_column: str = "date", column: str = "decade") -> pd.DataFrame:
    """Copy of df with the year of `date_column` rounded to three significant digits."""
    if date_column not in df.columns:
        raise TransformError(f"Column '{date_column}' not found. Present: {list(df.columns)}")

    years = pd.to_datetime(df[date_column]).dt.year
    if years.isna().any():
        raise TransformError(f"Column '{date_column}' has {int(years.isna().sum())} missing dates; cannot assign a decade.")
    out = df.copy()
    out[column] = signif(years.to_numpy(), 3).astype(int)
    return out


def title_case(df: pd.DataFrame, column: str) -> pd.DataFrame:
    """Copy of df with the string values of `column` capitalized word by word."""
    if column not in df.columns:
        raise TransformError(f"Column '{column}' not found. Present: {list(df.columns)}")
    out = df.copy()
    out[column] = out[column].str.title()
    return out


# ---------------------------------------------------------------------------
# Sampling weights
# ---------------------------------------------------------------------------

def validate_weights(df: pd.DataFrame, weight: str) -> pd.Series:
    if weight not in df.columns:
        raise TransformError(f"Weight column '{weight}' not found. Present: {list(df.columns)}")

    w = pd.to_numeric(df[weight], errors="coerce")
    if w.isna().any():
        raise TransformError(f"Weight column '{weight}' has {int(w.isna().sum())} missing or non-numeric values.")
    if (w < 0).any():
        raise TransformError(f"Weight column '{weight}' has {int((w < 0).sum())} negative values.")
    return w


def category_order(values: pd.Series) -> List:
    """
    Display order of a categorical-like column.

    Categorical columns keep their declared categories (empty ones
    included); anything else is sorted.
    """
    if isinstance(values.dtype, pd.CategoricalDtype):
        return list(values.cat.categories)
    return sorted(values.dropna().unique().tolist())


def weighted_counts(df: pd.DataFrame, column: str, weight: Optional[str] = None) -> pd.Series:
    """
    Sum of weights per category of `column` (plain row counts if weight is None).

    Rows with a missing category are left out, with a logged warning.
    Categories are returned in display order, with zero for declared levels
    nobody chose.
    """
    if column not in df.columns:
        raise TransformError(f"Column '{column}' not found. Present: {list(df.columns)}")

    w = validate_weights(df, weight) if weight else pd.Series(1.0, index=df.index)
    keep = df[column].notna()
    dropped = int((~keep).sum())
    if dropped:
        logger.warning("Counts of %s: removed %d rows with a missing category.", column, dropped)
    sums = w[keep].groupby(df.loc[keep, column].astype(object)).sum()
    order = category_order(df[column])
    return sums.reindex(order, fill_value=0.0).astype(float).rename(weight or "count")
