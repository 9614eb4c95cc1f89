from __future__ import annotations

import math
from dataclasses import dataclass
from typing import Dict, List, Optional

import pandas as pd


@dataclass
class TableSummary:
    n_rows: int
    n_columns: int
    dtypes: Dict[str, str]


@dataclass
class CorrelationFact:
    """
    Pearson correlation between two numeric columns, over the whole table
    (group is None) or within one group.
    """
    x: str
    y: str
    group: Optional[str]
    n: int
    r: float
    direction: str  # 'positive', 'negative', 'none'


def summarize_table(df: pd.DataFrame) -> TableSummary:
    return TableSummary(
        n_rows=int(df.shape[0]),
        n_columns=int(df.shape[1]),
        dtypes={str(c): str(t) for c, t in df.dtypes.items()},
    )


def _direction_from_r(r: float, tolerance: float = 0.1) -> str:
    """
    Interpret a correlation coefficient as 'positive', 'negative', or 'none'.

    |r| at or below the tolerance counts as no relationship.
    """
    if math.isnan(r):
        return "none"
    if r > tolerance:
        return "positive"
    if r < -tolerance:
        return "negative"
    return "none"


def _fact(df: pd.DataFrame, x: str, y: str, group: Optional[str], tolerance: float) -> CorrelationFact:
    pairs = df[[x, y]].apply(pd.to_numeric, errors="coerce").dropna()
    n = int(len(pairs))
    r = float(pairs[x].corr(pairs[y])) if n >= 2 else float("nan")
    return CorrelationFact(x=x, y=y, group=group, n=n, r=r, direction=_direction_from_r(r, tolerance))


def correlation_facts(
    df: pd.DataFrame,
    x: str,
    y: str,
    group: Optional[str] = None,
    tolerance: float = 0.1,
) -> List[CorrelationFact]:
    """
    Correlation of x and y overall, then within each level of `group`.

    The first fact is always the overall one. Group facts follow in sorted
    group order. Groups with fewer than two complete pairs get r = NaN and
    direction 'none'.
    """
    for col in [x, y] + ([group] if group else []):
        if col not in df.columns:
            raise KeyError(f"Column '{col}' not found. Present: {list(df.columns)}")

    facts = [_fact(df, x, y, None, tolerance)]
    if group:
        for level, rows in df.groupby(group, sort=True, observed=True):
            facts.append(_fact(rows, x, y, str(level), tolerance))
    return facts
