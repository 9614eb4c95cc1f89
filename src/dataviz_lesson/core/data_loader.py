from __future__ import annotations

import logging
from pathlib import Path
from typing import Dict, List, Optional, Sequence, Tuple

import pandas as pd

from dataviz_lesson.config import (
    AGE_COL,
    COVID_SURVEY_CSV,
    DATA_DIR,
    RATE_COLUMNS,
    SELFSEVERE_COL,
    UNEMPLOYMENT_CSV,
    WEIGHT_COL,
)

logger = logging.getLogger(__name__)

UNEMPLOYMENT_COLUMNS = ["date"] + RATE_COLUMNS
COVID_SURVEY_COLUMNS = [SELFSEVERE_COL, AGE_COL, WEIGHT_COL]

# In-memory cache: (resolved path, parse_dates) -> table
_TABLE_CACHE: Dict[Tuple[str, Tuple[str, ...]], pd.DataFrame] = {}


class DataLoaderError(Exception):
    """Raised when an input CSV is missing, unreadable or has the wrong shape."""


# ---------------------------------------------------------------------------
# Internal helpers
# ---------------------------------------------------------------------------

def _resolve(path: Optional[Path | str], default_name: str) -> Path:
    if path is None:
        return DATA_DIR / default_name
    return Path(path)


def _check_columns(df: pd.DataFrame, required: Sequence[str], path: Path) -> None:
    missing = [c for c in required if c not in df.columns]
    if missing:
        raise DataLoaderError(
            f"{path} is missing required columns {missing}. Present: {list(df.columns)}"
        )


# ---------------------------------------------------------------------------
# Generic CSV loading
# ---------------------------------------------------------------------------

def load_csv(
    path: Path | str,
    *,
    parse_dates: Optional[Sequence[str]] = None,
    required_columns: Optional[Sequence[str]] = None,
    refresh: bool = False,
) -> pd.DataFrame:
    """
    Read a comma-separated file with a header row into a DataFrame.

    Column types are inferred by pandas. Columns named in parse_dates are
    converted to datetimes after the required columns have been checked.

    Results are cached per (path, parse_dates); pass refresh=True to force
    a re-read from disk.

    Raises DataLoaderError when the file is missing, empty or malformed,
    when a required column is absent, or when a date cell is blank.
    """
    path = Path(path)
    date_cols = tuple(parse_dates or ())
    key = (str(path.resolve()), date_cols)

    if key in _TABLE_CACHE and not refresh:
        return _TABLE_CACHE[key]

    if not path.is_file():
        raise DataLoaderError(f"Input file not found: {path}")

    logger.info("Loading CSV: %s", path)
    try:
        df = pd.read_csv(path)
    except (pd.errors.ParserError, pd.errors.EmptyDataError, UnicodeDecodeError) as exc:
        raise DataLoaderError(f"Could not parse {path}: {exc}") from exc
    except OSError as exc:
        raise DataLoaderError(f"Could not read {path}: {exc}") from exc

    _check_columns(df, list(required_columns or []) + list(date_cols), path)

    for col in date_cols:
        try:
            df[col] = pd.to_datetime(df[col])
        except (ValueError, TypeError) as exc:
            raise DataLoaderError(f"Column '{col}' in {path} is not a date column: {exc}") from exc
        blank = int(df[col].isna().sum())
        if blank:
            raise DataLoaderError(f"Column '{col}' in {path} has {blank} rows without a date.")

    logger.info("Loaded %s: %d rows x %d columns", path.name, df.shape[0], df.shape[1])

    _TABLE_CACHE[key] = df
    return df


def clear_cache() -> None:
    _TABLE_CACHE.clear()


def preview(df: pd.DataFrame, n: int = 6) -> pd.DataFrame:
    """First n rows, the same view as R's head()."""
    return df.head(n)


# ---------------------------------------------------------------------------
# Lesson datasets
# ---------------------------------------------------------------------------

def load_unemployment(path: Optional[Path | str] = None, refresh: bool = False) -> pd.DataFrame:
    """
    Load the monthly unemployment / interest rate table.

    Expected columns:
      - date          (calendar month, parsed to datetime)
      - unemployment  (percentage)
      - interest      (percentage)
    """
    return load_csv(
        _resolve(path, UNEMPLOYMENT_CSV),
        parse_dates=["date"],
        required_columns=UNEMPLOYMENT_COLUMNS,
        refresh=refresh,
    )


def load_covid_survey(path: Optional[Path | str] = None, refresh: bool = False) -> pd.DataFrame:
    """
    Load the COVID Future survey responses.

    Only the columns the lesson plots are required:
      - att_covid_selfsevere  (Likert response, still plain strings here)
      - age                   (numeric)
      - weight_main           (sampling weight)
    """
    return load_csv(
        _resolve(path, COVID_SURVEY_CSV),
        required_columns=COVID_SURVEY_COLUMNS,
        refresh=refresh,
    )


def cached_tables() -> List[str]:
    return sorted({path for path, _ in _TABLE_CACHE})
