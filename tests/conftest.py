"""
Pytest fixtures for the dataviz lesson tests
"""

import matplotlib

matplotlib.use("Agg")  # headless

import matplotlib.pyplot as plt
import numpy as np
import pandas as pd
import pytest

from dataviz_lesson.config import COVID_SURVEY_CSV, SELFSEVERE_LEVELS, UNEMPLOYMENT_CSV
from dataviz_lesson.core import data_loader
from dataviz_lesson.core.charts import reset_last_chart


@pytest.fixture(autouse=True)
def _clean_state():
    """Empty the table cache and the last-chart slot; close figures afterwards."""
    data_loader.clear_cache()
    reset_last_chart()
    yield
    plt.close("all")
    data_loader.clear_cache()
    reset_last_chart()


@pytest.fixture
def unemp_df():
    """60 half-yearly observations, 1975 to 2004."""
    dates = pd.date_range("1975-01-01", periods=60, freq="6MS")

    np.random.seed(42)
    unemployment = 6 + np.random.randn(60)

    return pd.DataFrame({
        "date": dates,
        "unemployment": unemployment.round(2),
        "interest": (10 - 0.6 * unemployment + np.random.randn(60) * 0.5).round(2),
    })


@pytest.fixture
def covid_df():
    """60 respondents, ten per answer level."""
    np.random.seed(7)
    return pd.DataFrame({
        "att_covid_selfsevere": SELFSEVERE_LEVELS * 10,
        "age": np.random.randint(18, 86, size=60),
        "weight_main": np.random.uniform(0.2, 3.0, size=60).round(3),
        "respondent_id": np.arange(60),
    })


@pytest.fixture
def lesson_dir(tmp_path, unemp_df, covid_df):
    """Directory holding both lesson CSVs."""
    unemp_df.to_csv(tmp_path / UNEMPLOYMENT_CSV, index=False, date_format="%Y-%m-%d")
    covid_df.to_csv(tmp_path / COVID_SURVEY_CSV, index=False)
    return tmp_path


@pytest.fixture
def small_weighted():
    """Three rows in one category with weights 1.0, 2.0 and 0.5, plus one elsewhere."""
    return pd.DataFrame({
        "answer": ["Neutral", "Neutral", "Neutral", "Strongly agree"],
        "age": [30, 40, 50, 60],
        "weight": [1.0, 2.0, 0.5, 4.0],
    })
