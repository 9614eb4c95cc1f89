"""
Tests for reshaping, recoding and weights
"""

import numpy as np
import pandas as pd
import pytest

from dataviz_lesson.config import SELFSEVERE_LEVELS
from dataviz_lesson.core.transforms import (
    TransformError,
    UnmappedLevelError,
    add_decade,
    pivot_longer,
    signif,
    title_case,
    to_ordered_categorical,
    validate_weights,
    weighted_counts,
)


class TestPivotLonger:
    """Test wide -> long reshaping."""

    def test_row_count_doubles(self, unemp_df):
        long = pivot_longer(unemp_df, ["unemployment", "interest"])

        assert len(long) == 2 * len(unemp_df)
        assert list(long.columns) == ["date", "name", "value"]
        assert set(long["name"]) == {"unemployment", "interest"}

    def test_row_major_order(self, unemp_df):
        long = pivot_longer(unemp_df, ["unemployment", "interest"])

        first = unemp_df.iloc[0]
        assert list(long["name"].iloc[:4]) == ["unemployment", "interest", "unemployment", "interest"]
        assert long["date"].iloc[0] == long["date"].iloc[1] == first["date"]
        assert long["value"].iloc[0] == first["unemployment"]
        assert long["value"].iloc[1] == first["interest"]

    def test_no_data_loss(self, unemp_df):
        long = pivot_longer(unemp_df, ["unemployment", "interest"])

        by_name = long.groupby("name")["value"].sum()
        assert by_name["unemployment"] == pytest.approx(unemp_df["unemployment"].sum())
        assert by_name["interest"] == pytest.approx(unemp_df["interest"].sum())

    def test_custom_output_names(self, unemp_df):
        long = pivot_longer(unemp_df, ["interest"], names_to="series", values_to="pct")

        assert list(long.columns) == ["date", "unemployment", "series", "pct"]
        assert len(long) == len(unemp_df)

    def test_input_untouched(self, unemp_df):
        before = unemp_df.copy()
        pivot_longer(unemp_df, ["unemployment", "interest"])

        pd.testing.assert_frame_equal(unemp_df, before)

    def test_missing_column(self, unemp_df):
        with pytest.raises(TransformError, match="inflation"):
            pivot_longer(unemp_df, ["unemployment", "inflation"])

    def test_no_columns(self, unemp_df):
        with pytest.raises(TransformError):
            pivot_longer(unemp_df, [])


class TestOrderedCategorical:
    """Test recoding into the six ordered levels."""

    def test_levels_fix_order(self, covid_df):
        out = to_ordered_categorical(covid_df, "att_covid_selfsevere", SELFSEVERE_LEVELS)

        col = out["att_covid_selfsevere"]
        assert len(out) == len(covid_df)
        assert col.cat.ordered
        assert list(col.cat.categories) == SELFSEVERE_LEVELS
        assert col.notna().all()

        ordered = out.sort_values("att_covid_selfsevere", kind="stable")["att_covid_selfsevere"]
        assert ordered.iloc[0] == "Seen but unanswered"
        assert ordered.iloc[-1] == "Strongly agree"

    def test_input_untouched(self, covid_df):
        to_ordered_categorical(covid_df, "att_covid_selfsevere", SELFSEVERE_LEVELS)

        assert not isinstance(covid_df["att_covid_selfsevere"].dtype, pd.CategoricalDtype)

    def test_unmapped_raises_by_default(self, covid_df):
        df = covid_df.copy()
        df.loc[3, "att_covid_selfsevere"] = "Maybe"

        with pytest.raises(UnmappedLevelError) as info:
            to_ordered_categorical(df, "att_covid_selfsevere", SELFSEVERE_LEVELS)

        assert info.value.values == ["Maybe"]
        assert info.value.column == "att_covid_selfsevere"

    def test_unmapped_to_na(self, covid_df):
        df = covid_df.copy()
        df.loc[[3, 4], "att_covid_selfsevere"] = "Maybe"

        out = to_ordered_categorical(df, "att_covid_selfsevere", SELFSEVERE_LEVELS, on_unmapped="na")

        assert len(out) == len(df)
        assert out["att_covid_selfsevere"].isna().sum() == 2

    def test_unmapped_dropped(self, covid_df):
        df = covid_df.copy()
        df.loc[[3, 4], "att_covid_selfsevere"] = "Maybe"

        out = to_ordered_categorical(df, "att_covid_selfsevere", SELFSEVERE_LEVELS, on_unmapped="drop")

        assert len(out) == len(df) - 2
        assert out["att_covid_selfsevere"].notna().all()

    def test_missing_values_are_not_unmapped(self, covid_df):
        df = covid_df.copy()
        df.loc[0, "att_covid_selfsevere"] = np.nan

        out = to_ordered_categorical(df, "att_covid_selfsevere", SELFSEVERE_LEVELS)

        assert out["att_covid_selfsevere"].isna().sum() == 1

    def test_unknown_policy(self, covid_df):
        with pytest.raises(TransformError, match="on_unmapped"):
            to_ordered_categorical(covid_df, "att_covid_selfsevere", SELFSEVERE_LEVELS, on_unmapped="ignore")

    def test_duplicate_levels(self, covid_df):
        with pytest.raises(TransformError, match="duplicates"):
            to_ordered_categorical(covid_df, "att_covid_selfsevere", ["Neutral", "Neutral"])


class TestDerivedColumns:
    """Test decade rounding and relabeling."""

    @pytest.mark.parametrize("value,expected", [
        (1987, 1990),
        (1984, 1980),
        (1985, 1980),   # half to even
        (1995, 2000),
        (0.012345, 0.0123),
        (0, 0),
    ])
    def test_signif(self, value, expected):
        assert signif(value, 3) == pytest.approx(expected)

    def test_signif_array(self):
        out = signif(np.array([1971, 2019, np.nan]), 3)

        assert out[0] == 1970
        assert out[1] == 2020
        assert np.isnan(out[2])

    def test_add_decade(self, unemp_df):
        out = add_decade(unemp_df)

        assert "decade" not in unemp_df.columns
        assert set(out["decade"]) == {1980, 1990, 2000}
        assert out.loc[out["date"].dt.year == 1987, "decade"].eq(1990).all()

    def test_add_decade_rejects_missing_dates(self, unemp_df):
        df = unemp_df.copy()
        df.loc[2, "date"] = pd.NaT

        with pytest.raises(TransformError, match="missing dates"):
            add_decade(df)

    def test_title_case(self, unemp_df):
        long = pivot_longer(unemp_df, ["unemployment", "interest"])
        out = title_case(long, "name")

        assert set(out["name"]) == {"Unemployment", "Interest"}
        assert set(long["name"]) == {"unemployment", "interest"}


class TestWeights:
    """Test weighted aggregation."""

    def test_weights_sum_within_category(self, small_weighted):
        counts = weighted_counts(small_weighted, "answer", "weight")

        assert counts["Neutral"] == pytest.approx(3.5)
        assert counts["Strongly agree"] == pytest.approx(4.0)

    def test_unweighted_counts_rows(self, small_weighted):
        counts = weighted_counts(small_weighted, "answer")

        assert counts["Neutral"] == 3
        assert counts["Strongly agree"] == 1

    def test_ordered_levels_include_empty(self, small_weighted):
        df = to_ordered_categorical(small_weighted, "answer", SELFSEVERE_LEVELS)
        counts = weighted_counts(df, "answer", "weight")

        assert list(counts.index) == SELFSEVERE_LEVELS
        assert counts["Strongly disagree"] == 0
        assert counts.sum() == pytest.approx(7.5)

    def test_negative_weight_rejected(self, small_weighted):
        df = small_weighted.copy()
        df.loc[0, "weight"] = -1.0

        with pytest.raises(TransformError, match="negative"):
            validate_weights(df, "weight")

    def test_missing_weight_rejected(self, small_weighted):
        df = small_weighted.copy()
        df.loc[0, "weight"] = np.nan

        with pytest.raises(TransformError, match="missing"):
            weighted_counts(df, "answer", "weight")

    def test_missing_category_is_logged(self, small_weighted, caplog):
        df = to_ordered_categorical(
            small_weighted.assign(answer=["Neutral", "Maybe", "Neutral", "Strongly agree"]),
            "answer",
            SELFSEVERE_LEVELS,
            on_unmapped="na",
        )

        with caplog.at_level("WARNING", logger="dataviz_lesson.core.transforms"):
            counts = weighted_counts(df, "answer", "weight")

        assert counts.sum() == pytest.approx(5.5)
        assert "removed 1 rows with a missing category" in caplog.text
