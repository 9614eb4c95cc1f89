"""
The lesson itself: an ordered list of annotated charts.

Each LessonStep pairs a Chart with the prose that explains the idea it
illustrates. build_steps() is pure (tables in, steps out); run_lesson()
loads the two CSVs, renders every step in order and exports the last one.
Both the headless runner and the Streamlit app go through here.
"""
from __future__ import annotations

import logging
from dataclasses import dataclass, field
from pathlib import Path
from typing import Dict, List, Optional

import matplotlib.pyplot as plt
import pandas as pd

from dataviz_lesson.config import (
    AGE_COL,
    COVID_SURVEY_CSV,
    DATA_DIR,
    EXPORT_BG,
    EXPORT_DPI,
    EXPORT_FILENAME,
    EXPORT_HEIGHT,
    EXPORT_WIDTH,
    OUTPUT_DIR,
    RATE_COLUMNS,
    SELFSEVERE_COL,
    SELFSEVERE_LEVELS,
    UNEMPLOYMENT_CSV,
    WEIGHT_COL,
)
from dataviz_lesson.core.charts import Aes, Chart, RenderedChart
from dataviz_lesson.core.data_loader import load_covid_survey, load_unemployment, preview
from dataviz_lesson.core.export import save_chart
from dataviz_lesson.core.transforms import (
    add_decade,
    pivot_longer,
    title_case,
    to_ordered_categorical,
)

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class LessonStep:
    key: str
    title: str
    explanation: str
    chart: Chart


@dataclass
class LessonTables:
    """Every table the lesson plots, raw and derived."""
    unemp: pd.DataFrame
    unemp_long: pd.DataFrame
    unemp_decade: pd.DataFrame
    covid: pd.DataFrame
    unemp_long_labeled: pd.DataFrame


@dataclass
class LessonResult:
    tables: LessonTables
    steps: List[LessonStep]
    rendered: Dict[str, RenderedChart] = field(default_factory=dict)
    export_path: Optional[Path] = None

    def close(self) -> None:
        for r in self.rendered.values():
            plt.close(r.figure)


# ---------------------------------------------------------------------------
# Tables
# ---------------------------------------------------------------------------

def prepare_tables(
    unemp: pd.DataFrame,
    covid: pd.DataFrame,
    on_unmapped: str = "error",
) -> LessonTables:
    """
    Derive every table the charts need. Inputs are never modified.

    The survey's concern column becomes an ordered factor here, before any
    chart that puts it on an axis. on_unmapped decides what happens to
    answers outside the six levels (see transforms.to_ordered_categorical).
    """
    unemp_long = pivot_longer(unemp, RATE_COLUMNS)
    return LessonTables(
        unemp=unemp,
        unemp_long=unemp_long,
        unemp_decade=add_decade(unemp),
        covid=to_ordered_categorical(covid, SELFSEVERE_COL, SELFSEVERE_LEVELS, on_unmapped=on_unmapped),
        unemp_long_labeled=title_case(unemp_long, "name"),
    )


# ---------------------------------------------------------------------------
# Steps
# ---------------------------------------------------------------------------

def build_steps(unemp: pd.DataFrame, covid: pd.DataFrame, on_unmapped: str = "error") -> List[LessonStep]:
    return steps_for(prepare_tables(unemp, covid, on_unmapped=on_unmapped))


def steps_for(t: LessonTables) -> List[LessonStep]:
    return [
        LessonStep(
            key="unemployment_line",
            title="A line plot",
            explanation=(
                "Line plots show how something changes over time. A chart is built from "
                "data, an aesthetic mapping that says which column goes on which part of "
                "the plot (here date on x and unemployment on y), and a geom, the kind of "
                "mark to draw. Swapping the geom for points gives a scatter plot, and "
                "mapping `interest` to y plots the interest rate instead."
            ),
            chart=Chart(t.unemp, Aes(x="date", y="unemployment"), "line"),
        ),
        LessonStep(
            key="rates_lines",
            title="Several lines on the same axes",
            explanation=(
                "Only one column can go on the y axis, so to compare two series they have "
                "to share a column. The table is wide (one row per month, one column per "
                "rate); pivoting it to long format gives two rows per month, a `name` "
                "column saying which rate the row holds and a `value` column with the "
                "number. Mapping `name` to color then draws one line per rate, using a "
                "colorblind-safe palette."
            ),
            chart=Chart(t.unemp_long, Aes(x="date", y="value", color="name"), "line").colorblind(),
        ),
        LessonStep(
            key="rates_scatter",
            title="A scatter plot",
            explanation=(
                "Theory and the lines above both hint at a negative relationship between "
                "unemployment and interest rates. A scatter plot drops time altogether and "
                "puts one rate on each axis. This needs the wide table, where the two "
                "rates are separate columns."
            ),
            chart=Chart(t.unemp, Aes(x="unemployment", y="interest"), "point"),
        ),
        LessonStep(
            key="rates_scatter_by_decade",
            title="Coloring points by a category",
            explanation=(
                "No clear pattern shows up, which is why it pays to look at more than one "
                "chart. Both rates were high in the 1980s, and that can hide a "
                "relationship within each period. Rounding the year to three significant "
                "digits gives a decade, and coloring the points by decade tells a "
                "different story."
            ),
            chart=Chart(
                t.unemp_decade, Aes(x="unemployment", y="interest", color="decade"), "point"
            ).colorblind(),
        ),
        LessonStep(
            key="concern_bar",
            title="A weighted bar plot",
            explanation=(
                "Bar plots suit categorical data. Here the bars count answers to \"If I "
                "catch the coronavirus, I am concerned that I will have a severe "
                "reaction\" from the COVID Future survey. The answers were recoded as an "
                "ordered factor so the axis runs from least to most concerned. The survey "
                "is weighted to correct for sampling bias, so each respondent counts for "
                "their sampling weight rather than for one."
            ),
            chart=Chart(t.covid, Aes(x=SELFSEVERE_COL, weight=WEIGHT_COL), "bar"),
        ),
        LessonStep(
            key="age_histogram",
            title="A weighted histogram",
            explanation=(
                "Histograms are a good first look at any continuous variable: they show "
                "its distribution. This one bins respondent age, again counting each "
                "respondent by their sampling weight."
            ),
            chart=Chart(t.covid, Aes(x=AGE_COL, weight=WEIGHT_COL), "histogram"),
        ),
        LessonStep(
            key="age_by_concern_boxplot",
            title="Boxplots by category",
            explanation=(
                "Boxplots summarize a continuous variable like a histogram does, and they "
                "take the place of a scatter plot when the other variable is categorical. "
                "There is one weighted box of respondent age per answer. Does concern "
                "about a severe reaction vary with age?"
            ),
            chart=Chart(t.covid, Aes(x=SELFSEVERE_COL, y=AGE_COL, weight=WEIGHT_COL), "boxplot"),
        ),
        LessonStep(
            key="rates_lines_labeled",
            title="Publication labels",
            explanation=(
                "Labels are the most common thing to change before a chart is shared. The "
                "axis titles and the legend title are set on the chart. The series names "
                "come from the data, so the easiest fix is to relabel a copy of the long "
                "table (title case here) and leave the original untouched."
            ),
            chart=(
                Chart(t.unemp_long_labeled, Aes(x="date", y="value", color="name"), "line")
                .colorblind()
                .xlab("Date (by month)")
                .ylab("Percentage")
                .labs(color="Statistic")
            ),
        ),
    ]


# ---------------------------------------------------------------------------
# Full run
# ---------------------------------------------------------------------------

def run_lesson(
    data_dir: Optional[Path | str] = None,
    output_path: Optional[Path | str] = None,
) -> LessonResult:
    """
    Run the whole lesson: load, transform, render every step, export.

    The last rendered chart (the labeled line plot) is saved to
    output_path, by default OUTPUT_DIR / EXPORT_FILENAME, at
    EXPORT_WIDTH x EXPORT_HEIGHT inches, EXPORT_DPI, on EXPORT_BG.

    DataLoaderError, TransformError, ChartError and ExportError propagate;
    the caller owns closing the figures (LessonResult.close()).
    """
    base = Path(data_dir) if data_dir is not None else DATA_DIR
    out = Path(output_path) if output_path is not None else OUTPUT_DIR / EXPORT_FILENAME

    unemp = load_unemployment(base / UNEMPLOYMENT_CSV)
    logger.info("Unemployment data preview:\n%s", preview(unemp).to_string())
    covid = load_covid_survey(base / COVID_SURVEY_CSV)

    tables = prepare_tables(unemp, covid)
    logger.info("Long format preview:\n%s", preview(tables.unemp_long).to_string())

    result = LessonResult(tables=tables, steps=steps_for(tables))
    for step in result.steps:
        logger.info("Rendering step %s: %s", step.key, step.title)
        result.rendered[step.key] = step.chart.render()

    result.export_path = save_chart(
        out,
        width=EXPORT_WIDTH,
        height=EXPORT_HEIGHT,
        dpi=EXPORT_DPI,
        bg=EXPORT_BG,
    )
    return result
