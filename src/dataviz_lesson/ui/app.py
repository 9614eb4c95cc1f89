from __future__ import annotations

import tempfile
import traceback
from pathlib import Path
from typing import List, Optional, Tuple

import matplotlib.pyplot as plt
import pandas as pd
import streamlit as st

from dataviz_lesson.config import (
    APP_NAME,
    APP_VERSION,
    COVID_SURVEY_CSV,
    DATA_DIR,
    EXPORT_BG,
    EXPORT_DPI,
    EXPORT_FILENAME,
    EXPORT_HEIGHT,
    EXPORT_WIDTH,
    UNEMPLOYMENT_CSV,
)
from dataviz_lesson.core.charts import ChartError, RenderedChart
from dataviz_lesson.core.data_loader import (
    DataLoaderError,
    load_covid_survey,
    load_unemployment,
    preview,
)
from dataviz_lesson.core.export import ExportError, save_chart
from dataviz_lesson.core.summary import correlation_facts, summarize_table
from dataviz_lesson.core.transforms import UNMAPPED_POLICIES, TransformError
from dataviz_lesson.lesson import LessonTables, prepare_tables, steps_for

UNMAPPED_HELP = {
    "error": "Stop with an error listing the unexpected answers.",
    "na": "Keep the respondents, treat their answer as missing.",
    "drop": "Leave those respondents out.",
}


def _render_sidebar() -> Tuple[Path, bool, str]:
    with st.sidebar:
        st.header("Data")
        data_dir = st.text_input("Folder with the CSV files:", value=str(DATA_DIR))
        st.caption(f"Expected files: {UNEMPLOYMENT_CSV}, {COVID_SURVEY_CSV}")
        refresh = st.checkbox("Force reload CSVs", value=False)
        on_unmapped = st.selectbox(
            "Answers outside the six levels",
            options=list(UNMAPPED_POLICIES),
            index=0,
            format_func=lambda k: f"{k}: {UNMAPPED_HELP[k]}",
        )
    return Path(data_dir.strip() or "."), bool(refresh), on_unmapped


def _load_tables(data_dir: Path, refresh: bool, on_unmapped: str) -> Optional[LessonTables]:
    try:
        with st.spinner("Loading unemployment and interest rates..."):
            unemp = load_unemployment(data_dir / UNEMPLOYMENT_CSV, refresh=refresh)
        with st.spinner("Loading COVID Future survey..."):
            covid = load_covid_survey(data_dir / COVID_SURVEY_CSV, refresh=refresh)
        return prepare_tables(unemp, covid, on_unmapped=on_unmapped)

    except DataLoaderError as err:
        st.error(f"Could not load the lesson data: {err}")
        st.text_area("Traceback", value=traceback.format_exc(), height=220)
    except TransformError as err:
        st.error(f"Could not prepare the lesson data: {err}")
        st.text_area("Traceback", value=traceback.format_exc(), height=220)
    return None


def _render_data_status(tables: LessonTables) -> None:
    with st.expander("Data preview", expanded=False):
        for label, df in [
            ("Unemployment and interest (wide)", tables.unemp),
            ("Unemployment and interest (long)", tables.unemp_long),
            ("COVID Future survey", tables.covid),
        ]:
            s = summarize_table(df)
            st.write(f"**{label}**: {s.n_rows} rows × {s.n_columns} columns")
            st.dataframe(preview(df), use_container_width=True)


def _render_correlations(tables: LessonTables) -> None:
    facts = correlation_facts(tables.unemp_decade, "unemployment", "interest", group="decade")
    rows = [
        {
            "Decade": f.group or "All months",
            "Months": f.n,
            "Correlation (r)": round(f.r, 3),
            "Direction": f.direction,
        }
        for f in facts
    ]
    st.dataframe(pd.DataFrame(rows), use_container_width=True)


def _render_steps(tables: LessonTables) -> List[RenderedChart]:
    """Draw every step in order. Returns an empty list if any chart fails."""
    rendered: List[RenderedChart] = []
    try:
        for i, step in enumerate(steps_for(tables), start=1):
            st.subheader(f"{i}. {step.title}")
            st.markdown(step.explanation)

            r = step.chart.render()
            rendered.append(r)
            st.pyplot(r.figure, clear_figure=False)

            if step.key == "rates_scatter_by_decade":
                _render_correlations(tables)

            if r.stats is not None:
                with st.expander("Computed values", expanded=False):
                    st.dataframe(r.stats, use_container_width=True)

    except (ChartError, TransformError) as err:
        st.error(f"Could not draw the lesson charts: {err}")
        st.text_area("Traceback", value=traceback.format_exc(), height=220)
        for r in rendered:
            plt.close(r.figure)
        return []
    return rendered


def _render_export(last: RenderedChart) -> None:
    st.subheader("Saving the chart")
    st.markdown(
        f"The last chart is exported at {EXPORT_WIDTH} × {EXPORT_HEIGHT} inches, "
        f"{EXPORT_DPI} dots per inch, on a {EXPORT_BG} background. Smaller sizes make "
        "the text relatively larger."
    )
    try:
        with tempfile.TemporaryDirectory() as tmp:
            path = save_chart(Path(tmp) / EXPORT_FILENAME, last)
            data = path.read_bytes()
        st.download_button(
            "Download PNG",
            data=data,
            file_name=EXPORT_FILENAME,
            mime="image/png",
        )
    except ExportError as err:
        st.error(f"Export failed: {err}")
        st.text_area("Traceback", value=traceback.format_exc(), height=220)


def run_app() -> None:
    st.set_page_config(page_title=APP_NAME, page_icon="📊", layout="wide")
    st.title(APP_NAME)
    st.caption(f"Version {APP_VERSION}")

    data_dir, refresh, on_unmapped = _render_sidebar()

    tables = _load_tables(data_dir, refresh, on_unmapped)
    if tables is None:
        return

    _render_data_status(tables)
    rendered = _render_steps(tables)
    if rendered:
        _render_export(rendered[-1])

    for r in rendered:
        plt.close(r.figure)
