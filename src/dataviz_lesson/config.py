from __future__ import annotations

import os
from pathlib import Path

# ---------------------------------------------------------------------------
# App identity
# ---------------------------------------------------------------------------

APP_NAME = "Data Visualization Lesson"
APP_VERSION = "0.1.0"

# ---------------------------------------------------------------------------
# Project paths
#
# Input CSVs are read relative to the data directory and the exported PNG
# is written to the output directory. Both default to the current working
# directory and can be overridden through the environment.
# ---------------------------------------------------------------------------

DATA_DIR = Path(os.getenv("DATAVIZ_DATA_DIR", "").strip() or ".")
OUTPUT_DIR = Path(os.getenv("DATAVIZ_OUTPUT_DIR", "").strip() or ".")

# Input files
UNEMPLOYMENT_CSV = "unemployment_and_interest.csv"
COVID_SURVEY_CSV = "covidfuture.csv"

# ---------------------------------------------------------------------------
# Export settings (the final labeled line chart)
# ---------------------------------------------------------------------------

EXPORT_FILENAME = "interest_unemployment.png"
EXPORT_WIDTH = 8      # inches
EXPORT_HEIGHT = 6     # inches
EXPORT_DPI = 300
EXPORT_BG = "white"

# ---------------------------------------------------------------------------
# Survey coding
#
# att_covid_selfsevere: "If I catch the coronavirus, I am concerned that I
# will have a severe reaction". Likert responses, least to most concerned.
# ---------------------------------------------------------------------------

SELFSEVERE_COL = "att_covid_selfsevere"
SELFSEVERE_LEVELS = [
    "Seen but unanswered",
    "Strongly disagree",
    "Somewhat disagree",
    "Neutral",
    "Somewhat agree",
    "Strongly agree",
]

WEIGHT_COL = "weight_main"
AGE_COL = "age"

# Wide columns that get pivoted into name/value pairs
RATE_COLUMNS = ["unemployment", "interest"]
