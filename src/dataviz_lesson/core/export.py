from __future__ import annotations

import logging
from pathlib import Path
from typing import Optional

from dataviz_lesson.config import EXPORT_BG, EXPORT_DPI, EXPORT_HEIGHT, EXPORT_WIDTH
from dataviz_lesson.core.charts import RenderedChart, last_chart

logger = logging.getLogger(__name__)

# Conversion factors to inches
_UNITS_PER_INCH = {
    "in": 1.0,
    "cm": 2.54,
    "mm": 25.4,
}


class ExportError(Exception):
    """Raised when a chart cannot be written to an image file."""


def _size_in_inches(width: float, height: float, units: str, dpi: int) -> tuple[float, float]:
    if width <= 0 or height <= 0:
        raise ExportError(f"Width and height must be positive, got {width} x {height} {units}.")
    if units == "px":
        return width / dpi, height / dpi
    if units not in _UNITS_PER_INCH:
        raise ExportError(f"Unknown units {units!r}. Expected one of {sorted(_UNITS_PER_INCH) + ['px']}.")
    factor = _UNITS_PER_INCH[units]
    return width / factor, height / factor


def save_chart(
    path: Path | str,
    chart: Optional[RenderedChart] = None,
    *,
    width: float = EXPORT_WIDTH,
    height: float = EXPORT_HEIGHT,
    dpi: int = EXPORT_DPI,
    bg: str = EXPORT_BG,
    units: str = "in",
) -> Path:
    """
    Write a rendered chart to a raster image.

    With chart=None the most recently rendered chart is saved, like
    ggsave() does with the last plot. The figure is resized to
    width x height (in `units`) before saving; the image format follows
    the file extension.

    The parent directory must already exist. Any OSError while writing is
    raised as ExportError.
    """
    rendered = chart if chart is not None else last_chart()
    if rendered is None:
        raise ExportError("No chart has been rendered yet; nothing to save.")
    if dpi <= 0:
        raise ExportError(f"dpi must be positive, got {dpi}.")

    path = Path(path)
    w_in, h_in = _size_in_inches(width, height, units, dpi)

    fig = rendered.figure
    fig.set_size_inches(w_in, h_in)
    fig.tight_layout()

    try:
        fig.savefig(path, dpi=dpi, facecolor=bg, bbox_inches=None)
    except OSError as exc:
        raise ExportError(f"Could not write chart to {path}: {exc}") from exc
    except ValueError as exc:
        # unsupported file extension
        raise ExportError(f"Could not save chart as {path.suffix or '(no extension)'}: {exc}") from exc

    logger.info("Saved %s chart to %s (%.1f x %.1f in @ %d dpi)", rendered.chart.geom, path, w_in, h_in, dpi)
    return path
