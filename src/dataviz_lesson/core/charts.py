"""
A small declarative chart grammar on top of matplotlib.

A Chart is data + an aesthetic mapping (which columns go to x / y / color /
weight) + a geom (line, point, bar, histogram, boxplot) + labels. Builder
methods return new Charts, so a base chart can be refined step by step:

    chart = Chart(unemp_long, Aes(x="date", y="value", color="name"), "line")
    chart = chart.colorblind().xlab("Date (by month)").labs(color="Statistic")
    rendered = chart.render()

Rendering draws onto a matplotlib Axes and records the result as the last
chart, which is what export.save_chart() writes when no chart is given.
"""
from __future__ import annotations

import logging
from dataclasses import dataclass, field, replace
from typing import Any, Callable, Dict, List, Optional, Sequence, Tuple

import matplotlib.pyplot as plt
import numpy as np
import pandas as pd
from matplotlib.axes import Axes
from matplotlib.figure import Figure

from dataviz_lesson.core.transforms import (
    TransformError,
    category_order,
    validate_weights,
    weighted_counts,
)

logger = logging.getLogger(__name__)

GEOMS = ("line", "point", "bar", "histogram", "boxplot")

# Geoms that need / refuse a y mapping, aggregate weights, split by color
_NEEDS_Y = {"line", "point", "boxplot"}
_NO_Y = {"bar", "histogram"}
_WEIGHTED = {"bar", "histogram", "boxplot"}
_COLORED = {"line", "point"}

DEFAULT_BINS = 30
DEFAULT_INK = "black"      # lines and points without a color mapping
DEFAULT_FILL = "#595959"   # bars and histogram bins
BOX_FILL = "white"

# Okabe-Ito colorblind-safe palette
COLORBLIND_PALETTE = [
    "#000000",  # black
    "#E69F00",  # orange
    "#56B4E9",  # sky blue
    "#009E73",  # bluish green
    "#F0E442",  # yellow
    "#0072B2",  # blue
    "#D55E00",  # vermillion
    "#CC79A7",  # reddish purple
]

_LAST_RENDERED: Optional["RenderedChart"] = None


class ChartError(Exception):
    """Raised when a chart's mapping does not fit its data or geom."""


@dataclass(frozen=True)
class Aes:
    x: str
    y: Optional[str] = None
    color: Optional[str] = None
    weight: Optional[str] = None

    def mapped(self) -> Dict[str, str]:
        return {k: v for k, v in (("x", self.x), ("y", self.y), ("color", self.color), ("weight", self.weight)) if v}


@dataclass(frozen=True)
class Labels:
    x: Optional[str] = None
    y: Optional[str] = None
    color: Optional[str] = None
    title: Optional[str] = None


@dataclass
class RenderedChart:
    """
    A chart drawn onto a matplotlib Axes.

    stats holds what the geom computed from the data:
      - bar:       Series of summed weights (or counts) per category
      - histogram: DataFrame with left / right / count per bin
      - boxplot:   DataFrame with q1 / med / q3 / whislo / whishi / n / weight per category
      - line, point: None
    """
    chart: "Chart"
    figure: Figure
    ax: Axes
    stats: Any = None


@dataclass(frozen=True, eq=False)
class Chart:
    data: pd.DataFrame
    aes: Aes
    geom: str
    labels: Labels = field(default_factory=Labels)
    palette: Optional[Tuple[str, ...]] = None
    bins: int = DEFAULT_BINS

    def __post_init__(self) -> None:
        _validate(self)

    # ------------------------------------------------------------------
    # Builders
    # ------------------------------------------------------------------

    def xlab(self, label: str) -> "Chart":
        return self.labs(x=label)

    def ylab(self, label: str) -> "Chart":
        return self.labs(y=label)

    def labs(self, **labels: Optional[str]) -> "Chart":
        unknown = set(labels) - {"x", "y", "color", "title"}
        if unknown:
            raise ChartError(f"Unknown label targets: {sorted(unknown)}")
        return replace(self, labels=replace(self.labels, **labels))

    def colorblind(self) -> "Chart":
        return self.with_palette(COLORBLIND_PALETTE)

    def with_palette(self, colors: Sequence[str]) -> "Chart":
        if not colors:
            raise ChartError("Palette must contain at least one color.")
        return replace(self, palette=tuple(colors))

    # ------------------------------------------------------------------
    # Rendering
    # ------------------------------------------------------------------

    def render(self, ax: Optional[Axes] = None) -> RenderedChart:
        if ax is None:
            fig, ax = plt.subplots()
        else:
            fig = ax.figure

        stats = _DRAWERS[self.geom](self, ax)

        ax.set_xlabel(self.labels.x if self.labels.x is not None else self.aes.x)
        ax.set_ylabel(self.labels.y if self.labels.y is not None else self._default_ylabel())
        if self.labels.title:
            ax.set_title(self.labels.title)
        if self.aes.color:
            title = self.labels.color if self.labels.color is not None else self.aes.color
            ax.legend(title=title, frameon=False, loc="center left", bbox_to_anchor=(1.0, 0.5))
        fig.tight_layout()

        rendered = RenderedChart(chart=self, figure=fig, ax=ax, stats=stats)

        global _LAST_RENDERED
        _LAST_RENDERED = rendered
        logger.debug("Rendered %s chart of %s", self.geom, self.aes.mapped())
        return rendered

    def _default_ylabel(self) -> str:
        if self.geom in _NO_Y:
            return "count"
        return self.aes.y or ""

    def series(self) -> List[Tuple[Optional[str], pd.DataFrame, str]]:
        """
        Split the data by the color mapping.

        Returns (label, rows, color) per group in display order. Without a
        color mapping there is a single unlabeled group. Empty groups are
        dropped before colors are assigned.
        """
        if not self.aes.color:
            ink = self.palette[0] if self.palette else DEFAULT_INK
            return [(None, self.data, ink)]

        col = self.data[self.aes.color]
        groups = [(str(level), self.data[col == level]) for level in category_order(col)]
        groups = [(label, rows) for label, rows in groups if not rows.empty]
        colors = _cycle(self.palette or _default_cycle(), len(groups))

        return [(label, rows, color) for (label, rows), color in zip(groups, colors)]


def last_chart() -> Optional[RenderedChart]:
    """The most recently rendered chart, if any."""
    return _LAST_RENDERED


def reset_last_chart() -> None:
    global _LAST_RENDERED
    _LAST_RENDERED = None


# ---------------------------------------------------------------------------
# Validation
# ---------------------------------------------------------------------------

def _validate(chart: Chart) -> None:
    geom = chart.geom
    aes = chart.aes

    if geom not in GEOMS:
        raise ChartError(f"Unknown geom {geom!r}. Expected one of {GEOMS}.")

    missing = {k: v for k, v in aes.mapped().items() if v not in chart.data.columns}
    if missing:
        raise ChartError(f"Mapped columns not in data: {missing}. Present: {list(chart.data.columns)}")

    if geom in _NEEDS_Y and not aes.y:
        raise ChartError(f"geom {geom!r} needs a y mapping.")
    if geom in _NO_Y and aes.y:
        raise ChartError(f"geom {geom!r} computes its own y; do not map y.")
    if aes.color and geom not in _COLORED:
        raise ChartError(f"geom {geom!r} does not support a color mapping.")
    if aes.weight and geom not in _WEIGHTED:
        raise ChartError(f"geom {geom!r} does not support weights.")
    if aes.weight:
        try:
            validate_weights(chart.data, aes.weight)
        except TransformError as exc:
            raise ChartError(str(exc)) from exc

    if chart.bins < 1:
        raise ChartError(f"bins must be >= 1, got {chart.bins}")


# ---------------------------------------------------------------------------
# Colors
# ---------------------------------------------------------------------------

def _default_cycle() -> List[str]:
    return list(plt.rcParams["axes.prop_cycle"].by_key()["color"])


def _cycle(colors: Sequence[str], n: int) -> List[str]:
    return [colors[i % len(colors)] for i in range(n)]


# ---------------------------------------------------------------------------
# Weighted statistics
# ---------------------------------------------------------------------------

def weighted_quantiles(
    values: Sequence[float],
    quantiles: Sequence[float],
    weights: Optional[Sequence[float]] = None,
) -> np.ndarray:
    """
    Quantiles of values, optionally weighted.

    Unweighted quantiles interpolate linearly (numpy's default). Weighted
    quantiles take the smallest value whose cumulative weight reaches
    q * total weight, the solution of an intercept-only quantile
    regression.
    """
    v = np.asarray(values, dtype=float)
    q = np.asarray(quantiles, dtype=float)
    if v.size == 0:
        raise ChartError("Cannot compute quantiles of an empty group.")

    if weights is None:
        return np.quantile(v, q)

    w = np.asarray(weights, dtype=float)
    order = np.argsort(v, kind="stable")
    v, w = v[order], w[order]
    cum = np.cumsum(w)
    total = cum[-1]
    if total <= 0:
        raise ChartError("Cannot compute weighted quantiles when all weights are zero.")

    idx = np.searchsorted(cum, q * total, side="left")
    return v[np.clip(idx, 0, v.size - 1)]


def _box_stats(values: np.ndarray, weights: Optional[np.ndarray], label: str) -> Dict[str, Any]:
    q1, med, q3 = weighted_quantiles(values, [0.25, 0.5, 0.75], weights)
    iqr = q3 - q1
    lo_fence, hi_fence = q1 - 1.5 * iqr, q3 + 1.5 * iqr

    inside = values[(values >= lo_fence) & (values <= hi_fence)]
    fliers = values[(values < lo_fence) | (values > hi_fence)]

    return {
        "label": label,
        "q1": q1,
        "med": med,
        "q3": q3,
        "whislo": inside.min() if inside.size else q1,
        "whishi": inside.max() if inside.size else q3,
        "fliers": fliers,
    }


# ---------------------------------------------------------------------------
# Geoms
# ---------------------------------------------------------------------------

def _draw_line(chart: Chart, ax: Axes) -> None:
    x, y = chart.aes.x, chart.aes.y
    for label, rows, color in chart.series():
        rows = rows.sort_values(x)
        ax.plot(rows[x], rows[y], color=color, label=label, linewidth=1.2)


def _draw_point(chart: Chart, ax: Axes) -> None:
    x, y = chart.aes.x, chart.aes.y
    for label, rows, color in chart.series():
        ax.scatter(rows[x], rows[y], color=color, label=label, s=10)


def _fill(chart: Chart) -> str:
    return chart.palette[0] if chart.palette else DEFAULT_FILL


def _draw_bar(chart: Chart, ax: Axes) -> pd.Series:
    counts = weighted_counts(chart.data, chart.aes.x, chart.aes.weight)
    positions = np.arange(len(counts))

    ax.bar(positions, counts.to_numpy(), color=_fill(chart), width=0.9)
    ax.set_xticks(positions)
    ax.set_xticklabels([str(c) for c in counts.index], rotation=30, ha="right")
    return counts


def _draw_histogram(chart: Chart, ax: Axes) -> pd.DataFrame:
    x, weight = chart.aes.x, chart.aes.weight
    values = pd.to_numeric(chart.data[x], errors="coerce")
    keep = values.notna()
    if not keep.any():
        raise ChartError(f"Column '{x}' has no numeric values to bin.")

    w = chart.data.loc[keep, weight].astype(float).to_numpy() if weight else None
    counts, edges, _ = ax.hist(
        values[keep].to_numpy(),
        bins=chart.bins,
        weights=w,
        color=_fill(chart),
        edgecolor="white",
        linewidth=0.5,
    )

    dropped = int((~keep).sum())
    if dropped:
        logger.warning("Histogram of %s: removed %d rows with missing values.", x, dropped)

    return pd.DataFrame({"left": edges[:-1], "right": edges[1:], "count": counts})


def _draw_boxplot(chart: Chart, ax: Axes) -> pd.DataFrame:
    x, y, weight = chart.aes.x, chart.aes.y, chart.aes.weight
    data = chart.data
    values_all = pd.to_numeric(data[y], errors="coerce")
    keep = values_all.notna() & data[x].notna()
    dropped = int((~keep).sum())
    if dropped:
        logger.warning("Boxplot of %s by %s: removed %d rows with missing values.", y, x, dropped)

    boxes: List[Dict[str, Any]] = []
    rows: List[Dict[str, Any]] = []
    for level in category_order(data[x]):
        mask = keep & (data[x] == level)
        if not mask.any():
            continue
        values = values_all[mask].to_numpy()
        w = data.loc[mask, weight].astype(float).to_numpy() if weight else None
        if w is not None and w.sum() <= 0:
            logger.warning("Boxplot of %s: skipping %s, all weights are zero.", y, level)
            continue

        stats = _box_stats(values, w, str(level))
        boxes.append(stats)
        rows.append(
            {
                x: str(level),
                "q1": stats["q1"],
                "med": stats["med"],
                "q3": stats["q3"],
                "whislo": stats["whislo"],
                "whishi": stats["whishi"],
                "n": int(mask.sum()),
                "weight": float(w.sum()) if w is not None else float(mask.sum()),
            }
        )

    if not boxes:
        raise ChartError(f"No non-missing ({x}, {y}) pairs to draw a boxplot.")

    positions = list(range(len(boxes)))
    ax.bxp(
        boxes,
        positions=positions,
        patch_artist=True,
        boxprops={"facecolor": BOX_FILL},
        medianprops={"color": _fill(chart) if chart.palette else DEFAULT_INK},
        flierprops={"marker": "o", "markersize": 3},
    )
    ax.set_xticks(positions)
    ax.set_xticklabels([b["label"] for b in boxes], rotation=30, ha="right")
    return pd.DataFrame(rows).set_index(x)


_DRAWERS: Dict[str, Callable[[Chart, Axes], Any]] = {
    "line": _draw_line,
    "point": _draw_point,
    "bar": _draw_bar,
    "histogram": _draw_histogram,
    "boxplot": _draw_boxplot,
}
