"""
Tests for saving charts to image files
"""

import pytest

from dataviz_lesson.core.charts import Aes, Chart
from dataviz_lesson.core.export import ExportError, save_chart


def _png_size(path):
    """Width and height from the PNG IHDR chunk."""
    data = path.read_bytes()
    assert data[:8] == b"\x89PNG\r\n\x1a\n"
    return int.from_bytes(data[16:20], "big"), int.from_bytes(data[20:24], "big")


@pytest.fixture
def rendered(unemp_df):
    return Chart(unemp_df, Aes(x="date", y="unemployment"), "line").render()


class TestSaveChart:
    """Test writing the last (or a given) chart."""

    def test_writes_nonempty_file(self, tmp_path, rendered):
        path = save_chart(tmp_path / "chart.png", dpi=50)

        assert path == tmp_path / "chart.png"
        assert path.exists()
        assert path.stat().st_size > 0

    def test_default_size_is_8_by_6_at_300_dpi(self, tmp_path, rendered):
        path = save_chart(tmp_path / "chart.png")

        assert _png_size(path) == (2400, 1800)

    def test_explicit_chart(self, tmp_path, unemp_df, rendered):
        other = Chart(unemp_df, Aes(x="unemployment", y="interest"), "point").render()
        path = save_chart(tmp_path / "first.png", rendered, width=2, height=1.5, dpi=100)

        assert _png_size(path) == (200, 150)
        assert other.figure is not rendered.figure

    @pytest.mark.parametrize("units,width,height,expected", [
        ("px", 300, 200, (300, 200)),
        ("cm", 5.08, 2.54, (200, 100)),
        ("mm", 25.4, 50.8, (100, 200)),
    ])
    def test_units(self, tmp_path, rendered, units, width, height, expected):
        path = save_chart(tmp_path / "chart.png", width=width, height=height, dpi=100, units=units)

        assert _png_size(path) == expected


class TestExportErrors:
    """Test write failures surface as ExportError."""

    def test_nothing_rendered(self, tmp_path):
        with pytest.raises(ExportError, match="No chart"):
            save_chart(tmp_path / "chart.png")

    def test_unwritable_path(self, tmp_path, rendered):
        with pytest.raises(ExportError, match="Could not write"):
            save_chart(tmp_path / "missing" / "chart.png", dpi=50)

    def test_unknown_units(self, tmp_path, rendered):
        with pytest.raises(ExportError, match="units"):
            save_chart(tmp_path / "chart.png", units="pt")

    def test_unknown_format(self, tmp_path, rendered):
        with pytest.raises(ExportError, match=".xyz"):
            save_chart(tmp_path / "chart.xyz", dpi=50)

    def test_non_positive_size(self, tmp_path, rendered):
        with pytest.raises(ExportError, match="positive"):
            save_chart(tmp_path / "chart.png", width=0)
