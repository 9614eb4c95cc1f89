"""
Exploratory data visualization lesson.

Loads a monthly unemployment / interest rate table and a weighted survey,
and walks through line, scatter, bar, histogram and boxplot charts built
with a small declarative chart grammar (see dataviz_lesson.core.charts).
"""
from dataviz_lesson.config import APP_VERSION as __version__
