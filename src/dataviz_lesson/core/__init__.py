"""
Core data and charting layer.

This package contains:
- data_loader: read the lesson CSVs (cached, typed, validated)
- transforms: wide -> long reshape, ordered factors, decades, weights
- charts: declarative chart grammar rendered with matplotlib
- export: write a rendered chart to an image file
- summary: table shapes and correlation facts shown next to the charts
"""
