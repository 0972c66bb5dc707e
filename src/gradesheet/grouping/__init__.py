"""Geometry layer — row clustering and column inference.

Public API
----------
- :func:`cluster_rows` — group a page's tokens into Y-ordered rows
- :func:`infer_columns` — derive column centres from candidate rows
- :func:`nearest_column` — nearest column lookup by X distance
"""

from .clustering import cluster_rows, infer_columns, nearest_column

__all__ = [
    "cluster_rows",
    "infer_columns",
    "nearest_column",
]
