"""Semester segmentation — boundary detection, filtering and grouping.

Public API
----------
- :func:`classify_page` / :func:`detect_boundaries` — per-page scoring
- :func:`fallback_boundaries` — evenly spaced pages when nothing matches
- :func:`filter_boundaries` — confidence threshold, raises
  :class:`LowConfidenceError` when nothing survives
- :func:`group_sections` — contiguous page ranges per semester
"""

from .classifier import classify_page, detect_boundaries, fallback_boundaries
from .filter import (
    LowConfidenceError,
    accepted_tiers,
    filter_boundaries,
    resolve_threshold,
)
from .grouper import group_sections

__all__ = [
    "LowConfidenceError",
    "accepted_tiers",
    "classify_page",
    "detect_boundaries",
    "fallback_boundaries",
    "filter_boundaries",
    "group_sections",
    "resolve_threshold",
]
