"""Record extraction and grade statistics.

Public API
----------
- :func:`extract_records` — table rows to :class:`StudentRecord` objects
- :func:`grade_status` — PASS / FAIL for a grade
- :func:`subject_statistics` / :func:`overall_statistics`
- :func:`analyze_grades` — all of the above for a list of tables
- :func:`extract_metadata` — academic year, course, regulation and
  arrear/current sections from plain text
"""

from .grades import (
    FAIL,
    PASS,
    GradeAnalysis,
    analyze_grades,
    grade_status,
    overall_statistics,
    subject_statistics,
)
from .metadata import (
    extract_academic_year,
    extract_course,
    extract_metadata,
    extract_regulation,
    identify_sections,
)
from .records import compute_gpa, extract_records, find_header_row, grade_points

__all__ = [
    "FAIL",
    "PASS",
    "GradeAnalysis",
    "analyze_grades",
    "compute_gpa",
    "extract_academic_year",
    "extract_course",
    "extract_metadata",
    "extract_records",
    "extract_regulation",
    "find_header_row",
    "grade_points",
    "grade_status",
    "identify_sections",
    "overall_statistics",
    "subject_statistics",
]
