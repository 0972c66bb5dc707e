from __future__ import annotations

import logging
from typing import Dict, List, Mapping, Optional, Tuple

from ..config import ExtractionConfig
from ..models import StudentRecord, Table
from ..tables.classify import is_name_text, is_register_number, is_subject_code

log = logging.getLogger(__name__)


def find_header_row(table: Table) -> Optional[int]:
    """Index of the subject-code header row, or ``None``.

    Uses the index recorded by the strategy when there is one, otherwise
    the first row with a subject-code cell.
    """
    if table.header_row is not None and 0 <= table.header_row < len(table.rows):
        return table.header_row
    for i, row in enumerate(table.rows):
        if any(is_subject_code(cell) for cell in row):
            return i
    return None


def grade_points(
    subject_grades: Mapping[str, str],
    cfg: ExtractionConfig,
) -> Dict[str, float]:
    """Look up points for every grade in the canonical table.

    Grades missing from ``cfg.grade_points`` get no entry.
    """
    table = cfg.grade_points
    return {
        code: float(table[grade])
        for code, grade in subject_grades.items()
        if grade in table
    }


def compute_gpa(
    points: Mapping[str, float],
    subject_count: int,
    cfg: ExtractionConfig,
) -> float:
    """Mean grade point, rounded to 2 decimals.

    ``cfg.gpa_denominator == "subjects"`` divides by *subject_count* (every
    subject column in the table); ``"graded"`` divides by the number of
    grades that carry a point value.
    """
    if cfg.gpa_denominator == "subjects":
        denominator = subject_count
    else:
        denominator = len(points)
    if denominator <= 0:
        return 0.0
    return round(sum(points.values()) / denominator, 2)


def _subject_columns(row: List[str]) -> List[Tuple[int, str]]:
    return [(i, cell.strip()) for i, cell in enumerate(row) if is_subject_code(cell)]


def extract_records(table: Table, cfg: ExtractionConfig) -> List[StudentRecord]:
    """Turn the data rows of *table* into :class:`StudentRecord` objects.

    A later row holding two or more subject codes starts a new block: the
    rows under it are read against its subject columns.  Rows with no grade
    under any subject column are skipped rather than reported.
    """
    header_idx = find_header_row(table)
    if header_idx is None:
        return []

    subject_cols = _subject_columns(table.rows[header_idx])
    if not subject_cols:
        return []

    records: List[StudentRecord] = []
    skipped = 0
    for row in table.rows[header_idx + 1 :]:
        block_cols = _subject_columns(row)
        if len(block_cols) >= 2:
            subject_cols = block_cols
            continue
        subject_idx = {i for i, _ in subject_cols}
        subject_grades: Dict[str, str] = {}
        for i, code in subject_cols:
            cell = row[i].strip().upper() if i < len(row) else ""
            if cell:
                subject_grades[code] = cell
        if not subject_grades:
            skipped += 1
            continue

        register_number = next(
            (c.strip() for c in row if is_register_number(c)), None
        )
        name = next(
            (
                c.strip()
                for i, c in enumerate(row)
                if i not in subject_idx and is_name_text(c)
            ),
            None,
        )
        points = grade_points(subject_grades, cfg)
        records.append(
            StudentRecord(
                register_number=register_number,
                name=name,
                subject_grades=subject_grades,
                grade_points=points,
                gpa=compute_gpa(points, len(subject_cols), cfg),
            )
        )

    if skipped:
        log.debug("extract_records: skipped %d row(s) without grades", skipped)
    return records
