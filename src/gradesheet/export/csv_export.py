"""Export module: write extraction and segmentation results to disk.

CSV for row-shaped artefacts (tables, student records, semester groups)
and JSON for the statistics block.  Every ``export_*`` function returns
the path it wrote.

Usage::

    from gradesheet.export import export_extraction
    export_extraction(result, out_dir, pdf_stem)
"""

from __future__ import annotations

import csv
import json
from pathlib import Path
from typing import Any, Dict, Iterable, Sequence

from ..models import (
    OverallStatistics,
    SemesterGroup,
    StudentRecord,
    SubjectStatistics,
    Table,
)


def _safe_str(val: Any) -> str:
    """Convert to string, handling None gracefully."""
    if val is None:
        return ""
    return str(val)


# ── Tables ─────────────────────────────────────────────────────────────


def export_tables_csv(tables: Sequence[Table], out_path: Path) -> Path:
    """Write every table to one CSV, one line per table row.

    The first four columns identify the row (table index, page, strategy,
    row index); the remaining columns are the cells.  Tables of different
    widths share the file, so lines are not padded to a common width.
    """
    out_path = Path(out_path)
    width = max((len(t.columns) for t in tables), default=0)
    with open(out_path, "w", newline="", encoding="utf-8") as f:
        writer = csv.writer(f)
        writer.writerow(
            ["table", "page", "strategy", "row"] + [f"c{i}" for i in range(width)]
        )
        for ti, table in enumerate(tables):
            for ri, row in enumerate(table.rows):
                writer.writerow(
                    [ti, _safe_str(table.page), table.strategy, ri] + list(row)
                )
    return out_path


# ── Student records ────────────────────────────────────────────────────


def export_records_csv(records: Iterable[StudentRecord], out_path: Path) -> Path:
    """Write one row per student with a grade column per subject code.

    Subject columns are the sorted union of codes across all records;
    a subject a student did not take is left blank.
    """
    out_path = Path(out_path)
    records = list(records)
    codes = sorted({code for r in records for code in r.subject_grades})
    fieldnames = ["register_number", "name"] + codes + ["gpa"]
    with open(out_path, "w", newline="", encoding="utf-8") as f:
        writer = csv.DictWriter(f, fieldnames=fieldnames)
        writer.writeheader()
        for r in records:
            row: Dict[str, Any] = {
                "register_number": _safe_str(r.register_number),
                "name": _safe_str(r.name),
                "gpa": f"{r.gpa:.2f}",
            }
            for code in codes:
                row[code] = r.subject_grades.get(code, "")
            writer.writerow(row)
    return out_path


# ── Statistics ─────────────────────────────────────────────────────────


def export_statistics_json(
    subjects: Sequence[SubjectStatistics],
    overall: OverallStatistics,
    out_path: Path,
) -> Path:
    """Write subject and overall statistics as one JSON document."""
    out_path = Path(out_path)
    payload = {
        "subjects": [s.to_dict() for s in subjects],
        "overall": overall.to_dict(),
    }
    out_path.write_text(json.dumps(payload, indent=2), encoding="utf-8")
    return out_path


# ── Semester groups ────────────────────────────────────────────────────


def export_groups_csv(groups: Iterable[SemesterGroup], out_path: Path) -> Path:
    """Write one row per semester group.

    ``start_page`` / ``end_page`` are zero-based and inclusive.
    """
    out_path = Path(out_path)
    rows = [
        {
            "semester": g.semester_number,
            "start_page": g.start_page,
            "end_page": g.end_page,
            "page_count": g.page_count,
            "confidence": g.confidence_tier.value,
        }
        for g in groups
    ]
    fieldnames = ["semester", "start_page", "end_page", "page_count", "confidence"]
    with open(out_path, "w", newline="", encoding="utf-8") as f:
        writer = csv.DictWriter(f, fieldnames=fieldnames)
        writer.writeheader()
        writer.writerows(rows)
    return out_path


# ── Whole-result export ────────────────────────────────────────────────


def export_extraction(
    result: Any,
    out_dir: Path,
    stem: str,
) -> Dict[str, str]:
    """Write all artefacts of an :class:`~gradesheet.pipeline.ExtractionResult`.

    Returns a mapping of artefact name to written path.  Semester groups
    come from segmentation and are written with :func:`export_groups_csv`.
    """
    out_dir = Path(out_dir)
    out_dir.mkdir(parents=True, exist_ok=True)
    written = {
        "tables": export_tables_csv(result.tables, out_dir / f"{stem}_tables.csv"),
        "records": export_records_csv(
            result.records, out_dir / f"{stem}_records.csv"
        ),
        "statistics": export_statistics_json(
            result.subjects, result.overall, out_dir / f"{stem}_statistics.json"
        ),
    }
    return {k: str(v) for k, v in written.items()}
