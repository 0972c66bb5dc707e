"""Grade analysis — pass/fail status and subject / overall statistics.

Statistics are always recomputed in full from the records passed in;
nothing is cached or updated incrementally.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from typing import Dict, Iterable, List

from ..config import ExtractionConfig
from ..models import OverallStatistics, StudentRecord, SubjectStatistics, Table
from .records import extract_records

log = logging.getLogger(__name__)

PASS = "PASS"
FAIL = "FAIL"


def grade_status(grade: str, cfg: ExtractionConfig) -> str:
    """``"PASS"`` for a pass grade, ``"FAIL"`` for everything else.

    Grades in neither ``cfg.pass_grades`` nor ``cfg.fail_grades`` fail.
    """
    return PASS if grade.strip().upper() in cfg.pass_grades else FAIL


def _ordered_distribution(
    counts: Dict[str, int],
    cfg: ExtractionConfig,
) -> Dict[str, int]:
    """Pass grades, then fail grades, then unknown grades alphabetically."""
    canonical = list(cfg.pass_grades) + list(cfg.fail_grades)
    ordered = {g: counts[g] for g in canonical if counts.get(g)}
    for g in sorted(set(counts) - set(canonical)):
        ordered[g] = counts[g]
    return ordered


def subject_statistics(
    records: Iterable[StudentRecord],
    cfg: ExtractionConfig,
) -> List[SubjectStatistics]:
    """Per-subject statistics, sorted by subject code."""
    by_subject: Dict[str, List[str]] = {}
    for rec in records:
        for code, grade in rec.subject_grades.items():
            by_subject.setdefault(code, []).append(grade)

    stats: List[SubjectStatistics] = []
    for code in sorted(by_subject):
        grades = by_subject[code]
        total = len(grades)
        passed = sum(1 for g in grades if grade_status(g, cfg) == PASS)
        counts: Dict[str, int] = {}
        for g in grades:
            counts[g] = counts.get(g, 0) + 1
        stats.append(
            SubjectStatistics(
                subject_code=code,
                total_students=total,
                passed=passed,
                failed=total - passed,
                pass_percentage=round(passed / total * 100, 2) if total else 0.0,
                grade_distribution=_ordered_distribution(counts, cfg),
            )
        )
    return stats


def overall_statistics(subjects: List[SubjectStatistics]) -> OverallStatistics:
    """Aggregate subject statistics.

    ``total_students`` is the largest subject cohort, not a sum, since a
    student appears once per subject taken.
    """
    if not subjects:
        return OverallStatistics()
    total_passed = sum(s.passed for s in subjects)
    total_failed = sum(s.failed for s in subjects)
    attempts = total_passed + total_failed
    return OverallStatistics(
        total_subjects=len(subjects),
        total_students=max(s.total_students for s in subjects),
        total_passed=total_passed,
        total_failed=total_failed,
        total_attempts=attempts,
        average_pass_rate=round(
            sum(s.pass_percentage for s in subjects) / len(subjects), 2
        ),
        overall_pass_rate=round(total_passed / attempts * 100, 2) if attempts else 0.0,
    )


@dataclass
class GradeAnalysis:
    """Records plus derived statistics for a set of tables."""

    records: List[StudentRecord] = field(default_factory=list)
    subjects: List[SubjectStatistics] = field(default_factory=list)
    overall: OverallStatistics = field(default_factory=OverallStatistics)

    def to_dict(self) -> dict:
        """Serialize to a JSON-compatible dict."""
        return {
            "records": [r.to_dict() for r in self.records],
            "subjects": [s.to_dict() for s in self.subjects],
            "overall": self.overall.to_dict(),
        }


def analyze_grades(tables: Iterable[Table], cfg: ExtractionConfig) -> GradeAnalysis:
    """Extract records from every table and compute statistics."""
    records: List[StudentRecord] = []
    for table in tables:
        records.extend(extract_records(table, cfg))
    subjects = subject_statistics(records, cfg)
    overall = overall_statistics(subjects)
    log.info(
        "analyze_grades: %d records, %d subjects, pass rate %.2f%%",
        len(records),
        len(subjects),
        overall.overall_pass_rate,
    )
    return GradeAnalysis(records=records, subjects=subjects, overall=overall)
