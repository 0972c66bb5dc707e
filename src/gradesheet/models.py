from __future__ import annotations

import math
from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Dict, Iterable, List, Optional, Tuple


@dataclass(frozen=True)
class Token:
    """Positioned text fragment produced by the PDF decoder."""

    text: str
    x: float
    y: float
    width: float = 0.0
    height: float = 0.0
    font_size: float = 0.0

    def to_dict(self) -> dict:
        """Serialize to a JSON-compatible dict."""
        return {
            "text": self.text,
            "x": round(self.x, 3),
            "y": round(self.y, 3),
            "width": round(self.width, 3),
            "height": round(self.height, 3),
            "font_size": round(self.font_size, 3),
        }

    @classmethod
    def from_dict(cls, d: dict) -> "Token":
        """Deserialize from a dict produced by :meth:`to_dict`.

        ``fontSize`` is accepted as an alias for ``font_size``.
        """
        return cls(
            text=d["text"],
            x=float(d["x"]),
            y=float(d["y"]),
            width=float(d.get("width", 0.0)),
            height=float(d.get("height", 0.0)),
            font_size=float(d.get("font_size", d.get("fontSize", 0.0))),
        )


def coerce_tokens(raw: Iterable[Any]) -> List[Token]:
    """Turn decoder output into tokens, silently skipping malformed entries.

    Accepts :class:`Token` instances or dicts.  Entries with non-string or
    blank text, or missing / non-finite coordinates, are dropped.
    """
    out: List[Token] = []
    for item in raw:
        if isinstance(item, Token):
            tok = item
        elif isinstance(item, dict):
            try:
                tok = Token.from_dict(item)
            except (KeyError, TypeError, ValueError):
                continue
        else:
            continue
        if not isinstance(tok.text, str) or not tok.text.strip():
            continue
        if not (math.isfinite(tok.x) and math.isfinite(tok.y)):
            continue
        out.append(tok)
    return out


@dataclass
class Row:
    """Tokens sharing a page and (approximately) a Y coordinate."""

    y: float
    tokens: List[Token] = field(default_factory=list)

    def texts(self) -> List[str]:
        """Token texts in left-to-right order."""
        return [t.text for t in self.tokens]

    def text(self) -> str:
        """Row text joined with single spaces."""
        return " ".join(self.texts())


@dataclass(frozen=True)
class Column:
    """An inferred table column."""

    center: float
    width: float

    def to_dict(self) -> dict:
        """Serialize to a JSON-compatible dict."""
        return {"center": round(self.center, 3), "width": round(self.width, 3)}


@dataclass
class Table:
    """A reconstructed table: one string cell per column in every row."""

    columns: List[Column]
    rows: List[List[str]]
    header_row: Optional[int] = None
    strategy: str = ""
    page: Optional[int] = None

    def is_valid(self) -> bool:
        """True when the table has >= 2 rows and every row is full width."""
        width = len(self.columns)
        return len(self.rows) >= 2 and all(len(r) == width for r in self.rows)

    def to_dict(self) -> dict:
        """Serialize to a JSON-compatible dict."""
        d: dict = {
            "columns": [c.to_dict() for c in self.columns],
            "rows": [list(r) for r in self.rows],
        }
        if self.header_row is not None:
            d["header_row"] = self.header_row
        if self.strategy:
            d["strategy"] = self.strategy
        if self.page is not None:
            d["page"] = self.page
        return d


@dataclass(frozen=True)
class StudentRecord:
    """Grades for one student row of a table."""

    register_number: Optional[str]
    name: Optional[str]
    subject_grades: Dict[str, str]
    grade_points: Dict[str, float]
    gpa: float

    def to_dict(self) -> dict:
        """Serialize to a JSON-compatible dict."""
        return {
            "register_number": self.register_number,
            "name": self.name,
            "subject_grades": dict(self.subject_grades),
            "grade_points": dict(self.grade_points),
            "gpa": self.gpa,
        }


@dataclass(frozen=True)
class SubjectStatistics:
    """Pass/fail statistics for one subject code."""

    subject_code: str
    total_students: int
    passed: int
    failed: int
    pass_percentage: float
    grade_distribution: Dict[str, int]

    def to_dict(self) -> dict:
        """Serialize to a JSON-compatible dict."""
        return {
            "subject_code": self.subject_code,
            "total_students": self.total_students,
            "passed": self.passed,
            "failed": self.failed,
            "pass_percentage": self.pass_percentage,
            "grade_distribution": dict(self.grade_distribution),
        }


@dataclass(frozen=True)
class OverallStatistics:
    """Aggregate statistics across every subject."""

    total_subjects: int = 0
    total_students: int = 0
    total_passed: int = 0
    total_failed: int = 0
    total_attempts: int = 0
    average_pass_rate: float = 0.0
    overall_pass_rate: float = 0.0

    def to_dict(self) -> dict:
        """Serialize to a JSON-compatible dict."""
        return {
            "total_subjects": self.total_subjects,
            "total_students": self.total_students,
            "total_passed": self.total_passed,
            "total_failed": self.total_failed,
            "total_attempts": self.total_attempts,
            "average_pass_rate": self.average_pass_rate,
            "overall_pass_rate": self.overall_pass_rate,
        }


class ConfidenceTier(str, Enum):
    """How certain a detected semester boundary is."""

    HIGH = "HIGH"
    MEDIUM = "MEDIUM"
    LOW = "LOW"
    FALLBACK = "FALLBACK"

    @property
    def rank(self) -> int:
        """0 for HIGH up to 3 for FALLBACK; lower is more certain."""
        return _TIER_RANK[self]


_TIER_RANK = {
    ConfidenceTier.HIGH: 0,
    ConfidenceTier.MEDIUM: 1,
    ConfidenceTier.LOW: 2,
    ConfidenceTier.FALLBACK: 3,
}


@dataclass(frozen=True)
class SectionBoundary:
    """A page believed to start a semester."""

    page_index: int
    semester_number: int
    confidence_tier: ConfidenceTier
    evidence: str = ""

    def to_dict(self) -> dict:
        """Serialize to a JSON-compatible dict."""
        return {
            "page_index": self.page_index,
            "semester_number": self.semester_number,
            "confidence_tier": self.confidence_tier.value,
            "evidence": self.evidence,
        }

    @classmethod
    def from_dict(cls, d: dict) -> "SectionBoundary":
        """Deserialize from a dict produced by :meth:`to_dict`."""
        return cls(
            page_index=int(d["page_index"]),
            semester_number=int(d["semester_number"]),
            confidence_tier=ConfidenceTier(d["confidence_tier"]),
            evidence=d.get("evidence", ""),
        )


@dataclass(frozen=True)
class SemesterGroup:
    """A contiguous, inclusive page range belonging to one semester."""

    semester_number: int
    start_page: int
    end_page: int
    confidence_tier: ConfidenceTier = ConfidenceTier.HIGH

    @property
    def page_range(self) -> Tuple[int, int]:
        """Inclusive ``(start, end)`` zero-based page indices."""
        return (self.start_page, self.end_page)

    @property
    def page_count(self) -> int:
        """Number of pages in the group."""
        return self.end_page - self.start_page + 1

    def to_dict(self) -> dict:
        """Serialize to a JSON-compatible dict."""
        return {
            "semester_number": self.semester_number,
            "page_range": [self.start_page, self.end_page],
            "confidence_tier": self.confidence_tier.value,
        }


@dataclass(frozen=True)
class DocumentMetadata:
    """Document-level details read from a result sheet's plain text.

    ``arrear_lines`` / ``current_lines`` are inclusive zero-based line
    ranges of the full text, or ``None`` when the section is absent.
    """

    academic_year: Optional[str] = None
    course: Optional[str] = None
    regulation: Optional[str] = None
    arrear_lines: Optional[Tuple[int, int]] = None
    current_lines: Optional[Tuple[int, int]] = None

    def to_dict(self) -> dict:
        """Serialize to a JSON-compatible dict."""
        return {
            "academic_year": self.academic_year,
            "course": self.course,
            "regulation": self.regulation,
            "arrear_lines": list(self.arrear_lines) if self.arrear_lines else None,
            "current_lines": list(self.current_lines) if self.current_lines else None,
        }
