"""Document metadata from plain text: academic year, course, regulation.

Also locates the arrear and current-semester sections of a result sheet
by keyword.  Every extractor tries its patterns in order and returns the
first hit, or ``None``.
"""

from __future__ import annotations

import logging
import re
from typing import Dict, List, Optional, Sequence, Tuple

from ..models import DocumentMetadata

log = logging.getLogger(__name__)

ACADEMIC_YEAR_PATTERNS = (
    re.compile(r"(?:Academic\s+Year|A\.Y\.?)\s*:?\s*(\d{4}-\d{4}|\d{4}-\d{2})", re.I),
    re.compile(r"\b(?:Batch|Year)\s*:?\s*(\d{4}-\d{4}|\d{4})\b", re.I),
    re.compile(r"(\d{4}-\d{4})\s*Batch", re.I),
)

COURSE_PATTERNS = (
    re.compile(
        # "Course Code" / "Course Title" are table headers, not a course.
        r"\b(?:Course|Programme|Program|Degree)\s*:?\s*"
        r"(?!(?:Code|Title|Name)\b)([A-Z][A-Z ]*?)\s*"
        r"(?=\n|$|Semester|Regulation)",
        re.I,
    ),
    re.compile(r"\b(B\.Tech|M\.Tech|B\.E|M\.E|BCA|MCA|MBA)\b", re.I),
)

REGULATION_PATTERNS = (
    re.compile(r"\b(?:Regulations?|Reg\.?)\s*:?\s*([A-Z]?\d{4})\b", re.I),
    re.compile(r"\b(?:R|REG)-?(\d{4})\b", re.I),
)

ARREAR_KEYWORDS = (
    "arrear",
    "backlog",
    "previous semester",
    "pending",
    "supplementary",
    "reappear",
    "carry forward",
)
CURRENT_KEYWORDS = (
    "current semester",
    "regular",
    "present semester",
    "ongoing",
    "this semester",
)


def _first_match(patterns: Sequence[re.Pattern], text: str) -> Optional[str]:
    for pattern in patterns:
        m = pattern.search(text)
        if m and m.group(1):
            return m.group(1)
    return None


def extract_academic_year(text: str) -> Optional[str]:
    """``"2023-2024"``, ``"2023-24"`` or a batch year such as ``"2021"``."""
    return _first_match(ACADEMIC_YEAR_PATTERNS, text)


def extract_course(text: str) -> Optional[str]:
    """Course or programme name, whitespace collapsed."""
    found = _first_match(COURSE_PATTERNS, text)
    if found is None:
        return None
    return " ".join(found.split())


def extract_regulation(text: str) -> Optional[str]:
    """Regulation code such as ``"2021"`` or ``"R2017"``."""
    return _first_match(REGULATION_PATTERNS, text)


def identify_sections(text: str) -> Dict[str, Optional[Tuple[int, int]]]:
    """Inclusive line ranges of the arrear and current-semester sections.

    The arrear section starts at the first line with an arrear keyword and
    ends the line before the current section starts, or at the last line
    when there is no current section.  The current section runs from its
    first keyword line to the end of the text.
    """
    lines: List[str] = text.split("\n")
    arrear_start = arrear_end = current_start = None

    for i, raw in enumerate(lines):
        line = raw.lower()
        if arrear_start is None and any(k in line for k in ARREAR_KEYWORDS):
            arrear_start = i
        if any(k in line for k in CURRENT_KEYWORDS):
            if arrear_start is not None and arrear_end is None and i > arrear_start:
                arrear_end = i - 1
            if current_start is None:
                current_start = i

    last = len(lines) - 1
    arrear = None
    if arrear_start is not None:
        arrear = (arrear_start, last if arrear_end is None else arrear_end)
    current = (current_start, last) if current_start is not None else None
    return {"arrear": arrear, "current": current}


def extract_metadata(text: str) -> DocumentMetadata:
    """All document-level details found in *text*."""
    sections = identify_sections(text)
    meta = DocumentMetadata(
        academic_year=extract_academic_year(text),
        course=extract_course(text),
        regulation=extract_regulation(text),
        arrear_lines=sections["arrear"],
        current_lines=sections["current"],
    )
    log.debug(
        "metadata: %s", meta.to_dict(), extra={"stage": "metadata", "page": None}
    )
    return meta
