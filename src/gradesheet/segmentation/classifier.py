"""Section boundary classifier — which page starts which semester.

Each page is scored on its own with ordered heuristics (first match wins):

1. HIGH — an explicit semester marker: "Semester No. : 05", "sem 3",
   "term 2", "3rd semester", "IV Semester", or "year 2" (doubled).
2. MEDIUM — a result keyword next to a digit: "Result 4", "2 grades".
3. LOW — an institution header on any page after the first; the
   semester is estimated from the page index.

When no page matches (or the caller forces it) evenly spaced FALLBACK
boundaries are synthesised.  Only the final de-duplication and sort look
across pages.
"""

from __future__ import annotations

import logging
import re
from concurrent.futures import ThreadPoolExecutor
from typing import Callable, Dict, List, Optional, Sequence

from ..config import ExtractionConfig
from ..models import ConfidenceTier, SectionBoundary

log = logging.getLogger(__name__)

ROMAN_NUMERALS = {
    "I": 1,
    "II": 2,
    "III": 3,
    "IV": 4,
    "V": 5,
    "VI": 6,
    "VII": 7,
    "VIII": 8,
}
_ROMAN = r"(VIII|VII|VI|IV|V|III|II|I)"

RE_SEMESTER_NUMBER = re.compile(
    r"\b(?:semester|sem|term)\s*(?:no\.?)?\s*[:\-#]?\s*0?([1-8])\b", re.I
)
RE_SEMESTER_ORDINAL = re.compile(
    r"\b([1-8])\s*(?:st|nd|rd|th)\s+(?:semester|sem|term)\b", re.I
)
RE_SEMESTER_ROMAN_BEFORE = re.compile(r"\b" + _ROMAN + r"\s+(?i:semester)\b")
RE_SEMESTER_ROMAN_AFTER = re.compile(
    r"\b(?i:semester)\s*[:\-]?\s*" + _ROMAN + r"\b"
)
RE_YEAR = re.compile(r"\byear\s*[:\-]?\s*([1-4])\b", re.I)

RE_RESULT_AFTER = re.compile(
    r"\b(?:result|grade|mark|score)s?\s*[:\-#]?\s*([1-8])\b", re.I
)
RE_RESULT_BEFORE = re.compile(r"\b([1-8])\s*(?:result|grade|mark|score)s?\b", re.I)

RE_INSTITUTION = re.compile(
    r"\b(?:university|college|institute|department|examination)s?\b", re.I
)


def _explicit_semester(text: str) -> Optional[tuple[int, str]]:
    """Semester number and matched text for a HIGH-confidence marker."""
    for pattern in (RE_SEMESTER_NUMBER, RE_SEMESTER_ORDINAL):
        m = pattern.search(text)
        if m:
            return int(m.group(1)), m.group(0)
    for pattern in (RE_SEMESTER_ROMAN_BEFORE, RE_SEMESTER_ROMAN_AFTER):
        m = pattern.search(text)
        if m:
            return ROMAN_NUMERALS[m.group(1)], m.group(0)
    m = RE_YEAR.search(text)
    if m:
        return int(m.group(1)) * 2, m.group(0)
    return None


def _result_semester(text: str) -> Optional[tuple[int, str]]:
    """Semester number and matched text for a MEDIUM-confidence marker."""
    for pattern in (RE_RESULT_AFTER, RE_RESULT_BEFORE):
        m = pattern.search(text)
        if m:
            return int(m.group(1)), m.group(0)
    return None


def classify_page(
    text: str,
    page_index: int,
    cfg: ExtractionConfig,
) -> Optional[SectionBoundary]:
    """Score one page; ``None`` when it does not look like a semester start."""
    trace = {"stage": "classify", "page": page_index}
    if not text:
        return None

    for tier, finder in (
        (ConfidenceTier.HIGH, _explicit_semester),
        (ConfidenceTier.MEDIUM, _result_semester),
    ):
        hit = finder(text)
        if hit is None:
            continue
        semester, evidence = hit
        if 1 <= semester <= cfg.max_semesters:
            log.debug(
                "page %d: semester %d (%s, %r)",
                page_index,
                semester,
                tier.value,
                evidence,
                extra=trace,
            )
            return SectionBoundary(page_index, semester, tier, evidence)

    if page_index > 0:
        m = RE_INSTITUTION.search(text)
        if m:
            semester = min(cfg.max_semesters, page_index // 3 + 1)
            log.debug(
                "page %d: institution header, estimated semester %d",
                page_index,
                semester,
                extra=trace,
            )
            return SectionBoundary(
                page_index, semester, ConfidenceTier.LOW, m.group(0)
            )
    return None


def fallback_boundaries(
    total_pages: int,
    cfg: ExtractionConfig,
) -> List[SectionBoundary]:
    """Evenly spaced FALLBACK boundaries, one per semester.

    ``n = min(max_semesters, total_pages)`` semesters start at
    ``(sem - 1) * total_pages // n``, so every page belongs to a group and
    group sizes differ by at most one page.
    """
    if total_pages <= 0:
        return []
    n = min(cfg.max_semesters, total_pages)
    return [
        SectionBoundary(
            page_index=(sem - 1) * total_pages // n,
            semester_number=sem,
            confidence_tier=ConfidenceTier.FALLBACK,
            evidence="page-based fallback",
        )
        for sem in range(1, n + 1)
    ]


def _classify_all(
    page_texts: Sequence[str],
    cfg: ExtractionConfig,
    before_page: Optional[Callable[[int], None]] = None,
) -> List[Optional[SectionBoundary]]:
    """Classify every page, in parallel when ``cfg.max_workers > 1``."""

    def _page(i: int) -> Optional[SectionBoundary]:
        if before_page is not None:
            before_page(i)
        return classify_page(page_texts[i], i, cfg)

    indices = range(len(page_texts))
    if cfg.max_workers > 1 and len(page_texts) > 1:
        with ThreadPoolExecutor(max_workers=cfg.max_workers) as pool:
            futures = [pool.submit(_page, i) for i in indices]
            return [f.result() for f in futures]
    return [_page(i) for i in indices]


def detect_boundaries(
    page_texts: Sequence[str],
    cfg: ExtractionConfig,
    force_fallback: bool = False,
    before_page: Optional[Callable[[int], None]] = None,
) -> List[SectionBoundary]:
    """Detect semester boundaries across a document.

    Returns at most one boundary per semester number (most confident tier,
    then earliest page), sorted by semester number.  *before_page* is called
    with each page index before that page is classified; an exception it
    raises aborts detection.
    """
    total = len(page_texts)
    classified = _classify_all(page_texts, cfg, before_page)
    found = [b for b in classified if b is not None]
    found.sort(key=lambda b: b.page_index)

    if force_fallback or not found:
        log.info(
            "%s; using page-based fallback over %d pages",
            "fallback forced" if force_fallback else "no semester markers found",
            total,
            extra={"stage": "classify", "page": None},
        )
        found.extend(fallback_boundaries(total, cfg))

    best: Dict[int, SectionBoundary] = {}
    for b in sorted(
        found,
        key=lambda b: (b.semester_number, b.confidence_tier.rank, b.page_index),
    ):
        best.setdefault(b.semester_number, b)
    return sorted(best.values(), key=lambda b: (b.semester_number, b.page_index))
