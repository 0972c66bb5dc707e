"""Turn accepted boundaries into contiguous semester page ranges."""

from __future__ import annotations

import logging
from typing import List, Sequence, Tuple

from ..models import SectionBoundary, SemesterGroup

log = logging.getLogger(__name__)


def group_sections(
    boundaries: Sequence[SectionBoundary],
    total_pages: int,
) -> Tuple[List[SemesterGroup], List[SectionBoundary]]:
    """Build one :class:`SemesterGroup` per usable boundary.

    Boundaries are taken in semester order.  A boundary outside the
    document, or whose page does not come after the previous kept
    boundary's page, is dropped and returned in the second list.

    The first group always starts at page 0 and the last one ends at
    ``total_pages - 1``; each other group ends the page before the next
    group starts, so the groups tile the whole document.
    """
    if total_pages < 1:
        raise ValueError(f"total_pages must be >= 1, got {total_pages}")

    kept: List[SectionBoundary] = []
    dropped: List[SectionBoundary] = []
    for b in sorted(boundaries, key=lambda b: (b.semester_number, b.page_index)):
        if not 0 <= b.page_index < total_pages:
            dropped.append(b)
        elif kept and b.page_index <= kept[-1].page_index:
            dropped.append(b)
        else:
            kept.append(b)

    if dropped:
        log.warning(
            "group: dropped %d boundar%s out of page order: %s",
            len(dropped),
            "y" if len(dropped) == 1 else "ies",
            [(b.semester_number, b.page_index) for b in dropped],
            extra={"stage": "group", "page": None},
        )

    groups: List[SemesterGroup] = []
    for i, b in enumerate(kept):
        start = 0 if i == 0 else b.page_index
        end = kept[i + 1].page_index - 1 if i + 1 < len(kept) else total_pages - 1
        groups.append(
            SemesterGroup(
                semester_number=b.semester_number,
                start_page=start,
                end_page=end,
                confidence_tier=b.confidence_tier,
            )
        )
    return groups, dropped
