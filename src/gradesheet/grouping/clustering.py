from __future__ import annotations

import logging
from typing import Iterable, List

from ..config import ExtractionConfig
from ..models import Column, Row, Token

log = logging.getLogger(__name__)


# =============================================================================
# Row layer: cluster_rows
# =============================================================================


def _canonical_order(tokens: Iterable[Token]) -> List[Token]:
    """Sort tokens by (y, x, text) so clustering ignores input order."""
    return sorted(tokens, key=lambda t: (t.y, t.x, t.text))


def cluster_rows(tokens: Iterable[Token], cfg: ExtractionConfig) -> List[Row]:
    """Group one page's tokens into visual rows by Y proximity.

    Each token joins the first existing row whose representative Y (the
    rounded Y of the token that opened it) lies within
    ``cfg.row_y_tolerance``; otherwise it opens a new row.  When a token is
    within tolerance of two rows the first one found wins, not the nearest.

    Args:
        tokens: Tokens from a single page.
        cfg: ExtractionConfig with ``row_y_tolerance``.

    Returns:
        Rows sorted by ascending Y, tokens in each row sorted by ascending X.
    """
    tol = cfg.row_y_tolerance
    rows: List[Row] = []

    for token in _canonical_order(tokens):
        placed = False
        for row in rows:
            if abs(token.y - row.y) <= tol:
                row.tokens.append(token)
                placed = True
                break
        if not placed:
            rows.append(Row(y=round(token.y, 1), tokens=[token]))

    for row in rows:
        row.tokens.sort(key=lambda t: (t.x, t.text))
    rows.sort(key=lambda r: r.y)
    return rows


# =============================================================================
# Column layer: infer_columns
# =============================================================================


def infer_columns(rows: Iterable[Row], cfg: ExtractionConfig) -> List[Column]:
    """Derive column centres from the X positions of candidate table rows.

    X positions are sorted and merged greedily: a position within
    ``cfg.column_merge_tolerance`` of the running mean of the current
    column joins it, otherwise it opens the next column.  Because input is
    sorted and means only grow, the resulting centres are strictly
    increasing and separated by more than the merge tolerance.
    """
    tol = cfg.column_merge_tolerance
    xs = sorted(t.x for row in rows for t in row.tokens)
    if not xs:
        return []

    # Each bucket: [sum, count, min_x, max_x]
    buckets: List[List[float]] = []
    for x in xs:
        if buckets:
            last = buckets[-1]
            if abs(x - last[0] / last[1]) <= tol:
                last[0] += x
                last[1] += 1
                last[3] = x
                continue
        buckets.append([x, 1, x, x])

    columns = [
        Column(
            center=b[0] / b[1],
            width=max(cfg.min_column_width, b[3] - b[2]),
        )
        for b in buckets
    ]
    log.debug("infer_columns: %d positions -> %d columns", len(xs), len(columns))
    return columns


def nearest_column(x: float, columns: List[Column]) -> tuple[int, float]:
    """Return ``(index, distance)`` of the column centre closest to *x*.

    Ties resolve to the leftmost column.  Returns ``(-1, inf)`` when there
    are no columns.
    """
    best_idx = -1
    best_dist = float("inf")
    for i, col in enumerate(columns):
        dist = abs(col.center - x)
        if dist < best_dist:
            best_idx = i
            best_dist = dist
    return best_idx, best_dist
