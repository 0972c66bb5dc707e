"""Table reconstruction strategies.

Three strategies turn one page's tokens into tables, tried in order:

``grid``
    Geometry only: cluster rows, keep consecutive runs of table-like rows,
    infer columns from their X positions and drop each token into the
    nearest column.
``semantic``
    Domain knowledge: anchor one student per name token, then place every
    grade under the nearest subject code by Y/X proximity, with a
    row-grouping pass when direct proximity assigns nothing.
``coarse_grid``
    Last resort: snap every classified token onto a 0.5-unit lattice.

Each strategy is a pure function ``(tokens, cfg) -> list[Table]``; an
empty list means "no table".  :func:`reconstruct_tables` returns the first
non-empty result.
"""

from __future__ import annotations

import logging
import math
from dataclasses import dataclass, field
from typing import Callable, Dict, List, Optional, Sequence, Tuple

from ..config import ExtractionConfig
from ..grouping.clustering import cluster_rows, infer_columns, nearest_column
from ..models import Column, Row, Table, Token
from .classify import (
    TokenKind,
    classify_tokens,
    is_subject_code,
    is_table_like_row,
)

log = logging.getLogger(__name__)

StrategyFn = Callable[[Sequence[Token], ExtractionConfig], List[Table]]

NAME_HEADER = "Student Name"
REGISTER_HEADER = "Register Number"
SEMANTIC_COLUMN_PITCH = 15.0


# ---------------------------------------------------------------------------
# Strategy A: direct grid mapping
# ---------------------------------------------------------------------------


def _header_index(rows: List[Row]) -> Optional[int]:
    """Index of the first row holding two or more subject codes.

    Later header rows stay in the grid; record extraction switches subject
    columns when it reaches one.
    """
    for i, row in enumerate(rows):
        if sum(1 for t in row.tokens if is_subject_code(t.text)) >= 2:
            return i
    return None


def _table_from_rows(rows: List[Row], cfg: ExtractionConfig) -> Optional[Table]:
    """Map a run of table-like rows onto inferred columns."""
    if len(rows) < 2:
        return None

    columns = infer_columns(rows, cfg)
    if not columns:
        return None
    header_idx = _header_index(rows)
    tol = cfg.cell_tolerance

    grid: List[List[str]] = []
    new_header: Optional[int] = None
    for i, row in enumerate(rows):
        cells = [""] * len(columns)
        for tok in row.tokens:
            col_idx, dist = nearest_column(tok.x, columns)
            if col_idx < 0 or dist > tol:
                continue
            if cells[col_idx]:
                cells[col_idx] += " " + tok.text
            else:
                cells[col_idx] = tok.text
        if any(c.strip() for c in cells):
            if i == header_idx:
                new_header = len(grid)
            grid.append(cells)

    if not grid:
        return None

    keep = [c for c in range(len(columns)) if any(r[c].strip() for r in grid)]
    columns = [columns[c] for c in keep]
    grid = [[r[c] for c in keep] for r in grid]

    if len(grid) < 2:
        return None
    return Table(columns=columns, rows=grid, header_row=new_header, strategy="grid")


def grid_table_strategy(tokens: Sequence[Token], cfg: ExtractionConfig) -> List[Table]:
    """Strategy A: tables from consecutive table-like rows."""
    tables: List[Table] = []
    run: List[Row] = []

    def _flush() -> None:
        table = _table_from_rows(run, cfg)
        if table is not None:
            tables.append(table)

    for row in cluster_rows(tokens, cfg):
        if is_table_like_row(row):
            run.append(row)
            continue
        _flush()
        run = []
    _flush()
    return tables


# ---------------------------------------------------------------------------
# Strategy B: semantic name/grade proximity mapping
# ---------------------------------------------------------------------------


@dataclass
class _StudentSlot:
    token: Token
    register_number: str = ""
    grades: Dict[str, str] = field(default_factory=dict)


def _nearest_by(
    value: float,
    candidates: Sequence[Token],
    attr: str,
    tolerance: float,
) -> Optional[Token]:
    """Candidate whose *attr* is closest to *value*, within *tolerance*.

    Ties go to the earliest candidate.
    """
    best: Optional[Token] = None
    best_dist = math.inf
    for cand in candidates:
        dist = abs(getattr(cand, attr) - value)
        if dist < best_dist and dist <= tolerance:
            best = cand
            best_dist = dist
    return best


def _distinct_codes(codes: List[Token]) -> List[Token]:
    """Keep the leftmost occurrence of each subject code, ordered by X."""
    seen: Dict[str, Token] = {}
    for tok in sorted(codes, key=lambda t: (t.x, t.y)):
        seen.setdefault(tok.text.strip(), tok)
    return list(seen.values())


def _group_by_y(
    tagged: List[Tuple[Token, TokenKind]],
    tolerance: float,
) -> List[List[Tuple[Token, TokenKind]]]:
    """Y-tolerant rows; the first row within tolerance wins."""
    groups: List[Tuple[float, List[Tuple[Token, TokenKind]]]] = []
    for tok, kind in sorted(tagged, key=lambda tk: (tk[0].y, tk[0].x)):
        for key, members in groups:
            if abs(key - tok.y) <= tolerance:
                members.append((tok, kind))
                break
        else:
            groups.append((tok.y, [(tok, kind)]))
    return [members for _, members in groups]


def semantic_table_strategy(
    tokens: Sequence[Token],
    cfg: ExtractionConfig,
) -> List[Table]:
    """Strategy B: one row per student name, grades placed by proximity."""
    tagged = classify_tokens(tokens)
    by_kind: Dict[TokenKind, List[Token]] = {k: [] for k in TokenKind}
    for tok, kind in tagged:
        by_kind[kind].append(tok)

    codes = _distinct_codes(by_kind[TokenKind.SUBJECT_CODE])
    grades = sorted(by_kind[TokenKind.GRADE], key=lambda t: (t.y, t.x))
    names = sorted(by_kind[TokenKind.NAME], key=lambda t: (t.y, t.x))
    registers = sorted(by_kind[TokenKind.REGISTER_NUMBER], key=lambda t: (t.y, t.x))

    if len(codes) < max(1, cfg.semantic_min_subject_codes):
        return []
    if len(grades) < cfg.semantic_min_grades and not names:
        return []

    slots = [_StudentSlot(token=n) for n in names]
    slot_by_token = {id(s.token): s for s in slots}
    name_tokens = [s.token for s in slots]

    # Direct pass: nearest student by Y, then nearest subject code by X.
    for grade in grades:
        student = _nearest_by(grade.y, name_tokens, "y", cfg.semantic_y_tolerance)
        if student is None:
            continue
        code = _nearest_by(grade.x, codes, "x", cfg.semantic_x_tolerance)
        if code is None:
            continue
        slot_by_token[id(student)].grades[code.text.strip()] = grade.text.strip()

    if grades and not any(s.grades for s in slots):
        log.debug("semantic: direct mapping empty, trying row grouping")
        pool = [
            (t, k)
            for t, k in tagged
            if k in (TokenKind.NAME, TokenKind.GRADE, TokenKind.SUBJECT_CODE)
        ]
        for members in _group_by_y(pool, cfg.semantic_row_tolerance):
            row_names = [t for t, k in members if k is TokenKind.NAME]
            row_grades = [t for t, k in members if k is TokenKind.GRADE]
            if not row_names or not row_grades:
                continue
            # One student per row: the leftmost name takes the row's grades.
            slot = slot_by_token[id(min(row_names, key=lambda t: t.x))]
            for grade in row_grades:
                code = _nearest_by(
                    grade.x, codes, "x", cfg.semantic_fallback_x_tolerance
                )
                if code is not None:
                    slot.grades[code.text.strip()] = grade.text.strip()

    for reg in registers:
        student = _nearest_by(reg.y, name_tokens, "y", cfg.semantic_y_tolerance)
        if student is not None and not slot_by_token[id(student)].register_number:
            slot_by_token[id(student)].register_number = reg.text.strip()

    with_register = any(s.register_number for s in slots)
    code_texts = [c.text.strip() for c in codes]
    header = [NAME_HEADER]
    if with_register:
        header.append(REGISTER_HEADER)
    header.extend(code_texts)

    rows: List[List[str]] = [header]
    for slot in slots:
        name = slot.token.text.strip()
        if not name and not slot.grades:
            continue
        row = [name]
        if with_register:
            row.append(slot.register_number)
        row.extend(slot.grades.get(c, "") for c in code_texts)
        rows.append(row)

    if len(rows) < 2:
        return []
    columns = [
        Column(center=i * SEMANTIC_COLUMN_PITCH, width=SEMANTIC_COLUMN_PITCH)
        for i in range(len(header))
    ]
    return [Table(columns=columns, rows=rows, header_row=0, strategy="semantic")]


# ---------------------------------------------------------------------------
# Strategy C: coarse grid fallback
# ---------------------------------------------------------------------------


def _snap(value: float, step: float) -> float:
    """Round half away from zero onto a *step* lattice."""
    return math.floor(value / step + 0.5) * step


def coarse_grid_strategy(
    tokens: Sequence[Token],
    cfg: ExtractionConfig,
) -> List[Table]:
    """Strategy C: place every classified token on a fixed lattice."""
    step = cfg.grid_step
    placed = [
        (tok, _snap(tok.x, step), _snap(tok.y, step))
        for tok, kind in classify_tokens(tokens)
        if kind is not TokenKind.OTHER
    ]
    if not placed:
        return []

    xs = sorted({x for _, x, _ in placed})
    ys = sorted({y for _, _, y in placed})
    x_index = {x: i for i, x in enumerate(xs)}
    y_index = {y: i for i, y in enumerate(ys)}

    grid = [[""] * len(xs) for _ in ys]
    for tok, x, y in sorted(placed, key=lambda p: (p[2], p[1], p[0].text)):
        r, c = y_index[y], x_index[x]
        grid[r][c] = f"{grid[r][c]} {tok.text}" if grid[r][c] else tok.text

    rows = [r for r in grid if any(cell.strip() for cell in r)]
    if len(rows) < 2:
        return []
    columns = [Column(center=x, width=step) for x in xs]
    return [Table(columns=columns, rows=rows, strategy="coarse_grid")]


# ---------------------------------------------------------------------------
# Chain
# ---------------------------------------------------------------------------

STRATEGY_CHAIN: Tuple[Tuple[str, StrategyFn], ...] = (
    ("grid", grid_table_strategy),
    ("semantic", semantic_table_strategy),
    ("coarse_grid", coarse_grid_strategy),
)


def reconstruct_tables(
    tokens: Sequence[Token],
    cfg: ExtractionConfig,
    page: Optional[int] = None,
    strategies: Sequence[Tuple[str, StrategyFn]] = STRATEGY_CHAIN,
) -> Tuple[List[Table], str]:
    """Run *strategies* in order and return the first non-empty result.

    Returns:
        ``(tables, strategy_name)``; ``([], "")`` when nothing matched.
    """
    trace = {"stage": "tables", "page": page}
    for name, strategy in strategies:
        tables = [t for t in strategy(tokens, cfg) if t.is_valid()]
        if tables:
            for t in tables:
                t.page = page
            log.debug(
                "strategy %s produced %d table(s)", name, len(tables), extra=trace
            )
            return tables, name
        log.debug("strategy %s found no table", name, extra=trace)
    return [], ""
